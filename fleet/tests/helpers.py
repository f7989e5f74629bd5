"""Small builders shared by the API and service tests."""
from django.contrib.auth import get_user_model

from fleet.models import Device, DeviceCategory, DeviceModel, Hospital, Profile, Region, Warehouse
from fleet.services.team import Approved, Pending, Rejected, apply_state

User = get_user_model()

PASSWORD = 'P@ssw0rd1'


def make_user(email: str, password: str = PASSWORD):
    return User.objects.create_user(username=email, email=email, password=password)


def make_profile(email: str, state=None, **fields) -> Profile:
    user = make_user(email)
    fields.setdefault('full_name', email.split('@')[0].title())
    profile = Profile(user=user, **fields)
    apply_state(profile, state or Pending())
    profile.save()
    return profile


def make_member(email: str, role: str = Profile.ROLE_FIELD_ENGINEER, *, active: bool = True, **fields) -> Profile:
    return make_profile(email, Approved(role=role, active=active), **fields)


def make_rejected(email: str, reason: str = 'not now') -> Profile:
    return make_profile(email, Rejected(reason=reason))


def make_zone(name: str = 'North', code: str = 'N') -> Region:
    return Region.objects.create(name=name, code=code, is_locked=True)


def make_subregion(zone: Region, name: str, code: str) -> Region:
    return Region.objects.create(name=name, code=code, parent=zone)


def make_hospital(name: str, region=None, **fields) -> Hospital:
    fields.setdefault('poc', [{'name': 'Dr. Rao', 'phone': '9800000000'}])
    return Hospital.objects.create(name=name, region=region, **fields)


def make_model(category: str = 'Ultrasound', name: str = 'Sono X1', code: str = 'SX1') -> DeviceModel:
    cat, _ = DeviceCategory.objects.get_or_create(name=category)
    return DeviceModel.objects.create(category=cat, model_name=name, model_code=code)


def make_device(model: DeviceModel, serial: str, *, usage: str = Device.USAGE_DEMO,
                demo_status=Device.DEMO_AVAILABLE, hospital=None, warehouse=None, **fields) -> Device:
    device = Device(device_model=model, serial_number=serial, barcode=f'BC-{serial}',
                    usage_type=usage, demo_status=demo_status, **fields)
    if hospital is not None:
        device.place_at_hospital(hospital)
    else:
        device.place_at_warehouse(warehouse)
    device.save()
    return device


def make_warehouse(name: str = 'Main Warehouse') -> Warehouse:
    return Warehouse.objects.create(name=name)
