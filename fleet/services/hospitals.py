"""
Hospital maintenance: details, points of contact, engineer coverage and
devices placed at the site.
"""
import logging
import re
from typing import Optional

from django.db import transaction
from rest_framework.exceptions import NotFound, ValidationError

from fleet.exceptions import DeviceUnavailable, store_errors
from fleet.models import Device, EngineerHospital, Hospital, Profile
from fleet.services import refresh
from fleet.services.audit import log_action
from fleet.services.movements import default_warehouse, move_device
from fleet.services.regions import resolve_hospital_region

logger = logging.getLogger(__name__)

TRAILING_PINCODE_RE = re.compile(r'(\d{6})\s*$')

POC_REQUIRED = 'At least one point of contact (POC) is required.'
POC_INCOMPLETE = 'Each POC must have both name and phone number.'


def normalize_poc(entries) -> list[dict]:
    """Strip every entry and drop the ones left completely empty."""
    out = []
    for entry in entries or []:
        if not isinstance(entry, dict):
            entry = {}
        name = str(entry.get('name') or '').strip()
        phone = str(entry.get('phone') or '').strip()
        if name or phone:
            out.append({'name': name, 'phone': phone})
    return out


def validate_poc(entries) -> list[dict]:
    poc = normalize_poc(entries)
    if not poc:
        raise ValidationError({'poc': POC_REQUIRED})
    if any(not e['name'] or not e['phone'] for e in poc):
        raise ValidationError({'poc': POC_INCOMPLETE})
    return poc


def compose_address(address: Optional[str], pincode: Optional[str]) -> Optional[str]:
    address = (address or '').strip()
    pincode = (pincode or '').strip()
    if address and pincode:
        return f'{address}, {pincode}'
    return address or pincode or None


def split_address(stored: Optional[str]) -> tuple[str, str]:
    """Inverse of :func:`compose_address` for the edit form."""
    stored = (stored or '').strip()
    m = TRAILING_PINCODE_RE.search(stored)
    if not m:
        return stored, ''
    return stored[:m.start()].rstrip().rstrip(',').rstrip(), m.group(1)


def get_hospital(hospital_id) -> Hospital:
    hospital = Hospital.objects.select_related('region', 'region__parent').filter(id=hospital_id).first()
    if hospital is None:
        raise NotFound('hospital not found')
    return hospital


def create_hospital(*, name: str, poc, primary_region_id, subregion_id=None, address=None,
                    pincode=None, city=None, state=None, user=None) -> Hospital:
    name = (name or '').strip()
    if not name:
        raise ValidationError({'name': 'Hospital name is required.'})
    poc = validate_poc(poc)
    region = resolve_hospital_region(primary_region_id, subregion_id)
    with store_errors('hospital create'):
        with transaction.atomic():
            hospital = Hospital.objects.create(
                name=name,
                address=compose_address(address, pincode),
                city=(city or '').strip() or None,
                state=(state or '').strip() or None,
                region=region,
                poc=poc,
            )
            refresh.invalidate(refresh.HOSPITALS_KEY, refresh.DASHBOARD_KEY)
    log_action(user=user, action='hospital_create', object_type='hospital', object_id=hospital.id)
    logger.info('hospital %s created by %s', hospital.id, getattr(user, 'pk', None))
    return hospital


def update_hospital(hospital_id, *, poc, primary_region_id, subregion_id=None, address=None,
                    pincode=None, city=None, state=None, name=None, user=None) -> Hospital:
    hospital = get_hospital(hospital_id)
    poc = validate_poc(poc)
    region = resolve_hospital_region(primary_region_id, subregion_id)
    if name is not None:
        name = name.strip()
        if not name:
            raise ValidationError({'name': 'Hospital name is required.'})
        hospital.name = name
    hospital.address = compose_address(address, pincode)
    hospital.city = (city or '').strip() or None
    hospital.state = (state or '').strip() or None
    hospital.region = region
    hospital.poc = poc
    with store_errors('hospital update'):
        with transaction.atomic():
            hospital.save()
            refresh.invalidate(refresh.HOSPITALS_KEY, refresh.DASHBOARD_KEY)
    log_action(user=user, action='hospital_update', object_type='hospital', object_id=hospital.id)
    logger.info('hospital %s updated by %s', hospital.id, getattr(user, 'pk', None))
    return hospital


def engineer_candidates(hospital_id) -> list[dict]:
    """Active field engineers not yet covering the hospital."""
    assigned = EngineerHospital.objects.filter(hospital_id=hospital_id).values_list('engineer_id', flat=True)
    qs = Profile.objects.filter(
        role=Profile.ROLE_FIELD_ENGINEER,
        approval_status=Profile.APPROVAL_APPROVED,
        is_active=True,
    ).exclude(user_id__in=assigned).order_by('full_name')
    return [{'userId': p.user_id, 'fullName': p.full_name, 'phone': p.phone} for p in qs]


def device_candidates() -> list[dict]:
    """Warehouse stock that can be placed at a hospital."""
    qs = Device.objects.select_related('device_model', 'device_model__category').filter(
        current_location_type=Device.LOCATION_WAREHOUSE,
        current_hospital__isnull=True,
        status=Device.STATUS_IN_INVENTORY,
    )
    return [{
        'id': d.id,
        'serialNumber': d.serial_number,
        'usageType': d.usage_type,
        'modelName': d.device_model.model_name,
        'categoryName': d.device_model.category.name,
    } for d in qs]


def assign_engineer(hospital_id, engineer_id, *, user=None) -> EngineerHospital:
    hospital = get_hospital(hospital_id)
    engineer = Profile.objects.filter(user_id=engineer_id, role=Profile.ROLE_FIELD_ENGINEER).first()
    if engineer is None:
        raise ValidationError({'engineerId': 'Select a field engineer.'})
    with store_errors('engineer assign'):
        with transaction.atomic():
            link, _ = EngineerHospital.objects.update_or_create(
                engineer=engineer, hospital=hospital,
                defaults={'assigned_by': user if getattr(user, 'is_authenticated', False) else None},
            )
            refresh.invalidate(refresh.HOSPITALS_KEY)
    logger.info('engineer %s assigned to hospital %s', engineer.user_id, hospital.id)
    return link


def remove_engineer(hospital_id, engineer_id, *, user=None) -> int:
    with transaction.atomic():
        deleted, _ = EngineerHospital.objects.filter(hospital_id=hospital_id, engineer_id=engineer_id).delete()
        refresh.invalidate(refresh.HOSPITALS_KEY)
    logger.info('engineer %s removed from hospital %s (%s rows)', engineer_id, hospital_id, deleted)
    return deleted


def assign_device(hospital_id, device_id, *, user=None) -> Device:
    hospital = get_hospital(hospital_id)
    with store_errors('device assign'):
        with transaction.atomic():
            device = Device.objects.select_for_update().filter(id=device_id).first()
            if device is None:
                raise NotFound('device not found')
            if device.current_location_type == Device.LOCATION_HOSPITAL and device.current_hospital_id:
                raise DeviceUnavailable('This device is already placed at a hospital.')
            move_device(device, hospital=hospital, reason='assigned to hospital', user=user)
            refresh.invalidate()
    return device


def return_device(hospital_id, device_id, *, user=None) -> Device:
    """Send a device at ``hospital_id`` back to the default warehouse."""
    warehouse = default_warehouse()
    with store_errors('device return'):
        with transaction.atomic():
            device = Device.objects.select_for_update().filter(
                id=device_id, current_hospital_id=hospital_id
            ).first()
            if device is None:
                raise NotFound('device not found at this hospital')
            move_device(device, warehouse=warehouse, reason='returned to warehouse', user=user)
            refresh.invalidate()
    return device
