"""
Field engineer surface: the hospitals an engineer covers and the devices
found there.
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from fleet.models import Device, EngineerHospital
from fleet.permissions import IsFieldEngineer
from fleet.services.reports import hospital_details, hospital_overview


def _assigned_ids(user) -> list[int]:
    return list(EngineerHospital.objects.filter(engineer_id=user.pk).values_list('hospital_id', flat=True))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFieldEngineer])
def engineer_dashboard(request):
    rows = hospital_overview(ids=_assigned_ids(request.user))
    return Response({'ok': True, 'data': rows})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFieldEngineer])
def engineer_hospital(request, hospital_id: int):
    if hospital_id not in _assigned_ids(request.user):
        raise NotFound('hospital not found')
    rows = hospital_overview(ids=[hospital_id])
    if not rows:
        raise NotFound('hospital not found')
    devices = hospital_details([hospital_id]).get(hospital_id, {}).get('devices', [])
    return Response({'ok': True, 'data': {**rows[0], 'devices': devices}})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFieldEngineer])
def engineer_device(request, device_id: int):
    d = (
        Device.objects.select_related('device_model', 'device_model__category',
                                      'current_hospital', 'current_warehouse')
        .filter(id=device_id).first()
    )
    if d is None:
        raise NotFound('device not found')
    return Response({'ok': True, 'data': {
        'id': d.id,
        'serialNumber': d.serial_number,
        'barcode': d.barcode,
        'ownershipType': d.ownership_type,
        'usageType': d.usage_type,
        'status': d.status,
        'demoStatus': d.demo_status,
        'modelName': d.device_model.model_name,
        'modelCode': d.device_model.model_code,
        'categoryName': d.device_model.category.name,
        'locationType': d.current_location_type,
        'hospital': {'id': d.current_hospital_id, 'name': d.current_hospital.name} if d.current_hospital_id else None,
        'warehouse': {'id': d.current_warehouse_id, 'name': d.current_warehouse.name} if d.current_warehouse_id else None,
    }})
