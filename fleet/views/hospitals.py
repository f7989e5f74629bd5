"""
Hospital management endpoints for admins.
"""
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from fleet.permissions import IsAdminRole
from fleet.serializers.hospitals import (
    AssignDeviceSerializer, AssignEngineerSerializer, HospitalQuerySerializer, HospitalSerializer,
)
from fleet.services import hospitals as svc
from fleet.services import refresh
from fleet.services.pincode import PincodeLookupError, lookup_pincode
from fleet.services.regions import region_tree
from fleet.services.reports import hospital_details, hospital_overview, hospitals_payload


def _detail(hospital_id) -> dict:
    rows = hospital_overview(ids=[hospital_id])
    if not rows:
        raise NotFound('hospital not found')
    row = rows[0]
    address, pincode = svc.split_address(row['address'])
    extra = hospital_details([hospital_id]).get(hospital_id, {'devices': [], 'engineers': []})
    return {**row, **extra, 'addressLine': address, 'pincode': pincode}


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def hospitals(request):
    if request.method == 'POST':
        s = HospitalSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        hospital = svc.create_hospital(user=request.user, **s.service_kwargs())
        return Response({'ok': True, 'data': _detail(hospital.id)}, status=status.HTTP_201_CREATED)

    q = HospitalQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    term = (q.validated_data.get('q') or '').strip()
    zone = (q.validated_data.get('zone') or '').strip()
    if not term and not zone:
        return Response(refresh.cached(refresh.HOSPITALS_KEY, hospitals_payload))
    return Response({'ok': True, 'data': hospital_overview(q=term or None, zone=zone or None)})


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated, IsAdminRole])
def hospital_detail(request, hospital_id: int):
    if request.method == 'PATCH':
        s = HospitalSerializer(data=request.data, context={'require_name': False})
        s.is_valid(raise_exception=True)
        svc.update_hospital(hospital_id, user=request.user, **s.service_kwargs())
    data = _detail(hospital_id)
    data['engineerCandidates'] = svc.engineer_candidates(hospital_id)
    data['deviceCandidates'] = svc.device_candidates()
    return Response({'ok': True, 'data': data, 'regions': region_tree()})


@api_view(['POST', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def hospital_engineers(request, hospital_id: int):
    s = AssignEngineerSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    if request.method == 'DELETE':
        svc.remove_engineer(hospital_id, s.validated_data['engineerId'], user=request.user)
    else:
        svc.assign_engineer(hospital_id, s.validated_data['engineerId'], user=request.user)
    return Response({'ok': True, 'data': _detail(hospital_id)})


@api_view(['POST', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def hospital_devices(request, hospital_id: int):
    s = AssignDeviceSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    if request.method == 'DELETE':
        svc.return_device(hospital_id, s.validated_data['deviceId'], user=request.user)
    else:
        svc.assign_device(hospital_id, s.validated_data['deviceId'], user=request.user)
    return Response({'ok': True, 'data': _detail(hospital_id)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def pincode_lookup(request, pincode: str):
    """Prefill city/state; failures come back as a warning, never an error status."""
    try:
        return Response({'ok': True, 'data': lookup_pincode(pincode)})
    except PincodeLookupError as exc:
        return Response({'ok': False, 'data': None, 'warning': str(exc)})
