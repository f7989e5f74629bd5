"""
Demo scheduling endpoints.

The selection bin lives in the user's session so the picker can be used
across requests; session creation accepts explicit ``deviceIds`` or falls
back to the bin.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from fleet.models import Device, DeviceCategory, Hospital
from fleet.permissions import IsAdminRole
from fleet.serializers.demo import (
    BinSerializer, CandidateQuerySerializer, DemoSessionCreateSerializer, SessionQuerySerializer,
)
from fleet.services import demo as svc
from fleet.services.reports import demo_summary


def _target(hospital_id):
    if not hospital_id:
        return None
    return Hospital.objects.select_related('region').filter(id=hospital_id).first()


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def demo_overview(request):
    """Sessions for one tab plus the demo summary."""
    q = SessionQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    tab = q.validated_data['tab']
    return Response({
        'ok': True,
        'tab': tab,
        'summary': demo_summary(),
        'sessions': svc.sessions_for_tab(tab, q.validated_data.get('today')),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def demo_options(request):
    """Picker choices: categories with their models, and owners for a hospital."""
    q = CandidateQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    categories = []
    for c in DeviceCategory.objects.prefetch_related('models').order_by('name'):
        categories.append({
            'id': c.id,
            'name': c.name,
            'models': [{'id': m.id, 'name': m.model_name or 'Unknown SKU'}
                       for m in sorted(c.models.all(), key=lambda m: m.model_name or '')],
        })
    return Response({
        'ok': True,
        'categories': categories,
        'owners': svc.owner_options(_target(q.validated_data.get('hospitalId'))),
        'demoStatuses': [s for s, _ in Device.DEMO_STATUS_CHOICES],
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def demo_candidates(request):
    q = CandidateQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    model_id = vd.get('modelId')
    if not model_id:
        return Response({'ok': True, 'data': []})
    devices = list(svc.model_candidates(model_id, vd.get('serial') or ''))
    marked = svc.highlighted_ids(devices, _target(vd.get('hospitalId')))
    return Response({'ok': True, 'data': [svc.device_row(d, d.id in marked) for d in devices]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def demo_search(request):
    """Serial search over every available demo unit, regardless of model."""
    q = CandidateQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    devices = list(svc.global_serial_search(q.validated_data.get('serial') or ''))
    marked = svc.highlighted_ids(devices, _target(q.validated_data.get('hospitalId')))
    return Response({'ok': True, 'data': [svc.device_row(d, d.id in marked) for d in devices]})


def _bin_rows(device_bin: svc.DeviceBin) -> list[dict]:
    ids = device_bin.as_list()
    by_id = {d.id: d for d in Device.objects.select_related(
        'device_model', 'device_model__category', 'current_hospital').filter(id__in=ids)}
    return [svc.device_row(by_id[i]) for i in ids if i in by_id]


@api_view(['GET', 'POST', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def demo_bin(request):
    """List, add to, remove from (``deviceId``) or clear (no body) the bin."""
    device_bin = svc.DeviceBin.from_session(request.session)
    if request.method == 'POST':
        s = BinSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        device_bin.add(s.validated_data['deviceId'])
        device_bin.save(request.session)
    elif request.method == 'DELETE':
        if request.data.get('deviceId') is None:
            device_bin.clear()
        else:
            s = BinSerializer(data=request.data)
            s.is_valid(raise_exception=True)
            device_bin.remove(s.validated_data['deviceId'])
        device_bin.save(request.session)
    return Response({'ok': True, 'deviceIds': device_bin.as_list(), 'devices': _bin_rows(device_bin)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def create_demo(request):
    s = DemoSessionCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    from_bin = 'deviceIds' not in vd
    device_bin = svc.DeviceBin.from_session(request.session)
    device_ids = device_bin.as_list() if from_bin else vd['deviceIds']
    session = svc.create_demo_session(
        hospital_id=vd['hospitalId'],
        owner_id=vd['ownerId'],
        device_ids=device_ids,
        start_date=vd['startDate'],
        end_date=vd['endDate'],
        demo_status=vd['demoStatus'],
        user=request.user,
    )
    if from_bin:
        device_bin.clear()
        device_bin.save(request.session)
    tab = svc.classify_tab(session.start_date, session.end_date)
    row = svc.session_row(svc.session_queryset().get(id=session.id), tab)
    return Response({'ok': True, 'tab': tab, 'data': row}, status=status.HTTP_201_CREATED)
