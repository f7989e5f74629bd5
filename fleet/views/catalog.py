"""
Catalog endpoints: categories, SKUs and devices.
"""
from django.db.models import Count
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from fleet.models import DeviceCategory, DeviceModel, Warehouse
from fleet.permissions import IsAdminRole
from fleet.serializers.catalog import CategoryCreateSerializer, DeviceSerializer, SkuSerializer
from fleet.services import catalog as svc


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def categories(request):
    if request.method == 'POST':
        s = CategoryCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = s.validated_data
        category = svc.create_category(name=vd.get('name'), description=vd.get('description'),
                                       skus=vd.get('skus') or [], image=vd.get('image'), user=request.user)
        return Response({'ok': True, 'data': svc.category_row(category)}, status=status.HTTP_201_CREATED)
    qs = DeviceCategory.objects.annotate(model_count=Count('models')).order_by('name')
    return Response({'ok': True, 'data': [svc.category_row(c) for c in qs]})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def category_models(request, category_id: int):
    if request.method == 'POST':
        s = SkuSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        model = svc.create_model(category_id=category_id, user=request.user,
                                 **SkuSerializer.to_service(s.validated_data))
        return Response({'ok': True, 'data': svc.model_row(model)}, status=status.HTTP_201_CREATED)
    qs = DeviceModel.objects.select_related('category').filter(category_id=category_id)
    return Response({'ok': True, 'data': [svc.model_row(m) for m in qs]})


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def model_detail(request, model_id: int):
    if request.method == 'DELETE':
        svc.delete_model(model_id, user=request.user)
        return Response({'ok': True})
    s = SkuSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    model = svc.update_model(model_id, user=request.user, **SkuSerializer.to_service(s.validated_data))
    return Response({'ok': True, 'data': svc.model_row(model)})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def model_devices(request, model_id: int):
    model = DeviceModel.objects.select_related('category').filter(id=model_id).first()
    if model is None:
        raise NotFound('SKU not found')
    if request.method == 'POST':
        s = DeviceSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        device = svc.create_device(model_id=model_id, user=request.user, **s.to_service())
        return Response({'ok': True, 'data': svc.device_row(device)}, status=status.HTTP_201_CREATED)
    return Response({
        'ok': True,
        'model': svc.model_row(model),
        'data': [svc.device_row(d) for d in model.devices.all()],
        'warehouses': [{'id': w.id, 'name': w.name} for w in Warehouse.objects.all()],
    })


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def device_detail(request, device_id: int):
    if request.method == 'DELETE':
        svc.delete_device(device_id, user=request.user)
        return Response({'ok': True})
    s = DeviceSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    device = svc.update_device(device_id, user=request.user, **s.to_service())
    return Response({'ok': True, 'data': svc.device_row(device)})
