"""
Region tree endpoints.

Primary regions are seeded and read-only; subregions are created, renamed
and deleted here.
"""
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from fleet.permissions import IsAdminRole
from fleet.serializers.regions import SubregionCreateSerializer, SubregionSerializer
from fleet.services import refresh
from fleet.services.regions import (
    create_subregion, delete_subregion, region_tree, serialize_region, update_subregion,
)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def list_regions(request):
    return Response({'ok': True, 'data': region_tree()})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def add_subregion(request):
    s = SubregionCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    region = create_subregion(parent_id=vd['parentRegionId'], name=vd['name'], code=vd['code'],
                              user=request.user)
    refresh.invalidate(refresh.HOSPITALS_KEY)
    return Response({'ok': True, 'data': serialize_region(region)}, status=status.HTTP_201_CREATED)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def subregion_detail(request, region_id: int):
    if request.method == 'DELETE':
        delete_subregion(region_id=region_id, user=request.user)
        refresh.invalidate(refresh.HOSPITALS_KEY)
        return Response({'ok': True})
    s = SubregionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    region = update_subregion(region_id=region_id, name=s.validated_data['name'],
                              code=s.validated_data['code'], user=request.user)
    refresh.invalidate(refresh.HOSPITALS_KEY)
    return Response({'ok': True, 'data': serialize_region(region)})
