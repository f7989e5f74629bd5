"""
Team administration endpoints: signup triage, activation, the manager
hierarchy and engineer coverage.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from fleet.permissions import IsAdminRole
from fleet.serializers.team import (
    ApproveSerializer, EngineerHospitalSerializer, ProfileUpsertSerializer, RejectSerializer,
    TeamUserCreateSerializer, UserIdSerializer,
)
from fleet.services import team as svc


def _user_id(request) -> int:
    s = UserIdSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    return s.validated_data['userId']


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def team_overview(request):
    return Response({'ok': True, **svc.team_overview()})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def manager_detail(request, manager_id: int):
    return Response({'ok': True, **svc.manager_detail(manager_id)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def approve_request(request):
    s = ApproveSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    profile = svc.approve(s.validated_data['userId'], s.validated_data['role'], by=request.user)
    return Response({'ok': True, 'data': svc.member_row(profile)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def reject_request(request):
    s = RejectSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    profile = svc.reject(s.validated_data['userId'], s.validated_data.get('reason'), by=request.user)
    return Response({'ok': True, 'data': svc.member_row(profile)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def activate_member(request):
    profile = svc.activate(_user_id(request), by=request.user)
    return Response({'ok': True, 'data': svc.member_row(profile)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def deactivate_member(request):
    profile = svc.deactivate(_user_id(request), by=request.user)
    return Response({'ok': True, 'data': svc.member_row(profile)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def remove_regional_manager(request):
    profile = svc.remove_regional_manager(_user_id(request), by=request.user)
    return Response({'ok': True, 'data': svc.member_row(profile)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def upsert_profile(request):
    s = ProfileUpsertSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    profile = svc.upsert_profile(user_id=s.validated_data['userId'], by=request.user, **s.profile_kwargs())
    return Response({'ok': True, 'data': svc.member_row(profile)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def create_team_user(request):
    s = TeamUserCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    profile = svc.create_team_user(email=s.validated_data['email'], password=s.validated_data['password'],
                                   by=request.user, **s.profile_kwargs())
    return Response({'ok': True, 'data': svc.member_row(profile)}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def delete_team_user(request):
    """Irreversible: removes the login and, with it, the profile."""
    svc.delete_team_user(_user_id(request), by=request.user)
    return Response({'ok': True})


@api_view(['POST', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def engineer_hospital(request):
    s = EngineerHospitalSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    if request.method == 'DELETE':
        removed = svc.remove_engineer_hospital(vd['engineerId'], vd['hospitalId'], by=request.user)
        return Response({'ok': True, 'removed': removed})
    link = svc.assign_engineer_hospital(vd['engineerId'], vd['hospitalId'], by=request.user)
    return Response({'ok': True, 'data': {'engineerId': link.engineer_id, 'hospitalId': link.hospital_id}})
