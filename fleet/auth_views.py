"""
Login, signup and JWT endpoints.

Credentials are checked by Django; the profile gate then decides whether the
account may sign in and which dashboard it lands on.
"""
from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView

from fleet.serializers.auth import LoginSerializer, SignupSerializer
from fleet.services.audit import log_action
from fleet.services.team import SIGNUP_MESSAGE, home_path_for_role, login_gate, signup

logger = logging.getLogger(__name__)


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = s.validated_data['username']
    try:
        user, profile = login_gate(username, s.validated_data['password'], request)
    except AuthenticationFailed as exc:
        log_action(user=None, action='login', object_type='user',
                   detail={'result': 'fail', 'username': username, 'reason': str(exc.detail),
                           'ip': request.META.get('REMOTE_ADDR')})
        logger.info('login refused for %s: %s', username, exc.detail)
        raise

    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': request.META.get('REMOTE_ADDR')})

    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)
    return Response({
        'ok': True,
        'token': token_obj.key,
        'jwt_access': str(refresh.access_token),
        'jwt_refresh': str(refresh),
        'role': profile.role,
        'home': home_path_for_role(profile.role),
        'user': {
            'id': user.id,
            'email': user.email,
            'name': profile.full_name or user.get_full_name() or user.username,
            'role': profile.role,
            'isRegionalManager': profile.is_regional_manager,
        },
    }, status=200)

login_view.cls.throttle_scope = 'login'


@api_view(['POST'])
@permission_classes([AllowAny])
def signup_view(request):
    s = SignupSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    profile = signup(full_name=vd['fullName'], email=vd['email'], password=vd['password'],
                     phone=vd.get('phone'))
    return Response({'ok': True, 'userId': profile.user_id, 'message': SIGNUP_MESSAGE},
                    status=status.HTTP_201_CREATED)

signup_view.cls.throttle_scope = 'login'


@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token from a refresh token."""
    view = TokenRefreshView.as_view()
    resp = view(request._request)
    if isinstance(resp, Response):
        data = dict(resp.data)
        if 'access' in data and 'jwt_access' not in data:
            data['jwt_access'] = data.pop('access')
        return Response(data, status=resp.status_code)
    return resp


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def jwt_logout_view(request):
    """Blacklist the given refresh token, or every outstanding one of the user."""
    refresh = request.data.get('refresh')
    count = 0
    if refresh:
        try:
            RefreshToken(refresh).blacklist()
            count = 1
        except TokenError as exc:
            return Response({'ok': False, 'detail': str(exc)}, status=400)
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    Token.objects.filter(user=request.user).delete()
    return Response({'ok': True, 'blacklisted': count})
