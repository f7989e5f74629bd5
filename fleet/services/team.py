"""
Team membership: signup triage, activation and the manager hierarchy.

A profile's approval columns (``approval_status``, ``role``, ``is_active``,
``rejection_reason``) are never written one by one.  They are derived from a
:data:`ProfileState` value and stored with :func:`apply_state`, so
combinations such as a rejected but active account cannot be produced.

Allowed transitions::

    Pending  -> Approved(role, active=True)
    Pending  -> Rejected(reason)
    Rejected -> Approved(role, active=True)
    Approved -> Approved(role, active=not active)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

import bleach
from django.contrib.auth import authenticate, get_user_model
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import AuthenticationFailed, NotFound, ValidationError

from fleet.exceptions import InvalidTransition, store_errors
from fleet.models import Device, EngineerHospital, Hospital, Profile, Region
from fleet.services import refresh
from fleet.services.audit import log_action

logger = logging.getLogger(__name__)
User = get_user_model()

ROLES = {Profile.ROLE_ADMIN, Profile.ROLE_REGIONAL_MANAGER, Profile.ROLE_FIELD_ENGINEER}

HOME_PATHS = {
    Profile.ROLE_ADMIN: '/admin/dashboard',
    Profile.ROLE_REGIONAL_MANAGER: '/manager/dashboard',
    Profile.ROLE_FIELD_ENGINEER: '/engineer/dashboard',
}

SIGNUP_MESSAGE = 'Request submitted. Wait for admin approval.'


@dataclass(frozen=True)
class Pending:
    pass


@dataclass(frozen=True)
class Approved:
    role: str
    active: bool = True


@dataclass(frozen=True)
class Rejected:
    reason: Optional[str] = None


ProfileState = Union[Pending, Approved, Rejected]


def state_of(profile: Profile) -> ProfileState:
    if profile.approval_status == Profile.APPROVAL_APPROVED:
        return Approved(role=profile.role, active=profile.is_active)
    if profile.approval_status == Profile.APPROVAL_REJECTED:
        return Rejected(reason=profile.rejection_reason)
    return Pending()


def apply_state(profile: Profile, state: ProfileState) -> list[str]:
    """Write ``state`` onto the approval columns and return the touched fields."""
    if isinstance(state, Approved):
        if state.role not in ROLES:
            raise ValidationError({'role': 'Select a valid role.'})
        profile.approval_status = Profile.APPROVAL_APPROVED
        profile.role = state.role
        profile.is_active = state.active
        profile.rejection_reason = None
    elif isinstance(state, Rejected):
        profile.approval_status = Profile.APPROVAL_REJECTED
        profile.is_active = False
        profile.rejection_reason = state.reason
    else:
        profile.approval_status = Profile.APPROVAL_PENDING
        profile.is_active = False
        profile.rejection_reason = None
    return ['approval_status', 'role', 'is_active', 'rejection_reason']


def home_path_for_role(role: Optional[str]) -> str:
    return HOME_PATHS.get(role, HOME_PATHS[Profile.ROLE_FIELD_ENGINEER])


def get_profile(user_id) -> Profile:
    profile = Profile.objects.select_related('user').filter(user_id=user_id).first()
    if profile is None:
        raise NotFound('Profile not found')
    return profile


def _actor(user):
    return user if getattr(user, 'is_authenticated', False) else None


def _clean(value: Optional[str]) -> Optional[str]:
    value = bleach.clean((value or '').strip(), tags=set(), strip=True)
    return value or None


def _detach_reports(profile: Profile) -> int:
    return Profile.objects.filter(manager=profile).update(manager=None)


# -- auth --------------------------------------------------------------------

def signup(*, full_name: str, email: str, password: str, phone: Optional[str] = None) -> Profile:
    full_name = _clean(full_name)
    email = (email or '').strip().lower()
    if not full_name or not email or not password:
        raise ValidationError({'detail': 'Missing required fields'})
    if User.objects.filter(username=email).exists():
        raise ValidationError({'email': 'A user with this email already exists.'})
    with store_errors('signup'):
        with transaction.atomic():
            user = User.objects.create_user(username=email, email=email, password=password, first_name=full_name)
            profile = Profile(user=user, full_name=full_name, phone=_clean(phone))
            apply_state(profile, Pending())
            profile.save()
    logger.info('signup request from user %s', user.pk)
    return profile


def login_gate(username: str, password: str, request=None):
    """Verify credentials and the profile; return ``(user, profile)``."""
    if not username or not password:
        raise AuthenticationFailed('Missing credentials')
    user = authenticate(request, username=username, password=password)
    if user is None:
        raise AuthenticationFailed('Invalid login credentials')
    profile = Profile.objects.filter(user=user).first()
    if profile is None:
        raise AuthenticationFailed('Profile not found')
    state = state_of(profile)
    if isinstance(state, Pending):
        raise AuthenticationFailed('Application under process')
    if isinstance(state, Rejected):
        raise AuthenticationFailed('Application rejected')
    if not state.active:
        raise AuthenticationFailed('Account is deactivated')
    if not state.role:
        raise AuthenticationFailed('Profile missing role')
    return user, profile


# -- approval ----------------------------------------------------------------

def approve(user_id, role: str, *, by=None) -> Profile:
    with transaction.atomic():
        profile = Profile.objects.select_for_update().filter(user_id=user_id).first()
        if profile is None:
            raise NotFound('Profile not found')
        if isinstance(state_of(profile), Approved):
            raise InvalidTransition('This request is already approved.')
        fields = apply_state(profile, Approved(role=role, active=True))
        profile.decision_by = _actor(by)
        profile.decision_at = timezone.now()
        profile.save(update_fields=fields + ['decision_by', 'decision_at'])
        refresh.invalidate(refresh.DASHBOARD_KEY)
    log_action(user=by, action='profile_approve', object_type='profile', object_id=profile.pk,
               detail={'role': role})
    logger.info('profile %s approved as %s by %s', profile.pk, role, getattr(by, 'pk', None))
    return profile


def reject(user_id, reason: Optional[str] = None, *, by=None) -> Profile:
    with transaction.atomic():
        profile = Profile.objects.select_for_update().filter(user_id=user_id).first()
        if profile is None:
            raise NotFound('Profile not found')
        if not isinstance(state_of(profile), Pending):
            raise InvalidTransition('Only pending requests can be rejected.')
        fields = apply_state(profile, Rejected(reason=_clean(reason)))
        profile.decision_by = _actor(by)
        profile.decision_at = timezone.now()
        profile.save(update_fields=fields + ['decision_by', 'decision_at'])
    log_action(user=by, action='profile_reject', object_type='profile', object_id=profile.pk,
               detail={'reason': profile.rejection_reason})
    logger.info('profile %s rejected by %s', profile.pk, getattr(by, 'pk', None))
    return profile


def _approved_or_raise(profile: Profile) -> Approved:
    state = state_of(profile)
    if not isinstance(state, Approved):
        raise InvalidTransition('Only approved members can be activated or deactivated.')
    return state


def activate(user_id, *, by=None) -> Profile:
    with transaction.atomic():
        profile = Profile.objects.select_for_update().filter(user_id=user_id).first()
        if profile is None:
            raise NotFound('Profile not found')
        state = _approved_or_raise(profile)
        fields = apply_state(profile, Approved(role=state.role, active=True))
        profile.save(update_fields=fields)
        refresh.invalidate(refresh.DASHBOARD_KEY)
    log_action(user=by, action='profile_activate', object_type='profile', object_id=profile.pk)
    logger.info('profile %s activated by %s', profile.pk, getattr(by, 'pk', None))
    return profile


def deactivate(user_id, *, by=None) -> Profile:
    """Deactivate a member, dropping their manager link and manager flag.

    Any profile reporting to them loses its manager reference too.
    """
    with transaction.atomic():
        profile = Profile.objects.select_for_update().filter(user_id=user_id).first()
        if profile is None:
            raise NotFound('Profile not found')
        state = _approved_or_raise(profile)
        fields = apply_state(profile, Approved(role=state.role, active=False))
        profile.manager = None
        profile.is_regional_manager = False
        profile.save(update_fields=fields + ['manager', 'is_regional_manager'])
        detached = _detach_reports(profile)
        refresh.invalidate(refresh.DASHBOARD_KEY)
    log_action(user=by, action='profile_deactivate', object_type='profile', object_id=profile.pk,
               detail={'detached_reports': detached})
    logger.info('profile %s deactivated by %s, %d reports detached', profile.pk, getattr(by, 'pk', None), detached)
    return profile


def remove_regional_manager(user_id, *, by=None) -> Profile:
    with transaction.atomic():
        profile = Profile.objects.select_for_update().filter(user_id=user_id).first()
        if profile is None:
            raise NotFound('Profile not found')
        profile.is_regional_manager = False
        profile.save(update_fields=['is_regional_manager'])
        detached = _detach_reports(profile)
        refresh.invalidate(refresh.DASHBOARD_KEY)
    log_action(user=by, action='regional_manager_remove', object_type='profile', object_id=profile.pk,
               detail={'detached_reports': detached})
    logger.info('regional manager flag removed from %s, %d reports detached', profile.pk, detached)
    return profile


# -- membership --------------------------------------------------------------

def _resolve_manager(manager_id, user_id=None) -> Optional[Profile]:
    if not manager_id:
        return None
    if user_id is not None and str(manager_id) == str(user_id):
        raise ValidationError({'managerId': 'A member cannot manage themselves.'})
    manager = Profile.objects.filter(user_id=manager_id).first()
    if manager is None:
        raise ValidationError({'managerId': 'Manager not found.'})
    return manager


def upsert_profile(*, user_id, full_name=None, phone=None, manager_id=None, region_id=None,
                   is_regional_manager: bool = False, is_active: bool = True, by=None) -> Profile:
    """Create or overwrite an approved field engineer profile for ``user_id``."""
    user = User.objects.filter(pk=user_id).first()
    if user is None:
        raise ValidationError({'userId': 'User ID is required.'})
    manager = _resolve_manager(manager_id, user_id)
    if region_id and not Region.objects.filter(id=region_id, parent__isnull=True).exists():
        raise ValidationError({'regionId': 'Region must be a primary region.'})
    with store_errors('profile upsert'):
        with transaction.atomic():
            profile = Profile.objects.filter(user=user).first() or Profile(user=user)
            profile.full_name = _clean(full_name)
            profile.phone = _clean(phone)
            profile.manager = manager
            profile.is_regional_manager = bool(is_regional_manager)
            profile.region_id = region_id or None
            apply_state(profile, Approved(role=Profile.ROLE_FIELD_ENGINEER, active=bool(is_active)))
            if profile.decision_at is None:
                profile.decision_by = _actor(by)
                profile.decision_at = timezone.now()
            profile.save()
            refresh.invalidate(refresh.DASHBOARD_KEY)
    logger.info('profile %s saved by %s', profile.pk, getattr(by, 'pk', None))
    return profile


def create_team_user(*, email: str, password: str, by=None, **profile_fields) -> Profile:
    email = (email or '').strip().lower()
    if not email or not password:
        raise ValidationError({'detail': 'Email and password are required.'})
    if User.objects.filter(username=email).exists():
        raise ValidationError({'email': 'A user with this email already exists.'})
    with transaction.atomic():
        user = User.objects.create_user(username=email, email=email, password=password,
                                        first_name=_clean(profile_fields.get('full_name')) or '')
        profile = upsert_profile(user_id=user.pk, by=by, **profile_fields)
    log_action(user=by, action='team_user_create', object_type='profile', object_id=profile.pk)
    return profile


def delete_team_user(user_id, *, by=None) -> None:
    """Irreversibly delete the login; the profile goes with it."""
    user = User.objects.filter(pk=user_id).first()
    if user is None:
        raise NotFound('user not found')
    if by is not None and getattr(by, 'pk', None) == user.pk:
        raise ValidationError({'userId': 'You cannot delete your own account.'})
    with store_errors('user delete'):
        with transaction.atomic():
            profile = Profile.objects.filter(user=user).first()
            if profile is not None:
                _detach_reports(profile)
            user.delete()
            refresh.invalidate()
    log_action(user=by, action='team_user_delete', object_type='user', object_id=int(user_id))
    logger.info('user %s deleted by %s', user_id, getattr(by, 'pk', None))


def assign_engineer_hospital(engineer_id, hospital_id, *, by=None) -> EngineerHospital:
    if not engineer_id or not hospital_id:
        raise ValidationError({'detail': 'Engineer and hospital are required.'})
    engineer = Profile.objects.filter(user_id=engineer_id).first()
    hospital = Hospital.objects.filter(id=hospital_id).first()
    if engineer is None or hospital is None:
        raise NotFound('engineer or hospital not found')
    with store_errors('engineer hospital assign'):
        with transaction.atomic():
            link, _ = EngineerHospital.objects.update_or_create(
                engineer=engineer, hospital=hospital, defaults={'assigned_by': _actor(by)}
            )
            refresh.invalidate(refresh.HOSPITALS_KEY)
    logger.info('engineer %s assigned to hospital %s by %s', engineer.pk, hospital.pk, getattr(by, 'pk', None))
    return link


def remove_engineer_hospital(engineer_id, hospital_id, *, by=None) -> int:
    if not engineer_id or not hospital_id:
        raise ValidationError({'detail': 'Engineer and hospital are required.'})
    with transaction.atomic():
        deleted, _ = EngineerHospital.objects.filter(engineer_id=engineer_id, hospital_id=hospital_id).delete()
        refresh.invalidate(refresh.HOSPITALS_KEY)
    logger.info('engineer %s removed from hospital %s', engineer_id, hospital_id)
    return deleted


# -- read --------------------------------------------------------------------

def member_row(p: Profile) -> dict:
    return {
        'userId': p.user_id,
        'email': p.user.email if p.user_id else None,
        'fullName': p.full_name,
        'phone': p.phone,
        'role': p.role,
        'approvalStatus': p.approval_status,
        'isActive': p.is_active,
        'isRegionalManager': p.is_regional_manager,
        'managerId': p.manager_id,
        'regionId': p.region_id,
        'rejectionReason': p.rejection_reason,
        'decisionAt': p.decision_at.isoformat() if p.decision_at else None,
        'createdAt': p.created_at.isoformat() if p.created_at else None,
    }


def team_overview() -> dict:
    base = Profile.objects.select_related('user')
    managers = base.filter(is_regional_manager=True, is_active=True)
    engineers = base.filter(role=Profile.ROLE_FIELD_ENGINEER)
    members = base.filter(approval_status=Profile.APPROVAL_APPROVED, is_active=True)
    pending = base.filter(approval_status=Profile.APPROVAL_PENDING).order_by('-created_at')
    rejected = base.filter(approval_status=Profile.APPROVAL_REJECTED).order_by('-decision_at', '-created_at')
    assignments = EngineerHospital.objects.select_related('hospital').order_by('hospital__name')
    return {
        'managers': [member_row(p) for p in managers],
        'engineers': [member_row(p) for p in engineers],
        'members': [member_row(p) for p in members],
        'pending': [member_row(p) for p in pending],
        'rejected': [member_row(p) for p in rejected],
        'assignments': [{
            'engineerId': a.engineer_id,
            'hospitalId': a.hospital_id,
            'hospitalName': a.hospital.name,
            'assignedAt': a.assigned_at.isoformat() if a.assigned_at else None,
        } for a in assignments],
    }


def engineer_hospitals(engineer_ids) -> dict[int, list[Hospital]]:
    out: dict[int, list[Hospital]] = {}
    links = EngineerHospital.objects.select_related('hospital').filter(engineer_id__in=list(engineer_ids))
    for link in links.order_by('hospital__name'):
        out.setdefault(link.engineer_id, []).append(link.hospital)
    return out


def manager_detail(manager_id) -> dict:
    """A manager, their field engineers, their hospitals and devices there."""
    manager = get_profile(manager_id)
    engineers = list(manager.reports.select_related('user').filter(role=Profile.ROLE_FIELD_ENGINEER))
    by_engineer = engineer_hospitals(p.user_id for p in engineers)
    hospital_ids = {h.id for hs in by_engineer.values() for h in hs}
    devices: dict[int, list[dict]] = {}
    qs = Device.objects.select_related('device_model').filter(current_hospital_id__in=hospital_ids)
    for d in qs:
        devices.setdefault(d.current_hospital_id, []).append({
            'id': d.id,
            'serialNumber': d.serial_number,
            'status': d.status,
            'usageType': d.usage_type,
            'modelName': d.device_model.model_name,
        })
    return {
        'manager': member_row(manager),
        'engineers': [{
            **member_row(e),
            'hospitals': [{
                'id': h.id,
                'name': h.name,
                'city': h.city,
                'devices': devices.get(h.id, []),
            } for h in by_engineer.get(e.user_id, [])],
        } for e in engineers],
    }
