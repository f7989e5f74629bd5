"""
Demo unit scheduling.

Picking devices for a demo happens in three steps: narrow the available
demo units by model and serial, collect the chosen ids in a per-user bin,
then create the session.  Creation writes the session, its device links and
the device demo fields in one transaction.
"""
from __future__ import annotations

import datetime
import logging
from typing import Iterable, Optional

from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from fleet.exceptions import DeviceUnavailable, store_errors
from fleet.models import DemoSession, DemoSessionDevice, Device, Hospital, Profile
from fleet.services import refresh
from fleet.services.audit import log_action
from fleet.services.regions import primary_region, subregion_name

logger = logging.getLogger(__name__)

TAB_ONGOING = 'ongoing'
TAB_UPCOMING = 'upcoming'
TAB_PAST = 'past'
TABS = (TAB_ONGOING, TAB_UPCOMING, TAB_PAST)

PAST_RETURNED = 'Returned'
PAST_EXPIRED = 'Expired'
PAST_IN_TRANSIT = 'In Transit'

GLOBAL_SEARCH_LIMIT = 10
BIN_SESSION_KEY = 'demo_bin'


# -- candidates --------------------------------------------------------------

def available_devices():
    """Demo units that can be booked: usage DEMO and demo status AVAILABLE."""
    return (
        Device.objects.select_related('device_model', 'device_model__category',
                                      'current_hospital', 'current_hospital__region')
        .filter(usage_type=Device.USAGE_DEMO, demo_status=Device.DEMO_AVAILABLE)
        .order_by('serial_number')
    )


def model_candidates(model_id, serial_query: str = ''):
    qs = available_devices().filter(device_model_id=model_id)
    query = (serial_query or '').strip()
    if query:
        qs = qs.filter(serial_number__icontains=query)
    return qs


def global_serial_search(query: str, limit: int = GLOBAL_SEARCH_LIMIT):
    """Serial search across every available unit, ignoring the model filter."""
    query = (query or '').strip()
    if not query:
        return Device.objects.none()
    return available_devices().filter(serial_number__icontains=query)[:limit]


def highlighted_ids(devices: Iterable[Device], target: Optional[Hospital]) -> set[int]:
    """Ids of devices sitting at another hospital in the target's subregion.

    Highlighting is advisory and never marks a device at the target itself.
    """
    if target is None:
        return set()
    target_sub = subregion_name(target.region)
    if not target_sub:
        return set()
    ids = set()
    for d in devices:
        if d.current_location_type != Device.LOCATION_HOSPITAL or not d.current_hospital_id:
            continue
        if d.current_hospital_id == target.id:
            continue
        if subregion_name(d.current_hospital.region) == target_sub:
            ids.add(d.id)
    return ids


def device_row(d: Device, highlighted: bool = False) -> dict:
    return {
        'id': d.id,
        'serialNumber': d.serial_number,
        'demoStatus': d.demo_status,
        'modelId': d.device_model_id,
        'modelName': d.device_model.model_name,
        'categoryName': d.device_model.category.name,
        'locationType': d.current_location_type,
        'hospitalId': d.current_hospital_id,
        'hospitalName': d.current_hospital.name if d.current_hospital_id else None,
        'highlighted': highlighted,
    }


# -- owners ------------------------------------------------------------------

def _owner_row(p: Profile) -> dict:
    return {'userId': p.user_id, 'fullName': p.full_name, 'role': p.role}


def _sort_key(p: Profile):
    return (p.full_name or str(p.user_id)).lower()


def owner_options(hospital: Optional[Hospital]) -> dict:
    """Split eligible owners into the hospital's regional team and everyone else."""
    members = list(
        Profile.objects.filter(is_active=True)
        .exclude(role=Profile.ROLE_ADMIN)
        .exclude(approval_status=Profile.APPROVAL_REJECTED)
    )
    primary_ids: set[int] = set()
    zone = primary_region(hospital.region) if hospital is not None else None
    if zone is not None:
        managers = [p for p in members if p.is_regional_manager and p.region_id == zone.id]
        manager_ids = {m.user_id for m in managers}
        primary_ids = manager_ids | {p.user_id for p in members if p.manager_id in manager_ids}
    primary = sorted((p for p in members if p.user_id in primary_ids), key=_sort_key)
    other = sorted((p for p in members if p.user_id not in primary_ids), key=_sort_key)
    return {'primary': [_owner_row(p) for p in primary], 'other': [_owner_row(p) for p in other]}


# -- bin ---------------------------------------------------------------------

class DeviceBin:
    """Ordered set of selected device ids."""

    def __init__(self, ids: Iterable[int] = ()):
        self._ids: list[int] = []
        for i in ids:
            self.add(i)

    def add(self, device_id) -> None:
        device_id = int(device_id)
        if device_id not in self._ids:
            self._ids.append(device_id)

    def remove(self, device_id) -> None:
        device_id = int(device_id)
        if device_id in self._ids:
            self._ids.remove(device_id)

    def clear(self) -> None:
        self._ids = []

    def __contains__(self, device_id) -> bool:
        return int(device_id) in self._ids

    def __iter__(self):
        return iter(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def as_list(self) -> list[int]:
        return list(self._ids)

    @classmethod
    def from_session(cls, session) -> 'DeviceBin':
        return cls(session.get(BIN_SESSION_KEY) or [])

    def save(self, session) -> None:
        session[BIN_SESSION_KEY] = self.as_list()
        session.modified = True


# -- tabs --------------------------------------------------------------------

def _as_date(value) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, str):
        return datetime.date.fromisoformat(value[:10])
    return value


def classify_tab(start, end, today: Optional[datetime.date] = None) -> str:
    today = _as_date(today) if today else timezone.localdate()
    start, end = _as_date(start), _as_date(end)
    if start > today:
        return TAB_UPCOMING
    if end < today:
        return TAB_PAST
    return TAB_ONGOING


def past_status(demo_statuses: list[Optional[str]]) -> str:
    if not demo_statuses:
        return PAST_EXPIRED
    if all(s == Device.DEMO_RETURNED for s in demo_statuses):
        return PAST_RETURNED
    if any(s == Device.DEMO_IN_USE for s in demo_statuses):
        return PAST_EXPIRED
    return PAST_IN_TRANSIT


def session_queryset():
    return DemoSession.objects.select_related('hospital', 'owner').prefetch_related('devices')


def session_row(s: DemoSession, tab: Optional[str] = None) -> dict:
    devices = list(s.devices.all())
    row = {
        'id': s.id,
        'hospitalId': s.hospital_id,
        'hospitalName': s.hospital.name,
        'ownerId': s.owner_id,
        'ownerName': s.owner.full_name if s.owner_id else None,
        'startDate': s.start_date.isoformat(),
        'endDate': s.end_date.isoformat(),
        'createdAt': s.created_at.isoformat() if s.created_at else None,
        'devices': [{'id': d.id, 'serialNumber': d.serial_number, 'demoStatus': d.demo_status}
                    for d in sorted(devices, key=lambda d: d.serial_number)],
    }
    if tab == TAB_PAST:
        row['returnStatus'] = past_status([d.demo_status for d in devices])
    return row


def sessions_for_tab(tab: str, today: Optional[datetime.date] = None) -> list[dict]:
    if tab not in TABS:
        raise ValidationError({'tab': f'tab must be one of {", ".join(TABS)}'})
    today = _as_date(today) if today else timezone.localdate()
    qs = session_queryset()
    if tab == TAB_ONGOING:
        qs = qs.filter(start_date__lte=today, end_date__gte=today)
    elif tab == TAB_UPCOMING:
        qs = qs.filter(start_date__gt=today)
    else:
        qs = qs.filter(end_date__lt=today)
    return [session_row(s, tab) for s in qs]


# -- create ------------------------------------------------------------------

def create_demo_session(*, hospital_id, owner_id, device_ids, start_date, end_date,
                        demo_status: str = Device.DEMO_IN_USE, user=None) -> DemoSession:
    if not hospital_id:
        raise ValidationError({'hospitalId': 'Select a hospital for this demo.'})
    if not owner_id:
        raise ValidationError({'ownerId': 'Assign a demo owner.'})
    ids = DeviceBin(device_ids or []).as_list()
    if not ids:
        raise ValidationError({'deviceIds': 'Select at least one device serial for this demo.'})
    if not start_date or not end_date:
        raise ValidationError({'startDate': 'Select the demo start and end dates.'})
    start_date, end_date = _as_date(start_date), _as_date(end_date)
    if end_date < start_date:
        raise ValidationError({'endDate': 'End date cannot be before the start date.'})
    if demo_status not in dict(Device.DEMO_STATUS_CHOICES):
        raise ValidationError({'demoStatus': 'Unknown demo status.'})

    hospital = Hospital.objects.filter(id=hospital_id).first()
    if hospital is None:
        raise NotFound('hospital not found')
    owner = Profile.objects.filter(user_id=owner_id).first()
    if owner is None:
        raise NotFound('owner not found')

    with store_errors('demo session create'):
        with transaction.atomic():
            devices = list(Device.objects.select_for_update().filter(id__in=ids))
            by_id = {d.id: d for d in devices}
            missing = [i for i in ids if i not in by_id]
            if missing:
                raise NotFound(f'devices not found: {missing}')
            unavailable = [d.serial_number for d in devices
                           if d.usage_type != Device.USAGE_DEMO or d.demo_status != Device.DEMO_AVAILABLE]
            if unavailable:
                raise DeviceUnavailable(f'Not available for a demo: {", ".join(sorted(unavailable))}')
            booked = (
                DemoSessionDevice.objects.filter(device_id__in=ids)
                .filter(Q(demo__start_date__lte=end_date) & Q(demo__end_date__gte=start_date))
                .select_related('device')
            )
            clash = sorted({link.device.serial_number for link in booked})
            if clash:
                raise DeviceUnavailable(f'Already booked for overlapping dates: {", ".join(clash)}')

            session = DemoSession.objects.create(
                hospital=hospital,
                owner=owner,
                start_date=start_date,
                end_date=end_date,
                created_by=user if getattr(user, 'is_authenticated', False) else None,
            )
            DemoSessionDevice.objects.bulk_create(
                [DemoSessionDevice(demo=session, device_id=i) for i in ids]
            )
            Device.objects.filter(id__in=ids).update(
                demo_status=demo_status,
                demo_assigned_hospital=hospital,
                demo_last_used_at=timezone.now(),
                updated_at=timezone.now(),
            )
            refresh.invalidate(refresh.DEMO_KEY, refresh.DASHBOARD_KEY)
    log_action(user=user, action='demo_create', object_type='demo_session', object_id=session.id,
               detail={'hospital': hospital.id, 'devices': ids})
    logger.info('demo session %s created for hospital %s with %d devices', session.id, hospital.id, len(ids))
    return session
