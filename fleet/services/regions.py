"""
Region tree helpers.

Zone and subregion names shown next to hospitals are derived here and
nowhere else: a hospital pointing at a primary region has a zone but no
subregion, a hospital pointing at a subregion has both.
"""
import logging
from typing import Optional

from django.db import IntegrityError, transaction
from rest_framework.exceptions import NotFound, ValidationError

from fleet.exceptions import DuplicateRegion
from fleet.models import Hospital, Region
from fleet.services.audit import log_action

logger = logging.getLogger(__name__)


def primary_region(region: Optional[Region]) -> Optional[Region]:
    if region is None:
        return None
    return region.parent if region.parent_id else region


def zone_name(region: Optional[Region]) -> Optional[str]:
    primary = primary_region(region)
    return primary.name if primary else None


def subregion_name(region: Optional[Region]) -> Optional[str]:
    if region is None or not region.parent_id:
        return None
    return region.name


def split_region(region: Optional[Region]) -> tuple[Optional[int], Optional[int]]:
    """Return ``(primary_id, subregion_id)`` for a stored hospital region."""
    if region is None:
        return None, None
    if region.parent_id:
        return region.parent_id, region.id
    return region.id, None


def primary_regions():
    return Region.objects.filter(is_locked=True, parent__isnull=True).order_by('name')


def subregions_by_parent() -> dict[int, list[Region]]:
    grouped: dict[int, list[Region]] = {}
    for sub in Region.objects.filter(parent__isnull=False, parent__is_locked=True).order_by('name'):
        grouped.setdefault(sub.parent_id, []).append(sub)
    return grouped


def region_tree() -> list[dict]:
    """Primary regions with their subregions and regional manager names."""
    from fleet.models import Profile

    subs = subregions_by_parent()
    managers: dict[int, str] = {}
    for p in Profile.objects.filter(is_regional_manager=True, region__isnull=False).order_by('full_name'):
        managers.setdefault(p.region_id, p.display_name)
    data = []
    for r in primary_regions():
        data.append({
            'id': r.id,
            'name': r.name,
            'code': r.code,
            'isLocked': r.is_locked,
            'createdAt': r.created_at.isoformat() if r.created_at else None,
            'manager': managers.get(r.id),
            'subregions': [serialize_region(s) for s in subs.get(r.id, [])],
        })
    return data


def serialize_region(region: Region) -> dict:
    return {
        'id': region.id,
        'name': region.name,
        'code': region.code,
        'parentRegionId': region.parent_id,
        'isLocked': region.is_locked,
        'createdAt': region.created_at.isoformat() if region.created_at else None,
    }


def resolve_hospital_region(primary_id, subregion_id=None) -> Region:
    """Pick the region a hospital is stored against.

    The zone (primary region) is mandatory; the subregion, when given, must
    belong to that zone and takes precedence.
    """
    primary = Region.objects.filter(id=primary_id, parent__isnull=True).first() if primary_id else None
    if primary is None:
        raise ValidationError({'primaryRegionId': 'Zone is required.'})
    if not subregion_id:
        return primary
    sub = Region.objects.filter(id=subregion_id, parent=primary).first()
    if sub is None:
        raise ValidationError({'subregionId': 'Subregion does not belong to the selected zone.'})
    return sub


def create_subregion(*, parent_id, name: str, code: str, user=None) -> Region:
    parent = Region.objects.filter(id=parent_id, parent__isnull=True).first()
    if parent is None:
        raise ValidationError({'parentRegionId': 'Parent region id is required.'})
    try:
        with transaction.atomic():
            region = Region.objects.create(parent=parent, name=name, code=code, is_locked=False)
    except IntegrityError:
        logger.warning('duplicate subregion name=%s code=%s', name, code)
        raise DuplicateRegion()
    log_action(user=user, action='subregion_create', object_type='region', object_id=region.id,
               detail={'name': name, 'code': code, 'parent': parent.id})
    logger.info('subregion %s created under %s', region.id, parent.id)
    return region


def _editable_subregion(region_id) -> Region:
    region = Region.objects.filter(id=region_id).first()
    if region is None:
        raise NotFound('region not found')
    if region.is_locked or region.parent_id is None:
        raise ValidationError({'id': 'Primary regions are locked.'})
    return region


def update_subregion(*, region_id, name: str, code: str, user=None) -> Region:
    region = _editable_subregion(region_id)
    region.name = name
    region.code = code
    try:
        with transaction.atomic():
            region.save(update_fields=['name', 'code'])
    except IntegrityError:
        raise DuplicateRegion()
    log_action(user=user, action='subregion_update', object_type='region', object_id=region.id,
               detail={'name': name, 'code': code})
    return region


def delete_subregion(*, region_id, user=None) -> None:
    region = _editable_subregion(region_id)
    rid = region.id
    with transaction.atomic():
        # hospitals keep their zone when the subregion goes away
        Hospital.objects.filter(region=region).update(region_id=region.parent_id)
        region.delete()
    log_action(user=user, action='subregion_delete', object_type='region', object_id=rid)
    logger.info('subregion %s deleted', rid)
