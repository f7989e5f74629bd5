"""
Aggregate read models used by the dashboards and the public JSON
endpoints: inventory summary, per-model rollup, demo summary, recent
movements and the hospital overview.
"""
from typing import Optional

from django.db.models import Count, Max, Q

from fleet.models import Device, DeviceModel, DeviceMovement, EngineerHospital, Hospital
from fleet.services import refresh
from fleet.services.regions import split_region

D = Device


def _status_counts(prefix: str = '') -> dict:
    """Filtered counts shared by the summary and the per-model rollup.

    ``prefix`` is the lookup path to the device rows, e.g. ``devices__``.
    """
    def q(**kw):
        return Q(**{f'{prefix}{k}': v for k, v in kw.items()})

    field = f'{prefix}id'
    return {
        'in_inventory': Count(field, filter=q(status=D.STATUS_IN_INVENTORY)),
        'deployed': Count(field, filter=q(status=D.STATUS_DEPLOYED)),
        'demo_deployed': Count(field, filter=q(status=D.STATUS_DEPLOYED, usage_type=D.USAGE_DEMO)),
        'sold_deployed': Count(field, filter=q(status=D.STATUS_DEPLOYED, usage_type=D.USAGE_SOLD)),
    }


def inventory_summary() -> dict:
    agg = Device.objects.aggregate(
        total_devices=Count('id'),
        under_service=Count('id', filter=Q(status__in=[D.STATUS_UNDER_SERVICE, D.STATUS_REPAIR])),
        scrapped=Count('id', filter=Q(status=D.STATUS_SCRAPPED)),
        **_status_counts(),
    )
    return {k: agg.get(k) or 0 for k in (
        'total_devices', 'in_inventory', 'deployed', 'under_service',
        'scrapped', 'demo_deployed', 'sold_deployed',
    )}


def inventory_by_model() -> list[dict]:
    qs = (
        DeviceModel.objects.select_related('category')
        .annotate(total=Count('devices'), **_status_counts('devices__'))
        .order_by('model_name')
    )
    return [{
        'model_id': m.id,
        'model_name': m.model_name,
        'category': m.category.name if m.category_id else None,
        'total': m.total,
        'in_inventory': m.in_inventory,
        'deployed': m.deployed,
        'demo_deployed': m.demo_deployed,
        'sold_deployed': m.sold_deployed,
        'model_code': m.model_code,
        'manufacturer': m.manufacturer,
        'description': m.description,
    } for m in qs]


def demo_summary() -> dict:
    demo = Device.objects.filter(usage_type=D.USAGE_DEMO)
    agg = demo.aggregate(
        in_use=Count('id', filter=Q(demo_status=D.DEMO_IN_USE)),
        idle_deployed=Count('id', filter=Q(demo_status=D.DEMO_AVAILABLE,
                                           current_location_type=D.LOCATION_HOSPITAL)),
        returned=Count('id', filter=Q(demo_status=D.DEMO_RETURNED)),
        last_used_at=Max('demo_last_used_at'),
    )
    last = agg.get('last_used_at')
    return {
        'in_use': agg.get('in_use') or 0,
        'idle_deployed': agg.get('idle_deployed') or 0,
        'returned': agg.get('returned') or 0,
        'last_used_at': last.isoformat() if last else None,
    }


def _name(obj) -> Optional[str]:
    return obj.name if obj is not None else None


def recent_movements(limit: int = 10, *, demo_only: bool = False) -> list[dict]:
    qs = DeviceMovement.objects.select_related(
        'device', 'from_hospital', 'to_hospital', 'from_warehouse', 'to_warehouse'
    )
    if demo_only:
        qs = qs.filter(device__usage_type=D.USAGE_DEMO)
    return [{
        'id': m.id,
        'deviceId': m.device_id,
        'serialNumber': m.device.serial_number,
        'movedAt': m.moved_at.isoformat() if m.moved_at else None,
        'reason': m.reason,
        'notes': m.notes,
        'fromLocationType': m.from_location_type,
        'toLocationType': m.to_location_type,
        'fromHospital': _name(m.from_hospital),
        'toHospital': _name(m.to_hospital),
        'fromWarehouse': _name(m.from_warehouse),
        'toWarehouse': _name(m.to_warehouse),
    } for m in qs[:limit]]


def hospital_queryset():
    return (
        Hospital.objects.select_related('region', 'region__parent')
        .annotate(
            devices_deployed=Count('devices', filter=Q(devices__status=D.STATUS_DEPLOYED), distinct=True),
            engineers_assigned=Count('engineer_assignments', distinct=True),
        )
        .order_by('name')
    )


def overview_row(h: Hospital) -> dict:
    primary_id, subregion_id = split_region(h.region)
    return {
        'id': h.id,
        'name': h.name,
        'address': h.address,
        'city': h.city,
        'state': h.state,
        'zone': h.zone,
        'subregion': h.subregion,
        'regionId': h.region_id,
        'primaryRegionId': primary_id,
        'subregionId': subregion_id,
        'poc': h.poc or [],
        'latitude': float(h.latitude) if h.latitude is not None else None,
        'longitude': float(h.longitude) if h.longitude is not None else None,
        'devicesDeployed': getattr(h, 'devices_deployed', 0),
        'engineersAssigned': getattr(h, 'engineers_assigned', 0),
    }


def hospital_overview(*, q: Optional[str] = None, zone: Optional[str] = None, ids=None) -> list[dict]:
    """Hospital rows with derived zone/subregion and assignment counts.

    ``q`` matches name, city, state or address case-insensitively;
    ``zone`` is the primary region name.
    """
    qs = hospital_queryset()
    if ids is not None:
        qs = qs.filter(id__in=ids)
    if q:
        qs = qs.filter(
            Q(name__icontains=q) | Q(city__icontains=q) | Q(state__icontains=q) | Q(address__icontains=q)
        )
    if zone:
        qs = qs.filter(
            Q(region__parent__isnull=True, region__name=zone) | Q(region__parent__name=zone)
        )
    return [overview_row(h) for h in qs]


def hospital_details(hospital_ids=None) -> dict[int, dict]:
    """Devices and engineers per hospital, keyed by hospital id."""
    devices = Device.objects.select_related('device_model', 'device_model__category').filter(
        current_location_type=D.LOCATION_HOSPITAL, current_hospital__isnull=False
    )
    links = EngineerHospital.objects.select_related('engineer')
    if hospital_ids is not None:
        devices = devices.filter(current_hospital_id__in=hospital_ids)
        links = links.filter(hospital_id__in=hospital_ids)
    out: dict[int, dict] = {}
    for d in devices:
        out.setdefault(d.current_hospital_id, {'devices': [], 'engineers': []})['devices'].append({
            'id': d.id,
            'serialNumber': d.serial_number,
            'ownershipType': d.ownership_type,
            'usageType': d.usage_type,
            'status': d.status,
            'modelName': d.device_model.model_name,
            'categoryName': d.device_model.category.name,
        })
    for link in links:
        out.setdefault(link.hospital_id, {'devices': [], 'engineers': []})['engineers'].append({
            'userId': link.engineer_id,
            'fullName': link.engineer.full_name,
            'phone': link.engineer.phone,
            'isActive': link.engineer.is_active,
        })
    return out


def demo_payload() -> dict:
    return {'ok': True, 'summary': demo_summary(), 'movements': recent_movements(10)}


def inventory_payload() -> dict:
    return {'ok': True, 'summary': inventory_summary(), 'models': inventory_by_model()}


def dashboard_payload() -> dict:
    return {
        'ok': True,
        'inventory': inventory_summary(),
        'demo': demo_summary(),
        'hospitals': Hospital.objects.count(),
        'recentMovements': recent_movements(5),
    }


def hospitals_payload() -> dict:
    return {'ok': True, 'data': hospital_overview()}


PAYLOADS = {
    refresh.DEMO_KEY: demo_payload,
    refresh.INVENTORY_KEY: inventory_payload,
    refresh.DASHBOARD_KEY: dashboard_payload,
    refresh.HOSPITALS_KEY: hospitals_payload,
}
