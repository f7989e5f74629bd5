"""
Device relocation.

Every location change goes through :func:`move_device` so the location
type and the matching foreign key stay consistent and a
:class:`~fleet.models.DeviceMovement` row is recorded.
"""
import logging
from typing import Optional

from fleet.exceptions import NoWarehouse
from fleet.models import Device, DeviceMovement, Hospital, Warehouse

logger = logging.getLogger(__name__)


def default_warehouse() -> Warehouse:
    wh = Warehouse.objects.order_by('name', 'id').first()
    if wh is None:
        raise NoWarehouse()
    return wh


def move_device(device: Device, *, hospital: Optional[Hospital] = None,
                warehouse: Optional[Warehouse] = None, reason: str = '', user=None,
                extra_fields=()) -> Optional[DeviceMovement]:
    """Place ``device`` at exactly one of ``hospital`` / ``warehouse``.

    Returns the recorded movement, or ``None`` when the device already sits
    at the target.  ``extra_fields`` lists other attributes the caller
    changed on ``device`` that must be saved along with the location.
    """
    if (hospital is None) == (warehouse is None):
        raise ValueError('move_device needs exactly one of hospital or warehouse')
    before = (device.current_location_type, device.current_hospital_id, device.current_warehouse_id)
    if hospital is not None:
        device.place_at_hospital(hospital)
    else:
        device.place_at_warehouse(warehouse)
    after = (device.current_location_type, device.current_hospital_id, device.current_warehouse_id)
    fields = ['current_location_type', 'current_hospital', 'current_warehouse', 'updated_at', *extra_fields]
    device.save(update_fields=fields)
    if before == after:
        return None
    movement = DeviceMovement.objects.create(
        device=device,
        reason=reason or None,
        from_location_type=before[0],
        from_hospital_id=before[1],
        from_warehouse_id=before[2],
        to_location_type=after[0],
        to_hospital_id=after[1],
        to_warehouse_id=after[2],
        moved_by=user if getattr(user, 'is_authenticated', False) else None,
    )
    logger.info('device %s moved %s -> %s (%s)', device.id, before, after, reason)
    return movement
