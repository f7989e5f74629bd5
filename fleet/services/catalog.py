"""
Device catalog: categories (with an optional image), SKUs and the
serialised units under each SKU.
"""
import json
import logging
import os
from typing import Optional

from django.conf import settings
from django.core.files.storage import default_storage
from django.db import transaction
from rest_framework.exceptions import NotFound, ValidationError

from fleet.exceptions import store_errors
from fleet.models import Device, DeviceCategory, DeviceModel, Warehouse
from fleet.services import refresh
from fleet.services.movements import move_device

logger = logging.getLogger(__name__)


def parse_specs(value):
    """Accept a JSON string, an already decoded object or nothing."""
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        raise ValidationError({'specs': 'Specs must be valid JSON.'})


def clean_sku(data: dict) -> dict:
    name = (data.get('model_name') or '').strip()
    code = (data.get('model_code') or '').strip()
    if not name:
        raise ValidationError({'modelName': 'SKU name is required.'})
    if not code:
        raise ValidationError({'modelCode': 'SKU code is required.'})
    return {
        'model_name': name,
        'model_code': code,
        'manufacturer': (data.get('manufacturer') or '').strip() or None,
        'description': (data.get('description') or '').strip() or None,
        'specs': parse_specs(data.get('specs')),
    }


# -- images ------------------------------------------------------------------

def category_image_path(category_id: int, filename: str) -> str:
    ext = os.path.splitext(filename or '')[1].lstrip('.').lower() or 'png'
    return f'device-categories/{category_id}.{ext}'


def category_image_url(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    if value.startswith(('http://', 'https://', '/')):
        return value
    return default_storage.url(f'{settings.CATEGORY_IMAGES_BUCKET}/{value}')


def store_category_image(category: DeviceCategory, upload) -> str:
    """Return the image path for ``category``; the file is written once the transaction commits."""
    path = category_image_path(category.id, getattr(upload, 'name', ''))
    full = f'{settings.CATEGORY_IMAGES_BUCKET}/{path}'

    def write():
        if default_storage.exists(full):
            default_storage.delete(full)
        default_storage.save(full, upload)

    transaction.on_commit(write)
    return path


# -- categories / SKUs -------------------------------------------------------

def category_row(c: DeviceCategory) -> dict:
    return {
        'id': c.id,
        'name': c.name,
        'description': c.description,
        'imagePath': c.image_path,
        'imageUrl': category_image_url(c.image_path),
        'modelCount': getattr(c, 'model_count', None),
    }


def model_row(m: DeviceModel) -> dict:
    return {
        'id': m.id,
        'categoryId': m.category_id,
        'categoryName': m.category.name,
        'modelName': m.model_name,
        'modelCode': m.model_code,
        'manufacturer': m.manufacturer,
        'description': m.description,
        'specs': m.specs,
    }


def create_category(*, name: str, skus: list, description: Optional[str] = None,
                    image=None, user=None) -> DeviceCategory:
    name = (name or '').strip()
    if not name:
        raise ValidationError({'name': 'Category name is required.'})
    named = [s for s in (skus or []) if (s.get('model_name') or '').strip()]
    if not named:
        raise ValidationError({'skus': 'Add at least one SKU (model name).'})
    if any(not (s.get('model_code') or '').strip() for s in named):
        raise ValidationError({'skus': 'All SKUs must have a SKU code.'})
    cleaned = [clean_sku(s) for s in named]
    with store_errors('category create'):
        with transaction.atomic():
            category = DeviceCategory.objects.create(name=name, description=(description or '').strip() or None)
            if image is not None:
                category.image_path = store_category_image(category, image)
                category.save(update_fields=['image_path'])
            DeviceModel.objects.bulk_create([DeviceModel(category=category, **s) for s in cleaned])
            refresh.invalidate(refresh.INVENTORY_KEY)
    logger.info('category %s created with %d SKUs by %s', category.id, len(cleaned), getattr(user, 'pk', None))
    return category


def create_model(*, category_id, user=None, **data) -> DeviceModel:
    category = DeviceCategory.objects.filter(id=category_id).first()
    if category is None:
        raise NotFound('category not found')
    fields = clean_sku(data)
    with store_errors('SKU create'):
        with transaction.atomic():
            model = DeviceModel.objects.create(category=category, **fields)
            refresh.invalidate(refresh.INVENTORY_KEY)
    logger.info('SKU %s created in category %s', model.id, category.id)
    return model


def update_model(model_id, *, user=None, **data) -> DeviceModel:
    model = DeviceModel.objects.select_related('category').filter(id=model_id).first()
    if model is None:
        raise NotFound('SKU not found')
    for k, v in clean_sku(data).items():
        setattr(model, k, v)
    with store_errors('SKU update'):
        with transaction.atomic():
            model.save()
            refresh.invalidate(refresh.INVENTORY_KEY)
    logger.info('SKU %s updated', model.id)
    return model


def delete_model(model_id, *, user=None) -> None:
    model = DeviceModel.objects.filter(id=model_id).first()
    if model is None:
        raise NotFound('SKU not found')
    with store_errors('SKU delete'):
        with transaction.atomic():
            model.delete()
            refresh.invalidate(refresh.INVENTORY_KEY)
    logger.info('SKU %s deleted by %s', model_id, getattr(user, 'pk', None))


# -- devices -----------------------------------------------------------------

def device_row(d: Device) -> dict:
    return {
        'id': d.id,
        'serialNumber': d.serial_number,
        'barcode': d.barcode,
        'modelId': d.device_model_id,
        'ownershipType': d.ownership_type,
        'usageType': d.usage_type,
        'status': d.status,
        'demoStatus': d.demo_status,
        'demoLastUsedAt': d.demo_last_used_at.isoformat() if d.demo_last_used_at else None,
        'locationType': d.current_location_type,
        'hospitalId': d.current_hospital_id,
        'warehouseId': d.current_warehouse_id,
    }


def _clean_device(data: dict) -> dict:
    serial = (data.get('serial_number') or '').strip()
    barcode = (data.get('barcode') or '').strip()
    if not serial:
        raise ValidationError({'serialNumber': 'Serial number is required.'})
    if not barcode:
        raise ValidationError({'barcode': 'Barcode is required.'})
    warehouse = Warehouse.objects.filter(id=data.get('warehouse_id')).first() if data.get('warehouse_id') else None
    if warehouse is None:
        raise ValidationError({'warehouseId': 'Warehouse is required.'})
    usage = data.get('usage_type') or Device.USAGE_DEMO
    demo_status = data.get('demo_status') or None
    if usage == Device.USAGE_DEMO and not demo_status:
        raise ValidationError({'demoStatus': 'Demo status is required for DEMO devices.'})
    return {
        'serial_number': serial,
        'barcode': barcode,
        'ownership_type': data.get('ownership_type') or Device.OWNERSHIP_COMPANY,
        'usage_type': usage,
        'status': data.get('status') or Device.STATUS_IN_INVENTORY,
        'demo_status': demo_status if usage == Device.USAGE_DEMO else None,
        'warehouse': warehouse,
    }


def create_device(*, model_id, user=None, **data) -> Device:
    model = DeviceModel.objects.filter(id=model_id).first()
    if model is None:
        raise NotFound('SKU not found')
    fields = _clean_device(data)
    warehouse = fields.pop('warehouse')
    with store_errors('device create'):
        with transaction.atomic():
            device = Device(device_model=model, **fields)
            device.place_at_warehouse(warehouse)
            device.save()
            refresh.invalidate(refresh.INVENTORY_KEY, refresh.DEMO_KEY, refresh.DASHBOARD_KEY)
    logger.info('device %s (%s) created by %s', device.id, device.serial_number, getattr(user, 'pk', None))
    return device


def update_device(device_id, *, user=None, **data) -> Device:
    """Overwrite a device's details; saving here always puts it in the warehouse."""
    fields = _clean_device(data)
    warehouse = fields.pop('warehouse')
    with store_errors('device update'):
        with transaction.atomic():
            device = Device.objects.select_for_update().filter(id=device_id).first()
            if device is None:
                raise NotFound('device not found')
            for k, v in fields.items():
                setattr(device, k, v)
            move_device(device, warehouse=warehouse, reason='catalog update', user=user,
                        extra_fields=list(fields))
            refresh.invalidate()
    logger.info('device %s updated by %s', device.id, getattr(user, 'pk', None))
    return device


def delete_device(device_id, *, user=None) -> None:
    device = Device.objects.filter(id=device_id).first()
    if device is None:
        raise NotFound('device not found')
    with store_errors('device delete'):
        with transaction.atomic():
            device.delete()
            refresh.invalidate()
    logger.info('device %s deleted by %s', device_id, getattr(user, 'pk', None))
