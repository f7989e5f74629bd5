"""
Read-model cache keys and the refresh broadcast.

Dashboards read summary payloads through the Django cache.  Any committed
write calls :func:`invalidate` which drops the cached payloads and tells
open ``ws/updates/`` sockets to re-fetch.
"""
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from django.utils import timezone

logger = logging.getLogger(__name__)

DEMO_KEY = 'fleet:demo'
INVENTORY_KEY = 'fleet:inventory'
DASHBOARD_KEY = 'fleet:dashboard'
HOSPITALS_KEY = 'fleet:hospitals'
ALL_KEYS = (DEMO_KEY, INVENTORY_KEY, DASHBOARD_KEY, HOSPITALS_KEY)

UPDATES_GROUP = 'updates'


def cached(key: str, build):
    payload = cache.get(key)
    if payload is not None:
        return payload
    payload = build()
    cache.set(key, payload, settings.DASHBOARD_CACHE_SECONDS)
    return payload


def broadcast(keys) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    now = timezone.now()
    event = {'type': 'broadcast.refresh', 'version': int(now.timestamp()), 'ts': now.isoformat(), 'keys': list(keys)[:50]}
    async_to_sync(channel_layer.group_send)(UPDATES_GROUP, event)


def _flush(keys) -> None:
    cache.delete_many(list(keys))
    try:
        broadcast(keys)
    except Exception as exc:  # runs after commit
        logger.warning('refresh broadcast failed: %s', exc)


def invalidate(*keys: str) -> None:
    keys = keys or ALL_KEYS
    transaction.on_commit(lambda: _flush(keys))
