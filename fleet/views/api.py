"""
Read-only JSON feeds for external consumers.

Both payloads are served from the cache and rebuilt after any committed
write (see :mod:`fleet.services.refresh`).
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from fleet.services import refresh
from fleet.services.reports import demo_payload, inventory_payload


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def demo_feed(request):
    """Demo summary plus the ten most recent device movements."""
    return Response(refresh.cached(refresh.DEMO_KEY, demo_payload))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def inventory_feed(request):
    """Inventory summary plus per-model counts."""
    return Response(refresh.cached(refresh.INVENTORY_KEY, inventory_payload))
