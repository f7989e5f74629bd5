"""
Administrative dashboard endpoint.

Combines the inventory and demo summaries with a short movement log.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from fleet.permissions import IsAdminRole
from fleet.services import refresh
from fleet.services.reports import dashboard_payload


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_dashboard(request):
    return Response(refresh.cached(refresh.DASHBOARD_KEY, dashboard_payload))
