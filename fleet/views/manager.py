from django.db.models import Count
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from fleet.models import Profile
from fleet.permissions import IsRegionalManager
from fleet.services.team import member_row


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsRegionalManager])
def manager_dashboard(request):
    """The manager's field engineers with how many hospitals each covers."""
    engineers = (
        Profile.objects.select_related('user')
        .filter(manager_id=request.user.pk, role=Profile.ROLE_FIELD_ENGINEER)
        .annotate(hospital_count=Count('hospital_assignments'))
    )
    return Response({'ok': True, 'data': [
        {**member_row(p), 'hospitalCount': p.hospital_count} for p in engineers
    ]})
