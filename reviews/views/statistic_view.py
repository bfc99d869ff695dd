from rest_framework.decorators import api_view
from rest_framework.response import Response

from ..serializers import StatsSerializer
from ..services import StatsService
from .errors import server_error


@api_view(['GET'])
def stats_overview(request):
    """
    GET /statistic - Общая статистика системы
    """
    try:
        stats = StatsService().get_review_stats()
        serializer = StatsSerializer(stats)
        return Response(serializer.data)

    except Exception:
        return server_error(request)
