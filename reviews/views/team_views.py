from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from ..exceptions import ServiceError
from ..serializers import BulkDeactivationSerializer, TeamSerializer
from ..services import TeamService
from .errors import server_error, service_error, validation_error


@api_view(['POST'])
def team_add(request):
    """POST /team/add - Создать команду с участниками"""
    try:
        team_name = request.data.get('team_name')
        members_data = request.data.get('members', [])

        if not team_name:
            return validation_error('team_name is required')

        if not isinstance(members_data, list):
            return validation_error('members must be a list')

        seen_ids = set()
        for i, member in enumerate(members_data):
            if not isinstance(member, dict) or not all(key in member for key in ['user_id', 'username', 'is_active']):
                return validation_error(f'Member at index {i} is missing required fields')
            if not isinstance(member['is_active'], bool):
                return validation_error(f'Member at index {i} has non-boolean is_active')
            if member['user_id'] in seen_ids:
                return validation_error(f"Member at index {i} duplicates user_id '{member['user_id']}'")
            seen_ids.add(member['user_id'])

        team = TeamService().create_team_with_members(team_name, members_data)
        serializer = TeamSerializer(team)

        return Response({
            'team': serializer.data
        }, status=status.HTTP_201_CREATED)

    except ServiceError as e:
        return service_error(e)
    except Exception:
        return server_error(request)


@api_view(['GET'])
def team_get(request):
    """GET /team/get - Получить команду с участниками"""
    try:
        team_name = request.query_params.get('team_name')

        if not team_name:
            return validation_error('team_name parameter is required')

        team = TeamService().get_team_with_members(team_name)
        serializer = TeamSerializer(team)

        return Response(serializer.data)

    except ServiceError as e:
        return service_error(e)
    except Exception:
        return server_error(request)


@api_view(['POST'])
def team_bulk_deactivate(request):
    """POST /team/bulkDeactivate - Деактивировать участников и переназначить их открытые PR"""
    try:
        team_name = request.data.get('team_name')
        user_ids = request.data.get('user_ids')

        if not team_name:
            return validation_error('team_name is required')

        if not isinstance(user_ids, list) or not user_ids:
            return validation_error('user_ids must be a non-empty list')

        if not all(isinstance(user_id, str) and user_id for user_id in user_ids):
            return validation_error('user_ids must contain non-empty strings')

        result = TeamService().bulk_deactivate_team_members(team_name, user_ids)
        serializer = BulkDeactivationSerializer(result)

        return Response(serializer.data)

    except ServiceError as e:
        return service_error(e)
    except Exception:
        return server_error(request)
