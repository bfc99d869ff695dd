import logging

from rest_framework import status
from rest_framework.response import Response

from ..exceptions import (
    ServiceError,
    NO_CANDIDATE, NOT_ASSIGNED, PR_EXISTS, PR_MERGED, TEAM_EXISTS, USER_IN_OTHER_TEAM,
)

logger = logging.getLogger(__name__)

VALIDATION_ERROR = 'VALIDATION_ERROR'
SERVER_ERROR = 'SERVER_ERROR'

STATUS_BY_CODE = {
    'NOT_FOUND': status.HTTP_404_NOT_FOUND,
    TEAM_EXISTS: status.HTTP_400_BAD_REQUEST,
    USER_IN_OTHER_TEAM: status.HTTP_400_BAD_REQUEST,
    PR_EXISTS: status.HTTP_409_CONFLICT,
    PR_MERGED: status.HTTP_409_CONFLICT,
    NOT_ASSIGNED: status.HTTP_409_CONFLICT,
    NO_CANDIDATE: status.HTTP_409_CONFLICT,
}


def error_response(code: str, message: str, http_status: int) -> Response:
    return Response({
        'error': {
            'code': code,
            'message': message
        }
    }, status=http_status)


def validation_error(message: str) -> Response:
    return error_response(VALIDATION_ERROR, message, status.HTTP_400_BAD_REQUEST)


def service_error(exc: ServiceError) -> Response:
    return error_response(exc.code, exc.message, STATUS_BY_CODE.get(exc.code, status.HTTP_400_BAD_REQUEST))


def server_error(request) -> Response:
    logger.exception('Unhandled error on %s %s', request.method, request.path)
    return error_response(SERVER_ERROR, 'Internal server error', status.HTTP_500_INTERNAL_SERVER_ERROR)
