from django.core.exceptions import ObjectDoesNotExist


class ServiceError(Exception):
    """
    Доменная ошибка сервиса: код для клиента и человекочитаемое сообщение
    """
    code = 'SERVICE_ERROR'

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def __str__(self):
        return self.message


class NotFound(ServiceError, ObjectDoesNotExist):
    code = 'NOT_FOUND'

    def __init__(self, message: str = 'resource not found'):
        super().__init__(message)


class AlreadyExists(ServiceError):
    """TEAM_EXISTS, PR_EXISTS, USER_IN_OTHER_TEAM"""


class Conflict(ServiceError):
    """PR_MERGED, NOT_ASSIGNED, NO_CANDIDATE"""


TEAM_EXISTS = 'TEAM_EXISTS'
USER_IN_OTHER_TEAM = 'USER_IN_OTHER_TEAM'
PR_EXISTS = 'PR_EXISTS'
PR_MERGED = 'PR_MERGED'
NOT_ASSIGNED = 'NOT_ASSIGNED'
NO_CANDIDATE = 'NO_CANDIDATE'
