from rest_framework import permissions, status
from rest_framework.response import Response

from core.results import RejectionCode


class IsHomeowner(permissions.BasePermission):
    message = 'Only homeowners can do this.'

    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        return request.user.is_homeowner


class IsWorker(permissions.BasePermission):
    message = 'Only workers can do this.'

    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        return request.user.is_worker


class IsParent(permissions.BasePermission):
    message = 'Only parent accounts can do this.'

    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        return request.user.user_type == 'parent'


REJECTION_STATUS = {
    RejectionCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    RejectionCode.NOT_PARTY: status.HTTP_403_FORBIDDEN,
    RejectionCode.CONSENT_REQUIRED: status.HTTP_403_FORBIDDEN,
    RejectionCode.UNAVAILABLE: status.HTTP_409_CONFLICT,
}


def rejection_response(result):
    """HTTP response for a rejected ServiceResult."""
    body = {'error': result.message, 'code': result.code}
    if result.errors:
        body['details'] = result.errors
    return Response(body, status=REJECTION_STATUS.get(result.code, status.HTTP_400_BAD_REQUEST))
