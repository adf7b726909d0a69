from rest_framework.permissions import BasePermission


class ApiKeyRequired(BasePermission):
    """Every mill endpoint needs an X-API-Key; authentication has already checked it is known."""

    message = "Send a valid X-API-Key header to use the mill API."

    def has_permission(self, request, view):
        return isinstance(request.auth, str) and bool(request.auth)
