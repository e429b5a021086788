from rest_framework.permissions import BasePermission


class HasCapability(BasePermission):
    """
    Allow access only when the authenticated user's role grants the view's
    ``required_capability``. Superusers automatically pass.
    """

    message = "Not permitted."

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        required = getattr(view, "required_capability", None)
        if required is None:
            return False
        return request.user.has_capability(required)
