from rest_framework.permissions import BasePermission

from .services.access import AccessScope


DEFAULT_ACTION_PERMISSIONS = {
    'create': 'create',
    'update': 'update',
    'partial_update': 'update',
    'destroy': 'delete',
}


def get_access_scope(request, module):
    """Builds the AccessScope for ``module`` once per request."""
    cache = getattr(request, '_access_scopes', None)
    if cache is None:
        cache = {}
        request._access_scopes = cache
    if module not in cache:
        cache[module] = AccessScope.for_user(request.user, module)
    return cache[module]


class HasModulePermission(BasePermission):
    """
    Module-level gate for viewsets declaring ``permission_module``.

    Every action requires view_own or view_all on the module; actions listed
    in ``DEFAULT_ACTION_PERMISSIONS`` (or the view's ``permission_actions``)
    additionally require that specific permission.
    """
    message = 'You do not have permission to perform this action.'

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        module = getattr(view, 'permission_module', None)
        if module is None:
            return True

        scope = get_access_scope(request, module)
        required = {**DEFAULT_ACTION_PERMISSIONS, **getattr(view, 'permission_actions', {})}.get(
            getattr(view, 'action', None)
        )
        if required:
            return scope.can(required)
        return scope.has_module_access


class IsAdminRole(BasePermission):
    message = 'Only administrators can perform this action.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and (user.is_admin or user.is_superuser))
