from rest_framework import permissions

from ..pagination import DynamicPageSizePagination
from ..permissions import HasModulePermission, get_access_scope


# --- Base ViewSet for ownership-scoped records ---
class OwnedScopedViewSetMixin:
    """
    Scopes querysets to the caller's module permissions and stamps
    ``created_by`` on creation.

    Subclasses set ``permission_module``; ``view_all`` sees every row,
    ``view_own`` only the rows the caller created.
    """
    permission_classes = [permissions.IsAuthenticated, HasModulePermission]
    pagination_class = DynamicPageSizePagination
    permission_module = None

    @property
    def access_scope(self):
        return get_access_scope(self.request, self.permission_module)

    def get_queryset(self):
        return self.access_scope.scope_owned(self.queryset.all())

    def perform_create(self, serializer):
        serializer.save(created_by=self.request.user)
