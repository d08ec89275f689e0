import logging

from django.db.models import Q
from rest_framework import permissions, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from .mixins import OwnedScopedViewSetMixin
from ..models import Permission, Role, User
from ..permissions import IsAdminRole
from ..serializers import DistributorSerializer, PermissionSerializer, RoleSerializer

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 20


class DistributorViewSet(OwnedScopedViewSetMixin, viewsets.ModelViewSet):
    """API endpoint for distributor accounts."""
    queryset = User.objects.filter(role=User.ROLE_DISTRIBUTOR).prefetch_related('roles')
    serializer_class = DistributorSerializer
    permission_module = 'distributors'
    permission_actions = {'toggle_status': 'update'}

    def get_queryset(self):
        queryset = super().get_queryset()

        search = self.request.query_params.get('search')
        if search:
            queryset = queryset.filter(
                Q(username__icontains=search) |
                Q(first_name__icontains=search) |
                Q(email__icontains=search)
            )

        return queryset.order_by('username')

    def perform_create(self, serializer):
        user = serializer.save(created_by=self.request.user, role=User.ROLE_DISTRIBUTOR)
        logger.info(f'Distributor {user.username} created by {self.request.user}.')

    @action(detail=False, methods=['get'], permission_classes=[permissions.IsAuthenticated])
    def me(self, request):
        """GET /api/distributors/me/ - the authenticated account."""
        return Response({'success': True, 'data': self.get_serializer(request.user).data})

    @action(detail=False, methods=['get'], permission_classes=[permissions.IsAuthenticated])
    def search(self, request):
        """
        Picker lookup of active distributors.

        GET /api/distributors/search/?q=<text>
        Without distributors:view_all only the caller and the distributors
        they created are returned.
        """
        q = request.query_params.get('q', '').strip()
        queryset = User.objects.filter(role=User.ROLE_DISTRIBUTOR, is_active=True)

        if not self.access_scope.can_view_all:
            queryset = queryset.filter(Q(pk=request.user.pk) | Q(created_by=request.user))

        if q:
            queryset = queryset.filter(
                Q(username__icontains=q) |
                Q(first_name__icontains=q) |
                Q(email__icontains=q)
            )

        results = queryset.order_by('username')[:SEARCH_LIMIT]
        return Response({'success': True, 'data': self.get_serializer(results, many=True).data})

    @action(detail=True, methods=['post'], url_path='toggle-status')
    def toggle_status(self, request, pk=None):
        distributor = self.get_object()
        distributor.is_active = not distributor.is_active
        distributor.save(update_fields=['is_active'])
        logger.info(
            f'Distributor {distributor.username} {"activated" if distributor.is_active else "deactivated"} '
            f'by {request.user}.'
        )
        return Response({'success': True, 'data': self.get_serializer(distributor).data})


class RoleViewSet(viewsets.ModelViewSet):
    """Role management, administrators only."""
    queryset = Role.objects.prefetch_related('permissions').order_by('name')
    serializer_class = RoleSerializer
    permission_classes = [permissions.IsAuthenticated, IsAdminRole]

    def perform_create(self, serializer):
        serializer.save(created_by=self.request.user)

    def perform_destroy(self, instance):
        if instance.is_system_role:
            from rest_framework.exceptions import PermissionDenied
            raise PermissionDenied('System roles cannot be deleted.')
        instance.delete()


class PermissionViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = Permission.objects.all()
    serializer_class = PermissionSerializer
    permission_classes = [permissions.IsAuthenticated, IsAdminRole]
    pagination_class = None
