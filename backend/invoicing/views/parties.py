from django.db.models import Count, Q, Sum
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from .mixins import OwnedScopedViewSetMixin
from ..models import Client, Company, File, CommissionTier, Invoice
from ..permissions import get_access_scope
from ..serializers import (
    ClientSerializer,
    CommissionTierSerializer,
    CompanySerializer,
    FileSerializer,
    InvoiceSerializer,
)

RECENT_LIMIT = 10


class ClientViewSet(OwnedScopedViewSetMixin, viewsets.ModelViewSet):
    """API endpoint for clients."""
    queryset = Client.objects.all()
    serializer_class = ClientSerializer
    permission_module = 'clients'

    def get_queryset(self):
        queryset = super().get_queryset()

        search = self.request.query_params.get('search')
        if search:
            queryset = queryset.filter(
                Q(full_name__icontains=search) |
                Q(mobile_number__icontains=search)
            )

        is_active = self.request.query_params.get('is_active')
        if is_active in ('true', 'false'):
            queryset = queryset.filter(is_active=is_active == 'true')

        return queryset


class CompanyViewSet(OwnedScopedViewSetMixin, viewsets.ModelViewSet):
    """API endpoint for companies."""
    queryset = Company.objects.all()
    serializer_class = CompanySerializer
    permission_module = 'companies'

    def get_queryset(self):
        queryset = super().get_queryset()
        search = self.request.query_params.get('search')
        if search:
            queryset = queryset.filter(name__icontains=search)
        return queryset

    @action(detail=True, methods=['get'])
    def stats(self, request, pk=None):
        """
        Company detail page: latest files, latest invoices and totals.

        Invoices are reached through the company's files and filtered by the
        caller's invoice visibility.
        """
        company = self.get_object()
        files = company.files.select_related('company').order_by('-created_at', '-id')
        invoices = get_access_scope(request, 'invoices').scope_invoices(
            Invoice.objects.filter(file__company=company)
        )
        totals = invoices.aggregate(count=Count('id'), amount=Sum('total'))

        return Response({
            'success': True,
            'data': {
                'files': FileSerializer(files[:RECENT_LIMIT], many=True).data,
                'recentInvoices': InvoiceSerializer(
                    invoices.select_related('client', 'file__company', 'assigned_distributor', 'created_by')
                    .order_by('-created_at', '-id')[:RECENT_LIMIT],
                    many=True,
                ).data,
                'totalFiles': files.count(),
                'totalInvoices': totals['count'],
                'totalAmount': totals['amount'] or 0,
            },
        })


class FileViewSet(OwnedScopedViewSetMixin, viewsets.ModelViewSet):
    queryset = File.objects.select_related('company')
    serializer_class = FileSerializer
    permission_module = 'files'

    def get_queryset(self):
        queryset = super().get_queryset()

        search = self.request.query_params.get('search')
        if search:
            queryset = queryset.filter(
                Q(file_name__icontains=search) |
                Q(company__name__icontains=search)
            )

        company_id = self.request.query_params.get('company_id')
        if company_id:
            queryset = queryset.filter(company_id=company_id)

        return queryset


class CommissionTierViewSet(OwnedScopedViewSetMixin, viewsets.ModelViewSet):
    queryset = CommissionTier.objects.all()
    serializer_class = CommissionTierSerializer
    permission_module = 'commission_tiers'

    def get_queryset(self):
        queryset = super().get_queryset()
        params = self.request.query_params

        entity_type = params.get('entity_type')
        if entity_type:
            queryset = queryset.filter(entity_type=entity_type)
        entity_id = params.get('entity_id')
        if entity_id:
            queryset = queryset.filter(entity_id=entity_id)

        return queryset
