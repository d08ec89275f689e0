import logging

from django.db.models import Q
from django.http import HttpResponse
from django.utils import timezone
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.response import Response

from ..models import Invoice, PaymentStage, stage_paid_field
from ..pagination import DynamicPageSizePagination
from ..permissions import HasModulePermission, get_access_scope
from ..serializers import (
    CommissionPreviewSerializer,
    InvoiceIdsSerializer,
    InvoiceSerializer,
    InvoiceWriteSerializer,
    MassPaymentSerializer,
)
from ..services import invoices as invoice_service
from ..services import payments as payment_service
from ..services.commission import preview_commission
from ..services.export import build_invoices_workbook

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

ORDERING_FIELDS = {
    'created_at', '-created_at', 'invoice_date', '-invoice_date',
    'total', '-total', 'invoice_code', '-invoice_code',
}


def _envelope(data, status_code=status.HTTP_200_OK):
    return Response({'success': True, 'data': data}, status=status_code)


class InvoiceViewSet(viewsets.ModelViewSet):
    """
    Invoices, visibility-scoped per request.

    Writes go through ``services.invoices`` and payment transitions through
    ``services.payments``; this class only parses input and shapes output.
    """
    queryset = Invoice.objects.all()
    serializer_class = InvoiceSerializer
    pagination_class = DynamicPageSizePagination
    permission_classes = [permissions.IsAuthenticated, HasModulePermission]
    permission_module = 'invoices'
    permission_actions = {
        'approve': 'update',
        'unapprove': 'update',
    }

    @property
    def access_scope(self):
        return get_access_scope(self.request, self.permission_module)

    def get_queryset(self):
        queryset = self.access_scope.scope_invoices(
            Invoice.objects.select_related('client', 'file__company', 'assigned_distributor', 'created_by')
        )
        params = self.request.query_params

        search = params.get('search')
        if search:
            queryset = queryset.filter(
                Q(invoice_code__icontains=search) |
                Q(client__full_name__icontains=search) |
                Q(file__file_name__icontains=search) |
                Q(assigned_distributor__username__icontains=search)
            )

        client_id = params.get('client_id')
        if client_id:
            queryset = queryset.filter(client_id=client_id)

        distributor_id = params.get('distributor_id')
        if distributor_id:
            queryset = queryset.filter(assigned_distributor_id=distributor_id)

        company_id = params.get('company_id')
        if company_id:
            queryset = queryset.filter(file__company_id=company_id)

        is_approved = params.get('is_approved')
        if is_approved in ('true', 'false'):
            queryset = queryset.filter(is_approved=is_approved == 'true')

        # Paid means all three stages settled
        payment_status = params.get('payment_status')
        all_paid = Q(**{stage_paid_field(stage): True for stage in PaymentStage})
        if payment_status == 'paid':
            queryset = queryset.filter(all_paid)
        elif payment_status == 'pending':
            queryset = queryset.exclude(all_paid)

        start_date = params.get('start_date')
        end_date = params.get('end_date')
        if start_date:
            queryset = queryset.filter(invoice_date__gte=start_date)
        if end_date:
            queryset = queryset.filter(invoice_date__lte=end_date)

        ordering = params.get('ordering')
        if ordering in ORDERING_FIELDS:
            queryset = queryset.order_by(ordering, 'id')

        return queryset

    def retrieve(self, request, *args, **kwargs):
        invoice = invoice_service.get_visible_invoice(self.access_scope, kwargs['pk'])
        return Response(self.get_serializer(invoice).data)

    def create(self, request, *args, **kwargs):
        serializer = InvoiceWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        invoice = invoice_service.create_invoice(serializer.validated_data, self.access_scope)
        return Response(self.get_serializer(invoice).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        serializer = InvoiceWriteSerializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        invoice = invoice_service.update_invoice(kwargs['pk'], serializer.validated_data, self.access_scope)
        return Response(self.get_serializer(invoice).data)

    def destroy(self, request, *args, **kwargs):
        invoice_service.delete_invoice(kwargs['pk'], self.access_scope)
        return Response(status=status.HTTP_204_NO_CONTENT)

    # --- approval ---

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        invoice = invoice_service.approve_invoice(pk, self.access_scope)
        return _envelope(self.get_serializer(invoice).data)

    @action(detail=True, methods=['post'])
    def unapprove(self, request, pk=None):
        invoice = invoice_service.unapprove_invoice(pk, self.access_scope)
        return _envelope(self.get_serializer(invoice).data)

    # --- payment pipeline ---

    @action(detail=True, methods=['post', 'delete'], url_path=r'payment/(?P<step>[A-Za-z]+)')
    def payment(self, request, pk=None, step=None):
        """
        POST   /api/invoices/{id}/payment/{step}/ - mark the step paid
        DELETE /api/invoices/{id}/payment/{step}/ - revert it (admins only)
        """
        if request.method == 'DELETE':
            invoice = payment_service.unmark_payment_step(pk, step, self.access_scope)
        else:
            invoice = payment_service.mark_payment_step(pk, step, self.access_scope)
        return _envelope(self.get_serializer(invoice).data)

    @action(
        detail=False,
        methods=['post'],
        url_path=r'bulk-pay/(?P<entity_type>client|distributor|company)/(?P<entity_id>\d+)',
    )
    def bulk_pay(self, request, entity_type=None, entity_id=None):
        """Settles every open invoice of one client, distributor or company."""
        result = payment_service.bulk_settle(entity_type, int(entity_id), self.access_scope)
        if not result.processed_count and not result.has_errors:
            raise NotFound('No unpaid invoices found.')
        return _envelope(result.as_dict())

    @action(detail=False, methods=['post'], url_path='mass-payment')
    def mass_payment(self, request):
        serializer = MassPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        notes = data.get('notes') or None
        if data.get('paymentMethod'):
            notes = f"[{data['paymentMethod']}] {notes or ''}".strip()

        result = payment_service.mass_settle(data['entityType'], data['entityIds'], self.access_scope, notes=notes)
        return _envelope(result.as_dict())

    @action(detail=False, methods=['post'], url_path='bulk-mark-paid')
    def bulk_mark_paid(self, request):
        serializer = InvoiceIdsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = payment_service.bulk_mark_paid(serializer.validated_data['invoiceIds'], self.access_scope)
        return _envelope(result.as_dict())

    @action(detail=False, methods=['get'], url_path=r'unpaid-data/(?P<entity_type>[a-z]+)')
    def unpaid_data(self, request, entity_type=None):
        return _envelope(payment_service.unpaid_summary(entity_type, self.access_scope))

    @action(detail=False, methods=['get'], url_path='customer-debts')
    def customer_debts(self, request):
        return _envelope(payment_service.customer_debts(self.access_scope))

    # --- helpers for the invoice form and exports ---

    @action(detail=False, methods=['post'], url_path='calculate-commission')
    def calculate_commission(self, request):
        serializer = CommissionPreviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        return _envelope(
            preview_commission(
                data.get('clientId'),
                data.get('distributorId'),
                data.get('fileId'),
                data['amount'],
                custom_client_rate=data.get('customClientRate'),
                custom_distributor_rate=data.get('customDistributorRate'),
            )
        )

    @action(detail=False, methods=['get'], url_path='export-excel')
    def export_excel(self, request):
        """
        GET /api/invoices/export-excel/?ids=1,2,3&rtl=true

        Exports the filtered list, or only the given ids when present.
        """
        queryset = self.filter_queryset(self.get_queryset())
        ids = [int(value) for value in request.query_params.get('ids', '').split(',') if value.strip().isdigit()]
        if ids:
            queryset = queryset.filter(pk__in=ids)

        content = build_invoices_workbook(queryset, right_to_left=request.query_params.get('rtl') == 'true')
        filename = f"invoices_{timezone.now().strftime('%Y%m%d_%H%M')}.xlsx"

        response = HttpResponse(content, content_type=XLSX_CONTENT_TYPE)
        response['Content-Disposition'] = f'attachment; filename={filename}'
        logger.info(f'{request.user} exported {queryset.count()} invoices to Excel.')
        return response
