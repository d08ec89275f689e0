from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ...models import Client, Company, File, Invoice, User
from ...permissions import get_access_scope
from ...serializers import InvoiceSerializer
from ...services.payments import ENTITY_CLIENT, ENTITY_COMPANY, ENTITY_DISTRIBUTOR, unpaid_summary

RECENT_INVOICES = 5


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_view(request):
    """
    Consolidated counts, the latest invoices and open balances for the
    authenticated user.
    """
    user = request.user
    invoice_scope = get_access_scope(request, 'invoices')

    # ======================================================
    # COUNTS
    # ======================================================

    if user.is_admin:
        invoice_count = Invoice.objects.filter(created_by=user).count()
    else:
        invoice_count = Invoice.objects.filter(assigned_distributor=user).count()

    counts = {
        'invoices': invoice_count,
        'clients': get_access_scope(request, 'clients').scope_owned(Client.objects.all()).count(),
        'companies': get_access_scope(request, 'companies').scope_owned(Company.objects.all()).count(),
        'files': get_access_scope(request, 'files').scope_owned(File.objects.all()).count(),
        'distributors': get_access_scope(request, 'distributors').scope_owned(
            User.objects.filter(role=User.ROLE_DISTRIBUTOR)
        ).count(),
    }

    # ======================================================
    # RECENT INVOICES
    # ======================================================

    recent = invoice_scope.scope_invoices(
        Invoice.objects.select_related('client', 'file__company', 'assigned_distributor')
    ).order_by('-created_at', '-id')[:RECENT_INVOICES]

    # ======================================================
    # OPEN BALANCES
    # ======================================================

    unpaid = {
        entity_type: unpaid_summary(entity_type, invoice_scope)
        for entity_type in (ENTITY_CLIENT, ENTITY_DISTRIBUTOR, ENTITY_COMPANY)
    }

    return Response({
        'success': True,
        'data': {
            'counts': counts,
            'recentInvoices': InvoiceSerializer(recent, many=True).data,
            'unpaid': unpaid,
        },
    })
