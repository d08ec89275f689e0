"""
Invoice creation and update workflow.

Monetary input is coerced with ``parse_amount`` (bad values become 0) and the
three commission rates are resolved through ``services.commission``. Once an
invoice is approved only its identity/routing fields can change.
"""

import logging

from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework import serializers
from rest_framework.exceptions import PermissionDenied

from ..exceptions import AlreadyInState, DuplicateInvoiceCode, NotFoundOrForbidden
from ..models import Client, File, Invoice, User
from .commission import parse_amount, resolve_invoice_rates

logger = logging.getLogger(__name__)


MONETARY_FIELDS = (
    'total',
    'tax_percentage',
    'tax_amount',
    'management_tax_percentage',
    'management_tax_amount',
    'corporate_tax_percentage',
    'corporate_tax_amount',
    'profit_percentage',
    'profit_amount',
    'final_amount',
    'discount_amount',
)

# Fields that stay editable after approval
IDENTITY_FIELDS = ('invoice_code', 'client', 'file', 'assigned_distributor', 'invoice_date', 'status')

REFERENCE_MODELS = {
    'client': Client,
    'file': File,
    'assigned_distributor': User,
}


def _clean_code(value):
    code = (value or '').strip()
    if not code:
        raise serializers.ValidationError({'invoiceCode': 'Invoice code is required.'})
    return code


def _resolve_reference(field_name, value):
    """
    Primary key of an existing row, or None.

    Dangling references are stored as empty instead of failing the write.
    """
    if value in (None, ''):
        return None
    pk = value.pk if hasattr(value, 'pk') else value
    if REFERENCE_MODELS[field_name].objects.filter(pk=pk).exists():
        return pk
    logger.warning(f'Invoice reference {field_name}={pk} does not exist; storing it empty.')
    return None


def _code_taken(code, exclude_pk=None):
    queryset = Invoice.objects.filter(invoice_code=code)
    if exclude_pk is not None:
        queryset = queryset.exclude(pk=exclude_pk)
    return queryset.exists()


def _save_with_code_guard(invoice, **save_kwargs):
    # The unique index closes the gap left by the exists() pre-check
    try:
        with transaction.atomic():
            invoice.save(**save_kwargs)
    except IntegrityError:
        if _code_taken(invoice.invoice_code, exclude_pk=invoice.pk):
            raise DuplicateInvoiceCode()
        raise


def invoice_pk(value):
    """Integer id from a URL or payload value; anything else is an unknown invoice."""
    try:
        return int(value)
    except (TypeError, ValueError):
        raise NotFoundOrForbidden()


def get_visible_invoice(scope, invoice_id, hide_admin_authored=True, queryset=None):
    queryset = queryset if queryset is not None else Invoice.objects.all()
    queryset = scope.scope_invoices(queryset, hide_admin_authored=hide_admin_authored)
    invoice = queryset.filter(pk=invoice_pk(invoice_id)).first()
    if invoice is None:
        raise NotFoundOrForbidden()
    return invoice


def create_invoice(data, scope) -> Invoice:
    """
    Creates an invoice authored by ``scope.actor``.

    ``data`` uses model field names; ``client``, ``file`` and
    ``assigned_distributor`` are primary keys.
    """
    code = _clean_code(data.get('invoice_code'))
    if _code_taken(code):
        logger.warning(f'Rejected invoice creation by {scope.actor}: code {code!r} already exists.')
        raise DuplicateInvoiceCode()

    references = {name: _resolve_reference(name, data.get(name)) for name in REFERENCE_MODELS}
    amounts = {name: parse_amount(data.get(name)) for name in MONETARY_FIELDS}

    rates = resolve_invoice_rates(
        references['client'],
        references['assigned_distributor'],
        references['file'],
        amounts['total'],
        custom_client_rate=data.get('custom_client_commission_rate'),
        custom_distributor_rate=data.get('custom_distributor_commission_rate'),
    )

    invoice = Invoice(
        invoice_code=code,
        client_id=references['client'],
        file_id=references['file'],
        assigned_distributor_id=references['assigned_distributor'],
        invoice_date=data.get('invoice_date'),
        status=data.get('status') or '',
        created_by=scope.actor,
        is_approved=False,
        **amounts,
        **rates.as_invoice_fields(),
    )
    _save_with_code_guard(invoice)

    logger.info(f'Invoice {invoice.invoice_code} (#{invoice.pk}) created by {scope.actor}.')
    return invoice


def _apply_identity_fields(invoice, data):
    changed = []
    if 'invoice_code' in data:
        code = _clean_code(data['invoice_code'])
        if code != invoice.invoice_code and _code_taken(code, exclude_pk=invoice.pk):
            raise DuplicateInvoiceCode()
        invoice.invoice_code = code
        changed.append('invoice_code')
    for name in REFERENCE_MODELS:
        if name in data:
            setattr(invoice, f'{name}_id', _resolve_reference(name, data[name]))
            changed.append(name)
    if 'invoice_date' in data:
        invoice.invoice_date = data['invoice_date']
        changed.append('invoice_date')
    if 'status' in data:
        invoice.status = data['status'] or ''
        changed.append('status')
    return changed


def update_invoice(invoice_id, data, scope) -> Invoice:
    """
    Edits a visible invoice.

    Approved invoices only take identity fields; monetary and commission
    input is ignored without error. Unapproved invoices are recomputed,
    re-resolving all three rates against the (possibly new) total. Stored
    overrides are kept unless the payload carries the custom rate keys.
    """
    invoice = get_visible_invoice(scope, invoice_id)
    changed = _apply_identity_fields(invoice, data)

    if invoice.is_approved:
        ignored = sorted(set(data) - set(IDENTITY_FIELDS))
        if ignored:
            logger.info(f'Invoice {invoice.invoice_code} is approved; ignored locked fields {ignored}.')
        _save_with_code_guard(invoice, update_fields=changed + ['updated_at'])
        return invoice

    for name in MONETARY_FIELDS:
        if name in data:
            setattr(invoice, name, parse_amount(data[name]))

    rates = resolve_invoice_rates(
        invoice.client_id,
        invoice.assigned_distributor_id,
        invoice.file_id,
        invoice.total,
        custom_client_rate=data.get('custom_client_commission_rate', invoice.custom_client_commission_rate),
        custom_distributor_rate=data.get(
            'custom_distributor_commission_rate', invoice.custom_distributor_commission_rate
        ),
    )
    for name, value in rates.as_invoice_fields().items():
        setattr(invoice, name, value)

    _save_with_code_guard(invoice)
    logger.info(f'Invoice {invoice.invoice_code} (#{invoice.pk}) updated by {scope.actor}.')
    return invoice


def _require_admin(scope):
    if not scope.is_admin:
        raise PermissionDenied('Only administrators can approve invoices.')


def approve_invoice(invoice_id, scope) -> Invoice:
    _require_admin(scope)
    invoice = Invoice.objects.filter(pk=invoice_pk(invoice_id)).first()
    if invoice is None:
        raise NotFoundOrForbidden()
    if invoice.is_approved:
        raise AlreadyInState('Invoice is already approved.')

    invoice.is_approved = True
    invoice.approved_by = scope.actor
    invoice.approved_at = timezone.now()
    invoice.save(update_fields=['is_approved', 'approved_by', 'approved_at', 'updated_at'])
    logger.info(f'Invoice {invoice.invoice_code} approved by {scope.actor}.')
    return invoice


def unapprove_invoice(invoice_id, scope) -> Invoice:
    _require_admin(scope)
    invoice = Invoice.objects.filter(pk=invoice_pk(invoice_id)).first()
    if invoice is None:
        raise NotFoundOrForbidden()
    if not invoice.is_approved:
        raise AlreadyInState('Invoice is not approved.')

    invoice.is_approved = False
    invoice.approved_by = None
    invoice.approved_at = None
    invoice.save(update_fields=['is_approved', 'approved_by', 'approved_at', 'updated_at'])
    logger.info(f'Invoice {invoice.invoice_code} unapproved by {scope.actor}.')
    return invoice


def delete_invoice(invoice_id, scope):
    deleted, _ = scope.scope_invoices(Invoice.objects.filter(pk=invoice_pk(invoice_id))).delete()
    if not deleted:
        raise NotFoundOrForbidden()
    logger.info(f'Invoice #{invoice_id} deleted by {scope.actor}.')
