"""
Payment pipeline transitions: single steps, bulk settlement per entity and the
mass-payment variant.

Every transition goes through ``Invoice.can_user_mark_payment`` first. Batch
operations persist each invoice on its own; a failed save is recorded in the
result's ``errors`` and the remaining invoices are still processed.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from django.db import DatabaseError, transaction
from django.db.models import Count, Sum
from rest_framework import serializers

from ..exceptions import AlreadyInState, NotFoundOrForbidden, PaymentNotAllowed
from ..models import CommissionTier, Invoice, PaymentStage, User, stage_paid_field
from .invoices import get_visible_invoice, invoice_pk

logger = logging.getLogger(__name__)


ENTITY_CLIENT = CommissionTier.ENTITY_CLIENT
ENTITY_DISTRIBUTOR = CommissionTier.ENTITY_DISTRIBUTOR
ENTITY_COMPANY = CommissionTier.ENTITY_COMPANY


@dataclass(frozen=True)
class SettlementRule:
    role: str
    stage: str
    scope_lookup: str
    owner_lookup: str
    group_by: str
    group_name: str


SETTLEMENT_RULES = {
    ENTITY_CLIENT: SettlementRule(
        role=User.ROLE_DISTRIBUTOR,
        stage=PaymentStage.CLIENT_TO_DISTRIBUTOR,
        scope_lookup='client_id',
        owner_lookup='assigned_distributor',
        group_by='client',
        group_name='client__full_name',
    ),
    ENTITY_DISTRIBUTOR: SettlementRule(
        role=User.ROLE_ADMIN,
        stage=PaymentStage.DISTRIBUTOR_TO_ADMIN,
        scope_lookup='assigned_distributor_id',
        owner_lookup='created_by',
        group_by='assigned_distributor',
        group_name='assigned_distributor__username',
    ),
    ENTITY_COMPANY: SettlementRule(
        role=User.ROLE_ADMIN,
        stage=PaymentStage.ADMIN_TO_COMPANY,
        scope_lookup='file__company_id',
        owner_lookup='created_by',
        group_by='file__company',
        group_name='file__company__name',
    ),
}


@dataclass
class SettlementResult:
    processed_count: int = 0
    total_amount: float = 0.0
    errors: List[str] = field(default_factory=list)

    @property
    def has_errors(self):
        return bool(self.errors)

    def as_dict(self):
        return {
            'processedCount': self.processed_count,
            'totalAmount': self.total_amount,
            'errors': list(self.errors),
        }


def validate_stage(stage):
    if stage not in PaymentStage.values:
        raise serializers.ValidationError({'step': f'Invalid payment step {stage!r}.'})
    return PaymentStage(stage)


def _settlement_rule(entity_type, scope):
    rule = SETTLEMENT_RULES.get(entity_type)
    if rule is None:
        raise serializers.ValidationError({'entityType': f'Invalid entity type {entity_type!r}.'})
    if scope.role != rule.role:
        raise PaymentNotAllowed(f'Only {rule.role} users can settle {entity_type} invoices.')
    return rule


# --- single invoice ---

def mark_payment_step(invoice_id, stage, scope) -> Invoice:
    """Unpaid → Paid for one stage. Re-marking a paid stage is rejected, not ignored."""
    stage = validate_stage(stage)
    with transaction.atomic():
        invoice = get_visible_invoice(
            scope,
            invoice_id,
            hide_admin_authored=False,
            queryset=Invoice.objects.select_for_update(),
        )
        if not invoice.can_user_mark_payment(scope.actor, stage):
            logger.warning(f'{scope.actor} tried to mark {stage} on invoice {invoice.invoice_code} without rights.')
            raise PaymentNotAllowed()
        if invoice.is_stage_paid(stage):
            raise AlreadyInState('This payment step is already paid.')

        invoice.mark_payment_step(stage, scope.actor)
        invoice.save(update_fields=Invoice.stage_update_fields(stage))

    logger.info(f'Invoice {invoice.invoice_code}: {stage} marked paid by {scope.actor}.')
    return invoice


def unmark_payment_step(invoice_id, stage, scope) -> Invoice:
    """Paid → Unpaid, admins only, without any ownership check."""
    stage = validate_stage(stage)
    if not scope.is_admin:
        raise PaymentNotAllowed('Only administrators can revert a payment step.')

    with transaction.atomic():
        invoice = Invoice.objects.select_for_update().filter(pk=invoice_pk(invoice_id)).first()
        if invoice is None:
            raise NotFoundOrForbidden()
        invoice.unmark_payment_step(stage)
        invoice.save(update_fields=Invoice.stage_update_fields(stage))

    logger.info(f'Invoice {invoice.invoice_code}: {stage} reverted by {scope.actor}.')
    return invoice


# --- batches ---

def _settle(invoices, stage, scope, result, cascade=(), notes=None):
    """
    Marks ``stage`` (and any unpaid ``cascade`` stages) on each invoice.

    ``cascade`` stages are already-authorised shortcuts of the mass payment
    path; they never overwrite a leg someone else has already marked.
    """
    for invoice in invoices:
        if not invoice.can_user_mark_payment(scope.actor, stage):
            result.errors.append(f'Invoice {invoice.invoice_code}: not allowed to mark {stage}.')
            continue

        touched = [stage]
        for extra in cascade:
            if not invoice.is_stage_paid(extra):
                invoice.mark_payment_step(extra, scope.actor)
                touched.append(extra)
        invoice.mark_payment_step(stage, scope.actor)

        update_fields = Invoice.stage_update_fields(*touched)
        if notes:
            invoice.payment_notes = notes
            update_fields.append('payment_notes')

        try:
            with transaction.atomic():
                invoice.save(update_fields=update_fields)
        except DatabaseError as e:
            logger.warning(f'Settlement of invoice {invoice.invoice_code} failed: {e}')
            result.errors.append(f'Invoice {invoice.invoice_code}: {e}')
            continue

        result.processed_count += 1
        result.total_amount += invoice.total


def unpaid_invoices_for(entity_type, entity_id, scope):
    rule = _settlement_rule(entity_type, scope)
    return (
        Invoice.objects.filter(
            **{
                rule.scope_lookup: entity_id,
                rule.owner_lookup: scope.actor,
                stage_paid_field(rule.stage): False,
            }
        )
        .select_related('client', 'file__company', 'assigned_distributor')
        .order_by('id')
    )


def bulk_settle(entity_type, entity_id, scope) -> SettlementResult:
    """
    Settles the conventional stage for one client, distributor or company.

    client → clientToDistributor (distributor actor, own assignments)
    distributor → distributorToAdmin only (admin actor, own invoices)
    company → adminToCompany (admin actor, own invoices)
    """
    rule = _settlement_rule(entity_type, scope)
    result = SettlementResult()
    _settle(unpaid_invoices_for(entity_type, entity_id, scope), rule.stage, scope, result)

    logger.info(
        f'Bulk settlement of {entity_type} #{entity_id} by {scope.actor}: '
        f'{result.processed_count} invoices, total {result.total_amount}, {len(result.errors)} errors.'
    )
    return result


def mass_settle(entity_type, entity_ids, scope, notes=None) -> SettlementResult:
    """
    Settles several entities in one request.

    Unlike ``bulk_settle``, the distributor variant also marks the
    clientToDistributor leg when it is still open.
    """
    if not entity_ids:
        raise serializers.ValidationError({'entityIds': 'Select at least one entity.'})
    rule = _settlement_rule(entity_type, scope)
    cascade = (PaymentStage.CLIENT_TO_DISTRIBUTOR,) if entity_type == ENTITY_DISTRIBUTOR else ()

    result = SettlementResult()
    for entity_id in entity_ids:
        try:
            invoices = list(unpaid_invoices_for(entity_type, entity_id, scope))
        except (DatabaseError, ValueError) as e:
            logger.warning(f'Mass settlement could not load {entity_type} #{entity_id}: {e}')
            result.errors.append(f'Error processing {entity_type} {entity_id}: {e}')
            continue
        _settle(invoices, rule.stage, scope, result, cascade=cascade, notes=notes)

    logger.info(
        f'Mass settlement of {len(entity_ids)} {entity_type}(s) by {scope.actor}: '
        f'{result.processed_count} invoices, total {result.total_amount}, {len(result.errors)} errors.'
    )
    return result


def _next_stage_for(invoice, user):
    if user.is_distributor:
        if not invoice.is_stage_paid(PaymentStage.CLIENT_TO_DISTRIBUTOR):
            return PaymentStage.CLIENT_TO_DISTRIBUTOR
    elif user.is_admin:
        if not invoice.is_stage_paid(PaymentStage.ADMIN_TO_COMPANY):
            return PaymentStage.ADMIN_TO_COMPANY
        if not invoice.is_stage_paid(PaymentStage.DISTRIBUTOR_TO_ADMIN):
            return PaymentStage.DISTRIBUTOR_TO_ADMIN
    return None


def bulk_mark_paid(invoice_ids, scope) -> SettlementResult:
    """
    Marks the actor's next open stage on each selected invoice.

    Missing ids and invoices with nothing left for this actor are skipped.
    """
    if not invoice_ids:
        raise serializers.ValidationError({'invoiceIds': 'No invoices selected.'})

    result = SettlementResult()
    invoices = Invoice.objects.filter(pk__in=invoice_ids).order_by('id')
    for invoice in invoices:
        stage = _next_stage_for(invoice, scope.actor)
        if stage is None:
            continue
        _settle([invoice], stage, scope, result)
    return result


# --- reporting ---

def unpaid_summary(entity_type, scope):
    """
    Open amounts per client/distributor/company for the actor's settlement stage.

    Actors whose role cannot settle ``entity_type`` get an empty list.
    """
    rule = SETTLEMENT_RULES.get(entity_type)
    if rule is None:
        raise serializers.ValidationError({'entityType': f'Invalid entity type {entity_type!r}.'})
    if scope.role != rule.role:
        return []

    rows = (
        Invoice.objects.filter(
            **{rule.owner_lookup: scope.actor, stage_paid_field(rule.stage): False}
        )
        .exclude(**{f'{rule.group_by}__isnull': True})
        .values(rule.group_by, rule.group_name)
        .annotate(invoice_count=Count('id'), total_amount=Sum('total'))
        .order_by(rule.group_name)
    )
    return [
        {
            'entityId': row[rule.group_by],
            'entityName': row[rule.group_name],
            'invoiceCount': row['invoice_count'],
            'totalAmount': row['total_amount'] or 0,
        }
        for row in rows
    ]


def customer_debts(scope):
    """Open client→distributor balances per client and distributor, largest first."""
    rows = (
        scope.scope_invoices(Invoice.objects.all(), hide_admin_authored=False)
        .filter(client_to_distributor_paid=False, client__isnull=False)
        .values(
            'client',
            'client__full_name',
            'client__mobile_number',
            'assigned_distributor',
            'assigned_distributor__username',
            'assigned_distributor__whatsapp_number',
        )
        .annotate(
            invoice_count=Count('id'),
            total_amount=Sum('total'),
            total_tax=Sum('tax_amount'),
            total_profit=Sum('profit_amount'),
        )
        .order_by('-total_amount', 'client')
    )
    return [
        {
            'customerId': row['client'],
            'customerName': row['client__full_name'],
            'phoneNumber': row['client__mobile_number'],
            'distributorId': row['assigned_distributor'],
            'distributorName': row['assigned_distributor__username'],
            'distributorWhatsapp': row['assigned_distributor__whatsapp_number'],
            'invoiceCount': row['invoice_count'],
            'totalAmount': row['total_amount'] or 0,
            'totalTax': row['total_tax'] or 0,
            'totalProfit': row['total_profit'] or 0,
            'totalDue': row['total_amount'] or 0,
        }
        for row in rows
    ]
