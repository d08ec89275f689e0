from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.db import models
from django.conf import settings
from django.utils import timezone

from .parties import Client, File


class PaymentStage(models.TextChoices):
    CLIENT_TO_DISTRIBUTOR = 'clientToDistributor', 'Client → Distributor'
    DISTRIBUTOR_TO_ADMIN = 'distributorToAdmin', 'Distributor → Admin'
    ADMIN_TO_COMPANY = 'adminToCompany', 'Admin → Company'


# Column prefix of each stage on the invoice row
STAGE_FIELDS = {
    PaymentStage.CLIENT_TO_DISTRIBUTOR: 'client_to_distributor',
    PaymentStage.DISTRIBUTOR_TO_ADMIN: 'distributor_to_admin',
    PaymentStage.ADMIN_TO_COMPANY: 'admin_to_company',
}

# Order in which an unpaid stage is reported as the blocking reason
BLOCKING_PRIORITY = (
    PaymentStage.ADMIN_TO_COMPANY,
    PaymentStage.DISTRIBUTOR_TO_ADMIN,
    PaymentStage.CLIENT_TO_DISTRIBUTOR,
)


def stage_paid_field(stage):
    return f'{STAGE_FIELDS[stage]}_paid'


@dataclass(frozen=True)
class StageState:
    is_paid: bool
    marked_by_id: Optional[int]
    paid_at: Optional[datetime]


def _marked_by_fk(stage_label):
    return models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=f'{stage_label} marked by',
    )


class Invoice(models.Model):
    invoice_code = models.CharField(max_length=100, unique=True)
    client = models.ForeignKey(Client, on_delete=models.SET_NULL, null=True, blank=True, related_name='invoices')
    file = models.ForeignKey(File, on_delete=models.SET_NULL, null=True, blank=True, related_name='invoices')
    assigned_distributor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_invoices',
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_invoices',
    )
    invoice_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=50, blank=True, default='')

    # 🔹 Monetary fields (independent, never reconciled against each other)
    total = models.FloatField(default=0)
    tax_percentage = models.FloatField(default=0)
    tax_amount = models.FloatField(default=0)
    management_tax_percentage = models.FloatField(default=0)
    management_tax_amount = models.FloatField(default=0)
    corporate_tax_percentage = models.FloatField(default=0)
    corporate_tax_amount = models.FloatField(default=0)
    profit_percentage = models.FloatField(default=0)
    profit_amount = models.FloatField(default=0)
    final_amount = models.FloatField(default=0)
    discount_amount = models.FloatField(default=0)

    # 🔹 Commission rates (%)
    client_commission_rate = models.FloatField(default=0)
    distributor_commission_rate = models.FloatField(default=0)
    company_commission_rate = models.FloatField(default=0)
    custom_client_commission_rate = models.FloatField(null=True, blank=True)
    custom_distributor_commission_rate = models.FloatField(null=True, blank=True)

    # 🔹 Approval lock
    is_approved = models.BooleanField(default=False)
    approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='approved_invoices',
    )

    # 🔹 Payment pipeline
    client_to_distributor_paid = models.BooleanField(default=False)
    client_to_distributor_marked_by = _marked_by_fk('Client → Distributor')
    client_to_distributor_paid_at = models.DateTimeField(null=True, blank=True)
    distributor_to_admin_paid = models.BooleanField(default=False)
    distributor_to_admin_marked_by = _marked_by_fk('Distributor → Admin')
    distributor_to_admin_paid_at = models.DateTimeField(null=True, blank=True)
    admin_to_company_paid = models.BooleanField(default=False)
    admin_to_company_marked_by = _marked_by_fk('Admin → Company')
    admin_to_company_paid_at = models.DateTimeField(null=True, blank=True)
    payment_notes = models.TextField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return self.invoice_code

    # --- payment stages ---

    def stage_state(self, stage):
        prefix = STAGE_FIELDS[stage]
        return StageState(
            is_paid=getattr(self, f'{prefix}_paid'),
            marked_by_id=getattr(self, f'{prefix}_marked_by_id'),
            paid_at=getattr(self, f'{prefix}_paid_at'),
        )

    def is_stage_paid(self, stage):
        return getattr(self, stage_paid_field(stage))

    def can_user_mark_payment(self, user, stage):
        """
        Distributors settle the client leg of invoices assigned to them;
        admins settle the two downstream legs of invoices they created.
        """
        if user.is_distributor:
            return stage == PaymentStage.CLIENT_TO_DISTRIBUTOR and self.assigned_distributor_id == user.id
        if user.is_admin:
            return (
                stage in (PaymentStage.DISTRIBUTOR_TO_ADMIN, PaymentStage.ADMIN_TO_COMPANY)
                and self.created_by_id == user.id
            )
        return False

    def mark_payment_step(self, stage, user, when=None):
        prefix = STAGE_FIELDS[stage]
        setattr(self, f'{prefix}_paid', True)
        setattr(self, f'{prefix}_marked_by', user)
        setattr(self, f'{prefix}_paid_at', when or timezone.now())

    def unmark_payment_step(self, stage):
        prefix = STAGE_FIELDS[stage]
        setattr(self, f'{prefix}_paid', False)
        setattr(self, f'{prefix}_marked_by', None)
        setattr(self, f'{prefix}_paid_at', None)

    @staticmethod
    def stage_update_fields(*stages):
        fields = ['updated_at']
        for stage in stages:
            prefix = STAGE_FIELDS[stage]
            fields += [f'{prefix}_paid', f'{prefix}_marked_by', f'{prefix}_paid_at']
        return fields

    @property
    def paid_stage_count(self):
        return sum(1 for stage in PaymentStage if self.is_stage_paid(stage))

    @property
    def progress_percent(self):
        return round(self.paid_stage_count / len(PaymentStage) * 100)

    @property
    def blocking_stage(self):
        for stage in BLOCKING_PRIORITY:
            if not self.is_stage_paid(stage):
                return stage
        return None

    @property
    def payment_status_display(self):
        return 'Paid' if self.blocking_stage is None else 'Pending'

    # --- commission figures ---

    @property
    def client_commission(self):
        return self.total * self.client_commission_rate / 100

    @property
    def distributor_commission(self):
        return self.total * self.distributor_commission_rate / 100

    @property
    def company_commission(self):
        return self.total * self.company_commission_rate / 100

    @property
    def net_profit(self):
        return self.total - self.client_commission - self.distributor_commission - self.company_commission
