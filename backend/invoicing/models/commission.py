from django.db import models
from django.db.models import ExpressionWrapper, F, FloatField, Q
from django.conf import settings


class CommissionTier(models.Model):
    """
    Amount range → commission percentage for one client, distributor or company.

    A tier matches an amount when ``min_amount <= amount`` and either
    ``max_amount`` is empty (unbounded) or ``amount <= max_amount``.
    Overlapping ranges are allowed; lookups resolve them with the
    narrowest-range rule in ``find_commission_rate``.
    """
    ENTITY_CLIENT = 'client'
    ENTITY_DISTRIBUTOR = 'distributor'
    ENTITY_COMPANY = 'company'
    ENTITY_TYPE_CHOICES = (
        (ENTITY_CLIENT, 'Client'),
        (ENTITY_DISTRIBUTOR, 'Distributor'),
        (ENTITY_COMPANY, 'Company'),
    )

    entity_type = models.CharField(max_length=20, choices=ENTITY_TYPE_CHOICES)
    entity_id = models.PositiveBigIntegerField()
    min_amount = models.FloatField(default=0)
    max_amount = models.FloatField(null=True, blank=True, help_text='Empty means no upper bound')
    rate = models.FloatField(help_text='Commission percentage (%)')
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['entity_type', 'entity_id', 'min_amount']
        indexes = [
            models.Index(fields=['entity_type', 'entity_id'], name='tier_entity_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(max_amount__isnull=True) | Q(max_amount__gte=F('min_amount')),
                name='tier_max_gte_min',
            ),
        ]

    def __str__(self):
        upper = self.max_amount if self.max_amount is not None else '∞'
        return f'{self.entity_type} #{self.entity_id}: [{self.min_amount}, {upper}] → {self.rate}%'

    @classmethod
    def matching(cls, entity_type, entity_id, amount):
        return cls.objects.filter(
            entity_type=entity_type,
            entity_id=entity_id,
            min_amount__lte=amount,
        ).filter(
            Q(max_amount__isnull=True) | Q(max_amount__gte=amount)
        )

    @classmethod
    def find_commission_rate(cls, entity_type, entity_id, amount):
        """
        Rate of the narrowest tier containing ``amount``, or None.

        Width is ``max_amount - min_amount``; unbounded tiers sort last.
        Equal widths fall back to the higher ``min_amount`` and then the
        oldest row, so the answer never depends on storage order.
        """
        tier = (
            cls.matching(entity_type, entity_id, amount)
            .annotate(width=ExpressionWrapper(F('max_amount') - F('min_amount'), output_field=FloatField()))
            .order_by(F('width').asc(nulls_last=True), '-min_amount', 'id')
            .first()
        )
        return tier.rate if tier else None
