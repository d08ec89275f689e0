"""
Commission rate resolution.

Order of precedence for each party of an invoice (highest first):
  1. A manual override supplied with the invoice (client and distributor only)
  2. The narrowest CommissionTier of the entity containing the invoice total
  3. The entity's default ``commission_rate``
  4. 0 when the entity does not exist
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..models import Client, Company, CommissionTier, File, User

logger = logging.getLogger(__name__)


ENTITY_MODELS = {
    CommissionTier.ENTITY_CLIENT: Client,
    CommissionTier.ENTITY_DISTRIBUTOR: User,
    CommissionTier.ENTITY_COMPANY: Company,
}


def parse_amount(value, default=0.0):
    """Float coercion that never raises; unparsable or missing input becomes ``default``."""
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(str(value).strip())
    except (TypeError, ValueError):
        return default
    # NaN and infinities are treated as bad input too
    if result != result or result in (float('inf'), float('-inf')):
        return default
    return result


def find_tier_rate(entity_type, entity_id, amount) -> Optional[float]:
    """Pure tier lookup: rate of the narrowest matching tier, or None."""
    if entity_id is None:
        return None
    return CommissionTier.find_commission_rate(entity_type, entity_id, amount)


def resolve_rate(entity_type, entity_id, amount) -> float:
    """Tier rate, falling back to the entity default, or 0 for a missing entity."""
    tier_rate = find_tier_rate(entity_type, entity_id, amount)
    if tier_rate is not None:
        return tier_rate

    model = ENTITY_MODELS[entity_type]
    entity = model.objects.filter(pk=entity_id).only('commission_rate').first() if entity_id else None
    return entity.commission_rate if entity else 0


def _override(value):
    rate = parse_amount(value)
    return rate if rate > 0 else None


@dataclass
class ResolvedRates:
    client_rate: float
    distributor_rate: float
    company_rate: float
    custom_client_rate: Optional[float] = None
    custom_distributor_rate: Optional[float] = None

    @property
    def is_custom_client_rate(self):
        return self.custom_client_rate is not None

    @property
    def is_custom_distributor_rate(self):
        return self.custom_distributor_rate is not None

    def as_invoice_fields(self):
        return {
            'client_commission_rate': self.client_rate,
            'distributor_commission_rate': self.distributor_rate,
            'company_commission_rate': self.company_rate,
            'custom_client_commission_rate': self.custom_client_rate,
            'custom_distributor_commission_rate': self.custom_distributor_rate,
        }


def company_id_for_file(file_id):
    if not file_id:
        return None
    return File.objects.filter(pk=file_id).values_list('company_id', flat=True).first()


def resolve_invoice_rates(client_id, distributor_id, file_id, amount,
                          custom_client_rate=None, custom_distributor_rate=None) -> ResolvedRates:
    """
    Resolves the three commission rates of an invoice.

    Overrides are used verbatim only when they parse to a positive number;
    the company rate has no override and is 0 when the file has no company.
    """
    custom_client = _override(custom_client_rate)
    custom_distributor = _override(custom_distributor_rate)

    client_rate = custom_client if custom_client is not None else resolve_rate(
        CommissionTier.ENTITY_CLIENT, client_id, amount
    )
    distributor_rate = custom_distributor if custom_distributor is not None else resolve_rate(
        CommissionTier.ENTITY_DISTRIBUTOR, distributor_id, amount
    )

    company_id = company_id_for_file(file_id)
    company_rate = resolve_rate(CommissionTier.ENTITY_COMPANY, company_id, amount) if company_id else 0

    logger.debug(
        f'Resolved rates for amount {amount}: client={client_rate} distributor={distributor_rate} '
        f'company={company_rate} (custom client={custom_client}, custom distributor={custom_distributor})'
    )

    return ResolvedRates(
        client_rate=client_rate,
        distributor_rate=distributor_rate,
        company_rate=company_rate,
        custom_client_rate=custom_client,
        custom_distributor_rate=custom_distributor,
    )


def preview_commission(client_id, distributor_id, file_id, amount,
                       custom_client_rate=None, custom_distributor_rate=None) -> dict:
    """Rates plus commission amounts for the invoice form, without persisting anything."""
    rates = resolve_invoice_rates(
        client_id, distributor_id, file_id, amount,
        custom_client_rate=custom_client_rate,
        custom_distributor_rate=custom_distributor_rate,
    )
    return {
        'clientRate': rates.client_rate,
        'distributorRate': rates.distributor_rate,
        'companyRate': rates.company_rate,
        'clientCommission': round(amount * rates.client_rate / 100, 2),
        'distributorCommission': round(amount * rates.distributor_rate / 100, 2),
        'companyCommission': round(amount * rates.company_rate / 100, 2),
        'isCustomClientRate': rates.is_custom_client_rate,
        'isCustomDistributorRate': rates.is_custom_distributor_rate,
    }
