"""
Commission Resolver Module
Turns a distributor-article group into a rate and a group-level commission
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from .aggregator import DistributorArticleGroup
from .scheme_models import CommissionType, Scheme, SchemeType, Slab, SlabType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    rate: float
    commission: float
    rate_found: bool


NO_COMMISSION = Resolution(rate=0.0, commission=0.0, rate_found=False)


def resolve_slab_rate(slabs: Sequence[Slab], comparison_value: float) -> Optional[float]:
    """
    Find the slab rate for a comparison value

    The first slab in ascending-min order whose inclusive range holds the value wins.
    If no range holds it, the slab with the greatest min still <= value is used
    (legacy "highest reached" behaviour for gapped slab tables).

    Returns:
        The rate, or None when the value is below every slab
    """
    sorted_slabs = sorted(slabs, key=lambda s: s.min)

    for slab in sorted_slabs:
        if slab.contains(comparison_value):
            return slab.rate

    reached = None
    for slab in sorted_slabs:
        if comparison_value >= slab.min:
            reached = slab.rate
    return reached


def apply_commission_formula(commission_type: CommissionType, rate: float,
                             total_quantity: float, total_value: float) -> float:
    if commission_type is CommissionType.FIXED:
        return rate
    if commission_type is CommissionType.ABSOLUTE_PER_UNIT:
        return rate * total_quantity
    if commission_type is CommissionType.PERCENTAGE:
        return total_value * rate / 100
    raise ValueError(f"Unsupported commission type: {commission_type}")


def _article_table_rate(group: DistributorArticleGroup, scheme: Scheme) -> Optional[float]:
    rate = scheme.article_commissions.get(group.article_id)
    if rate is None:
        logger.info(f"No commission data found for article {group.article_id} in scheme {scheme.id}")
    return rate


def _booster_rate(group: DistributorArticleGroup, scheme: Scheme) -> Optional[float]:
    if scheme.slab_type is SlabType.VALUE:
        comparison_value = abs(group.total_value)
    else:
        comparison_value = abs(group.total_quantity)

    rate = resolve_slab_rate(scheme.slabs, comparison_value)
    if rate is None:
        logger.debug(f"No slab reached for {group.distributor_id}/{group.article_id} at {comparison_value}")
    return rate


def resolve(group: DistributorArticleGroup, scheme: Scheme) -> Resolution:
    """Resolve rate and group commission; negative net quantity always earns nothing"""
    if group.total_quantity < 0:
        return NO_COMMISSION

    if scheme.scheme_type is SchemeType.ARTICLE_TABLE:
        rate = _article_table_rate(group, scheme)
    elif scheme.scheme_type is SchemeType.BOOSTER:
        rate = _booster_rate(group, scheme)
    else:
        raise ValueError(f"Unsupported scheme type: {scheme.scheme_type}")

    if rate is None:
        return NO_COMMISSION

    commission = apply_commission_formula(scheme.commission_type, rate, group.total_quantity, group.total_value)
    return Resolution(rate=rate, commission=commission, rate_found=True)
