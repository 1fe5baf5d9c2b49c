"""
Allocator Module
Distributes a group's commission back onto its individual sales records
"""

import logging
from dataclasses import dataclass, asdict
from typing import Dict, Any, List, Optional

from .aggregator import DistributorArticleGroup
from .commission_resolver import Resolution
from .scheme_models import Scheme

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalculationResult:
    """Per-sale commission plus the owning group's totals for audit"""
    month_of_billing_date: Optional[str]
    day_of_billing_date: Optional[str]
    distributor_id: str
    distributor_name: str
    article_id: str
    billing_quantity: float
    net_sales: float
    billing_document: Optional[str]
    commission: float
    scheme_id: str
    scheme_name: str
    scheme_type: str
    commission_type: str
    total_group_quantity: float
    total_group_value: float
    slab_rate: float
    total_group_commission: float
    sale_contribution: float
    sale_index: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CalculationResult":
        return cls(**data)


def _single_assignment_shares(group: DistributorArticleGroup) -> List[float]:
    return [1.0 if index == 0 else 0.0 for index in range(len(group.sales))]


def _proportional_shares(group: DistributorArticleGroup) -> List[float]:
    if group.total_quantity == 0:
        return [0.0] * len(group.sales)
    return [sale.billing_quantity / group.total_quantity for sale in group.sales]


def allocate(group: DistributorArticleGroup, resolution: Resolution, scheme: Scheme) -> List[CalculationResult]:
    """
    Split the group commission across the group's sales, in group order

    A fixed commission on an article-table scheme is a one-off amount per
    distributor-article pair, so it goes entirely to the first sale and the
    siblings get zero. Everything else is split by quantity share.
    """
    if scheme.is_fixed_article_table:
        shares = _single_assignment_shares(group)
    else:
        shares = _proportional_shares(group)

    results = []
    for index, (sale, share) in enumerate(zip(group.sales, shares)):
        results.append(CalculationResult(
            month_of_billing_date=sale.month_of_billing_date,
            day_of_billing_date=sale.day_of_billing_date,
            distributor_id=sale.distributor_id,
            distributor_name=group.distributor_name,
            article_id=sale.article_id,
            billing_quantity=sale.billing_quantity,
            net_sales=sale.net_sales,
            billing_document=sale.billing_document,
            commission=resolution.commission * share,
            scheme_id=scheme.id,
            scheme_name=scheme.name,
            scheme_type=scheme.scheme_type.value,
            commission_type=scheme.commission_type.value,
            total_group_quantity=group.total_quantity,
            total_group_value=group.total_value,
            slab_rate=resolution.rate,
            total_group_commission=resolution.commission,
            sale_contribution=share,
            sale_index=index,
        ))
    return results
