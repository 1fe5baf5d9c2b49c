"""
Criteria Matcher Module
Decides whether a single sales record is eligible under a scheme
"""

import logging
from typing import Dict, Optional

from .scheme_models import (
    ArticleCategory,
    DistributorInfo,
    SalesRecord,
    Scheme,
    SchemeType,
    SelectionMode,
)

logger = logging.getLogger(__name__)

EXPLICIT_MODES = (SelectionMode.SPECIFIC, SelectionMode.OTHER)


def _matches_distributor(sale: SalesRecord, scheme: Scheme, distributor_info: Optional[DistributorInfo]) -> bool:
    if scheme.distributor_mode in EXPLICIT_MODES:
        if scheme.distributor_ids:
            return sale.distributor_id in scheme.distributor_ids
        return True

    # Zone/state/type criteria are only evaluated in "all matching criteria" mode
    if scheme.distributor_mode is not SelectionMode.ALL:
        return True

    criteria = scheme.distributor_criteria
    if not criteria.is_active:
        return True
    # A criterion is set but we know nothing about this distributor
    if distributor_info is None:
        return False
    if criteria.zone and distributor_info.zone != criteria.zone:
        return False
    if criteria.state and distributor_info.state != criteria.state:
        return False
    if criteria.distributor_type and distributor_info.type != criteria.distributor_type:
        return False
    return True


def _matches_catalog(sale: SalesRecord, scheme: Scheme, category_lookup: Dict[str, ArticleCategory]) -> bool:
    catalog = scheme.catalog

    if catalog.other_article_ids:
        return sale.article_id in catalog.other_article_ids

    if not catalog.has_hierarchy:
        return True

    category = category_lookup.get(sale.article_id)
    if category is None:
        logger.debug(f"Article {sale.article_id} not found in category mappings")
        return False
    if catalog.family and category.family_name != catalog.family:
        return False
    if catalog.class_name and category.class_name != catalog.class_name:
        return False
    if catalog.brand and category.brand_name != catalog.brand:
        return False
    return True


def matches(sale: SalesRecord, scheme: Scheme,
            category_lookup: Optional[Dict[str, ArticleCategory]],
            distributor_lookup: Dict[str, DistributorInfo]) -> bool:
    """
    Check a sale against the scheme's distributor and article criteria

    Args:
        sale: Normalized sales record
        scheme: Normalized scheme
        category_lookup: Article id -> category mapping, None when no category data exists
        distributor_lookup: Distributor id -> DistributorInfo

    Returns:
        True when the sale is eligible
    """
    if not _matches_distributor(sale, scheme, distributor_lookup.get(sale.distributor_id)):
        return False

    if scheme.article_mode in EXPLICIT_MODES and scheme.article_ids:
        if sale.article_id not in scheme.article_ids:
            return False

    # Article-table eligibility is decided by the commission map in the resolver
    if scheme.scheme_type is SchemeType.BOOSTER and category_lookup is not None:
        if not _matches_catalog(sale, scheme, category_lookup):
            return False

    return True
