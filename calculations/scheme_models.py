"""
Scheme and Sales Record Models
Normalizes the loosely-typed scheme, sales, distributor and category payloads into
strict internal dataclasses. Alias handling lives here and nowhere else.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional, Tuple, FrozenSet, Iterable

from .exceptions import InputError

logger = logging.getLogger(__name__)


class SchemeType(str, Enum):
    ARTICLE_TABLE = "article-table"
    BOOSTER = "booster"


class CommissionType(str, Enum):
    FIXED = "fixed"
    ABSOLUTE_PER_UNIT = "absolute_per_unit"
    PERCENTAGE = "percentage"


class SlabType(str, Enum):
    QUANTITY = "quantity"
    VALUE = "value"


class SelectionMode(str, Enum):
    # No selection stored on the scheme; nothing is filtered
    UNSPECIFIED = "unspecified"
    ALL = "all"
    SPECIFIC = "specific"
    OTHER = "other"


SCHEME_TYPE_ALIASES = {
    "booster": SchemeType.BOOSTER,
    "booster-scheme": SchemeType.BOOSTER,
    "per_unit": SchemeType.BOOSTER,
    "article": SchemeType.ARTICLE_TABLE,
    "article-scheme": SchemeType.ARTICLE_TABLE,
    "article-table": SchemeType.ARTICLE_TABLE,
}

COMMISSION_TYPE_ALIASES = {
    "fixed": CommissionType.FIXED,
    "absolute_per_unit": CommissionType.ABSOLUTE_PER_UNIT,
    "absolute": CommissionType.ABSOLUTE_PER_UNIT,
    "percentage": CommissionType.PERCENTAGE,
}

# Values the scheme editor stores for "no restriction"
ANY_CRITERION = {"", "all-zones", "all-states", "all-types", "all-families", "all-classes", "all-brands"}

REQUIRED_SALES_FIELDS = ("distributorId", "articleId", "billingQuantity", "netSales")


@dataclass(frozen=True)
class Slab:
    """One commission slab; max=None means open-ended"""
    min: float
    max: Optional[float]
    rate: float

    def contains(self, value: float) -> bool:
        return value >= self.min and (self.max is None or value <= self.max)


@dataclass(frozen=True)
class DistributorCriteria:
    zone: Optional[str] = None
    state: Optional[str] = None
    distributor_type: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return any((self.zone, self.state, self.distributor_type))


@dataclass(frozen=True)
class CatalogCriteria:
    family: Optional[str] = None
    class_name: Optional[str] = None
    brand: Optional[str] = None
    other_article_ids: FrozenSet[str] = frozenset()

    @property
    def has_hierarchy(self) -> bool:
        return any((self.family, self.class_name, self.brand))


@dataclass(frozen=True)
class Scheme:
    """Strict scheme representation used by every calculation step"""
    id: str
    name: str
    scheme_type: SchemeType
    commission_type: CommissionType
    slab_type: SlabType = SlabType.QUANTITY
    slabs: Tuple[Slab, ...] = ()
    article_commissions: Dict[str, float] = field(default_factory=dict)
    distributor_mode: SelectionMode = SelectionMode.UNSPECIFIED
    distributor_ids: FrozenSet[str] = frozenset()
    distributor_criteria: DistributorCriteria = field(default_factory=DistributorCriteria)
    article_mode: SelectionMode = SelectionMode.UNSPECIFIED
    article_ids: FrozenSet[str] = frozenset()
    catalog: CatalogCriteria = field(default_factory=CatalogCriteria)

    @property
    def is_fixed_article_table(self) -> bool:
        return self.scheme_type is SchemeType.ARTICLE_TABLE and self.commission_type is CommissionType.FIXED


@dataclass(frozen=True)
class SalesRecord:
    distributor_id: str
    article_id: str
    billing_quantity: float
    net_sales: float
    billing_document: Optional[str] = None
    month_of_billing_date: Optional[str] = None
    day_of_billing_date: Optional[str] = None


@dataclass(frozen=True)
class DistributorInfo:
    id: str
    name: Optional[str] = None
    zone: Optional[str] = None
    state: Optional[str] = None
    type: Optional[str] = None


@dataclass(frozen=True)
class ArticleCategory:
    family_name: Optional[str] = None
    class_name: Optional[str] = None
    brand_name: Optional[str] = None


def _as_id(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_ids(values: Iterable) -> FrozenSet[str]:
    if isinstance(values, str):
        values = values.split(",")
    return frozenset(i for i in (_as_id(v) for v in values or []) if i)


def _to_float(value, default: float = 0.0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if number == number else default


def _criterion(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return None if text in ANY_CRITERION else text


def _first(*values):
    for value in values:
        if value not in (None, ""):
            return value
    return None


def _selection_mode(raw_mode, label: str) -> SelectionMode:
    if raw_mode in (None, ""):
        return SelectionMode.UNSPECIFIED
    try:
        return SelectionMode(str(raw_mode))
    except ValueError:
        logger.warning(f"Unknown {label} selection type '{raw_mode}', not filtering by {label}")
        return SelectionMode.UNSPECIFIED


def _parse_slab(raw: Dict[str, Any]) -> Slab:
    slab_max = _to_float(raw.get("max"), default=0.0)
    return Slab(
        min=_to_float(raw.get("min")),
        max=slab_max if slab_max else None,
        rate=_to_float(raw.get("rate")),
    )


def normalize_scheme(raw: Dict[str, Any]) -> Scheme:
    """
    Build a Scheme from a stored scheme payload

    Args:
        raw: Scheme dict as saved by the scheme editor (any of its historical shapes)

    Returns:
        Scheme with every alias resolved
    """
    if not isinstance(raw, dict) or not raw:
        raise InputError("Scheme payload is missing or empty")

    info = raw.get("basicInfo") or {}

    raw_type = _first(raw.get("schemeType"), raw.get("type"), info.get("schemeType"), info.get("type"))
    if raw_type is None:
        logger.warning(f"Could not determine type for scheme {raw.get('id')}, defaulting to article-table")
        scheme_type = SchemeType.ARTICLE_TABLE
    elif raw_type in SCHEME_TYPE_ALIASES:
        scheme_type = SCHEME_TYPE_ALIASES[raw_type]
    else:
        raise InputError(f"Unknown scheme type: {raw_type}")

    raw_commission = _first(info.get("commissionType"), raw.get("commissionType")) or "percentage"
    if raw_commission not in COMMISSION_TYPE_ALIASES:
        raise InputError(f"Unknown commission type: {raw_commission}")

    raw_slab_type = _first(info.get("slabType"), raw.get("slabType")) or "quantity"
    try:
        slab_type = SlabType(raw_slab_type)
    except ValueError:
        raise InputError(f"Unknown slab type: {raw_slab_type}")

    slabs = tuple(_parse_slab(s) for s in (info.get("slabs") or raw.get("slabs") or []) if isinstance(s, dict))

    article_commissions = {
        str(article_id).strip(): _to_float(rate)
        for article_id, rate in (raw.get("articleCommissions") or {}).items()
    }

    dist_ids = raw.get("distIds") or {}
    distributor_data = raw.get("distributorData") or {}
    articles = raw.get("articles") or {}
    catalog_type = raw.get("catalogType") or {}

    other_article_ids = frozenset()
    if catalog_type.get("article") == "others":
        other_article_ids = _as_ids(catalog_type.get("specificArticleIds") or [])

    return Scheme(
        id=_as_id(raw.get("id")) or "",
        name=_first(info.get("schemeName"), raw.get("name")) or "Unknown Scheme",
        scheme_type=scheme_type,
        commission_type=COMMISSION_TYPE_ALIASES[raw_commission],
        slab_type=slab_type,
        slabs=slabs,
        article_commissions=article_commissions,
        distributor_mode=_selection_mode(dist_ids.get("type"), "distributor"),
        distributor_ids=_as_ids(dist_ids.get("specificIds") or []),
        distributor_criteria=DistributorCriteria(
            zone=_criterion(distributor_data.get("zone")),
            state=_criterion(distributor_data.get("state")),
            distributor_type=_criterion(distributor_data.get("distributorType")),
        ),
        article_mode=_selection_mode(articles.get("type"), "article"),
        article_ids=_as_ids(articles.get("specificIds") or []),
        catalog=CatalogCriteria(
            family=_criterion(catalog_type.get("family")),
            class_name=_criterion(catalog_type.get("class")),
            brand=_criterion(catalog_type.get("brand")),
            other_article_ids=other_article_ids,
        ),
    )


def normalize_sales_record(raw: Dict[str, Any], index: int = 0) -> SalesRecord:
    if not isinstance(raw, dict):
        raise InputError(f"Sales record {index} is not an object", record_index=index)

    missing = [f for f in REQUIRED_SALES_FIELDS if raw.get(f) in (None, "")]
    if missing:
        raise InputError(f"Sales record {index} is missing fields: {', '.join(missing)}", record_index=index)

    try:
        quantity = float(raw["billingQuantity"])
        net_sales = float(raw["netSales"])
    except (TypeError, ValueError):
        raise InputError(f"Sales record {index} has non-numeric quantity or net sales", record_index=index)

    return SalesRecord(
        distributor_id=_as_id(raw["distributorId"]),
        article_id=_as_id(raw["articleId"]),
        billing_quantity=quantity,
        net_sales=net_sales,
        billing_document=_as_id(raw.get("billingDocument")),
        month_of_billing_date=_as_id(raw.get("monthOfBillingDate")),
        day_of_billing_date=_as_id(raw.get("dayOfBillingDate")),
    )


def normalize_sales_records(raw_records: List[Dict[str, Any]]) -> List[SalesRecord]:
    if not raw_records:
        raise InputError("No sales data available. Please upload sales data first.")
    return [normalize_sales_record(r, i) for i, r in enumerate(raw_records)]


def build_distributor_lookup(raw_distributors: Optional[List[Dict[str, Any]]]) -> Dict[str, DistributorInfo]:
    lookup = {}
    for raw in raw_distributors or []:
        if not isinstance(raw, dict):
            continue
        distributor_id = _as_id(raw.get("id"))
        if not distributor_id:
            continue
        lookup[distributor_id] = DistributorInfo(
            id=distributor_id,
            name=raw.get("name"),
            zone=raw.get("zone"),
            state=raw.get("state"),
            type=_first(raw.get("type"), raw.get("distributorType")),
        )
    return lookup


def normalize_category_lookup(raw_category_data: Optional[Dict[str, Any]]) -> Optional[Dict[str, ArticleCategory]]:
    """Article id -> category, or None when no category data was uploaded"""
    if not raw_category_data:
        return None
    mappings = raw_category_data.get("articleMappings")
    if mappings is None:
        return None
    return {
        str(article_id).strip(): ArticleCategory(
            family_name=m.get("familyName"),
            class_name=m.get("className"),
            brand_name=m.get("brandName"),
        )
        for article_id, m in mappings.items()
        if isinstance(m, dict)
    }
