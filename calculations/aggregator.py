"""
Aggregator Module
Groups eligible sales by (distributor, article) in time-budgeted batches
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from .criteria_matcher import matches
from .scheme_models import ArticleCategory, DistributorInfo, SalesRecord, Scheme

logger = logging.getLogger(__name__)

MAX_RECORDS = 10000
BATCH_SIZE = 1000
PROCESSING_TIMEOUT_SECONDS = 40.0
YIELD_EVERY_BATCHES = 10

GroupKey = Tuple[str, str]


@dataclass
class DistributorArticleGroup:
    """All eligible sales of one article by one distributor within a run"""
    distributor_id: str
    article_id: str
    distributor_name: str
    total_quantity: float = 0.0
    total_value: float = 0.0
    sales: List[SalesRecord] = field(default_factory=list)

    def add(self, sale: SalesRecord):
        self.total_quantity += sale.billing_quantity
        self.total_value += sale.net_sales
        self.sales.append(sale)


@dataclass
class AggregationResult:
    groups: Dict[GroupKey, DistributorArticleGroup]
    original_count: int
    processed_count: int
    records_processed: int
    matched_records: int
    batches_processed: int
    total_batches: int
    timed_out: bool
    elapsed_seconds: float

    @property
    def processed_ratio(self) -> float:
        """Share of the capped input that was examined; 1.0 means a complete run"""
        if self.processed_count == 0:
            return 1.0
        return self.records_processed / self.processed_count

    @property
    def is_complete(self) -> bool:
        return not self.timed_out and self.records_processed == self.processed_count

    def to_dict(self):
        return {
            "original_count": self.original_count,
            "processed_count": self.processed_count,
            "records_processed": self.records_processed,
            "matched_records": self.matched_records,
            "group_count": len(self.groups),
            "batches_processed": self.batches_processed,
            "total_batches": self.total_batches,
            "processed_ratio": self.processed_ratio,
            "timed_out": self.timed_out,
            "is_complete": self.is_complete,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }


async def aggregate(sales: List[SalesRecord], scheme: Scheme,
                    category_lookup: Optional[Dict[str, ArticleCategory]],
                    distributor_lookup: Dict[str, DistributorInfo],
                    max_records: int = MAX_RECORDS,
                    batch_size: int = BATCH_SIZE,
                    timeout_seconds: float = PROCESSING_TIMEOUT_SECONDS,
                    yield_every: int = YIELD_EVERY_BATCHES,
                    clock: Callable[[], float] = time.monotonic) -> AggregationResult:
    """
    Group eligible sales by distributor and article

    The time budget is checked before each batch only, so a started batch always
    finishes. Running out of budget is not an error: the groups built so far are
    returned with timed_out=True.

    Args:
        sales: Normalized sales records
        scheme: Normalized scheme
        category_lookup: Article categories, None when not uploaded
        distributor_lookup: Distributor id -> DistributorInfo
        max_records: Input cap
        batch_size: Records per batch
        timeout_seconds: Wall-clock budget for the whole aggregation
        yield_every: Yield to the event loop after this many batches
        clock: Monotonic clock, injectable for tests

    Returns:
        AggregationResult with groups in first-seen order
    """
    limited_sales = sales[:max_records]
    total_batches = (len(limited_sales) + batch_size - 1) // batch_size

    logger.info(f"Processing {len(limited_sales)} sales records (limited from {len(sales)} total) "
                f"for scheme {scheme.id} in {total_batches} batches")

    groups: Dict[GroupKey, DistributorArticleGroup] = {}
    records_processed = 0
    matched_records = 0
    batches_processed = 0
    timed_out = False
    start_time = clock()

    for batch_start in range(0, len(limited_sales), batch_size):
        elapsed = clock() - start_time
        if elapsed > timeout_seconds:
            timed_out = True
            logger.warning(f"⏰ Processing timeout reached at record {batch_start}/{len(limited_sales)} "
                           f"after {elapsed:.2f}s, returning {len(groups)} groups")
            break

        batch = limited_sales[batch_start:batch_start + batch_size]
        batches_processed += 1

        if batches_processed % 5 == 0 or batches_processed == total_batches:
            logger.info(f"Processing batch {batches_processed}/{total_batches} ({elapsed:.2f}s elapsed)")

        for sale in batch:
            records_processed += 1
            try:
                if not matches(sale, scheme, category_lookup, distributor_lookup):
                    continue

                key = (sale.distributor_id, sale.article_id)
                group = groups.get(key)
                if group is None:
                    distributor_info = distributor_lookup.get(sale.distributor_id)
                    name = distributor_info.name if distributor_info and distributor_info.name else None
                    group = DistributorArticleGroup(
                        distributor_id=sale.distributor_id,
                        article_id=sale.article_id,
                        distributor_name=name or f"Distributor {sale.distributor_id}",
                    )
                    groups[key] = group
                group.add(sale)
                matched_records += 1
            except Exception as e:
                logger.error(f"Error processing sale record {sale.billing_document}: {e}")

        if yield_every and batches_processed % yield_every == 0:
            await asyncio.sleep(0)

    result = AggregationResult(
        groups=groups,
        original_count=len(sales),
        processed_count=len(limited_sales),
        records_processed=records_processed,
        matched_records=matched_records,
        batches_processed=batches_processed,
        total_batches=total_batches,
        timed_out=timed_out,
        elapsed_seconds=clock() - start_time,
    )
    logger.info(f"Grouped into {len(groups)} distributor-article combinations "
                f"({result.processed_ratio:.0%} of records processed)")
    return result
