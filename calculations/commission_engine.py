"""
Commission Engine
Runs aggregation, rate resolution and allocation for one scheme over one sales set
"""

import logging
import time
from dataclasses import dataclass
from typing import Dict, Any, List, Optional, Callable

import pandas as pd

from .aggregator import (
    AggregationResult,
    aggregate,
    MAX_RECORDS,
    BATCH_SIZE,
    PROCESSING_TIMEOUT_SECONDS,
    YIELD_EVERY_BATCHES,
)
from .allocator import CalculationResult, allocate
from .commission_resolver import resolve
from .exceptions import InputError
from .scheme_models import ArticleCategory, DistributorInfo, SalesRecord, Scheme

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = ["distributor_id", "article_id", "commission"]


@dataclass
class CalculationRun:
    scheme: Scheme
    results: List[CalculationResult]
    aggregation: AggregationResult
    summary: Dict[str, Any]


def results_to_dataframe(results: List[Dict[str, Any]]) -> pd.DataFrame:
    if not results:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)
    return pd.DataFrame(results)


def summarize_results(results: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Totals stored alongside a calculation: commission, distinct distributors and articles"""
    df = results_to_dataframe(results).reindex(columns=SUMMARY_COLUMNS)
    commission = pd.to_numeric(df["commission"], errors="coerce").fillna(0)
    return {
        "total_commission": float(commission.sum()),
        "unique_distributors": int(df["distributor_id"].nunique()),
        "unique_articles": int(df["article_id"].nunique()),
        "total_records": int(len(df)),
    }


async def perform_scheme_calculation(scheme: Scheme, sales: List[SalesRecord],
                                     category_lookup: Optional[Dict[str, ArticleCategory]],
                                     distributor_lookup: Dict[str, DistributorInfo],
                                     max_records: int = MAX_RECORDS,
                                     batch_size: int = BATCH_SIZE,
                                     timeout_seconds: float = PROCESSING_TIMEOUT_SECONDS,
                                     yield_every: int = YIELD_EVERY_BATCHES,
                                     clock: Callable[[], float] = time.monotonic) -> CalculationRun:
    """
    Calculate per-sale commissions for a scheme

    Returns:
        CalculationRun; check run.aggregation.timed_out / processed_ratio for partial runs
    """
    if scheme is None:
        raise InputError("Scheme not found")
    if not sales:
        raise InputError("No sales data available. Please upload sales data first.")

    logger.info(f"🧮 Starting calculation for scheme {scheme.id} ({scheme.name}): "
                f"type={scheme.scheme_type.value}, commission={scheme.commission_type.value}, "
                f"slab_type={scheme.slab_type.value}, slabs={len(scheme.slabs)}")

    aggregation = await aggregate(
        sales, scheme, category_lookup, distributor_lookup,
        max_records=max_records,
        batch_size=batch_size,
        timeout_seconds=timeout_seconds,
        yield_every=yield_every,
        clock=clock,
    )

    results: List[CalculationResult] = []
    for key, group in aggregation.groups.items():
        try:
            resolution = resolve(group, scheme)
            results.extend(allocate(group, resolution, scheme))
        except Exception as e:
            logger.error(f"Error calculating commission for group {key[0]}:{key[1]}: {e}")

    summary = summarize_results([r.to_dict() for r in results])
    logger.info(f"✅ Scheme calculation completed: {summary['total_records']} records, "
                f"total commission {summary['total_commission']:.2f}")

    return CalculationRun(scheme=scheme, results=results, aggregation=aggregation, summary=summary)
