"""
Commission calculation service
Loads a scheme and its inputs from the owner's namespace, runs the calculation
pipeline and publishes the results through the chunked result store
"""

import logging
import time
from typing import Dict, Any, List, Optional

from app.config import settings
from app.kv_store import KeyValueStore, make_owner_key, run_blocking
from calculations import (
    build_distributor_lookup,
    normalize_category_lookup,
    normalize_sales_records,
    normalize_scheme,
    perform_scheme_calculation,
)
from calculations.exceptions import SchemeNotFound
from migrate_legacy_storage import migrate_global_key
from store import ChunkedResultStore, RetrievedCalculation

logger = logging.getLogger(__name__)

SCHEMES_KEY = "schemes"
SALES_DATA_KEY = "sales-data"
DISTRIBUTORS_KEY = "distributors"
CATEGORY_DATA_KEY = "category-data"


class CalculationService:
    """Service for running and retrieving commission calculations"""

    def __init__(self, kv: KeyValueStore, result_store: Optional[ChunkedResultStore] = None):
        self.kv = kv
        self.result_store = result_store or ChunkedResultStore(
            kv,
            chunk_size=settings.CHUNK_SIZE,
            write_delay_seconds=settings.CHUNK_WRITE_DELAY_SECONDS,
            history_limit=settings.CALCULATION_HISTORY_LIMIT,
        )

    async def _load(self, owner_key: str, key: str, default):
        value = await run_blocking(self.kv.get, make_owner_key(owner_key, key))
        return default if value is None else value

    async def _find_scheme(self, owner_key: str, scheme_id: str) -> Dict[str, Any]:
        schemes = await self._load(owner_key, SCHEMES_KEY, [])
        for scheme in schemes:
            if isinstance(scheme, dict) and str(scheme.get("id")) == scheme_id:
                return scheme
        raise SchemeNotFound(f"Scheme {scheme_id} not found")

    async def calculate(self, owner_key: str, scheme_id: str) -> Dict[str, Any]:
        """
        Run a full calculation for one scheme and publish it as the owner's latest

        Args:
            owner_key: Namespace owner
            scheme_id: Scheme to calculate

        Returns:
            Dict with calculation id, storage and processing details

        Raises:
            InputError: scheme missing or sales data missing/malformed
            StorageFailure: results could not be persisted
        """
        start_time = time.time()
        logger.info(f"📥 Calculation requested for scheme {scheme_id} by owner {owner_key}")

        scheme = normalize_scheme(await self._find_scheme(owner_key, scheme_id))
        sales = normalize_sales_records(await self._load(owner_key, SALES_DATA_KEY, []))
        distributor_lookup = build_distributor_lookup(await self._load(owner_key, DISTRIBUTORS_KEY, []))
        category_lookup = normalize_category_lookup(await self._load(owner_key, CATEGORY_DATA_KEY, None))

        logger.info(f"Loaded {len(sales)} sales records and {len(distributor_lookup)} distributors "
                    f"for scheme '{scheme.name}'")

        run = await perform_scheme_calculation(
            scheme, sales, category_lookup, distributor_lookup,
            max_records=settings.MAX_RECORDS,
            batch_size=settings.BATCH_SIZE,
            timeout_seconds=settings.PROCESSING_TIMEOUT_SECONDS,
            yield_every=settings.YIELD_EVERY_BATCHES,
        )

        records = [r.to_dict() for r in run.results]
        stored = await self.result_store.store(owner_key, scheme.id, records, scheme_name=scheme.name)

        processing = run.aggregation.to_dict()
        execution_time = time.time() - start_time

        if run.aggregation.timed_out:
            message = (f"Calculation stopped at the processing time limit. "
                       f"{processing['records_processed']} of {processing['processed_count']} records processed.")
        else:
            message = f"Calculation completed successfully. {len(records)} records processed."

        logger.info(f"Calculation {stored.calculation_id} finished in {execution_time:.2f}s")

        return {
            "calculation_id": stored.calculation_id,
            "scheme_id": scheme.id,
            "scheme_name": scheme.name,
            "total_records": stored.total_records,
            "total_chunks": stored.total_chunks,
            "summary": stored.summary,
            "processing": processing,
            "execution_time_seconds": execution_time,
            "message": message,
        }

    async def get_latest(self, owner_key: str) -> Optional[RetrievedCalculation]:
        return await self.result_store.retrieve_latest(owner_key)

    async def get_calculation(self, owner_key: str, calculation_id: str) -> Optional[RetrievedCalculation]:
        return await self.result_store.retrieve(owner_key, calculation_id)

    async def list_calculations(self, owner_key: str) -> List[Dict[str, Any]]:
        return await self.result_store.list_calculations(owner_key)

    async def migrate_legacy(self, owner_key: str, legacy_key: str, delete_legacy: bool = True) -> Dict[str, Any]:
        return await run_blocking(migrate_global_key, self.kv, legacy_key, owner_key, delete_legacy)
