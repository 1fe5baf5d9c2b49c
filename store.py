"""
Chunked Result Store
Persists calculation results as one metadata record plus ordered chunks in the
owner's key-value namespace, and publishes them through a per-owner
"latest-calculation" pointer.

Write order is metadata -> chunks -> pointer. The pointer write is the
publication point: a run whose pointer write did not succeed is cleaned up and
reported as failed. A cancelled run (request deadline) gets the same cleanup
before the cancellation propagates.
"""

import asyncio
import logging
import math
import random
import string
import time
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional, Callable, Awaitable

from app.kv_store import KeyValueStore, make_owner_key, run_blocking
from calculations.commission_engine import summarize_results
from calculations.exceptions import StorageFailure

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 500
DEFAULT_WRITE_DELAY_SECONDS = 0.1
DEFAULT_HISTORY_LIMIT = 100

LATEST_POINTER_KEY = "latest-calculation"
HISTORY_KEY = "calculations"


def meta_key(calculation_id: str) -> str:
    return f"calc_meta_{calculation_id}"


def chunk_key(calculation_id: str, index: int) -> str:
    return f"calc_chunk_{calculation_id}_{index}"


def new_calculation_id(scheme_id: str) -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"calc_{scheme_id}_{int(time.time() * 1000)}_{suffix}"


@dataclass
class StoreResult:
    calculation_id: str
    total_records: int
    total_chunks: int
    summary: Dict[str, Any]
    created_at: str

    def to_dict(self):
        return asdict(self)


@dataclass
class RetrievedCalculation:
    calculation_id: str
    results: List[Dict[str, Any]]
    total_records: int
    expected_records: int
    created_at: Optional[str]
    scheme_id: Optional[str]
    scheme_name: Optional[str]
    summary: Dict[str, Any]
    missing_chunks: List[int] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.missing_chunks and self.total_records == self.expected_records

    def to_dict(self):
        data = asdict(self)
        data["is_complete"] = self.is_complete
        return data


class ChunkedResultStore:
    """Stores and reconstructs large calculation result lists"""

    def __init__(self, kv: KeyValueStore,
                 chunk_size: int = DEFAULT_CHUNK_SIZE,
                 write_delay_seconds: float = DEFAULT_WRITE_DELAY_SECONDS,
                 history_limit: int = DEFAULT_HISTORY_LIMIT,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.kv = kv
        self.chunk_size = chunk_size
        self.write_delay_seconds = write_delay_seconds
        self.history_limit = history_limit
        self._sleep = sleep

    async def _get(self, owner_key: str, key: str):
        return await run_blocking(self.kv.get, make_owner_key(owner_key, key))

    async def _set(self, owner_key: str, key: str, value):
        await run_blocking(self.kv.set, make_owner_key(owner_key, key), value)

    async def _delete(self, owner_key: str, key: str):
        await run_blocking(self.kv.delete, make_owner_key(owner_key, key))

    async def store(self, owner_key: str, scheme_id: str, results: List[Dict[str, Any]],
                    scheme_name: Optional[str] = None) -> StoreResult:
        """
        Persist a result list for an owner and publish it as their latest calculation

        Args:
            owner_key: Namespace owner
            scheme_id: Scheme the results were calculated for
            results: JSON-compatible result records, stored in order
            scheme_name: Display name kept on the pointer

        Returns:
            StoreResult with the new calculation id

        Raises:
            StorageFailure: a write failed; metadata and chunks for the id were deleted best-effort
            asyncio.CancelledError: re-raised after the same cleanup when the caller gave up
        """
        if not isinstance(results, list):
            raise TypeError("Calculations must be a list")

        calculation_id = new_calculation_id(scheme_id)
        total_chunks = math.ceil(len(results) / self.chunk_size)
        created_at = datetime.now(timezone.utc).isoformat()
        summary = summarize_results(results)
        if scheme_name is None:
            scheme_name = results[0].get("scheme_name", "Unknown Scheme") if results else "Unknown Scheme"

        logger.info(f"Storing {len(results)} calculations in {total_chunks} chunks of {self.chunk_size} "
                    f"for owner {owner_key}")

        metadata = {
            "calculation_id": calculation_id,
            "scheme_id": scheme_id,
            "scheme_name": scheme_name,
            "owner_key": owner_key,
            "total_records": len(results),
            "total_chunks": total_chunks,
            "chunk_size": self.chunk_size,
            "created_at": created_at,
            "status": "complete",
            "summary": summary,
        }

        chunks_written = 0
        try:
            await self._set(owner_key, meta_key(calculation_id), metadata)

            for index in range(total_chunks):
                start_index = index * self.chunk_size
                end_index = min(start_index + self.chunk_size, len(results))
                records = results[start_index:end_index]

                await self._set(owner_key, chunk_key(calculation_id, index), {
                    "chunk_index": index,
                    "calculation_id": calculation_id,
                    "records": records,
                    "record_count": len(records),
                    "start_index": start_index,
                    "end_index": end_index - 1,
                })
                chunks_written += 1
                logger.debug(f"Stored chunk {index + 1}/{total_chunks} with {len(records)} records")

                if index < total_chunks - 1 and self.write_delay_seconds > 0:
                    await self._sleep(self.write_delay_seconds)

            await self._set(owner_key, LATEST_POINTER_KEY, {
                "calculation_id": calculation_id,
                "scheme_id": scheme_id,
                "scheme_name": scheme_name,
                "total_records": len(results),
                "total_chunks": total_chunks,
                "created_at": created_at,
                "summary": summary,
            })

        except asyncio.CancelledError:
            # The pointer write may have landed just before the cancellation arrived
            try:
                pointer = await self._get(owner_key, LATEST_POINTER_KEY)
            except Exception as e:
                logger.error(f"Could not read pointer while cancelling {calculation_id}: {e}")
                pointer = None
            if not pointer or pointer.get("calculation_id") != calculation_id:
                logger.warning(f"⏰ Storing calculation {calculation_id} cancelled after "
                               f"{chunks_written}/{total_chunks} chunks, cleaning up")
                await self._cleanup(owner_key, calculation_id, total_chunks)
            raise

        except Exception as e:
            logger.error(f"❌ Error storing calculation {calculation_id} after {chunks_written}/{total_chunks} chunks: {e}",
                         exc_info=True)
            await self._cleanup(owner_key, calculation_id, total_chunks)
            raise StorageFailure(
                f"Failed to store calculation {calculation_id}: {e}",
                calculation_id=calculation_id,
                chunks_written=chunks_written,
                total_chunks=total_chunks,
            ) from e

        logger.info(f"✅ Calculation {calculation_id} published with {total_chunks} chunks for owner {owner_key}")

        await self._append_history(owner_key, {
            "calculation_id": calculation_id,
            "scheme_id": scheme_id,
            "scheme_name": scheme_name,
            "total_records": len(results),
            "total_commission": summary["total_commission"],
            "created_at": created_at,
            "summary": summary,
        })

        return StoreResult(
            calculation_id=calculation_id,
            total_records=len(results),
            total_chunks=total_chunks,
            summary=summary,
            created_at=created_at,
        )

    async def _cleanup(self, owner_key: str, calculation_id: str, total_chunks: int):
        """Compensating deletes for a failed store; errors are logged and swallowed per key"""
        keys = [meta_key(calculation_id)] + [chunk_key(calculation_id, i) for i in range(total_chunks)]
        for key in keys:
            try:
                await self._delete(owner_key, key)
            except Exception as cleanup_error:
                logger.error(f"Error during cleanup of {key}: {cleanup_error}")

    async def _append_history(self, owner_key: str, entry: Dict[str, Any]):
        try:
            history = await self._get(owner_key, HISTORY_KEY) or []
            history.append(entry)
            if self.history_limit and len(history) > self.history_limit:
                history = history[-self.history_limit:]
            await self._set(owner_key, HISTORY_KEY, history)
        except Exception as e:
            # The run is already published through the pointer
            logger.error(f"Failed to append calculation {entry['calculation_id']} to history: {e}")

    async def retrieve(self, owner_key: str, calculation_id: str) -> Optional[RetrievedCalculation]:
        """Reassemble a calculation by id; None when its metadata does not exist"""
        metadata = await self._get(owner_key, meta_key(calculation_id))
        if not metadata:
            logger.info(f"No metadata for calculation {calculation_id} (owner {owner_key})")
            return None
        return await self._read_chunks(owner_key, metadata)

    async def retrieve_latest(self, owner_key: str) -> Optional[RetrievedCalculation]:
        """Reassemble the calculation the owner's pointer refers to; None when nothing was published"""
        pointer = await self._get(owner_key, LATEST_POINTER_KEY)
        if not pointer:
            logger.info(f"No calculations found for owner {owner_key}")
            return None

        metadata = await self._get(owner_key, meta_key(pointer["calculation_id"]))
        if not metadata:
            logger.warning(f"Metadata missing for latest calculation {pointer['calculation_id']}, using pointer")
            metadata = pointer
        return await self._read_chunks(owner_key, metadata)

    async def _read_chunks(self, owner_key: str, metadata: Dict[str, Any]) -> RetrievedCalculation:
        calculation_id = metadata["calculation_id"]
        total_chunks = metadata.get("total_chunks", 0)
        results: List[Dict[str, Any]] = []
        missing_chunks: List[int] = []

        for index in range(total_chunks):
            chunk = await self._get(owner_key, chunk_key(calculation_id, index))
            if chunk and chunk.get("records") is not None:
                results.extend(chunk["records"])
            else:
                logger.warning(f"Missing chunk {index} for calculation {calculation_id}")
                missing_chunks.append(index)

        logger.info(f"Reconstructed calculation {calculation_id} with {len(results)} records"
                    + (f", {len(missing_chunks)} chunks missing" if missing_chunks else ""))

        return RetrievedCalculation(
            calculation_id=calculation_id,
            results=results,
            total_records=len(results),
            expected_records=metadata.get("total_records", len(results)),
            created_at=metadata.get("created_at"),
            scheme_id=metadata.get("scheme_id"),
            scheme_name=metadata.get("scheme_name"),
            summary=metadata.get("summary") or {},
            missing_chunks=missing_chunks,
        )

    async def list_calculations(self, owner_key: str) -> List[Dict[str, Any]]:
        history = await self._get(owner_key, HISTORY_KEY) or []
        return [c for c in history if isinstance(c, dict)]
