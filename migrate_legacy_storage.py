#!/usr/bin/env python3
"""
Legacy Storage Migration
Moves values that were stored under global (un-namespaced) keys, such as the old
shared "distributors" list, into one owner's namespace.

Usage:
    python migrate_legacy_storage.py <owner_key> [legacy_key ...] [--keep]
"""

import asyncio
import logging
import sys
from datetime import datetime, timezone
from typing import Dict, Any

from app.kv_store import KeyValueStore, PostgresKVStore, make_owner_key

logger = logging.getLogger(__name__)

DEFAULT_LEGACY_KEYS = ["distributors"]


def migrate_global_key(kv: KeyValueStore, legacy_key: str, owner_key: str,
                       delete_legacy: bool = True) -> Dict[str, Any]:
    """
    Copy a global key into the owner's namespace

    An existing owner value is never overwritten; the legacy key is then left in
    place so nothing is lost.

    Returns:
        Report dict describing what happened
    """
    target_key = make_owner_key(owner_key, legacy_key)
    report = {
        "legacy_key": legacy_key,
        "target_key": target_key,
        "migrated": False,
        "legacy_deleted": False,
        "skipped_reason": None,
        "record_count": 0,
        "migrated_at": datetime.now(timezone.utc).isoformat(),
    }

    legacy_value = kv.get(legacy_key)
    if legacy_value is None:
        report["skipped_reason"] = "legacy key not found"
        logger.info(f"No legacy value under '{legacy_key}'")
        return report

    report["record_count"] = len(legacy_value) if isinstance(legacy_value, (list, dict)) else 1

    if kv.get(target_key) is not None:
        report["skipped_reason"] = "owner already has a value"
        logger.warning(f"Not migrating '{legacy_key}': '{target_key}' already exists")
        return report

    kv.set(target_key, legacy_value)
    report["migrated"] = True
    logger.info(f"Migrated '{legacy_key}' -> '{target_key}' ({report['record_count']} records)")

    if delete_legacy:
        kv.delete(legacy_key)
        report["legacy_deleted"] = True

    return report


def main():
    from app.config import settings
    from app.database_psycopg2 import database_manager
    from app.logging_config import configure_logging

    args = [a for a in sys.argv[1:] if not a.startswith("--")]
    keep_legacy = "--keep" in sys.argv

    if not args:
        print(__doc__)
        sys.exit(1)

    configure_logging(settings.LOG_LEVEL)
    owner_key = args[0]
    legacy_keys = args[1:] or DEFAULT_LEGACY_KEYS

    print(f"🚀 Migrating {len(legacy_keys)} legacy keys into namespace of owner {owner_key}")
    print("=" * 60)

    asyncio.run(database_manager.connect())
    try:
        kv = PostgresKVStore(database_manager, settings.KV_TABLE)
        for legacy_key in legacy_keys:
            report = migrate_global_key(kv, legacy_key, owner_key, delete_legacy=not keep_legacy)
            if report["migrated"]:
                print(f"   ✅ {legacy_key} -> {report['target_key']} ({report['record_count']} records)")
            else:
                print(f"   ⚠️ {legacy_key}: skipped ({report['skipped_reason']})")
    finally:
        asyncio.run(database_manager.disconnect())


if __name__ == "__main__":
    main()
