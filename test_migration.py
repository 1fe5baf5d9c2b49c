"""
Tests for moving global legacy keys into an owner's namespace
"""

from app.kv_store import InMemoryKVStore, make_owner_key
from migrate_legacy_storage import migrate_global_key

LEGACY_DISTRIBUTORS = [
    {"id": "D1", "name": "North Traders", "zone": "North"},
    {"id": "D2", "name": "South Depot", "zone": "South"},
]


def test_migrates_and_deletes_legacy_key():
    kv = InMemoryKVStore({"distributors": LEGACY_DISTRIBUTORS})
    report = migrate_global_key(kv, "distributors", "owner-1")

    assert report["migrated"]
    assert report["legacy_deleted"]
    assert report["record_count"] == 2
    assert report["target_key"] == "user:owner-1:distributors"
    assert kv.get("user:owner-1:distributors") == LEGACY_DISTRIBUTORS
    assert kv.get("distributors") is None


def test_keep_legacy_copy():
    kv = InMemoryKVStore({"distributors": LEGACY_DISTRIBUTORS})
    report = migrate_global_key(kv, "distributors", "owner-1", delete_legacy=False)

    assert report["migrated"]
    assert not report["legacy_deleted"]
    assert kv.get("distributors") == LEGACY_DISTRIBUTORS


def test_missing_legacy_key_is_skipped():
    kv = InMemoryKVStore()
    report = migrate_global_key(kv, "distributors", "owner-1")

    assert not report["migrated"]
    assert report["skipped_reason"] == "legacy key not found"
    assert kv.keys() == []


def test_existing_owner_value_is_never_overwritten():
    owner_value = [{"id": "D9", "name": "Owner Own"}]
    kv = InMemoryKVStore({
        "distributors": LEGACY_DISTRIBUTORS,
        make_owner_key("owner-1", "distributors"): owner_value,
    })
    report = migrate_global_key(kv, "distributors", "owner-1")

    assert not report["migrated"]
    assert report["skipped_reason"] == "owner already has a value"
    assert kv.get("user:owner-1:distributors") == owner_value
    assert kv.get("distributors") == LEGACY_DISTRIBUTORS


def test_other_owners_are_untouched():
    kv = InMemoryKVStore({
        "distributors": LEGACY_DISTRIBUTORS,
        "user:owner-2:distributors": [],
    })
    migrate_global_key(kv, "distributors", "owner-1")

    assert kv.get("user:owner-2:distributors") == []
    assert kv.keys() == ["user:owner-1:distributors", "user:owner-2:distributors"]
