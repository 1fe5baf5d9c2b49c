"""
Shared fixtures and payload builders for the commission tests
"""

import pytest

from app.kv_store import InMemoryKVStore


def make_sale(distributor_id="D1", article_id="A1", quantity=1, net_sales=100.0, document=None):
    return {
        "distributorId": distributor_id,
        "articleId": article_id,
        "billingQuantity": quantity,
        "netSales": net_sales,
        "billingDocument": document or f"DOC-{distributor_id}-{article_id}-{quantity}",
        "monthOfBillingDate": "Jan",
        "dayOfBillingDate": "15",
    }


def article_scheme(commissions, commission_type="fixed", **extra):
    scheme = {
        "id": "scheme_article",
        "type": "article-scheme",
        "basicInfo": {"schemeName": "Article Scheme", "commissionType": commission_type},
        "articleCommissions": commissions,
    }
    scheme.update(extra)
    return scheme


def booster_scheme(slabs, slab_type="quantity", commission_type="absolute_per_unit", **extra):
    scheme = {
        "id": "scheme_booster",
        "type": "booster-scheme",
        "basicInfo": {
            "schemeName": "Booster Scheme",
            "slabType": slab_type,
            "commissionType": commission_type,
            "slabs": slabs,
        },
    }
    scheme.update(extra)
    return scheme


class FlakyKVStore(InMemoryKVStore):
    """In-memory store whose set() fails on the Nth call or for keys containing a marker"""

    def __init__(self, fail_on_call=None, fail_key_contains=None):
        super().__init__()
        self.fail_on_call = fail_on_call
        self.fail_key_contains = fail_key_contains
        self.set_calls = 0
        self.deleted = []

    def set(self, key, value):
        self.set_calls += 1
        if self.fail_on_call is not None and self.set_calls == self.fail_on_call:
            raise ConnectionError(f"write {self.set_calls} rejected")
        if self.fail_key_contains and self.fail_key_contains in key:
            raise ConnectionError(f"write to {key} rejected")
        super().set(key, value)

    def delete(self, key):
        self.deleted.append(key)
        super().delete(key)


@pytest.fixture
def kv():
    return InMemoryKVStore()
