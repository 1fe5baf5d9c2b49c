"""
End-to-end tests for a scheme calculation run
"""

import asyncio

import pytest

from calculations import perform_scheme_calculation
from calculations.commission_engine import summarize_results
from calculations.exceptions import InputError
from calculations.scheme_models import (
    build_distributor_lookup,
    normalize_category_lookup,
    normalize_sales_records,
    normalize_scheme,
)
from conftest import article_scheme, booster_scheme, make_sale

DISTRIBUTORS = build_distributor_lookup([
    {"id": "D1", "name": "North Traders", "zone": "North", "state": "Punjab", "type": "Retail"},
    {"id": "D2", "name": "South Depot", "zone": "South", "state": "Kerala", "type": "Wholesale"},
])

CATEGORIES = normalize_category_lookup({"articleMappings": {
    "A1": {"familyName": "Footwear", "className": "Sports", "brandName": "Stride"},
    "A2": {"familyName": "Apparel", "className": "Casual", "brandName": "Stride"},
}})


def run(scheme_raw, sales_raw, categories=None, distributors=None):
    return asyncio.run(perform_scheme_calculation(
        normalize_scheme(scheme_raw),
        normalize_sales_records(sales_raw),
        categories,
        distributors if distributors is not None else DISTRIBUTORS,
    ))


def test_fixed_article_commission_paid_once_per_group():
    result = run(article_scheme({"A1": 100}), [
        make_sale("D1", "A1", 5, 500, "B1"),
        make_sale("D1", "A1", 3, 300, "B2"),
    ])

    assert [r.commission for r in result.results] == [100, 0]
    assert result.results[0].distributor_name == "North Traders"
    assert result.summary["total_commission"] == 100
    assert result.summary["total_records"] == 2


def test_booster_per_unit_over_open_ended_slab():
    slabs = [{"min": 0, "max": 100, "rate": 5}, {"min": 101, "max": None, "rate": 10}]
    result = run(booster_scheme(slabs), [
        make_sale("D1", "A1", 100, 1000, "B1"),
        make_sale("D1", "A1", 50, 500, "B2"),
    ])

    assert sum(r.commission for r in result.results) == pytest.approx(1500)
    assert result.results[0].commission == pytest.approx(1000)
    assert result.results[1].commission == pytest.approx(500)
    assert all(r.slab_rate == 10 for r in result.results)


def test_negative_group_quantity_earns_zero():
    slabs = [{"min": 0, "max": None, "rate": 5}]
    result = run(booster_scheme(slabs), [
        make_sale("D1", "A1", 10, 1000, "B1"),
        make_sale("D1", "A1", -30, -3000, "B2"),
    ])

    assert [r.commission for r in result.results] == [0, 0]
    assert result.summary["total_commission"] == 0


def test_ineligible_sales_produce_no_results():
    slabs = [{"min": 0, "max": None, "rate": 1}]
    scheme = booster_scheme(
        slabs,
        distIds={"type": "all"},
        distributorData={"zone": "North"},
        catalogType={"family": "Footwear"},
    )
    result = run(scheme, [
        make_sale("D1", "A1", 4, 40),
        make_sale("D1", "A2", 4, 40),
        make_sale("D2", "A1", 4, 40),
        make_sale("D9", "A1", 4, 40),
    ], categories=CATEGORIES)

    assert [(r.distributor_id, r.article_id) for r in result.results] == [("D1", "A1")]
    assert result.aggregation.matched_records == 1
    assert result.aggregation.records_processed == 4


def test_results_ordered_by_group_then_sale():
    result = run(article_scheme({"A1": 2, "A2": 3}, commission_type="absolute_per_unit"), [
        make_sale("D1", "A1", 1, 10, "B1"),
        make_sale("D2", "A2", 1, 10, "B2"),
        make_sale("D1", "A1", 1, 10, "B3"),
    ])
    assert [r.billing_document for r in result.results] == ["B1", "B3", "B2"]
    assert result.summary["unique_distributors"] == 2
    assert result.summary["unique_articles"] == 2


def test_missing_scheme_rejected():
    with pytest.raises(InputError):
        asyncio.run(perform_scheme_calculation(None, normalize_sales_records([make_sale()]), None, {}))


def test_empty_sales_rejected():
    with pytest.raises(InputError):
        asyncio.run(perform_scheme_calculation(normalize_scheme(article_scheme({"A1": 1})), [], None, {}))


def test_summary_tolerates_sparse_records():
    summary = summarize_results([
        {"distributor_id": "D1", "article_id": "A1", "commission": 10},
        {"distributor_id": "D2", "commission": "5.5"},
        {"article_id": "A3"},
    ])
    assert summary["total_commission"] == pytest.approx(15.5)
    assert summary["unique_distributors"] == 2
    assert summary["unique_articles"] == 2
    assert summary["total_records"] == 3


def test_summary_of_nothing():
    assert summarize_results([]) == {
        "total_commission": 0.0,
        "unique_distributors": 0,
        "unique_articles": 0,
        "total_records": 0,
    }
