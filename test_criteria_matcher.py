"""
Tests for scheme eligibility matching
"""

from calculations.criteria_matcher import matches
from calculations.scheme_models import (
    ArticleCategory,
    DistributorInfo,
    SelectionMode,
    normalize_sales_record,
    normalize_scheme,
)
from conftest import article_scheme, booster_scheme, make_sale

NORTH_RETAIL = DistributorInfo(id="D1", name="North Traders", zone="North", state="Punjab", type="Retail")
LOOKUP = {"D1": NORTH_RETAIL}

CATEGORIES = {
    "A1": ArticleCategory(family_name="Footwear", class_name="Sports", brand_name="Stride"),
    "A2": ArticleCategory(family_name="Apparel", class_name="Casual", brand_name="Stride"),
}

SLABS = [{"min": 0, "max": None, "rate": 1}]


def sale(distributor_id="D1", article_id="A1"):
    return normalize_sales_record(make_sale(distributor_id, article_id))


def test_no_criteria_matches_everything():
    scheme = normalize_scheme(booster_scheme(SLABS))
    assert matches(sale(), scheme, None, {})


def test_distributor_criteria_checked_in_all_mode():
    scheme = normalize_scheme(booster_scheme(
        SLABS,
        distIds={"type": "all"},
        distributorData={"zone": "North", "state": "Punjab", "distributorType": "Retail"},
    ))
    assert matches(sale(), scheme, None, LOOKUP)

    south = DistributorInfo(id="D1", zone="South", state="Punjab", type="Retail")
    assert not matches(sale(), scheme, None, {"D1": south})


def test_unknown_distributor_rejected_when_criterion_set():
    scheme = normalize_scheme(booster_scheme(SLABS, distIds={"type": "all"}, distributorData={"zone": "North"}))
    assert not matches(sale(), scheme, None, {})


def test_unknown_distributor_accepted_without_criteria():
    scheme = normalize_scheme(booster_scheme(SLABS, distIds={"type": "all"}, distributorData={"zone": "all-zones"}))
    assert matches(sale(), scheme, None, {})


def test_criteria_ignored_without_distributor_selection():
    scheme = normalize_scheme(booster_scheme(SLABS, distributorData={"zone": "North"}))
    south = DistributorInfo(id="D1", zone="South", state="Kerala", type="Retail")

    assert scheme.distributor_mode is SelectionMode.UNSPECIFIED
    assert matches(sale(), scheme, None, {"D1": south})
    assert matches(sale("D404"), scheme, None, {})


def test_unknown_distributor_selection_type_does_not_filter():
    scheme = normalize_scheme(booster_scheme(SLABS, distIds={"type": "everyone"}, distributorData={"zone": "North"}))
    south = DistributorInfo(id="D1", zone="South")

    assert scheme.distributor_mode is SelectionMode.UNSPECIFIED
    assert matches(sale(), scheme, None, {"D1": south})


def test_explicit_distributor_ids_ignore_criteria():
    scheme = normalize_scheme(booster_scheme(
        SLABS,
        distIds={"type": "specific", "specificIds": ["D1", "D9"]},
        distributorData={"zone": "South"},
    ))
    # zone would reject NORTH_RETAIL, but explicit-id mode does not evaluate criteria
    assert matches(sale("D1"), scheme, None, LOOKUP)
    assert not matches(sale("D2"), scheme, None, LOOKUP)


def test_explicit_article_ids():
    scheme = normalize_scheme(article_scheme({"A1": 10}, articles={"type": "specific", "specificIds": ["A1"]}))
    assert matches(sale(article_id="A1"), scheme, None, {})
    assert not matches(sale(article_id="A2"), scheme, None, {})


def test_hierarchy_filter_for_booster():
    scheme = normalize_scheme(booster_scheme(SLABS, catalogType={"family": "Footwear", "brand": "Stride"}))
    assert matches(sale(article_id="A1"), scheme, CATEGORIES, {})
    assert not matches(sale(article_id="A2"), scheme, CATEGORIES, {})


def test_unmapped_article_rejected_when_hierarchy_active():
    scheme = normalize_scheme(booster_scheme(SLABS, catalogType={"class": "Sports"}))
    assert not matches(sale(article_id="UNMAPPED"), scheme, CATEGORIES, {})


def test_unmapped_article_accepted_without_hierarchy():
    scheme = normalize_scheme(booster_scheme(SLABS, catalogType={"family": "all-families"}))
    assert matches(sale(article_id="UNMAPPED"), scheme, CATEGORIES, {})


def test_other_article_override_supersedes_hierarchy():
    scheme = normalize_scheme(booster_scheme(SLABS, catalogType={
        "article": "others",
        "specificArticleIds": "A2,A7",
        "family": "Footwear",
    }))
    # A2 is Apparel, but the override list wins
    assert matches(sale(article_id="A2"), scheme, CATEGORIES, {})
    assert matches(sale(article_id="A7"), scheme, CATEGORIES, {})
    assert not matches(sale(article_id="A1"), scheme, CATEGORIES, {})


def test_article_table_skips_hierarchy_filter():
    scheme = normalize_scheme(article_scheme({"A2": 5}, catalogType={"family": "Footwear"}))
    assert matches(sale(article_id="A2"), scheme, CATEGORIES, {})
    assert matches(sale(article_id="UNMAPPED"), scheme, CATEGORIES, {})
