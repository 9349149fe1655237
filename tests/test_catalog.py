import pytest

from grantplan.core.config import DEFAULT_PRODUCTS
from grantplan.core.pagination import pagination_meta, parse_pagination
from grantplan.services.catalog import ProductCatalog
from grantplan.services.errors import InvalidProductError


def test_default_catalog_knows_legacy_ids():
    catalog = ProductCatalog(DEFAULT_PRODUCTS)
    assert catalog.get("business_plan_3").credits == 3
    assert catalog.get("credit-5").price == 119900


def test_unknown_product():
    with pytest.raises(InvalidProductError):
        ProductCatalog(DEFAULT_PRODUCTS).get("business_plan_99")
    with pytest.raises(InvalidProductError):
        ProductCatalog(DEFAULT_PRODUCTS).get(None)


def test_catalog_from_env(monkeypatch):
    monkeypatch.setenv("PRODUCTS_JSON", '{"promo": {"name": "Promo", "credits": 2, "price": 30000}}')
    catalog = ProductCatalog.from_config()
    assert [p.id for p in catalog.list()] == ["promo"]


@pytest.mark.parametrize("definition", [{"credits": 0, "price": 1}, {"credits": 1, "price": -1}])
def test_invalid_definitions_are_refused(definition):
    with pytest.raises(ValueError):
        ProductCatalog({"bad": definition})


@pytest.mark.parametrize(
    "page, limit, expected",
    [
        (1, 10, {"page": 1, "limit": 10, "skip": 0}),
        (3, 20, {"page": 3, "limit": 20, "skip": 40}),
        (0, 500, {"page": 1, "limit": 100, "skip": 0}),
        ("abc", "0", {"page": 1, "limit": 1, "skip": 0}),
        (None, None, {"page": 1, "limit": 10, "skip": 0}),
    ],
)
def test_parse_pagination(page, limit, expected):
    assert parse_pagination(page, limit) == expected


def test_pagination_meta():
    assert pagination_meta(1, 10, 0)["totalPages"] == 0
    assert pagination_meta(2, 10, 21)["totalPages"] == 3
