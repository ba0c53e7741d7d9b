import pytest

from app.models.property import Furnishing, ListingType, PropertyStatus
from app.services.listing_search import SortKey, parse_sort
from app.utils.parsing import parse_enum, parse_numeric, slugify


@pytest.mark.parametrize("text,expected", [
    ("AED 2,500,000", 2500000),
    ("1,450 sq ft", 1450),
    ("AED 95,000 / year", 95000),
    ("1,234.75 sqft", 1234),
    ("Price on request", 0),
    ("", 0),
    (None, 0),
])
def test_parse_numeric(text, expected):
    assert parse_numeric(text) == expected


def test_parse_enum_accepts_value_name_and_case():
    assert parse_enum(ListingType, "off-plan") == ListingType.OFF_PLAN
    assert parse_enum(ListingType, "OFF_PLAN") == ListingType.OFF_PLAN
    assert parse_enum(Furnishing, "semi-furnished") == Furnishing.SEMI_FURNISHED
    assert parse_enum(PropertyStatus, PropertyStatus.SOLD) == PropertyStatus.SOLD


@pytest.mark.parametrize("raw", [None, "", "   ", "castle", 42])
def test_parse_enum_unknown_is_unspecified(raw):
    assert parse_enum(ListingType, raw) is None


def test_unknown_sort_falls_back_to_newest():
    assert parse_sort("cheapest") == SortKey.NEWEST
    assert parse_sort(None) == SortKey.NEWEST
    assert parse_sort("price_desc") == SortKey.PRICE_DESC


def test_slugify():
    assert slugify("Marina Homes Real Estate L.L.C") == "marina-homes-real-estate-l-l-c"
    assert slugify("  Al Noor  ") == "al-noor"
