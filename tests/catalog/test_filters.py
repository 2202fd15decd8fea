"""Tests for the filter predicate builder."""

from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.dialects import mysql, postgresql, sqlite

from storefront.catalog.filters import (
    FilterRequest,
    PredicateSet,
    build_predicates,
    json_contains,
    parse_discount_range,
)
from storefront.catalog.models import Product
from storefront.domain.exceptions import ValidationError


def _sql(clause, dialect) -> str:
    return str(clause.compile(dialect=dialect))


class TestFilterRequest:
    """Tests for FilterRequest construction."""

    def test_from_mapping_accepts_camel_case(self) -> None:
        """Query-string keys map onto snake_case fields."""
        request = FilterRequest.from_mapping(
            {"brandId": "1,2", "priceRangeTo": 80, "gender": "women", "unknown": "x"}
        )

        assert request == FilterRequest(brand_id="1,2", price_range_to="80", gender="women")

    def test_from_mapping_accepts_snake_case(self) -> None:
        """snake_case keys are accepted as well."""
        request = FilterRequest.from_mapping({"category_id": "5", "discount": "10-50"})

        assert request.category_id == "5"
        assert request.discount == "10-50"

    def test_from_mapping_skips_none(self) -> None:
        """None values mean no filter."""
        assert FilterRequest.from_mapping({"brandId": None}) == FilterRequest()


class TestBuildPredicates:
    """Tests for build_predicates."""

    def test_none_request_has_no_clauses(self) -> None:
        """No request yields an empty predicate set."""
        predicates = build_predicates(None)

        assert not predicates
        assert predicates.fields == ()

    def test_empty_strings_mean_no_filter(self) -> None:
        """Empty values are ignored."""
        predicates = build_predicates(FilterRequest(brand_id="", gender="", discount=""))

        assert predicates == PredicateSet()

    def test_fields_recorded_in_order(self) -> None:
        """Every supplied field produces exactly one clause."""
        predicates = build_predicates(
            FilterRequest(
                brand_id="1,2",
                category_id="5",
                gender="men",
                occasions="sports",
                discount="10-50",
                price_range_to="120",
            )
        )

        assert predicates.fields == (
            "brandId",
            "categoryId",
            "gender",
            "occasions",
            "discount",
            "priceRangeTo",
        )
        assert len(predicates.clauses) == 6

    def test_apply_adds_where_clause(self) -> None:
        """apply restricts the query."""
        predicates = build_predicates(FilterRequest(gender="women"))
        query = predicates.apply(select(Product.id))

        assert "WHERE products.gender" in _sql(query, sqlite.dialect())

    def test_apply_without_clauses_returns_query(self) -> None:
        """An empty set leaves the query untouched."""
        query = select(Product.id)

        assert PredicateSet().apply(query) is query

    @pytest.mark.parametrize(
        ("request_", "field"),
        [
            (FilterRequest(brand_id="1,abc"), "brandId"),
            (FilterRequest(brand_id="1,,2"), "brandId"),
            (FilterRequest(category_id="x"), "categoryId"),
            (FilterRequest(occasions="party,"), "occasions"),
            (FilterRequest(discount="50-10"), "discount"),
            (FilterRequest(discount="10"), "discount"),
            (FilterRequest(discount="a-b"), "discount"),
            (FilterRequest(discount="10-20-30"), "discount"),
            (FilterRequest(price_range_to="cheap"), "priceRangeTo"),
            (FilterRequest(price_range_to="NaN"), "priceRangeTo"),
        ],
    )
    def test_malformed_values_raise(self, request_: FilterRequest, field: str) -> None:
        """Malformed values raise ValidationError naming the field."""
        with pytest.raises(ValidationError) as exc_info:
            build_predicates(request_)

        assert exc_info.value.field == field


class TestParseDiscountRange:
    """Tests for parse_discount_range."""

    def test_parses_inclusive_bounds(self) -> None:
        """'10-50' parses to its two bounds."""
        assert parse_discount_range("10-50") == (Decimal("10"), Decimal("50"))

    def test_equal_bounds_allowed(self) -> None:
        """A single-value range is valid."""
        assert parse_discount_range("20-20") == (Decimal("20"), Decimal("20"))

    def test_inverted_range_rejected(self) -> None:
        """A range whose start exceeds its end is rejected."""
        with pytest.raises(ValidationError, match="greater than"):
            parse_discount_range("50-10")


class TestJsonContains:
    """Tests for dialect-specific JSON containment."""

    def test_postgresql_uses_jsonb_containment(self) -> None:
        """PostgreSQL compiles to the @> operator."""
        sql = _sql(json_contains(Product.brands, 1), postgresql.dialect())

        assert "CAST(products.brands AS JSONB) @>" in sql

    def test_sqlite_uses_json_each(self) -> None:
        """SQLite compiles to a json_each join."""
        sql = _sql(json_contains(Product.brands, 1), sqlite.dialect())

        assert "json_each(products.brands)" in sql
        assert sql.startswith("EXISTS")

    def test_mysql_uses_json_contains(self) -> None:
        """MySQL uses its native JSON_CONTAINS."""
        sql = _sql(json_contains(Product.occasions, "party"), mysql.dialect())

        assert sql.startswith("JSON_CONTAINS(products.occasion")

    def test_needle_is_bound_not_inlined(self) -> None:
        """The searched value travels as a bound parameter."""
        compiled = json_contains(Product.occasions, "party'; --").compile(
            dialect=sqlite.dialect()
        )

        assert "party" not in str(compiled)
        assert '["party\'; --"]' in compiled.params.values()
