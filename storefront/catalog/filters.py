"""Filter predicate builder.

Turns a loosely structured filter request (the raw query-string values a
storefront sends) into a ``PredicateSet``. The same predicate set is applied
to the count query and to the page query, so the reported total always
matches what paging through the results yields.
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, TypeVar

from sqlalchemy import Boolean, ColumnElement, Numeric, Select, and_, exists, literal, or_
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.functions import FunctionElement

from storefront.catalog.models import Product, ProductCategory
from storefront.domain.exceptions import ValidationError

S = TypeVar("S", bound=Select[Any])


# ============================================================================
# JSON array containment
# ============================================================================


class json_contains(FunctionElement):
    """True when the JSON array in ``column`` holds ``value``.

    Compiled per dialect, since each engine spells array containment
    differently.
    """

    type = Boolean()
    inherit_cache = True
    name = "json_contains"

    def __init__(self, column: Any, value: Any) -> None:
        super().__init__(column, literal(json.dumps([value])))


@compiles(json_contains)
def _compile_json_contains(element: json_contains, compiler: Any, **kw: Any) -> str:
    column, needle = list(element.clauses)
    return "JSON_CONTAINS(%s, %s)" % (
        compiler.process(column, **kw),
        compiler.process(needle, **kw),
    )


@compiles(json_contains, "postgresql")
def _compile_json_contains_pg(element: json_contains, compiler: Any, **kw: Any) -> str:
    column, needle = list(element.clauses)
    return "CAST(%s AS JSONB) @> CAST(%s AS JSONB)" % (
        compiler.process(column, **kw),
        compiler.process(needle, **kw),
    )


@compiles(json_contains, "sqlite")
def _compile_json_contains_sqlite(element: json_contains, compiler: Any, **kw: Any) -> str:
    column, needle = list(element.clauses)
    return (
        "EXISTS (SELECT 1 FROM json_each(%s) AS held "
        "JOIN json_each(%s) AS wanted ON held.value = wanted.value)"
        % (compiler.process(column, **kw), compiler.process(needle, **kw))
    )


# ============================================================================
# Filter request
# ============================================================================


@dataclass(frozen=True)
class FilterRequest:
    """Raw filter values as received from a client.

    Empty strings and None both mean "no filter on this field".

    Attributes:
        brand_id: Comma-separated brand ids, e.g. "1,2".
        category_id: Comma-separated category ids.
        gender: Exact gender value.
        occasions: Comma-separated occasion names.
        discount: Inclusive discount range "from-to", e.g. "10-50".
        price_range_to: Upper price bound.
    """

    brand_id: str | None = None
    category_id: str | None = None
    gender: str | None = None
    occasions: str | None = None
    discount: str | None = None
    price_range_to: str | None = None

    _ALIASES = {
        "brandId": "brand_id",
        "categoryId": "category_id",
        "priceRangeTo": "price_range_to",
    }

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "FilterRequest":
        """Build a request from query-string style keys.

        Accepts both camelCase (``brandId``) and snake_case (``brand_id``)
        keys; unknown keys are ignored.
        """
        known = {f for f in cls.__dataclass_fields__ if not f.startswith("_")}
        kwargs: dict[str, str] = {}
        for key, value in values.items():
            name = cls._ALIASES.get(key, key)
            if name in known and value is not None:
                kwargs[name] = str(value)
        return cls(**kwargs)


@dataclass(frozen=True)
class PredicateSet:
    """Conjunction of filter conditions.

    Attributes:
        clauses: SQL conditions combined with AND.
        fields: Names of the request fields that produced a clause.
    """

    clauses: tuple[ColumnElement[bool], ...] = ()
    fields: tuple[str, ...] = field(default=())

    def __bool__(self) -> bool:
        return bool(self.clauses)

    def apply(self, query: S) -> S:
        """Restrict ``query`` with every clause in the set."""
        if not self.clauses:
            return query
        return query.where(and_(*self.clauses))


# ============================================================================
# Parsing helpers
# ============================================================================


def _split(field_name: str, raw: str) -> list[str]:
    parts = [part.strip() for part in raw.split(",")]
    if any(not part for part in parts):
        raise ValidationError(field_name, raw, "empty entry in comma-separated list")
    return parts


def _parse_int_list(field_name: str, raw: str) -> list[int]:
    values = []
    for part in _split(field_name, raw):
        try:
            values.append(int(part))
        except ValueError:
            raise ValidationError(field_name, raw, f"'{part}' is not an integer") from None
    return values


def _parse_number(field_name: str, raw: str) -> Decimal:
    try:
        number = Decimal(raw.strip())
    except InvalidOperation:
        raise ValidationError(field_name, raw, "not a number") from None
    if not number.is_finite():
        raise ValidationError(field_name, raw, "not a finite number")
    return number


def parse_discount_range(raw: str) -> tuple[Decimal, Decimal]:
    """Parse an inclusive "from-to" discount range.

    Raises:
        ValidationError: If the range is malformed or inverted.
    """
    parts = raw.split("-")
    if len(parts) != 2:
        raise ValidationError("discount", raw, "expected '<from>-<to>'")
    low = _parse_number("discount", parts[0])
    high = _parse_number("discount", parts[1])
    if low > high:
        raise ValidationError("discount", raw, "range start is greater than range end")
    return low, high


# ============================================================================
# Builder
# ============================================================================


def build_predicates(request: FilterRequest | None) -> PredicateSet:
    """Build the predicate set for a filter request.

    Fields are combined with AND. Values within ``brand_id``,
    ``category_id`` and ``occasions`` are combined with OR.

    Args:
        request: Filter request, or None for no filtering.

    Returns:
        Predicate set shared by the count and page queries.

    Raises:
        ValidationError: On malformed values. Nothing is queried first.
    """
    if request is None:
        return PredicateSet()

    clauses: list[ColumnElement[bool]] = []
    fields: list[str] = []

    if request.brand_id:
        brand_ids = _parse_int_list("brandId", request.brand_id)
        clauses.append(or_(*(json_contains(Product.brands, bid) for bid in brand_ids)))
        fields.append("brandId")

    if request.category_id:
        category_ids = _parse_int_list("categoryId", request.category_id)
        clauses.append(
            exists().where(
                ProductCategory.product_id == Product.id,
                ProductCategory.category_id.in_(category_ids),
            )
        )
        fields.append("categoryId")

    if request.gender:
        clauses.append(Product.gender == request.gender)
        fields.append("gender")

    if request.occasions:
        occasion_list = _split("occasions", request.occasions)
        clauses.append(
            or_(*(json_contains(Product.occasions, occ) for occ in occasion_list))
        )
        fields.append("occasions")

    if request.discount:
        low, high = parse_discount_range(request.discount)
        # Bound as NUMERIC so fractional bounds compare against the integer column.
        clauses.append(
            Product.discount.between(literal(low, Numeric()), literal(high, Numeric()))
        )
        fields.append("discount")

    if request.price_range_to:
        price_to = _parse_number("priceRangeTo", request.price_range_to)
        clauses.append(Product.price <= price_to)
        fields.append("priceRangeTo")

    return PredicateSet(clauses=tuple(clauses), fields=tuple(fields))
