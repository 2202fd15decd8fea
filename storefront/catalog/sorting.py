"""Sort directive validation.

A sort directive is a string "<column>-<direction>", e.g. "price-asc".
Columns are resolved through a closed allow-list; an unknown direction
voids the directive and the default order applies.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlalchemy import UnaryExpression

from storefront.catalog.models import Product
from storefront.domain.exceptions import ValidationError


class SortDirection(str, Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"


SORTABLE_COLUMNS: dict[str, Any] = {
    "price": Product.price,
    "old_price": Product.old_price,
    "discount": Product.discount,
    "rating": Product.rating,
    "created_at": Product.created_at,
    "name": Product.name,
}


@dataclass(frozen=True)
class SortDirective:
    """Validated sort column and direction."""

    column: str
    direction: SortDirection

    def order_by(self) -> list[UnaryExpression[Any]]:
        """Ordering clauses, with the primary key as tiebreaker."""
        column = SORTABLE_COLUMNS[self.column]
        primary = column.desc() if self.direction is SortDirection.DESC else column.asc()
        return [primary, Product.id.asc()]

    def __str__(self) -> str:
        return f"{self.column}-{self.direction.value}"


def default_order_by() -> list[UnaryExpression[Any]]:
    """Ordering used when no valid directive is given.

    Offset paging needs a total order, otherwise rows can repeat or vanish
    between pages.
    """
    return [Product.id.asc()]


def parse_sort_directive(raw: str | None) -> SortDirective | None:
    """Parse and validate a sort directive.

    Args:
        raw: Directive string such as "price-desc", or None.

    Returns:
        The directive, or None when absent or when the direction is not
        "asc"/"desc".

    Raises:
        ValidationError: If the column is not sortable.
    """
    if not raw:
        return None

    column, sep, direction = raw.strip().rpartition("-")
    if not sep:
        return None

    try:
        parsed_direction = SortDirection(direction)
    except ValueError:
        return None

    if column not in SORTABLE_COLUMNS:
        raise ValidationError(
            "sortBy",
            raw,
            f"'{column}' is not sortable; choose from {sorted(SORTABLE_COLUMNS)}",
        )

    return SortDirective(column=column, direction=parsed_direction)
