"""Pagination arithmetic."""

import math
from dataclasses import dataclass
from typing import Any

from storefront.domain.exceptions import ValidationError


MAX_PAGE_NUMBER = 2**31 - 1


def normalize_page_number(page_no: Any) -> int:
    """Clamp a requested page number to a usable 1-based value.

    Missing, non-numeric and non-positive values all mean page 1.
    Fractional values are truncated; values above ``MAX_PAGE_NUMBER`` are
    capped, which still lies past the last page of any real catalog.
    """
    if page_no is None or isinstance(page_no, bool):
        return 1
    if isinstance(page_no, int):
        return min(max(page_no, 1), MAX_PAGE_NUMBER)
    try:
        number = float(page_no)
    except (TypeError, ValueError):
        return 1
    if not math.isfinite(number):
        return 1
    return min(max(int(number), 1), MAX_PAGE_NUMBER)


def validate_page_size(page_size: Any, max_page_size: int | None = None) -> int:
    """Validate the page size.

    Raises:
        ValidationError: If the size is not a positive integer or exceeds
            ``max_page_size``.
    """
    if isinstance(page_size, bool) or not isinstance(page_size, int):
        try:
            page_size = int(str(page_size))
        except ValueError:
            raise ValidationError("pageSize", page_size, "not an integer") from None
    if page_size <= 0:
        raise ValidationError("pageSize", page_size, "must be greater than zero")
    if max_page_size is not None and page_size > max_page_size:
        raise ValidationError("pageSize", page_size, f"must not exceed {max_page_size}")
    return page_size


def page_offset(page_no: int, page_size: int) -> int:
    """Zero-based row offset of a page."""
    return (max(page_no, 1) - 1) * page_size


def last_page(total_count: int, page_size: int) -> int:
    """Number of the last page; 0 when there are no rows."""
    if total_count <= 0:
        return 0
    return math.ceil(total_count / page_size)


@dataclass(frozen=True)
class PageWindow:
    """Resolved paging parameters for one request.

    Attributes:
        page_no: Clamped page number (>= 1).
        page_size: Rows per page.
        offset: Rows to skip.
    """

    page_no: int
    page_size: int
    offset: int

    @property
    def limit(self) -> int:
        """Get limit (alias for page_size)."""
        return self.page_size

    @classmethod
    def resolve(
        cls,
        page_no: Any,
        page_size: Any,
        max_page_size: int | None = None,
    ) -> "PageWindow":
        """Clamp the page number and validate the page size."""
        size = validate_page_size(page_size, max_page_size)
        number = normalize_page_number(page_no)
        return cls(page_no=number, page_size=size, offset=page_offset(number, size))

    def last_page(self, total_count: int) -> int:
        """Last page number for ``total_count`` rows."""
        return last_page(total_count, self.page_size)
