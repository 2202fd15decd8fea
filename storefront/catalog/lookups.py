"""Batched foreign identifier resolution.

Display code needs brand names for the brand ids held in a page of
products, and category lists for the products on that page. Resolving
those one id at a time costs a round trip per id; ``LookupBatcher`` issues
one query per chunk of distinct ids instead.
"""

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any, Final, TypeVar

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.catalog.models import Brand, Category, Product, ProductCategory
from storefront.domain.exceptions import ValidationError

logger = structlog.get_logger()

T = TypeVar("T")

DEFAULT_BATCH_SIZE = 500


class _NotFound:
    """Marker for an id that was requested but has no matching row."""

    _instance: "_NotFound | None" = None

    def __new__(cls) -> "_NotFound":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND: Final = _NotFound()


@dataclass(frozen=True)
class CategoryRef:
    """Category as attached to a product."""

    id: int
    name: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"id": self.id, "name": self.name}


def distinct_ids(ids: Iterable[Any], field_name: str = "ids") -> list[int]:
    """Coerce ids to int and drop duplicates, keeping first-seen order.

    Raises:
        ValidationError: If an id is not an integer.
    """
    seen: dict[int, None] = {}
    for raw in ids:
        if isinstance(raw, bool):
            raise ValidationError(field_name, raw, "not an integer id")
        try:
            seen.setdefault(int(raw), None)
        except (TypeError, ValueError):
            raise ValidationError(field_name, raw, "not an integer id") from None
    return list(seen)


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Split ``items`` into consecutive slices of at most ``size``."""
    for start in range(0, len(items), size):
        yield items[start : start + size]


class LookupBatcher:
    """Resolves sets of foreign ids with one query per batch.

    Every requested id appears as a key in the returned mapping; ids with
    no matching row map to ``NOT_FOUND``.

    Example usage:
        async with get_session() as session:
            batcher = LookupBatcher(session)
            names = await batcher.resolve_brand_names([7, 999, 7])
            # {7: "Acme", 999: NOT_FOUND}
    """

    def __init__(self, session: AsyncSession, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        """Initialize batcher.

        Args:
            session: Async SQLAlchemy session.
            batch_size: Maximum ids per IN-list.
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.session = session
        self.batch_size = batch_size

    async def resolve_brand_names(self, ids: Iterable[Any]) -> dict[int, str | _NotFound]:
        """Map brand ids to brand names.

        Args:
            ids: Brand ids; duplicates allowed, order irrelevant.

        Returns:
            Mapping from every requested id to its name or ``NOT_FOUND``.
        """
        wanted = distinct_ids(ids)
        resolved: dict[int, str | _NotFound] = dict.fromkeys(wanted, NOT_FOUND)

        round_trips = 0
        for batch in chunked(wanted, self.batch_size):
            result = await self.session.execute(
                select(Brand.id, Brand.name).where(Brand.id.in_(batch))
            )
            round_trips += 1
            for brand_id, name in result.all():
                resolved[brand_id] = name

        logger.debug(
            "Brand names resolved",
            requested=len(wanted),
            missing=sum(1 for v in resolved.values() if v is NOT_FOUND),
            round_trips=round_trips,
        )
        return resolved

    async def resolve_product_categories(
        self, product_ids: Iterable[Any]
    ) -> dict[int, list[CategoryRef] | _NotFound]:
        """Map product ids to the categories they are linked to.

        An existing product with no category links maps to an empty list;
        an id with no product row maps to ``NOT_FOUND``.

        Args:
            product_ids: Product ids; duplicates allowed, order irrelevant.

        Returns:
            Mapping from every requested id to its categories or ``NOT_FOUND``.
        """
        wanted = distinct_ids(product_ids, "productIds")
        resolved: dict[int, list[CategoryRef] | _NotFound] = dict.fromkeys(wanted, NOT_FOUND)

        for batch in chunked(wanted, self.batch_size):
            query = (
                select(Product.id, Category.id, Category.name)
                .outerjoin(ProductCategory, ProductCategory.product_id == Product.id)
                .outerjoin(Category, Category.id == ProductCategory.category_id)
                .where(Product.id.in_(batch))
                .order_by(Product.id, Category.id)
            )
            result = await self.session.execute(query)
            for product_id, category_id, category_name in result.all():
                categories = resolved[product_id]
                if categories is NOT_FOUND:
                    categories = []
                    resolved[product_id] = categories
                if category_id is not None:
                    categories.append(CategoryRef(id=category_id, name=category_name))

        return resolved
