"""Product repository for database operations.

Every listing query takes a ``PredicateSet`` built once by the caller, so
counting and fetching can never drift apart.
"""

from collections.abc import Sequence
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.catalog.filters import PredicateSet
from storefront.catalog.models import Product
from storefront.catalog.sorting import SortDirective, default_order_by


class ProductRepository:
    """Repository for Product database operations.

    Example usage:
        async with get_session() as session:
            repo = ProductRepository(session)
            predicates = build_predicates(FilterRequest(gender="women"))
            total = await repo.count(predicates)
            products = await repo.find_page(predicates, None, offset=0, limit=10)
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    async def count(self, predicates: PredicateSet) -> int:
        """Count products matching ``predicates``."""
        query = predicates.apply(select(func.count(Product.id)))
        result = await self.session.execute(query)
        return int(result.scalar_one())

    async def find_page(
        self,
        predicates: PredicateSet,
        sort: SortDirective | None,
        offset: int,
        limit: int,
    ) -> Sequence[Product]:
        """Fetch one page of products matching ``predicates``.

        Args:
            predicates: Filter conditions, identical to those used for counting.
            sort: Validated sort directive, or None for default order.
            offset: Rows to skip.
            limit: Maximum rows.

        Returns:
            Products on the page.
        """
        order_by = sort.order_by() if sort else default_order_by()
        query = (
            predicates.apply(select(Product))
            .order_by(*order_by)
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def get_by_id(self, product_id: int) -> Product | None:
        """Get product by ID.

        Returns:
            Product if found, None otherwise.
        """
        result = await self.session.execute(select(Product).where(Product.id == product_id))
        return result.scalar_one_or_none()

    async def add(self, values: dict[str, Any]) -> Product:
        """Insert a product and flush to obtain its generated id."""
        product = Product(**values)
        self.session.add(product)
        await self.session.flush()
        await self.session.refresh(product)
        return product

    async def replace(self, product: Product, values: dict[str, Any]) -> Product:
        """Overwrite every attribute of ``product`` with ``values``."""
        for column, value in values.items():
            setattr(product, column, value)
        await self.session.flush()
        await self.session.refresh(product)
        return product
