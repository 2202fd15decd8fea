"""Catalog service for product operations.

High-level service that composes the predicate builder, sort validator,
pagination and repository into the public catalog operations. Every
operation returns a result object; failures travel in ``result.error``
as a ``CatalogError`` instead of being raised.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

import pydantic
import structlog
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.catalog.cascade import CascadeDeleteOrchestrator, DeleteProductResult
from storefront.catalog.filters import FilterRequest, build_predicates
from storefront.catalog.inputs import ProductInput
from storefront.catalog.lookups import NOT_FOUND, CategoryRef, LookupBatcher
from storefront.catalog.models import Product
from storefront.catalog.pagination import PageWindow
from storefront.catalog.repository import ProductRepository
from storefront.catalog.sorting import parse_sort_directive
from storefront.domain.exceptions import (
    CatalogError,
    ConstraintError,
    NotFoundError,
    TransactionError,
    TransientStorageError,
    ValidationError,
)
from storefront.domain.state_machines import CascadeDeleteState
from storefront.infrastructure.config import settings

logger = structlog.get_logger()

T = TypeVar("T")


# ============================================================================
# Service Result Types
# ============================================================================


@dataclass
class ProductPage:
    """One page of a product listing.

    Attributes:
        items: Products on this page.
        total_count: Products matching the filter across all pages.
        last_page: Last page number (0 when nothing matches).
        page_no: Page that was served (>= 1).
        page_size: Requested page size.
        sort: Sort directive applied, or None for default order.
    """

    items: list[Product]
    total_count: int
    last_page: int
    page_no: int
    page_size: int
    sort: str | None = None

    @property
    def num_of_results_on_cur_page(self) -> int:
        """Number of items on this page."""
        return len(self.items)


@dataclass
class ListProductsResult:
    """Result of listing products."""

    page: ProductPage | None = None
    success: bool = True
    error: CatalogError | None = None


@dataclass
class ProductResult:
    """Result of reading or writing a single product."""

    product: Product | None = None
    success: bool = True
    error: CatalogError | None = None


@dataclass
class LookupResult(Generic[T]):
    """Result of a batched lookup.

    ``values`` holds every requested id; missing ones map to ``NOT_FOUND``.
    """

    values: dict[int, T] = field(default_factory=dict)
    success: bool = True
    error: CatalogError | None = None


@dataclass
class CategoriesResult:
    """Result of reading the categories of one product."""

    categories: list[CategoryRef] = field(default_factory=list)
    success: bool = True
    error: CatalogError | None = None


def storage_error(exc: SQLAlchemyError) -> CatalogError | None:
    """Translate a storage failure into a catalog error.

    Returns:
        The matching CatalogError, or None when the failure is not a known
        storage condition and should propagate as a bug.
    """
    if isinstance(exc, IntegrityError):
        return ConstraintError(
            "Write rejected by a database constraint",
            details={"cause": str(exc.orig)},
        )
    if isinstance(exc, (OperationalError, InterfaceError, PoolTimeoutError)) or (
        isinstance(exc, DBAPIError) and exc.connection_invalidated
    ):
        return TransientStorageError(
            "Storage temporarily unavailable",
            details={"cause": str(exc)},
        )
    return None


# ============================================================================
# Catalog Service
# ============================================================================


class CatalogService:
    """Service for catalog operations.

    One instance serves one logical request: ``get_product`` results are
    memoized on the instance and discarded with it.

    Example usage:
        async with async_session_factory() as session:
            service = CatalogService(session, async_session_factory)
            result = await service.list_products(
                page_no=2,
                page_size=10,
                sort_by="price-asc",
                filters=FilterRequest(brand_id="1,2", discount="10-50"),
            )
            if result.success:
                print(result.page.total_count, result.page.last_page)
    """

    def __init__(
        self,
        session: AsyncSession,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        request_id: str | None = None,
        default_page_size: int | None = None,
        max_page_size: int | None = None,
        lookup_batch_size: int | None = None,
    ) -> None:
        """Initialize service with database session.

        Args:
            session: Async SQLAlchemy session for reads and single-row writes.
            session_factory: Factory for the dedicated cascade delete session.
            request_id: Request ID for correlation.
            default_page_size: Page size used when none is requested.
            max_page_size: Upper bound on the page size.
            lookup_batch_size: Maximum ids per lookup query.
        """
        self.session = session
        self.session_factory = session_factory
        self.request_id = request_id
        self.default_page_size = default_page_size or settings.default_page_size
        self.max_page_size = max_page_size or settings.max_page_size
        self.repository = ProductRepository(session)
        self.lookups = LookupBatcher(session, lookup_batch_size or settings.lookup_batch_size)
        self._product_memo: dict[int, Product] = {}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_products(
        self,
        page_no: Any = 1,
        page_size: Any = None,
        sort_by: str | None = None,
        filters: FilterRequest | Mapping[str, Any] | None = None,
    ) -> ListProductsResult:
        """List products with filters, sorting and pagination.

        All input is validated before the first query runs. The count and
        the page fetch share one predicate set.

        Args:
            page_no: Requested page; missing or < 1 means page 1.
            page_size: Rows per page; defaults to the configured size.
            sort_by: Sort directive "<column>-<asc|desc>".
            filters: Filter request or a mapping of query-string values.

        Returns:
            ListProductsResult with the page and its counts.
        """
        try:
            if filters is not None and not isinstance(filters, FilterRequest):
                filters = FilterRequest.from_mapping(filters)
            predicates = build_predicates(filters)
            window = PageWindow.resolve(
                page_no,
                self.default_page_size if page_size is None else page_size,
                self.max_page_size,
            )
            sort = parse_sort_directive(sort_by)

            total = await self.repository.count(predicates)
            # Pages past the end are empty; their offset may not even fit
            # the database's integer type.
            items = []
            if window.offset < total:
                items = await self.repository.find_page(
                    predicates, sort, offset=window.offset, limit=window.limit
                )
        except CatalogError as e:
            return self._list_failed(e)
        except SQLAlchemyError as e:
            error = storage_error(e)
            if error is None:
                raise
            return self._list_failed(error)

        page = ProductPage(
            items=list(items),
            total_count=total,
            last_page=window.last_page(total),
            page_no=window.page_no,
            page_size=window.page_size,
            sort=str(sort) if sort else None,
        )
        logger.info(
            "Products listed",
            filters=list(predicates.fields),
            sort=page.sort,
            page_no=page.page_no,
            page_size=page.page_size,
            total_count=page.total_count,
            num_of_results_on_cur_page=page.num_of_results_on_cur_page,
            request_id=self.request_id,
        )
        return ListProductsResult(page=page)

    async def get_product(self, product_id: int) -> ProductResult:
        """Get product by ID, memoized for the life of this service.

        Args:
            product_id: Product ID.

        Returns:
            ProductResult; a missing product yields a NotFoundError result.
        """
        cached = self._product_memo.get(product_id)
        if cached is not None:
            return ProductResult(product=cached)

        try:
            product = await self.repository.get_by_id(product_id)
        except SQLAlchemyError as e:
            error = storage_error(e)
            if error is None:
                raise
            return self._product_failed("get", product_id, error)

        if product is None:
            return ProductResult(success=False, error=NotFoundError("Product", product_id))

        self._product_memo[product_id] = product
        return ProductResult(product=product)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_product(self, data: ProductInput | Mapping[str, Any]) -> ProductResult:
        """Validate and insert a new product.

        Args:
            data: Full product attribute set.

        Returns:
            ProductResult with the persisted row.
        """
        try:
            product_input = self._coerce_input(data)
            product = await self.repository.add(product_input.to_columns())
            await self.session.commit()
        except CatalogError as e:
            return self._product_failed("create", None, e)
        except SQLAlchemyError as e:
            await self.session.rollback()
            error = storage_error(e)
            if error is None:
                raise
            return self._product_failed("create", None, error)

        self._product_memo[product.id] = product
        logger.info("Product created", product_id=product.id, request_id=self.request_id)
        return ProductResult(product=product)

    async def update_product(
        self, product_id: int, data: ProductInput | Mapping[str, Any]
    ) -> ProductResult:
        """Replace every attribute of an existing product.

        Args:
            product_id: Product to update.
            data: Full product attribute set.

        Returns:
            ProductResult with the persisted row, or a NotFoundError result.
        """
        try:
            product_input = self._coerce_input(data)
            product = await self.repository.get_by_id(product_id)
            if product is None:
                raise NotFoundError("Product", product_id)
            product = await self.repository.replace(product, product_input.to_columns())
            await self.session.commit()
        except CatalogError as e:
            return self._product_failed("update", product_id, e)
        except SQLAlchemyError as e:
            await self.session.rollback()
            error = storage_error(e)
            if error is None:
                raise
            return self._product_failed("update", product_id, error)

        self._product_memo[product_id] = product
        logger.info("Product updated", product_id=product_id, request_id=self.request_id)
        return ProductResult(product=product)

    async def delete_product(self, product_id: int) -> DeleteProductResult:
        """Delete a product and its category links, reviews and comments.

        Args:
            product_id: Product to delete.

        Returns:
            DeleteProductResult from the cascade orchestrator.
        """
        if self.session_factory is None:
            error = TransactionError(
                "Cascade delete needs a dedicated session; none configured",
                details={"product_id": product_id},
            )
            logger.warning(
                "Product delete aborted",
                product_id=product_id,
                error_code=error.error_code,
                error=error.message,
                request_id=self.request_id,
            )
            return DeleteProductResult(
                product_id=product_id,
                success=False,
                error=error,
                states=[CascadeDeleteState.START, CascadeDeleteState.ABORTED],
            )

        # The request session may hold an open read transaction; end it so
        # the cascade connection is not blocked behind it.
        await self.session.commit()

        orchestrator = CascadeDeleteOrchestrator(self.session_factory, self.request_id)
        result = await orchestrator.delete_product(product_id)
        if result.success:
            self._product_memo.pop(product_id, None)
        return result

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def resolve_brand_names(self, ids: Iterable[Any]) -> LookupResult[Any]:
        """Map brand ids to names in batched round trips."""
        try:
            values = await self.lookups.resolve_brand_names(ids)
        except CatalogError as e:
            return LookupResult(success=False, error=e)
        except SQLAlchemyError as e:
            error = storage_error(e)
            if error is None:
                raise
            return LookupResult(success=False, error=error)
        return LookupResult(values=values)

    async def resolve_product_categories(self, product_ids: Iterable[Any]) -> LookupResult[Any]:
        """Map product ids to their categories in batched round trips."""
        try:
            values = await self.lookups.resolve_product_categories(product_ids)
        except CatalogError as e:
            return LookupResult(success=False, error=e)
        except SQLAlchemyError as e:
            error = storage_error(e)
            if error is None:
                raise
            return LookupResult(success=False, error=error)
        return LookupResult(values=values)

    async def get_product_categories(self, product_id: int) -> CategoriesResult:
        """Get the categories of a single product."""
        lookup = await self.resolve_product_categories([product_id])
        if not lookup.success:
            return CategoriesResult(success=False, error=lookup.error)

        categories = lookup.values[product_id]
        if categories is NOT_FOUND:
            return CategoriesResult(success=False, error=NotFoundError("Product", product_id))
        return CategoriesResult(categories=categories)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _coerce_input(self, data: ProductInput | Mapping[str, Any]) -> ProductInput:
        if isinstance(data, ProductInput):
            return data
        try:
            return ProductInput.model_validate(dict(data))
        except pydantic.ValidationError as e:
            first = e.errors()[0]
            field_name = ".".join(str(part) for part in first["loc"]) or "product"
            raise ValidationError(field_name, first.get("input"), first["msg"]) from None

    def _list_failed(self, error: CatalogError) -> ListProductsResult:
        logger.warning(
            "Product listing failed",
            error_code=error.error_code,
            error=error.message,
            request_id=self.request_id,
        )
        return ListProductsResult(success=False, error=error)

    def _product_failed(
        self, operation: str, product_id: int | None, error: CatalogError
    ) -> ProductResult:
        logger.warning(
            "Product operation failed",
            operation=operation,
            product_id=product_id,
            error_code=error.error_code,
            error=error.message,
            request_id=self.request_id,
        )
        return ProductResult(success=False, error=error)
