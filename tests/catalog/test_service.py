"""Tests for CatalogService against the demo catalog."""

from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    OperationalError,
    ProgrammingError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from storefront.catalog.filters import FilterRequest
from storefront.catalog.inputs import ProductInput
from storefront.catalog.pagination import MAX_PAGE_NUMBER
from storefront.catalog.repository import ProductRepository
from storefront.catalog.service import CatalogService, storage_error
from storefront.domain.exceptions import (
    ConstraintError,
    NotFoundError,
    TransientStorageError,
    ValidationError,
)


async def _all_ids(service: CatalogService, **kwargs) -> list[int]:
    result = await service.list_products(page_size=100, **kwargs)
    assert result.success, result.error
    return [p.id for p in result.page.items]


def _new_product(**overrides) -> dict:
    values = {
        "name": "Canvas Low",
        "price": "59.90",
        "old_price": "79.90",
        "discount": 25,
        "rating": "4.0",
        "colors": ["white"],
        "brands": [1],
        "gender": "unisex",
        "occasion": ["casual"],
    }
    values.update(overrides)
    return values


class TestListProductsPaging:
    """Tests for paging through the catalog."""

    @pytest.mark.asyncio
    async def test_default_listing(self, service: CatalogService) -> None:
        """Default listing returns the first page in id order."""
        result = await service.list_products()

        assert result.success
        page = result.page
        assert page.total_count == 11
        assert page.page_size == 10
        assert page.last_page == 2
        assert [p.id for p in page.items] == list(range(1, 11))
        assert page.num_of_results_on_cur_page == 10

    @pytest.mark.asyncio
    async def test_pages_sum_to_total(self, service: CatalogService) -> None:
        """Items across all pages add up to the total count with no repeats."""
        first = await service.list_products(page_no=1, page_size=4, sort_by="price-asc")
        assert first.page.last_page == 3

        seen: list[int] = []
        for page_no in range(1, first.page.last_page + 1):
            result = await service.list_products(
                page_no=page_no, page_size=4, sort_by="price-asc"
            )
            seen.extend(p.id for p in result.page.items)

        assert len(seen) == first.page.total_count
        assert len(set(seen)) == len(seen)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("filters", "sort_by", "expected_total"),
        [
            ({"brandId": "1,2"}, "price-desc", 5),
            ({"discount": "10-50"}, "discount-asc", 8),
            ({"occasions": "casual,party"}, None, 6),
            ({"categoryId": "1,3"}, "rating-desc", 7),
            ({"gender": "unisex", "priceRangeTo": "100"}, "name-asc", 2),
        ],
    )
    async def test_filtered_pages_sum_to_total(
        self,
        service: CatalogService,
        filters: dict,
        sort_by: str | None,
        expected_total: int,
    ) -> None:
        """Paging through a filtered listing yields each match exactly once."""
        first = await service.list_products(page_size=2, sort_by=sort_by, filters=filters)
        assert first.page.total_count == expected_total

        seen: list[int] = []
        for page_no in range(1, first.page.last_page + 1):
            result = await service.list_products(
                page_no=page_no, page_size=2, sort_by=sort_by, filters=filters
            )
            assert result.page.total_count == expected_total
            seen.extend(p.id for p in result.page.items)

        assert len(seen) == expected_total
        assert len(set(seen)) == expected_total
        everything = await _all_ids(service, filters=filters)
        assert set(seen) == set(everything)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page_no", [10**18, "1e300"])
    async def test_huge_page_number_is_empty(
        self,
        service: CatalogService,
        statement_counter,
        page_no: object,
    ) -> None:
        """Absurdly large page numbers give an empty page without fetching."""
        statement_counter.reset()

        result = await service.list_products(page_no=page_no, page_size=10)

        assert result.success
        assert result.page.items == []
        assert result.page.total_count == 11
        assert result.page.page_no == MAX_PAGE_NUMBER
        assert len(statement_counter.matching("FROM products")) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page_no", [0, -5, "abc", None])
    async def test_unusable_page_number_means_first_page(
        self, service: CatalogService, page_no: object
    ) -> None:
        """Page numbers below 1 or non-numeric are served as page 1."""
        result = await service.list_products(page_no=page_no, page_size=3)

        assert result.page.page_no == 1
        assert [p.id for p in result.page.items] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_page_beyond_last_is_empty(self, service: CatalogService) -> None:
        """Requesting a page past the end is not an error."""
        result = await service.list_products(page_no=99, page_size=5)

        assert result.success
        assert result.page.items == []
        assert result.page.total_count == 11
        assert result.page.last_page == 3

    @pytest.mark.asyncio
    async def test_no_matches(self, service: CatalogService) -> None:
        """An empty result has last page 0."""
        result = await service.list_products(filters={"gender": "nobody"})

        assert result.success
        assert result.page.total_count == 0
        assert result.page.last_page == 0
        assert result.page.items == []

    @pytest.mark.asyncio
    async def test_oversized_page_rejected(self, service: CatalogService) -> None:
        """Page sizes above the maximum are a validation error."""
        result = await service.list_products(page_size=1000)

        assert not result.success
        assert isinstance(result.error, ValidationError)
        assert result.error.field == "pageSize"


class TestListProductsFilters:
    """Tests for filtering."""

    @pytest.mark.asyncio
    async def test_brand_filter_is_union(self, service: CatalogService) -> None:
        """brandId '1,2' returns products holding brand 1 or brand 2."""
        ids = await _all_ids(service, filters=FilterRequest(brand_id="1,2"))

        assert ids == [1, 2, 3, 5, 9]

    @pytest.mark.asyncio
    async def test_discount_range_inclusive(self, service: CatalogService) -> None:
        """discount '10-50' includes both bounds."""
        result = await service.list_products(page_size=100, filters={"discount": "10-50"})

        assert result.page.total_count == 8
        assert all(10 <= p.discount <= 50 for p in result.page.items)

    @pytest.mark.asyncio
    async def test_gender_and_occasions(self, service: CatalogService) -> None:
        """Fields combine with AND, occasions with OR."""
        ids = await _all_ids(
            service, filters={"gender": "women", "occasions": "party,formal"}
        )

        assert ids == [4, 5, 8]

    @pytest.mark.asyncio
    async def test_price_upper_bound(self, service: CatalogService) -> None:
        """priceRangeTo keeps products at or below the bound."""
        result = await service.list_products(page_size=100, filters={"priceRangeTo": "80"})

        assert result.page.total_count == 5
        assert all(p.price <= Decimal("80") for p in result.page.items)

    @pytest.mark.asyncio
    async def test_category_filter(self, service: CatalogService) -> None:
        """categoryId matches through the category links."""
        ids = await _all_ids(service, filters={"categoryId": "5"})

        assert ids == [1, 3, 9]

    @pytest.mark.asyncio
    async def test_count_matches_filtered_page(self, service: CatalogService) -> None:
        """Count and page use the same predicates."""
        result = await service.list_products(
            page_size=2, filters={"brandId": "1,2", "discount": "10-50"}
        )

        assert result.page.total_count == 4
        assert result.page.last_page == 2
        assert [p.id for p in result.page.items] == [1, 2]

    @pytest.mark.asyncio
    async def test_inverted_discount_is_validation_error(
        self,
        service: CatalogService,
        statement_counter,
    ) -> None:
        """'50-10' fails validation before any query runs."""
        statement_counter.reset()

        result = await service.list_products(filters={"discount": "50-10"})

        assert not result.success
        assert isinstance(result.error, ValidationError)
        assert result.error.field == "discount"
        assert statement_counter.statements == []

    @pytest.mark.asyncio
    async def test_non_numeric_brand_is_validation_error(self, service: CatalogService) -> None:
        """Non-numeric brand ids fail validation."""
        result = await service.list_products(filters={"brandId": "1,abc"})

        assert result.error.error_code == "VALIDATION_ERROR"
        assert result.page is None

    @pytest.mark.asyncio
    async def test_two_product_discount_scenario(self, empty_service: CatalogService) -> None:
        """Only the product inside the discount range is returned."""
        first = await empty_service.create_product(
            {"name": "First", "price": "10", "discount": 5}
        )
        second = await empty_service.create_product(
            {"name": "Second", "price": "20", "discount": 30}
        )

        result = await empty_service.list_products(filters={"discount": "10-50"})

        assert first.success and second.success
        assert [p.id for p in result.page.items] == [second.product.id]
        assert result.page.total_count == 1


class TestListProductsSorting:
    """Tests for sorting."""

    @pytest.mark.asyncio
    async def test_price_ascending(self, service: CatalogService) -> None:
        """price-asc yields a non-decreasing price sequence."""
        result = await service.list_products(page_size=100, sort_by="price-asc")

        prices = [p.price for p in result.page.items]
        assert prices == sorted(prices)
        assert result.page.sort == "price-asc"

    @pytest.mark.asyncio
    async def test_ties_broken_by_id(self, service: CatalogService) -> None:
        """Equal sort keys keep a stable id order."""
        ids = await _all_ids(service, sort_by="discount-desc")

        assert ids == [4, 8, 10, 6, 5, 1, 2, 9, 3, 7, 11]

    @pytest.mark.asyncio
    async def test_invalid_direction_uses_default_order(self, service: CatalogService) -> None:
        """'price-up' is not an error; default order applies."""
        result = await service.list_products(page_size=100, sort_by="price-up")

        assert result.success
        assert result.page.sort is None
        assert [p.id for p in result.page.items] == list(range(1, 12))

    @pytest.mark.asyncio
    async def test_unlisted_column_rejected(self, service: CatalogService) -> None:
        """Sorting by a column outside the allow-list fails."""
        result = await service.list_products(sort_by="description-asc")

        assert not result.success
        assert result.error.field == "sortBy"


class TestGetProduct:
    """Tests for single product reads."""

    @pytest.mark.asyncio
    async def test_get_existing(self, service: CatalogService) -> None:
        """An existing product is returned."""
        result = await service.get_product(1)

        assert result.success
        assert result.product.name == "Air Runner"
        assert result.product.occasions == ["sports", "casual"]

    @pytest.mark.asyncio
    async def test_missing_is_not_found(self, service: CatalogService) -> None:
        """A missing product is a NotFoundError result, not an exception."""
        result = await service.get_product(999)

        assert not result.success
        assert isinstance(result.error, NotFoundError)

    @pytest.mark.asyncio
    async def test_memoized_within_service(
        self,
        service: CatalogService,
        statement_counter,
    ) -> None:
        """Repeated reads in one request hit the database once."""
        statement_counter.reset()

        first = await service.get_product(2)
        second = await service.get_product(2)

        assert first.product is second.product
        assert len(statement_counter.matching("FROM products")) == 1

    @pytest.mark.asyncio
    async def test_memo_not_shared_between_services(
        self,
        service: CatalogService,
        session_factory,
        statement_counter,
    ) -> None:
        """A new service instance starts with an empty memo."""
        await service.get_product(2)
        statement_counter.reset()

        async with session_factory() as other_session:
            other = CatalogService(other_session, session_factory)
            await other.get_product(2)

        assert len(statement_counter.matching("FROM products")) == 1


class TestProductMutations:
    """Tests for create and update."""

    @pytest.mark.asyncio
    async def test_create_product(self, service: CatalogService) -> None:
        """A valid product is persisted and gets an id."""
        result = await service.create_product(_new_product())

        assert result.success
        product = result.product
        assert product.id == 12
        assert product.price == Decimal("59.90")
        assert product.occasions == ["casual"]

        listing = await service.list_products(filters={"occasions": "casual"}, page_size=100)
        assert 12 in [p.id for p in listing.page.items]

    @pytest.mark.asyncio
    async def test_create_accepts_model(self, service: CatalogService) -> None:
        """ProductInput instances are accepted directly."""
        result = await service.create_product(ProductInput(name="Mule", price=Decimal("30")))

        assert result.success
        assert result.product.brands == []
        assert result.product.discount == 0

    @pytest.mark.asyncio
    async def test_create_invalid_input(self, service: CatalogService) -> None:
        """Invalid input is a validation error naming the field."""
        result = await service.create_product(_new_product(discount=150))

        assert not result.success
        assert isinstance(result.error, ValidationError)
        assert result.error.field == "discount"

    @pytest.mark.asyncio
    async def test_update_replaces_attributes(self, service: CatalogService) -> None:
        """Update overwrites every attribute, including lists."""
        result = await service.update_product(
            1, _new_product(name="Air Runner II", brands=[3])
        )

        assert result.success
        assert result.product.id == 1
        assert result.product.name == "Air Runner II"

        ids = await _all_ids(service, filters={"brandId": "1"})
        assert 1 not in ids

    @pytest.mark.asyncio
    async def test_update_missing_product(self, service: CatalogService) -> None:
        """Updating an unknown id is a NotFoundError result."""
        result = await service.update_product(999, _new_product())

        assert not result.success
        assert result.error.error_code == "NOT_FOUND"


class TestStorageErrors:
    """Tests for storage failure mapping."""

    def test_integrity_error_is_constraint_error(self) -> None:
        """IntegrityError maps to ConstraintError."""
        error = storage_error(IntegrityError("INSERT", {}, Exception("FOREIGN KEY")))

        assert isinstance(error, ConstraintError)

    @pytest.mark.parametrize(
        "exc",
        [
            OperationalError("SELECT", {}, Exception("server closed the connection")),
            PoolTimeoutError("QueuePool limit reached"),
            DBAPIError("SELECT", {}, Exception("reset"), connection_invalidated=True),
        ],
    )
    def test_infrastructure_faults_are_transient(self, exc: Exception) -> None:
        """Connection and pool failures are retryable."""
        error = storage_error(exc)

        assert isinstance(error, TransientStorageError)
        assert error.retryable

    def test_programming_error_propagates(self) -> None:
        """Unknown failures are not mapped."""
        assert storage_error(ProgrammingError("SELECT", {}, Exception("syntax"))) is None

    @pytest.mark.asyncio
    async def test_listing_reports_transient_failure(self, service: CatalogService) -> None:
        """A connection failure during listing is returned as a result."""
        failure = OperationalError("SELECT", {}, Exception("connection refused"))
        with patch.object(ProductRepository, "count", AsyncMock(side_effect=failure)):
            result = await service.list_products()

        assert not result.success
        assert result.error.error_code == "STORAGE_UNAVAILABLE"
        assert result.error.retryable
