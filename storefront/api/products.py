"""Product API endpoints.

Listing, single-product reads, create/replace and cascade delete.
"""

from typing import Annotated

from fastapi import APIRouter, Query, status

from storefront.api.dependencies import CatalogServiceDep, catalog_http_error
from storefront.api.schemas import (
    CategorySchema,
    DeleteProductResponse,
    ErrorResponse,
    ProductListResponse,
    ProductResponse,
)
from storefront.catalog.filters import FilterRequest
from storefront.catalog.inputs import ProductInput

router = APIRouter(prefix="/products", tags=["Products"])


# ============================================================================
# Endpoints
# ============================================================================


@router.get(
    "",
    response_model=ProductListResponse,
    responses={400: {"model": ErrorResponse}},
    summary="List products",
    description="Filter, sort and paginate the catalog.",
)
async def list_products(
    service: CatalogServiceDep,
    page: Annotated[str | None, Query(description="Page number; values below 1 mean 1")] = None,
    page_size: Annotated[int | None, Query(alias="pageSize", description="Items per page")] = None,
    sort_by: Annotated[str | None, Query(alias="sortBy", description="e.g. price-asc")] = None,
    brand_id: Annotated[str | None, Query(alias="brandId", description="Comma list of brand ids")] = None,
    category_id: Annotated[str | None, Query(alias="categoryId", description="Comma list of category ids")] = None,
    gender: Annotated[str | None, Query()] = None,
    occasions: Annotated[str | None, Query(description="Comma list of occasions")] = None,
    discount: Annotated[str | None, Query(description="Inclusive range 'from-to'")] = None,
    price_range_to: Annotated[str | None, Query(alias="priceRangeTo", description="Maximum price")] = None,
) -> ProductListResponse:
    """List products.

    Returns:
        Page of products with total count and last page number.

    Raises:
        HTTPException: 400 on malformed filter, sort or page size.
    """
    filters = FilterRequest(
        brand_id=brand_id,
        category_id=category_id,
        gender=gender,
        occasions=occasions,
        discount=discount,
        price_range_to=price_range_to,
    )
    result = await service.list_products(
        page_no=page,
        page_size=page_size,
        sort_by=sort_by,
        filters=filters,
    )
    if not result.success or result.page is None:
        raise catalog_http_error(result.error)

    listing = result.page
    return ProductListResponse(
        items=[ProductResponse.model_validate(p) for p in listing.items],
        total_count=listing.total_count,
        last_page=listing.last_page,
        num_of_results_on_cur_page=listing.num_of_results_on_cur_page,
        page=listing.page_no,
        page_size=listing.page_size,
        sort_by=listing.sort,
    )


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get product",
)
async def get_product(product_id: int, service: CatalogServiceDep) -> ProductResponse:
    """Get a product by ID.

    Raises:
        HTTPException: If product not found.
    """
    result = await service.get_product(product_id)
    if not result.success or result.product is None:
        raise catalog_http_error(result.error)
    return ProductResponse.model_validate(result.product)


@router.get(
    "/{product_id}/categories",
    response_model=list[CategorySchema],
    responses={404: {"model": ErrorResponse}},
    summary="Get product categories",
)
async def get_product_categories(
    product_id: int, service: CatalogServiceDep
) -> list[CategorySchema]:
    """Get the categories a product is linked to."""
    result = await service.get_product_categories(product_id)
    if not result.success:
        raise catalog_http_error(result.error)
    return [CategorySchema(id=c.id, name=c.name) for c in result.categories]


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Create product",
)
async def create_product(body: ProductInput, service: CatalogServiceDep) -> ProductResponse:
    """Create a product from its full attribute set."""
    result = await service.create_product(body)
    if not result.success or result.product is None:
        raise catalog_http_error(result.error)
    return ProductResponse.model_validate(result.product)


@router.put(
    "/{product_id}",
    response_model=ProductResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Replace product",
)
async def update_product(
    product_id: int, body: ProductInput, service: CatalogServiceDep
) -> ProductResponse:
    """Replace every attribute of a product."""
    result = await service.update_product(product_id, body)
    if not result.success or result.product is None:
        raise catalog_http_error(result.error)
    return ProductResponse.model_validate(result.product)


@router.delete(
    "/{product_id}",
    response_model=DeleteProductResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Delete product",
    description="Delete a product with its category links, reviews and comments.",
)
async def delete_product(product_id: int, service: CatalogServiceDep) -> DeleteProductResponse:
    """Delete a product and everything that references it.

    Raises:
        HTTPException: 404 if missing, 409 if the transaction was rolled back.
    """
    result = await service.delete_product(product_id)
    if not result.success:
        raise catalog_http_error(result.error)
    return DeleteProductResponse(product_id=product_id, deleted=result.deleted)
