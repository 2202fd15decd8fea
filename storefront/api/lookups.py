"""Lookup API endpoints.

Resolve brand ids and product ids for display in one call each.
"""

from typing import Annotated

from fastapi import APIRouter, Query

from storefront.api.dependencies import CatalogServiceDep, catalog_http_error
from storefront.api.schemas import (
    BrandNameSchema,
    BrandNamesResponse,
    CategorySchema,
    ErrorResponse,
    ProductCategoriesResponse,
    ProductCategoriesSchema,
)
from storefront.catalog.lookups import NOT_FOUND

router = APIRouter(prefix="/lookups", tags=["Lookups"])


def _split_ids(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


@router.get(
    "/brands",
    response_model=BrandNamesResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Resolve brand names",
)
async def resolve_brand_names(
    service: CatalogServiceDep,
    ids: Annotated[str, Query(description="Comma list of brand ids")],
) -> BrandNamesResponse:
    """Resolve brand ids to names; unknown ids come back with found=false."""
    result = await service.resolve_brand_names(_split_ids(ids))
    if not result.success:
        raise catalog_http_error(result.error)

    return BrandNamesResponse(
        brands=[
            BrandNameSchema(
                id=brand_id,
                name=None if name is NOT_FOUND else name,
                found=name is not NOT_FOUND,
            )
            for brand_id, name in result.values.items()
        ]
    )


@router.get(
    "/product-categories",
    response_model=ProductCategoriesResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Resolve product categories",
)
async def resolve_product_categories(
    service: CatalogServiceDep,
    ids: Annotated[str, Query(description="Comma list of product ids")],
) -> ProductCategoriesResponse:
    """Resolve product ids to their categories."""
    result = await service.resolve_product_categories(_split_ids(ids))
    if not result.success:
        raise catalog_http_error(result.error)

    products = []
    for product_id, categories in result.values.items():
        if categories is NOT_FOUND:
            products.append(ProductCategoriesSchema(product_id=product_id, found=False))
        else:
            products.append(
                ProductCategoriesSchema(
                    product_id=product_id,
                    categories=[CategorySchema(id=c.id, name=c.name) for c in categories],
                    found=True,
                )
            )
    return ProductCategoriesResponse(products=products)
