"""API schemas for the storefront catalog.

Pydantic models for request/response validation and serialization.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorDetail(BaseModel):
    """Detailed error information."""

    field: str | None = Field(default=None, description="Field that caused the error")
    message: str = Field(..., description="Error message")


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: list[ErrorDetail] = Field(
        default_factory=list, description="Additional error details"
    )
    request_id: str | None = Field(
        default=None, description="Request ID for correlation"
    )


# ============================================================================
# Product Schemas
# ============================================================================


class ProductResponse(BaseModel):
    """A product as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Product identifier")
    name: str
    description: str | None = None
    price: Decimal
    old_price: Decimal | None = None
    discount: int = Field(..., description="Discount percentage")
    rating: Decimal
    colors: list[str] = Field(default_factory=list)
    brands: list[int] = Field(default_factory=list, description="Brand ids")
    gender: str | None = None
    occasions: list[str] = Field(default_factory=list)
    image_url: str | None = None
    created_at: datetime


class ProductListResponse(BaseModel):
    """One page of products with pagination metadata."""

    items: list[ProductResponse] = Field(..., description="Products on this page")
    total_count: int = Field(..., description="Products matching the filter")
    last_page: int = Field(..., description="Last page number, 0 when empty")
    num_of_results_on_cur_page: int = Field(..., description="Items on this page")
    page: int = Field(..., description="Page served (1-based)")
    page_size: int = Field(..., description="Items per page")
    sort_by: str | None = Field(default=None, description="Sort directive applied")


class DeleteProductResponse(BaseModel):
    """Outcome of a cascade delete."""

    product_id: int
    message: str = "success"
    deleted: dict[str, int] = Field(
        default_factory=dict, description="Rows removed per table"
    )


# ============================================================================
# Lookup Schemas
# ============================================================================


class CategorySchema(BaseModel):
    """Category reference."""

    id: int
    name: str


class BrandNameSchema(BaseModel):
    """Resolved brand name; ``found`` is False for unknown ids."""

    id: int
    name: str | None = None
    found: bool


class BrandNamesResponse(BaseModel):
    """Every requested brand id with its resolution."""

    brands: list[BrandNameSchema]


class ProductCategoriesSchema(BaseModel):
    """Categories of one product; ``found`` is False for unknown products."""

    product_id: int
    categories: list[CategorySchema] = Field(default_factory=list)
    found: bool


class ProductCategoriesResponse(BaseModel):
    """Every requested product id with its categories."""

    products: list[ProductCategoriesSchema]
