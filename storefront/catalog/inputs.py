"""Validated product input."""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProductInput(BaseModel):
    """Full attribute set for creating or replacing a product.

    Updates replace every attribute; omitted optional fields are reset to
    their defaults rather than left untouched.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    old_price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    discount: int = Field(default=0, ge=0, le=100)
    rating: Decimal = Field(default=Decimal("0.0"), ge=0, le=5, max_digits=2, decimal_places=1)
    colors: list[str] = Field(default_factory=list)
    brands: list[int] = Field(default_factory=list)
    gender: str | None = Field(default=None, max_length=20)
    occasions: list[str] = Field(default_factory=list, alias="occasion")
    image_url: str | None = Field(default=None, max_length=1000)

    @field_validator("colors", "brands", "occasions", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        # Serialized list columns are never null.
        return [] if value is None else value

    def to_columns(self) -> dict[str, Any]:
        """Column values for the products table."""
        return self.model_dump(by_alias=False)
