"""SQLAlchemy models for the product catalog.

Defines brands, categories, products and the rows that depend on products
(category links, reviews, comments).
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from storefront.infrastructure.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _product_fk() -> ForeignKey:
    # Deferrable so PostgreSQL can postpone the check inside one transaction.
    return ForeignKey("products.id", deferrable=True, initially="IMMEDIATE")


class Brand(Base):
    """Brand referenced by value from ``Product.brands``.

    There is no enforced foreign key from products to brands, so a brand id
    held by a product may be orphaned.
    """

    __tablename__ = "brands"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    def __repr__(self) -> str:
        return f"<Brand(id={self.id}, name={self.name})>"


class Category(Base):
    """Product category."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name={self.name})>"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"id": self.id, "name": self.name}


class Product(Base):
    """Product entity in the catalog.

    Attributes:
        id: Generated integer identifier.
        name: Display name.
        description: Long description.
        price: Current price.
        old_price: Previous price, shown struck through.
        discount: Discount percentage (0-100).
        rating: Average rating (0.0-5.0).
        colors: JSON array of color names.
        brands: JSON array of brand ids (not a foreign key).
        gender: Target gender ("men", "women", "unisex", "kids").
        occasions: JSON array of occasion names.
        image_url: Product image URL.
        created_at: Creation timestamp.
    """

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, index=True)
    old_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    discount: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    rating: Mapped[Decimal] = mapped_column(
        Numeric(2, 1), nullable=False, default=Decimal("0.0")
    )
    colors: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    brands: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)
    gender: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    occasions: Mapped[list[str]] = mapped_column(
        "occasion", JSON, nullable=False, default=list
    )
    image_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name={self.name[:30]})>"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary.

        Returns:
            Dictionary representation.
        """
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "old_price": self.old_price,
            "discount": self.discount,
            "rating": self.rating,
            "colors": list(self.colors or []),
            "brands": list(self.brands or []),
            "gender": self.gender,
            "occasions": list(self.occasions or []),
            "image_url": self.image_url,
            "created_at": self.created_at,
        }


class ProductCategory(Base):
    """Join row linking a product to a category."""

    __tablename__ = "product_categories"

    product_id: Mapped[int] = mapped_column(Integer, _product_fk(), primary_key=True)
    category_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("categories.id", deferrable=True, initially="IMMEDIATE"),
        primary_key=True,
        index=True,
    )


class Review(Base):
    """Customer review of a product."""

    __tablename__ = "reviews"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(Integer, _product_fk(), nullable=False, index=True)
    author: Mapped[str] = mapped_column(String(100), nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )


class Comment(Base):
    """Free-form comment on a product."""

    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(Integer, _product_fk(), nullable=False, index=True)
    author: Mapped[str] = mapped_column(String(100), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
