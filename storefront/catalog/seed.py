"""Deterministic demo catalog.

Used by ``scripts/seed_catalog.py`` for local development and by the test
suite as its fixture data.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.catalog.models import (
    Brand,
    Category,
    Comment,
    Product,
    ProductCategory,
    Review,
)

logger = structlog.get_logger()


DEMO_BRANDS: list[tuple[int, str]] = [
    (1, "Stride"),
    (2, "Northwind"),
    (3, "Peakline"),
    (4, "Maison Vel"),
    (5, "Kiddo"),
]

DEMO_CATEGORIES: list[tuple[int, str]] = [
    (1, "Sneakers"),
    (2, "Boots"),
    (3, "Formal"),
    (4, "Sandals"),
    (5, "Running"),
]

# Brand 99 does not exist; Harbor Sandal carries an orphaned brand id.
DEMO_PRODUCTS: list[dict[str, Any]] = [
    {"name": "Air Runner", "price": "120.00", "old_price": "150.00", "discount": 20, "rating": "4.5",
     "colors": ["black", "white"], "brands": [1], "gender": "men", "occasions": ["sports", "casual"],
     "categories": [1, 5]},
    {"name": "Court Classic", "price": "80.00", "old_price": "100.00", "discount": 20, "rating": "4.1",
     "colors": ["white"], "brands": [2], "gender": "women", "occasions": ["casual"],
     "categories": [1]},
    {"name": "Trail Blazer", "price": "140.00", "old_price": "140.00", "discount": 0, "rating": "4.7",
     "colors": ["green"], "brands": [1, 3], "gender": "men", "occasions": ["sports", "outdoor"],
     "categories": [1, 5]},
    {"name": "Velvet Loafer", "price": "95.00", "old_price": "190.00", "discount": 50, "rating": "3.9",
     "colors": ["brown"], "brands": [4], "gender": "women", "occasions": ["formal"],
     "categories": [3]},
    {"name": "Studio Flat", "price": "45.00", "old_price": "60.00", "discount": 25, "rating": "4.0",
     "colors": ["pink", "black"], "brands": [2, 4], "gender": "women", "occasions": ["casual", "party"],
     "categories": []},
    {"name": "Summit Boot", "price": "210.00", "old_price": "300.00", "discount": 30, "rating": "4.8",
     "colors": ["brown"], "brands": [3], "gender": "unisex", "occasions": ["outdoor"],
     "categories": [2]},
    {"name": "Street Slip-On", "price": "55.00", "old_price": "55.00", "discount": 0, "rating": "3.5",
     "colors": ["grey"], "brands": [5], "gender": "unisex", "occasions": ["casual"],
     "categories": [1]},
    {"name": "Gala Heel", "price": "130.00", "old_price": "260.00", "discount": 50, "rating": "4.2",
     "colors": ["red"], "brands": [4], "gender": "women", "occasions": ["party", "formal"],
     "categories": [3]},
    {"name": "Sprint Elite", "price": "180.00", "old_price": "200.00", "discount": 10, "rating": "4.9",
     "colors": ["blue"], "brands": [1, 2], "gender": "men", "occasions": ["sports"],
     "categories": [5]},
    {"name": "Harbor Sandal", "price": "35.00", "old_price": "70.00", "discount": 50, "rating": "3.8",
     "colors": ["tan"], "brands": [99], "gender": "unisex", "occasions": ["beach"],
     "categories": [4]},
    {"name": "Weekend Sneaker", "price": "65.00", "old_price": "65.00", "discount": 0, "rating": "4.3",
     "colors": ["yellow"], "brands": [3, 5], "gender": "kids", "occasions": ["casual"],
     "categories": [1]},
]


@dataclass
class SeedSummary:
    """Counts and ids produced by a seeding run."""

    product_ids: list[int]
    brands: int
    categories: int
    product_categories: int
    reviews: int
    comments: int


async def clear_catalog(session: AsyncSession) -> None:
    """Delete every catalog row, children first."""
    for model in (ProductCategory, Review, Comment, Product, Category, Brand):
        await session.execute(delete(model))
    await session.flush()


async def seed_demo_catalog(session: AsyncSession, clear_existing: bool = True) -> SeedSummary:
    """Insert the demo brands, categories, products and their dependents.

    Products are inserted in ``DEMO_PRODUCTS`` order. Every product gets
    two reviews and the first three get a comment each.

    Args:
        session: Async SQLAlchemy session.
        clear_existing: Whether to delete existing catalog rows first.

    Returns:
        Seeding summary with generated product ids.
    """
    if clear_existing:
        await clear_catalog(session)

    session.add_all([Brand(id=bid, name=name) for bid, name in DEMO_BRANDS])
    session.add_all([Category(id=cid, name=name) for cid, name in DEMO_CATEGORIES])
    await session.flush()

    products = []
    for entry in DEMO_PRODUCTS:
        product = Product(
            name=entry["name"],
            description=f"{entry['name']} from the demo catalog",
            price=Decimal(entry["price"]),
            old_price=Decimal(entry["old_price"]),
            discount=entry["discount"],
            rating=Decimal(entry["rating"]),
            colors=list(entry["colors"]),
            brands=list(entry["brands"]),
            gender=entry["gender"],
            occasions=list(entry["occasions"]),
            image_url=f"https://images.example.com/{entry['name'].lower().replace(' ', '-')}.jpg",
        )
        session.add(product)
        products.append(product)
    await session.flush()

    links = reviews = comments = 0
    for index, (product, entry) in enumerate(zip(products, DEMO_PRODUCTS)):
        for category_id in entry["categories"]:
            session.add(ProductCategory(product_id=product.id, category_id=category_id))
            links += 1
        for author, stars in (("alex", 5), ("sam", 3)):
            session.add(Review(product_id=product.id, author=author, rating=stars, body="Solid pair."))
            reviews += 1
        if index < 3:
            session.add(Comment(product_id=product.id, author="jo", body="Does it run small?"))
            comments += 1

    await session.commit()

    summary = SeedSummary(
        product_ids=[p.id for p in products],
        brands=len(DEMO_BRANDS),
        categories=len(DEMO_CATEGORIES),
        product_categories=links,
        reviews=reviews,
        comments=comments,
    )
    logger.info(
        "Demo catalog seeded",
        products=len(summary.product_ids),
        reviews=reviews,
        comments=comments,
    )
    return summary
