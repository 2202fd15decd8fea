"""Product Catalog.

Filter predicate building, sort validation, pagination, batched lookups,
the catalog query service and the cascade delete orchestrator.
"""

from storefront.catalog.cascade import (
    CascadeDeleteOrchestrator,
    DeleteProductResult,
    relaxed_constraints,
)
from storefront.catalog.filters import FilterRequest, PredicateSet, build_predicates
from storefront.catalog.inputs import ProductInput
from storefront.catalog.lookups import NOT_FOUND, CategoryRef, LookupBatcher
from storefront.catalog.models import (
    Brand,
    Category,
    Comment,
    Product,
    ProductCategory,
    Review,
)
from storefront.catalog.pagination import PageWindow
from storefront.catalog.repository import ProductRepository
from storefront.catalog.service import (
    CatalogService,
    ListProductsResult,
    LookupResult,
    ProductPage,
    ProductResult,
)
from storefront.catalog.sorting import SORTABLE_COLUMNS, SortDirective, parse_sort_directive

__all__ = [
    # Models
    "Brand",
    "Category",
    "Comment",
    "Product",
    "ProductCategory",
    "Review",
    # Filtering, sorting, paging
    "FilterRequest",
    "PredicateSet",
    "build_predicates",
    "SORTABLE_COLUMNS",
    "SortDirective",
    "parse_sort_directive",
    "PageWindow",
    # Lookups
    "NOT_FOUND",
    "CategoryRef",
    "LookupBatcher",
    # Repository
    "ProductRepository",
    # Service
    "CatalogService",
    "ListProductsResult",
    "LookupResult",
    "ProductInput",
    "ProductPage",
    "ProductResult",
    # Cascade delete
    "CascadeDeleteOrchestrator",
    "DeleteProductResult",
    "relaxed_constraints",
]
