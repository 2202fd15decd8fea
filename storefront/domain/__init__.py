"""Domain layer.

Error taxonomy and state machines shared by the catalog components.
"""

from storefront.domain.exceptions import (
    CatalogError,
    ConstraintError,
    DomainError,
    InvalidStateTransitionError,
    NotFoundError,
    TransactionError,
    TransientStorageError,
    ValidationError,
)
from storefront.domain.state_machines import (
    CascadeDeleteState,
    validate_cascade_transition,
)

__all__ = [
    # Exceptions
    "CatalogError",
    "ConstraintError",
    "DomainError",
    "InvalidStateTransitionError",
    "NotFoundError",
    "TransactionError",
    "TransientStorageError",
    "ValidationError",
    # State machines
    "CascadeDeleteState",
    "validate_cascade_transition",
]
