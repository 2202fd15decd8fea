"""Domain exceptions.

All catalog-level errors. Inner components (filter parsing, sort
validation, pagination) raise these; public service operations catch them
and hand them back inside result objects.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the application layer.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# State Machine Errors
# ============================================================================


class InvalidStateTransitionError(DomainError):
    """Raised when an invalid state transition is attempted."""

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        target_state: str,
        allowed_transitions: list[str] | None = None,
    ) -> None:
        """Initialize invalid state transition error.

        Args:
            entity_type: Type of entity (e.g., "CascadeDelete").
            entity_id: ID of the entity.
            current_state: Current state of the entity.
            target_state: Attempted target state.
            allowed_transitions: List of allowed target states from current state.
        """
        allowed = allowed_transitions or []
        message = (
            f"Cannot transition {entity_type}({entity_id}) "
            f"from '{current_state}' to '{target_state}'. "
            f"Allowed transitions: {allowed}"
        )
        super().__init__(
            message,
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "current_state": current_state,
                "target_state": target_state,
                "allowed_transitions": allowed,
            },
        )


# ============================================================================
# Catalog Errors
# ============================================================================


class CatalogError(DomainError):
    """Base class for catalog errors.

    Attributes:
        error_code: Machine-readable code, stable across releases.
        retryable: Whether the caller may retry the same operation.
    """

    error_code = "CATALOG_ERROR"
    retryable = False


class ValidationError(CatalogError):
    """Raised when filter, sort, paging or product input is malformed.

    Always raised before any query is executed.
    """

    error_code = "VALIDATION_ERROR"

    def __init__(self, field: str, value: Any, reason: str) -> None:
        """Initialize validation error.

        Args:
            field: Name of the offending input field.
            value: The rejected value.
            reason: Why the value was rejected.
        """
        super().__init__(
            f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": value, "reason": reason},
        )
        self.field = field


class NotFoundError(CatalogError):
    """Raised when an identifier has no matching row."""

    error_code = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        """Initialize not found error.

        Args:
            entity_type: Type of entity (e.g., "Product").
            entity_id: Identifier that was looked up.
        """
        super().__init__(
            f"{entity_type} not found: {entity_id}",
            details={"entity_type": entity_type, "entity_id": entity_id},
        )


class ConstraintError(CatalogError):
    """Raised when a write violates an enforced foreign key or unique constraint."""

    error_code = "CONSTRAINT_VIOLATION"


class TransactionError(CatalogError):
    """Raised when a multi-statement transaction could not commit.

    Covers lock conflicts and connection loss during the cascade delete.
    Prior attempts are always rolled back, so retrying is the caller's call.
    """

    error_code = "TRANSACTION_FAILED"


class TransientStorageError(CatalogError):
    """Raised on infrastructure faults that are safe to retry."""

    error_code = "STORAGE_UNAVAILABLE"
    retryable = True
