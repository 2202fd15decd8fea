"""Cascade delete of a product and its dependent rows.

The whole cascade runs in one transaction on one dedicated connection:
relax foreign key enforcement for that connection, delete category links,
reviews and comments, delete the product, restore enforcement, commit.
Enforcement is restored on every exit path.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import structlog
from sqlalchemy import delete, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncSession, async_sessionmaker

from storefront.catalog.models import Comment, Product, ProductCategory, Review
from storefront.domain.exceptions import (
    CatalogError,
    ConstraintError,
    NotFoundError,
    TransactionError,
)
from storefront.domain.state_machines import (
    CascadeDeleteState,
    validate_cascade_transition,
)

logger = structlog.get_logger()


# ============================================================================
# Constraint Relaxers
# ============================================================================


class ConstraintRelaxer:
    """Turns foreign key enforcement off and back on for one connection.

    Attributes:
        dialect: Dialect name this relaxer targets.
        restored_by_rollback: Whether a rollback alone puts enforcement back.
            Transaction-scoped settings are; session-scoped ones need an
            explicit restore even after a failure.
    """

    dialect = "default"
    restored_by_rollback = True

    async def relax(self, connection: AsyncConnection) -> Any:
        """Relax enforcement and return whatever ``restore`` needs."""
        logger.warning(
            "No constraint relaxation available for dialect",
            dialect=connection.dialect.name,
        )
        return None

    async def restore(self, connection: AsyncConnection, prior: Any) -> None:
        """Put enforcement back to the state captured by ``relax``."""
        return None


class PostgresConstraintRelaxer(ConstraintRelaxer):
    """Defers deferrable foreign keys until the end of the transaction."""

    dialect = "postgresql"

    async def relax(self, connection: AsyncConnection) -> Any:
        await connection.execute(text("SET CONSTRAINTS ALL DEFERRED"))
        return None

    async def restore(self, connection: AsyncConnection, prior: Any) -> None:
        # Switching back to IMMEDIATE checks everything deferred so far.
        await connection.execute(text("SET CONSTRAINTS ALL IMMEDIATE"))


class SqliteConstraintRelaxer(ConstraintRelaxer):
    """Uses ``defer_foreign_keys``, which SQLite resets on commit or rollback.

    Needs an explicit BEGIN before the pragma; ``build_engine`` sets that up.
    """

    dialect = "sqlite"

    async def relax(self, connection: AsyncConnection) -> Any:
        prior = (await connection.execute(text("PRAGMA defer_foreign_keys"))).scalar()
        await connection.execute(text("PRAGMA defer_foreign_keys = ON"))
        return int(prior or 0)

    async def restore(self, connection: AsyncConnection, prior: Any) -> None:
        value = "ON" if prior else "OFF"
        await connection.execute(text(f"PRAGMA defer_foreign_keys = {value}"))


class MysqlConstraintRelaxer(ConstraintRelaxer):
    """Toggles ``foreign_key_checks`` on the current session only."""

    dialect = "mysql"
    restored_by_rollback = False

    async def relax(self, connection: AsyncConnection) -> Any:
        prior = (
            await connection.execute(text("SELECT @@SESSION.foreign_key_checks"))
        ).scalar()
        await connection.execute(text("SET SESSION foreign_key_checks = 0"))
        return int(prior if prior is not None else 1)

    async def restore(self, connection: AsyncConnection, prior: Any) -> None:
        await connection.execute(
            text("SET SESSION foreign_key_checks = :prior"), {"prior": int(prior)}
        )


_RELAXERS: dict[str, type[ConstraintRelaxer]] = {
    "postgresql": PostgresConstraintRelaxer,
    "sqlite": SqliteConstraintRelaxer,
    "mysql": MysqlConstraintRelaxer,
    "mariadb": MysqlConstraintRelaxer,
}


def relaxer_for(dialect_name: str) -> ConstraintRelaxer:
    """Get the relaxer for a dialect, falling back to a no-op."""
    return _RELAXERS.get(dialect_name, ConstraintRelaxer)()


# ============================================================================
# State Tracking
# ============================================================================


@dataclass
class CascadeDeleteTracker:
    """Records the cascade's progress through ``CascadeDeleteState``."""

    product_id: int
    state: CascadeDeleteState = CascadeDeleteState.START
    history: list[CascadeDeleteState] = field(
        default_factory=lambda: [CascadeDeleteState.START]
    )
    constraints_relaxed: bool = False
    constraints_restored: bool = True

    def advance(self, target: CascadeDeleteState) -> None:
        """Move to ``target``.

        Raises:
            InvalidStateTransitionError: If ``target`` does not follow the
                current state.
        """
        validate_cascade_transition(self.product_id, self.state, target)
        self.state = target
        self.history.append(target)

    def abort(self) -> None:
        """Move to ABORTED unless already terminal."""
        if not self.state.is_terminal():
            self.advance(CascadeDeleteState.ABORTED)


@asynccontextmanager
async def relaxed_constraints(
    connection: AsyncConnection,
    relaxer: ConstraintRelaxer,
    tracker: CascadeDeleteTracker,
) -> AsyncIterator[None]:
    """Relax foreign key enforcement for the body, then restore it.

    On success the prior setting is restored explicitly. On failure it is
    restored explicitly unless the relaxer's setting dies with the
    rollback that follows. If an explicit restore itself fails, the
    connection is invalidated so it never goes back to the pool relaxed.
    """
    prior = await relaxer.relax(connection)
    tracker.constraints_relaxed = True
    tracker.constraints_restored = False
    tracker.advance(CascadeDeleteState.CONSTRAINTS_RELAXED)

    failed = False
    try:
        yield
    except BaseException:
        failed = True
        raise
    finally:
        restore_error: BaseException | None = None
        if not (failed and relaxer.restored_by_rollback):
            try:
                await relaxer.restore(connection, prior)
            except BaseException as e:
                restore_error = e
                logger.error(
                    "Failed to restore constraint enforcement",
                    product_id=tracker.product_id,
                    dialect=relaxer.dialect,
                    error=str(e),
                )
                if not relaxer.restored_by_rollback:
                    await connection.invalidate()
        tracker.constraints_restored = True
        if restore_error is not None and not failed:
            raise restore_error


# ============================================================================
# Orchestrator
# ============================================================================


@dataclass
class DeleteProductResult:
    """Result of a cascade delete.

    Attributes:
        product_id: Product that was targeted.
        success: Whether everything was committed.
        error: Failure cause when ``success`` is False.
        deleted: Rows removed per table (empty on failure).
        states: States visited, ending in DONE or ABORTED.
        constraints_restored: Whether enforcement was back on at exit.
    """

    product_id: int
    success: bool = True
    error: CatalogError | None = None
    deleted: dict[str, int] = field(default_factory=dict)
    states: list[CascadeDeleteState] = field(default_factory=list)
    constraints_restored: bool = True


class CascadeDeleteOrchestrator:
    """Deletes a product together with its dependent rows.

    Example usage:
        orchestrator = CascadeDeleteOrchestrator(async_session_factory)
        result = await orchestrator.delete_product(42)
        if not result.success:
            print(result.error.error_code)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        request_id: str | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            session_factory: Factory for the dedicated cascade session.
            request_id: Request ID for correlation.
        """
        self.session_factory = session_factory
        self.request_id = request_id

    async def delete_product(self, product_id: int) -> DeleteProductResult:
        """Delete a product and all rows that reference it.

        Once started, the transaction is not interrupted by cancellation of
        the caller: cancellation waits for commit or rollback and is then
        re-raised.

        Args:
            product_id: Product to delete.

        Returns:
            DeleteProductResult; failures are reported, never raised.
        """
        task = asyncio.ensure_future(self._run(product_id))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            logger.warning(
                "Cascade delete cancelled; waiting for transaction to finish",
                product_id=product_id,
                request_id=self.request_id,
            )
            await asyncio.wait([task])
            raise

    async def _run(self, product_id: int) -> DeleteProductResult:
        tracker = CascadeDeleteTracker(product_id=product_id)
        deleted: dict[str, int] = {}

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    connection = await session.connection()
                    relaxer = relaxer_for(connection.dialect.name)

                    await self._lock_product(session, product_id)

                    async with relaxed_constraints(connection, relaxer, tracker):
                        deleted["product_categories"] = await self._delete_product_categories(
                            session, product_id
                        )
                        deleted["reviews"] = await self._delete_reviews(session, product_id)
                        deleted["comments"] = await self._delete_comments(session, product_id)
                        tracker.advance(CascadeDeleteState.DEPENDENTS_CLEARED)

                        deleted["products"] = await self._delete_product_row(
                            session, product_id
                        )
                        tracker.advance(CascadeDeleteState.PRODUCT_REMOVED)

                    tracker.advance(CascadeDeleteState.CONSTRAINTS_RESTORED)

            tracker.advance(CascadeDeleteState.DONE)

        except CatalogError as e:
            return self._failed(tracker, e)
        except IntegrityError as e:
            return self._failed(
                tracker,
                ConstraintError(
                    f"Foreign key violation while deleting product {product_id}",
                    details={"product_id": product_id, "cause": str(e.orig)},
                ),
            )
        except SQLAlchemyError as e:
            return self._failed(
                tracker,
                TransactionError(
                    f"Could not delete product {product_id}; changes rolled back",
                    details={"product_id": product_id, "cause": str(e)},
                ),
            )

        logger.info(
            "Product deleted",
            product_id=product_id,
            deleted=deleted,
            request_id=self.request_id,
        )
        return DeleteProductResult(
            product_id=product_id,
            deleted=deleted,
            states=list(tracker.history),
            constraints_restored=tracker.constraints_restored,
        )

    def _failed(self, tracker: CascadeDeleteTracker, error: CatalogError) -> DeleteProductResult:
        tracker.abort()
        logger.warning(
            "Product delete aborted",
            product_id=tracker.product_id,
            error_code=error.error_code,
            error=error.message,
            constraints_restored=tracker.constraints_restored,
            request_id=self.request_id,
        )
        return DeleteProductResult(
            product_id=tracker.product_id,
            success=False,
            error=error,
            states=list(tracker.history),
            constraints_restored=tracker.constraints_restored,
        )

    async def _lock_product(self, session: AsyncSession, product_id: int) -> None:
        result = await session.execute(
            select(Product.id).where(Product.id == product_id).with_for_update()
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundError("Product", product_id)

    async def _delete_product_categories(self, session: AsyncSession, product_id: int) -> int:
        result = await session.execute(
            delete(ProductCategory).where(ProductCategory.product_id == product_id)
        )
        return result.rowcount

    async def _delete_reviews(self, session: AsyncSession, product_id: int) -> int:
        result = await session.execute(delete(Review).where(Review.product_id == product_id))
        return result.rowcount

    async def _delete_comments(self, session: AsyncSession, product_id: int) -> int:
        result = await session.execute(delete(Comment).where(Comment.product_id == product_id))
        return result.rowcount

    async def _delete_product_row(self, session: AsyncSession, product_id: int) -> int:
        result = await session.execute(delete(Product).where(Product.id == product_id))
        return result.rowcount
