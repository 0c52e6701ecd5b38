"""Primary database wiring for access-review-engine.

Key exports:
- Base                 — declarative base shared by all ORM models
- UARModel             — abstract base adding id (UUID), created_at, updated_at
- init_database(...)   — call at startup to build the engine and session factory
- close_database()     — call at shutdown to dispose the engine
- get_db_session()     — FastAPI dependency yielding one session per request
- BaseRepository       — generic repository holding the session and model type

One request maps to one session and one transaction: the session commits
when the request handler returns and rolls back if it raises. Statements
that must survive a sibling failure inside the same request (per-record
import inserts) use SAVEPOINTs via `session.begin_nested()`.
"""

import uuid
from collections.abc import AsyncGenerator
from datetime import datetime
from typing import Any, Generic, TypeVar

from sqlalchemy import DateTime, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from access_review_engine.errors import NotFoundError
from access_review_engine.observability import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all access-review-engine ORM models."""


class UARModel(Base):
    """Abstract model base with a UUID primary key and audit timestamps."""

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


# Module-level engine and session factory, set by init_database()
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def init_database(
    database_url: str,
    pool_size: int = 10,
    max_overflow: int = 5,
    pool_timeout: int = 30,
    echo: bool = False,
) -> None:
    """Initialize the database engine and session factory.

    Must be called once at application startup before any session is used.

    Args:
        database_url: SQLAlchemy async connection URL.
        pool_size: Connection pool size.
        max_overflow: Max overflow connections above pool_size.
        pool_timeout: Seconds to wait for a connection before raising.
        echo: Echo SQL statements to the log.
    """
    global _engine, _session_factory  # noqa: PLW0603

    logger.info("Initializing database engine", pool_size=pool_size, max_overflow=max_overflow)

    _engine = create_async_engine(
        database_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        echo=echo,
        pool_pre_ping=True,
    )
    _session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def close_database() -> None:
    """Dispose the database engine. Called at application shutdown."""
    global _engine, _session_factory  # noqa: PLW0603

    if _engine is not None:
        logger.info("Disposing database engine")
        await _engine.dispose()
        _engine = None
        _session_factory = None


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields a request-scoped database session.

    Yields:
        AsyncSession bound to the primary database.

    Raises:
        RuntimeError: If init_database() has not been called yet.
    """
    if _session_factory is None:
        raise RuntimeError(
            "Database has not been initialized. Call init_database() in the application lifespan handler."
        )

    async with _session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


ModelT = TypeVar("ModelT", bound=UARModel)


class BaseRepository(Generic[ModelT]):
    """Generic repository holding an async session and its model class.

    Args:
        session: The request-scoped async session.
        model: The ORM model class this repository persists.
    """

    def __init__(self, session: AsyncSession, model: type[ModelT]) -> None:
        self._session = session
        self._model = model

    async def get(self, entity_id: uuid.UUID) -> ModelT:
        """Load an entity by primary key.

        Args:
            entity_id: The entity UUID.

        Returns:
            The ORM instance.

        Raises:
            NotFoundError: If no row exists with that id.
        """
        entity = await self._session.get(self._model, entity_id)
        if entity is None:
            raise NotFoundError(resource=self._model.__name__, resource_id=str(entity_id))
        return entity

    async def add(self, entity: ModelT) -> ModelT:
        """Insert a new entity, flush, and refresh server defaults.

        Args:
            entity: The transient ORM instance.

        Returns:
            The persisted instance.
        """
        self._session.add(entity)
        await self._session.flush()
        await self._session.refresh(entity)
        return entity

    async def update(self, entity: ModelT, values: dict[str, Any]) -> ModelT:
        """Apply attribute values to a persistent entity, flush, and refresh.

        Args:
            entity: The persistent ORM instance.
            values: Attribute name to new value.

        Returns:
            The refreshed instance.
        """
        for attribute, value in values.items():
            setattr(entity, attribute, value)
        await self._session.flush()
        await self._session.refresh(entity)
        return entity

    async def remove(self, entity: ModelT) -> None:
        """Delete an entity and flush.

        Args:
            entity: The persistent ORM instance.
        """
        await self._session.delete(entity)
        await self._session.flush()
