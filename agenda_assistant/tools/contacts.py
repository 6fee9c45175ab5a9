"""
Contact directory adapters: name -> email lookup and upsert by name.

InMemoryContactDirectory backs the console demo and the tests.
SqlContactDirectory persists contacts in a ``contacts`` table through
SQLAlchemy's async engine (asyncpg for PostgreSQL URLs).
"""

import logging
from typing import Optional

from sqlalchemy import Integer, String, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from agenda_assistant.errors import DirectoryError, DuplicateContactError
from agenda_assistant.schemas.contact_schema import ContactEntry
from agenda_assistant.utils import normalize_email

logger = logging.getLogger(__name__)


class ContactDirectory:
    """Interface shared by all directory adapters."""

    async def lookup(self, name: str) -> Optional[str]:
        """Return the email for ``name`` (case-insensitive exact match), or None."""
        raise NotImplementedError

    async def upsert(self, name: str, email: str) -> ContactEntry:
        """Insert a contact, or overwrite the email of an existing name.

        Raises:
            DuplicateContactError: If ``email`` belongs to a different name.
            DirectoryError: If the store cannot be reached.
        """
        raise NotImplementedError


class InMemoryContactDirectory(ContactDirectory):
    """Process-local directory keyed by lower-cased name."""

    def __init__(self, contacts: Optional[dict[str, str]] = None) -> None:
        self._contacts: dict[str, ContactEntry] = {}
        for name, email in (contacts or {}).items():
            self._contacts[name.strip().lower()] = ContactEntry(
                name=name.strip(), email=normalize_email(email)
            )

    async def lookup(self, name: str) -> Optional[str]:
        entry = self._contacts.get(name.strip().lower())
        return entry.email if entry else None

    async def upsert(self, name: str, email: str) -> ContactEntry:
        name = name.strip()
        email = normalize_email(email)
        key = name.lower()
        for other_key, entry in self._contacts.items():
            if entry.email == email and other_key != key:
                raise DuplicateContactError(email, entry.name)
        entry = ContactEntry(name=name, email=email)
        self._contacts[key] = entry
        logger.info("Contact saved: %s <%s>", name, email)
        return entry

    def reset(self) -> None:
        """Clear all contacts. Used by test fixtures for isolation."""
        self._contacts.clear()


class Base(DeclarativeBase):
    pass


class ContactRow(Base):
    __tablename__ = "contacts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)


def to_async_url(url: str) -> str:
    """Rewrite a sync PostgreSQL/SQLite URL to its async driver.

    Examples:
        >>> to_async_url("postgres://u:p@host/db")
        'postgresql+asyncpg://u:p@host/db'
        >>> to_async_url("sqlite:///contacts.db")
        'sqlite+aiosqlite:///contacts.db'
    """
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


class SqlContactDirectory(ContactDirectory):
    """Directory persisted through SQLAlchemy's async engine."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._sessions = async_sessionmaker(engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, url: str, echo: bool = False) -> "SqlContactDirectory":
        engine = create_async_engine(to_async_url(url), echo=echo, pool_pre_ping=True)
        logger.info("Contact directory engine created: %s", engine.url.render_as_string())
        return cls(engine)

    async def create_tables(self) -> None:
        """Create the contacts table if it does not exist."""
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as exc:
            raise DirectoryError(f"Could not create contacts table: {exc}") from exc
        logger.info("Contacts table verified")

    async def lookup(self, name: str) -> Optional[str]:
        stmt = select(ContactRow.email).where(
            func.lower(ContactRow.name) == name.strip().lower()
        )
        try:
            async with self._sessions() as session:
                result = await session.execute(stmt)
                return result.scalars().first()
        except SQLAlchemyError as exc:
            raise DirectoryError(f"Contact lookup failed for '{name}': {exc}") from exc

    async def upsert(self, name: str, email: str) -> ContactEntry:
        name = name.strip()
        email = normalize_email(email)
        try:
            async with self._sessions() as session:
                async with session.begin():
                    owner = (
                        await session.execute(select(ContactRow).where(ContactRow.email == email))
                    ).scalars().first()
                    if owner is not None and owner.name.lower() != name.lower():
                        raise DuplicateContactError(email, owner.name)

                    row = (
                        await session.execute(
                            select(ContactRow).where(func.lower(ContactRow.name) == name.lower())
                        )
                    ).scalars().first()
                    if row is None:
                        session.add(ContactRow(name=name, email=email))
                    else:
                        row.name = name
                        row.email = email
        except IntegrityError as exc:
            raise DuplicateContactError(email) from exc
        except SQLAlchemyError as exc:
            raise DirectoryError(f"Contact upsert failed for '{name}': {exc}") from exc

        logger.info("Contact saved: %s <%s>", name, email)
        return ContactEntry(name=name, email=email)

    async def close(self) -> None:
        await self._engine.dispose()
