"""Persistence for books, readers and issues.

Each store owns no state besides the ``Database`` handle it was built with;
every call runs in its own transaction. Issues are read-only here, the loan
service is the only writer.
"""
import logging
from typing import Any, Mapping

from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from libris.db import Base, Database
from libris.errors import InvalidTransition, NotFound, ValidationError
from libris.models import Book, BookStatus, Issue, Reader
from libris.validators import validate_book, validate_reader

logger = logging.getLogger(__name__)


class _EntityStore:
    model: type[Base]
    entity: str

    def __init__(self, database: Database):
        self.db = database

    def _not_found(self) -> NotFound:
        return NotFound(self.entity, code=f"{self.entity.upper()}_NOT_FOUND")

    async def _get(self, session: AsyncSession, id: int, *, for_update: bool = False):
        stmt = select(self.model).where(self.model.id == id)
        if for_update:
            stmt = stmt.with_for_update()
        obj = (await session.execute(stmt)).scalar_one_or_none()
        if obj is None:
            raise self._not_found()
        return obj

    async def list(self) -> list[Any]:
        async with self.db.transaction() as session:
            rows = await session.execute(select(self.model).order_by(self.model.id))
            return list(rows.scalars().all())

    async def get_by_id(self, id: int):
        async with self.db.transaction() as session:
            return await self._get(session, id)


class _WritableStore(_EntityStore):
    def _validate(self, fields: Mapping[str, Any], *, partial: bool) -> dict[str, Any]:
        raise NotImplementedError

    async def _check(self, session: AsyncSession, cleaned: dict[str, Any], current=None) -> None:
        """Cross-row checks that need the database (uniqueness, status rules)."""

    def _on_integrity_error(self, exc: IntegrityError) -> None:
        raise exc

    async def create(self, fields: Mapping[str, Any]):
        cleaned = self._validate(fields, partial=False)
        async with self.db.transaction() as session:
            await self._check(session, cleaned)
            obj = self.model(**cleaned)
            session.add(obj)
            try:
                await session.flush()
            except IntegrityError as e:
                self._on_integrity_error(e)
        logger.info("Created %s id=%s", self.entity, obj.id)
        return obj

    async def update(self, id: int, fields: Mapping[str, Any]):
        cleaned = self._validate(fields, partial=True)
        async with self.db.transaction() as session:
            obj = await self._get(session, id, for_update=True)
            await self._check(session, cleaned, current=obj)
            for name, value in cleaned.items():
                setattr(obj, name, value)
            try:
                await session.flush()
            except IntegrityError as e:
                self._on_integrity_error(e)
        logger.info("Updated %s id=%s fields=%s", self.entity, id, sorted(cleaned))
        return obj

    async def delete(self, id: int) -> None:
        fk = getattr(Issue, f"{self.entity}_id")
        async with self.db.transaction() as session:
            await self._get(session, id, for_update=True)
            # Issue history stays, pointing at nothing.
            detached = await session.execute(
                update(Issue).where(fk == id).values({fk.key: None})
                .execution_options(synchronize_session=False)
            )
            await session.execute(delete(self.model).where(self.model.id == id))
        logger.info("Deleted %s id=%s (detached %d issues)", self.entity, id, detached.rowcount or 0)


class BookStore(_WritableStore):
    model = Book
    entity = "book"

    def _validate(self, fields, *, partial):
        return validate_book(fields, partial=partial)

    async def _check(self, session, cleaned, current=None):
        status = cleaned.get("status")
        if status is None:
            return
        if current is None:
            if status == BookStatus.ISSUED:
                raise ValidationError.single("status", "new books start as available or repair")
            return
        if status == current.status:
            return
        if BookStatus.ISSUED in (status, current.status):
            raise InvalidTransition(
                "book status 'issued' is set only by issuing and returning",
                code="STATUS_MANAGED_BY_LOANS",
            )


class ReaderStore(_WritableStore):
    model = Reader
    entity = "reader"

    def _validate(self, fields, *, partial):
        return validate_reader(fields, partial=partial)

    def _email_taken(self) -> ValidationError:
        return ValidationError.single("email", "already registered", code="EMAIL_EXISTS")

    async def _check(self, session, cleaned, current=None):
        email = cleaned.get("email")
        if email is None:
            return
        stmt = select(Reader.id).where(Reader.email == email)
        if current is not None:
            stmt = stmt.where(Reader.id != current.id)
        if (await session.execute(stmt)).first() is not None:
            raise self._email_taken()

    def _on_integrity_error(self, exc):
        # a concurrent insert slipped past the lookup above
        raise self._email_taken() from exc


class IssueStore(_EntityStore):
    model = Issue
    entity = "issue"

    async def list_for_book(self, book_id: int) -> list[Issue]:
        async with self.db.transaction() as session:
            rows = await session.execute(select(Issue).where(Issue.book_id == book_id).order_by(Issue.id))
            return list(rows.scalars().all())

    async def list_for_reader(self, reader_id: int) -> list[Issue]:
        async with self.db.transaction() as session:
            rows = await session.execute(select(Issue).where(Issue.reader_id == reader_id).order_by(Issue.id))
            return list(rows.scalars().all())
