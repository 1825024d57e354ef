"""Issue and return of books.

A book moves ``available -> issued`` when it is lent and back to
``available`` when it comes back. Both moves touch two rows (the book and
its issue record) and run inside one transaction that also holds the
book's row lock, so a concurrent caller sees either the state before the
move or the state after it, never half of it.

``repair`` is set by hand through ``BookStore.update``; a book in repair
cannot be issued.
"""
import logging
from datetime import date
from typing import Callable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from libris.db import Database
from libris.errors import InvalidTransition, NotFound
from libris.models import Book, BookStatus, Issue, IssueStatus, Reader

logger = logging.getLogger(__name__)


class LoanService:
    def __init__(self, database: Database, today: Callable[[], date] = date.today):
        self.db = database
        self.today = today

    async def _locked_book(self, session: AsyncSession, book_id: int) -> Book:
        r = await session.execute(select(Book).where(Book.id == book_id).with_for_update())
        book = r.scalar_one_or_none()
        if book is None:
            raise NotFound("book", code="BOOK_NOT_FOUND")
        return book

    async def issue_book(self, book_id: int, reader_id: int) -> Issue:
        """Lend ``book_id`` to ``reader_id`` and return the new open issue.

        Raises ``NotFound`` for an unknown book or reader and
        ``InvalidTransition`` when the book is not ``available``.
        """
        try:
            async with self.db.transaction() as session:
                book = await self._locked_book(session, book_id)
                reader = await session.get(Reader, reader_id)
                if reader is None:
                    raise NotFound("reader", code="READER_NOT_FOUND")
                if book.status != BookStatus.AVAILABLE:
                    raise InvalidTransition(
                        f"book not available for issue (status: {book.status.value})",
                        code="BOOK_NOT_AVAILABLE",
                    )
                issue = Issue(
                    book_id=book.id,
                    reader_id=reader.id,
                    issue_date=self.today(),
                    status=IssueStatus.ISSUED,
                )
                session.add(issue)
                book.status = BookStatus.ISSUED
                await session.flush()
        except (NotFound, InvalidTransition) as e:
            logger.warning("Issue refused book=%s reader=%s: %s", book_id, reader_id, e.message)
            raise
        logger.info("Issued book=%s to reader=%s issue=%s", book_id, reader_id, issue.id)
        return issue

    async def return_book(self, book_id: int) -> Issue:
        """Close the open issue of ``book_id`` and make the book available.

        Raises ``NotFound`` when the book has no open issue; the book is left
        untouched in that case.
        """
        try:
            async with self.db.transaction() as session:
                r = await session.execute(
                    select(Issue)
                    .where(Issue.book_id == book_id, Issue.status == IssueStatus.ISSUED)
                    .with_for_update()
                )
                issue = r.scalars().first()
                if issue is None:
                    raise NotFound(
                        "active issue", "no active issue for this book", code="ACTIVE_ISSUE_NOT_FOUND"
                    )
                book = await self._locked_book(session, book_id)
                issue.return_date = self.today()
                issue.status = IssueStatus.RETURNED
                book.status = BookStatus.AVAILABLE
                await session.flush()
        except NotFound as e:
            logger.warning("Return refused book=%s: %s", book_id, e.message)
            raise
        logger.info("Returned book=%s issue=%s", book_id, issue.id)
        return issue
