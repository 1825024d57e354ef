import asyncio
from datetime import date, timedelta

import pytest
from sqlalchemy import select

from libris import models
from libris.db import Database
from libris.store import BookStore, ReaderStore
from libris.errors import InvalidTransition, NotFound
from libris.loans import LoanService
from libris.models import BookStatus, IssueStatus

pytestmark = pytest.mark.asyncio

async def _mk_book(books, **extra):
    return await books.create({"title": "War and Peace", "author": "Tolstoy", "year": 1869, **extra})

async def _mk_reader(readers, email="ivanov@example.com"):
    return await readers.create({"name": "Ivan Ivanov", "email": email})

async def _open_issues(database, book_id):
    async with database.transaction() as s:
        r = await s.execute(
            select(models.Issue).where(models.Issue.book_id == book_id, models.Issue.status == IssueStatus.ISSUED)
        )
        return r.scalars().all()

async def _assert_status_matches_issues(database, books):
    for book in await books.list():
        open_issues = await _open_issues(database, book.id)
        if book.status == BookStatus.ISSUED:
            assert len(open_issues) == 1
        else:
            assert open_issues == []

async def test_issue_and_return_round_trip(books, readers, loans, database):
    book = await _mk_book(books)
    assert book.status == BookStatus.AVAILABLE
    reader = await _mk_reader(readers)

    issue = await loans.issue_book(book.id, reader.id)
    assert issue.status == IssueStatus.ISSUED
    assert issue.issue_date == date.today()
    assert issue.return_date is None
    assert issue.book_id == book.id
    assert issue.reader_id == reader.id
    listed = await books.list()
    assert listed[0].status == BookStatus.ISSUED
    await _assert_status_matches_issues(database, books)

    returned = await loans.return_book(book.id)
    assert returned.id == issue.id
    assert returned.status == IssueStatus.RETURNED
    assert returned.return_date is not None
    assert returned.return_date >= returned.issue_date
    assert (await books.get_by_id(book.id)).status == BookStatus.AVAILABLE
    await _assert_status_matches_issues(database, books)

async def test_dates_come_from_the_injected_calendar(books, readers, database):
    days = iter([date(2024, 3, 1), date(2024, 3, 15)])
    loans = LoanService(database, today=lambda: next(days))
    book = await _mk_book(books)
    reader = await _mk_reader(readers)
    issue = await loans.issue_book(book.id, reader.id)
    returned = await loans.return_book(book.id)
    assert issue.issue_date == date(2024, 3, 1)
    assert returned.return_date - returned.issue_date == timedelta(days=14)

async def test_book_can_be_lent_again_after_return(books, readers, loans, database):
    book = await _mk_book(books)
    ivan = await _mk_reader(readers)
    petr = await _mk_reader(readers, email="petrov@example.com")
    await loans.issue_book(book.id, ivan.id)
    await loans.return_book(book.id)
    second = await loans.issue_book(book.id, petr.id)
    assert second.reader_id == petr.id
    await _assert_status_matches_issues(database, books)

async def test_issue_unknown_book(readers, loans, database):
    reader = await _mk_reader(readers)
    with pytest.raises(NotFound) as exc:
        await loans.issue_book(9999, reader.id)
    assert exc.value.entity == "book"
    async with database.transaction() as s:
        assert (await s.execute(select(models.Issue))).first() is None

async def test_issue_unknown_reader(books, loans, database):
    book = await _mk_book(books)
    with pytest.raises(NotFound) as exc:
        await loans.issue_book(book.id, 9999)
    assert exc.value.code == "READER_NOT_FOUND"
    assert (await books.get_by_id(book.id)).status == BookStatus.AVAILABLE
    assert await _open_issues(database, book.id) == []

@pytest.mark.parametrize("setup", ["issued", "repair"])
async def test_issue_unavailable_book(books, readers, loans, database, setup):
    book = await _mk_book(books)
    reader = await _mk_reader(readers)
    if setup == "issued":
        await loans.issue_book(book.id, reader.id)
    else:
        await books.update(book.id, {"status": "repair"})
    with pytest.raises(InvalidTransition) as exc:
        await loans.issue_book(book.id, reader.id)
    assert exc.value.code == "BOOK_NOT_AVAILABLE"
    assert len(await _open_issues(database, book.id)) == (1 if setup == "issued" else 0)
    await _assert_status_matches_issues(database, books)

async def test_return_without_open_issue(books, loans):
    book = await _mk_book(books)
    await books.update(book.id, {"status": "repair"})
    with pytest.raises(NotFound) as exc:
        await loans.return_book(book.id)
    assert exc.value.code == "ACTIVE_ISSUE_NOT_FOUND"
    assert (await books.get_by_id(book.id)).status == BookStatus.REPAIR

async def test_return_twice(books, readers, loans):
    book = await _mk_book(books)
    reader = await _mk_reader(readers)
    await loans.issue_book(book.id, reader.id)
    await loans.return_book(book.id)
    with pytest.raises(NotFound):
        await loans.return_book(book.id)
    assert (await books.get_by_id(book.id)).status == BookStatus.AVAILABLE

async def test_return_unknown_book(loans):
    with pytest.raises(NotFound):
        await loans.return_book(9999)

async def test_concurrent_issues_of_one_book(books, readers, database):
    book = await _mk_book(books)
    ivan = await _mk_reader(readers)
    petr = await _mk_reader(readers, email="petrov@example.com")
    # separate services share nothing but the database
    results = await asyncio.gather(
        LoanService(database).issue_book(book.id, ivan.id),
        LoanService(database).issue_book(book.id, petr.id),
        return_exceptions=True,
    )
    issued = [r for r in results if isinstance(r, models.Issue)]
    refused = [r for r in results if isinstance(r, InvalidTransition)]
    assert len(issued) == 1
    assert len(refused) == 1
    assert len(await _open_issues(database, book.id)) == 1
    await _assert_status_matches_issues(database, books)

async def test_concurrent_returns_of_one_book(books, readers, loans, database):
    book = await _mk_book(books)
    reader = await _mk_reader(readers)
    await loans.issue_book(book.id, reader.id)
    results = await asyncio.gather(
        LoanService(database).return_book(book.id),
        LoanService(database).return_book(book.id),
        return_exceptions=True,
    )
    assert sum(isinstance(r, models.Issue) for r in results) == 1
    assert sum(isinstance(r, NotFound) for r in results) == 1
    assert (await books.get_by_id(book.id)).status == BookStatus.AVAILABLE

async def test_concurrent_issues_on_in_memory_database():
    database = await Database("sqlite+aiosqlite:///:memory:").open()
    try:
        books, readers = BookStore(database), ReaderStore(database)
        book = await _mk_book(books)
        ivan = await _mk_reader(readers)
        petr = await _mk_reader(readers, email="petrov@example.com")
        results = await asyncio.gather(
            LoanService(database).issue_book(book.id, ivan.id),
            LoanService(database).issue_book(book.id, petr.id),
            return_exceptions=True,
        )
        assert sum(isinstance(r, models.Issue) for r in results) == 1
        assert sum(isinstance(r, InvalidTransition) for r in results) == 1
        assert len(await _open_issues(database, book.id)) == 1
        returned = await asyncio.gather(
            LoanService(database).return_book(book.id),
            LoanService(database).return_book(book.id),
            return_exceptions=True,
        )
        assert sum(isinstance(r, NotFound) for r in returned) == 1
        assert (await books.get_by_id(book.id)).status == BookStatus.AVAILABLE
    finally:
        await database.close()
