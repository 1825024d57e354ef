import pytest_asyncio
from libris.db import Database
from libris.loans import LoanService
from libris.store import BookStore, ReaderStore, IssueStore

@pytest_asyncio.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'library.db'}")
    await db.open()
    try:
        yield db
    finally:
        await db.close()

@pytest_asyncio.fixture
async def books(database):
    return BookStore(database)

@pytest_asyncio.fixture
async def readers(database):
    return ReaderStore(database)

@pytest_asyncio.fixture
async def issues(database):
    return IssueStore(database)

@pytest_asyncio.fixture
async def loans(database):
    return LoanService(database)
