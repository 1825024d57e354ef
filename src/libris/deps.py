from fastapi import Depends, Request
from libris.db import Database
from libris.loans import LoanService
from libris.store import BookStore, IssueStore, ReaderStore

def get_database(request: Request) -> Database:
    return request.app.state.db

def get_book_store(db: Database = Depends(get_database)) -> BookStore:
    return BookStore(db)

def get_reader_store(db: Database = Depends(get_database)) -> ReaderStore:
    return ReaderStore(db)

def get_issue_store(db: Database = Depends(get_database)) -> IssueStore:
    return IssueStore(db)

def get_loan_service(db: Database = Depends(get_database)) -> LoanService:
    return LoanService(db)
