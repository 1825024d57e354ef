from fastapi import APIRouter, Depends, Response, status
from fastapi.security import HTTPBearer

from libris.deps import get_book_store, get_reader_store, get_issue_store, get_loan_service
from libris.loans import LoanService
from libris.store import BookStore, ReaderStore, IssueStore
from libris.schemas import (
    BookIn, BookUpdate, BookOut,
    ReaderIn, ReaderUpdate, ReaderOut,
    IssueIn, ReturnIn, IssueOut,
    ErrorOut,
)

# Advertised in the OpenAPI document only; the token is never checked.
bearer = HTTPBearer(auto_error=False)

ERRORS = {
    400: {"model": ErrorOut, "description": "Invalid data or transition"},
    404: {"model": ErrorOut, "description": "Not found"},
}

router = APIRouter(dependencies=[Depends(bearer)], responses=ERRORS)

# Books

@router.get("/books", response_model=list[BookOut], tags=["Books"])
async def http_list_books(books: BookStore = Depends(get_book_store)):
    return await books.list()

@router.post("/books", response_model=BookOut, status_code=status.HTTP_201_CREATED, tags=["Books"])
async def http_create_book(payload: BookIn, books: BookStore = Depends(get_book_store)):
    return await books.create(payload.model_dump(exclude_unset=True))

@router.get("/books/{book_id}", response_model=BookOut, tags=["Books"])
async def http_get_book(book_id: int, books: BookStore = Depends(get_book_store)):
    return await books.get_by_id(book_id)

@router.put("/books/{book_id}", response_model=BookOut, tags=["Books"])
async def http_update_book(book_id: int, payload: BookUpdate, books: BookStore = Depends(get_book_store)):
    return await books.update(book_id, payload.model_dump(exclude_unset=True))

@router.delete("/books/{book_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Books"])
async def http_delete_book(book_id: int, books: BookStore = Depends(get_book_store)):
    await books.delete(book_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

# Readers

@router.get("/readers", response_model=list[ReaderOut], tags=["Readers"])
async def http_list_readers(readers: ReaderStore = Depends(get_reader_store)):
    return await readers.list()

@router.post("/readers", response_model=ReaderOut, status_code=status.HTTP_201_CREATED, tags=["Readers"])
async def http_create_reader(payload: ReaderIn, readers: ReaderStore = Depends(get_reader_store)):
    return await readers.create(payload.model_dump(exclude_unset=True))

@router.get("/readers/{reader_id}", response_model=ReaderOut, tags=["Readers"])
async def http_get_reader(reader_id: int, readers: ReaderStore = Depends(get_reader_store)):
    return await readers.get_by_id(reader_id)

@router.put("/readers/{reader_id}", response_model=ReaderOut, tags=["Readers"])
async def http_update_reader(reader_id: int, payload: ReaderUpdate, readers: ReaderStore = Depends(get_reader_store)):
    return await readers.update(reader_id, payload.model_dump(exclude_unset=True))

@router.delete("/readers/{reader_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Readers"])
async def http_delete_reader(reader_id: int, readers: ReaderStore = Depends(get_reader_store)):
    await readers.delete(reader_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

# Issues

@router.get("/issues", response_model=list[IssueOut], tags=["Issues"])
async def http_list_issues(issues: IssueStore = Depends(get_issue_store)):
    return await issues.list()

@router.get("/issues/{issue_id}", response_model=IssueOut, tags=["Issues"])
async def http_get_issue(issue_id: int, issues: IssueStore = Depends(get_issue_store)):
    return await issues.get_by_id(issue_id)

@router.get("/books/{book_id}/issues", response_model=list[IssueOut], tags=["Issues"])
async def http_list_book_issues(book_id: int, issues: IssueStore = Depends(get_issue_store)):
    return await issues.list_for_book(book_id)

@router.get("/readers/{reader_id}/issues", response_model=list[IssueOut], tags=["Issues"])
async def http_list_reader_issues(reader_id: int, issues: IssueStore = Depends(get_issue_store)):
    return await issues.list_for_reader(reader_id)

@router.post("/issue", response_model=IssueOut, status_code=status.HTTP_201_CREATED, tags=["Issues"])
async def http_issue_book(payload: IssueIn, loans: LoanService = Depends(get_loan_service)):
    return await loans.issue_book(payload.book_id, payload.reader_id)

@router.post("/return", response_model=IssueOut, tags=["Issues"])
async def http_return_book(payload: ReturnIn, loans: LoanService = Depends(get_loan_service)):
    return await loans.return_book(payload.book_id)
