from datetime import date
from pydantic import BaseModel, ConfigDict, Field
from libris.models import BookStatus, IssueStatus

# Field-level rules live in libris.validators; these models only shape JSON.

class BookIn(BaseModel):
    title: str
    author: str
    year: int
    status: str | None = None

class BookUpdate(BaseModel):
    title: str | None = None
    author: str | None = None
    year: int | None = None
    status: str | None = None

class BookOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    title: str
    author: str
    year: int
    status: BookStatus

class ReaderIn(BaseModel):
    name: str
    email: str
    phone: str | None = None

class ReaderUpdate(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None

class ReaderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    name: str
    email: str
    phone: str | None

class IssueIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    book_id: int = Field(alias="bookId")
    reader_id: int = Field(alias="readerId")

class ReturnIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    book_id: int = Field(alias="bookId")

class IssueOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    book_id: int | None = Field(serialization_alias="bookId")
    reader_id: int | None = Field(serialization_alias="readerId")
    issue_date: date = Field(serialization_alias="issueDate")
    return_date: date | None = Field(serialization_alias="returnDate")
    status: IssueStatus

class ErrorOut(BaseModel):
    error: str
    code: str
    fields: dict[str, str] | None = None
