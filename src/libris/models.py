import enum
from datetime import date, datetime, timezone
from sqlalchemy import (
    String, Integer, Enum, ForeignKey, Date, DateTime
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from libris.db import Base

class BookStatus(str, enum.Enum):
    AVAILABLE = "available"
    ISSUED    = "issued"
    REPAIR    = "repair"

class IssueStatus(str, enum.Enum):
    ISSUED   = "issued"
    RETURNED = "returned"
    OVERDUE  = "overdue"  # reserved, nothing sets it yet

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

def _values(enum_cls):
    return [m.value for m in enum_cls]

class Book(Base):
    __tablename__ = "books"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    author: Mapped[str] = mapped_column(String, nullable=False, index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[BookStatus] = mapped_column(
        Enum(BookStatus, native_enum=False, create_constraint=True, values_callable=_values, validate_strings=True),
        default=BookStatus.AVAILABLE, nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
    issues = relationship("Issue", back_populates="book", passive_deletes=True)

class Reader(Base):
    __tablename__ = "readers"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
    phone: Mapped[str | None] = mapped_column(String)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
    issues = relationship("Issue", back_populates="reader", passive_deletes=True)

class Issue(Base):
    __tablename__ = "issues"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    book_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("books.id", ondelete="SET NULL"), index=True)
    reader_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("readers.id", ondelete="SET NULL"), index=True)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    return_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[IssueStatus] = mapped_column(
        Enum(IssueStatus, native_enum=False, create_constraint=True, values_callable=_values, validate_strings=True),
        default=IssueStatus.ISSUED, nullable=False, index=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
    book = relationship("Book", back_populates="issues")
    reader = relationship("Reader", back_populates="issues")
