from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, constr, field_validator

from catalog.models.models import Book, HistoryRecord, Member


class BookImportRow(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    isbn: constr(min_length=10)
    title: constr(min_length=1)
    author: constr(min_length=1)
    publication_year: int
    total_copies: int = Field(default=1, ge=1)
    genre: Optional[str] = None

    @field_validator("genre", mode="before")
    @classmethod
    def blank_genre_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ImportRowError(BaseModel):
    row: int
    error: str


class ImportResult(BaseModel):
    created: int = 0
    merged: int = 0
    errors: List[ImportRowError] = []


class BookBorrowCount(BaseModel):
    isbn: str
    book: Optional[Book] = None
    borrow_count: int


class Statistics(BaseModel):
    total_books: int
    total_members: int
    active_loans: int
    active_reservations: int
    overdue_loans: int
    top_borrowed_books: List[BookBorrowCount] = []
    most_active_member: Optional[Member] = None


class OverdueMember(BaseModel):
    member: Member
    overdue_loans: List[HistoryRecord]
    total_late_fees: int


class HistoryEntry(BaseModel):
    book_isbn: str
    checkout_date: date
    due_date: date
    return_date: Optional[date] = None
    book_title: Optional[str] = None
    book_author: Optional[str] = None


class MemberHistory(BaseModel):
    member: Member
    borrowing_history: List[HistoryEntry]
    current_loans_count: int
    total_books_borrowed: int
