"""Domain entities: books, members, loans and reservations.

Each entity is a pydantic model so that the JSON files written by the store
have a single canonical schema.  ``create`` factories enforce the business
validation; ``from_map`` only checks the stored shape.
"""

import uuid
from datetime import date, timedelta
from typing import Any, ClassVar, Dict, List, Optional

from pydantic import BaseModel

from catalog.core.exceptions import ConflictError, ValidationError
from catalog.core.validators import normalize_isbn, valid_email, valid_isbn

BORROWING_PERIOD_DAYS = 14
HOLD_PERIOD_DAYS = 3
DAILY_LATE_FEE = 10


def _new_id() -> str:
    return str(uuid.uuid4())


def _require_id(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field.replace('_', ' ').capitalize()} cannot be empty", code=f"empty_{field}")
    return str(value).strip()


class Entity(BaseModel):
    """Shared (de)serialization and identity equality."""

    _identity_field: ClassVar[str] = "id"

    @property
    def identity(self) -> str:
        return getattr(self, self._identity_field)

    def to_map(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_map(cls, data: Dict[str, Any]):
        return cls.model_validate({str(k): v for k, v in data.items()})

    def __eq__(self, other):
        if not isinstance(other, type(self)):
            return NotImplemented
        return self.identity == other.identity

    def __hash__(self):
        return hash(self.identity)


class Book(Entity):
    _identity_field: ClassVar[str] = "isbn"

    isbn: str
    title: str
    author: str
    publication_year: int
    total_copies: int
    available_copies: int
    genre: Optional[str] = None

    @classmethod
    def create(cls, isbn: str, title: str, author: str, publication_year: int,
               total_copies: int = 1, genre: Optional[str] = None, as_of: Optional[date] = None) -> "Book":
        if not valid_isbn(isbn):
            raise ValidationError("Invalid ISBN format", code="invalid_isbn")
        if title is None or not title.strip():
            raise ValidationError("Title cannot be empty", code="empty_title")
        if author is None or not author.strip():
            raise ValidationError("Author cannot be empty", code="empty_author")
        if not _valid_year(publication_year, as_of or date.today()):
            raise ValidationError("Invalid publication year", code="invalid_year")
        if not _positive(total_copies):
            raise ValidationError("Total copies must be positive", code="non_positive_copies")
        return cls(
            isbn=normalize_isbn(isbn),
            title=title.strip(),
            author=author.strip(),
            publication_year=publication_year,
            total_copies=total_copies,
            available_copies=total_copies,
            genre=genre.strip() if genre else None,
        )

    @property
    def available(self) -> bool:
        return self.available_copies > 0

    def checkout_copy(self) -> None:
        if self.available_copies <= 0:
            raise ConflictError("No copies available for checkout", code="no_copies_available")
        self.available_copies -= 1

    def return_copy(self) -> None:
        if self.available_copies >= self.total_copies:
            raise ConflictError("Cannot return more copies than total", code="over_return")
        self.available_copies += 1

    def add_copies(self, count: int) -> None:
        if not _positive(count):
            raise ValidationError("Count must be positive", code="non_positive_copies")
        self.total_copies += count
        self.available_copies += count

    def remove_copies(self, count: int) -> None:
        if not _positive(count):
            raise ValidationError("Count must be positive", code="non_positive_copies")
        if count > self.available_copies:
            raise ConflictError("Cannot remove more copies than available", code="insufficient_available")
        self.total_copies -= count
        self.available_copies -= count

    def __str__(self):
        return f"{self.title} by {self.author} (ISBN: {self.isbn})"


class HistoryRecord(BaseModel):
    """Snapshot of one loan kept on the member."""

    book_isbn: str
    checkout_date: date
    due_date: date
    return_date: Optional[date] = None

    @property
    def is_open(self) -> bool:
        return self.return_date is None


class Member(Entity):
    id: str
    name: str
    email: str
    registration_date: date
    borrowing_history: List[HistoryRecord] = []

    @classmethod
    def create(cls, name: str, email: str, registration_date: Optional[date] = None) -> "Member":
        if name is None or not name.strip():
            raise ValidationError("Name cannot be empty", code="empty_name")
        clean_email = (email or "").strip().lower()
        if not valid_email(clean_email):
            raise ValidationError("Invalid email format", code="invalid_email")
        return cls(
            id=_new_id(),
            name=name.strip(),
            email=clean_email,
            registration_date=registration_date or date.today(),
            borrowing_history=[],
        )

    def add_to_history(self, record: HistoryRecord) -> None:
        self.borrowing_history.append(record)

    def close_history_record(self, isbn: str, return_date: date) -> Optional[HistoryRecord]:
        for record in self.borrowing_history:
            if record.book_isbn == isbn and record.is_open:
                record.return_date = return_date
                return record
        return None

    def current_loans(self) -> List[HistoryRecord]:
        return [r for r in self.borrowing_history if r.is_open]

    def overdue_loans(self, as_of: Optional[date] = None) -> List[HistoryRecord]:
        as_of = as_of or date.today()
        return [r for r in self.current_loans() if r.due_date < as_of]

    def has_overdue_books(self, as_of: Optional[date] = None) -> bool:
        return bool(self.overdue_loans(as_of))

    def calculate_late_fees(self, as_of: Optional[date] = None, daily_rate: int = DAILY_LATE_FEE) -> int:
        as_of = as_of or date.today()
        return sum((as_of - r.due_date).days * daily_rate for r in self.overdue_loans(as_of))

    @property
    def total_books_borrowed(self) -> int:
        return len(self.borrowing_history)

    @property
    def books_currently_borrowed(self) -> int:
        return len(self.current_loans())

    def __str__(self):
        return f"{self.name} ({self.email})"


class Loan(Entity):
    id: str
    book_isbn: str
    member_id: str
    checkout_date: date
    due_date: date
    return_date: Optional[date] = None
    late_fee: int = 0

    @classmethod
    def create(cls, book_isbn: str, member_id: str, checkout_date: Optional[date] = None,
               borrowing_days: int = BORROWING_PERIOD_DAYS) -> "Loan":
        book_isbn = _require_id(book_isbn, "book_isbn")
        member_id = _require_id(member_id, "member_id")
        checkout_date = checkout_date or date.today()
        return cls(
            id=_new_id(),
            book_isbn=book_isbn,
            member_id=member_id,
            checkout_date=checkout_date,
            due_date=checkout_date + timedelta(days=borrowing_days),
        )

    @property
    def active(self) -> bool:
        return self.return_date is None

    @property
    def returned(self) -> bool:
        return self.return_date is not None

    def return_loan(self, return_date: Optional[date] = None, daily_rate: int = DAILY_LATE_FEE) -> int:
        if self.returned:
            raise ConflictError("Book already returned", code="already_returned")
        return_date = return_date or date.today()
        self.late_fee = max(0, (return_date - self.due_date).days) * daily_rate
        self.return_date = return_date
        return self.late_fee

    def overdue(self, as_of: Optional[date] = None) -> bool:
        return self.active and (as_of or date.today()) > self.due_date

    def days_overdue(self, as_of: Optional[date] = None) -> int:
        as_of = as_of or date.today()
        if not self.overdue(as_of):
            return 0
        return (as_of - self.due_date).days

    def calculate_late_fee(self, as_of: Optional[date] = None, daily_rate: int = DAILY_LATE_FEE) -> int:
        # frozen once returned
        if self.returned:
            return self.late_fee
        return self.days_overdue(as_of) * daily_rate

    def __str__(self):
        status = f"returned on {self.return_date}" if self.returned else f"due {self.due_date}"
        return f"Loan {self.id}: Book {self.book_isbn} to Member {self.member_id}, {status}"


class Reservation(Entity):
    id: str
    book_isbn: str
    member_id: str
    reservation_date: date
    expiration_date: date
    fulfilled: bool = False

    @classmethod
    def create(cls, book_isbn: str, member_id: str, reservation_date: Optional[date] = None,
               hold_days: int = HOLD_PERIOD_DAYS) -> "Reservation":
        book_isbn = _require_id(book_isbn, "book_isbn")
        member_id = _require_id(member_id, "member_id")
        reservation_date = reservation_date or date.today()
        return cls(
            id=_new_id(),
            book_isbn=book_isbn,
            member_id=member_id,
            reservation_date=reservation_date,
            expiration_date=reservation_date + timedelta(days=hold_days),
        )

    def fulfill(self) -> None:
        if self.fulfilled:
            raise ConflictError("Reservation already fulfilled", code="already_fulfilled")
        self.fulfilled = True

    def expired(self, as_of: Optional[date] = None) -> bool:
        return not self.fulfilled and (as_of or date.today()) > self.expiration_date

    def active(self, as_of: Optional[date] = None) -> bool:
        return not self.fulfilled and not self.expired(as_of)

    def days_until_expiration(self, as_of: Optional[date] = None) -> int:
        as_of = as_of or date.today()
        if self.fulfilled or self.expired(as_of):
            return 0
        return (self.expiration_date - as_of).days

    def __str__(self):
        if self.fulfilled:
            status = "fulfilled"
        elif self.expired():
            status = "expired"
        else:
            status = f"active (expires {self.expiration_date})"
        return f"Reservation {self.id}: Book {self.book_isbn} for Member {self.member_id}, {status}"


def _positive(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _valid_year(year, as_of: date) -> bool:
    if not isinstance(year, int) or isinstance(year, bool):
        return False
    return 0 < year <= as_of.year
