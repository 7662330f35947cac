"""Catalog workflows coordinating books, members, loans and reservations.

``Library`` is the only place that decides when an entity is created,
mutated or deleted.  It validates cross-entity rules, asks the entities to
change state and hands the results to the :class:`DataStore`.
"""

import functools
from collections import Counter
from datetime import date
from typing import Callable, List, Optional

from catalog.core.config import CatalogSettings
from catalog.core.exceptions import CatalogError, ConflictError, NoCopiesReserved, NotFoundError, ValidationError
from catalog.core.log import StructuredLogger
from catalog.core.validators import normalize_isbn
from catalog.models.models import Book, HistoryRecord, Loan, Member, Reservation
from catalog.schemas import schemas
from catalog.services.store import DataStore

SEARCH_FIELDS = ("all", "title", "author", "genre", "isbn")


def logged_operation(name: str):
    """Log catalog errors raised by a workflow at error level, then re-raise."""

    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except CatalogError as e:
                self.logger.error(f"{name} failed", {"operation": name, "code": e.code, "error": e.message})
                raise

        return wrapper

    return decorator


class Library:
    def __init__(self, settings: Optional[CatalogSettings] = None, store: Optional[DataStore] = None,
                 logger: Optional[StructuredLogger] = None, clock: Optional[Callable[[], date]] = None):
        self.settings = settings or CatalogSettings()
        self.logger = logger or StructuredLogger()
        self.store = store or DataStore(self.settings.data_dir, logger=self.logger)
        self.clock = clock or date.today
        self.logger.info("Library system initialized", {"data_dir": str(self.store.data_dir)})

    # -----------------------------
    # Books
    # -----------------------------
    @logged_operation("add_book")
    def add_book(self, isbn: str, title: str, author: str, publication_year: int,
                 total_copies: int = 1, genre: Optional[str] = None) -> Book:
        existing = self.store.find_book(normalize_isbn(isbn))
        if existing:
            existing.add_copies(total_copies)
            self.store.save_book(existing)
            self.logger.info("Added copies to existing book", {"isbn": existing.isbn, "copies_added": total_copies})
            return existing

        book = Book.create(isbn, title, author, publication_year, total_copies=total_copies, genre=genre,
                           as_of=self.clock())
        self.store.save_book(book)
        self.logger.info("New book added", {"isbn": book.isbn, "title": book.title})
        return book

    @logged_operation("remove_book")
    def remove_book(self, isbn: str) -> Book:
        book = self._get_book(isbn)
        if any(loan.active for loan in self.store.loans_for_book(book.isbn)):
            raise ConflictError("Cannot remove book with active loans", code="has_active_loans")

        self.store.remove_book(book.isbn)
        dropped = 0
        for reservation in self.store.all_reservations():
            if reservation.book_isbn == book.isbn:
                self.store.remove_reservation(reservation.id)
                dropped += 1
        self.logger.info("Book removed", {"isbn": book.isbn, "reservations_dropped": dropped})
        return book

    def find_book(self, isbn: str) -> Optional[Book]:
        return self.store.find_book(normalize_isbn(isbn))

    def list_books(self) -> List[Book]:
        return self.store.all_books()

    @logged_operation("search_books")
    def search_books(self, query: str, field: str = "all") -> List[Book]:
        if field not in SEARCH_FIELDS:
            raise ValidationError(f"Search field must be one of {', '.join(SEARCH_FIELDS)}", code="invalid_field")
        term = (query or "").lower()

        def matches(book: Book) -> bool:
            if field in ("all", "title") and term in book.title.lower():
                return True
            if field in ("all", "author") and term in book.author.lower():
                return True
            if field in ("all", "genre") and book.genre and term in book.genre.lower():
                return True
            if field == "isbn" and normalize_isbn(term) in book.isbn.lower():
                return True
            return False

        return [b for b in self.store.all_books() if matches(b)]

    # -----------------------------
    # Members
    # -----------------------------
    @logged_operation("register_member")
    def register_member(self, name: str, email: str) -> Member:
        member = Member.create(name, email, registration_date=self.clock())
        self.store.save_member(member)
        self.logger.info("New member registered", {"member_id": member.id, "name": member.name})
        return member

    def find_member(self, member_id: str) -> Optional[Member]:
        return self.store.find_member(member_id)

    def list_members(self) -> List[Member]:
        return self.store.all_members()

    @logged_operation("get_member_borrowing_history")
    def get_member_borrowing_history(self, member_id: str) -> schemas.MemberHistory:
        member = self._get_member(member_id)
        entries = []
        for record in member.borrowing_history:
            book = self.store.find_book(record.book_isbn)
            entries.append(schemas.HistoryEntry(
                **record.model_dump(),
                book_title=book.title if book else None,
                book_author=book.author if book else None,
            ))
        return schemas.MemberHistory(
            member=member,
            borrowing_history=entries,
            current_loans_count=member.books_currently_borrowed,
            total_books_borrowed=member.total_books_borrowed,
        )

    # -----------------------------
    # Loans
    # -----------------------------
    @logged_operation("checkout_book")
    def checkout_book(self, isbn: str, member_id: str) -> Loan:
        book = self._get_book(isbn)
        member = self._get_member(member_id)

        if not book.available:
            reservation = self.reserve_book(book.isbn, member.id)
            raise NoCopiesReserved(
                f"No copies available. Book reserved for you (Reservation ID: {reservation.id})",
                reservation_id=reservation.id,
            )

        book.checkout_copy()
        loan = Loan.create(book.isbn, member.id, checkout_date=self.clock(),
                           borrowing_days=self.settings.borrowing_period_days)
        member.add_to_history(HistoryRecord(
            book_isbn=book.isbn,
            checkout_date=loan.checkout_date,
            due_date=loan.due_date,
        ))

        self.store.save_book(book)
        self.store.save_loan(loan)
        self.store.save_member(member)
        self.logger.info("Book checked out", {"isbn": book.isbn, "member_id": member.id, "loan_id": loan.id})
        return loan

    @logged_operation("return_book")
    def return_book(self, isbn: str, member_id: str, return_date: Optional[date] = None) -> Loan:
        book = self._get_book(isbn)
        member = self._get_member(member_id)
        return_date = return_date or self.clock()

        loan = next((l for l in self.store.loans_for_member(member.id)
                     if l.book_isbn == book.isbn and l.active), None)
        if loan is None:
            raise ConflictError("No active loan found for this book and member", code="no_active_loan")
        if return_date < loan.checkout_date:
            raise ValidationError("Return date cannot be before the checkout date", code="invalid_return_date")

        loan.return_loan(return_date, daily_rate=self.settings.daily_late_fee)
        book.return_copy()
        member.close_history_record(book.isbn, return_date)

        self.store.save_book(book)
        self.store.save_loan(loan)
        self.store.save_member(member)

        self._fulfill_next_reservation(book.isbn, as_of=return_date)

        self.logger.info("Book returned", {
            "isbn": book.isbn,
            "member_id": member.id,
            "loan_id": loan.id,
            "late_fee": loan.late_fee,
        })
        return loan

    def members_with_overdue_books(self, as_of: Optional[date] = None) -> List[schemas.OverdueMember]:
        as_of = as_of or self.clock()
        report = []
        for member in self.store.all_members():
            overdue = member.overdue_loans(as_of)
            if overdue:
                report.append(schemas.OverdueMember(
                    member=member,
                    overdue_loans=overdue,
                    total_late_fees=member.calculate_late_fees(as_of, daily_rate=self.settings.daily_late_fee),
                ))
        return report

    # -----------------------------
    # Reservations
    # -----------------------------
    @logged_operation("reserve_book")
    def reserve_book(self, isbn: str, member_id: str) -> Reservation:
        book = self._get_book(isbn)
        member = self._get_member(member_id)
        today = self.clock()

        if any(r.member_id == member.id for r in self.store.reservations_for_book(book.isbn, as_of=today)):
            raise ConflictError("Member already has an active reservation for this book",
                                code="duplicate_reservation")

        reservation = Reservation.create(book.isbn, member.id, reservation_date=today,
                                         hold_days=self.settings.hold_period_days)
        self.store.save_reservation(reservation)
        self.logger.info("Book reserved", {
            "isbn": book.isbn,
            "member_id": member.id,
            "reservation_id": reservation.id,
        })
        return reservation

    @logged_operation("cleanup_expired_reservations")
    def cleanup_expired_reservations(self, as_of: Optional[date] = None) -> int:
        as_of = as_of or self.clock()
        removed = 0
        for reservation in self.store.all_reservations():
            if reservation.expired(as_of):
                self.store.remove_reservation(reservation.id)
                removed += 1
                self.logger.info("Expired reservation removed", {
                    "reservation_id": reservation.id,
                    "book_isbn": reservation.book_isbn,
                })
        return removed

    def _fulfill_next_reservation(self, isbn: str, as_of: date) -> Optional[Reservation]:
        # only reservations already made and still active on the event date are eligible;
        # sorted() is stable so equal dates keep store insertion order
        pending = sorted(
            (r for r in self.store.reservations_for_book(isbn, as_of=as_of) if r.reservation_date <= as_of),
            key=lambda r: r.reservation_date,
        )
        if not pending:
            return None
        reservation = pending[0]
        reservation.fulfill()
        self.store.save_reservation(reservation)
        self.logger.info("Reservation fulfilled", {"reservation_id": reservation.id, "book_isbn": isbn})
        return reservation

    # -----------------------------
    # Reports
    # -----------------------------
    def borrow_counts(self) -> Counter:
        """Loan count per ISBN, keyed in order of first loan seen."""
        return Counter(loan.book_isbn for loan in self.store.all_loans())

    @logged_operation("top_borrowed_books")
    def top_borrowed_books(self, limit: Optional[int] = None) -> List[schemas.BookBorrowCount]:
        if limit is None:
            limit = self.settings.top_books_limit
        if limit < 0:
            raise ValidationError("Limit cannot be negative", code="invalid_limit")
        ranked = sorted(self.borrow_counts().items(), key=lambda item: -item[1])[:limit]
        return [
            schemas.BookBorrowCount(isbn=isbn, book=self.store.find_book(isbn), borrow_count=count)
            for isbn, count in ranked
        ]

    def statistics(self) -> schemas.Statistics:
        today = self.clock()
        members = self.store.all_members()
        most_active = max(members, key=lambda m: m.total_books_borrowed, default=None)
        return schemas.Statistics(
            total_books=len(self.store.all_books()),
            total_members=len(members),
            active_loans=len(self.store.active_loans()),
            active_reservations=len(self.store.active_reservations(as_of=today)),
            overdue_loans=sum(1 for loan in self.store.all_loans() if loan.overdue(today)),
            top_borrowed_books=self.top_borrowed_books(),
            most_active_member=most_active,
        )

    # -----------------------------
    # Internal helpers
    # -----------------------------
    def _get_book(self, isbn: str) -> Book:
        book = self.store.find_book(normalize_isbn(isbn))
        if book is None:
            raise NotFoundError("Book not found", code="book_not_found")
        return book

    def _get_member(self, member_id: str) -> Member:
        member = self.store.find_member(member_id)
        if member is None:
            raise NotFoundError("Member not found", code="member_not_found")
        return member
