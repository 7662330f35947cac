"""JSON-file backed store for the four catalog collections.

Each collection lives in memory as a dict keyed by identity and is mirrored
to one JSON file (``books.json``, ``members.json``, ``loans.json``,
``reservations.json``).  Every mutation rewrites the whole file of the
collection it touched; reads never go to disk.
"""

import json
import os
import threading
from pathlib import Path
from typing import Dict, List, Optional, Type

from pydantic import ValidationError as SchemaError

from catalog.core.config import DEFAULT_DATA_DIR
from catalog.core.exceptions import PersistenceError
from catalog.core.log import StructuredLogger
from catalog.models.models import Book, Entity, Loan, Member, Reservation

BOOKS_FILE = "books.json"
MEMBERS_FILE = "members.json"
LOANS_FILE = "loans.json"
RESERVATIONS_FILE = "reservations.json"


class DataStore:
    def __init__(self, data_dir: Optional[str] = None, logger: Optional[StructuredLogger] = None):
        self.data_dir = Path(data_dir or DEFAULT_DATA_DIR)
        self.logger = logger or StructuredLogger()
        self._lock = threading.RLock()
        self.data_dir.mkdir(parents=True, exist_ok=True)

        self.books_file = self.data_dir / BOOKS_FILE
        self.members_file = self.data_dir / MEMBERS_FILE
        self.loans_file = self.data_dir / LOANS_FILE
        self.reservations_file = self.data_dir / RESERVATIONS_FILE

        self._books: Dict[str, Book] = self._load(self.books_file, Book, "books")
        self._members: Dict[str, Member] = self._load(self.members_file, Member, "members")
        self._loans: Dict[str, Loan] = self._load(self.loans_file, Loan, "loans")
        self._reservations: Dict[str, Reservation] = self._load(self.reservations_file, Reservation, "reservations")

    # -----------------------------
    # Books
    # -----------------------------
    def save_book(self, book: Book) -> None:
        with self._lock:
            self._books[book.isbn] = book
            self._write(self.books_file, self._books)
        self.logger.debug("Book saved", {"isbn": book.isbn, "title": book.title})

    def find_book(self, isbn: str) -> Optional[Book]:
        return self._books.get(isbn)

    def all_books(self) -> List[Book]:
        return list(self._books.values())

    def remove_book(self, isbn: str) -> Optional[Book]:
        with self._lock:
            book = self._books.pop(isbn, None)
            if book is not None:
                self._write(self.books_file, self._books)
        if book is not None:
            self.logger.debug("Book removed", {"isbn": isbn})
        return book

    # -----------------------------
    # Members
    # -----------------------------
    def save_member(self, member: Member) -> None:
        with self._lock:
            self._members[member.id] = member
            self._write(self.members_file, self._members)
        self.logger.debug("Member saved", {"member_id": member.id, "name": member.name})

    def find_member(self, member_id: str) -> Optional[Member]:
        return self._members.get(member_id)

    def all_members(self) -> List[Member]:
        return list(self._members.values())

    def remove_member(self, member_id: str) -> Optional[Member]:
        with self._lock:
            member = self._members.pop(member_id, None)
            if member is not None:
                self._write(self.members_file, self._members)
        if member is not None:
            self.logger.debug("Member removed", {"member_id": member_id})
        return member

    # -----------------------------
    # Loans
    # -----------------------------
    def save_loan(self, loan: Loan) -> None:
        with self._lock:
            self._loans[loan.id] = loan
            self._write(self.loans_file, self._loans)
        self.logger.debug("Loan saved", {"loan_id": loan.id, "book_isbn": loan.book_isbn, "member_id": loan.member_id})

    def find_loan(self, loan_id: str) -> Optional[Loan]:
        return self._loans.get(loan_id)

    def all_loans(self) -> List[Loan]:
        return list(self._loans.values())

    def active_loans(self) -> List[Loan]:
        return [l for l in self._loans.values() if l.active]

    def loans_for_member(self, member_id: str) -> List[Loan]:
        return [l for l in self._loans.values() if l.member_id == member_id]

    def loans_for_book(self, isbn: str) -> List[Loan]:
        return [l for l in self._loans.values() if l.book_isbn == isbn]

    # -----------------------------
    # Reservations
    # -----------------------------
    def save_reservation(self, reservation: Reservation) -> None:
        with self._lock:
            self._reservations[reservation.id] = reservation
            self._write(self.reservations_file, self._reservations)
        self.logger.debug("Reservation saved", {
            "reservation_id": reservation.id,
            "book_isbn": reservation.book_isbn,
            "member_id": reservation.member_id,
        })

    def find_reservation(self, reservation_id: str) -> Optional[Reservation]:
        return self._reservations.get(reservation_id)

    def all_reservations(self) -> List[Reservation]:
        return list(self._reservations.values())

    def active_reservations(self, as_of=None) -> List[Reservation]:
        return [r for r in self._reservations.values() if r.active(as_of)]

    def reservations_for_book(self, isbn: str, as_of=None) -> List[Reservation]:
        """Active reservations only."""
        return [r for r in self._reservations.values() if r.book_isbn == isbn and r.active(as_of)]

    def reservations_for_member(self, member_id: str) -> List[Reservation]:
        return [r for r in self._reservations.values() if r.member_id == member_id]

    def remove_reservation(self, reservation_id: str) -> Optional[Reservation]:
        with self._lock:
            reservation = self._reservations.pop(reservation_id, None)
            if reservation is not None:
                self._write(self.reservations_file, self._reservations)
        if reservation is not None:
            self.logger.debug("Reservation removed", {"reservation_id": reservation_id})
        return reservation

    # -----------------------------
    # File I/O
    # -----------------------------
    def _load(self, path: Path, model: Type[Entity], name: str) -> dict:
        if not path.exists():
            return {}
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            if not isinstance(raw, dict):
                raise ValueError(f"expected a JSON object, got {type(raw).__name__}")
            return {str(key): model.from_map(item) for key, item in raw.items()}
        except json.JSONDecodeError as e:
            self.logger.error(f"Failed to parse {name} file", {"file": str(path), "error": e.msg})
        except (SchemaError, ValueError, TypeError, AttributeError) as e:
            self.logger.error(f"Failed to load {name}", {"file": str(path), "error": str(e).splitlines()[0]})
        except OSError as e:
            self.logger.error(f"Failed to read {name} file", {"file": str(path), "error": e.strerror})
        return {}

    def _write(self, path: Path, collection: Dict[str, Entity]) -> None:
        data = {key: entity.to_map() for key, entity in collection.items()}
        tmp_path = path.with_suffix(".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, path)
        except (OSError, TypeError) as e:
            self.logger.error("Failed to save to file", {"file": str(path), "error": str(e)})
            raise PersistenceError(f"Could not write {path.name}: {e}") from e
