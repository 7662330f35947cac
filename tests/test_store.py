import json
import logging
from datetime import date

import pytest

from catalog.core.exceptions import PersistenceError
from catalog.models.models import Book, Loan, Member, Reservation
from catalog.services.store import DataStore

ISBN = "9780306406157"


@pytest.fixture
def store(tmp_path):
    return DataStore(str(tmp_path / "data"))


def make_book(isbn=ISBN):
    return Book.create(isbn, "Test Book", "Test Author", 2020, total_copies=2)


def test_creates_data_dir_and_starts_empty(tmp_path):
    data_dir = tmp_path / "nested" / "data"
    store = DataStore(str(data_dir))
    assert data_dir.is_dir()
    assert store.all_books() == []
    assert store.all_members() == []
    assert store.all_loans() == []
    assert store.all_reservations() == []


def test_save_book_writes_pretty_json_keyed_by_isbn(store):
    book = make_book()
    store.save_book(book)

    text = store.books_file.read_text(encoding="utf-8")
    assert "\n  " in text
    data = json.loads(text)
    assert list(data) == [ISBN]
    assert data[ISBN]["title"] == "Test Book"
    assert store.find_book(ISBN) is book


def test_collections_reload_from_disk(tmp_path):
    data_dir = str(tmp_path / "data")
    store = DataStore(data_dir)
    book = make_book()
    member = Member.create("Jane", "jane@example.com")
    loan = Loan.create(ISBN, member.id, checkout_date=date(2025, 1, 1))
    reservation = Reservation.create(ISBN, member.id, reservation_date=date(2025, 1, 2))
    store.save_book(book)
    store.save_member(member)
    store.save_loan(loan)
    store.save_reservation(reservation)

    reloaded = DataStore(data_dir)
    assert reloaded.find_book(ISBN).available_copies == 2
    assert reloaded.find_member(member.id).email == "jane@example.com"
    assert reloaded.find_loan(loan.id).due_date == date(2025, 1, 15)
    assert reloaded.find_reservation(reservation.id).expiration_date == date(2025, 1, 5)


def test_remove_rewrites_file_and_returns_entity(store):
    store.save_book(make_book())
    removed = store.remove_book(ISBN)
    assert removed.isbn == ISBN
    assert json.loads(store.books_file.read_text()) == {}
    assert store.remove_book(ISBN) is None


def test_filtered_queries(store):
    other_isbn = "9780132350884"
    active = Loan.create(ISBN, "m1", checkout_date=date(2025, 1, 1))
    returned = Loan.create(ISBN, "m2", checkout_date=date(2025, 1, 1))
    returned.return_loan(date(2025, 1, 5))
    elsewhere = Loan.create(other_isbn, "m1", checkout_date=date(2025, 1, 1))
    for loan in (active, returned, elsewhere):
        store.save_loan(loan)

    assert store.loans_for_book(ISBN) == [active, returned]
    assert store.loans_for_member("m1") == [active, elsewhere]
    assert store.active_loans() == [active, elsewhere]

    today = date.today()
    pending = Reservation.create(ISBN, "m1", reservation_date=today)
    fulfilled = Reservation.create(ISBN, "m2", reservation_date=today)
    fulfilled.fulfill()
    for res in (pending, fulfilled):
        store.save_reservation(res)

    assert store.reservations_for_book(ISBN) == [pending]
    assert store.reservations_for_member("m2") == [fulfilled]
    assert store.active_reservations() == [pending]


def test_reads_do_not_touch_disk(store):
    store.save_book(make_book())
    store.books_file.unlink()
    assert store.find_book(ISBN) is not None
    assert len(store.all_books()) == 1


def test_corrupt_file_loads_as_empty_and_logs(tmp_path, caplog):
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "books.json").write_text("{not json", encoding="utf-8")
    (data_dir / "members.json").write_text(json.dumps({"x": {"id": "x"}}), encoding="utf-8")

    with caplog.at_level(logging.ERROR, logger="catalog"):
        store = DataStore(str(data_dir))

    assert store.all_books() == []
    assert store.all_members() == []
    assert "Failed to parse books file" in caplog.text
    assert "Failed to load members" in caplog.text


def test_failed_write_raises_persistence_error_after_mutating(store, monkeypatch):
    def boom(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr("catalog.services.store.os.replace", boom)
    with pytest.raises(PersistenceError):
        store.save_book(make_book())
    assert store.find_book(ISBN) is not None


def test_remove_member(store):
    member = Member.create("Jane", "jane@example.com")
    store.save_member(member)
    assert store.remove_member(member.id) == member
    assert store.find_member(member.id) is None
    assert json.loads(store.members_file.read_text()) == {}
