"""Seed a catalog with a small, realistic data set."""

import logging
from datetime import timedelta

from catalog.services.library import Library

logger = logging.getLogger("catalog.seed")

BOOKS = [
    dict(isbn="9780143127741", title="The Handmaid's Tale", author="Margaret Atwood",
         publication_year=1985, total_copies=3, genre="Dystopian Fiction"),
    dict(isbn="9780452284234", title="1984", author="George Orwell",
         publication_year=1949, total_copies=4, genre="Dystopian Fiction"),
    dict(isbn="9780060850524", title="Brave New World", author="Aldous Huxley",
         publication_year=1932, total_copies=2, genre="Science Fiction"),
    dict(isbn="9780141439518", title="Pride and Prejudice", author="Jane Austen",
         publication_year=1813, total_copies=5, genre="Romance"),
    dict(isbn="9780385472579", title="The Kite Runner", author="Khaled Hosseini",
         publication_year=2003, total_copies=3, genre="Historical Fiction"),
    dict(isbn="9780439708180", title="Harry Potter and the Sorcerer's Stone", author="J.K. Rowling",
         publication_year=1997, total_copies=6, genre="Fantasy"),
    dict(isbn="9780544003415", title="The Lord of the Rings", author="J.R.R. Tolkien",
         publication_year=1954, total_copies=4, genre="Fantasy"),
    dict(isbn="9780062315007", title="The Alchemist", author="Paulo Coelho",
         publication_year=1988, total_copies=3, genre="Philosophy"),
    dict(isbn="9780316769488", title="The Catcher in the Rye", author="J.D. Salinger",
         publication_year=1951, total_copies=2, genre="Coming of Age"),
    dict(isbn="9780307887894", title="Gone Girl", author="Gillian Flynn",
         publication_year=2012, total_copies=4, genre="Mystery Thriller"),
]

MEMBERS = [
    ("Alice Johnson", "alice.johnson@email.com"),
    ("Bob Smith", "bob.smith@email.com"),
    ("Carol Davis", "carol.davis@email.com"),
    ("David Wilson", "david.wilson@email.com"),
    ("Emma Brown", "emma.brown@email.com"),
    ("Frank Miller", "frank.miller@email.com"),
    ("Grace Lee", "grace.lee@email.com"),
    ("Henry Taylor", "henry.taylor@email.com"),
]

# (isbn, member index)
ACTIVE_LOANS = [
    ("9780143127741", 0),
    ("9780452284234", 1),
    ("9780439708180", 2),
    ("9780544003415", 0),
    ("9780307887894", 3),
]

# (isbn, member index, returned this many days ago after a full borrowing period)
RETURNED_LOANS = [
    ("9780060850524", 4, 5),
    ("9780141439518", 5, 20),
    ("9780385472579", 6, 10),
    ("9780062315007", 7, 25),
]

RESERVATIONS = [
    ("9780143127741", 1),
    ("9780439708180", 3),
]


def _backdated(library: Library, day) -> Library:
    """A view of ``library`` sharing its store whose clock is pinned to ``day``."""
    return Library(settings=library.settings, store=library.store, logger=library.logger, clock=lambda: day)


def generate_sample_data(library: Library) -> dict:
    """Load the sample books, members, loans and reservations into ``library``.

    Members, loans and reservations are only created on an empty member list,
    so running the seed twice only adds book copies.
    """
    for book in BOOKS:
        library.add_book(**book)

    if library.list_members():
        logger.info("Members already present, skipping loans and reservations")
        return {"books": len(BOOKS), "members": 0, "loans": 0, "reservations": 0}

    members = [library.register_member(name, email) for name, email in MEMBERS]

    for isbn, idx in ACTIVE_LOANS:
        library.checkout_book(isbn, members[idx].id)

    today = library.clock()
    for isbn, idx, days_ago in RETURNED_LOANS:
        checkout_date = today - timedelta(days=days_ago + library.settings.borrowing_period_days)
        _backdated(library, checkout_date).checkout_book(isbn, members[idx].id)
        library.return_book(isbn, members[idx].id, return_date=today - timedelta(days=days_ago))

    for isbn, idx in RESERVATIONS:
        library.reserve_book(isbn, members[idx].id)

    loans = len(ACTIVE_LOANS) + len(RETURNED_LOANS)
    logger.info("Seeded sample data: %d books, %d members, %d loans", len(BOOKS), len(members), loans)
    return {"books": len(BOOKS), "members": len(members), "loans": loans, "reservations": len(RESERVATIONS)}
