import argparse
import sys
from datetime import date
from typing import List, Optional

from catalog.core.config import CatalogSettings
from catalog.core.exceptions import CatalogError
from catalog.core.log import StructuredLogger, configure_logging
from catalog.sample_data import generate_sample_data
from catalog.services.library import SEARCH_FIELDS, Library
from catalog.services.transfer import export_top_borrowed_csv, import_books_csv


def create_library(settings: Optional[CatalogSettings] = None) -> Library:
    settings = settings or CatalogSettings.from_env()
    logger = configure_logging(settings.log_level, settings.log_file)
    return Library(settings=settings, logger=StructuredLogger(logger))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="catalog", description="Library catalog utilities")
    parser.add_argument("--data-dir", help="directory holding the JSON collection files")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("seed", help="load sample books, members, loans and reservations")
    sub.add_parser("stats", help="print catalog statistics")

    overdue = sub.add_parser("overdue", help="list members with overdue books")
    overdue.add_argument("--as-of", type=date.fromisoformat, help="report date (YYYY-MM-DD)")

    search = sub.add_parser("search", help="search books")
    search.add_argument("query")
    search.add_argument("--field", choices=SEARCH_FIELDS, default="all")

    cleanup = sub.add_parser("cleanup", help="remove expired reservations")
    cleanup.add_argument("--as-of", type=date.fromisoformat, help="sweep date (YYYY-MM-DD)")

    imp = sub.add_parser("import-csv", help="import books from a CSV file")
    imp.add_argument("path")

    exp = sub.add_parser("export-csv", help="export most borrowed books to a CSV file")
    exp.add_argument("path")
    exp.add_argument("--limit", type=int, default=50)
    return parser


def run(library: Library, args: argparse.Namespace) -> None:
    if args.command == "seed":
        counts = generate_sample_data(library)
        print("Seeded: " + ", ".join(f"{k}={v}" for k, v in counts.items()))
    elif args.command == "stats":
        stats = library.statistics()
        print(f"Total books: {stats.total_books}")
        print(f"Total members: {stats.total_members}")
        print(f"Active loans: {stats.active_loans}")
        print(f"Overdue loans: {stats.overdue_loans}")
        print(f"Active reservations: {stats.active_reservations}")
        print("Top borrowed books:")
        for i, entry in enumerate(stats.top_borrowed_books, start=1):
            title = entry.book.title if entry.book else entry.isbn
            print(f"  {i}. {title} ({entry.borrow_count} times)")
        reader = stats.most_active_member
        print(f"Most active reader: {reader.name if reader else 'None'}")
    elif args.command == "overdue":
        report = library.members_with_overdue_books(args.as_of)
        if not report:
            print("No overdue books")
        for entry in report:
            print(f"{entry.member}: {len(entry.overdue_loans)} overdue, late fees {entry.total_late_fees}")
    elif args.command == "search":
        for book in library.search_books(args.query, field=args.field):
            print(f"{book} - {book.available_copies}/{book.total_copies} available")
    elif args.command == "cleanup":
        removed = library.cleanup_expired_reservations(args.as_of)
        print(f"Removed {removed} expired reservations")
    elif args.command == "import-csv":
        with open(args.path, newline="", encoding="utf-8") as f:
            result = import_books_csv(library, f)
        print(f"Created {result.created}, merged {result.merged}, errors {len(result.errors)}")
        for err in result.errors:
            print(f"  row {err.row}: {err.error}", file=sys.stderr)
    elif args.command == "export-csv":
        with open(args.path, "w", newline="", encoding="utf-8") as f:
            rows = export_top_borrowed_csv(library, f, limit=args.limit)
        print(f"Wrote {rows} rows to {args.path}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = CatalogSettings.from_env(data_dir=args.data_dir)
    try:
        run(create_library(settings), args)
    except CatalogError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
