import csv
from typing import IO

from pydantic import ValidationError as SchemaError

from catalog.core.exceptions import CatalogError
from catalog.schemas import schemas
from catalog.services.library import Library

EXPORT_HEADER = ["isbn", "title", "author", "borrow_count"]


def import_books_csv(library: Library, stream: IO[str]) -> schemas.ImportResult:
    """
    Accepts CSV with headers: isbn,title,author,publication_year,total_copies,genre
    Rows are merged into the catalog by ISBN; a bad row is recorded and skipped.
    """
    reader = csv.DictReader(stream)
    result = schemas.ImportResult()
    for i, row in enumerate(reader, start=1):
        # tolerate "Title", "ISBN", ...
        row = {(k or "").strip().lower(): v for k, v in row.items()}
        try:
            parsed = schemas.BookImportRow(
                isbn=row.get("isbn") or "",
                title=row.get("title") or "",
                author=row.get("author") or "",
                publication_year=row.get("publication_year") or 0,
                total_copies=row.get("total_copies") or 1,
                genre=row.get("genre"),
            )
            existed = library.find_book(parsed.isbn) is not None
            library.add_book(**parsed.model_dump())
        except SchemaError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"])
            result.errors.append(schemas.ImportRowError(row=i, error=f"{field}: {first['msg']}"))
            continue
        except CatalogError as e:
            result.errors.append(schemas.ImportRowError(row=i, error=e.message))
            continue
        if existed:
            result.merged += 1
        else:
            result.created += 1
    library.logger.info("CSV import finished", {
        "created": result.created,
        "merged": result.merged,
        "errors": len(result.errors),
    })
    return result


def export_top_borrowed_csv(library: Library, stream: IO[str], limit: int = 50) -> int:
    """Export borrowing analytics: books ordered by number of loans. Returns rows written."""
    writer = csv.writer(stream)
    writer.writerow(EXPORT_HEADER)
    rows = library.top_borrowed_books(limit=limit)
    for entry in rows:
        title = entry.book.title if entry.book else ""
        author = entry.book.author if entry.book else ""
        writer.writerow([entry.isbn, title, author, entry.borrow_count])
    library.logger.info("Exported borrowing analytics", {"rows": len(rows)})
    return len(rows)
