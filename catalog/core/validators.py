import re

EMAIL_REGEX = re.compile(r"[\w+\-.]+@[a-z0-9\-]+(\.[a-z0-9\-]+)*\.[a-z]+", re.IGNORECASE)
ISBN_10_REGEX = re.compile(r"[0-9]{9}[0-9X]")
ISBN_13_REGEX = re.compile(r"[0-9]{13}")


def normalize_isbn(isbn: str) -> str:
    """Strip hyphens and whitespace; the result is the book's identity."""
    return re.sub(r"[-\s]", "", isbn or "")


def valid_email(email) -> bool:
    if not email or not isinstance(email, str):
        return False
    return EMAIL_REGEX.fullmatch(email.strip()) is not None


def valid_isbn(isbn) -> bool:
    if not isbn or not isinstance(isbn, str):
        return False
    clean = normalize_isbn(isbn)
    if len(clean) == 10:
        return _valid_isbn_10(clean)
    if len(clean) == 13:
        return _valid_isbn_13(clean)
    return False


def _valid_isbn_10(isbn: str) -> bool:
    if not ISBN_10_REGEX.fullmatch(isbn):
        return False
    total = sum(int(isbn[i]) * (10 - i) for i in range(9))
    expected = (11 - (total % 11)) % 11
    if expected == 10:
        return isbn[9] == "X"
    return isbn[9] == str(expected)


def _valid_isbn_13(isbn: str) -> bool:
    if not ISBN_13_REGEX.fullmatch(isbn):
        return False
    total = sum(int(isbn[i]) * (1 if i % 2 == 0 else 3) for i in range(12))
    return int(isbn[12]) == (10 - (total % 10)) % 10
