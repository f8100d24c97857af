import math
from dataclasses import dataclass
from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from bibliotheca.errors import DuplicateISBN, InvalidInput, NotFound, ValidationFailed
from bibliotheca.models.book import (
    Book,
    DEFAULT_COVER_URL,
    DEFAULT_GENRE,
    DEFAULT_MAX_RENEWALS,
    LendingStatus,
    new_book_id,
    utcnow,
)
from bibliotheca.repositories.book_repo import BookRepo


BOOK_ID_LENGTH = 32
HEX_DIGITS = frozenset("0123456789abcdef")

TITLE_MAX = 200
AUTHOR_MAX = 100
DESCRIPTION_MAX = 1000
YEAR_MIN = 1000
RATING_MIN, RATING_MAX = 0, 5

# payload key -> model attribute. Lending fields are deliberately absent:
# they only change through borrow/return/renew.
EDITABLE_FIELDS = {
    "title": "title",
    "author": "author",
    "description": "description",
    "genre": "genre",
    "category": "category",
    "isbn": "isbn",
    "coverUrl": "cover_url",
    "coverImage": "cover_image",
    "publishedYear": "published_year",
    "rating": "rating",
    "totalReviews": "total_reviews",
    "tags": "tags",
    "isNewRelease": "is_new_release",
    "maxRenewals": "max_renewals",
}
_ATTR_TO_FIELD = {attr: key for key, attr in EDITABLE_FIELDS.items()}

_TRUE_STRINGS = ("true", "1", "yes", "on")


def is_valid_book_id(book_id) -> bool:
    return (
        isinstance(book_id, str)
        and len(book_id) == BOOK_ID_LENGTH
        and all(c in HEX_DIGITS for c in book_id)
    )


def parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_STRINGS


def _text(value):
    if value is None:
        return None
    return str(value).strip()


def _parse_tags(value):
    if value is None or value == "":
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        raise ValueError("Tags must be a list or a comma-separated string")
    return [str(t).strip() for t in items if str(t).strip()]


def _parse_number(value, kind, message):
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(message)
    try:
        number = kind(value)
    except (TypeError, ValueError, OverflowError):
        raise ValueError(message)
    if not math.isfinite(number):
        raise ValueError(message)
    return number


@dataclass
class BookFilters:
    """Optional, AND-combined constraints for listing books."""

    q: Optional[str] = None
    category: Optional[str] = None
    genre: Optional[str] = None
    available: Optional[bool] = None
    status: Optional[str] = None

    @classmethod
    def from_args(cls, args) -> "BookFilters":
        available = args.get("available")
        return cls(
            q=args.get("q") or None,
            category=args.get("category") or None,
            genre=args.get("genre") or None,
            available=None if available is None else parse_bool(available),
            status=args.get("status") or None,
        )

    def as_kwargs(self) -> dict:
        return {
            "q": self.q,
            "category": self.category,
            "genre": self.genre,
            "available": self.available,
            "status": self.status,
        }


class BookService:
    @staticmethod
    def list_books(filters: BookFilters = None):
        filters = filters or BookFilters()
        return BookRepo.list_filtered(**filters.as_kwargs())

    @staticmethod
    def list_books_paginated(q: str = None, page=1, limit=None) -> dict:
        """Admin listing: search plus page/limit, newest first."""
        default_limit = current_app.config.get("ADMIN_PAGE_LIMIT", 20)
        page = _parse_positive(page, 1)
        limit = _parse_positive(limit, default_limit)

        result = BookRepo.paginate(page, limit, q=q)
        return {
            "books": result.items,
            "page": page,
            "limit": limit,
            "total": result.total,
            # ceil(total / limit)
            "total_pages": -(-result.total // limit),
        }

    @staticmethod
    def get_book(book_id) -> Book:
        if not is_valid_book_id(book_id):
            raise NotFound()
        book = BookRepo.get(book_id)
        if not book:
            raise NotFound()
        return book

    @staticmethod
    def create_book(data: dict, now=None) -> Book:
        title = _text(data.get("title"))
        author = _text(data.get("author"))
        if not title or not author:
            raise InvalidInput("Please provide title and author")

        values, errors = _normalize(data)
        genre = values.get("genre") or DEFAULT_GENRE
        fields = {
            "title": title,
            "author": author,
            "description": values.get("description") or "",
            "genre": genre,
            "category": values.get("category") or genre,
            "isbn": values.get("isbn"),
            "cover_url": values.get("cover_url") or DEFAULT_COVER_URL,
            "cover_image": values.get("cover_image"),
            "published_year": values.get("published_year"),
            "rating": _or_default(values.get("rating"), 0),
            "total_reviews": _or_default(values.get("total_reviews"), 0),
            "tags": values.get("tags") or [],
            "is_new_release": bool(values.get("is_new_release", False)),
            "max_renewals": _or_default(
                values.get("max_renewals"),
                current_app.config.get("DEFAULT_MAX_RENEWALS", DEFAULT_MAX_RENEWALS),
            ),
        }
        errors.update(_validate(fields, renewal_count=0, skip=errors))
        if errors:
            raise ValidationFailed(errors)

        if fields["isbn"] and BookRepo.get_by_isbn(fields["isbn"]):
            raise DuplicateISBN()

        now = now or utcnow()
        book = Book(
            id=new_book_id(),
            status=LendingStatus.AVAILABLE,
            renewal_count=0,
            created_at=now,
            updated_at=now,
            **fields,
        )
        try:
            BookRepo.create(book)
        except IntegrityError:
            BookRepo.rollback()
            if fields["isbn"]:
                raise DuplicateISBN()
            raise

        current_app.logger.info("Book created: %s (%s)", book.id, book.title)
        return book

    @staticmethod
    def update_book(book_id, data: dict, now=None) -> Book:
        book = BookService.get_book(book_id)

        values, errors = _normalize(data, partial=True)
        merged = {attr: getattr(book, attr) for attr in EDITABLE_FIELDS.values()}
        merged.update(values)
        if "genre" in values and not merged["genre"]:
            merged["genre"] = DEFAULT_GENRE
        if "category" in values and not merged["category"]:
            merged["category"] = merged["genre"] or DEFAULT_GENRE
        if "rating" in values and merged["rating"] is None:
            merged["rating"] = 0
        if "total_reviews" in values and merged["total_reviews"] is None:
            merged["total_reviews"] = 0
        if "max_renewals" in values and merged["max_renewals"] is None:
            merged["max_renewals"] = book.max_renewals

        errors.update(_validate(merged, renewal_count=book.renewal_count, skip=errors))
        if errors:
            raise ValidationFailed(errors)

        isbn = merged["isbn"]
        if isbn and isbn != book.isbn:
            other = BookRepo.get_by_isbn(isbn)
            if other is not None and other.id != book.id:
                raise DuplicateISBN()

        for attr, value in merged.items():
            setattr(book, attr, value)
        book.updated_at = now or utcnow()
        try:
            BookRepo.update()
        except IntegrityError:
            BookRepo.rollback()
            if isbn:
                raise DuplicateISBN()
            raise

        current_app.logger.info("Book updated: %s", book.id)
        return book

    @staticmethod
    def delete_book(book_id) -> None:
        book = BookService.get_book(book_id)
        BookRepo.delete(book)
        current_app.logger.info("Book deleted: %s", book_id)

    @staticmethod
    def stats(now=None) -> dict:
        now = now or utcnow()
        return {
            "total_books": BookRepo.count(),
            "available": BookRepo.count(available=True),
            "borrowed": BookRepo.count(status=LendingStatus.BORROWED),
            "overdue": BookRepo.count_overdue(now),
        }


def _parse_positive(value, default: int) -> int:
    try:
        value = int(value)
    except (TypeError, ValueError):
        return default
    return value if value >= 1 else default


def _or_default(value, default):
    return default if value is None else value


def _normalize(data: dict, partial: bool = False):
    """Coerce the editable payload fields into model attribute values.

    Returns ``(values, errors)``. Only keys present in ``data`` are
    returned, so the result can be merged onto an existing record.
    Unparseable values are reported in ``errors`` keyed by payload name.
    """
    values, errors = {}, {}
    for key, attr in EDITABLE_FIELDS.items():
        if key not in data:
            continue
        raw = data[key]
        try:
            if attr == "isbn":
                values[attr] = _text(raw) or None
            elif attr == "published_year":
                values[attr] = _parse_number(raw, int, "Invalid year")
            elif attr == "rating":
                values[attr] = _parse_number(raw, float, "Rating must be a number")
            elif attr == "total_reviews":
                values[attr] = _parse_number(raw, int, "Total reviews must be a whole number")
            elif attr == "max_renewals":
                values[attr] = _parse_number(raw, int, "Max renewals must be a whole number")
            elif attr == "tags":
                values[attr] = _parse_tags(raw)
            elif attr == "is_new_release":
                values[attr] = parse_bool(raw)
            elif attr in ("title", "author") and partial:
                values[attr] = _text(raw) or ""
            else:
                values[attr] = _text(raw)
        except ValueError as e:
            errors[key] = str(e)
    return values, errors


def _validate(fields: dict, renewal_count: int, skip=()) -> dict:
    errors = {}

    def fail(attr, message):
        key = _ATTR_TO_FIELD[attr]
        if key not in skip:
            errors.setdefault(key, message)

    title = fields.get("title") or ""
    if not title:
        fail("title", "Book title is required")
    elif len(title) > TITLE_MAX:
        fail("title", f"Title cannot exceed {TITLE_MAX} characters")

    author = fields.get("author") or ""
    if not author:
        fail("author", "Author name is required")
    elif len(author) > AUTHOR_MAX:
        fail("author", f"Author name cannot exceed {AUTHOR_MAX} characters")

    if len(fields.get("description") or "") > DESCRIPTION_MAX:
        fail("description", f"Description cannot exceed {DESCRIPTION_MAX} characters")

    year = fields.get("published_year")
    if year is not None:
        if year < YEAR_MIN:
            fail("published_year", "Invalid year")
        elif year > utcnow().year + 1:
            fail("published_year", "Year cannot be in the future")

    rating = fields.get("rating")
    if rating is not None:
        if rating < RATING_MIN:
            fail("rating", "Rating must be at least 0")
        elif rating > RATING_MAX:
            fail("rating", "Rating cannot exceed 5")

    total_reviews = fields.get("total_reviews")
    if total_reviews is not None and total_reviews < 0:
        fail("total_reviews", "Total reviews cannot be negative")

    max_renewals = fields.get("max_renewals")
    if max_renewals is not None:
        if max_renewals < 0:
            fail("max_renewals", "Max renewals cannot be negative")
        elif max_renewals < renewal_count:
            fail("max_renewals", "Max renewals cannot be below the current renewal count")

    return errors
