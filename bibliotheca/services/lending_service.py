from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from bibliotheca.errors import (
    Conflict,
    InvalidInput,
    NotAvailable,
    NotBorrowed,
    NotFound,
    RenewalLimitExceeded,
)
from bibliotheca.models.book import Book, utcnow
from bibliotheca.repositories.book_repo import BookRepo
from bibliotheca.services.book_service import BookService


@dataclass(frozen=True)
class Borrower:
    user_id: str
    name: str
    email: str

    @classmethod
    def from_values(cls, user_id, name, email) -> "Borrower":
        values = [str(v).strip() if v is not None else "" for v in (user_id, name, email)]
        if not all(values):
            raise InvalidInput("Please provide userId, userName, and userEmail")
        return cls(*values)


def _parse_weeks(weeks, default: int) -> int:
    limit = current_app.config.get("MAX_LOAN_WEEKS", 52)
    if weeks is None or weeks == "":
        return default
    if isinstance(weeks, bool):
        raise InvalidInput("weeks must be a positive whole number")
    try:
        weeks = int(weeks)
    except (TypeError, ValueError, OverflowError):
        raise InvalidInput("weeks must be a positive whole number")
    if weeks <= 0:
        raise InvalidInput("weeks must be a positive whole number")
    if weeks > limit:
        raise InvalidInput(f"weeks cannot exceed {limit}")
    return weeks


def _add_weeks(start, weeks: int):
    try:
        return start + timedelta(days=weeks * 7)
    except OverflowError:
        raise InvalidInput("Due date is out of range")


class LendingService:
    """Borrow / return / renew transitions for a single book.

    Every transition is one conditional UPDATE on the book row, so two
    concurrent borrowers can never both win. The preliminary read only
    picks the error to report; the write decides the outcome.
    """

    @staticmethod
    def borrow_book(book_id, borrower: Borrower, weeks=None, now=None) -> Book:
        if borrower is None or not all((borrower.user_id, borrower.name, borrower.email)):
            raise InvalidInput("Please provide userId, userName, and userEmail")
        weeks = _parse_weeks(weeks, current_app.config.get("DEFAULT_BORROW_WEEKS", 3))

        book = BookService.get_book(book_id)
        if not book.available:
            raise NotAvailable()

        now = now or utcnow()
        due_date = _add_weeks(now, weeks)
        if not BookRepo.mark_borrowed(book.id, borrower, now, due_date):
            LendingService._reload(book_id)
            raise NotAvailable()

        current_app.logger.info(
            "Book %s borrowed by %s until %s", book_id, borrower.user_id, due_date.isoformat()
        )
        return LendingService._reload(book_id)

    @staticmethod
    def return_book(book_id, now=None) -> Book:
        book = BookService.get_book(book_id)
        if not book.is_borrowed:
            raise NotBorrowed()

        if not BookRepo.mark_returned(book.id, now or utcnow()):
            LendingService._reload(book_id)
            raise NotBorrowed()

        current_app.logger.info("Book %s returned", book_id)
        return LendingService._reload(book_id)

    @staticmethod
    def renew_book(book_id, weeks=None, now=None) -> Book:
        weeks = _parse_weeks(weeks, current_app.config.get("DEFAULT_RENEW_WEEKS", 2))

        book = BookService.get_book(book_id)
        LendingService._check_renewable(book)

        seen_due, seen_count = book.due_date, book.renewal_count
        new_due = _add_weeks(seen_due, weeks)
        if not BookRepo.extend_due_date(book.id, seen_due, seen_count, new_due, now or utcnow()):
            LendingService._check_renewable(LendingService._reload(book_id))
            raise Conflict("Book was modified by another request, please retry")

        current_app.logger.info(
            "Book %s renewed (%d/%d) until %s",
            book_id, seen_count + 1, book.max_renewals, new_due.isoformat(),
        )
        return LendingService._reload(book_id)

    @staticmethod
    def _check_renewable(book: Book) -> None:
        if not book.is_borrowed:
            raise NotBorrowed("Cannot renew a book that is not borrowed")
        if book.renewal_count >= book.max_renewals:
            raise RenewalLimitExceeded()

    @staticmethod
    def _reload(book_id) -> Book:
        book = BookRepo.get(book_id)
        if book is None:
            raise NotFound()
        return book
