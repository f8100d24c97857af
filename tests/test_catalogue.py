from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from bibliotheca.errors import DuplicateISBN, InvalidInput, NotFound, ValidationFailed
from bibliotheca.models.book import DEFAULT_COVER_URL, LendingStatus
from bibliotheca.repositories.book_repo import BookRepo
from bibliotheca.services.book_service import BookFilters, BookService, is_valid_book_id
from bibliotheca.services.lending_service import Borrower, LendingService

T0 = datetime(2024, 1, 1, 9, 0, 0)
READER = Borrower("u-9", "Reader", "reader@example.com")


def test_create_applies_defaults(make_book):
    book = make_book(title="  Emma ", author="Jane Austen")
    assert is_valid_book_id(book.id)
    assert book.title == "Emma"
    assert book.genre == "General"
    assert book.category == "General"
    assert book.description == ""
    assert book.cover_url == DEFAULT_COVER_URL
    assert book.rating == 0
    assert book.tags == []
    assert book.available
    assert book.status == LendingStatus.AVAILABLE
    assert book.renewal_count == 0
    assert book.max_renewals == 2


def test_category_defaults_to_genre(make_book):
    book = make_book(genre="Fantasy")
    assert book.category == "Fantasy"


def test_create_requires_title_and_author(app):
    with pytest.raises(InvalidInput):
        BookService.create_book({"title": "No author"})
    with pytest.raises(InvalidInput):
        BookService.create_book({"title": "   ", "author": "Someone"})


def test_create_ignores_lending_fields(make_book):
    book = make_book(available=False, status="Borrowed", renewalCount=2, dueDate="2030-01-01")
    assert book.available
    assert book.status == LendingStatus.AVAILABLE
    assert book.renewal_count == 0
    assert book.due_date is None


def test_create_reports_every_invalid_field(app):
    with pytest.raises(ValidationFailed) as exc:
        BookService.create_book({
            "title": "x" * 201,
            "author": "y" * 101,
            "description": "z" * 1001,
            "rating": 6,
            "publishedYear": 999,
            "totalReviews": -1,
            "maxRenewals": -1,
        })
    assert exc.value.fields == sorted([
        "title", "author", "description", "rating", "publishedYear", "totalReviews", "maxRenewals",
    ])


def test_create_rejects_future_year_and_unparseable_numbers(app):
    with pytest.raises(ValidationFailed) as exc:
        BookService.create_book({
            "title": "T", "author": "A",
            "publishedYear": datetime.now().year + 2,
            "rating": "great",
        })
    assert exc.value.errors["publishedYear"] == "Year cannot be in the future"
    assert exc.value.errors["rating"] == "Rating must be a number"


def test_tags_accept_comma_separated_string(make_book):
    book = make_book(tags="classic, dystopia, ,politics")
    assert book.tags == ["classic", "dystopia", "politics"]


def test_duplicate_isbn_is_rejected(make_book):
    make_book(title="A", isbn="9780451524935")
    with pytest.raises(DuplicateISBN):
        make_book(title="B", isbn=" 9780451524935 ")


def test_books_without_isbn_do_not_collide(make_book):
    make_book(title="A")
    make_book(title="B", isbn="")
    make_book(title="C", isbn=None)
    assert len(BookService.list_books()) == 3
    assert all(b.isbn is None for b in BookService.list_books())


@pytest.mark.parametrize("book_id", ["nope", "g" * 32, "0" * 32, None, 42])
def test_get_unknown_or_malformed_id(app, book_id):
    with pytest.raises(NotFound):
        BookService.get_book(book_id)


def test_update_is_a_partial_merge(make_book):
    book = make_book(title="Old", author="Author", description="keep me")
    updated = BookService.update_book(book.id, {"title": "New"})
    assert updated.title == "New"
    assert updated.author == "Author"
    assert updated.description == "keep me"


def test_update_revalidates_merged_record(make_book):
    book = make_book()
    with pytest.raises(ValidationFailed) as exc:
        BookService.update_book(book.id, {"title": "", "rating": -1})
    assert exc.value.fields == ["rating", "title"]
    assert BookRepo.get(book.id).title == "Untitled"


def test_update_rejects_isbn_taken_by_another_book(make_book):
    make_book(title="A", isbn="111")
    other = make_book(title="B", isbn="222")
    with pytest.raises(DuplicateISBN):
        BookService.update_book(other.id, {"isbn": "111"})
    # re-saving its own isbn is fine
    assert BookService.update_book(other.id, {"isbn": "222"}).isbn == "222"


def test_update_does_not_touch_lending_state(make_book):
    book = make_book()
    LendingService.borrow_book(book.id, READER)
    updated = BookService.update_book(book.id, {"available": True, "status": "Available", "genre": "Drama"})
    assert updated.genre == "Drama"
    assert updated.status == LendingStatus.BORROWED
    assert updated.borrowed_by["userId"] == "u-9"


def test_max_renewals_cannot_drop_below_renewal_count(make_book):
    book = make_book()
    LendingService.borrow_book(book.id, READER)
    LendingService.renew_book(book.id)
    with pytest.raises(ValidationFailed) as exc:
        BookService.update_book(book.id, {"maxRenewals": 0})
    assert exc.value.fields == ["maxRenewals"]


def test_update_unknown_book(app):
    with pytest.raises(NotFound):
        BookService.update_book("f" * 32, {"title": "x"})


def test_delete(make_book):
    book = make_book()
    BookService.delete_book(book.id)
    with pytest.raises(NotFound):
        BookService.get_book(book.id)
    with pytest.raises(NotFound):
        BookService.delete_book(book.id)


# -----------------------------
# Listing
# -----------------------------
@pytest.fixture
def shelf(make_book):
    books = {
        "hobbit": make_book(title="The Hobbit", author="J.R.R. Tolkien", genre="Fantasy",
                            description="A journey there and back again", now=T0),
        "dune": make_book(title="Dune", author="Frank Herbert", genre="Science Fiction",
                          category="Classics", now=T0 + timedelta(hours=1)),
        "emma": make_book(title="Emma", author="Jane Austen", genre="Romance",
                          category="Classics", now=T0 + timedelta(hours=2)),
        "silm": make_book(title="The Silmarillion", author="J.R.R. Tolkien", genre="Fantasy",
                          now=T0 + timedelta(hours=3)),
    }
    LendingService.borrow_book(books["dune"].id, READER)
    LendingService.borrow_book(books["silm"].id, READER)
    return books


def _titles(books):
    return [b.title for b in books]


def test_list_is_newest_first(shelf):
    assert _titles(BookService.list_books()) == ["The Silmarillion", "Emma", "Dune", "The Hobbit"]


def test_list_available_subset(shelf):
    assert _titles(BookService.list_books(BookFilters(available=True))) == ["Emma", "The Hobbit"]
    assert _titles(BookService.list_books(BookFilters(available=False))) == ["The Silmarillion", "Dune"]


def test_list_text_search(shelf):
    assert _titles(BookService.list_books(BookFilters(q="tolkien"))) == ["The Silmarillion", "The Hobbit"]
    assert _titles(BookService.list_books(BookFilters(q="journey"))) == ["The Hobbit"]
    assert _titles(BookService.list_books(BookFilters(q="emma dune"))) == ["Emma", "Dune"]


def test_list_filters_combine_with_and(shelf):
    assert _titles(BookService.list_books(BookFilters(genre="Fantasy", available=True))) == ["The Hobbit"]
    assert _titles(BookService.list_books(BookFilters(category="Classics", status="Borrowed"))) == ["Dune"]
    assert BookService.list_books(BookFilters(status="Reserved")) == []


def test_filters_from_query_args(shelf):
    filters = BookFilters.from_args({"available": "true", "genre": "Fantasy", "q": ""})
    assert filters == BookFilters(genre="Fantasy", available=True)
    assert BookFilters.from_args({"available": "false"}).available is False
    assert BookFilters.from_args({}).available is None


def test_paginated_listing(make_book, app):
    for i in range(5):
        make_book(title=f"Volume {i}", now=T0 + timedelta(minutes=i))

    first = BookService.list_books_paginated(page=1, limit=2)
    assert first["total"] == 5
    assert first["total_pages"] == 3
    assert _titles(first["books"]) == ["Volume 4", "Volume 3"]

    last = BookService.list_books_paginated(page=3, limit=2)
    assert _titles(last["books"]) == ["Volume 0"]

    defaults = BookService.list_books_paginated(page="x", limit=None)
    assert defaults["page"] == 1
    assert defaults["limit"] == 20
    assert defaults["total_pages"] == 1


def test_paginated_listing_empty(app):
    result = BookService.list_books_paginated()
    assert result["total"] == 0
    assert result["total_pages"] == 0
    assert result["books"] == []


def test_stats(shelf):
    stats = BookService.stats(now=datetime(2999, 1, 1))
    assert stats == {"total_books": 4, "available": 2, "borrowed": 2, "overdue": 2}


@pytest.mark.parametrize("rating", ["nan", "inf", "-inf", float("nan")])
def test_non_finite_rating_is_a_field_error(app, rating):
    with pytest.raises(ValidationFailed) as exc:
        BookService.create_book({"title": "T", "author": "A", "rating": rating})
    assert exc.value.errors == {"rating": "Rating must be a number"}


def test_non_finite_numbers_rejected_on_update(make_book):
    book = make_book()
    with pytest.raises(ValidationFailed) as exc:
        BookService.update_book(book.id, {"rating": "nan", "publishedYear": float("inf")})
    assert exc.value.fields == ["publishedYear", "rating"]


def test_integrity_error_without_isbn_is_not_reported_as_duplicate(app, monkeypatch):
    def fail(book):
        raise IntegrityError("INSERT INTO books", {}, Exception("NOT NULL constraint failed"))

    monkeypatch.setattr(BookRepo, "create", staticmethod(fail))
    with pytest.raises(IntegrityError):
        BookService.create_book({"title": "T", "author": "A"})
    with pytest.raises(DuplicateISBN):
        BookService.create_book({"title": "T", "author": "A", "isbn": "42"})


@pytest.mark.parametrize("q", ["%", "_", "\\"])
def test_search_treats_wildcards_literally(make_book, q):
    make_book(title="Plain book")
    assert BookService.list_books(BookFilters(q=q)) == []


def test_search_matches_literal_percent(make_book):
    make_book(title="100% Cotton")
    make_book(title="1000 Cranes")
    assert _titles(BookService.list_books(BookFilters(q="100%"))) == ["100% Cotton"]
