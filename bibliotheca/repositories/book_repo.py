from sqlalchemy import or_, update

from bibliotheca.extensions import db
from bibliotheca.models.book import Book, LendingStatus


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _search_clause(q: str):
    # any term, in any of the searchable fields, matched literally
    clauses = []
    for term in q.split():
        pattern = f"%{_escape_like(term)}%"
        clauses.extend([
            Book.title.ilike(pattern, escape="\\"),
            Book.author.ilike(pattern, escape="\\"),
            Book.description.ilike(pattern, escape="\\"),
        ])
    return or_(*clauses)


class BookRepo:
    @staticmethod
    def _filtered(q=None, category=None, genre=None, available=None, status=None):
        query = Book.query
        if q and q.strip():
            query = query.filter(_search_clause(q.strip()))
        if category:
            query = query.filter(Book.category == category)
        if genre:
            query = query.filter(Book.genre == genre)
        if available is not None:
            if available:
                query = query.filter(Book.status == LendingStatus.AVAILABLE)
            else:
                query = query.filter(Book.status != LendingStatus.AVAILABLE)
        if status:
            query = query.filter(Book.status == status)
        return query.order_by(Book.created_at.desc())

    @staticmethod
    def list_filtered(**filters):
        return BookRepo._filtered(**filters).all()

    @staticmethod
    def paginate(page: int, per_page: int, **filters):
        return BookRepo._filtered(**filters).paginate(page=page, per_page=per_page, error_out=False)

    @staticmethod
    def get(book_id: str):
        return db.session.get(Book, book_id)

    @staticmethod
    def get_by_isbn(isbn: str):
        return Book.query.filter_by(isbn=isbn).first()

    @staticmethod
    def create(book: Book):
        db.session.add(book)
        db.session.commit()
        return book

    @staticmethod
    def update():
        db.session.commit()

    @staticmethod
    def delete(book: Book):
        db.session.delete(book)
        db.session.commit()

    @staticmethod
    def rollback():
        db.session.rollback()

    @staticmethod
    def count(**filters) -> int:
        return BookRepo._filtered(**filters).order_by(None).count()

    @staticmethod
    def count_overdue(now) -> int:
        return Book.query.filter(
            Book.status == LendingStatus.BORROWED,
            Book.due_date.isnot(None),
            Book.due_date < now,
        ).count()

    # -----------------------------
    # Conditional single-row writes for the lending transitions.
    # Each returns True only when the row was in the expected state.
    # -----------------------------
    @staticmethod
    def _apply(stmt) -> bool:
        result = db.session.execute(stmt.execution_options(synchronize_session=False))
        if result.rowcount != 1:
            db.session.rollback()
            return False
        db.session.commit()
        return True

    @staticmethod
    def mark_borrowed(book_id: str, borrower, borrowed_at, due_date) -> bool:
        return BookRepo._apply(
            update(Book)
            .where(Book.id == book_id, Book.status == LendingStatus.AVAILABLE)
            .values(
                status=LendingStatus.BORROWED,
                borrower_id=borrower.user_id,
                borrower_name=borrower.name,
                borrower_email=borrower.email,
                borrowed_at=borrowed_at,
                due_date=due_date,
                updated_at=borrowed_at,
            )
        )

    @staticmethod
    def mark_returned(book_id: str, now) -> bool:
        return BookRepo._apply(
            update(Book)
            .where(Book.id == book_id, Book.status == LendingStatus.BORROWED)
            .values(
                status=LendingStatus.AVAILABLE,
                borrower_id=None,
                borrower_name=None,
                borrower_email=None,
                borrowed_at=None,
                due_date=None,
                renewal_count=0,
                updated_at=now,
            )
        )

    @staticmethod
    def extend_due_date(book_id: str, seen_due_date, seen_renewal_count: int, new_due_date, now) -> bool:
        # compare-and-set on the loan we read; a concurrent renew/return loses
        return BookRepo._apply(
            update(Book)
            .where(
                Book.id == book_id,
                Book.status == LendingStatus.BORROWED,
                Book.due_date == seen_due_date,
                Book.renewal_count == seen_renewal_count,
                Book.renewal_count < Book.max_renewals,
            )
            .values(
                due_date=new_due_date,
                renewal_count=Book.renewal_count + 1,
                updated_at=now,
            )
        )
