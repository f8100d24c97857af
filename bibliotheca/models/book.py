import uuid
from datetime import datetime, timezone

from bibliotheca.extensions import db


DEFAULT_COVER_URL = (
    "https://images.unsplash.com/photo-1544947950-fa07a98d237f"
    "?w=300&h=400&fit=crop&auto=format"
)
DEFAULT_GENRE = "General"
DEFAULT_MAX_RENEWALS = 2


def utcnow() -> datetime:
    # naive UTC, the way the columns store it
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_book_id() -> str:
    return uuid.uuid4().hex


class LendingStatus:
    AVAILABLE = "Available"
    BORROWED = "Borrowed"
    # declared for classification only, no transition produces them
    RESERVED = "Reserved"
    CHECKED_OUT = "Checked Out"

    ALL = (AVAILABLE, BORROWED, RESERVED, CHECKED_OUT)


def _iso(value):
    return value.isoformat() + "Z" if value else None


class Book(db.Model):
    __tablename__ = "books"
    __table_args__ = (
        db.Index("ix_books_genre_category", "genre", "category"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_book_id)
    title = db.Column(db.String(200), nullable=False, index=True)
    author = db.Column(db.String(100), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False, default="")
    genre = db.Column(db.String(100), nullable=False, default=DEFAULT_GENRE)
    category = db.Column(db.String(100), nullable=False, default=DEFAULT_GENRE)
    isbn = db.Column(db.String(32), unique=True, nullable=True, index=True)

    cover_url = db.Column(db.String(500), nullable=True, default=DEFAULT_COVER_URL)
    cover_image = db.Column(db.String(500), nullable=True)
    published_year = db.Column(db.Integer, nullable=True)
    rating = db.Column(db.Float, nullable=False, default=0)
    total_reviews = db.Column(db.Integer, nullable=False, default=0)
    tags = db.Column(db.JSON, nullable=False, default=list)
    is_new_release = db.Column(db.Boolean, nullable=False, default=False)

    # single source of truth for lending state; `available` derives from it
    status = db.Column(db.String(20), nullable=False, default=LendingStatus.AVAILABLE, index=True)
    borrower_id = db.Column(db.String(64), nullable=True)
    borrower_name = db.Column(db.String(200), nullable=True)
    borrower_email = db.Column(db.String(255), nullable=True)
    borrowed_at = db.Column(db.DateTime, nullable=True)
    due_date = db.Column(db.DateTime, nullable=True)
    renewal_count = db.Column(db.Integer, nullable=False, default=0)
    max_renewals = db.Column(db.Integer, nullable=False, default=DEFAULT_MAX_RENEWALS)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def available(self) -> bool:
        return self.status == LendingStatus.AVAILABLE

    @property
    def is_borrowed(self) -> bool:
        return self.status == LendingStatus.BORROWED and self.due_date is not None

    @property
    def borrowed_by(self):
        if self.borrower_id is None:
            return None
        return {
            "userId": self.borrower_id,
            "name": self.borrower_name,
            "email": self.borrower_email,
        }

    def is_overdue(self, now: datetime = None) -> bool:
        """Borrowed and past the due date. Never changes state."""
        if not self.is_borrowed:
            return False
        return (now or utcnow()) > self.due_date

    def to_dict(self, now: datetime = None) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "description": self.description,
            "genre": self.genre,
            "category": self.category,
            "isbn": self.isbn,
            "coverUrl": self.cover_url,
            "coverImage": self.cover_image,
            "publishedYear": self.published_year,
            "rating": self.rating,
            "totalReviews": self.total_reviews,
            "tags": list(self.tags or []),
            "isNewRelease": bool(self.is_new_release),
            "available": self.available,
            "status": self.status,
            "borrowedBy": self.borrowed_by,
            "borrowedAt": _iso(self.borrowed_at),
            "borrowDate": _iso(self.borrowed_at),
            "dueDate": _iso(self.due_date),
            "renewalCount": self.renewal_count,
            "maxRenewals": self.max_renewals,
            "isOverdue": self.is_overdue(now),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<Book {self.id} {self.title!r} {self.status}>"
