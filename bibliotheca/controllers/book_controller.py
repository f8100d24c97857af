# bibliotheca/controllers/book_controller.py

from flask import Blueprint, request, jsonify

from bibliotheca.errors import LibraryError
from bibliotheca.services.book_service import BookFilters, BookService
from bibliotheca.services.lending_service import Borrower, LendingService
from bibliotheca.utils.auth import current_session_user
from bibliotheca.utils.responses import library_error, request_data, server_error

book_bp = Blueprint("books", __name__, url_prefix="/api/books")


@book_bp.get("")
def list_books():
    try:
        books = BookService.list_books(BookFilters.from_args(request.args))
        return jsonify({
            "success": True,
            "count": len(books),
            "data": [b.to_dict() for b in books],
        })
    except LibraryError as e:
        return library_error(e)
    except Exception as e:
        return server_error(e, "fetching books")


@book_bp.get("/<book_id>")
def get_book(book_id):
    try:
        return jsonify({"success": True, "data": BookService.get_book(book_id).to_dict()})
    except LibraryError as e:
        return library_error(e)
    except Exception as e:
        return server_error(e, "fetching book")


@book_bp.post("")
def create_book():
    try:
        book = BookService.create_book(request_data())
        return jsonify({"success": True, "data": book.to_dict()}), 201
    except LibraryError as e:
        return library_error(e)
    except Exception as e:
        return server_error(e, "creating book")


@book_bp.put("/<book_id>")
def update_book(book_id):
    try:
        book = BookService.update_book(book_id, request_data())
        return jsonify({"success": True, "data": book.to_dict()})
    except LibraryError as e:
        return library_error(e)
    except Exception as e:
        return server_error(e, "updating book")


@book_bp.delete("/<book_id>")
def delete_book(book_id):
    try:
        BookService.delete_book(book_id)
        return jsonify({"success": True, "data": {}, "message": "Book deleted successfully"})
    except LibraryError as e:
        return library_error(e)
    except Exception as e:
        return server_error(e, "deleting book")


# -----------------------------
# Lending
# -----------------------------
def _borrower_from_request(data: dict) -> Borrower:
    # body wins; a logged-in session fills the gaps
    user = current_session_user() or {}
    return Borrower.from_values(
        data.get("userId") or user.get("id"),
        data.get("userName") or user.get("email"),
        data.get("userEmail") or user.get("email"),
    )


@book_bp.post("/<book_id>/borrow")
def borrow_book(book_id):
    data = request_data()
    try:
        book = LendingService.borrow_book(book_id, _borrower_from_request(data), data.get("weeks"))
        return jsonify({"success": True, "data": book.to_dict(), "message": "Book borrowed successfully"})
    except LibraryError as e:
        return library_error(e)
    except Exception as e:
        return server_error(e, "borrowing book")


@book_bp.post("/<book_id>/return")
def return_book(book_id):
    try:
        book = LendingService.return_book(book_id)
        return jsonify({"success": True, "data": book.to_dict(), "message": "Book returned successfully"})
    except LibraryError as e:
        return library_error(e)
    except Exception as e:
        return server_error(e, "returning book")


@book_bp.post("/<book_id>/renew")
def renew_book(book_id):
    data = request_data()
    try:
        book = LendingService.renew_book(book_id, data.get("weeks"))
        return jsonify({"success": True, "data": book.to_dict(), "message": "Book renewed successfully"})
    except LibraryError as e:
        return library_error(e)
    except Exception as e:
        return server_error(e, "renewing book")
