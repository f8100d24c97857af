from flask import Blueprint, jsonify, redirect, request, url_for

from bibliotheca.errors import LibraryError
from bibliotheca.services.book_service import BookService
from bibliotheca.utils.auth import admin_required
from bibliotheca.utils.responses import library_error, request_data, server_error

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


@admin_bp.get("")
def admin_root():
    return redirect(url_for("admin.list_books"))


@admin_bp.get("/books")
@admin_required
def list_books():
    try:
        result = BookService.list_books_paginated(
            q=request.args.get("q"),
            page=request.args.get("page", 1),
            limit=request.args.get("limit"),
        )
    except Exception as e:
        return server_error(e, "listing books")

    return jsonify({
        "success": True,
        "searchQuery": request.args.get("q") or "",
        "currentPage": result["page"],
        "limit": result["limit"],
        "totalPages": result["total_pages"],
        "totalBooks": result["total"],
        "data": [b.to_dict() for b in result["books"]],
    })


@admin_bp.post("/books")
@admin_required
def create_book():
    try:
        book = BookService.create_book(request_data())
        return jsonify({"success": True, "data": book.to_dict(), "message": "Book created successfully"}), 201
    except LibraryError as e:
        return library_error(e)
    except Exception as e:
        return server_error(e, "creating book")


@admin_bp.post("/books/<book_id>/edit")
@admin_required
def update_book(book_id):
    try:
        book = BookService.update_book(book_id, request_data())
        return jsonify({"success": True, "data": book.to_dict(), "message": "Book updated successfully"})
    except LibraryError as e:
        return library_error(e)
    except Exception as e:
        return server_error(e, "updating book")


@admin_bp.post("/books/<book_id>/delete")
@admin_required
def delete_book(book_id):
    try:
        BookService.delete_book(book_id)
        return jsonify({"success": True, "message": "Book deleted successfully"})
    except LibraryError as e:
        return library_error(e)
    except Exception as e:
        return server_error(e, "deleting book")


@admin_bp.get("/stats")
@admin_required
def stats():
    try:
        return jsonify({"success": True, "data": BookService.stats()})
    except Exception as e:
        return server_error(e, "computing stats")
