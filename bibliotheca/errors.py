"""
Domain errors raised by the service layer.

Each error carries a human readable message and the HTTP status the
controllers answer with. They subclass ValueError so callers that only
care about "bad request" style failures can keep catching ValueError.
"""


class LibraryError(ValueError):
    status_code = 400
    default_message = "Request could not be completed"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self) -> dict:
        return {"success": False, "error": self.message}


class NotFound(LibraryError):
    status_code = 404
    default_message = "Book not found"


class InvalidInput(LibraryError):
    default_message = "Invalid input"


class ValidationFailed(LibraryError):
    default_message = "Validation failed. Please check your inputs."

    def __init__(self, errors: dict, message=None):
        super().__init__(message)
        self.errors = dict(errors)

    @property
    def fields(self):
        return sorted(self.errors)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["errors"] = self.errors
        return data


class DuplicateISBN(LibraryError):
    default_message = "A book with this ISBN already exists"


class NotAvailable(LibraryError):
    default_message = "Book is not available for borrowing"


class NotBorrowed(LibraryError):
    default_message = "Book is not currently borrowed"


class RenewalLimitExceeded(LibraryError):
    default_message = "Maximum renewal limit reached"


class Conflict(LibraryError):
    status_code = 409
    default_message = "Book was modified concurrently"


class AuthError(LibraryError):
    status_code = 401
    default_message = "Invalid email or password"
