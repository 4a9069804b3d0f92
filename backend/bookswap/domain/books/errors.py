"""Book domain errors. Messages are shown to users verbatim."""

from __future__ import annotations


class BookError(Exception):
	code = "book_error"
	message = "An unexpected error occurred"

	def __str__(self) -> str:
		return self.message


class BookNotFoundError(BookError):
	code = "book_not_found"
	message = "Book not found"


class BookPermissionError(BookError):
	code = "book_forbidden"
	message = "You can only change your own books"


class OwnBookRequestError(BookError):
	code = "own_book"
	message = "You cannot request your own book"


class DuplicateRequestError(BookError):
	code = "already_requested"
	message = "You have already requested this book"
