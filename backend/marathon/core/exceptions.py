"""
Bible Marathon Custom Exception Classes
"""
from fastapi import status

class MarathonException(Exception):
    """Base exception for the marathon application"""

    def __init__(
        self,
        detail: str = "An error occurred",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    ):
        self.detail = detail
        self.status_code = status_code
        super().__init__(self.detail)

class BookNotFoundException(MarathonException):
    """Exception raised when a requested book is not found"""

    def __init__(self, book_key: str):
        super().__init__(
            detail=f"Book '{book_key}' not found",
            status_code=status.HTTP_404_NOT_FOUND
        )

class ChapterNotFoundException(MarathonException):
    """Exception raised when a chapter does not exist in a book"""

    def __init__(self, book_key: str, chapter_number: int):
        super().__init__(
            detail=f"Chapter {chapter_number} of book '{book_key}' not found",
            status_code=status.HTTP_404_NOT_FOUND
        )

class VerseNotFoundException(MarathonException):
    """Exception raised when a verse is not found"""

    def __init__(self, detail: str):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_404_NOT_FOUND
        )

class ReaderNotFoundException(MarathonException):
    """Exception raised when a reader is not found"""

    def __init__(self, reader_ref):
        super().__init__(
            detail=f"Reader {reader_ref} not found",
            status_code=status.HTTP_404_NOT_FOUND
        )

class ValidationException(MarathonException):
    """Exception raised when request data is invalid"""

    def __init__(self, detail: str = "Invalid request data"):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_400_BAD_REQUEST
        )

class DatabaseException(MarathonException):
    """Exception raised when database operations fail"""

    def __init__(self, detail: str = "Database operation failed"):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
