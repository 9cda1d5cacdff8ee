"""
Storage package for the Cloud Library service.

This package contains:
- SQLAlchemy table definitions for books and users
- Async database connection management
- Book and user repositories
- The on-disk store for book PDF files
"""

from storage.exceptions import (
    ConflictError,
    FileTooLargeError,
    LibraryStorageError,
    NotFoundError,
    StorageError,
)

__all__ = [
    "ConflictError",
    "FileTooLargeError",
    "LibraryStorageError",
    "NotFoundError",
    "StorageError",
]
