"""
Typed outcomes raised by the data access layer.
"""


class LibraryStorageError(Exception):
    """Base class for storage failures."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(LibraryStorageError):
    """The requested row or file does not exist."""

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} with id: {identifier} not found")


class ConflictError(LibraryStorageError):
    """A write violated a uniqueness constraint."""


class StorageError(LibraryStorageError):
    """The store or the file system failed to complete a query."""


class FileTooLargeError(LibraryStorageError):
    """An uploaded file exceeded the configured size limit."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"file exceeds the maximum size of {limit} bytes")
