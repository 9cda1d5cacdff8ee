"""
On-disk storage for book PDF files.
Each book's file lives in a flat directory as <book-id>.pdf.
"""

import asyncio
import uuid
from pathlib import Path
from typing import BinaryIO, Set

import structlog

from storage.exceptions import FileTooLargeError, NotFoundError, StorageError

logger = structlog.get_logger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
PDF_SIGNATURE = b"%PDF-"
SNIFF_LENGTH = 512
COPY_CHUNK_SIZE = 64 * 1024


def sniff_content_type(head: bytes) -> str:
    """
    Determine a file's type from its leading bytes.

    Only the formats this service cares about are recognised; anything that is
    not a PDF is reported as plain text or opaque binary.

    Args:
        head: Up to the first 512 bytes of the file

    Returns:
        A MIME type string
    """
    head = head[:SNIFF_LENGTH]
    if head.startswith(PDF_SIGNATURE):
        return PDF_CONTENT_TYPE
    if not head:
        return "text/plain; charset=utf-8"
    if any(byte < 0x20 and byte not in b"\t\n\r\x0c\x1b" for byte in head):
        return "application/octet-stream"
    return "text/plain; charset=utf-8"


class BookFileStore:
    """Writes, locates and removes book PDF files."""

    def __init__(self, root: Path, max_file_size: int):
        """
        Initialize the file store.

        Args:
            root: Directory holding the <book-id>.pdf files
            max_file_size: Largest file accepted by save(), in bytes
        """
        self.root = Path(root)
        self.max_file_size = max_file_size

    def ensure_root(self) -> None:
        """Create the storage directory if it does not exist."""
        self.root.mkdir(parents=True, exist_ok=True)
        logger.info("Book storage ready", path=str(self.root))

    def path_for(self, book_id: str) -> Path:
        """Path of a book's file; the id must be a UUID."""
        try:
            canonical = str(uuid.UUID(str(book_id)))
        except ValueError as e:
            raise NotFoundError("book file", str(book_id)) from e
        return self.root / f"{canonical}.pdf"

    def locate(self, book_id: str) -> Path:
        """
        Find the stored file for a book.

        Raises:
            NotFoundError: If no file is stored for this id
        """
        path = self.path_for(book_id)
        if not path.is_file():
            raise NotFoundError("book file", str(book_id))
        return path

    async def save(self, book_id: str, source: BinaryIO) -> int:
        """
        Copy an uploaded file into the store.

        The copy stops and the partial file is removed as soon as more than
        max_file_size bytes have been read.

        Returns:
            Number of bytes written

        Raises:
            FileTooLargeError: If the source exceeds the size limit
            StorageError: If the file cannot be written
        """
        path = self.path_for(book_id)
        try:
            written = await asyncio.to_thread(self._copy, source, path)
        except FileTooLargeError:
            path.unlink(missing_ok=True)
            logger.warning("Book file too large", book_id=book_id, limit=self.max_file_size)
            raise
        except OSError as e:
            path.unlink(missing_ok=True)
            logger.error("Failed to store book file", book_id=book_id, error=str(e))
            raise StorageError("unable to store book file") from e

        logger.info("Book file stored", book_id=book_id, size=written)
        return written

    def _copy(self, source: BinaryIO, path: Path) -> int:
        written = 0
        with open(path, "wb") as destination:
            while True:
                chunk = source.read(COPY_CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > self.max_file_size:
                    raise FileTooLargeError(self.max_file_size)
                destination.write(chunk)
        return written

    async def remove(self, book_id: str) -> bool:
        """
        Delete a book's file if present.

        Returns:
            True if a file was removed, False if there was none
        """
        path = self.path_for(book_id)
        try:
            existed = path.is_file()
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.error("Failed to remove book file", book_id=book_id, error=str(e))
            raise StorageError("unable to remove book file") from e

        if existed:
            logger.info("Book file removed", book_id=book_id)
        return existed

    def list_book_ids(self) -> Set[str]:
        """Ids of all books that have a stored file."""
        if not self.root.is_dir():
            return set()

        book_ids = set()
        for path in self.root.glob("*.pdf"):
            try:
                book_ids.add(str(uuid.UUID(path.stem)))
            except ValueError:
                continue
        return book_ids
