"""
Data access for book metadata.
"""

from typing import Dict, List, Set

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from storage.database import DatabaseManager
from storage.exceptions import NotFoundError, StorageError
from storage.tables import BookRecord

logger = structlog.get_logger(__name__)

BOOK_FIELDS = ("title", "author", "subject")


class BookRepository:
    """CRUD operations on the books table."""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    async def list_books(self) -> List[BookRecord]:
        """Return every book, ordered by title."""
        try:
            async with self.db_manager.session() as session:
                result = await session.execute(
                    select(BookRecord).order_by(BookRecord.title, BookRecord.id)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Failed to list books", error=str(e))
            raise StorageError("unable to list books") from e

    async def list_book_ids(self) -> Set[str]:
        """Return the ids of all stored books."""
        try:
            async with self.db_manager.session() as session:
                result = await session.execute(select(BookRecord.id))
                return set(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Failed to list book ids", error=str(e))
            raise StorageError("unable to list books") from e

    async def get_book(self, book_id: str) -> BookRecord:
        """
        Get a single book by ID.

        Raises:
            NotFoundError: If no book has this id
        """
        try:
            async with self.db_manager.session() as session:
                book = await session.get(BookRecord, book_id)
        except SQLAlchemyError as e:
            logger.error("Failed to get book", book_id=book_id, error=str(e))
            raise StorageError("unable to get book") from e

        if book is None:
            raise NotFoundError("book", book_id)
        return book

    async def create_book(self, book_id: str, title: str, author: str, subject: str) -> str:
        """
        Insert book metadata under a caller-chosen id.

        Returns:
            The id of the new book
        """
        record = BookRecord(id=book_id, title=title, author=author, subject=subject)
        try:
            async with self.db_manager.session() as session:
                session.add(record)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("Failed to create book", book_id=book_id, error=str(e))
            raise StorageError("unable to create book") from e

        logger.info("Book created", book_id=book_id)
        return book_id

    async def update_book(self, book_id: str, changes: Dict[str, str]) -> BookRecord:
        """
        Overwrite only the supplied fields of a book.

        Args:
            book_id: Book identifier
            changes: Mapping of field name to new value; other fields keep their values

        Raises:
            NotFoundError: If no book has this id
        """
        try:
            async with self.db_manager.session() as session:
                book = await session.get(BookRecord, book_id)
                if book is None:
                    raise NotFoundError("book", book_id)

                for field, value in changes.items():
                    if field in BOOK_FIELDS:
                        setattr(book, field, value)

                await session.commit()
        except SQLAlchemyError as e:
            logger.error("Failed to update book", book_id=book_id, error=str(e))
            raise StorageError("unable to update book") from e

        logger.info("Book updated", book_id=book_id, fields=sorted(changes))
        return book

    async def delete_book(self, book_id: str) -> None:
        """
        Delete a book record.

        Raises:
            NotFoundError: If no book has this id
        """
        try:
            async with self.db_manager.session() as session:
                result = await session.execute(
                    delete(BookRecord).where(BookRecord.id == book_id)
                )
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("Failed to delete book", book_id=book_id, error=str(e))
            raise StorageError("unable to delete book") from e

        if result.rowcount == 0:
            raise NotFoundError("book", book_id)
        logger.info("Book deleted", book_id=book_id)
