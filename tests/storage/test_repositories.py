"""
Tests for the book and user repositories against a SQLite database.
"""

import asyncio
import uuid

import pytest

from storage.database import DatabaseManager
from storage.exceptions import ConflictError, NotFoundError, StorageError


class TestDatabaseManager:
    """Test cases for the connection manager."""

    @pytest.mark.asyncio
    async def test_health_check_when_connected(self, db_manager):
        health = await db_manager.health_check()

        assert health["status"] == "healthy"
        assert health["backend"] == "sqlite"

    @pytest.mark.asyncio
    async def test_health_check_when_disconnected(self, storage_config):
        manager = DatabaseManager(storage_config.get_database_url())

        health = await manager.health_check()

        assert health["status"] == "unhealthy"

    def test_session_requires_connection(self, storage_config):
        manager = DatabaseManager(storage_config.get_database_url())

        with pytest.raises(StorageError):
            manager.session()

    def test_postgres_backend_name(self):
        manager = DatabaseManager("postgresql+asyncpg://user:secret@db:5432/library")
        assert manager.backend == "postgresql"


class TestBookRepository:
    """Test cases for BookRepository."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, book_repository):
        book_id = str(uuid.uuid4())

        assert await book_repository.create_book(book_id, "T", "A", "S") == book_id

        book = await book_repository.get_book(book_id)
        assert (book.id, book.title, book.author, book.subject) == (book_id, "T", "A", "S")

    @pytest.mark.asyncio
    async def test_get_missing(self, book_repository):
        book_id = str(uuid.uuid4())

        with pytest.raises(NotFoundError) as exc_info:
            await book_repository.get_book(book_id)

        assert exc_info.value.message == f"book with id: {book_id} not found"

    @pytest.mark.asyncio
    async def test_list_is_ordered_by_title(self, book_repository):
        await book_repository.create_book(str(uuid.uuid4()), "Zebra", "A", "S")
        await book_repository.create_book(str(uuid.uuid4()), "Apple", "A", "S")

        books = await book_repository.list_books()

        assert [book.title for book in books] == ["Apple", "Zebra"]

    @pytest.mark.asyncio
    async def test_list_book_ids(self, book_repository):
        first, second = str(uuid.uuid4()), str(uuid.uuid4())
        await book_repository.create_book(first, "T", "A", "S")
        await book_repository.create_book(second, "T", "A", "S")

        assert await book_repository.list_book_ids() == {first, second}

    @pytest.mark.asyncio
    async def test_update_only_touches_given_fields(self, book_repository):
        book_id = str(uuid.uuid4())
        await book_repository.create_book(book_id, "T", "A", "S")

        await book_repository.update_book(book_id, {"author": "A2", "id": "ignored"})

        book = await book_repository.get_book(book_id)
        assert (book.id, book.title, book.author, book.subject) == (book_id, "T", "A2", "S")

    @pytest.mark.asyncio
    async def test_update_missing(self, book_repository):
        with pytest.raises(NotFoundError):
            await book_repository.update_book(str(uuid.uuid4()), {"title": "X"})

    @pytest.mark.asyncio
    async def test_delete(self, book_repository):
        book_id = str(uuid.uuid4())
        await book_repository.create_book(book_id, "T", "A", "S")

        await book_repository.delete_book(book_id)

        with pytest.raises(NotFoundError):
            await book_repository.get_book(book_id)

    @pytest.mark.asyncio
    async def test_delete_missing(self, book_repository):
        with pytest.raises(NotFoundError):
            await book_repository.delete_book(str(uuid.uuid4()))


class TestUserRepository:
    """Test cases for UserRepository."""

    @pytest.mark.asyncio
    async def test_create_assigns_uuid(self, user_repository):
        user_id = await user_repository.create_user("alice", "digest", "reader")

        assert str(uuid.UUID(user_id)) == user_id
        user = await user_repository.get_user_by_id(user_id)
        assert (user.username, user.password, user.role) == ("alice", "digest", "reader")

    @pytest.mark.asyncio
    async def test_get_by_username(self, user_repository):
        user_id = await user_repository.create_user("alice", "digest", "reader")

        user = await user_repository.get_user_by_username("alice")

        assert user.id == user_id

    @pytest.mark.asyncio
    async def test_get_by_unknown_username(self, user_repository):
        with pytest.raises(NotFoundError):
            await user_repository.get_user_by_username("ghost")

    @pytest.mark.asyncio
    async def test_duplicate_username(self, user_repository):
        await user_repository.create_user("alice", "digest", "reader")

        with pytest.raises(ConflictError):
            await user_repository.create_user("alice", "other", "administrator")

    @pytest.mark.asyncio
    async def test_concurrent_registrations_admit_one(self, user_repository):
        results = await asyncio.gather(
            user_repository.create_user("alice", "first", "reader"),
            user_repository.create_user("alice", "second", "reader"),
            return_exceptions=True,
        )

        created = [result for result in results if isinstance(result, str)]
        conflicts = [result for result in results if isinstance(result, ConflictError)]
        assert len(created) == 1
        assert len(conflicts) == 1
        assert len(await user_repository.list_users()) == 1

    @pytest.mark.asyncio
    async def test_update_fields(self, user_repository):
        user_id = await user_repository.create_user("alice", "digest", "reader")

        await user_repository.update_user(user_id, {"role": "administrator"})

        user = await user_repository.get_user_by_id(user_id)
        assert (user.username, user.password, user.role) == ("alice", "digest", "administrator")

    @pytest.mark.asyncio
    async def test_update_to_taken_username(self, user_repository):
        await user_repository.create_user("alice", "digest", "reader")
        bob = await user_repository.create_user("bob", "digest", "reader")

        with pytest.raises(ConflictError):
            await user_repository.update_user(bob, {"username": "alice"})

        assert (await user_repository.get_user_by_id(bob)).username == "bob"

    @pytest.mark.asyncio
    async def test_update_missing(self, user_repository):
        with pytest.raises(NotFoundError):
            await user_repository.update_user(str(uuid.uuid4()), {"role": "reader"})

    @pytest.mark.asyncio
    async def test_delete(self, user_repository):
        user_id = await user_repository.create_user("alice", "digest", "reader")

        await user_repository.delete_user(user_id)

        with pytest.raises(NotFoundError):
            await user_repository.get_user_by_id(user_id)

    @pytest.mark.asyncio
    async def test_delete_missing(self, user_repository):
        with pytest.raises(NotFoundError):
            await user_repository.delete_user(str(uuid.uuid4()))
