"""
Pytest configuration and shared fixtures.
"""

import asyncio

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from api.auth import TokenManager, hash_password
from api.config import APIConfig
from api.main import create_app
from api.models import UserRole
from storage.books import BookRepository
from storage.database import DatabaseManager
from storage.files import BookFileStore
from storage.users import UserRepository
from utilities.config import StorageConfig

TEST_SIGNING_KEY = "test-signing-key-0123456789abcdef0123456789abcdef"
ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "admin-password"

SAMPLE_PDF = (
    b"%PDF-1.4\n"
    b"1 0 obj\n<< /Type /Catalog /Pages 2 0 R >>\nendobj\n"
    b"2 0 obj\n<< /Type /Pages /Kids [] /Count 0 >>\nendobj\n"
    b"trailer\n<< /Root 1 0 R >>\n%%EOF\n"
)


@pytest.fixture
def api_config():
    """API configuration with a known signing key and a cheap bcrypt cost."""
    return APIConfig(jwt_sign_key=TEST_SIGNING_KEY, bcrypt_rounds=4)


@pytest.fixture
def storage_config(tmp_path):
    """Storage configuration pointing at a throwaway SQLite file and books directory."""
    return StorageConfig(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'library.db'}",
        books_storage_path=str(tmp_path / "books"),
    )


@pytest.fixture
def admin_user(storage_config):
    """Seed an administrator directly in the store and return its id."""
    async def seed():
        db_manager = DatabaseManager(storage_config.get_database_url())
        await db_manager.connect()
        try:
            return await UserRepository(db_manager).create_user(
                ADMIN_USERNAME,
                hash_password(ADMIN_PASSWORD, rounds=4),
                UserRole.ADMINISTRATOR.value,
            )
        finally:
            await db_manager.disconnect()

    return asyncio.run(seed())


@pytest.fixture
def client(api_config, storage_config, admin_user):
    """Test client with the application lifespan running."""
    app = create_app(api_config, storage_config)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def token_manager(api_config):
    return TokenManager(
        api_config.jwt_sign_key,
        algorithm=api_config.jwt_algorithm,
        access_token_expire_minutes=api_config.access_token_expire_minutes,
    )


@pytest.fixture
def admin_headers(token_manager):
    token = token_manager.issue(ADMIN_USERNAME, UserRole.ADMINISTRATOR)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def reader_headers(token_manager):
    token = token_manager.issue("reader", UserRole.READER)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def sample_book():
    """Form fields and file for a book upload."""
    return {
        "data": {"title": "T", "author": "A", "subject": "S"},
        "files": {"bookFile": ("book.pdf", SAMPLE_PDF, "application/pdf")},
    }


@pytest_asyncio.fixture
async def db_manager(storage_config):
    """Connected database manager for repository tests."""
    manager = DatabaseManager(storage_config.get_database_url())
    await manager.connect()
    yield manager
    await manager.disconnect()


@pytest.fixture
def book_repository(db_manager):
    return BookRepository(db_manager)


@pytest.fixture
def user_repository(db_manager):
    return UserRepository(db_manager)


@pytest.fixture
def file_store(tmp_path):
    return BookFileStore(tmp_path / "files", max_file_size=1024)


@pytest.fixture
def signing_key():
    return TEST_SIGNING_KEY


@pytest.fixture
def admin_credentials():
    return {"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD}


@pytest.fixture
def sample_pdf():
    return SAMPLE_PDF
