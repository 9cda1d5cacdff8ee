#!/usr/bin/env python3
"""
Library Management Utility

This script provides maintenance commands against the configured store:
- Create an administrator account (registration cannot)
- List all users
- Report book files and book records that have lost their counterpart
- Remove orphaned book files
"""

import asyncio
import sys
from typing import Set, Tuple

from api.auth import hash_password
from api.config import APIConfig
from api.models import UserRole
from storage.books import BookRepository
from storage.database import DatabaseManager
from storage.exceptions import ConflictError, LibraryStorageError
from storage.files import BookFileStore
from storage.users import UserRepository
from utilities.config import StorageConfig
from utilities.logger import setup_logging


async def find_orphans(books: BookRepository, files: BookFileStore) -> Tuple[Set[str], Set[str]]:
    """
    Compare stored files with book records.

    Returns:
        (ids of files without a record, ids of records without a file)
    """
    record_ids = await books.list_book_ids()
    file_ids = files.list_book_ids()
    return file_ids - record_ids, record_ids - file_ids


async def create_admin(db_manager: DatabaseManager, api_config: APIConfig, username: str, password: str) -> int:
    """Create an administrator account."""
    print(f"\n👤 CREATING ADMINISTRATOR: {username}")
    print("=" * 80)

    users = UserRepository(db_manager)
    password_hash = hash_password(password, api_config.bcrypt_rounds)
    try:
        user_id = await users.create_user(username, password_hash, UserRole.ADMINISTRATOR.value)
    except ConflictError:
        print(f"❌ Username '{username}' already exists")
        return 1

    print(f"✅ Administrator created with id: {user_id}")
    return 0


async def list_users(db_manager: DatabaseManager) -> int:
    """List all users in the database."""
    print("\n📋 ALL USERS")
    print("=" * 80)

    records = await UserRepository(db_manager).list_users()
    if not records:
        print("❌ No users found in database")
        return 0

    print(f"✅ Found {len(records)} users:")
    print()
    for i, user in enumerate(records, 1):
        print(f"{i:3d}. {user.username:<30} {user.role:<15} {user.id}")
    return 0


async def show_orphans(db_manager: DatabaseManager, files: BookFileStore) -> int:
    """Report orphaned files and records without files."""
    print("\n🔍 ORPHAN REPORT")
    print("=" * 80)

    orphaned_files, missing_files = await find_orphans(BookRepository(db_manager), files)

    print(f"🗑️  Files without a book record: {len(orphaned_files)}")
    for book_id in sorted(orphaned_files):
        print(f"     {files.path_for(book_id)}")
    print(f"📚 Book records without a file: {len(missing_files)}")
    for book_id in sorted(missing_files):
        print(f"     {book_id}")

    if orphaned_files:
        print("\n⚠️  Run cleanup to remove orphaned files.")
    return 0


async def cleanup_orphans(db_manager: DatabaseManager, files: BookFileStore) -> int:
    """Delete files that have no book record."""
    print("\n🧹 CLEANING UP ORPHANED BOOK FILES")
    print("=" * 80)

    orphaned_files, _ = await find_orphans(BookRepository(db_manager), files)
    for book_id in sorted(orphaned_files):
        await files.remove(book_id)

    if orphaned_files:
        print(f"✅ Removed {len(orphaned_files)} orphaned files")
    else:
        print("ℹ️  No orphaned files found")
    return 0


def print_usage() -> None:
    print("Usage: python manage_library.py [create-admin|list|orphans|cleanup] [args]")
    print()
    print("Commands:")
    print("  create-admin <username> <password>  - Create an administrator account")
    print("  list                                - List all users")
    print("  orphans                             - Report book files and records out of sync")
    print("  cleanup                             - Remove book files with no book record")


async def main(argv=None) -> int:
    """Main function."""
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print_usage()
        return 1

    command = argv[0].lower()
    if command not in ("create-admin", "list", "orphans", "cleanup"):
        print(f"❌ Unknown command: {command}")
        print_usage()
        return 1
    if command == "create-admin" and len(argv) < 3:
        print("❌ Error: username and password required")
        print("Usage: python manage_library.py create-admin <username> <password>")
        return 1

    api_config = APIConfig()
    storage_config = StorageConfig()
    setup_logging(
        log_level=storage_config.log_level,
        log_format=storage_config.log_format,
        log_file=storage_config.get_log_file_path(),
        debug=storage_config.debug,
    )

    db_manager = DatabaseManager(storage_config.get_database_url(), echo=storage_config.database_echo)
    files = BookFileStore(storage_config.get_books_storage_path(), api_config.max_book_file_size)

    try:
        await db_manager.connect()
        if command == "create-admin":
            return await create_admin(db_manager, api_config, argv[1], argv[2])
        if command == "list":
            return await list_users(db_manager)
        if command == "orphans":
            return await show_orphans(db_manager, files)
        return await cleanup_orphans(db_manager, files)
    except LibraryStorageError as e:
        print(f"❌ Error: {e}")
        return 1
    finally:
        await db_manager.disconnect()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
