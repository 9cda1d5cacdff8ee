"""
Data access for library users.
"""

import uuid
from typing import Dict, List, Optional

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from storage.database import DatabaseManager
from storage.exceptions import ConflictError, NotFoundError, StorageError
from storage.tables import UserRecord

logger = structlog.get_logger(__name__)

USER_FIELDS = ("username", "password", "role")


class UserRepository:
    """
    CRUD operations on the users table.

    Username uniqueness is enforced by the table's unique constraint, so a
    duplicate surfaces as ConflictError from the insert or update itself.
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    async def list_users(self) -> List[UserRecord]:
        """Return every user, ordered by username."""
        try:
            async with self.db_manager.session() as session:
                result = await session.execute(select(UserRecord).order_by(UserRecord.username))
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Failed to list users", error=str(e))
            raise StorageError("unable to list users") from e

    async def get_user_by_id(self, user_id: str) -> UserRecord:
        """
        Get a single user by ID.

        Raises:
            NotFoundError: If no user has this id
        """
        try:
            async with self.db_manager.session() as session:
                user = await session.get(UserRecord, user_id)
        except SQLAlchemyError as e:
            logger.error("Failed to get user", user_id=user_id, error=str(e))
            raise StorageError("unable to get user") from e

        if user is None:
            raise NotFoundError("user", user_id)
        return user

    async def get_user_by_username(self, username: str) -> UserRecord:
        """
        Get a single user by username.

        Raises:
            NotFoundError: If no user has this username
        """
        try:
            async with self.db_manager.session() as session:
                result = await session.execute(
                    select(UserRecord).where(UserRecord.username == username)
                )
                user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Failed to get user by username", error=str(e))
            raise StorageError("unable to get user") from e

        if user is None:
            raise NotFoundError("user", username)
        return user

    async def create_user(
        self,
        username: str,
        password_hash: str,
        role: str,
        user_id: Optional[str] = None,
    ) -> str:
        """
        Insert a user.

        Args:
            username: Unique login name
            password_hash: Already hashed password
            role: reader or administrator
            user_id: Id to use; a new UUID when omitted

        Returns:
            The id of the new user

        Raises:
            ConflictError: If the username is already taken
        """
        user_id = user_id or str(uuid.uuid4())
        record = UserRecord(id=user_id, username=username, password=password_hash, role=role)
        try:
            async with self.db_manager.session() as session:
                session.add(record)
                await session.commit()
        except IntegrityError as e:
            logger.warning("Username already exists", username=username)
            raise ConflictError("username already exists") from e
        except SQLAlchemyError as e:
            logger.error("Failed to create user", username=username, error=str(e))
            raise StorageError("unable to create user") from e

        logger.info("User created", user_id=user_id, username=username, role=role)
        return user_id

    async def update_user(self, user_id: str, changes: Dict[str, str]) -> UserRecord:
        """
        Overwrite only the supplied fields of a user.

        Args:
            user_id: User identifier
            changes: Field name to new value; a password must already be hashed

        Raises:
            NotFoundError: If no user has this id
            ConflictError: If the new username is already taken
        """
        try:
            async with self.db_manager.session() as session:
                user = await session.get(UserRecord, user_id)
                if user is None:
                    raise NotFoundError("user", user_id)

                for field, value in changes.items():
                    if field in USER_FIELDS:
                        setattr(user, field, value)

                await session.commit()
        except IntegrityError as e:
            logger.warning("Username already exists", user_id=user_id, username=changes.get("username"))
            raise ConflictError("username already exists") from e
        except SQLAlchemyError as e:
            logger.error("Failed to update user", user_id=user_id, error=str(e))
            raise StorageError("unable to update user") from e

        logger.info("User updated", user_id=user_id, fields=sorted(changes))
        return user

    async def delete_user(self, user_id: str) -> None:
        """
        Delete a user.

        Raises:
            NotFoundError: If no user has this id
        """
        try:
            async with self.db_manager.session() as session:
                result = await session.execute(delete(UserRecord).where(UserRecord.id == user_id))
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("Failed to delete user", user_id=user_id, error=str(e))
            raise StorageError("unable to delete user") from e

        if result.rowcount == 0:
            raise NotFoundError("user", user_id)
        logger.info("User deleted", user_id=user_id)
