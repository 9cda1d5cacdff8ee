"""
Database tables for the Cloud Library service.
"""

from sqlalchemy import CheckConstraint, Column, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()

USER_ROLES = ("reader", "administrator")


class BookRecord(Base):
    """Book metadata; the PDF itself lives in the book file store."""
    __tablename__ = "books"

    id = Column(String(36), primary_key=True)  # UUID
    title = Column(String(255), nullable=False, default="")
    author = Column(String(255), nullable=False, default="")
    subject = Column(String(255), nullable=False, default="")

    def __repr__(self) -> str:
        return f"<BookRecord id={self.id!r} title={self.title!r}>"


class UserRecord(Base):
    """Library account with its bcrypt password digest."""
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "role IN (%s)" % ", ".join(f"'{role}'" for role in USER_ROLES),
            name="ck_users_role",
        ),
    )

    id = Column(String(36), primary_key=True)  # UUID
    username = Column(String(255), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False)

    def __repr__(self) -> str:
        return f"<UserRecord id={self.id!r} username={self.username!r} role={self.role!r}>"
