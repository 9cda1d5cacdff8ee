"""
API route modules.
"""

from api.routes import auth, books, users

__all__ = ["auth", "books", "users"]
