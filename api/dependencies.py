"""
Dependency providers for FastAPI routes.

Every collaborator is built once in the application lifespan and stored on
app.state; these functions hand them to the handlers.
"""

from fastapi import Request

from api.auth import Authenticator
from api.config import APIConfig
from storage.books import BookRepository
from storage.files import BookFileStore
from storage.users import UserRepository


def get_api_config(request: Request) -> APIConfig:
    return request.app.state.api_config


def get_book_repository(request: Request) -> BookRepository:
    return request.app.state.book_repository


def get_user_repository(request: Request) -> UserRepository:
    return request.app.state.user_repository


def get_file_store(request: Request) -> BookFileStore:
    return request.app.state.file_store


def get_authenticator(request: Request) -> Authenticator:
    return request.app.state.authenticator
