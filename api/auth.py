"""
Authentication and authorization for the FastAPI API.

Passwords are stored as bcrypt digests. Access tokens are HMAC-signed JWTs
carrying the username and role; they are checked on every protected request
and cannot be revoked before they expire.
"""

import asyncio
import base64
import hashlib
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
import structlog
from fastapi import Depends, HTTPException, Request, status
from pydantic import BaseModel, ValidationError

from api.config import HMAC_ALGORITHMS
from api.models import SignInResponse, UserRole
from storage.users import UserRepository

logger = structlog.get_logger(__name__)


class TokenError(Exception):
    """A bearer token failed verification."""


class TokenSigningError(Exception):
    """An access token could not be issued."""


class InvalidCredentialsError(Exception):
    """The supplied password does not match the stored digest."""


class TokenClaims(BaseModel):
    """Claims carried by an access token, validated once per request."""
    username: str
    role: UserRole
    exp: int
    iat: Optional[int] = None


def _prehash_password(password: str) -> bytes:
    """
    Pre-hash a password with SHA-256 to get past bcrypt's 72-byte limit.

    The result is always 44 bytes (base64-encoded SHA-256), so long passwords
    are fully considered.
    """
    digest = hashlib.sha256(password.encode("utf-8")).digest()
    return base64.b64encode(digest)


def hash_password(password: str, rounds: int = 12) -> str:
    """
    Hash a password using bcrypt with SHA-256 pre-hashing.

    Args:
        password: The plaintext password to hash
        rounds: bcrypt cost factor

    Returns:
        The bcrypt hash of the pre-hashed password
    """
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_prehash_password(password), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """
    Verify a password against a bcrypt hash.

    Returns:
        True if the password matches the hash, False otherwise
    """
    try:
        return bcrypt.checkpw(_prehash_password(password), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt digest
        return False


class TokenManager:
    """Issues and verifies signed access tokens."""

    def __init__(
        self,
        secret_key: Optional[str],
        algorithm: str = "HS256",
        access_token_expire_minutes: int = 30,
    ):
        """
        Initialize the token manager.

        Args:
            secret_key: HMAC signing secret; without it every operation fails
            algorithm: HMAC algorithm used when signing
            access_token_expire_minutes: Token lifetime
        """
        if algorithm not in HMAC_ALGORITHMS:
            raise ValueError(f"unsupported signing algorithm: {algorithm}")

        self.secret_key = secret_key or ""
        self.algorithm = algorithm
        self.access_token_expire_minutes = access_token_expire_minutes

        if not self.secret_key:
            logger.warning("JWT signing key not configured - authentication will not work")

    def issue(self, username: str, role: UserRole) -> str:
        """
        Create a signed access token.

        Raises:
            TokenSigningError: If the token cannot be signed
        """
        if not self.secret_key:
            raise TokenSigningError("unable to sign JWT: signing key is not configured")

        now = datetime.now(timezone.utc)
        payload = {
            "username": username,
            "role": UserRole(role).value,
            "iat": now,
            "exp": now + timedelta(minutes=self.access_token_expire_minutes),
        }
        try:
            return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        except (jwt.PyJWTError, TypeError, ValueError) as e:
            logger.error("Failed to sign token", error=str(e))
            raise TokenSigningError(f"unable to sign JWT: {e}") from e

    def verify(self, token: str) -> TokenClaims:
        """
        Verify signature, algorithm family and expiry of a token.

        Raises:
            TokenError: If the token is not acceptable
        """
        if not self.secret_key:
            raise TokenError("token verification is not configured")

        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=list(HMAC_ALGORITHMS),
                options={"require": ["exp", "username", "role"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenError("token has expired") from e
        except jwt.InvalidAlgorithmError as e:
            raise TokenError("unexpected signing method") from e
        except jwt.PyJWTError as e:
            raise TokenError(f"invalid token: {e}") from e

        try:
            return TokenClaims.model_validate(payload)
        except ValidationError as e:
            raise TokenError("invalid token claims") from e


class Authenticator:
    """Checks credentials and issues access tokens."""

    def __init__(self, users: UserRepository, tokens: TokenManager):
        self.users = users
        self.tokens = tokens

    async def sign_in(self, username: str, password: str) -> SignInResponse:
        """
        Authenticate a user.

        Raises:
            NotFoundError: If the username is unknown
            InvalidCredentialsError: If the password is wrong
            TokenSigningError: If the token cannot be issued
        """
        user = await self.users.get_user_by_username(username)

        matches = await asyncio.to_thread(verify_password, password, user.password)
        if not matches:
            logger.info("Sign-in rejected", username=username)
            raise InvalidCredentialsError("invalid username or password")

        token = self.tokens.issue(user.username, UserRole(user.role))
        logger.info("Sign-in succeeded", username=username, role=user.role)
        return SignInResponse(username=user.username, role=user.role, token=token)


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"},
    )


def parse_bearer_token(header: Optional[str]) -> str:
    """
    Extract the token from an Authorization header.

    The header must be exactly "Bearer <token>".

    Raises:
        HTTPException: 401 if the header is absent or malformed
    """
    if not header:
        raise _unauthorized("missing token")

    parts = header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise _unauthorized("malformed token")
    return parts[1]


def get_token_manager(request: Request) -> TokenManager:
    """Token manager built at application startup."""
    return request.app.state.token_manager


async def authorize(
    request: Request,
    tokens: TokenManager = Depends(get_token_manager),
) -> TokenClaims:
    """
    Verify the request's bearer token.

    Returns:
        The token's claims

    Raises:
        HTTPException: 401 if the token is missing, malformed or invalid
    """
    token = parse_bearer_token(request.headers.get("Authorization"))
    try:
        return tokens.verify(token)
    except TokenError as e:
        logger.info("Token rejected", path=request.url.path, reason=str(e))
        raise _unauthorized(str(e))


def ensure_role(claims: TokenClaims, *roles: UserRole) -> TokenClaims:
    """
    Admit only claims carrying one of the given roles.

    A valid token with another role is rejected with 401, like an invalid one.
    """
    if claims.role not in roles:
        logger.info("Role not permitted", username=claims.username, role=claims.role.value)
        raise _unauthorized("unauthorized")
    return claims


def require_roles(*roles: UserRole):
    """Build a dependency that admits only tokens carrying one of the given roles."""

    async def dependency(claims: TokenClaims = Depends(authorize)) -> TokenClaims:
        return ensure_role(claims, *roles)

    return dependency


require_administrator = require_roles(UserRole.ADMINISTRATOR)
require_member = require_roles(UserRole.READER, UserRole.ADMINISTRATOR)
