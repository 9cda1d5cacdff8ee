"""
Sign-in route.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from api.auth import Authenticator, InvalidCredentialsError, TokenSigningError
from api.dependencies import get_authenticator
from api.models import SignInRequest, SignInResponse
from storage.exceptions import NotFoundError

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Authentication"])


@router.post("/signin", response_model=SignInResponse, status_code=status.HTTP_201_CREATED)
async def signin(
    credentials: SignInRequest,
    authenticator: Authenticator = Depends(get_authenticator),
):
    """
    Exchange a username and password for an access token.

    The token is valid for 30 minutes by default and must be sent as
    `Authorization: Bearer <token>`.
    """
    try:
        return await authenticator.sign_in(credentials.username, credentials.password)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"user {credentials.username} not found",
        )
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    except TokenSigningError as e:
        logger.error("Failed to issue token", username=credentials.username, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="unable to issue token",
        )
