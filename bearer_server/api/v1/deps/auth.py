from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from bearer_server.core.exceptions import http_exceptions
from bearer_server.core.exceptions.domain import DecodeError
from bearer_server.schemas import Token
from bearer_server.services.bearer_service import BearerServer

# OAuth2 password bearer scheme for token authentication
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/oauth/token")


def get_bearer_server(request: Request) -> BearerServer:
    """
    Get the BearerServer configured on the application.
    """
    return request.app.state.bearer_server


async def get_current_token(
    token: Annotated[str, Depends(oauth2_scheme)],
    server: Annotated[BearerServer, Depends(get_bearer_server)],
) -> Token:
    """
    Get the access token presented as ``Authorization: Bearer <token>``

    Args:
        token: Sealed access token
        server: BearerServer whose codec sealed the token

    Returns:
        The unsealed access token

    Raises:
        UnauthorizedException: If the token cannot be unsealed or has expired
    """
    try:
        access_token = server.codec.unseal_token(token)
    except DecodeError:
        raise http_exceptions.UnauthorizedException(
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if access_token.is_expired():
        raise http_exceptions.UnauthorizedException(
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return access_token
