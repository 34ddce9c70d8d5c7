from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Form, Request, status

from bearer_server.api.v1.deps.auth import get_bearer_server, get_current_token
from bearer_server.core import responses
from bearer_server.core.auth import parse_basic_authorization
from bearer_server.core.exceptions.domain import DecodeError
from bearer_server.core.exceptions.oauth import InvalidClientError, OAuthError
from bearer_server.core.types import BasicCredentialsDict
from bearer_server.schemas import (
    GrantRequest,
    GrantType,
    Token,
    TokenInfoResponse,
    TokenResponse,
)
from bearer_server.services.bearer_service import BearerServer

router = APIRouter()

BearerServerDep = Annotated[BearerServer, Depends(get_bearer_server)]
FormField = Annotated[str, Form()]


async def _token_response(
    server: BearerServer,
    grant: GrantRequest,
    request: Request,
    state: str,
) -> responses.OAuthJSONResponse:
    try:
        token_response = await server.generate_token_response(grant, request)
    except OAuthError as e:
        e.state = state or None
        raise

    return responses.render_json(
        token_response,
        no_store=grant.grant_type == GrantType.REFRESH_TOKEN,
    )


def _client_authentication_failed(state: str, description: str) -> InvalidClientError:
    error = InvalidClientError(description)
    error.state = state or None
    return error


def _basic_credentials(request: Request, state: str) -> BasicCredentialsDict | None:
    """
    Read HTTP Basic credentials from the ``Authorization`` header.

    Raises:
        InvalidClientError: If the header is Basic but cannot be decoded
    """
    try:
        return parse_basic_authorization(request.headers.get("Authorization"))
    except DecodeError:
        raise _client_authentication_failed(state, "invalid basic authorization header")


@router.post(
    "/token",
    response_model=TokenResponse,
    responses=responses.TOKEN_ERROR_RESPONSES,
    summary="Resource owner token endpoint",
    description=(
        "Issue tokens for the password grant and refresh them with the refresh_token grant. "
        "Credentials are read from HTTP Basic authentication, falling back to the form body."
    ),
)
async def user_credentials(
    request: Request,
    server: BearerServerDep,
    grant_type: FormField = "",
    username: FormField = "",
    password: FormField = "",
    scope: FormField = "",
    refresh_token: FormField = "",
    state: FormField = "",
):
    """
    Password and refresh token grants
    """
    basic = _basic_credentials(request, state)
    if basic is not None and basic["username"] and basic["password"]:
        username, password = basic["username"], basic["password"]

    grant = GrantRequest(
        grant_type=grant_type,
        credential=username,
        secret=password,
        refresh_token=refresh_token,
        scope=scope,
    )
    return await _token_response(server, grant, request, state)


@router.post(
    "/auth",
    response_model=TokenResponse,
    responses=responses.TOKEN_ERROR_RESPONSES,
    summary="Client token endpoint",
    description=(
        "Issue tokens for the client_credentials grant and refresh them with the "
        "refresh_token grant. Clients authenticate with form parameters or HTTP Basic."
    ),
)
async def client_credentials(
    request: Request,
    server: BearerServerDep,
    grant_type: FormField = "",
    client_id: FormField = "",
    client_secret: FormField = "",
    scope: FormField = "",
    refresh_token: FormField = "",
    state: FormField = "",
):
    """
    Client credentials and refresh token grants
    """
    basic = _basic_credentials(request, state)
    if (not client_id or not client_secret) and basic is not None:
        # Including client credentials in the request body is NOT RECOMMENDED,
        # so the Basic header is authoritative when the body is incomplete
        client_id, client_secret = basic["username"], basic["password"]

    if grant_type == GrantType.CLIENT_CREDENTIALS and not (client_id and client_secret):
        raise _client_authentication_failed(state, "invalid client id or secret")

    grant = GrantRequest(
        grant_type=grant_type,
        credential=client_id,
        secret=client_secret,
        refresh_token=refresh_token,
        scope=scope,
    )
    return await _token_response(server, grant, request, state)


@router.post(
    "/authorize",
    response_model=TokenResponse,
    responses=responses.TOKEN_ERROR_RESPONSES,
    summary="Authorization code exchange",
    description="Exchange an authorization code for tokens (authorization_code grant).",
)
async def authorization_code(
    request: Request,
    server: BearerServerDep,
    grant_type: FormField = "",
    client_id: FormField = "",
    client_secret: FormField = "",  # not mandatory
    code: FormField = "",
    redirect_uri: FormField = "",  # not mandatory
    scope: FormField = "",  # not mandatory
    state: FormField = "",
):
    """
    Authorization code grant, phase two of the authorization process
    """
    basic = _basic_credentials(request, state)
    if not client_id and basic is not None:
        client_id, client_secret = basic["username"], basic["password"]

    if grant_type == GrantType.AUTHORIZATION_CODE and not client_id:
        raise _client_authentication_failed(state, "invalid client id or secret")

    grant = GrantRequest(
        grant_type=grant_type,
        credential=client_id,
        secret=client_secret,
        code=code,
        redirect_uri=redirect_uri,
        scope=scope,
    )
    return await _token_response(server, grant, request, state)


@router.get(
    "/token-info",
    response_model=TokenInfoResponse,
    responses={
        status.HTTP_401_UNAUTHORIZED: {"model": responses.UnauthorizedResponse},
    },
    summary="Describe the presented access token",
)
async def token_info(token: Annotated[Token, Depends(get_current_token)]):
    remaining = token.expires_at - datetime.now(UTC)

    return TokenInfoResponse(
        credential=token.credential,
        token_type=token.token_type,
        scope=token.scope,
        expires_at=token.expires_at,
        expires_in=max(int(remaining.total_seconds()), 0),
    )
