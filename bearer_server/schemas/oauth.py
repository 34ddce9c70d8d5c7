from datetime import datetime
from enum import StrEnum

from bearer_server.core.types import Properties
from bearer_server.schemas.base import BaseSchema
from bearer_server.schemas.token import TokenType

BEARER_TOKEN_TYPE = "bearer"


class GrantType(StrEnum):
    PASSWORD = "password"
    CLIENT_CREDENTIALS = "client_credentials"
    AUTHORIZATION_CODE = "authorization_code"
    REFRESH_TOKEN = "refresh_token"


class ErrorResponseType(StrEnum):
    """
    Token endpoint error codes.

    See: https://datatracker.ietf.org/doc/html/rfc6749#section-5.2
    """

    # Missing or repeated parameter, unsupported parameter value, or otherwise malformed
    INVALID_REQUEST = "invalid_request"
    # Client authentication failed (unknown client, no client authentication, ...)
    INVALID_CLIENT = "invalid_client"
    # Grant or refresh token invalid, expired, revoked or issued to another client
    INVALID_GRANT = "invalid_grant"
    # Authenticated client may not use this grant type
    UNAUTHORIZED_CLIENT = "unauthorized_client"
    UNSUPPORTED_GRANT_TYPE = "unsupported_grant_type"
    INVALID_SCOPE = "invalid_scope"
    SERVER_ERROR = "server_error"
    TEMPORARILY_UNAVAILABLE = "temporarily_unavailable"


class GrantRequest(BaseSchema):
    """Grant parameters after credential extraction at the HTTP boundary"""

    grant_type: str
    credential: str = ""  # username or client id
    secret: str = ""  # password or client secret
    refresh_token: str = ""
    scope: str = ""
    code: str = ""
    redirect_uri: str = ""


class TokenResponse(BaseSchema):
    """Successful token endpoint response"""

    access_token: str
    refresh_token: str
    token_type: str = BEARER_TOKEN_TYPE
    expires_in: int
    refresh_token_expires_in: int
    properties: Properties | None = None


class ErrorResponse(BaseSchema):
    """Token endpoint error response"""

    error: ErrorResponseType
    error_description: str
    error_uri: str | None = None
    state: str | None = None


class TokenInfoResponse(BaseSchema):
    """Description of the bearer token presented to a protected route"""

    credential: str
    token_type: TokenType
    scope: str
    expires_at: datetime
    expires_in: int
