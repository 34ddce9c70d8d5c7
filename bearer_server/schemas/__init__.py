from .base import BaseSchema, SealedSchema
from .health_check import HealthCheckResponse
from .token import Token, RefreshToken, TokenType
from .oauth import (
    BEARER_TOKEN_TYPE,
    ErrorResponse,
    ErrorResponseType,
    GrantRequest,
    GrantType,
    TokenInfoResponse,
    TokenResponse,
)

__all__ = [
    "BaseSchema",
    "SealedSchema",
    "HealthCheckResponse",
    "Token",
    "RefreshToken",
    "TokenType",
    "BEARER_TOKEN_TYPE",
    "ErrorResponse",
    "ErrorResponseType",
    "GrantRequest",
    "GrantType",
    "TokenInfoResponse",
    "TokenResponse",
]
