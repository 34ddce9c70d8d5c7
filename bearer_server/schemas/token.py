from datetime import UTC, datetime, timedelta
from enum import StrEnum

from bearer_server.core.types import Claims
from bearer_server.schemas.base import SealedSchema


class TokenType(StrEnum):
    """Kind of subject a token was issued to"""

    USER = "U"
    CLIENT = "C"
    AUTHORIZATION_CODE = "A"


class Token(SealedSchema):
    """Access token contents, sealed before it reaches the client"""

    id: str
    credential: str
    token_type: TokenType
    scope: str
    claims: Claims | None
    creation_date: datetime
    expires_in: int  # seconds

    @property
    def expires_at(self) -> datetime:
        return self.creation_date + timedelta(seconds=self.expires_in)

    def is_expired(self, now: datetime | None = None) -> bool:
        """
        Check the token lifetime against ``now`` (defaults to the current UTC time).

        Expiry is derived solely from ``creation_date + expires_in``.
        """
        return self.expires_at < (now or datetime.now(UTC))


class RefreshToken(Token):
    """Refresh token contents; ``token_id`` names the access token it was issued with"""

    token_id: str
