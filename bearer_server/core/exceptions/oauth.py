from starlette import status

from bearer_server.schemas import ErrorResponse, ErrorResponseType


class OAuthError(Exception):
    """
    Token endpoint failure carrying the RFC 6749 error kind and HTTP status.

    Raised by BearerServer and the token endpoints, rendered by the
    exception handler registered in ``bearer_server.main``.
    """

    def __init__(
        self,
        error: ErrorResponseType,
        description: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        uri: str | None = None,
        state: str | None = None,
    ) -> None:
        super().__init__(description)
        self.error = error
        self.description = description
        self.status_code = status_code
        self.uri = uri
        self.state = state

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            error=self.error,
            error_description=self.description,
            error_uri=self.uri,
            state=self.state,
        )


class InvalidRequestError(OAuthError):
    def __init__(self, description: str) -> None:
        super().__init__(ErrorResponseType.INVALID_REQUEST, description)


class InvalidClientError(OAuthError):
    def __init__(self, description: str) -> None:
        super().__init__(
            ErrorResponseType.INVALID_CLIENT,
            description,
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


class InvalidGrantError(OAuthError):
    def __init__(self, description: str) -> None:
        super().__init__(
            ErrorResponseType.INVALID_GRANT,
            description,
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


class UnauthorizedClientError(OAuthError):
    def __init__(self, description: str) -> None:
        super().__init__(ErrorResponseType.UNAUTHORIZED_CLIENT, description)


class InvalidScopeError(OAuthError):
    def __init__(self, description: str) -> None:
        super().__init__(ErrorResponseType.INVALID_SCOPE, description)


class UnsupportedGrantTypeError(OAuthError):
    def __init__(self, description: str = "grant type is unsupported") -> None:
        super().__init__(ErrorResponseType.UNSUPPORTED_GRANT_TYPE, description)


class ServerError(OAuthError):
    def __init__(self, description: str) -> None:
        super().__init__(
            ErrorResponseType.SERVER_ERROR,
            description,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
