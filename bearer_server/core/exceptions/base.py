from typing import Any, Optional

from fastapi import HTTPException as FastAPIHTTPException


class AppException(Exception):
    """
    Failure raised below the HTTP layer (codecs, verifiers).

    ``message`` is safe to log; ``exception`` keeps the underlying cause, such
    as a cryptography or base64 error, for tracebacks.
    """

    def __init__(self, message: str, exception: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.exception = exception

    def __str__(self):
        if self.exception:
            return f"{self.message}\nException: {self.exception}"

        return self.message


class HTTPException(FastAPIHTTPException):
    """Base for errors answered with FastAPI's ``{"detail": ...}`` body on protected routes."""

    def __init__(
        self,
        status_code: int,
        detail: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)
