import json
from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette import status

from bearer_server.schemas import ErrorResponse

# Characters escaped so that a JSON body can never be sniffed as HTML
_HTML_ESCAPES = {"<": "\\u003c", ">": "\\u003e", "&": "\\u0026"}


class OAuthJSONResponse(JSONResponse):
    """JSON response with an explicit charset and HTML-escaped body."""

    media_type = "application/json; charset=utf-8"

    def render(self, content: Any) -> bytes:
        body = json.dumps(
            content,
            ensure_ascii=False,
            allow_nan=False,
            separators=(",", ":"),
        )
        for char, escaped in _HTML_ESCAPES.items():
            body = body.replace(char, escaped)

        return body.encode("utf-8")


def render_json(
    content: BaseModel,
    status_code: int = status.HTTP_200_OK,
    no_store: bool = False,
) -> OAuthJSONResponse:
    """
    Render a schema as the response body, dropping unset optional fields.

    Args:
        content: Response schema
        status_code: HTTP status code
        no_store: Add ``Cache-Control: no-store``
    """
    headers = {"Cache-Control": "no-store"} if no_store else None

    return OAuthJSONResponse(
        content=content.model_dump(mode="json", exclude_none=True),
        status_code=status_code,
        headers=headers,
    )


class UnauthorizedResponse(BaseModel):
    detail: str = "Unauthorized"


TOKEN_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    status.HTTP_400_BAD_REQUEST: {
        "model": ErrorResponse,
        "description": "invalid_request or unsupported_grant_type",
    },
    status.HTTP_401_UNAUTHORIZED: {
        "model": ErrorResponse,
        "description": "invalid_client or invalid_grant",
    },
    status.HTTP_500_INTERNAL_SERVER_ERROR: {
        "model": ErrorResponse,
        "description": "server_error",
    },
}
