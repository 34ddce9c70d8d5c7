import time
import uuid
from typing import Callable

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, _StreamingResponse

from bearer_server.core.logger import request_id_var


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Bind a short request id for every request and trace its outcome.

    The id is exposed to log records through ``request_id_var`` and returned
    to the caller in ``X-Request-ID``. Request bodies are never logged since
    token requests carry passwords, client secrets and refresh tokens.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        context_token = request_id_var.set(request_id)

        prefix = f"[{request_id}] {request.method} {request.url.path}"
        client_ip = request.client.host if request.client else "unknown"
        started = time.perf_counter()

        logger.trace(
            f"{prefix} - Client: {client_ip} - "
            f"User-Agent: {request.headers.get('user-agent', 'unknown')}",
            request_id=request_id,
        )

        try:
            response: _StreamingResponse = await call_next(request)
        except Exception as e:
            logger.error(
                f"{prefix} - Error: {e} - Time: {time.perf_counter() - started:.3f}s",
                request_query_params=request.query_params,
            )
            raise
        finally:
            request_id_var.reset(context_token)

        logger.trace(
            f"{prefix} - Status: {response.status_code} - "
            f"Time: {time.perf_counter() - started:.3f}s",
            request_id=request_id,
        )
        response.headers["X-Request-ID"] = request_id

        return response
