"""HTTP middleware that assigns request identifiers and caps body sizes.

Every request gets an identifier: the incoming ``X-Request-ID`` header when
the client sends one, a fresh UUIDv4 otherwise. The id is stored on
``request.state``, in the ``REQUEST_ID_CTX`` ContextVar (read by the log
filter and the outbound HTTP client) and echoed in the ``X-Request-ID``
response header.
"""

import contextvars
import logging
import uuid

from fastapi import Request
from fastapi.responses import JSONResponse

from . import settings

REQUEST_ID_CTX = contextvars.ContextVar("request_id", default="-")
REQUEST_ID_HEADER = "X-Request-ID"

logger = logging.getLogger("storefront.http")


async def request_id_middleware(request: Request, call_next):
    rid = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    request.state.request_id = rid
    token = REQUEST_ID_CTX.set(rid)
    try:
        response = await call_next(request)
        logger.info(
            "request handled",
            extra={"path": request.url.path, "method": request.method, "status": response.status_code},
        )
    finally:
        REQUEST_ID_CTX.reset(token)
    response.headers[REQUEST_ID_HEADER] = rid
    return response


async def api_size_limit_middleware(request: Request, call_next):
    """Reject ``/api/`` requests whose declared body exceeds ``API_MAX_BYTES``."""
    if request.url.path.startswith("/api/"):
        clen = request.headers.get("content-length")
        if clen and clen.isdigit() and int(clen) > settings.API_MAX_BYTES:
            return JSONResponse({"detail": "PAYLOAD_TOO_LARGE"}, status_code=413)
    return await call_next(request)
