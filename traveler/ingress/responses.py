"""
JSON error responses shared by both ingress apps.

Every rejection is rendered as ``{"ok": false, "error": <code>}``.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..common.errors import TravelerError

logger = logging.getLogger("traveler.ingress.responses")

HTTP_ERROR_CODES = {
    404: "not_found",
    405: "method_not_allowed",
}


def error_response(status_code: int, code: str) -> JSONResponse:
    return JSONResponse({"ok": False, "error": code}, status_code=status_code)


def install_error_handlers(app: FastAPI) -> None:
    """Render Traveler and routing errors in the ingress JSON shape"""

    @app.exception_handler(TravelerError)
    async def traveler_error_handler(request: Request, exc: TravelerError):
        if exc.status_code is None:
            logger.error("Unhandled %s on %s: %s", type(exc).__name__, request.url.path, exc)
            return error_response(500, "internal_error")
        return error_response(exc.status_code, exc.code)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        code = HTTP_ERROR_CODES.get(exc.status_code) or str(exc.detail)
        return error_response(exc.status_code, code)
