"""
Error envelope shared by every endpoint.

All failures are returned as ``{"success": false, "message": ...}``;
validation failures additionally carry per-field ``errors`` and map to
HTTP 400 (never 422). Unexpected exceptions are logged with their traceback
and answered with a generic 500 so no internal detail leaks.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def field_errors(errors) -> list[dict]:
    """Flatten pydantic error dicts into ``{field, message, type}`` entries."""
    flat = []
    for err in errors:
        # Drop the transport prefix FastAPI adds ("query", "body")
        loc = [str(part) for part in err.get("loc", ()) if part not in ("query", "body")]
        flat.append(
            {
                "field": ".".join(loc),
                "message": err.get("msg", ""),
                "type": err.get("type", ""),
            }
        )
    return flat


def error_response(message: str, status_code: int, errors: list | None = None) -> JSONResponse:
    payload = {"success": False, "message": message}
    if errors is not None:
        payload["errors"] = errors
    return JSONResponse(status_code=status_code, content=payload)


def parse_query(model):
    """
    Build a dependency that validates ``request.query_params`` against *model*.

    Raises RequestValidationError, so the handler below answers 400 with the
    field errors and the endpoint body never runs.
    """

    async def dependency(request: Request):
        try:
            return model.model_validate(dict(request.query_params))
        except ValidationError as exc:
            raise RequestValidationError(exc.errors()) from exc

    return dependency


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):
        return error_response(str(exc.detail), exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):
        message = (
            "Invalid query parameters"
            if request.method == "GET"
            else "Validation error"
        )
        return error_response(message, 400, field_errors(exc.errors()))

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response("Internal server error", 500)
