"""Translate exceptions into the JSON error envelope."""

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.clients.backend import HTTPError
from app.models.errors import ErrorDetail, ErrorEnvelope
from app.utils.logging import get_logger

logger = get_logger(__name__)


def _envelope_response(detail: ErrorDetail, status_code: int) -> JSONResponse:
    return JSONResponse(content=ErrorEnvelope(error=detail).to_content(), status_code=status_code)


async def _read_response_text(response: httpx.Response) -> str:
    try:
        return response.text
    except httpx.ResponseNotRead:
        await response.aread()
        return response.text


async def forward_error(request: Request | None, error: Exception) -> JSONResponse:
    """Build the error response for any exception raised while serving a request.

    Backend failures keep the backend's status code and body; everything
    else becomes a 500. Never raises.
    """
    logger.error("Error occurred while handling request", exc_info=error)

    if isinstance(error, HTTPError):
        try:
            try:
                error_message = await _read_response_text(error.response)
            except Exception as text_error:
                logger.warning(f"Could not read response body: {text_error}")
                error_message = error.message or "Unknown error"

            detail = ErrorDetail(
                message=error_message,
                status=int(error.response.status_code),
                status_text=error.response.reason_phrase,
            )
            return _envelope_response(detail, detail.status)
        except Exception as response_error:
            logger.error(f"Error handling HTTPError: {response_error}")
            return _envelope_response(ErrorDetail(message=error.message or "Error processing request"), 500)

    try:
        message = str(error)
    except Exception:
        message = ""
    return _envelope_response(ErrorDetail(message=message or "Unknown error"), 500)


def register_error_handlers(app: FastAPI) -> None:
    """Route backend failures and unhandled exceptions through ``forward_error``."""
    app.add_exception_handler(HTTPError, forward_error)
    app.add_exception_handler(Exception, forward_error)
