"""Domain exceptions plus the FastAPI handlers that render them as JSON.

Provider failures never reach these handlers: the rate source/store recover
them into a fallback snapshot. Only user-actionable states surface here.
"""

import logging

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("consult_pricing.errors")


class PricingError(Exception):
    """Base class for errors raised by the pricing core."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "pricing_error"


class LineItemValidationError(PricingError, ValueError):
    """Negative hours/weeks, allocation outside [0, 100] or unknown field."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "invalid_line_item"


class IncompleteSelectionError(PricingError):
    """A line item is missing its country or seniority."""

    status_code = status.HTTP_409_CONFLICT
    code = "incomplete_selection"


class UnsupportedCurrencyError(PricingError, ValueError):
    code = "unsupported_currency"


class MissingRateError(PricingError, LookupError):
    """Raised by strict conversion when a snapshot has no rate for the target."""

    code = "missing_rate"


def http_error_handler(request: Request, exc: StarletteHTTPException):  # type: ignore
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        detail = f"No route for {request.method} {request.url.path}"
        error = "not_found"
    else:
        detail = exc.detail
        error = "http_error"
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": error, "detail": detail},
    )


def validation_error_handler(request: Request, exc: RequestValidationError):  # type: ignore
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


def pricing_error_handler(request: Request, exc: PricingError):  # type: ignore
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": str(exc)},
    )


def server_error_handler(request: Request, exc: Exception):  # type: ignore
    logger.exception("unhandled exception")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "detail": "An unexpected error occurred.",
        },
    )
