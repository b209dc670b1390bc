"""
API error handling utilities.

A decorator that turns domain exceptions into the JSON error envelope the
web app expects: {"success": false, "error": ..., "details": ...}.

Dependencies: fastapi, pydantic, concierge.core.exceptions
System role: Uniform HTTP error mapping across routers
"""

import functools
import logging
from typing import Any, Callable, TypeVar

from fastapi import HTTPException, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from concierge.core.exceptions import (
    ConciergeException,
    ConfigurationError,
    ConflictError,
    NotFoundError,
    OrchestrationUnavailableError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Type for the decorated function
F = TypeVar("F", bound=Callable[..., Any])


def error_response(status_code: int, error: str, details: Any = None) -> JSONResponse:
    content: dict[str, Any] = {"success": False, "error": error}
    if details:
        content["details"] = jsonable_encoder(details)
    return JSONResponse(status_code=status_code, content=content)


def success_response(data: Any = None, status_code: int = 200, **extra: Any) -> JSONResponse:
    """Success envelope with optional top-level fields (method, executionId)."""
    content: dict[str, Any] = {"success": True, "data": data}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


def handle_api_errors(func: F) -> F:
    """
    Decorator mapping domain errors to HTTP responses.

    - NotFoundError -> 404
    - ValidationError (domain or pydantic) -> 400 "Validation error"
    - ConflictError -> 409
    - OrchestrationUnavailableError, ConfigurationError -> 503
    - anything else -> 500
    """

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)

        except HTTPException:
            raise

        except NotFoundError as e:
            logger.warning(f"{func.__module__}:{func.__name__} - Not found", extra={"error": str(e)})
            return error_response(status.HTTP_404_NOT_FOUND, e.message, e.details)

        except ValidationError as e:
            logger.warning(
                f"{func.__module__}:{func.__name__} - Invalid request", extra={"error": str(e)}
            )
            return error_response(
                status.HTTP_400_BAD_REQUEST, "Validation error", [{"message": e.message, **e.details}]
            )

        except PydanticValidationError as e:
            logger.warning(
                f"{func.__module__}:{func.__name__} - Pydantic validation error",
                extra={"error": str(e)},
            )
            return error_response(
                status.HTTP_400_BAD_REQUEST,
                "Validation error",
                e.errors(include_url=False, include_context=False),
            )

        except ConflictError as e:
            logger.warning(f"{func.__module__}:{func.__name__} - Conflict", extra={"error": str(e)})
            return error_response(status.HTTP_409_CONFLICT, e.message, e.details)

        except (OrchestrationUnavailableError, ConfigurationError) as e:
            logger.error(
                f"{func.__module__}:{func.__name__} - Service unavailable", extra={"error": str(e)}
            )
            return error_response(status.HTTP_503_SERVICE_UNAVAILABLE, e.message, e.details)

        except ConciergeException as e:
            logger.error(
                f"{func.__module__}:{func.__name__} - FAILED - {type(e).__name__}: {e}",
                exc_info=True,
            )
            return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, e.message, e.details)

        except Exception as e:
            logger.exception(
                f"{func.__module__}:{func.__name__} - Unexpected failure",
                extra={"error": str(e)},
            )
            return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e) or "Unknown error")

    return wrapper  # type: ignore
