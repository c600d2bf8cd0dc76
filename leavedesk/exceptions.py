from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None
    status_code: int
    retryable: bool = False


class AppError(Exception):
    """Base application exception."""

    retryable = False

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed dates, amounts or other payload fields."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


class ConflictError(AppError):
    """A leave request overlaps one of the subject's blocking requests."""

    def __init__(self, message: str = "You already have a leave request during this period") -> None:
        super().__init__(message, status_code=status.HTTP_409_CONFLICT)


class InsufficientBalanceError(AppError):
    def __init__(self, message: str = "Insufficient leave balance") -> None:
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST)


class UnauthorizedTransitionError(AppError):
    """The actor's role may not move the request to the requested status."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN)


class AwaitingManagerError(AppError):
    """An Admin tried to decide an employee request before its Manager did."""

    def __init__(self, message: str = "Request is awaiting manager approval") -> None:
        super().__init__(message, status_code=status.HTTP_409_CONFLICT)


class NoOpError(AppError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST)


class NotFoundError(AppError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND)


class ConcurrentModificationError(AppError):
    """The request changed under us on every attempt; the caller may retry."""

    retryable = True

    def __init__(self, message: str = "Request was modified concurrently, please retry") -> None:
        super().__init__(message, status_code=status.HTTP_409_CONFLICT)


class StorageUnavailableError(AppError):
    """The backing store could not be reached; the caller may retry."""

    retryable = True

    def __init__(self, message: str = "Storage is temporarily unavailable") -> None:
        super().__init__(message, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            detail=exc.message,
            status_code=exc.status_code,
            retryable=exc.retryable,
        ).model_dump(),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            detail=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
