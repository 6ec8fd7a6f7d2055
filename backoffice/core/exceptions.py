from fastapi import HTTPException, status


class AppError(HTTPException):
    """Base exception for API errors.

    Carries an HTTP status and a client-safe message; the registered
    exception handlers turn it into the standard response envelope.
    """

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "Internal server error",
    ):
        super().__init__(status_code=status_code, detail=detail)


# ============== Request validation ==============


class BadRequestError(AppError):
    """Missing or malformed input, or an operation invalid for the current state."""

    def __init__(self, detail: str = "Bad request"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


# ============== Authentication & Authorization ==============


class UnauthorizedError(AppError):
    """Missing, invalid or stale credentials. Never says which check failed."""

    def __init__(self, detail: str = "You are not authorized to access this resource"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
        )


class ForbiddenError(AppError):
    """Valid identity, insufficient permission or ownership."""

    def __init__(self, detail: str = "You don't have permission to access this resource"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )


# ============== Resources ==============


class NotFoundError(AppError):
    def __init__(self, detail: str = "The requested resource was not found"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
        )


class ConflictError(AppError):
    """Duplicate of a uniquely keyed entity."""

    def __init__(self, detail: str = "Duplicate entry"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
        )
