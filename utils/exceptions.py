# utils/exceptions.py
from typing import Any, Optional
from werkzeug.exceptions import HTTPException


class BizError(HTTPException):
    code: int  # HTTP status
    message: str  # human readable
    data: Optional[Any]
    error_code: str  # machine readable

    default_error_code = "BIZ_ERROR"

    def __init__(
        self,
        message: str = "Request failed",
        code: int = 400,
        data: Any = None,
        error_code: Optional[str] = None,
    ):
        self.code = code
        self.message = message
        self.data = data
        self.error_code = error_code or self.default_error_code
        super().__init__(description=message)


# ---- (a) input validation ----

class ValidationError(BizError):
    default_error_code = "VALIDATION_ERROR"

    def __init__(self, message: str = "Validation failed", data: Any = None, error_code: Optional[str] = None):
        super().__init__(message, 400, data, error_code)


class DepthExceededError(ValidationError):
    default_error_code = "MAX_DEPTH_EXCEEDED"


# ---- (b) policy ----

class PolicyRejection(BizError):
    default_error_code = "CONTENT_REJECTED"

    def __init__(self, message: str = "Content violates community guidelines", data: Any = None, error_code: Optional[str] = None):
        super().__init__(message, 403, data, error_code)


# ---- (c) conflicts ----

class ConflictError(BizError):
    default_error_code = "CONFLICT"

    def __init__(self, message: str = "Conflict", data: Any = None, error_code: Optional[str] = None):
        super().__init__(message, 409, data, error_code)


class DuplicateReportError(ConflictError):
    default_error_code = "ALREADY_REPORTED"


class EditWindowExpiredError(ConflictError):
    default_error_code = "EDIT_WINDOW_EXPIRED"


class TerminalStateError(ConflictError):
    default_error_code = "TERMINAL_STATE"


class AlreadyLikedError(ConflictError):
    default_error_code = "ALREADY_LIKED"


class RateLimitedError(BizError):
    default_error_code = "RATE_LIMIT_EXCEEDED"

    def __init__(self, message: str = "Too many requests", retry_after: Optional[int] = None, error_code: Optional[str] = None):
        data = {"retry_after": retry_after} if retry_after is not None else None
        super().__init__(message, 429, data, error_code)


# ---- lookups ----

class NotFoundError(BizError):
    default_error_code = "NOT_FOUND"

    def __init__(self, message: str = "Not found", error_code: Optional[str] = None):
        super().__init__(message, 404, None, error_code)
