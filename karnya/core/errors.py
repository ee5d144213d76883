# karnya/core/errors.py
from typing import Any, Dict, List, Optional


class ServiceError(Exception):
    """Base class for errors surfaced to API clients.

    Every subclass carries a stable ``message`` and an HTTP ``status_code``
    so clients can branch on them. Keyword arguments passed to the
    constructor are rendered next to the message.
    """

    status_code = 400
    message = "Bad request"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        self.message = message or self.message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, **self.extra}


class ValidationError(ServiceError):
    message = "Validation failed"

    def __init__(self, errors: List[Dict[str, str]], message: Optional[str] = None):
        super().__init__(message, errors=errors)


class DuplicateEmail(ServiceError):
    message = "User already exists"


class InvalidCredentials(ServiceError):
    message = "Invalid credentials"


class UnverifiedAccount(ServiceError):
    message = "Please verify your email before logging in"

    def __init__(self, user_id: int):
        super().__init__(requiresVerification=True, userId=user_id)


class InvalidToken(ServiceError):
    message = "Invalid token"


class InvalidOrExpiredToken(ServiceError):
    message = "Invalid or expired token"


class AlreadyVerified(ServiceError):
    message = "Email is already verified"


class Unauthenticated(ServiceError):
    status_code = 401
    message = "Token is not valid"


class Forbidden(ServiceError):
    status_code = 403
    message = "Forbidden"


class NotFound(ServiceError):
    status_code = 404
    message = "Not found"


class ServerError(ServiceError):
    status_code = 500
    message = "Server error"
