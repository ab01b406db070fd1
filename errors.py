"""
Error taxonomy for the Funko Pop API.

Every failure a request can hit is one of the ApiError subclasses below. Route
handlers and pipelines only raise them; the handlers registered in main.py turn
them into the one response envelope:

    {"path": ..., "timestamp": ..., "message": ..., "validationErrors": {...}}
"""

import time
from typing import Dict, Optional


class ApiError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None, validation_errors: Optional[Dict[str, str]] = None):
        self.message = message or self.message
        self.validation_errors = validation_errors or {}
        super().__init__(self.message)


class ValidationFailure(ApiError):
    status_code = 400
    message = "Validation Failure"

    def __init__(self, validation_errors: Dict[str, str]):
        super().__init__(validation_errors=validation_errors)


class Unauthenticated(ApiError):
    status_code = 401
    message = "You are unauthorized to access this route"


class UnknownIdentity(Unauthenticated):
    """A valid token whose user no longer exists."""


class Forbidden(ApiError):
    status_code = 403
    message = "You are forbidden to access this route"


class NotFound(ApiError):
    status_code = 404


class FunkoPopNotFound(NotFound):
    message = "Sorry! Requested Funko Pop not found"


class ReviewNotFound(NotFound):
    message = "Sorry! Requested review not found"


class MalformedIdentifier(NotFound):
    message = "Sorry! You have provided an invalid resource ID"


class RouteNotFound(NotFound):
    message = "Sorry! Route not found"


class InvalidCredentials(ApiError):
    status_code = 400
    message = "Invalid email or password"


class UserAlreadyExists(ApiError):
    status_code = 400
    message = "A user already exists with that email"


class RateLimited(ApiError):
    status_code = 429
    message = "Too many requests, please try again later"


class TokenMintFailure(ApiError):
    status_code = 500
    message = "Error generating JWT"


def now_millis() -> int:
    return int(time.time() * 1000)


def error_envelope(path: str, error: ApiError) -> Dict:
    return {
        "path": path,
        "timestamp": now_millis(),
        "message": error.message,
        "validationErrors": error.validation_errors,
    }
