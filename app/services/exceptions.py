"""Error kinds raised by the identity services.

Every error is recoverable by the caller. Routers render them through
``app.utils.response.handle_exception`` using ``status_code`` and ``code``.
"""

from fastapi import status


class AuthError(Exception):
    code = "Error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request could not be completed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Conflict(AuthError):
    code = "Conflict"
    status_code = status.HTTP_409_CONFLICT
    default_message = "An account with this identity already exists"


class Unauthorized(AuthError):
    code = "Unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials"


class NotFound(AuthError):
    code = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Expired(AuthError):
    code = "Expired"
    status_code = status.HTTP_410_GONE
    default_message = "Verification code expired"


class TokenExpired(Expired):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Session expired, please sign in again"


class Exhausted(AuthError):
    code = "Exhausted"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many incorrect attempts, request a new code"


class Mismatch(AuthError):
    code = "Mismatch"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Incorrect verification code"

    def __init__(self, attempts_remaining: int, message: str | None = None):
        self.attempts_remaining = attempts_remaining
        super().__init__(message)


class VoipRejected(AuthError):
    code = "VoipRejected"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "VoIP numbers cannot be used for verification"


class DeliveryFailed(AuthError):
    code = "DeliveryFailed"
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Could not deliver the verification code"


class Invalid(AuthError):
    code = "Invalid"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Malformed request"


class TokenInvalid(Invalid):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid session token"
