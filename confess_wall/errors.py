"""Error types surfaced by the submission pipeline."""

from typing import Optional


class ConfessWallError(Exception):
    """Base class for errors that map to a client-visible HTTP response."""

    reason = "InternalError"
    status_code = 500
    default_message = "Internal server error."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class EmptyContent(ConfessWallError):
    reason = "EmptyContent"
    status_code = 400
    default_message = "Message is empty."


class UnsupportedMediaType(ConfessWallError):
    reason = "UnsupportedMediaType"
    status_code = 415
    default_message = "Only image files are allowed."


class PayloadTooLarge(ConfessWallError):
    reason = "PayloadTooLarge"
    status_code = 413
    default_message = "Uploaded file is too large."


class InvalidId(ConfessWallError):
    reason = "InvalidId"
    status_code = 400
    default_message = "Invalid confession id."


class NotFound(ConfessWallError):
    reason = "NotFound"
    status_code = 404
    default_message = "Confession not found."


class Blocked(ConfessWallError):
    """Rate limit exceeded. Carries the abuse record that was audited."""

    reason = "Blocked"
    status_code = 429
    default_message = "Too many requests in a short time. Your request has been logged."

    def __init__(self, record, message: Optional[str] = None):
        self.record = record
        super().__init__(message)


class MissingToken(ConfessWallError):
    reason = "MissingToken"
    status_code = 400
    default_message = "Missing CAPTCHA token."


class ChallengeFailed(ConfessWallError):
    reason = "ChallengeFailed"
    status_code = 403
    default_message = "CAPTCHA verification failed."

    def __init__(self, error_codes: Optional[list[str]] = None, message: Optional[str] = None):
        self.error_codes = list(error_codes or [])
        super().__init__(message)


class VerificationError(ConfessWallError):
    reason = "VerificationError"
    status_code = 500
    default_message = "Server error during CAPTCHA verification."


class StoreFailure(ConfessWallError):
    reason = "StoreFailure"
    status_code = 500
    default_message = "Failed to access confession storage."


class MessageTooLong(ConfessWallError):
    reason = "MessageTooLong"
    status_code = 400
    default_message = "Message is too long."
