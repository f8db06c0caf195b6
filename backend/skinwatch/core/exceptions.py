"""Error taxonomy shared by services and HTTP routes.

Every error carries a short user-facing message and the HTTP status the
API layer answers with.
"""
from datetime import datetime


class SkinWatchError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(SkinWatchError):
    """Input the user can fix: bad alert text, unknown currency or category."""

    status_code = 422


class AlertLimitError(ValidationError):
    status_code = 409

    def __init__(self, current: int, limit: int):
        self.current = current
        self.limit = limit
        super().__init__(
            f"Alert limit reached! You have {current}/{limit} alerts. "
            "Upgrade to premium for more alerts."
        )


class NotFoundError(SkinWatchError):
    status_code = 404


class RateLimitError(SkinWatchError):
    status_code = 429

    def __init__(self, remaining: int, reset_time: datetime | None):
        self.remaining = remaining
        self.reset_time = reset_time
        super().__init__(
            "Rate limit exceeded! Please wait before checking another price."
        )


class UpstreamError(SkinWatchError):
    """The market quote source failed or timed out."""

    status_code = 502


class PersistenceError(SkinWatchError):
    status_code = 500


class ConfigurationError(SkinWatchError):
    status_code = 500
