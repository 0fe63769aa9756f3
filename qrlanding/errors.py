"""Exceptions raised by the QR landing service."""

from typing import Any


class QRLandingError(Exception):
    """Base class for all service errors."""

    pass


class ValidationError(QRLandingError):
    """Input falls outside hard bounds and is rejected."""

    pass


class RiskWarning(QRLandingError):
    """A visual configuration was scored as too risky to accept."""

    def __init__(self, message: str, assessment: Any) -> None:
        super().__init__(message)
        self.assessment = assessment


class NotFoundError(QRLandingError):
    """Unknown short code, domain or QR code."""

    pass


class ConflictError(QRLandingError):
    """Hostname or short code already taken."""

    pass


class AuthenticationError(QRLandingError):
    """Missing or invalid credentials."""

    pass


class AuthorizationError(QRLandingError):
    """Actor does not own the resource."""

    pass


class ShortCodeRetryExhausted(QRLandingError):
    """No unused short code was found within the attempt budget."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"No unique short code found after {attempts} attempts")
        self.attempts = attempts


class StorageError(QRLandingError):
    """Exception raised for object storage API errors."""

    pass
