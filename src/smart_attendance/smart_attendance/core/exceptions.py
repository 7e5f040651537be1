class DomainError(Exception):
    """Base exception for business rule violations."""

    retryable = True


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class RateLimited(DomainError):
    """Raised when an identifier has too many recent failed logins."""

    retryable = False


class AuthError(DomainError):
    """Raised when login credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when an access policy rejects a row operation."""

    retryable = False


class DeviceUnavailable(DomainError):
    """Raised when geolocation, camera or microphone is denied or missing."""

    def __init__(self, message: str, *, device: str = "device", retryable: bool = True):
        super().__init__(message)
        self.device = device
        self.retryable = retryable


class VerificationMismatch(DomainError):
    """Raised when the spoken transcript does not match the student."""


class PersistenceError(DomainError):
    """Raised when a query or insert against the backing store fails."""
