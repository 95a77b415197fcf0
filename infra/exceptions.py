"""
Error taxonomy shared by the watcher.

Connection-type errors are transient and retried; the RuntimeError family is
definitive and ends whatever operation raised it.
"""


class FatalValidationError(RuntimeError):
    """Invalid input or configuration that no retry can fix."""
    pass


class AuthorizationError(ConnectionError):
    """Syncthing rejected the API key or GUI credentials (401/403)."""
    pass


class ServiceUnavailableError(ConnectionError):
    """Syncthing answered but is not ready yet (5xx, 429)."""
    pass


class ValidationError(RuntimeError):
    """Syncthing rejected the request itself (400)."""
    pass


class InfraConnectionError(ConnectionError):
    """Transport failure: refused connection, timeout, broken protocol."""
    pass


RETRYABLE_ERRORS = (ServiceUnavailableError, InfraConnectionError)
