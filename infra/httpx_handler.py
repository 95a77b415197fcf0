from typing import Type

import httpx

from infra.exceptions import (
    AuthorizationError,
    ServiceUnavailableError,
    ValidationError,
    FatalValidationError,
    InfraConnectionError,
)


def map_httpx_error_to_exception(exc: httpx.HTTPError, context: str) -> Exception:
    """Translate a transport-level httpx error into the infra taxonomy."""
    match exc:
        case httpx.ConnectError():
            return InfraConnectionError(f"{context}: connection failed")
        case httpx.TimeoutException():
            return InfraConnectionError(f"{context}: timeout")
        case httpx.RemoteProtocolError():
            return InfraConnectionError(f"{context}: protocol error")
        case httpx.LocalProtocolError():
            return FatalValidationError(f"{context}: protocol error")
        case httpx.NetworkError():
            return InfraConnectionError(f"{context}: network error")
        case httpx.HTTPStatusError():
            exc_type = map_httpx_status_to_exception(exc.response.status_code)
            return exc_type(f"{context}: status {exc.response.status_code}")
        case _:
            return FatalValidationError(f"{context}: {exc}")


def map_httpx_status_to_exception(status: int) -> Type[Exception]:
    """Map a non-success HTTP status code to an exception type."""
    match status:
        case 401 | 403:
            return AuthorizationError
        case 400:
            return ValidationError
        case 429:
            return ServiceUnavailableError
        case 500 | 502 | 503 | 504:
            return ServiceUnavailableError
        case _:
            return FatalValidationError


def raise_for_status(response: httpx.Response, context: str, expected: int = 200) -> None:
    if response.status_code == expected:
        return
    exc_type = map_httpx_status_to_exception(response.status_code)
    raise exc_type(f"{context}: status {response.status_code} != {expected}")
