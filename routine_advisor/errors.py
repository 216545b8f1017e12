"""Exception types shared by the relay proxy and the catalog client."""

from __future__ import annotations


class RoutineAdvisorError(Exception):
    """Base class for all errors raised by this package."""


class InputError(RoutineAdvisorError):
    """Rejected request: malformed JSON, schema mismatch or unsupported method."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class UpstreamError(RoutineAdvisorError):
    """The language-model API answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"upstream returned {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class ConfigurationError(RoutineAdvisorError):
    """A required endpoint or credential is missing."""


class TransportError(RoutineAdvisorError):
    """Network failure or a response body that could not be decoded."""


class RelayHTTPError(RoutineAdvisorError):
    """The relay proxy answered the client with a non-2xx status."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class PersistenceError(RoutineAdvisorError):
    """The local key-value store could not be read or written."""


class RelayError(RoutineAdvisorError):
    """Unexpected failure while the proxy handled a request."""
