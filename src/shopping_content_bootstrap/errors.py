"""Error taxonomy for the bootstrap and the remote calls it drives."""

from __future__ import annotations

import enum
from typing import Optional

from google.api_core import exceptions as api_exceptions


class BootstrapError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(BootstrapError):
    """The configuration file is missing, unreadable or malformed."""


class CredentialError(BootstrapError):
    """No credential source yielded a usable identity."""


class TokenRequestError(CredentialError):
    """The OAuth token endpoint rejected an exchange or refresh."""


class EndpointError(BootstrapError):
    """The endpoint override is not an absolute URL."""


class ClassificationError(BootstrapError):
    """The account type could not be determined."""


class NoAccessError(ClassificationError):
    def __init__(self, merchant_id: int) -> None:
        super().__init__(f"Authenticated user cannot access account ID {merchant_id}")
        self.merchant_id = merchant_id


class PreconditionError(BootstrapError):
    """An operation was invoked against the wrong account mode."""

    def __init__(self, message: str, *, multi_client_required: bool) -> None:
        super().__init__(message)
        self.multi_client_required = multi_client_required


class ApiErrorKind(enum.Enum):
    NOT_CONFIGURED = "not-configured"
    TRANSIENT = "transient"
    PERMISSION_DENIED = "permission-denied"
    NOT_FOUND = "not-found"
    INVALID = "invalid"
    OTHER = "other"


class RemoteApiError(BootstrapError):
    """A failed call against the Content API, tagged with its kind."""

    def __init__(
        self,
        kind: ApiErrorKind,
        message: str,
        *,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code

    @property
    def transient(self) -> bool:
        return self.kind is ApiErrorKind.TRANSIENT

    def __repr__(self) -> str:
        return f"RemoteApiError({self.kind.value}, {self.status_code}, {str(self)!r})"


class RetryExhaustedError(BootstrapError):
    def __init__(self, attempts: int, last_error: RemoteApiError) -> None:
        super().__init__(f"Gave up after {attempts} attempt(s); last error: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


_TRANSIENT = (
    api_exceptions.TooManyRequests,
    api_exceptions.InternalServerError,
    api_exceptions.BadGateway,
    api_exceptions.ServiceUnavailable,
    api_exceptions.GatewayTimeout,
)
_PERMISSION_DENIED = (api_exceptions.Unauthorized, api_exceptions.Forbidden)
_INVALID = (
    api_exceptions.BadRequest,
    api_exceptions.Conflict,
    api_exceptions.PreconditionFailed,
)


def classify_api_error(exc: api_exceptions.GoogleAPICallError) -> RemoteApiError:
    """Translate a google-api-core exception into a tagged RemoteApiError."""

    if isinstance(exc, _TRANSIENT):
        kind = ApiErrorKind.TRANSIENT
    elif isinstance(exc, _PERMISSION_DENIED):
        kind = ApiErrorKind.PERMISSION_DENIED
    elif isinstance(exc, api_exceptions.NotFound):
        kind = ApiErrorKind.NOT_FOUND
    elif isinstance(exc, _INVALID):
        kind = ApiErrorKind.INVALID
    else:
        kind = ApiErrorKind.OTHER
    error = RemoteApiError(kind, exc.message or str(exc), status_code=exc.code)
    error.__cause__ = exc
    return error
