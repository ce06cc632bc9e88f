"""Content API for Shopping client bootstrap and resilient call helpers."""

from .account_status import AccountStatus, classify_account
from .bootstrap import Bootstrapper, BootstrapState, bootstrap
from .content_service import ContentService
from .credentials import CredentialResolver, CredentialSource
from .endpoints import EndpointRewriter, EndpointSpec, sandbox_base_path
from .errors import (
    ApiErrorKind,
    BootstrapError,
    ClassificationError,
    ConfigError,
    CredentialError,
    EndpointError,
    NoAccessError,
    PreconditionError,
    RemoteApiError,
    RetryExhaustedError,
)
from .retry import RetryExecutor, RetryPolicy
from .token_cache import TokenCache

__all__ = [
    "AccountStatus",
    "classify_account",
    "Bootstrapper",
    "BootstrapState",
    "bootstrap",
    "ContentService",
    "CredentialResolver",
    "CredentialSource",
    "EndpointRewriter",
    "EndpointSpec",
    "sandbox_base_path",
    "ApiErrorKind",
    "BootstrapError",
    "ClassificationError",
    "ConfigError",
    "CredentialError",
    "EndpointError",
    "NoAccessError",
    "PreconditionError",
    "RemoteApiError",
    "RetryExhaustedError",
    "RetryExecutor",
    "RetryPolicy",
    "TokenCache",
]
