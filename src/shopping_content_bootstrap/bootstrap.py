"""Startup sequencing: config, credentials, endpoints, account status.

``Bootstrapper.run()`` executes each phase once and in order. Whatever fails
leaves the bootstrapper in ``FAILED`` with the reason recorded; there is no
partial restart.
"""

from __future__ import annotations

import enum
import logging
import os
from pathlib import Path
from typing import Callable, Mapping, Optional, TypeVar

from google.auth.transport.requests import AuthorizedSession

from .account_status import AccountStatus, retrieve_account_status
from .config_loader import (
    ENDPOINT_ENV_VAR,
    MerchantInfo,
    PathLike,
    load_config,
    resolve_config_dir,
)
from .content_service import ContentService
from .credentials import CredentialResolver
from .endpoints import EndpointRewriter, EndpointSpec
from .errors import PreconditionError
from .retry import RetryExecutor, RetryPolicy

logger = logging.getLogger("shopping-bootstrap")

A = TypeVar("A")
R = TypeVar("R")

MCA_MSG = "This operation can only be run on multi-client accounts."
NON_MCA_MSG = "This operation cannot be run on multi-client accounts."


class BootstrapState(enum.Enum):
    UNSTARTED = "unstarted"
    CONFIG_LOADED = "config-loaded"
    CREDENTIALS_RESOLVED = "credentials-resolved"
    ENDPOINTS_BUILT = "endpoints-built"
    CLASSIFIED = "classified"
    READY = "ready"
    FAILED = "failed"


class Bootstrapper:
    def __init__(
        self,
        config_path: Optional[PathLike] = None,
        *,
        environ: Optional[Mapping[str, str]] = None,
        resolver_factory: Callable[[Path], CredentialResolver] = CredentialResolver,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        self._config_path = config_path
        self._environ = os.environ if environ is None else environ
        self._resolver_factory = resolver_factory
        self.retry_executor = RetryExecutor(retry_policy)

        self.state = BootstrapState.UNSTARTED
        self.failure: Optional[Exception] = None
        self.config_dir: Optional[Path] = None
        self.config: Optional[MerchantInfo] = None
        self.session: Optional[AuthorizedSession] = None
        self.service: Optional[ContentService] = None
        self.sandbox_service: Optional[ContentService] = None
        self.endpoint: Optional[EndpointSpec] = None
        self.sandbox_endpoint: Optional[EndpointSpec] = None
        self.account_status: Optional[AccountStatus] = None

    def run(self) -> "Bootstrapper":
        if self.state is not BootstrapState.UNSTARTED:
            raise RuntimeError(f"Bootstrap already ran (state: {self.state.value})")
        try:
            self._load_config()
            self._resolve_credentials()
            self._build_endpoints()
            self._classify()
        except Exception as exc:
            logger.error("Bootstrap failed after %s: %s", self.state.value, exc)
            self.failure = exc
            self.state = BootstrapState.FAILED
            raise
        self.state = BootstrapState.READY
        return self

    def _load_config(self) -> None:
        self.config_dir = resolve_config_dir(self._config_path, environ=self._environ)
        self.config = load_config(self.config_dir)
        self.state = BootstrapState.CONFIG_LOADED

    def _resolve_credentials(self) -> None:
        resolver = self._resolver_factory(self.config_dir)
        self.session = resolver.resolve(self.config)
        self.session.headers["User-Agent"] = self.config.application_name
        self.state = BootstrapState.CREDENTIALS_RESOLVED

    def _build_endpoints(self) -> None:
        rewriter = EndpointRewriter(lambda: ContentService(self.session))
        self.service, self.sandbox_service = rewriter.build(self._environ.get(ENDPOINT_ENV_VAR))
        self.endpoint = rewriter.standard
        self.sandbox_endpoint = rewriter.sandbox
        self.state = BootstrapState.ENDPOINTS_BUILT

    def _classify(self) -> None:
        self.account_status = retrieve_account_status(self.service, self.config.merchant_id)
        self.state = BootstrapState.CLASSIFIED

    def _ready_status(self) -> AccountStatus:
        if self.state is not BootstrapState.READY:
            raise RuntimeError(f"Bootstrap is not ready (state: {self.state.value})")
        return self.account_status

    @property
    def merchant_id(self) -> int:
        return self.config.merchant_id

    @property
    def website_url(self) -> Optional[str]:
        return self.config.website_url

    @property
    def is_multi_client(self) -> bool:
        return self._ready_status().is_multi_client

    def must_be_multi_client(self, msg: str = MCA_MSG) -> None:
        if not self._ready_status().is_multi_client:
            raise PreconditionError(msg, multi_client_required=True)

    def must_not_be_multi_client(self, msg: str = NON_MCA_MSG) -> None:
        if self._ready_status().is_multi_client:
            raise PreconditionError(msg, multi_client_required=False)

    def retry(self, operation: Callable[[A], R], argument: A, max_attempts: Optional[int] = None) -> R:
        return self.retry_executor.execute(operation, argument, max_attempts)


def bootstrap(
    config_path: Optional[PathLike] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    retry_policy: Optional[RetryPolicy] = None,
) -> Bootstrapper:
    return Bootstrapper(config_path, environ=environ, retry_policy=retry_policy).run()
