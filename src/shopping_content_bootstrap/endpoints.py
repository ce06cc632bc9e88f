"""Standard and sandbox endpoint construction for Content API services."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple
from urllib.parse import urlsplit

from .content_service import ContentService, EndpointConfigurable
from .errors import EndpointError

logger = logging.getLogger("shopping-bootstrap-endpoints")

SANDBOX_VERSION_SEGMENT = "v2"
SANDBOX_REPLACEMENT_SEGMENT = "v2sandbox"


@dataclass(frozen=True)
class EndpointSpec:
    scheme: str
    host: str
    port: Optional[int]
    base_path: str

    @property
    def root_url(self) -> str:
        if self.port is None:
            return f"{self.scheme}://{self.host}/"
        return f"{self.scheme}://{self.host}:{self.port}/"

    @property
    def url(self) -> str:
        return f"{self.root_url}{self.base_path}"

    @classmethod
    def from_url(cls, url: str) -> "EndpointSpec":
        """Parse an absolute override URL; the path becomes the base path."""

        try:
            parts = urlsplit(url)
            port = parts.port
        except ValueError as exc:
            raise EndpointError(f"Expected absolute endpoint URL: {url}") from exc
        if not parts.scheme or not parts.hostname:
            raise EndpointError(f"Expected absolute endpoint URL: {url}")

        path = parts.path.strip("/")
        base_path = f"{path}/" if path else ""
        return cls(scheme=parts.scheme, host=parts.hostname, port=port, base_path=base_path)

    @classmethod
    def from_root(cls, root_url: str, base_path: str) -> "EndpointSpec":
        spec = cls.from_url(root_url)
        return cls(scheme=spec.scheme, host=spec.host, port=spec.port, base_path=base_path)

    def sandbox(self) -> "EndpointSpec":
        return EndpointSpec(
            scheme=self.scheme,
            host=self.host,
            port=self.port,
            base_path=sandbox_base_path(self.base_path),
        )


def sandbox_base_path(base_path: str) -> str:
    """Swap a trailing ``v2`` path segment for ``v2sandbox``.

    Any other base path is returned unchanged, in which case sandbox calls go
    to the standard endpoint.
    """

    segments = base_path.rstrip("/").split("/")
    if segments[-1] != SANDBOX_VERSION_SEGMENT:
        return base_path
    segments[-1] = SANDBOX_REPLACEMENT_SEGMENT
    return "/".join(segments) + "/"


def apply_endpoint(target: EndpointConfigurable, spec: EndpointSpec) -> None:
    target.set_root_url(spec.root_url)
    target.set_base_path(spec.base_path)


class EndpointRewriter:
    """Builds a standard and a sandbox service from one service factory."""

    def __init__(self, service_factory: Callable[[], ContentService]) -> None:
        self._service_factory = service_factory
        self.standard: Optional[EndpointSpec] = None
        self.sandbox: Optional[EndpointSpec] = None

    def build(self, override_url: Optional[str] = None) -> Tuple[ContentService, ContentService]:
        service = self._service_factory()
        if override_url:
            standard = EndpointSpec.from_url(override_url)
            apply_endpoint(service, standard)
            logger.info("Using non-standard API endpoint: %s", standard.url)
        else:
            standard = EndpointSpec.from_root(service.root_url, service.base_path)

        sandbox = standard.sandbox()
        if sandbox == standard:
            logger.warning("Using same endpoint for sandbox methods: %s", standard.url)

        sandbox_service = self._service_factory()
        apply_endpoint(sandbox_service, sandbox)

        self.standard = standard
        self.sandbox = sandbox
        return service, sandbox_service
