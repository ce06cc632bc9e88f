"""Thin Content API for Shopping client over an authorized requests session.

Each resource keeps its own root URL and service path so that a service can be
pointed at a non-standard or sandbox endpoint after construction. Endpoint
changes go through ``set_root_url`` / ``set_base_path``; nothing else touches
the resources' addressing.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, Tuple

import requests
from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions

from .errors import ApiErrorKind, RemoteApiError, classify_api_error

CONTENT_SCOPE = "https://www.googleapis.com/auth/content"
DEFAULT_ROOT_URL = "https://shoppingcontent.googleapis.com/"
DEFAULT_SERVICE_PATH = "content/v2/"
DEFAULT_TIMEOUT = 60


class EndpointConfigurable(Protocol):
    def set_root_url(self, root_url: str) -> None:
        ...

    def set_base_path(self, base_path: str) -> None:
        ...


class Resource:
    def __init__(self, session: requests.Session, root_url: str, service_path: str) -> None:
        self._session = session
        self.root_url = root_url
        self.service_path = service_path

    def set_root_url(self, root_url: str) -> None:
        self.root_url = root_url

    def set_base_path(self, base_path: str) -> None:
        self.service_path = base_path

    @property
    def base_url(self) -> str:
        return f"{self.root_url}{self.service_path}"

    def _call(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self._session.request(
                method, url, params=params, json=body, timeout=DEFAULT_TIMEOUT
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise RemoteApiError(ApiErrorKind.TRANSIENT, f"{method} {url}: {exc}") from exc
        except auth_exceptions.RefreshError as exc:
            raise RemoteApiError(
                ApiErrorKind.NOT_CONFIGURED, f"Credentials could not be refreshed: {exc}"
            ) from exc

        if response.status_code >= 400:
            raise classify_api_error(api_exceptions.from_http_response(response))
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteApiError(
                ApiErrorKind.OTHER,
                f"{method} {url}: response body is not JSON",
                status_code=response.status_code,
            ) from exc


class AccountsResource(Resource):
    def authinfo(self) -> Dict[str, Any]:
        return self._call("GET", "accounts/authinfo")

    def get(self, merchant_id: int, account_id: int) -> Dict[str, Any]:
        return self._call("GET", f"{merchant_id}/accounts/{account_id}")

    def list(
        self,
        merchant_id: int,
        *,
        max_results: Optional[int] = None,
        page_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = {"maxResults": max_results, "pageToken": page_token}
        return self._call(
            "GET",
            f"{merchant_id}/accounts",
            params={key: value for key, value in params.items() if value is not None},
        )


class ProductsResource(Resource):
    def get(self, merchant_id: int, product_id: str) -> Dict[str, Any]:
        return self._call("GET", f"{merchant_id}/products/{product_id}")

    def list(self, merchant_id: int, *, page_token: Optional[str] = None) -> Dict[str, Any]:
        params = {"pageToken": page_token} if page_token else None
        return self._call("GET", f"{merchant_id}/products", params=params)


class OrdersResource(Resource):
    def get(self, merchant_id: int, order_id: str) -> Dict[str, Any]:
        return self._call("GET", f"{merchant_id}/orders/{order_id}")

    def list(self, merchant_id: int, **filters: Any) -> Dict[str, Any]:
        return self._call("GET", f"{merchant_id}/orders", params=filters or None)

    def createtestorder(self, merchant_id: int, body: Dict[str, Any]) -> Dict[str, Any]:
        """Only meaningful against the sandbox endpoint."""

        return self._call("POST", f"{merchant_id}/testorders", body=body)


class ContentService:
    """Groups the Content API resources that share one authorized session."""

    def __init__(
        self,
        session: requests.Session,
        *,
        root_url: str = DEFAULT_ROOT_URL,
        service_path: str = DEFAULT_SERVICE_PATH,
    ) -> None:
        self.session = session
        self.accounts = AccountsResource(session, root_url, service_path)
        self.products = ProductsResource(session, root_url, service_path)
        self.orders = OrdersResource(session, root_url, service_path)

    def resources(self) -> Tuple[Resource, ...]:
        return (self.accounts, self.products, self.orders)

    @property
    def root_url(self) -> str:
        return self.accounts.root_url

    @property
    def base_path(self) -> str:
        return self.accounts.service_path

    def set_root_url(self, root_url: str) -> None:
        for resource in self.resources():
            resource.set_root_url(root_url)

    def set_base_path(self, base_path: str) -> None:
        for resource in self.resources():
            resource.set_base_path(base_path)
