"""Credential resolution for the Content API.

Sources are probed in this order, first success wins:

- Google Application Default Credentials
- a service account key in ``service-account.json`` in the config directory
- an OAuth2 client in ``client-secrets.json`` in the config directory, using
  (and refreshing) the token cached in the merchant configuration
"""

from __future__ import annotations

import enum
import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode

import google.auth
import requests
from google.auth import exceptions as auth_exceptions
from google.auth.credentials import Credentials
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import credentials as oauth2_credentials
from google.oauth2 import service_account

from .config_loader import MerchantInfo
from .content_service import CONTENT_SCOPE
from .errors import CredentialError, TokenRequestError
from .token_cache import TokenCache

logger = logging.getLogger("shopping-bootstrap-credentials")

SERVICE_ACCOUNT_FILE_NAME = "service-account.json"
OAUTH_CLIENT_FILE_NAME = "client-secrets.json"

AUTH_URL = "https://accounts.google.com/o/oauth2/auth"
TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
OOB_REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"


class CredentialSource(enum.Enum):
    APPLICATION_DEFAULT = "application-default"
    SERVICE_ACCOUNT = "service-account"
    OAUTH_CLIENT = "oauth-client"


def build_auth_url(client_id: str, redirect_uri: str, *, auth_uri: str = AUTH_URL) -> str:
    query = urlencode(
        {
            "response_type": "code",
            "client_id": client_id,
            "redirect_uri": redirect_uri,
            "scope": CONTENT_SCOPE,
            # offline access so that a refresh token is issued
            "access_type": "offline",
        }
    )
    return f"{auth_uri}?{query}"


def _read_json(path: Path) -> Dict[str, Any]:
    try:
        return json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        raise CredentialError(f"Could not read credentials from {path}: {exc}") from exc


class OAuthClient:
    """Authorization-code exchange and refresh for an installed-app client."""

    def __init__(self, client_config: Dict[str, Any], *, prompt: Callable[[str], str] = input) -> None:
        section = client_config.get("installed") or client_config.get("web") or client_config
        try:
            self.client_id = section["client_id"]
            self.client_secret = section["client_secret"]
        except KeyError as exc:
            raise CredentialError(f"OAuth client configuration is missing {exc}") from exc
        self.auth_uri = section.get("auth_uri", AUTH_URL)
        self.token_uri = section.get("token_uri", TOKEN_ENDPOINT)
        redirect_uris = section.get("redirect_uris") or [OOB_REDIRECT_URI]
        # the code is pasted back on the terminal, so out-of-band wins when listed
        if OOB_REDIRECT_URI in redirect_uris:
            self.redirect_uri = OOB_REDIRECT_URI
        else:
            self.redirect_uri = redirect_uris[0]
        self._prompt = prompt

    def _request_token(self, data: Dict[str, str]) -> Dict[str, Any]:
        grant_type = data["grant_type"]
        try:
            response = requests.post(
                self.token_uri,
                data={"client_id": self.client_id, "client_secret": self.client_secret, **data},
                timeout=30,
            )
        except requests.RequestException as exc:
            logger.error("Token request (%s) could not be sent: %s", grant_type, exc)
            raise TokenRequestError(f"Token request ({grant_type}) failed: {exc}") from exc
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            logger.error("Token request (%s) failed: %s", grant_type, response.text)
            raise TokenRequestError(f"Token request ({grant_type}) failed") from exc
        try:
            return response.json()
        except ValueError as exc:
            raise TokenRequestError(
                f"Token request ({grant_type}) returned a body that is not JSON"
            ) from exc

    def _token_data(self, payload: Dict[str, Any], refresh_token: Optional[str]) -> Dict[str, Any]:
        now = int(time.time())
        token_data: Dict[str, Any] = {
            "access_token": payload.get("access_token"),
            "refresh_token": payload.get("refresh_token") or refresh_token,
            "token_type": payload.get("token_type"),
            "scope": payload.get("scope"),
            "expires_in": payload.get("expires_in"),
            "created": now,
        }
        expires_in = payload.get("expires_in")
        if expires_in:
            token_data["expires_at"] = now + int(expires_in)

        if not token_data.get("access_token"):
            raise TokenRequestError("No access_token returned by the token endpoint")
        return token_data

    def authorize(self) -> Dict[str, Any]:
        """Interactive authorization-code flow on the controlling terminal."""

        url = build_auth_url(self.client_id, self.redirect_uri, auth_uri=self.auth_uri)
        print("Visit the following URL and log in:\n")
        print(f"\t{url}\n")
        auth_code = self._prompt("Then type the resulting code here: ").strip()
        if not auth_code:
            raise TokenRequestError("No authorization code provided; cannot obtain a token.")

        logger.info("Exchanging authorization code for tokens...")
        payload = self._request_token(
            {
                "grant_type": "authorization_code",
                "code": auth_code,
                "redirect_uri": self.redirect_uri,
            }
        )
        return self._token_data(payload, None)

    def refresh(self, refresh_token: str) -> Dict[str, Any]:
        payload = self._request_token(
            {"grant_type": "refresh_token", "refresh_token": refresh_token}
        )
        return self._token_data(payload, refresh_token)

    def credentials(self, token: Dict[str, Any]) -> oauth2_credentials.Credentials:
        return oauth2_credentials.Credentials(
            token=token.get("access_token"),
            refresh_token=token.get("refresh_token"),
            token_uri=self.token_uri,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=[CONTENT_SCOPE],
        )


class CredentialResolver:
    """Produces an authorized session from the first available credential source."""

    def __init__(
        self,
        config_dir: Path,
        *,
        token_cache: Optional[TokenCache] = None,
        prompt: Callable[[str], str] = input,
    ) -> None:
        self.config_dir = Path(config_dir)
        self.service_account_file = self.config_dir / SERVICE_ACCOUNT_FILE_NAME
        self.oauth_client_file = self.config_dir / OAUTH_CLIENT_FILE_NAME
        self._token_cache = token_cache or TokenCache()
        self._prompt = prompt
        self.source: Optional[CredentialSource] = None

    def resolve(self, config: MerchantInfo) -> AuthorizedSession:
        credentials = self._application_default()
        if credentials is not None:
            self.source = CredentialSource.APPLICATION_DEFAULT
        else:
            credentials = self._service_account()
            if credentials is not None:
                self.source = CredentialSource.SERVICE_ACCOUNT
            else:
                credentials = self._oauth_client(config)
                if credentials is not None:
                    self.source = CredentialSource.OAUTH_CLIENT

        if credentials is None:
            raise CredentialError(
                "Could not find or read credentials from either the Google Application "
                f"Default credentials, {self.service_account_file}, or {self.oauth_client_file}."
            )
        return AuthorizedSession(credentials)

    def _application_default(self) -> Optional[Credentials]:
        try:
            credentials, _ = google.auth.default(scopes=[CONTENT_SCOPE])
        except auth_exceptions.DefaultCredentialsError as exc:
            logger.debug("Application Default Credentials not configured: %s", exc)
            return None
        logger.info("Using Google Application Default Credentials.")
        return credentials

    def _service_account(self) -> Optional[Credentials]:
        if not self.service_account_file.exists():
            return None
        logger.info("Loading service account credentials from %s.", self.service_account_file)
        info = _read_json(self.service_account_file)
        try:
            return service_account.Credentials.from_service_account_info(
                info, scopes=[CONTENT_SCOPE]
            )
        except ValueError as exc:
            raise CredentialError(
                f"Invalid service account credentials in {self.service_account_file}: {exc}"
            ) from exc

    def _oauth_client(self, config: MerchantInfo) -> Optional[Credentials]:
        if not self.oauth_client_file.exists():
            return None
        logger.info("Loading OAuth2 credentials from %s.", self.oauth_client_file)
        client = OAuthClient(_read_json(self.oauth_client_file), prompt=self._prompt)

        cached = config.token
        if not cached:
            token = self._fetch_and_cache(client, config)
        else:
            try:
                token = client.refresh(cached["refresh_token"])
            except (KeyError, TokenRequestError) as exc:
                logger.warning("Could not refresh the cached token: %s", exc)
                token = self._fetch_and_cache(client, config)
        return client.credentials(token)

    def _fetch_and_cache(self, client: OAuthClient, config: MerchantInfo) -> Dict[str, Any]:
        logger.warning("Your token was missing or invalid, fetching a new one")
        token = client.authorize()
        self._token_cache.store(config, token)
        return token
