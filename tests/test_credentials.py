"""Tests for the credential source chain.

google.auth, the token endpoint and AuthorizedSession are mocked; nothing
leaves the process.
"""

import json
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlsplit

import pytest
import requests
from google.auth import exceptions as auth_exceptions

from shopping_content_bootstrap.config_loader import load_config
from shopping_content_bootstrap.credentials import (
    CredentialResolver,
    CredentialSource,
    OAuthClient,
    OOB_REDIRECT_URI,
    build_auth_url,
)
from shopping_content_bootstrap.errors import CredentialError

MODULE = "shopping_content_bootstrap.credentials"

CLIENT_SECRETS = {
    "installed": {
        "client_id": "client-123.apps.googleusercontent.com",
        "client_secret": "shh",
        "auth_uri": "https://accounts.google.com/o/oauth2/auth",
        "token_uri": "https://oauth2.googleapis.com/token",
    }
}


def _token_response(payload=None, *, fail=False):
    response = MagicMock()
    response.json.return_value = payload or {
        "access_token": "access-new",
        "expires_in": 3599,
        "token_type": "Bearer",
    }
    response.text = "error body"
    if fail:
        response.raise_for_status.side_effect = requests.HTTPError("400 Client Error")
    return response


@pytest.fixture
def no_adc():
    with patch(
        f"{MODULE}.google.auth.default",
        side_effect=auth_exceptions.DefaultCredentialsError("not configured"),
    ) as mock_default:
        yield mock_default


@pytest.fixture
def mock_session_cls():
    with patch(f"{MODULE}.AuthorizedSession") as mock_cls:
        yield mock_cls


def _write_client_secrets(config_dir):
    (config_dir / "client-secrets.json").write_text(json.dumps(CLIENT_SECRETS))


def test_application_default_credentials_win(config_dir, mock_session_cls):
    adc = MagicMock()
    (config_dir / "service-account.json").write_text("{}")
    with patch(f"{MODULE}.google.auth.default", return_value=(adc, "project")) as mock_default:
        resolver = CredentialResolver(config_dir)
        session = resolver.resolve(load_config(config_dir))

    mock_default.assert_called_once_with(scopes=["https://www.googleapis.com/auth/content"])
    mock_session_cls.assert_called_once_with(adc)
    assert session is mock_session_cls.return_value
    assert resolver.source is CredentialSource.APPLICATION_DEFAULT


def test_service_account_used_when_adc_not_configured(config_dir, no_adc, mock_session_cls):
    info = {"type": "service_account", "client_email": "sa@example.iam.gserviceaccount.com"}
    (config_dir / "service-account.json").write_text(json.dumps(info))
    _write_client_secrets(config_dir)

    with patch(
        f"{MODULE}.service_account.Credentials.from_service_account_info"
    ) as mock_loader:
        resolver = CredentialResolver(config_dir)
        resolver.resolve(load_config(config_dir))

    mock_loader.assert_called_once_with(info, scopes=["https://www.googleapis.com/auth/content"])
    mock_session_cls.assert_called_once_with(mock_loader.return_value)
    assert resolver.source is CredentialSource.SERVICE_ACCOUNT


def test_invalid_service_account_file_fails(config_dir, no_adc, mock_session_cls):
    (config_dir / "service-account.json").write_text("not json")
    with pytest.raises(CredentialError, match="service-account.json"):
        CredentialResolver(config_dir).resolve(load_config(config_dir))


def test_oauth_without_cached_token_runs_interactive_flow(config_dir, no_adc, mock_session_cls, capsys):
    _write_client_secrets(config_dir)
    prompt = MagicMock(return_value=" 4/auth-code \n")

    with patch(f"{MODULE}.requests.post", return_value=_token_response(
        {"access_token": "access-1", "refresh_token": "refresh-1", "expires_in": 3599}
    )) as mock_post:
        resolver = CredentialResolver(config_dir, prompt=prompt)
        resolver.resolve(load_config(config_dir))

    assert resolver.source is CredentialSource.OAUTH_CLIENT
    data = mock_post.call_args[1]["data"]
    assert data["grant_type"] == "authorization_code"
    assert data["code"] == "4/auth-code"
    assert data["redirect_uri"] == OOB_REDIRECT_URI
    assert "https://accounts.google.com/o/oauth2/auth?" in capsys.readouterr().out

    saved = json.loads((config_dir / "merchant-info.json").read_text())
    assert saved["token"]["refresh_token"] == "refresh-1"
    assert saved["token"]["access_token"] == "access-1"

    credentials = mock_session_cls.call_args[0][0]
    assert credentials.token == "access-1"
    assert credentials.refresh_token == "refresh-1"


def test_oauth_refreshes_cached_token(config_dir, merchant_data, no_adc, mock_session_cls):
    _write_client_secrets(config_dir)
    merchant_data["token"] = {"access_token": "stale", "refresh_token": "refresh-1"}
    (config_dir / "merchant-info.json").write_text(json.dumps(merchant_data))
    prompt = MagicMock()

    with patch(f"{MODULE}.requests.post", return_value=_token_response()) as mock_post:
        CredentialResolver(config_dir, prompt=prompt).resolve(load_config(config_dir))

    data = mock_post.call_args[1]["data"]
    assert data == {
        "client_id": "client-123.apps.googleusercontent.com",
        "client_secret": "shh",
        "grant_type": "refresh_token",
        "refresh_token": "refresh-1",
    }
    prompt.assert_not_called()
    credentials = mock_session_cls.call_args[0][0]
    assert credentials.token == "access-new"
    assert credentials.refresh_token == "refresh-1"


def test_oauth_refresh_failure_falls_back_to_interactive(config_dir, merchant_data, no_adc, mock_session_cls):
    _write_client_secrets(config_dir)
    merchant_data["token"] = {"refresh_token": "revoked"}
    (config_dir / "merchant-info.json").write_text(json.dumps(merchant_data))

    responses = [
        _token_response(fail=True),
        _token_response({"access_token": "access-2", "refresh_token": "refresh-2"}),
    ]
    with patch(f"{MODULE}.requests.post", side_effect=responses) as mock_post:
        CredentialResolver(config_dir, prompt=lambda _: "code-2").resolve(load_config(config_dir))

    assert [c[1]["data"]["grant_type"] for c in mock_post.call_args_list] == [
        "refresh_token",
        "authorization_code",
    ]
    saved = json.loads((config_dir / "merchant-info.json").read_text())
    assert saved["token"]["refresh_token"] == "refresh-2"
    assert saved["merchantId"] == merchant_data["merchantId"]


def test_no_source_available_names_both_files(config_dir, no_adc, mock_session_cls):
    with pytest.raises(CredentialError) as excinfo:
        CredentialResolver(config_dir).resolve(load_config(config_dir))

    message = str(excinfo.value)
    assert str(config_dir / "service-account.json") in message
    assert str(config_dir / "client-secrets.json") in message
    assert "Application Default" in message
    mock_session_cls.assert_not_called()


def test_build_auth_url_requests_offline_content_scope():
    url = build_auth_url("client-1", OOB_REDIRECT_URI)
    query = parse_qs(urlsplit(url).query)
    assert query["client_id"] == ["client-1"]
    assert query["scope"] == ["https://www.googleapis.com/auth/content"]
    assert query["access_type"] == ["offline"]
    assert query["response_type"] == ["code"]


@pytest.mark.parametrize(
    "refresh_failure",
    [requests.ConnectionError("reset"), requests.Timeout("read timed out")],
)
def test_oauth_refresh_network_error_falls_back_to_interactive(
    config_dir, merchant_data, no_adc, mock_session_cls, refresh_failure
):
    _write_client_secrets(config_dir)
    merchant_data["token"] = {"refresh_token": "refresh-1"}
    (config_dir / "merchant-info.json").write_text(json.dumps(merchant_data))

    responses = [
        refresh_failure,
        _token_response({"access_token": "access-3", "refresh_token": "refresh-3"}),
    ]
    with patch(f"{MODULE}.requests.post", side_effect=responses) as mock_post:
        CredentialResolver(config_dir, prompt=lambda _: "code-3").resolve(load_config(config_dir))

    assert mock_post.call_count == 2
    assert mock_post.call_args[1]["data"]["grant_type"] == "authorization_code"
    saved = json.loads((config_dir / "merchant-info.json").read_text())
    assert saved["token"]["refresh_token"] == "refresh-3"


def test_oauth_refresh_with_non_json_body_falls_back_to_interactive(
    config_dir, merchant_data, no_adc, mock_session_cls
):
    _write_client_secrets(config_dir)
    merchant_data["token"] = {"refresh_token": "refresh-1"}
    (config_dir / "merchant-info.json").write_text(json.dumps(merchant_data))

    garbled = _token_response()
    garbled.json.side_effect = ValueError("Expecting value")
    responses = [garbled, _token_response({"access_token": "access-4", "refresh_token": "refresh-4"})]
    with patch(f"{MODULE}.requests.post", side_effect=responses):
        CredentialResolver(config_dir, prompt=lambda _: "code-4").resolve(load_config(config_dir))

    saved = json.loads((config_dir / "merchant-info.json").read_text())
    assert saved["token"]["access_token"] == "access-4"


def test_interactive_exchange_network_error_is_a_credential_error(config_dir, no_adc, mock_session_cls):
    _write_client_secrets(config_dir)
    with patch(f"{MODULE}.requests.post", side_effect=requests.ConnectionError("reset")):
        with pytest.raises(CredentialError, match="authorization_code"):
            CredentialResolver(config_dir, prompt=lambda _: "code").resolve(load_config(config_dir))


@pytest.mark.parametrize(
    "redirect_uris, expected",
    [
        (["http://localhost", OOB_REDIRECT_URI], OOB_REDIRECT_URI),
        ([OOB_REDIRECT_URI, "http://localhost"], OOB_REDIRECT_URI),
        (["http://localhost:8085"], "http://localhost:8085"),
        (None, OOB_REDIRECT_URI),
    ],
)
def test_oauth_client_prefers_out_of_band_redirect(redirect_uris, expected):
    section = dict(CLIENT_SECRETS["installed"])
    if redirect_uris is not None:
        section["redirect_uris"] = redirect_uris
    assert OAuthClient({"installed": section}).redirect_uri == expected
