import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

MERCHANT_ID = 1234567


def make_response(status_code, payload=None, *, method="GET", url="https://example.test/"):
    """Build a real requests.Response without touching the network."""
    response = requests.Response()
    response.status_code = status_code
    response._content = json.dumps(payload).encode("utf-8") if payload is not None else b""
    response.encoding = "utf-8"
    response.url = url
    response.request = requests.Request(method, url).prepare()
    return response


@pytest.fixture
def merchant_data():
    return {
        "merchantId": MERCHANT_ID,
        "applicationName": "Content API Samples",
        "websiteUrl": "https://shop.example.com",
        "accountSampleUser": "",
    }


@pytest.fixture
def config_root(tmp_path: Path, merchant_data):
    """A shopping-samples directory with content/merchant-info.json in it."""
    content_dir = tmp_path / "content"
    content_dir.mkdir()
    (content_dir / "merchant-info.json").write_text(json.dumps(merchant_data))
    return tmp_path


@pytest.fixture
def config_dir(config_root: Path):
    return config_root / "content"


@pytest.fixture
def fake_session():
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    return session
