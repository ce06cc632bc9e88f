"""Helpers for locating, loading and writing the merchant configuration.

The configuration lives in ``<config_path>/content/merchant-info.json``. The
whole JSON document is kept on the loaded object so that writing it back never
drops fields this package does not know about.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from .errors import ConfigError

CONFIG_FILE_NAME = "merchant-info.json"
SAMPLES_DIR_NAME = "shopping-samples"
API_DIR_NAME = "content"
ENDPOINT_ENV_VAR = "GOOGLE_SHOPPING_SAMPLES_ENDPOINT"

PathLike = Union[str, os.PathLike]


@dataclass
class MerchantInfo:
    path: Path
    data: Dict[str, Any]

    @property
    def merchant_id(self) -> int:
        return self.data["merchantId"]

    @property
    def application_name(self) -> str:
        return self.data["applicationName"]

    @property
    def website_url(self) -> Optional[str]:
        return self.data.get("websiteUrl")

    @property
    def token(self) -> Optional[Dict[str, Any]]:
        return self.data.get("token")

    @token.setter
    def token(self, value: Optional[Dict[str, Any]]) -> None:
        self.data["token"] = value


def _process_fallback() -> Dict[str, str]:
    # expanduser consults the password database (POSIX) or USERPROFILE (Windows)
    home = os.path.expanduser("~")
    if home == "~":
        return {}
    return {"HOME": home}


def get_home(
    environ: Optional[Mapping[str, str]] = None,
    fallback: Optional[Mapping[str, str]] = None,
) -> str:
    """Return the user's home directory with trailing separators removed."""

    environ = os.environ if environ is None else environ
    fallback = _process_fallback() if fallback is None else fallback

    home = None
    if environ.get("HOME"):
        home = environ["HOME"]
    elif fallback.get("HOME"):
        home = fallback["HOME"]
    elif environ.get("HOMEDRIVE") and environ.get("HOMEPATH"):
        home = environ["HOMEDRIVE"] + environ["HOMEPATH"]
    elif fallback.get("HOMEDRIVE") and fallback.get("HOMEPATH"):
        home = fallback["HOMEDRIVE"] + fallback["HOMEPATH"]

    if home is None:
        raise ConfigError("Could not locate home directory.")
    return home.rstrip("\\/")


def resolve_config_dir(
    config_path: Optional[PathLike] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> Path:
    """Return the directory holding merchant-info.json and credential files."""

    if config_path is None:
        config_path = Path(get_home(environ)) / SAMPLES_DIR_NAME
    return Path(config_path) / API_DIR_NAME


def load_config(config_dir: PathLike) -> MerchantInfo:
    config_file = Path(config_dir) / CONFIG_FILE_NAME
    template_hint = "You can use the merchant-info.json file in the samples root as a template."

    try:
        raw = config_file.read_text()
    except OSError as exc:
        raise ConfigError(
            f"Could not find or read the config file at {config_file}. {template_hint}"
        ) from exc

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(
            f"The config file at {config_file} is not valid JSON format. {template_hint}"
        ) from exc

    if not isinstance(data, dict):
        raise ConfigError(f"The config file at {config_file} must contain a JSON object.")

    merchant_id = data.get("merchantId")
    if isinstance(merchant_id, bool) or not isinstance(merchant_id, int):
        raise ConfigError(f"The config file at {config_file} needs an integer merchantId.")
    if not isinstance(data.get("applicationName"), str):
        raise ConfigError(f"The config file at {config_file} needs an applicationName.")

    return MerchantInfo(path=config_file, data=data)


def write_config(info: MerchantInfo) -> None:
    """Rewrite the whole configuration document at its original path."""

    info.path.write_text(json.dumps(info.data, indent=2))
