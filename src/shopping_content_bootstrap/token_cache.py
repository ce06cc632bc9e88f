from __future__ import annotations

import logging
from typing import Any, Dict

from .config_loader import MerchantInfo, write_config

logger = logging.getLogger("shopping-bootstrap-token-cache")


class TokenCache:
    """Persists OAuth tokens into the merchant configuration file."""

    def store(self, config: MerchantInfo, token: Dict[str, Any]) -> None:
        config.token = token
        write_config(config)
        logger.info("Token saved to your config file %s", config.path)
