from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from .content_service import ContentService
from .errors import ApiErrorKind, NoAccessError, RemoteApiError

logger = logging.getLogger("shopping-bootstrap-account-status")

_NO_ACCESS_KINDS = (ApiErrorKind.PERMISSION_DENIED, ApiErrorKind.NOT_FOUND)


@dataclass(frozen=True)
class AccountStatus:
    merchant_id: int
    is_multi_client: bool


def _as_id(value: Any) -> Optional[int]:
    # int64 fields arrive as JSON strings
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def classify_account(service: ContentService, merchant_id: int) -> bool:
    """Return whether ``merchant_id`` is a multi-client (aggregator) account.

    The authenticated identity's account identifiers are checked first. An
    account missing from that list can only be a sub-account of a listed
    aggregator, which is confirmed by reading it directly.
    """

    logger.info("Retrieving MCA status of configured account.")
    response = service.accounts.authinfo()

    for identifier in response.get("accountIdentifiers", []):
        if _as_id(identifier.get("aggregatorId")) == merchant_id:
            return True
        if _as_id(identifier.get("merchantId")) == merchant_id:
            return False

    try:
        service.accounts.get(merchant_id, merchant_id)
    except RemoteApiError as exc:
        if exc.kind in _NO_ACCESS_KINDS:
            raise NoAccessError(merchant_id) from exc
        raise
    # sub-accounts cannot be aggregators
    return False


def retrieve_account_status(service: ContentService, merchant_id: int) -> AccountStatus:
    return AccountStatus(
        merchant_id=merchant_id,
        is_multi_client=classify_account(service, merchant_id),
    )
