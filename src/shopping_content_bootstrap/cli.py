from __future__ import annotations

import argparse
import json
import logging
from typing import List, Optional

from .bootstrap import Bootstrapper
from .errors import BootstrapError
from .retry import DEFAULT_MAX_ATTEMPTS, RetryPolicy

logger = logging.getLogger("shopping-bootstrap-cli")


def _attempt_count(value: str) -> int:
    attempts = int(value)
    if attempts < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {attempts}")
    return attempts


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Content API for Shopping client bootstrap (credentials, endpoints, MCA status)",
    )
    parser.add_argument(
        "--config-path",
        default=None,
        help="Directory holding content/merchant-info.json (default: ~/shopping-samples)",
    )
    parser.add_argument(
        "--max-attempts",
        type=_attempt_count,
        default=DEFAULT_MAX_ATTEMPTS,
        help="Attempts for retried API calls",
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("info", help="Show merchant, account mode and endpoints")
    subparsers.add_parser("authinfo", help="List the account identifiers of the authenticated user")

    parser.set_defaults(command="info")
    return parser.parse_args(argv)


def _print_info(bootstrapper: Bootstrapper) -> None:
    mode = "multi-client account" if bootstrapper.is_multi_client else "standalone or sub-account"
    print(f"Merchant ID: {bootstrapper.merchant_id}")
    print(f"Account mode: {mode}")
    print(f"Website: {bootstrapper.website_url or '-'}")
    print(f"Endpoint: {bootstrapper.endpoint.url}")
    print(f"Sandbox endpoint: {bootstrapper.sandbox_endpoint.url}")


def _print_authinfo(bootstrapper: Bootstrapper) -> None:
    response = bootstrapper.retry(lambda accounts: accounts.authinfo(), bootstrapper.service.accounts)
    print(json.dumps(response.get("accountIdentifiers", []), indent=2))


def main(argv: Optional[List[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s %(message)s")
    args = parse_args(argv)

    try:
        bootstrapper = Bootstrapper(
            args.config_path,
            retry_policy=RetryPolicy(max_attempts=args.max_attempts),
        ).run()
        if args.command == "authinfo":
            _print_authinfo(bootstrapper)
            return
        _print_info(bootstrapper)
    except BootstrapError as exc:
        raise SystemExit(str(exc)) from exc


if __name__ == "__main__":
    main()
