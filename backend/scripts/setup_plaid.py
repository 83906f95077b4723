#!/usr/bin/env python3
"""Check Plaid credentials before running the dashboard against them.

Asks for a client_id, secret and environment, then creates a Link token
through the same ``PlaidClient`` the API uses, so the configured products,
country codes and language are exercised too. On success the values can
be written to the OS keychain.

Usage:
    python scripts/setup_plaid.py
    python scripts/setup_plaid.py --forget
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import settings
from integrations.exceptions import AggregatorError
from integrations.plaid_client import PlaidClient
from services.credential_manager import delete_credential, list_credentials, set_credential

ENVIRONMENT_CHOICES = {"1": "sandbox", "2": "production"}
PLAID_KEYS = ("PLAID_CLIENT_ID", "PLAID_SECRET")


def _offer_keychain_store(credentials: dict[str, str]) -> None:
    """Prompt the user to store credentials in the OS keychain."""
    answer = input("\nSave to the keychain? [Y/n] ").strip().lower()
    if answer not in ("", "y", "yes"):
        print("  Not saved.")
        return
    for key, value in credentials.items():
        status = "saved" if set_credential(key, value) else "FAILED"
        print(f"  {key}: {status}")


def validate_credentials(client_id: str, secret: str, env: str) -> str:
    """Create a Link token with the given credentials.

    Returns:
        The link token Plaid issued.

    Raises:
        AggregatorError: If Plaid rejects the request or cannot be reached.
    """
    client = PlaidClient(client_id=client_id, secret=secret, environment=env)
    link_token = client.create_link_token("setup-check")
    if not link_token:
        raise AggregatorError("Plaid returned an empty link token")
    return link_token


def _prompt_environment() -> str:
    print("Environment:")
    for choice, name in ENVIRONMENT_CHOICES.items():
        print(f"  {choice}. {name}")
    choice = input("Choose [1]: ").strip() or "1"
    return ENVIRONMENT_CHOICES.get(choice, "sandbox")


def _forget() -> None:
    for key in PLAID_KEYS:
        status = "removed" if delete_credential(key) else "not stored"
        print(f"  {key}: {status}")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Check Plaid credentials.")
    parser.add_argument(
        "--forget",
        action="store_true",
        help="Remove the Plaid keys from the keychain and exit",
    )
    args = parser.parse_args(argv)

    if args.forget:
        _forget()
        return

    print("Plaid credential check")
    print("-" * 40)
    print(f"Products:  {', '.join(settings.plaid_products)}")
    print(f"Countries: {', '.join(settings.plaid_country_codes)}")
    stored = [key for key in list_credentials() if key in PLAID_KEYS]
    if stored:
        print(f"Already in keychain: {', '.join(stored)} (will be overwritten)")
    print("Keys are under Developers > Keys on https://dashboard.plaid.com/")
    print()

    client_id = input("client_id: ").strip()
    if not client_id:
        print("Error: No client_id provided")
        sys.exit(1)

    secret = input("secret: ").strip()
    if not secret:
        print("Error: No secret provided")
        sys.exit(1)

    env = _prompt_environment()
    print(f"\nRequesting a link token from {env}...")

    try:
        validate_credentials(client_id, secret, env)
    except AggregatorError as e:
        print(f"Error: {e}")
        if e.error_code:
            print(f"Plaid error code: {e.error_code}")
        print("Check the environment and that every listed product and")
        print("country is enabled for this client.")
        sys.exit(1)

    print("\nCredentials accepted. Environment variables:")
    print(f"PLAID_CLIENT_ID={client_id}")
    print(f"PLAID_SECRET={secret}")
    print(f"PLAID_ENVIRONMENT={env}")

    _offer_keychain_store({
        "PLAID_CLIENT_ID": client_id,
        "PLAID_SECRET": secret,
    })


if __name__ == "__main__":
    main()
