"""OS keychain storage for deployment secrets.

The Plaid keys, the identity-provider verification key and the Redis URL
can live in the OS keychain (via ``keyring``) instead of ``.env``.
``config.KeychainSettingsSource`` reads them through :func:`get_credential`.
``keyring`` is imported lazily; without it every lookup simply misses.
"""

import logging

logger = logging.getLogger(__name__)

SERVICE_NAME = "finboard"

CREDENTIAL_KEYS: frozenset[str] = frozenset(
    {
        "PLAID_CLIENT_ID",
        "PLAID_SECRET",
        "AUTH_JWT_KEY",
        "REDIS_URL",
    }
)


def _keyring():
    try:
        import keyring
    except ImportError:
        return None
    return keyring


def _check_key(key: str, action: str) -> bool:
    if key in CREDENTIAL_KEYS:
        return True
    logger.warning("Refusing to %s %s: not a managed credential", action, key)
    return False


def get_credential(key: str) -> str | None:
    """Return the stored value for ``key``, or ``None`` if unavailable."""
    backend = _keyring()
    if backend is None:
        return None
    try:
        return backend.get_password(SERVICE_NAME, key)
    except Exception:
        logger.debug("keyring lookup failed for %s", key, exc_info=True)
        return None


def set_credential(key: str, value: str) -> bool:
    """Store a credential. Only keys in :data:`CREDENTIAL_KEYS` are accepted.

    Returns:
        ``True`` if stored, ``False`` otherwise.
    """
    if not _check_key(key, "store"):
        return False
    if not value or not value.strip():
        logger.warning("Refusing to store an empty value for %s", key)
        return False

    backend = _keyring()
    if backend is None:
        logger.warning("keyring is not installed, cannot store %s", key)
        return False
    try:
        backend.set_password(SERVICE_NAME, key, value)
    except Exception:
        logger.warning("Failed to store %s in keychain", key, exc_info=True)
        return False
    logger.info("Stored %s in keychain", key)
    return True


def delete_credential(key: str) -> bool:
    """Remove a credential. Returns ``True`` if something was deleted."""
    if not _check_key(key, "delete"):
        return False

    backend = _keyring()
    if backend is None:
        return False
    try:
        backend.delete_password(SERVICE_NAME, key)
    except Exception:
        logger.debug("Failed to delete %s from keychain", key, exc_info=True)
        return False
    logger.info("Deleted %s from keychain", key)
    return True


def list_credentials() -> dict[str, str]:
    """Return every managed credential currently in the keychain."""
    stored = {key: get_credential(key) for key in sorted(CREDENTIAL_KEYS)}
    return {key: value for key, value in stored.items() if value is not None}
