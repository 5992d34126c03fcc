"""Password hashing and verification using bcrypt."""

from functools import lru_cache

import bcrypt

from tenantgate.config.settings import get_settings

# bcrypt only considers the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


def hash_password(password: str, rounds: int | None = None) -> str:
    """Hash a password using bcrypt.

    Args:
        password: Plain text password to hash
        rounds: bcrypt cost factor (default: settings.bcrypt_rounds)

    Returns:
        Hashed password string
    """
    if rounds is None:
        rounds = get_settings().bcrypt_rounds
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8")[:BCRYPT_MAX_BYTES], salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Verify a password against its hash.

    Returns False for a missing or malformed hash instead of raising.
    """
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES],
            hashed_password.encode("utf-8"),
        )
    except (ValueError, TypeError):
        return False


@lru_cache(maxsize=4)
def _dummy_hash(rounds: int) -> str:
    return hash_password("tenantgate-dummy-password", rounds=rounds)


def burn_verification(plain_password: str, rounds: int | None = None) -> None:
    """Spend the same time as a real verification against a throwaway hash.

    Used when no account matches so that response timing does not reveal
    which emails are registered.
    """
    if rounds is None:
        rounds = get_settings().bcrypt_rounds
    verify_password(plain_password, _dummy_hash(rounds))
