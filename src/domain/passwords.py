"""
Password and OTP hashing with bcrypt.

bcrypt's comparison is constant-time and its cost dominates response
time, so login runs a comparison even when the account does not exist.
"""

import bcrypt

DEFAULT_COST = 10

# Hash of a throwaway secret, compared against when no account matches.
_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10)).decode()


def hash_secret(secret: str, rounds: int = DEFAULT_COST) -> str:
    """Hash a password or OTP with bcrypt at the given cost factor."""
    return bcrypt.hashpw(secret.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def verify_secret(secret: str, hashed: str | None) -> bool:
    """
    Check a secret against a bcrypt hash.

    A missing hash (account provisioned without credentials) still runs
    a comparison against the dummy hash and then fails.
    """
    if hashed is None:
        burn_comparison(secret)
        return False
    try:
        return bcrypt.checkpw(secret.encode(), hashed.encode())
    except ValueError:
        # Malformed stored hash
        return False


def burn_comparison(secret: str) -> None:
    """Spend one bcrypt comparison for paths with no stored hash."""
    bcrypt.checkpw(secret.encode(), _DUMMY_BCRYPT_HASH.encode())
