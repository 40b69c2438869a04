"""
Random code and token generators — pure, side-effect-free functions.

Both generators draw from the ``secrets`` module.
"""

from __future__ import annotations

import secrets
import string


def generate_otp_code(length: int = 6) -> str:
    """Generate a cryptographically secure numeric OTP.

    Every digit is drawn independently, so leading zeros are possible and
    all ``10 ** length`` codes are equally likely.

    Args:
        length: Number of digits (default 6).

    Returns:
        String of random decimal digits.
    """
    return "".join(secrets.choice(string.digits) for _ in range(length))


def generate_reset_token(num_bytes: int = 32) -> str:
    """Generate an opaque password-reset token.

    Args:
        num_bytes: Number of random bytes (default 32).

    Returns:
        Lowercase hex string, ``2 * num_bytes`` characters long.
    """
    return secrets.token_hex(num_bytes)
