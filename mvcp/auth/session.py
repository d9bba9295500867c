"""
Session Tokens and Password Hashing

Signed session tokens for bearer/cookie auth and salted password hashes
for pastor accounts.
"""

import base64
import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..config import get_session_secret

logger = logging.getLogger(__name__)

_PBKDF2_ITERATIONS = 200_000


def hash_password(password: str, salt: Optional[str] = None) -> str:
    """Return ``salt$hexdigest`` for a password."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode(),
        salt.encode(),
        _PBKDF2_ITERATIONS,
    ).hex()
    return f"{salt}${digest}"


def verify_password(password: str, stored_hash: Optional[str]) -> bool:
    """Constant-time comparison of a password against a stored hash."""
    if not stored_hash or "$" not in stored_hash:
        return False
    salt, _ = stored_hash.split("$", 1)
    return hmac.compare_digest(hash_password(password, salt), stored_hash)


def create_session_token(user_id: str, email: str, expires_in_hours: int = 24) -> str:
    """
    Create a signed session token.

    Uses HMAC-SHA256 with a secret key from environment.

    Args:
        user_id: User ID to encode
        email: User email to encode
        expires_in_hours: Token validity period

    Returns:
        Base64-encoded signed token
    """
    secret = get_session_secret()
    now = datetime.now(timezone.utc)
    expires = now + timedelta(hours=expires_in_hours)

    payload = f"{user_id}:{email}:{int(now.timestamp())}:{int(expires.timestamp())}"

    signature = hmac.new(
        secret.encode(),
        payload.encode(),
        hashlib.sha256
    ).hexdigest()

    token = f"{payload}:{signature}"
    return base64.urlsafe_b64encode(token.encode()).decode()


def verify_session_token(token: str) -> Optional[dict]:
    """
    Verify a session token created by create_session_token.

    Args:
        token: Base64-encoded session token

    Returns:
        Decoded claims if valid and not expired, None otherwise.
    """
    secret = get_session_secret()

    try:
        decoded = base64.urlsafe_b64decode(token.encode()).decode()
    except (ValueError, UnicodeDecodeError) as e:
        logger.warning(f"Session token decoding failed: {e}")
        return None

    parts = decoded.split(":")
    if len(parts) != 5:
        return None

    user_id, email, issued_at, expires_at, signature = parts

    payload = f"{user_id}:{email}:{issued_at}:{expires_at}"
    expected_signature = hmac.new(
        secret.encode(),
        payload.encode(),
        hashlib.sha256
    ).hexdigest()

    if not hmac.compare_digest(signature, expected_signature):
        logger.warning("Session token signature mismatch")
        return None

    try:
        issued, expires = int(issued_at), int(expires_at)
    except ValueError:
        return None

    if datetime.now(timezone.utc).timestamp() > expires:
        logger.debug("Session token expired")
        return None

    return {
        "user_id": user_id,
        "email": email,
        "iat": issued,
        "exp": expires,
    }
