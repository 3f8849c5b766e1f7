"""
Security utilities: signed OAuth state and masking of secrets in API output
"""

import logging
from typing import Any, Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from .config import SECRET_KEY, XERO_STATE_MAX_AGE

logger = logging.getLogger(__name__)

OAUTH_STATE_SALT = "xero-oauth-state"


def _state_serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(SECRET_KEY, salt=OAUTH_STATE_SALT)


def generate_oauth_state(data: dict[str, Any]) -> str:
    """
    Sign the user-correlation payload carried through the provider redirect.
    The payload is readable but cannot be forged or replayed after max_age.
    """
    return _state_serializer().dumps(data)


def verify_oauth_state(state: str, max_age: int = XERO_STATE_MAX_AGE) -> Optional[dict[str, Any]]:
    """
    Verify and decode a signed OAuth state

    Returns:
        Decoded payload if valid, None if tampered, expired or malformed
    """
    try:
        data = _state_serializer().loads(state, max_age=max_age)
    except SignatureExpired:
        logger.warning("OAuth state expired")
        return None
    except BadSignature:
        logger.warning("Invalid OAuth state signature")
        return None

    if not isinstance(data, dict):
        logger.warning("OAuth state payload is not an object")
        return None
    return data


def mask_sensitive_data(data: Optional[str], visible_chars: int = 4) -> Optional[str]:
    """Mask a secret, keeping only the last few characters visible"""
    if not data:
        return data
    if len(data) <= visible_chars:
        return "*" * len(data)
    return "*" * (len(data) - visible_chars) + data[-visible_chars:]
