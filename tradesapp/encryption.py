"""
Encryption for secrets stored at rest (Xero client secret and OAuth tokens)
"""

import base64
import hashlib
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy import Text
from sqlalchemy.types import TypeDecorator

from .config import SECRET_KEY, TOKEN_ENCRYPTION_KEY

logger = logging.getLogger(__name__)


def _build_fernet() -> Fernet:
    if TOKEN_ENCRYPTION_KEY:
        return Fernet(TOKEN_ENCRYPTION_KEY.encode())
    # Derive a valid 32-byte urlsafe key from SECRET_KEY
    digest = hashlib.sha256(SECRET_KEY.encode("utf-8")).digest()
    return Fernet(base64.urlsafe_b64encode(digest))


cipher_suite = _build_fernet()


def encrypt_token(token: str) -> str:
    """Encrypt a token for storage"""
    return cipher_suite.encrypt(token.encode()).decode()


def decrypt_token(encrypted_token: str) -> str:
    """Decrypt a stored token"""
    return cipher_suite.decrypt(encrypted_token.encode()).decode()


class EncryptedText(TypeDecorator):
    """Text column that is transparently Fernet-encrypted in the database.

    Values that cannot be decrypted (e.g. after a key rotation) load as None,
    which the Xero integration treats as "not connected".
    """

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Optional[str], dialect) -> Optional[str]:
        if value is None:
            return None
        return encrypt_token(value)

    def process_result_value(self, value: Optional[str], dialect) -> Optional[str]:
        if value is None:
            return None
        try:
            return decrypt_token(value)
        except InvalidToken:
            logger.error("❌ Failed to decrypt stored secret - encryption key may have changed")
            return None
