"""
Per-store PII encryption.

Each store gets its own AES-256-GCM key, derived with scrypt from
"<app secret>:<store id>" and an application-wide salt. Values are stored
as ``ivHex:authTagHex:cipherHex``.

Only the fields in PII_FIELDS are ever touched; everything else stays
plaintext so it can be filtered and indexed.
"""
from __future__ import annotations

import os
import re
from functools import lru_cache
from typing import Any, Iterable, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

PII_FIELDS = ("phone", "email", "first_name", "last_name", "firstName", "lastName", "name")

IV_LENGTH = 16
AUTH_TAG_LENGTH = 16
KEY_LENGTH = 32

DEV_FALLBACK_SECRET = "fallback-dev-secret"
DEV_FALLBACK_SALT = "fallback-dev-salt"

_ENCRYPTED_SHAPE = re.compile(r"[0-9a-fA-F]+:[0-9a-fA-F]+:[0-9a-fA-F]+")


class CipherConfigError(RuntimeError):
    pass


def looks_encrypted(value: str) -> bool:
    return bool(_ENCRYPTED_SHAPE.fullmatch(value))


class PiiCipher:
    def __init__(
        self,
        secret: Optional[str],
        salt: Optional[str],
        *,
        n: int = 16384,
        r: int = 8,
        p: int = 1,
        key_cache_size: int = 256,
    ):
        self._secret = secret
        self._salt = salt.encode("utf-8") if salt else None
        self._n = n
        self._r = r
        self._p = p
        # KDF is the dominant cost; keep derived keys per store
        self._key_for = lru_cache(maxsize=key_cache_size)(self._derive_key)

    @classmethod
    def from_settings(cls) -> "PiiCipher":
        secret = settings.SHOPIFY_API_SECRET or None
        salt = settings.ENCRYPTION_SALT or None

        if not settings.is_production:
            if not secret:
                logger.warning("[crypto] SHOPIFY_API_SECRET not set, using development fallback secret")
                secret = DEV_FALLBACK_SECRET
            if not salt:
                logger.warning("[crypto] ENCRYPTION_SALT not set, using development fallback salt")
                salt = DEV_FALLBACK_SALT
        elif not secret or not salt:
            # Production without key material: every encrypt/decrypt fails closed
            logger.error("[crypto] SHOPIFY_API_SECRET / ENCRYPTION_SALT missing in production, PII fields will not be stored")

        return cls(
            secret,
            salt,
            n=settings.SCRYPT_N,
            r=settings.SCRYPT_R,
            p=settings.SCRYPT_P,
            key_cache_size=settings.PII_KEY_CACHE_SIZE,
        )

    def _derive_key(self, store_id: str) -> bytes:
        if not self._secret or not self._salt:
            raise CipherConfigError("PII cipher has no key material")
        kdf = Scrypt(salt=self._salt, length=KEY_LENGTH, n=self._n, r=self._r, p=self._p)
        return kdf.derive(f"{self._secret}:{store_id}".encode("utf-8"))

    def encrypt(self, plaintext: Optional[str], store_id: Any) -> Optional[str]:
        """
        Encrypt one value for a store. None / "" pass through unchanged.
        Any failure returns None: losing the value beats storing it in clear.
        """
        if plaintext is None or plaintext == "":
            return plaintext

        if not store_id:
            logger.warning("[crypto] Cannot encrypt without store id, dropping value")
            return None

        try:
            key = self._key_for(str(store_id))
            iv = os.urandom(IV_LENGTH)
            sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
        except Exception:
            logger.exception("[crypto] Encryption failed")
            return None

        ciphertext, auth_tag = sealed[:-AUTH_TAG_LENGTH], sealed[-AUTH_TAG_LENGTH:]
        return f"{iv.hex()}:{auth_tag.hex()}:{ciphertext.hex()}"

    def decrypt(self, ciphertext: Optional[str], store_id: Any) -> Optional[str]:
        """
        Decrypt one value for a store.
        Strings not shaped like iv:tag:data are legacy plaintext and returned as-is.
        Wrong store, tampering or corruption return None.
        """
        if ciphertext is None or ciphertext == "":
            return ciphertext

        if not looks_encrypted(ciphertext):
            return ciphertext

        if not store_id:
            logger.warning("[crypto] Cannot decrypt without store id")
            return None

        iv_hex, tag_hex, data_hex = ciphertext.split(":")
        try:
            iv = bytes.fromhex(iv_hex)
            auth_tag = bytes.fromhex(tag_hex)
            data = bytes.fromhex(data_hex)
            key = self._key_for(str(store_id))
            plaintext = AESGCM(key).decrypt(iv, data + auth_tag, None)
            return plaintext.decode("utf-8")
        except InvalidTag:
            logger.error("[crypto] Decryption failed (store id mismatch or corrupted data)")
            return None
        except Exception:
            logger.exception("[crypto] Decryption failed")
            return None

    def encrypt_fields(
        self,
        data: dict[str, Any],
        store_id: Any,
        fields: Iterable[str] = PII_FIELDS,
    ) -> dict[str, Any]:
        # Tenant-less records have no key to encrypt under
        if not store_id:
            return dict(data)

        result = dict(data)
        for name in fields:
            value = result.get(name)
            if value and isinstance(value, str):
                result[name] = self.encrypt(value, store_id)
        return result

    def decrypt_fields(
        self,
        data: dict[str, Any],
        store_id: Any,
        fields: Iterable[str] = PII_FIELDS,
    ) -> dict[str, Any]:
        if not store_id:
            return dict(data)

        result = dict(data)
        for name in fields:
            value = result.get(name)
            if value and isinstance(value, str):
                result[name] = self.decrypt(value, store_id)
        return result
