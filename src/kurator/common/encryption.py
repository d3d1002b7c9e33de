"""Field-level encryption for sensitive personal data.

Two ciphertext formats are understood:

* ``v2:<base64(nonce || ciphertext || tag)>``: AES-256-GCM with a random
  96-bit nonce per value. This is what new values are written as.
* ``<base64(ciphertext)>``: the legacy AES-256-CBC format with PKCS7 padding,
  where the IV is derived once from the secret (``SHA-256(secret + "IV")[:16]``).
  Identical plaintexts produce identical ciphertexts in this format, so it is
  only written when ``encryption_legacy_mode`` is enabled.

Both formats share the key ``SHA-256(secret)``.

Ciphertext only ever travels as :class:`EncryptedString`, which can be minted
by :class:`FieldEncryptor` alone. The :class:`EncryptedText` column type
refuses plain ``str`` so plaintext cannot be persisted into an encrypted
column by accident.
"""

import base64
import binascii
import hashlib
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from sqlalchemy import Text
from sqlalchemy.types import TypeDecorator

from kurator.common.exceptions import KuratorError

_MINT = object()
_V2_PREFIX = "v2:"
_NONCE_SIZE = 12


class EncryptionError(KuratorError):
    """Raised when a stored value cannot be decrypted."""

    def __init__(self, message: str = "Unable to decrypt value"):
        super().__init__(message, code="ENCRYPTION_ERROR")


class EncryptedString:
    """Opaque ciphertext. Construct through FieldEncryptor, never directly."""

    __slots__ = ("_ciphertext",)

    def __init__(self, ciphertext: str, *, _token: object = None):
        if _token is not _MINT:
            raise TypeError("EncryptedString can only be created by FieldEncryptor")
        self._ciphertext = ciphertext

    @property
    def ciphertext(self) -> str:
        return self._ciphertext

    @property
    def is_legacy(self) -> bool:
        return bool(self._ciphertext) and not self._ciphertext.startswith(_V2_PREFIX)

    def __bool__(self) -> bool:
        return bool(self._ciphertext)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, EncryptedString):
            return self._ciphertext == other._ciphertext
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._ciphertext)

    def __repr__(self) -> str:
        return f"EncryptedString(<{len(self._ciphertext)} chars>)"


def _mint(ciphertext: str) -> EncryptedString:
    return EncryptedString(ciphertext, _token=_MINT)


class EncryptedText(TypeDecorator):
    """Text column that only accepts EncryptedString values."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, EncryptedString):
            raise TypeError(
                f"Encrypted column requires EncryptedString, got {type(value).__name__}"
            )
        return value.ciphertext

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return _mint(value)


class FieldEncryptor:
    """Symmetric encrypt/decrypt of field values with a configured secret."""

    def __init__(self, secret: str, legacy_mode: bool = False):
        if not secret:
            raise ValueError("Encryption secret is not configured")
        self._key = hashlib.sha256(secret.encode("utf-8")).digest()
        self._legacy_iv = hashlib.sha256((secret + "IV").encode("utf-8")).digest()[:16]
        self._aead = AESGCM(self._key)
        self.legacy_mode = legacy_mode

    def encrypt(self, plaintext: str | None) -> EncryptedString:
        if not plaintext:
            return _mint("")
        if self.legacy_mode:
            return _mint(self._encrypt_legacy(plaintext))
        nonce = os.urandom(_NONCE_SIZE)
        sealed = self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        return _mint(_V2_PREFIX + base64.b64encode(nonce + sealed).decode("ascii"))

    def decrypt(self, value: EncryptedString | str | None) -> str:
        if value is None:
            return ""
        ciphertext = value.ciphertext if isinstance(value, EncryptedString) else value
        if not ciphertext:
            return ""
        try:
            if ciphertext.startswith(_V2_PREFIX):
                raw = base64.b64decode(ciphertext[len(_V2_PREFIX):], validate=True)
                nonce, sealed = raw[:_NONCE_SIZE], raw[_NONCE_SIZE:]
                return self._aead.decrypt(nonce, sealed, None).decode("utf-8")
            return self._decrypt_legacy(ciphertext)
        except (InvalidTag, ValueError, binascii.Error) as exc:
            raise EncryptionError() from exc

    def decrypt_optional(self, value: EncryptedString | None) -> str | None:
        """Decrypt, preserving None for columns that were never set."""
        if value is None:
            return None
        return self.decrypt(value)

    # ── Legacy fixed-IV format ──

    def _encrypt_legacy(self, plaintext: str) -> str:
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        data = padder.update(plaintext.encode("utf-8")) + padder.finalize()
        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(self._legacy_iv)).encryptor()
        return base64.b64encode(encryptor.update(data) + encryptor.finalize()).decode("ascii")

    def _decrypt_legacy(self, ciphertext: str) -> str:
        raw = base64.b64decode(ciphertext, validate=True)
        decryptor = Cipher(algorithms.AES(self._key), modes.CBC(self._legacy_iv)).decryptor()
        data = decryptor.update(raw) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        return (unpadder.update(data) + unpadder.finalize()).decode("utf-8")
