# hourbook/utils/encryption.py
"""
Field-level encryption for bank details (AES-256-GCM).

Stored as three base64 columns: cipher / iv / tag. When no ENCRYPTION_KEY
is configured the cipher is unavailable and values are kept in the cipher
column as plaintext with empty iv/tag; decrypt() returns such values as-is.
"""

from __future__ import annotations

import base64
import os
import re
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from flask import current_app

_TAG_BYTES = 16
_IV_BYTES = 12
_HEX_KEY = re.compile(r"^[0-9a-fA-F]{64}$")


@dataclass(frozen=True)
class EncryptedValue:
    cipher: str
    iv: str
    tag: str


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def parse_key(raw_key: str | None) -> bytes | None:
    """
    Accept 64 hex chars, 44 base64 chars, or any other string
    (padded with '0' / truncated to 32 bytes).
    """
    raw = (raw_key or "").strip()
    if not raw:
        return None
    if _HEX_KEY.match(raw):
        return bytes.fromhex(raw)
    if len(raw) == 44 and raw.endswith("="):
        return base64.b64decode(raw)
    return raw.ljust(32, "0").encode("utf-8")[:32]


class FieldCipher:
    def __init__(self, key: bytes | None):
        self._aead = AESGCM(key) if key else None

    @classmethod
    def from_key(cls, raw_key: str | None) -> "FieldCipher":
        return cls(parse_key(raw_key))

    @property
    def available(self) -> bool:
        return self._aead is not None

    def encrypt(self, plain: str) -> EncryptedValue:
        if not plain:
            return EncryptedValue(cipher="", iv="", tag="")
        if not self.available:
            return EncryptedValue(cipher=plain, iv="", tag="")

        iv = os.urandom(_IV_BYTES)
        sealed = self._aead.encrypt(iv, plain.encode("utf-8"), None)
        return EncryptedValue(
            cipher=_b64(sealed[:-_TAG_BYTES]),
            iv=_b64(iv),
            tag=_b64(sealed[-_TAG_BYTES:]),
        )

    def decrypt(self, cipher: str, iv: str, tag: str) -> str:
        if not cipher:
            return ""
        if not iv or not tag:
            # stored plaintext fallback
            return cipher
        if not self.available:
            return ""
        try:
            sealed = base64.b64decode(cipher) + base64.b64decode(tag)
            return self._aead.decrypt(base64.b64decode(iv), sealed, None).decode("utf-8")
        except (InvalidTag, ValueError):
            current_app.logger.warning("Failed to decrypt stored bank details")
            return ""


def get_field_cipher() -> FieldCipher:
    return current_app.extensions["field_cipher"]


def normalize_iban(iban: str) -> str:
    return re.sub(r"\s+", "", iban or "").upper()


def mask_iban(iban: str) -> str:
    if not iban:
        return ""
    compact = re.sub(r"\s+", "", iban)
    if len(compact) <= 6:
        return compact
    return compact[:4] + "****" + compact[-4:]
