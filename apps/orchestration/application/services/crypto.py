from __future__ import annotations

import base64
import hashlib
import json
import os
from typing import Any

from cryptography.fernet import Fernet, InvalidToken
from django.conf import settings

from apps.orchestration.domain.errors import ConfigurationError


class CredentialCrypto:
    """
    Encrypts merchant/provider link settings at rest.

    - In production, set ORCHESTRATION_CREDENTIALS_ENCRYPTION_KEY to a 32-byte urlsafe base64 key (Fernet key).
    - Otherwise a stable key is derived from Django SECRET_KEY.
    """

    PREFIX = "fernet:"

    @staticmethod
    def encrypt_json(data: dict[str, Any]) -> str:
        raw = json.dumps(data, separators=(",", ":"), ensure_ascii=False, sort_keys=True).encode("utf-8")
        token = CredentialCrypto._fernet().encrypt(raw)
        return CredentialCrypto.PREFIX + token.decode("ascii")

    @staticmethod
    def decrypt_json(token: str) -> dict[str, Any]:
        token = (token or "").strip()
        if not token:
            return {}

        if not token.startswith(CredentialCrypto.PREFIX):
            raise ConfigurationError("Unknown credentials encryption format.")

        try:
            raw = CredentialCrypto._fernet().decrypt(token.removeprefix(CredentialCrypto.PREFIX).encode("ascii"))
        except InvalidToken as exc:
            raise ConfigurationError("Stored credentials cannot be decrypted with the configured key.") from exc
        return json.loads(raw.decode("utf-8"))

    @staticmethod
    def _fernet() -> Fernet:
        key = os.getenv("ORCHESTRATION_CREDENTIALS_ENCRYPTION_KEY", "").strip() or CredentialCrypto._derived_fernet_key()
        return Fernet(key.encode("utf-8"))

    @staticmethod
    def _derived_fernet_key() -> str:
        secret = (getattr(settings, "SECRET_KEY", "") or "").encode("utf-8")
        if not secret:
            raise ConfigurationError("SECRET_KEY is missing; cannot derive credentials encryption key.")
        digest = hashlib.sha256(secret + b"|orchestration.credentials.v1").digest()
        return base64.urlsafe_b64encode(digest).decode("ascii")
