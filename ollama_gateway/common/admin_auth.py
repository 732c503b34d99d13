"""
Admin Authentication

When ADMIN_USERNAME and ADMIN_PASSWORD are set, admin API endpoints require an admin token:
Authorization: Bearer <token>

Tokens are stateless: a base64url JSON payload plus an HMAC-SHA256 signature keyed
by the admin credentials, so changing the password revokes every issued token.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import secrets
import time
from typing import Any, Optional

_TOKEN_VERSION = 1


def is_admin_auth_enabled(admin_username: str | None, admin_password: str | None) -> bool:
    return bool(admin_username and admin_password)


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("utf-8").rstrip("=")


def _b64url_decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode((data + padding).encode("utf-8"))


class AdminTokenSigner:
    """Issues and verifies admin session tokens for one set of credentials."""

    def __init__(self, username: str, password: str, ttl_seconds: int = 86400):
        self.username = username
        self.ttl_seconds = int(ttl_seconds)
        self._key = hashlib.sha256(f"{username}\0{password}".encode("utf-8")).digest()

    def _sign(self, payload_b64: str) -> bytes:
        return hmac.new(self._key, payload_b64.encode("utf-8"), hashlib.sha256).digest()

    def issue(self, now: Optional[int] = None) -> tuple[str, int]:
        """
        Create a token

        Returns:
            tuple[str, int]: (token, expiry as unix seconds)
        """
        issued_at = int(time.time() if now is None else now)
        expires_at = issued_at + self.ttl_seconds
        payload = {
            "v": _TOKEN_VERSION,
            "sub": self.username,
            "iat": issued_at,
            "exp": expires_at,
            "nonce": secrets.token_urlsafe(16),
        }
        payload_b64 = _b64url_encode(
            json.dumps(payload, separators=(",", ":")).encode("utf-8")
        )
        return f"{payload_b64}.{_b64url_encode(self._sign(payload_b64))}", expires_at

    def verify(self, token: str, now: Optional[int] = None) -> dict[str, Any] | None:
        """
        Verify and parse a token.

        Returns:
            dict: payload (Verification passed)
            None: Malformed, forged, foreign or expired token
        """
        payload_b64, sep, signature_b64 = token.partition(".")
        if not sep:
            return None

        try:
            if not hmac.compare_digest(self._sign(payload_b64), _b64url_decode(signature_b64)):
                return None
            payload = json.loads(_b64url_decode(payload_b64).decode("utf-8"))
        except (ValueError, UnicodeDecodeError):
            return None

        if not isinstance(payload, dict):
            return None
        if payload.get("v") != _TOKEN_VERSION or payload.get("sub") != self.username:
            return None

        exp = payload.get("exp")
        current_time = int(time.time() if now is None else now)
        if not isinstance(exp, int) or current_time >= exp:
            return None
        return payload
