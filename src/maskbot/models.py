# Domain models: users, pending OAuth2 states, credentials, masked emails.
# Created: 2026-10-06

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

# Tokens this close to expiry are treated as expired.
EXPIRY_SKEW = timedelta(seconds=10)


@dataclass
class Credential:
    """OAuth2 access + refresh token pair for one user."""

    access_token: str
    refresh_token: str | None = None
    token_type: str = "Bearer"
    expiry: datetime | None = None

    def is_valid(self, now: datetime | None = None) -> bool:
        """True if there is an access token that has not expired."""
        if not self.access_token:
            return False
        if self.expiry is None:
            return True
        now = now or datetime.now(UTC)
        return self.expiry - EXPIRY_SKEW > now

    def to_json(self) -> str:
        return json.dumps(
            {
                "access_token": self.access_token,
                "refresh_token": self.refresh_token,
                "token_type": self.token_type,
                "expiry": self.expiry.isoformat() if self.expiry else None,
            }
        )

    @classmethod
    def from_json(cls, raw: str) -> Credential:
        """Decode a stored credential. Raises ValueError/KeyError on bad input."""
        data = json.loads(raw)
        expiry = data.get("expiry")
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            token_type=data.get("token_type") or "Bearer",
            expiry=datetime.fromisoformat(expiry) if expiry else None,
        )

    @classmethod
    def from_token_response(cls, data: dict[str, Any], now: datetime | None = None) -> Credential:
        """Build a credential from an OAuth2 token endpoint JSON response."""
        now = now or datetime.now(UTC)
        expires_in = data.get("expires_in")
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            token_type=data.get("token_type", "Bearer"),
            expiry=now + timedelta(seconds=int(expires_in)) if expires_in else None,
        )


@dataclass
class User:
    telegram_id: int
    language_code: str
    fastmail_token: Credential | None = None


@dataclass
class OAuth2State:
    """Pending authorization, keyed by the random ``state`` nonce."""

    state: str
    code_verifier: str
    telegram_id: int


@dataclass
class MaskedEmail:
    """A Fastmail masked email address."""

    id: str
    email: str
    state: str = "pending"
    for_domain: str = ""
    description: str = ""
    email_prefix: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MaskedEmail:
        return cls(
            id=data["id"],
            email=data["email"],
            state=data.get("state") or "pending",
            for_domain=data.get("forDomain") or "",
            description=data.get("description") or "",
            email_prefix=data.get("emailPrefix") or "",
        )
