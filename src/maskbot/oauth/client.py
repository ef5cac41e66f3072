# OAuth2 client — authorization code flow with PKCE + token refresh.
# Created: 2026-10-07
#
# Fastmail issues tokens to public clients, so there is no client secret:
# the PKCE verifier (RFC 7636) proves the code exchange comes from us.

from __future__ import annotations

import base64
import hashlib
import logging
import secrets
import urllib.parse
from dataclasses import dataclass, field

import httpx

from maskbot.errors import UpstreamError
from maskbot.models import Credential

logger = logging.getLogger(__name__)


@dataclass
class OAuth2Config:
    """Authorization server endpoints and client registration."""

    client_id: str
    auth_url: str
    token_url: str
    redirect_url: str
    scopes: list[str] = field(default_factory=list)


def new_state() -> str:
    """Unpredictable nonce binding a callback to the user who started it."""
    return secrets.token_urlsafe(32)


def new_code_verifier() -> str:
    return secrets.token_urlsafe(64)


def code_challenge(code_verifier: str) -> str:
    """S256 challenge: BASE64URL(SHA256(code_verifier)) without padding."""
    return (
        base64.urlsafe_b64encode(hashlib.sha256(code_verifier.encode()).digest())
        .rstrip(b"=")
        .decode()
    )


class OAuth2Client:
    """Builds authorization URLs and talks to the token endpoint.

    Also acts as the base refresher for TokenSource.
    """

    def __init__(
        self,
        config: OAuth2Config,
        http: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
    ):
        self.config = config
        self._http = http or httpx.AsyncClient(timeout=timeout)

    def authorization_url(self, state: str, code_verifier: str) -> str:
        """URL the user opens to grant access.

        Args:
            state: Nonce stored with the verifier; echoed back to the callback.
            code_verifier: PKCE secret; only its S256 challenge leaves the bot.
        """
        params = {
            "response_type": "code",
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_url,
            "scope": " ".join(self.config.scopes),
            "state": state,
            "code_challenge": code_challenge(code_verifier),
            "code_challenge_method": "S256",
        }
        return f"{self.config.auth_url}?{urllib.parse.urlencode(params)}"

    async def exchange_code(self, code: str, code_verifier: str) -> Credential:
        """Exchange an authorization code + PKCE verifier for tokens."""
        data = await self._post_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "code_verifier": code_verifier,
                "client_id": self.config.client_id,
                "redirect_uri": self.config.redirect_url,
            }
        )
        logger.info("OAuth2 code exchanged for tokens")
        return Credential.from_token_response(data)

    async def refresh(self, credential: Credential | None) -> Credential:
        """Get a new access token using the stored refresh token.

        Raises UpstreamError when there is nothing to refresh with or the
        token endpoint rejects the request.
        """
        if credential is None or not credential.refresh_token:
            raise UpstreamError("no refresh token, user is not authorized")

        data = await self._post_token(
            {
                "grant_type": "refresh_token",
                "refresh_token": credential.refresh_token,
                "client_id": self.config.client_id,
            }
        )
        refreshed = Credential.from_token_response(data)
        # Servers may omit the refresh token when it is not rotated
        if not refreshed.refresh_token:
            refreshed.refresh_token = credential.refresh_token
        logger.info("Refreshed OAuth2 token")
        return refreshed

    async def _post_token(self, form: dict[str, str]) -> dict:
        try:
            resp = await self._http.post(
                self.config.token_url,
                data=form,
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            logger.warning("Token endpoint request failed: %s", e)
            raise UpstreamError(f"token endpoint unreachable: {e}") from e

        if resp.status_code >= 400:
            logger.warning("Token endpoint error (%d): %s", resp.status_code, resp.text)
            raise UpstreamError("token endpoint rejected the request", resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamError("token endpoint returned invalid JSON") from e
        if "access_token" not in data:
            raise UpstreamError("token endpoint response has no access_token")
        return data
