# Fastmail Client — JMAP MaskedEmail calls using per-user OAuth tokens.
# Created: 2026-10-08
#
# https://www.fastmail.com/dev/#masked-email-api
# New addresses are created "pending"; Fastmail deletes pending ones that
# receive no mail within 24h unless they are enabled.

from __future__ import annotations

import logging
import urllib.parse
from typing import Any

import httpx

from maskbot.config import FASTMAIL_SCOPE_CORE, FASTMAIL_SCOPE_MASKED_EMAIL
from maskbot.errors import UpstreamError
from maskbot.models import MaskedEmail
from maskbot.oauth import OAuth2Config, TokenSource

logger = logging.getLogger(__name__)

_USING = [FASTMAIL_SCOPE_CORE, FASTMAIL_SCOPE_MASKED_EMAIL]


def site_origin(url: str) -> str:
    """``https://example.com/signup?x=1`` -> ``https://example.com``."""
    parts = urllib.parse.urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


class FastmailClient:
    """HTTP client for the Fastmail masked email API.

    Each call fetches the JMAP session with the user's bearer token to find
    the API URL and account id, then issues one MaskedEmail/set call.
    """

    def __init__(
        self,
        oauth2_config: OAuth2Config,
        api_url: str = "https://api.fastmail.com",
        description: str = "",
        http: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
    ):
        self._oauth2_config = oauth2_config
        self.api_url = api_url.rstrip("/")
        self.description = description
        self._http = http or httpx.AsyncClient(timeout=timeout)

    @property
    def oauth2_config(self) -> OAuth2Config:
        return self._oauth2_config

    async def create_masked_email_from_url(self, token_source: TokenSource, url: str) -> MaskedEmail:
        """Create a pending masked email bound to the site's origin."""
        return await self._create(token_source, {"forDomain": site_origin(url)})

    async def create_masked_email_with_prefix(
        self, token_source: TokenSource, prefix: str
    ) -> MaskedEmail:
        """Create a pending masked email whose local part starts with ``prefix``."""
        return await self._create(token_source, {"emailPrefix": prefix})

    async def enable_masked_email(self, token_source: TokenSource, masked_email_id: str) -> None:
        result = await self._masked_email_set(
            token_source, {"update": {masked_email_id: {"state": "enabled"}}}
        )
        not_updated = result.get("notUpdated") or {}
        if masked_email_id in not_updated:
            err = not_updated[masked_email_id]
            logger.warning("Masked email %s not enabled: %s", masked_email_id, err)
            raise UpstreamError(f"masked email not enabled: {err.get('type', 'unknown')}")
        logger.info("Enabled masked email %s", masked_email_id)

    async def _create(self, token_source: TokenSource, fields: dict[str, Any]) -> MaskedEmail:
        create = {"state": "pending", **fields}
        if self.description:
            create["description"] = self.description

        result = await self._masked_email_set(token_source, {"create": {"new": create}})
        created = (result.get("created") or {}).get("new")
        if not created:
            err = (result.get("notCreated") or {}).get("new", {})
            logger.warning("Masked email not created: %s", err)
            raise UpstreamError(f"masked email not created: {err.get('type', 'unknown')}")

        # The created object only carries server-set properties
        masked = MaskedEmail.from_dict({**create, **created})
        logger.info("Created masked email %s", masked.id)
        return masked

    async def _masked_email_set(
        self, token_source: TokenSource, arguments: dict[str, Any]
    ) -> dict[str, Any]:
        credential = await token_source.token()
        headers = {"Authorization": f"{credential.token_type} {credential.access_token}"}

        session = await self._request("GET", f"{self.api_url}/jmap/session", headers)
        try:
            api_url = session["apiUrl"]
            account_id = session["primaryAccounts"][FASTMAIL_SCOPE_MASKED_EMAIL]
        except (KeyError, TypeError) as e:
            raise UpstreamError("JMAP session lacks masked email account") from e

        body = {
            "using": _USING,
            "methodCalls": [["MaskedEmail/set", {"accountId": account_id, **arguments}, "0"]],
        }
        data = await self._request("POST", api_url, headers, json=body)

        try:
            name, result, _ = data["methodResponses"][0]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise UpstreamError("malformed JMAP response") from e
        if name == "error":
            logger.warning("JMAP method error: %s", result)
            raise UpstreamError(f"JMAP error: {result.get('type', 'unknown')}")
        return result

    async def _request(
        self, method: str, url: str, headers: dict[str, str], **kwargs: Any
    ) -> dict[str, Any]:
        try:
            resp = await self._http.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("Fastmail request to %s failed: %s", url, e)
            raise UpstreamError(f"Fastmail unreachable: {e}") from e

        if resp.status_code >= 400:
            logger.warning("Fastmail API error (%d): %s", resp.status_code, resp.text)
            raise UpstreamError("Fastmail API error", resp.status_code)
        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError("Fastmail returned invalid JSON") from e
