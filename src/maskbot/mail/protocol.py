"""Mail provider protocol: what handlers need from a masked email service."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from maskbot.models import MaskedEmail
from maskbot.oauth import OAuth2Config, TokenSource


@runtime_checkable
class MaskingEmail(Protocol):
    @property
    def oauth2_config(self) -> OAuth2Config: ...

    async def create_masked_email_from_url(
        self, token_source: TokenSource, url: str
    ) -> MaskedEmail: ...

    async def create_masked_email_with_prefix(
        self, token_source: TokenSource, prefix: str
    ) -> MaskedEmail: ...

    async def enable_masked_email(self, token_source: TokenSource, masked_email_id: str) -> None: ...
