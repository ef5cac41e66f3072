"""OAuth2 client and per-user token sources."""

from maskbot.oauth.client import (
    OAuth2Client,
    OAuth2Config,
    code_challenge,
    new_code_verifier,
    new_state,
)
from maskbot.oauth.token_source import Refresher, TokenSource, TokenSourceFactory

__all__ = [
    "OAuth2Client",
    "OAuth2Config",
    "Refresher",
    "TokenSource",
    "TokenSourceFactory",
    "code_challenge",
    "new_code_verifier",
    "new_state",
]
