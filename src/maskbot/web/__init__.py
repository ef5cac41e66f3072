"""OAuth2 callback web app."""

from maskbot.web.server import CallbackServer, create_app

__all__ = ["CallbackServer", "create_app"]
