# Error taxonomy shared by storage, OAuth2 and the mail provider client.
# Created: 2026-10-06
#
# Handlers translate these into localized messages; raw text never reaches users.

from __future__ import annotations


class MaskbotError(Exception):
    """Base class for all maskbot errors."""


class NotFoundError(MaskbotError):
    """A user or OAuth2 state does not exist."""


class AlreadyExistsError(MaskbotError):
    """The identity is already registered."""


class InternalError(MaskbotError):
    """Storage or serialization failure."""


class UpstreamError(MaskbotError):
    """Fastmail API or token endpoint failure."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
