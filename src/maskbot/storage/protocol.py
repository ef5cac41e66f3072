"""Credential storage protocol.

Created: 2026-10-06
Defines the interface every storage backend implements. Handlers and the
token source only see this protocol, so the SQL store and test doubles are
interchangeable.

Error contract:
- NotFoundError: user or state absent
- AlreadyExistsError: create_user for an existing identity
- InternalError: anything else that went wrong in the backend
"""

from typing import Protocol, runtime_checkable

from maskbot.models import OAuth2State, User


@runtime_checkable
class CredentialStore(Protocol):
    """Per-user token and pending-authorization storage.

    Methods are synchronous and must be safe to call from concurrent handlers.
    """

    # =========================================================================
    # Users
    # =========================================================================

    def create_user(self, telegram_id: int, language_code: str) -> None:
        """Register a user. Raises AlreadyExistsError if already registered."""
        ...

    def update_token(self, telegram_id: int, token: str) -> None:
        """Overwrite the serialized credential of a user."""
        ...

    def update_language_code(self, telegram_id: int, language_code: str) -> None:
        """Overwrite the language preference of a user."""
        ...

    def get_user(self, telegram_id: int) -> User:
        """Get a user. Raises NotFoundError if not registered."""
        ...

    # =========================================================================
    # OAuth2 states
    # =========================================================================

    def create_oauth2_state(self, state: str, code_verifier: str, telegram_id: int) -> None:
        """Store a pending authorization, replacing earlier ones of the same user."""
        ...

    def get_oauth2_state(self, state: str) -> OAuth2State:
        """Get a pending authorization. Raises NotFoundError for unknown state."""
        ...

    def consume_oauth2_state(self, state: str) -> OAuth2State:
        """Get and delete a pending authorization in one transaction.

        Raises NotFoundError for unknown (or already consumed) state.
        """
        ...

    def close(self) -> None:
        """Release backend resources."""
        ...
