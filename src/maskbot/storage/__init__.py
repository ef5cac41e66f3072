"""Credential storage for maskbot."""

from maskbot.storage.protocol import CredentialStore
from maskbot.storage.sql import SQLCredentialStore, create_db_engine

__all__ = ["CredentialStore", "SQLCredentialStore", "create_db_engine"]
