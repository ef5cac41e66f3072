"""
SQLAlchemy tables for maskbot.

Two tables: registered users (with their serialized Fastmail token) and
pending OAuth2 authorizations.
"""

from typing import Optional

from sqlalchemy import BigInteger, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all tables."""

    pass


class UserRow(Base):
    """A Telegram user, one row per chat identity."""

    __tablename__ = "users"

    telegram_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    lang: Mapped[str] = mapped_column(String(16), nullable=False, default="en")
    # JSON-encoded Credential, NULL until the user logs in
    fastmail_token: Mapped[Optional[str]] = mapped_column(Text)


class OAuth2StateRow(Base):
    """Pending authorization: state nonce -> PKCE verifier + owner."""

    __tablename__ = "oauth2_states"

    state: Mapped[str] = mapped_column(String(128), primary_key=True)
    code_verifier: Mapped[str] = mapped_column(String(128), nullable=False)
    telegram_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
