"""
SQLAlchemy-backed credential store.

Works with SQLite (default) and any other SQLAlchemy database URL. Every
method opens its own short-lived session, so the store holds no mutable
state besides the engine and is safe for concurrent callers.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, delete, event, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from maskbot.errors import AlreadyExistsError, InternalError, NotFoundError
from maskbot.models import Credential, OAuth2State, User
from maskbot.storage.tables import Base, OAuth2StateRow, UserRow

logger = logging.getLogger(__name__)

# Seconds a SQLite connection waits on a locked database before failing.
SQLITE_BUSY_TIMEOUT = 15


def _is_memory_url(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine with SQLite-specific connection settings."""
    if not url.startswith("sqlite"):
        return create_engine(url, echo=echo, pool_pre_ping=True)

    kwargs = {}
    if _is_memory_url(url):
        # One shared connection, otherwise every session sees an empty database
        kwargs["poolclass"] = StaticPool

    engine = create_engine(
        url,
        connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT},
        echo=echo,
        **kwargs,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    return engine


class SQLCredentialStore:
    """CredentialStore over SQLAlchemy.

    Tables are created on construction if missing.
    """

    def __init__(self, url: str = "sqlite://", engine: Engine | None = None):
        self.engine = engine or create_db_engine(url)
        Base.metadata.create_all(self.engine)
        self._sessions = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        logger.info("Credential store ready (%s)", self.engine.url.render_as_string())

    @contextmanager
    def _session(self) -> Generator[Session, None, None]:
        session = self._sessions()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # =========================================================================
    # Users
    # =========================================================================

    def create_user(self, telegram_id: int, language_code: str) -> None:
        try:
            with self._session() as session:
                session.add(UserRow(telegram_id=telegram_id, lang=language_code))
        except IntegrityError as e:
            logger.info("User %s already exists: %s", telegram_id, e.orig)
            raise AlreadyExistsError(f"user {telegram_id} already exists") from e
        except SQLAlchemyError as e:
            logger.error("Error while creating user %s: %s", telegram_id, e)
            raise InternalError("failed to create user") from e

    def update_token(self, telegram_id: int, token: str) -> None:
        try:
            with self._session() as session:
                session.execute(
                    update(UserRow)
                    .where(UserRow.telegram_id == telegram_id)
                    .values(fastmail_token=token)
                )
        except SQLAlchemyError as e:
            logger.error("Error while updating token of user %s: %s", telegram_id, e)
            raise InternalError("failed to update token") from e

    def update_language_code(self, telegram_id: int, language_code: str) -> None:
        try:
            with self._session() as session:
                session.execute(
                    update(UserRow)
                    .where(UserRow.telegram_id == telegram_id)
                    .values(lang=language_code)
                )
        except SQLAlchemyError as e:
            logger.error("Error while updating language of user %s: %s", telegram_id, e)
            raise InternalError("failed to update language code") from e

    def get_user(self, telegram_id: int) -> User:
        try:
            with self._session() as session:
                row = session.get(UserRow, telegram_id)
        except SQLAlchemyError as e:
            logger.error("Error while getting user %s: %s", telegram_id, e)
            raise InternalError("failed to get user") from e

        if row is None:
            raise NotFoundError(f"user {telegram_id} not found")

        token = None
        if row.fastmail_token:
            try:
                token = Credential.from_json(row.fastmail_token)
            except (ValueError, KeyError, TypeError) as e:
                logger.error("Error while decoding token of user %s: %s", telegram_id, e)
                raise InternalError("failed to decode token") from e

        return User(telegram_id=row.telegram_id, language_code=row.lang, fastmail_token=token)

    # =========================================================================
    # OAuth2 states
    # =========================================================================

    def create_oauth2_state(self, state: str, code_verifier: str, telegram_id: int) -> None:
        try:
            with self._session() as session:
                # Only the latest login link of a user stays valid
                session.execute(
                    delete(OAuth2StateRow).where(OAuth2StateRow.telegram_id == telegram_id)
                )
                session.add(
                    OAuth2StateRow(
                        state=state, code_verifier=code_verifier, telegram_id=telegram_id
                    )
                )
        except SQLAlchemyError as e:
            logger.error("Error while creating OAuth2 state for %s: %s", telegram_id, e)
            raise InternalError("failed to create OAuth2 state") from e

    def get_oauth2_state(self, state: str) -> OAuth2State:
        try:
            with self._session() as session:
                row = session.get(OAuth2StateRow, state)
        except SQLAlchemyError as e:
            logger.error("Error while getting OAuth2 state: %s", e)
            raise InternalError("failed to get OAuth2 state") from e

        if row is None:
            raise NotFoundError("unknown OAuth2 state")
        return OAuth2State(
            state=row.state, code_verifier=row.code_verifier, telegram_id=row.telegram_id
        )

    def consume_oauth2_state(self, state: str) -> OAuth2State:
        try:
            with self._session() as session:
                row = session.execute(
                    select(OAuth2StateRow).where(OAuth2StateRow.state == state)
                ).scalar_one_or_none()
                if row is None:
                    raise NotFoundError("unknown OAuth2 state")
                result = OAuth2State(
                    state=row.state, code_verifier=row.code_verifier, telegram_id=row.telegram_id
                )
                deleted = session.execute(
                    delete(OAuth2StateRow).where(OAuth2StateRow.state == state)
                ).rowcount
                if deleted != 1:
                    # Consumed by a concurrent callback between select and delete
                    raise NotFoundError("unknown OAuth2 state")
        except SQLAlchemyError as e:
            logger.error("Error while consuming OAuth2 state: %s", e)
            raise InternalError("failed to consume OAuth2 state") from e
        return result

    def close(self) -> None:
        self.engine.dispose()
