"""Persistence of user accounts."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import User, new_user_id
from ..errors import (
    ConcurrentUpdateError,
    DuplicateEmailError,
    StorageError,
    UserNotFoundError,
)
from ..models import UserAccount

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserStore:
    """Credential store backed by the ``users`` table.

    Email uniqueness is enforced by the unique index, so a duplicate insert
    fails even when two registrations race past the existence check.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, operation: str, **context: Any) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.exception("User store %s failed (%s)", operation, context)
                raise StorageError() from exc

    async def create(self, email: str, username: str, password_hash: str) -> UserAccount:
        """Insert a new account, failing with ``DuplicateEmailError`` on collision."""

        record = User(
            id=new_user_id(),
            email=normalize_email(email),
            username=username,
            password_hash=password_hash,
            genres=[],
            watchlist=[],
            version=1,
        )
        async with self._session("create", email=record.email) as session:
            session.add(record)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                logger.info("Rejected duplicate registration for %s", record.email)
                raise DuplicateEmailError() from exc
        return UserAccount.from_record(record)

    async def find_by_email(self, email: str) -> UserAccount | None:
        normalized = normalize_email(email)
        async with self._session("find_by_email", email=normalized) as session:
            result = await session.execute(select(User).where(User.email == normalized))
            record = result.scalar_one_or_none()
        return UserAccount.from_record(record) if record is not None else None

    async def find_by_id(self, user_id: str) -> UserAccount | None:
        async with self._session("find_by_id", user_id=user_id) as session:
            record = await session.get(User, user_id)
        return UserAccount.from_record(record) if record is not None else None

    async def save(self, account: UserAccount) -> UserAccount:
        """Persist ``account`` if nobody wrote the record since it was read.

        The write is a compare-and-swap on ``version``: a stale snapshot raises
        ``ConcurrentUpdateError`` instead of overwriting a newer state.
        """

        next_version = account.version + 1
        stmt = (
            update(User)
            .where(User.id == account.id, User.version == account.version)
            .values(
                email=normalize_email(account.email),
                username=account.username,
                password_hash=account.password_hash,
                genres=list(account.genres),
                watchlist=list(account.watchlist),
                version=next_version,
                updated_at=datetime.utcnow(),
            )
        )
        async with self._session("save", user_id=account.id) as session:
            try:
                result = await session.execute(stmt)
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateEmailError("Email already in use") from exc
            if result.rowcount == 0:
                existing = await session.get(User, account.id)
                await session.rollback()
                if existing is None:
                    raise UserNotFoundError()
                raise ConcurrentUpdateError()
            await session.commit()

        account.version = next_version
        return account
