"""Genre preferences and watchlist management."""

from __future__ import annotations

import logging
from typing import Any, Callable

from ..errors import ConcurrentUpdateError, UserNotFoundError
from ..models import UserAccount
from ..utils import coerce_int, coerce_int_list, dedupe
from .users import UserStore

logger = logging.getLogger(__name__)


class PreferenceManager:
    """Read-modify-write operations on a user's genres and watchlist.

    Watchlist mutations are idempotent: adding a present id or removing an
    absent one succeeds without writing.
    """

    def __init__(self, store: UserStore, *, max_attempts: int = 3):
        self._store = store
        self._max_attempts = max(1, max_attempts)

    async def get_profile(self, user_id: str) -> UserAccount:
        account = await self._store.find_by_id(user_id)
        if account is None:
            logger.warning("Profile lookup for missing user %s", user_id)
            raise UserNotFoundError()
        return account

    async def get_genres(self, user_id: str) -> list[int]:
        account = await self.get_profile(user_id)
        return list(account.genres)

    async def update_profile(self, user_id: str, genres: Any = None) -> UserAccount:
        """Replace the genre list; a missing or empty ``genres`` keeps the current one."""

        if genres is None:
            return await self.get_profile(user_id)
        parsed = coerce_int_list(genres, field="Genres")
        if not parsed:
            return await self.get_profile(user_id)

        def _apply(account: UserAccount) -> bool:
            if account.genres == parsed:
                return False
            account.genres = parsed
            return True

        account = await self._mutate(user_id, "update_profile", _apply)
        logger.info("Profile updated for user %s: genres=%s", user_id, account.genres)
        return account

    async def set_genres(self, user_id: str, genres: Any = None) -> list[int]:
        account = await self.update_profile(user_id, genres)
        return list(account.genres)

    async def get_watchlist(self, user_id: str) -> list[int]:
        account = await self.get_profile(user_id)
        return dedupe(account.watchlist)

    async def add_to_watchlist(self, user_id: str, movie_id: Any) -> list[int]:
        movie_id = coerce_int(movie_id, field="movieId")

        def _apply(account: UserAccount) -> bool:
            if movie_id in account.watchlist:
                return False
            account.watchlist = dedupe([*account.watchlist, movie_id])
            return True

        account = await self._mutate(user_id, "add_to_watchlist", _apply)
        return list(account.watchlist)

    async def remove_from_watchlist(self, user_id: str, movie_id: Any) -> None:
        movie_id = coerce_int(movie_id, field="movieId")

        def _apply(account: UserAccount) -> bool:
            if movie_id not in account.watchlist:
                return False
            account.watchlist = [entry for entry in account.watchlist if entry != movie_id]
            return True

        await self._mutate(user_id, "remove_from_watchlist", _apply)

    async def _mutate(
        self,
        user_id: str,
        operation: str,
        apply: Callable[[UserAccount], bool],
    ) -> UserAccount:
        """Apply ``apply`` to a fresh snapshot and save it, retrying on conflicts.

        ``apply`` mutates the snapshot in place and returns whether anything
        changed; unchanged snapshots are not written.
        """

        attempt = 0
        while True:
            attempt += 1
            account = await self.get_profile(user_id)
            if not apply(account):
                return account
            try:
                saved = await self._store.save(account)
            except ConcurrentUpdateError:
                if attempt >= self._max_attempts:
                    logger.warning(
                        "Giving up on %s for user %s after %s conflicting writes",
                        operation,
                        user_id,
                        attempt,
                    )
                    raise
                logger.info(
                    "Concurrent update during %s for user %s, retrying (%s/%s)",
                    operation,
                    user_id,
                    attempt,
                    self._max_attempts,
                )
                continue
            logger.debug("%s saved for user %s", operation, user_id)
            return saved
