"""Genre and watchlist semantics of the preference manager."""

from __future__ import annotations

import asyncio

import pytest

from flickpick.database import Database
from flickpick.errors import ConcurrentUpdateError, InvalidInputError, UserNotFoundError
from flickpick.models import UserAccount
from flickpick.services.preferences import PreferenceManager
from flickpick.services.users import UserStore


async def _setup(tmp_path) -> tuple[Database, UserStore, PreferenceManager, str]:
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'prefs.db'}")
    await database.create_all()
    store = UserStore(database.session_factory)
    account = await store.create("a@b.com", "al", "hash")
    return database, store, PreferenceManager(store), account.id


def test_add_to_watchlist_is_idempotent(tmp_path) -> None:
    async def runner() -> None:
        database, _, preferences, user_id = await _setup(tmp_path)

        assert await preferences.add_to_watchlist(user_id, 5) == [5]
        assert await preferences.add_to_watchlist(user_id, 5) == [5]
        assert await preferences.add_to_watchlist(user_id, "7") == [5, 7]
        assert await preferences.get_watchlist(user_id) == [5, 7]

        await database.dispose()

    asyncio.run(runner())


def test_remove_absent_movie_is_a_no_op(tmp_path) -> None:
    async def runner() -> None:
        database, _, preferences, user_id = await _setup(tmp_path)
        await preferences.add_to_watchlist(user_id, 5)

        await preferences.remove_from_watchlist(user_id, 999)
        assert await preferences.get_watchlist(user_id) == [5]

        await preferences.remove_from_watchlist(user_id, "5")
        assert await preferences.get_watchlist(user_id) == []

        await database.dispose()

    asyncio.run(runner())


def test_set_genres_and_missing_input_keeps_existing(tmp_path) -> None:
    async def runner() -> None:
        database, _, preferences, user_id = await _setup(tmp_path)

        assert await preferences.set_genres(user_id, [28, 12]) == [28, 12]
        assert await preferences.get_genres(user_id) == [28, 12]

        assert await preferences.set_genres(user_id, None) == [28, 12]
        assert await preferences.set_genres(user_id, []) == [28, 12]
        assert await preferences.get_genres(user_id) == [28, 12]

        await database.dispose()

    asyncio.run(runner())


@pytest.mark.parametrize("genres", ["28", {"id": 28}, [28, "drama"], [True]])
def test_set_genres_rejects_non_integer_lists(tmp_path, genres) -> None:
    async def runner() -> None:
        database, _, preferences, user_id = await _setup(tmp_path)
        await preferences.set_genres(user_id, [35])

        with pytest.raises(InvalidInputError):
            await preferences.set_genres(user_id, genres)
        assert await preferences.get_genres(user_id) == [35]

        await database.dispose()

    asyncio.run(runner())


def test_unknown_user_raises_not_found(tmp_path) -> None:
    async def runner() -> None:
        database, _, preferences, _ = await _setup(tmp_path)

        with pytest.raises(UserNotFoundError):
            await preferences.get_genres("missing")
        with pytest.raises(UserNotFoundError):
            await preferences.add_to_watchlist("missing", 1)

        await database.dispose()

    asyncio.run(runner())


class _RacingStore(UserStore):
    """Store that lets a competing request write just before the first save."""

    def __init__(self, session_factory) -> None:
        super().__init__(session_factory)
        self.raced = False

    async def save(self, account: UserAccount) -> UserAccount:  # type: ignore[override]
        if not self.raced:
            self.raced = True
            competitor = await self.find_by_id(account.id)
            assert competitor is not None
            competitor.watchlist = [*competitor.watchlist, 99]
            await super().save(competitor)
        return await super().save(account)


def test_interleaved_watchlist_write_is_not_lost(tmp_path) -> None:
    """A write landing between read and save forces a retry instead of a lost update."""

    async def runner() -> None:
        database, _, _, user_id = await _setup(tmp_path)
        store = _RacingStore(database.session_factory)
        preferences = PreferenceManager(store)

        assert await preferences.add_to_watchlist(user_id, 5) == [99, 5]
        assert await preferences.get_watchlist(user_id) == [99, 5]

        await database.dispose()

    asyncio.run(runner())


class _AlwaysConflictingStore(UserStore):
    """Store stub whose writes always lose the race."""

    def __init__(self) -> None:
        # Deliberately skip super().__init__ to avoid touching a database.
        self.save_calls = 0

    async def find_by_id(self, user_id: str) -> UserAccount | None:  # type: ignore[override]
        return UserAccount(id=user_id, email="a@b.com", username="al", password_hash="h")

    async def save(self, account: UserAccount) -> UserAccount:  # type: ignore[override]
        self.save_calls += 1
        raise ConcurrentUpdateError()


def test_mutation_gives_up_after_bounded_retries() -> None:
    store = _AlwaysConflictingStore()
    preferences = PreferenceManager(store, max_attempts=3)

    with pytest.raises(ConcurrentUpdateError):
        asyncio.run(preferences.add_to_watchlist("user", 1))

    assert store.save_calls == 3
