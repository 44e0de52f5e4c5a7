"""Catalog queries exposed to the API, including the personalised ones."""

from __future__ import annotations

import asyncio
import logging

from ..config import Settings
from ..errors import UpstreamError
from ..models import MovieDetail, MovieSummary
from .preferences import PreferenceManager
from .tmdb import TMDBClient

logger = logging.getLogger(__name__)


class CatalogGateway:
    """Stateless catalog access on top of ``TMDBClient``."""

    def __init__(
        self,
        settings: Settings,
        tmdb_client: TMDBClient,
        preferences: PreferenceManager,
    ):
        self._settings = settings
        self._tmdb = tmdb_client
        self._preferences = preferences

    async def trending(self) -> list[MovieSummary]:
        return await self._tmdb.trending()

    async def top_rated(self) -> list[MovieSummary]:
        return await self._tmdb.top_rated()

    async def search(self, query: str) -> list[MovieSummary]:
        return await self._tmdb.search(query)

    async def details(self, movie_id: int) -> MovieDetail:
        return await self._tmdb.details(movie_id)

    async def recommended(self, user_id: str) -> list[MovieSummary]:
        """Popular movies in the user's first genre, or the default genre."""

        genres = await self._preferences.get_genres(user_id)
        genre_id = genres[0] if genres else self._settings.default_genre_id
        logger.info("Recommending genre %s for user %s", genre_id, user_id)
        return await self._tmdb.discover_by_genre(genre_id)

    async def watchlist_details(self, user_id: str) -> list[MovieDetail]:
        """Resolve the watchlist to full records in watchlist order.

        Ids whose lookup fails upstream are left out; the rest still return.
        """

        movie_ids = await self._preferences.get_watchlist(user_id)
        if not movie_ids:
            return []

        semaphore = asyncio.Semaphore(self._settings.tmdb_max_concurrency)

        async def _lookup(movie_id: int) -> MovieDetail:
            async with semaphore:
                return await self._tmdb.details(movie_id)

        results = await asyncio.gather(
            *(_lookup(movie_id) for movie_id in movie_ids), return_exceptions=True
        )

        movies: list[MovieDetail] = []
        for movie_id, result in zip(movie_ids, results):
            if isinstance(result, UpstreamError):
                logger.warning(
                    "Dropping watchlist movie %s for user %s: upstream status %s",
                    movie_id,
                    user_id,
                    result.status,
                )
                continue
            if isinstance(result, BaseException):
                raise result
            movies.append(result)

        logger.info(
            "Watchlist resolved for user %s: %s of %s movies",
            user_id,
            len(movies),
            len(movie_ids),
        )
        return movies
