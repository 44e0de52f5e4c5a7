"""Client for The Movie Database (TMDB) API."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..errors import InvalidInputError, UpstreamError
from ..models import MovieDetail, MovieSummary

logger = logging.getLogger(__name__)


class TMDBClient:
    """Translate catalog queries into TMDB requests and normalize the replies.

    Every failure, whether a timeout, a transport error, a non-2xx status or
    an unusable body, is raised as ``UpstreamError``.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        if not settings.tmdb_api_key:
            raise ValueError("TMDB API key is required when initialising TMDBClient")
        self._settings = settings
        self._client = http_client

    async def trending(self) -> list[MovieSummary]:
        payload = await self._get(
            "/trending/movie/week",
            failure_message="Failed to fetch trending movies",
        )
        return self._parse_results(payload, "Failed to fetch trending movies")

    async def top_rated(self) -> list[MovieSummary]:
        payload = await self._get(
            "/movie/top_rated",
            failure_message="Failed to fetch top-rated movies",
        )
        return self._parse_results(payload, "Failed to fetch top-rated movies")

    async def search(self, query: str) -> list[MovieSummary]:
        normalized = (query or "").strip()
        if not normalized:
            raise InvalidInputError("Query parameter is required")
        payload = await self._get(
            "/search/movie",
            params={"query": normalized},
            failure_message="Failed to fetch search results",
        )
        return self._parse_results(payload, "Failed to fetch search results")

    async def discover_by_genre(self, genre_id: int) -> list[MovieSummary]:
        payload = await self._get(
            "/discover/movie",
            params={"with_genres": genre_id, "sort_by": "popularity.desc"},
            failure_message="Failed to fetch recommended movies",
        )
        return self._parse_results(payload, "Failed to fetch recommended movies")

    async def details(self, movie_id: int) -> MovieDetail:
        """Return the full record for ``movie_id`` including its videos."""

        payload = await self._get(
            f"/movie/{int(movie_id)}",
            params={"append_to_response": "videos"},
            failure_message="Failed to fetch movie details",
        )
        if not isinstance(payload, dict):
            raise UpstreamError(message="Failed to fetch movie details")
        try:
            return MovieDetail.model_validate(payload)
        except ValidationError as exc:
            logger.warning("TMDB returned an unusable record for movie %s: %s", movie_id, exc)
            raise UpstreamError(message="Failed to fetch movie details") from exc

    async def _get(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        failure_message: str,
    ) -> Any:
        logger.info("TMDB request %s %s", path, dict(params or {}))
        query: dict[str, Any] = {**(params or {}), "api_key": self._settings.tmdb_api_key}

        try:
            response = await self._client.get(
                path,
                params=query,
                headers={"Accept": "application/json"},
            )
        except httpx.TimeoutException as exc:
            logger.warning("TMDB request %s timed out: %s", path, exc.__class__.__name__)
            raise UpstreamError(message=failure_message) from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "TMDB request %s failed: %s", path, exc.__class__.__name__
            )
            raise UpstreamError(message=failure_message) from exc

        if not response.is_success:
            logger.warning(
                "TMDB request %s returned %s: %s",
                path,
                response.status_code,
                response.text[:500],
            )
            raise UpstreamError(response.status_code, failure_message)

        try:
            return response.json()
        except ValueError as exc:
            logger.warning("TMDB request %s returned a non-JSON body", path)
            raise UpstreamError(message=failure_message) from exc

    @staticmethod
    def _parse_results(payload: Any, failure_message: str) -> list[MovieSummary]:
        if not isinstance(payload, dict) or not isinstance(payload.get("results"), list):
            logger.warning("TMDB list response is missing its results array")
            raise UpstreamError(message=failure_message)

        movies: list[MovieSummary] = []
        for entry in payload["results"]:
            if not isinstance(entry, dict):
                continue
            try:
                movies.append(MovieSummary.model_validate(entry))
            except ValidationError as exc:
                logger.debug("Skipping malformed TMDB entry %s: %s", entry.get("id"), exc)
        logger.info("TMDB returned %s results", len(movies))
        return movies
