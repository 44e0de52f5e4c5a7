"""Pydantic models describing API payloads and catalog responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)


@dataclass(slots=True)
class UserAccount:
    """Snapshot of a stored user record.

    ``password_hash`` is kept out of ``repr`` and of every payload helper.
    """

    id: str
    email: str
    username: str
    password_hash: str = field(repr=False)
    genres: list[int] = field(default_factory=list)
    watchlist: list[int] = field(default_factory=list)
    version: int = 1

    @classmethod
    def from_record(cls, record: Any) -> "UserAccount":
        return cls(
            id=record.id,
            email=record.email,
            username=record.username,
            password_hash=record.password_hash,
            genres=list(record.genres or []),
            watchlist=list(record.watchlist or []),
            version=record.version or 1,
        )

    def public_payload(self) -> dict[str, Any]:
        return UserPublic(id=self.id, username=self.username, email=self.email).model_dump()

    def profile_payload(self) -> dict[str, Any]:
        return ProfileResponse(
            username=self.username, email=self.email, genres=list(self.genres)
        ).model_dump()


class RegisterRequest(BaseModel):
    username: str = Field(min_length=1)
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)

    @field_validator("username", "email", mode="after")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Value may not be blank")
        return value


class LoginRequest(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)

    @field_validator("email", mode="after")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Value may not be blank")
        return value


class UserPublic(BaseModel):
    id: str
    username: str
    email: str


class AuthResponse(BaseModel):
    token: str
    user: UserPublic


class ProfileResponse(BaseModel):
    username: str
    email: str
    genres: list[int] = Field(default_factory=list)


class MessageResponse(BaseModel):
    message: str


class MovieSummary(BaseModel):
    """Normalized view of a movie entry in a TMDB result list."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    title: str = Field(default="", validation_alias=AliasChoices("title", "name"))
    original_title: str | None = None
    overview: str | None = None
    poster_path: str | None = None
    backdrop_path: str | None = None
    release_date: str | None = None
    genre_ids: list[int] = Field(default_factory=list)
    original_language: str | None = None
    popularity: float | None = None
    vote_average: float | None = None
    vote_count: int | None = None
    adult: bool = False


class Genre(BaseModel):
    id: int
    name: str = ""


class MovieVideo(BaseModel):
    """Trailer/clip metadata attached to a movie."""

    key: str
    name: str = ""
    site: str = ""
    type: str = ""
    official: bool = False
    published_at: str | None = None


class VideoCollection(BaseModel):
    results: list[MovieVideo] = Field(default_factory=list)

    @field_validator("results", mode="before")
    @classmethod
    def _drop_malformed(cls, value: object) -> list[object]:
        if not isinstance(value, list):
            return []
        return [entry for entry in value if isinstance(entry, dict) and entry.get("key")]


class MovieDetail(MovieSummary):
    """Full movie record including video metadata."""

    genres: list[Genre] = Field(default_factory=list)
    runtime: int | None = None
    tagline: str | None = None
    status: str | None = None
    homepage: str | None = None
    imdb_id: str | None = None
    budget: int | None = None
    revenue: int | None = None
    videos: VideoCollection = Field(default_factory=VideoCollection)

    @field_validator("videos", mode="before")
    @classmethod
    def _default_videos(cls, value: object) -> object:
        if value is None:
            return {}
        return value

    @computed_field  # type: ignore[prop-decorator]
    @property
    def trailer(self) -> MovieVideo | None:
        """Return the first YouTube trailer, preferring official uploads."""

        candidates = [
            video
            for video in self.videos.results
            if video.site.lower() == "youtube" and video.type.lower() == "trailer"
        ]
        if not candidates:
            return None
        official = [video for video in candidates if video.official]
        return (official or candidates)[0]
