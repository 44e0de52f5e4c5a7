"""Configuration settings behaviour tests."""

from __future__ import annotations

import pytest

from flickpick.config import Settings


def test_allowed_origins_parsed_from_comma_list() -> None:
    """Origins are trimmed, stripped of trailing slashes and de-duplicated."""

    settings = Settings(
        _env_file=None,
        ALLOWED_ORIGINS="https://app.example.com/, https://admin.example.com,https://app.example.com",
    )

    assert settings.allowed_origins == (
        "https://app.example.com",
        "https://admin.example.com",
    )


def test_allowed_origins_blank_defaults_to_wildcard() -> None:
    settings = Settings(_env_file=None, ALLOWED_ORIGINS=" , ")

    assert settings.allowed_origins == ("*",)


def test_blank_secrets_are_treated_as_unset() -> None:
    settings = Settings(_env_file=None, JWT_SECRET="   ", TMDB_API_KEY="")

    assert settings.jwt_secret is None
    assert settings.tmdb_api_key is None


def test_bcrypt_work_factor_has_a_floor() -> None:
    """A work factor below 10 should be rejected outright."""

    with pytest.raises(ValueError):
        Settings(_env_file=None, BCRYPT_ROUNDS=8)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("/api", "/api"), ("api/", "/api"), ("/v1/api/", "/v1/api"), ("", ""), ("/", "")],
)
def test_api_prefix_normalisation(raw: str, expected: str) -> None:
    settings = Settings(_env_file=None, API_PREFIX=raw)

    assert settings.api_prefix == expected
