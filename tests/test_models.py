from flickpick.models import MovieDetail, MovieSummary, UserAccount


def test_movie_summary_accepts_name_alias_and_ignores_unknown_fields():
    movie = MovieSummary.model_validate(
        {"id": 7, "name": "Aliased", "media_type": "movie", "internal": {"x": 1}}
    )

    assert movie.title == "Aliased"
    assert "internal" not in movie.model_dump()


def test_movie_detail_without_videos_has_no_trailer():
    movie = MovieDetail.model_validate({"id": 1, "title": "Quiet", "videos": None})

    assert movie.videos.results == []
    assert movie.trailer is None
    assert movie.model_dump(mode="json")["trailer"] is None


def test_movie_detail_skips_malformed_videos():
    movie = MovieDetail.model_validate(
        {
            "id": 1,
            "title": "Loud",
            "videos": {
                "results": [
                    "junk",
                    {"name": "no key"},
                    {"key": "abc", "site": "YouTube", "type": "Trailer"},
                ]
            },
        }
    )

    assert [video.key for video in movie.videos.results] == ["abc"]
    assert movie.model_dump(mode="json")["trailer"]["key"] == "abc"


def test_user_account_payloads():
    account = UserAccount(
        id="u1",
        email="a@b.com",
        username="al",
        password_hash="hash",
        genres=[28],
        watchlist=[5],
    )

    assert account.public_payload() == {"id": "u1", "username": "al", "email": "a@b.com"}
    assert account.profile_payload() == {"username": "al", "email": "a@b.com", "genres": [28]}
