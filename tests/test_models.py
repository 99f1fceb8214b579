import pytest

from app.models import (
    CatalogFilters,
    CatalogSnapshot,
    MovieRecord,
    ReviewRecord,
    SubResources,
    VideoRecord,
)


def test_movie_from_discover_payload_maps_fields():
    movie = MovieRecord.from_tmdb_payload(
        {
            "id": 550,
            "title": "Fight Club",
            "overview": "An insomniac office worker...",
            "poster_path": "/pB8BM7pdSp6B6Ih7QZ4DrQ3PmJK.jpg",
            "release_date": "1999-10-15",
            "vote_average": 8.4,
            "vote_count": 26280,
            "popularity": 61.416,
            "original_language": "en",
        }
    )

    assert movie.id == 550
    assert movie.vote_average == 8
    assert movie.popularity == pytest.approx(61.416)
    assert (movie.favorite, movie.popular, movie.toprated) == (False, False, False)
    assert movie.poster_url() == (
        "https://image.tmdb.org/t/p/w342/pB8BM7pdSp6B6Ih7QZ4DrQ3PmJK.jpg"
    )


def test_movie_accepts_tv_style_fields():
    movie = MovieRecord.from_tmdb_payload(
        {"id": "1396", "name": "Breaking Bad", "first_air_date": "2008-01-20", "poster_path": None}
    )

    assert movie.id == 1396
    assert movie.title == "Breaking Bad"
    assert movie.release_date == "2008-01-20"
    assert movie.poster_path == ""
    assert movie.poster_url() is None


def test_movie_without_id_is_rejected():
    with pytest.raises(ValueError):
        MovieRecord.from_tmdb_payload({"title": "No Id"})


def test_merged_with_unions_flags_and_keeps_incoming_fields():
    stored = MovieRecord(id=1, title="Old", favorite=True, popular=True)
    incoming = MovieRecord(id=1, title="New", toprated=True)

    merged = incoming.merged_with(stored)

    assert merged.title == "New"
    assert (merged.favorite, merged.popular, merged.toprated) == (True, True, True)


def test_video_payload_and_urls():
    video = VideoRecord.from_tmdb_payload(
        42,
        {
            "iso_639_1": "en",
            "iso_3166_1": "US",
            "key": "SUXWAEX2jlg",
            "site": "YouTube",
            "size": 1080,
            "type": "Trailer",
        },
    )

    assert video.movie_id == 42
    assert video.is_trailer
    assert video.image_url is None
    assert video.watch_url == "https://www.youtube.com/watch?v=SUXWAEX2jlg"
    assert video.embed_url == "https://www.youtube.com/embed/SUXWAEX2jlg"


def test_video_without_key_is_rejected():
    with pytest.raises(ValueError):
        VideoRecord.from_tmdb_payload(42, {"type": "Trailer"})


def test_review_requires_content():
    review = ReviewRecord.from_tmdb_payload(42, {"author": "Goddard", "content": "Pretty awesome."})
    assert review.author == "Goddard"
    with pytest.raises(ValueError):
        ReviewRecord.from_tmdb_payload(42, {"author": "Nobody"})


def test_sub_resources_completeness():
    trailer = VideoRecord(movie_id=1, key="a", type="Trailer", image_url="https://i.ytimg.com/a.jpg")
    review = ReviewRecord(movie_id=1, author="x", content="y")

    assert not SubResources(movie_id=1, videos=(trailer,)).is_complete()
    assert SubResources(movie_id=1, videos=(trailer,), reviews=(review,)).is_complete()


@pytest.mark.parametrize(
    ("filters", "expected"),
    [
        (CatalogFilters(), ("popular", "toprated")),
        (CatalogFilters(popular=False, toprated=False, favorites=True), ("favorites",)),
        (CatalogFilters(popular=False, toprated=False, favorites=False), ("popular",)),
    ],
)
def test_filters_active_order_and_fallback(filters, expected):
    assert filters.active() == expected


def test_snapshot_payload_includes_poster_urls():
    snapshot = CatalogSnapshot(
        movies=(MovieRecord(id=7, title="Seven", poster_path="/s.jpg"),), version=3
    )

    payload = snapshot.to_payload()

    assert payload["version"] == 3
    assert payload["filters"] == {"popular": True, "toprated": True, "favorites": False}
    assert payload["movies"][0]["poster_url"].endswith("/w342/s.jpg")
