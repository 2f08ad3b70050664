from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

QUALITY_ORDER: tuple[str, ...] = (
    "2160p",
    "1440p",
    "1080p",
    "720p",
    "480p",
    "360p",
    "unsorted",
)


class MediaType(str, Enum):
    """Media classification; values double as TMDB path segments."""

    MOVIE = "movie"
    TV = "tv"

    @property
    def label(self) -> str:
        return "movie" if self is MediaType.MOVIE else "series"


@dataclass(frozen=True)
class ResultSummary:
    """One search hit, kept verbatim until the user picks an item.

    Attributes:
        id: TMDB identifier.
        media_type: Whether the hit came from the movie or tv search.
        title: ``title`` for movies, ``name`` for series.
        year: First four characters of the release / first-air date, or "N/A".
        release_date: Raw date string as returned by TMDB (may be empty).
        poster_path: Relative poster path, if TMDB has one.
        genre_ids: Numeric TMDB genre ids.
        original_language: ISO 639-1 code.
        overview: Plot summary (may be empty).
        rating: ``vote_average``.
    """

    id: int
    media_type: MediaType
    title: str
    year: str = "N/A"
    release_date: str = ""
    poster_path: str | None = None
    genre_ids: tuple[int, ...] = ()
    original_language: str = ""
    overview: str = ""
    rating: float | None = None

    @property
    def button_label(self) -> str:
        return f"{self.title} ({self.year})"

    @classmethod
    def from_tmdb(cls, payload: dict[str, Any], media_type: MediaType) -> "ResultSummary":
        if media_type is MediaType.MOVIE:
            title = payload.get("title") or payload.get("name")
            release_date = payload.get("release_date") or ""
        else:
            title = payload.get("name") or payload.get("title")
            release_date = payload.get("first_air_date") or ""

        year = str(release_date)[:4] or "N/A"
        raw_genres = payload.get("genre_ids") or []
        genre_ids = tuple(g for g in raw_genres if isinstance(g, int))

        rating = payload.get("vote_average")
        return cls(
            id=int(payload["id"]),
            media_type=media_type,
            title=str(title or "Untitled"),
            year=year,
            release_date=str(release_date),
            poster_path=payload.get("poster_path") or None,
            genre_ids=genre_ids,
            original_language=str(payload.get("original_language") or ""),
            overview=str(payload.get("overview") or ""),
            rating=float(rating) if isinstance(rating, (int, float)) else None,
        )


@dataclass
class DetailRecord:
    """Full details fetched after the user selects a result."""

    summary: ResultSummary
    genres: list[str] = field(default_factory=list)
    countries: list[str] = field(default_factory=list)
    episode_runtime_minutes: int | None = None
    imdb_id: str | None = None
    overview: str = ""

    @classmethod
    def from_tmdb(
        cls, payload: dict[str, Any], summary: ResultSummary
    ) -> "DetailRecord":
        genres = [
            str(g["name"])
            for g in payload.get("genres") or []
            if isinstance(g, dict) and g.get("name")
        ]

        countries = [str(c) for c in payload.get("origin_country") or [] if c]
        if not countries:
            countries = [
                str(c.get("iso_3166_1"))
                for c in payload.get("production_countries") or []
                if isinstance(c, dict) and c.get("iso_3166_1")
            ]

        runtimes = payload.get("episode_run_time") or []
        runtime = runtimes[0] if runtimes and isinstance(runtimes[0], int) else None

        external_ids = payload.get("external_ids") or {}
        imdb_id = payload.get("imdb_id") or external_ids.get("imdb_id") or None

        return cls(
            summary=summary,
            genres=genres,
            countries=countries,
            episode_runtime_minutes=runtime,
            imdb_id=imdb_id,
            overview=str(payload.get("overview") or summary.overview or ""),
        )


@dataclass(frozen=True)
class DownloadEntry:
    quality: str
    file_size: int
    message_id: int
