# movie_bot/ui/messages.py

from __future__ import annotations

import re
from typing import Iterable

from telegram.helpers import escape_markdown

from ..config import OVERVIEW_MAX_CHARS
from ..services.media_models import DetailRecord, MediaType, ResultSummary

WELCOME_TEXT = "🎬 Welcome to the Movie Bot! Send me a movie or series title to search."
TYPE_PROMPT_TEXT = "Is this a movie or a series?"
NO_RESULTS_TEXT = "❌ No results found. Try another title."
NOT_FOUND_TEXT = "❌ Not found. Please search again."
CONTEXT_EXPIRED_TEXT = "❓ This search has expired. Please send the title again."
INVALID_SELECTION_TEXT = "⚠️ Invalid selection."
SEARCH_FAILED_TEXT = "⚠️ Could not fetch data. Please try again later."
DETAILS_FAILED_TEXT = "❌ Couldn't fetch details for this title."
LINKS_FAILED_TEXT = "❌ Couldn't fetch download links."
NO_LINKS_TEXT = "⚠️ No downloadable links found."
NO_IMDB_ID_TEXT = "❌ Couldn't find an IMDb ID for this series."
NO_INVITE_TEXT = "⚠️ No invite link found."
MISSING_VALUE = "N/A"

GENRE_MAP: dict[int, str] = {
    28: "Action",
    12: "Adventure",
    16: "Animation",
    35: "Comedy",
    80: "Crime",
    99: "Documentary",
    18: "Drama",
    10751: "Family",
    14: "Fantasy",
    36: "History",
    27: "Horror",
    10402: "Music",
    9648: "Mystery",
    10749: "Romance",
    878: "Sci-Fi",
    10770: "TV Movie",
    53: "Thriller",
    10752: "War",
    37: "Western",
}

LANGUAGE_MAP: dict[str, str] = {
    "af": "afrikaans",
    "sq": "albanian",
    "am": "amharic",
    "ar": "arabic",
    "hy": "armenian",
    "az": "azerbaijani",
    "eu": "basque",
    "bn": "bengali",
    "bs": "bosnian",
    "bg": "bulgarian",
    "ca": "catalan",
    "zh": "chinese",
    "cn": "cantonese",
    "hr": "croatian",
    "cs": "czech",
    "da": "danish",
    "nl": "dutch",
    "en": "english",
    "eo": "esperanto",
    "et": "estonian",
    "fi": "finnish",
    "fr": "french",
    "ka": "georgian",
    "de": "german",
    "el": "greek",
    "gu": "gujarati",
    "he": "hebrew",
    "hi": "hindi",
    "hu": "hungarian",
    "is": "icelandic",
    "id": "indonesian",
    "it": "italian",
    "ja": "japanese",
    "kn": "kannada",
    "kk": "kazakh",
    "ko": "korean",
    "lv": "latvian",
    "lt": "lithuanian",
    "mk": "macedonian",
    "ml": "malayalam",
    "mr": "marathi",
    "ms": "malay",
    "nb": "norwegian bokmål",
    "ne": "nepali",
    "fa": "persian",
    "pl": "polish",
    "pt": "portuguese",
    "pa": "punjabi",
    "ro": "romanian",
    "ru": "russian",
    "sr": "serbian",
    "si": "sinhala",
    "sk": "slovak",
    "sl": "slovenian",
    "es": "spanish",
    "sv": "swedish",
    "ta": "tamil",
    "te": "telugu",
    "th": "thai",
    "tr": "turkish",
    "uk": "ukrainian",
}

_GENRE_SPLIT = re.compile(r"\s*(?:&|/|\band\b)\s*", re.IGNORECASE)
_TAG_UNSAFE = re.compile(r"[^\w]+")


def _md(text: str) -> str:
    return escape_markdown(text, version=2)


def map_genre_ids(genre_ids: Iterable[int]) -> list[str]:
    """Maps TMDB genre ids to names. Unknown ids are dropped."""
    return [GENRE_MAP[g] for g in genre_ids if g in GENRE_MAP]


def resolve_language_name(code: str) -> str:
    """Returns the language name for an ISO code, or the code itself when unmapped."""
    if not code:
        return MISSING_VALUE
    return LANGUAGE_MAP.get(code.lower(), code)


def to_hashtag(value: str) -> str:
    """'Sci-Fi' -> '#sci_fi'. Returns an empty string for blank input."""
    slug = _TAG_UNSAFE.sub("_", value.strip().lower()).strip("_")
    return f"#{slug}" if slug else ""


def format_genre_tags(genre_names: Iterable[str]) -> str:
    """
    Renders genre names as space-separated hashtags.

    Compound TMDB genres ("Action & Adventure", "War & Politics") are split
    into their parts. Duplicates are removed, order is kept. Returns "N/A"
    when nothing remains.
    """
    tags: list[str] = []
    for name in genre_names:
        for part in _GENRE_SPLIT.split(name):
            tag = to_hashtag(part)
            if tag and tag not in tags:
                tags.append(tag)
    return " ".join(tags) if tags else MISSING_VALUE


def truncate_overview(overview: str, limit: int = OVERVIEW_MAX_CHARS) -> str:
    """Hard-truncates text to `limit` characters followed by '...'."""
    if len(overview) <= limit:
        return overview
    return overview[:limit] + "..."


def format_rating(rating: float | None) -> str:
    if rating is None:
        return MISSING_VALUE
    return f"{rating:.1f}"


def build_movie_caption(detail: DetailRecord) -> str:
    """Builds the MarkdownV2 caption for a movie detail card."""
    summary = detail.summary
    genre_names = map_genre_ids(summary.genre_ids) or detail.genres
    language_tag = MISSING_VALUE
    if summary.original_language:
        language_tag = to_hashtag(resolve_language_name(summary.original_language)) or MISSING_VALUE
    overview = truncate_overview(detail.overview or summary.overview) or (
        "No overview available."
    )

    return (
        f"🎬 *{_md(summary.button_label)}*\n\n"
        f"📽️ Genre: {_md(format_genre_tags(genre_names))}\n\n"
        f"🌐 Language: {_md(language_tag)}\n\n"
        f"📅 Release Date: {_md(summary.release_date or MISSING_VALUE)}\n"
        f"⭐ Rating: {_md(format_rating(summary.rating))}\n\n"
        f"📝 Overview:\n{_md(overview)}"
    )


def build_series_caption(detail: DetailRecord) -> str:
    """Builds the MarkdownV2 caption for a series detail card."""
    summary = detail.summary
    genre_names = detail.genres or map_genre_ids(summary.genre_ids)
    countries = ", ".join(detail.countries) or MISSING_VALUE
    duration = (
        f"{detail.episode_runtime_minutes} min."
        if detail.episode_runtime_minutes
        else MISSING_VALUE
    )
    overview = truncate_overview(detail.overview or summary.overview) or (
        "No description available."
    )

    return (
        f"🎬 *{_md(summary.button_label)}*\n\n"
        f"⭐️ Rating: {_md(format_rating(summary.rating))}\n"
        f"🎭 Genre: {_md(format_genre_tags(genre_names))}\n"
        f"🌍 Country: {_md(countries)}\n"
        f"⏱️ Duration: {_md(duration)}\n"
        f"📺 Media Type: TV show\n\n"
        f"📋 *Story Line:* {_md(overview)}"
    )


def build_caption(detail: DetailRecord) -> str:
    if detail.summary.media_type is MediaType.MOVIE:
        return build_movie_caption(detail)
    return build_series_caption(detail)


def build_results_prompt(media_type: MediaType) -> str:
    return f"🎥 Select a {media_type.label}:"


def build_links_header(summary: ResultSummary, part: int, total_parts: int) -> str:
    """Plain-text header for a download-links message."""
    header = f"🎥 Download links for {summary.button_label}:"
    if total_parts > 1:
        header += f" ({part}/{total_parts})"
    return header
