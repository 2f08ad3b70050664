import re

import pytest

from movie_bot.services.media_models import DetailRecord, MediaType
from movie_bot.ui.messages import (
    build_caption,
    build_links_header,
    build_movie_caption,
    build_results_prompt,
    build_series_caption,
    format_genre_tags,
    format_rating,
    map_genre_ids,
    resolve_language_name,
    to_hashtag,
    truncate_overview,
)

MARKDOWN_V2_SPECIALS = "_*[]()~`>#+-=|{}.!"


def _unescape(text: str) -> str:
    return re.sub(r"\\(.)", r"\1", text)


def test_truncate_overview_keeps_short_text():
    text = "x" * 900
    assert truncate_overview(text) == text


def test_truncate_overview_cuts_long_text():
    text = "".join(str(i % 10) for i in range(1200))
    result = truncate_overview(text)
    assert result == text[:900] + "..."
    assert len(result) == 903


def test_map_genre_ids_drops_unknown_ids():
    assert map_genre_ids([28, 999999, 878]) == ["Action", "Sci-Fi"]


@pytest.mark.parametrize(
    "code, expected",
    [("en", "english"), ("KO", "korean"), ("xx", "xx"), ("", "N/A")],
)
def test_resolve_language_name(code, expected):
    assert resolve_language_name(code) == expected


def test_format_genre_tags_splits_compound_genres():
    tags = format_genre_tags(["Action & Adventure", "Sci-Fi & Fantasy", "War & Politics", "Action"])
    assert tags == "#action #adventure #sci_fi #fantasy #war #politics"


def test_format_genre_tags_empty():
    assert format_genre_tags([]) == "N/A"


def test_to_hashtag():
    assert to_hashtag("Science Fiction") == "#science_fiction"
    assert to_hashtag("  ") == ""


def test_format_rating():
    assert format_rating(8.366) == "8.4"
    assert format_rating(None) == "N/A"


def test_movie_caption_contains_title_and_rating(make_summary):
    summary = make_summary(genre_ids=(28, 878), original_language="en", rating=8.4, overview="A thief.")
    caption = build_movie_caption(DetailRecord(summary=summary))

    assert caption.startswith("🎬 *Inception \\(2010\\)*")
    assert "⭐ Rating: 8\\.4" in caption
    assert "\\#action \\#sci\\_fi" in caption
    assert "🌐 Language: \\#english" in caption


def test_movie_caption_missing_fields_render_na(make_summary):
    summary = make_summary(title="Obscure", year="N/A")
    caption = build_movie_caption(DetailRecord(summary=summary))

    assert "📽️ Genre: N/A" in caption
    assert "🌐 Language: N/A" in caption
    assert "⭐ Rating: N/A" in caption
    assert "No overview available\\." in caption


def test_series_caption(make_summary):
    summary = make_summary(id=1399, title="Game of Thrones", year="2011", media_type=MediaType.TV, rating=8.4)
    detail = DetailRecord(
        summary=summary,
        genres=["Sci-Fi & Fantasy", "Drama"],
        countries=["US", "GB"],
        episode_runtime_minutes=60,
        overview="Nine noble families.",
    )

    caption = build_caption(detail)

    assert caption == build_series_caption(detail)
    assert "🎭 Genre: \\#sci\\_fi \\#fantasy \\#drama" in caption
    assert "🌍 Country: US, GB" in caption
    assert "⏱️ Duration: 60 min\\." in caption
    assert "📺 Media Type: TV show" in caption


def test_caption_escaping_preserves_visible_text(make_summary):
    title = "Weird *_[]()~`>#+-=|{}.!\\ Title"
    summary = make_summary(title=title, year="1999", overview=MARKDOWN_V2_SPECIALS)
    caption = build_movie_caption(DetailRecord(summary=summary))

    first_line = caption.splitlines()[0]
    # Every MarkdownV2 special inside the title is escaped...
    inner = first_line[len("🎬 *") : -1]
    assert not re.search(r"(?<!\\)[_*\[\]()~`>#+\-=|{}.!]", inner.replace("\\\\", ""))
    # ...and rendering the escapes gives back the literal title.
    assert _unescape(inner) == f"{title} (1999)"
    assert _unescape(caption.split("📝 Overview:\n", 1)[1]) == MARKDOWN_V2_SPECIALS


def test_results_prompt_wording():
    assert build_results_prompt(MediaType.MOVIE) == "🎥 Select a movie:"
    assert build_results_prompt(MediaType.TV) == "🎥 Select a series:"


def test_links_header_numbers_parts(make_summary):
    summary = make_summary()
    assert build_links_header(summary, 1, 1) == "🎥 Download links for Inception (2010):"
    assert build_links_header(summary, 2, 3).endswith("(2/3)")
