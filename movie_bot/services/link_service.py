# movie_bot/services/link_service.py

from typing import Any
from urllib.parse import urlencode

import httpx

from ..config import (
    DEFAULT_LINK_CACHE_MAX_ENTRIES,
    DEFAULT_LINK_CACHE_TTL_SECONDS,
    HTTP_TIMEOUT_SECONDS,
    logger,
)
from .media_models import QUALITY_ORDER, DownloadEntry
from .response_cache import ResponseCache

_LINK_CACHE = ResponseCache(
    max_entries=DEFAULT_LINK_CACHE_MAX_ENTRIES, ttl=DEFAULT_LINK_CACHE_TTL_SECONDS
)


class LinkServiceError(Exception):
    """Raised when the link resolver is unreachable or returns garbage."""


def configure_link_cache(*, max_entries: int, ttl: float) -> None:
    """Replaces the process-wide link cache with one using the given bounds."""
    global _LINK_CACHE
    _LINK_CACHE = ResponseCache(max_entries=max_entries, ttl=ttl)
    logger.info(f"[LINKS] Link cache configured: {max_entries} entries, {ttl}s TTL.")


def clear_link_cache() -> None:
    """Clears the process-wide link cache (used in tests)."""
    _LINK_CACHE.clear()


def _build_url(base_url: str, params: dict[str, Any]) -> str:
    joiner = "&" if "?" in base_url else "?"
    return f"{base_url}{joiner}{urlencode(params)}"


async def _fetch_json(url: str) -> dict[str, Any]:
    try:
        async with httpx.AsyncClient(
            timeout=HTTP_TIMEOUT_SECONDS, follow_redirects=True
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPStatusError as exc:
        raise LinkServiceError(
            f"Link resolver returned HTTP {exc.response.status_code} for {url}"
        ) from exc
    except httpx.HTTPError as exc:
        raise LinkServiceError(f"Link resolver request to {url} failed: {exc}") from exc
    except ValueError as exc:
        raise LinkServiceError(f"Link resolver returned invalid JSON for {url}") from exc

    if not isinstance(data, dict):
        raise LinkServiceError(f"Link resolver returned an unexpected body for {url}")
    return data


def _parse_quality_buckets(data: dict[str, Any]) -> dict[str, list[DownloadEntry]]:
    """
    Converts the resolver's `qualities` mapping into ordered DownloadEntry
    buckets. Files without a message id cannot be delivered and are skipped,
    as are quality labels outside QUALITY_ORDER.
    """
    qualities = data.get("qualities") or {}
    if not isinstance(qualities, dict):
        raise LinkServiceError("Link resolver response has a malformed 'qualities' field.")

    unknown = set(qualities) - set(QUALITY_ORDER)
    if unknown:
        logger.debug(f"[LINKS] Ignoring unknown quality buckets: {sorted(unknown)}")

    buckets: dict[str, list[DownloadEntry]] = {}
    for quality in QUALITY_ORDER:
        entries: list[DownloadEntry] = []
        for file in qualities.get(quality) or []:
            if not isinstance(file, dict) or not file.get("message_id"):
                continue
            try:
                size = int(file.get("file_size") or 0)
                message_id = int(file["message_id"])
            except (TypeError, ValueError):
                continue
            entries.append(
                DownloadEntry(quality=quality, file_size=size, message_id=message_id)
            )
        if entries:
            buckets[quality] = entries
    return buckets


async def get_movie_links(
    movie_api_url: str, tmdb_id: int
) -> dict[str, list[DownloadEntry]]:
    """Returns the downloadable files for a movie grouped by quality, best first."""
    url = _build_url(movie_api_url, {"tmdb_id": tmdb_id})

    async def _fetch() -> dict[str, list[DownloadEntry]]:
        return _parse_quality_buckets(await _fetch_json(url))

    buckets = await _LINK_CACHE.get_or_fetch(url, _fetch)
    total = sum(len(entries) for entries in buckets.values())
    logger.info(f"[LINKS] Movie {tmdb_id}: {total} files across {len(buckets)} qualities.")
    return buckets


async def get_series_invite(series_api_url: str, imdb_id: str) -> str | None:
    """Returns the channel invite link for a series, or None if the resolver has none."""
    url = _build_url(series_api_url, {"imdb_id": imdb_id})

    async def _fetch() -> str | None:
        data = await _fetch_json(url)
        invite = data.get("invite_link")
        return str(invite) if invite else None

    invite = await _LINK_CACHE.get_or_fetch(url, _fetch)
    logger.info(f"[LINKS] Series {imdb_id}: invite {'found' if invite else 'missing'}.")
    return invite


def flatten_entries(buckets: dict[str, list[DownloadEntry]]) -> list[DownloadEntry]:
    """Flattens quality buckets into a single list, preserving quality order."""
    return [
        entry
        for quality in QUALITY_ORDER
        for entry in buckets.get(quality, [])
    ]
