# movie_bot/services/metadata_service.py

from typing import Any

import httpx

from ..config import HTTP_TIMEOUT_SECONDS, RESULTS_LIMIT, TMDB_API_BASE_URL, logger
from .media_models import DetailRecord, MediaType, ResultSummary


class MetadataServiceError(Exception):
    """Raised when TMDB cannot be reached or returns an unusable body."""


async def _get_json(url: str, params: dict[str, Any]) -> dict[str, Any]:
    """Performs a GET against TMDB and returns the decoded JSON object."""
    try:
        async with httpx.AsyncClient(
            timeout=HTTP_TIMEOUT_SECONDS, follow_redirects=True
        ) as client:
            response = await client.get(url, params=params)
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPStatusError as exc:
        raise MetadataServiceError(
            f"TMDB returned HTTP {exc.response.status_code} for {url}"
        ) from exc
    except httpx.HTTPError as exc:
        raise MetadataServiceError(f"TMDB request to {url} failed: {exc}") from exc
    except ValueError as exc:
        raise MetadataServiceError(f"TMDB returned invalid JSON for {url}") from exc

    if not isinstance(data, dict):
        raise MetadataServiceError(f"TMDB returned an unexpected body for {url}")
    return data


async def search_titles(
    api_key: str,
    media_type: MediaType,
    query: str,
    *,
    page: int = 1,
    limit: int = RESULTS_LIMIT,
) -> list[ResultSummary]:
    """
    Searches TMDB for movies or series matching the free-text query.

    Only the first `limit` hits are returned, in the provider's order.
    Malformed entries (no id) are skipped rather than failing the search.
    """
    url = f"{TMDB_API_BASE_URL}/search/{media_type.value}"
    logger.info(f"[TMDB] Searching {media_type.value} for '{query}' (page {page}).")
    data = await _get_json(url, {"api_key": api_key, "query": query, "page": page})

    raw_results = data.get("results")
    if not isinstance(raw_results, list):
        raise MetadataServiceError("TMDB search response has no 'results' list.")

    summaries: list[ResultSummary] = []
    for item in raw_results:
        if len(summaries) >= limit:
            break
        if not isinstance(item, dict) or item.get("id") is None:
            continue
        try:
            summaries.append(ResultSummary.from_tmdb(item, media_type))
        except (TypeError, ValueError) as exc:
            logger.warning(f"[TMDB] Skipping malformed search result {item!r}: {exc}")

    logger.info(f"[TMDB] '{query}' returned {len(summaries)} usable results.")
    return summaries


async def fetch_details(api_key: str, summary: ResultSummary) -> DetailRecord:
    """Fetches the full record for a selected result. Series details embed external ids."""
    url = f"{TMDB_API_BASE_URL}/{summary.media_type.value}/{summary.id}"
    params: dict[str, Any] = {"api_key": api_key}
    if summary.media_type is MediaType.TV:
        params["append_to_response"] = "external_ids"

    data = await _get_json(url, params)
    return DetailRecord.from_tmdb(data, summary)


async def fetch_imdb_id(api_key: str, tv_id: int) -> str | None:
    """Looks up the IMDb id of a series through the external-ids endpoint."""
    url = f"{TMDB_API_BASE_URL}/tv/{tv_id}/external_ids"
    data = await _get_json(url, {"api_key": api_key})
    imdb_id = data.get("imdb_id")
    return str(imdb_id) if imdb_id else None
