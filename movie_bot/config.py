# movie_bot/config.py

import configparser
import logging
import os
import sys
from typing import Any

# --- Constants ---
RESULTS_LIMIT = 5
OVERVIEW_MAX_CHARS = 900
MESSAGE_CHUNK_SIZE = 4000
PHOTO_CAPTION_LIMIT = 1024
CALLBACK_DATA_MAX_BYTES = 64
HTTP_TIMEOUT_SECONDS = 30

TMDB_API_BASE_URL = "https://api.themoviedb.org/3"
TMDB_POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"

DEFAULT_PORT = 3000
DEFAULT_MOVIE_LINKS_API_URL = "https://t4tsa.cc/api/movie"
DEFAULT_SERIES_LINKS_API_URL = "https://api.t4tsa.cc/get-series/"
DEFAULT_FILE_BOT_USERNAME = "Phonofilmbot"
DEFAULT_LINK_CACHE_TTL_SECONDS = 30 * 60
DEFAULT_LINK_CACHE_MAX_ENTRIES = 256

_PLACEHOLDER_VALUES = {"PLACE_TOKEN_HERE", "PLACE_API_KEY_HERE"}
_TRUTHY = {"1", "true", "yes", "on"}

# Setup basic logging
logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_configuration() -> tuple[str, str, dict[str, Any], dict[str, Any]]:
    """
    Reads the bot token, TMDB API key, webhook settings and link resolver
    settings.

    Values come from `config.ini` (or the file named by MOVIE_BOT_CONFIG) and
    fall back to environment variables, so the bot can be deployed with a
    plain `.env`-style environment and no config file at all. Missing
    mandatory values terminate the process.
    """
    config_path = os.environ.get("MOVIE_BOT_CONFIG", "config.ini")
    parser = configparser.ConfigParser()
    if os.path.exists(config_path):
        with open(config_path, encoding="utf-8") as f:
            parser.read_string(f.read())
        logger.info(f"[CONFIG] Loaded configuration from '{config_path}'.")
    else:
        logger.info(
            f"[CONFIG] '{config_path}' not found. Reading settings from the environment."
        )

    token = _read_value(parser, "telegram", "bot_token", "TELEGRAM_BOT_TOKEN")
    if not token:
        logger.critical(
            f"Bot token not found. Set it in '{config_path}' or TELEGRAM_BOT_TOKEN."
        )
        sys.exit(1)

    api_key = _read_value(parser, "tmdb", "api_key", "MOVIE_API_KEY")
    if not api_key:
        logger.critical(
            f"TMDB API key not found. Set it in '{config_path}' or MOVIE_API_KEY."
        )
        sys.exit(1)

    webhook_config = _load_webhook_config(parser)
    link_config = _load_link_config(parser)

    return token, api_key, webhook_config, link_config


def _read_value(
    config: configparser.ConfigParser, section: str, key: str, env_var: str | None
) -> str | None:
    """Returns a config value, falling back to the environment. Placeholders count as unset."""
    value = config.get(section, key, fallback=None)
    if (value is None or not value.strip()) and env_var:
        value = os.environ.get(env_var)
    if value is None:
        return None
    value = value.strip()
    if not value or value in _PLACEHOLDER_VALUES:
        return None
    return value


def _load_webhook_config(config: configparser.ConfigParser) -> dict[str, Any]:
    """
    Resolves the delivery mode. Local mode uses long polling; otherwise a
    public webhook URL is mandatory.
    """
    local_raw = _read_value(config, "webhook", "local_mode", "LOCAL") or "false"
    local_mode = local_raw.lower() in _TRUTHY

    port_raw = _read_value(config, "webhook", "port", "PORT")
    try:
        port = int(port_raw) if port_raw else DEFAULT_PORT
    except ValueError:
        logger.critical(f"Invalid port value '{port_raw}'. It must be an integer.")
        sys.exit(1)

    url = _read_value(config, "webhook", "url", "WEBHOOK_URL")
    if not local_mode and not url:
        logger.critical(
            "Webhook mode requires a public URL. Set [webhook] url or WEBHOOK_URL, "
            "or enable local mode."
        )
        sys.exit(1)

    mode_label = "polling" if local_mode else "webhook"
    logger.info(f"[CONFIG] Delivery mode: {mode_label} (port {port}).")
    return {"url": (url or "").rstrip("/"), "port": port, "local_mode": local_mode}


def _load_link_config(config: configparser.ConfigParser) -> dict[str, Any]:
    """Loads link resolver endpoints and cache bounds, applying defaults."""
    movie_api_url = (
        _read_value(config, "links", "movie_api_url", "MOVIE_LINKS_API_URL")
        or DEFAULT_MOVIE_LINKS_API_URL
    )
    series_api_url = (
        _read_value(config, "links", "series_api_url", "SERIES_LINKS_API_URL")
        or DEFAULT_SERIES_LINKS_API_URL
    )
    file_bot_username = (
        _read_value(config, "links", "file_bot_username", "FILE_BOT_USERNAME")
        or DEFAULT_FILE_BOT_USERNAME
    ).lstrip("@")

    cache_ttl = config.getint(
        "links", "cache_ttl_seconds", fallback=DEFAULT_LINK_CACHE_TTL_SECONDS
    )
    cache_max_entries = config.getint(
        "links", "cache_max_entries", fallback=DEFAULT_LINK_CACHE_MAX_ENTRIES
    )

    return {
        "movie_api_url": movie_api_url,
        "series_api_url": series_api_url,
        "file_bot_username": file_bot_username,
        "cache_ttl_seconds": cache_ttl,
        "cache_max_entries": cache_max_entries,
    }
