# movie_bot/utils.py

import asyncio
from datetime import timedelta
from typing import Any

from telegram import Message, Bot
from telegram.error import (
    BadRequest,
    NetworkError,
    RetryAfter,
    TelegramError,
    TimedOut,
)

from .config import MESSAGE_CHUNK_SIZE, logger


def format_bytes(size_bytes: int) -> str:
    """Converts bytes into a human-readable string using 1024-based units (e.g. '1.5 MB')."""
    if size_bytes <= 0:
        return "0 B"
    size_name = ("B", "KB", "MB", "GB", "TB")
    i = 0
    value = float(size_bytes)
    # Exact powers of 1024 must land in the larger unit (1024 -> "1 KB").
    while value >= 1024 and i < len(size_name) - 1:
        value /= 1024
        i += 1
    s = round(value, 2)
    return f"{s:g} {size_name[i]}"


def chunk_text(text: str, size: int = MESSAGE_CHUNK_SIZE) -> list[str]:
    """
    Splits text into consecutive pieces of at most `size` characters.

    Boundaries are arbitrary (no word or line awareness); joining the chunks
    yields the original text.
    """
    if size <= 0:
        raise ValueError("chunk size must be positive")
    return [text[i : i + size] for i in range(0, len(text), size)]


def _retry_after_seconds(exc: RetryAfter, default: float) -> float:
    ra = getattr(exc, "retry_after", None)
    if isinstance(ra, timedelta):
        return ra.total_seconds()
    try:
        return float(ra) if ra is not None else default
    except (TypeError, ValueError):
        return default


async def safe_send_message(
    bot: Bot | Any,
    /,
    chat_id: int | None = None,
    text: str | None = None,
    *,
    max_attempts: int = 3,
    base_delay: float = 0.6,
    **kwargs: Any,
) -> Message:
    """
    Sends a message with retries on transient Telegram/network errors.

    Rejections such as BadRequest or Forbidden are raised on the first attempt.
    Returns the sent Message on success, or raises the last exception.
    """
    if text is None:
        raise ValueError("safe_send_message requires 'text'.")
    if chat_id is None:
        raise ValueError("safe_send_message requires 'chat_id'.")

    attempt = 0
    delay = base_delay
    last_exc: Exception | None = None

    while attempt < max_attempts:
        try:
            return await bot.send_message(chat_id=chat_id, text=text, **kwargs)
        except RetryAfter as e:  # Respect server backoff
            await asyncio.sleep(_retry_after_seconds(e, delay) + 0.1)
            last_exc = e
        except BadRequest:
            # Subclass of NetworkError, but never transient
            raise
        except (TimedOut, NetworkError) as e:
            # Transient network conditions, exponential backoff
            await asyncio.sleep(delay)
            delay *= 2
            last_exc = e
        attempt += 1

    # Exhausted retries
    assert last_exc is not None
    raise last_exc


async def send_chunked_message(
    bot: Bot | Any, chat_id: int, text: str, **kwargs: Any
) -> list[Message]:
    """Sends text as one or more messages of at most MESSAGE_CHUNK_SIZE characters, in order."""
    sent: list[Message] = []
    for chunk in chunk_text(text):
        sent.append(await safe_send_message(bot, chat_id=chat_id, text=chunk, **kwargs))
    return sent


async def safe_delete_message(bot: Bot | Any, chat_id: int, message_id: int | None) -> bool:
    """
    Deletes a message, ignoring Telegram's refusals (message too old, already
    gone, missing rights). Returns True if the message was deleted.
    """
    if message_id is None:
        return False
    try:
        await bot.delete_message(chat_id=chat_id, message_id=message_id)
        return True
    except TelegramError as e:
        logger.debug(f"Could not delete message {message_id} in chat {chat_id}: {e}")
        return False


async def safe_clear_reply_markup(
    bot: Bot | Any, chat_id: int, message_id: int | None
) -> bool:
    """Removes the inline keyboard from a message. Failures are ignored."""
    if message_id is None:
        return False
    try:
        await bot.edit_message_reply_markup(
            chat_id=chat_id, message_id=message_id, reply_markup=None
        )
        return True
    except TelegramError as e:
        logger.debug(f"Could not clear keyboard on message {message_id} in chat {chat_id}: {e}")
        return False
