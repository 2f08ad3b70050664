# movie_bot/handlers/error_handler.py

import json
import time
import traceback

from telegram import Update
from telegram.error import NetworkError, TimedOut
from telegram.ext import ContextTypes

from ..config import logger

TRANSIENT_LOG_INTERVAL_SECONDS = 60.0
_LAST_TRANSIENT_LOG: dict[str, float] = {}

USER_ERROR_TEXT = (
    "❌ An unexpected error occurred.\n\n"
    "I'm sorry, but I encountered a problem while processing your request. "
    "The issue has been logged. Please try again later."
)


def _should_log_transient(error: Exception) -> bool:
    key = type(error).__name__
    now = time.monotonic()
    last = _LAST_TRANSIENT_LOG.get(key)
    if last is not None and now - last < TRANSIENT_LOG_INTERVAL_SECONDS:
        return False
    _LAST_TRANSIENT_LOG[key] = now
    return True


async def global_error_handler(
    update: object, context: ContextTypes.DEFAULT_TYPE
) -> None:
    """
    Catches all unhandled exceptions and logs them with the update that caused
    them. Transient network failures (polling hiccups, timeouts) are logged as
    a single warning per minute and never reach the user.
    """
    if not context.error:
        logger.warning("Error handler was called but context.error is None.")
        return

    if isinstance(context.error, (NetworkError, TimedOut)) and not isinstance(
        update, Update
    ):
        if _should_log_transient(context.error):
            logger.warning(f"Transient network error: {context.error}")
        return

    logger.error("An unhandled exception occurred:", exc_info=context.error)

    tb_string = "".join(
        traceback.format_exception(
            type(context.error), context.error, context.error.__traceback__
        )
    )
    update_str = update.to_dict() if isinstance(update, Update) else str(update)
    context_message = (
        f"update = {json.dumps(update_str, indent=2, ensure_ascii=False, default=str)}\n\n"
        f"context.chat_data = {context.chat_data}\n\n"
        f"Traceback:\n{tb_string}"
    )
    logger.error(f"DETAILED EXCEPTION REPORT:\n{context_message}")

    if isinstance(update, Update) and update.effective_message:
        # Plain text so a stray character can't trigger a second parse error.
        try:
            await update.effective_message.reply_text(text=USER_ERROR_TEXT)
        except Exception as e:
            logger.error(f"Failed to send the user-facing error message: {e}")
