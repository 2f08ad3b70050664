# movie_bot/handlers/callback_handlers.py

from telegram import Update
from telegram.error import TelegramError
from telegram.ext import ContextTypes

from ..config import logger
from ..workflows.selection_workflow import handle_selection_buttons


async def button_handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handles all callback queries from inline buttons.

    The query is answered first so the client stops its loading indicator;
    decoding and routing of the payload happen in the selection workflow.
    """
    query = update.callback_query
    if not query:
        return

    try:
        await query.answer()
    except TelegramError as e:
        # Queries older than a few minutes can no longer be answered.
        logger.debug(f"Could not answer callback query {query.id}: {e}")

    await handle_selection_buttons(update, context)
