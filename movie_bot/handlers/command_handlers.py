# movie_bot/handlers/command_handlers.py

from telegram import Update
from telegram.ext import ContextTypes

from ..config import logger
from ..state import get_chat_coordinator
from ..workflows.selection_workflow import send_welcome


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Greets the user. Also used for /help; any half-finished selection is dropped."""
    chat = update.effective_chat
    if not chat:
        logger.warning("start_command was triggered but could not find an effective_chat.")
        return

    coordinator = get_chat_coordinator(context.bot_data)
    coordinator.cancel_inflight(chat.id)
    async with coordinator.serialized(chat.id):
        await send_welcome(context, chat.id)
