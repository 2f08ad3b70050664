# movie_bot/handlers/message_handlers.py

from telegram import Message, Update
from telegram.ext import ContextTypes

from ..config import logger
from ..workflows.selection_workflow import handle_selection_message


async def handle_title_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Treats any non-command text as a title to look up and hands it to the
    selection workflow.
    """
    user = update.effective_user
    message = update.message
    if not user or not isinstance(message, Message) or not message.text:
        logger.warning(
            "handle_title_message: Update received without a user or valid message text. Ignoring."
        )
        return

    logger.info(f"User {user.id} sent a title: {message.text[:70]}")
    await handle_selection_message(update, context)
