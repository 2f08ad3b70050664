# __main__.py

import re

# Ensure PTB env flags are set before importing python-telegram-bot
from movie_bot import _ptb_env  # noqa: F401
from telegram import Update
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    MessageHandler,
    filters,
)

from movie_bot.config import HTTP_TIMEOUT_SECONDS, get_configuration, logger
from movie_bot.handlers.callback_handlers import button_handler
from movie_bot.handlers.command_handlers import start_command
from movie_bot.handlers.error_handler import global_error_handler
from movie_bot.handlers.message_handlers import handle_title_message
from movie_bot.state import post_init, post_shutdown
from movie_bot.webhook import run_webhook_server


def register_handlers(application: Application) -> None:
    """
    Registers the command, message, and callback handlers for the bot.
    """
    # Commands are matched case-insensitively and need the leading slash.
    application.add_handler(
        MessageHandler(
            filters.Regex(re.compile(r"^/(start|help)$", re.IGNORECASE)),
            start_command,
        )
    )

    # Callback Query Handler for all button presses
    application.add_handler(CallbackQueryHandler(button_handler))

    # Every other text message is a title to look up
    application.add_handler(
        MessageHandler(filters.TEXT & ~filters.COMMAND, handle_title_message)
    )

    application.add_error_handler(global_error_handler)

    logger.info("All handlers have been registered.")


def build_application(
    token: str, api_key: str, webhook_config: dict, link_config: dict
) -> Application:
    # Updates from different chats run concurrently; the per-chat lock in
    # ChatCoordinator keeps each chat's updates in order.
    application = (
        ApplicationBuilder()
        .token(token)
        .concurrent_updates(True)
        .read_timeout(HTTP_TIMEOUT_SECONDS)
        .write_timeout(HTTP_TIMEOUT_SECONDS)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )

    application.bot_data["TMDB_API_KEY"] = api_key
    application.bot_data["WEBHOOK_CONFIG"] = webhook_config
    application.bot_data["LINK_CONFIG"] = link_config

    register_handlers(application)
    return application


def main() -> None:
    """
    Main function to initialize and run the Telegram bot.
    """
    logger.info("Starting bot...")

    token, api_key, webhook_config, link_config = get_configuration()
    application = build_application(token, api_key, webhook_config, link_config)

    if webhook_config["local_mode"]:
        logger.info("Bot startup complete. Starting polling...")
        application.run_polling(allowed_updates=Update.ALL_TYPES)
    else:
        logger.info("Bot startup complete. Starting webhook server...")
        run_webhook_server(application, token, webhook_config)


if __name__ == "__main__":
    main()
