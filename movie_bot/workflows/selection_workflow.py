# movie_bot/workflows/selection_workflow.py

from typing import Any

from telegram import Message, Update
from telegram.error import TelegramError
from telegram.ext import ContextTypes

from ..config import (
    DEFAULT_FILE_BOT_USERNAME,
    DEFAULT_MOVIE_LINKS_API_URL,
    DEFAULT_SERIES_LINKS_API_URL,
    logger,
)
from ..services import link_service, metadata_service
from ..services.link_service import LinkServiceError
from ..services.media_models import DetailRecord, MediaType, ResultSummary
from ..services.metadata_service import MetadataServiceError
from ..state import get_chat_coordinator, get_session_store
from ..ui.callback_tokens import ItemChoice, TypeChoice, decode_token
from ..ui.messages import (
    CONTEXT_EXPIRED_TEXT,
    DETAILS_FAILED_TEXT,
    INVALID_SELECTION_TEXT,
    LINKS_FAILED_TEXT,
    NO_IMDB_ID_TEXT,
    NO_INVITE_TEXT,
    NO_LINKS_TEXT,
    NO_RESULTS_TEXT,
    NOT_FOUND_TEXT,
    SEARCH_FAILED_TEXT,
    TYPE_PROMPT_TEXT,
    WELCOME_TEXT,
    build_links_header,
    build_results_prompt,
)
from ..ui.views import (
    build_download_keyboards,
    build_invite_keyboard,
    build_media_type_keyboard,
    build_results_keyboard,
    send_detail_card,
    send_prompt,
)
from ..utils import safe_clear_reply_markup, safe_delete_message, safe_send_message
from .selection_session import (
    IDLE,
    AwaitingItemChoice,
    AwaitingTypeChoice,
    ChatSession,
    SelectionSessionError,
    describe_session,
    pending_prompt_id,
    require_item_choice,
    require_type_choice,
)

START_COMMANDS = ("/start",)


def _load_session(context: ContextTypes.DEFAULT_TYPE, chat_id: int) -> ChatSession:
    return get_session_store(context.bot_data).get(chat_id) or IDLE


def _link_config(context: ContextTypes.DEFAULT_TYPE) -> dict[str, Any]:
    config = context.bot_data.get("LINK_CONFIG") or {}
    return {
        "movie_api_url": config.get("movie_api_url", DEFAULT_MOVIE_LINKS_API_URL),
        "series_api_url": config.get("series_api_url", DEFAULT_SERIES_LINKS_API_URL),
        "file_bot_username": config.get(
            "file_bot_username", DEFAULT_FILE_BOT_USERNAME
        ),
    }


async def _notify(context: ContextTypes.DEFAULT_TYPE, chat_id: int, text: str) -> None:
    """Sends a plain-text status reply. A failure here is logged, never raised."""
    try:
        await safe_send_message(context.bot, chat_id=chat_id, text=text)
    except TelegramError as e:
        logger.error(f"[FLOW] Could not send status message to chat {chat_id}: {e}")


# --- Entry points (called by the PTB handlers) ---


async def handle_selection_message(
    update: Update, context: ContextTypes.DEFAULT_TYPE
) -> None:
    """
    Starts a new selection for a free-text title. Any delivery still running
    for the chat is cancelled before the message queues on the chat lock.
    """
    message = update.message
    chat = update.effective_chat
    if not isinstance(message, Message) or not message.text or not chat:
        return

    coordinator = get_chat_coordinator(context.bot_data)
    coordinator.cancel_inflight(chat.id)
    async with coordinator.serialized(chat.id):
        await handle_text(chat.id, message.text, message.message_id, context)


async def handle_selection_buttons(
    update: Update, context: ContextTypes.DEFAULT_TYPE
) -> None:
    """Routes a decoded button press to the type or item step under the chat lock."""
    query = update.callback_query
    chat = update.effective_chat
    if not query or not chat:
        return

    prompt_message_id = (
        query.message.message_id if isinstance(query.message, Message) else None
    )
    token = decode_token(query.data)

    async with get_chat_coordinator(context.bot_data).serialized(chat.id):
        if isinstance(token, TypeChoice):
            await handle_type_choice(
                chat.id, token.media_type, prompt_message_id, context
            )
        elif isinstance(token, ItemChoice):
            await handle_item_choice(chat.id, token.index, prompt_message_id, context)
        else:
            logger.warning(
                f"[FLOW] Ignoring malformed callback payload {query.data!r} in chat {chat.id}."
            )
            await _notify(context, chat.id, INVALID_SELECTION_TEXT)


# --- Steps ---


async def send_welcome(context: ContextTypes.DEFAULT_TYPE, chat_id: int) -> None:
    get_session_store(context.bot_data).clear(chat_id)
    await _notify(context, chat_id, WELCOME_TEXT)


async def handle_text(
    chat_id: int, text: str, message_id: int | None, context: ContextTypes.DEFAULT_TYPE
) -> None:
    """Stores the query as pending and asks whether it is a movie or a series."""
    query = text.strip()
    if query.lower() in START_COMMANDS:
        await send_welcome(context, chat_id)
        return
    if not query:
        return

    store = get_session_store(context.bot_data)
    previous = _load_session(context, chat_id)
    previous_prompt = pending_prompt_id(previous)
    if isinstance(previous, AwaitingTypeChoice):
        logger.info(
            f"[FLOW] Chat {chat_id}: '{query}' supersedes pending query '{previous.query}'."
        )
        await safe_delete_message(context.bot, chat_id, previous_prompt)
    elif previous_prompt is not None:
        await safe_clear_reply_markup(context.bot, chat_id, previous_prompt)

    store.set(chat_id, AwaitingTypeChoice(query=query, user_message_id=message_id))
    try:
        prompt = await send_prompt(
            context.bot, chat_id, TYPE_PROMPT_TEXT, build_media_type_keyboard()
        )
    except TelegramError as e:
        logger.error(f"[FLOW] Could not send the type prompt to chat {chat_id}: {e}")
        store.clear(chat_id)
        return

    # The prompt id is only known once Telegram has accepted the message.
    store.set(
        chat_id,
        AwaitingTypeChoice(
            query=query, user_message_id=message_id, prompt_message_id=prompt.message_id
        ),
    )
    logger.info(f"[FLOW] Chat {chat_id}: awaiting type choice for '{query}'.")


async def handle_type_choice(
    chat_id: int,
    media_type: MediaType,
    prompt_message_id: int | None,
    context: ContextTypes.DEFAULT_TYPE,
) -> None:
    """Runs the search for the pending query and presents the results as buttons."""
    store = get_session_store(context.bot_data)
    session = _load_session(context, chat_id)
    try:
        pending = require_type_choice(session)
    except SelectionSessionError as exc:
        logger.info(
            f"[FLOW] Chat {chat_id}: type choice arrived while {describe_session(session)}."
        )
        await _notify(context, chat_id, exc.user_message)
        if not isinstance(session, AwaitingItemChoice):
            store.clear(chat_id)
        return

    if (
        prompt_message_id is not None
        and pending.prompt_message_id is not None
        and prompt_message_id != pending.prompt_message_id
    ):
        # A leftover prompt from a superseded query; the newer one stays pending.
        logger.info(f"[FLOW] Chat {chat_id}: ignoring stale type prompt {prompt_message_id}.")
        await _notify(context, chat_id, CONTEXT_EXPIRED_TEXT)
        return

    store.clear(chat_id)
    await safe_delete_message(context.bot, chat_id, prompt_message_id)
    await safe_delete_message(context.bot, chat_id, pending.user_message_id)

    api_key = context.bot_data.get("TMDB_API_KEY", "")
    logger.info(
        f"[FLOW] Chat {chat_id}: searching {media_type.label} titles for '{pending.query}'."
    )
    try:
        results = await metadata_service.search_titles(api_key, media_type, pending.query)
    except MetadataServiceError as e:
        logger.error(f"[FLOW] Search for '{pending.query}' failed: {e}")
        await _notify(context, chat_id, SEARCH_FAILED_TEXT)
        return

    if not results:
        logger.info(f"[FLOW] Chat {chat_id}: no results for '{pending.query}'.")
        await _notify(context, chat_id, NO_RESULTS_TEXT)
        return

    try:
        prompt = await send_prompt(
            context.bot,
            chat_id,
            build_results_prompt(media_type),
            build_results_keyboard(results),
        )
    except TelegramError as e:
        logger.error(f"[FLOW] Could not send the results prompt to chat {chat_id}: {e}")
        return

    store.set(
        chat_id,
        AwaitingItemChoice(
            media_type=media_type,
            results=tuple(results),
            prompt_message_id=prompt.message_id,
        ),
    )
    logger.info(f"[FLOW] Chat {chat_id}: presented {len(results)} results.")


async def handle_item_choice(
    chat_id: int,
    index: int,
    prompt_message_id: int | None,
    context: ContextTypes.DEFAULT_TYPE,
) -> None:
    """
    Resolves the chosen result and delivers its detail card and links.

    The session returns to Idle before any network work starts. The delivery
    runs as the chat's tracked task so a new title can cancel it.
    """
    store = get_session_store(context.bot_data)
    session = _load_session(context, chat_id)
    if (
        isinstance(session, AwaitingItemChoice)
        and prompt_message_id is not None
        and session.prompt_message_id is not None
        and prompt_message_id != session.prompt_message_id
    ):
        # Buttons from an older result list; the current list stays usable.
        logger.info(f"[FLOW] Chat {chat_id}: ignoring stale results prompt {prompt_message_id}.")
        await _notify(context, chat_id, NOT_FOUND_TEXT)
        return

    try:
        summary = require_item_choice(session).result_at(index)
    except SelectionSessionError as exc:
        logger.info(
            f"[FLOW] Chat {chat_id}: item {index} not available while {describe_session(session)}."
        )
        await _notify(context, chat_id, exc.user_message)
        store.clear(chat_id)
        return

    store.clear(chat_id)
    logger.info(
        f"[FLOW] Chat {chat_id}: selected '{summary.button_label}' ({summary.media_type.value} {summary.id})."
    )

    # Registered as in-flight before anything is awaited.
    coordinator = get_chat_coordinator(context.bot_data)
    completed = await coordinator.run_cancellable(
        chat_id, _retire_prompt_and_deliver(chat_id, summary, prompt_message_id, context)
    )
    if not completed:
        logger.info(f"[FLOW] Chat {chat_id}: delivery of '{summary.title}' was cancelled.")


async def _retire_prompt_and_deliver(
    chat_id: int,
    summary: ResultSummary,
    prompt_message_id: int | None,
    context: ContextTypes.DEFAULT_TYPE,
) -> None:
    await safe_clear_reply_markup(context.bot, chat_id, prompt_message_id)
    await deliver_selection(chat_id, summary, context)


async def deliver_selection(
    chat_id: int, summary: ResultSummary, context: ContextTypes.DEFAULT_TYPE
) -> None:
    """Sends the detail card followed by the movie links or the series invite."""
    api_key = context.bot_data.get("TMDB_API_KEY", "")
    try:
        detail = await metadata_service.fetch_details(api_key, summary)
    except MetadataServiceError as e:
        logger.error(f"[FLOW] Details for {summary.media_type.value} {summary.id} failed: {e}")
        await _notify(context, chat_id, DETAILS_FAILED_TEXT)
        return

    try:
        await send_detail_card(context.bot, chat_id, detail)
    except TelegramError as e:
        logger.error(f"[FLOW] Could not send the detail card to chat {chat_id}: {e}")
        await _notify(context, chat_id, DETAILS_FAILED_TEXT)
        return

    try:
        if summary.media_type is MediaType.MOVIE:
            await _deliver_movie_links(chat_id, summary, context)
        else:
            await _deliver_series_invite(chat_id, detail, context)
    except (LinkServiceError, MetadataServiceError) as e:
        logger.error(f"[FLOW] Link lookup for '{summary.title}' failed: {e}")
        await _notify(context, chat_id, LINKS_FAILED_TEXT)
    except TelegramError as e:
        logger.error(f"[FLOW] Could not send links to chat {chat_id}: {e}")
        await _notify(context, chat_id, LINKS_FAILED_TEXT)


async def _deliver_movie_links(
    chat_id: int, summary: ResultSummary, context: ContextTypes.DEFAULT_TYPE
) -> None:
    links = _link_config(context)
    buckets = await link_service.get_movie_links(links["movie_api_url"], summary.id)
    entries = link_service.flatten_entries(buckets)
    if not entries:
        await _notify(context, chat_id, NO_LINKS_TEXT)
        return

    keyboards = build_download_keyboards(entries, links["file_bot_username"])
    for part, keyboard in enumerate(keyboards, start=1):
        await send_prompt(
            context.bot,
            chat_id,
            build_links_header(summary, part, len(keyboards)),
            keyboard,
        )
    logger.info(
        f"[LINKS] Chat {chat_id}: sent {len(entries)} links for '{summary.title}' in {len(keyboards)} message(s)."
    )


async def _deliver_series_invite(
    chat_id: int, detail: DetailRecord, context: ContextTypes.DEFAULT_TYPE
) -> None:
    imdb_id = detail.imdb_id
    if not imdb_id:
        api_key = context.bot_data.get("TMDB_API_KEY", "")
        imdb_id = await metadata_service.fetch_imdb_id(api_key, detail.summary.id)
    if not imdb_id:
        await _notify(context, chat_id, NO_IMDB_ID_TEXT)
        return

    invite_link = await link_service.get_series_invite(
        _link_config(context)["series_api_url"], imdb_id
    )
    if not invite_link:
        await _notify(context, chat_id, NO_INVITE_TEXT)
        return

    await send_prompt(
        context.bot,
        chat_id,
        f"📺 {detail.summary.button_label}",
        build_invite_keyboard(invite_link),
    )
    logger.info(f"[LINKS] Chat {chat_id}: sent invite for {imdb_id}.")
