# movie_bot/ui/views.py

from typing import Any, Sequence

from telegram import Bot, InlineKeyboardButton, InlineKeyboardMarkup, Message
from telegram.constants import ParseMode
from telegram.error import BadRequest

from ..config import PHOTO_CAPTION_LIMIT, TMDB_POSTER_BASE_URL, logger
from ..services.media_models import DetailRecord, DownloadEntry, MediaType, ResultSummary
from ..utils import format_bytes, safe_send_message, send_chunked_message
from .callback_tokens import encode_index_token, encode_type_token
from .messages import build_caption

LINK_BUTTONS_PER_MESSAGE = 40


def build_media_type_keyboard() -> InlineKeyboardMarkup:
    """Two-button prompt asking whether the pending query is a movie or a series."""
    keyboard = [
        [
            InlineKeyboardButton(
                "🎬 Movie", callback_data=encode_type_token(MediaType.MOVIE)
            ),
            InlineKeyboardButton(
                "📺 Series", callback_data=encode_type_token(MediaType.TV)
            ),
        ]
    ]
    return InlineKeyboardMarkup(keyboard)


def build_results_keyboard(results: Sequence[ResultSummary]) -> InlineKeyboardMarkup:
    """One button per result, labelled 'Title (Year)', carrying its list index."""
    keyboard = [
        [InlineKeyboardButton(item.button_label, callback_data=encode_index_token(i))]
        for i, item in enumerate(results)
    ]
    return InlineKeyboardMarkup(keyboard)


def build_file_link(file_bot_username: str, message_id: int) -> str:
    return f"https://t.me/{file_bot_username}?start={message_id}"


def build_download_keyboards(
    entries: Sequence[DownloadEntry],
    file_bot_username: str,
    per_message: int = LINK_BUTTONS_PER_MESSAGE,
) -> list[InlineKeyboardMarkup]:
    """
    Builds URL-button keyboards for the download entries, one button per file
    labelled 'quality (size)'. Large listings are split over several
    keyboards, each sent as its own message.
    """
    buttons = [
        [
            InlineKeyboardButton(
                f"{entry.quality} ({format_bytes(entry.file_size)})",
                url=build_file_link(file_bot_username, entry.message_id),
            )
        ]
        for entry in entries
    ]
    return [
        InlineKeyboardMarkup(buttons[i : i + per_message])
        for i in range(0, len(buttons), per_message)
    ]


def build_invite_keyboard(invite_link: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [[InlineKeyboardButton("📺 Join Channel", url=invite_link)]]
    )


def poster_url(summary: ResultSummary) -> str | None:
    if not summary.poster_path:
        return None
    return f"{TMDB_POSTER_BASE_URL}{summary.poster_path}"


async def send_detail_card(bot: Bot | Any, chat_id: int, detail: DetailRecord) -> None:
    """
    Sends the poster with the formatted caption. Without a poster (or when
    Telegram rejects it) the caption goes out as a text message instead.
    Captions above the photo-caption limit are sent as a separate message
    after a caption-less photo.
    """
    caption = build_caption(detail)
    photo = poster_url(detail.summary)

    if photo:
        try:
            if len(caption) <= PHOTO_CAPTION_LIMIT:
                await bot.send_photo(
                    chat_id=chat_id,
                    photo=photo,
                    caption=caption,
                    parse_mode=ParseMode.MARKDOWN_V2,
                )
                return
            await bot.send_photo(chat_id=chat_id, photo=photo)
        except BadRequest as e:
            logger.warning(
                f"Poster for '{detail.summary.title}' was rejected ({e}). Sending text only."
            )

    await send_chunked_message(
        bot,
        chat_id,
        caption,
        parse_mode=ParseMode.MARKDOWN_V2,
    )


async def send_prompt(
    bot: Bot | Any, chat_id: int, text: str, reply_markup: InlineKeyboardMarkup
) -> Message:
    """Sends a plain-text prompt carrying an inline keyboard."""
    return await safe_send_message(bot, chat_id=chat_id, text=text, reply_markup=reply_markup)
