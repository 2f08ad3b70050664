import sys
from datetime import datetime
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest

# Ensure root path is available for imports
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

# Set PTB timedelta before importing telegram types; keep imports at top via noqa
from movie_bot import _ptb_env  # noqa: E402, F401
from telegram import Bot, CallbackQuery, Chat, Message, Update, User  # noqa: E402

from movie_bot.services.link_service import clear_link_cache  # noqa: E402
from movie_bot.services.media_models import MediaType, ResultSummary  # noqa: E402


@pytest.fixture(autouse=True)
def _empty_link_cache():
    clear_link_cache()
    yield
    clear_link_cache()


@pytest.fixture
def user():
    return User(id=123, first_name="Test", is_bot=False)


@pytest.fixture
def chat():
    return Chat(id=456, type="private")


@pytest.fixture
def make_message(user, chat):
    def _make(text: str = "", message_id: int = 1):
        msg = Message(
            message_id=message_id,
            date=datetime.now(),
            chat=chat,
            from_user=user,
            text=text,
        )
        bot = Mock(spec=Bot)
        bot.delete_message = AsyncMock()
        bot.send_message = AsyncMock()
        msg.set_bot(bot)
        return msg

    return _make


@pytest.fixture
def make_callback_query(user, make_message):
    def _make(data: str, message: Message | None = None):
        if message is None:
            message = make_message()
        return CallbackQuery(
            id="1", from_user=user, chat_instance="1", data=data, message=message
        )

    return _make


@pytest.fixture
def make_update():
    def _make(
        message: Message | None = None,
        callback_query: CallbackQuery | None = None,
        update_id: int = 1,
    ):
        return Update(
            update_id=update_id, message=message, callback_query=callback_query
        )

    return _make


@pytest.fixture
def context(make_message):
    """Handler context whose bot hands out increasing message ids."""
    counter = iter(range(100, 10_000))

    async def _send_message(**kwargs):
        return make_message(text=kwargs.get("text", ""), message_id=next(counter))

    bot = SimpleNamespace(
        send_message=AsyncMock(side_effect=_send_message),
        send_photo=AsyncMock(),
        delete_message=AsyncMock(),
        edit_message_reply_markup=AsyncMock(),
    )
    return SimpleNamespace(
        bot=bot,
        user_data={},
        bot_data={"TMDB_API_KEY": "test-key"},
        chat_data={},
    )


@pytest.fixture
def make_summary():
    def _make(
        id: int = 27205,
        title: str = "Inception",
        year: str = "2010",
        media_type: MediaType = MediaType.MOVIE,
        **kwargs,
    ) -> ResultSummary:
        kwargs.setdefault("release_date", f"{year}-07-15" if year != "N/A" else "")
        return ResultSummary(
            id=id, media_type=media_type, title=title, year=year, **kwargs
        )

    return _make


@pytest.fixture
def sent_texts():
    """Returns the texts of every send_message call made on a fake bot, in order."""

    def _texts(bot) -> list[str]:
        return [call.kwargs.get("text") for call in bot.send_message.await_args_list]

    return _texts
