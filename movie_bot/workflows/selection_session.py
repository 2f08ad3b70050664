from __future__ import annotations

from dataclasses import dataclass
from typing import Union, assert_never

from ..services.media_models import MediaType, ResultSummary
from ..ui.messages import CONTEXT_EXPIRED_TEXT, NOT_FOUND_TEXT


class SelectionSessionError(Exception):
    """Raised when a step requires state that is missing, stale or of the wrong shape."""

    def __init__(self, user_message: str = CONTEXT_EXPIRED_TEXT):
        super().__init__(user_message)
        self.user_message = user_message


@dataclass(frozen=True)
class Idle:
    """No pending query and no unconsumed results."""


@dataclass(frozen=True)
class AwaitingTypeChoice:
    """A free-text query is waiting for the user to pick movie or series."""

    query: str
    user_message_id: int | None = None
    prompt_message_id: int | None = None


@dataclass(frozen=True)
class AwaitingItemChoice:
    """Search results are on screen waiting for the user to pick one."""

    media_type: MediaType
    results: tuple[ResultSummary, ...]
    prompt_message_id: int | None = None

    def result_at(self, index: int) -> ResultSummary:
        if not (0 <= index < len(self.results)):
            raise SelectionSessionError(NOT_FOUND_TEXT)
        return self.results[index]


ChatSession = Union[Idle, AwaitingTypeChoice, AwaitingItemChoice]

IDLE = Idle()


def require_type_choice(session: ChatSession) -> AwaitingTypeChoice:
    if isinstance(session, AwaitingTypeChoice):
        return session
    raise SelectionSessionError(CONTEXT_EXPIRED_TEXT)


def require_item_choice(session: ChatSession) -> AwaitingItemChoice:
    if isinstance(session, AwaitingItemChoice):
        return session
    raise SelectionSessionError(NOT_FOUND_TEXT)


def describe_session(session: ChatSession) -> str:
    """Short state label for log lines."""
    if isinstance(session, Idle):
        return "idle"
    if isinstance(session, AwaitingTypeChoice):
        return f"awaiting type for '{session.query}'"
    if isinstance(session, AwaitingItemChoice):
        return f"awaiting item among {len(session.results)} {session.media_type.value} results"
    assert_never(session)


def pending_prompt_id(session: ChatSession) -> int | None:
    """Returns the id of the keyboard prompt a session is waiting on, if any."""
    if isinstance(session, Idle):
        return None
    if isinstance(session, (AwaitingTypeChoice, AwaitingItemChoice)):
        return session.prompt_message_id
    assert_never(session)
