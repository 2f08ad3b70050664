import asyncio
from types import SimpleNamespace

import pytest

from movie_bot.services import link_service
from movie_bot.state import (
    ChatCoordinator,
    InMemorySessionStore,
    get_chat_coordinator,
    get_session_store,
    post_init,
    post_shutdown,
)
from movie_bot.workflows.selection_session import AwaitingTypeChoice


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_store_get_set_clear():
    store = InMemorySessionStore()
    session = AwaitingTypeChoice(query="Heat")

    assert store.get(1) is None
    store.set(1, session)
    assert store.get(1) is session
    store.clear(1)
    assert store.get(1) is None
    store.clear(1)  # clearing twice is harmless


def test_store_sessions_are_per_chat():
    store = InMemorySessionStore()
    store.set(1, AwaitingTypeChoice(query="Heat"))
    store.set(2, AwaitingTypeChoice(query="Ronin"))

    assert store.get(1).query == "Heat"
    assert store.get(2).query == "Ronin"


def test_store_expired_sessions_read_as_absent():
    clock = FakeClock()
    store = InMemorySessionStore(ttl_seconds=60, clock=clock)
    store.set(1, AwaitingTypeChoice(query="Heat"))

    clock.now = 59
    assert store.get(1) is not None
    clock.now = 61
    assert store.get(1) is None
    assert len(store) == 0


def test_store_evicts_oldest_chat_beyond_capacity():
    store = InMemorySessionStore(max_entries=2)
    for chat_id in (1, 2, 3):
        store.set(chat_id, AwaitingTypeChoice(query=str(chat_id)))

    assert store.get(1) is None
    assert store.get(2) is not None
    assert store.get(3) is not None


def test_accessors_create_once():
    bot_data: dict = {}
    assert get_session_store(bot_data) is get_session_store(bot_data)
    assert get_chat_coordinator(bot_data) is get_chat_coordinator(bot_data)


@pytest.mark.asyncio
async def test_lock_serializes_work_for_one_chat():
    coordinator = ChatCoordinator()
    order: list[str] = []

    async def step(name: str, delay: float) -> None:
        async with coordinator.serialized(7):
            order.append(f"{name}-start")
            await asyncio.sleep(delay)
            order.append(f"{name}-end")

    await asyncio.gather(step("first", 0.02), step("second", 0))

    assert order == ["first-start", "first-end", "second-start", "second-end"]


@pytest.mark.asyncio
async def test_locks_are_independent_across_chats():
    coordinator = ChatCoordinator()
    order: list[str] = []
    release = asyncio.Event()

    async def hold_chat_one() -> None:
        async with coordinator.serialized(1):
            order.append("one-start")
            await release.wait()
            order.append("one-end")

    async def run_chat_two() -> None:
        async with coordinator.serialized(2):
            order.append("two")
        release.set()

    await asyncio.gather(hold_chat_one(), run_chat_two())

    assert order == ["one-start", "two", "one-end"]


@pytest.mark.asyncio
async def test_lock_is_dropped_once_the_chat_goes_quiet():
    coordinator = ChatCoordinator()
    seen: list[int] = []

    async def step() -> None:
        async with coordinator.serialized(7):
            seen.append(coordinator.tracked_chats())
            await asyncio.sleep(0)

    await asyncio.gather(step(), step(), step())

    assert seen == [1, 1, 1]
    assert coordinator.tracked_chats() == 0

    for chat_id in range(50):
        async with coordinator.serialized(chat_id):
            pass
    assert coordinator.tracked_chats() == 0


@pytest.mark.asyncio
async def test_run_cancellable_completes():
    coordinator = ChatCoordinator()
    done = []

    async def work():
        done.append(True)

    assert await coordinator.run_cancellable(1, work()) is True
    assert done == [True]
    assert not coordinator.has_inflight(1)


@pytest.mark.asyncio
async def test_run_cancellable_reports_cancellation():
    coordinator = ChatCoordinator()
    started = asyncio.Event()

    async def work():
        started.set()
        await asyncio.Event().wait()

    runner = asyncio.create_task(coordinator.run_cancellable(1, work()))
    await started.wait()
    assert coordinator.has_inflight(1)

    assert coordinator.cancel_inflight(1) is True
    assert await asyncio.wait_for(runner, timeout=1) is False
    assert coordinator.cancel_inflight(1) is False


@pytest.mark.asyncio
async def test_run_cancellable_propagates_errors():
    coordinator = ChatCoordinator()

    async def work():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await coordinator.run_cancellable(1, work())


@pytest.mark.asyncio
async def test_post_init_prepares_state_and_link_cache():
    application = SimpleNamespace(
        bot_data={"LINK_CONFIG": {"cache_max_entries": 10, "cache_ttl_seconds": 60}}
    )
    try:
        await post_init(application)

        assert isinstance(application.bot_data["SESSION_STORE"], InMemorySessionStore)
        assert isinstance(application.bot_data["CHAT_COORDINATOR"], ChatCoordinator)
        assert link_service._LINK_CACHE.max_entries == 10
        assert link_service._LINK_CACHE.ttl == 60
    finally:
        link_service.configure_link_cache(max_entries=256, ttl=1800)


@pytest.mark.asyncio
async def test_post_shutdown_cancels_inflight_deliveries():
    application = SimpleNamespace(bot_data={})
    coordinator = get_chat_coordinator(application.bot_data)
    started = asyncio.Event()

    async def work():
        started.set()
        await asyncio.Event().wait()

    runner = asyncio.create_task(coordinator.run_cancellable(3, work()))
    await started.wait()

    await post_shutdown(application)

    assert await asyncio.wait_for(runner, timeout=1) is False
