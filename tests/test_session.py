"""Tests for SubjectSession loading, refresh and replacement."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from propguard import EngineConfig, PermissionEvaluator, SessionError, SessionState, SubjectSession

STAFF = {"id": 7, "role": "pg_staff", "permissions": {"12": {"beds": {"view": True, "edit": True}}}}


class TestInitialState:
    """Before the first load the session denies everything."""

    def test_loading_is_unresolved(self) -> None:
        session = SubjectSession(AsyncMock(return_value=STAFF))
        assert session.state is SessionState.LOADING
        assert session.resolved is False
        assert session.subject is None
        assert session.evaluator.can("beds", "view", "12") is False
        assert session.evaluator.can_all("beds", []) is False


class TestLoad:
    """Tests for load()."""

    @pytest.mark.asyncio
    async def test_load_installs_subject(self) -> None:
        fetch = AsyncMock(return_value=STAFF)
        session = SubjectSession(fetch)

        evaluator = await session.load()

        fetch.assert_awaited_once()
        assert session.state is SessionState.READY
        assert session.resolved is True
        assert session.subject.id == "7"
        assert evaluator is session.evaluator
        assert evaluator.can("beds", "edit", "12") is True
        assert evaluator.can("beds", "edit", "13") is False

    @pytest.mark.asyncio
    async def test_signed_out(self) -> None:
        session = SubjectSession(AsyncMock(return_value=None))
        await session.load()
        assert session.state is SessionState.ANONYMOUS
        assert session.evaluator.can("beds", "view", "12") is False

    @pytest.mark.asyncio
    async def test_failed_load_becomes_anonymous(self) -> None:
        session = SubjectSession(AsyncMock(side_effect=ConnectionError("offline")))

        with pytest.raises(SessionError) as exc_info:
            await session.load()

        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert exc_info.value.code == "SESSION_ERROR"
        assert session.state is SessionState.ANONYMOUS
        assert session.resolved is False

    @pytest.mark.asyncio
    async def test_non_mapping_payload(self) -> None:
        session = SubjectSession(AsyncMock(return_value=["not", "a", "user"]))
        with pytest.raises(SessionError):
            await session.load()
        assert session.state is SessionState.ANONYMOUS

    @pytest.mark.asyncio
    async def test_bypass_role_from_config(self) -> None:
        payload = {"id": 1, "role": "owner", "permissions": {}}
        session = SubjectSession(AsyncMock(return_value=payload), config=EngineConfig(bypass_role="owner"))
        await session.load()
        assert session.evaluator.can("expenses", "delete") is True


class TestRefresh:
    """Tests for refresh() and clear()."""

    @pytest.mark.asyncio
    async def test_refresh_replaces_evaluator(self) -> None:
        updated = {"id": 7, "role": "pg_staff", "permissions": {"13": {"beds": {"edit": True}}}}
        session = SubjectSession(AsyncMock(side_effect=[STAFF, updated]))
        await session.load()
        before = session.evaluator

        await session.refresh()

        assert session.evaluator is not before
        assert session.evaluator.can("beds", "edit", "13") is True
        assert session.evaluator.can("beds", "edit", "12") is False
        # The previous evaluator is untouched.
        assert before.can("beds", "edit", "12") is True

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_subject(self) -> None:
        session = SubjectSession(AsyncMock(side_effect=[STAFF, TimeoutError("slow")]))
        await session.load()
        before = session.evaluator

        with pytest.raises(SessionError):
            await session.refresh()

        assert session.evaluator is before
        assert session.state is SessionState.READY

    @pytest.mark.asyncio
    async def test_clear(self) -> None:
        session = SubjectSession(AsyncMock(return_value=STAFF))
        await session.load()
        await session.clear()
        assert session.state is SessionState.ANONYMOUS
        assert session.evaluator.can("beds", "view", "12") is False


class TestConcurrency:
    """Waiting, serialization and listeners."""

    @pytest.mark.asyncio
    async def test_wait_resolved(self) -> None:
        release = asyncio.Event()

        async def fetch() -> dict:
            await release.wait()
            return STAFF

        session = SubjectSession(fetch)
        load_task = asyncio.create_task(session.load())
        waiter = asyncio.create_task(session.wait_resolved())
        await asyncio.sleep(0)

        assert not waiter.done()
        assert session.evaluator.can("beds", "view", "12") is False

        release.set()
        evaluator = await waiter
        await load_task
        assert evaluator.can("beds", "view", "12") is True

    @pytest.mark.asyncio
    async def test_loads_are_serialized(self) -> None:
        active = 0
        peak = 0

        async def fetch() -> dict:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return STAFF

        session = SubjectSession(fetch)
        await asyncio.gather(session.load(), session.refresh(), session.refresh())
        assert peak == 1

    @pytest.mark.asyncio
    async def test_subscribe_and_unsubscribe(self) -> None:
        session = SubjectSession(AsyncMock(return_value=STAFF))
        listener = MagicMock()
        unsubscribe = session.subscribe(listener)

        await session.load()
        listener.assert_called_once()
        assert isinstance(listener.call_args.args[0], PermissionEvaluator)
        assert listener.call_args.args[0] is session.evaluator

        unsubscribe()
        await session.refresh()
        listener.assert_called_once()

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_swap(self) -> None:
        session = SubjectSession(AsyncMock(return_value=STAFF))
        session.subscribe(MagicMock(side_effect=RuntimeError("render failed")))
        second = MagicMock()
        session.subscribe(second)

        await session.load()

        assert session.state is SessionState.READY
        second.assert_called_once()
