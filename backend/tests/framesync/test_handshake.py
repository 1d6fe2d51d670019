"""
Tests for the readiness handshake
"""

import asyncio
import pytest
from unittest.mock import Mock

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from framesync.core.handshake import ReadyAnnouncer, ReadyState
from framesync.host.local import flush


class TestReadyAnnouncer:
    """Test cases for the child-side announcement"""

    @pytest.mark.asyncio
    async def test_announces_on_next_tick(self, child_window):
        send = Mock(return_value=True)
        announcer = ReadyAnnouncer(child_window, send, init_data={'page': 'home'})
        announcer.start()

        send.assert_not_called()
        await flush()
        send.assert_called_once_with('ready', {'page': 'home'})

    @pytest.mark.asyncio
    async def test_announces_once_without_retry(self, child_window):
        send = Mock(return_value=True)
        announcer = ReadyAnnouncer(child_window, send)
        announcer.start()
        announcer.start()
        await asyncio.sleep(0.05)
        send.assert_called_once_with('ready', {})

    @pytest.mark.asyncio
    async def test_stop_before_tick_cancels(self, child_window):
        send = Mock(return_value=True)
        announcer = ReadyAnnouncer(child_window, send)
        announcer.start()
        announcer.stop()
        await flush()
        send.assert_not_called()

    @pytest.mark.asyncio
    async def test_retries_until_acknowledged(self, child_window):
        send = Mock(return_value=True)
        announcer = ReadyAnnouncer(child_window, send, retry_interval=0.01, max_retries=50)
        announcer.start()

        await asyncio.sleep(0.035)
        announcer.acknowledge()
        count = send.call_count
        assert count >= 2

        await asyncio.sleep(0.05)
        assert send.call_count == count
        assert announcer.acknowledged

    @pytest.mark.asyncio
    async def test_retries_are_capped(self, child_window):
        send = Mock(return_value=True)
        announcer = ReadyAnnouncer(child_window, send, retry_interval=0.005, max_retries=2)
        announcer.start()
        await asyncio.sleep(0.1)
        assert send.call_count == 3
        assert announcer.attempts == 3

    @pytest.mark.asyncio
    async def test_failed_send_stops_retrying(self, child_window):
        send = Mock(return_value=False)
        announcer = ReadyAnnouncer(child_window, send, retry_interval=0.005)
        announcer.start()
        await asyncio.sleep(0.05)
        assert send.call_count == 1


class TestReadyState:
    """Test cases for the parent-side readiness tracking"""

    def test_callback_registered_before_ready(self):
        state = ReadyState()
        callback = Mock()
        state.on_ready(callback)
        callback.assert_not_called()

        assert state.mark_ready({'page': 'home'})
        callback.assert_called_once_with({'page': 'home'})
        assert state.is_ready
        assert state.data == {'page': 'home'}

    def test_callback_registered_after_ready_runs_immediately(self):
        state = ReadyState()
        state.mark_ready({'page': 'home'})
        callback = Mock()
        state.on_ready(callback)
        callback.assert_called_once_with({'page': 'home'})

    def test_later_registration_replaces_pending(self):
        state = ReadyState()
        first, second = Mock(), Mock()
        state.on_ready(first)
        state.on_ready(second)
        state.mark_ready({})
        first.assert_not_called()
        second.assert_called_once_with({})

    def test_repeated_ready_does_not_refire(self):
        state = ReadyState()
        callback = Mock()
        state.on_ready(callback)
        state.mark_ready({'n': 1})
        assert not state.mark_ready({'n': 2})
        callback.assert_called_once_with({'n': 1})
        assert state.data == {'n': 1}

    def test_failing_callback_is_contained(self):
        state = ReadyState()
        state.on_ready(Mock(side_effect=RuntimeError("boom")))
        assert state.mark_ready({})
        assert state.is_ready

    def test_non_callable_ignored(self):
        state = ReadyState()
        state.on_ready("not callable")
        assert state.mark_ready({})

    def test_reset(self):
        state = ReadyState()
        state.on_ready(Mock())
        state.mark_ready({'a': 1})
        state.reset()
        assert not state.is_ready
        assert state.data is None
