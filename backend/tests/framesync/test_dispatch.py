"""
Tests for DispatchTable
Registration rules, unknown types and handler fault isolation
"""

import asyncio
import logging
import pytest
from unittest.mock import Mock

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from framesync.core.dispatch import DispatchTable
from framesync.core.errors import ErrorCode
from framesync.core.host import MessageEvent
from framesync.core.message import Message
from framesync.utils.logging import AgentLogAdapter

EVENT = MessageEvent(data={}, origin='https://parent.example')


def make_table(reserved=()):
    log = AgentLogAdapter(logging.getLogger('framesync.test'), 'CHILD', 'child.example', enabled=True)
    return DispatchTable(log, reserved=reserved)


class TestRegistration:
    """Test cases for handler registration"""

    def test_register_and_dispatch(self):
        table = make_table()
        handler = Mock()
        assert table.register('theme', handler)
        assert table.dispatch(Message('theme', {'dark': True}), EVENT)
        handler.assert_called_once_with({'dark': True}, EVENT)

    def test_last_registration_wins(self):
        table = make_table()
        first, second = Mock(), Mock()
        table.register('theme', first)
        table.register('theme', second)
        table.dispatch(Message('theme'), EVENT)
        first.assert_not_called()
        second.assert_called_once()
        assert len(table) == 1

    @pytest.mark.parametrize('msg_type,handler', [
        ('', Mock()),
        (None, Mock()),
        (7, Mock()),
        ('theme', 'not callable'),
    ])
    def test_invalid_registration_rejected(self, msg_type, handler):
        table = make_table()
        assert not table.register(msg_type, handler)
        assert len(table) == 0

    def test_reserved_type_rejected(self, caplog):
        table = make_table(reserved={'resize'})
        with caplog.at_level(logging.WARNING, logger='framesync'):
            assert not table.register('resize', Mock())
        assert 'resize' not in table
        assert 'reserved' in caplog.text

    def test_unregister_and_clear(self):
        table = make_table()
        table.register('a', Mock())
        table.register('b', Mock())
        assert table.unregister('a')
        assert not table.unregister('a')
        table.clear()
        assert len(table) == 0


class TestDispatch:
    """Test cases for routing and isolation"""

    def test_unknown_type_dropped_with_warning(self, caplog):
        table = make_table()
        with caplog.at_level(logging.WARNING, logger='framesync'):
            assert not table.dispatch(Message('nobody'), EVENT)
        assert 'No handler registered for message type: nobody' in caplog.text
        assert table.stats['unhandled'] == 1

    def test_handler_receives_copy_of_payload(self):
        table = make_table()
        seen = []

        def handler(data, event):
            data['mutated'] = True
            seen.append(data)

        message = Message('theme', {'dark': True})
        table.register('theme', handler)
        table.dispatch(message, EVENT)
        assert message.payload == {'dark': True}
        assert seen == [{'dark': True, 'mutated': True}]

    def test_faulty_handler_is_isolated(self, caplog):
        table = make_table()
        good = Mock()
        table.register('bad', Mock(side_effect=ValueError("broken handler")))
        table.register('good', good)

        with caplog.at_level(logging.ERROR, logger='framesync'):
            assert table.dispatch(Message('bad'), EVENT)
            assert table.dispatch(Message('bad'), EVENT)
            assert table.dispatch(Message('good'), EVENT)

        good.assert_called_once()
        assert table.stats['faults'] == 2
        assert 'Error in custom message handler for type: bad' in caplog.text

    @pytest.mark.asyncio
    async def test_coroutine_handler(self):
        table = make_table()
        received = []

        async def handler(data, event):
            received.append(data)

        table.register('async', handler)
        table.dispatch(Message('async', {'n': 1}), EVENT)
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert received == [{'n': 1}]

    @pytest.mark.asyncio
    async def test_failing_coroutine_handler_is_isolated(self, caplog):
        table = make_table()

        async def handler(data, event):
            raise RuntimeError("async failure")

        table.register('async', handler)
        with caplog.at_level(logging.ERROR, logger='framesync'):
            table.dispatch(Message('async'), EVENT)
            for _ in range(3):
                await asyncio.sleep(0)
        assert table.stats['faults'] == 1
        assert 'async failure' in caplog.text

    @pytest.mark.asyncio
    async def test_clear_cancels_pending_coroutine_handlers(self):
        table = make_table()
        finished = []

        async def handler(data, event):
            await asyncio.sleep(0.01)
            finished.append(data)

        table.register('slow', handler)
        table.dispatch(Message('slow', {'n': 1}), EVENT)
        await asyncio.sleep(0)
        assert table.pending == 1

        table.clear()
        await asyncio.sleep(0.05)
        assert finished == []
        assert table.pending == 0
        assert table.stats['faults'] == 0

    @pytest.mark.asyncio
    async def test_finished_coroutine_handlers_are_released(self):
        table = make_table()

        async def handler(data, event):
            pass

        table.register('async', handler)
        for _ in range(3):
            table.dispatch(Message('async'), EVENT)
        for _ in range(3):
            await asyncio.sleep(0)
        assert table.pending == 0


class TestFaultRecords:
    """Logged faults carry the structured error"""

    def test_unknown_type_record(self, caplog):
        table = make_table()
        with caplog.at_level(logging.WARNING, logger='framesync'):
            table.dispatch(Message('nobody', {'token': 'abc123', 'n': 1}), EVENT)
        error = caplog.records[-1].error
        assert error['code'] == ErrorCode.UNKNOWN_MESSAGE_TYPE.value
        assert error['data'] == {'token': '***REDACTED***', 'n': 1}

    def test_handler_fault_record(self, caplog):
        table = make_table()
        table.register('bad', Mock(side_effect=ValueError("broken handler")))
        with caplog.at_level(logging.ERROR, logger='framesync'):
            table.dispatch(Message('bad'), EVENT)
        error = caplog.records[-1].error
        assert error['code'] == ErrorCode.HANDLER_FAULT.value
        assert error['data'] == {'type': 'bad'}
        assert 'broken handler' in error['message']
