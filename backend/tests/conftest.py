"""
Global pytest configuration and fixtures for framesync tests
"""

import os
import sys

import pytest
import pytest_asyncio

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from framesync.core.registry import reset_child_registry
from framesync.host.local import LocalWindow

PARENT_ORIGIN = 'https://parent.example'
CHILD_ORIGIN = 'https://child.example'


@pytest.fixture(autouse=True)
def reset_registry():
    """Make sure no child agent survives between tests"""
    reset_child_registry()
    yield
    reset_child_registry()


@pytest.fixture(autouse=True)
def clear_framesync_env(monkeypatch):
    """Environment defaults must not leak into option tests"""
    monkeypatch.delenv('FRAMESYNC_TARGET_ORIGIN', raising=False)
    monkeypatch.delenv('FRAMESYNC_LOG', raising=False)


@pytest_asyncio.fixture
async def parent_window():
    """Top-level embedding window"""
    return LocalWindow(PARENT_ORIGIN)


@pytest_asyncio.fixture
async def frame(parent_window):
    """Frame embedded in parent_window with 400x300 content"""
    return parent_window.open_frame(CHILD_ORIGIN, 'content', height=400, width=300)


@pytest_asyncio.fixture
async def child_window(frame):
    return frame.content_window


@pytest_asyncio.fixture
async def parent_inbox(parent_window):
    """Raw records delivered to the parent window"""
    received = []
    parent_window.add_event_listener('message', lambda event: received.append(event.data))
    return received


@pytest_asyncio.fixture
async def child_inbox(child_window):
    """Raw records delivered to the child window"""
    received = []
    child_window.add_event_listener('message', lambda event: received.append(event.data))
    return received
