"""
Change detection for framesync
Observes the embedded document's layout and scroll position. Size changes are
de-duplicated against the last emitted dimension; scroll events are reported
every time they fire.
"""

import logging
from typing import Callable, List, Optional

from .host import HostObserver, HostWindow
from .message import Dimension, ScrollPosition
from ..utils.logging import AgentLogAdapter

logger = logging.getLogger(__name__)


class ChangeDetector:
    """Turns layout and scroll notifications into resize/scroll emissions"""

    def __init__(self, window: HostWindow,
                 on_resize: Callable[[Dimension], None],
                 on_scroll: Callable[[ScrollPosition], None],
                 resize: bool = True, scroll: bool = True,
                 log: Optional[AgentLogAdapter] = None):
        self.window = window
        self._emit_resize = on_resize
        self._emit_scroll = on_scroll
        self.watch_resize = resize
        self.watch_scroll = scroll
        self.log = log or AgentLogAdapter(logger, 'CHILD', window.host)

        self.last_dimension: Optional[Dimension] = None
        self._observers: List[HostObserver] = []
        self._listening_resize = False
        self._listening_scroll = False
        self.running = False

    def start(self):
        """Attach observers and emit the current size unconditionally"""
        if self.running:
            return
        self.running = True

        if self.watch_resize:
            body = self.window.document.body
            resize_observer = self.window.create_resize_observer(self._on_layout_notification)
            resize_observer.observe(body)
            mutation_observer = self.window.create_mutation_observer(self._on_layout_notification)
            mutation_observer.observe(body)
            self._observers = [resize_observer, mutation_observer]
            self.window.add_event_listener('resize', self._on_window_resize)
            self._listening_resize = True
            self.check(force=True)

        if self.watch_scroll:
            self.window.add_event_listener('scroll', self._on_scroll_event)
            self._listening_scroll = True

    def stop(self):
        """Detach every observer and listener; safe to call repeatedly"""
        for observer in self._observers:
            observer.disconnect()
        self._observers = []

        if self._listening_resize:
            self.window.remove_event_listener('resize', self._on_window_resize)
            self._listening_resize = False
        if self._listening_scroll:
            self.window.remove_event_listener('scroll', self._on_scroll_event)
            self._listening_scroll = False

        self.last_dimension = None
        self.running = False

    def measure(self) -> Dimension:
        """Current content size.

        Height takes the largest of the body scroll height and the root's
        scroll and offset heights, which covers collapsed margins and
        fractional overflow.
        """
        document = self.window.document
        body = document.body
        root = document.document_element
        height = max(body.scroll_height, root.scroll_height, root.offset_height)
        width = max(body.scroll_width, root.scroll_width)
        return Dimension(height=height, width=width)

    def check(self, force: bool = False) -> bool:
        """Emit a resize when the size changed since the last emission"""
        if not self.running:
            return False

        dimension = self.measure()
        if not force and dimension == self.last_dimension:
            return False

        self.last_dimension = dimension
        self._emit_resize(dimension)
        return True

    def scroll_position(self) -> ScrollPosition:
        root = self.window.document.document_element
        top = self.window.scroll_y or root.scroll_top
        left = self.window.scroll_x or root.scroll_left
        return ScrollPosition(top=top, left=left)

    def _on_layout_notification(self, entries: list):
        try:
            self.check()
        except Exception as e:
            self.log.error(f"Resize check failed: {e}")

    def _on_window_resize(self, event=None):
        self._on_layout_notification([])

    def _on_scroll_event(self, event=None):
        if not self.running:
            return
        try:
            self._emit_scroll(self.scroll_position())
        except Exception as e:
            self.log.error(f"Scroll report failed: {e}")
