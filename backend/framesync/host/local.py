"""
In-memory host for framesync
Models an embedding window and the windows embedded in it on a single asyncio
event loop. Cross-context posts are structured-cloned and delivered on a later
loop iteration in send order, with the same target-origin restriction a
browser applies. Layout observers and scroll/resize events fire synchronously
when the simulated document changes.
"""

import asyncio
import copy
import logging
from typing import Dict, List, Any, Optional, Callable
from collections import defaultdict
from urllib.parse import urlsplit

from ..core.host import (
    FrameElement, Handle, HostDocument, HostElement, HostObserver, HostWindow,
    Listener, MessageEvent,
)

logger = logging.getLogger(__name__)


class _LoopHandle(Handle):
    def __init__(self, handle: asyncio.Handle):
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()

    @property
    def cancelled(self) -> bool:
        return self._handle.cancelled()


class LocalElement(HostElement):
    """Element with directly settable layout metrics"""

    def __init__(self, tag: str, element_id: Optional[str] = None, height: int = 0, width: int = 0):
        self.tag = tag
        self.id = element_id
        self._scroll_height = height
        self._scroll_width = width
        self._offset_height = height
        self._scroll_top: float = 0
        self._scroll_left: float = 0

    @property
    def scroll_height(self) -> int:
        return self._scroll_height

    @property
    def scroll_width(self) -> int:
        return self._scroll_width

    @property
    def offset_height(self) -> int:
        return self._offset_height

    @property
    def scroll_top(self) -> float:
        return self._scroll_top

    @property
    def scroll_left(self) -> float:
        return self._scroll_left

    def set_metrics(self, scroll_height: Optional[int] = None, scroll_width: Optional[int] = None,
                    offset_height: Optional[int] = None):
        if scroll_height is not None:
            self._scroll_height = scroll_height
        if scroll_width is not None:
            self._scroll_width = scroll_width
        if offset_height is not None:
            self._offset_height = offset_height

    def __repr__(self):
        return f"<{self.tag}{'#' + self.id if self.id else ''}>"


class LocalFrame(LocalElement, FrameElement):
    """An iframe element owning an embedded LocalWindow"""

    def __init__(self, window: 'LocalWindow', element_id: Optional[str] = None):
        super().__init__('iframe', element_id)
        self._window: Optional[LocalWindow] = window

    @property
    def content_window(self) -> Optional['LocalWindow']:
        return self._window

    def detach(self):
        """Remove the embedded window, as when the iframe leaves the DOM"""
        self._window = None


class LocalObserver(HostObserver):
    """Shared implementation of the resize and mutation observers"""

    def __init__(self, document: 'LocalDocument', kind: str, callback: Callable[[list], None]):
        self._document = document
        self.kind = kind
        self.callback = callback
        self.targets: List[HostElement] = []

    def observe(self, target: HostElement) -> None:
        if target not in self.targets:
            self.targets.append(target)
        self._document._register_observer(self)

    def unobserve(self, target: HostElement) -> None:
        if target in self.targets:
            self.targets.remove(target)
        if not self.targets:
            self._document._unregister_observer(self)

    def disconnect(self) -> None:
        self.targets.clear()
        self._document._unregister_observer(self)

    def notify(self, target: HostElement):
        if target in self.targets:
            self.callback([{'target': target, 'kind': self.kind}])


class LocalDocument(HostDocument):
    """Document with a body, a root element and a flat element index"""

    def __init__(self, height: int = 0, width: int = 0):
        self._body = LocalElement('body', height=height, width=width)
        self._root = LocalElement('html', height=height, width=width)
        self._elements: List[LocalElement] = []
        self._observers: List[LocalObserver] = []

    @property
    def body(self) -> LocalElement:
        return self._body

    @property
    def document_element(self) -> LocalElement:
        return self._root

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def append(self, element: LocalElement) -> LocalElement:
        self._elements.append(element)
        return element

    def query_selector(self, selector: str) -> Optional[LocalElement]:
        """Supports '#id', 'tag' and 'tag#id' selectors"""
        if not isinstance(selector, str) or not selector.strip():
            return None
        tag, _, element_id = selector.strip().partition('#')
        for element in self._elements:
            if tag and element.tag != tag:
                continue
            if element_id and element.id != element_id:
                continue
            return element
        return None

    def set_content_size(self, height: int, width: Optional[int] = None):
        """Change the content size and notify observers; the root follows the body"""
        body = self._body
        changed = height != body.scroll_height or (width is not None and width != body.scroll_width)
        body.set_metrics(scroll_height=height, scroll_width=width, offset_height=height)
        self._root.set_metrics(scroll_height=height, scroll_width=width, offset_height=height)
        if changed:
            self._notify('resize', body)
        self._notify('mutation', body)

    def set_root_metrics(self, scroll_height: Optional[int] = None, scroll_width: Optional[int] = None,
                         offset_height: Optional[int] = None):
        """Change the document root metrics without notifying (margins, overflow)"""
        self._root.set_metrics(scroll_height, scroll_width, offset_height)

    def mutate(self):
        """Structural change that leaves the layout untouched"""
        self._notify('mutation', self._body)

    def _register_observer(self, observer: LocalObserver):
        if observer not in self._observers:
            self._observers.append(observer)

    def _unregister_observer(self, observer: LocalObserver):
        if observer in self._observers:
            self._observers.remove(observer)

    def _notify(self, kind: str, target: LocalElement):
        for observer in list(self._observers):
            if observer.kind == kind:
                observer.notify(target)


class LocalWindow(HostWindow):
    """A window on the current event loop"""

    def __init__(self, origin: str, parent: Optional['LocalWindow'] = None,
                 loop: Optional[asyncio.AbstractEventLoop] = None,
                 document: Optional[LocalDocument] = None):
        self._origin = origin
        self._parent = parent
        self._loop = loop or (parent._loop if parent else asyncio.get_running_loop())
        self._document = document or LocalDocument()
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._scroll_x: float = 0
        self._scroll_y: float = 0
        self.frames: List[LocalFrame] = []

        self.stats = {
            'messages_posted': 0,
            'messages_delivered': 0,
            'messages_blocked': 0,
        }

    @property
    def origin(self) -> str:
        return self._origin

    @property
    def host(self) -> str:
        return urlsplit(self._origin).netloc or self._origin

    @property
    def parent(self) -> 'LocalWindow':
        return self._parent if self._parent is not None else self

    @property
    def document(self) -> LocalDocument:
        return self._document

    @property
    def scroll_x(self) -> float:
        return self._scroll_x

    @property
    def scroll_y(self) -> float:
        return self._scroll_y

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def open_frame(self, origin: str, element_id: Optional[str] = None,
                   height: int = 0, width: int = 0) -> LocalFrame:
        """Embed a new window with the given origin and return its frame element"""
        child = LocalWindow(origin, parent=self, document=LocalDocument(height, width))
        frame = LocalFrame(child, element_id)
        self._document.append(frame)
        self.frames.append(frame)
        return frame

    def listener_count(self, event_type: str) -> int:
        return len(self._listeners.get(event_type, []))

    def add_event_listener(self, event_type: str, listener: Listener) -> None:
        if listener not in self._listeners[event_type]:
            self._listeners[event_type].append(listener)

    def remove_event_listener(self, event_type: str, listener: Listener) -> None:
        listeners = self._listeners.get(event_type)
        if listeners and listener in listeners:
            listeners.remove(listener)

    def dispatch_event(self, event_type: str, event: Any = None) -> None:
        for listener in list(self._listeners.get(event_type, [])):
            try:
                listener(event)
            except Exception as e:
                # Mirrors a browser reporting an uncaught listener error
                logger.error(f"Uncaught error in '{event_type}' listener on {self._origin}: {e}")

    def post_message(self, data: Any, target_origin: str, source: Optional[HostWindow] = None) -> None:
        self.stats['messages_posted'] += 1
        if target_origin != '*' and target_origin != self._origin:
            self.stats['messages_blocked'] += 1
            logger.debug(f"Blocked post to {self._origin}: target origin {target_origin}")
            return

        event = MessageEvent(
            data=copy.deepcopy(data),
            origin=source.origin if source is not None else 'null',
            source=source,
        )
        self._loop.call_soon(self._deliver, event)

    def _deliver(self, event: MessageEvent):
        self.stats['messages_delivered'] += 1
        self.dispatch_event('message', event)

    def call_soon(self, callback: Callable[[], None]) -> Handle:
        return _LoopHandle(self._loop.call_soon(callback))

    def call_later(self, delay: float, callback: Callable[[], None]) -> Handle:
        return _LoopHandle(self._loop.call_later(delay, callback))

    def create_resize_observer(self, callback: Callable[[list], None]) -> LocalObserver:
        return LocalObserver(self._document, 'resize', callback)

    def create_mutation_observer(self, callback: Callable[[list], None]) -> LocalObserver:
        return LocalObserver(self._document, 'mutation', callback)

    def scroll_to(self, left: float, top: float):
        """Scroll the window and fire a scroll event, even when the position is unchanged"""
        self._scroll_x = left
        self._scroll_y = top
        self._document.document_element._scroll_left = left
        self._document.document_element._scroll_top = top
        self.dispatch_event('scroll')

    def resize_viewport(self):
        """Fire a window resize event"""
        self.dispatch_event('resize')

    def __repr__(self):
        return f"LocalWindow({self._origin!r})"


async def flush(rounds: int = 5):
    """Let pending deliveries and deferred callbacks run"""
    for _ in range(rounds):
        await asyncio.sleep(0)
