"""
Host interface for framesync
Abstracts the execution context an agent runs in: a window with a document,
layout observers, event listeners, scheduling, and the cross-context post
primitive. framesync.host.local provides an in-memory asyncio implementation.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional
from dataclasses import dataclass

Listener = Callable[[Any], None]


@dataclass
class MessageEvent:
    """A delivered cross-context message"""
    data: Any
    origin: str
    source: Optional['HostWindow'] = None


class Handle(ABC):
    """Cancellable scheduled callback"""

    @abstractmethod
    def cancel(self) -> None:
        pass


class HostObserver(ABC):
    """Resize or mutation observer bound to a callback"""

    @abstractmethod
    def observe(self, target: 'HostElement') -> None:
        pass

    @abstractmethod
    def unobserve(self, target: 'HostElement') -> None:
        pass

    @abstractmethod
    def disconnect(self) -> None:
        pass


class HostElement(ABC):
    """Layout metrics of a document element"""

    @property
    @abstractmethod
    def scroll_height(self) -> int:
        pass

    @property
    @abstractmethod
    def scroll_width(self) -> int:
        pass

    @property
    @abstractmethod
    def offset_height(self) -> int:
        pass

    @property
    def scroll_top(self) -> float:
        return 0

    @property
    def scroll_left(self) -> float:
        return 0


class FrameElement(HostElement):
    """An element hosting an embedded document"""

    @property
    @abstractmethod
    def content_window(self) -> Optional['HostWindow']:
        pass


class HostDocument(ABC):

    @property
    @abstractmethod
    def body(self) -> HostElement:
        pass

    @property
    @abstractmethod
    def document_element(self) -> HostElement:
        pass

    @abstractmethod
    def query_selector(self, selector: str) -> Optional[HostElement]:
        pass


class HostWindow(ABC):
    """A browsing context as seen by an agent"""

    @property
    @abstractmethod
    def origin(self) -> str:
        pass

    @property
    @abstractmethod
    def host(self) -> str:
        """Host part of the location, used in log prefixes"""
        pass

    @property
    @abstractmethod
    def parent(self) -> 'HostWindow':
        """Embedding window, or the window itself at top level"""
        pass

    @property
    @abstractmethod
    def document(self) -> HostDocument:
        pass

    @property
    @abstractmethod
    def scroll_x(self) -> float:
        pass

    @property
    @abstractmethod
    def scroll_y(self) -> float:
        pass

    @abstractmethod
    def post_message(self, data: Any, target_origin: str, source: Optional['HostWindow'] = None) -> None:
        """Deliver ``data`` to this window's message listeners asynchronously"""
        pass

    @abstractmethod
    def add_event_listener(self, event_type: str, listener: Listener) -> None:
        pass

    @abstractmethod
    def remove_event_listener(self, event_type: str, listener: Listener) -> None:
        pass

    @abstractmethod
    def call_soon(self, callback: Callable[[], None]) -> Handle:
        pass

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> Handle:
        pass

    @abstractmethod
    def create_resize_observer(self, callback: Callable[[list], None]) -> HostObserver:
        pass

    @abstractmethod
    def create_mutation_observer(self, callback: Callable[[list], None]) -> HostObserver:
        pass

    def is_embedded(self) -> bool:
        """True when the window has a distinguishable embedding context"""
        return self.parent is not self
