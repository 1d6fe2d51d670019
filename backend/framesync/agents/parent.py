"""
Parent agent for framesync
Runs in the embedding document, one per managed frame. Receives size and
scroll reports through dedicated callbacks, tracks the child's readiness and
exchanges custom messages with it. Applying the reported size to the frame is
left to the on_resize callback.

Usage:
    agent = create_parent(window, '#content', onResize=lambda w, h: set_height(h))
    agent.on_ready(lambda data: agent.send_message('theme', {'dark': True}))
"""

import logging
from typing import Dict, Any, Callable, Optional, Mapping, Union

from .base import AgentState, BaseAgent
from ..core.channel import Channel
from ..core.errors import ConfigurationError
from ..core.handshake import ReadyCallback, ReadyState
from ..core.host import FrameElement, HostWindow, MessageEvent
from ..core.message import Message, MessageType
from ..core.options import ParentOptions

logger = logging.getLogger(__name__)


class ParentAgent(BaseAgent):
    """Agent for the embedding side of the channel"""

    side = "PARENT"
    reserved_types = frozenset({
        MessageType.READY.value,
        MessageType.RESIZE.value,
        MessageType.SCROLL.value,
    })

    def __init__(self, window: HostWindow, frame: Union[FrameElement, str],
                 options: Optional[Mapping[str, Any]] = None, **kwargs):
        super().__init__(window)
        self.frame: Optional[FrameElement] = None
        self.ready = ReadyState(self.log)

        try:
            self._configure(ParentOptions.from_mapping(options, **kwargs))
            self.frame = self._resolve_frame(frame)
        except ConfigurationError as e:
            self._abort(e)
            return

        self._state = AgentState.INITIALIZING
        self.channel = Channel(window, self._content_window, self.options, self.log, check_source=True)
        self.channel.install(self._receive)
        self._state = AgentState.ACTIVE
        self.log.info("ParentIFrameResizer initialized")

    def _resolve_frame(self, frame: Union[FrameElement, str]) -> FrameElement:
        element = frame
        if isinstance(frame, str):
            element = self.window.document.query_selector(frame)
        if not isinstance(element, FrameElement):
            raise ConfigurationError(
                message="Iframe element not found or selector invalid",
                data={'frame': repr(frame)},
            )
        return element

    def _content_window(self) -> Optional[HostWindow]:
        return self.frame.content_window if self.frame is not None else None

    @property
    def is_ready(self) -> bool:
        return self.ready.is_ready

    @property
    def ready_data(self) -> Optional[Dict[str, Any]]:
        return self.ready.data

    def on_ready(self, callback: ReadyCallback) -> 'ParentAgent':
        """Run ``callback(data)`` once the child has announced readiness.

        Registered after readiness, the callback runs immediately. Only one
        pending callback is kept; a later registration replaces it.
        """
        if self._state in (AgentState.INERT, AgentState.DESTROYED):
            self.log.error(f"Agent is {self._state.value}, onReady callback ignored")
            return self
        self.ready.on_ready(callback)
        return self

    def _handle_builtin(self, message: Message, event: MessageEvent) -> bool:
        payload = message.payload
        if message.type == MessageType.RESIZE.value:
            self._call_option(self.options.on_resize, 'onResize', payload.get('width'), payload.get('height'))
            return True
        if message.type == MessageType.SCROLL.value:
            self._call_option(self.options.on_scroll, 'onScroll', payload.get('left'), payload.get('top'))
            return True
        if message.type == MessageType.READY.value:
            self.ready.mark_ready(payload)
            self.channel.send(MessageType.READY_ACK.value)
            return True
        return False

    def _call_option(self, callback: Optional[Callable[..., Any]], name: str, *args):
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            self.log.error(f"Error in {name} callback: {e}")

    def _teardown(self):
        self.ready.reset()


def create_parent(window: HostWindow, frame: Union[FrameElement, str],
                  options: Optional[Mapping[str, Any]] = None, **kwargs) -> ParentAgent:
    """Create a parent agent managing ``frame`` (an element or a selector)"""
    return ParentAgent(window, frame, options, **kwargs)
