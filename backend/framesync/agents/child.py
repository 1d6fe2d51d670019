"""
Child agent for framesync
Runs inside the embedded document: reports content size and scroll position
to the embedding window, announces readiness, and exchanges custom messages.
Only one child agent is active per registry at a time.

Usage:
    agent = create_child(window, targetOrigin='https://parent.example', log=True)
    agent.on_message('theme', lambda data, event: apply_theme(data))
    agent.send_message('selected', {'id': 42})
"""

import logging
from typing import Dict, Any, Optional, Mapping

from .base import AgentState, BaseAgent
from ..core.change_detector import ChangeDetector
from ..core.channel import Channel
from ..core.errors import ConfigurationError, HostEnvironmentError
from ..core.handshake import ReadyAnnouncer
from ..core.host import HostWindow, MessageEvent
from ..core.message import Dimension, Message, MessageType, ScrollPosition
from ..core.options import ChildOptions
from ..core.registry import ChildRegistry, get_child_registry

logger = logging.getLogger(__name__)


class ChildAgent(BaseAgent):
    """Agent for the embedded side of the channel"""

    side = "CHILD"
    reserved_types = frozenset({MessageType.READY_ACK.value})

    def __init__(self, window: HostWindow, options: Optional[Mapping[str, Any]] = None,
                 registry: Optional[ChildRegistry] = None, **kwargs):
        super().__init__(window)
        self.registry = registry or get_child_registry()
        self.detector: Optional[ChangeDetector] = None
        self.announcer: Optional[ReadyAnnouncer] = None

        try:
            self._configure(ChildOptions.from_mapping(options, **kwargs))
        except ConfigurationError as e:
            self._abort(e)
            return

        if not window.is_embedded():
            self._abort(HostEnvironmentError(message="Not running inside an iFrame"))
            return

        self.log.info("Running inside an iFrame")
        self._state = AgentState.INITIALIZING
        self.registry.install(self, log=self.log)
        self.log.info(f"Initializing {self.options.model_dump(exclude={'init_data'})}")

        self.channel = Channel(window, lambda: window.parent, self.options, self.log)
        self.channel.install(self._receive)
        self._state = AgentState.ACTIVE

        self.detector = ChangeDetector(
            window,
            on_resize=self._report_resize,
            on_scroll=self._report_scroll,
            resize=self.options.resize,
            scroll=self.options.scroll,
            log=self.log,
        )
        self.detector.start()

        if self.options.legacy_init:
            self.channel.send(MessageType.INIT.value, self.options.init_data)

        self.announcer = ReadyAnnouncer(
            window,
            self.channel.send,
            init_data=self.options.init_data,
            retry_interval=self.options.ready_retry_interval,
            max_retries=self.options.max_ready_retries,
            log=self.log,
        )
        self.announcer.start()

        self.registry.notify_created(self, log=self.log)

    @property
    def last_dimension(self) -> Optional[Dimension]:
        return self.detector.last_dimension if self.detector else None

    def check_resize(self, force: bool = False) -> bool:
        """Re-measure the document now; True when a resize was emitted"""
        if not self.is_active or self.detector is None:
            return False
        return self.detector.check(force=force)

    def _report_resize(self, dimension: Dimension):
        if self.is_active:
            self.channel.send(MessageType.RESIZE.value, dimension.to_dict())

    def _report_scroll(self, position: ScrollPosition):
        if self.is_active:
            self.channel.send(MessageType.SCROLL.value, position.to_dict())

    def _handle_builtin(self, message: Message, event: MessageEvent) -> bool:
        if message.type == MessageType.READY_ACK.value:
            if self.announcer is not None:
                self.announcer.acknowledge()
            return True
        return False

    def _teardown(self):
        if self.detector is not None:
            self.detector.stop()
        if self.announcer is not None:
            self.announcer.stop()
        self.registry.release(self)


def create_child(window: HostWindow, options: Optional[Mapping[str, Any]] = None,
                 registry: Optional[ChildRegistry] = None, **kwargs) -> ChildAgent:
    """Create the child agent for ``window``, replacing any active one"""
    return ChildAgent(window, options, registry=registry, **kwargs)
