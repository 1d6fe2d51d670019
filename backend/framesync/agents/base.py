"""
Base agent for framesync
Shared lifecycle, message handler registration and sending for the embedded
(child) and embedding (parent) sides of a channel.
"""

import logging
from typing import Dict, Any, Optional, Mapping
from enum import Enum

from ..core.channel import Channel
from ..core.dispatch import DispatchTable, Handler
from ..core.errors import AgentNotActive, FrameSyncError
from ..core.host import HostWindow, MessageEvent
from ..core.message import Message
from ..core.options import AgentOptions
from ..utils.logging import AgentLogAdapter

logger = logging.getLogger(__name__)


class AgentState(Enum):
    """Agent lifecycle states"""
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    ACTIVE = "active"
    INERT = "inert"  # construction aborted
    DESTROYED = "destroyed"


class BaseAgent:
    """One side of a framesync channel"""

    side = "AGENT"
    reserved_types: frozenset = frozenset()

    def __init__(self, window: HostWindow):
        self.window = window
        self._state = AgentState.UNINITIALIZED
        self.options: Optional[AgentOptions] = None
        self.channel: Optional[Channel] = None
        self.log = AgentLogAdapter(logger, self.side, window.host)
        self.handlers = DispatchTable(self.log, reserved=self.reserved_types)

    @property
    def state(self) -> AgentState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state == AgentState.ACTIVE

    def _configure(self, options: AgentOptions):
        self.options = options
        self.log.enabled = options.log

    def _abort(self, error: FrameSyncError):
        """Leave the agent inert; construction problems are always reported"""
        self._state = AgentState.INERT
        logger.error(f"{self.log.prefix}: {error.message}. Initialization aborted.",
                     extra={'error': error.to_dict()})

    def on_message(self, msg_type: str, callback: Handler) -> 'BaseAgent':
        """Register a handler for a custom message type; chainable"""
        if self._state in (AgentState.INERT, AgentState.DESTROYED):
            self.log.error(f"Agent is {self._state.value}, handler for '{msg_type}' not registered")
            return self
        self.handlers.register(msg_type, callback)
        return self

    def send_message(self, msg_type: str, data: Optional[Mapping[str, Any]] = None) -> 'BaseAgent':
        """Post a message to the remote side; chainable"""
        if not self.is_active or self.channel is None:
            error = AgentNotActive(message=f"Agent is not initialized. Cannot send message '{msg_type}'.")
            self.log.error(error.message, extra={'error': error.to_dict()})
            return self
        if not isinstance(msg_type, str) or not msg_type:
            self.log.error(f"Invalid message type: {msg_type!r}")
            return self
        self.channel.send(msg_type, data)
        return self

    def destroy(self) -> None:
        """Unregister listeners and observers; safe to call repeatedly"""
        if self._state == AgentState.DESTROYED:
            return
        self.log.info(f"Destroying {type(self).__name__} instance")
        self._teardown()
        if self.channel is not None:
            self.channel.close()
        self.handlers.clear()
        self._state = AgentState.DESTROYED

    def _teardown(self):
        """Side-specific cleanup run before the channel is closed"""
        pass

    def _receive(self, message: Message, event: MessageEvent):
        """Channel callback: built-in types first, then the handler table"""
        if not self.is_active:
            return
        if self._handle_builtin(message, event):
            return
        self.handlers.dispatch(message, event)

    def _handle_builtin(self, message: Message, event: MessageEvent) -> bool:
        return False

    def get_stats(self) -> Dict[str, Any]:
        return {
            'state': self._state.value,
            'handlers': len(self.handlers),
            'channel': dict(self.channel.stats) if self.channel else {},
            'dispatch': dict(self.handlers.stats),
        }
