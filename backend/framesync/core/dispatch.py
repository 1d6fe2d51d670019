"""
Dispatch table for framesync
Routes inbound message types to caller-registered handlers. Built-in types
are handled by the agents before the table is consulted; the table only holds
caller-defined extension types. A failing handler is logged and isolated.
"""

import asyncio
import logging
from typing import Dict, Any, Callable, Iterable, Optional, Set

from .errors import HandlerFault, UnknownMessageType
from .host import MessageEvent
from .message import Message
from ..utils.logging import AgentLogAdapter, safe_repr, sanitize_dict

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any], MessageEvent], Any]


class DispatchTable:
    """Mapping of message type to handler, last registration wins"""

    def __init__(self, log: Optional[AgentLogAdapter] = None, reserved: Iterable[str] = ()):
        self.handlers: Dict[str, Handler] = {}
        self.reserved = frozenset(reserved)
        self._tasks: Set[asyncio.Future] = set()
        self.log = log or AgentLogAdapter(logger, 'DISPATCH', '-')
        self.stats = {
            'dispatched': 0,
            'unhandled': 0,
            'faults': 0,
        }

    def __contains__(self, msg_type: str) -> bool:
        return msg_type in self.handlers

    def __len__(self) -> int:
        return len(self.handlers)

    def register(self, msg_type: str, handler: Handler) -> bool:
        """Register a handler, False when the arguments are rejected"""
        if not isinstance(msg_type, str) or not msg_type or not callable(handler):
            self.log.error(f"Invalid handler for message type: {msg_type!r}. Callback must be a function.")
            return False
        if msg_type in self.reserved:
            self.log.warning(f"Message type '{msg_type}' is reserved and cannot be overridden")
            return False

        self.handlers[msg_type] = handler
        self.log.info(f"Custom message handler registered for type: {msg_type}")
        return True

    def unregister(self, msg_type: str) -> bool:
        return self.handlers.pop(msg_type, None) is not None

    def clear(self):
        """Drop all handlers and cancel handler tasks still pending"""
        self.handlers.clear()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

    def dispatch(self, message: Message, event: MessageEvent) -> bool:
        """Invoke the handler for ``message.type``; True when one was found"""
        handler = self.handlers.get(message.type)
        if handler is None:
            error = UnknownMessageType(
                message=f"No handler registered for message type: {message.type}",
                data=message.payload,
            )
            self.stats['unhandled'] += 1
            self.log.warning(f"{error.message} {safe_repr(message.payload)}",
                             extra={'error': sanitize_dict(error.to_dict())})
            return False

        self.stats['dispatched'] += 1
        self._safe_call(handler, message, event)
        return True

    def _safe_call(self, handler: Handler, message: Message, event: MessageEvent):
        """Call a handler, logging instead of propagating its failure"""
        try:
            result = handler(dict(message.payload), event)
        except Exception as e:
            self._report_fault(message.type, e)
            return

        if asyncio.iscoroutine(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(lambda t: self._on_task_done(message.type, t))
        else:
            self.log.debug(f"Custom message processed: {message.type}")

    def _on_task_done(self, msg_type: str, task: asyncio.Future):
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self._report_fault(msg_type, error)
        else:
            self.log.debug(f"Custom message processed: {msg_type}")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def _report_fault(self, msg_type: str, error: BaseException):
        self.stats['faults'] += 1
        fault = HandlerFault(
            message=f"Error in custom message handler for type: {msg_type}: {error}",
            data={'type': msg_type},
        )
        self.log.error(fault.message, extra={'error': fault.to_dict()})
