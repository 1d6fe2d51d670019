"""
Readiness handshake for framesync
The embedded side announces 'ready' one loop iteration after its listener is
attached, optionally repeating the announcement until the embedding side
answers with 'ready-ack'. The embedding side records readiness and runs a
single pending on_ready callback.
"""

import logging
from typing import Dict, Any, Callable, Optional

from .host import Handle, HostWindow
from .message import MessageType
from ..utils.logging import AgentLogAdapter, safe_repr

logger = logging.getLogger(__name__)

ReadyCallback = Callable[[Dict[str, Any]], Any]


class ReadyAnnouncer:
    """Child side of the handshake"""

    def __init__(self, window: HostWindow, send: Callable[[str, Dict[str, Any]], bool],
                 init_data: Optional[Dict[str, Any]] = None,
                 retry_interval: Optional[float] = None, max_retries: int = 10,
                 log: Optional[AgentLogAdapter] = None):
        self.window = window
        self._send = send
        self.init_data = dict(init_data or {})
        self.retry_interval = retry_interval
        self.max_retries = max_retries
        self.log = log or AgentLogAdapter(logger, 'CHILD', window.host)

        self.attempts = 0
        self.acknowledged = False
        self._handle: Optional[Handle] = None
        self._stopped = False

    def start(self):
        """Schedule the first announcement on the next loop iteration"""
        if self._stopped or self._handle is not None:
            return
        self._handle = self.window.call_soon(self._announce)

    def acknowledge(self):
        if self.acknowledged:
            return
        self.acknowledged = True
        self.log.debug(f"Ready acknowledged after {self.attempts} announcement(s)")
        self._cancel()

    def stop(self):
        self._stopped = True
        self._cancel()

    def _cancel(self):
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _announce(self):
        self._handle = None
        if self._stopped or self.acknowledged:
            return

        self.attempts += 1
        if not self._send(MessageType.READY.value, self.init_data):
            return

        if self.retry_interval is None:
            return
        if self.attempts > self.max_retries:
            self.log.warning(f"No ready acknowledgement after {self.attempts} announcements, giving up")
            return
        self._handle = self.window.call_later(self.retry_interval, self._announce)


class ReadyState:
    """Parent side of the handshake"""

    def __init__(self, log: Optional[AgentLogAdapter] = None):
        self.log = log or AgentLogAdapter(logger, 'PARENT', '-')
        self.is_ready = False
        self.data: Optional[Dict[str, Any]] = None
        self._pending: Optional[ReadyCallback] = None

    def on_ready(self, callback: ReadyCallback):
        """Run ``callback`` with the ready payload, now or when it arrives"""
        if not callable(callback):
            self.log.error("onReady callback must be a function")
            return
        if self.is_ready:
            self._invoke(callback)
        else:
            if self._pending is not None:
                self.log.debug("Replacing pending onReady callback")
            self._pending = callback

    def mark_ready(self, data: Dict[str, Any]) -> bool:
        """Record readiness, False for a repeated announcement"""
        if self.is_ready:
            self.log.debug("Repeated ready announcement ignored")
            return False

        self.is_ready = True
        self.data = dict(data)
        self.log.info(f"Child ready {safe_repr(self.data)}")
        callback, self._pending = self._pending, None
        if callback is not None:
            self._invoke(callback)
        return True

    def reset(self):
        self.is_ready = False
        self.data = None
        self._pending = None

    def _invoke(self, callback: ReadyCallback):
        try:
            callback(dict(self.data or {}))
        except Exception as e:
            self.log.error(f"Error in onReady callback: {e}")
