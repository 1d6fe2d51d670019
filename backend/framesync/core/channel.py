"""
Channel for framesync
Origin-filtered, one-way send/receive wrapper over a host window's
cross-context post primitive. Each channel owns at most one message listener.
"""

import logging
from typing import Any, Callable, Mapping, Optional

from .errors import OriginMismatch
from .host import HostWindow, MessageEvent
from .message import Message, build_message
from .options import AgentOptions
from ..utils.logging import AgentLogAdapter, safe_repr

logger = logging.getLogger(__name__)

MessageCallback = Callable[[Message, MessageEvent], None]
RemoteResolver = Callable[[], Optional[HostWindow]]


class Channel:
    """
    Binds a local window to one remote window

    ``remote`` resolves the window messages are posted to. When
    ``check_source`` is set, inbound events are accepted only if their
    source is that same window (the embedding side may receive messages from
    any number of frames; the embedded side has a single possible remote).
    """

    def __init__(self, window: HostWindow, remote: RemoteResolver, options: AgentOptions,
                 log: Optional[AgentLogAdapter] = None, check_source: bool = False):
        self.window = window
        self._remote = remote
        self.options = options
        self.log = log or AgentLogAdapter(logger, 'CHANNEL', window.host, options.log)
        self.check_source = check_source
        self._callback: Optional[MessageCallback] = None
        self._installed = False
        self._closed = False

        self.stats = {
            'messages_sent': 0,
            'messages_received': 0,
            'messages_rejected': 0,
        }

    @property
    def installed(self) -> bool:
        return self._installed

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def remote(self) -> Optional[HostWindow]:
        return self._remote()

    def send(self, msg_type: str, payload: Optional[Mapping[str, Any]] = None) -> bool:
        """Post a tagged message to the remote window, True when posted"""
        if self._closed:
            self.log.error(f"Channel closed, cannot send '{msg_type}'")
            return False

        remote = self._remote()
        if remote is None:
            self.log.error(f"Remote window not available, cannot send '{msg_type}'")
            return False

        message = build_message(msg_type, payload)
        record = message.to_wire()
        self.log.debug(f"postMessage {safe_repr(record)} -> {self.options.target_origin}")
        remote.post_message(record, self.options.target_origin, source=self.window)
        self.stats['messages_sent'] += 1
        return True

    def install(self, callback: MessageCallback) -> None:
        """Install the message listener; replaces the callback if already installed"""
        if self._closed:
            raise RuntimeError("Channel is closed")
        self._callback = callback
        if not self._installed:
            self.window.add_event_listener('message', self._on_event)
            self._installed = True

    def uninstall(self) -> None:
        """Remove the message listener; safe to call repeatedly"""
        if self._installed:
            self.window.remove_event_listener('message', self._on_event)
            self._installed = False
        self._callback = None

    def close(self) -> None:
        """Uninstall and refuse all further traffic"""
        self.uninstall()
        self._closed = True

    def accepts(self, event: MessageEvent) -> bool:
        """Apply the source and origin filters to an inbound event"""
        if self.check_source:
            remote = self._remote()
            if remote is None or event.source is not remote:
                # Other frames on the page share this window's listeners
                self.log.debug(f"Ignored message from foreign source {event.source!r}")
                return False

        if not self.options.accepts_origin(event.origin):
            error = OriginMismatch(
                message=f"Message origin mismatch: expected {self.options.target_origin}, got {event.origin}",
                data={'origin': event.origin},
            )
            self.log.warning(error.message, extra={'error': error.to_dict()})
            return False

        return True

    def _on_event(self, event: MessageEvent) -> None:
        # A delivery may still be queued when the channel is torn down
        if self._closed or self._callback is None:
            return

        if not self.accepts(event):
            self.stats['messages_rejected'] += 1
            return

        message = Message.from_wire(event.data)
        if message is None:
            self.stats['messages_rejected'] += 1
            self.log.warning(f"Dropped untyped message {safe_repr(event.data)}")
            return

        self.stats['messages_received'] += 1
        self.log.debug(f"Message received {safe_repr(event.data)}")
        self._callback(message, event)
