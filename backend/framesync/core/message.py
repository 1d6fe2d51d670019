"""
Wire format for framesync
Messages travel as flat tagged records: {"type": <str>, ...payload fields}
"""

from typing import Dict, Any, Optional, Mapping
from dataclasses import dataclass, field
from enum import Enum


class MessageType(Enum):
    """Built-in message types"""
    READY = "ready"
    READY_ACK = "ready-ack"
    RESIZE = "resize"
    SCROLL = "scroll"
    INIT = "init"  # legacy child announcement


BUILTIN_TYPES = frozenset(t.value for t in MessageType)


@dataclass
class Message:
    """A typed message; payload holds every field except ``type``"""
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_wire(self) -> Dict[str, Any]:
        """Flatten into the tagged record posted across contexts"""
        record = dict(self.payload)
        record['type'] = self.type
        return record

    @classmethod
    def from_wire(cls, data: Any) -> Optional['Message']:
        """Parse a received record, None when it is not a typed mapping"""
        if not isinstance(data, Mapping):
            return None
        msg_type = data.get('type')
        if not isinstance(msg_type, str) or not msg_type:
            return None
        payload = {k: v for k, v in data.items() if k != 'type'}
        return cls(type=msg_type, payload=payload)

    def is_builtin(self) -> bool:
        return self.type in BUILTIN_TYPES


@dataclass(frozen=True)
class Dimension:
    """Content size reported by the embedded document"""
    height: int
    width: int

    def to_dict(self) -> Dict[str, int]:
        return {'height': self.height, 'width': self.width}


@dataclass(frozen=True)
class ScrollPosition:
    """Scroll offset of the embedded document"""
    top: float
    left: float

    def to_dict(self) -> Dict[str, float]:
        return {'top': self.top, 'left': self.left}


def build_message(msg_type: str, data: Optional[Mapping[str, Any]] = None) -> Message:
    """Create a message from a type and an optional payload mapping.

    A ``type`` key inside ``data`` never overrides ``msg_type``.
    """
    payload = dict(data) if data else {}
    payload.pop('type', None)
    return Message(type=msg_type, payload=payload)
