"""
Error taxonomy for framesync
None of these escape from event callbacks: agents report them through their
logger and keep the channel alive (or stay inert when construction aborts)
"""

from typing import Dict, Any, Optional
from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Error codes for framesync faults"""
    CONFIGURATION_ERROR = 1001
    HOST_ENVIRONMENT_ERROR = 1002
    ORIGIN_MISMATCH = 2001
    UNKNOWN_MESSAGE_TYPE = 2002
    HANDLER_FAULT = 2003
    NOT_ACTIVE = 3001


@dataclass
class FrameSyncError(Exception):
    """Base error structure"""
    message: str
    code: int = 0
    data: Optional[Any] = None

    def __post_init__(self):
        """Initialize the Exception with the message"""
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        result = {
            'code': self.code,
            'message': self.message
        }
        if self.data is not None:
            result['data'] = self.data
        return result


@dataclass
class ConfigurationError(FrameSyncError):
    """Invalid frame element, selector or options"""
    code: int = ErrorCode.CONFIGURATION_ERROR.value


@dataclass
class HostEnvironmentError(FrameSyncError):
    """Child agent constructed in a window that is not embedded anywhere"""
    code: int = ErrorCode.HOST_ENVIRONMENT_ERROR.value


@dataclass
class OriginMismatch(FrameSyncError):
    code: int = ErrorCode.ORIGIN_MISMATCH.value


@dataclass
class UnknownMessageType(FrameSyncError):
    code: int = ErrorCode.UNKNOWN_MESSAGE_TYPE.value


@dataclass
class HandlerFault(FrameSyncError):
    """A consumer handler raised while a message was being dispatched"""
    code: int = ErrorCode.HANDLER_FAULT.value


@dataclass
class AgentNotActive(FrameSyncError):
    code: int = ErrorCode.NOT_ACTIVE.value
