"""
Agent configuration for framesync
Options are accepted under snake_case names or the camelCase names used by
embedding pages (targetOrigin, initData, onResize, ...) and validated once at
construction
"""

import os
import logging
from typing import Dict, Any, Optional, Callable, Mapping, TypeVar, Type
from urllib.parse import urlsplit
from pydantic import BaseModel, ConfigDict, Field, field_validator, ValidationError

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

WILDCARD_ORIGIN = "*"

T = TypeVar('T', bound='AgentOptions')


def _env_target_origin() -> str:
    return os.environ.get('FRAMESYNC_TARGET_ORIGIN', WILDCARD_ORIGIN)


def _env_log() -> bool:
    return os.environ.get('FRAMESYNC_LOG', 'false').lower() in ('1', 'true', 'yes')


def normalize_origin(value: str) -> str:
    """Reduce a URL to its origin (scheme://host[:port]), '*' passes through"""
    if value == WILDCARD_ORIGIN:
        return value
    parts = urlsplit(value)
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"targetOrigin must be '*' or an absolute origin, got {value!r}")
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}"


class AgentOptions(BaseModel):
    """Options shared by both sides of the channel"""
    model_config = ConfigDict(populate_by_name=True, extra='forbid', arbitrary_types_allowed=True)

    target_origin: str = Field(default_factory=_env_target_origin, alias='targetOrigin',
                               description="Origin the remote window must have")
    log: bool = Field(default_factory=_env_log, description="Enable diagnostic logging")

    @field_validator('target_origin')
    @classmethod
    def validate_target_origin(cls, v):
        if not isinstance(v, str) or not v:
            raise ValueError("targetOrigin must be a non-empty string")
        return normalize_origin(v)

    @property
    def is_wildcard(self) -> bool:
        return self.target_origin == WILDCARD_ORIGIN

    def accepts_origin(self, origin: Optional[str]) -> bool:
        """Check an inbound event origin against the configured target origin"""
        return self.is_wildcard or origin == self.target_origin

    @classmethod
    def from_mapping(cls: Type[T], options: Optional[Mapping[str, Any]] = None, **overrides) -> T:
        """Merge options over the defaults, raising ConfigurationError when invalid"""
        merged: Dict[str, Any] = dict(options or {})
        merged.update(overrides)
        try:
            return cls.model_validate(merged)
        except ValidationError as e:
            logger.debug(f"Rejected {cls.__name__}: {e.errors()}")
            raise ConfigurationError(message=f"Invalid {cls.__name__}: {e}", data=merged)


class ChildOptions(AgentOptions):
    """Options of the agent running inside the embedded document"""
    resize: bool = Field(default=True, description="Report content size changes")
    scroll: bool = Field(default=True, description="Report scroll events")
    init_data: Optional[Dict[str, Any]] = Field(default=None, alias='initData',
                                                description="Payload attached to 'ready'")
    ready_retry_interval: Optional[float] = Field(default=None, alias='readyRetryInterval',
                                                  description="Seconds between 'ready' re-announcements")
    max_ready_retries: int = Field(default=10, alias='maxReadyRetries')
    legacy_init: bool = Field(default=False, alias='legacyInit',
                              description="Also emit the legacy 'init' message")

    @field_validator('ready_retry_interval')
    @classmethod
    def validate_retry_interval(cls, v):
        if v is not None and v <= 0:
            raise ValueError("readyRetryInterval must be positive")
        return v

    @field_validator('max_ready_retries')
    @classmethod
    def validate_max_retries(cls, v):
        if v < 0:
            raise ValueError("maxReadyRetries cannot be negative")
        return v


class ParentOptions(AgentOptions):
    """Options of the agent running in the embedding document"""
    on_resize: Optional[Callable[..., Any]] = Field(default=None, alias='onResize',
                                                    description="Called as on_resize(width, height)")
    on_scroll: Optional[Callable[..., Any]] = Field(default=None, alias='onScroll',
                                                    description="Called as on_scroll(left, top)")
