"""
Logging utilities for framesync agents.

Agents log through an AgentLogAdapter: every record carries the
``[LOG][IFRAME CHILD|PARENT][<host>]`` prefix and nothing is emitted unless
the agent was created with ``log=True``. Payloads are rendered with
safe_repr so tokens or passwords carried in messages never reach the logs.
"""

import logging
import re
from typing import Any, Dict, MutableMapping, Tuple


SECRET_PATTERNS = [
    (re.compile(r"('(?:password|passphrase|token|secret|api_?key|access_?token)'\s*:\s*')[^']*(')", re.IGNORECASE),
     r"\1***REDACTED***\2"),
    (re.compile(r'("(?:password|passphrase|token|secret|api_?key|access_?token)"\s*:\s*")[^"]*(")', re.IGNORECASE),
     r'\1***REDACTED***\2'),
    (re.compile(r'((?:password|token|api_key)=)[^\s&]+', re.IGNORECASE), r'\1***REDACTED***'),
]

SECRET_FIELDS = {
    'password', 'passphrase', 'token', 'apikey', 'api_key', 'secret',
    'authtoken', 'auth_token', 'accesstoken', 'access_token', 'refreshtoken', 'refresh_token',
}


def sanitize_string(text: str) -> str:
    """Replace secret-looking substrings with placeholders"""
    if not text:
        return text
    result = text
    for pattern, replacement in SECRET_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


def sanitize_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively sanitize a message payload.

    Args:
        data: Payload that may contain secrets

    Returns:
        New dictionary with secret values replaced by placeholders
    """
    if not isinstance(data, dict):
        return data

    result = {}
    for key, value in data.items():
        if isinstance(key, str) and key.lower() in SECRET_FIELDS:
            result[key] = '***REDACTED***'
        elif isinstance(value, dict):
            result[key] = sanitize_dict(value)
        elif isinstance(value, list):
            result[key] = [sanitize_dict(item) if isinstance(item, dict) else item for item in value]
        elif isinstance(value, str):
            result[key] = sanitize_string(value)
        else:
            result[key] = value
    return result


def safe_repr(obj: Any, max_length: int = 200) -> str:
    """
    Create a sanitized, length-limited repr of a payload.

    Args:
        obj: Object to represent
        max_length: Maximum length of the repr string

    Returns:
        Safe repr string
    """
    if isinstance(obj, dict):
        obj = sanitize_dict(obj)

    sanitized = sanitize_string(repr(obj))
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + '...(truncated)'
    return sanitized


class AgentLogAdapter(logging.LoggerAdapter):
    """Prefixes agent records and drops them unless diagnostics are enabled"""

    def __init__(self, logger: logging.Logger, side: str, host: str, enabled: bool = False):
        super().__init__(logger, {'side': side, 'host': host})
        self.enabled = enabled

    @property
    def prefix(self) -> str:
        return f"[LOG][IFRAME {self.extra['side']}][{self.extra['host']}]"

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        return f"{self.prefix}: {msg}", kwargs

    def isEnabledFor(self, level: int) -> bool:
        return self.enabled and self.logger.isEnabledFor(level)
