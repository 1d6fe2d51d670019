"""
Child agent registry for framesync
Holds the single active embedded-side agent. Installing a new agent destroys
the previous one first so orphaned observers never emit twice.
"""

import logging
from typing import Any, Callable, Optional, Protocol

from ..utils.logging import AgentLogAdapter

logger = logging.getLogger(__name__)


class Disposable(Protocol):
    is_active: bool

    def destroy(self) -> None:
        ...


class ChildRegistry:
    """Owner of the active child agent"""

    def __init__(self):
        self._current: Optional[Disposable] = None
        self.on_create: Optional[Callable[[Any], Any]] = None
        self._log = AgentLogAdapter(logger, 'CHILD', 'registry')
        self.stats = {
            'created': 0,
            'replaced': 0,
        }

    @property
    def current(self) -> Optional[Disposable]:
        return self._current

    def install(self, agent: Disposable, log: Optional[AgentLogAdapter] = None) -> None:
        """Make ``agent`` the active child, destroying any live predecessor"""
        log = log or self._log
        previous = self._current
        if previous is not None and previous is not agent:
            if previous.is_active:
                log.debug("Destroying previous child agent")
                self.stats['replaced'] += 1
            previous.destroy()
        self._current = agent
        self.stats['created'] += 1

    def release(self, agent: Disposable) -> None:
        """Forget ``agent`` if it is the current one"""
        if self._current is agent:
            self._current = None

    def notify_created(self, agent: Any, log: Optional[AgentLogAdapter] = None) -> None:
        """Run the on_create hook for a freshly constructed agent"""
        hook = self.on_create
        if hook is None:
            return
        try:
            hook(agent)
        except Exception as e:
            (log or self._log).error(f"Error in child agent on_create hook: {e}")


# Global child registry instance
_child_registry: Optional[ChildRegistry] = None


def get_child_registry() -> ChildRegistry:
    """Get the global child registry"""
    global _child_registry
    if _child_registry is None:
        _child_registry = ChildRegistry()
    return _child_registry


def reset_child_registry():
    """Destroy the active child agent and drop the global registry"""
    global _child_registry
    if _child_registry is not None:
        current = _child_registry.current
        if current is not None:
            current.destroy()
        _child_registry = None
