"""
Agents module for framesync
Public entry points for the embedded (child) and embedding (parent) sides
"""

from .base import AgentState, BaseAgent
from .child import ChildAgent, create_child
from .parent import ParentAgent, create_parent

__all__ = [
    'AgentState',
    'BaseAgent',
    'ChildAgent',
    'create_child',
    'ParentAgent',
    'create_parent',
]
