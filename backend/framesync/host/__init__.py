"""
Host implementations for framesync
"""

from .local import LocalWindow, LocalDocument, LocalElement, LocalFrame, LocalObserver, flush

__all__ = [
    'LocalWindow',
    'LocalDocument',
    'LocalElement',
    'LocalFrame',
    'LocalObserver',
    'flush',
]
