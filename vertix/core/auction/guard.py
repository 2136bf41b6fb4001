"""
Re-entrancy guard for the engine's mutating entry points.

Any value push to a counterparty runs the counterparty's code, which may
call straight back into the engine. One guard is shared by every
mutating entry point, so a nested call into any of them fails with
ReentrantCall before it can observe half-updated state.
"""

import functools

from vertix.core.errors import ReentrantCall


class ReentrancyGuard:
    """Call-depth lock; entering while held raises ReentrantCall."""

    def __init__(self):
        self._entered = False
        self._operation = None

    @property
    def locked(self) -> bool:
        return self._entered

    def enter(self, operation: str) -> None:
        if self._entered:
            raise ReentrantCall(f"{operation} called while {self._operation} is in progress")
        self._entered = True
        self._operation = operation

    def exit(self) -> None:
        self._entered = False
        self._operation = None


def nonreentrant(method):
    """Run an engine method under the engine's shared guard."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        self._guard.enter(method.__name__)
        try:
            return method(self, *args, **kwargs)
        finally:
            self._guard.exit()

    return wrapper
