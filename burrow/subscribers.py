"""
Burrow Subscribers - Ordered Listener Lists
===========================================

This module provides SubscriberList, the listener container shared by State
cells and Stores, and Disposer, the handle returned by every subscribe call.

Listeners are kept in a plain list. Order matters and the same callback may be
registered more than once, so removal is by identity and removes a single
occurrence: a callback subscribed twice needs both of its disposers called
before it stops receiving notifications.
"""

from typing import Any, Callable, Iterator, List


class Disposer:
    """
    Zero-argument handle that unregisters one listener.

    The first call removes the listener it was created for; every later call
    is a no-op.
    """

    __slots__ = ("_owner", "_callback", "_disposed")

    def __init__(self, owner: "SubscriberList", callback: Callable):
        self._owner = owner
        self._callback = callback
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def __call__(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._owner.remove(self._callback)

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "active"
        return f"Disposer({self._callback!r}, {state})"


class SubscriberList:
    """Ordered, duplicate-friendly list of listeners."""

    __slots__ = ("_listeners",)

    def __init__(self) -> None:
        self._listeners: List[Callable] = []

    def add(self, callback: Callable) -> Disposer:
        """Append a listener and return its disposer."""
        if not callable(callback):
            raise TypeError(f"listener must be callable, got {callback!r}")
        self._listeners.append(callback)
        return Disposer(self, callback)

    def remove(self, callback: Callable) -> bool:
        """Remove the first occurrence of callback (compared by identity)."""
        for index, listener in enumerate(self._listeners):
            if listener is callback:
                del self._listeners[index]
                return True
        return False

    def notify(self, *args: Any) -> None:
        """
        Call every listener with args, in subscription order.

        Iterates over a snapshot so that listeners subscribing or unsubscribing
        during the round neither get skipped nor called twice. Exceptions raised
        by a listener propagate and stop the round.
        """
        for listener in tuple(self._listeners):
            listener(*args)

    def __len__(self) -> int:
        return len(self._listeners)

    def __iter__(self) -> Iterator[Callable]:
        return iter(tuple(self._listeners))

    def __contains__(self, callback: object) -> bool:
        return any(listener is callback for listener in self._listeners)
