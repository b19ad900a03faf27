"""
Burrow State - Reactive Cells
=============================

This module provides State, a single observable value, and DerivedState, a
read-only cell whose value is computed from another cell.

```python
from burrow import State

count = State(1)
doubled = count >> (lambda n: n * 2)

doubled.subscribe(print)
count.set(5)  # prints 10
```

Notification is synchronous: every listener has run by the time set()
returns. A derived cell is linked to its source for the lifetime of the
source; there is no way to detach it.
"""

from typing import Callable, Generic, Optional, TypeVar

from .subscribers import Disposer, SubscriberList

T = TypeVar("T")
U = TypeVar("U")


class ReadOnlyStateError(ValueError):
    """Raised when set() is called on a derived cell."""

    pass


class State(Generic[T]):
    """
    A mutable value that notifies its subscribers whenever it is set.
    """

    __slots__ = ("_value", "_listeners", "__weakref__")

    def __init__(self, initial_value: Optional[T] = None) -> None:
        self._value = initial_value
        self._listeners = SubscriberList()

    @property
    def value(self) -> T:
        return self._value

    def get(self) -> T:
        """Return the current value."""
        return self._value

    def set(self, value: T) -> None:
        """Replace the value, then notify every subscriber with it."""
        self._write(value)

    def _write(self, value: T) -> None:
        self._value = value
        self._listeners.notify(value)

    def subscribe(self, callback: Callable[[T], None]) -> Disposer:
        """
        Register callback for future values.

        The callback is not called with the current value. Returns a disposer
        that unregisters this exact callback; calling it again does nothing.
        """
        return self._listeners.add(callback)

    def map(self, func: Callable[[T], U]) -> "DerivedState[U]":
        """
        Create a read-only cell holding func(value).

        func runs once now and again on every later set() of this cell. An
        exception raised by func during forwarding propagates to whoever
        called set() on this cell.
        """
        derived: DerivedState[U] = DerivedState(func(self._value))

        def forward(value: T) -> None:
            derived._write(func(value))

        self._listeners.add(forward)
        return derived

    def __rshift__(self, func: Callable[[T], U]) -> "DerivedState[U]":
        return self.map(func)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"


class DerivedState(State[T]):
    """
    A cell driven entirely by its source cell.
    """

    __slots__ = ()

    def set(self, value: T) -> None:
        """
        Reject direct writes.

        The value of a derived cell always equals the mapping function applied
        to its source; writing it directly would break that link. Set the
        source cell instead.

        Raises:
            ReadOnlyStateError: Always.
        """
        raise ReadOnlyStateError(
            "Derived state is read-only; set its source state instead"
        )
