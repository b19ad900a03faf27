"""
Burrow Store - Reducer-Driven State Containers
==============================================

This module provides create_store() and the Store it returns: a State cell
combined with a fixed set of named update functions ("reducers"), a list of
event-tagged listeners and an optional middleware chain.

Basic Usage
-----------

```python
from burrow import create_store

counter = create_store(0, {
    "inc": lambda state, args: state + 1,
    "add": lambda state, args: state + args["n"],
})

@counter.subscribe
def on_change(state, event, args):
    print(f"{event}({args}) -> {state}")

counter.inc()          # inc(None) -> 1
counter.add({"n": 5})  # add({'n': 5}) -> 6
```

Each reducer is exposed as a method of the same name; ``store.dispatch(name,
args)`` is the generic form. The raw cell is available as ``store.state`` for
bindings that only care about values:

```python
labels = counter.state >> (lambda n: f"Count: {n}")
```

Dispatch Order
--------------

For one dispatch the reducer runs first, then the cell is written (cell
subscribers and derived cells update), then store listeners run with
``(state, event, args)``, then the middleware chain runs. A reducer that
raises aborts the dispatch before anything is written or notified. A
middleware that raises does not undo the write or the notifications.

``store.set(value)`` writes the cell directly: cell subscribers run, store
listeners and middleware do not.
"""

import logging
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Tuple,
    TypeVar,
    Union,
)

from .middleware import MiddlewareBundle, MiddlewareChain, Reducer
from .state import State
from .subscribers import Disposer, SubscriberList

S = TypeVar("S")

StoreListener = Callable[[Any, str, Any], None]


class UnknownUpdateError(AttributeError):
    """Raised when dispatching an update name the store was not built with."""

    pass


def _normalize(
    reducers_or_bundle: Union[Mapping[str, Reducer], MiddlewareBundle, None],
) -> Tuple[Dict[str, Reducer], Optional[MiddlewareChain]]:
    """Split the second create_store() argument into reducers and middleware."""
    if reducers_or_bundle is None:
        return {}, None

    if isinstance(reducers_or_bundle, Mapping):
        return dict(reducers_or_bundle), None

    try:
        reducer_map = reducers_or_bundle.reducer_map
        middleware = reducers_or_bundle.middleware
    except AttributeError:
        raise TypeError(
            "Expected a mapping of reducers or a middleware bundle, "
            f"got {type(reducers_or_bundle).__name__}"
        ) from None

    if isinstance(middleware, MiddlewareChain):
        # One bundle may seed several stores; each tracks its own tails.
        middleware = middleware.fork()
    elif middleware is not None:
        # A bare callable behaves like a single auto-advancing middleware.
        middleware = MiddlewareChain([middleware])
    return dict(reducer_map or {}), middleware


class Store:
    """
    A State cell updated through named reducers.

    Build instances with create_store().
    """

    def __init__(
        self,
        initial_state: Any = None,
        reducers_or_bundle: Union[Mapping[str, Reducer], MiddlewareBundle, None] = None,
    ):
        reducer_map, middleware = _normalize(reducers_or_bundle)
        for name, reducer in reducer_map.items():
            if not isinstance(name, str):
                raise TypeError(f"Reducer names must be strings, got {name!r}")
            if name.startswith("_") or hasattr(Store, name):
                raise ValueError(f"Reducer name '{name}' is reserved by Store")
            if not callable(reducer):
                raise TypeError(f"Reducer '{name}' is not callable")

        self._state: State = State(initial_state)
        self._reducers: Dict[str, Reducer] = reducer_map
        self._middleware = middleware
        self._listeners = SubscriberList()
        self._methods: Dict[str, Callable[..., Any]] = {
            name: self._bind(name) for name in reducer_map
        }

    def _bind(self, name: str) -> Callable[..., Any]:
        def update(args: Any = None) -> Any:
            return self.dispatch(name, args)

        update.__name__ = name
        update.__qualname__ = f"Store.{name}"
        update.__doc__ = f"Dispatch the '{name}' update."
        return update

    @property
    def state(self) -> State:
        """The underlying cell."""
        return self._state

    @property
    def reducers(self) -> Tuple[str, ...]:
        """Names of the configured updates, in definition order."""
        return tuple(self._reducers)

    @property
    def middleware(self) -> Optional[MiddlewareChain]:
        return self._middleware

    def get_state(self) -> Any:
        return self._state.get()

    get = get_state

    def set(self, value: Any) -> None:
        """
        Write value straight into the cell.

        Only cell subscribers are notified; store listeners and middleware are
        skipped.
        """
        self._state.set(value)

    def subscribe(self, listener: StoreListener) -> Disposer:
        """
        Register listener(state, event, args) for every dispatch.

        Returns a disposer; calling it more than once is harmless.
        """
        return self._listeners.add(listener)

    def dispatch(self, name: str, args: Any = None) -> Any:
        """
        Apply the update called name with args and return the new state.

        Raises:
            UnknownUpdateError: If no reducer called name exists.
        """
        try:
            reducer = self._reducers[name]
        except KeyError:
            raise UnknownUpdateError(f"Store has no update named '{name}'") from None

        next_state = reducer(self._state.get(), args)
        logging.debug(f"dispatch '{name}'")

        self._state.set(next_state)
        self._listeners.notify(next_state, name, args)
        if self._middleware is not None:
            self._middleware(name, args, next_state)
        return next_state

    async def flush(self) -> None:
        """Wait for asynchronous middleware started by dispatches to settle."""
        if self._middleware is not None:
            await self._middleware.flush()

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal attribute lookup fails.
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._methods[name]
        except KeyError:
            raise UnknownUpdateError(f"Store has no update named '{name}'") from None

    def __dir__(self) -> List[str]:
        return sorted(set(super().__dir__()) | set(self._methods))

    def __repr__(self) -> str:
        names = ", ".join(self._reducers)
        return f"Store({self._state.get()!r}, reducers=[{names}])"


def create_store(
    initial_state: S,
    reducers_or_bundle: Union[Mapping[str, Reducer], MiddlewareBundle, None] = None,
) -> Store:
    """
    Create a Store seeded with initial_state.

    Args:
        initial_state: The starting value of the store's cell.
        reducers_or_bundle: Either a mapping of update name to
            ``reducer(state, args) -> new_state``, or the bundle returned by
            ``apply_middleware(...)(reducers)``.

    Returns:
        A Store exposing one method per reducer name.
    """
    return Store(initial_state, reducers_or_bundle)
