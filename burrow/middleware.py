"""
Burrow Middleware - Post-Update Observation Chains
==================================================

Middleware observes every dispatch after the new state has been written and
all store listeners have run. A chain is built with apply_middleware() and
handed to create_store() together with the reducers:

```python
from burrow import apply_middleware, create_store

def log_updates(event, args, next_state):
    print(event, next_state)

def only_positive(event, args, next_state, proceed):
    if next_state > 0:
        proceed()

store = create_store(
    0,
    apply_middleware(only_positive, log_updates)({"add": lambda s, n: s + n}),
)
```

Continuation Styles
-------------------

**Manual**: a middleware that accepts a fourth ``proceed`` argument (or a
keyword-only ``proceed`` parameter) decides itself whether the chain goes on.
Calling ``proceed()`` runs the next middleware and returns its result; not
calling it stops the chain.

**Auto**: a middleware that takes only ``(event, args, next_state)`` is
always followed by the next one as soon as it returns.

Either style may return an awaitable (for instance by being an ``async def``
function). The awaitable is scheduled on the running asyncio loop and the
chain advances once it settles, unless ``proceed`` was called for that step,
in which case the explicit call wins.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Set

Middleware = Callable[..., Any]
Reducer = Callable[[Any, Any], Any]


def _proceed_style(middleware: Middleware) -> Optional[str]:
    """
    How middleware takes the proceed continuation.

    Returns "positional" for a fourth positional parameter (or ``*args``),
    "keyword" for a keyword-only parameter named ``proceed``, and None when
    the middleware does not accept it.
    """
    try:
        signature = inspect.signature(middleware)
    except (TypeError, ValueError):
        return None

    positional = 0
    for parameter in signature.parameters.values():
        if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            return "positional"
        if parameter.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            positional += 1
    if positional >= 4:
        return "positional"
    proceed = signature.parameters.get("proceed")
    if proceed is not None and proceed.kind is inspect.Parameter.KEYWORD_ONLY:
        return "keyword"
    return None


def accepts_proceed(middleware: Middleware) -> bool:
    """Whether middleware declares a parameter for the proceed continuation."""
    return _proceed_style(middleware) is not None


def _validate(middlewares: Sequence[Middleware]) -> tuple:
    for middleware in middlewares:
        if not callable(middleware):
            raise TypeError(f"middleware must be callable, got {middleware!r}")
    return tuple(middlewares)


class MiddlewareChain:
    """
    Runs an ordered sequence of middlewares for each dispatch.

    Asynchronous tails are tracked as asyncio tasks until they finish so that
    flush() can wait for them. Each chain tracks only its own tails; stores
    get a chain of their own through fork().
    """

    def __init__(self, middlewares: Sequence[Middleware]):
        self._middlewares = _validate(middlewares)
        self._styles = tuple(_proceed_style(mw) for mw in self._middlewares)
        self._pending: Set["asyncio.Future[Any]"] = set()
        self._failed: List["asyncio.Future[Any]"] = []

    def fork(self) -> "MiddlewareChain":
        """Return a chain running the same middlewares with separate tracking."""
        return MiddlewareChain(self._middlewares)

    @property
    def middlewares(self) -> tuple:
        return self._middlewares

    @property
    def pending(self) -> int:
        """Number of asynchronous tails that have not settled yet."""
        return len(self._pending)

    def __len__(self) -> int:
        return len(self._middlewares)

    def __call__(self, event: str, args: Any, next_state: Any) -> Any:
        return self._run(0, event, args, next_state)

    def _run(self, index: int, event: str, args: Any, next_state: Any) -> Any:
        if index >= len(self._middlewares):
            return None

        middleware = self._middlewares[index]
        style = self._styles[index]
        proceeded = False

        def proceed() -> Any:
            nonlocal proceeded
            if proceeded:
                return None
            proceeded = True
            return self._run(index + 1, event, args, next_state)

        if style == "positional":
            result = middleware(event, args, next_state, proceed)
        elif style == "keyword":
            result = middleware(event, args, next_state, proceed=proceed)
        else:
            result = middleware(event, args, next_state)

        if inspect.isawaitable(result):

            def advance() -> Any:
                if proceeded:
                    return None
                return self._run(index + 1, event, args, next_state)

            return self._suspend(result, advance, event, index)

        if style is not None:
            # Chain continued inside the middleware iff it called proceed().
            return result
        return self._run(index + 1, event, args, next_state)

    def _suspend(
        self, awaitable: Any, advance: Callable[[], Any], event: str, index: int
    ) -> "asyncio.Future[Any]":
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise RuntimeError(
                f"Middleware #{index} returned an awaitable for '{event}' "
                "but no asyncio event loop is running"
            ) from None

        async def settle() -> Any:
            try:
                value = await awaitable
                follow = advance()
                if inspect.isawaitable(follow):
                    await follow
            except Exception:
                # Held until flush() collects it.
                self._failed.append(asyncio.current_task())
                raise
            return value

        logging.debug(f"Middleware #{index} suspended on '{event}'")
        task = loop.create_task(settle())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def flush(self) -> None:
        """
        Wait until every asynchronous tail started so far has settled.

        Tails started while waiting are awaited too. Failed tails are kept
        until a flush() collects them, so a failure that settled before the
        call is still reported. The earliest failure is re-raised; any later
        ones are consumed with it.
        """
        while self._pending:
            await asyncio.gather(*tuple(self._pending), return_exceptions=True)

        if self._failed:
            failed, self._failed = self._failed, []
            errors = [task.exception() for task in failed]
            raise errors[0]


@dataclass(frozen=True)
class MiddlewareBundle:
    """Reducers paired with the middleware chain that observes them."""

    reducer_map: Mapping[str, Reducer]
    middleware: Optional[Callable[[str, Any, Any], Any]]


def apply_middleware(
    *middlewares: Middleware,
) -> Callable[[Mapping[str, Reducer]], MiddlewareBundle]:
    """
    Return a function that bundles the given middlewares with reducers.

    Every bundle gets a fresh MiddlewareChain, so stores built from the same
    factory never share pending tails.

    Args:
        *middlewares: Middlewares in the order they should run.

    Returns:
        A function taking a reducer mapping and returning a MiddlewareBundle
        suitable for create_store().
    """
    validated = _validate(middlewares)

    def bundle(reducers: Optional[Mapping[str, Reducer]] = None) -> MiddlewareBundle:
        reducer_map: Dict[str, Reducer] = dict(reducers or {})
        return MiddlewareBundle(
            reducer_map=reducer_map, middleware=MiddlewareChain(validated)
        )

    return bundle
