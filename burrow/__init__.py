"""
Burrow - Reactive state containers

A small observable state library: State cells with subscription and derived
values, and reducer-driven Stores with an optional middleware chain that
observes every update.
"""

__version__ = "0.1.0"

# Reactive cells
from .state import DerivedState, ReadOnlyStateError, State

# Store and middleware
from .middleware import MiddlewareBundle, MiddlewareChain, apply_middleware
from .store import Store, UnknownUpdateError, create_store

# Subscription handles
from .subscribers import Disposer, SubscriberList

__all__ = [
    # Cells
    "State",
    "DerivedState",
    # Store
    "Store",
    "create_store",
    # Middleware
    "apply_middleware",
    "MiddlewareBundle",
    "MiddlewareChain",
    # Subscriptions
    "Disposer",
    "SubscriberList",
    # Exceptions
    "ReadOnlyStateError",
    "UnknownUpdateError",
]
