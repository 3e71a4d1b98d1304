# hstore/interfaces/protocols.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
from typing import Any, Callable, Protocol, runtime_checkable

from hstore.interfaces.types import Unsubscribe, WatchCallback


@runtime_checkable
class StateContainer(Protocol):
    """
    Reactive state container protocol. The store talks to reactivity only
    through this interface.

    Methods:
        state: The canonical state object (readable and replaceable).
        computed(name): Returns the memoized value of a named computation.
        watch(fn, cb, ...): Re-evaluates fn when its dependencies change.
        teardown(): Disposes every watcher created by this container.

    Runtime Invariants:
    - A computed value is recomputed only when a dependency it read changed.
    - Synchronous watchers run before the triggering write returns.

    Error Handling:
    - Exceptions raised by watcher callbacks propagate to the writer.
    """

    state: Any

    def computed(self, name: str) -> Any:
        """Return the current (possibly cached) value of a computed entry."""
        ...

    def watch(
        self,
        fn: Callable[[], Any],
        cb: WatchCallback,
        deep: bool = False,
        sync: bool = False,
        immediate: bool = False,
    ) -> Unsubscribe:
        """Watch the value of fn and call cb(new, old) when it changes."""
        ...

    def teardown(self) -> None:
        """Dispose all watchers and computed entries."""
        ...


@runtime_checkable
class HookProtocol(Protocol):
    """
    Protocol for store hooks. Hooks observe failures without altering them.

    Methods:
        on_error(error): Called with the exception raised by an action.
    """

    def on_error(self, error: Exception) -> None: ...


@runtime_checkable
class LocalContextProtocol(Protocol):
    """
    Per-module view of the store used inside mutation and action bodies.

    Runtime Invariants:
    - state and getters are resolved on every access.
    - commit and dispatch prefix types with the module namespace.
    """

    @property
    def state(self) -> Any: ...

    @property
    def getters(self) -> Any: ...

    def commit(self, type_: Any, payload: Any = None, options: Any = None, *, root: bool = False) -> None: ...

    def dispatch(self, type_: Any, payload: Any = None, options: Any = None, *, root: bool = False) -> Any: ...
