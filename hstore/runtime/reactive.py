# hstore/runtime/reactive.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from hstore.interfaces.types import Unsubscribe, WatchCallback
from hstore.runtime.async_support import defer, running_loop
from hstore.runtime.observable import Dep, ObservableDict, is_observable, tracking, traverse

logger = logging.getLogger(__name__)


class Computed:
    """
    Lazily evaluated, memoized value. Records the version of every dep read
    during evaluation and recomputes on access once any of them moved on.
    """

    def __init__(self, fn: Callable[[], Any]) -> None:
        self._fn = fn
        self._deps: Dict[Dep, int] = {}
        self._collecting: Dict[Dep, int] = {}
        self._value: Any = None
        self._evaluated = False

    def add_dep(self, dep: Dep) -> None:
        self._collecting.setdefault(dep, dep.version)

    @property
    def dirty(self) -> bool:
        if not self._evaluated:
            return True
        return any(dep.version != version for dep, version in self._deps.items())

    def get(self) -> Any:
        """
        Return the cached value, recomputing first when stale. Whatever is
        currently collecting dependencies inherits this value's deps.
        """
        if self.dirty:
            self._evaluate()
        for dep in self._deps:
            dep.depend()
        return self._value

    def _evaluate(self) -> None:
        self._evaluated = False
        self._collecting = {}
        with tracking(self):
            self._value = self._fn()
        self._deps = self._collecting
        self._evaluated = True


class Watcher:
    """
    Re-evaluates a function whenever one of the deps it read is written and
    calls back with (new, old) when the result changed. Containers always
    count as changed, as does everything when ``deep`` is set.
    """

    def __init__(
        self,
        fn: Callable[[], Any],
        cb: WatchCallback,
        deep: bool = False,
        sync: bool = False,
    ) -> None:
        self._fn = fn
        self._cb = cb
        self.deep = deep
        self.sync = sync
        self.active = True
        self._deps: Dict[Dep, int] = {}
        self._collecting: Dict[Dep, int] = {}
        self.value = self._get()

    def add_dep(self, dep: Dep) -> None:
        self._collecting.setdefault(dep, dep.version)

    def _get(self) -> Any:
        self._collecting = {}
        with tracking(self):
            value = self._fn()
            if self.deep:
                traverse(value)
        for dep in self._deps.keys() - self._collecting.keys():
            dep.unsubscribe(self)
        for dep in self._collecting:
            dep.subscribe(self)
        self._deps = self._collecting
        return value

    def update(self) -> None:
        """Called by a dep on write."""
        if not self.active:
            return
        if self.sync:
            self.run()
        else:
            scheduler.queue(self)

    def run(self) -> None:
        if not self.active:
            return
        value = self._get()
        if self.deep or is_observable(value) or value != self.value:
            old_value, self.value = self.value, value
            self._cb(value, old_value)

    def teardown(self) -> None:
        if not self.active:
            return
        for dep in self._deps:
            dep.unsubscribe(self)
        self._deps = {}
        self.active = False


_IMMEDIATE = object()


class _Scheduler:
    """
    Internal queue for asynchronous watchers. Each watcher runs at most once
    per flush; the flush happens on the next event loop iteration, or right
    away when no loop is running.
    """

    def __init__(self) -> None:
        self._queue: Dict[Watcher, None] = {}
        # loop the pending flush was scheduled on, or _IMMEDIATE while flushing without one
        self._pending: Any = None

    def queue(self, watcher: Watcher) -> None:
        self._queue[watcher] = None
        loop = running_loop()
        if self._pending is _IMMEDIATE or (self._pending is not None and self._pending is loop):
            return
        self._pending = loop if loop is not None else _IMMEDIATE
        defer(self.flush)

    def flush(self) -> None:
        try:
            while self._queue:
                watcher = next(iter(self._queue))
                del self._queue[watcher]
                watcher.run()
        finally:
            self._pending = None


scheduler = _Scheduler()


class ReactiveContainer:
    """
    Holds the canonical state object and a set of named computed values.
    Replacing ``state`` is itself observable, so watchers and computed values
    that read it re-evaluate against the new object. Containers built over the
    same ``data`` slot see each other's replacements.
    """

    def __init__(
        self,
        state: Any = None,
        computed: Optional[Mapping[str, Callable[[], Any]]] = None,
        data: Optional[ObservableDict] = None,
    ) -> None:
        """
        :param state: Canonical state object (made observable if needed).
        :param computed: Mapping of name to zero-argument function.
        :param data: Existing slot holding "state", shared with other
            containers. ``state`` is ignored when it is given.
        """
        self._data = data if data is not None else ObservableDict({"state": state})
        self._computed: Dict[str, Computed] = {name: Computed(fn) for name, fn in (computed or {}).items()}
        self._watchers: List[Watcher] = []
        self.torn_down = False

    @property
    def state(self) -> Any:
        return self._data["state"]

    @state.setter
    def state(self, value: Any) -> None:
        self._data["state"] = value

    def computed(self, name: str) -> Any:
        return self._computed[name].get()

    def has_computed(self, name: str) -> bool:
        return name in self._computed

    def computed_names(self) -> List[str]:
        return list(self._computed)

    def watch(
        self,
        fn: Callable[[], Any],
        cb: WatchCallback,
        deep: bool = False,
        sync: bool = False,
        immediate: bool = False,
    ) -> Unsubscribe:
        """
        Watch the value of ``fn``.

        :param fn: Zero-argument function whose reads are tracked.
        :param cb: Called with (new_value, old_value).
        :param deep: Track every nested key of the returned value.
        :param sync: Run during the triggering write instead of deferred.
        :param immediate: Call ``cb`` once right away with (value, None).
        :return: A function that stops the watcher.
        """
        watcher = Watcher(fn, cb, deep=deep, sync=sync)
        self._watchers.append(watcher)
        if immediate:
            cb(watcher.value, None)

        def unwatch() -> None:
            watcher.teardown()
            if watcher in self._watchers:
                self._watchers.remove(watcher)

        return unwatch

    def teardown(self) -> None:
        """Stop every watcher created through this container."""
        for watcher in self._watchers:
            watcher.teardown()
        self._watchers.clear()
        self.torn_down = True
        logger.debug("reactive container torn down (%d computed)", len(self._computed))
