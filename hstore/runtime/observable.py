# hstore/runtime/observable.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Set

logger = logging.getLogger(__name__)


class Dep:
    """
    A single observable slot. Readers register it with the active tracking
    target; writers bump its version and notify subscribed watchers.
    """

    __slots__ = ("version", "_subscribers")

    def __init__(self) -> None:
        self.version = 0
        self._subscribers: Dict[Any, None] = {}

    def depend(self) -> None:
        """Record this dep on the target currently being evaluated, if any."""
        target = current_target()
        if target is not None:
            target.add_dep(self)

    def subscribe(self, watcher: Any) -> None:
        self._subscribers[watcher] = None

    def unsubscribe(self, watcher: Any) -> None:
        self._subscribers.pop(watcher, None)

    def notify(self) -> None:
        """
        Bump the version and push an update to every subscriber, in
        subscription order. Every subscriber is updated even when one of
        them raises; the first exception then propagates to the writer.
        """
        self.version += 1
        first_error: Optional[Exception] = None
        for watcher in list(self._subscribers):
            try:
                watcher.update()
            except Exception as error:
                if first_error is None:
                    first_error = error
                else:
                    logger.error("watcher update failed: %s", error)
        if first_error is not None:
            raise first_error


_target_stack: List[Optional[Any]] = []


def current_target() -> Optional[Any]:
    """The computed value or watcher currently collecting dependencies."""
    return _target_stack[-1] if _target_stack else None


@contextmanager
def tracking(target: Optional[Any]):
    """
    Make ``target`` the dependency collector for reads inside the block.
    Passing None suspends collection.
    """
    _target_stack.append(target)
    try:
        yield
    finally:
        _target_stack.pop()


class ObservableDict(MutableMapping):
    """
    Mapping whose reads are tracked per key and whose writes notify watchers.
    Key insertion and deletion notify a separate "keys" dep, which is also
    what iteration, ``len`` and lookups of missing keys depend on.
    """

    def __init__(self, data: Any = None) -> None:
        self._data: Dict[Any, Any] = {}
        self._deps: Dict[Any, Dep] = {}
        self._keys_dep = Dep()
        if data:
            for key, value in dict(data).items():
                self._data[key] = observe(value)

    def _dep_for(self, key: Any) -> Dep:
        dep = self._deps.get(key)
        if dep is None:
            dep = self._deps[key] = Dep()
        return dep

    def __getitem__(self, key: Any) -> Any:
        if key not in self._data:
            self._keys_dep.depend()
            raise KeyError(key)
        self._dep_for(key).depend()
        return self._data[key]

    def __setitem__(self, key: Any, value: Any) -> None:
        value = observe(value)
        if key in self._data:
            if self._data[key] is value:
                return
            self._data[key] = value
            self._dep_for(key).notify()
        else:
            self._data[key] = value
            self._keys_dep.notify()

    def __delitem__(self, key: Any) -> None:
        del self._data[key]
        dep = self._deps.pop(key, None)
        self._keys_dep.notify()
        if dep is not None:
            dep.notify()

    def __contains__(self, key: object) -> bool:
        if key in self._data:
            self._dep_for(key).depend()
            return True
        self._keys_dep.depend()
        return False

    def __iter__(self) -> Iterator[Any]:
        self._keys_dep.depend()
        return iter(list(self._data))

    def __len__(self) -> int:
        self._keys_dep.depend()
        return len(self._data)

    def __repr__(self) -> str:
        return repr(self._data)


class ObservableList(MutableSequence):
    """
    Sequence observed as a whole: any read depends on, and any write
    notifies, a single dep.
    """

    def __init__(self, data: Any = None) -> None:
        self._data: List[Any] = [observe(item) for item in (data or ())]
        self._dep = Dep()

    def __getitem__(self, index: Any) -> Any:
        self._dep.depend()
        return self._data[index]

    def __setitem__(self, index: Any, value: Any) -> None:
        if isinstance(index, slice):
            self._data[index] = [observe(item) for item in value]
        else:
            self._data[index] = observe(value)
        self._dep.notify()

    def __delitem__(self, index: Any) -> None:
        del self._data[index]
        self._dep.notify()

    def __len__(self) -> int:
        self._dep.depend()
        return len(self._data)

    def __iter__(self) -> Iterator[Any]:
        self._dep.depend()
        return iter(list(self._data))

    def insert(self, index: int, value: Any) -> None:
        self._data.insert(index, observe(value))
        self._dep.notify()

    def sort(self, key: Optional[Callable[[Any], Any]] = None, reverse: bool = False) -> None:
        self._data.sort(key=key, reverse=reverse)
        self._dep.notify()

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ObservableList):
            return list(self) == list(other)
        if isinstance(other, Sequence) and not isinstance(other, (str, bytes)):
            return list(self) == list(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return repr(self._data)


OBSERVABLE_TYPES = (ObservableDict, ObservableList)


def is_observable(value: Any) -> bool:
    return isinstance(value, OBSERVABLE_TYPES)


def observe(value: Any) -> Any:
    """
    Return an observable version of ``value``. Mappings and lists are copied
    into observable containers (recursively); observables are returned as is;
    anything else is returned unchanged.
    """
    if is_observable(value):
        return value
    if isinstance(value, Mapping):
        return ObservableDict(value)
    if isinstance(value, list):
        return ObservableList(value)
    return value


def materialize(state: Any = None) -> Any:
    """
    Produce a module's state object from its declaration: a factory is called
    once, a literal mapping is copied, and None becomes an empty mapping.

    :param state: Zero-argument callable, mapping, or None.
    :return: An ObservableDict (or the raw value for non-mapping states).
    """
    if callable(state):
        state = state()
    if state is None:
        state = {}
    if isinstance(state, Mapping):
        return ObservableDict(state)
    return observe(state)


def set_property(target: Any, key: Any, value: Any) -> Any:
    """Observable insert or replace of ``target[key]``."""
    target[key] = value
    return value


def delete_property(target: Any, key: Any) -> None:
    """Observable delete of ``target[key]``; missing keys are ignored."""
    if key in target:
        del target[key]


def traverse(value: Any, _seen: Optional[Set[int]] = None) -> None:
    """Touch every nested key and item so the active target depends on all of them."""
    if _seen is None:
        _seen = set()
    if not is_observable(value) or id(value) in _seen:
        return
    _seen.add(id(value))
    if isinstance(value, ObservableDict):
        for key in value:
            traverse(value[key], _seen)
    else:
        for item in value:
            traverse(item, _seen)


def to_raw(value: Any, _memo: Optional[Dict[int, Any]] = None) -> Any:
    """
    Deep copy observable containers (and plain dicts and lists) into plain
    dicts and lists without registering any dependency. Shared and circular
    references are preserved in the copy.
    """
    if _memo is None:
        _memo = {}
    if id(value) in _memo:
        return _memo[id(value)]
    if isinstance(value, ObservableDict):
        items = value._data.items()
    elif isinstance(value, dict):
        items = value.items()
    elif isinstance(value, ObservableList):
        copy: List[Any] = []
        _memo[id(value)] = copy
        copy.extend(to_raw(item, _memo) for item in value._data)
        return copy
    elif isinstance(value, list):
        copy = []
        _memo[id(value)] = copy
        copy.extend(to_raw(item, _memo) for item in value)
        return copy
    else:
        return value
    result: Dict[Any, Any] = {}
    _memo[id(value)] = result
    for key, item in items:
        result[key] = to_raw(item, _memo)
    return result
