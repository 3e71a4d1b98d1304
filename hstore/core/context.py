# hstore/core/context.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Iterator

from hstore.core.base import AttributeMapping, get_nested_state, unify_object_style, wants_root
from hstore.core.errors import Diagnostic, report
from hstore.interfaces.types import ModulePath, Namespace
from hstore.runtime.async_support import ActionResult

if TYPE_CHECKING:
    from hstore.core.store import Store


class LocalGetters(AttributeMapping):
    """
    View over the store's getters that share ``namespace`` as a prefix, keyed
    by the remainder of the name. Membership is recomputed on every access so
    the view follows registrations and hot updates.
    """

    def __init__(self, store: "Store", namespace: Namespace) -> None:
        self._store = store
        self._namespace = namespace

    def _local_names(self) -> Iterator[str]:
        prefix_len = len(self._namespace)
        for name in self._store.getter_names():
            if name.startswith(self._namespace):
                local = name[prefix_len:]
                if local:
                    yield local

    def __getitem__(self, key: str) -> Any:
        return self._store.getters[self._namespace + key]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self._store.has_getter(self._namespace + key)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._local_names()))

    def __len__(self) -> int:
        return sum(1 for _ in self._local_names())

    def __repr__(self) -> str:
        return f"LocalGetters(namespace={self._namespace!r})"


class LocalContext:
    """
    Per-module view of the store: commit and dispatch that prefix types with
    the module namespace, and lazily resolved local state and getters.
    """

    def __init__(self, store: "Store", namespace: Namespace, path: ModulePath) -> None:
        """
        :param store: The owning store.
        :param namespace: Namespace prefix; empty for non-namespaced modules.
        :param path: Path of the module, used to resolve its state.
        """
        self._store = store
        self.namespace = namespace
        self.path = list(path)
        self._local_getters = LocalGetters(store, namespace) if namespace else None

    @property
    def state(self) -> Any:
        return get_nested_state(self._store.state, self.path)

    @property
    def getters(self) -> Any:
        if self._local_getters is None:
            return self._store.getters
        return self._local_getters

    def commit(self, type_: Any, payload: Any = None, options: Any = None, *, root: bool = False) -> None:
        """
        Commit a mutation. Inside a namespaced module the type is prefixed
        with the namespace unless ``root`` is set (as a keyword or options).
        """
        if not self.namespace:
            return self._store.commit(type_, payload, options)
        type_, payload, options = unify_object_style(type_, payload, options)
        if __debug__:
            self._store.validator.validate_type(type_)
        if not (root or wants_root(options)):
            type_ = self.namespace + type_
            if not self._store.has_mutation(type_):
                report(
                    Diagnostic.UNKNOWN_LOCAL_TYPE,
                    "unknown local mutation type: %s, global type: %s",
                    type_[len(self.namespace) :],
                    type_,
                )
                return None
        return self._store.commit(type_, payload, options)

    def dispatch(self, type_: Any, payload: Any = None, options: Any = None, *, root: bool = False) -> ActionResult:
        """
        Dispatch an action. Inside a namespaced module the type is prefixed
        with the namespace unless ``root`` is set (as a keyword or options).
        """
        if not self.namespace:
            return self._store.dispatch(type_, payload)
        type_, payload, options = unify_object_style(type_, payload, options)
        if __debug__:
            self._store.validator.validate_type(type_)
        if not (root or wants_root(options)):
            type_ = self.namespace + type_
            if not self._store.has_action(type_):
                report(
                    Diagnostic.UNKNOWN_LOCAL_TYPE,
                    "unknown local action type: %s, global type: %s",
                    type_[len(self.namespace) :],
                    type_,
                )
                return ActionResult.resolved()
        return self._store.dispatch(type_, payload)

    def __repr__(self) -> str:
        return f"LocalContext(namespace={self.namespace!r}, path={self.path!r})"


@dataclass(frozen=True)
class ActionContext:
    """
    First argument handed to action handlers.
    """

    dispatch: Callable[..., ActionResult]
    commit: Callable[..., None]
    getters: Any
    state: Any
    root_getters: Any
    root_state: Any
