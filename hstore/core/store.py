# hstore/core/store.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional

from hstore.core.base import (
    ActionRecord,
    AttributeMapping,
    MutationRecord,
    adapt_arity,
    get_nested_state,
    normalize_path,
    unify_object_style,
)
from hstore.core.context import ActionContext, LocalContext
from hstore.core.errors import Diagnostic, IllegalMutationError, report
from hstore.core.hooks import HookManager
from hstore.core.modules import ModuleNode, ModuleTree
from hstore.core.validations import Validator
from hstore.interfaces.protocols import HookProtocol
from hstore.interfaces.types import (
    ActionHandler,
    GetterFunc,
    ModulePath,
    MutationHandler,
    PathLike,
    Plugin,
    RawModule,
    Subscriber,
    Unsubscribe,
    WatchCallback,
    WrappedGetter,
)
from hstore.runtime.async_support import ActionResult, coerce_result, defer, settle_all
from hstore.runtime.observable import Dep, ObservableDict, delete_property, set_property
from hstore.runtime.reactive import ReactiveContainer

logger = logging.getLogger(__name__)


@dataclass
class Registry:
    """
    Flat lookup tables derived from the module tree. Rebuilt wholesale on
    unregistration and hot update.
    """

    mutations: Dict[str, List[Callable[[Any], None]]] = field(default_factory=dict)
    actions: Dict[str, List[Callable[[Any], ActionResult]]] = field(default_factory=dict)
    getters: Dict[str, WrappedGetter] = field(default_factory=dict)
    namespaces: Dict[str, ModuleNode] = field(default_factory=dict)


class GetterBag(AttributeMapping):
    """
    Read-only mapping of fully-qualified getter names to their memoized
    values. Values are computed on access.
    """

    def __init__(self, container: Optional[ReactiveContainer]) -> None:
        self._container = container

    def __getitem__(self, name: str) -> Any:
        if self._container is None or not self._container.has_computed(name):
            raise KeyError(name)
        return self._container.computed(name)

    def __contains__(self, name: object) -> bool:
        return self._container is not None and self._container.has_computed(name)

    def __iter__(self) -> Iterator[str]:
        if self._container is None:
            return iter(())
        return iter(self._container.computed_names())

    def __len__(self) -> int:
        return 0 if self._container is None else len(self._container.computed_names())

    def __repr__(self) -> str:
        return f"GetterBag({list(self)!r})"


class Store:
    """
    A hierarchical, namespaced state store. State lives in one observable
    tree; mutations change it synchronously, actions orchestrate mutations
    and may be asynchronous, and getters are memoized views over it.
    """

    def __init__(
        self,
        state: Any = None,
        getters: Optional[Mapping[str, GetterFunc]] = None,
        mutations: Optional[Mapping[str, MutationHandler]] = None,
        actions: Optional[Mapping[str, Any]] = None,
        modules: Optional[Mapping[str, RawModule]] = None,
        namespaced: bool = False,
        strict: bool = False,
        plugins: Iterable[Plugin] = (),
        hooks: Optional[List[HookProtocol]] = None,
        validator: Optional[Validator] = None,
    ) -> None:
        """
        Build the module tree from the root declaration, install every
        module, bind getters and finally apply plugins.

        :param state: Root state mapping or zero-argument factory.
        :param getters: Root getters by name.
        :param mutations: Root mutations by name.
        :param actions: Root actions by name.
        :param modules: Child module declarations by key.
        :param namespaced: Whether the root module is namespaced.
        :param strict: Raise IllegalMutationError on writes outside commits.
        :param plugins: Callables invoked once with the store.
        :param hooks: Objects whose ``on_error`` observes action failures.
        :param validator: Optional validator for declarations and types.
        :raises ValidationError: If a declaration is malformed (debug only).
        """
        raw_root: Dict[str, Any] = {
            "state": state,
            "getters": getters,
            "mutations": mutations,
            "actions": actions,
            "modules": modules,
            "namespaced": namespaced,
        }
        raw_root = {key: value for key, value in raw_root.items() if value is not None}

        self.strict = strict
        self._committing = False
        self._subscribers: List[Subscriber] = []
        self._action_subscribers: List[Subscriber] = []
        self._hooks = HookManager(hooks)
        self._validator = validator or Validator()
        self._modules = ModuleTree(raw_root, self._validator)
        self._registry = Registry()
        self._vm: Optional[ReactiveContainer] = None
        self._getters = GetterBag(None)
        self._getters_dep = Dep()
        self._watcher_vm = ReactiveContainer()

        root_state = self._modules.root.state
        self._install_module(self._registry, root_state, [], self._modules.root)
        # every container built by _reset_vm reads and writes this one slot
        self._root_data = ObservableDict({"state": root_state})
        self._reset_vm()

        for plugin in plugins:
            plugin(self)
        logger.debug("store created (strict=%s, modules=%d)", strict, len(self._modules.root.children))

    # State and getters

    @property
    def state(self) -> Any:
        return self._vm.state

    @state.setter
    def state(self, value: Any) -> None:
        report(Diagnostic.STATE_ASSIGNMENT, "use store.replace_state() to explicit replace store state.")

    @property
    def getters(self) -> GetterBag:
        self._getters_dep.depend()
        return self._getters

    @property
    def validator(self) -> Validator:
        return self._validator

    def getter_names(self) -> List[str]:
        return list(self._getters)

    def has_getter(self, name: str) -> bool:
        return name in self._getters

    def has_mutation(self, type_: str) -> bool:
        return bool(self._registry.mutations.get(type_))

    def has_action(self, type_: str) -> bool:
        return bool(self._registry.actions.get(type_))

    # Commit and dispatch

    def commit(self, type_: Any, payload: Any = None, options: Any = None) -> None:
        """
        Run every mutation handler registered under ``type_`` and then
        notify mutation subscribers.

        :param type_: Mutation type, or a descriptor carrying ``type``.
        :param payload: Value handed to the handlers.
        :param options: Commit options (only meaningful for local commits).
        :raises ValidationError: If the type is not a string (debug only).
        """
        type_, payload, options = unify_object_style(type_, payload, options)
        if __debug__:
            self._validator.validate_type(type_)

        entry = self._registry.mutations.get(type_)
        if not entry:
            report(Diagnostic.UNKNOWN_MUTATION, "unknown mutation type: %s", type_)
            return None

        mutation = MutationRecord(type_, payload)
        with self._commit_scope():
            for handler in entry:
                handler(payload)

        state = self.state
        for subscriber in list(self._subscribers):
            subscriber(mutation, state)
        return None

    def dispatch(self, type_: Any, payload: Any = None) -> ActionResult:
        """
        Run every action handler registered under ``type_``.

        :param type_: Action type, or a descriptor carrying ``type``.
        :param payload: Value handed to the handlers.
        :return: An awaitable result. With several handlers it completes
            with the list of their results and fails if any one fails.
        :raises ValidationError: If the type is not a string (debug only).
        """
        type_, payload, _ = unify_object_style(type_, payload)
        if __debug__:
            self._validator.validate_type(type_)

        entry = self._registry.actions.get(type_)
        if not entry:
            report(Diagnostic.UNKNOWN_ACTION, "unknown action type: %s", type_)
            return ActionResult.resolved()

        action = ActionRecord(type_, payload)
        state = self.state
        for subscriber in list(self._action_subscribers):
            subscriber(action, state)

        if len(entry) == 1:
            return entry[0](payload)
        return settle_all([handler(payload) for handler in entry])

    @contextmanager
    def _commit_scope(self):
        committing = self._committing
        self._committing = True
        try:
            yield
        finally:
            self._committing = committing

    # Subscriptions and watching

    def subscribe(self, fn: Subscriber) -> Unsubscribe:
        """
        Call ``fn(mutation, state)`` after every commit.

        :return: A function that removes the subscription.
        """
        return self._generic_subscribe(fn, self._subscribers)

    def subscribe_action(self, fn: Subscriber) -> Unsubscribe:
        """
        Call ``fn(action, state)`` before every dispatched action runs.

        :return: A function that removes the subscription.
        """
        return self._generic_subscribe(fn, self._action_subscribers)

    @staticmethod
    def _generic_subscribe(fn: Subscriber, subscribers: List[Subscriber]) -> Unsubscribe:
        if fn not in subscribers:
            subscribers.append(fn)

        def unsubscribe() -> None:
            if fn in subscribers:
                subscribers.remove(fn)

        return unsubscribe

    def watch(
        self,
        getter: Callable[[Any, Any], Any],
        cb: WatchCallback,
        deep: bool = False,
        sync: bool = False,
        immediate: bool = False,
    ) -> Unsubscribe:
        """
        Re-evaluate ``getter(state, getters)`` whenever something it read
        changes and call ``cb(new, old)`` when its value changed.

        :return: A function that stops watching.
        :raises TypeError: If ``getter`` is not callable.
        """
        if not callable(getter):
            raise TypeError("store.watch only accepts a function.")
        call = adapt_arity(getter)
        return self._watcher_vm.watch(
            lambda: call(self.state, self.getters),
            cb,
            deep=deep,
            sync=sync,
            immediate=immediate,
        )

    # Structural operations

    def replace_state(self, state: Any) -> None:
        """Swap the whole root state object, as if done by a mutation."""
        with self._commit_scope():
            self._vm.state = state
        logger.debug("root state replaced")

    def register_module(self, path: PathLike, raw_module: RawModule, preserve_state: bool = False) -> None:
        """
        Add a module (and its nested modules) after construction.

        :param path: Key or sequence of keys; must not be empty.
        :param raw_module: The module declaration.
        :param preserve_state: Keep a state slot that already exists at the
            module's key instead of splicing in the declared state.
        :raises ValidationError: If the path or declaration is malformed
            (debug only).
        """
        if __debug__:
            self._validator.validate_path(path)
        path = normalize_path(path)

        node = self._modules.register(path, raw_module)
        self._install_module(self._registry, self.state, path, node, preserve_state=preserve_state)
        self._reset_vm()
        logger.debug("module %s registered", "/".join(path))

    def unregister_module(self, path: PathLike) -> None:
        """
        Remove a module registered with register_module, along with its
        state slot. Modules declared at construction cannot be removed.

        :raises ValidationError: If the path is malformed (debug only).
        """
        if __debug__:
            self._validator.validate_path(path)
        path = normalize_path(path)

        if not self._modules.unregister(path):
            report(
                Diagnostic.NOT_UNREGISTERABLE,
                "module '%s' is not registered dynamically and cannot be unregistered",
                "/".join(path),
            )
            return
        with self._commit_scope():
            parent_state = get_nested_state(self.state, path[:-1])
            delete_property(parent_state, path[-1])
        self._reset_store()
        logger.debug("module %s unregistered", "/".join(path))

    def hot_update(self, raw_root: RawModule) -> None:
        """
        Swap in new actions, mutations and getters for existing modules.
        Unknown child modules abort the update without changing anything.

        :raises ValidationError: If a declaration is malformed (debug only).
        """
        if not self._modules.update(raw_root):
            return
        self._reset_store(hot=True)
        logger.debug("hot update applied")

    def module_by_namespace(self, namespace: str) -> Optional[ModuleNode]:
        """
        Return the namespaced module registered under ``namespace``.

        :return: The module, or None (reported) when no module has it.
        """
        if not namespace.endswith("/"):
            namespace += "/"
        node = self._registry.namespaces.get(namespace)
        if node is None:
            report(Diagnostic.UNKNOWN_NAMESPACE, "module namespace not found: %s", namespace)
        return node

    # Installation

    def _reset_store(self, hot: bool = False) -> None:
        registry = Registry()
        state = self.state
        self._install_module(registry, state, [], self._modules.root, hot=True)
        self._registry = registry
        self._reset_vm(hot=hot)
        logger.debug("store reset (hot=%s)", hot)

    def _reset_vm(self, hot: bool = False) -> None:
        old_vm = self._vm
        computed = {name: partial(getter, self) for name, getter in self._registry.getters.items()}
        self._vm = ReactiveContainer(computed=computed, data=self._root_data)
        self._getters = GetterBag(self._vm)

        if self.strict:
            self._enable_strict_mode(self._vm)

        if old_vm is not None:
            if hot:
                # watchers that read getters re-evaluate against the new definitions
                self._getters_dep.notify()
            defer(old_vm.teardown)

    def _enable_strict_mode(self, vm: ReactiveContainer) -> None:
        def _assert_committing(value: Any, old_value: Any) -> None:
            if not self._committing:
                raise IllegalMutationError("do not mutate store state outside mutation handlers.")

        vm.watch(lambda: vm.state, _assert_committing, deep=True, sync=True)

    def _install_module(
        self,
        registry: Registry,
        root_state: Any,
        path: ModulePath,
        node: ModuleNode,
        hot: bool = False,
        preserve_state: bool = False,
    ) -> None:
        path = list(path)
        namespace = self._modules.get_namespace(path)

        if node.namespaced:
            registry.namespaces[namespace] = node

        if path and not hot:
            parent_state = get_nested_state(root_state, path[:-1])
            key = path[-1]
            if not (preserve_state and key in parent_state):
                with self._commit_scope():
                    set_property(parent_state, key, node.state)

        local = node.context = LocalContext(self, namespace, path)

        for key, handler in node.mutations.items():
            self._register_mutation(registry, namespace + key, handler, local)

        for key, declared in node.actions.items():
            type_ = key if declared.root else namespace + key
            self._register_action(registry, type_, declared.handler, local)

        for key, getter in node.getters.items():
            self._register_getter(registry, namespace + key, getter, local)

        for key, child in node.children.items():
            self._install_module(registry, root_state, path + [key], child, hot, preserve_state)

    def _register_mutation(
        self, registry: Registry, type_: str, handler: MutationHandler, local: LocalContext
    ) -> None:
        call = adapt_arity(handler)

        def wrapped_mutation_handler(payload: Any) -> None:
            call(local.state, payload)

        registry.mutations.setdefault(type_, []).append(wrapped_mutation_handler)

    def _register_action(self, registry: Registry, type_: str, handler: ActionHandler, local: LocalContext) -> None:
        call = adapt_arity(handler)

        def wrapped_action_handler(payload: Any) -> ActionResult:
            context = ActionContext(
                dispatch=local.dispatch,
                commit=local.commit,
                getters=local.getters,
                state=local.state,
                root_getters=self.getters,
                root_state=self.state,
            )
            try:
                result = call(context, payload)
            except Exception as error:
                self._hooks.execute_on_error(error)
                if isinstance(error, IllegalMutationError):
                    raise
                return ActionResult.failed(error)
            return coerce_result(result, self._hooks.execute_on_error)

        registry.actions.setdefault(type_, []).append(wrapped_action_handler)

    def _register_getter(self, registry: Registry, type_: str, getter: GetterFunc, local: LocalContext) -> None:
        if type_ in registry.getters:
            report(Diagnostic.DUPLICATE_GETTER, "duplicate getter key: %s", type_)
            return
        call = adapt_arity(getter)

        def wrapped_getter(store: "Store") -> Any:
            return call(local.state, local.getters, store.state, store.getters)

        registry.getters[type_] = wrapped_getter
