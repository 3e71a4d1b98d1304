# hstore/core/modules.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from hstore.core.errors import Diagnostic, report
from hstore.core.validations import Validator
from hstore.interfaces.types import ActionHandler, GetterFunc, ModulePath, MutationHandler, RawModule
from hstore.runtime.observable import materialize

if TYPE_CHECKING:
    from hstore.core.context import LocalContext

logger = logging.getLogger(__name__)

_HOT_KEYS = ("actions", "mutations", "getters")


@dataclass(frozen=True)
class ActionSpec:
    """
    Normalized action declaration. ``root`` registers the action under its
    bare key even inside a namespaced module.
    """

    handler: ActionHandler
    root: bool = False

    @classmethod
    def from_declaration(cls, declaration: Any) -> "ActionSpec":
        """
        Accept a callable, a mapping with a "handler" (and optional "root"),
        an object exposing ``handler`` (and optional ``root``), or an
        ActionSpec.
        """
        if isinstance(declaration, ActionSpec):
            return declaration
        if isinstance(declaration, Mapping):
            return cls(declaration["handler"], bool(declaration.get("root", False)))
        handler = getattr(declaration, "handler", None)
        if callable(handler):
            return cls(handler, bool(getattr(declaration, "root", False)))
        return cls(declaration)


def action(handler: Optional[ActionHandler] = None, *, root: bool = False) -> Any:
    """
    Declare an action with options, usable bare or as a decorator::

        @action(root=True)
        def sync_everything(context, payload): ...
    """
    if handler is None:
        return lambda fn: ActionSpec(fn, root=root)
    return ActionSpec(handler, root=root)


class ModuleNode:
    """
    One module of the tree: its raw declaration, its materialized state and
    its children by key. ``runtime`` marks modules added after construction,
    which are the only ones that may be removed.
    """

    def __init__(self, raw_module: RawModule, runtime: bool) -> None:
        self.runtime = runtime
        self._children: Dict[str, ModuleNode] = {}
        self._raw: Dict[str, Any] = dict(raw_module)
        self.state = materialize(self._raw.get("state"))
        self.context: Optional["LocalContext"] = None

    @property
    def raw(self) -> Mapping:
        return self._raw

    @property
    def namespaced(self) -> bool:
        return bool(self._raw.get("namespaced"))

    @property
    def children(self) -> Dict[str, "ModuleNode"]:
        return dict(self._children)

    @property
    def mutations(self) -> Mapping[str, MutationHandler]:
        return self._raw.get("mutations") or {}

    @property
    def getters(self) -> Mapping[str, GetterFunc]:
        return self._raw.get("getters") or {}

    @property
    def actions(self) -> Dict[str, ActionSpec]:
        return {key: ActionSpec.from_declaration(value) for key, value in (self._raw.get("actions") or {}).items()}

    def add_child(self, key: str, node: "ModuleNode") -> None:
        self._children[key] = node

    def remove_child(self, key: str) -> None:
        self._children.pop(key, None)

    def get_child(self, key: str) -> Optional["ModuleNode"]:
        return self._children.get(key)

    def update(self, raw_module: RawModule) -> None:
        """
        Overwrite ``namespaced`` and replace each of actions, mutations and
        getters that the new declaration provides; other keys are kept.
        """
        self._raw["namespaced"] = raw_module.get("namespaced")
        for key in _HOT_KEYS:
            if raw_module.get(key) is not None:
                self._raw[key] = raw_module[key]

    def __repr__(self) -> str:
        return f"ModuleNode(namespaced={self.namespaced}, runtime={self.runtime}, children={list(self._children)})"


class ModuleTree:
    """
    Owns the root ModuleNode and addresses modules by path (a sequence of
    child keys starting below the root).
    """

    def __init__(self, raw_root: RawModule, validator: Optional[Validator] = None) -> None:
        """
        Build the tree from the root declaration. Modules declared here are
        permanent.

        :param raw_root: The root module declaration.
        :param validator: Optional validator for declaration checks.
        """
        self._validator = validator or Validator()
        self.root: Optional[ModuleNode] = None
        self.register([], raw_root, runtime=False)

    def get(self, path: ModulePath) -> Optional[ModuleNode]:
        """Return the node at ``path``, or None if any hop is missing."""
        node = self.root
        for key in path:
            if node is None:
                return None
            node = node.get_child(key)
        return node

    def get_namespace(self, path: ModulePath) -> str:
        """
        Concatenate ``key + "/"`` for every namespaced module entered while
        walking from the root to ``path``.

        :raises ValueError: If the path does not exist.
        """
        node = self.root
        namespace = ""
        for key in path:
            node = node.get_child(key) if node is not None else None
            if node is None:
                raise ValueError(f"Module '{'/'.join(path)}' is not registered")
            if node.namespaced:
                namespace += key + "/"
        return namespace

    def register(self, path: ModulePath, raw_module: RawModule, runtime: bool = True) -> ModuleNode:
        """
        Create a node for ``raw_module`` at ``path`` and recurse into its
        nested modules.

        :param path: Target path; empty for the root.
        :param raw_module: The raw module declaration.
        :param runtime: Whether the module may later be unregistered.
        :raises ValidationError: If the declaration is malformed (debug only).
        :raises ValueError: If the parent path is not registered.
        """
        path = list(path)
        if __debug__:
            self._validator.validate_module(path, raw_module)

        node = ModuleNode(raw_module, runtime)
        if not path:
            self.root = node
        else:
            parent = self.get(path[:-1])
            if parent is None:
                raise ValueError(f"Parent of module '{'/'.join(path)}' is not registered")
            parent.add_child(path[-1], node)
        logger.debug("registered module %s (runtime=%s)", "/".join(path) or "<root>", runtime)

        for key, raw_child in (raw_module.get("modules") or {}).items():
            self.register(path + [key], raw_child, runtime)
        return node

    def unregister(self, path: ModulePath) -> bool:
        """
        Remove the node at ``path`` if it was registered at runtime.

        :return: True if a node was removed.
        """
        path = list(path)
        if not path:
            return False
        parent = self.get(path[:-1])
        child = parent.get_child(path[-1]) if parent is not None else None
        if child is None or not child.runtime:
            return False
        parent.remove_child(path[-1])
        return True

    def update(self, raw_root: RawModule) -> bool:
        """
        Hot-update the live tree from a new root declaration. Nothing is
        applied if the declaration names a module the tree does not have.

        :return: True if the update was applied.
        :raises ValidationError: If a declaration is malformed (debug only).
        """
        missing = self._find_new_module([], self.root, raw_root)
        if missing is not None:
            report(
                Diagnostic.HOT_UPDATE_ABORTED,
                "trying to add a new module '%s' on hot reloading, manual reload is needed",
                "/".join(missing),
            )
            return False
        self._apply_update(self.root, raw_root)
        return True

    def _find_new_module(self, path: List[str], node: ModuleNode, raw_module: RawModule) -> Optional[List[str]]:
        if __debug__:
            self._validator.validate_module(path, raw_module)
        for key, raw_child in (raw_module.get("modules") or {}).items():
            child = node.get_child(key)
            if child is None:
                return path + [key]
            missing = self._find_new_module(path + [key], child, raw_child)
            if missing is not None:
                return missing
        return None

    def _apply_update(self, node: ModuleNode, raw_module: RawModule) -> None:
        node.update(raw_module)
        for key, raw_child in (raw_module.get("modules") or {}).items():
            self._apply_update(node.get_child(key), raw_child)

