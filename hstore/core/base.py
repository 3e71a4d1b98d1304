# hstore/core/base.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import inspect
from collections.abc import Mapping
from dataclasses import dataclass
from functools import reduce
from typing import Any, Callable, List, Optional, Tuple

from hstore.interfaces.types import ModulePath, PathLike


@dataclass(frozen=True)
class MutationRecord:
    """Descriptor handed to mutation subscribers."""

    type: str
    payload: Any = None


@dataclass(frozen=True)
class ActionRecord:
    """Descriptor handed to action subscribers."""

    type: str
    payload: Any = None


class AttributeMapping(Mapping):
    """Read-only mapping whose keys are also reachable as attributes."""

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self[name]
        except KeyError:
            raise AttributeError(name) from None


def unify_object_style(type_: Any, payload: Any = None, options: Any = None) -> Tuple[Any, Any, Any]:
    """
    Accept either ``(type, payload, options)`` or a single descriptor carrying
    its own ``type`` (a mapping with a "type" key or an object with a ``type``
    attribute). A descriptor becomes the payload and the second positional
    argument becomes the options.
    """
    if isinstance(type_, Mapping) and type_.get("type"):
        return type_["type"], type_, payload
    if not isinstance(type_, str) and getattr(type_, "type", None):
        return type_.type, type_, payload
    return type_, payload, options


def wants_root(options: Any) -> bool:
    """True when commit/dispatch options ask to bypass namespacing."""
    if not options:
        return False
    if isinstance(options, Mapping):
        return bool(options.get("root"))
    return bool(getattr(options, "root", False))


def normalize_path(path: PathLike) -> List[str]:
    if isinstance(path, str):
        return [path]
    return list(path)


def get_nested_state(state: Any, path: ModulePath) -> Any:
    return reduce(lambda current, key: current[key], path, state)


def _positional_capacity(fn: Callable[..., Any]) -> Optional[int]:
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        return None
    count = 0
    for param in signature.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return None
        if param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            count += 1
    return count


def adapt_arity(fn: Callable[..., Any]) -> Callable[..., Any]:
    """
    Wrap ``fn`` so it can be called with more positional arguments than it
    declares; extra trailing arguments are dropped.
    """
    capacity = _positional_capacity(fn)
    if capacity is None:
        return fn

    def adapted(*args: Any) -> Any:
        return fn(*args[:capacity])

    return adapted
