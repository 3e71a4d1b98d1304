# hstore/interfaces/types.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
from typing import Any, Callable, Mapping, Sequence, Union

ModulePath = Sequence[str]
PathLike = Union[str, Sequence[str]]
Namespace = str
RawModule = Mapping[str, Any]

# Callback Types
MutationHandler = Callable[..., None]
ActionHandler = Callable[..., Any]
GetterFunc = Callable[..., Any]
WrappedGetter = Callable[[Any], Any]
Subscriber = Callable[[Any, Any], None]
Plugin = Callable[[Any], None]
Unsubscribe = Callable[[], None]
WatchCallback = Callable[[Any, Any], None]
