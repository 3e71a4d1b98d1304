# hstore/core/hooks.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from typing import List, Optional

from hstore.interfaces.protocols import HookProtocol


class HookManager:
    """
    Manages the registration and execution of hooks that observe store
    failures. Users can attach logging, monitoring, or custom side effects
    without altering how errors propagate.
    """

    def __init__(self, hooks: Optional[List["HookProtocol"]] = None) -> None:
        """
        Initialize with an optional list of hook objects.
        """
        self._hooks: List["HookProtocol"] = list(hooks) if hooks else []
        self._invoker = _HookInvoker(self._hooks)

    def register_hook(self, hook: "HookProtocol") -> None:
        """
        Add a new hook to the manager's list of hooks.

        :param hook: An object implementing HookProtocol methods.
        """
        self._hooks.append(hook)

    def execute_on_error(self, error: Exception) -> None:
        """
        Run all hooks' on_error logic when an action fails.
        """
        self._invoker.invoke_on_error(error)


class _HookInvoker:
    """
    Internal helper that iterates through a list of hooks and invokes their
    methods in registration order. Hooks lacking a method are skipped.
    """

    def __init__(self, hooks: List["HookProtocol"]) -> None:
        self._hooks = hooks

    def invoke_on_error(self, error: Exception) -> None:
        for hook in self._hooks:
            on_error = getattr(hook, "on_error", None)
            if callable(on_error):
                on_error(error)
