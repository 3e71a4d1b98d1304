# hstore/core/validations.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable, Dict, Sequence, Tuple

from hstore.core.errors import ValidationError


class Validator:
    """
    Performs registration-time and call-time validation of module
    declarations, module paths and commit/dispatch types. Callers only invoke
    it while ``__debug__`` is true.
    """

    def __init__(self) -> None:
        """
        Initialize the validator, potentially loading default or custom rules.
        """
        self._rules_engine = _ValidationRulesEngine()

    def validate_module(self, path: Sequence[str], raw_module: Any) -> None:
        """
        Check the shape of one raw module declaration (not its children).

        :param path: Path of the module, used in error messages.
        :param raw_module: The raw module mapping.
        :raises ValidationError: If validation fails.
        """
        self._rules_engine.validate_module(path, raw_module)

    def validate_path(self, path: Any) -> None:
        """
        Check that a path passed to register_module/unregister_module is a
        string or a non-empty sequence of strings.

        :raises ValidationError: If validation fails.
        """
        self._rules_engine.validate_path(path)

    def validate_type(self, type_: Any) -> None:
        """
        Check that a commit/dispatch type resolved to a string.

        :raises ValidationError: If validation fails.
        """
        self._rules_engine.validate_type(type_)


class _ValidationRulesEngine:
    """
    Internal engine applying a set of validation rules. Centralizes
    validation logic for easier maintenance.
    """

    def __init__(self) -> None:
        self._default_rules = _DefaultValidationRules

    def validate_module(self, path: Sequence[str], raw_module: Any) -> None:
        self._default_rules.validate_module(path, raw_module)

    def validate_path(self, path: Any) -> None:
        self._default_rules.validate_path(path)

    def validate_type(self, type_: Any) -> None:
        self._default_rules.validate_type(type_)


def _is_action(value: Any) -> bool:
    if callable(value) and not isinstance(value, Mapping):
        return True
    if isinstance(value, Mapping):
        return callable(value.get("handler"))
    return callable(getattr(value, "handler", None))


def _make_assertion_message(path: Sequence[str], key: str, name: str, value: Any, expected: str) -> str:
    message = f'{key} should be {expected} but "{key}.{name}"'
    if path:
        message += f' in module "{".".join(path)}"'
    return message + f" is {value!r}."


class _DefaultValidationRules:
    """
    Provides built-in validation rules for raw modules, paths and types.
    """

    _ASSERT_TYPES: Dict[str, Tuple[Callable[[Any], bool], str]] = {
        "getters": (callable, "function"),
        "mutations": (callable, "function"),
        "actions": (_is_action, 'function or object with "handler" function'),
    }

    @staticmethod
    def validate_module(path: Sequence[str], raw_module: Any) -> None:
        """
        Check for basic module correctness:
        - The declaration is a mapping.
        - state is a mapping or a factory.
        - getters and mutations are callables, actions are callables or
          carry a callable handler.
        - modules is a mapping.
        """
        if not isinstance(raw_module, Mapping):
            where = f' in module "{".".join(path)}"' if path else ""
            raise ValidationError(f"module declaration should be a mapping{where}, got {raw_module!r}.")

        state = raw_module.get("state")
        if state is not None and not callable(state) and not isinstance(state, Mapping):
            raise ValidationError(_make_assertion_message(path, "state", "state", state, "mapping or function"))

        for key, (check, expected) in _DefaultValidationRules._ASSERT_TYPES.items():
            declarations = raw_module.get(key)
            if not declarations:
                continue
            if not isinstance(declarations, Mapping):
                raise ValidationError(f"{key} should be a mapping but is {declarations!r}.")
            for name, value in declarations.items():
                if not check(value):
                    raise ValidationError(_make_assertion_message(path, key, name, value, expected))

        modules = raw_module.get("modules")
        if modules is not None and not isinstance(modules, Mapping):
            raise ValidationError(f"modules should be a mapping but is {modules!r}.")

    @staticmethod
    def validate_path(path: Any) -> None:
        if isinstance(path, str):
            if not path:
                raise ValidationError("module path must not be empty.")
            return
        if not isinstance(path, Sequence) or not all(isinstance(key, str) for key in path):
            raise ValidationError("module path must be a string or a sequence of strings.")
        if len(path) == 0:
            raise ValidationError("cannot register the root module by using register_module.")

    @staticmethod
    def validate_type(type_: Any) -> None:
        if not isinstance(type_, str):
            raise ValidationError(f"expects string as the type, but found {type(type_).__name__}.")
