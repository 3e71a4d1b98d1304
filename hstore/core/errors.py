# hstore/core/errors.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """
    Base exception class for errors within the store library.
    """


class ValidationError(StoreError):
    """
    Raised when a module declaration, module path or commit/dispatch type is
    malformed. Only raised while ``__debug__`` is true.
    """


class IllegalMutationError(StoreError):
    """
    Raised in strict mode when the state tree is written outside of a
    mutation handler.
    """


class Diagnostic(Enum):
    """
    Conditions that are reported to the log but never change control flow.
    """

    UNKNOWN_MUTATION = "unknown_mutation"
    UNKNOWN_ACTION = "unknown_action"
    UNKNOWN_LOCAL_TYPE = "unknown_local_type"
    DUPLICATE_GETTER = "duplicate_getter"
    UNKNOWN_NAMESPACE = "unknown_namespace"
    STATE_ASSIGNMENT = "state_assignment"
    HOT_UPDATE_ABORTED = "hot_update_aborted"
    NOT_UNREGISTERABLE = "not_unregisterable"

    @property
    def level(self) -> int:
        """The logging level used when reporting this diagnostic."""
        if self in (Diagnostic.HOT_UPDATE_ABORTED, Diagnostic.NOT_UNREGISTERABLE):
            return logging.WARNING
        return logging.ERROR


def report(kind: Diagnostic, message: str, *args) -> None:
    """
    Log a diagnostic. Callers continue with a well-defined no-op result.

    :param kind: Which condition is being reported.
    :param message: %-style log message.
    :param args: Arguments for the message.
    """
    logger.log(kind.level, "[%s] " + message, kind.value, *args)
