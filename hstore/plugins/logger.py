# hstore/plugins/logger.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import logging
from typing import Any, Callable, Optional

from hstore.core.base import ActionRecord, MutationRecord
from hstore.interfaces.types import Plugin
from hstore.runtime.observable import to_raw


def _identity(value: Any) -> Any:
    return value


def _always(*args: Any) -> bool:
    return True


def create_logger(
    collapsed: bool = True,
    filter: Optional[Callable[[MutationRecord, Any, Any], bool]] = None,
    transformer: Optional[Callable[[Any], Any]] = None,
    mutation_transformer: Optional[Callable[[MutationRecord], Any]] = None,
    log_actions: bool = False,
    action_filter: Optional[Callable[[ActionRecord, Any], bool]] = None,
    action_transformer: Optional[Callable[[ActionRecord], Any]] = None,
    logger: Optional[logging.Logger] = None,
    level: int = logging.INFO,
) -> Plugin:
    """
    Build a plugin that logs every committed mutation, and optionally every
    dispatched action, through a standard logger.

    Each mutation record is logged with ``extra`` fields ``mutation``,
    ``prev_state`` and ``next_state`` holding plain snapshots of the state,
    passed through ``transformer``.
    Actions are logged before their handlers run, with ``extra`` fields
    ``action`` and ``state``.

    :param collapsed: Log a single line per mutation instead of one line
        each for the previous state, the mutation and the next state.
    :param filter: ``filter(mutation, prev_state, next_state)``; records for
        which it returns False are skipped.
    :param transformer: Applied to each state snapshot before logging.
    :param mutation_transformer: Applied to the mutation record before logging.
    :param log_actions: Also log dispatched actions.
    :param action_filter: ``action_filter(action, state)`` for actions.
    :param action_transformer: Applied to the action record before logging.
    :param logger: Target logger; defaults to this module's logger.
    :param level: Level used for every record.
    """
    target = logger or logging.getLogger(__name__)
    filter = filter or _always
    transformer = transformer or _identity
    mutation_transformer = mutation_transformer or _identity
    action_filter = action_filter or _always
    action_transformer = action_transformer or _identity

    def plugin(store: Any) -> None:
        snapshot = {"state": to_raw(store.state)}

        def on_mutation(mutation: MutationRecord, state: Any) -> None:
            next_state = to_raw(state)
            prev_state = snapshot["state"]
            snapshot["state"] = next_state
            if not filter(mutation, prev_state, next_state):
                return
            formatted = mutation_transformer(mutation)
            extra = {
                "mutation": formatted,
                "prev_state": transformer(prev_state),
                "next_state": transformer(next_state),
            }
            if collapsed:
                target.log(level, "mutation %s", mutation.type, extra=extra)
            else:
                target.log(level, "prev state %r", extra["prev_state"], extra=extra)
                target.log(level, "mutation %s %r", mutation.type, formatted, extra=extra)
                target.log(level, "next state %r", extra["next_state"], extra=extra)

        def on_action(action: ActionRecord, state: Any) -> None:
            if not action_filter(action, state):
                return
            target.log(
                level,
                "action %s",
                action.type,
                extra={"action": action_transformer(action), "state": transformer(to_raw(state))},
            )

        store.subscribe(on_mutation)
        if log_actions:
            store.subscribe_action(on_action)

    return plugin
