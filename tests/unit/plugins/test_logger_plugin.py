# tests/unit/plugins/test_logger_plugin.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import logging

import pytest

from hstore.core.base import ActionRecord, MutationRecord
from hstore.core.store import Store
from hstore.plugins.logger import create_logger

LOGGER_NAME = "tests.hstore.mutations"


def _increment(state, amount=1):
    state["count"] += amount


@pytest.fixture
def plugin_log(caplog):
    caplog.set_level(logging.DEBUG, logger=LOGGER_NAME)
    return caplog


def _records(caplog):
    return [record for record in caplog.records if record.name == LOGGER_NAME]


def _store(**options):
    return Store(
        state={"count": 0},
        mutations={"increment": _increment},
        actions={"bump": lambda context: context.commit("increment")},
        plugins=[create_logger(logger=logging.getLogger(LOGGER_NAME), **options)],
    )


def test_logs_mutation_with_snapshots(plugin_log):
    store = _store()
    store.commit("increment", 2)
    store.commit("increment")

    first, second = _records(plugin_log)
    assert first.getMessage() == "mutation increment"
    assert first.levelno == logging.INFO
    assert first.mutation == MutationRecord("increment", 2)
    assert first.prev_state == {"count": 0}
    assert first.next_state == {"count": 2}
    assert type(first.next_state) is dict
    assert second.prev_state == {"count": 2}
    assert second.next_state == {"count": 3}


def test_filter_skips_records_but_tracks_state(plugin_log):
    store = _store(filter=lambda mutation, prev, nxt: mutation.payload != 1)
    store.commit("increment", 1)
    store.commit("increment", 2)

    (record,) = _records(plugin_log)
    assert record.mutation == MutationRecord("increment", 2)
    assert record.prev_state == {"count": 1}
    assert record.next_state == {"count": 3}


def test_transformers(plugin_log):
    store = _store(
        transformer=lambda state: state["count"],
        mutation_transformer=lambda mutation: mutation.type.upper(),
    )
    store.commit("increment")

    (record,) = _records(plugin_log)
    assert record.mutation == "INCREMENT"
    assert record.prev_state == 0
    assert record.next_state == 1


def test_expanded_output(plugin_log):
    store = _store(collapsed=False, level=logging.DEBUG)
    store.commit("increment")

    messages = [record.getMessage() for record in _records(plugin_log)]
    assert messages == [
        "prev state {'count': 0}",
        "mutation increment MutationRecord(type='increment', payload=None)",
        "next state {'count': 1}",
    ]
    assert all(record.levelno == logging.DEBUG for record in _records(plugin_log))


def test_actions_logged_when_enabled(plugin_log):
    store = _store(log_actions=True)
    store.dispatch("bump")

    records = _records(plugin_log)
    assert [record.getMessage() for record in records] == ["action bump", "mutation increment"]
    assert records[0].action == ActionRecord("bump", None)
    assert records[0].state == {"count": 0}


def test_action_filter(plugin_log):
    store = _store(log_actions=True, action_filter=lambda action_record, state: False)
    store.dispatch("bump")
    assert [record.getMessage() for record in _records(plugin_log)] == ["mutation increment"]


def test_actions_not_logged_by_default(plugin_log):
    store = _store()
    store.dispatch("bump")
    assert [record.getMessage() for record in _records(plugin_log)] == ["mutation increment"]
