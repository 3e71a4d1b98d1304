# tests/conftest.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import logging

import pytest


def pytest_configure(config):
    """Register custom marks."""
    config.addinivalue_line("markers", "property: mark test as a property-based test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")


@pytest.fixture
def validator():
    """A default Validator."""
    from hstore.core.validations import Validator

    return Validator()


@pytest.fixture
def counter_module():
    """A minimal non-namespaced module with a counter."""

    def increment(state, amount=None):
        state["count"] += amount if amount is not None else 1

    return {
        "state": lambda: {"count": 0},
        "mutations": {"increment": increment},
        "getters": {"double": lambda state: state["count"] * 2},
    }


@pytest.fixture
def cart_module():
    """A namespaced module with state, a mutation, an action and a getter."""

    def add_item(state, item):
        state["items"].append(item)

    def checkout(context, item):
        context.commit("add_item", item)
        return len(context.state["items"])

    return {
        "namespaced": True,
        "state": lambda: {"items": []},
        "mutations": {"add_item": add_item},
        "actions": {"checkout": checkout},
        "getters": {"item_count": lambda state: len(state["items"])},
    }


@pytest.fixture
def store_factory():
    """Returns a factory building a Store from keyword arguments."""
    from hstore.core.store import Store

    def _factory(**options):
        return Store(**options)

    return _factory


@pytest.fixture
def dummy_hooks():
    """A list with one hook recording the errors it observes."""

    class RecordingHook:
        def __init__(self):
            self.errors = []

        def on_error(self, error):
            self.errors.append(error)

    return [RecordingHook()]


@pytest.fixture
def store_log(caplog):
    """caplog capturing everything logged under the hstore hierarchy."""
    caplog.set_level(logging.DEBUG, logger="hstore")
    return caplog
