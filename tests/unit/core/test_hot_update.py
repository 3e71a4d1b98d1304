# tests/unit/core/test_hot_update.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import logging

from hstore.core.store import Store


def _add(amount):
    def mutation(state):
        state["count"] += amount

    return mutation


def test_hot_update_replaces_mutations():
    store = Store(state={"count": 0}, mutations={"bump": _add(1)})
    store.commit("bump")
    store.hot_update({"mutations": {"bump": _add(10)}})
    store.commit("bump")
    assert store.state["count"] == 11


def test_hot_update_keeps_state():
    store = Store(state={"count": 3}, mutations={"bump": _add(1)})
    store.hot_update({"mutations": {"bump": _add(2)}})
    assert store.state["count"] == 3


def test_hot_update_replaces_getters():
    store = Store(state={"count": 2}, getters={"scaled": lambda state: state["count"] * 2})
    assert store.getters["scaled"] == 4
    store.hot_update({"getters": {"scaled": lambda state: state["count"] * 3}})
    assert store.getters["scaled"] == 6


def test_hot_update_nested_namespaced_module(cart_module):
    store = Store(modules={"cart": cart_module})

    def add_twice(state, item):
        state["items"].extend([item, item])

    store.hot_update({"modules": {"cart": {"namespaced": True, "mutations": {"add_item": add_twice}}}})
    store.commit("cart/add_item", "a")
    assert store.state["cart"]["items"] == ["a", "a"]
    # actions and getters not named by the update are kept
    assert store.dispatch("cart/checkout", "b").result() == 4


def test_hot_update_with_unknown_module_changes_nothing(store_log):
    store = Store(state={"count": 0}, mutations={"bump": _add(1)}, modules={"known": {}})
    store.hot_update(
        {
            "mutations": {"bump": _add(100)},
            "modules": {"known": {}, "unknown": {"mutations": {"x": _add(1)}}},
        }
    )
    store.commit("bump")
    assert store.state["count"] == 1
    assert not store.has_mutation("x")
    warnings = [record for record in store_log.records if record.levelno == logging.WARNING]
    assert any("[hot_update_aborted]" in record.getMessage() for record in warnings)


def test_watchers_reevaluate_after_hot_update():
    store = Store(state={"count": 2}, getters={"scaled": lambda state: state["count"] * 2})
    seen = []
    store.watch(lambda state, getters: getters["scaled"], lambda new, old: seen.append((new, old)), sync=True)

    store.hot_update({"getters": {"scaled": lambda state: state["count"] * 5}})
    assert seen == [(10, 4)]


def test_hot_update_tears_down_old_container():
    store = Store(state={"count": 0}, mutations={"bump": _add(1)})
    old_vm = store._vm
    store.hot_update({"mutations": {"bump": _add(2)}})
    assert old_vm.torn_down is True
    assert store._vm is not old_vm
    assert old_vm.state is store.state


def test_hot_update_with_empty_maps_clears_handlers():
    store = Store(
        state={"count": 0},
        mutations={"bump": _add(1)},
        getters={"count": lambda state: state["count"]},
    )
    store.hot_update({"mutations": {}, "getters": {}})
    assert not store.has_mutation("bump")
    assert not store.has_getter("count")
