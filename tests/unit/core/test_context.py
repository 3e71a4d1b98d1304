# tests/unit/core/test_context.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import pytest

from hstore.core.context import LocalContext, LocalGetters
from hstore.core.errors import ValidationError
from hstore.core.store import Store


@pytest.fixture
def store(cart_module):
    def log(state, entry):
        state["log"].append(entry)

    return Store(
        state={"log": []},
        mutations={"log": log},
        actions={"announce": lambda context, entry: context.commit("log", entry)},
        modules={"cart": cart_module, "plain": {"state": {"value": 1}}},
    )


def _context(store, *path):
    return store._modules.get(list(path)).context


def test_context_attached_to_every_module(store):
    cart = _context(store, "cart")
    assert isinstance(cart, LocalContext)
    assert cart.namespace == "cart/"
    assert cart.path == ["cart"]
    assert _context(store).namespace == ""


def test_local_state_resolves_lazily(store):
    cart = _context(store, "cart")
    store.replace_state({"log": [], "cart": {"items": ["swapped"]}, "plain": {"value": 2}})
    assert cart.state["items"] == ["swapped"]
    assert _context(store, "plain").state["value"] == 2


def test_local_commit_is_namespaced(store):
    cart = _context(store, "cart")
    cart.commit("add_item", "a")
    assert store.state["cart"]["items"] == ["a"]


def test_local_commit_root_keyword_and_option(store):
    cart = _context(store, "cart")
    cart.commit("log", "keyword", root=True)
    cart.commit("log", "option", {"root": True})
    cart.commit({"type": "log", "entry": "object"}, {"root": True})
    assert store.state["log"][:2] == ["keyword", "option"]
    assert store.state["log"][2]["entry"] == "object"


def test_local_commit_unknown_type_reported(store, store_log):
    cart = _context(store, "cart")
    assert cart.commit("log", "nope") is None
    assert store.state["log"] == []
    assert "[unknown_local_type] unknown local mutation type: log, global type: cart/log" in store_log.text


def test_local_dispatch_is_namespaced(store):
    cart = _context(store, "cart")
    assert cart.dispatch("checkout", "a").result() == 1


def test_local_dispatch_root(store):
    cart = _context(store, "cart")
    cart.dispatch("announce", "hello", root=True)
    assert store.state["log"] == ["hello"]


def test_local_dispatch_unknown_type_reported(store, store_log):
    cart = _context(store, "cart")
    result = cart.dispatch("announce", "x")
    assert result.done()
    assert result.result() is None
    assert "[unknown_local_type] unknown local action type: announce, global type: cart/announce" in store_log.text


def test_local_non_string_type_rejected(store):
    cart = _context(store, "cart")
    with pytest.raises(ValidationError, match="expects string as the type, but found int"):
        cart.commit(42)
    with pytest.raises(ValidationError, match="expects string as the type, but found NoneType"):
        cart.dispatch(None)


def test_non_namespaced_context_uses_store_directly(store):
    plain = _context(store, "plain")
    plain.commit("log", "direct")
    assert plain.dispatch("announce", "again").done()
    assert store.state["log"] == ["direct", "again"]
    assert plain.getters is store.getters


def test_namespaced_context_getters(store):
    cart = _context(store, "cart")
    assert isinstance(cart.getters, LocalGetters)
    assert dict(cart.getters) == {"item_count": 0}
    assert "log" not in cart.getters


def test_context_satisfies_protocol(store):
    from hstore.interfaces.protocols import LocalContextProtocol

    assert isinstance(_context(store, "cart"), LocalContextProtocol)
