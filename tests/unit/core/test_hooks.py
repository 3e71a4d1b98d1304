# tests/unit/core/test_hooks.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from unittest.mock import MagicMock

from hstore.core.hooks import HookManager, _HookInvoker
from hstore.interfaces.protocols import HookProtocol


def test_hook_manager_init():
    # Test empty initialization
    hm = HookManager()
    assert len(hm._hooks) == 0

    # Test with hooks
    mock_hook = MagicMock(spec=HookProtocol)
    hm = HookManager(hooks=[mock_hook])
    assert len(hm._hooks) == 1


def test_hook_manager_register():
    hm = HookManager()
    mock_hook = MagicMock(spec=HookProtocol)
    hm.register_hook(mock_hook)
    assert len(hm._hooks) == 1
    assert hm._hooks[0] == mock_hook

    err = Exception("TestError")
    hm.execute_on_error(err)
    mock_hook.on_error.assert_called_once_with(err)


def test_hook_manager_executes_in_order(dummy_hooks):
    order = []

    class OrderedHook:
        def __init__(self, order_id):
            self.order_id = order_id

        def on_error(self, error):
            order.append(self.order_id)

    hm = HookManager([OrderedHook(1), OrderedHook(2)])
    hm.register_hook(dummy_hooks[0])
    error = RuntimeError("failed")
    hm.execute_on_error(error)

    assert order == [1, 2]
    assert dummy_hooks[0].errors == [error]


def test_hook_invoker_missing_methods():
    class Silent:
        pass

    invoker = _HookInvoker([Silent()])
    # Should not raise errors when methods are missing
    invoker.invoke_on_error(Exception("test error"))


def test_recording_hook_satisfies_protocol(dummy_hooks):
    assert isinstance(dummy_hooks[0], HookProtocol)
