# hstore/runtime/async_support.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Iterable, List, Optional


def running_loop() -> Optional[asyncio.AbstractEventLoop]:
    """The running event loop, or None outside of one."""
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def defer(callback: Callable[[], Any]) -> None:
    """
    Run ``callback`` on the next iteration of the running event loop, or
    immediately when no loop is running.
    """
    loop = running_loop()
    if loop is None:
        callback()
    else:
        loop.call_soon(callback)


def schedule(awaitable: Awaitable[Any]) -> Awaitable[Any]:
    """
    Start a coroutine as a task when a loop is running so it makes progress
    without being awaited. Without a loop it is returned untouched and runs
    once awaited.
    """
    loop = running_loop()
    if loop is None or not asyncio.iscoroutine(awaitable):
        return awaitable
    return loop.create_task(awaitable)


class ActionResult:
    """
    Awaitable outcome of a dispatched action. Either already settled (value
    or error) or backed by a pending task or coroutine.
    """

    __slots__ = ("_awaitable", "_value", "_error")

    def __init__(
        self,
        value: Any = None,
        error: Optional[BaseException] = None,
        awaitable: Optional[Awaitable[Any]] = None,
    ) -> None:
        self._value = value
        self._error = error
        self._awaitable = awaitable

    @classmethod
    def resolved(cls, value: Any = None) -> "ActionResult":
        return cls(value=value)

    @classmethod
    def failed(cls, error: BaseException) -> "ActionResult":
        return cls(error=error)

    @classmethod
    def pending(cls, awaitable: Awaitable[Any]) -> "ActionResult":
        return cls(awaitable=awaitable)

    def done(self) -> bool:
        """True once the outcome is known without awaiting."""
        if self._awaitable is None:
            return True
        if isinstance(self._awaitable, asyncio.Future):
            return self._awaitable.done()
        return False

    def result(self) -> Any:
        """
        Return the settled value or raise the settled error.

        :raises asyncio.InvalidStateError: If the action has not finished.
        """
        if self._awaitable is None:
            if self._error is not None:
                raise self._error
            return self._value
        if isinstance(self._awaitable, asyncio.Future) and self._awaitable.done():
            return self._awaitable.result()
        raise asyncio.InvalidStateError("action has not finished")

    def __await__(self):
        if self._awaitable is not None:
            return (yield from self._awaitable.__await__())
        if self._error is not None:
            raise self._error
        return self._value


async def _observe_errors(awaitable: Awaitable[Any], on_error: Optional[Callable[[Exception], None]]) -> Any:
    try:
        return await awaitable
    except Exception as error:
        if on_error is not None:
            on_error(error)
        raise


def coerce_result(result: Any, on_error: Optional[Callable[[Exception], None]] = None) -> ActionResult:
    """
    Turn an action handler's return value into an ActionResult. Awaitables
    are scheduled and their failures passed to ``on_error`` before
    propagating; plain values resolve immediately.
    """
    if isinstance(result, ActionResult):
        return result
    if inspect.isawaitable(result):
        return ActionResult.pending(schedule(_observe_errors(result, on_error)))
    return ActionResult.resolved(result)


async def _await_each(results: List[ActionResult]) -> List[Any]:
    async def _settle(result: ActionResult) -> Any:
        return await result

    return list(await asyncio.gather(*(_settle(result) for result in results)))


def settle_all(results: Iterable[ActionResult]) -> ActionResult:
    """
    Combine several results into one that completes with the list of their
    values once all complete, and fails as soon as any one fails.
    """
    results = list(results)
    if all(result._awaitable is None for result in results):
        for result in results:
            if result._error is not None:
                return ActionResult.failed(result._error)
        return ActionResult.resolved([result._value for result in results])
    return ActionResult.pending(schedule(_await_each(results)))
