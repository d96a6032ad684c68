from __future__ import annotations

import logging
import types
from contextlib import AsyncExitStack
from typing import Any, Awaitable, Callable, Optional

import anyio
import anyio.abc

logger = logging.getLogger("warden.background")


class BackgroundWriter:
    """
    Runs opportunistic cache writes without blocking the response path.

    Inside `async with`, writes are started on a task group and the caller
    returns immediately; leaving the block waits for writes still in flight.
    Outside of it there is no task group to hand work to, so writes run
    inline. In both cases a failing write is logged and never raised.

    Args:
        max_concurrency: How many writes may run at the same time.
    """

    def __init__(self, max_concurrency: int = 16) -> None:
        self._limiter = anyio.CapacityLimiter(max_concurrency)
        self._exit_stack: Optional[AsyncExitStack] = None
        self._task_group: Optional[anyio.abc.TaskGroup] = None

    @property
    def running(self) -> bool:
        return self._task_group is not None

    async def __aenter__(self) -> "BackgroundWriter":
        if self._exit_stack is not None:
            raise RuntimeError("BackgroundWriter is already running")
        exit_stack = AsyncExitStack()
        self._task_group = await exit_stack.enter_async_context(anyio.create_task_group())
        self._exit_stack = exit_stack
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: types.TracebackType | None = None,
    ) -> None:
        exit_stack, self._exit_stack = self._exit_stack, None
        if exit_stack is None:
            return
        try:
            await exit_stack.__aexit__(exc_type, exc_value, traceback)
        finally:
            self._task_group = None

    async def schedule(self, description: str, write: Callable[[], Awaitable[Any]]) -> None:
        if self._task_group is None:
            await self._run(description, write)
            return
        self._task_group.start_soon(self._run, description, write)

    async def _run(self, description: str, write: Callable[[], Awaitable[Any]]) -> None:
        async with self._limiter:
            try:
                await write()
            except Exception:
                logger.warning(f"Background cache write failed: {description}", exc_info=True)
            else:
                logger.debug(f"Background cache write finished: {description}")
