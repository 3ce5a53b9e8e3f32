from __future__ import annotations

import logging
import typing as t

from starlette.background import BackgroundTask, BackgroundTasks as StarletteBackgroundTasks

logger = logging.getLogger("edgecache.background")

ErrorHandler = t.Callable[[BaseException], t.Awaitable[None]]


def _task_name(task: BackgroundTask) -> str:
    return getattr(task.func, "__qualname__", repr(task.func))


class BackgroundTasks(StarletteBackgroundTasks):
    """
    Work that must finish, but not before the client has its response.

    Tasks run one after another in the order they were added, so a write
    queued after a purge sees the purged generation. A failing task is handed
    to `on_error` (or logged) and does not stop the tasks after it.

    Example:
        ```python
        background = BackgroundTasks()
        response = await proxy.handle_request(request, background)
        await send_to_client(response)
        await background()
        ```
    """

    def __init__(
        self,
        tasks: t.Optional[t.Sequence[BackgroundTask]] = None,
        on_error: ErrorHandler | None = None,
    ) -> None:
        super().__init__(tasks)
        self._on_error = on_error

    def __len__(self) -> int:
        return len(self.tasks)

    async def __call__(self) -> None:
        while self.tasks:
            task = self.tasks.pop(0)
            try:
                await task()
            except Exception as exc:
                if self._on_error is not None:
                    await self._on_error(exc)
                else:
                    logger.error("Background task failed: task=%s error=%s", _task_name(task), str(exc), exc_info=True)
