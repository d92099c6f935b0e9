import asyncio
from asyncio import TaskGroup, Semaphore


class Throttler:
    """Limits the number of simultaneously running tasks in a TaskGroup.

    schedule() waits for a free slot before creating the task, so the caller stops producing work while the
    limit is reached. The slot is released when the task finishes, whatever its outcome.
    """

    def __init__(self, task_group: TaskGroup, concurrency: int):
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")

        self._task_group = task_group
        self._semaphore = Semaphore(concurrency)

    async def schedule(self, coro, name=None) -> asyncio.Task:
        try:
            await self._semaphore.acquire()
        except BaseException:
            coro.close()
            raise

        async def wrapper():
            try:
                return await coro
            finally:
                self._semaphore.release()

        try:
            return self._task_group.create_task(wrapper(), name=name)
        except BaseException:
            self._semaphore.release()
            coro.close()
            raise
