import asyncio
import hashlib
import logging
import multiprocessing
from multiprocessing.pool import Pool
import pathlib
from typing import Awaitable

from .profiling import profile_worker
from ..replace import ReplaceStrategy, replace_with_symlink

logger = logging.getLogger(__name__)


@profile_worker
def compute_sha256_for_path(path: pathlib.Path):
    with open(path, "rb") as f:
        # noinspection PyTypeChecker
        return hashlib.file_digest(f, hashlib.sha256).digest()


class Processor:
    """Pool of worker processes running file operations on behalf of asyncio code.

    Each operation returns an awaitable resolved on the calling event loop once the worker finishes.
    Exceptions raised in the worker are re-raised by the awaitable.
    """

    def __init__(self, concurrency: int | None = None):
        if concurrency is None:
            concurrency = multiprocessing.cpu_count()

        self._concurrency = concurrency
        self._pool: Pool = Pool(self._concurrency)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        self._pool.close()
        self._pool.join()

    @property
    def concurrency(self):
        return self._concurrency

    def sha256(self, path: pathlib.Path) -> Awaitable[bytes]:
        logger.info(f"Starting hash computation for: {path}")

        async def log_and_compute():
            result = await self._evaluate(compute_sha256_for_path, path)
            logger.info(f"Completed hash computation for: {path}")
            return result

        return log_and_compute()

    def replace_with_symlink(self, source: pathlib.Path, destination: pathlib.Path,
                             strategy: ReplaceStrategy = ReplaceStrategy.ATOMIC) -> Awaitable[None]:
        """Replace destination with a symlink to source in a worker process.

        :raise ReplacementError: if any step of the replacement fails."""
        logger.info(f"Starting replacement: {destination} -> {source} ({strategy})")

        async def log_and_replace():
            await self._evaluate(replace_with_symlink, source, destination, str(strategy))
            logger.info(f"Completed replacement: {destination} -> {source}")

        return log_and_replace()

    def _evaluate(self, func, *args):
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        self._pool.apply_async(func, args=args,
                               callback=lambda v: loop.call_soon_threadsafe(future.set_result, v),
                               error_callback=lambda e: loop.call_soon_threadsafe(future.set_exception, e))

        return future
