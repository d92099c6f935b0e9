"""cProfile hooks for symdedup.

Setting SYMDEDUP_PROFILE to a directory enables profiling. A run gets one session directory below it,
named ``{timestamp_ms}_{main_pid}``. The entry point and every profiled pool operation write one
``{role}_{operation}_{pid}_{seq}.prof`` file there, so the cost of hashing and of replacing can be
inspected separately with pstats.

Profiling never changes the outcome of the profiled call: a profile that cannot be written is logged.
"""
import cProfile
import functools
import itertools
import logging
import os
import time
from pathlib import Path
from typing import Callable, NamedTuple, TypeVar, ParamSpec

P = ParamSpec('P')
T = TypeVar('T')

PROFILE_ENV = 'SYMDEDUP_PROFILE'
SESSION_ENV = '_SYMDEDUP_PROFILE_SESSION_DIR'

logger = logging.getLogger(__name__)

_sequence = itertools.count()


class ProfileSession(NamedTuple):
    base: Path
    name: str

    @property
    def directory(self) -> Path:
        return self.base / self.name

    def next_file(self, role: str, operation: str) -> Path:
        return self.directory / f"{role}_{operation}_{os.getpid()}_{next(_sequence)}.prof"


def current_session() -> ProfileSession | None:
    """The active profiling session, or None when SYMDEDUP_PROFILE is unset."""
    base = os.environ.get(PROFILE_ENV)
    if not base:
        return None
    # Pool workers inherit the name picked by the entry point.
    name = os.environ.get(SESSION_ENV) or f"{int(time.time() * 1000)}_{os.getpid()}"
    return ProfileSession(Path(base), name)


def _profiled(func: Callable[P, T], role: str) -> Callable[P, T]:
    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        session = current_session()
        if session is None:
            return func(*args, **kwargs)

        profiler = cProfile.Profile()
        profiler.enable()
        try:
            return func(*args, **kwargs)
        finally:
            profiler.disable()
            _dump(profiler, session.next_file(role, func.__name__))

    return wrapper


def _dump(profiler: cProfile.Profile, path: Path):
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        profiler.dump_stats(str(path))
    except OSError as e:
        logger.warning(f"Could not write profile {path}: {e}")


def profile_main(func: Callable[P, T]) -> Callable[P, T]:
    """Profile the entry point, fixing the session directory for the pool workers it starts."""
    profiled = _profiled(func, 'main')

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        session = current_session()
        if session is not None:
            os.environ[SESSION_ENV] = session.name
        return profiled(*args, **kwargs)

    return wrapper


def profile_worker(func: Callable[P, T]) -> Callable[P, T]:
    return _profiled(func, 'worker')
