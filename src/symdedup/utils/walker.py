import functools
import os
import stat
from pathlib import Path
from typing import Callable, Generator


class FileContext:
    """Context object for a file or directory during traversal.

    Metadata is read lazily with lstat(), so symlinks are described as links and never followed. The
    relative path is built from the chain of parent contexts; the root context carries no name.
    """
    def __init__(self, parent, name: str | None, path: Path | None = None, st: os.stat_result | None = None):
        self._parent: FileContext | None = parent
        self._name: str | None = name
        self._stat: os.stat_result | None = st
        self._path: Path | None = path

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def parent(self) -> 'FileContext':
        if self._parent is None:
            raise LookupError("no parent")

        return self._parent

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def stat(self) -> os.stat_result:
        if self._stat is None:
            if self._path is None:
                raise LookupError("stat not available and path not provided")
            self._stat = self._path.stat(follow_symlinks=False)
        return self._stat

    @functools.cached_property
    def relative_path(self) -> Path | None:
        """Get the relative path from the root context, reusing the cached result of the parent."""
        if self._name is None:
            return None

        if self._parent is None:
            return Path(self._name)

        parent_path = self._parent.relative_path
        if parent_path is None:
            return Path(self._name)

        return parent_path / self._name

    def is_file(self):
        return stat.S_ISREG(self.stat.st_mode)

    def is_dir(self):
        return stat.S_ISDIR(self.stat.st_mode)


WalkErrorHandler = Callable[[Path, OSError], None]


def walk(path: Path, parent: FileContext, on_error: WalkErrorHandler | None = None) \
        -> Generator[tuple[Path, FileContext], None | bool | FileContext, None]:
    """Recursively traverse a directory without following symlinks.

    Failing to list ``path`` itself always raises. Failures below it (a subdirectory that cannot be listed or
    an entry that cannot be stat'ed) are passed to ``on_error`` and the affected subtree is skipped; without
    a handler they raise as well.

    The consumer may send False to skip descending into the entry just yielded, or a substitute FileContext.
    """
    child: Path
    for child in list(path.iterdir()):
        context = FileContext(parent, child.name, path=child)
        substitute_context = yield child, context

        if substitute_context is False:
            continue
        elif substitute_context is not True and substitute_context is not None:
            context = substitute_context

        try:
            is_dir = context.is_dir()
        except OSError as e:
            if on_error is None:
                raise
            on_error(child, e)
            continue

        if is_dir:
            try:
                yield from walk(child, context, on_error)
            except OSError as e:
                if on_error is None:
                    raise
                on_error(child, e)
