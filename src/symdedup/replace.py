"""Replacing a destination file with a symbolic link to its source duplicate."""

import os
import stat
import uuid
from enum import StrEnum
from pathlib import Path

from .errors import ReplacementError, ReplaceStep
from .utils.profiling import profile_worker


class ReplaceStrategy(StrEnum):
    """How the destination file is swapped for the symlink.

    ATOMIC creates the link under a temporary name next to the destination and renames it over the
    destination, so the destination path always names either the original file or the link.

    UNLINK removes the destination and then creates the link. If creating the link fails, the destination
    file is gone and no link replaces it.
    """
    ATOMIC = 'atomic'
    UNLINK = 'unlink'


@profile_worker
def replace_with_symlink(source: Path, destination: Path, strategy: str = ReplaceStrategy.ATOMIC) -> None:
    """Replace ``destination`` with a symbolic link pointing at ``source``.

    Both endpoints are checked again immediately before the destination is touched, since the catalogs
    they came from may be stale. The source is never modified.

    Raises:
        ReplacementError: a check failed or the filesystem refused to remove or link; ``step`` tells which
    """
    strategy = ReplaceStrategy(strategy)

    try:
        source.stat()
    except OSError as e:
        raise ReplacementError(
            ReplaceStep.CHECK_SOURCE, f"source file {source} does not exist: {e}") from e

    try:
        destination_stat = destination.stat(follow_symlinks=False)
    except OSError as e:
        raise ReplacementError(
            ReplaceStep.CHECK_DESTINATION, f"destination file {destination} does not exist: {e}") from e

    if not stat.S_ISREG(destination_stat.st_mode):
        raise ReplacementError(
            ReplaceStep.CHECK_DESTINATION, f"destination {destination} is no longer a regular file")

    try:
        same_file = os.path.samefile(source, destination)
    except OSError as e:
        raise ReplacementError(
            ReplaceStep.CHECK_DESTINATION, f"cannot compare {source} with {destination}: {e}") from e

    if same_file:
        raise ReplacementError(
            ReplaceStep.CHECK_DESTINATION, f"destination {destination} is the same file as source {source}")

    if strategy is ReplaceStrategy.ATOMIC:
        _link_and_rename(source, destination)
    else:
        _unlink_and_link(source, destination)


def _link_and_rename(source: Path, destination: Path):
    temporary = destination.with_name(f".{destination.name}.symdedup-{uuid.uuid4().hex}")

    try:
        temporary.symlink_to(source)
    except OSError as e:
        raise ReplacementError(
            ReplaceStep.LINK, f"failed to create symlink from {temporary} to {source}: {e}") from e

    try:
        os.replace(temporary, destination)
    except OSError as e:
        message = f"failed to replace destination file {destination}: {e}"
        try:
            temporary.unlink(missing_ok=True)
        except OSError as cleanup_error:
            message += f" (temporary link {temporary} left behind: {cleanup_error})"
        raise ReplacementError(ReplaceStep.REMOVE, message) from e


def _unlink_and_link(source: Path, destination: Path):
    try:
        destination.unlink()
    except OSError as e:
        raise ReplacementError(
            ReplaceStep.REMOVE, f"failed to remove destination file {destination}: {e}") from e

    try:
        destination.symlink_to(source)
    except OSError as e:
        raise ReplacementError(
            ReplaceStep.LINK,
            f"failed to create symlink from {destination} to {source}: {e} (destination file was removed)") from e
