import logging
import stat
from pathlib import Path

from .record import Catalog, FileRecord, IdentifierPolicy
from ..errors import AccessError, EnumerationError, RecordError
from ..utils.walker import FileContext, walk

logger = logging.getLogger(__name__)


def build_catalog(path, policy: IdentifierPolicy = IdentifierPolicy.RELATIVE_PATH) -> Catalog:
    """Build a catalog of every regular file reachable from ``path``.

    The root is taken as given, made absolute but not resolved. If it is, or links to, a regular file the
    catalog holds exactly that path, keyed by its base name. If it is a directory, the tree below it is
    walked without following symlinks; only regular files are recorded.

    Subdirectories that cannot be listed and entries that cannot be stat'ed are logged as warnings and
    skipped.

    Raises:
        AccessError: ``path`` does not exist or cannot be stat'ed
        EnumerationError: ``path`` is a directory that cannot be listed
    """
    policy = IdentifierPolicy(policy)

    try:
        root = Path(path).absolute()
        st = root.stat()
    except OSError as e:
        raise AccessError(path, str(e)) from e

    catalog = Catalog(root, policy)

    if not stat.S_ISDIR(st.st_mode):
        if stat.S_ISREG(st.st_mode):
            catalog.add(FileRecord(root.name, st.st_size, root))
        else:
            logger.info(f"Ignoring {root}: not a regular file or directory")
        return catalog

    def on_subdirectory_error(child: Path, error: OSError):
        logger.warning(f"Could not get files for {child}: {error}")

    gen = walk(root, FileContext(None, None, root), on_subdirectory_error)
    pending = None

    try:
        while True:
            try:
                child, context = gen.send(pending)
            except OSError as e:
                # Failures below the root are already handled by on_subdirectory_error.
                raise EnumerationError(root, str(e)) from e
            pending = None

            try:
                child_stat = context.stat
            except OSError as e:
                logger.warning(str(RecordError(child, str(e))))
                pending = False
                continue

            if stat.S_ISREG(child_stat.st_mode):
                catalog.add(FileRecord(_identifier(context, policy), child_stat.st_size, child))
    except StopIteration:
        pass

    return catalog


def _identifier(context: FileContext, policy: IdentifierPolicy) -> str:
    if policy is IdentifierPolicy.BASE_NAME:
        return context.name
    return context.relative_path.as_posix()
