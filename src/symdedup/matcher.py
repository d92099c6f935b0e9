"""Selecting duplicate pairs from two catalogs."""

import asyncio
import logging
from pathlib import Path
from typing import NamedTuple

from .catalog import Catalog, records_equivalent
from .utils.processor import Processor

logger = logging.getLogger(__name__)


class DuplicatePair(NamedTuple):
    """A source file and the destination file judged to duplicate it."""
    identifier: str
    source: Path
    destination: Path
    size: int


def match_catalogs(source_catalog: Catalog, destination_catalog: Catalog) -> list[DuplicatePair]:
    """Pair up files present under the same identifier in both catalogs with equivalent records.

    The order of the returned pairs is unspecified.

    Raises:
        ValueError: the catalogs were built with different identifier policies
    """
    if source_catalog.policy != destination_catalog.policy:
        raise ValueError(
            f"cannot match a catalog keyed by {source_catalog.policy.value} against one keyed by "
            f"{destination_catalog.policy.value}")

    duplicates = []
    for identifier, source_record in source_catalog.items():
        destination_record = destination_catalog.get(identifier)
        if destination_record is None:
            continue

        if records_equivalent(source_record, destination_record):
            duplicates.append(DuplicatePair(
                identifier, source_record.path, destination_record.path, source_record.size))

    return duplicates


async def verify_pairs(pairs: list[DuplicatePair], processor: Processor) \
        -> tuple[list[DuplicatePair], list[DuplicatePair]]:
    """Confirm size-matched pairs by comparing SHA-256 digests of their content.

    Only paths that appear in a pair are hashed, and each path is hashed once even when it appears in several
    pairs.

    Returns:
        Tuple of (verified, rejected) pairs. A pair whose digest cannot be computed is rejected.
    """
    paths = list(dict.fromkeys(path for pair in pairs for path in (pair.source, pair.destination)))
    results = await asyncio.gather(*(processor.sha256(path) for path in paths), return_exceptions=True)

    digests: dict[Path, bytes | None] = {}
    for path, result in zip(paths, results):
        if isinstance(result, OSError):
            logger.warning(f"Could not compute digest of {path}: {result}")
            digests[path] = None
        elif isinstance(result, BaseException):
            raise result
        else:
            digests[path] = result

    verified = []
    rejected = []
    for pair in pairs:
        source_digest = digests[pair.source]
        destination_digest = digests[pair.destination]

        if source_digest is None or destination_digest is None:
            rejected.append(pair)
        elif source_digest != destination_digest:
            logger.info(f"Content differs despite equal size: {pair.source} vs {pair.destination}")
            rejected.append(pair)
        else:
            verified.append(pair)

    return verified, rejected
