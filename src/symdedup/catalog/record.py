"""Catalog of regular files found under a root path."""

import logging
from enum import StrEnum
from pathlib import Path
from typing import Iterator, NamedTuple

logger = logging.getLogger(__name__)


class IdentifierPolicy(StrEnum):
    """How a file is keyed in a catalog.

    RELATIVE_PATH keys files by their POSIX path relative to the root, which is unique within a root.
    BASE_NAME keys files by their base name only; files with the same name in different subdirectories
    collide and the one visited last wins.
    """
    RELATIVE_PATH = 'relative'
    BASE_NAME = 'name'


class FileRecord(NamedTuple):
    """A regular file discovered under a root path.

    ``path`` is only used for later I/O. Use records_equivalent() rather than ``==`` to decide whether two
    records describe duplicates.
    """
    identifier: str
    size: int
    path: Path


def records_equivalent(a: FileRecord, b: FileRecord) -> bool:
    """Two records with the same identifier are duplicates when their sizes are equal.

    Content is not compared, so files of equal size but different bytes are treated as duplicates.
    """
    return a.size == b.size


class Catalog:
    """Mapping from identifier to FileRecord for one root path."""

    def __init__(self, root: Path, policy: IdentifierPolicy = IdentifierPolicy.RELATIVE_PATH):
        self.root = root
        self.policy = IdentifierPolicy(policy)
        self.collisions = 0
        self._records: dict[str, FileRecord] = {}

    def add(self, record: FileRecord):
        existing = self._records.get(record.identifier)
        if existing is not None:
            self.collisions += 1
            logger.debug(f"Identifier {record.identifier!r} collides: {record.path} replaces {existing.path}")
        self._records[record.identifier] = record

    def get(self, identifier: str, default: FileRecord | None = None) -> FileRecord | None:
        return self._records.get(identifier, default)

    def identifiers(self) -> set[str]:
        return set(self._records)

    def items(self):
        return self._records.items()

    def __getitem__(self, identifier: str) -> FileRecord:
        return self._records[identifier]

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._records

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"Catalog({str(self.root)!r}, policy={self.policy.value}, records={len(self)})"
