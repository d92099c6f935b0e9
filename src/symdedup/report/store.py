"""Report storage for the outcomes of a deduplication run."""

import json
import os
from dataclasses import dataclass, asdict
from enum import StrEnum
from pathlib import Path
from typing import Any, Iterator

import mmh3
import msgpack
import plyvel

from ..errors import DedupError


class ReportError(DedupError):
    """The report database cannot be opened."""


class RecordStatus(StrEnum):
    REPLACED = 'replaced'
    FAILED = 'failed'
    PLANNED = 'planned'


class ReplacementRecord:
    """Outcome of replacing one destination file.

    Attributes:
        destination: Absolute path of the destination file that was (or would be) replaced
        source: Absolute path of the source file the symlink points at
        identifier: Identifier under which both files were matched
        size: Size in bytes shared by both files
        status: Whether the replacement happened, failed, or was only planned in a dry run
        step: For failures, the replacement step that failed
        message: For failures, the error message
    """

    def __init__(self, destination: Path, source: Path, identifier: str, size: int, status: str,
                 step: str | None = None, message: str | None = None):
        self.destination = destination
        self.source = source
        self.identifier = identifier
        self.size = size
        self.status = RecordStatus(status)
        self.step = step
        self.message = message

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ReplacementRecord):
            return False
        return self.to_list() == other.to_list()

    def __repr__(self) -> str:
        return f"ReplacementRecord({self.destination} -> {self.source}, {self.status.value})"

    def to_list(self) -> list:
        # Paths are stored as raw bytes so that names which are not valid UTF-8 survive the round trip.
        return [
            os.fsencode(self.destination),
            os.fsencode(self.source),
            self.identifier,
            self.size,
            self.status.value,
            self.step,
            self.message,
        ]

    @classmethod
    def from_list(cls, data: list) -> "ReplacementRecord":
        destination, source, identifier, size, status, step, message = data
        return cls(Path(os.fsdecode(destination)), Path(os.fsdecode(source)), identifier, size, status,
                   step, message)

    def describe(self) -> str:
        line = f"{self.status.value:8} {self.destination} -> {self.source} ({self.size} bytes)"
        if self.status is RecordStatus.FAILED:
            line += f" [{self.step}] {self.message}"
        return line


@dataclass
class ReportManifest:
    """Run parameters, persisted as manifest.json next to the database."""
    version: str = "1.0"
    """Report format version"""

    source_root: str = ""
    destination_root: str = ""

    timestamp: str = ""
    """ISO format timestamp when the run finished"""

    identifier_policy: str = ""
    strategy: str = ""
    verify_content: bool = False
    dry_run: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReportManifest":
        return cls(**data)


class ReportStore:
    """Reads and writes run reports in a directory holding manifest.json and a LevelDB database.

    Records are keyed by the 128-bit Murmur3 hash of their destination path. Each value is a msgpack list of
    all records whose destinations share that hash.
    """

    def __init__(self, report_dir: Path) -> None:
        self.report_dir: Path = Path(report_dir)
        self.manifest_path: Path = self.report_dir / 'manifest.json'
        self.database_path: Path = self.report_dir / 'database'
        self._database: plyvel.DB | None = None

    def create_report_directory(self) -> None:
        """Create the report directory, discarding the database of any previous report in it."""
        self.report_dir.mkdir(parents=True, exist_ok=True)
        if self.database_path.exists():
            plyvel.destroy_db(str(self.database_path))

    def open_database(self, *, create_if_missing: bool = False) -> None:
        """Open the LevelDB database.

        Raises:
            FileNotFoundError: create_if_missing is False and the database does not exist
            ReportError: LevelDB refused to open the database
        """
        if create_if_missing:
            self.database_path.mkdir(parents=True, exist_ok=True)
        elif not self.database_path.exists():
            raise FileNotFoundError(f"Database directory not found: {self.database_path}")

        try:
            self._database = plyvel.DB(str(self.database_path), create_if_missing=create_if_missing)
        except plyvel.Error as e:
            raise ReportError(f"cannot open report database {self.database_path}: {e}") from e

    def close_database(self) -> None:
        if self._database is not None:
            self._database.close()
            self._database = None

    def __enter__(self) -> "ReportStore":
        self.open_database()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close_database()

    def read_record(self, destination: Path) -> ReplacementRecord | None:
        for record in self._read_bucket(self._compute_path_hash(destination)):
            if record.destination == Path(destination):
                return record
        return None

    def write_record(self, record: ReplacementRecord) -> None:
        """Write a record, replacing any earlier record for the same destination."""
        key = self._compute_path_hash(record.destination)
        bucket = [existing for existing in self._read_bucket(key) if existing.destination != record.destination]
        bucket.append(record)
        self._require_database().put(key, msgpack.dumps([r.to_list() for r in bucket]))

    def list_records(self) -> Iterator[ReplacementRecord]:
        for _, value in self._require_database().iterator():
            for data in msgpack.loads(value):
                yield ReplacementRecord.from_list(data)

    def write_manifest(self, manifest: ReportManifest) -> None:
        with open(self.manifest_path, 'w') as f:
            json.dump(manifest.to_dict(), f, indent=2)

    def read_manifest(self) -> ReportManifest:
        """Read the report manifest.

        Raises:
            FileNotFoundError: If manifest.json doesn't exist
        """
        with open(self.manifest_path, 'r') as f:
            data = json.load(f)
        return ReportManifest.from_dict(data)

    def _read_bucket(self, key: bytes) -> list[ReplacementRecord]:
        value = self._require_database().get(key)
        if value is None:
            return []
        return [ReplacementRecord.from_list(data) for data in msgpack.loads(value)]

    def _require_database(self) -> plyvel.DB:
        if self._database is None:
            raise RuntimeError("Database not opened. Use context manager or call open_database().")
        return self._database

    @staticmethod
    def _compute_path_hash(path: Path) -> bytes:
        """Compute the 128-bit Murmur3 hash of a path as 16 big-endian bytes."""
        hash_value = mmh3.hash128(os.fsencode(path), signed=False)
        return hash_value.to_bytes(16, byteorder='big')
