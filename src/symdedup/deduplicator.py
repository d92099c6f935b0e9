import asyncio
import datetime
import logging
import os
from pathlib import Path

from .catalog import IdentifierPolicy
from .commands.dedup import DedupArgs, DedupResult, ReplacementOutcome, do_dedup
from .replace import ReplaceStrategy
from .report.store import RecordStatus, ReplacementRecord, ReportManifest, ReportStore
from .settings import DedupSettings, SETTING_LOG_LEVEL, SETTING_LOG_PATH
from .utils.processor import Processor

logger = logging.getLogger(__name__)


class Deduplicator:
    """Workflow layer replacing duplicated destination files with symlinks to their source copies.

    Options passed to the constructor take precedence over the settings file; options left as None fall back
    to the settings and then to the defaults.

    Example:
        with Processor() as processor:
            result = Deduplicator(processor).run('/data/master', '/data/copy')
            for outcome in result.failed:
                print(outcome.error)
    """

    def __init__(self, processor: Processor, settings: DedupSettings | None = None, *,
                 policy: IdentifierPolicy | str | None = None,
                 strategy: ReplaceStrategy | str | None = None,
                 verify_content: bool | None = None,
                 concurrency: int | None = None,
                 dry_run: bool = False):
        if settings is None:
            settings = DedupSettings()

        self._processor = processor
        self._settings = settings
        self._args = DedupArgs(
            processor,
            IdentifierPolicy(policy) if policy is not None else settings.identifier_policy,
            ReplaceStrategy(strategy) if strategy is not None else settings.strategy,
            verify_content if verify_content is not None else settings.verify_content,
            dry_run,
            concurrency if concurrency is not None else settings.concurrency,
        )

    @property
    def args(self) -> DedupArgs:
        return self._args

    def configure_logging_from_settings(self) -> bool:
        """Configure logging from the settings file if it names a log path.

        Keeps the current root logger level unless the settings specify one.

        Returns:
            True if logging was configured, False otherwise
        """
        log_path_setting = self._settings.get(SETTING_LOG_PATH)
        if not log_path_setting:
            return False

        level_setting = self._settings.get(SETTING_LOG_LEVEL)
        if level_setting:
            level = str(level_setting).upper()
            if level not in logging.getLevelNamesMapping():
                raise ValueError(f"Invalid value for {SETTING_LOG_LEVEL}: {level_setting!r}")
        else:
            level = logging.root.level if logging.root.level != logging.NOTSET else logging.INFO

        for handler in logging.root.handlers[:]:
            logging.root.removeHandler(handler)

        logging.basicConfig(
            filename=str(log_path_setting),
            level=level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        return True

    def run(self, source: str | os.PathLike, destination: str | os.PathLike, *,
            report_path: str | os.PathLike | None = None) -> DedupResult:
        """Replace every file under ``destination`` that duplicates a file under ``source`` with a symlink.

        Args:
            source: Root of the files to keep, a file or a directory
            destination: Root of the files to replace, a file or a directory
            report_path: Directory to store a report of every replacement outcome in

        Returns:
            DedupResult with both catalogs, the selected pairs and one outcome per pair

        Raises:
            AccessError: a root cannot be stat'ed; nothing was modified
            EnumerationError: a root directory cannot be listed; nothing was modified
            OSError, ReportError: the report cannot be created; nothing was modified
        """
        if report_path is None:
            return asyncio.run(do_dedup(source, destination, self._args))

        # Opened before any replacement runs.
        store = ReportStore(Path(report_path))
        store.create_report_directory()
        store.open_database(create_if_missing=True)
        try:
            result = asyncio.run(do_dedup(source, destination, self._args))
            for outcome in result.outcomes:
                store.write_record(_record_from_outcome(outcome))
        finally:
            store.close_database()

        self.write_manifest(store, result)
        return result

    def write_manifest(self, store: ReportStore, result: DedupResult):
        store.write_manifest(ReportManifest(
            source_root=str(result.source_catalog.root),
            destination_root=str(result.destination_catalog.root),
            timestamp=datetime.datetime.now(datetime.UTC).isoformat(),
            identifier_policy=self._args.policy.value,
            strategy=self._args.strategy.value,
            verify_content=self._args.verify_content,
            dry_run=self._args.dry_run,
        ))
        logger.info(f"Wrote report with {len(result.outcomes)} records to {store.report_dir}")


def _record_from_outcome(outcome: ReplacementOutcome) -> ReplacementRecord:
    pair = outcome.pair
    if outcome.dry_run:
        status = RecordStatus.PLANNED
    elif outcome.succeeded:
        status = RecordStatus.REPLACED
    else:
        status = RecordStatus.FAILED

    step = getattr(outcome.error, "step", None)
    step = str(step) if step is not None else None
    message = str(outcome.error) if outcome.error is not None else None
    return ReplacementRecord(pair.destination, pair.source, pair.identifier, pair.size, status, step, message)
