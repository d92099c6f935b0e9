import asyncio
import logging
from asyncio import TaskGroup
from dataclasses import dataclass, field
from typing import NamedTuple

from ..catalog import Catalog, IdentifierPolicy, build_catalog
from ..errors import ReplacementError
from ..matcher import DuplicatePair, match_catalogs, verify_pairs
from ..replace import ReplaceStrategy
from ..utils.processor import Processor
from ..utils.throttler import Throttler

logger = logging.getLogger(__name__)


class DedupArgs(NamedTuple):
    """Arguments for a deduplication run."""
    processor: Processor  # Worker pool for hashing and replacement
    policy: IdentifierPolicy = IdentifierPolicy.RELATIVE_PATH
    strategy: ReplaceStrategy = ReplaceStrategy.ATOMIC
    verify_content: bool = False  # Confirm size matches with SHA-256 before replacing
    dry_run: bool = False  # Report planned replacements without touching the filesystem
    concurrency: int | None = None  # Maximum simultaneous replacements, defaults to twice the pool size


class ReplacementOutcome(NamedTuple):
    """Result of replacing one duplicate pair."""
    pair: DuplicatePair
    error: Exception | None = None  # ReplacementError for a failed step, anything else for a worker failure
    dry_run: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class DedupResult:
    source_catalog: Catalog
    destination_catalog: Catalog
    pairs: list[DuplicatePair] = field(default_factory=list)
    """Pairs selected for replacement"""
    rejected: list[DuplicatePair] = field(default_factory=list)
    """Pairs matched by size but dropped by content verification"""
    outcomes: list[ReplacementOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[ReplacementOutcome]:
        return [outcome for outcome in self.outcomes if outcome.succeeded]

    @property
    def failed(self) -> list[ReplacementOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.succeeded]

    @property
    def ok(self) -> bool:
        return not self.failed


async def build_catalogs(source_root, destination_root, policy: IdentifierPolicy) -> tuple[Catalog, Catalog]:
    """Build both catalogs concurrently and wait for both before checking either for failure.

    Raises:
        AccessError, EnumerationError: a root could not be catalogued; the source failure wins if both failed
    """
    source_result, destination_result = await asyncio.gather(
        asyncio.to_thread(build_catalog, source_root, policy),
        asyncio.to_thread(build_catalog, destination_root, policy),
        return_exceptions=True)

    for side, result in (('source', source_result), ('destination', destination_result)):
        if isinstance(result, BaseException):
            logger.error(f"Error processing {side} path: {result}")
            raise result

    return source_result, destination_result


class ReplacementRunner:
    """Runs one replacement task per duplicate pair, reporting failures without cancelling siblings."""

    def __init__(self, args: DedupArgs):
        self._processor = args.processor
        self._strategy = args.strategy
        self._dry_run = args.dry_run
        self._concurrency = args.concurrency or self._processor.concurrency * 2
        self._outcomes: dict[int, ReplacementOutcome] = {}

    async def run(self, pairs: list[DuplicatePair]) -> list[ReplacementOutcome]:
        async with TaskGroup() as tg:
            throttler = Throttler(tg, self._concurrency)

            for index, pair in enumerate(pairs):
                await throttler.schedule(self._replace(index, pair))

        return [self._outcomes[index] for index in range(len(pairs))]

    async def _replace(self, index: int, pair: DuplicatePair):
        if self._dry_run:
            logger.info(f"Dry run, not replacing {pair.destination}")
            self._outcomes[index] = ReplacementOutcome(pair, dry_run=True)
            return

        try:
            await self._processor.replace_with_symlink(pair.source, pair.destination, self._strategy)
        except ReplacementError as e:
            logger.error(f"Error replacing {pair.destination} with symlink ({e.step}): {e}")
            self._outcomes[index] = ReplacementOutcome(pair, e)
        except Exception as e:
            logger.exception(f"Unexpected failure replacing {pair.destination} with symlink")
            self._outcomes[index] = ReplacementOutcome(pair, e)
        else:
            logger.info(f"Replaced {pair.destination} with symlink to {pair.source}")
            self._outcomes[index] = ReplacementOutcome(pair)


async def do_dedup(source_root, destination_root, args: DedupArgs) -> DedupResult:
    """Catalog both roots, match duplicates and replace every destination duplicate with a symlink.

    Nothing is modified unless both catalogs were built successfully.
    """
    source_catalog, destination_catalog = await build_catalogs(source_root, destination_root, args.policy)
    logger.info(f"Catalogued {len(source_catalog)} source files and {len(destination_catalog)} destination files")

    if source_catalog.collisions or destination_catalog.collisions:
        logger.warning(
            f"{source_catalog.collisions + destination_catalog.collisions} files were shadowed by files with the "
            f"same {IdentifierPolicy(args.policy).value} identifier")

    result = DedupResult(source_catalog, destination_catalog)
    result.pairs = match_catalogs(source_catalog, destination_catalog)

    if args.verify_content and result.pairs:
        result.pairs, result.rejected = await verify_pairs(result.pairs, args.processor)

    result.outcomes = await ReplacementRunner(args).run(result.pairs)
    return result
