import argparse
import logging
import sys
import textwrap

from . import Deduplicator, DedupError, DedupSettings, Processor
from .catalog import IdentifierPolicy
from .replace import ReplaceStrategy
from .report.store import ReportStore
from .utils.profiling import profile_main

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='symdedup',
        description='Compare two paths and replace every file under DESTINATION that duplicates a file under SOURCE '
                    'with a symbolic link to the SOURCE file.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent('''
            Examples:
              symdedup /data/photos /backup/photos
              symdedup --dry-run --verify-content /data/photos /backup/photos
              symdedup /data/photos/img.jpg /backup/img.jpg

            Files are matched by their path relative to each root (or by base name with --match-by name) and
            judged duplicates when their sizes are equal. Use --verify-content to also compare SHA-256 digests.
            Source files are never modified.
            ''').strip()
    )
    parser.add_argument(
        'source',
        metavar='SOURCE',
        help='Path to the source directory or file; its files are kept')
    parser.add_argument(
        'destination',
        metavar='DESTINATION',
        help='Path to the destination directory or file; duplicates in it are replaced with symlinks')
    parser.add_argument(
        '--config',
        metavar='PATH',
        help='Path to a TOML settings file. If not provided, uses the SYMDEDUP_CONFIG environment variable, if set.')
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Log progress information to standard error')
    parser.add_argument(
        '--log-file',
        metavar='PATH',
        help='Path to log file for operation logging. If not provided, uses logging.path from the settings or '
             'standard error.')
    parser.add_argument(
        '--log-level',
        metavar='LEVEL',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL). Defaults to INFO when --log-file is provided.')
    parser.add_argument(
        '--match-by',
        choices=[policy.value for policy in IdentifierPolicy],
        help='Match files by path relative to each root (relative, default) or by base name only (name). With '
             'name, files sharing a base name within one root shadow each other.')
    parser.add_argument(
        '--verify-content',
        action='store_true',
        default=None,
        help='Compare SHA-256 digests of size-matched files before replacing them')
    parser.add_argument(
        '--strategy',
        choices=[strategy.value for strategy in ReplaceStrategy],
        help='atomic (default): create the symlink under a temporary name and rename it over the destination. '
             'unlink: remove the destination first, which loses it if the symlink cannot be created.')
    parser.add_argument(
        '--concurrency',
        type=int,
        metavar='N',
        help='Maximum number of simultaneous replacements (default: twice the number of CPUs)')
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Show the replacements that would be made without modifying anything')
    parser.add_argument(
        '--report',
        metavar='DIR',
        help='Store the outcome of every replacement in a report directory, readable with symdedup-report')
    parser.add_argument(
        '--strict',
        action='store_true',
        help='Exit with a non-zero status if any replacement failed (default: only fatal errors do)')
    return parser


def configure_logging(args, deduplicator: Deduplicator):
    if args.log_file:
        logging.basicConfig(
            filename=args.log_file,
            level=getattr(logging, args.log_level or 'INFO'),
            format=LOG_FORMAT
        )
    elif not deduplicator.configure_logging_from_settings():
        level = args.log_level or ('INFO' if args.verbose else 'WARNING')
        logging.basicConfig(stream=sys.stderr, level=getattr(logging, level), format=LOG_FORMAT)


@profile_main
def symdedup_main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.concurrency is not None and args.concurrency < 1:
        parser.error('--concurrency must be at least 1')

    try:
        settings = DedupSettings(args.config)
    except (OSError, ValueError) as e:
        print(f"Error: cannot load settings: {e}", file=sys.stderr)
        return 1

    print(f"Source path: {args.source}")
    print(f"Destination path: {args.destination}")

    with Processor() as processor:
        try:
            deduplicator = Deduplicator(
                processor, settings,
                policy=args.match_by,
                strategy=args.strategy,
                verify_content=args.verify_content,
                concurrency=args.concurrency,
                dry_run=args.dry_run)
            configure_logging(args, deduplicator)
            result = deduplicator.run(args.source, args.destination, report_path=args.report)
        except (DedupError, OSError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    print(f"Found {len(result.source_catalog)} files in source path")
    print(f"Found {len(result.destination_catalog)} files in destination path")
    if result.rejected:
        print(f"Rejected {len(result.rejected)} size matches with different content")
    print(f"Found {len(result.pairs)} duplicates")

    for outcome in result.outcomes:
        pair = outcome.pair
        if outcome.dry_run:
            print(f"Would replace {pair.destination} with symlink to {pair.source}")
        elif outcome.succeeded:
            print(f"Replaced {pair.destination} with symlink to {pair.source}")
        else:
            print(f"Error replacing with symlink: {outcome.error}")

    if args.strict and not result.ok:
        return 1
    return 0


def symdedup_report_main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog='symdedup-report',
        description='Display a report stored by symdedup --report.')
    parser.add_argument(
        'report',
        metavar='DIR',
        help='Path to the report directory')
    parser.add_argument(
        '--status',
        choices=['replaced', 'failed', 'planned'],
        help='Show only records with this status')
    args = parser.parse_args(argv)

    store = ReportStore(args.report)
    try:
        manifest = store.read_manifest()
        store.open_database()
    except (DedupError, OSError, ValueError) as e:
        print(f"Error: cannot read report {args.report}: {e}", file=sys.stderr)
        return 1

    try:
        print(f"Source: {manifest.source_root}")
        print(f"Destination: {manifest.destination_root}")
        print(f"Timestamp: {manifest.timestamp}")
        print(f"Matched by: {manifest.identifier_policy}, strategy: {manifest.strategy}, "
              f"verify content: {manifest.verify_content}, dry run: {manifest.dry_run}")

        records = sorted(store.list_records(), key=lambda record: str(record.destination))
        for record in records:
            if args.status is None or record.status.value == args.status:
                print(record.describe())
    finally:
        store.close_database()

    return 0


def main():
    sys.exit(symdedup_main())


def report_main():
    sys.exit(symdedup_report_main())


if __name__ == '__main__':
    main()
