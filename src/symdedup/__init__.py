from .catalog import Catalog, FileRecord, IdentifierPolicy, build_catalog, records_equivalent
from .deduplicator import Deduplicator
from .errors import AccessError, DedupError, EnumerationError, RecordError, ReplacementError, ReplaceStep
from .matcher import DuplicatePair, match_catalogs, verify_pairs
from .replace import ReplaceStrategy, replace_with_symlink
from .settings import DedupSettings
from .utils.processor import Processor
