from .record import Catalog, FileRecord, IdentifierPolicy, records_equivalent
from .builder import build_catalog
