from .store import RecordStatus, ReplacementRecord, ReportError, ReportManifest, ReportStore
