from .diff import parse_diff, parse_file_patch, DiffFile
from .reconcile import fingerprint, fingerprint_of, reconcile
from .reporter import Reporter, ReportResult
from .engine import ReviewEngine, EngineReviewResult

__all__ = [
    "parse_diff",
    "parse_file_patch",
    "DiffFile",
    "fingerprint",
    "fingerprint_of",
    "reconcile",
    "Reporter",
    "ReportResult",
    "ReviewEngine",
    "EngineReviewResult",
]
