"""Deterministic analyzers that feed the manifest pipeline."""

from .evidence import extract_from_file
from .orphans import count_linked_tests, scan_test_file
from .structure import StructureResult, classify

__all__ = [
    "StructureResult",
    "classify",
    "count_linked_tests",
    "extract_from_file",
    "scan_test_file",
]
