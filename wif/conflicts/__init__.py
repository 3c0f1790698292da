"""Resource conflict detection."""

from .classification import SEVERITY_TABLE, classify, diff_fields
from .descriptors import pool_descriptor, provider_descriptor, service_account_descriptor
from .detector import ConflictDetector, aggregate, analyze


__all__ = [
    "SEVERITY_TABLE",
    "classify",
    "diff_fields",
    "pool_descriptor",
    "provider_descriptor",
    "service_account_descriptor",
    "ConflictDetector",
    "aggregate",
    "analyze",
]
