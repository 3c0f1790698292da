"""wif: GitHub Actions to Google Cloud workload identity federation.

Compile and validate the trust conditions that gate a federated
credential, detect conflicts with live cloud state and manage the
conditional IAM bindings::

    from wif import TrustConditionSpec, compile_condition

    compiled = compile_condition(TrustConditionSpec(repository="acme/app"))
"""

from .base import (
    StateFetcherBlueprint,
    BindingTransportBlueprint,
    ResourceProvisionerBlueprint,
)
from .base.models import DetectionPolicy, IAMBinding, ResourceDescriptor, Severity, TrustConditionSpec
from .bindings import BindingChange, BindingManager, principal_set_member
from .conditions import compile_condition, is_valid_expression, validate_expression
from .conflicts import ConflictDetector
from .factory import universal_factory
from .orchestrator import CleanupScope, Orchestrator, WIFRequest

__all__ = [
    "StateFetcherBlueprint",
    "BindingTransportBlueprint",
    "ResourceProvisionerBlueprint",
    "DetectionPolicy",
    "IAMBinding",
    "ResourceDescriptor",
    "Severity",
    "TrustConditionSpec",
    "BindingChange",
    "BindingManager",
    "principal_set_member",
    "compile_condition",
    "is_valid_expression",
    "validate_expression",
    "ConflictDetector",
    "universal_factory",
    "CleanupScope",
    "Orchestrator",
    "WIFRequest",
]
