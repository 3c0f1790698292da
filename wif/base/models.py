"""
Pydantic models shared by the compiler, the conflict detector, the binding
manager and the orchestration facade.

Python attributes are snake_case; :meth:`WIFModel.to_dict` serializes with
camelCase field names and enum values (severities as ``low|medium|high|critical``)
for consumption by a CLI renderer or a machine pipeline.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, NamedTuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WIFModel(BaseModel):
    """Base model: camelCase aliases, construction by field name allowed."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready dict keyed by camelCase field names."""
        return self.model_dump(mode="json", by_alias=True)


# ── Enumerations ──────────────────────────────────────────────────────


class ResourceKind(str, Enum):
    """Kinds of managed resources."""

    SERVICE_ACCOUNT = "ServiceAccount"
    WORKLOAD_IDENTITY_POOL = "WorkloadIdentityPool"
    WORKLOAD_IDENTITY_PROVIDER = "WorkloadIdentityProvider"


class Severity(str, Enum):
    """Severity of a difference or conflict, ordered low → critical."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


def max_severity(severities: Iterable[Severity], default: Severity = Severity.LOW) -> Severity:
    """Return the highest severity in *severities*, or *default* when empty."""
    return max(severities, key=lambda s: s.rank, default=default)


class ConflictType(str, Enum):
    ALREADY_EXISTS = "AlreadyExists"
    CONFIG_MISMATCH = "ConfigMismatch"
    STATE_INVALID = "StateInvalid"
    DEPENDENCY_MISSING = "DependencyMissing"


class Resolution(str, Enum):
    """How a suggestion resolves a conflict, least destructive first."""

    SKIP = "skip"
    UPDATE = "update"
    RENAME = "rename"
    CREATE = "create"
    RECREATE = "recreate"

    @property
    def destructiveness(self) -> int:
        return list(Resolution).index(self)


class RecommendedAction(str, Enum):
    PROCEED = "Proceed"
    PROCEED_WITH_CAUTION = "ProceedWithCaution"
    RESOLVE_THEN_RETRY = "ResolveThenRetry"
    MANUAL_INTERVENTION_REQUIRED = "ManualInterventionRequired"


# ── Conflict detection ────────────────────────────────────────────────


class ResourceDescriptor(WIFModel):
    """Identifies one managed resource and its desired configuration.

    Attributes:
        kind: Resource kind.
        name: Resource id (service account email or account id, pool id,
            provider id).
        parent: Parent resource id; the pool id for a provider.
        desired: Desired configuration, keyed by the fields of the
            classification table for *kind*.
        existing: Live snapshot, or ``None`` when the resource is absent.
            Only consulted when the detector has no state fetcher.
    """

    model_config = ConfigDict(frozen=True)

    kind: ResourceKind
    name: str
    parent: str | None = None
    desired: dict[str, Any] = Field(default_factory=dict)
    existing: dict[str, Any] | None = None

    @property
    def resource_id(self) -> str:
        return f"{self.parent}/{self.name}" if self.parent else self.name


class FieldDifference(WIFModel):
    field: str
    existing_value: Any = None
    proposed_value: Any = None
    severity: Severity
    description: str = ""


class ResolutionSuggestion(WIFModel):
    title: str
    description: str
    resolution: Resolution
    recommended: bool = False
    automated: bool = False
    commands: list[str] = Field(default_factory=list)


class ResourceConflict(WIFModel):
    resource_type: ResourceKind
    resource_name: str
    conflict_type: ConflictType
    severity: Severity
    can_auto_resolve: bool
    differences: list[FieldDifference] = Field(default_factory=list)
    suggestions: list[ResolutionSuggestion] = Field(default_factory=list)

    @property
    def recommended_suggestion(self) -> ResolutionSuggestion | None:
        return next((s for s in self.suggestions if s.recommended), None)


class DetectionFailure(WIFModel):
    """A descriptor whose live state could not be read."""

    resource_type: ResourceKind
    resource_name: str
    error: str


class ConflictDetectionResult(WIFModel):
    has_conflicts: bool = False
    conflicts: list[ResourceConflict] = Field(default_factory=list)
    total_conflicts: int = 0
    critical_count: int = 0
    high_count: int = 0
    medium_count: int = 0
    low_count: int = 0
    can_proceed: bool = True
    summary: str = ""
    recommended_action: RecommendedAction = RecommendedAction.PROCEED
    failures: list[DetectionFailure] = Field(default_factory=list)
    degraded: bool = False

    def conflicts_for(self, kind: ResourceKind, name: str) -> list[ResourceConflict]:
        return [c for c in self.conflicts if c.resource_type == kind and c.resource_name == name]


class DetectionPolicy(WIFModel):
    """Explicit per-call detection policy.

    Attributes:
        create_new: The caller intends to create the resources.
        update_in_place: An existing resource may be updated instead of
            being reported as an ``AlreadyExists`` conflict.
        severity_threshold: Conflicts below this severity are left out of
            the result.
    """

    model_config = ConfigDict(frozen=True)

    create_new: bool = False
    update_in_place: bool = False
    severity_threshold: Severity = Severity.LOW


# ── Trust conditions ──────────────────────────────────────────────────


class TrustConditionSpec(WIFModel):
    """Structured security policy for a federated credential."""

    model_config = ConfigDict(frozen=True)

    repository: str
    allowed_branches: list[str] = Field(default_factory=list)
    allowed_tags: list[str] = Field(default_factory=list)
    allow_pull_requests: bool = False
    block_forked_repos: bool = False
    require_actor: bool = False
    validate_workflow_path: bool = False
    trusted_repos: list[str] = Field(default_factory=list)


class CompiledCondition(WIFModel):
    model_config = ConfigDict(frozen=True)

    title: str
    expression: str


# ── Bindings ──────────────────────────────────────────────────────────


class BindingKey(NamedTuple):
    role: str
    pool_id: str
    provider_id: str
    repository: str


class IAMBinding(WIFModel):
    """A conditional IAM binding granting *role* to a federated principal."""

    model_config = ConfigDict(frozen=True)

    role: str
    member: str
    repository: str
    pool_id: str
    provider_id: str
    condition: CompiledCondition | None = None

    @property
    def key(self) -> BindingKey:
        return BindingKey(self.role, self.pool_id, self.provider_id, self.repository)


__all__ = [
    "WIFModel",
    "ResourceKind",
    "Severity",
    "max_severity",
    "ConflictType",
    "Resolution",
    "RecommendedAction",
    "ResourceDescriptor",
    "FieldDifference",
    "ResolutionSuggestion",
    "ResourceConflict",
    "DetectionFailure",
    "ConflictDetectionResult",
    "DetectionPolicy",
    "TrustConditionSpec",
    "CompiledCondition",
    "BindingKey",
    "IAMBinding",
]
