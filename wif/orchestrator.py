"""
Orchestration facade: setup, cleanup and rollback.

Composes the compiler, validator, conflict detector, provisioner and
binding manager into the three end-to-end flows. Policy (scope, force,
ignore-errors) is passed explicitly on every call.

Usage::

    orchestrator = Orchestrator(fetcher, provisioner, bindings)
    report = orchestrator.setup(request, DetectionPolicy(create_new=True))
    if report.blocked:
        print(report.detection.summary)
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any

from pydantic import ConfigDict, Field, field_validator

from wif.base.bindings import BindingTransportBlueprint
from wif.base.exceptions import WIFError
from wif.base.fetcher import StateFetcherBlueprint
from wif.base.logger import get_logger
from wif.base.models import (
    CompiledCondition,
    ConflictDetectionResult,
    ConflictType,
    DetectionPolicy,
    IAMBinding,
    ResourceDescriptor,
    TrustConditionSpec,
    WIFModel,
)
from wif.base.provisioner import ResourceProvisionerBlueprint
from wif.bindings import BindingChange, BindingManager, principal_set_member
from wif.conditions.claims import (
    ASSERTION_PREFIX,
    DEFAULT_AUDIENCES,
    GITHUB_ISSUER_URI,
    build_attribute_mapping,
)
from wif.conditions.compiler import BRANCH_REF_PREFIX, TAG_REF_PREFIX, canonical_patterns, compile_condition
from wif.conditions.validator import validate_expression
from wif.conflicts.descriptors import pool_descriptor, provider_descriptor, service_account_descriptor
from wif.conflicts.detector import ConflictDetector

logger = get_logger("orchestrator")

WORKLOAD_IDENTITY_USER_ROLE = "roles/iam.workloadIdentityUser"
BINDING_RESOURCE_TYPE = "IAMBinding"

_WIF_ID_RE = re.compile(r"^[a-z][a-z0-9-]*[a-z0-9]$")
_SA_ID_RE = re.compile(r"^[a-z][-a-z0-9]{4,28}[a-z0-9]$")


class WIFRequest(WIFModel):
    """Everything needed to set up (or tear down) one GitHub → GCP trust."""

    model_config = ConfigDict(frozen=True)

    project_id: str
    project_number: str
    service_account: str
    pool_id: str
    provider_id: str
    condition: TrustConditionSpec
    roles: list[str] = Field(default_factory=list)
    role: str = WORKLOAD_IDENTITY_USER_ROLE
    issuer_uri: str = GITHUB_ISSUER_URI
    audiences: list[str] = Field(default_factory=lambda: list(DEFAULT_AUDIENCES))
    attribute_mapping: dict[str, str] = Field(default_factory=build_attribute_mapping)
    display_name: str | None = None
    description: str | None = None

    @field_validator("pool_id", "provider_id")
    @classmethod
    def _check_wif_id(cls, v: str) -> str:
        if not 3 <= len(v) <= 32:
            raise ValueError("must be between 3 and 32 characters")
        if not _WIF_ID_RE.match(v):
            raise ValueError(
                "must start with a lowercase letter and contain only lowercase "
                "letters, digits and hyphens"
            )
        return v

    @field_validator("service_account")
    @classmethod
    def _check_service_account(cls, v: str) -> str:
        account_id = v.split("@", 1)[0]
        if not 6 <= len(account_id) <= 30:
            raise ValueError("service account id must be between 6 and 30 characters")
        if not _SA_ID_RE.match(account_id):
            raise ValueError(
                "service account id must start with a lowercase letter and contain "
                "only lowercase letters, digits and hyphens"
            )
        return v

    @property
    def repository(self) -> str:
        return self.condition.repository

    @property
    def service_account_email(self) -> str:
        if "@" in self.service_account:
            return self.service_account
        return f"{self.service_account}@{self.project_id}.iam.gserviceaccount.com"

    @property
    def member(self) -> str:
        return principal_set_member(self.project_number, self.pool_id, self.repository)

    def compile(self) -> CompiledCondition:
        """Compile and validate the provider attribute condition."""
        compiled = compile_condition(self.condition, claim_prefix=ASSERTION_PREFIX)
        validate_expression(compiled.expression)
        return compiled

    def descriptors(self, compiled: CompiledCondition | None = None) -> list[ResourceDescriptor]:
        """Service account, pool and provider descriptors, in creation order."""
        return [
            service_account_descriptor(
                self.service_account_email,
                display_name=self.display_name,
                description=self.description,
                roles=self.roles or None,
            ),
            pool_descriptor(self.pool_id, display_name=self.display_name, description=self.description),
            provider_descriptor(
                self.pool_id,
                self.provider_id,
                repository=self.repository,
                attribute_condition=compiled.expression if compiled else None,
                attribute_mapping=self.attribute_mapping,
                allowed_branches=canonical_patterns(self.condition.allowed_branches, BRANCH_REF_PREFIX, "branch"),
                allowed_tags=canonical_patterns(self.condition.allowed_tags, TAG_REF_PREFIX, "tag"),
                issuer_uri=self.issuer_uri,
                allowed_audiences=self.audiences,
                display_name=self.display_name,
            ),
        ]

    def binding(self, compiled: CompiledCondition | None = None) -> IAMBinding:
        return IAMBinding(
            role=self.role,
            member=self.member,
            repository=self.repository,
            pool_id=self.pool_id,
            provider_id=self.provider_id,
            condition=compiled,
        )


class CleanupScope(WIFModel):
    """Which resources a cleanup removes."""

    model_config = ConfigDict(frozen=True)

    bindings: bool = False
    provider: bool = False
    pool: bool = False
    service_account: bool = False

    @classmethod
    def all(cls) -> CleanupScope:
        return cls(bindings=True, provider=True, pool=True, service_account=True)


class StepStatus(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    DELETED = "deleted"
    ABSENT = "absent"
    FAILED = "failed"


class OperationStep(WIFModel):
    resource_type: str
    resource_name: str
    status: StepStatus
    error: str | None = None


class OperationReport(WIFModel):
    operation: str
    success: bool = True
    blocked: bool = False
    condition: CompiledCondition | None = None
    detection: ConflictDetectionResult | None = None
    steps: list[OperationStep] = Field(default_factory=list)
    unresolved: list[str] = Field(default_factory=list)

    @property
    def errors(self) -> list[str]:
        return [s.error for s in self.steps if s.error]

    def record(self, step: OperationStep) -> OperationStep:
        self.steps.append(step)
        if step.status == StepStatus.FAILED:
            self.success = False
        return step

    def mark_unresolved(self, resource_name: str) -> None:
        """A skipped resource still differs from its desired configuration."""
        self.unresolved.append(resource_name)
        self.success = False


_BINDING_STATUS = {
    BindingChange.CREATED: StepStatus.CREATED,
    BindingChange.UPDATED: StepStatus.UPDATED,
    BindingChange.UNCHANGED: StepStatus.UNCHANGED,
    BindingChange.REMOVED: StepStatus.DELETED,
    BindingChange.ABSENT: StepStatus.ABSENT,
}


class Orchestrator:
    """Setup / cleanup / rollback over the capability blueprints.

    Args:
        fetcher: Live state source, also used by the default detector.
        provisioner: Creates, updates and deletes resources.
        bindings: Binding transport, wrapped in a :class:`BindingManager`.
        detector: Conflict detector; defaults to one over *fetcher*.
    """

    def __init__(
        self,
        fetcher: StateFetcherBlueprint,
        provisioner: ResourceProvisionerBlueprint,
        bindings: BindingTransportBlueprint,
        detector: ConflictDetector | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.provisioner = provisioner
        self.bindings = BindingManager(bindings)
        self.detector = detector or ConflictDetector(fetcher)

    # ── helpers ───────────────────────────────────────────────────────

    def _log(self, step: OperationStep, operation: str) -> None:
        if step.status == StepStatus.FAILED:
            level = logging.ERROR
        elif step.error:
            level = logging.WARNING
        else:
            level = logging.INFO
        message = f"{step.resource_type} {step.status.value}"
        if step.error:
            message += f": {step.error}"
        logger.log_operation(level, message, operation=operation, resource=step.resource_name)

    def _apply(
        self,
        descriptor: ResourceDescriptor,
        detection: ConflictDetectionResult,
        report: OperationReport,
    ) -> OperationStep:
        conflicts = detection.conflicts_for(descriptor.kind, descriptor.resource_id)
        status = StepStatus.UNCHANGED
        error = None
        try:
            existing: Any = self.fetcher.fetch_state(descriptor)
            if existing is None:
                self.provisioner.create(descriptor)
                status = StepStatus.CREATED
            elif conflicts:
                conflict = conflicts[0]
                if conflict.conflict_type == ConflictType.CONFIG_MISMATCH and conflict.can_auto_resolve:
                    self.provisioner.update(descriptor)
                    status = StepStatus.UPDATED
                else:
                    status = StepStatus.SKIPPED
                    # AlreadyExists is left as-is on purpose; anything else
                    # keeps a live configuration that differs from the request.
                    if conflict.conflict_type != ConflictType.ALREADY_EXISTS:
                        error = (
                            f"unresolved {conflict.conflict_type.value} "
                            f"({conflict.severity.value}) needs manual resolution"
                        )
                        report.mark_unresolved(descriptor.resource_id)
            step = OperationStep(
                resource_type=descriptor.kind.value,
                resource_name=descriptor.resource_id,
                status=status,
                error=error,
            )
        except WIFError as e:
            step = OperationStep(
                resource_type=descriptor.kind.value,
                resource_name=descriptor.resource_id,
                status=StepStatus.FAILED,
                error=str(e),
            )
        self._log(step, "setup")
        return report.record(step)

    def _bind(self, binding: IAMBinding, report: OperationReport, operation: str) -> OperationStep:
        try:
            if operation == "setup":
                change = self.bindings.create(binding)
            else:
                change = self.bindings.remove(binding)
            step = OperationStep(
                resource_type=BINDING_RESOURCE_TYPE,
                resource_name=binding.member,
                status=_BINDING_STATUS[change],
            )
        except WIFError as e:
            step = OperationStep(
                resource_type=BINDING_RESOURCE_TYPE,
                resource_name=binding.member,
                status=StepStatus.FAILED,
                error=str(e),
            )
        self._log(step, operation)
        return report.record(step)

    def _delete(self, descriptor: ResourceDescriptor, report: OperationReport) -> OperationStep:
        try:
            self.provisioner.delete(descriptor)
            step = OperationStep(
                resource_type=descriptor.kind.value,
                resource_name=descriptor.resource_id,
                status=StepStatus.DELETED,
            )
        except WIFError as e:
            step = OperationStep(
                resource_type=descriptor.kind.value,
                resource_name=descriptor.resource_id,
                status=StepStatus.FAILED,
                error=str(e),
            )
        self._log(step, "cleanup")
        return report.record(step)

    # ── flows ─────────────────────────────────────────────────────────

    def setup(self, request: WIFRequest, policy: DetectionPolicy, force: bool = False) -> OperationReport:
        """Create or reconcile the service account, pool, provider and binding.

        Nothing is mutated when detection says the setup cannot proceed,
        unless *force* is set. Absent resources are created; configuration
        mismatches that can be resolved automatically are updated in place;
        anything else is left untouched and reported as skipped. A skipped
        resource whose live configuration still differs is listed in
        ``report.unresolved`` and the report is not successful.

        Raises:
            InvalidSpecError: If the trust condition is malformed.
            ExpressionInvalidError: If the compiled condition fails validation.
        """
        compiled = request.compile()
        descriptors = request.descriptors(compiled)
        detection = self.detector.detect(descriptors, policy)
        report = OperationReport(operation="setup", condition=compiled, detection=detection)

        if not detection.can_proceed and not force:
            report.blocked = True
            report.success = False
            logger.warning(
                f"Setup blocked: {detection.summary}",
                operation="setup",
                resource=request.repository,
            )
            return report

        for descriptor in descriptors:
            if self._apply(descriptor, detection, report).status == StepStatus.FAILED:
                return report
        self._bind(request.binding(compiled), report, "setup")
        return report

    def cleanup(
        self,
        request: WIFRequest,
        scope: CleanupScope,
        ignore_errors: bool = False,
    ) -> OperationReport:
        """Remove the resources selected by *scope*.

        Order: bindings, provider, pool, service account. Stops at the first
        failure unless *ignore_errors* is set.
        """
        report = OperationReport(operation="cleanup")
        sa, pool, provider = request.descriptors()

        if scope.bindings:
            step = self._bind(request.binding(), report, "cleanup")
            if step.status == StepStatus.FAILED and not ignore_errors:
                return report
        for selected, descriptor in ((scope.provider, provider), (scope.pool, pool), (scope.service_account, sa)):
            if not selected:
                continue
            step = self._delete(descriptor, report)
            if step.status == StepStatus.FAILED and not ignore_errors:
                return report
        return report

    def rollback(
        self,
        current: WIFRequest,
        target: WIFRequest,
        policy: DetectionPolicy,
        ignore_errors: bool = False,
    ) -> OperationReport:
        """Tear down *current* completely, then force-apply *target*."""
        cleanup = self.cleanup(current, CleanupScope.all(), ignore_errors=ignore_errors)
        report = OperationReport(operation="rollback", steps=list(cleanup.steps), success=cleanup.success)
        if not cleanup.success and not ignore_errors:
            return report

        setup = self.setup(target, policy, force=True)
        report.condition = setup.condition
        report.detection = setup.detection
        for step in setup.steps:
            report.record(step)
        for name in setup.unresolved:
            report.mark_unresolved(name)
        return report


__all__ = [
    "WORKLOAD_IDENTITY_USER_ROLE",
    "WIFRequest",
    "CleanupScope",
    "StepStatus",
    "OperationStep",
    "OperationReport",
    "Orchestrator",
]
