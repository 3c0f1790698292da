"""
Resource conflict detector.

Diffs the desired configuration of each descriptor against its live state
and aggregates the per-resource conflicts into a ranked report::

    detector = ConflictDetector(fetcher)
    result = detector.detect(descriptors, DetectionPolicy(create_new=True))
    if not result.can_proceed:
        ...

Detection is read-only and deterministic: the same inputs and live state
always produce an equal result.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, NamedTuple, Sequence

from wif.base.async_support import async_wrap
from wif.base.exceptions import StateFetchFailedError
from wif.base.fetcher import StateFetcherBlueprint
from wif.base.logger import get_logger
from wif.base.models import (
    ConflictDetectionResult,
    ConflictType,
    DetectionFailure,
    DetectionPolicy,
    FieldDifference,
    RecommendedAction,
    ResourceConflict,
    ResourceDescriptor,
    Severity,
    max_severity,
)
from wif.conflicts.classification import diff_fields, is_terminal_state
from wif.conflicts.suggestions import build_suggestions

logger = get_logger("detector")

_ACTION_ORDER = [
    RecommendedAction.PROCEED,
    RecommendedAction.PROCEED_WITH_CAUTION,
    RecommendedAction.RESOLVE_THEN_RETRY,
    RecommendedAction.MANUAL_INTERVENTION_REQUIRED,
]


class _FetchFailed(NamedTuple):
    """Marks a failed fetch; ``None`` already means absent."""

    error: str


def _conflict(
    descriptor: ResourceDescriptor,
    conflict_type: ConflictType,
    severity: Severity,
    differences: list[FieldDifference],
) -> ResourceConflict:
    can_auto_resolve = (
        conflict_type != ConflictType.STATE_INVALID
        and all(d.severity.rank <= Severity.MEDIUM.rank for d in differences)
    )
    return ResourceConflict(
        resource_type=descriptor.kind,
        resource_name=descriptor.resource_id,
        conflict_type=conflict_type,
        severity=severity,
        can_auto_resolve=can_auto_resolve,
        differences=differences,
        suggestions=build_suggestions(conflict_type, descriptor, differences, can_auto_resolve),
    )


def analyze(
    descriptor: ResourceDescriptor,
    existing: dict[str, Any] | None,
    policy: DetectionPolicy,
) -> ResourceConflict | None:
    """Classify one descriptor against its live state.

    Returns:
        The conflict, or ``None`` when the resource matches (or is absent
        and about to be created).
    """
    if existing is None:
        if policy.create_new:
            return None
        return _conflict(descriptor, ConflictType.DEPENDENCY_MISSING, Severity.HIGH, [])

    if is_terminal_state(existing):
        state = FieldDifference(
            field="state",
            existing_value=existing.get("state"),
            proposed_value=descriptor.desired.get("state", "ACTIVE"),
            severity=Severity.CRITICAL,
            description=f"Resource is in terminal state {existing.get('state')!r}",
        )
        others = [d for d in diff_fields(descriptor.kind, descriptor.desired, existing) if d.field != "state"]
        return _conflict(descriptor, ConflictType.STATE_INVALID, Severity.CRITICAL, [state, *others])

    differences = diff_fields(descriptor.kind, descriptor.desired, existing)

    if policy.create_new and not policy.update_in_place:
        return _conflict(descriptor, ConflictType.ALREADY_EXISTS, Severity.CRITICAL, differences)

    if not differences:
        return None
    return _conflict(
        descriptor,
        ConflictType.CONFIG_MISMATCH,
        max_severity(d.severity for d in differences),
        differences,
    )


def _summary(conflicts: list[ResourceConflict], failures: list[DetectionFailure]) -> str:
    if not conflicts:
        text = "No resource conflicts detected"
    else:
        counts = []
        for severity in (Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW):
            n = sum(1 for c in conflicts if c.severity == severity)
            if n:
                counts.append(f"{n} {severity.value}")
        text = f"Found {len(conflicts)} resource conflict(s): {', '.join(counts)}"
    if failures:
        text += f"; state of {len(failures)} resource(s) could not be read"
    return text


def aggregate(
    conflicts: Iterable[ResourceConflict],
    policy: DetectionPolicy,
    failures: Sequence[DetectionFailure] = (),
) -> ConflictDetectionResult:
    """Fold per-resource conflicts into a :class:`ConflictDetectionResult`.

    ``severity_threshold`` only trims the reported conflicts and counts;
    ``can_proceed`` and the recommended action always weigh every conflict.
    """
    conflicts = list(conflicts)
    threshold = policy.severity_threshold.rank
    kept = [c for c in conflicts if c.severity.rank >= threshold]
    failures = list(failures)

    def count(severity: Severity, among: list[ResourceConflict]) -> int:
        return sum(1 for c in among if c.severity == severity)

    any_critical = count(Severity.CRITICAL, conflicts) > 0
    any_high = count(Severity.HIGH, conflicts) > 0
    any_medium = count(Severity.MEDIUM, conflicts) > 0
    degraded = bool(failures)
    can_proceed = not any_critical and (not any_high or policy.create_new) and not degraded

    critical, high = count(Severity.CRITICAL, kept), count(Severity.HIGH, kept)
    medium, low = count(Severity.MEDIUM, kept), count(Severity.LOW, kept)

    if any_critical:
        action = RecommendedAction.MANUAL_INTERVENTION_REQUIRED
    elif any_high:
        action = RecommendedAction.PROCEED_WITH_CAUTION if can_proceed else RecommendedAction.RESOLVE_THEN_RETRY
    elif any_medium:
        action = RecommendedAction.PROCEED_WITH_CAUTION
    else:
        action = RecommendedAction.PROCEED
    # Unknown live state caps the recommendation.
    if degraded and _ACTION_ORDER.index(action) < _ACTION_ORDER.index(RecommendedAction.RESOLVE_THEN_RETRY):
        action = RecommendedAction.RESOLVE_THEN_RETRY

    return ConflictDetectionResult(
        has_conflicts=bool(kept),
        conflicts=kept,
        total_conflicts=len(kept),
        critical_count=critical,
        high_count=high,
        medium_count=medium,
        low_count=low,
        can_proceed=can_proceed,
        summary=_summary(kept, failures),
        recommended_action=action,
        failures=failures,
        degraded=degraded,
    )


class ConflictDetector:
    """Detect conflicts between desired and live resource configuration.

    Args:
        fetcher: Live state source. Without one, each descriptor's
            ``existing`` snapshot is taken as the live state.
    """

    def __init__(self, fetcher: StateFetcherBlueprint | None = None) -> None:
        self.fetcher = fetcher

    def _fetch(self, descriptor: ResourceDescriptor) -> Any:
        if self.fetcher is None:
            return descriptor.existing
        try:
            return self.fetcher.fetch_state(descriptor)
        except StateFetchFailedError as e:
            logger.log_operation(
                logging.WARNING,
                f"Could not read live state: {e}",
                operation="fetch_state",
                resource=descriptor.resource_id,
            )
            return _FetchFailed(str(e))

    def _collect(
        self,
        descriptors: Sequence[ResourceDescriptor],
        states: Sequence[Any],
        policy: DetectionPolicy,
    ) -> ConflictDetectionResult:
        conflicts: list[ResourceConflict] = []
        failures: list[DetectionFailure] = []
        for descriptor, state in zip(descriptors, states):
            if isinstance(state, _FetchFailed):
                failures.append(DetectionFailure(
                    resource_type=descriptor.kind,
                    resource_name=descriptor.resource_id,
                    error=state.error,
                ))
                continue
            conflict = analyze(descriptor, state, policy)
            if conflict is not None:
                conflicts.append(conflict)
        result = aggregate(conflicts, policy, failures)
        logger.info(result.summary, operation="detect")
        return result

    def detect(
        self,
        descriptors: Sequence[ResourceDescriptor],
        policy: DetectionPolicy | None = None,
    ) -> ConflictDetectionResult:
        """Detect conflicts for *descriptors* under *policy*.

        A descriptor whose live state cannot be read is recorded in
        ``result.failures``; the remaining descriptors are still analyzed.
        """
        policy = policy or DetectionPolicy()
        descriptors = list(descriptors)
        states = [self._fetch(d) for d in descriptors]
        return self._collect(descriptors, states, policy)

    async def adetect(
        self,
        descriptors: Sequence[ResourceDescriptor],
        policy: DetectionPolicy | None = None,
    ) -> ConflictDetectionResult:
        """Like :meth:`detect`, fetching live state concurrently in worker threads."""
        policy = policy or DetectionPolicy()
        descriptors = list(descriptors)
        fetch = async_wrap(self._fetch)
        states = await asyncio.gather(*(fetch(d) for d in descriptors))
        return self._collect(descriptors, states, policy)


__all__ = ["ConflictDetector", "analyze", "aggregate"]
