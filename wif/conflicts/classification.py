"""
Closed ``(kind, field) -> severity`` table for configuration differences.

Only fields listed here are ever compared; a desired field outside the
table is ignored rather than guessed at.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping

from wif.base.models import FieldDifference, ResourceKind, Severity
from wif.conditions.compiler import BRANCH_REF_PREFIX, TAG_REF_PREFIX
from wif.conditions.introspect import extract_ref_patterns, extract_repositories

_SA = ResourceKind.SERVICE_ACCOUNT
_POOL = ResourceKind.WORKLOAD_IDENTITY_POOL
_PROVIDER = ResourceKind.WORKLOAD_IDENTITY_PROVIDER

SEVERITY_TABLE: Mapping[tuple[ResourceKind, str], Severity] = MappingProxyType({
    (_SA, "display_name"): Severity.LOW,
    (_SA, "description"): Severity.LOW,
    (_SA, "roles"): Severity.MEDIUM,
    (_SA, "disabled"): Severity.HIGH,

    (_POOL, "state"): Severity.CRITICAL,
    (_POOL, "display_name"): Severity.LOW,
    (_POOL, "description"): Severity.LOW,
    (_POOL, "disabled"): Severity.HIGH,

    (_PROVIDER, "state"): Severity.CRITICAL,
    (_PROVIDER, "repository"): Severity.CRITICAL,
    (_PROVIDER, "issuer_uri"): Severity.CRITICAL,
    (_PROVIDER, "attribute_condition"): Severity.HIGH,
    (_PROVIDER, "disabled"): Severity.HIGH,
    (_PROVIDER, "allowed_branches"): Severity.MEDIUM,
    (_PROVIDER, "allowed_tags"): Severity.MEDIUM,
    (_PROVIDER, "allowed_audiences"): Severity.MEDIUM,
    (_PROVIDER, "attribute_mapping"): Severity.MEDIUM,
    (_PROVIDER, "display_name"): Severity.LOW,
    (_PROVIDER, "description"): Severity.LOW,
})

# Compared as sets: order and duplicates never make a difference.
SET_FIELDS = frozenset({"roles", "allowed_audiences", "allowed_branches", "allowed_tags"})

TERMINAL_STATES = frozenset({"DELETED", "DELETING"})

_BOOLEAN_FIELDS = frozenset({"disabled"})


def classify(kind: ResourceKind, field: str) -> Severity | None:
    """Severity of a difference on *field* of *kind*, or None if untracked."""
    return SEVERITY_TABLE.get((kind, field))


def tracked_fields(kind: ResourceKind) -> list[str]:
    """Fields compared for *kind*, in table order."""
    return [field for (k, field) in SEVERITY_TABLE if k == kind]


def is_terminal_state(existing: Mapping[str, Any]) -> bool:
    return str(existing.get("state") or "").upper() in TERMINAL_STATES


def _normalize(field: str, value: Any) -> Any:
    if field in SET_FIELDS:
        return sorted(set(value or []))
    if field in _BOOLEAN_FIELDS:
        return bool(value)
    if value == "":
        return None
    return value


def live_view(kind: ResourceKind, existing: Mapping[str, Any], desired: Mapping[str, Any]) -> dict[str, Any]:
    """Return *existing* with provider trust fields recovered from its condition.

    A provider snapshot usually carries only the rendered
    ``attribute_condition``; the repository and ref allow-lists are read
    back out of it so they can be compared field by field.
    """
    view = dict(existing)
    if kind != _PROVIDER:
        return view
    condition = view.get("attribute_condition")
    if not condition:
        return view
    if "repository" not in view:
        repos = extract_repositories(condition)
        wanted = desired.get("repository")
        if wanted in repos:
            view["repository"] = wanted
        elif repos:
            view["repository"] = repos[0]
    if "allowed_branches" not in view:
        view["allowed_branches"] = extract_ref_patterns(condition, BRANCH_REF_PREFIX)
    if "allowed_tags" not in view:
        view["allowed_tags"] = extract_ref_patterns(condition, TAG_REF_PREFIX)
    return view


def _describe(field: str, existing: Any, proposed: Any) -> str:
    label = field.replace("_", " ")
    if field in SET_FIELDS:
        missing = sorted(set(proposed) - set(existing))
        extra = sorted(set(existing) - set(proposed))
        parts = []
        if missing:
            parts.append(f"missing {len(missing)} ({', '.join(map(str, missing))})")
        if extra:
            parts.append(f"{len(extra)} extra ({', '.join(map(str, extra))})")
        return f"{label.capitalize()} differ: {'; '.join(parts)}"
    if field == "state":
        return f"Resource is in state {existing!r}, expected {proposed!r}"
    return f"{label.capitalize()} will change from {existing!r} to {proposed!r}"


def diff_fields(
    kind: ResourceKind,
    desired: Mapping[str, Any],
    existing: Mapping[str, Any],
) -> list[FieldDifference]:
    """Compare *desired* against *existing* over the tracked fields of *kind*.

    Only fields present in *desired* are compared. The ``state`` difference,
    when there is one, always comes first.
    """
    view = live_view(kind, existing, desired)
    differences: list[FieldDifference] = []
    for field in tracked_fields(kind):
        if field not in desired:
            continue
        proposed = _normalize(field, desired[field])
        current = _normalize(field, view.get(field))
        if proposed == current:
            continue
        differences.append(FieldDifference(
            field=field,
            existing_value=current,
            proposed_value=proposed,
            severity=SEVERITY_TABLE[(kind, field)],
            description=_describe(field, current, proposed),
        ))
    differences.sort(key=lambda d: d.field != "state")
    return differences


__all__ = [
    "SEVERITY_TABLE",
    "SET_FIELDS",
    "TERMINAL_STATES",
    "classify",
    "tracked_fields",
    "is_terminal_state",
    "live_view",
    "diff_fields",
]
