"""Resolution suggestions for a detected conflict."""

from __future__ import annotations

from wif.base.models import (
    ConflictType,
    FieldDifference,
    Resolution,
    ResolutionSuggestion,
    ResourceDescriptor,
    ResourceKind,
    Severity,
    max_severity,
)

_GCLOUD_GROUP = {
    ResourceKind.SERVICE_ACCOUNT: "service-accounts",
    ResourceKind.WORKLOAD_IDENTITY_POOL: "workload-identity-pools",
    ResourceKind.WORKLOAD_IDENTITY_PROVIDER: "workload-identity-pools providers",
}

_ID_FLAG = {
    ResourceKind.SERVICE_ACCOUNT: "--name",
    ResourceKind.WORKLOAD_IDENTITY_POOL: "--pool-id",
    ResourceKind.WORKLOAD_IDENTITY_PROVIDER: "--provider-id",
}

_LABEL = {
    ResourceKind.SERVICE_ACCOUNT: "service account",
    ResourceKind.WORKLOAD_IDENTITY_POOL: "workload identity pool",
    ResourceKind.WORKLOAD_IDENTITY_PROVIDER: "workload identity provider",
}


def _gcloud(verb: str, descriptor: ResourceDescriptor) -> str:
    cmd = f"gcloud iam {_GCLOUD_GROUP[descriptor.kind]} {verb} {descriptor.name}"
    if descriptor.kind != ResourceKind.SERVICE_ACCOUNT:
        cmd += " --location=global"
    if descriptor.kind == ResourceKind.WORKLOAD_IDENTITY_PROVIDER and descriptor.parent:
        cmd += f" --workload-identity-pool={descriptor.parent}"
    return cmd


def _leave_as_is(descriptor: ResourceDescriptor) -> ResolutionSuggestion:
    label = _LABEL[descriptor.kind]
    return ResolutionSuggestion(
        title=f"Use existing {label}",
        description=f"Continue with the existing {label} without changes",
        resolution=Resolution.SKIP,
    )


def _update(descriptor: ResourceDescriptor, differences: list[FieldDifference]) -> ResolutionSuggestion:
    label = _LABEL[descriptor.kind]
    fields = ", ".join(d.field for d in differences) or "configuration"
    return ResolutionSuggestion(
        title=f"Update existing {label}",
        description=f"Update {fields} of the existing {label} in place",
        resolution=Resolution.UPDATE,
        automated=True,
        commands=[_gcloud("update", descriptor)],
    )


def _rename(descriptor: ResourceDescriptor) -> ResolutionSuggestion:
    label = _LABEL[descriptor.kind]
    return ResolutionSuggestion(
        title=f"Create new {label}",
        description=f"Create a new {label} with a different id",
        resolution=Resolution.RENAME,
        commands=[f"Use {_ID_FLAG[descriptor.kind]} {descriptor.name}-new or similar"],
    )


def _recreate(descriptor: ResourceDescriptor, *, terminal: bool) -> ResolutionSuggestion:
    label = _LABEL[descriptor.kind]
    if terminal and descriptor.kind != ResourceKind.SERVICE_ACCOUNT:
        # Soft-deleted pools and providers are restorable for 30 days.
        commands = [_gcloud("undelete", descriptor)]
        description = f"The {label} is being deleted; restore it or recreate it under a new id"
    else:
        commands = [_gcloud("delete", descriptor), _gcloud("create", descriptor)]
        description = f"Delete the existing {label} and create it again with the desired configuration"
    return ResolutionSuggestion(
        title=f"Recreate {label}",
        description=description,
        resolution=Resolution.RECREATE,
        commands=commands,
    )


def _create(descriptor: ResourceDescriptor) -> ResolutionSuggestion:
    label = _LABEL[descriptor.kind]
    return ResolutionSuggestion(
        title=f"Create {label}",
        description=f"The {label} does not exist yet; create it",
        resolution=Resolution.CREATE,
        automated=True,
        commands=[_gcloud("create", descriptor)],
    )


def _pick(suggestions: list[ResolutionSuggestion], *, leave_ok: bool, can_auto_resolve: bool) -> int:
    """Index of the suggestion to recommend."""
    def rank(i: int) -> tuple[int, int]:
        s = suggestions[i]
        # Ties go to the manual option.
        return (s.resolution.destructiveness, int(s.automated))

    indices = range(len(suggestions))
    if leave_ok:
        for i in indices:
            if suggestions[i].resolution == Resolution.SKIP:
                return i
    if can_auto_resolve:
        automated = [i for i in indices if suggestions[i].automated]
        if automated:
            return min(automated, key=rank)
    remaining = [i for i in indices if suggestions[i].resolution != Resolution.SKIP]
    return min(remaining or list(indices), key=rank)


def build_suggestions(
    conflict_type: ConflictType,
    descriptor: ResourceDescriptor,
    differences: list[FieldDifference],
    can_auto_resolve: bool,
) -> list[ResolutionSuggestion]:
    """Return the suggestions for a conflict, exactly one marked recommended."""
    if conflict_type == ConflictType.STATE_INVALID:
        suggestions = [_recreate(descriptor, terminal=True)]
    elif conflict_type == ConflictType.DEPENDENCY_MISSING:
        suggestions = [_create(descriptor)]
    elif conflict_type == ConflictType.ALREADY_EXISTS:
        suggestions = [_leave_as_is(descriptor), _update(descriptor, differences), _rename(descriptor)]
    else:
        suggestions = [
            _leave_as_is(descriptor),
            _update(descriptor, differences),
            _recreate(descriptor, terminal=False),
        ]

    leave_ok = max_severity(d.severity for d in differences).rank <= Severity.LOW.rank
    chosen = _pick(suggestions, leave_ok=leave_ok, can_auto_resolve=can_auto_resolve)
    return [s.model_copy(update={"recommended": i == chosen}) for i, s in enumerate(suggestions)]


__all__ = ["build_suggestions"]
