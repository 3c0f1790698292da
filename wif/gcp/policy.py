"""Helpers for reading and editing ``google.iam.v1`` policy messages."""

from __future__ import annotations

import re
from typing import Any

from google.iam.v1 import policy_pb2
from google.type import expr_pb2

from wif.base.models import BindingKey, CompiledCondition, IAMBinding

# Conditional bindings require policy version 3.
CONDITIONAL_POLICY_VERSION = 3

_MEMBER_RE = re.compile(
    r"^principalSet://iam\.googleapis\.com/projects/[^/]+/locations/[^/]+/"
    r"workloadIdentityPools/(?P<pool>[^/]+)/attribute\.repository/(?P<repo>.+)$"
)
_PROVIDER_TAG = "provider="


def roles_for_member(policy: Any, member: str) -> list[str]:
    """Roles in *policy* granted to *member*, sorted."""
    return sorted({b.role for b in policy.bindings if member in b.members})


def grant_role(policy: Any, role: str, member: str) -> bool:
    """Add *member* to the unconditional binding for *role*. Returns True if changed."""
    for binding in policy.bindings:
        if binding.role == role and not binding.condition.expression:
            if member in binding.members:
                return False
            binding.members.append(member)
            return True
    new_binding = policy_pb2.Binding()
    new_binding.role = role
    new_binding.members.append(member)
    policy.bindings.append(new_binding)
    return True


def revoke_role(policy: Any, role: str, member: str) -> bool:
    """Remove *member* from every binding for *role*. Returns True if changed."""
    changed = False
    for binding in list(policy.bindings):
        if binding.role == role and member in binding.members:
            binding.members.remove(member)
            changed = True
            if not binding.members:
                policy.bindings.remove(binding)
    return changed


def condition_provider(binding: Any) -> str:
    """Provider id recorded in the description of a binding condition."""
    description = binding.condition.description or ""
    if description.startswith(_PROVIDER_TAG):
        return description[len(_PROVIDER_TAG):]
    return ""


def federated_bindings(policy: Any) -> list[IAMBinding]:
    """Every binding in *policy* whose member is a repository principal set."""
    result = []
    for binding in policy.bindings:
        condition = None
        if binding.condition.expression:
            condition = CompiledCondition(
                title=binding.condition.title, expression=binding.condition.expression
            )
        for member in binding.members:
            match = _MEMBER_RE.match(member)
            if not match:
                continue
            result.append(IAMBinding(
                role=binding.role,
                member=member,
                repository=match.group("repo"),
                pool_id=match.group("pool"),
                provider_id=condition_provider(binding),
                condition=condition,
            ))
    return result


def _matches(binding: Any, member: str, key: BindingKey) -> bool:
    # Unconditional bindings carry no provider and match any provider id.
    return (
        binding.role == key.role
        and member in binding.members
        and condition_provider(binding) in ("", key.provider_id)
    )


def add_binding(policy: Any, binding: IAMBinding) -> None:
    """Append *binding* as its own conditional policy binding."""
    new_binding = policy_pb2.Binding()
    new_binding.role = binding.role
    new_binding.members.append(binding.member)
    if binding.condition is not None:
        new_binding.condition.CopyFrom(expr_pb2.Expr(
            title=binding.condition.title,
            expression=binding.condition.expression,
            description=f"{_PROVIDER_TAG}{binding.provider_id}",
        ))
    policy.bindings.append(new_binding)
    policy.version = CONDITIONAL_POLICY_VERSION


def drop_binding(policy: Any, binding: IAMBinding) -> bool:
    """Remove the member of *binding* from every policy binding with its key."""
    changed = False
    for entry in list(policy.bindings):
        if not _matches(entry, binding.member, binding.key):
            continue
        entry.members.remove(binding.member)
        changed = True
        if not entry.members:
            policy.bindings.remove(entry)
    return changed


__all__ = [
    "CONDITIONAL_POLICY_VERSION",
    "roles_for_member",
    "grant_role",
    "revoke_role",
    "condition_provider",
    "federated_bindings",
    "add_binding",
    "drop_binding",
]
