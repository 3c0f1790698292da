"""
Trust condition compiler.

Turns a :class:`~wif.base.models.TrustConditionSpec` into the conditional-access
expression that gates the federated credential, plus a short title naming
the active restrictions. Compilation is pure: no network, no clock, and
equal specs always compile to byte-identical expressions.
"""

from __future__ import annotations

import re
from typing import Iterable

from wif.base.exceptions import InvalidSpecError
from wif.base.models import CompiledCondition, TrustConditionSpec
from wif.conditions.expr import Eq, Has, Node, StartsWith, all_of, any_of

BRANCH_REF_PREFIX = "refs/heads/"
TAG_REF_PREFIX = "refs/tags/"
PULL_REQUEST_REF_PREFIX = "refs/pull/"

_OWNER_RE = re.compile(r"^[a-zA-Z0-9]([a-zA-Z0-9-])*[a-zA-Z0-9]$|^[a-zA-Z0-9]$")
_REPO_NAME_RE = re.compile(r"^[a-zA-Z0-9._-]+$")
_RESERVED_REPO_NAMES = frozenset({".", "..", ".git", ".github"})
_MAX_OWNER_LEN = 39
_MAX_REPO_NAME_LEN = 100
_FORBIDDEN_PATTERN_CHARS = frozenset("'\"\\?[]")


def validate_repository(repository: str) -> str:
    """Check that *repository* is a GitHub ``owner/name``.

    Returns:
        The repository, unchanged.

    Raises:
        InvalidSpecError: If the repository is empty or malformed.
    """
    if not repository:
        raise InvalidSpecError("repository is required (format: owner/name)")
    parts = repository.split("/")
    if len(parts) != 2:
        raise InvalidSpecError(
            f"repository '{repository}' must be in format 'owner/name' with exactly one slash"
        )
    owner, name = parts
    if len(owner) > _MAX_OWNER_LEN or not _OWNER_RE.match(owner):
        raise InvalidSpecError(
            f"invalid GitHub owner '{owner}': use up to {_MAX_OWNER_LEN} letters, "
            "digits and hyphens, starting and ending with a letter or digit"
        )
    if len(name) > _MAX_REPO_NAME_LEN or not _REPO_NAME_RE.match(name):
        raise InvalidSpecError(
            f"invalid GitHub repository name '{name}': use letters, digits, dots, "
            "hyphens and underscores"
        )
    if name in _RESERVED_REPO_NAMES:
        raise InvalidSpecError(f"repository name '{name}' is reserved")
    return repository


def canonical_patterns(patterns: Iterable[str], ref_prefix: str, label: str) -> list[str]:
    """Normalize branch or tag patterns: strip *ref_prefix*, de-duplicate, sort.

    Raises:
        InvalidSpecError: On an empty pattern, a forbidden character, or a
            ``*`` anywhere but the last position.
    """
    canonical: set[str] = set()
    for raw in patterns:
        pattern = raw[len(ref_prefix):] if raw.startswith(ref_prefix) else raw
        if not pattern:
            raise InvalidSpecError(f"empty {label} pattern")
        if any(c in _FORBIDDEN_PATTERN_CHARS or c.isspace() for c in pattern):
            raise InvalidSpecError(
                f"{label} pattern '{raw}' contains an unsupported character; "
                "'*' is the only wildcard"
            )
        if "*" in pattern[:-1]:
            raise InvalidSpecError(
                f"{label} pattern '{raw}': '*' is only supported as the last character"
            )
        canonical.add(pattern)
    return sorted(canonical)


def _ref_term(pattern: str, ref_prefix: str) -> Node:
    if pattern.endswith("*"):
        return StartsWith("ref", ref_prefix + pattern[:-1])
    return Eq("ref", ref_prefix + pattern)


def _repositories(spec: TrustConditionSpec) -> list[str]:
    validate_repository(spec.repository)
    if not spec.trusted_repos:
        return [spec.repository]
    trusted = {validate_repository(r) for r in spec.trusted_repos}
    trusted.add(spec.repository)
    return sorted(trusted)


def build_condition(spec: TrustConditionSpec) -> tuple[Node, list[str]]:
    """Build the expression tree for *spec*.

    Returns:
        A ``(tree, labels)`` pair; *labels* name the active restrictions in
        the order they appear in the expression.

    Raises:
        InvalidSpecError: If the spec is malformed.
    """
    repos = _repositories(spec)
    branches = canonical_patterns(spec.allowed_branches, BRANCH_REF_PREFIX, "branch")
    tags = canonical_patterns(spec.allowed_tags, TAG_REF_PREFIX, "tag")

    clauses: list[Node] = [any_of(*(Eq("repository", r) for r in repos))]
    labels = ["repos" if len(repos) > 1 else "repo"]

    # Branch and tag alternatives share one group: a ref is never both.
    ref_terms: list[Node] = [_ref_term(b, BRANCH_REF_PREFIX) for b in branches]
    ref_terms += [_ref_term(t, TAG_REF_PREFIX) for t in tags]
    if ref_terms:
        if branches:
            labels.append("branch")
        if tags:
            labels.append("tag")
        # PR workflows run under refs/pull/<n>/merge, outside the branch/tag allow-list.
        if spec.allow_pull_requests:
            ref_terms.append(StartsWith("ref", PULL_REQUEST_REF_PREFIX))
            labels.append("pr")
        clauses.append(any_of(*ref_terms))

    if spec.require_actor:
        clauses.append(Has("actor"))
        labels.append("actor")

    if spec.validate_workflow_path:
        clauses.append(any_of(*(StartsWith("job_workflow_ref", f"{r}/") for r in repos)))
        labels.append("path")

    # block_forked_repos: fork tokens carry a different repository claim, so the
    # repository equality above already rejects them.

    return all_of(*clauses), labels


def compile_condition(spec: TrustConditionSpec, claim_prefix: str = "") -> CompiledCondition:
    """Compile *spec* into a :class:`CompiledCondition`.

    Args:
        spec: The trust policy.
        claim_prefix: Qualifier prepended to every claim name, e.g.
            ``"assertion."`` for a provider attribute condition.

    Raises:
        InvalidSpecError: If the spec is malformed.
    """
    tree, labels = build_condition(spec)
    return CompiledCondition(title="+".join(labels), expression=tree.render(claim_prefix))


__all__ = [
    "BRANCH_REF_PREFIX",
    "TAG_REF_PREFIX",
    "PULL_REQUEST_REF_PREFIX",
    "validate_repository",
    "canonical_patterns",
    "build_condition",
    "compile_condition",
]
