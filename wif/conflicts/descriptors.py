"""Builders for the descriptors of the three managed resource kinds."""

from __future__ import annotations

from typing import Any, Iterable

from wif.base.models import ResourceDescriptor, ResourceKind
from wif.conditions.claims import DEFAULT_AUDIENCES, GITHUB_ISSUER_URI


def service_account_descriptor(
    account_id: str,
    *,
    display_name: str | None = None,
    description: str | None = None,
    roles: Iterable[str] | None = None,
    existing: dict[str, Any] | None = None,
) -> ResourceDescriptor:
    """Describe a service account.

    Args:
        account_id: The account id (the part of the email before ``@``) or
            the full email.
        roles: Project roles the account should hold; omitted roles are not
            compared.
    """
    desired: dict[str, Any] = {"disabled": False}
    if display_name is not None:
        desired["display_name"] = display_name
    if description is not None:
        desired["description"] = description
    if roles is not None:
        desired["roles"] = sorted(set(roles))
    return ResourceDescriptor(
        kind=ResourceKind.SERVICE_ACCOUNT, name=account_id, desired=desired, existing=existing
    )


def pool_descriptor(
    pool_id: str,
    *,
    display_name: str | None = None,
    description: str | None = None,
    existing: dict[str, Any] | None = None,
) -> ResourceDescriptor:
    desired: dict[str, Any] = {"state": "ACTIVE", "disabled": False}
    if display_name is not None:
        desired["display_name"] = display_name
    if description is not None:
        desired["description"] = description
    return ResourceDescriptor(
        kind=ResourceKind.WORKLOAD_IDENTITY_POOL, name=pool_id, desired=desired, existing=existing
    )


def provider_descriptor(
    pool_id: str,
    provider_id: str,
    *,
    repository: str,
    attribute_condition: str | None = None,
    attribute_mapping: dict[str, str] | None = None,
    allowed_branches: Iterable[str] | None = None,
    allowed_tags: Iterable[str] | None = None,
    issuer_uri: str = GITHUB_ISSUER_URI,
    allowed_audiences: Iterable[str] = DEFAULT_AUDIENCES,
    display_name: str | None = None,
    description: str | None = None,
    existing: dict[str, Any] | None = None,
) -> ResourceDescriptor:
    """Describe an OIDC provider inside *pool_id*.

    *repository*, *allowed_branches* and *allowed_tags* are compared against
    the restrictions recovered from the live attribute condition.
    """
    desired: dict[str, Any] = {
        "state": "ACTIVE",
        "disabled": False,
        "repository": repository,
        "issuer_uri": issuer_uri,
        "allowed_audiences": sorted(set(allowed_audiences)),
    }
    if attribute_condition is not None:
        desired["attribute_condition"] = attribute_condition
    if attribute_mapping is not None:
        desired["attribute_mapping"] = dict(attribute_mapping)
    if allowed_branches is not None:
        desired["allowed_branches"] = sorted(set(allowed_branches))
    if allowed_tags is not None:
        desired["allowed_tags"] = sorted(set(allowed_tags))
    if display_name is not None:
        desired["display_name"] = display_name
    if description is not None:
        desired["description"] = description
    return ResourceDescriptor(
        kind=ResourceKind.WORKLOAD_IDENTITY_PROVIDER,
        name=provider_id,
        parent=pool_id,
        desired=desired,
        existing=existing,
    )


__all__ = ["service_account_descriptor", "pool_descriptor", "provider_descriptor"]
