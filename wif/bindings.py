"""
Binding lifecycle manager.

Creates, lists and removes the conditional IAM bindings that let a
federated GitHub principal impersonate a service account. Creation is
idempotent with respect to the condition: re-applying the same binding is a
no-op and a changed condition replaces the old binding instead of adding a
second one.
"""

from __future__ import annotations

import logging
from enum import Enum

from pydantic import Field

from wif.base.async_support import AsyncMixin
from wif.base.bindings import BindingTransportBlueprint
from wif.base.exceptions import BindingOperationFailedError
from wif.base.logger import get_logger
from wif.base.models import IAMBinding, WIFModel

logger = get_logger("bindings")

PRINCIPAL_SET_TEMPLATE = (
    "principalSet://iam.googleapis.com/projects/{project_number}/locations/global/"
    "workloadIdentityPools/{pool_id}/attribute.repository/{repository}"
)


def principal_set_member(project_number: str, pool_id: str, repository: str) -> str:
    """Return the federated principal for every token of *repository* in *pool_id*."""
    return PRINCIPAL_SET_TEMPLATE.format(
        project_number=project_number, pool_id=pool_id, repository=repository
    )


class BindingChange(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    REMOVED = "removed"
    ABSENT = "absent"


class BindingListing(WIFModel):
    """Result of :meth:`BindingManager.list`.

    On transport failure ``bindings`` is empty and ``error`` holds the
    reason; callers must not read an empty list as "no bindings" without
    checking ``error``.
    """

    bindings: list[IAMBinding] = Field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _same_key(live: IAMBinding, wanted: IAMBinding) -> bool:
    # An unconditional binding carries no provider and belongs to any provider.
    return (
        live.role == wanted.role
        and live.pool_id == wanted.pool_id
        and live.repository == wanted.repository
        and live.provider_id in ("", wanted.provider_id)
    )


def _sort_key(binding: IAMBinding) -> tuple[str, str, str, str]:
    return (binding.role, binding.pool_id, binding.provider_id, binding.repository)


class BindingManager(AsyncMixin):
    """Idempotent create / list / remove over a binding transport."""

    def __init__(self, transport: BindingTransportBlueprint) -> None:
        self.transport = transport

    def _matching(self, binding: IAMBinding) -> list[IAMBinding]:
        return [b for b in self.transport.list_bindings(binding.member) if _same_key(b, binding)]

    def create(self, binding: IAMBinding) -> BindingChange:
        """Ensure *binding* is present with exactly its condition.

        Returns:
            ``CREATED`` when no binding had the key, ``UNCHANGED`` when one
            with an identical condition was already there, ``UPDATED`` when
            the condition differed and was replaced.

        Raises:
            BindingOperationFailedError: Propagated from the transport.
        """
        current = self._matching(binding)
        if not current:
            self.transport.create_binding(binding)
            change = BindingChange.CREATED
        elif len(current) == 1 and current[0].condition == binding.condition:
            change = BindingChange.UNCHANGED
        else:
            # Collapse duplicates for the key down to one binding.
            # A transport may drop every entry for the key on the first
            # removal, so the survivor is always written back.
            for stale in current[1:]:
                self.transport.remove_binding(stale)
            self.transport.replace_binding(current[0], binding)
            if current[0].condition == binding.condition:
                change = BindingChange.UNCHANGED
            else:
                change = BindingChange.UPDATED
        logger.log_operation(
            logging.INFO,
            f"Binding {change.value}",
            operation="create",
            resource=f"{binding.role} {binding.member}",
        )
        return change

    def list(self, principal: str | None = None) -> BindingListing:
        """List bindings for *principal*, sorted by role, pool and provider.

        A transport failure never raises here; it is reported in
        ``listing.error``.
        """
        try:
            bindings = self.transport.list_bindings(principal)
        except BindingOperationFailedError as e:
            logger.log_operation(
                logging.WARNING,
                f"Listing bindings failed: {e}",
                operation="list",
                resource=principal,
            )
            return BindingListing(error=str(e))
        if principal is not None:
            bindings = [b for b in bindings if b.member == principal]
        return BindingListing(bindings=sorted(bindings, key=_sort_key))

    def remove(self, binding: IAMBinding) -> BindingChange:
        """Remove every binding with the key of *binding*.

        Returns:
            ``REMOVED``, or ``ABSENT`` when the key was never bound. Both
            are success.

        Raises:
            BindingOperationFailedError: Propagated from the transport.
        """
        current = self._matching(binding)
        for b in current:
            self.transport.remove_binding(b)
        change = BindingChange.REMOVED if current else BindingChange.ABSENT
        logger.log_operation(
            logging.INFO,
            f"Binding {change.value}",
            operation="remove",
            resource=f"{binding.role} {binding.member}",
        )
        return change


__all__ = [
    "PRINCIPAL_SET_TEMPLATE",
    "principal_set_member",
    "BindingChange",
    "BindingListing",
    "BindingManager",
]
