"""GCP implementation of the binding transport blueprint.

Bindings live in the IAM policy of the service account the GitHub
principal impersonates. Every mutation is a read-modify-write of that
policy at version 3 (conditional bindings).
"""

from __future__ import annotations

from typing import Any

from google.cloud import iam_admin_v1

from wif.base.bindings import BindingTransportBlueprint
from wif.base.config import GCPConfig
from wif.base.exceptions import BindingOperationFailedError
from wif.base.models import IAMBinding
from wif.gcp.fetcher import service_account_name
from wif.gcp.policy import CONDITIONAL_POLICY_VERSION, add_binding, drop_binding, federated_bindings
from wif.gcp.rest import TRANSPORT_ERRORS


class GCPBindingTransport(BindingTransportBlueprint):
    """Conditional bindings on a service account IAM policy.

    Attributes:
        project_id: GCP project ID.
        resource: Resource name of the service account.
        client: IAM Admin client.
    """

    def __init__(self, config: GCPConfig, service_account: str) -> None:
        self.project_id: str = config.project_id
        self.resource = service_account_name(config.project_id, service_account)
        self.client = iam_admin_v1.IAMClient(credentials=config.credentials)

    def _get_policy(self) -> Any:
        return self.client.get_iam_policy(
            request={
                "resource": self.resource,
                "options": {"requested_policy_version": CONDITIONAL_POLICY_VERSION},
            }
        )

    def _set_policy(self, policy: Any) -> None:
        self.client.set_iam_policy(request={"resource": self.resource, "policy": policy})

    def list_bindings(self, principal: str | None = None) -> list[IAMBinding]:
        try:
            bindings = federated_bindings(self._get_policy())
        except TRANSPORT_ERRORS as e:
            raise BindingOperationFailedError(f"Failed to read IAM policy of '{self.resource}'") from e
        if principal is None:
            return bindings
        return [b for b in bindings if b.member == principal]

    def create_binding(self, binding: IAMBinding) -> None:
        try:
            policy = self._get_policy()
            add_binding(policy, binding)
            self._set_policy(policy)
        except TRANSPORT_ERRORS as e:
            raise BindingOperationFailedError(
                f"Failed to bind '{binding.member}' to '{binding.role}'"
            ) from e

    def remove_binding(self, binding: IAMBinding) -> None:
        try:
            policy = self._get_policy()
            if drop_binding(policy, binding):
                self._set_policy(policy)
        except TRANSPORT_ERRORS as e:
            raise BindingOperationFailedError(
                f"Failed to unbind '{binding.member}' from '{binding.role}'"
            ) from e

    def replace_binding(self, old: IAMBinding, new: IAMBinding) -> None:
        """Swap *old* for *new* in a single policy write."""
        try:
            policy = self._get_policy()
            drop_binding(policy, old)
            add_binding(policy, new)
            self._set_policy(policy)
        except TRANSPORT_ERRORS as e:
            raise BindingOperationFailedError(
                f"Failed to replace binding of '{new.member}' on '{new.role}'"
            ) from e


__all__ = ["GCPBindingTransport"]
