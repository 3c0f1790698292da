"""GCP implementation of the resource provisioner blueprint."""

from __future__ import annotations

from google.api_core import exceptions as gcp_exceptions
from google.cloud import iam_admin_v1, resourcemanager_v3
from google.protobuf import field_mask_pb2

from wif.base.config import GCPConfig
from wif.base.exceptions import ProvisioningError
from wif.base.models import ResourceDescriptor, ResourceKind
from wif.base.provisioner import ResourceProvisionerBlueprint
from wif.gcp.fetcher import service_account_name
from wif.gcp.policy import grant_role, revoke_role, roles_for_member
from wif.gcp.rest import TRANSPORT_ERRORS, IAMRestClient, pool_body, pool_path, provider_body, provider_path


class GCPProvisioner(ResourceProvisionerBlueprint):
    """Creates, updates and deletes service accounts, pools and providers.

    Pool and provider mutations return long-running operations which are
    not awaited.
    """

    def __init__(self, config: GCPConfig, rest: IAMRestClient | None = None) -> None:
        self.project_id: str = config.project_id
        self.location: str = config.location
        self.iam = iam_admin_v1.IAMClient(credentials=config.credentials)
        self.projects = resourcemanager_v3.ProjectsClient(credentials=config.credentials)
        self.rest = rest or IAMRestClient(config.credentials)

    # --- dispatch ---

    def create(self, descriptor: ResourceDescriptor) -> None:
        try:
            if descriptor.kind == ResourceKind.SERVICE_ACCOUNT:
                self._create_service_account(descriptor)
            elif descriptor.kind == ResourceKind.WORKLOAD_IDENTITY_POOL:
                body, _ = pool_body(descriptor.desired)
                self.rest.create(
                    f"projects/{self.project_id}/locations/{self.location}/workloadIdentityPools",
                    "workloadIdentityPoolId",
                    descriptor.name,
                    body,
                )
            else:
                body, _ = provider_body(descriptor.desired)
                self.rest.create(
                    f"{self._pool(descriptor)}/providers",
                    "workloadIdentityPoolProviderId",
                    descriptor.name,
                    body,
                )
        except gcp_exceptions.AlreadyExists as e:
            raise ProvisioningError(
                f"{descriptor.kind.value} '{descriptor.resource_id}' already exists"
            ) from e
        except TRANSPORT_ERRORS as e:
            raise ProvisioningError(
                f"Failed to create {descriptor.kind.value} '{descriptor.resource_id}'"
            ) from e

    def update(self, descriptor: ResourceDescriptor) -> None:
        try:
            if descriptor.kind == ResourceKind.SERVICE_ACCOUNT:
                self._update_service_account(descriptor)
            elif descriptor.kind == ResourceKind.WORKLOAD_IDENTITY_POOL:
                body, mask = pool_body(descriptor.desired)
                self.rest.patch(self._pool(descriptor), body, mask)
            else:
                body, mask = provider_body(descriptor.desired)
                self.rest.patch(self._provider(descriptor), body, mask)
        except TRANSPORT_ERRORS as e:
            raise ProvisioningError(
                f"Failed to update {descriptor.kind.value} '{descriptor.resource_id}'"
            ) from e

    def delete(self, descriptor: ResourceDescriptor) -> None:
        try:
            if descriptor.kind == ResourceKind.SERVICE_ACCOUNT:
                self.iam.delete_service_account(
                    request={"name": service_account_name(self.project_id, descriptor.name)}
                )
            elif descriptor.kind == ResourceKind.WORKLOAD_IDENTITY_POOL:
                self.rest.delete(self._pool(descriptor))
            else:
                self.rest.delete(self._provider(descriptor))
        except gcp_exceptions.NotFound:
            return
        except TRANSPORT_ERRORS as e:
            raise ProvisioningError(
                f"Failed to delete {descriptor.kind.value} '{descriptor.resource_id}'"
            ) from e

    # --- paths ---

    def _pool(self, descriptor: ResourceDescriptor) -> str:
        pool_id = descriptor.parent or descriptor.name
        return pool_path(self.project_id, pool_id, self.location)

    def _provider(self, descriptor: ResourceDescriptor) -> str:
        if not descriptor.parent:
            raise ProvisioningError(f"Provider '{descriptor.name}' has no parent pool")
        return provider_path(self.project_id, descriptor.parent, descriptor.name, self.location)

    # --- service accounts ---

    def _create_service_account(self, descriptor: ResourceDescriptor) -> None:
        desired = descriptor.desired
        account_id = descriptor.name.split("@", 1)[0]
        sa = iam_admin_v1.ServiceAccount()
        sa.display_name = desired.get("display_name") or account_id
        sa.description = desired.get("description") or ""
        created = self.iam.create_service_account(
            request={
                "name": f"projects/{self.project_id}",
                "account_id": account_id,
                "service_account": sa,
            }
        )
        if desired.get("roles"):
            self._sync_roles(created.email, desired["roles"])

    def _update_service_account(self, descriptor: ResourceDescriptor) -> None:
        desired = descriptor.desired
        name = service_account_name(self.project_id, descriptor.name)
        paths = [f for f in ("display_name", "description") if f in desired]
        if paths:
            sa = iam_admin_v1.ServiceAccount()
            sa.name = name
            for field in paths:
                setattr(sa, field, desired[field] or "")
            self.iam.patch_service_account(
                request={
                    "service_account": sa,
                    "update_mask": field_mask_pb2.FieldMask(paths=paths),
                }
            )
        if "disabled" in desired:
            if desired["disabled"]:
                self.iam.disable_service_account(request={"name": name})
            else:
                self.iam.enable_service_account(request={"name": name})
        if "roles" in desired:
            self._sync_roles(name.rsplit("/", 1)[-1], desired["roles"])

    def _sync_roles(self, email: str, roles: list[str]) -> None:
        """Make the project roles of *email* exactly *roles*."""
        resource = f"projects/{self.project_id}"
        member = f"serviceAccount:{email}"
        policy = self.projects.get_iam_policy(request={"resource": resource})
        current = set(roles_for_member(policy, member))
        wanted = set(roles)
        changed = False
        for role in sorted(wanted - current):
            changed |= grant_role(policy, role, member)
        for role in sorted(current - wanted):
            changed |= revoke_role(policy, role, member)
        if changed:
            self.projects.set_iam_policy(request={"resource": resource, "policy": policy})


__all__ = ["GCPProvisioner"]
