"""GCP implementation of the state fetcher blueprint."""

from __future__ import annotations

from typing import Any

from google.api_core import exceptions as gcp_exceptions
from google.cloud import iam_admin_v1, resourcemanager_v3

from wif.base.config import GCPConfig
from wif.base.exceptions import StateFetchFailedError
from wif.base.fetcher import StateFetcherBlueprint
from wif.base.models import ResourceDescriptor, ResourceKind
from wif.gcp.policy import roles_for_member
from wif.gcp.rest import (
    TRANSPORT_ERRORS,
    IAMRestClient,
    pool_path,
    pool_state,
    provider_path,
    provider_state,
)


def service_account_name(project_id: str, account: str) -> str:
    """Resource name of a service account given its email or account id."""
    email = account if "@" in account else f"{account}@{project_id}.iam.gserviceaccount.com"
    return f"projects/{project_id}/serviceAccounts/{email}"


class GCPStateFetcher(StateFetcherBlueprint):
    """Reads live service account, pool and provider state.

    Service accounts come from the IAM Admin API and their project roles
    from the Resource Manager project policy; pools and providers from the
    IAM REST API.

    Attributes:
        project_id: GCP project ID.
        location: Pool location.
        iam: IAM Admin client.
        projects: Resource Manager projects client.
        rest: Pools / providers REST client.
    """

    def __init__(self, config: GCPConfig, rest: IAMRestClient | None = None) -> None:
        self.project_id: str = config.project_id
        self.location: str = config.location
        self.iam = iam_admin_v1.IAMClient(credentials=config.credentials)
        self.projects = resourcemanager_v3.ProjectsClient(credentials=config.credentials)
        self.rest = rest or IAMRestClient(config.credentials)

    def fetch_state(self, descriptor: ResourceDescriptor) -> dict[str, Any] | None:
        if descriptor.kind == ResourceKind.SERVICE_ACCOUNT:
            return self._service_account(descriptor.name)
        if descriptor.kind == ResourceKind.WORKLOAD_IDENTITY_POOL:
            path = pool_path(self.project_id, descriptor.name, self.location)
            resource = self._get(path)
            return pool_state(resource) if resource is not None else None
        if not descriptor.parent:
            raise StateFetchFailedError(f"Provider '{descriptor.name}' has no parent pool")
        path = provider_path(self.project_id, descriptor.parent, descriptor.name, self.location)
        resource = self._get(path)
        return provider_state(resource) if resource is not None else None

    def _get(self, path: str) -> dict[str, Any] | None:
        try:
            return self.rest.get(path)
        except TRANSPORT_ERRORS as e:
            raise StateFetchFailedError(f"Failed to read '{path}'") from e

    def _service_account(self, account: str) -> dict[str, Any] | None:
        name = service_account_name(self.project_id, account)
        try:
            sa = self.iam.get_service_account(request={"name": name})
        except gcp_exceptions.NotFound:
            return None
        except TRANSPORT_ERRORS as e:
            raise StateFetchFailedError(f"Failed to read service account '{account}'") from e

        try:
            policy = self.projects.get_iam_policy(request={"resource": f"projects/{self.project_id}"})
        except TRANSPORT_ERRORS as e:
            raise StateFetchFailedError(
                f"Failed to read IAM policy of project '{self.project_id}'"
            ) from e

        return {
            "email": sa.email,
            "display_name": sa.display_name,
            "description": sa.description,
            "disabled": bool(sa.disabled),
            "roles": roles_for_member(policy, f"serviceAccount:{sa.email}"),
        }


__all__ = ["GCPStateFetcher", "service_account_name"]
