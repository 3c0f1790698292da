"""
Thin REST client for workload identity pools and providers.

The pools API is not covered by the ``google-cloud-iam`` admin client, so
calls go through a ``google-auth`` authorized session. HTTP errors are
translated into the ``google.api_core`` exception hierarchy, letting the
adapters handle both transports the same way.
"""

from __future__ import annotations

from typing import Any

import google.auth
import requests
from google.api_core import exceptions as gcp_exceptions
from google.auth import exceptions as auth_exceptions
from google.auth.transport.requests import AuthorizedSession

IAM_API = "https://iam.googleapis.com/v1"
CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"

# Errors a GCP call raises at runtime, credential refresh included.
TRANSPORT_ERRORS = (
    gcp_exceptions.GoogleAPIError,
    auth_exceptions.GoogleAuthError,
    requests.exceptions.RequestException,
)


def pool_path(project_id: str, pool_id: str, location: str = "global") -> str:
    return f"projects/{project_id}/locations/{location}/workloadIdentityPools/{pool_id}"


def provider_path(project_id: str, pool_id: str, provider_id: str, location: str = "global") -> str:
    return f"{pool_path(project_id, pool_id, location)}/providers/{provider_id}"


class IAMRestClient:
    """Minimal JSON client for ``iam.googleapis.com/v1``.

    Args:
        credentials: Explicit credentials; Application Default Credentials
            are used when omitted.
        session: A pre-built session (mainly for tests).
    """

    def __init__(self, credentials: Any | None = None, session: Any | None = None) -> None:
        if session is None:
            if credentials is None:
                credentials, _ = google.auth.default(scopes=[CLOUD_PLATFORM_SCOPE])
            session = AuthorizedSession(credentials)
        self.session = session

    def _call(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        response = self.session.request(method, f"{IAM_API}/{path}", **kwargs)
        if response.status_code >= 400:
            raise gcp_exceptions.from_http_response(response)
        if not response.content:
            return {}
        return response.json()

    def get(self, path: str) -> dict[str, Any] | None:
        """GET *path*; ``None`` when the resource does not exist."""
        try:
            return self._call("GET", path)
        except gcp_exceptions.NotFound:
            return None

    def create(self, collection: str, id_param: str, resource_id: str, body: dict[str, Any]) -> dict[str, Any]:
        """POST *body* into *collection* under the id *resource_id*.

        Returns the long-running operation; it is not awaited.
        """
        return self._call("POST", collection, params={id_param: resource_id}, json=body)

    def patch(self, path: str, body: dict[str, Any], update_mask: list[str]) -> dict[str, Any]:
        return self._call("PATCH", path, params={"updateMask": ",".join(update_mask)}, json=body)

    def delete(self, path: str) -> None:
        self._call("DELETE", path)


# ── state <-> resource body ──────────────────────────────────────────

_COMMON_FIELDS = {
    "display_name": "displayName",
    "description": "description",
    "disabled": "disabled",
}

_PROVIDER_FIELDS = {
    **_COMMON_FIELDS,
    "attribute_mapping": "attributeMapping",
    "attribute_condition": "attributeCondition",
}


def pool_state(resource: dict[str, Any]) -> dict[str, Any]:
    """Convert a pool resource into a live state dict."""
    return {
        "display_name": resource.get("displayName"),
        "description": resource.get("description"),
        "disabled": bool(resource.get("disabled", False)),
        "state": resource.get("state"),
    }


def provider_state(resource: dict[str, Any]) -> dict[str, Any]:
    """Convert an OIDC provider resource into a live state dict."""
    oidc = resource.get("oidc") or {}
    state = pool_state(resource)
    state.update({
        "issuer_uri": oidc.get("issuerUri"),
        "allowed_audiences": list(oidc.get("allowedAudiences") or []),
        "attribute_mapping": dict(resource.get("attributeMapping") or {}),
        "attribute_condition": resource.get("attributeCondition"),
    })
    return state


def pool_body(desired: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
    """Return the pool request body and its update mask."""
    body = {api: desired[field] for field, api in _COMMON_FIELDS.items() if field in desired}
    return body, sorted(body)


def provider_body(desired: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
    """Return the provider request body and its update mask."""
    body = {api: desired[field] for field, api in _PROVIDER_FIELDS.items() if field in desired}
    mask = sorted(body)
    oidc: dict[str, Any] = {}
    if "issuer_uri" in desired:
        oidc["issuerUri"] = desired["issuer_uri"]
        mask.append("oidc.issuerUri")
    if "allowed_audiences" in desired:
        oidc["allowedAudiences"] = list(desired["allowed_audiences"])
        mask.append("oidc.allowedAudiences")
    if oidc:
        body["oidc"] = oidc
    return body, mask


__all__ = [
    "IAM_API",
    "CLOUD_PLATFORM_SCOPE",
    "TRANSPORT_ERRORS",
    "IAMRestClient",
    "pool_path",
    "provider_path",
    "pool_state",
    "provider_state",
    "pool_body",
    "provider_body",
]
