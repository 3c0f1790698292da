"""Tests for the GCP state fetcher."""

from unittest.mock import patch, MagicMock
import pytest
import requests

from google.api_core import exceptions as gcp_exceptions
from google.iam.v1 import policy_pb2

from wif.base.config import GCPConfig
from wif.base.exceptions import StateFetchFailedError
from wif.conflicts import pool_descriptor, provider_descriptor, service_account_descriptor
from wif.gcp.fetcher import GCPStateFetcher, service_account_name


EMAIL = "deployer@my-proj.iam.gserviceaccount.com"


@pytest.fixture
def svc(monkeypatch):
    monkeypatch.delenv("GOOGLE_APPLICATION_CREDENTIALS", raising=False)
    with patch("wif.gcp.fetcher.iam_admin_v1.IAMClient") as MockIAM, \
         patch("wif.gcp.fetcher.resourcemanager_v3.ProjectsClient") as MockRM:
        rest = MagicMock()
        instance = GCPStateFetcher(GCPConfig(project_id="my-proj"), rest=rest)
        yield instance, MockIAM.return_value, MockRM.return_value, rest


class TestServiceAccountName:
    def test_from_account_id(self):
        assert service_account_name("my-proj", "deployer") == f"projects/my-proj/serviceAccounts/{EMAIL}"

    def test_from_email(self):
        assert service_account_name("my-proj", EMAIL) == f"projects/my-proj/serviceAccounts/{EMAIL}"


# --- service accounts ---

class TestServiceAccount:
    def test_success(self, svc):
        inst, iam, rm, _ = svc
        iam.get_service_account.return_value = MagicMock(
            email=EMAIL, display_name="Deployer", description="", disabled=False
        )
        rm.get_iam_policy.return_value = policy_pb2.Policy(bindings=[
            policy_pb2.Binding(role="roles/run.admin", members=[f"serviceAccount:{EMAIL}"]),
            policy_pb2.Binding(role="roles/viewer", members=["user:bob@example.com"]),
        ])
        state = inst.fetch_state(service_account_descriptor(EMAIL))
        assert state == {
            "email": EMAIL,
            "display_name": "Deployer",
            "description": "",
            "disabled": False,
            "roles": ["roles/run.admin"],
        }
        call_args = iam.get_service_account.call_args[1]
        assert call_args["request"]["name"] == f"projects/my-proj/serviceAccounts/{EMAIL}"

    def test_not_found(self, svc):
        inst, iam, _, _ = svc
        iam.get_service_account.side_effect = gcp_exceptions.NotFound("nope")
        assert inst.fetch_state(service_account_descriptor(EMAIL)) is None

    def test_transport_error(self, svc):
        inst, iam, _, _ = svc
        iam.get_service_account.side_effect = gcp_exceptions.InternalServerError("fail")
        with pytest.raises(StateFetchFailedError):
            inst.fetch_state(service_account_descriptor(EMAIL))

    def test_policy_error(self, svc):
        inst, iam, rm, _ = svc
        iam.get_service_account.return_value = MagicMock(email=EMAIL)
        rm.get_iam_policy.side_effect = gcp_exceptions.PermissionDenied("denied")
        with pytest.raises(StateFetchFailedError):
            inst.fetch_state(service_account_descriptor(EMAIL))


# --- pools ---

class TestPool:
    def test_success(self, svc):
        inst, _, _, rest = svc
        rest.get.return_value = {"displayName": "GitHub", "state": "ACTIVE"}
        state = inst.fetch_state(pool_descriptor("github-pool"))
        assert state == {"display_name": "GitHub", "description": None, "disabled": False, "state": "ACTIVE"}
        rest.get.assert_called_once_with(
            "projects/my-proj/locations/global/workloadIdentityPools/github-pool"
        )

    def test_absent(self, svc):
        inst, _, _, rest = svc
        rest.get.return_value = None
        assert inst.fetch_state(pool_descriptor("github-pool")) is None

    def test_transport_error(self, svc):
        inst, _, _, rest = svc
        rest.get.side_effect = gcp_exceptions.Forbidden("no")
        with pytest.raises(StateFetchFailedError):
            inst.fetch_state(pool_descriptor("github-pool"))

    def test_connection_error(self, svc):
        inst, _, _, rest = svc
        rest.get.side_effect = requests.exceptions.ConnectionError("reset")
        with pytest.raises(StateFetchFailedError):
            inst.fetch_state(pool_descriptor("github-pool"))


# --- providers ---

class TestProvider:
    def test_success(self, svc):
        inst, _, _, rest = svc
        rest.get.return_value = {
            "state": "ACTIVE",
            "attributeCondition": "assertion.repository == 'acme/app'",
            "attributeMapping": {"google.subject": "assertion.sub"},
            "oidc": {
                "issuerUri": "https://token.actions.githubusercontent.com",
                "allowedAudiences": ["sts.googleapis.com"],
            },
        }
        state = inst.fetch_state(provider_descriptor("github-pool", "github", repository="acme/app"))
        assert state["issuer_uri"] == "https://token.actions.githubusercontent.com"
        assert state["allowed_audiences"] == ["sts.googleapis.com"]
        assert state["attribute_condition"] == "assertion.repository == 'acme/app'"
        assert state["attribute_mapping"] == {"google.subject": "assertion.sub"}
        rest.get.assert_called_once_with(
            "projects/my-proj/locations/global/workloadIdentityPools/github-pool/providers/github"
        )
