"""Tests for the resource conflict detector."""

import asyncio

import pytest

from wif.base.models import (
    ConflictType,
    DetectionPolicy,
    RecommendedAction,
    Resolution,
    ResourceKind,
    Severity,
)
from wif.conflicts import (
    SEVERITY_TABLE,
    ConflictDetector,
    classify,
    pool_descriptor,
    provider_descriptor,
    service_account_descriptor,
)


SA_EMAIL = "deployer@proj.iam.gserviceaccount.com"


def sa(existing=None, roles=("A", "B", "C"), **kw):
    return service_account_descriptor(SA_EMAIL, roles=list(roles), existing=existing, **kw)


# --- classification table ---

class TestClassification:
    def test_closed_table(self):
        assert classify(ResourceKind.SERVICE_ACCOUNT, "roles") == Severity.MEDIUM
        assert classify(ResourceKind.WORKLOAD_IDENTITY_PROVIDER, "repository") == Severity.CRITICAL
        assert classify(ResourceKind.WORKLOAD_IDENTITY_POOL, "display_name") == Severity.LOW
        assert classify(ResourceKind.SERVICE_ACCOUNT, "nonsense") is None

    def test_every_kind_covered(self):
        kinds = {kind for kind, _ in SEVERITY_TABLE}
        assert kinds == set(ResourceKind)


# --- per-descriptor outcomes ---

class TestScenarios:
    def test_missing_role_is_medium_mismatch(self):
        existing = {"roles": ["A", "B"], "disabled": False}
        result = ConflictDetector().detect([sa(existing)], DetectionPolicy(create_new=False))
        assert result.total_conflicts == 1
        conflict = result.conflicts[0]
        assert conflict.conflict_type == ConflictType.CONFIG_MISMATCH
        assert conflict.severity == Severity.MEDIUM
        assert [d.field for d in conflict.differences] == ["roles"]
        assert conflict.differences[0].severity == Severity.MEDIUM
        assert conflict.can_auto_resolve
        assert result.can_proceed
        assert result.recommended_action == RecommendedAction.PROCEED_WITH_CAUTION

    def test_deleting_pool_is_state_invalid(self):
        existing = {"state": "DELETING", "disabled": False}
        result = ConflictDetector().detect(
            [pool_descriptor("github-pool", existing=existing)], DetectionPolicy(create_new=True)
        )
        conflict = result.conflicts[0]
        assert conflict.conflict_type == ConflictType.STATE_INVALID
        assert conflict.severity == Severity.CRITICAL
        assert not conflict.can_auto_resolve
        assert not result.can_proceed
        assert result.recommended_action == RecommendedAction.MANUAL_INTERVENTION_REQUIRED

    def test_absent_without_create_is_dependency_missing(self):
        result = ConflictDetector().detect([sa(None)], DetectionPolicy(create_new=False))
        conflict = result.conflicts[0]
        assert conflict.conflict_type == ConflictType.DEPENDENCY_MISSING
        assert conflict.severity == Severity.HIGH
        assert not result.can_proceed
        assert result.recommended_action == RecommendedAction.RESOLVE_THEN_RETRY
        assert conflict.recommended_suggestion.resolution == Resolution.CREATE
        assert conflict.recommended_suggestion.automated

    def test_absent_with_create_is_clean(self):
        result = ConflictDetector().detect([sa(None)], DetectionPolicy(create_new=True))
        assert not result.has_conflicts
        assert result.summary == "No resource conflicts detected"
        assert result.recommended_action == RecommendedAction.PROCEED

    def test_matching_resource_is_clean(self):
        existing = {"roles": ["C", "B", "A", "A"], "disabled": False}
        result = ConflictDetector().detect([sa(existing)], DetectionPolicy())
        assert not result.has_conflicts

    def test_already_exists(self):
        existing = {"roles": ["A", "B", "C"]}
        result = ConflictDetector().detect([sa(existing)], DetectionPolicy(create_new=True))
        conflict = result.conflicts[0]
        assert conflict.conflict_type == ConflictType.ALREADY_EXISTS
        assert conflict.severity == Severity.CRITICAL
        # No differences: reusing the existing account is the recommendation.
        assert conflict.recommended_suggestion.resolution == Resolution.SKIP
        assert not result.can_proceed

    def test_update_in_place_turns_exists_into_mismatch(self):
        existing = {"roles": ["A", "B"]}
        policy = DetectionPolicy(create_new=True, update_in_place=True)
        result = ConflictDetector().detect([sa(existing)], policy)
        assert result.conflicts[0].conflict_type == ConflictType.CONFIG_MISMATCH

    def test_disabled_is_high(self):
        existing = {"roles": ["A", "B", "C"], "disabled": True}
        result = ConflictDetector().detect([sa(existing)], DetectionPolicy())
        conflict = result.conflicts[0]
        assert conflict.severity == Severity.HIGH
        assert not conflict.can_auto_resolve
        assert not result.can_proceed
        assert result.recommended_action == RecommendedAction.RESOLVE_THEN_RETRY

    def test_high_with_create_new_proceeds_with_caution(self):
        existing = {"roles": ["A", "B", "C"], "disabled": True}
        policy = DetectionPolicy(create_new=True, update_in_place=True)
        result = ConflictDetector().detect([sa(existing)], policy)
        assert result.can_proceed
        assert result.recommended_action == RecommendedAction.PROCEED_WITH_CAUTION

    def test_low_only_recommends_leave_as_is(self):
        existing = {"roles": ["A", "B", "C"], "display_name": "Old"}
        result = ConflictDetector().detect([sa(existing, display_name="New")], DetectionPolicy())
        conflict = result.conflicts[0]
        assert conflict.severity == Severity.LOW
        assert conflict.recommended_suggestion.resolution == Resolution.SKIP
        assert result.recommended_action == RecommendedAction.PROCEED

    def test_exactly_one_recommended(self):
        existing = {"roles": ["A"], "display_name": "Old"}
        result = ConflictDetector().detect([sa(existing, display_name="New")], DetectionPolicy())
        conflict = result.conflicts[0]
        assert sum(s.recommended for s in conflict.suggestions) == 1
        assert conflict.recommended_suggestion.resolution == Resolution.UPDATE


class TestStateInvalid:
    @pytest.mark.parametrize("state", ["DELETED", "DELETING"])
    def test_monotonic_over_other_differences(self, state):
        existing = {"state": state, "disabled": True, "display_name": "x", "description": "y"}
        descriptor = pool_descriptor("github-pool", display_name="a", description="b", existing=existing)
        for policy in (DetectionPolicy(), DetectionPolicy(create_new=True),
                       DetectionPolicy(create_new=True, update_in_place=True)):
            result = ConflictDetector().detect([descriptor], policy)
            assert result.total_conflicts == 1
            conflict = result.conflicts[0]
            assert conflict.conflict_type == ConflictType.STATE_INVALID
            assert conflict.severity == Severity.CRITICAL
            assert conflict.differences[0].field == "state"
            assert [s.resolution for s in conflict.suggestions] == [Resolution.RECREATE]
            assert conflict.suggestions[0].recommended
            assert not conflict.suggestions[0].automated


class TestProvider:
    CONDITION = "assertion.repository == 'acme/app' && assertion.ref == 'refs/heads/main'"

    def _existing(self, condition=CONDITION):
        return {
            "state": "ACTIVE",
            "disabled": False,
            "issuer_uri": "https://token.actions.githubusercontent.com",
            "allowed_audiences": ["sts.googleapis.com"],
            "attribute_condition": condition,
        }

    def test_recovers_fields_from_condition(self):
        descriptor = provider_descriptor(
            "github-pool", "github", repository="acme/app",
            allowed_branches=["main"], existing=self._existing(),
        )
        result = ConflictDetector().detect([descriptor], DetectionPolicy())
        assert not result.has_conflicts

    def test_other_repository_is_critical(self):
        descriptor = provider_descriptor(
            "github-pool", "github", repository="acme/other", existing=self._existing(),
        )
        result = ConflictDetector().detect([descriptor], DetectionPolicy())
        conflict = result.conflicts[0]
        assert conflict.severity == Severity.CRITICAL
        assert conflict.resource_name == "github-pool/github"
        assert "repository" in [d.field for d in conflict.differences]

    def test_branch_change_is_medium(self):
        descriptor = provider_descriptor(
            "github-pool", "github", repository="acme/app",
            allowed_branches=["main", "develop"], existing=self._existing(),
        )
        result = ConflictDetector().detect([descriptor], DetectionPolicy())
        conflict = result.conflicts[0]
        assert conflict.severity == Severity.MEDIUM
        assert conflict.differences[0].field == "allowed_branches"


# --- aggregation ---

class TestAggregation:
    def test_counts_and_summary(self):
        descriptors = [
            sa({"roles": ["A", "B"]}),
            pool_descriptor("github-pool", existing={"state": "DELETED"}),
            pool_descriptor("other-pool", display_name="x", existing={"state": "ACTIVE", "display_name": "y"}),
        ]
        result = ConflictDetector().detect(descriptors, DetectionPolicy())
        assert result.total_conflicts == 3
        assert (result.critical_count, result.high_count, result.medium_count, result.low_count) == (1, 0, 1, 1)
        assert result.summary == "Found 3 resource conflict(s): 1 critical, 1 medium, 1 low"

    def test_severity_threshold_filters(self):
        descriptors = [
            sa({"roles": ["A", "B"]}),
            pool_descriptor("p-one", display_name="x", existing={"state": "ACTIVE", "display_name": "y"}),
        ]
        result = ConflictDetector().detect(descriptors, DetectionPolicy(severity_threshold=Severity.MEDIUM))
        assert result.total_conflicts == 1
        assert result.low_count == 0

    def test_threshold_does_not_hide_blocking_conflicts(self):
        policy = DetectionPolicy(create_new=False, severity_threshold=Severity.CRITICAL)
        result = ConflictDetector().detect([sa()], policy)
        assert result.total_conflicts == 0
        assert result.high_count == 0
        assert not result.can_proceed
        assert result.recommended_action == RecommendedAction.RESOLVE_THEN_RETRY

    def test_threshold_keeps_critical_action(self):
        descriptors = [pool_descriptor("github-pool", existing={"state": "DELETED"})]
        result = ConflictDetector().detect(descriptors, DetectionPolicy(severity_threshold=Severity.CRITICAL))
        assert result.critical_count == 1
        assert result.recommended_action == RecommendedAction.MANUAL_INTERVENTION_REQUIRED

    def test_idempotent(self):
        descriptors = [sa({"roles": ["A"]}), pool_descriptor("p-one", existing={"state": "DELETING"})]
        detector = ConflictDetector()
        assert detector.detect(descriptors, DetectionPolicy()) == detector.detect(descriptors, DetectionPolicy())

    def test_to_dict_camel_case(self):
        result = ConflictDetector().detect([sa({"roles": ["A"]})], DetectionPolicy())
        data = result.to_dict()
        assert data["recommendedAction"] == "ProceedWithCaution"
        conflict = data["conflicts"][0]
        assert conflict["conflictType"] == "ConfigMismatch"
        assert conflict["canAutoResolve"] is True
        assert conflict["differences"][0]["severity"] == "medium"


class TestFetcher:
    def test_uses_fetcher_over_snapshot(self, cloud):
        descriptor = sa(existing={"roles": ["A", "B", "C"]})
        result = ConflictDetector(cloud).detect([descriptor], DetectionPolicy(create_new=False))
        # The fetcher reports the account absent.
        assert result.conflicts[0].conflict_type == ConflictType.DEPENDENCY_MISSING

    def test_fetch_failure_degrades(self, cloud):
        ok = pool_descriptor("p-one")
        bad = pool_descriptor("p-two")
        cloud.state["p-one"] = {"state": "ACTIVE"}
        cloud.failing_fetch.add("p-two")
        result = ConflictDetector(cloud).detect([ok, bad], DetectionPolicy())
        assert result.degraded
        assert not result.has_conflicts
        assert [f.resource_name for f in result.failures] == ["p-two"]
        assert "boom" in result.failures[0].error
        assert result.recommended_action == RecommendedAction.RESOLVE_THEN_RETRY
        assert not result.can_proceed
        assert "could not be read" in result.summary

    def test_adetect_matches_detect(self, cloud):
        cloud.state[SA_EMAIL] = {"roles": ["A"]}
        cloud.state["p-one"] = {"state": "DELETED"}
        descriptors = [sa(), pool_descriptor("p-one"), pool_descriptor("p-two")]
        detector = ConflictDetector(cloud)
        policy = DetectionPolicy()
        assert asyncio.run(detector.adetect(descriptors, policy)) == detector.detect(descriptors, policy)
