"""Tests for the trust condition compiler."""

import pytest

from wif.base.exceptions import InvalidSpecError
from wif.base.models import TrustConditionSpec
from wif.conditions.claims import build_attribute_mapping, format_attribute_mapping
from wif.conditions.compiler import compile_condition, validate_repository
from wif.conditions.expr import Eq, Has, Or, StartsWith, all_of, any_of
from wif.conditions.validator import validate_expression


# --- expression tree ---

class TestExpressionTree:
    def test_render_leaves(self):
        assert Eq("repository", "acme/app").render() == "repository == 'acme/app'"
        assert StartsWith("ref", "refs/tags/v").render() == "ref.startsWith('refs/tags/v')"
        assert Has("actor").render("assertion.") == "has(assertion.actor)"

    def test_quote_escapes(self):
        assert Eq("x", "it's").render() == "x == 'it\\'s'"

    def test_nested_or_is_parenthesized(self):
        tree = all_of(Eq("repository", "a/b"), any_of(Eq("ref", "r1"), Eq("ref", "r2")))
        assert tree.render() == "repository == 'a/b' && (ref == 'r1' || ref == 'r2')"

    def test_flatten_and_collapse(self):
        assert any_of(Eq("a", "1")) == Eq("a", "1")
        flat = any_of(any_of(Eq("a", "1"), Eq("a", "2")), Eq("a", "3"))
        assert isinstance(flat, Or)
        assert len(flat.terms) == 3

    def test_empty_combination_rejected(self):
        with pytest.raises(ValueError):
            all_of()


# --- compile_condition ---

class TestCompile:
    def test_repository_only(self):
        compiled = compile_condition(TrustConditionSpec(repository="acme/app"))
        assert compiled.expression == "repository == 'acme/app'"
        assert compiled.title == "repo"

    def test_branch_and_actor(self):
        spec = TrustConditionSpec(repository="acme/app", allowed_branches=["main"], require_actor=True)
        compiled = compile_condition(spec)
        assert compiled.expression == (
            "repository == 'acme/app' && ref == 'refs/heads/main' && has(actor)"
        )
        assert compiled.title == "repo+branch+actor"

    def test_wildcards(self):
        spec = TrustConditionSpec(
            repository="acme/app", allowed_branches=["release/*"], allowed_tags=["v*"]
        )
        compiled = compile_condition(spec)
        assert compiled.expression == (
            "repository == 'acme/app' && (ref.startsWith('refs/heads/release/') "
            "|| ref.startsWith('refs/tags/v'))"
        )
        assert compiled.title == "repo+branch+tag"

    def test_pull_requests_join_ref_group(self):
        spec = TrustConditionSpec(
            repository="acme/app", allowed_branches=["main"], allow_pull_requests=True
        )
        expr = compile_condition(spec).expression
        assert expr == (
            "repository == 'acme/app' && (ref == 'refs/heads/main' "
            "|| ref.startsWith('refs/pull/'))"
        )

    def test_pull_requests_without_ref_restriction(self):
        spec = TrustConditionSpec(repository="acme/app", allow_pull_requests=True)
        compiled = compile_condition(spec)
        assert compiled.expression == "repository == 'acme/app'"
        assert compiled.title == "repo"

    def test_block_forked_repos_emits_nothing(self):
        base = compile_condition(TrustConditionSpec(repository="acme/app"))
        forked = compile_condition(TrustConditionSpec(repository="acme/app", block_forked_repos=True))
        assert base.expression == forked.expression

    def test_workflow_path(self):
        spec = TrustConditionSpec(repository="acme/app", validate_workflow_path=True)
        compiled = compile_condition(spec)
        assert "job_workflow_ref.startsWith('acme/app/')" in compiled.expression
        assert compiled.title == "repo+path"

    def test_trusted_repos(self):
        spec = TrustConditionSpec(
            repository="acme/app",
            trusted_repos=["acme/lib", "acme/app"],
            validate_workflow_path=True,
        )
        compiled = compile_condition(spec)
        assert compiled.expression == (
            "(repository == 'acme/app' || repository == 'acme/lib') && "
            "(job_workflow_ref.startsWith('acme/app/') || job_workflow_ref.startsWith('acme/lib/'))"
        )
        assert compiled.title == "repos+path"

    def test_claim_prefix(self):
        spec = TrustConditionSpec(repository="acme/app", allowed_branches=["main"], require_actor=True)
        expr = compile_condition(spec, claim_prefix="assertion.").expression
        assert expr == (
            "assertion.repository == 'acme/app' && assertion.ref == 'refs/heads/main' "
            "&& has(assertion.actor)"
        )

    def test_deterministic_under_reordering(self):
        a = TrustConditionSpec(
            repository="acme/app",
            allowed_branches=["main", "develop", "refs/heads/main"],
            allowed_tags=["v*", "refs/tags/stable"],
        )
        b = TrustConditionSpec(
            repository="acme/app",
            allowed_branches=["develop", "main"],
            allowed_tags=["stable", "v*"],
        )
        assert compile_condition(a) == compile_condition(b)

    def test_compiled_output_validates(self):
        spec = TrustConditionSpec(
            repository="acme/app",
            allowed_branches=["main", "release/*"],
            allowed_tags=["v*"],
            allow_pull_requests=True,
            require_actor=True,
            validate_workflow_path=True,
            trusted_repos=["acme/lib"],
        )
        for prefix in ("", "assertion."):
            validate_expression(compile_condition(spec, claim_prefix=prefix).expression)


# --- invalid input ---

class TestInvalidSpec:
    @pytest.mark.parametrize("repository", [
        "", "acme", "acme/app/extra", "-acme/app", "acme-/app", "acme/", "/app",
        "acme/.git", "acme/..", "acme/a b", "ac me/app",
    ])
    def test_bad_repository(self, repository):
        with pytest.raises(InvalidSpecError):
            compile_condition(TrustConditionSpec(repository=repository))

    def test_bad_trusted_repo(self):
        with pytest.raises(InvalidSpecError):
            compile_condition(TrustConditionSpec(repository="acme/app", trusted_repos=["nope"]))

    @pytest.mark.parametrize("pattern", ["", "ma*in", "it's", "a b", "back\\slash", 'dq"'])
    def test_bad_branch_pattern(self, pattern):
        with pytest.raises(InvalidSpecError):
            compile_condition(TrustConditionSpec(repository="acme/app", allowed_branches=[pattern]))

    def test_bad_tag_pattern(self):
        with pytest.raises(InvalidSpecError):
            compile_condition(TrustConditionSpec(repository="acme/app", allowed_tags=["*v"]))

    def test_prefix_only_pattern_is_empty(self):
        with pytest.raises(InvalidSpecError):
            compile_condition(TrustConditionSpec(repository="acme/app", allowed_branches=["refs/heads/"]))

    def test_valid_repositories(self):
        for repo in ("a/b", "my-org/my.repo_name", "A1/x-y"):
            assert validate_repository(repo) == repo


# --- claims ---

class TestAttributeMapping:
    def test_defaults(self):
        mapping = build_attribute_mapping()
        assert mapping["google.subject"] == "assertion.sub"
        assert mapping["attribute.repository"] == "assertion.repository"

    def test_extra_and_format(self):
        mapping = build_attribute_mapping({"attribute.environment": "assertion.environment"})
        assert "attribute.environment" in mapping
        rendered = format_attribute_mapping({"b": "2", "a": "1"})
        assert rendered == "a=1,b=2"
