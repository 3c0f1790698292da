"""wif CLI: compile and lint trust conditions from the command line.

Usage examples::

    wif compile --repository acme/app --branch main --require-actor
    wif compile -r acme/app --tag 'v*' --claim-prefix assertion.
    wif lint "repository == 'acme/app' && has(actor)"
"""

from __future__ import annotations

import argparse
import json
import sys

from wif.base.exceptions import ConditionError, ExpressionInvalidError
from wif.base.models import TrustConditionSpec


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ``wif`` CLI.

    Returns:
        Configured :class:`~argparse.ArgumentParser`.
    """
    parser = argparse.ArgumentParser(
        prog="wif",
        description="GitHub Actions to Google Cloud workload identity federation tooling",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    compile_cmd = sub.add_parser("compile", help="Compile a trust condition")
    compile_cmd.add_argument("--repository", "-r", required=True, help="GitHub repository (owner/name)")
    compile_cmd.add_argument("--branch", "-b", action="append", default=[], help="Allowed branch (repeatable, '*' suffix)")
    compile_cmd.add_argument("--tag", "-t", action="append", default=[], help="Allowed tag (repeatable, '*' suffix)")
    compile_cmd.add_argument("--trusted-repo", action="append", default=[], help="Additional trusted repository (repeatable)")
    compile_cmd.add_argument("--allow-pull-requests", action="store_true", help="Allow refs/pull/* refs")
    compile_cmd.add_argument("--block-forked-repos", action="store_true", help="Reject tokens from forks")
    compile_cmd.add_argument("--require-actor", action="store_true", help="Require the actor claim")
    compile_cmd.add_argument("--validate-workflow-path", action="store_true", help="Require the workflow to live in a trusted repository")
    compile_cmd.add_argument("--claim-prefix", default="", help="Claim qualifier, e.g. 'assertion.'")

    lint_cmd = sub.add_parser("lint", help="Validate a conditional-access expression offline")
    lint_cmd.add_argument("expression", help="Expression to validate")
    return parser


def _compile(ns: argparse.Namespace) -> None:
    from wif.conditions.compiler import compile_condition

    spec = TrustConditionSpec(
        repository=ns.repository,
        allowed_branches=ns.branch,
        allowed_tags=ns.tag,
        trusted_repos=ns.trusted_repo,
        allow_pull_requests=ns.allow_pull_requests,
        block_forked_repos=ns.block_forked_repos,
        require_actor=ns.require_actor,
        validate_workflow_path=ns.validate_workflow_path,
    )
    try:
        compiled = compile_condition(spec, claim_prefix=ns.claim_prefix)
    except ConditionError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(json.dumps(compiled.to_dict(), indent=2))


def _lint(ns: argparse.Namespace) -> None:
    from wif.conditions.validator import validate_expression

    try:
        validate_expression(ns.expression)
    except ExpressionInvalidError as e:
        print(f"Invalid expression ({e.rule}): {e.reason}", file=sys.stderr)
        sys.exit(1)
    print("OK")


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Args:
        argv: Optional argument list (defaults to ``sys.argv``).
    """
    parser = _build_parser()
    ns = parser.parse_args(argv)
    if ns.command == "compile":
        _compile(ns)
    else:
        _lint(ns)


if __name__ == "__main__":
    main()
