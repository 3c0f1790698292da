"""Recover trust restrictions from an already rendered expression."""

from __future__ import annotations

from wif.conditions.validator import IDENT, LPAREN, OP, REPOSITORY_CLAIMS, STRING, tokenize

REF_CLAIMS = frozenset({"ref", "assertion.ref", "attribute.ref"})


def extract_repositories(expression: str) -> list[str]:
    """Return the repositories compared for equality in *expression*, sorted."""
    tokens = tokenize(expression)
    repos: set[str] = set()
    for left, op, right in zip(tokens, tokens[1:], tokens[2:]):
        if op.kind != OP or op.text != "==":
            continue
        if left.kind == IDENT and left.text in REPOSITORY_CLAIMS and right.kind == STRING:
            repos.add(right.value)
        elif right.kind == IDENT and right.text in REPOSITORY_CLAIMS and left.kind == STRING:
            repos.add(left.value)
    return sorted(repos)


def extract_ref_patterns(expression: str, ref_prefix: str) -> list[str]:
    """Return the branch or tag patterns under *ref_prefix* in *expression*.

    ``ref == 'refs/heads/main'`` yields ``main`` and
    ``ref.startsWith('refs/heads/release/')`` yields ``release/*``.
    """
    tokens = tokenize(expression)
    patterns: set[str] = set()
    for i, tok in enumerate(tokens):
        if tok.kind != IDENT:
            continue
        if (
            tok.text in REF_CLAIMS
            and i + 2 < len(tokens)
            and tokens[i + 1].kind == OP
            and tokens[i + 1].text == "=="
            and tokens[i + 2].kind == STRING
        ):
            value = tokens[i + 2].value
            if value.startswith(ref_prefix):
                patterns.add(value[len(ref_prefix):])
        elif (
            tok.text.endswith(".startsWith")
            and tok.text[: -len(".startsWith")] in REF_CLAIMS
            and i + 2 < len(tokens)
            and tokens[i + 1].kind == LPAREN
            and tokens[i + 2].kind == STRING
        ):
            value = tokens[i + 2].value
            if value.startswith(ref_prefix):
                patterns.add(value[len(ref_prefix):] + "*")
    return sorted(patterns)


__all__ = ["extract_repositories", "extract_ref_patterns"]
