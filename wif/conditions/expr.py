"""
Conditional-access expression tree.

Conditions are assembled as a small boolean tree of comparison and call
nodes and rendered to CEL-style text only at the output boundary::

    >>> all_of(Eq("repository", "acme/app"), Has("actor")).render()
    "repository == 'acme/app' && has(actor)"

Rendering is deterministic: equal trees always produce identical text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Union


def quote(value: str) -> str:
    """Render *value* as a single-quoted string literal."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


@dataclass(frozen=True)
class Eq:
    """``<claim> == '<value>'``"""

    claim: str
    value: str

    def render(self, claim_prefix: str = "") -> str:
        return f"{claim_prefix}{self.claim} == {quote(self.value)}"


@dataclass(frozen=True)
class StartsWith:
    """``<claim>.startsWith('<prefix>')``"""

    claim: str
    prefix: str

    def render(self, claim_prefix: str = "") -> str:
        return f"{claim_prefix}{self.claim}.startsWith({quote(self.prefix)})"


@dataclass(frozen=True)
class Has:
    """``has(<claim>)``"""

    claim: str

    def render(self, claim_prefix: str = "") -> str:
        return f"has({claim_prefix}{self.claim})"


@dataclass(frozen=True)
class And:
    terms: tuple[Node, ...]

    def render(self, claim_prefix: str = "") -> str:
        return " && ".join(_render_operand(t, claim_prefix) for t in self.terms)


@dataclass(frozen=True)
class Or:
    terms: tuple[Node, ...]

    def render(self, claim_prefix: str = "") -> str:
        return " || ".join(_render_operand(t, claim_prefix) for t in self.terms)


Node = Union[Eq, StartsWith, Has, And, Or]


def _render_operand(node: Node, claim_prefix: str) -> str:
    text = node.render(claim_prefix)
    if isinstance(node, (And, Or)):
        return f"({text})"
    return text


def _combine(cls: type, terms: tuple[Node, ...]) -> Node:
    flat: list[Node] = []
    for term in terms:
        # a || (b || c) is a || b || c
        if isinstance(term, cls):
            flat.extend(term.terms)
        else:
            flat.append(term)
    if not flat:
        raise ValueError(f"{cls.__name__} needs at least one term")
    if len(flat) == 1:
        return flat[0]
    return cls(tuple(flat))


def all_of(*terms: Node) -> Node:
    """AND-combine *terms*, flattening nested ANDs and collapsing a single term."""
    return _combine(And, terms)


def any_of(*terms: Node) -> Node:
    """OR-combine *terms*, flattening nested ORs and collapsing a single term."""
    return _combine(Or, terms)


def walk(node: Node) -> Iterator[Node]:
    """Yield *node* and all of its descendants, depth first."""
    yield node
    if isinstance(node, (And, Or)):
        for term in node.terms:
            yield from walk(term)


__all__ = ["Eq", "StartsWith", "Has", "And", "Or", "Node", "all_of", "any_of", "walk", "quote"]
