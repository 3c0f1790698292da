"""
Offline validator for conditional-access expressions.

The checks are syntactic plus one semantic rule (a repository comparison
must be present) and run fail-fast in a fixed order. No credentials and no
network are needed, so the same check runs in CI and in ``wif lint``.
"""

from __future__ import annotations

from typing import NamedTuple

from wif.base.exceptions import ExpressionInvalidError

IDENT = "IDENT"
STRING = "STRING"
NUMBER = "NUMBER"
OP = "OP"
LPAREN = "LPAREN"
RPAREN = "RPAREN"
DOT = "DOT"
OTHER = "OTHER"

REPOSITORY_CLAIMS = frozenset({"repository", "assertion.repository", "attribute.repository"})

_TWO_CHAR_OPS = ("==", "!=", "<=", ">=", "&&", "||")
_ONE_CHAR_OPS = "=!<>&|+-*/%?:"
_QUOTES = "'\""


class Token(NamedTuple):
    kind: str
    text: str
    pos: int
    value: str = ""


def _is_ident_start(c: str) -> bool:
    return c.isalpha() or c == "_"


def _is_ident_char(c: str) -> bool:
    return c.isalnum() or c == "_"


def _scan_string(expression: str, start: int) -> Token:
    quote_char = expression[start]
    chars: list[str] = []
    i = start + 1
    while i < len(expression):
        c = expression[i]
        if c == "\\" and i + 1 < len(expression):
            chars.append(expression[i + 1])
            i += 2
            continue
        if c == quote_char:
            return Token(STRING, expression[start:i + 1], start, "".join(chars))
        chars.append(c)
        i += 1
    raise ExpressionInvalidError(
        "unterminated_string", f"string literal starting at position {start} is not closed"
    )


def _scan_ident(expression: str, start: int) -> Token:
    i = start
    while i < len(expression):
        if _is_ident_char(expression[i]):
            i += 1
        elif (
            expression[i] == "."
            and i + 1 < len(expression)
            and _is_ident_start(expression[i + 1])
        ):
            i += 1
        else:
            break
    return Token(IDENT, expression[start:i], start)


def tokenize(expression: str) -> list[Token]:
    """Split *expression* into tokens, honouring quoted string literals.

    Dotted claim paths such as ``assertion.ref`` come back as a single
    ``IDENT`` token.

    Raises:
        ExpressionInvalidError: If a string literal is not terminated.
    """
    tokens: list[Token] = []
    i = 0
    n = len(expression)
    while i < n:
        c = expression[i]
        if c.isspace():
            i += 1
        elif c in _QUOTES:
            tok = _scan_string(expression, i)
            tokens.append(tok)
            i += len(tok.text)
        elif _is_ident_start(c):
            tok = _scan_ident(expression, i)
            tokens.append(tok)
            i += len(tok.text)
        elif c.isdigit():
            j = i
            while j < n and (expression[j].isdigit() or expression[j] == "."):
                j += 1
            tokens.append(Token(NUMBER, expression[i:j], i))
            i = j
        elif expression[i:i + 2] in _TWO_CHAR_OPS:
            tokens.append(Token(OP, expression[i:i + 2], i))
            i += 2
        elif c == "(":
            tokens.append(Token(LPAREN, c, i))
            i += 1
        elif c == ")":
            tokens.append(Token(RPAREN, c, i))
            i += 1
        elif c == ".":
            tokens.append(Token(DOT, c, i))
            i += 1
        elif c in _ONE_CHAR_OPS:
            tokens.append(Token(OP, c, i))
            i += 1
        else:
            tokens.append(Token(OTHER, c, i))
            i += 1
    return tokens


def _check_parentheses(tokens: list[Token]) -> None:
    depth = 0
    for tok in tokens:
        if tok.kind == LPAREN:
            depth += 1
        elif tok.kind == RPAREN:
            depth -= 1
            if depth < 0:
                raise ExpressionInvalidError(
                    "balanced_parentheses", f"unexpected ')' at position {tok.pos}"
                )
    if depth:
        raise ExpressionInvalidError(
            "balanced_parentheses", f"{depth} unclosed '(' in expression"
        )


def _check_single_equals(tokens: list[Token]) -> None:
    for tok in tokens:
        if tok.kind == OP and tok.text == "=":
            raise ExpressionInvalidError(
                "single_equals",
                f"use '==' for comparison instead of '=' at position {tok.pos}",
            )


def _is_repository_comparison(left: Token, op: Token, right: Token) -> bool:
    if op.kind != OP or op.text != "==":
        return False
    if left.kind == IDENT and left.text in REPOSITORY_CLAIMS and right.kind == STRING:
        return True
    return right.kind == IDENT and right.text in REPOSITORY_CLAIMS and left.kind == STRING


def _check_repository_comparison(tokens: list[Token]) -> None:
    for i in range(len(tokens) - 2):
        if _is_repository_comparison(tokens[i], tokens[i + 1], tokens[i + 2]):
            return
    raise ExpressionInvalidError(
        "repository_required",
        "expression must compare the repository claim, e.g. repository == 'owner/repo'",
    )


def _expect_call(tokens: list[Token], i: int, name: str) -> int:
    """Check the argument list of a call whose name sits at ``tokens[i]``."""
    if i + 1 >= len(tokens) or tokens[i + 1].kind != LPAREN:
        raise ExpressionInvalidError("function_syntax", f"{name} must be followed by '('")
    if i + 2 >= len(tokens) or tokens[i + 2].kind == RPAREN:
        raise ExpressionInvalidError("function_syntax", f"{name}() requires an argument")
    arg = tokens[i + 2]
    if name == "startsWith":
        if arg.kind != STRING:
            raise ExpressionInvalidError(
                "function_syntax", "startsWith() expects a string literal argument"
            )
        if not arg.value:
            raise ExpressionInvalidError(
                "function_syntax", "startsWith() argument must not be empty"
            )
    elif arg.kind != IDENT:
        raise ExpressionInvalidError("function_syntax", "has() expects a claim name argument")
    if i + 3 >= len(tokens) or tokens[i + 3].kind != RPAREN:
        raise ExpressionInvalidError(
            "function_syntax", f"{name}() takes a single argument followed by ')'"
        )
    return i + 3


def _check_calls(tokens: list[Token]) -> None:
    for i, tok in enumerate(tokens):
        if tok.kind != IDENT:
            continue
        if tok.text == "has":
            _expect_call(tokens, i, "has")
        elif tok.text.endswith(".startsWith"):
            _expect_call(tokens, i, "startsWith")
        elif tok.text == "startsWith":
            # 'lit'.startsWith(...) or (expr).startsWith(...)
            has_receiver = (
                i >= 2
                and tokens[i - 1].kind == DOT
                and tokens[i - 2].kind in (IDENT, STRING, RPAREN)
            )
            if not has_receiver:
                raise ExpressionInvalidError(
                    "function_syntax", "startsWith() must be called on a claim"
                )
            _expect_call(tokens, i, "startsWith")


def validate_expression(expression: str) -> None:
    """Validate *expression*, failing on the first broken rule.

    Rules, in order: non-empty, string literals terminated, parentheses
    balanced, no bare ``=``, a repository comparison present, and
    ``startsWith``/``has`` calls well formed.

    Raises:
        ExpressionInvalidError: Naming the broken rule and the reason.
    """
    if not expression or not expression.strip():
        raise ExpressionInvalidError("non_empty", "expression cannot be empty")
    tokens = tokenize(expression)
    _check_parentheses(tokens)
    _check_single_equals(tokens)
    _check_repository_comparison(tokens)
    _check_calls(tokens)


def is_valid_expression(expression: str) -> bool:
    """Return True when :func:`validate_expression` accepts *expression*."""
    try:
        validate_expression(expression)
    except ExpressionInvalidError:
        return False
    return True


__all__ = ["Token", "tokenize", "validate_expression", "is_valid_expression", "REPOSITORY_CLAIMS"]
