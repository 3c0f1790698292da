"""
wif exception hierarchy.

Every concern has a top-level error that inherits from :class:`WIFError`
and, where callers need to tell failure modes apart, specific sub-exceptions.
"""


# ── Base ──────────────────────────────────────────────────────────────
class WIFError(Exception):
    """Root exception for all wif errors."""


# ── Trust conditions ──────────────────────────────────────────────────
class ConditionError(WIFError):
    """Base exception for trust-condition compilation and validation."""


class InvalidSpecError(ConditionError):
    """Malformed trust-condition input (caller error, never retried)."""


class ExpressionInvalidError(ConditionError):
    """A conditional-access expression failed validation.

    Attributes:
        rule: Name of the validation rule that failed.
        reason: Human-readable explanation.
    """

    def __init__(self, rule: str, reason: str) -> None:
        self.rule = rule
        self.reason = reason
        super().__init__(f"{rule}: {reason}")


# ── Live state ────────────────────────────────────────────────────────
class StateError(WIFError):
    """Base exception for reading live cloud state."""


class StateFetchFailedError(StateError):
    """Transport error while reading the live state of a resource."""


# ── Bindings ──────────────────────────────────────────────────────────
class BindingError(WIFError):
    """Base exception for IAM binding operations."""


class BindingOperationFailedError(BindingError):
    """Transport error while creating, listing or removing a binding."""


# ── Provisioning ──────────────────────────────────────────────────────
class ProvisioningError(WIFError):
    """Failed to create, update or delete a managed resource."""
