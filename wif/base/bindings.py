"""IAM binding transport blueprint."""

from abc import ABC, abstractmethod

from .models import IAMBinding


class BindingTransportBlueprint(ABC):
    """Abstract transport for conditional IAM bindings.

    Implementations talk to the IAM policy that holds the bindings (for GCP,
    the IAM policy of the impersonated service account). Errors are raised
    as :class:`~wif.base.exceptions.BindingOperationFailedError`.
    """

    @abstractmethod
    def list_bindings(self, principal: str | None = None) -> list[IAMBinding]:
        """List federated bindings.

        Args:
            principal: Only return bindings whose member equals this
                principal. ``None`` returns every federated binding.
        """

    @abstractmethod
    def create_binding(self, binding: IAMBinding) -> None:
        """Add *binding* to the policy."""

    @abstractmethod
    def remove_binding(self, binding: IAMBinding) -> None:
        """Remove the binding with the key of *binding* from the policy.

        Removing a binding that is not present is not an error.
        """

    def replace_binding(self, old: IAMBinding, new: IAMBinding) -> None:
        """Replace *old* by *new*.

        The default removes then creates; transports able to do both in a
        single policy write should override it.
        """
        self.remove_binding(old)
        self.create_binding(new)
