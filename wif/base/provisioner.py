"""Resource provisioner blueprint."""

from abc import ABC, abstractmethod

from .models import ResourceDescriptor


class ResourceProvisionerBlueprint(ABC):
    """Abstract create / update / delete capability for managed resources.

    Each method receives the same :class:`ResourceDescriptor` the conflict
    detector inspected; the descriptor's ``desired`` dict carries the
    configuration to apply.
    """

    @abstractmethod
    def create(self, descriptor: ResourceDescriptor) -> None:
        """Create the resource described by *descriptor*.

        Raises:
            ProvisioningError: On API failure.
        """

    @abstractmethod
    def update(self, descriptor: ResourceDescriptor) -> None:
        """Update an existing resource in place to match ``desired``.

        Raises:
            ProvisioningError: On API failure.
        """

    @abstractmethod
    def delete(self, descriptor: ResourceDescriptor) -> None:
        """Delete the resource. Deleting an absent resource is not an error.

        Raises:
            ProvisioningError: On API failure.
        """
