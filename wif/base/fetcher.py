"""Live state fetcher blueprint."""

from abc import ABC, abstractmethod
from typing import Any

from .models import ResourceDescriptor


class StateFetcherBlueprint(ABC):
    """Abstract read capability for the live state of managed resources.

    The conflict detector is the only consumer; it never mutates anything
    through this interface.
    """

    @abstractmethod
    def fetch_state(self, descriptor: ResourceDescriptor) -> dict[str, Any] | None:
        """Return the live state of the resource named by *descriptor*.

        The returned dict uses the same field names as the descriptor's
        ``desired`` configuration for its kind:

            - **ServiceAccount**: ``display_name``, ``description``,
              ``disabled``, ``roles``, ``email``.
            - **WorkloadIdentityPool**: ``display_name``, ``description``,
              ``disabled``, ``state``.
            - **WorkloadIdentityProvider**: the pool fields plus
              ``issuer_uri``, ``allowed_audiences``, ``attribute_mapping``,
              ``attribute_condition``.

        Returns:
            The state dict, or ``None`` when the resource does not exist.

        Raises:
            StateFetchFailedError: On transport failure.
        """
