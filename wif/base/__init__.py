"""Capability blueprints, shared models and core utilities.

Every transport adapter inherits from one of the blueprints defined here.
Import them to type-hint your own code or to plug in a custom transport.
"""

from .fetcher import StateFetcherBlueprint
from .bindings import BindingTransportBlueprint
from .provisioner import ResourceProvisionerBlueprint
from .supported_services import existing_services


__all__ = [
    "StateFetcherBlueprint",
    "BindingTransportBlueprint",
    "ResourceProvisionerBlueprint",
    "existing_services",
]
