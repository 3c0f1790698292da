"""Universal adapter factory.

Provides :func:`universal_factory`, the single entry-point for creating the
GCP adapters behind the capability blueprints. Typed ``@overload``
signatures let IDEs autocomplete the returned adapter's methods. Adapters
are cached per service + config + options, so repeated calls share SDK
clients.
"""

from typing import overload, Literal, Any

from wif.base import (
    StateFetcherBlueprint,
    BindingTransportBlueprint,
    ResourceProvisionerBlueprint,
    existing_services,
)
from wif.base.client_cache import ClientCache
from wif.base.config import GCPConfig, validate_config
from wif.gcp.factory import SERVICE_REGISTRY


@overload
def universal_factory(
    service_name: Literal["state_fetcher"], config: dict | GCPConfig, **options: Any
) -> StateFetcherBlueprint: ...


@overload
def universal_factory(
    service_name: Literal["provisioner"], config: dict | GCPConfig, **options: Any
) -> ResourceProvisionerBlueprint: ...


@overload
def universal_factory(
    service_name: Literal["bindings"], config: dict | GCPConfig, **options: Any
) -> BindingTransportBlueprint: ...


def universal_factory(
    service_name: existing_services,
    config: dict | GCPConfig,
    **options: Any,
) -> Any:
    """
    Create (or reuse) the GCP adapter for *service_name*.
    Args:
        service_name: 'state_fetcher', 'provisioner' or 'bindings'.
        config: Configuration dictionary (or validated GCPConfig).
        **options: Extra constructor arguments; 'bindings' needs
            ``service_account``, the email or account id whose IAM policy
            holds the bindings.
    Returns:
        An instance of the requested adapter.
    Raises:
        ValueError: If the service is not supported.
        pydantic.ValidationError: If the config is invalid.
    """
    if service_name not in SERVICE_REGISTRY:
        raise ValueError(f"Unsupported service '{service_name}'")

    service_class = SERVICE_REGISTRY[service_name]
    config_obj = validate_config(config)
    return ClientCache().get_or_create(
        service_name,
        config_obj.model_dump(),
        lambda: service_class(config_obj, **options),
        options,
    )
