"""GCP adapter factory.

Maps service names to their GCP implementations.
``SERVICE_REGISTRY`` is consumed by :func:`wif.factory.universal_factory`.
"""

from wif.gcp.bindings import GCPBindingTransport
from wif.gcp.fetcher import GCPStateFetcher
from wif.gcp.provisioner import GCPProvisioner


SERVICE_REGISTRY: dict[str, type] = {
    "state_fetcher": GCPStateFetcher,
    "provisioner": GCPProvisioner,
    "bindings": GCPBindingTransport,
}
