"""GCP adapters for the wif capability blueprints."""

from .bindings import GCPBindingTransport
from .fetcher import GCPStateFetcher
from .provisioner import GCPProvisioner


__all__ = ["GCPBindingTransport", "GCPStateFetcher", "GCPProvisioner"]
