"""In-memory fakes for the capability blueprints."""

from __future__ import annotations

from typing import Any

import pytest

from wif.base.bindings import BindingTransportBlueprint
from wif.base.exceptions import BindingOperationFailedError, ProvisioningError, StateFetchFailedError
from wif.base.fetcher import StateFetcherBlueprint
from wif.base.models import IAMBinding, ResourceDescriptor
from wif.base.provisioner import ResourceProvisionerBlueprint
from wif.base.client_cache import ClientCache


class FakeCloud(StateFetcherBlueprint, ResourceProvisionerBlueprint):
    """Live state keyed by ``resource_id``; fetch and provision over one dict."""

    def __init__(self, state: dict[str, dict[str, Any]] | None = None) -> None:
        self.state: dict[str, dict[str, Any]] = dict(state or {})
        self.failing_fetch: set[str] = set()
        self.failing_ops: set[tuple[str, str]] = set()
        self.calls: list[tuple[str, str]] = []

    def fetch_state(self, descriptor: ResourceDescriptor) -> dict[str, Any] | None:
        if descriptor.resource_id in self.failing_fetch:
            raise StateFetchFailedError(f"boom: {descriptor.resource_id}")
        return self.state.get(descriptor.resource_id)

    def _op(self, op: str, descriptor: ResourceDescriptor) -> None:
        self.calls.append((op, descriptor.resource_id))
        if (op, descriptor.resource_id) in self.failing_ops:
            raise ProvisioningError(f"{op} failed: {descriptor.resource_id}")

    def create(self, descriptor: ResourceDescriptor) -> None:
        self._op("create", descriptor)
        self.state[descriptor.resource_id] = dict(descriptor.desired)

    def update(self, descriptor: ResourceDescriptor) -> None:
        self._op("update", descriptor)
        self.state[descriptor.resource_id].update(descriptor.desired)

    def delete(self, descriptor: ResourceDescriptor) -> None:
        self._op("delete", descriptor)
        self.state.pop(descriptor.resource_id, None)


class FakeBindingTransport(BindingTransportBlueprint):
    def __init__(self, bindings: list[IAMBinding] | None = None) -> None:
        self.bindings: list[IAMBinding] = list(bindings or [])
        self.fail = False
        self.calls: list[str] = []

    def _check(self, op: str) -> None:
        self.calls.append(op)
        if self.fail:
            raise BindingOperationFailedError(f"{op} failed")

    def list_bindings(self, principal: str | None = None) -> list[IAMBinding]:
        self._check("list")
        return [b for b in self.bindings if principal is None or b.member == principal]

    def create_binding(self, binding: IAMBinding) -> None:
        self._check("create")
        self.bindings.append(binding)

    def remove_binding(self, binding: IAMBinding) -> None:
        self._check("remove")
        for i, b in enumerate(self.bindings):
            if b.key == binding.key and b.member == binding.member:
                del self.bindings[i]
                return


@pytest.fixture
def cloud():
    return FakeCloud()


@pytest.fixture
def transport():
    return FakeBindingTransport()


@pytest.fixture(autouse=True)
def _clear_client_cache():
    ClientCache().clear()
    yield
    ClientCache().clear()
