"""
Pytest configuration and shared fixtures for testing.
"""

from dataclasses import dataclass, field
from types import FunctionType, SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import pytest

from azure_reaper.core.base_resource import (
    Filterable,
    Lister,
    ListerOptions,
    Properties,
    Resource,
    ResourceLocation,
)
from azure_reaper.core.registry import Registration, Registry, Scope


class FakePager:
    """Stands in for ``ItemPaged``: ``by_page()`` yields the given pages."""

    def __init__(self, *pages, error: Optional[Exception] = None):
        self.pages = [list(page) for page in pages]
        self.error = error

    def by_page(self):
        for page in self.pages:
            yield iter(page)
        if self.error is not None:
            raise self.error

    def __iter__(self):
        for page in self.pages:
            yield from page


class FakeAuth:
    """Authorization context returning preset clients keyed by class."""

    def __init__(self, clients: Optional[Dict[Any, Any]] = None):
        self.clients = clients or {}
        self.calls: List[tuple] = []

    def client(self, client_class, *args, **kwargs):
        self.calls.append((client_class, args))
        value = self.clients[client_class]
        if isinstance(value, FunctionType):
            return value(*args)
        return value

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


@dataclass
class FakeResource(Resource):
    """A resource that records its removal in a shared log."""

    location: ResourceLocation
    name: str
    log: List[str] = field(default_factory=list, repr=False)
    error: Optional[Exception] = None
    tags: Dict[str, str] = field(default_factory=dict)

    def remove(self) -> None:
        if self.error is not None:
            raise self.error
        self.log.append(self.name)

    def properties(self) -> Properties:
        return Properties.for_location(self.location).set("Name", self.name).set_tags(self.tags)


@dataclass
class ProtectedResource(FakeResource, Filterable):
    """Vetoes its own removal when its name starts with ``keep``."""

    def filter(self) -> Optional[str]:
        if self.name.startswith("keep"):
            return "protected by name"
        return None


class FakeLister(Lister):
    """
    Returns preset resources.

    ``listings`` is a list of results, one per call; the last one repeats.
    A result that is an exception is raised.
    """

    def __init__(self, *listings: Any):
        self.listings = list(listings) or [[]]
        self.calls = 0

    def list(self, opts: ListerOptions) -> List[Resource]:
        index = min(self.calls, len(self.listings) - 1)
        self.calls += 1
        result = self.listings[index]
        if isinstance(result, Exception):
            raise result
        if callable(result):
            return result(opts)
        return list(result)


def subscription_client(pager, tenants, subscriptions):
    """A ``SubscriptionClient`` stand-in listing the given tenant and subscription ids."""
    return SimpleNamespace(
        tenants=SimpleNamespace(
            list=lambda **kwargs: pager([SimpleNamespace(tenant_id=t) for t in tenants])
        ),
        subscriptions=SimpleNamespace(
            list=lambda **kwargs: pager(
                [SimpleNamespace(subscription_id=s) for s in subscriptions]
            )
        ),
    )


def resource_client(pager, groups):
    """A ``ResourceManagementClient`` stand-in listing ``(name, location)`` groups."""
    return SimpleNamespace(
        resource_groups=SimpleNamespace(
            list=lambda **kwargs: pager(
                [SimpleNamespace(name=name, location=location) for name, location in groups]
            )
        )
    )


def rg_location(region: str = "eastus", subscription_id: str = "s1", group: str = "rg1"):
    return ResourceLocation(region=region, subscription_id=subscription_id, resource_group=group)


def entity(**kwargs) -> SimpleNamespace:
    """An SDK model stand-in."""
    kwargs.setdefault("tags", None)
    return SimpleNamespace(**kwargs)


@pytest.fixture
def pager() -> Callable[..., FakePager]:
    """Factory for fake paged results."""
    return FakePager


@pytest.fixture
def make_entity() -> Callable[..., SimpleNamespace]:
    return entity


@pytest.fixture
def removal_log() -> List[str]:
    return []


@pytest.fixture
def make_resource(removal_log) -> Callable[..., FakeResource]:
    """Factory for fake resources sharing one removal log."""

    def factory(name, region="eastus", error=None, protected=False, tags=None, group="rg1"):
        cls = ProtectedResource if protected else FakeResource
        return cls(
            location=rg_location(region, group=group),
            name=name,
            log=removal_log,
            error=error,
            tags=tags or {},
        )

    return factory


@pytest.fixture
def fake_lister() -> Callable[..., FakeLister]:
    return FakeLister


@pytest.fixture
def fake_auth() -> FakeAuth:
    return FakeAuth()


@pytest.fixture
def registry() -> Registry:
    """
    A small registry mirroring the real catalog's shape.

    VirtualMachine <- Disk (resource group), ResourceGroup (subscription),
    ManagementGroup (tenant). Each lister returns nothing until its
    ``listings`` are set.
    """
    registry = Registry()
    registry.register(Registration(
        name="VirtualMachine",
        scope=Scope.RESOURCE_GROUP,
        resource=ProtectedResource,
        lister=FakeLister(),
    ))
    registry.register(Registration(
        name="Disk",
        scope=Scope.RESOURCE_GROUP,
        resource=FakeResource,
        lister=FakeLister(),
        depends_on=("VirtualMachine",),
        deprecated_aliases=("Disks",),
    ))
    registry.register(Registration(
        name="ResourceGroup",
        scope=Scope.SUBSCRIPTION,
        resource=FakeResource,
        lister=FakeLister(),
    ))
    registry.register(Registration(
        name="ManagementGroup",
        scope=Scope.TENANT,
        resource=FakeResource,
        lister=FakeLister(),
    ))
    return registry


def stock(registry: Registry, name: str, *listings: Any) -> FakeLister:
    """Set what the lister of ``name`` returns; see :class:`FakeLister`."""
    lister = registry.lookup(name).lister
    lister.listings = list(listings)
    lister.calls = 0
    return lister


@pytest.fixture
def stock_lister(registry) -> Callable[..., FakeLister]:
    def setter(name: str, *listings: Any) -> FakeLister:
        return stock(registry, name, *listings)

    return setter
