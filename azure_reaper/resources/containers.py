"""
Container Resources
===================

Container registries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from azure.mgmt.containerregistry import ContainerRegistryManagementClient

from azure_reaper.core.base_resource import (
    Lister,
    ListerOptions,
    Properties,
    Resource,
    ResourceLocation,
)
from azure_reaper.core.paging import collect
from azure_reaper.core.registry import Registration, Scope, register


@dataclass
class ContainerRegistry(Resource):
    client: Any = field(repr=False)
    location: ResourceLocation
    name: str
    tags: Dict[str, str] = field(default_factory=dict)
    login_server: Optional[str] = None

    def remove(self) -> None:
        self.client.registries.begin_delete(self.location.resource_group, self.name).result()

    def properties(self) -> Properties:
        return (
            Properties.for_location(self.location)
            .set("Name", self.name)
            .set("LoginServer", self.login_server)
            .set_tags(self.tags)
        )


class ContainerRegistryLister(Lister):
    def list(self, opts: ListerOptions) -> List[Resource]:
        client = opts.auth.client(ContainerRegistryManagementClient, opts.subscription_id)
        return [
            ContainerRegistry(
                client=client,
                location=opts.location(registry.location),
                name=registry.name,
                tags=registry.tags or {},
                login_server=registry.login_server,
            )
            for registry in collect(
                client.registries.list_by_resource_group(opts.resource_group)
            )
        ]


register(Registration(
    name="ContainerRegistry",
    scope=Scope.RESOURCE_GROUP,
    resource=ContainerRegistry,
    lister=ContainerRegistryLister(),
))
