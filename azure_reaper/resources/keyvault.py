"""
Key Vaults
==========

Vaults are listed once per subscription; the resource group is taken
from each vault's id.

Notes
-----
Deleting a vault with soft-delete enabled leaves it recoverable until
its retention period ends. Purging is not attempted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from azure.mgmt.keyvault import KeyVaultManagementClient

from azure_reaper.core.base_resource import (
    Lister,
    ListerOptions,
    Properties,
    Resource,
    ResourceLocation,
    resource_group_from_id,
)
from azure_reaper.core.paging import collect
from azure_reaper.core.registry import Registration, Scope, register


@dataclass
class KeyVault(Resource):
    client: Any = field(repr=False)
    location: ResourceLocation
    name: str
    tags: Dict[str, str] = field(default_factory=dict)

    def remove(self) -> None:
        self.client.vaults.delete(self.location.resource_group, self.name)

    def properties(self) -> Properties:
        return Properties.for_location(self.location).set("Name", self.name).set_tags(self.tags)


class KeyVaultLister(Lister):
    def list(self, opts: ListerOptions) -> List[Resource]:
        client = opts.auth.client(KeyVaultManagementClient, opts.subscription_id)
        return [
            KeyVault(
                client=client,
                location=ResourceLocation(
                    region=vault.location,
                    subscription_id=opts.subscription_id,
                    resource_group=resource_group_from_id(vault.id),
                ),
                name=vault.name,
                tags=vault.tags or {},
            )
            for vault in collect(client.vaults.list_by_subscription())
        ]


register(Registration(
    name="KeyVault",
    scope=Scope.SUBSCRIPTION,
    resource=KeyVault,
    lister=KeyVaultLister(),
))
