"""
Storage Resources
=================

Storage accounts. Removed after virtual machines, which may keep boot
diagnostics in them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from azure.mgmt.storage import StorageManagementClient

from azure_reaper.core.base_resource import (
    Lister,
    ListerOptions,
    Properties,
    Resource,
    ResourceLocation,
    enum_value,
)
from azure_reaper.core.paging import collect
from azure_reaper.core.registry import Registration, Scope, register

# Module logger
logger = logging.getLogger(__name__)


@dataclass
class StorageAccount(Resource):
    client: Any = field(repr=False)
    location: ResourceLocation
    name: str
    tags: Dict[str, str] = field(default_factory=dict)
    created: Optional[datetime] = None
    kind: Optional[str] = None

    def remove(self) -> None:
        self.client.storage_accounts.delete(self.location.resource_group, self.name)

    def properties(self) -> Properties:
        return (
            Properties.for_location(self.location)
            .set("Name", self.name)
            .set("CreationTime", self.created)
            .set("Kind", self.kind)
            .set_tags(self.tags)
        )


class StorageAccountLister(Lister):
    def list(self, opts: ListerOptions) -> List[Resource]:
        client = opts.auth.client(StorageManagementClient, opts.subscription_id)
        logger.debug(f"Listing storage accounts in {opts.resource_group}")
        return [
            StorageAccount(
                client=client,
                location=opts.location(account.location),
                name=account.name,
                tags=account.tags or {},
                created=account.creation_time,
                kind=enum_value(account.kind),
            )
            for account in collect(
                client.storage_accounts.list_by_resource_group(opts.resource_group)
            )
        ]


register(Registration(
    name="StorageAccount",
    scope=Scope.RESOURCE_GROUP,
    resource=StorageAccount,
    lister=StorageAccountLister(),
    depends_on=("VirtualMachine",),
))
