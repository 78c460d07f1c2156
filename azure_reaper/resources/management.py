"""
Management Resources
====================

Resource groups, management locks and management groups.

Classes
-------
ManagementGroup
    Tenant scoped. The tenant root group (named after the tenant id)
    can never be deleted and is filtered.
ResourceGroup
    Subscription scoped. Deleting a group deletes everything left in it.
ManagementLock
    Resource group scoped locks. A ``CanNotDelete`` or ``ReadOnly`` lock
    makes every other delete in the group fail with ``ScopeLocked``.

Notes
-----
Locks and management groups are not regional and report the region
``global``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from azure.mgmt.managementgroups import ManagementGroupsAPI
from azure.mgmt.resource import ManagementLockClient, ResourceManagementClient

from azure_reaper.core.base_resource import (
    Filterable,
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

GLOBAL = "global"


# =============================================================================
# Management Groups
# =============================================================================


@dataclass
class ManagementGroup(Resource, Filterable):
    client: Any = field(repr=False)
    location: ResourceLocation
    name: str
    tenant_id: str = ""
    display_name: Optional[str] = None

    def filter(self) -> Optional[str]:
        if self.name == self.tenant_id:
            return "cannot remove the tenant root management group"
        return None

    def remove(self) -> None:
        self.client.management_groups.begin_delete(self.name).result()

    def properties(self) -> Properties:
        return (
            Properties.for_location(self.location)
            .set("Name", self.name)
            .set("DisplayName", self.display_name)
        )


class ManagementGroupLister(Lister):
    def list(self, opts: ListerOptions) -> List[Resource]:
        client = opts.auth.client(ManagementGroupsAPI)
        return [
            ManagementGroup(
                client=client,
                location=ResourceLocation(region=GLOBAL),
                name=group.name,
                tenant_id=opts.tenant_id,
                display_name=group.display_name,
            )
            for group in collect(client.management_groups.list())
        ]


# =============================================================================
# Resource Groups
# =============================================================================


@dataclass
class ResourceGroup(Resource):
    client: Any = field(repr=False)
    location: ResourceLocation
    name: str
    tags: Dict[str, str] = field(default_factory=dict)

    def remove(self) -> None:
        self.client.resource_groups.begin_delete(self.name).result()

    def properties(self) -> Properties:
        return Properties.for_location(self.location).set("Name", self.name).set_tags(self.tags)


class ResourceGroupLister(Lister):
    def list(self, opts: ListerOptions) -> List[Resource]:
        client = opts.auth.client(ResourceManagementClient, opts.subscription_id)
        groups = [
            ResourceGroup(
                client=client,
                location=opts.location(group.location),
                name=group.name,
                tags=group.tags or {},
            )
            for group in collect(client.resource_groups.list())
        ]
        logger.debug(f"{len(groups)} resource group(s) in subscription {opts.subscription_id}")
        return groups


# =============================================================================
# Management Locks
# =============================================================================


@dataclass
class ManagementLock(Resource):
    client: Any = field(repr=False)
    location: ResourceLocation
    name: str
    level: Optional[str] = None
    notes: Optional[str] = None

    def remove(self) -> None:
        self.client.management_locks.delete_at_resource_group_level(
            self.location.resource_group, self.name
        )

    def properties(self) -> Properties:
        return (
            Properties.for_location(self.location)
            .set("Name", self.name)
            .set("Level", self.level)
            .set("Notes", self.notes)
        )


class ManagementLockLister(Lister):
    def list(self, opts: ListerOptions) -> List[Resource]:
        client = opts.auth.client(ManagementLockClient, opts.subscription_id)
        return [
            ManagementLock(
                client=client,
                location=opts.location(GLOBAL),
                name=lock.name,
                level=enum_value(lock.level),
                notes=lock.notes,
            )
            for lock in collect(
                client.management_locks.list_at_resource_group_level(opts.resource_group)
            )
        ]


register(Registration(
    name="ManagementGroup",
    scope=Scope.TENANT,
    resource=ManagementGroup,
    lister=ManagementGroupLister(),
))
register(Registration(
    name="ResourceGroup",
    scope=Scope.SUBSCRIPTION,
    resource=ResourceGroup,
    lister=ResourceGroupLister(),
))
register(Registration(
    name="ManagementLock",
    scope=Scope.RESOURCE_GROUP,
    resource=ManagementLock,
    lister=ManagementLockLister(),
))
