"""
DNS Resources
=============

Public DNS zones, listed per resource group, and private DNS zones,
listed once per subscription with the group taken from the zone id.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from azure.mgmt.dns import DnsManagementClient
from azure.mgmt.privatedns import PrivateDnsManagementClient

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
class DNSZone(Resource):
    client: Any = field(repr=False)
    location: ResourceLocation
    name: str
    tags: Dict[str, str] = field(default_factory=dict)
    record_sets: Optional[int] = None

    def remove(self) -> None:
        self.client.zones.begin_delete(self.location.resource_group, self.name).result()

    def properties(self) -> Properties:
        return (
            Properties.for_location(self.location)
            .set("Name", self.name)
            .set("RecordSets", self.record_sets)
            .set_tags(self.tags)
        )


class DNSZoneLister(Lister):
    def list(self, opts: ListerOptions) -> List[Resource]:
        client = opts.auth.client(DnsManagementClient, opts.subscription_id)
        return [
            DNSZone(
                client=client,
                location=opts.location(zone.location),
                name=zone.name,
                tags=zone.tags or {},
                record_sets=zone.number_of_record_sets,
            )
            for zone in collect(client.zones.list_by_resource_group(opts.resource_group))
        ]


@dataclass
class PrivateDNSZone(Resource):
    client: Any = field(repr=False)
    location: ResourceLocation
    name: str
    tags: Dict[str, str] = field(default_factory=dict)

    def remove(self) -> None:
        self.client.private_zones.begin_delete(self.location.resource_group, self.name).result()

    def properties(self) -> Properties:
        return Properties.for_location(self.location).set("Name", self.name).set_tags(self.tags)


class PrivateDNSZoneLister(Lister):
    def list(self, opts: ListerOptions) -> List[Resource]:
        client = opts.auth.client(PrivateDnsManagementClient, opts.subscription_id)
        return [
            PrivateDNSZone(
                client=client,
                location=ResourceLocation(
                    region=zone.location,
                    subscription_id=opts.subscription_id,
                    resource_group=resource_group_from_id(zone.id),
                ),
                name=zone.name,
                tags=zone.tags or {},
            )
            for zone in collect(client.private_zones.list())
        ]


register(Registration(
    name="DNSZone",
    scope=Scope.RESOURCE_GROUP,
    resource=DNSZone,
    lister=DNSZoneLister(),
))
register(Registration(
    name="PrivateDNSZone",
    scope=Scope.SUBSCRIPTION,
    resource=PrivateDNSZone,
    lister=PrivateDNSZoneLister(),
))
