"""
Network Resources
=================

Network interfaces, security groups, public IP addresses, virtual
networks, application gateways and IP allocations, all listed per
resource group through ``NetworkManagementClient``.

Removal order
-------------
1. Virtual machines release their network interfaces.
2. Network interfaces release security groups, public IPs and subnets.
3. Application gateways release public IPs and subnets.

Classes
-------
NetworkResource
    Shared shape of every network type; subclasses only name the
    client operations group.
NetworkLister
    Lists one operations group in one resource group.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Type

from azure.mgmt.network import NetworkManagementClient

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
class NetworkResource(Resource):
    """
    A resource group scoped network resource.

    Subclasses set ``operations``, the attribute of
    ``NetworkManagementClient`` that lists and deletes them.
    """

    operations: ClassVar[str] = ""

    client: Any = field(repr=False)
    location: ResourceLocation
    name: str
    tags: Dict[str, str] = field(default_factory=dict)
    provisioning_state: str = ""

    @classmethod
    def from_entity(cls, client: Any, opts: ListerOptions, entity: Any) -> NetworkResource:
        """Build an instance from an SDK model returned by a list call."""
        return cls(
            client=client,
            location=opts.location(entity.location),
            name=entity.name,
            tags=entity.tags or {},
            provisioning_state=enum_value(entity.provisioning_state) or "",
        )

    def remove(self) -> None:
        group = getattr(self.client, self.operations)
        group.begin_delete(self.location.resource_group, self.name).result()

    def properties(self) -> Properties:
        return (
            Properties.for_location(self.location)
            .set("Name", self.name)
            .set("ProvisioningState", self.provisioning_state or None)
            .set_tags(self.tags)
        )


@dataclass
class NetworkInterface(NetworkResource):
    operations: ClassVar[str] = "network_interfaces"


@dataclass
class NetworkSecurityGroup(NetworkResource):
    operations: ClassVar[str] = "network_security_groups"


@dataclass
class PublicIPAddress(NetworkResource):
    operations: ClassVar[str] = "public_ip_addresses"

    ip_address: str = ""

    @classmethod
    def from_entity(cls, client: Any, opts: ListerOptions, entity: Any) -> PublicIPAddress:
        address = super().from_entity(client, opts, entity)
        address.ip_address = entity.ip_address or ""
        return address

    def properties(self) -> Properties:
        return super().properties().set("IPAddress", self.ip_address or None)


@dataclass
class VirtualNetwork(NetworkResource):
    operations: ClassVar[str] = "virtual_networks"


@dataclass
class ApplicationGateway(NetworkResource):
    operations: ClassVar[str] = "application_gateways"


@dataclass
class IPAllocation(NetworkResource):
    operations: ClassVar[str] = "ip_allocations"


class NetworkLister(Lister):
    """
    Lists one operations group of ``NetworkManagementClient``.

    Parameters
    ----------
    resource : type
        The :class:`NetworkResource` subclass to build.
    list_method : str, default="list"
        Method taking the resource group name.
    """

    def __init__(self, resource: Type[NetworkResource], list_method: str = "list") -> None:
        self.resource = resource
        self.list_method = list_method

    def list(self, opts: ListerOptions) -> List[Resource]:
        client = opts.auth.client(NetworkManagementClient, opts.subscription_id)
        operations = getattr(client, self.resource.operations)
        paged = getattr(operations, self.list_method)(opts.resource_group)

        resources: List[Resource] = [
            self.resource.from_entity(client, opts, entity) for entity in collect(paged)
        ]
        logger.debug(
            f"{len(resources)} {self.resource.__name__} found in {opts.resource_group}"
        )
        return resources

    def __repr__(self) -> str:
        return f"NetworkLister({self.resource.__name__})"


register(Registration(
    name="NetworkInterface",
    scope=Scope.RESOURCE_GROUP,
    resource=NetworkInterface,
    lister=NetworkLister(NetworkInterface),
    depends_on=("VirtualMachine",),
))
register(Registration(
    name="NetworkSecurityGroup",
    scope=Scope.RESOURCE_GROUP,
    resource=NetworkSecurityGroup,
    lister=NetworkLister(NetworkSecurityGroup),
    depends_on=("NetworkInterface",),
))
register(Registration(
    name="PublicIPAddress",
    scope=Scope.RESOURCE_GROUP,
    resource=PublicIPAddress,
    lister=NetworkLister(PublicIPAddress),
    depends_on=("NetworkInterface", "ApplicationGateway"),
    deprecated_aliases=("PublicIPAddresses",),
))
register(Registration(
    name="VirtualNetwork",
    scope=Scope.RESOURCE_GROUP,
    resource=VirtualNetwork,
    lister=NetworkLister(VirtualNetwork),
    depends_on=("NetworkInterface", "ApplicationGateway"),
))
register(Registration(
    name="ApplicationGateway",
    scope=Scope.RESOURCE_GROUP,
    resource=ApplicationGateway,
    lister=NetworkLister(ApplicationGateway),
))
register(Registration(
    name="IPAllocation",
    scope=Scope.RESOURCE_GROUP,
    resource=IPAllocation,
    lister=NetworkLister(IPAllocation, list_method="list_by_resource_group"),
))
