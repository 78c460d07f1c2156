"""
Compute Resources
=================

Virtual machines, managed disks, snapshots and SSH public keys.

Disks and snapshots are removed only after every virtual machine is gone,
since an attached disk cannot be deleted.

Classes
-------
VirtualMachine, Disk, ComputeSnapshot
    Resource group scoped.
SSHPublicKey
    Subscription scoped; listed once per subscription.

Example
-------
>>> opts = ListerOptions(auth=auth, tenant_id="t1", subscription_id="s1",
...                      resource_group="rg1")
>>> for vm in VirtualMachineLister().list(opts):
...     print(vm, vm.properties())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from azure.mgmt.compute import ComputeManagementClient

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

# Module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Virtual Machines
# =============================================================================


@dataclass
class VirtualMachine(Resource):
    """A virtual machine; deleted with ``force_deletion``."""

    client: Any = field(repr=False)
    location: ResourceLocation
    name: str
    tags: Dict[str, str] = field(default_factory=dict)
    created: Optional[datetime] = None
    vm_size: Optional[str] = None

    def remove(self) -> None:
        self.client.virtual_machines.begin_delete(
            self.location.resource_group, self.name, force_deletion=True
        ).result()

    def properties(self) -> Properties:
        return (
            Properties.for_location(self.location)
            .set("Name", self.name)
            .set("CreationTime", self.created)
            .set("VMSize", self.vm_size)
            .set_tags(self.tags)
        )


class VirtualMachineLister(Lister):
    def list(self, opts: ListerOptions) -> List[Resource]:
        client = opts.auth.client(ComputeManagementClient, opts.subscription_id)
        logger.debug(f"Listing virtual machines in {opts.resource_group}")
        return [
            VirtualMachine(
                client=client,
                location=opts.location(vm.location),
                name=vm.name,
                tags=vm.tags or {},
                created=vm.time_created,
                vm_size=vm.hardware_profile.vm_size if vm.hardware_profile else None,
            )
            for vm in collect(client.virtual_machines.list(opts.resource_group))
        ]


# =============================================================================
# Disks and Snapshots
# =============================================================================


@dataclass
class Disk(Resource):
    client: Any = field(repr=False)
    location: ResourceLocation
    name: str
    tags: Dict[str, str] = field(default_factory=dict)
    created: Optional[datetime] = None
    disk_state: Optional[str] = None
    size_gb: Optional[int] = None

    def remove(self) -> None:
        self.client.disks.begin_delete(self.location.resource_group, self.name).result()

    def properties(self) -> Properties:
        return (
            Properties.for_location(self.location)
            .set("Name", self.name)
            .set("CreationTime", self.created)
            .set("DiskState", self.disk_state)
            .set("SizeGB", self.size_gb)
            .set_tags(self.tags)
        )


class DiskLister(Lister):
    def list(self, opts: ListerOptions) -> List[Resource]:
        client = opts.auth.client(ComputeManagementClient, opts.subscription_id)
        return [
            Disk(
                client=client,
                location=opts.location(disk.location),
                name=disk.name,
                tags=disk.tags or {},
                created=disk.time_created,
                disk_state=disk.disk_state,
                size_gb=disk.disk_size_gb,
            )
            for disk in collect(client.disks.list_by_resource_group(opts.resource_group))
        ]


@dataclass
class ComputeSnapshot(Resource):
    client: Any = field(repr=False)
    location: ResourceLocation
    name: str
    tags: Dict[str, str] = field(default_factory=dict)
    created: Optional[datetime] = None

    def remove(self) -> None:
        self.client.snapshots.begin_delete(self.location.resource_group, self.name).result()

    def properties(self) -> Properties:
        return (
            Properties.for_location(self.location)
            .set("Name", self.name)
            .set("CreationTime", self.created)
            .set_tags(self.tags)
        )


class ComputeSnapshotLister(Lister):
    def list(self, opts: ListerOptions) -> List[Resource]:
        client = opts.auth.client(ComputeManagementClient, opts.subscription_id)
        return [
            ComputeSnapshot(
                client=client,
                location=opts.location(snapshot.location),
                name=snapshot.name,
                tags=snapshot.tags or {},
                created=snapshot.time_created,
            )
            for snapshot in collect(
                client.snapshots.list_by_resource_group(opts.resource_group)
            )
        ]


# =============================================================================
# SSH Public Keys
# =============================================================================


@dataclass
class SSHPublicKey(Resource):
    client: Any = field(repr=False)
    location: ResourceLocation
    name: str
    tags: Dict[str, str] = field(default_factory=dict)

    def remove(self) -> None:
        self.client.ssh_public_keys.delete(self.location.resource_group, self.name)

    def properties(self) -> Properties:
        return Properties.for_location(self.location).set("Name", self.name).set_tags(self.tags)


class SSHPublicKeyLister(Lister):
    """Lists every key in the subscription; the group comes from the id."""

    def list(self, opts: ListerOptions) -> List[Resource]:
        client = opts.auth.client(ComputeManagementClient, opts.subscription_id)
        return [
            SSHPublicKey(
                client=client,
                location=ResourceLocation(
                    region=key.location,
                    subscription_id=opts.subscription_id,
                    resource_group=resource_group_from_id(key.id),
                ),
                name=key.name,
                tags=key.tags or {},
            )
            for key in collect(client.ssh_public_keys.list_by_subscription())
        ]


register(Registration(
    name="VirtualMachine",
    scope=Scope.RESOURCE_GROUP,
    resource=VirtualMachine,
    lister=VirtualMachineLister(),
))
register(Registration(
    name="Disk",
    scope=Scope.RESOURCE_GROUP,
    resource=Disk,
    lister=DiskLister(),
    depends_on=("VirtualMachine",),
))
register(Registration(
    name="ComputeSnapshot",
    scope=Scope.RESOURCE_GROUP,
    resource=ComputeSnapshot,
    lister=ComputeSnapshotLister(),
    depends_on=("VirtualMachine",),
))
register(Registration(
    name="SSHPublicKey",
    scope=Scope.SUBSCRIPTION,
    resource=SSHPublicKey,
    lister=SSHPublicKeyLister(),
))
