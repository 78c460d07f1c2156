"""
Azure Resource Types
====================

Importing this package registers every resource type with the default
registry.

Each module defines, per resource type, a :class:`~azure_reaper.core.base_resource.Resource`
subclass, a :class:`~azure_reaper.core.base_resource.Lister` and a
registration carrying the type's scope and dependencies.

Modules
-------
compute
    VirtualMachine, Disk, ComputeSnapshot, SSHPublicKey
network
    NetworkInterface, NetworkSecurityGroup, PublicIPAddress, VirtualNetwork,
    ApplicationGateway, IPAllocation
storage
    StorageAccount
management
    ManagementGroup, ResourceGroup, ManagementLock
policy
    PolicyAssignment, PolicyDefinition
security
    SecurityAlert, SecurityPricing, SecurityWorkspace
keyvault
    KeyVault
monitor
    MonitorDiagnosticSetting
recovery_services
    RecoveryServicesBackupProtectedItem, RecoveryServicesBackupPolicy,
    RecoveryServicesVault
web
    AppServicePlan
consumption
    Budget
containers
    ContainerRegistry
dns
    DNSZone, PrivateDNSZone

Adding New Resource Types
-------------------------
1. Create or extend a module in this directory.
2. Implement a ``Resource`` dataclass (``remove`` and ``properties``) and
   a ``Lister``; add ``Filterable`` if some instances must be skipped.
3. Call ``register(Registration(...))`` at the bottom of the module.
4. Import the module here.

Example template::

    @dataclass
    class Widget(Resource):
        client: Any = field(repr=False)
        location: ResourceLocation
        name: str

        def remove(self) -> None:
            self.client.widgets.begin_delete(self.location.resource_group, self.name).result()

        def properties(self) -> Properties:
            return Properties.for_location(self.location).set("Name", self.name)

    register(Registration(
        name="Widget",
        scope=Scope.RESOURCE_GROUP,
        resource=Widget,
        lister=WidgetLister(),
    ))

See Also
--------
azure_reaper.core.registry : The registry and its scopes.
"""

from azure_reaper.resources import (  # noqa: F401
    compute,
    consumption,
    containers,
    dns,
    keyvault,
    management,
    monitor,
    network,
    policy,
    recovery_services,
    security,
    storage,
    web,
)
from azure_reaper.resources.compute import ComputeSnapshot, Disk, SSHPublicKey, VirtualMachine
from azure_reaper.resources.consumption import Budget
from azure_reaper.resources.containers import ContainerRegistry
from azure_reaper.resources.dns import DNSZone, PrivateDNSZone
from azure_reaper.resources.keyvault import KeyVault
from azure_reaper.resources.management import ManagementGroup, ManagementLock, ResourceGroup
from azure_reaper.resources.monitor import MonitorDiagnosticSetting
from azure_reaper.resources.network import (
    ApplicationGateway,
    IPAllocation,
    NetworkInterface,
    NetworkSecurityGroup,
    PublicIPAddress,
    VirtualNetwork,
)
from azure_reaper.resources.policy import PolicyAssignment, PolicyDefinition
from azure_reaper.resources.recovery_services import (
    RecoveryServicesBackupPolicy,
    RecoveryServicesBackupProtectedItem,
    RecoveryServicesVault,
)
from azure_reaper.resources.security import SecurityAlert, SecurityPricing, SecurityWorkspace
from azure_reaper.resources.storage import StorageAccount
from azure_reaper.resources.web import AppServicePlan

__all__ = [
    # Compute
    "VirtualMachine",
    "Disk",
    "ComputeSnapshot",
    "SSHPublicKey",
    # Network
    "NetworkInterface",
    "NetworkSecurityGroup",
    "PublicIPAddress",
    "VirtualNetwork",
    "ApplicationGateway",
    "IPAllocation",
    # Storage
    "StorageAccount",
    # Management
    "ManagementGroup",
    "ResourceGroup",
    "ManagementLock",
    # Policy
    "PolicyAssignment",
    "PolicyDefinition",
    # Security
    "SecurityAlert",
    "SecurityPricing",
    "SecurityWorkspace",
    # Others
    "KeyVault",
    "MonitorDiagnosticSetting",
    "RecoveryServicesBackupProtectedItem",
    "RecoveryServicesBackupPolicy",
    "RecoveryServicesVault",
    "AppServicePlan",
    "Budget",
    "ContainerRegistry",
    "DNSZone",
    "PrivateDNSZone",
]
