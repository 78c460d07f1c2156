"""
Tests for the Azure resource types.
"""

from enum import Enum
from types import SimpleNamespace
from unittest.mock import ANY, MagicMock

import pytest
from azure.mgmt.compute import ComputeManagementClient
from azure.mgmt.keyvault import KeyVaultManagementClient
from azure.mgmt.managementgroups import ManagementGroupsAPI
from azure.mgmt.network import NetworkManagementClient
from azure.mgmt.recoveryservices import RecoveryServicesClient
from azure.mgmt.recoveryservicesbackup import RecoveryServicesBackupClient
from azure.mgmt.resource import PolicyClient
from azure.mgmt.security import SecurityCenter

from azure_reaper.core.base_resource import ListerOptions, ResourceLocation, enum_value
from azure_reaper.core.exceptions import RemovalError
from azure_reaper.resources.compute import VirtualMachineLister
from azure_reaper.resources.keyvault import KeyVaultLister
from azure_reaper.resources.management import ManagementGroupLister
from azure_reaper.resources.network import NetworkLister, PublicIPAddress
from azure_reaper.resources.policy import PolicyAssignmentLister, PolicyDefinitionLister
from azure_reaper.resources.recovery_services import (
    RecoveryServicesBackupProtectedItem,
    RecoveryServicesBackupProtectedItemLister,
    operation_id_from_headers,
    protected_item_path,
)
from azure_reaper.resources.security import (
    SecurityAlertLister,
    SecurityPricingLister,
    alert_region,
)

from conftest import FakeAuth, FakePager, entity

TENANT = "t1"
SUB = "s1"


def options(auth, group=""):
    return ListerOptions(auth=auth, tenant_id=TENANT, subscription_id=SUB, resource_group=group)


class Tier(str, Enum):
    FREE = "Free"
    STANDARD = "Standard"


class TestEnumValue:
    """Tests for enum_value()."""

    def test_enum(self):
        assert str(Tier.FREE) != "Free"
        assert enum_value(Tier.FREE) == "Free"

    def test_plain_values(self):
        assert enum_value("Dismissed") == "Dismissed"
        assert enum_value(None) is None


class TestVirtualMachine:
    """Tests for virtual machines."""

    def test_list_and_remove(self):
        client = MagicMock()
        client.virtual_machines.list.return_value = FakePager(
            [entity(name="vm-1", location="eastus", time_created=None,
                    hardware_profile=entity(vm_size="Standard_B1s"), tags={"env": "dev"})],
        )
        auth = FakeAuth({ComputeManagementClient: client})

        (vm,) = VirtualMachineLister().list(options(auth, "rg1"))

        client.virtual_machines.list.assert_called_once_with("rg1")
        assert auth.calls == [(ComputeManagementClient, (SUB,))]
        assert vm.properties() == {
            "Region": "eastus",
            "SubscriptionID": SUB,
            "ResourceGroup": "rg1",
            "Name": "vm-1",
            "VMSize": "Standard_B1s",
            "tag:env": "dev",
        }

        vm.remove()
        client.virtual_machines.begin_delete.assert_called_once_with(
            "rg1", "vm-1", force_deletion=True
        )

    def test_paging_error_propagates(self):
        client = MagicMock()
        client.virtual_machines.list.return_value = FakePager(
            [entity(name="vm-1")], error=RuntimeError("page 2 failed")
        )
        auth = FakeAuth({ComputeManagementClient: client})

        with pytest.raises(RuntimeError):
            VirtualMachineLister().list(options(auth, "rg1"))


class TestNetwork:
    """Tests for network resources."""

    def test_public_ip_address(self):
        client = MagicMock()
        client.public_ip_addresses.list.return_value = FakePager(
            [entity(name="pip-1", location="westus", provisioning_state="Succeeded",
                    ip_address="20.1.2.3")],
        )
        auth = FakeAuth({NetworkManagementClient: client})

        (address,) = NetworkLister(PublicIPAddress).list(options(auth, "rg1"))

        assert isinstance(address, PublicIPAddress)
        assert address.properties()["IPAddress"] == "20.1.2.3"
        assert address.properties()["ProvisioningState"] == "Succeeded"

        address.remove()
        client.public_ip_addresses.begin_delete.assert_called_once_with("rg1", "pip-1")

    def test_list_method(self):
        client = MagicMock()
        client.public_ip_addresses.list_by_resource_group.return_value = FakePager([])
        auth = FakeAuth({NetworkManagementClient: client})

        lister = NetworkLister(PublicIPAddress, list_method="list_by_resource_group")

        assert lister.list(options(auth, "rg1")) == []
        client.public_ip_addresses.list_by_resource_group.assert_called_once_with("rg1")


class TestPolicy:
    """Tests for policy assignments and definitions."""

    def test_definitions_skip_built_in(self):
        client = MagicMock()
        client.policy_definitions.list.return_value = FakePager(
            [entity(name="custom", display_name="Custom", policy_type="Custom"),
             entity(name="builtin", display_name="Built", policy_type="BuiltIn")],
            [entity(name="static", display_name="Static", policy_type="Static")],
        )
        auth = FakeAuth({PolicyClient: client})

        definitions = PolicyDefinitionLister().list(options(auth))

        assert [d.name for d in definitions] == ["custom"]
        assert definitions[0].location.region == "global"

        definitions[0].remove()
        client.policy_definitions.delete.assert_called_once_with("custom")

    def test_system_assignments_filtered(self):
        client = MagicMock()
        client.policy_assignments.list.return_value = FakePager(
            [entity(name="sys.audit", scope="/subscriptions/s1", display_name=None,
                    enforcement_mode="Default"),
             entity(name="mine", scope="/subscriptions/s1", display_name="Mine",
                    enforcement_mode=None)],
        )
        auth = FakeAuth({PolicyClient: client})

        system, mine = PolicyAssignmentLister().list(options(auth))

        assert system.filter() == "cannot remove built-in policy"
        assert system.properties()["EnforcementMode"] == "Default"
        assert mine.filter() is None

        mine.remove()
        client.policy_assignments.delete.assert_called_once_with("/subscriptions/s1", "mine")


class TestSecurity:
    """Tests for Defender for Cloud resources."""

    def test_alert_region(self):
        alert_id = "/subscriptions/s1/providers/Microsoft.Security/locations/centralus/alerts/a1"
        assert alert_region(alert_id) == "centralus"
        assert alert_region("/subscriptions/s1") is None
        assert alert_region(None) is None

    def test_alerts(self):
        client = MagicMock()
        client.alerts.list.return_value = FakePager([
            entity(
                id="/subscriptions/s1/providers/Microsoft.Security/locations/centralus/alerts/a1",
                name="a1", alert_display_name="Suspicious", status="Active", severity="High",
            ),
            entity(
                id="/subscriptions/s1/providers/Microsoft.Security/locations/centralus/alerts/a2",
                name="a2", alert_display_name="Old", status="Dismissed", severity="Low",
            ),
        ])
        auth = FakeAuth({SecurityCenter: client})

        active, dismissed = SecurityAlertLister().list(options(auth))

        assert active.filter() is None
        assert dismissed.filter() == "alert already dismissed"

        active.remove()
        client.alerts.update_subscription_level_state_to_dismiss.assert_called_once_with(
            "centralus", "a1"
        )

    def test_pricings(self):
        client = MagicMock()
        client.pricings.list.return_value = entity(value=[
            entity(name="VirtualMachines", pricing_tier=Tier.STANDARD),
            entity(name="StorageAccounts", pricing_tier=Tier.FREE),
            entity(name="Discovery", pricing_tier=Tier.STANDARD),
            entity(name="FoundationalCspm", pricing_tier=Tier.FREE),
        ])
        auth = FakeAuth({SecurityCenter: client})

        vms, storage, discovery, cspm = SecurityPricingLister().list(options(auth))

        client.pricings.list.assert_called_once_with("subscriptions/s1")
        assert vms.filter() is None
        assert storage.filter() == "already set to default, free tier"
        assert discovery.filter() == "already set to default, standard tier"
        assert cspm.filter() is None
        assert vms.properties()["PricingTier"] == "Standard"

        vms.remove()
        cspm.remove()
        (_, name, pricing), _ = client.pricings.update.call_args_list[0]
        assert name == "VirtualMachines"
        assert pricing.pricing_tier == "Free"
        (_, name, pricing), _ = client.pricings.update.call_args_list[1]
        assert name == "FoundationalCspm"
        assert pricing.pricing_tier == "Standard"


class TestManagementGroup:
    """Tests for management groups."""

    def test_root_group_filtered(self):
        client = MagicMock()
        client.management_groups.list.return_value = FakePager(
            [entity(name=TENANT, display_name="Tenant Root Group"),
             entity(name="mg-dev", display_name="Dev")],
        )
        auth = FakeAuth({ManagementGroupsAPI: client})

        root, dev = ManagementGroupLister().list(ListerOptions(auth=auth, tenant_id=TENANT))

        assert auth.calls == [(ManagementGroupsAPI, ())]
        assert root.filter() == "cannot remove the tenant root management group"
        assert dev.filter() is None
        assert dev.properties() == {"Region": "global", "Name": "mg-dev", "DisplayName": "Dev"}


class TestKeyVault:
    """Tests for key vaults."""

    def test_group_from_id(self):
        client = MagicMock()
        client.vaults.list_by_subscription.return_value = FakePager([
            entity(
                id="/subscriptions/s1/resourceGroups/rg-kv/providers/Microsoft.KeyVault/vaults/kv1",
                name="kv1",
                location="eastus",
            ),
        ])
        auth = FakeAuth({KeyVaultManagementClient: client})

        (vault,) = KeyVaultLister().list(options(auth))

        assert vault.location.resource_group == "rg-kv"
        vault.remove()
        client.vaults.delete.assert_called_once_with("rg-kv", "kv1")


class TestRecoveryServices:
    """Tests for recovery services resources."""

    ITEM_ID = (
        "/subscriptions/s1/resourceGroups/rg1/providers/Microsoft.RecoveryServices"
        "/vaults/v1/backupFabrics/Azure/protectionContainers/c1/protectedItems/i1"
    )

    def test_protected_item_path(self):
        assert protected_item_path(self.ITEM_ID) == ("Azure", "c1")
        assert protected_item_path(None) == (None, None)

    def test_protected_items(self):
        vaults = MagicMock()
        vaults.vaults.list_by_resource_group.return_value = FakePager([entity(name="v1")])
        backup = MagicMock()
        backup.backup_protected_items.list.return_value = FakePager(
            [entity(id=self.ITEM_ID, name="i1", location="eastus")]
        )
        auth = FakeAuth({RecoveryServicesClient: vaults, RecoveryServicesBackupClient: backup})

        (item,) = RecoveryServicesBackupProtectedItemLister().list(options(auth, "rg1"))

        backup.backup_protected_items.list.assert_called_once_with("v1", "rg1")
        assert (item.vault, item.fabric, item.container) == ("v1", "Azure", "c1")


class TestProtectedItemRemoval:
    """Tests for removing a backup protected item."""

    STATUS_URL = (
        "https://management.azure.com/subscriptions/s1/resourceGroups/rg1"
        "/providers/Microsoft.RecoveryServices/vaults/v1/backupFabrics/Azure"
        "/protectionContainers/c1/protectedItems/i1/operationsStatus/op-1"
        "?api-version=2023-02-01"
    )

    @pytest.fixture
    def sleeps(self):
        return []

    @pytest.fixture
    def make_item(self, sleeps):
        def factory(client, attempts=5):
            return RecoveryServicesBackupProtectedItem(
                client=client,
                location=ResourceLocation(region="eastus", subscription_id=SUB, resource_group="rg1"),
                name="i1",
                vault="v1",
                fabric="Azure",
                container="c1",
                poll_interval=2.0,
                poll_attempts=attempts,
                sleep=sleeps.append,
            )

        return factory

    def test_operation_id_from_headers(self):
        assert operation_id_from_headers({"Azure-AsyncOperation": self.STATUS_URL}) == "op-1"
        assert operation_id_from_headers({"Location": ".../operationResults/op-2/"}) == "op-2"
        assert operation_id_from_headers({}) is None

    def test_waits_for_operation(self, make_item, sleeps):
        """Test removal returns only once the background operation succeeds."""
        client = MagicMock()
        client.protected_items.delete.return_value = {"Azure-AsyncOperation": self.STATUS_URL}
        client.protected_item_operation_statuses.get.side_effect = [
            SimpleNamespace(status="InProgress", error=None),
            SimpleNamespace(status="InProgress", error=None),
            SimpleNamespace(status="Succeeded", error=None),
        ]

        make_item(client).remove()

        client.protected_items.delete.assert_called_once_with(
            "v1", "rg1", "Azure", "c1", "i1", cls=ANY
        )
        client.protected_item_operation_statuses.get.assert_called_with(
            "v1", "rg1", "Azure", "c1", "i1", "op-1"
        )
        assert client.protected_item_operation_statuses.get.call_count == 3
        assert sleeps == [2.0, 2.0]

    def test_synchronous_delete(self, make_item, sleeps):
        """Test a delete answered without an operation needs no polling."""
        client = MagicMock()
        client.protected_items.delete.return_value = {}

        make_item(client).remove()

        client.protected_item_operation_statuses.get.assert_not_called()
        assert sleeps == []

    def test_failed_operation(self, make_item):
        client = MagicMock()
        client.protected_items.delete.return_value = {"Location": self.STATUS_URL}
        client.protected_item_operation_statuses.get.return_value = SimpleNamespace(
            status="Failed", error=SimpleNamespace(message="vault is busy")
        )

        with pytest.raises(RemovalError, match="backup removal failed: vault is busy"):
            make_item(client).remove()

    def test_gives_up(self, make_item, sleeps):
        """Test an operation still running after every attempt is a failure."""
        client = MagicMock()
        client.protected_items.delete.return_value = {"Location": self.STATUS_URL}
        client.protected_item_operation_statuses.get.return_value = SimpleNamespace(
            status="InProgress", error=None
        )

        with pytest.raises(RemovalError, match="still running after 6 seconds"):
            make_item(client, attempts=3).remove()

        assert sleeps == [2.0, 2.0, 2.0]

    def test_headers_extracted_from_response(self, make_item):
        """Test the delete call asks for the raw response headers."""
        client = MagicMock()
        client.protected_items.delete.return_value = {}

        make_item(client).remove()

        extract = client.protected_items.delete.call_args.kwargs["cls"]
        response = SimpleNamespace(http_response=SimpleNamespace(headers={"Location": "x/op-9"}))
        assert extract(response, None, {}) == {"Location": "x/op-9"}
