"""
Recovery Services Resources
===========================

Backup protected items, backup policies and the vaults holding them.

A vault cannot be deleted while it still protects items, and a policy
cannot be deleted while items reference it, so removal runs
protected items, then policies, then vaults.

Classes
-------
RecoveryServicesBackupProtectedItem
    Removal stops protection and deletes the backup data, waiting for
    the background operation to finish.
RecoveryServicesBackupPolicy
    Backup policies of every vault in the group.
RecoveryServicesVault
    The vaults themselves.

Functions
---------
protected_item_path
    Fabric and container names parsed from a protected item id.
operation_id_from_headers
    Operation id of an accepted delete.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional, Tuple

from azure.mgmt.recoveryservices import RecoveryServicesClient
from azure.mgmt.recoveryservicesbackup import RecoveryServicesBackupClient

from azure_reaper.core.base_resource import (
    Lister,
    ListerOptions,
    Properties,
    Resource,
    ResourceLocation,
    enum_value,
)
from azure_reaper.core.exceptions import RemovalError
from azure_reaper.core.paging import collect
from azure_reaper.core.registry import Registration, Scope, register

# Module logger
logger = logging.getLogger(__name__)

# Status checks while a protected item is removed in the background
OPERATION_POLL_INTERVAL = 10.0
OPERATION_POLL_ATTEMPTS = 90

TERMINAL_FAILURES = ("Failed", "Canceled", "Invalid")


def protected_item_path(item_id: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """
    Return ``(fabric, container)`` from a protected item id.

    Example
    -------
    >>> protected_item_path(
    ...     "/subscriptions/s1/resourceGroups/rg1/providers/Microsoft.RecoveryServices"
    ...     "/vaults/v1/backupFabrics/Azure/protectionContainers/c1/protectedItems/i1"
    ... )
    ('Azure', 'c1')
    """
    parts = (item_id or "").split("/")
    fabric = container = None
    for index, part in enumerate(parts[:-1]):
        key = part.lower()
        if key == "backupfabrics":
            fabric = parts[index + 1]
        elif key == "protectioncontainers":
            container = parts[index + 1]
    return fabric, container


def operation_id_from_headers(headers: Mapping[str, str]) -> Optional[str]:
    """
    Return the operation id announced by an accepted (202) delete.

    Example
    -------
    >>> operation_id_from_headers({
    ...     "Azure-AsyncOperation": ".../operationsStatus/op-1?api-version=2023-02-01"
    ... })
    'op-1'
    """
    for header in ("Azure-AsyncOperation", "Location"):
        url = headers.get(header)
        if url:
            return url.split("?")[0].rstrip("/").split("/")[-1]
    return None


def _vault_names(opts: ListerOptions) -> List[str]:
    client = opts.auth.client(RecoveryServicesClient, opts.subscription_id)
    return [
        vault.name
        for vault in collect(client.vaults.list_by_resource_group(opts.resource_group))
    ]


# =============================================================================
# Protected Items
# =============================================================================


@dataclass
class RecoveryServicesBackupProtectedItem(Resource):
    """
    A backup protected item.

    The service accepts the delete with a 202 and removes the item in the
    background; :meth:`remove` polls the operation status until it ends,
    so the policy and vault removals that follow find the item gone.
    """

    client: Any = field(repr=False)
    location: ResourceLocation
    name: str
    vault: str = ""
    fabric: Optional[str] = None
    container: Optional[str] = None
    poll_interval: float = field(default=OPERATION_POLL_INTERVAL, repr=False)
    poll_attempts: int = field(default=OPERATION_POLL_ATTEMPTS, repr=False)
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def remove(self) -> None:
        headers = self.client.protected_items.delete(
            self.vault,
            self.location.resource_group,
            self.fabric,
            self.container,
            self.name,
            cls=lambda response, deserialized, headers: response.http_response.headers,
        )
        operation_id = operation_id_from_headers(headers or {})
        if operation_id is None:
            # Removed synchronously (200 or 204)
            return
        self._wait_for(operation_id)

    def _wait_for(self, operation_id: str) -> None:
        """
        Raises
        ------
        RemovalError
            If the operation fails, is cancelled or outlasts the attempts.
        """
        for _ in range(self.poll_attempts):
            status = self.client.protected_item_operation_statuses.get(
                self.vault,
                self.location.resource_group,
                self.fabric,
                self.container,
                self.name,
                operation_id,
            )
            state = enum_value(status.status)
            if state == "Succeeded":
                return
            if state in TERMINAL_FAILURES:
                error = getattr(status, "error", None)
                raise RemovalError(
                    f"backup removal {state.lower()}: "
                    f"{getattr(error, 'message', None) or 'no details'}",
                    resource_name=self.name,
                    resource_type="RecoveryServicesBackupProtectedItem",
                    details={"operation_id": operation_id},
                )
            logger.debug(f"Protected item {self.name} removal {state}, checking again")
            self.sleep(self.poll_interval)

        raise RemovalError(
            f"backup removal still running after "
            f"{self.poll_attempts * self.poll_interval:g} seconds",
            resource_name=self.name,
            resource_type="RecoveryServicesBackupProtectedItem",
            details={"operation_id": operation_id},
        )


    def properties(self) -> Properties:
        return (
            Properties.for_location(self.location)
            .set("Name", self.name)
            .set("Vault", self.vault)
            .set("Container", self.container)
        )


class RecoveryServicesBackupProtectedItemLister(Lister):
    def list(self, opts: ListerOptions) -> List[Resource]:
        client = opts.auth.client(RecoveryServicesBackupClient, opts.subscription_id)
        resources: List[Resource] = []
        for vault in _vault_names(opts):
            for item in collect(
                client.backup_protected_items.list(vault, opts.resource_group)
            ):
                fabric, container = protected_item_path(item.id)
                resources.append(
                    RecoveryServicesBackupProtectedItem(
                        client=client,
                        location=opts.location(item.location),
                        name=item.name,
                        vault=vault,
                        fabric=fabric,
                        container=container,
                    )
                )
        return resources


# =============================================================================
# Backup Policies
# =============================================================================


@dataclass
class RecoveryServicesBackupPolicy(Resource):
    client: Any = field(repr=False)
    location: ResourceLocation
    name: str
    vault: str = ""

    def remove(self) -> None:
        self.client.protection_policies.begin_delete(
            self.vault, self.location.resource_group, self.name
        ).result()

    def properties(self) -> Properties:
        return Properties.for_location(self.location).set("Name", self.name).set("Vault", self.vault)


class RecoveryServicesBackupPolicyLister(Lister):
    def list(self, opts: ListerOptions) -> List[Resource]:
        client = opts.auth.client(RecoveryServicesBackupClient, opts.subscription_id)
        resources: List[Resource] = []
        for vault in _vault_names(opts):
            for policy in collect(client.backup_policies.list(vault, opts.resource_group)):
                resources.append(
                    RecoveryServicesBackupPolicy(
                        client=client,
                        location=opts.location(policy.location),
                        name=policy.name,
                        vault=vault,
                    )
                )
        logger.debug(f"{len(resources)} backup policies in {opts.resource_group}")
        return resources


# =============================================================================
# Vaults
# =============================================================================


@dataclass
class RecoveryServicesVault(Resource):
    client: Any = field(repr=False)
    location: ResourceLocation
    name: str

    def remove(self) -> None:
        self.client.vaults.begin_delete(self.location.resource_group, self.name).result()

    def properties(self) -> Properties:
        return Properties.for_location(self.location).set("Name", self.name)


class RecoveryServicesVaultLister(Lister):
    def list(self, opts: ListerOptions) -> List[Resource]:
        client = opts.auth.client(RecoveryServicesClient, opts.subscription_id)
        return [
            RecoveryServicesVault(
                client=client,
                location=opts.location(vault.location),
                name=vault.name,
            )
            for vault in collect(client.vaults.list_by_resource_group(opts.resource_group))
        ]


register(Registration(
    name="RecoveryServicesBackupProtectedItem",
    scope=Scope.RESOURCE_GROUP,
    resource=RecoveryServicesBackupProtectedItem,
    lister=RecoveryServicesBackupProtectedItemLister(),
))
register(Registration(
    name="RecoveryServicesBackupPolicy",
    scope=Scope.RESOURCE_GROUP,
    resource=RecoveryServicesBackupPolicy,
    lister=RecoveryServicesBackupPolicyLister(),
    depends_on=("RecoveryServicesBackupProtectedItem",),
))
register(Registration(
    name="RecoveryServicesVault",
    scope=Scope.RESOURCE_GROUP,
    resource=RecoveryServicesVault,
    lister=RecoveryServicesVaultLister(),
    depends_on=("RecoveryServicesBackupProtectedItem", "RecoveryServicesBackupPolicy"),
))
