"""
Monitor Resources
=================

Subscription level diagnostic settings (activity log exports).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from azure.mgmt.monitor import MonitorManagementClient

from azure_reaper.core.base_resource import (
    Lister,
    ListerOptions,
    Properties,
    Resource,
    ResourceLocation,
)
from azure_reaper.core.registry import Registration, Scope, register

GLOBAL = "global"


@dataclass
class MonitorDiagnosticSetting(Resource):
    client: Any = field(repr=False)
    location: ResourceLocation
    name: str
    resource_uri: str = ""
    workspace_id: Optional[str] = None
    storage_account_id: Optional[str] = None

    def remove(self) -> None:
        self.client.diagnostic_settings.delete(self.resource_uri, self.name)

    def properties(self) -> Properties:
        return (
            Properties.for_location(self.location)
            .set("Name", self.name)
            .set("WorkspaceID", self.workspace_id)
            .set("StorageAccountID", self.storage_account_id)
        )


class MonitorDiagnosticSettingLister(Lister):
    """The listing is a single collection, not a paged result."""

    def list(self, opts: ListerOptions) -> List[Resource]:
        client = opts.auth.client(MonitorManagementClient, opts.subscription_id)
        resource_uri = f"/subscriptions/{opts.subscription_id}"
        listing = client.diagnostic_settings.list(resource_uri)
        return [
            MonitorDiagnosticSetting(
                client=client,
                location=opts.location(GLOBAL),
                name=setting.name,
                resource_uri=resource_uri,
                workspace_id=setting.workspace_id,
                storage_account_id=setting.storage_account_id,
            )
            for setting in (listing.value or [])
        ]


register(Registration(
    name="MonitorDiagnosticSetting",
    scope=Scope.SUBSCRIPTION,
    resource=MonitorDiagnosticSetting,
    lister=MonitorDiagnosticSettingLister(),
))
