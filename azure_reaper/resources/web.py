"""
App Service Resources
=====================

App Service plans. Deleting a plan requires that no web app still runs
on it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from azure.mgmt.web import WebSiteManagementClient

from azure_reaper.core.base_resource import (
    Lister,
    ListerOptions,
    Properties,
    Resource,
    ResourceLocation,
)
from azure_reaper.core.paging import collect
from azure_reaper.core.registry import Registration, Scope, register


@dataclass
class AppServicePlan(Resource):
    client: Any = field(repr=False)
    location: ResourceLocation
    name: str
    tags: Dict[str, str] = field(default_factory=dict)
    kind: Optional[str] = None

    def remove(self) -> None:
        self.client.app_service_plans.delete(self.location.resource_group, self.name)

    def properties(self) -> Properties:
        return (
            Properties.for_location(self.location)
            .set("Name", self.name)
            .set("Kind", self.kind)
            .set_tags(self.tags)
        )


class AppServicePlanLister(Lister):
    def list(self, opts: ListerOptions) -> List[Resource]:
        client = opts.auth.client(WebSiteManagementClient, opts.subscription_id)
        return [
            AppServicePlan(
                client=client,
                location=opts.location(plan.location),
                name=plan.name,
                tags=plan.tags or {},
                kind=plan.kind,
            )
            for plan in collect(
                client.app_service_plans.list_by_resource_group(opts.resource_group)
            )
        ]


register(Registration(
    name="AppServicePlan",
    scope=Scope.RESOURCE_GROUP,
    resource=AppServicePlan,
    lister=AppServicePlanLister(),
))
