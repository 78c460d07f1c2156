"""
Consumption Resources
=====================

Subscription level budgets.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from azure.mgmt.consumption import ConsumptionManagementClient

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

GLOBAL = "global"


def subscription_scope(subscription_id: str) -> str:
    return f"/subscriptions/{subscription_id}"


@dataclass
class Budget(Resource):
    client: Any = field(repr=False)
    location: ResourceLocation
    name: str
    amount: Optional[float] = None
    time_grain: Optional[str] = None

    def remove(self) -> None:
        self.client.budgets.delete(
            subscription_scope(self.location.subscription_id), self.name
        )

    def properties(self) -> Properties:
        return (
            Properties.for_location(self.location)
            .set("Name", self.name)
            .set("Amount", self.amount)
            .set("TimeGrain", self.time_grain)
        )


class BudgetLister(Lister):
    def list(self, opts: ListerOptions) -> List[Resource]:
        client = opts.auth.client(ConsumptionManagementClient, opts.subscription_id)
        return [
            Budget(
                client=client,
                location=opts.location(GLOBAL),
                name=budget.name,
                amount=budget.amount,
                time_grain=enum_value(budget.time_grain),
            )
            for budget in collect(
                client.budgets.list(subscription_scope(opts.subscription_id))
            )
        ]


register(Registration(
    name="Budget",
    scope=Scope.SUBSCRIPTION,
    resource=Budget,
    lister=BudgetLister(),
))
