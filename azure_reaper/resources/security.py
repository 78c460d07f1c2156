"""
Defender for Cloud Resources
============================

Security alerts, pricing tiers and workspace settings.

None of these are deleted in the usual sense:

- an alert is *dismissed*;
- a pricing tier is *reset* to its default (``Free``, or ``Standard``
  for the plans that are enabled by default);
- a workspace setting is deleted.

Pricings depend on alerts so that open alerts are dismissed before the
paid plans that raised them are turned off.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

from azure.mgmt.security import SecurityCenter
from azure.mgmt.security.models import Pricing

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

_ALERT_REGION = re.compile(r"/Microsoft.Security/locations/(?P<region>.*)/alerts/")

FREE_TIER = "Free"
STANDARD_TIER = "Standard"

# Plans whose default tier is Standard
STANDARD_BY_DEFAULT = frozenset({"Discovery", "FoundationalCspm"})


def alert_region(alert_id: Optional[str]) -> Optional[str]:
    """
    Extract the ASC location from an alert id.

    Example
    -------
    >>> alert_region("/subscriptions/s1/providers/Microsoft.Security/locations/centralus/alerts/a1")
    'centralus'
    """
    match = _ALERT_REGION.search(alert_id or "")
    return match.group("region") if match else None


# =============================================================================
# Alerts
# =============================================================================


@dataclass
class SecurityAlert(Resource, Filterable):
    client: Any = field(repr=False)
    location: ResourceLocation
    name: str
    display_name: Optional[str] = None
    status: Optional[str] = None
    severity: Optional[str] = None

    def filter(self) -> Optional[str]:
        if self.status == "Dismissed":
            return "alert already dismissed"
        return None

    def remove(self) -> None:
        self.client.alerts.update_subscription_level_state_to_dismiss(
            self.location.region, self.name
        )

    def properties(self) -> Properties:
        return (
            Properties.for_location(self.location)
            .set("Name", self.name)
            .set("DisplayName", self.display_name)
            .set("Status", self.status)
            .set("Severity", self.severity)
        )


class SecurityAlertLister(Lister):
    def list(self, opts: ListerOptions) -> List[Resource]:
        client = opts.auth.client(SecurityCenter, opts.subscription_id)
        return [
            SecurityAlert(
                client=client,
                location=opts.location(alert_region(alert.id)),
                name=alert.name,
                display_name=alert.alert_display_name,
                status=enum_value(alert.status),
                severity=enum_value(alert.severity),
            )
            for alert in collect(client.alerts.list())
        ]


# =============================================================================
# Pricings
# =============================================================================


@dataclass
class SecurityPricing(Resource, Filterable):
    client: Any = field(repr=False)
    location: ResourceLocation
    name: str
    tier: Optional[str] = None

    @property
    def default_tier(self) -> str:
        return STANDARD_TIER if self.name in STANDARD_BY_DEFAULT else FREE_TIER

    def filter(self) -> Optional[str]:
        if self.tier == FREE_TIER:
            return "already set to default, free tier"
        if self.tier == STANDARD_TIER and self.name in STANDARD_BY_DEFAULT:
            return "already set to default, standard tier"
        return None

    def remove(self) -> None:
        self.client.pricings.update(
            f"subscriptions/{self.location.subscription_id}",
            self.name,
            Pricing(pricing_tier=self.default_tier),
        )

    def properties(self) -> Properties:
        return Properties.for_location(self.location).set("Name", self.name).set("PricingTier", self.tier)


class SecurityPricingLister(Lister):
    def list(self, opts: ListerOptions) -> List[Resource]:
        client = opts.auth.client(SecurityCenter, opts.subscription_id)
        listing = client.pricings.list(f"subscriptions/{opts.subscription_id}")
        return [
            SecurityPricing(
                client=client,
                location=opts.location(GLOBAL),
                name=pricing.name,
                tier=enum_value(pricing.pricing_tier),
            )
            for pricing in (listing.value or [])
        ]


# =============================================================================
# Workspace Settings
# =============================================================================


@dataclass
class SecurityWorkspace(Resource):
    client: Any = field(repr=False)
    location: ResourceLocation
    name: str
    scope: Optional[str] = None
    workspace_id: Optional[str] = None

    def remove(self) -> None:
        self.client.workspace_settings.delete(self.name)

    def properties(self) -> Properties:
        return (
            Properties.for_location(self.location)
            .set("Name", self.name)
            .set("Scope", self.scope)
            .set("WorkspaceID", self.workspace_id)
        )


class SecurityWorkspaceLister(Lister):
    def list(self, opts: ListerOptions) -> List[Resource]:
        client = opts.auth.client(SecurityCenter, opts.subscription_id)
        return [
            SecurityWorkspace(
                client=client,
                location=opts.location(GLOBAL),
                name=setting.name,
                scope=setting.scope,
                workspace_id=setting.workspace_id,
            )
            for setting in collect(client.workspace_settings.list())
        ]


register(Registration(
    name="SecurityAlert",
    scope=Scope.SUBSCRIPTION,
    resource=SecurityAlert,
    lister=SecurityAlertLister(),
))
register(Registration(
    name="SecurityPricing",
    scope=Scope.SUBSCRIPTION,
    resource=SecurityPricing,
    lister=SecurityPricingLister(),
    depends_on=("SecurityAlert",),
))
register(Registration(
    name="SecurityWorkspace",
    scope=Scope.SUBSCRIPTION,
    resource=SecurityWorkspace,
    lister=SecurityWorkspaceLister(),
))
