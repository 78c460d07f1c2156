"""
Tenant Discovery Module
=======================

Resolves the management hierarchy a run operates on: the target tenant,
the subscriptions visible under it and, per subscription, the resource
groups located in the requested regions.

Discovery is sequential, all-or-nothing and bounded by a deadline. Any
paging failure aborts it; no partially populated :class:`Tenant` is ever
returned.

Classes
-------
Tenant
    Immutable result of discovery.

Functions
---------
discover_tenant
    Walk tenants, subscriptions and resource groups.
region_allowed
    The resource group region rule.

Example
-------
>>> from azure_reaper.core.azure_client import configure_auth
>>> from azure_reaper.core.tenant import discover_tenant
>>>
>>> auth = configure_auth("global", tenant_id="t1")
>>> tenant = discover_tenant(auth, "t1", regions=["global", "eastus"])
>>> tenant.subscription_ids
('00000000-0000-0000-0000-000000000001',)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from azure.core.exceptions import AzureError
from azure.mgmt.resource import ResourceManagementClient, SubscriptionClient

from azure_reaper.core.exceptions import (
    DiscoveryError,
    DiscoveryTimeoutError,
    MismatchError,
    NotFoundError,
)
from azure_reaper.core.paging import Deadline, PageCursor

# Module logger
logger = logging.getLogger(__name__)

DEFAULT_DISCOVERY_TIMEOUT = 15.0

# Region value that disables region filtering entirely
ALL_REGIONS = "all"


@dataclass(frozen=True)
class Tenant:
    """
    One tenant's discovered management hierarchy.

    Parameters
    ----------
    id : str
        The target tenant id.
    subscription_ids : tuple of str
        Retained subscriptions, in discovery order.
    tenant_ids : tuple of str
        Every tenant visible to the credential, in discovery order.
    resource_groups : mapping
        Read-only map of subscription id to the names of the resource
        groups that passed the region filter. Subscriptions without such
        groups are absent.
    auth : AuthorizationContext
        The context discovery ran with.
    """

    id: str
    subscription_ids: Tuple[str, ...] = ()
    tenant_ids: Tuple[str, ...] = ()
    resource_groups: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    auth: Any = None

    def __post_init__(self) -> None:
        # Sequences given at construction are copied into immutable containers
        object.__setattr__(self, "subscription_ids", tuple(self.subscription_ids))
        object.__setattr__(self, "tenant_ids", tuple(self.tenant_ids))
        object.__setattr__(
            self,
            "resource_groups",
            MappingProxyType(
                {sub: tuple(groups) for sub, groups in self.resource_groups.items()}
            ),
        )

    @property
    def resource_group_count(self) -> int:
        return sum(len(groups) for groups in self.resource_groups.values())

    def __repr__(self) -> str:
        return (
            f"Tenant(id='{self.id}', subscriptions={len(self.subscription_ids)}, "
            f"resource_groups={self.resource_group_count})"
        )


def region_allowed(location: Optional[str], regions: Sequence[str]) -> bool:
    """
    Return True if a resource group in ``location`` should be kept.

    Membership is literal: ``eastus`` does not match ``East US``.
    """
    return ALL_REGIONS in regions or (location is not None and location in regions)


def discover_tenant(
    auth: Any,
    tenant_id: str,
    subscription_ids: Optional[Sequence[str]] = None,
    regions: Sequence[str] = (),
    timeout: float = DEFAULT_DISCOVERY_TIMEOUT,
) -> Tenant:
    """
    Discover the subscriptions and resource groups of one tenant.

    Parameters
    ----------
    auth : AuthorizationContext
        Builds the subscription and resource clients.
    tenant_id : str
        The tenant the run targets.
    subscription_ids : sequence of str, optional
        Allow-list. When non-empty, every other subscription is skipped.
    regions : sequence of str, default=()
        Resource group regions to keep; ``all`` keeps every group.
    timeout : float, default=15.0
        Deadline for the whole walk. It bounds every page fetch and is
        passed to the SDK as the request and retry timeout.

    Returns
    -------
    Tenant
        The discovered hierarchy.

    Raises
    ------
    NotFoundError
        If no tenant is visible, or the target is not among them.
    MismatchError
        If the first visible tenant is not the target.
    DiscoveryTimeoutError
        If the deadline passes.
    DiscoveryError
        If any list call fails.

    Example
    -------
    >>> tenant = discover_tenant(auth, "t1", ["s1"], regions=["all"])
    >>> tenant.resource_groups["s1"]
    ('rg-a', 'rg-b')
    """
    allow = list(subscription_ids or [])
    regions = list(regions)
    deadline = Deadline(timeout, DiscoveryTimeoutError, "tenant discovery")

    logger.debug(f"Discovering tenant {tenant_id} (regions: {regions})")
    subscription_client = auth.client(SubscriptionClient)

    # Tenants
    tenant_ids: List[str] = []
    try:
        tenants = subscription_client.tenants.list(**deadline.request_options())
        for entry in PageCursor(tenants, deadline):
            tenant_ids.append(entry.tenant_id)
    except AzureError as e:
        deadline.check()
        raise DiscoveryError(
            f"Failed to list tenants: {e}", tenant_id=tenant_id
        ) from e

    if not tenant_ids or tenant_id not in tenant_ids:
        raise NotFoundError(
            f"tenant not found: {tenant_id}",
            tenant_id=tenant_id,
            details={"visible_tenants": tenant_ids},
        )
    if tenant_ids[0] != tenant_id:
        raise MismatchError(
            "tenant ids do not match",
            tenant_id=tenant_id,
            details={"first_visible_tenant": tenant_ids[0]},
        )

    # Subscriptions
    retained: List[str] = []
    try:
        subscriptions = subscription_client.subscriptions.list(**deadline.request_options())
        for entry in PageCursor(subscriptions, deadline):
            sub_id = entry.subscription_id
            if allow and sub_id not in allow:
                logger.warning(
                    f"skipping subscription id: {sub_id} (reason: not requested)"
                )
                continue
            logger.debug(f"Adding subscription {sub_id}")
            retained.append(sub_id)
    except AzureError as e:
        deadline.check()
        raise DiscoveryError(
            f"Failed to list subscriptions: {e}", tenant_id=tenant_id
        ) from e

    # Resource groups
    resource_groups: Dict[str, List[str]] = {}
    for sub_id in retained:
        client = auth.client(ResourceManagementClient, sub_id)
        try:
            groups = client.resource_groups.list(**deadline.request_options())
            for group in PageCursor(groups, deadline):
                if not region_allowed(group.location, regions):
                    continue
                logger.debug(f"Resource group {group.name} ({group.location})")
                resource_groups.setdefault(sub_id, []).append(group.name)
        except AzureError as e:
            deadline.check()
            raise DiscoveryError(
                f"Failed to list resource groups: {e}",
                tenant_id=tenant_id,
                subscription_id=sub_id,
            ) from e

    tenant = Tenant(
        id=tenant_id,
        subscription_ids=retained,
        tenant_ids=tenant_ids,
        resource_groups=resource_groups,
        auth=auth,
    )
    logger.info(
        f"Discovered {len(retained)} subscription(s) and "
        f"{tenant.resource_group_count} resource group(s) in tenant {tenant_id}"
    )
    return tenant
