"""
Scanner Module
==============

A scanner unit lists a fixed set of resource types under one scope
instance: the tenant, one subscription or one resource group.

Classes
-------
ScannerUnit
    Immutable description of what to list and where.
Item
    One listed resource instance and its classification.
ScanResult
    Items and listing errors of one unit.

Functions
---------
scan_unit
    Run every lister of a unit.

Example
-------
>>> unit = ScannerUnit(
...     scope=Scope.RESOURCE_GROUP,
...     owner="sub/s1/rg/rg1",
...     resource_types=("Disk", "VirtualMachine"),
...     options=ListerOptions(auth=auth, tenant_id="t1", subscription_id="s1",
...                           resource_group="rg1"),
... )
>>> result = scan_unit(unit, registry)
>>> print(f"{len(result.items)} items, {len(result.errors)} errors")
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Set, Tuple

from azure_reaper.core.base_resource import ListerOptions, Properties, Resource
from azure_reaper.core.exceptions import ListingError
from azure_reaper.core.registry import Registry, Scope

# Module logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScannerUnit:
    """
    What one scanner lists, and where.

    Parameters
    ----------
    scope : Scope
        Hierarchy level of the unit.
    owner : str
        Scope instance identity: ``tenant``, ``sub/<first-segment>`` or
        ``sub/<subscription-id>/rg/<resource-group>``.
    resource_types : tuple of str
        Canonical type names, all of ``scope``.
    options : ListerOptions
        Passed to every lister.
    """

    scope: Scope
    owner: str
    resource_types: Tuple[str, ...]
    options: ListerOptions

    def __repr__(self) -> str:
        return (
            f"ScannerUnit(scope='{self.scope.value}', owner='{self.owner}', "
            f"types={len(self.resource_types)})"
        )


@dataclass
class Item:
    """
    One listed resource instance.

    Parameters
    ----------
    resource_type : str
        Canonical type name.
    owner : str
        Owner of the unit that listed it.
    resource : Resource
        The plugin instance.
    filter_reason : str, optional
        Why the instance is protected from removal, once classified.
    """

    resource_type: str
    owner: str
    resource: Resource
    filter_reason: Optional[str] = None
    _properties: Optional[Properties] = field(default=None, repr=False)

    @property
    def name(self) -> str:
        return str(self.resource)

    @property
    def properties(self) -> Properties:
        """Property snapshot, taken once."""
        if self._properties is None:
            self._properties = self.resource.properties()
        return self._properties

    @property
    def region(self) -> Optional[str]:
        return self.resource.location.region

    @property
    def filtered(self) -> bool:
        return self.filter_reason is not None


@dataclass
class ScanResult:
    """
    Listing outcome of one scanner unit.

    A unit with any listing error contributes no removable items: its
    listing is incomplete, so dependency ordering cannot be trusted.

    Parameters
    ----------
    owner : str
        The unit's owner.
    scope : Scope
        The unit's scope.
    items : list of Item
        Instances found by the listers that succeeded.
    errors : dict
        Type name to the :class:`ListingError` of a failed lister.
    scan_time : datetime, optional
        When listing started.
    """

    owner: str
    scope: Scope
    items: List[Item] = field(default_factory=list)
    errors: Dict[str, ListingError] = field(default_factory=dict)
    scan_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    @property
    def failed_types(self) -> Set[str]:
        return set(self.errors)

    @property
    def removable_items(self) -> List[Item]:
        """Unfiltered items, or none at all if any lister failed."""
        if self.has_errors:
            return []
        return [item for item in self.items if not item.filtered]

    @property
    def filtered_items(self) -> List[Item]:
        return [item for item in self.items if item.filtered]

    def __repr__(self) -> str:
        return (
            f"ScanResult(owner='{self.owner}', items={len(self.items)}, "
            f"errors={len(self.errors)})"
        )


def scan_unit(
    unit: ScannerUnit,
    registry: Registry,
    cancel_event: Optional[threading.Event] = None,
    resource_types: Optional[Iterable[str]] = None,
) -> ScanResult:
    """
    List every resource type of a unit.

    Parameters
    ----------
    unit : ScannerUnit
        The unit to run.
    registry : Registry
        Resolves each type to its lister.
    cancel_event : threading.Event, optional
        Checked before every lister call; once set, remaining types are
        recorded as failed.
    resource_types : iterable of str, optional
        Restrict listing to these types (used when re-listing
        dependencies).

    Returns
    -------
    ScanResult
        Items and per-type listing errors. Lister exceptions never
        propagate.
    """
    result = ScanResult(owner=unit.owner, scope=unit.scope)
    wanted = unit.resource_types
    if resource_types is not None:
        selected = set(resource_types)
        wanted = tuple(name for name in wanted if name in selected)

    for name in wanted:
        if cancel_event is not None and cancel_event.is_set():
            result.errors[name] = ListingError(
                "listing cancelled", resource_type=name, owner=unit.owner
            )
            continue

        registration = registry.lookup(name)
        try:
            resources = registration.lister.list(unit.options)
        except Exception as e:
            logger.error(f"{unit.owner}: failed to list {name}: {e}")
            result.errors[name] = ListingError(
                f"Failed to list {name}: {e}",
                resource_type=name,
                owner=unit.owner,
            )
            continue

        for resource in resources:
            result.items.append(Item(resource_type=name, owner=unit.owner, resource=resource))
        logger.debug(f"{unit.owner}: {len(resources)} {name} found")

    return result
