"""
Base Resource Module
====================

Provides the plugin contract every Azure resource type implements.

A resource type is two cooperating classes:

- a :class:`Lister`, which enumerates every instance reachable from one
  scanner unit's :class:`ListerOptions`, and
- a :class:`Resource` subclass, one object per instance, which knows how
  to describe itself (:meth:`Resource.properties`) and delete itself
  (:meth:`Resource.remove`).

Types that need a pre-removal veto also subclass :class:`Filterable`.

Classes
-------
ResourceLocation
    Region, subscription and resource group of one instance.
ListerOptions
    Per-scanner-unit listing context.
Properties
    Ordered key/value snapshot used for display and filtering.
Resource
    Abstract base for resource instances.
Filterable
    Optional pre-removal veto capability.
Lister
    Abstract base for resource listers.

Example
-------
>>> from azure_reaper.core.base_resource import Lister, Resource
>>>
>>> class Widget(Resource):
...     def remove(self) -> None:
...         self.client.widgets.begin_delete(self.name).result()
...
...     def properties(self) -> Properties:
...         return Properties.for_location(self.location).set("Name", self.name)
...
>>> class WidgetLister(Lister):
...     def list(self, opts):
...         client = opts.auth.client(WidgetClient, opts.subscription_id)
...         return [Widget(client, ResourceLocation(...), w.name) for w in ...]

Notes
-----
Listers and resources hold no state shared between scanner units. All
context arrives through :class:`ListerOptions` or the instance itself.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class ResourceLocation:
    """
    Where one resource instance lives.

    Parameters
    ----------
    region : str, optional
        Azure location (``eastus``) or ``global``.
    subscription_id : str, optional
        Owning subscription.
    resource_group : str, optional
        Owning resource group, for resource-group scoped types.
    """

    region: Optional[str] = None
    subscription_id: Optional[str] = None
    resource_group: Optional[str] = None


@dataclass(frozen=True)
class ListerOptions:
    """
    Listing context for one scanner unit.

    Parameters
    ----------
    auth : AuthorizationContext
        Builds the management clients.
    tenant_id : str
        The tenant being processed.
    subscription_id : str, default=""
        Empty at tenant scope.
    resource_group : str, default=""
        Empty above resource-group scope.
    regions : tuple of str, default=()
        The effective region filter.
    """

    auth: Any
    tenant_id: str
    subscription_id: str = ""
    resource_group: str = ""
    regions: Tuple[str, ...] = ()

    def location(self, region: Optional[str]) -> ResourceLocation:
        """Build a location for an instance found under these options."""
        return ResourceLocation(
            region=region,
            subscription_id=self.subscription_id or None,
            resource_group=self.resource_group or None,
        )


class Properties(Dict[str, str]):
    """
    String-valued property snapshot of a resource instance.

    Values set to ``None`` are skipped, dates are rendered in ISO 8601 and
    tags are stored under ``tag:<key>``.

    Example
    -------
    >>> props = Properties().set("Name", "vm-01").set_tags({"env": "dev"})
    >>> props
    {'Name': 'vm-01', 'tag:env': 'dev'}
    """

    def set(self, key: str, value: Any) -> Properties:
        """Set ``key`` unless ``value`` is None; returns self for chaining."""
        if value is None:
            return self
        if isinstance(value, Enum):
            value = enum_value(value)
        elif isinstance(value, datetime):
            value = value.isoformat()
        elif isinstance(value, bool):
            value = "true" if value else "false"
        self[key] = str(value)
        return self

    def set_tags(self, tags: Optional[Dict[str, Any]]) -> Properties:
        """Add each tag as ``tag:<key>``."""
        for key, value in (tags or {}).items():
            self.set(f"tag:{key}", value if value is not None else "")
        return self

    @classmethod
    def for_location(cls, location: ResourceLocation) -> Properties:
        """Start a snapshot with the standard location keys."""
        return (
            cls()
            .set("Region", location.region)
            .set("SubscriptionID", location.subscription_id)
            .set("ResourceGroup", location.resource_group)
        )


class Resource(ABC):
    """
    Abstract base class for one Azure resource instance.

    Subclasses are usually dataclasses with a ``client`` field (the
    management client used to delete the instance), a ``location`` field
    and a ``name`` field.

    Methods
    -------
    remove()
        Delete the instance (abstract).
    properties()
        Return the property snapshot (abstract).
    """

    location: ResourceLocation
    name: Optional[str]

    @abstractmethod
    def remove(self) -> None:
        """
        Delete this instance.

        Blocks until a long-running delete reaches a terminal state.

        Raises
        ------
        azure.core.exceptions.AzureError
            If the delete call or its poller fails.
        """
        pass

    @abstractmethod
    def properties(self) -> Properties:
        """Return the property snapshot of this instance."""
        pass

    def __str__(self) -> str:
        return self.name or ""


class Filterable(ABC):
    """
    Capability for resource types that can veto their own removal.

    Example
    -------
    >>> class SecurityAlert(Resource, Filterable):
    ...     def filter(self):
    ...         if self.status == "Dismissed":
    ...             return "alert already dismissed"
    ...         return None
    """

    @abstractmethod
    def filter(self) -> Optional[str]:
        """
        Decide whether this instance should be skipped.

        Returns
        -------
        str or None
            The skip reason, or None to allow removal.
        """
        pass


class Lister(ABC):
    """
    Abstract base class for resource listers.

    A lister pages through every instance visible under one scanner
    unit's options. Any paging error must propagate: partial results are
    never returned.
    """

    @abstractmethod
    def list(self, opts: ListerOptions) -> List[Resource]:
        """
        List every instance reachable from ``opts``.

        Parameters
        ----------
        opts : ListerOptions
            The scanner unit's listing context.

        Returns
        -------
        list of Resource
            The instances found.
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


def resource_group_from_id(resource_id: Optional[str]) -> Optional[str]:
    """
    Extract the resource group name from an ARM resource id.

    Example
    -------
    >>> resource_group_from_id("/subscriptions/s1/resourceGroups/rg1/providers/x/y/z")
    'rg1'
    """
    parts = (resource_id or "").split("/")
    for index, part in enumerate(parts[:-1]):
        if part.lower() == "resourcegroups":
            return parts[index + 1]
    return None


def enum_value(value: Any) -> Optional[str]:
    """
    Return the wire value of an SDK enum field.

    SDK enums subclass ``str``, but ``str()`` of a member gives its
    qualified name (``PricingTier.FREE``), not the service value.

    Example
    -------
    >>> enum_value(PricingTier.FREE)
    'Free'
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)
