"""
Scanner Composition Module
==========================

Turns a discovered :class:`~azure_reaper.core.tenant.Tenant` and the
registry into the scanner units of a run, and registers them with an
engine.

Resource types are selected per scope from three include/exclude layers,
highest precedence first: the command line, the config file's global
``resource-types`` and the tenant's own ``resource-types``. Every
non-empty include layer narrows the selection; every exclude layer
removes from it, so an exclusion always wins.

Functions
---------
resolve_resource_types
    Layered include/exclude resolution for one scope.
compose_scanners
    One scanner unit per scope instance.
build_region_filter
    The global ``Region NotIn regions`` filter.
wire
    Validate, compose and register everything with an engine.

Example
-------
>>> units = compose_scanners(
...     tenant, registry, regions=["global", "eastus"],
...     includes=[["VirtualMachine", "ResourceGroup"]], excludes=[[]],
... )
>>> [u.owner for u in units]
['tenant', 'sub/00000000', 'sub/00000000-0000-.../rg/rg1']
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional, Sequence

from azure_reaper.core.base_resource import ListerOptions
from azure_reaper.core.exceptions import UnknownResourceTypeError
from azure_reaper.core.filters import GLOBAL_KEY, Filter, FilterType
from azure_reaper.core.registry import Registry, Scope
from azure_reaper.core.scanner import ScannerUnit
from azure_reaper.core.tenant import ALL_REGIONS, Tenant

# Module logger
logger = logging.getLogger(__name__)

# Region value that enables tenant and subscription scope scanners
GLOBAL_REGION = "global"


def _canonical(registry: Registry, names: Iterable[str]) -> set:
    resolved = set()
    for name in names:
        try:
            resolved.add(registry.canonical_name(name))
        except UnknownResourceTypeError:
            raise UnknownResourceTypeError(
                f"unknown resource type: {name}",
                resource_type=name,
                details={"hint": "run 'azure-reaper resource-types' for the full list"},
            ) from None
    return resolved


def resolve_resource_types(
    registry: Registry,
    base: Iterable[str],
    includes: Sequence[Iterable[str]],
    excludes: Sequence[Iterable[str]],
) -> List[str]:
    """
    Select the resource types of one scope.

    Parameters
    ----------
    registry : Registry
        Resolves deprecated aliases.
    base : iterable of str
        Candidate types, usually ``registry.names_for_scope(scope)``.
    includes : sequence of iterables
        Include layers; empty layers are ignored.
    excludes : sequence of iterables
        Exclude layers.

    Returns
    -------
    list of str
        Sorted canonical names.

    Raises
    ------
    UnknownResourceTypeError
        If an include or exclude name does not resolve.

    Examples
    --------
    >>> resolve_resource_types(registry, {"Disk", "ComputeSnapshot"}, [["Disk"]], [[]])
    ['Disk']
    >>> resolve_resource_types(registry, {"Disk"}, [["Disk"]], [["Disk"]])
    []
    """
    selected = set(base)
    for layer in includes:
        names = _canonical(registry, layer or ())
        if names:
            selected &= names
    for layer in excludes:
        selected -= _canonical(registry, layer or ())
    return sorted(selected)


def _global_tier(regions: Sequence[str]) -> bool:
    return GLOBAL_REGION in regions or ALL_REGIONS in regions


def subscription_owner(subscription_id: str) -> str:
    """Short owner label of a subscription unit: its first id segment."""
    return f"sub/{subscription_id.split('-')[0]}"


def compose_scanners(
    tenant: Tenant,
    registry: Registry,
    regions: Sequence[str],
    includes: Sequence[Iterable[str]] = (),
    excludes: Sequence[Iterable[str]] = (),
) -> List[ScannerUnit]:
    """
    Build one scanner unit per scope instance.

    Tenant and subscription units exist only when ``regions`` contains
    ``global`` or ``all``; resource group units are built for every
    discovered group, whose region was already checked by discovery.

    Parameters
    ----------
    tenant : Tenant
        The discovered hierarchy.
    registry : Registry
        Source of the per-scope types.
    regions : sequence of str
        Configured regions.
    includes, excludes : sequence of iterables
        Include and exclude layers, highest precedence first.

    Returns
    -------
    list of ScannerUnit
        Tenant unit first, then subscription units, then resource group
        units, each in discovery order.
    """
    regions = tuple(regions)

    def types_for(scope: Scope) -> tuple:
        return tuple(
            resolve_resource_types(
                registry, registry.names_for_scope(scope), includes, excludes
            )
        )

    units: List[ScannerUnit] = []

    if _global_tier(regions):
        units.append(
            ScannerUnit(
                scope=Scope.TENANT,
                owner="tenant",
                resource_types=types_for(Scope.TENANT),
                options=ListerOptions(auth=tenant.auth, tenant_id=tenant.id),
            )
        )
        subscription_types = types_for(Scope.SUBSCRIPTION)
        for subscription_id in tenant.subscription_ids:
            units.append(
                ScannerUnit(
                    scope=Scope.SUBSCRIPTION,
                    owner=subscription_owner(subscription_id),
                    resource_types=subscription_types,
                    options=ListerOptions(
                        auth=tenant.auth,
                        tenant_id=tenant.id,
                        subscription_id=subscription_id,
                        regions=regions,
                    ),
                )
            )
    else:
        logger.debug("Neither 'global' nor 'all' in regions, skipping tenant and subscription scope")

    group_types = types_for(Scope.RESOURCE_GROUP)
    for subscription_id, groups in tenant.resource_groups.items():
        for group in groups:
            units.append(
                ScannerUnit(
                    scope=Scope.RESOURCE_GROUP,
                    owner=f"sub/{subscription_id}/rg/{group}",
                    resource_types=group_types,
                    options=ListerOptions(
                        auth=tenant.auth,
                        tenant_id=tenant.id,
                        subscription_id=subscription_id,
                        resource_group=group,
                        regions=regions,
                    ),
                )
            )

    return units


def build_region_filter(regions: Sequence[str]) -> Optional[Filter]:
    """
    Return the global region filter, or None when ``all`` is configured.

    Example
    -------
    >>> build_region_filter(["global", "eastus"])
    Filter(property='Region', type='NotIn', value=('global', 'eastus'))
    """
    if ALL_REGIONS in regions:
        return None
    return Filter(property="Region", value=tuple(regions), type=FilterType.NOT_IN)


def wire(
    engine: Any,
    tenant: Tenant,
    registry: Registry,
    config: Any,
    parameters: Any,
    version: Optional[str] = None,
    prompt: Any = None,
) -> List[ScannerUnit]:
    """
    Register a complete run with ``engine``.

    Validates the registry's dependencies, builds the filter set (config
    filters plus the region filter), registers the version banner, the
    prompt and every scanner unit. Nothing is removed if any step fails.

    Parameters
    ----------
    engine : Engine
        The engine to populate; its ``filters`` are replaced.
    tenant : Tenant
        The discovered hierarchy.
    registry : Registry
        The resource type registry.
    config : Config
        The parsed configuration.
    parameters : Parameters
        Supplies the command line include/exclude layer.
    version : str, optional
        Banner registered with the engine.
    prompt : callable, optional
        Confirmation gate registered with the engine.

    Returns
    -------
    list of ScannerUnit
        The registered units.

    Raises
    ------
    UnresolvedDependencyError
        If a registration depends on an unregistered type.
    UnknownResourceTypeError
        If an include or exclude name does not resolve.
    """
    registry.validate_dependencies()

    filters = config.filters_for(tenant.id)
    region_filter = build_region_filter(config.regions)
    if region_filter is not None:
        filters.add(GLOBAL_KEY, region_filter)
    for key in filters.keys():
        if key != GLOBAL_KEY and key not in registry:
            logger.warning(f"Filters configured for unknown resource type {key}")
    engine.filters = filters

    tenant_config = config.tenant(tenant.id)
    includes = [
        parameters.includes,
        config.resource_types.includes,
        tenant_config.resource_types.includes,
    ]
    excludes = [
        parameters.excludes,
        config.resource_types.excludes,
        tenant_config.resource_types.excludes,
    ]

    units = compose_scanners(tenant, registry, config.regions, includes, excludes)

    if version:
        engine.register_version(version)
    if prompt is not None:
        engine.register_prompt(prompt)
    for unit in units:
        logger.debug(f"Registering scanner {unit.owner} ({unit.scope.value})")
        engine.register_scanner(unit.scope, unit)

    logger.info(f"Registered {len(units)} scanner unit(s) for tenant {tenant.id}")
    return units
