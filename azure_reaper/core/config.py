"""
Configuration Module
====================

Loads the YAML run configuration.

The file decides which regions are in play, which tenants must never be
touched, which resource types to include or exclude and which instances
are protected by filters, either globally or per tenant.

Classes
-------
ResourceTypes
    Include and exclude lists of resource type names.
TenantConfig
    Per-tenant presets, resource types and filters.
Config
    The whole parsed file.

Functions
---------
load_config
    Read, parse and normalise a config file.

Example
-------
>>> from azure_reaper.core.config import load_config
>>>
>>> config = load_config("config.yaml", deprecations={"PublicIPAddresses": "PublicIPAddress"})
>>> config.validate("t1")
>>> filters = config.filters_for("t1")

See Also
--------
azure_reaper.core.filters : Filter semantics.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from azure_reaper.core.exceptions import ConfigurationError
from azure_reaper.core.filters import Filters

# Module logger
logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"

KNOWN_KEYS = {
    "regions",
    "blocklist",
    "resource-types",
    "tenants",
    "accounts",
    "presets",
    "settings",
}


@dataclass
class ResourceTypes:
    """
    Include and exclude lists for one configuration layer.

    ``targets`` is accepted as an alias of ``includes``.
    """

    includes: List[str] = field(default_factory=list)
    excludes: List[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> ResourceTypes:
        data = data or {}
        if not isinstance(data, Mapping):
            raise ConfigurationError("resource-types must be a mapping")
        includes = list(data.get("includes") or []) + list(data.get("targets") or [])
        excludes = list(data.get("excludes") or [])
        return cls(
            includes=[str(name) for name in includes],
            excludes=[str(name) for name in excludes],
        )


@dataclass
class TenantConfig:
    """Settings that apply to a single tenant."""

    presets: List[str] = field(default_factory=list)
    resource_types: ResourceTypes = field(default_factory=ResourceTypes)
    filters: Filters = field(default_factory=Filters)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> TenantConfig:
        data = data or {}
        return cls(
            presets=[str(p) for p in data.get("presets") or []],
            resource_types=ResourceTypes.from_mapping(data.get("resource-types")),
            filters=Filters.from_mapping(data.get("filters")),
        )


@dataclass
class Config:
    """
    A parsed configuration file.

    Parameters
    ----------
    regions : list of str
        Regions in play; ``global`` enables tenant and subscription scope,
        ``all`` disables region filtering.
    blocklist : list of str
        Tenant ids that must never be processed.
    resource_types : ResourceTypes
        Global include and exclude layer.
    tenants : dict
        Tenant id to :class:`TenantConfig`.
    presets : dict
        Preset name to its filters.
    path : str, optional
        Source file, if one was read.
    """

    regions: List[str] = field(default_factory=list)
    blocklist: List[str] = field(default_factory=list)
    resource_types: ResourceTypes = field(default_factory=ResourceTypes)
    tenants: Dict[str, TenantConfig] = field(default_factory=dict)
    presets: Dict[str, Filters] = field(default_factory=dict)
    path: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]], path: Optional[str] = None) -> Config:
        """
        Build a config from the decoded YAML document.

        Raises
        ------
        ConfigurationError
            If a section has the wrong shape.
        """
        data = data or {}
        if not isinstance(data, Mapping):
            raise ConfigurationError("config file must contain a mapping", details={"path": path})

        for key in data:
            if key not in KNOWN_KEYS:
                logger.warning(f"Ignoring unknown config key: {key}")

        tenants_data = dict(data.get("accounts") or {})
        tenants_data.update(data.get("tenants") or {})

        presets: Dict[str, Filters] = {}
        for name, preset in (data.get("presets") or {}).items():
            presets[str(name)] = Filters.from_mapping((preset or {}).get("filters"))

        return cls(
            regions=[str(r) for r in _as_list(data.get("regions"))],
            blocklist=[str(t) for t in _as_list(data.get("blocklist"))],
            resource_types=ResourceTypes.from_mapping(data.get("resource-types")),
            tenants={
                str(tenant_id): TenantConfig.from_mapping(entry)
                for tenant_id, entry in tenants_data.items()
            },
            presets=presets,
            path=path,
        )

    def tenant(self, tenant_id: str) -> TenantConfig:
        """Settings for ``tenant_id``; empty when the tenant is not listed."""
        return self.tenants.get(tenant_id) or TenantConfig()

    def filters_for(self, tenant_id: str) -> Filters:
        """
        Filters of ``tenant_id`` merged with those of its presets.

        Raises
        ------
        ConfigurationError
            If the tenant references an undefined preset.
        """
        tenant = self.tenant(tenant_id)
        filters = Filters().merge(tenant.filters)
        for name in tenant.presets:
            if name not in self.presets:
                raise ConfigurationError(
                    f"tenant {tenant_id} references unknown preset: {name}",
                    details={"presets": sorted(self.presets)},
                )
            filters = filters.merge(self.presets[name])
        return filters

    def validate(self, tenant_id: str) -> None:
        """
        Check that a run against ``tenant_id`` is allowed.

        Raises
        ------
        ConfigurationError
            If no region is configured or the tenant is blocklisted.
        """
        if not self.regions:
            raise ConfigurationError(
                "no regions configured, set 'regions' in the config file or pass --region"
            )
        if tenant_id in self.blocklist:
            raise ConfigurationError(
                f"tenant {tenant_id} is blocklisted",
                details={"path": self.path},
            )

    def apply_deprecations(self, deprecations: Mapping[str, str]) -> None:
        """Rewrite deprecated resource type names to their canonical names."""
        if not deprecations:
            return
        layers = [self.resource_types] + [t.resource_types for t in self.tenants.values()]
        for layer in layers:
            layer.includes = _rename(layer.includes, deprecations)
            layer.excludes = _rename(layer.excludes, deprecations)

        filter_sets = [t.filters for t in self.tenants.values()] + list(self.presets.values())
        for filters in filter_sets:
            for key in filters.keys():
                if key in deprecations:
                    logger.warning(
                        f"Resource type {key} is deprecated, use {deprecations[key]}"
                    )
                    filters.rename(key, deprecations[key])


def _rename(names: Sequence[str], deprecations: Mapping[str, str]) -> List[str]:
    renamed = []
    for name in names:
        if name in deprecations:
            logger.warning(f"Resource type {name} is deprecated, use {deprecations[name]}")
            name = deprecations[name]
        renamed.append(name)
    return renamed


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


def load_config(
    path: Optional[str] = DEFAULT_CONFIG_PATH,
    deprecations: Optional[Mapping[str, str]] = None,
    regions: Optional[Sequence[str]] = None,
) -> Config:
    """
    Read and normalise a configuration file.

    Parameters
    ----------
    path : str, optional
        File to read. A missing file is only tolerated at the default path.
    deprecations : mapping, optional
        Deprecated resource type name to canonical name.
    regions : sequence of str, optional
        Overrides the file's ``regions`` when non-empty.

    Returns
    -------
    Config
        The parsed configuration.

    Raises
    ------
    ConfigurationError
        If the file is missing, unreadable or malformed.
    """
    data: Any = None
    source = None

    if path and os.path.exists(path):
        source = path
        try:
            with open(path, "r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Failed to parse config file {path}: {e}", details={"path": path}
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Failed to read config file {path}: {e}", details={"path": path}
            ) from e
        logger.debug(f"Loaded config from {path}")
    elif path and path != DEFAULT_CONFIG_PATH:
        raise ConfigurationError(f"config file not found: {path}", details={"path": path})
    else:
        logger.debug("No config file found, using an empty configuration")

    config = Config.from_mapping(data, path=source)
    if regions:
        config.regions = list(regions)
    config.apply_deprecations(deprecations or {})
    return config
