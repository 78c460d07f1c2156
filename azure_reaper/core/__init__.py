"""
Core Components
===============

The engine and everything it is built from:

- :class:`AuthorizationContext` - Credential and cloud endpoints; builds clients
- :func:`discover_tenant` - Tenant, subscription and resource group discovery
- :class:`Registry` - Resource type registrations with scope and dependencies
- :class:`Filters` - Property filters from the configuration
- :class:`Engine` - Lists, filters, confirms and removes in dependency order
- Exception hierarchy for error handling

Classes
-------
AuthorizationContext
    Credential plus Azure environment; thread-safe client factory.
Tenant
    The discovered hierarchy of one tenant.
Registry, Registration, Scope
    The resource type catalog.
Filter, Filters, FilterType
    Property based filtering.
Config
    The parsed YAML configuration.
ScannerUnit, ScanResult, Item
    Listing units and their results.
Engine, Parameters, RunSummary
    The run itself.

Exceptions
----------
ReaperError
    Base exception for all azure-reaper errors.
ConfigurationError
    Invalid configuration or command line options.
AzureClientError
    Base exception for client construction and credential errors.
DiscoveryError
    Tenant discovery failed.
CompositionError
    Scanner composition failed.
ScannerError
    Listing failed.
CleanerError
    Removal failed.

Example
-------
>>> from azure_reaper.core import configure_auth, discover_tenant
>>>
>>> auth = configure_auth("global", tenant_id="00000000-0000-0000-0000-000000000000")
>>> tenant = discover_tenant(auth, "00000000-0000-0000-0000-000000000000",
...                          regions=["global", "eastus"])

See Also
--------
azure_reaper.resources : Resource type implementations.
azure_reaper.cleaners : Resource removal.
azure_reaper.reporters : Console output.
"""

from azure_reaper.core.azure_client import (
    AZURE_ENVIRONMENTS,
    AuthorizationContext,
    AzureEnvironment,
    configure_auth,
    resolve_environment,
)
from azure_reaper.core.base_resource import (
    Filterable,
    Lister,
    ListerOptions,
    Properties,
    Resource,
    ResourceLocation,
)
from azure_reaper.core.config import Config, load_config
from azure_reaper.core.exceptions import (
    AzureClientError,
    CleanerError,
    CompositionError,
    ConfigurationError,
    CredentialsError,
    DependencyError,
    DiscoveryError,
    DiscoveryTimeoutError,
    DuplicateRegistrationError,
    ListingError,
    MismatchError,
    NotFoundError,
    ReaperError,
    RegistryError,
    RemovalError,
    ScannerError,
    UnknownResourceTypeError,
    UnresolvedDependencyError,
)
from azure_reaper.core.filters import Filter, Filters, FilterType
from azure_reaper.core.registry import Registration, Registry, Scope, default_registry
from azure_reaper.core.scanner import Item, ScannerUnit, ScanResult, scan_unit
from azure_reaper.core.tenant import Tenant, discover_tenant
from azure_reaper.core.engine import Engine, Parameters, RunSummary
from azure_reaper.core.composition import compose_scanners, wire

__all__ = [
    # Client
    "AZURE_ENVIRONMENTS",
    "AuthorizationContext",
    "AzureEnvironment",
    "configure_auth",
    "resolve_environment",
    # Resource contract
    "Filterable",
    "Lister",
    "ListerOptions",
    "Properties",
    "Resource",
    "ResourceLocation",
    # Configuration
    "Config",
    "load_config",
    "Filter",
    "Filters",
    "FilterType",
    # Registry
    "Registration",
    "Registry",
    "Scope",
    "default_registry",
    # Discovery and composition
    "Tenant",
    "discover_tenant",
    "compose_scanners",
    "wire",
    # Listing
    "Item",
    "ScannerUnit",
    "ScanResult",
    "scan_unit",
    # Engine
    "Engine",
    "Parameters",
    "RunSummary",
    # Exceptions - Base
    "ReaperError",
    "ConfigurationError",
    # Exceptions - Client
    "AzureClientError",
    "CredentialsError",
    # Exceptions - Discovery
    "DiscoveryError",
    "NotFoundError",
    "MismatchError",
    "DiscoveryTimeoutError",
    # Exceptions - Registry and composition
    "RegistryError",
    "DuplicateRegistrationError",
    "CompositionError",
    "UnknownResourceTypeError",
    "UnresolvedDependencyError",
    # Exceptions - Scanner
    "ScannerError",
    "ListingError",
    # Exceptions - Cleaner
    "CleanerError",
    "RemovalError",
    "DependencyError",
]
