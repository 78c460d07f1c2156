"""
azure-reaper: Azure Tenant Resource Remover
===========================================

Lists every resource of an Azure tenant (the tenant itself, its
subscriptions and their resource groups), filters out what the
configuration protects and removes the rest in dependency order.

Modules
-------
core
    Authentication, discovery, registry, filters, configuration and the engine
resources
    Per-type listers and removers
cleaners
    Per-instance removal with error translation
reporters
    Terminal output

Example
-------
>>> from azure_reaper.core import configure_auth, discover_tenant
>>>
>>> auth = configure_auth("global", tenant_id)
>>> tenant = discover_tenant(auth, tenant_id, regions=["global", "eastus"])
>>> print(f"{len(tenant.subscription_ids)} subscriptions")

Notes
-----
Credentials are resolved by azure-identity. Without explicit options the
DefaultAzureCredential chain is used:
- Environment variables (AZURE_CLIENT_ID, AZURE_CLIENT_SECRET, ...)
- Workload or managed identity
- Azure CLI login (``az login``)

See Also
--------
azure-identity : Azure credential library
"""

__version__ = "0.1.0"
__author__ = "azure-reaper Team"
__license__ = "MIT"

__all__ = [
    # Version info
    "__version__",
    "__author__",
    "__license__",
]
