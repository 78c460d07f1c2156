"""
Custom Exceptions for Azure Reaper
==================================

This module defines a hierarchy of custom exceptions used throughout
the application for consistent error handling and reporting.

Exception Hierarchy
-------------------
::

    ReaperError (base)
    ├── ConfigurationError
    ├── AzureClientError
    │   └── CredentialsError
    ├── DiscoveryError
    │   ├── NotFoundError
    │   ├── MismatchError
    │   └── DiscoveryTimeoutError
    ├── RegistryError
    │   └── DuplicateRegistrationError
    ├── CompositionError
    │   ├── UnknownResourceTypeError
    │   └── UnresolvedDependencyError
    ├── ScannerError
    │   └── ListingError
    └── CleanerError
        ├── RemovalError
        └── DependencyError

Discovery, composition and configuration errors are fatal to the whole
run. Listing errors are fatal to their scanner unit only, and removal
errors are reported per resource.

Example
-------
>>> from azure_reaper.core.exceptions import DiscoveryError, MismatchError
>>>
>>> try:
...     tenant = discover_tenant(auth, "t1", regions=["eastus"])
... except MismatchError as e:
...     print(f"Wrong tenant: {e}")
... except DiscoveryError as e:
...     print(f"Discovery failed: {e}")
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ReaperError(Exception):
    """
    Base exception for all Azure Reaper errors.

    All custom exceptions in the application inherit from this class,
    allowing for broad exception catching when needed.

    Parameters
    ----------
    message : str
        Human-readable error message.
    details : dict, optional
        Additional context about the error.

    Attributes
    ----------
    message : str
        The error message.
    details : dict
        Additional error details.

    Example
    -------
    >>> raise ReaperError("Something went wrong", details={"code": 500})
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for serialization.

        Returns
        -------
        dict
            Dictionary representation of the error.
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(ReaperError):
    """
    Raised when the run configuration is invalid.

    Covers malformed config files, missing regions, blocklisted tenants
    and mutually exclusive credential options.

    Example
    -------
    >>> raise ConfigurationError(
    ...     "--client-id is required when using --client-secret",
    ... )
    """

    pass


# =============================================================================
# Azure Client Exceptions
# =============================================================================


class AzureClientError(ReaperError):
    """
    Base exception for Azure client-related errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    service : str, optional
        The management client that caused the error.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.service = service
        full_details = details or {}
        if service:
            full_details["service"] = service
        super().__init__(message, full_details)


class CredentialsError(AzureClientError):
    """
    Raised when Azure credentials cannot be constructed.

    Example
    -------
    >>> raise CredentialsError(
    ...     "Failed to create credential",
    ...     details={"hint": "Run 'az login' or set AZURE_CLIENT_ID"}
    ... )
    """

    pass


# =============================================================================
# Discovery Exceptions
# =============================================================================


class DiscoveryError(ReaperError):
    """
    Raised when the tenant hierarchy cannot be resolved.

    Discovery is all-or-nothing: any paging failure while walking
    tenants, subscriptions or resource groups aborts the run.

    Parameters
    ----------
    message : str
        Human-readable error message.
    tenant_id : str, optional
        The tenant being discovered.
    subscription_id : str, optional
        The subscription being walked when the error occurred.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        tenant_id: Optional[str] = None,
        subscription_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.tenant_id = tenant_id
        self.subscription_id = subscription_id
        full_details = details or {}
        if tenant_id:
            full_details["tenant_id"] = tenant_id
        if subscription_id:
            full_details["subscription_id"] = subscription_id
        super().__init__(message, full_details)


class NotFoundError(DiscoveryError):
    """Raised when the requested tenant is not visible to the credential."""

    pass


class MismatchError(DiscoveryError):
    """
    Raised when the credential's primary tenant is not the requested one.

    Example
    -------
    >>> raise MismatchError(
    ...     "tenant ids do not match",
    ...     tenant_id="t1",
    ...     details={"first_visible_tenant": "t2"}
    ... )
    """

    pass


class DiscoveryTimeoutError(DiscoveryError):
    """Raised when discovery exceeds its deadline."""

    pass


# =============================================================================
# Registry and Composition Exceptions
# =============================================================================


class RegistryError(ReaperError):
    """Raised on invalid use of the resource type registry."""

    pass


class DuplicateRegistrationError(RegistryError):
    """Raised when a resource type name or alias is registered twice."""

    pass


class CompositionError(ReaperError):
    """
    Raised when scanner units cannot be composed safely.

    Parameters
    ----------
    message : str
        Human-readable error message.
    resource_type : str, optional
        The offending resource type name.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.resource_type = resource_type
        full_details = details or {}
        if resource_type:
            full_details["resource_type"] = resource_type
        super().__init__(message, full_details)


class UnknownResourceTypeError(CompositionError):
    """
    Raised when a resource type name does not resolve, even via aliases.

    Example
    -------
    >>> raise UnknownResourceTypeError(
    ...     "unknown resource type",
    ...     resource_type="VirtualMachines"
    ... )
    """

    pass


class UnresolvedDependencyError(CompositionError):
    """Raised when a registration depends on an unregistered type."""

    pass


# =============================================================================
# Scanner Exceptions
# =============================================================================


class ScannerError(ReaperError):
    """
    Base exception for scanner-related errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    resource_type : str, optional
        The type of resource being listed.
    owner : str, optional
        The scanner unit that owned the listing.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        owner: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.resource_type = resource_type
        self.owner = owner
        full_details = details or {}
        if resource_type:
            full_details["resource_type"] = resource_type
        if owner:
            full_details["owner"] = owner
        super().__init__(message, full_details)


class ListingError(ScannerError):
    """
    Raised when a resource lister fails to page through its results.

    Example
    -------
    >>> raise ListingError(
    ...     "Failed to list virtual machines",
    ...     resource_type="VirtualMachine",
    ...     owner="sub/s1/rg/rg1"
    ... )
    """

    pass


# =============================================================================
# Cleaner Exceptions
# =============================================================================


class CleanerError(ReaperError):
    """
    Base exception for cleaner-related errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    resource_name : str, optional
        The display name of the resource being removed.
    resource_type : str, optional
        The type of resource being removed.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        resource_name: Optional[str] = None,
        resource_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.resource_name = resource_name
        self.resource_type = resource_type
        full_details = details or {}
        if resource_name:
            full_details["resource_name"] = resource_name
        if resource_type:
            full_details["resource_type"] = resource_type
        super().__init__(message, full_details)


class RemovalError(CleanerError):
    """Raised when a delete call or its long-running operation fails."""

    pass


class DependencyError(CleanerError):
    """
    Raised when a resource cannot be removed because a dependency remains.

    Example
    -------
    >>> raise DependencyError(
    ...     "waiting on dependency",
    ...     resource_name="disk-01",
    ...     details={"depends_on": ["VirtualMachine"]}
    ... )
    """

    pass
