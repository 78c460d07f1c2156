"""
Azure Client Module
===================

Provides credential selection and management-client construction for
Azure Reaper.

Every component that talks to the Azure Resource Manager API builds its
client through a single, read-only :class:`AuthorizationContext`. The
context carries the credential and the resolved cloud environment, so
listers running concurrently for different subscriptions never share
mutable client state.

Classes
-------
AzureEnvironment
    Endpoint set for one Azure cloud.
AuthorizationContext
    Credential plus environment, and the client factory.

Functions
---------
resolve_environment
    Look up an environment by its CLI name.
configure_auth
    Validate credential options and build an AuthorizationContext.

Example
-------
>>> from azure.mgmt.compute import ComputeManagementClient
>>> from azure_reaper.core.azure_client import configure_auth
>>>
>>> auth = configure_auth("global", tenant_id="t1")
>>> compute = auth.client(ComputeManagementClient, "00000000-0000-...")
>>> vms = compute.virtual_machines.list("my-rg")

See Also
--------
azure.identity : Credential implementations.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type, TypeVar

from azure.identity import (
    AzureAuthorityHosts,
    CertificateCredential,
    ClientSecretCredential,
    DefaultAzureCredential,
    WorkloadIdentityCredential,
)

from azure_reaper.core.exceptions import (
    AzureClientError,
    ConfigurationError,
    CredentialsError,
)

# Module logger
logger = logging.getLogger(__name__)

ClientT = TypeVar("ClientT")


@dataclass(frozen=True)
class AzureEnvironment:
    """
    Endpoint set for one Azure cloud.

    Parameters
    ----------
    name : str
        Short name used on the command line.
    authority_host : str
        Microsoft Entra authority for token requests.
    resource_manager : str
        Azure Resource Manager endpoint.
    """

    name: str
    authority_host: str
    resource_manager: str

    @property
    def credential_scope(self) -> str:
        """Token scope for the resource manager endpoint."""
        return f"{self.resource_manager.rstrip('/')}/.default"


AZURE_ENVIRONMENTS: Dict[str, AzureEnvironment] = {
    "global": AzureEnvironment(
        name="global",
        authority_host=AzureAuthorityHosts.AZURE_PUBLIC_CLOUD,
        resource_manager="https://management.azure.com",
    ),
    "usgovernment": AzureEnvironment(
        name="usgovernment",
        authority_host=AzureAuthorityHosts.AZURE_GOVERNMENT,
        resource_manager="https://management.usgovcloudapi.net",
    ),
    "china": AzureEnvironment(
        name="china",
        authority_host=AzureAuthorityHosts.AZURE_CHINA,
        resource_manager="https://management.chinacloudapi.cn",
    ),
}

# Names accepted for compatibility with `az cloud list`
ENVIRONMENT_ALIASES = {
    "azurecloud": "global",
    "public": "global",
    "azureusgovernment": "usgovernment",
    "azurechinacloud": "china",
}


def resolve_environment(name: str) -> AzureEnvironment:
    """
    Look up an Azure environment by name.

    Parameters
    ----------
    name : str
        One of ``global``, ``usgovernment``, ``china`` (case-insensitive),
        or an ``az cloud`` name such as ``AzureCloud``.

    Returns
    -------
    AzureEnvironment
        The matching environment.

    Raises
    ------
    ConfigurationError
        If the name is not a known environment.
    """
    key = (name or "global").lower()
    key = ENVIRONMENT_ALIASES.get(key, key)
    try:
        return AZURE_ENVIRONMENTS[key]
    except KeyError:
        raise ConfigurationError(
            f"unknown azure environment: {name}",
            details={"valid": sorted(AZURE_ENVIRONMENTS)},
        )


@dataclass(frozen=True)
class AuthorizationContext:
    """
    Read-only credential and environment shared by every API client.

    Parameters
    ----------
    credential : TokenCredential
        An ``azure-identity`` credential.
    environment : AzureEnvironment
        The resolved cloud endpoints.
    max_retries : int, default=3
        ``retry_total`` handed to each client's retry policy.

    Examples
    --------
    >>> auth = AuthorizationContext(credential, AZURE_ENVIRONMENTS["global"])
    >>> client = auth.client(ResourceManagementClient, subscription_id)

    Notes
    -----
    Clients are constructed on every call rather than cached, so the
    context is never mutated after construction and can be shared freely
    between threads.
    """

    credential: Any
    environment: AzureEnvironment
    max_retries: int = 3

    def client(self, client_class: Type[ClientT], *args: Any, **kwargs: Any) -> ClientT:
        """
        Construct a management client bound to this context.

        Parameters
        ----------
        client_class : type
            An ``azure-mgmt-*`` client class.
        *args
            Positional arguments after the credential (usually the
            subscription id).
        **kwargs
            Extra client options.

        Returns
        -------
        object
            The constructed client.

        Raises
        ------
        AzureClientError
            If the client cannot be constructed.
        """
        kwargs.setdefault("base_url", self.environment.resource_manager)
        kwargs.setdefault("credential_scopes", [self.environment.credential_scope])
        kwargs.setdefault("retry_total", self.max_retries)
        try:
            return client_class(self.credential, *args, **kwargs)
        except Exception as e:
            logger.exception(f"Failed to create {client_class.__name__}")
            raise AzureClientError(
                f"Failed to create {client_class.__name__}: {e}",
                service=client_class.__name__,
            ) from e

    def close(self) -> None:
        """Release the credential's transport, if it holds one."""
        close = getattr(self.credential, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> AuthorizationContext:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"AuthorizationContext(credential={type(self.credential).__name__}, "
            f"environment='{self.environment.name}')"
        )


def configure_auth(
    environment: str,
    tenant_id: str,
    client_id: Optional[str] = None,
    client_secret: Optional[str] = None,
    certificate_file: Optional[str] = None,
    federated_token_file: Optional[str] = None,
    max_retries: int = 3,
) -> AuthorizationContext:
    """
    Select a credential from the supplied options.

    Parameters
    ----------
    environment : str
        Azure environment name.
    tenant_id : str
        The tenant to authenticate against.
    client_id : str, optional
        Application (client) id; required by the three explicit modes.
    client_secret : str, optional
        Client secret for ``ClientSecretCredential``.
    certificate_file : str, optional
        PEM/PKCS12 path for ``CertificateCredential``.
    federated_token_file : str, optional
        Token file for ``WorkloadIdentityCredential``.
    max_retries : int, default=3
        Client retry budget.

    Returns
    -------
    AuthorizationContext
        The configured context.

    Raises
    ------
    ConfigurationError
        If the explicit modes are combined or used without a client id.
    CredentialsError
        If the credential class rejects its arguments.

    Notes
    -----
    With no explicit mode, ``DefaultAzureCredential`` is used, which tries
    environment variables, workload and managed identity, and the Azure CLI.
    """
    env = resolve_environment(environment)

    explicit = {
        "--client-secret": client_secret,
        "--client-certificate-file": certificate_file,
        "--client-federated-token-file": federated_token_file,
    }
    chosen = [flag for flag, value in explicit.items() if value]

    if chosen and not client_id:
        raise ConfigurationError(
            "--client-id is required when using --client-secret, "
            "--client-certificate-file, or --client-federated-token-file"
        )
    if len(chosen) > 1:
        raise ConfigurationError(
            "credential options are mutually exclusive",
            details={"options": chosen},
        )

    try:
        if client_secret:
            logger.debug("using client secret credential")
            credential = ClientSecretCredential(
                tenant_id, client_id, client_secret, authority=env.authority_host
            )
        elif certificate_file:
            logger.debug("using client certificate credential")
            credential = CertificateCredential(
                tenant_id,
                client_id,
                certificate_path=certificate_file,
                authority=env.authority_host,
            )
        elif federated_token_file:
            logger.debug("using federated token credential")
            credential = WorkloadIdentityCredential(
                tenant_id=tenant_id,
                client_id=client_id,
                token_file_path=federated_token_file,
                authority=env.authority_host,
            )
        else:
            logger.debug("using default azure credential chain")
            credential = DefaultAzureCredential(
                authority=env.authority_host,
                managed_identity_client_id=client_id,
                exclude_interactive_browser_credential=False,
                interactive_browser_tenant_id=tenant_id,
            )
    except ValueError as e:
        raise CredentialsError(
            f"Failed to create credential: {e}",
            details={"hint": "Run 'az login' or check the client options"},
        ) from e

    return AuthorizationContext(
        credential=credential,
        environment=env,
        max_retries=max_retries,
    )
