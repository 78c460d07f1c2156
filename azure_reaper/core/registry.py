"""
Resource Type Registry
======================

Catalog of every resource type Azure Reaper knows how to list and remove.

Each :class:`Registration` records where a type is enumerated (its
:class:`Scope`), which types must be gone before its instances may be
removed, and the names it used to be known by. Composition and the engine
receive the registry explicitly; resource plugins never see it.

Classes
-------
Scope
    Level of the management hierarchy at which a type is enumerated.
Registration
    Immutable metadata for one resource type.
Registry
    Name-keyed collection of registrations with alias resolution.

Functions
---------
register
    Add a registration to the default registry.
default_registry
    Return the process-wide registry populated by ``azure_reaper.resources``.

Example
-------
>>> from azure_reaper.core.registry import Registration, Registry, Scope
>>>
>>> registry = Registry()
>>> registry.register(Registration(
...     name="Disk",
...     scope=Scope.RESOURCE_GROUP,
...     resource=Disk,
...     lister=DiskLister(),
...     depends_on=("VirtualMachine",),
... ))
>>> registry.names_for_scope(Scope.RESOURCE_GROUP)
{'Disk'}

Notes
-----
Dependencies are checked lazily by :meth:`Registry.validate_dependencies`
so that plugin modules can register in any import order.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple, Type

from azure_reaper.core.base_resource import Filterable, Lister, Resource
from azure_reaper.core.exceptions import (
    DuplicateRegistrationError,
    RegistryError,
    UnknownResourceTypeError,
    UnresolvedDependencyError,
)

# Module logger
logger = logging.getLogger(__name__)


class Scope(Enum):
    """Level of the management hierarchy a resource type is listed at."""

    TENANT = "tenant"
    SUBSCRIPTION = "subscription"
    RESOURCE_GROUP = "resource-group"


@dataclass(frozen=True)
class Registration:
    """
    Metadata for one registered resource type.

    Parameters
    ----------
    name : str
        Canonical, unique type name (``VirtualMachine``).
    scope : Scope
        Where instances are enumerated.
    resource : type
        The :class:`Resource` subclass produced by the lister.
    lister : Lister
        Stateless lister instance.
    depends_on : tuple of str, default=()
        Types whose instances must all be removed or filtered before
        removal of this type begins.
    deprecated_aliases : tuple of str, default=()
        Former names still accepted in configuration and on the CLI.
    alternative_resource : str, optional
        Name of the type that supersedes this one. Superseded types are
        never selected for scanning.
    """

    name: str
    scope: Scope
    resource: Type[Resource]
    lister: Lister
    depends_on: Tuple[str, ...] = ()
    deprecated_aliases: Tuple[str, ...] = ()
    alternative_resource: Optional[str] = None

    @property
    def filterable(self) -> bool:
        """Whether instances of this type can veto their own removal."""
        return issubclass(self.resource, Filterable)

    @property
    def superseded(self) -> bool:
        return self.alternative_resource is not None


class Registry:
    """
    Collection of resource type registrations.

    Registration is allowed until :meth:`freeze` is called; afterwards the
    registry is read-only and safe to share between threads.

    Examples
    --------
    >>> registry = Registry()
    >>> registry.register(registration)
    >>> registry.lookup("PublicIPAddresses").name
    'PublicIPAddress'
    >>> registry.freeze()
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Registration] = {}
        self._aliases: Dict[str, str] = {}
        self._frozen = False
        self._lock = threading.Lock()

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, entry: Registration) -> None:
        """
        Add one resource type.

        Parameters
        ----------
        entry : Registration
            The type to add.

        Raises
        ------
        RegistryError
            If the registry is frozen.
        DuplicateRegistrationError
            If the name or one of the aliases is already taken.
        """
        with self._lock:
            if self._frozen:
                raise RegistryError(
                    f"registry is frozen, cannot register {entry.name}"
                )

            taken = set(self._entries) | set(self._aliases)
            for name in (entry.name,) + tuple(entry.deprecated_aliases):
                if name in taken:
                    raise DuplicateRegistrationError(
                        f"resource type already registered: {name}",
                        details={"registering": entry.name},
                    )
            if len(set(entry.deprecated_aliases)) != len(entry.deprecated_aliases):
                raise DuplicateRegistrationError(
                    f"duplicate alias in registration of {entry.name}"
                )

            self._entries[entry.name] = entry
            for alias in entry.deprecated_aliases:
                self._aliases[alias] = entry.name

        logger.debug(f"Registered resource type {entry.name} ({entry.scope.value})")

    def freeze(self) -> None:
        """Disallow further registration."""
        self._frozen = True

    def canonical_name(self, name: str) -> str:
        """
        Resolve a canonical name or deprecated alias.

        Raises
        ------
        UnknownResourceTypeError
            If ``name`` matches neither.
        """
        if name in self._entries:
            return name
        if name in self._aliases:
            return self._aliases[name]
        raise UnknownResourceTypeError(
            f"unknown resource type: {name}",
            resource_type=name,
        )

    def lookup(self, name: str) -> Registration:
        """
        Return the registration for a name or deprecated alias.

        Parameters
        ----------
        name : str
            Canonical name or alias.

        Returns
        -------
        Registration
            The canonical registration.

        Raises
        ------
        UnknownResourceTypeError
            If the name does not resolve.
        """
        return self._entries[self.canonical_name(name)]

    def __contains__(self, name: object) -> bool:
        return name in self._entries or name in self._aliases

    def __len__(self) -> int:
        return len(self._entries)

    def names(self) -> List[str]:
        """Every canonical name, sorted."""
        return sorted(self._entries)

    def registrations(self) -> List[Registration]:
        """Every registration, sorted by name."""
        return [self._entries[name] for name in self.names()]

    def names_for_scope(self, scope: Scope) -> Set[str]:
        """
        Registered, non-superseded types enumerated at ``scope``.

        Parameters
        ----------
        scope : Scope
            The hierarchy level.

        Returns
        -------
        set of str
            Canonical names.
        """
        return {
            name
            for name, entry in self._entries.items()
            if entry.scope is scope and not entry.superseded
        }

    def deprecated_mapping(self) -> Dict[str, str]:
        """Mapping of every deprecated alias to its canonical name."""
        return dict(self._aliases)

    def validate_dependencies(self) -> None:
        """
        Check that every declared dependency is registered.

        Aliases are accepted as dependency names.

        Raises
        ------
        UnresolvedDependencyError
            On the first dependency that does not resolve.
        """
        for entry in self.registrations():
            for dependency in entry.depends_on:
                if dependency not in self:
                    raise UnresolvedDependencyError(
                        f"{entry.name} depends on unregistered type {dependency}",
                        resource_type=entry.name,
                        details={"dependency": dependency},
                    )

    def dependencies_of(self, name: str) -> Tuple[str, ...]:
        """Canonical names of the types ``name`` depends on."""
        entry = self.lookup(name)
        return tuple(self.canonical_name(d) for d in entry.depends_on)

    def __repr__(self) -> str:
        return f"Registry(types={len(self._entries)}, frozen={self._frozen})"


_default = Registry()


def default_registry() -> Registry:
    """
    Return the process-wide registry.

    Importing :mod:`azure_reaper.resources` populates it.
    """
    return _default


def register(entry: Registration) -> Registration:
    """Add ``entry`` to the default registry and return it."""
    _default.register(entry)
    return entry
