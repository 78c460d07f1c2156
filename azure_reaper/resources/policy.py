"""
Policy Resources
================

Policy assignments and custom policy definitions of a subscription.

Built-in definitions (``BuiltIn`` and ``Static``) are never listed; system
assignments, whose names start with ``sys.``, are listed but filtered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from azure.mgmt.resource import PolicyClient

from azure_reaper.core.base_resource import (
    Filterable,
    Lister,
    ListerOptions,
    Properties,
    Resource,
    ResourceLocation,
    enum_value,
)
from azure_reaper.core.paging import collect
from azure_reaper.core.registry import Registration, Scope, register

# Module logger
logger = logging.getLogger(__name__)

GLOBAL = "global"

# Definition types owned by Azure itself
BUILT_IN_POLICY_TYPES = frozenset({"BuiltIn", "Static"})


@dataclass
class PolicyAssignment(Resource, Filterable):
    client: Any = field(repr=False)
    location: ResourceLocation
    name: str
    scope: str = ""
    display_name: Optional[str] = None
    enforcement_mode: Optional[str] = None

    def filter(self) -> Optional[str]:
        if self.name.startswith("sys."):
            return "cannot remove built-in policy"
        return None

    def remove(self) -> None:
        self.client.policy_assignments.delete(self.scope, self.name)

    def properties(self) -> Properties:
        return (
            Properties.for_location(self.location)
            .set("Name", self.name)
            .set("DisplayName", self.display_name)
            .set("EnforcementMode", self.enforcement_mode)
        )


class PolicyAssignmentLister(Lister):
    def list(self, opts: ListerOptions) -> List[Resource]:
        client = opts.auth.client(PolicyClient, opts.subscription_id)
        return [
            PolicyAssignment(
                client=client,
                location=opts.location(GLOBAL),
                name=assignment.name,
                scope=assignment.scope,
                display_name=assignment.display_name,
                enforcement_mode=enum_value(assignment.enforcement_mode),
            )
            for assignment in collect(client.policy_assignments.list())
        ]


@dataclass
class PolicyDefinition(Resource):
    client: Any = field(repr=False)
    location: ResourceLocation
    name: str
    display_name: Optional[str] = None
    policy_type: Optional[str] = None

    def remove(self) -> None:
        self.client.policy_definitions.delete(self.name)

    def properties(self) -> Properties:
        return (
            Properties.for_location(self.location)
            .set("Name", self.name)
            .set("DisplayName", self.display_name)
            .set("PolicyType", self.policy_type)
        )


class PolicyDefinitionLister(Lister):
    """Lists custom definitions only."""

    def list(self, opts: ListerOptions) -> List[Resource]:
        client = opts.auth.client(PolicyClient, opts.subscription_id)
        resources: List[Resource] = []
        skipped = 0
        for definition in collect(client.policy_definitions.list()):
            policy_type = enum_value(definition.policy_type)
            if policy_type in BUILT_IN_POLICY_TYPES:
                skipped += 1
                continue
            resources.append(
                PolicyDefinition(
                    client=client,
                    location=opts.location(GLOBAL),
                    name=definition.name,
                    display_name=definition.display_name,
                    policy_type=policy_type,
                )
            )
        logger.debug(f"Skipped {skipped} built-in policy definition(s)")
        return resources


register(Registration(
    name="PolicyAssignment",
    scope=Scope.SUBSCRIPTION,
    resource=PolicyAssignment,
    lister=PolicyAssignmentLister(),
))
register(Registration(
    name="PolicyDefinition",
    scope=Scope.SUBSCRIPTION,
    resource=PolicyDefinition,
    lister=PolicyDefinitionLister(),
))
