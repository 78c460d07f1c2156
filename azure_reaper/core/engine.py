"""
Execution Engine Module
=======================

Runs the registered scanner units and removes what they find, in an
order that respects the dependencies between resource types.

A run has four phases:

1. **List** every unit in parallel on a bounded thread pool.
2. **Classify** each instance: the plugin's own veto first, then the
   user's filters.
3. **Confirm** through the registered prompt (skipped in dry-run mode).
4. **Remove** one dependency layer at a time. A type is only removed once
   every type it depends on is gone, across all units.

Classes
-------
Parameters
    Run switches gathered from the command line.
RunSummary
    Listing results and removal outcomes of a run.
Engine
    The orchestrator.

Functions
---------
dependency_layers
    Kahn topological layering of resource types.

Example
-------
>>> engine = Engine(Parameters(no_dry_run=False), filters, registry)
>>> engine.register_scanner(Scope.TENANT, unit)
>>> summary = engine.run(threading.Event())
>>> print(f"{summary.delete_summary.dry_run} would be removed")

Notes
-----
Units share only read-only state (the registry, the authorization context
and the filters), so listing needs no locking. Removal results are
recorded from the submitting thread.

See Also
--------
azure_reaper.core.composition.wire : Registers units with an engine.
azure_reaper.cleaners.remover : Per-instance removal.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from azure_reaper.cleaners.remover import (
    DeleteResult,
    DeleteStatus,
    DeleteSummary,
    ResourceRemover,
)
from azure_reaper.core.exceptions import (
    CompositionError,
    ConfigurationError,
    DependencyError,
    UnknownResourceTypeError,
)
from azure_reaper.core.filters import Filters
from azure_reaper.core.registry import Registry, Scope
from azure_reaper.core.scanner import Item, ScannerUnit, ScanResult, scan_unit

# Module logger
logger = logging.getLogger(__name__)

MIN_FORCE_SLEEP = 3


@dataclass
class Parameters:
    """
    Run switches.

    Parameters
    ----------
    force : bool, default=False
        Skip the confirmation prompt (sleep ``force_sleep`` instead).
    force_sleep : int, default=10
        Seconds to wait before a forced run; at least 3.
    quiet : bool, default=False
        Do not log filtered instances.
    no_dry_run : bool, default=False
        Actually remove resources.
    includes, excludes : list of str
        Resource types from the command line.
    wait_on_dependencies : bool, default=False
        Re-list dependencies until they are gone instead of blocking
        dependents straight away.
    max_workers : int, default=10
        Thread pool size for listing and removal.
    run_sleep : float, default=5.0
        Seconds between dependency re-listings.
    max_wait_cycles : int, default=60
        Re-listings before a dependency wait gives up.
    """

    force: bool = False
    force_sleep: int = 10
    quiet: bool = False
    no_dry_run: bool = False
    includes: List[str] = field(default_factory=list)
    excludes: List[str] = field(default_factory=list)
    wait_on_dependencies: bool = False
    max_workers: int = 10
    run_sleep: float = 5.0
    max_wait_cycles: int = 60

    def validate(self) -> None:
        """
        Raises
        ------
        ConfigurationError
            If a value is out of range.
        """
        if self.force_sleep < MIN_FORCE_SLEEP:
            raise ConfigurationError(
                f"value for --prompt-delay cannot be less than {MIN_FORCE_SLEEP} seconds"
            )
        if self.max_workers < 1:
            raise ConfigurationError("value for --max-workers must be at least 1")

    @property
    def dry_run(self) -> bool:
        return not self.no_dry_run


@dataclass
class RunSummary:
    """
    Outcome of one engine run.

    Parameters
    ----------
    scan_results : list of ScanResult
        Per-unit listing results.
    delete_summary : DeleteSummary
        One result per listed instance.
    dry_run : bool
        Whether removal was simulated.
    aborted : bool, default=False
        True when the prompt declined or the run was cancelled.
    """

    scan_results: List[ScanResult] = field(default_factory=list)
    delete_summary: DeleteSummary = field(default_factory=DeleteSummary)
    dry_run: bool = True
    aborted: bool = False

    @property
    def listing_errors(self) -> Dict[str, List[str]]:
        """Owner to the messages of its failed listers."""
        return {
            result.owner: [str(e) for e in result.errors.values()]
            for result in self.scan_results
            if result.has_errors
        }

    @property
    def items(self) -> List[Item]:
        return [item for result in self.scan_results for item in result.items]

    @property
    def failed(self) -> bool:
        return (
            self.delete_summary.failed > 0
            or self.delete_summary.blocked > 0
            or bool(self.listing_errors)
        )


def dependency_layers(
    types: Iterable[str],
    dependencies: Callable[[str], Iterable[str]],
) -> List[List[str]]:
    """
    Order resource types into removal layers.

    Only dependencies among ``types`` are considered. Each layer is sorted.

    Parameters
    ----------
    types : iterable of str
        Types with instances to remove.
    dependencies : callable
        Returns the types a type depends on.

    Returns
    -------
    list of list of str
        Layers; every dependency of a type sits in an earlier layer.

    Raises
    ------
    CompositionError
        If the dependencies form a cycle.

    Example
    -------
    >>> deps = {"Disk": ["VirtualMachine"], "VirtualMachine": []}
    >>> dependency_layers(["Disk", "VirtualMachine"], deps.get)
    [['VirtualMachine'], ['Disk']]
    """
    present = set(types)
    edges: Dict[str, Set[str]] = {
        name: {d for d in (dependencies(name) or ()) if d in present and d != name}
        for name in present
    }

    layers: List[List[str]] = []
    remaining = dict(edges)
    while remaining:
        ready = sorted(name for name, deps in remaining.items() if not deps)
        if not ready:
            raise CompositionError(
                "resource type dependencies form a cycle",
                details={"types": sorted(remaining)},
            )
        layers.append(ready)
        for name in ready:
            del remaining[name]
        for deps in remaining.values():
            deps.difference_update(ready)
    return layers


class Engine:
    """
    Lists, classifies and removes resources for a set of scanner units.

    Parameters
    ----------
    parameters : Parameters
        Run switches.
    filters : Filters
        User filters, including the region filter.
    registry : Registry
        Resolves types to listers and dependencies.
    remover : ResourceRemover, optional
        Performs the removals.
    sleep : callable, optional
        Replaces :func:`time.sleep` between dependency re-listings.
    listing_callback : callable, optional
        Called with every :class:`ScanResult` once listing completes.
    progress_callback : callable, optional
        Called with ``(owner, status)`` as units are listed; status is
        one of ``scanning``, ``complete`` or ``error``.

    Examples
    --------
    >>> engine = Engine(Parameters(), Filters(), registry)
    >>> engine.register_version("> 0.1.0")
    >>> engine.register_prompt(lambda: True)
    >>> engine.register_scanner(Scope.RESOURCE_GROUP, unit)
    >>> summary = engine.run()
    """

    def __init__(
        self,
        parameters: Parameters,
        filters: Filters,
        registry: Registry,
        remover: Optional[ResourceRemover] = None,
        sleep: Callable[[float], None] = time.sleep,
        listing_callback: Optional[Callable[[List[ScanResult]], None]] = None,
        progress_callback: Optional[Callable[[str, str], None]] = None,
    ) -> None:
        self.parameters = parameters
        self.filters = filters
        self.registry = registry
        self.remover = remover or ResourceRemover()
        self.sleep = sleep
        self.listing_callback = listing_callback
        self.progress_callback = progress_callback

        self.version: Optional[str] = None
        self.prompt: Optional[Callable[[], bool]] = None
        self.units: List[ScannerUnit] = []

    # =========================================================================
    # Registration
    # =========================================================================

    def register_version(self, version: str) -> None:
        self.version = version

    def register_prompt(self, prompt: Callable[[], bool]) -> None:
        """Register the confirmation gate; it returns False to abort."""
        self.prompt = prompt

    def register_scanner(self, scope: Scope, unit: ScannerUnit) -> None:
        """
        Add a scanner unit.

        Raises
        ------
        UnknownResourceTypeError
            If a type of the unit is not registered.
        CompositionError
            If a type is registered at a different scope than the unit.
        """
        for name in unit.resource_types:
            registration = self.registry.lookup(name)
            if registration.name != name:
                raise UnknownResourceTypeError(
                    f"scanner units must use canonical names, got {name}",
                    resource_type=name,
                )
            if registration.scope is not scope:
                raise CompositionError(
                    f"{name} is a {registration.scope.value} type, "
                    f"cannot scan it at {scope.value} scope",
                    resource_type=name,
                )
        if unit.scope is not scope:
            raise CompositionError(
                f"unit {unit.owner} has scope {unit.scope.value}, registered as {scope.value}"
            )
        self.units.append(unit)
        logger.debug(f"Registered scanner {unit.owner} ({len(unit.resource_types)} types)")

    # =========================================================================
    # Run
    # =========================================================================

    def run(self, cancel_event: Optional[threading.Event] = None) -> RunSummary:
        """
        Execute the run.

        Parameters
        ----------
        cancel_event : threading.Event, optional
            Set to stop before the next listing or removal call.

        Returns
        -------
        RunSummary
            Listing results and one :class:`DeleteResult` per instance.

        Raises
        ------
        CompositionError
            If the dependencies among listed types form a cycle.
        ConfigurationError
            If the parameters are invalid.
        """
        self.parameters.validate()
        cancel_event = cancel_event or threading.Event()
        if self.version:
            logger.info(self.version)

        summary = RunSummary(dry_run=self.parameters.dry_run)
        summary.scan_results = self._list_all(cancel_event)
        self._classify_all(summary.scan_results)

        if self.listing_callback:
            self.listing_callback(summary.scan_results)

        deleting = summary.delete_summary
        for result in summary.scan_results:
            for item in result.filtered_items:
                deleting.add_result(
                    DeleteResult.for_item(item, DeleteStatus.FILTERED, item.filter_reason)
                )
            if result.has_errors:
                for item in result.items:
                    if not item.filtered:
                        deleting.add_result(
                            DeleteResult.for_item(
                                item,
                                DeleteStatus.BLOCKED,
                                "listing of its scanner unit failed",
                            )
                        )

        removable = [item for r in summary.scan_results for item in r.removable_items]

        if self.parameters.dry_run:
            for item in removable:
                deleting.add_result(self.remover.remove(item, dry_run=True))
            logger.info(
                f"Dry run: {len(removable)} resource(s) would be removed, "
                f"use --no-dry-run to remove them"
            )
            deleting.complete()
            return summary

        if not removable:
            logger.info("No resources to remove")
            deleting.complete()
            return summary

        if self.prompt is not None and not self.prompt():
            for item in removable:
                deleting.add_result(
                    DeleteResult.for_item(item, DeleteStatus.SKIPPED, "run not confirmed")
                )
            summary.aborted = True
            deleting.complete()
            return summary

        unresolved = set()
        for result in summary.scan_results:
            unresolved |= result.failed_types
        self._remove_in_layers(removable, unresolved, deleting, cancel_event)
        summary.aborted = cancel_event.is_set()
        deleting.complete()
        return summary

    # =========================================================================
    # Private Methods: Listing
    # =========================================================================

    def _scan(
        self,
        unit: ScannerUnit,
        cancel_event: threading.Event,
        resource_types: Optional[Iterable[str]] = None,
    ) -> ScanResult:
        if self.progress_callback:
            self.progress_callback(unit.owner, "scanning")
        result = scan_unit(unit, self.registry, cancel_event, resource_types)
        if self.progress_callback:
            self.progress_callback(unit.owner, "error" if result.has_errors else "complete")
        return result

    def _list_all(
        self,
        cancel_event: threading.Event,
        resource_types: Optional[Set[str]] = None,
    ) -> List[ScanResult]:
        units = self.units
        if resource_types is not None:
            units = [u for u in units if resource_types.intersection(u.resource_types)]

        logger.info(f"Listing resources across {len(units)} scanner unit(s)")
        # Registration order keeps the listing output stable
        return self._run_parallel(
            lambda unit: self._scan(unit, cancel_event, resource_types),
            units,
            cancel_event,
        )

    def _classify_all(self, results: List[ScanResult]) -> None:
        for result in results:
            for item in result.items:
                self._classify(item)

    def _classify(self, item: Item) -> None:
        registration = self.registry.lookup(item.resource_type)
        if registration.filterable:
            reason = item.resource.filter()
            if reason:
                item.filter_reason = reason
        if item.filter_reason is None:
            matched = self.filters.match(item.resource_type, item.properties)
            if matched is not None:
                item.filter_reason = f"filtered by config: {matched!r}"

        if item.filtered and not self.parameters.quiet:
            logger.info(
                f"{item.owner} - {item.resource_type} - {item.name} - "
                f"filtered: {item.filter_reason}"
            )

    # =========================================================================
    # Private Methods: Removal
    # =========================================================================

    def _remove_in_layers(
        self,
        removable: List[Item],
        unresolved: Set[str],
        summary: DeleteSummary,
        cancel_event: threading.Event,
    ) -> None:
        by_type: Dict[str, List[Item]] = {}
        for item in removable:
            by_type.setdefault(item.resource_type, []).append(item)

        layers = dependency_layers(by_type, self.registry.dependencies_of)
        logger.debug(f"Removal layers: {layers}")
        failed_types: Set[str] = set(unresolved)

        for layer in layers:
            batch: List[Item] = []
            for name in layer:
                reason = self._blocking_reason(name, failed_types, cancel_event)
                if reason:
                    failed_types.add(name)
                    for item in by_type[name]:
                        summary.add_result(
                            DeleteResult.for_item(item, DeleteStatus.BLOCKED, reason)
                        )
                else:
                    batch.extend(by_type[name])

            for result in self._remove_batch(batch, cancel_event):
                summary.add_result(result)
                if result.status is not DeleteStatus.SUCCESS:
                    failed_types.add(result.resource_type)

    def _blocking_reason(
        self,
        name: str,
        failed_types: Set[str],
        cancel_event: threading.Event,
    ) -> Optional[str]:
        dependencies = self.registry.dependencies_of(name)
        failed = sorted(d for d in dependencies if d in failed_types)
        if failed:
            logger.warning(f"{name} blocked by unresolved dependencies: {failed}")
            return f"depends on unresolved {', '.join(failed)}"

        if self.parameters.wait_on_dependencies and dependencies:
            try:
                self._wait_for(name, set(dependencies), cancel_event)
            except DependencyError as e:
                logger.warning(str(e))
                return e.message
        return None

    def _wait_for(
        self,
        name: str,
        dependencies: Set[str],
        cancel_event: threading.Event,
    ) -> None:
        """
        Re-list ``dependencies`` until no unfiltered instance remains.

        Raises
        ------
        DependencyError
            If instances remain after ``max_wait_cycles`` re-listings, or
            the run is cancelled.
        """
        for cycle in range(self.parameters.max_wait_cycles):
            if cancel_event.is_set():
                break
            results = self._list_all(cancel_event, dependencies)
            self._classify_all(results)
            remaining = [
                item for r in results for item in r.items if not item.filtered
            ]
            listing_failed = any(r.has_errors for r in results)
            if not remaining and not listing_failed:
                return
            logger.info(
                f"{name} waiting on {len(remaining)} dependent resource(s) "
                f"(cycle {cycle + 1}/{self.parameters.max_wait_cycles})"
            )
            self.sleep(self.parameters.run_sleep)

        raise DependencyError(
            f"gave up waiting on dependencies of {name}",
            resource_type=name,
            details={"depends_on": sorted(dependencies)},
        )

    def _remove_batch(
        self,
        items: List[Item],
        cancel_event: threading.Event,
    ) -> List[DeleteResult]:
        if not items:
            return []

        def remove(item: Item) -> DeleteResult:
            if cancel_event.is_set():
                return DeleteResult.for_item(item, DeleteStatus.SKIPPED, "run cancelled")
            return self.remover.remove(item, dry_run=False)

        return self._run_parallel(remove, items, cancel_event)

    # =========================================================================
    # Private Methods: Thread Pool
    # =========================================================================

    def _run_parallel(
        self,
        fn: Callable[[Any], Any],
        args: List[Any],
        cancel_event: threading.Event,
    ) -> List[Any]:
        """
        Apply ``fn`` to every element of ``args`` on the thread pool.

        Results come back in the order of ``args``. If the waiting thread is
        interrupted (``KeyboardInterrupt``) or a call raises, the cancel
        event is set and queued calls are dropped before the exception
        propagates; calls already running finish on their own.
        """
        results: List[Any] = [None] * len(args)
        executor = ThreadPoolExecutor(max_workers=self.parameters.max_workers)
        try:
            futures = {executor.submit(fn, arg): index for index, arg in enumerate(args)}
            for future in as_completed(futures):
                results[futures[future]] = future.result()
        except BaseException:
            cancel_event.set()
            executor.shutdown(wait=False, cancel_futures=True)
            logger.warning("Run interrupted, queued calls cancelled")
            raise
        executor.shutdown(wait=True)
        return results

    def __repr__(self) -> str:
        return (
            f"Engine(units={len(self.units)}, dry_run={self.parameters.dry_run}, "
            f"max_workers={self.parameters.max_workers})"
        )
