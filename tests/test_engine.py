"""
Tests for the execution engine.
"""

import threading
import time
from dataclasses import dataclass

import pytest
from azure.core.exceptions import AzureError

from azure_reaper.core.base_resource import ListerOptions
from azure_reaper.core.engine import (
    Engine,
    Parameters,
    RunSummary,
    dependency_layers,
)
from azure_reaper.core.exceptions import (
    CompositionError,
    ConfigurationError,
    UnknownResourceTypeError,
)
from azure_reaper.core.filters import Filter, Filters
from azure_reaper.core.registry import Registration, Scope
from azure_reaper.core.scanner import ScannerUnit
from azure_reaper.cleaners.remover import DeleteStatus
from conftest import FakeLister, FakeResource, rg_location

OWNER = "sub/s1/rg/rg1"


def rg_unit(types=("Disk", "VirtualMachine"), owner=OWNER):
    return ScannerUnit(
        scope=Scope.RESOURCE_GROUP,
        owner=owner,
        resource_types=tuple(types),
        options=ListerOptions(auth=None, tenant_id="t1", subscription_id="s1", resource_group="rg1"),
    )


@dataclass
class SlowResource(FakeResource):
    """Takes a moment to remove."""

    def remove(self) -> None:
        time.sleep(0.3)
        super().remove()


def statuses(summary):
    return {r.name: (r.status, r.error_message) for r in summary.delete_summary.results}


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_engine(registry, sleeps):
    """Engine over the shared registry with one resource group unit."""

    def factory(filters=None, prompt=None, **params):
        engine = Engine(
            Parameters(**params),
            filters or Filters(),
            registry,
            sleep=sleeps.append,
        )
        if prompt is not None:
            engine.register_prompt(prompt)
        engine.register_scanner(Scope.RESOURCE_GROUP, rg_unit())
        return engine

    return factory


class TestParameters:
    """Tests for Parameters."""

    def test_defaults_are_dry_run(self):
        assert Parameters().dry_run is True
        assert Parameters(no_dry_run=True).dry_run is False

    def test_prompt_delay_minimum(self):
        with pytest.raises(ConfigurationError):
            Parameters(force_sleep=2).validate()

    def test_max_workers_minimum(self):
        with pytest.raises(ConfigurationError):
            Parameters(max_workers=0).validate()


class TestDependencyLayers:
    """Tests for dependency_layers()."""

    def test_layers(self):
        deps = {
            "Disk": ["VirtualMachine"],
            "VirtualMachine": [],
            "VirtualNetwork": ["NetworkInterface"],
            "NetworkInterface": ["VirtualMachine"],
        }
        assert dependency_layers(deps, deps.get) == [
            ["VirtualMachine"],
            ["Disk", "NetworkInterface"],
            ["VirtualNetwork"],
        ]

    def test_absent_dependencies_ignored(self):
        deps = {"Disk": ["VirtualMachine"]}
        assert dependency_layers(["Disk"], deps.get) == [["Disk"]]

    def test_cycle(self):
        deps = {"A": ["B"], "B": ["A"], "C": []}
        with pytest.raises(CompositionError) as exc_info:
            dependency_layers(deps, deps.get)

        assert exc_info.value.details["types"] == ["A", "B"]


class TestRegisterScanner:
    """Tests for Engine.register_scanner()."""

    def test_registers(self, registry):
        engine = Engine(Parameters(), Filters(), registry)
        engine.register_scanner(Scope.RESOURCE_GROUP, rg_unit())
        assert len(engine.units) == 1

    def test_wrong_scope_type(self, registry):
        engine = Engine(Parameters(), Filters(), registry)
        with pytest.raises(CompositionError):
            engine.register_scanner(Scope.RESOURCE_GROUP, rg_unit(types=("ResourceGroup",)))

    def test_alias_rejected(self, registry):
        engine = Engine(Parameters(), Filters(), registry)
        with pytest.raises(UnknownResourceTypeError):
            engine.register_scanner(Scope.RESOURCE_GROUP, rg_unit(types=("Disks",)))

    def test_unknown_type(self, registry):
        engine = Engine(Parameters(), Filters(), registry)
        with pytest.raises(UnknownResourceTypeError):
            engine.register_scanner(Scope.RESOURCE_GROUP, rg_unit(types=("Nope",)))

    def test_unit_scope_mismatch(self, registry):
        engine = Engine(Parameters(), Filters(), registry)
        with pytest.raises(CompositionError):
            engine.register_scanner(Scope.TENANT, rg_unit(types=()))
        assert engine.units == []


class TestDryRun:
    """Tests for dry-run mode."""

    def test_nothing_removed(self, make_engine, stock_lister, make_resource, removal_log):
        stock_lister(
            "VirtualMachine",
            [make_resource("vm-1", protected=True), make_resource("keep-vm", protected=True)],
        )
        stock_lister("Disk", [make_resource("disk-1")])
        prompted = []
        engine = make_engine(prompt=lambda: prompted.append(True) or True)

        summary = engine.run()

        assert removal_log == []
        assert prompted == []
        assert summary.dry_run is True
        assert summary.delete_summary.dry_run == 2
        assert summary.delete_summary.filtered == 1
        assert statuses(summary)["keep-vm"] == (DeleteStatus.FILTERED, "protected by name")
        assert not summary.failed

    def test_config_filter(self, make_engine, stock_lister, make_resource):
        stock_lister("Disk", [make_resource("disk-1"), make_resource("disk-2")])
        engine = make_engine(filters=Filters({"Disk": [Filter("Name", "disk-1")]}))

        summary = engine.run()

        status, reason = statuses(summary)["disk-1"]
        assert status is DeleteStatus.FILTERED
        assert reason.startswith("filtered by config: ")
        assert "disk-1" in reason
        assert statuses(summary)["disk-2"][0] is DeleteStatus.DRY_RUN

    def test_plugin_veto_wins_over_config_filter(self, make_engine, stock_lister, make_resource):
        stock_lister("VirtualMachine", [make_resource("keep-vm", protected=True)])
        engine = make_engine(filters=Filters({"VirtualMachine": [Filter("Name", "keep-vm")]}))

        summary = engine.run()

        assert statuses(summary)["keep-vm"] == (DeleteStatus.FILTERED, "protected by name")

    def test_listing_callback(self, registry, stock_lister, make_resource):
        stock_lister("Disk", [make_resource("disk-1")])
        seen = []
        engine = Engine(Parameters(), Filters(), registry, listing_callback=seen.append)
        engine.register_scanner(Scope.RESOURCE_GROUP, rg_unit())

        summary = engine.run()

        assert seen == [summary.scan_results]
        assert [item.name for item in summary.items] == ["disk-1"]

    def test_progress_callback(self, registry):
        events = []
        engine = Engine(
            Parameters(), Filters(), registry,
            progress_callback=lambda owner, status: events.append((owner, status)),
        )
        engine.register_scanner(Scope.RESOURCE_GROUP, rg_unit())

        engine.run()

        assert events == [(OWNER, "scanning"), (OWNER, "complete")]


class TestRemoval:
    """Tests for removal runs."""

    def test_dependency_order(self, make_engine, stock_lister, make_resource, removal_log):
        stock_lister("VirtualMachine", [make_resource("vm-1", protected=True)])
        stock_lister("Disk", [make_resource("disk-1")])
        engine = make_engine(prompt=lambda: True, no_dry_run=True)

        summary = engine.run()

        assert removal_log == ["vm-1", "disk-1"]
        assert summary.delete_summary.deleted == 2
        assert not summary.failed
        assert not summary.aborted

    def test_declined_prompt(self, make_engine, stock_lister, make_resource, removal_log):
        stock_lister("Disk", [make_resource("disk-1")])
        engine = make_engine(prompt=lambda: False, no_dry_run=True)

        summary = engine.run()

        assert removal_log == []
        assert summary.aborted is True
        assert statuses(summary)["disk-1"] == (DeleteStatus.SKIPPED, "run not confirmed")

    def test_nothing_to_remove_skips_prompt(self, make_engine):
        def prompt():
            raise AssertionError("prompt should not be called")

        summary = make_engine(prompt=prompt, no_dry_run=True).run()

        assert summary.delete_summary.total == 0

    def test_failed_dependency_blocks_dependents(
        self, make_engine, stock_lister, make_resource, removal_log
    ):
        vm = make_resource("vm-1", error=AzureError("boom"), protected=True)
        stock_lister("VirtualMachine", [vm])
        stock_lister("Disk", [make_resource("disk-1")])
        engine = make_engine(prompt=lambda: True, no_dry_run=True)

        summary = engine.run()

        assert removal_log == []
        assert statuses(summary)["vm-1"] == (DeleteStatus.FAILED, "boom")
        assert statuses(summary)["disk-1"] == (
            DeleteStatus.BLOCKED,
            "depends on unresolved VirtualMachine",
        )
        assert summary.failed

    def test_listing_error_blocks_unit(self, make_engine, stock_lister, make_resource, removal_log):
        stock_lister("VirtualMachine", RuntimeError("denied"))
        stock_lister("Disk", [make_resource("disk-1")])
        engine = make_engine(prompt=lambda: True, no_dry_run=True)

        summary = engine.run()

        assert removal_log == []
        assert statuses(summary)["disk-1"] == (
            DeleteStatus.BLOCKED,
            "listing of its scanner unit failed",
        )
        assert OWNER in summary.listing_errors
        assert "denied" in summary.listing_errors[OWNER][0]
        assert summary.failed

    def test_cancelled_before_removal(self, make_engine, stock_lister, make_resource, removal_log):
        stock_lister("Disk", [make_resource("disk-1")])
        cancel = threading.Event()

        def prompt():
            cancel.set()
            return True

        summary = make_engine(prompt=prompt, no_dry_run=True).run(cancel)

        assert removal_log == []
        assert statuses(summary)["disk-1"] == (DeleteStatus.SKIPPED, "run cancelled")
        assert summary.aborted is True


class TestWaitOnDependencies:
    """Tests for waiting on dependencies to disappear."""

    def test_waits_until_gone(self, make_engine, stock_lister, make_resource, removal_log, sleeps):
        vm = make_resource("vm-1", protected=True)
        # initial listing, first re-listing, then gone
        stock_lister("VirtualMachine", [vm], [vm], [])
        stock_lister("Disk", [make_resource("disk-1")])
        engine = make_engine(
            prompt=lambda: True, no_dry_run=True, wait_on_dependencies=True, run_sleep=0.5
        )

        summary = engine.run()

        assert removal_log == ["vm-1", "disk-1"]
        assert sleeps == [0.5]
        assert summary.delete_summary.deleted == 2

    def test_gives_up(self, make_engine, stock_lister, make_resource, removal_log, sleeps):
        stock_lister("VirtualMachine", [make_resource("vm-1", protected=True)])
        stock_lister("Disk", [make_resource("disk-1")])
        engine = make_engine(
            prompt=lambda: True,
            no_dry_run=True,
            wait_on_dependencies=True,
            run_sleep=1.0,
            max_wait_cycles=2,
        )

        summary = engine.run()

        assert removal_log == ["vm-1"]
        assert sleeps == [1.0, 1.0]
        assert statuses(summary)["disk-1"] == (
            DeleteStatus.BLOCKED,
            "gave up waiting on dependencies of Disk",
        )
        assert summary.failed


class TestRunSummary:
    """Tests for RunSummary."""

    def test_empty_summary(self):
        summary = RunSummary()
        assert summary.failed is False
        assert summary.listing_errors == {}
        assert summary.delete_summary.total == 0
        assert summary.items == []


class TestInterrupt:
    """Tests for interrupting a run (Ctrl-C in the waiting thread)."""

    def test_interrupt_cancels_queued_removals(
        self, make_engine, stock_lister, make_resource, removal_log
    ):
        """Test removals still queued when the run is interrupted never start."""
        disks = [make_resource("disk-0", error=KeyboardInterrupt())]
        disks += [
            SlowResource(location=rg_location(), name=f"disk-{i}", log=removal_log)
            for i in range(1, 6)
        ]
        stock_lister("Disk", disks)
        engine = make_engine(prompt=lambda: True, no_dry_run=True, max_workers=1)
        cancel = threading.Event()

        with pytest.raises(KeyboardInterrupt):
            engine.run(cancel)

        assert cancel.is_set()
        # At most the removal already running when the interrupt arrived
        assert len(removal_log) <= 1

    def test_interrupt_during_listing(self, make_engine, stock_lister, removal_log):
        def interrupted(opts):
            raise KeyboardInterrupt

        stock_lister("VirtualMachine", interrupted)
        cancel = threading.Event()

        with pytest.raises(KeyboardInterrupt):
            make_engine(prompt=lambda: True, no_dry_run=True).run(cancel)

        assert cancel.is_set()
        assert removal_log == []


class TestCrossUnitDependencies:
    """Tests for dependencies between types listed by different units."""

    @pytest.fixture
    def engine(self, registry):
        registry.register(Registration(
            name="ManagementLock",
            scope=Scope.SUBSCRIPTION,
            resource=FakeResource,
            lister=FakeLister(),
        ))
        registry.register(Registration(
            name="StorageAccount",
            scope=Scope.RESOURCE_GROUP,
            resource=FakeResource,
            lister=FakeLister(),
            depends_on=("ManagementLock",),
        ))
        engine = Engine(Parameters(no_dry_run=True), Filters(), registry)
        engine.register_prompt(lambda: True)
        engine.register_scanner(Scope.SUBSCRIPTION, ScannerUnit(
            scope=Scope.SUBSCRIPTION,
            owner="sub/s1",
            resource_types=("ManagementLock",),
            options=ListerOptions(auth=None, tenant_id="t1", subscription_id="s1"),
        ))
        for group in ("rg1", "rg2"):
            engine.register_scanner(Scope.RESOURCE_GROUP, ScannerUnit(
                scope=Scope.RESOURCE_GROUP,
                owner=f"sub/s1/rg/{group}",
                resource_types=("StorageAccount",),
                options=ListerOptions(
                    auth=None, tenant_id="t1", subscription_id="s1", resource_group=group
                ),
            ))
        return engine

    def test_subscription_dependency_removed_first(
        self, engine, stock_lister, make_resource, removal_log
    ):
        stock_lister("ManagementLock", [make_resource("lock-1")])
        stock_lister(
            "StorageAccount",
            lambda opts: [make_resource(f"sa-{opts.resource_group}", group=opts.resource_group)],
        )

        summary = engine.run()

        assert removal_log[0] == "lock-1"
        assert sorted(removal_log[1:]) == ["sa-rg1", "sa-rg2"]
        assert summary.delete_summary.deleted == 3

    def test_failed_subscription_dependency_blocks_other_units(
        self, engine, stock_lister, make_resource, removal_log
    ):
        stock_lister("ManagementLock", [make_resource("lock-1", error=AzureError("locked"))])
        stock_lister(
            "StorageAccount",
            lambda opts: [make_resource(f"sa-{opts.resource_group}", group=opts.resource_group)],
        )

        summary = engine.run()

        assert removal_log == []
        assert statuses(summary)["lock-1"] == (DeleteStatus.FAILED, "locked")
        for name in ("sa-rg1", "sa-rg2"):
            assert statuses(summary)[name] == (
                DeleteStatus.BLOCKED,
                "depends on unresolved ManagementLock",
            )
