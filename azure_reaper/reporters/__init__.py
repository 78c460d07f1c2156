"""
Report Generators
=================

Terminal output for azure-reaper runs.

Available Reporters
-------------------
CLIReporter
    Rich terminal output: run header, listing table, removal progress,
    summary panel and the resource type catalog.

Example
-------
>>> from azure_reaper.reporters import CLIReporter
>>>
>>> reporter = CLIReporter()
>>> reporter.report_listing(summary.scan_results)
>>> reporter.report_summary(summary)

See Also
--------
azure_reaper.core.engine.RunSummary : Input data structure.
"""

from azure_reaper.reporters.cli_reporter import CLIReporter

__all__ = [
    "CLIReporter",
]
