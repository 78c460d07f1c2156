"""
Resource Removal
================

Deletes listed resources one at a time and records the outcome.

Safety Features
---------------
1. **Dry-run by default**: ``ResourceRemover.remove`` only records what
   would be deleted unless ``dry_run=False`` is passed.
2. **Idempotent deletes**: a resource that is already gone counts as
   removed.
3. **Readable errors**: Azure error codes such as ``ScopeLocked`` are
   translated into short explanations.

Example
-------
>>> from azure_reaper.cleaners import ResourceRemover
>>>
>>> remover = ResourceRemover()
>>> result = remover.remove(item, dry_run=False)
>>> print(result.status.value)

See Also
--------
azure_reaper.core.engine : Decides which items are removed and in what order.
"""

from azure_reaper.cleaners.remover import (
    DeleteResult,
    DeleteStatus,
    DeleteSummary,
    ResourceRemover,
)

__all__ = [
    "DeleteResult",
    "DeleteStatus",
    "DeleteSummary",
    "ResourceRemover",
]
