"""
Remover for listed Azure resources.

Provides safe deletion with dry-run mode and error translation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Callable, List, Optional

from azure.core.exceptions import AzureError, HttpResponseError, ResourceNotFoundError

from ..core.exceptions import RemovalError

if TYPE_CHECKING:
    from ..core.scanner import Item

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class DeleteStatus(Enum):
    """Status of a delete operation."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"
    DRY_RUN = "dry_run"
    FILTERED = "filtered"
    BLOCKED = "blocked"


@dataclass
class DeleteResult:
    """
    Result of a single removal attempt.

    Attributes:
        resource_type: Canonical resource type name
        name: Display name of the instance
        owner: Scanner unit that listed the instance
        region: Region of the instance
        status: Result status
        error_message: Failure, filter or block reason
        timestamp: When the operation was attempted
    """

    resource_type: str
    name: str
    owner: str
    region: Optional[str]
    status: DeleteStatus
    error_message: Optional[str] = None
    timestamp: datetime = field(default_factory=_now)

    @classmethod
    def for_item(
        cls,
        item: Item,
        status: DeleteStatus,
        error_message: Optional[str] = None,
    ) -> "DeleteResult":
        return cls(
            resource_type=item.resource_type,
            name=item.name,
            owner=item.owner,
            region=item.region,
            status=status,
            error_message=error_message,
        )


@dataclass
class DeleteSummary:
    """
    Summary of a run's removal outcomes.

    Attributes:
        total: Number of instances processed
        deleted: Number successfully removed
        failed: Number that failed to remove
        skipped: Number skipped (declined prompt or cancellation)
        dry_run: Number that would be removed
        filtered: Number protected by a filter
        blocked: Number held back by an unresolved dependency
        results: Individual results
        start_time: When the run started
        end_time: When the run completed
    """

    total: int = 0
    deleted: int = 0
    failed: int = 0
    skipped: int = 0
    dry_run: int = 0
    filtered: int = 0
    blocked: int = 0
    results: List[DeleteResult] = field(default_factory=list)
    start_time: datetime = field(default_factory=_now)
    end_time: Optional[datetime] = None

    _COUNTERS = {
        DeleteStatus.SUCCESS: "deleted",
        DeleteStatus.FAILED: "failed",
        DeleteStatus.SKIPPED: "skipped",
        DeleteStatus.DRY_RUN: "dry_run",
        DeleteStatus.FILTERED: "filtered",
        DeleteStatus.BLOCKED: "blocked",
    }

    def add_result(self, result: DeleteResult) -> None:
        """Add a result and update counts."""
        self.results.append(result)
        self.total += 1
        counter = self._COUNTERS[result.status]
        setattr(self, counter, getattr(self, counter) + 1)

    def by_status(self, status: DeleteStatus) -> List[DeleteResult]:
        return [r for r in self.results if r.status == status]

    def complete(self) -> None:
        """Mark the operation as complete."""
        self.end_time = _now()


class ResourceRemover:
    """
    Removes listed resource instances.

    Provides:
    - Dry-run mode (preview without deleting)
    - Translation of Azure error codes into readable messages
    - Progress callbacks
    """

    # Common error codes and user-friendly messages
    ERROR_MESSAGES = {
        "AuthorizationFailed": "Insufficient permissions to delete the resource",
        "ScopeLocked": "A management lock prevents deleting the resource",
        "Conflict": "The resource is in use or in a conflicting state",
        "InUseSubnetCannotBeDeleted": "A subnet is still in use by another resource",
        "InUseNetworkSecurityGroupCannotBeDeleted": "The network security group is still attached",
        "PublicIPAddressInUse": "The public IP address is still associated",
        "OperationNotAllowed": "Azure does not allow this operation on the resource",
    }

    def __init__(
        self,
        progress_callback: Optional[Callable[[DeleteResult], None]] = None,
    ):
        """
        Initialize the remover.

        Args:
            progress_callback: Optional callback called after each removal
        """
        self.progress_callback = progress_callback

    def remove(self, item: Item, dry_run: bool = True) -> DeleteResult:
        """
        Remove a single instance.

        Args:
            item: The listed instance
            dry_run: If True, only simulate removal

        Returns:
            DeleteResult with operation status
        """
        if dry_run:
            result = DeleteResult.for_item(item, DeleteStatus.DRY_RUN)
        else:
            result = self._remove(item)

        if self.progress_callback:
            self.progress_callback(result)
        return result

    def _remove(self, item: Item) -> DeleteResult:
        try:
            item.resource.remove()
        except ResourceNotFoundError:
            logger.info(f"{item.resource_type} {item.name} no longer exists")
            return DeleteResult.for_item(item, DeleteStatus.SUCCESS)
        except HttpResponseError as e:
            message = self.describe_error(e)
            logger.error(f"Failed to remove {item.resource_type} {item.name}: {message}")
            return DeleteResult.for_item(item, DeleteStatus.FAILED, message)
        except AzureError as e:
            logger.error(f"Failed to remove {item.resource_type} {item.name}: {e}")
            return DeleteResult.for_item(item, DeleteStatus.FAILED, str(e))
        except RemovalError as e:
            logger.error(f"Failed to remove {item.resource_type} {item.name}: {e.message}")
            return DeleteResult.for_item(item, DeleteStatus.FAILED, e.message)
        except Exception as e:
            logger.exception(f"Unexpected error removing {item.resource_type} {item.name}")
            return DeleteResult.for_item(item, DeleteStatus.FAILED, str(e))

        logger.info(f"{item.owner} - {item.resource_type} - {item.name} - removed")
        return DeleteResult.for_item(item, DeleteStatus.SUCCESS)

    @classmethod
    def describe_error(cls, error: HttpResponseError) -> str:
        """
        Map an Azure error to a readable message.

        Args:
            error: The failed response

        Returns:
            Friendly message for known error codes, else the service message
        """
        code = cls.error_code(error)
        if code in cls.ERROR_MESSAGES:
            return cls.ERROR_MESSAGES[code]
        odata = getattr(error, "error", None)
        message = getattr(odata, "message", None)
        return message or getattr(error, "message", None) or str(error)

    @staticmethod
    def error_code(error: HttpResponseError) -> str:
        """Return the ARM error code of a failed response, or 'Unknown'."""
        odata = getattr(error, "error", None)
        code = getattr(odata, "code", None)
        if code:
            return code
        if getattr(error, "status_code", None) == 409:
            return "Conflict"
        return "Unknown"
