"""
Paging Helpers
==============

Wraps the Azure SDK's ``ItemPaged`` results in an explicit cursor.

A :class:`PageCursor` exposes the two steps of a paging loop, "are there
more pages" and "fetch the next page", as methods on one object instead
of hidden loop state. A cursor is finite and cannot be restarted.

Example
-------
>>> cursor = PageCursor(client.resource_groups.list())
>>> while cursor.has_more():
...     for group in cursor.next_page():
...         print(group.name)
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, Dict, Iterator, List, Optional, Type

from azure_reaper.core.exceptions import ReaperError

# Floor for SDK timeouts; a zero timeout fails before any request is sent
MIN_REQUEST_TIMEOUT = 0.1


class Deadline:
    """
    A monotonic-clock deadline bounding a sequence of remote calls.

    Parameters
    ----------
    seconds : float
        Time budget from construction.
    error_class : type, default=ReaperError
        Exception raised by :meth:`check` once expired.
    operation : str, default="operation"
        Name used in the error message.
    """

    def __init__(
        self,
        seconds: float,
        error_class: Type[ReaperError] = ReaperError,
        operation: str = "operation",
    ) -> None:
        self.seconds = seconds
        self.error_class = error_class
        self.operation = operation
        self._expires_at = time.monotonic() + seconds

    @property
    def remaining(self) -> float:
        """Seconds left before expiry (never negative)."""
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self._expires_at

    def check(self) -> None:
        """Raise ``error_class`` if the deadline has passed."""
        if self.expired:
            raise self._error()

    def request_options(self) -> Dict[str, float]:
        """
        Per-operation keyword arguments bounding an SDK call.

        ``timeout`` caps the retry policy's total time; the transport
        timeouts cap each attempt.
        """
        remaining = max(self.remaining, MIN_REQUEST_TIMEOUT)
        return {
            "timeout": remaining,
            "connection_timeout": remaining,
            "read_timeout": remaining,
        }

    def call(self, fn: Callable[..., Any], *args: Any) -> Any:
        """
        Run ``fn(*args)``, waiting no longer than the remaining time.

        The call runs on a helper thread. When the deadline passes first,
        ``error_class`` is raised and the call is abandoned; the transport
        timeouts from :meth:`request_options` end it eventually.
        """
        self.check()
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="deadline")
        future = executor.submit(fn, *args)
        try:
            return future.result(timeout=self.remaining)
        except FutureTimeoutError:
            raise self._error() from None
        finally:
            executor.shutdown(wait=False)

    def _error(self) -> ReaperError:
        return self.error_class(
            f"{self.operation} timed out after {self.seconds:g} seconds",
            details={"timeout_seconds": self.seconds},
        )


class PageCursor:
    """
    Cursor over the pages of an ``ItemPaged`` result.

    Parameters
    ----------
    paged : ItemPaged
        Any object exposing ``by_page()``.
    deadline : Deadline, optional
        Bounds every page fetch.

    Notes
    -----
    :meth:`has_more` fetches the next page eagerly and buffers it, so a
    paging error surfaces from :meth:`has_more` rather than later.
    """

    def __init__(self, paged: Any, deadline: Optional[Deadline] = None) -> None:
        self._pages = iter(paged.by_page())
        self._deadline = deadline
        self._buffer: Optional[List[Any]] = None
        self._exhausted = False
        self.pages_read = 0

    def has_more(self) -> bool:
        """Return True if another page is available."""
        if self._buffer is not None:
            return True
        if self._exhausted:
            return False
        try:
            if self._deadline is not None:
                self._buffer = self._deadline.call(self._fetch)
            else:
                self._buffer = self._fetch()
        except StopIteration:
            self._exhausted = True
            return False
        self.pages_read += 1
        return True

    def _fetch(self) -> List[Any]:
        return list(next(self._pages))

    def next_page(self) -> List[Any]:
        """
        Return the next page of items.

        Raises
        ------
        StopIteration
            If no pages remain.
        """
        if not self.has_more():
            raise StopIteration("no more pages")
        page, self._buffer = self._buffer, None
        return page

    def __iter__(self) -> Iterator[Any]:
        while self.has_more():
            yield from self.next_page()


def collect(paged: Any, deadline: Optional[Deadline] = None) -> List[Any]:
    """Drain every page of ``paged`` into a list."""
    return list(PageCursor(paged, deadline))
