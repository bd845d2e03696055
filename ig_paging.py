"""
Cursor pagination engine.

One loop walks any edges/page_info connection: fetch a page, accumulate its
items until the requested count is reached or the server runs dry, and pause
a random interval between round-trips.
"""

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Set

from ig_errors import (
    DeadlineExceeded,
    InstagramError,
    PagingCancelled,
    PagingInterrupted,
    ValidationError,
)

logger = logging.getLogger("ig_collections.paging")

PAGING_DELAY_MINIMUM_SEC = 1.0
PAGING_DELAY_MAXIMUM_SEC = 3.0
PAGING_TIME_LIMIT_SEC = 1800


@dataclass
class PageInfo:
    has_next_page: bool
    end_cursor: Optional[str] = None
    total_count: Optional[int] = None


@dataclass
class PageResult:
    items: List[Any]
    page_info: PageInfo


@dataclass
class CollectionRequest:
    requested_count: int
    page_size: int
    start_cursor: Optional[str] = None
    delayed: bool = False
    min_timestamp: Optional[int] = None
    # Reject requested_count < page_size (strict multi-page walks).
    strict: bool = False
    # Ask only for the remaining count on the last page.
    trim_last_page: bool = False
    dedup: bool = True
    single_page: bool = False

    def validate(self) -> None:
        if self.requested_count < 0:
            raise ValidationError("Count must not be negative.")
        if self.page_size <= 0:
            raise ValidationError("Page size must be greater than zero.")
        if self.strict and self.requested_count < self.page_size:
            raise ValidationError("Count must be greater than or equal to page size.")


@dataclass
class AccumulatedResult:
    items: List[Any] = field(default_factory=list)
    final_cursor: Optional[str] = None
    has_next_page: bool = False
    total_count: Optional[int] = None
    pages: int = 0
    stop_reason: Optional[str] = None
    error: Optional[InstagramError] = None

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def truncated(self) -> bool:
        return self.error is not None


PageFetcher = Callable[[Optional[str], int], PageResult]


def check_item(item: Any, seen_ids: Set[Any], min_timestamp: Optional[int] = None) -> Optional[str]:
    """Return why the walk must stop at ``item``, or record it and return None."""
    if item.id in seen_ids:
        return "duplicate"
    if min_timestamp is not None:
        created_at = item.created_at
        if created_at is not None and created_at < min_timestamp:
            return "cutoff"
    seen_ids.add(item.id)
    return None


def should_stop(item: Any, seen_ids: Set[Any], min_timestamp: Optional[int] = None) -> bool:
    return check_item(item, seen_ids, min_timestamp) is not None


class PagingDelay:
    """Random pause between pages, drawn uniformly from [min_delay, max_delay]."""

    def __init__(
        self,
        min_delay: float = PAGING_DELAY_MINIMUM_SEC,
        max_delay: float = PAGING_DELAY_MAXIMUM_SEC,
        sleep: Callable[[float], None] = time.sleep,
        uniform: Callable[[float, float], float] = random.uniform,
    ):
        if min_delay < 0 or max_delay < min_delay:
            raise ValidationError("Paging delay must satisfy 0 <= min_delay <= max_delay.")
        self.min_delay = min_delay
        self.max_delay = max_delay
        self._sleep = sleep
        self._uniform = uniform

    def pause(self) -> float:
        delay = self._uniform(self.min_delay, self.max_delay)
        logger.debug("Paging delay %.2fs", delay)
        self._sleep(delay)
        return delay


class PaginationEngine:
    def __init__(self, delay: Optional[PagingDelay] = None, clock: Callable[[], float] = time.monotonic):
        self.delay = delay or PagingDelay()
        self.clock = clock

    def fetch_page(self, fetch: PageFetcher, cursor: Optional[str], page_size: int) -> PageResult:
        return fetch(cursor or None, page_size)

    def collect(
        self,
        request: CollectionRequest,
        fetch: PageFetcher,
        cancel: Any = None,
        time_limit: Optional[float] = None,
    ) -> AccumulatedResult:
        """Walk pages until done; any failure propagates and drops the partial result."""
        request.validate()
        result = AccumulatedResult(final_cursor=request.start_cursor or None, has_next_page=True)
        self._walk(request, fetch, result, cancel, self._deadline(time_limit))
        return result

    def collect_with_handle(
        self,
        request: CollectionRequest,
        fetch: PageFetcher,
        cancel: Any = None,
        time_limit: Optional[float] = None,
    ) -> AccumulatedResult:
        """
        Like ``collect`` but a mid-walk failure returns what was gathered so
        far. ``final_cursor`` then points at the page that failed, so passing
        it back as ``start_cursor`` resumes the walk; ``error`` holds the cause.
        A failure before the first page arrived is raised as-is.
        """
        request.validate()
        result = AccumulatedResult(final_cursor=request.start_cursor or None, has_next_page=True)
        try:
            self._walk(request, fetch, result, cancel, self._deadline(time_limit))
        except PagingInterrupted as exc:
            if not result.pages:
                raise
            result.error = exc
            result.has_next_page = True
            result.stop_reason = "deadline" if isinstance(exc, DeadlineExceeded) else "cancelled"
        except InstagramError as exc:
            if not result.pages:
                raise
            logger.warning("Stop: error after %d items (%s)", len(result.items), exc)
            result.error = exc
            result.has_next_page = True
            result.stop_reason = "error"
        return result

    def _deadline(self, time_limit: Optional[float]) -> Optional[float]:
        if time_limit is None or time_limit <= 0:
            return None
        return self.clock() + time_limit

    def _check_interrupt(self, cancel: Any, deadline: Optional[float]) -> None:
        if cancel is not None and cancel.is_set():
            logger.info("Stop: cancelled")
            raise PagingCancelled("Pagination cancelled by caller.")
        if deadline is not None and self.clock() >= deadline:
            logger.info("Stop: deadline")
            raise DeadlineExceeded("Pagination time limit exceeded.")

    def _finish(self, result: AccumulatedResult, reason: str) -> None:
        result.stop_reason = reason
        logger.info("Stop: %s (%d items, %d pages)", reason, len(result.items), result.pages)

    def _walk(
        self,
        request: CollectionRequest,
        fetch: PageFetcher,
        result: AccumulatedResult,
        cancel: Any,
        deadline: Optional[float],
    ) -> None:
        target = request.requested_count
        seen_ids: Set[Any] = set()
        cursor = request.start_cursor or None
        min_timestamp = request.min_timestamp
        clamped = False

        if target == 0 and not request.single_page:
            self._finish(result, "max_reached")
            return

        while True:
            self._check_interrupt(cancel, deadline)

            page_size = request.page_size
            if request.trim_last_page:
                page_size = max(1, min(page_size, target - len(result.items)))

            page_start = self.clock()
            page = fetch(cursor, page_size)
            result.pages += 1
            info = page.page_info

            if info.total_count is not None:
                result.total_count = info.total_count
                if info.total_count < target:
                    target = info.total_count
                    clamped = True

            result.has_next_page = info.has_next_page
            result.final_cursor = info.end_cursor

            stop = None
            for item in page.items:
                if len(result.items) >= target:
                    stop = "max_reached"
                    break
                if request.dedup or min_timestamp is not None:
                    reason = check_item(item, seen_ids if request.dedup else set(), min_timestamp)
                    if reason:
                        stop = reason
                        break
                result.items.append(item)

            logger.info(
                "Page %d: cursor=%s, %d nodes, %d total, %.2fs",
                result.pages,
                cursor or "<start>",
                len(page.items),
                len(result.items),
                self.clock() - page_start,
            )

            if clamped and len(result.items) >= target and stop in (None, "max_reached"):
                # the whole collection has been read
                result.has_next_page = False
                result.final_cursor = None
                self._finish(result, "total_reached")
                return
            if stop:
                self._finish(result, stop)
                return
            if not page.items:
                self._finish(result, "empty_page")
                return
            if request.single_page:
                self._finish(result, "single_page")
                return
            if not info.has_next_page:
                self._finish(result, "no_more_pages")
                return
            if len(result.items) >= target:
                self._finish(result, "max_reached")
                return

            cursor = info.end_cursor
            if request.delayed:
                self.delay.pause()
