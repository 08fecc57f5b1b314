"""Background loop that polls the Control API and updates exported metrics."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .control_client import ControlAPIError, ControlClient
from .dedup import SeenRefs
from .metrics import BuildkitMetrics, Snapshot
from .schemas import BuildHistoryEventType, BuildHistoryRecord

logger = logging.getLogger(__name__)


class ScrapeState(str, Enum):
    IDLE = "idle"
    SCRAPING = "scraping"


@dataclass(slots=True)
class Scraper:
    """Runs one scrape at a time on a fixed interval.

    Each pass gathers everything from the remote side first, then filters
    build refs through :class:`SeenRefs`, then hands the snapshot to
    :class:`BuildkitMetrics`. A failed remote call aborts the pass before any
    metric is written, so exported values stay as of the last good scrape.
    """

    client: ControlClient
    metrics: BuildkitMetrics
    interval: float = 15.0
    initial_delay: float = 1.0
    seen: SeenRefs = field(default_factory=SeenRefs)
    state: ScrapeState = field(init=False, default=ScrapeState.IDLE)
    scrapes_total: int = field(init=False, default=0)
    failures_total: int = field(init=False, default=0)
    last_success_at: datetime | None = field(init=False, default=None)
    last_error: str | None = field(init=False, default=None)
    _task: asyncio.Task | None = field(init=False, default=None)

    async def startup(self) -> None:
        self._task = asyncio.create_task(self._scrape_loop())
        logger.info("Scraper started: interval=%ss initial_delay=%ss", self.interval, self.initial_delay)

    async def shutdown(self) -> None:
        if self._task:
            self._task.cancel()
            with suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        await self.client.aclose()
        logger.info("Scraper stopped after %d scrapes", self.scrapes_total)

    async def scrape_once(self) -> bool:
        """Run a single scrape. Returns True if metrics were updated."""
        self.state = ScrapeState.SCRAPING
        try:
            snapshot = await self._collect()
            try:
                updates = self.metrics.record(snapshot)
            except Exception:
                self.seen.forget(build.ref for build in snapshot.builds)
                raise
        except ControlAPIError as exc:
            self._record_failure(str(exc))
            logger.warning("Scrape failed: %s", exc)
            return False
        except Exception as exc:  # noqa: BLE001 - a bad pass must not stop the loop
            self._record_failure(f"{type(exc).__name__}: {exc}")
            logger.exception("Unexpected error during scrape")
            return False
        finally:
            self.scrapes_total += 1
            self.state = ScrapeState.IDLE

        self.last_success_at = datetime.now(tz=timezone.utc)
        self.last_error = None
        logger.debug(
            "Scrape ok: workers=%d cache_records=%d new_builds=%d seen_refs=%d",
            updates.workers,
            updates.cache_records,
            updates.builds,
            len(self.seen),
        )
        return True

    def status(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "scrapes_total": self.scrapes_total,
            "failures_total": self.failures_total,
            "last_success_at": self.last_success_at.isoformat() if self.last_success_at else None,
            "last_error": self.last_error,
            "seen_refs": len(self.seen),
        }

    async def _scrape_loop(self) -> None:
        # Give buildkitd time to create its socket before the first attempt.
        await asyncio.sleep(self.initial_delay)
        while True:
            await self.scrape_once()
            await asyncio.sleep(self.interval)

    async def _collect(self) -> Snapshot:
        info = await self.client.info()
        workers = await self.client.list_workers()
        disk = await self.client.disk_usage()
        completed: list[BuildHistoryRecord] = []
        async for event in self.client.build_history(early_exit=True):
            if event.type is BuildHistoryEventType.COMPLETE and event.record is not None:
                completed.append(event.record)
        # Remote round-trips are done; only now touch the seen set.
        return Snapshot(
            info=info,
            workers=workers,
            disk=disk,
            builds=self.seen.filter_new(completed),
        )

    def _record_failure(self, message: str) -> None:
        self.failures_total += 1
        self.last_error = message
