"""Prometheus metrics derived from BuildKit Control API scrapes.

:func:`reconcile` turns one scrape into a :class:`MetricUpdates` value without
touching any shared state. :class:`BuildkitMetrics` owns the exported metric
objects and applies those updates; the HTTP handler renders it concurrently.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
)

from .schemas import (
    BuildHistoryRecord,
    DiskUsageResponse,
    InfoResponse,
    ListWorkersResponse,
)

UNKNOWN_RECORD_TYPE = "unknown"


@dataclass(slots=True)
class Snapshot:
    """Everything fetched in one scrape, with builds already filtered to new refs."""

    info: InfoResponse
    workers: ListWorkersResponse
    disk: DiskUsageResponse
    builds: list[BuildHistoryRecord] = field(default_factory=list)


@dataclass(slots=True)
class MetricUpdates:
    """Gauge values to set and counter amounts to add for one scrape."""

    info: tuple[str, str] | None
    workers: int
    cache_records: int
    cache_size_bytes: int
    cache_size_by_type: dict[str, int]
    builds: int = 0
    builds_succeeded: int = 0
    builds_failed: int = 0
    cached_steps: int = 0
    total_steps: int = 0


def reconcile(snapshot: Snapshot) -> MetricUpdates:
    version = snapshot.info.buildkit_version
    info = (version.version, version.revision) if version is not None else None

    records = snapshot.disk.record
    by_type: dict[str, int] = defaultdict(int)
    for record in records:
        by_type[record.record_type or UNKNOWN_RECORD_TYPE] += record.size

    updates = MetricUpdates(
        info=info,
        workers=len(snapshot.workers.record),
        cache_records=len(records),
        cache_size_bytes=sum(record.size for record in records),
        cache_size_by_type=dict(by_type),
    )
    for build in snapshot.builds:
        updates.builds += 1
        if build.failed:
            updates.builds_failed += 1
        else:
            updates.builds_succeeded += 1
        # Counters only move forward; a negative step count adds nothing.
        updates.cached_steps += max(build.num_cached_steps, 0)
        updates.total_steps += max(build.num_total_steps, 0)
    return updates


class BuildkitMetrics:
    """Process-wide exported metrics, backed by a private collector registry.

    Writes come only from the scrape loop. prometheus_client guards each metric
    with its own lock, so rendering from request handlers needs no extra
    coordination; a render is consistent per metric, not across metrics.
    """

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self.info = Gauge(
            "buildkit_info",
            "BuildKit daemon version information.",
            labelnames=("version", "revision"),
            registry=self.registry,
        )
        self.workers = Gauge(
            "buildkit_workers_total",
            "Number of BuildKit workers.",
            registry=self.registry,
        )
        self.cache_records = Gauge(
            "buildkit_cache_records_total",
            "Number of build cache records.",
            registry=self.registry,
        )
        self.cache_size = Gauge(
            "buildkit_cache_size_bytes",
            "Total size of the build cache in bytes.",
            registry=self.registry,
        )
        self.cache_size_by_type = Gauge(
            "buildkit_cache_size_by_type_bytes",
            "Build cache size in bytes per record type.",
            labelnames=("record_type",),
            registry=self.registry,
        )
        self.builds = Counter(
            "buildkit_builds_total",
            "Completed builds observed in the build history.",
            registry=self.registry,
        )
        self.builds_succeeded = Counter(
            "buildkit_builds_succeeded_total",
            "Completed builds that succeeded.",
            registry=self.registry,
        )
        self.builds_failed = Counter(
            "buildkit_builds_failed_total",
            "Completed builds that failed.",
            registry=self.registry,
        )
        self.cached_steps = Counter(
            "buildkit_builds_cached_steps_total",
            "Build steps served from cache across completed builds.",
            registry=self.registry,
        )
        self.total_steps = Counter(
            "buildkit_builds_total_steps_total",
            "Build steps across completed builds.",
            registry=self.registry,
        )

    def record(self, snapshot: Snapshot) -> MetricUpdates:
        updates = reconcile(snapshot)
        self.apply(updates)
        return updates

    def apply(self, updates: MetricUpdates) -> None:
        if updates.info is not None:
            version, revision = updates.info
            self.info.labels(version=version, revision=revision).set(1)

        self.workers.set(updates.workers)
        self.cache_records.set(updates.cache_records)
        self.cache_size.set(updates.cache_size_bytes)
        # Labels missing from this scrape keep their previous value.
        for record_type, size in updates.cache_size_by_type.items():
            self.cache_size_by_type.labels(record_type=record_type).set(size)

        self.builds.inc(updates.builds)
        self.builds_succeeded.inc(updates.builds_succeeded)
        self.builds_failed.inc(updates.builds_failed)
        self.cached_steps.inc(updates.cached_steps)
        self.total_steps.inc(updates.total_steps)

    def sample_value(self, name: str, **labels: str) -> float | None:
        return self.registry.get_sample_value(name, labels)

    def render(self) -> bytes:
        return generate_latest(self.registry)
