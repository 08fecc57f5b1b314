"""Tests for snapshot reconciliation and the exported registry."""

from __future__ import annotations

from buildkit_agent.metrics import BuildkitMetrics, Snapshot, reconcile
from buildkit_agent.schemas import DiskUsageResponse, InfoResponse

from .fakes import build, info, usage, workers


def _snapshot(**overrides) -> Snapshot:
    values = {
        "info": info(),
        "workers": workers(2),
        "disk": DiskUsageResponse(
            record=[usage(100, "snapshot"), usage(50, ""), usage(25, "snapshot")]
        ),
        "builds": [],
    }
    values.update(overrides)
    return Snapshot(**values)


class TestReconcile:
    def test_cache_totals_and_by_type(self):
        updates = reconcile(_snapshot())
        assert updates.cache_records == 3
        assert updates.cache_size_bytes == 175
        assert updates.cache_size_by_type == {"snapshot": 125, "unknown": 50}

    def test_by_type_sums_to_total(self):
        disk = DiskUsageResponse(
            record=[usage(7, "regular"), usage(11, ""), usage(13, "exec.cachemount"), usage(-3, "regular")]
        )
        updates = reconcile(_snapshot(disk=disk))
        assert sum(updates.cache_size_by_type.values()) == updates.cache_size_bytes

    def test_negative_size_passed_through(self):
        updates = reconcile(_snapshot(disk=DiskUsageResponse(record=[usage(-10, "regular")])))
        assert updates.cache_size_bytes == -10
        assert updates.cache_size_by_type == {"regular": -10}

    def test_worker_count(self):
        assert reconcile(_snapshot(workers=workers(3))).workers == 3
        assert reconcile(_snapshot(workers=workers(0))).workers == 0

    def test_info_present(self):
        assert reconcile(_snapshot()).info == ("v0.13.2", "abc123")

    def test_info_absent(self):
        assert reconcile(_snapshot(info=InfoResponse())).info is None

    def test_build_outcomes(self):
        builds = [
            build("ok", cached=2, total=5),
            build("zero-code", code=0, cached=1, total=1),
            build("failed", code=2, cached=0, total=4),
        ]
        updates = reconcile(_snapshot(builds=builds))
        assert updates.builds == 3
        assert updates.builds_succeeded == 2
        assert updates.builds_failed == 1
        assert updates.cached_steps == 3
        assert updates.total_steps == 10

    def test_negative_step_counts_add_nothing(self):
        builds = [build("A", cached=-4, total=-1), build("B", cached=1, total=2)]
        updates = reconcile(_snapshot(builds=builds))
        assert updates.builds == 2
        assert updates.cached_steps == 1
        assert updates.total_steps == 2

    def test_empty_ref_is_counted(self):
        updates = reconcile(_snapshot(builds=[build("", total=3)]))
        assert updates.builds == 1
        assert updates.builds_succeeded == 1

    def test_empty_snapshot(self):
        updates = reconcile(
            Snapshot(info=InfoResponse(), workers=workers(0), disk=DiskUsageResponse())
        )
        assert updates.cache_records == 0
        assert updates.cache_size_bytes == 0
        assert updates.cache_size_by_type == {}
        assert updates.builds == 0


class TestBuildkitMetrics:
    def test_scenario_disk_usage(self, metrics: BuildkitMetrics):
        metrics.record(_snapshot())
        assert metrics.sample_value("buildkit_cache_records_total") == 3
        assert metrics.sample_value("buildkit_cache_size_bytes") == 175
        assert metrics.sample_value("buildkit_cache_size_by_type_bytes", record_type="snapshot") == 125
        assert metrics.sample_value("buildkit_cache_size_by_type_bytes", record_type="unknown") == 50
        assert metrics.sample_value("buildkit_workers_total") == 2

    def test_same_snapshot_twice_doubles_counters_only(self, metrics: BuildkitMetrics):
        snapshot = _snapshot(builds=[build("A", cached=1, total=3), build("B", code=1, total=2)])
        metrics.record(snapshot)
        gauges_first = (
            metrics.sample_value("buildkit_cache_size_bytes"),
            metrics.sample_value("buildkit_workers_total"),
            metrics.sample_value("buildkit_info", version="v0.13.2", revision="abc123"),
        )
        metrics.record(snapshot)

        assert metrics.sample_value("buildkit_builds_total") == 4
        assert metrics.sample_value("buildkit_builds_succeeded_total") == 2
        assert metrics.sample_value("buildkit_builds_failed_total") == 2
        assert metrics.sample_value("buildkit_builds_cached_steps_total") == 2
        assert metrics.sample_value("buildkit_builds_total_steps_total") == 10
        assert (
            metrics.sample_value("buildkit_cache_size_bytes"),
            metrics.sample_value("buildkit_workers_total"),
            metrics.sample_value("buildkit_info", version="v0.13.2", revision="abc123"),
        ) == gauges_first

    def test_info_never_set_is_absent(self, metrics: BuildkitMetrics):
        metrics.record(_snapshot(info=InfoResponse()))
        assert metrics.sample_value("buildkit_info", version="v0.13.2", revision="abc123") is None
        assert b"buildkit_info{" not in metrics.render()

    def test_info_absent_keeps_previous_value(self, metrics: BuildkitMetrics):
        metrics.record(_snapshot())
        metrics.record(_snapshot(info=InfoResponse()))
        assert metrics.sample_value("buildkit_info", version="v0.13.2", revision="abc123") == 1

    def test_missing_type_label_keeps_last_value(self, metrics: BuildkitMetrics):
        metrics.record(_snapshot())
        metrics.record(_snapshot(disk=DiskUsageResponse(record=[usage(40, "regular")])))
        assert metrics.sample_value("buildkit_cache_size_by_type_bytes", record_type="regular") == 40
        assert metrics.sample_value("buildkit_cache_size_by_type_bytes", record_type="snapshot") == 125
        assert metrics.sample_value("buildkit_cache_size_bytes") == 40

    def test_registries_are_isolated(self):
        first, second = BuildkitMetrics(), BuildkitMetrics()
        first.record(_snapshot(builds=[build("A")]))
        assert first.sample_value("buildkit_builds_total") == 1
        assert second.sample_value("buildkit_builds_total") == 0

    def test_render_contains_all_metric_names(self, metrics: BuildkitMetrics):
        metrics.record(_snapshot(builds=[build("A")]))
        text = metrics.render().decode()
        for name in (
            "buildkit_info",
            "buildkit_workers_total",
            "buildkit_cache_records_total",
            "buildkit_cache_size_bytes",
            "buildkit_cache_size_by_type_bytes",
            "buildkit_builds_total",
            "buildkit_builds_succeeded_total",
            "buildkit_builds_failed_total",
            "buildkit_builds_cached_steps_total",
            "buildkit_builds_total_steps_total",
        ):
            assert f"\n{name}" in text
        assert "buildkit_cache_size_bytes 175.0" in text
