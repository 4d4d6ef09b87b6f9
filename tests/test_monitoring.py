"""Tests for notifications, metrics and error tracking."""

import asyncio
import json
import logging

import pytest

from instaharvest.monitoring import (
    STATUS_UPDATE, LogManager, MetricsCollector, ProgressReporter
)
from instaharvest.utils import ErrorHandler, ErrorType, ExportError, StorageError


class TestProgressReporter:
    """Test ProgressReporter fan-out."""

    def test_listener_failure_is_isolated(self):
        reporter = ProgressReporter()
        received = []

        def broken(payload):
            raise RuntimeError("listener bug")

        reporter.subscribe(STATUS_UPDATE, broken)
        reporter.subscribe(STATUS_UPDATE, received.append)
        reporter.publish_status({"count": 1})

        assert received == [{"count": 1}]

    def test_unsubscribe(self):
        reporter = ProgressReporter()
        received = []

        unsubscribe = reporter.subscribe(STATUS_UPDATE, received.append)
        unsubscribe()
        reporter.publish_status({"count": 1})

        assert received == []

    @pytest.mark.asyncio
    async def test_coroutine_listener_is_scheduled(self):
        reporter = ProgressReporter()
        received = []

        async def listener(payload):
            received.append(payload)

        async def broken(payload):
            raise RuntimeError("async listener bug")

        reporter.subscribe(STATUS_UPDATE, listener)
        reporter.subscribe(STATUS_UPDATE, broken)
        reporter.publish_status({"count": 2})
        await asyncio.sleep(0.01)

        assert received == [{"count": 2}]

    def test_final_report_includes_errors(self):
        reporter = ProgressReporter(MetricsCollector())
        report = reporter.get_final_report({"total_errors": 0})

        assert report["errors"] == {"total_errors": 0}
        assert "scrape_metrics" in report["final_snapshot"]

    def test_progress_report_prints(self, capsys):
        collector = MetricsCollector()
        collector.record_tick(0.5, found=3, new=2)
        ProgressReporter(collector).print_progress_report("someuser")

        output = capsys.readouterr().out
        assert "@someuser" in output
        assert "Collected: 2" in output


class TestMetricsCollector:
    """Test MetricsCollector aggregation."""

    def test_record_ticks(self):
        collector = MetricsCollector()
        collector.record_tick(1.0, found=4, new=4, fallback=1)
        collector.record_tick(3.0, found=4, new=1, matched_markup=False)
        collector.record_error()

        metrics = collector.scrape_metrics
        assert metrics.ticks == 2
        assert metrics.posts_collected == 5
        assert metrics.duplicates_skipped == 3
        assert metrics.fallback_posts == 1
        assert metrics.unmatched_ticks == 1
        assert metrics.extraction_errors == 1
        assert metrics.avg_tick_time == 2.0

    def test_reset(self):
        collector = MetricsCollector()
        collector.record_tick(1.0, found=1, new=1)
        collector.reset()
        assert collector.scrape_metrics.ticks == 0

    def test_snapshot_has_system_metrics(self):
        snapshot = MetricsCollector().get_current_snapshot()
        assert snapshot["system_metrics"]["process_rss_mb"] > 0


class TestErrorHandler:
    """Test ErrorHandler classification."""

    @pytest.mark.parametrize("error, expected", [
        (StorageError("x"), ErrorType.STORAGE_FAILURE),
        (ExportError("x"), ErrorType.EXPORT_FAILURE),
        (asyncio.TimeoutError(), ErrorType.EXTRACTION_TIMEOUT),
        (PermissionError("x"), ErrorType.STORAGE_FAILURE),
        (ValueError("x"), ErrorType.UNKNOWN_ERROR),
    ])
    def test_classify(self, error, expected):
        assert ErrorHandler().classify_error(error) == expected

    def test_history_is_bounded(self):
        handler = ErrorHandler(max_history=3)
        for i in range(5):
            handler.record_error("target", ValueError(f"bad {i}"))

        summary = handler.get_error_summary()
        assert summary["total_errors"] == 3
        assert summary["last_error"] == "bad 4"


class TestLogManager:
    """Test LogManager outputs."""

    def test_performance_events_and_metrics_export(self, tmp_path):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            self._check_outputs(tmp_path)
        finally:
            for handler in root.handlers:
                if handler not in saved_handlers:
                    handler.close()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    def _check_outputs(self, tmp_path):
        manager = LogManager(str(tmp_path), "DEBUG")
        manager.log_tick("someuser", 1, 0.5, found=3, new=2, total=2,
                         strategy="containers", end_of_page=False)
        manager.log_job_finished("someuser", 2, 1, "Scraping finished.")
        manager.perf_handler.flush()

        perf_logs = list(tmp_path.glob("performance_*.log"))
        assert len(perf_logs) == 1
        tick, finished = [json.loads(line) for line in perf_logs[0].read_text(encoding="utf-8").splitlines()]
        assert tick["event_type"] == "tick"
        assert tick["found"] == 3
        assert tick["duplicates"] == 1
        assert finished["event_type"] == "job_finished"
        assert finished["count"] == 2

        path = manager.export_job_metrics("someuser", {"ticks": 1}, "metrics.json")
        assert json.loads(path.read_text(encoding="utf-8")) == {"ticks": 1}
        assert manager.export_job_metrics("someuser", {}).name.startswith("job_someuser_")
