"""Tests for the collection engine state machine."""

import asyncio

import pytest

from instaharvest.collector import CollectionEngine
from instaharvest.collector.engine import (
    MESSAGE_FINISHED, MESSAGE_FINISHED_AFTER_ERROR, MESSAGE_READY, MESSAGE_STOPPED
)
from instaharvest.extraction import PostExtractor
from instaharvest.monitoring import STATUS_UPDATE
from instaharvest.storage import Settings
from instaharvest.utils import StorageError

from conftest import PROFILE_URL, FakePage, grid_html


def _url(code):
    return f"https://www.instagram.com/p/{code}/"


def _stop_after_first_posts(engine):
    """Status listener that requests a stop once the first posts are merged."""
    def listener(status):
        if status["is_running"] and status["count"] >= 1 and not status["stop_requested"]:
            engine.stop()
    return listener


class TestNaturalEnd:
    """Runs that end because the page stopped growing."""

    @pytest.mark.asyncio
    async def test_overlapping_ticks_are_merged(self, engine, store):
        page = FakePage(PROFILE_URL, [
            (grid_html(["A", "B"]), True),
            (grid_html(["B", "C"]), False),
        ])

        status = await engine.run(page)

        assert status.message == MESSAGE_FINISHED
        assert status.count == 3
        assert not status.is_running
        assert status.current_username == "someuser"

        history = await store.list_history()
        assert len(history) == 1
        assert history[0].count == 3
        assert history[0].username == "someuser"
        assert list(history[0].links) == [_url("A"), _url("B"), _url("C")]

    @pytest.mark.asyncio
    async def test_finished_job_is_also_pending_without_double_commit(self, engine, store):
        page = FakePage(PROFILE_URL, [(grid_html(["A"]), False)])
        await engine.run(page)

        assert store.pending is not None
        assert store.pending.count == 1

        committed = await store.commit_pending()
        history = await store.list_history()
        assert len(history) == 1
        assert committed.id == history[0].id
        assert store.pending is None

    @pytest.mark.asyncio
    async def test_empty_run_stores_nothing(self, engine, store):
        page = FakePage(PROFILE_URL, [("<html><body></body></html>", False)])

        status = await engine.run(page)

        assert status.message == MESSAGE_FINISHED
        assert status.count == 0
        assert await store.list_history() == []
        assert store.pending is None

    @pytest.mark.asyncio
    async def test_commit_failure_keeps_pending_copy(self, engine, store, monkeypatch):
        async def failing_commit(username, posts):
            raise StorageError("disk full")

        monkeypatch.setattr(store, "commit", failing_commit)
        page = FakePage(PROFILE_URL, [(grid_html(["A", "B"]), False)])

        status = await engine.run(page)

        assert status.message.startswith(MESSAGE_FINISHED)
        assert "disk full" in status.message
        assert store.pending is not None
        assert store.pending.count == 2
        assert store.pending.record_id is None

    @pytest.mark.asyncio
    async def test_corrupt_history_keeps_pending_and_returns_to_idle(self, engine, store):
        (store.base_path / store.HISTORY_FILE).write_text('["not-a-record"]', encoding="utf-8")
        page = FakePage(PROFILE_URL, [(grid_html(["A"]), False)])

        status = await engine.run(page)

        assert not engine.is_running
        assert "Saving to history failed" in status.message
        assert store.pending is not None
        assert store.pending.count == 1
        assert store.pending.record_id is None

    @pytest.mark.asyncio
    async def test_unexpected_commit_error_still_returns_to_idle(self, engine, store, monkeypatch):
        async def broken_commit(username, posts):
            raise RuntimeError("unexpected")

        monkeypatch.setattr(store, "commit", broken_commit)
        page = FakePage(PROFILE_URL, [(grid_html(["A", "B"]), False)])

        with pytest.raises(RuntimeError):
            await engine.run(page)

        assert not engine.is_running
        assert store.pending is not None
        assert store.pending.count == 2

        monkeypatch.undo()
        status = await engine.run(FakePage(PROFILE_URL, [(grid_html(["C"]), False)]))
        assert status.message == MESSAGE_FINISHED
        assert len(await store.list_history()) == 1

    @pytest.mark.asyncio
    async def test_corrupt_settings_fall_back_to_defaults(self, engine, store):
        (store.base_path / store.SETTINGS_FILE).write_text("[1, 2]", encoding="utf-8")
        page = FakePage(PROFILE_URL, [(grid_html(["A"]), False)])

        status = await engine.run(page)

        assert page.scrolls == 1
        assert status.message == MESSAGE_FINISHED


class TestStop:
    """Runs ended by an explicit stop."""

    @pytest.mark.asyncio
    async def test_stop_after_first_tick_stashes_pending_only(self, engine, store):
        engine.reporter.subscribe(STATUS_UPDATE, _stop_after_first_posts(engine))
        page = FakePage(PROFILE_URL, [
            (grid_html(["A"]), True),
            (grid_html(["A", "B"]), True),
        ])

        status = await engine.run(page)

        assert status.message == MESSAGE_STOPPED
        assert status.count == 1
        assert page.reads == 1
        assert await store.list_history() == []

        record = await store.commit_pending()
        assert record.count == 1
        assert list(record.links) == [_url("A")]
        assert await store.commit_pending() is None

    @pytest.mark.asyncio
    async def test_stop_while_idle_is_ignored(self, engine):
        assert engine.stop() is False
        assert engine.status().stop_requested is False

    @pytest.mark.asyncio
    async def test_cancelled_task_keeps_collected_posts(self, store):
        engine = CollectionEngine(store, extractor=PostExtractor(settle_delay=0), tick_delay=60)
        page = FakePage(PROFILE_URL, [(grid_html(["A", "B"]), True)])

        task = engine.start(page)
        while engine.status().count < 2:
            await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert not engine.is_running
        assert engine.status().message == MESSAGE_STOPPED
        assert store.pending.count == 2
        assert await store.list_history() == []


class TestStart:
    """Start preconditions and idempotence."""

    @pytest.mark.asyncio
    async def test_second_start_is_rejected(self, engine):
        page = FakePage(PROFILE_URL, [(grid_html(["A"]), False)])

        task = engine.start(page)
        assert task is not None
        assert engine.is_running
        assert engine.start(page) is None

        await task
        assert engine.status().count == 1

    @pytest.mark.asyncio
    async def test_closed_page_is_unavailable(self, engine):
        page = FakePage(PROFILE_URL, [], closed=True)

        assert engine.start(page) is None
        assert not engine.is_running
        assert engine.status().message == MESSAGE_READY
        assert engine.error_handler.get_error_summary()["error_types"] == {"target_unavailable": 1}

    @pytest.mark.asyncio
    async def test_foreign_page_is_unavailable(self, engine):
        page = FakePage("https://example.com/someuser/", [(grid_html(["A"]), False)])
        assert engine.start(page) is None
        assert page.reads == 0

    @pytest.mark.asyncio
    async def test_new_job_discards_old_pending(self, engine, store):
        store.stash_pending("olduser", [])
        page = FakePage(PROFILE_URL, [("<html></html>", False)])

        await engine.run(page)
        assert store.pending is None

    @pytest.mark.asyncio
    async def test_manual_mode_does_not_scroll(self, engine, store):
        await store.save_settings(Settings(auto_scroll=False))
        page = FakePage(PROFILE_URL, [(grid_html(["A"]), False)])

        await engine.run(page)
        assert page.scrolls == 0
        assert engine.status().count == 1


class TestExtractionFailure:
    """A failing tick ends the run without losing collected posts."""

    @pytest.mark.asyncio
    async def test_failure_preserves_accumulated_posts(self, engine, store):
        page = FakePage(PROFILE_URL, [
            (grid_html(["A", "B"]), True),
            (RuntimeError("page crashed"), True),
        ])

        status = await engine.run(page)

        assert status.message == MESSAGE_FINISHED_AFTER_ERROR
        assert status.count == 2
        history = await store.list_history()
        assert history[0].count == 2

        summary = engine.error_handler.get_error_summary()
        assert summary["error_types"] == {"extraction_failure": 1}
        assert engine.metrics_collector.scrape_metrics.extraction_errors == 1

    @pytest.mark.asyncio
    async def test_slow_tick_times_out(self, store):
        engine = CollectionEngine(
            store, extractor=PostExtractor(settle_delay=0), tick_delay=0, tick_timeout=0.05
        )
        page = FakePage(PROFILE_URL, [(grid_html(["A"]), True)], content_delay=5)

        status = await engine.run(page)

        assert status.message == MESSAGE_FINISHED_AFTER_ERROR
        assert status.count == 0
        summary = engine.error_handler.get_error_summary()
        assert summary["error_types"] == {"extraction_timeout": 1}


class TestStatusUpdates:
    """Status notifications during a run."""

    @pytest.mark.asyncio
    async def test_count_never_decreases(self, engine):
        counts = []
        engine.reporter.subscribe(STATUS_UPDATE, lambda status: counts.append(status["count"]))
        page = FakePage(PROFILE_URL, [
            (grid_html(["A", "B"]), True),
            (grid_html(["B"]), True),
            (grid_html(["C", "D"]), False),
        ])

        await engine.run(page)

        assert counts == sorted(counts)
        assert counts[-1] == 4

    @pytest.mark.asyncio
    async def test_status_is_a_copy(self, engine):
        before = engine.status()
        page = FakePage(PROFILE_URL, [(grid_html(["A"]), False)])

        await engine.run(page)

        assert before.count == 0
        assert before.message == MESSAGE_READY
        assert engine.status().count == 1

    @pytest.mark.asyncio
    async def test_metrics_follow_ticks(self, engine):
        page = FakePage(PROFILE_URL, [
            (grid_html(["A", "B"]), True),
            (grid_html(["B", "C"]), False),
        ])

        await engine.run(page)

        metrics = engine.metrics_collector.scrape_metrics
        assert metrics.ticks == 2
        assert metrics.posts_collected == 3
        assert metrics.duplicates_skipped == 1
        assert engine.error_handler.get_error_summary() == {"total_errors": 0}
