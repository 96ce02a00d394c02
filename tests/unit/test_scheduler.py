"""
Unit tests for PipelineScheduler.

Engines and notifiers are replaced by in-memory fakes; timers run on the
event loop of each test's asyncio.run() call.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from etlflow.config import ConfigStore
from etlflow.core.exceptions import (
    ConfigValidationError,
    InvalidScheduleError,
    PipelineNotFoundError,
)
from etlflow.core.models import PipelineEvent, RunResult
from etlflow.scheduler import PipelineScheduler
from etlflow.utils.validation import ValidationError


class FakeEngine:
    """Returns a canned result; optionally waits on a gate or raises"""

    def __init__(self, result=None, error=None, gate=None, delay=0.0):
        self.result = result or RunResult(success=True, records_processed=1, records_successful=1, records_loaded=1)
        self.error = error
        self.gate = gate
        self.delay = delay
        self.entered = asyncio.Event()
        self.calls = 0
        self.closed = False

    async def execute(self, definition, observer=None):
        self.calls += 1
        if observer is not None:
            await observer(PipelineEvent(pipeline_name=definition.name, event_type="started"))
        self.entered.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result

    async def close(self):
        self.closed = True


class RecordingNotifier:
    def __init__(self):
        self.calls = []

    async def notify(self, pipeline_name, result):
        self.calls.append((pipeline_name, result.success))
        return True


@pytest.fixture
def store(tmp_path):
    return ConfigStore(tmp_path / "configs", create_defaults=False)


@pytest.fixture
def add_definition(store, definition_factory):
    def _add(name, schedule=None, enabled=True):
        return store.save_config(definition_factory(name=name, schedule=schedule, enabled=enabled))
    return _add


def make_scheduler(store, engine=None, **kwargs):
    engine = engine or FakeEngine()
    notifier = kwargs.pop("notifier", RecordingNotifier())
    return PipelineScheduler(store, engine_factory=lambda: engine, notifier=notifier, **kwargs), engine, notifier


class TestRunPipelineNow:
    def test_unknown_pipeline(self, store):
        scheduler, _, _ = make_scheduler(store)
        with pytest.raises(PipelineNotFoundError):
            asyncio.run(scheduler.run_pipeline_now("missing"))

    def test_successful_run_is_recorded_and_notified(self, store, add_definition):
        add_definition("budget_etl")
        scheduler, engine, notifier = make_scheduler(store)

        result = asyncio.run(scheduler.run_pipeline_now("budget_etl"))

        assert result.success
        assert engine.calls == 1
        entry = scheduler.get_last_run_for_pipeline("budget_etl")
        assert entry.status == "completed"
        assert entry.result == result
        assert notifier.calls == [("budget_etl", True)]
        assert scheduler.get_running_pipelines() == []

    def test_failed_run_status(self, store, add_definition):
        add_definition("budget_etl")
        scheduler, _, notifier = make_scheduler(store, FakeEngine(result=RunResult.failure("Extract failed")))

        result = asyncio.run(scheduler.run_pipeline_now("budget_etl"))

        assert not result.success
        assert scheduler.get_last_run_for_pipeline("budget_etl").status == "failed"
        assert notifier.calls == [("budget_etl", False)]

    def test_engine_exception_becomes_error_entry(self, store, add_definition):
        add_definition("budget_etl")
        scheduler, _, notifier = make_scheduler(store, FakeEngine(error=RuntimeError("engine crashed")))

        result = asyncio.run(scheduler.run_pipeline_now("budget_etl"))

        assert not result.success
        assert result.errors == ["engine crashed"]
        assert scheduler.get_last_run_for_pipeline("budget_etl").status == "error"
        assert notifier.calls == [("budget_etl", False)]
        assert scheduler.get_running_pipelines() == []


class TestExclusivity:
    def test_concurrent_triggers_run_once(self, store, add_definition):
        add_definition("budget_etl")
        scheduler, engine, _ = make_scheduler(store, FakeEngine(delay=0.05))

        async def scenario():
            return await asyncio.gather(
                scheduler.run_pipeline_now("budget_etl"),
                scheduler.run_pipeline_now("budget_etl"),
            )

        results = asyncio.run(scenario())

        assert engine.calls == 1
        assert sum(1 for r in results if r is None) == 1
        assert len(scheduler.get_job_history()) == 1

    def test_trigger_while_running_is_skipped(self, store, add_definition):
        add_definition("budget_etl")
        gate = asyncio.Event()
        scheduler, engine, _ = make_scheduler(store, FakeEngine(gate=gate))

        async def scenario():
            first = asyncio.create_task(scheduler.run_pipeline_now("budget_etl"))
            await engine.entered.wait()
            assert scheduler.get_running_pipelines() == ["budget_etl"]

            skipped = await scheduler.run_pipeline_now("budget_etl")
            gate.set()
            return skipped, await first

        skipped, result = asyncio.run(scenario())

        assert skipped is None
        assert result.success
        assert engine.calls == 1

    def test_different_pipelines_overlap(self, store, add_definition):
        add_definition("budget_etl")
        add_definition("project_etl")
        gate = asyncio.Event()
        engines = []

        def factory():
            engines.append(FakeEngine(gate=gate))
            return engines[-1]

        scheduler = PipelineScheduler(store, engine_factory=factory, notifier=RecordingNotifier())

        async def scenario():
            tasks = [
                asyncio.create_task(scheduler.run_pipeline_now("budget_etl")),
                asyncio.create_task(scheduler.run_pipeline_now("project_etl")),
            ]
            while len(engines) < 2 or not all(e.entered.is_set() for e in engines):
                await asyncio.sleep(0.01)
            running = scheduler.get_running_pipelines()
            gate.set()
            return running, await asyncio.gather(*tasks)

        running, results = asyncio.run(scenario())

        assert running == ["budget_etl", "project_etl"]
        assert all(r.success for r in results)

    def test_engine_is_reused_per_pipeline(self, store, add_definition):
        add_definition("budget_etl")
        created = []

        def factory():
            created.append(FakeEngine())
            return created[-1]

        scheduler = PipelineScheduler(store, engine_factory=factory, notifier=RecordingNotifier())
        asyncio.run(scheduler.run_pipeline_now("budget_etl"))
        asyncio.run(scheduler.run_pipeline_now("budget_etl"))

        assert len(created) == 1
        assert created[0].calls == 2


class TestTimers:
    def test_start_registers_enabled_valid_schedules(self, store, add_definition):
        add_definition("budget_etl", schedule="0 */6 * * *")
        add_definition("project_etl", schedule="0 */4 * * *", enabled=False)
        add_definition("manual_etl")
        add_definition("broken_etl", schedule="a b c d e")
        scheduler, _, _ = make_scheduler(store)

        async def scenario():
            count = await scheduler.start()
            scheduled = scheduler.get_scheduled_jobs()
            stopped = scheduler.stop()
            return count, scheduled, stopped

        count, scheduled, stopped = asyncio.run(scenario())

        assert count == 1
        assert scheduled == ["budget_etl"]
        assert stopped == 1
        assert scheduler.get_scheduled_jobs() == []
        assert not scheduler.is_started

    def test_timer_fires_pipeline(self, store, add_definition, monkeypatch):
        add_definition("budget_etl", schedule="* * * * *")
        monkeypatch.setattr(
            "etlflow.scheduler.scheduler.next_fire_time",
            lambda expression, after=None, tz=None: datetime.now(timezone.utc) + timedelta(milliseconds=20),
        )
        scheduler, engine, _ = make_scheduler(store)

        async def scenario():
            await scheduler.start()
            for _ in range(200):
                if scheduler.get_job_history():
                    break
                await asyncio.sleep(0.01)
            await scheduler.shutdown()

        asyncio.run(scenario())

        assert engine.calls >= 1
        assert scheduler.get_last_run_for_pipeline("budget_etl").status == "completed"

    def test_tick_for_unscheduled_pipeline_is_noop(self, store, add_definition):
        add_definition("budget_etl", schedule="0 8 * * *")
        scheduler, engine, _ = make_scheduler(store)

        assert asyncio.run(scheduler.handle_timer_tick("budget_etl")) is None
        assert engine.calls == 0

    def test_tick_for_disabled_pipeline_is_noop(self, store, add_definition):
        add_definition("budget_etl", schedule="0 8 * * *")
        scheduler, engine, _ = make_scheduler(store)

        async def scenario():
            await scheduler.start()
            store.disable_config("budget_etl")
            result = await scheduler.handle_timer_tick("budget_etl")
            scheduler.stop()
            return result

        assert asyncio.run(scenario()) is None
        assert engine.calls == 0

    def test_restart_picks_up_new_definitions(self, store, add_definition, definition_factory, tmp_path):
        add_definition("budget_etl", schedule="0 8 * * *")
        scheduler, _, _ = make_scheduler(store)

        async def scenario():
            await scheduler.start()
            other = ConfigStore(tmp_path / "configs", create_defaults=False)
            other.save_config(definition_factory(name="project_etl", schedule="0 9 * * *"))
            count = await scheduler.restart()
            scheduled = sorted(scheduler.get_scheduled_jobs())
            scheduler.stop()
            return count, scheduled

        assert asyncio.run(scenario()) == (2, ["budget_etl", "project_etl"])


class TestJobManagement:
    def test_schedule_job_registers_timer(self, store, definition_factory):
        scheduler, _, _ = make_scheduler(store)

        async def scenario():
            await scheduler.start()
            saved = scheduler.schedule_job(definition_factory(name="budget_etl", schedule="0 */6 * * *"))
            job = scheduler.registry.get("budget_etl")
            scheduler.stop()
            return saved, job

        saved, job = asyncio.run(scenario())

        assert saved.name == "budget_etl"
        assert "budget_etl" in store
        assert job.expression == "0 */6 * * *"
        assert job.next_run is not None

    def test_schedule_job_accepts_raw_document(self, store, definition_factory):
        scheduler, _, _ = make_scheduler(store)
        document = definition_factory(name="budget_etl").to_document()

        saved = scheduler.schedule_job(document)

        assert saved.name == "budget_etl"
        assert scheduler.get_scheduled_jobs() == []

    def test_four_field_schedule_is_rejected(self, store, definition_factory):
        scheduler, _, _ = make_scheduler(store)
        document = definition_factory(name="budget_etl").to_document()
        document["schedule"] = "0 */6 * *"

        async def scenario():
            await scheduler.start()
            with pytest.raises(ConfigValidationError) as exc_info:
                scheduler.schedule_job(document)
            scheduled = scheduler.get_scheduled_jobs()
            scheduler.stop()
            return exc_info.value, scheduled

        error, scheduled = asyncio.run(scenario())

        assert "Schedule must be a valid cron expression (5 parts)" in error.errors
        assert scheduled == []
        assert "budget_etl" not in store

    def test_unparseable_schedule_is_rejected(self, store, definition_factory):
        scheduler, _, _ = make_scheduler(store)

        async def scenario():
            await scheduler.start()
            with pytest.raises(InvalidScheduleError):
                scheduler.schedule_job(definition_factory(name="budget_etl", schedule="a b c d e"))
            scheduled = scheduler.get_scheduled_jobs()
            scheduler.stop()
            return scheduled

        assert asyncio.run(scenario()) == []
        assert "budget_etl" not in store

    def test_toggle_job(self, store, add_definition):
        add_definition("budget_etl", schedule="0 8 * * *")
        scheduler, engine, _ = make_scheduler(store)

        async def scenario():
            await scheduler.start()
            disabled = scheduler.toggle_job("budget_etl", False)
            after_disable = scheduler.get_scheduled_jobs()
            tick = await scheduler.handle_timer_tick("budget_etl")
            enabled = scheduler.toggle_job("budget_etl", True)
            after_enable = scheduler.get_scheduled_jobs()
            scheduler.stop()
            return disabled, after_disable, tick, enabled, after_enable

        disabled, after_disable, tick, enabled, after_enable = asyncio.run(scenario())

        assert not disabled.enabled
        assert after_disable == []
        assert tick is None
        assert engine.calls == 0
        assert enabled.enabled
        assert after_enable == ["budget_etl"]

    def test_toggle_unknown_job(self, store):
        scheduler, _, _ = make_scheduler(store)
        with pytest.raises(PipelineNotFoundError):
            scheduler.toggle_job("missing", True)

    def test_update_job_schedule(self, store, add_definition):
        add_definition("budget_etl", schedule="0 8 * * *")
        scheduler, _, _ = make_scheduler(store)

        async def scenario():
            await scheduler.start()
            with pytest.raises(InvalidScheduleError):
                scheduler.update_job_schedule("budget_etl", "0 8 * *")
            unchanged = scheduler.registry.get("budget_etl").expression

            updated = scheduler.update_job_schedule("budget_etl", "30 9 * * 1-5")
            expression = scheduler.registry.get("budget_etl").expression
            scheduler.stop()
            return unchanged, updated, expression

        unchanged, updated, expression = asyncio.run(scenario())

        assert unchanged == "0 8 * * *"
        assert updated.schedule == "30 9 * * 1-5"
        assert expression == "30 9 * * 1-5"
        assert store.get_config("budget_etl").schedule == "30 9 * * 1-5"

    def test_update_unknown_job_schedule(self, store):
        scheduler, _, _ = make_scheduler(store)
        with pytest.raises(PipelineNotFoundError):
            scheduler.update_job_schedule("missing", "0 8 * * *")

    def test_remove_scheduled_job(self, store, add_definition):
        add_definition("budget_etl", schedule="0 8 * * *")
        scheduler, _, _ = make_scheduler(store)

        async def scenario():
            await scheduler.start()
            removed = scheduler.remove_scheduled_job("budget_etl")
            removed_again = scheduler.remove_scheduled_job("budget_etl")
            scheduled = scheduler.get_scheduled_jobs()
            scheduler.stop()
            return removed, removed_again, scheduled

        assert asyncio.run(scenario()) == (True, False, [])
        assert "budget_etl" not in store


class TestEventsAndQueries:
    def test_events_are_republished(self, store, add_definition):
        add_definition("budget_etl")
        scheduler, _, _ = make_scheduler(store)
        received = []

        async def async_subscriber(event):
            received.append(("async", event.event_type))

        def broken_subscriber(event):
            raise RuntimeError("subscriber is broken")

        scheduler.subscribe(lambda event: received.append(("sync", event.event_type)))
        scheduler.subscribe(broken_subscriber)
        scheduler.subscribe(async_subscriber)

        result = asyncio.run(scheduler.run_pipeline_now("budget_etl"))

        assert result.success
        assert received == [("sync", "pipeline_started"), ("async", "pipeline_started")]

    def test_unsubscribe(self, store):
        scheduler, _, _ = make_scheduler(store)
        callback = lambda event: None  # noqa: E731
        scheduler.subscribe(callback)

        assert scheduler.unsubscribe(callback)
        assert not scheduler.unsubscribe(callback)

    def test_job_history_is_bounded(self, store, add_definition):
        add_definition("budget_etl")
        scheduler, _, _ = make_scheduler(store, history_limit=2)

        for _ in range(3):
            asyncio.run(scheduler.run_pipeline_now("budget_etl"))

        assert len(scheduler.get_job_history()) == 2
        assert len(scheduler.get_job_history(limit=1)) == 1

    @pytest.mark.parametrize("limit", [0, -1, "10"])
    def test_job_history_limit_is_validated(self, store, limit):
        scheduler, _, _ = make_scheduler(store)
        with pytest.raises(ValidationError):
            scheduler.get_job_history(limit=limit)

    def test_stats(self, store, add_definition):
        add_definition("budget_etl", schedule="0 8 * * *")
        add_definition("project_etl", enabled=False)
        results = iter([RunResult(success=True), RunResult.failure("Extract failed")])

        class SequenceEngine(FakeEngine):
            async def execute(self, definition, observer=None):
                return next(results)

        scheduler, _, _ = make_scheduler(store, SequenceEngine())
        asyncio.run(scheduler.run_pipeline_now("budget_etl"))
        asyncio.run(scheduler.run_pipeline_now("budget_etl"))

        stats = scheduler.get_stats()

        assert stats["total_configurations"] == 2
        assert stats["enabled_configurations"] == 1
        assert stats["running_pipelines"] == 0
        assert stats["last_24_hours"] == {
            "total_runs": 2,
            "successful": 1,
            "failed": 1,
            "errors": 0,
            "success_rate": 50.0,
        }

    def test_stats_without_runs(self, store):
        scheduler, _, _ = make_scheduler(store)
        stats = scheduler.get_stats()

        assert stats["last_24_hours"]["success_rate"] == 0.0
        assert stats["uptime_seconds"] == 0.0

    def test_jobs_status(self, store, add_definition):
        add_definition("budget_etl", schedule="0 8 * * *")
        add_definition("manual_etl")
        scheduler, _, _ = make_scheduler(store)

        async def scenario():
            await scheduler.start()
            await scheduler.run_pipeline_now("manual_etl")
            status = scheduler.get_jobs_status()
            scheduler.stop()
            return status

        status = asyncio.run(scenario())
        jobs = {job["name"]: job for job in status["jobs"]}

        assert status["total_jobs"] == 2
        assert status["scheduled_jobs"] == 1
        assert jobs["budget_etl"]["is_scheduled"]
        assert jobs["budget_etl"]["next_run"] is not None
        assert jobs["budget_etl"]["last_run"] is None
        assert not jobs["manual_etl"]["is_scheduled"]
        assert jobs["manual_etl"]["last_run"]["status"] == "completed"
        assert jobs["manual_etl"]["source_type"] == "json"

    def test_shutdown_closes_engines(self, store, add_definition):
        add_definition("budget_etl")
        scheduler, engine, _ = make_scheduler(store)

        async def scenario():
            await scheduler.run_pipeline_now("budget_etl")
            await scheduler.shutdown()

        asyncio.run(scenario())
        assert engine.closed
