"""Tests for the session runner and its coalescing dispatcher.

The engine and stores are mocked; evaluation scheduling is real.
"""

import asyncio
import threading
from unittest.mock import Mock, patch

import pytest

from parkpal.core.preferences import RadiusPreference
from parkpal.core.report import Report, UserLocation
from parkpal.core.session import Session
from parkpal.orchestrator import CycleResult, EvaluationInput
from parkpal.core.config import Config, PushConfig
from parkpal.session_runner import CoalescingDispatcher, SessionRunner, create_session_runner


DOWNTOWN = UserLocation(43.0731, -89.4012)
CAPITOL = UserLocation(43.0747, -89.3841)
CAMPUS = UserLocation(43.0716, -89.4101)

PREFS = RadiusPreference(radius_miles=0.3, notifications_enabled=True, push_token="tok")

REPORT = Report(id="r1", latitude=43.0731, longitude=-89.4012, is_available=True, timestamp=1)


class TestCoalescingDispatcher:
    """Tests for CoalescingDispatcher."""

    @pytest.mark.asyncio
    async def test_runs_submitted_item(self):
        handled = []

        async def handler(item):
            handled.append(item)

        dispatcher = CoalescingDispatcher(handler)
        dispatcher.submit(1)
        await dispatcher.join()

        assert handled == [1]
        assert not dispatcher.busy

    @pytest.mark.asyncio
    async def test_items_during_run_collapse_to_newest(self):
        handled = []
        started = asyncio.Event()
        release = asyncio.Event()

        async def handler(item):
            handled.append(item)
            started.set()
            await release.wait()

        dispatcher = CoalescingDispatcher(handler)
        dispatcher.submit(1)
        await started.wait()

        dispatcher.submit(2)
        dispatcher.submit(3)
        dispatcher.submit(4)
        release.set()
        await dispatcher.join()

        assert handled == [1, 4]

    @pytest.mark.asyncio
    async def test_never_runs_concurrently(self):
        running = 0
        max_running = 0

        async def handler(item):
            nonlocal running, max_running
            running += 1
            max_running = max(max_running, running)
            await asyncio.sleep(0)
            running -= 1

        dispatcher = CoalescingDispatcher(handler)
        for i in range(5):
            dispatcher.submit(i)
            await asyncio.sleep(0)
        await dispatcher.join()

        assert max_running == 1

    @pytest.mark.asyncio
    async def test_handler_error_does_not_stop_dispatch(self):
        handled = []

        async def handler(item):
            handled.append(item)
            if item == 1:
                raise RuntimeError("boom")

        dispatcher = CoalescingDispatcher(handler)
        dispatcher.submit(1)
        await dispatcher.join()
        dispatcher.submit(2)
        await dispatcher.join()

        assert handled == [1, 2]

    @pytest.mark.asyncio
    async def test_close_drops_pending(self):
        handled = []
        started = asyncio.Event()
        release = asyncio.Event()

        async def handler(item):
            handled.append(item)
            started.set()
            await release.wait()

        dispatcher = CoalescingDispatcher(handler)
        dispatcher.submit(1)
        await started.wait()
        dispatcher.submit(2)

        closing = asyncio.ensure_future(dispatcher.close())
        await asyncio.sleep(0)
        release.set()
        await closing

        dispatcher.submit(3)
        await dispatcher.join()

        assert handled == [1]
        assert dispatcher.closed


@pytest.fixture
def engine():
    engine = Mock()
    engine.run_cycle.return_value = CycleResult()
    return engine


@pytest.fixture
def report_store():
    store = Mock()
    store.report_unsubscribe = Mock()
    store.subscribe_reports.return_value = store.report_unsubscribe
    return store


@pytest.fixture
def preference_store():
    store = Mock()
    store.default_radius = 0.3
    store.get_preferences.return_value = PREFS
    store.prefs_unsubscribe = Mock()
    store.subscribe_preferences.return_value = store.prefs_unsubscribe
    return store


@pytest.fixture
def runner(engine, report_store, preference_store):
    return SessionRunner(
        Session("user-1"),
        engine,
        report_store,
        preference_store,
        location_threshold_meters=10.0,
    )


def last_input(engine) -> EvaluationInput:
    return engine.run_cycle.call_args[0][0]


class TestSessionRunnerLifecycle:
    """Tests for start/stop."""

    def test_notifications_off_before_start(self, runner):
        assert runner.preferences.notifications_enabled is False
        assert runner.preferences.radius_miles == 0.3

    @pytest.mark.asyncio
    async def test_start_loads_preferences_and_subscribes(
        self, runner, report_store, preference_store
    ):
        await runner.start()

        assert runner.preferences == PREFS
        report_store.subscribe_reports.assert_called_once()
        preference_store.subscribe_preferences.assert_called_once()
        assert preference_store.subscribe_preferences.call_args[0][0] == Session("user-1")

        await runner.stop()

    @pytest.mark.asyncio
    async def test_unreadable_preferences_keep_notifications_off(self, runner, preference_store):
        preference_store.get_preferences.return_value = None

        await runner.start()

        assert runner.preferences.notifications_enabled is False
        await runner.stop()

    @pytest.mark.asyncio
    async def test_stop_releases_subscriptions_and_resets(
        self, runner, engine, report_store, preference_store
    ):
        await runner.start()
        await runner.stop()

        report_store.report_unsubscribe.assert_called_once_with()
        preference_store.prefs_unsubscribe.assert_called_once_with()
        engine.reset.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_stop_while_loading_preferences_never_subscribes(
        self, runner, report_store, preference_store
    ):
        loading = threading.Event()
        release = threading.Event()

        def slow_get_preferences(session):
            loading.set()
            release.wait(timeout=5)
            return PREFS

        preference_store.get_preferences.side_effect = slow_get_preferences

        starting = asyncio.ensure_future(runner.start())
        await asyncio.to_thread(loading.wait, 5)
        await runner.stop()
        release.set()
        await starting

        report_store.subscribe_reports.assert_not_called()
        preference_store.subscribe_preferences.assert_not_called()

    @pytest.mark.asyncio
    async def test_start_after_stop_is_ignored(self, runner, report_store, preference_store):
        await runner.stop()
        await runner.start()

        preference_store.get_preferences.assert_not_called()
        report_store.subscribe_reports.assert_not_called()

    @pytest.mark.asyncio
    async def test_nothing_evaluated_after_stop(self, runner, engine):
        await runner.start()
        await runner.stop()

        runner.update_location(DOWNTOWN)
        runner.on_reports([REPORT])
        await runner.wait_idle()

        engine.run_cycle.assert_not_called()

    @pytest.mark.asyncio
    async def test_context_manager(self, runner, engine, report_store):
        async with runner:
            runner.update_location(DOWNTOWN)
            await runner.wait_idle()

        engine.run_cycle.assert_called_once()
        report_store.report_unsubscribe.assert_called_once_with()


class TestSessionRunnerTriggers:
    """Inputs trigger evaluations with the newest state."""

    @pytest.mark.asyncio
    async def test_location_update_evaluates(self, runner, engine):
        await runner.start()

        runner.update_location(DOWNTOWN)
        await runner.wait_idle()

        assert last_input(engine) == EvaluationInput(
            location=DOWNTOWN, reports=[], preferences=PREFS
        )
        await runner.stop()

    @pytest.mark.asyncio
    async def test_small_move_is_ignored(self, runner, engine):
        await runner.start()
        runner.update_location(DOWNTOWN)
        await runner.wait_idle()

        runner.update_location(UserLocation(43.07313, -89.4012))
        await runner.wait_idle()

        assert engine.run_cycle.call_count == 1
        assert runner.location == DOWNTOWN
        await runner.stop()

    @pytest.mark.asyncio
    async def test_burst_collapses_to_latest(self, runner, engine):
        await runner.start()

        runner.update_location(DOWNTOWN)
        runner.update_location(CAPITOL)
        runner.update_location(CAMPUS)
        await runner.wait_idle()

        engine.run_cycle.assert_called_once()
        assert last_input(engine).location == CAMPUS
        await runner.stop()

    @pytest.mark.asyncio
    async def test_report_snapshot_from_watch_thread(self, runner, engine, report_store):
        await runner.start()
        runner.update_location(DOWNTOWN)
        await runner.wait_idle()

        callback = report_store.subscribe_reports.call_args[0][0]
        thread = threading.Thread(target=callback, args=([REPORT],))
        thread.start()
        thread.join()
        await asyncio.sleep(0)
        await runner.wait_idle()

        assert last_input(engine).reports == [REPORT]
        await runner.stop()

    @pytest.mark.asyncio
    async def test_preference_change_evaluates(self, runner, engine):
        await runner.start()
        runner.update_location(DOWNTOWN)
        await runner.wait_idle()

        disabled = RadiusPreference(radius_miles=0.5, notifications_enabled=False)
        runner.on_preferences(disabled)
        await runner.wait_idle()

        assert last_input(engine).preferences == disabled
        await runner.stop()

    @pytest.mark.asyncio
    async def test_on_cycle_receives_result(self, engine, report_store, preference_store):
        results = []
        expected = CycleResult(reports_received=1)
        engine.run_cycle.return_value = expected
        runner = SessionRunner(
            Session("user-1"),
            engine,
            report_store,
            preference_store,
            on_cycle=results.append,
        )

        await runner.start()
        runner.on_reports([REPORT])
        await runner.wait_idle()
        await runner.stop()

        assert results == [expected]
        assert runner.last_result is expected


class TestCreateSessionRunner:
    """Tests for create_session_runner() wiring."""

    @patch("parkpal.session_runner.FirestoreClient")
    def test_passes_config_through(self, mock_firestore_class):
        config = Config(
            firestore_project="parkpal-prod",
            reports_collection="reports",
            users_collection="people",
            history_subcollection="history",
            default_radius_miles=0.5,
            radius_presets_miles=(0.25, 0.5),
            location_threshold_meters=25.0,
            push=PushConfig(endpoint="https://push.example.com", access_token="tok"),
        )

        runner = create_session_runner(Session("user-1"), config)

        mock_firestore_class.assert_called_once()
        assert mock_firestore_class.call_args[0][0].project_id == "parkpal-prod"
        shared_client = mock_firestore_class.return_value

        assert runner.location_threshold_meters == 25.0
        assert runner.report_store.collection == "reports"
        assert runner.report_store.users_collection == "people"
        assert runner.report_store.firestore_client is shared_client
        assert runner.preference_store.collection == "people"
        assert runner.preference_store.presets == (0.25, 0.5)
        assert runner.preference_store.default_radius == 0.5
        assert runner.preferences.radius_miles == 0.5

        engine = runner.engine
        assert engine.session == Session("user-1")
        assert engine.report_store is runner.report_store
        assert engine.history_store.users_collection == "people"
        assert engine.history_store.subcollection == "history"
        assert engine.history_store.firestore_client is shared_client
        assert engine.push_client.endpoint == "https://push.example.com"
        assert engine.push_client.access_token == "tok"

    @patch("parkpal.session_runner.FirestoreClient")
    def test_on_cycle_is_wired(self, mock_firestore_class):
        callback = Mock()

        runner = create_session_runner(Session("user-1"), Config(), on_cycle=callback)

        assert runner.on_cycle is callback
