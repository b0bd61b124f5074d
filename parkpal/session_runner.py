"""Session Runner - Event-driven evaluation for one user session.

Report snapshots, preference changes and location updates arrive
independently. Each one updates the session's latest inputs and asks for
an evaluation; evaluations run one at a time, and triggers that arrive
while one is in flight collapse into a single follow-up evaluation over
the newest inputs.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Generic, TypeVar

from parkpal.core.config import Config
from parkpal.core.preferences import RadiusPreference
from parkpal.core.report import Report, UserLocation
from parkpal.core.session import Session
from parkpal.orchestrator import CycleResult, EvaluationInput, NotificationEngine
from parkpal.shell.expo_push_client import ExpoPushClient
from parkpal.shell.firestore_client import FirestoreClient, FirestoreConfig
from parkpal.shell.history_store import HistoryStore
from parkpal.shell.preference_store import PreferenceStore
from parkpal.shell.report_store import ReportStore


logger = logging.getLogger(__name__)

T = TypeVar("T")


class CoalescingDispatcher(Generic[T]):
    """Runs an async handler one item at a time, keeping only the newest.

    A submitted item starts the handler if it is idle. Items submitted
    while the handler runs overwrite a single pending slot, so only the
    most recent one runs next.
    """

    def __init__(self, handler: Callable[[T], Awaitable[None]]) -> None:
        self._handler = handler
        self._pending: T | None = None
        self._has_pending = False
        self._task: asyncio.Task | None = None
        self._closed = False

    @property
    def busy(self) -> bool:
        """True while the handler is running or queued to run."""
        return self._task is not None and not self._task.done()

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, item: T) -> None:
        """Queue an item, replacing any pending one.

        Must be called from the event loop thread.
        """
        if self._closed:
            return

        self._pending = item
        self._has_pending = True

        if not self.busy:
            self._task = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        while self._has_pending and not self._closed:
            item = self._pending
            self._pending = None
            self._has_pending = False
            try:
                await self._handler(item)
            except Exception:
                logger.exception("Dispatched handler failed")

    async def join(self) -> None:
        """Wait until nothing is running or pending."""
        while self.busy:
            await asyncio.shield(self._task)

    async def close(self) -> None:
        """Drop pending items and wait for the running handler to finish."""
        self._closed = True
        self._pending = None
        self._has_pending = False
        if self._task is not None:
            await self._task


class SessionRunner:
    """Feeds one user's live inputs into their NotificationEngine.

    Lifecycle: `await start()` subscribes to reports and preferences;
    `update_location()` is called by the location provider; `await stop()`
    releases the subscriptions, lets the in-flight evaluation finish and
    resets membership. Nothing is evaluated after stop().
    """

    def __init__(
        self,
        session: Session,
        engine: NotificationEngine,
        report_store: ReportStore,
        preference_store: PreferenceStore,
        location_threshold_meters: float = 10.0,
        on_cycle: Callable[[CycleResult], None] | None = None,
    ) -> None:
        """Initialize runner.

        Args:
            session: User the session belongs to
            engine: Engine that runs evaluation cycles
            report_store: Source of report snapshots
            preference_store: Source of preference snapshots
            location_threshold_meters: Ignore moves shorter than this
            on_cycle: Called with the result of every cycle
        """
        self.session = session
        self.engine = engine
        self.report_store = report_store
        self.preference_store = preference_store
        self.location_threshold_meters = location_threshold_meters
        self.on_cycle = on_cycle

        self._location: UserLocation | None = None
        self._reports: list[Report] = []
        # Notifications stay off until the user's preferences are known
        self._preferences = RadiusPreference(
            radius_miles=preference_store.default_radius,
            notifications_enabled=False,
        )
        self._dispatcher: CoalescingDispatcher[EvaluationInput] = CoalescingDispatcher(self._evaluate)
        self._unsubscribers: list[Callable[[], None]] = []
        self._loop: asyncio.AbstractEventLoop | None = None
        self._started = False
        self._stopped = False
        self.last_result: CycleResult | None = None

    @property
    def location(self) -> UserLocation | None:
        return self._location

    @property
    def preferences(self) -> RadiusPreference:
        return self._preferences

    async def start(self) -> None:
        """Load preferences and subscribe to live reports and preferences."""
        if self._started or self._stopped:
            return
        self._started = True
        self._loop = asyncio.get_running_loop()

        logger.info("Starting session for %s", self.session.user_id)

        preferences = await asyncio.to_thread(
            self.preference_store.get_preferences,
            self.session,
        )
        if preferences is not None:
            self._preferences = preferences

        if self._stopped:
            # stop() ran while preferences were loading
            return

        self._unsubscribers.append(
            self.report_store.subscribe_reports(
                lambda reports: self._from_watch_thread(self.on_reports, reports)
            )
        )
        self._unsubscribers.append(
            self.preference_store.subscribe_preferences(
                self.session,
                lambda prefs: self._from_watch_thread(self.on_preferences, prefs),
            )
        )

    async def stop(self) -> None:
        """End the session.

        Releases subscriptions, discards pending input and waits for the
        in-flight evaluation's side effects to complete.
        """
        if self._stopped:
            return
        self._stopped = True

        logger.info("Stopping session for %s", self.session.user_id)

        for unsubscribe in self._unsubscribers:
            try:
                unsubscribe()
            except Exception as e:
                logger.error("Failed to release subscription: %s", str(e))
        self._unsubscribers.clear()

        await self._dispatcher.close()
        self.engine.reset()

    async def wait_idle(self) -> None:
        """Wait until no evaluation is running or pending."""
        await self._dispatcher.join()

    async def __aenter__(self) -> "SessionRunner":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    def _from_watch_thread(self, handler: Callable[[T], None], value: T) -> None:
        """Hand a value from a store watch thread to the event loop."""
        if self._stopped or self._loop is None:
            return
        try:
            self._loop.call_soon_threadsafe(handler, value)
        except RuntimeError:
            logger.warning("Event loop closed, dropping update for %s", self.session.user_id)

    def on_reports(self, reports: list[Report]) -> None:
        """Replace the report set with a new snapshot."""
        if self._stopped:
            return
        self._reports = list(reports)
        self._trigger()

    def on_preferences(self, preferences: RadiusPreference) -> None:
        """Apply changed preferences."""
        if self._stopped:
            return
        self._preferences = preferences
        self._trigger()

    def update_location(self, location: UserLocation) -> None:
        """Apply a new device position.

        Moves shorter than the threshold are ignored.
        """
        if self._stopped:
            return
        if not location.moved_at_least(self._location, self.location_threshold_meters):
            return
        self._location = location
        self._trigger()

    def _trigger(self) -> None:
        self._dispatcher.submit(EvaluationInput(
            location=self._location,
            reports=self._reports,
            preferences=self._preferences,
        ))

    async def _evaluate(self, inputs: EvaluationInput) -> None:
        result = await asyncio.to_thread(self.engine.run_cycle, inputs)
        self.last_result = result
        if self.on_cycle is not None:
            self.on_cycle(result)


def create_session_runner(
    session: Session,
    config: Config,
    on_cycle: Callable[[CycleResult], None] | None = None,
) -> SessionRunner:
    """Build a SessionRunner wired to Firestore and Expo.

    Args:
        session: User the session belongs to
        config: Application configuration
        on_cycle: Called with the result of every cycle

    Returns:
        SessionRunner ready to start
    """
    firestore_client = FirestoreClient(
        FirestoreConfig(
            project_id=config.firestore_project,
            database=config.firestore_database,
        )
    )
    report_store = ReportStore(
        firestore_client,
        collection=config.reports_collection,
        users_collection=config.users_collection,
    )
    preference_store = PreferenceStore(
        firestore_client,
        collection=config.users_collection,
        default_radius=config.default_radius_miles,
        presets=config.radius_presets_miles,
    )
    history_store = HistoryStore(
        firestore_client,
        users_collection=config.users_collection,
        subcollection=config.history_subcollection,
    )
    push_client = ExpoPushClient(
        endpoint=config.push.endpoint,
        access_token=config.push.access_token,
        timeout=config.push.timeout_seconds,
    )
    engine = NotificationEngine(
        session,
        config,
        report_store=report_store,
        history_store=history_store,
        push_client=push_client,
    )

    return SessionRunner(
        session,
        engine,
        report_store,
        preference_store,
        location_threshold_meters=config.location_threshold_meters,
        on_cycle=on_cycle,
    )
