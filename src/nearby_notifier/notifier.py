"""Walk loop: visit waypoints, classify sightings, notify handlers."""

import logging
import threading
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple

from .classifier import classify
from .encounter_cache import EncounterCache
from .errors import CircuitOpenError, ErrorKind, PollResult, SightingSourceError
from .geo import generate_steps
from .handlers import Handler, NotificationFanout
from .models import Encounter, MapResponse, RawSighting, Waypoint, now_ms, to_waypoints
from .retry import RetryCancelled, RetryPolicy, retry_call
from .sighting_source import SightingSource


class WalkState(str, Enum):
    """Walk loop states."""

    INITIALIZING = "initializing"
    POLLING = "polling"
    RESTING = "resting"
    STOPPED = "stopped"


class Notifier:
    """
    Polling daemon that walks a waypoint plan and reports wild sightings.

    Runs the startup handshake against the sighting source, then visits every
    waypoint in order, classifies the sightings found there against the
    encounter cache and hands accepted encounters to the attached handlers.
    After the last waypoint the cache is swept and the loop rests before
    starting again from the first waypoint.

    Attributes:
        source: Sighting source being polled
        steps: Waypoint plan, traversed cyclically
        cache: Encounters seen so far, by identity
        fanout: Handlers receiving accepted encounters
        state: Current WalkState

    Note:
        Everything runs on the calling thread. ``stop()`` is safe to call
        from a signal handler or another thread; the loop exits at the top
        of the next waypoint or rest period.
    """

    def __init__(
        self,
        source: SightingSource,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        step_count: int = 5,
        radius: float = 0.07,
        steps: Optional[Iterable[Tuple[float, float]]] = None,
        step_interval_ms: int = 1000,
        loop_interval_ms: int = 60000,
        logger: Optional[logging.Logger] = None,
        handlers: Optional[List[Handler]] = None,
        notify_on_repeat: bool = True,
        init_retry: Optional[RetryPolicy] = None,
        sweep_every_steps: Optional[int] = None,
        max_consecutive_failures: Optional[int] = None,
        clock: Callable[[], int] = now_ms,
        sleep: Optional[Callable[[float], object]] = None,
    ):
        self.source = source
        self.logger = logger or logging.getLogger(__name__)

        if steps is not None:
            self.override_steps(steps)
        elif latitude is not None and longitude is not None:
            self.steps = tuple(generate_steps(latitude, longitude, step_count, radius))
        else:
            raise ValueError("Either latitude and longitude or steps are required")

        self.step_interval_ms = 0
        self.loop_interval_ms = 0
        self.set_step_interval(step_interval_ms)
        self.set_loop_interval(loop_interval_ms)

        if sweep_every_steps is not None and sweep_every_steps < 1:
            raise ValueError("sweep_every_steps must be at least 1")
        if max_consecutive_failures is not None and max_consecutive_failures < 1:
            raise ValueError("max_consecutive_failures must be at least 1")

        self.notify_on_repeat = notify_on_repeat
        self.init_retry = init_retry or RetryPolicy()
        self.sweep_every_steps = sweep_every_steps
        self.max_consecutive_failures = max_consecutive_failures

        self.cache = EncounterCache()
        self.fanout = NotificationFanout(handlers, log=self.logger)
        self.state = WalkState.STOPPED
        self.clock = clock
        self._stop_event = threading.Event()
        self._sleep = sleep or self._stop_event.wait
        self._consecutive_failures = 0
        self._completed_runs = 0

    # Configuration

    def override_steps(self, steps: Iterable[Tuple[float, float]]) -> "Notifier":
        """Replace the waypoint plan."""
        plan = to_waypoints(steps)
        if not plan:
            raise ValueError("Waypoint plan must not be empty")
        self.steps = plan
        return self

    def attach(self, handler: Handler) -> "Notifier":
        """Attach a notification handler."""
        self.fanout.attach(handler)
        return self

    def set_logger(self, logger: logging.Logger) -> "Notifier":
        self.logger = logger
        self.fanout.log = logger
        return self

    def set_step_interval(self, interval_ms: int) -> "Notifier":
        """Set the delay between waypoints, in milliseconds."""
        if interval_ms < 0:
            raise ValueError("step interval must not be negative")
        self.step_interval_ms = interval_ms
        return self

    def set_loop_interval(self, interval_ms: int) -> "Notifier":
        """Set the delay between full cycles, in milliseconds."""
        if interval_ms < 0:
            raise ValueError("loop interval must not be negative")
        self.loop_interval_ms = interval_ms
        return self

    # Lifecycle

    @property
    def running(self) -> bool:
        return not self._stop_event.is_set()

    def stop(self):
        """Ask the loop to exit at its next cancellation point."""
        self._stop_event.set()

    def run(self, max_cycles: Optional[int] = None):
        """
        Initialize, then walk the plan until stopped.

        A stop requested before ``run`` is honoured; the stop flag is only
        reset when a notifier is run again after a previous run finished.

        Args:
            max_cycles: Stop after this many full cycles (None runs forever)
        """
        if self._completed_runs:
            self._stop_event.clear()
        try:
            if not self.running or not self.initialize():
                return
            cycles = 0
            while self.running:
                if max_cycles is not None and cycles >= max_cycles:
                    break
                if cycles:
                    self.rest()
                    if not self.running:
                        break
                self.run_cycle()
                cycles += 1
        finally:
            self._completed_runs += 1
            self.state = WalkState.STOPPED

    def initialize(self) -> bool:
        """
        Run the startup handshake.

        The remote service ignores location queries until player data,
        inventory and settings have been fetched once. The whole sequence is
        retried on NoResponseError according to ``init_retry`` until it
        succeeds or a stop is requested.

        Returns:
            True once the handshake succeeded, False if stopped while retrying

        Raises:
            RetryExhausted: If a bounded policy runs out of attempts
        """
        self.state = WalkState.INITIALIZING

        def handshake():
            self.source.get_player_data()
            self.source.get_inventory()
            self.source.download_settings()

        def on_retry(error: Exception, attempt: int):
            self.logger.debug(f"Failed initialization, retrying... (attempt {attempt}: {error})")

        try:
            retry_call(
                handshake,
                self.init_retry,
                sleep=self._sleep,
                on_retry=on_retry,
                should_continue=lambda: self.running,
            )
        except RetryCancelled as e:
            self.logger.info(f"Initialization abandoned after {e.attempts} attempts, stop requested")
            return False
        self.logger.info("Initialization complete")
        self.state = WalkState.POLLING
        return True

    def run_cycle(self) -> bool:
        """
        Visit every waypoint once, then sweep expired encounters.

        Returns:
            False if a stop was requested before the cycle finished
        """
        self.state = WalkState.POLLING
        total = len(self.steps)
        for index, waypoint in enumerate(self.steps):
            if not self.running:
                return False

            self.poll_step(index, waypoint)

            if self.sweep_every_steps and (index + 1) % self.sweep_every_steps == 0 and index + 1 < total:
                self.cache.sweep(self.clock())

            self._sleep_ms(self.step_interval_ms)

        self.cache.sweep(self.clock())
        return True

    def rest(self):
        """Wait the loop interval before the next cycle."""
        if not self.running:
            return
        self.state = WalkState.RESTING
        self.logger.debug(f"Waiting {round(self.loop_interval_ms / 1000)} seconds before restarting...")
        self._sleep_ms(self.loop_interval_ms)

    # Polling

    def poll_step(self, index: int, waypoint: Waypoint) -> List[Encounter]:
        """
        Move to a waypoint and process the sightings reported there.

        Transient and malformed-data failures are logged and the waypoint is
        skipped. Fatal source errors propagate.

        Raises:
            SightingSourceError: On a fatal source error
            CircuitOpenError: When max_consecutive_failures is reached
        """
        self.source.set_location(waypoint.latitude, waypoint.longitude)
        self.logger.debug(f"Walking {index + 1} of {len(self.steps)}")

        result = self.poll()
        if result.ok:
            self._consecutive_failures = 0
            return self.process_response(result.response)

        if result.kind is ErrorKind.FATAL:
            raise result.error

        self.logger.error(f"An exception has been thrown while fetching map objects: {result.error}")
        self._consecutive_failures += 1
        if (
            self.max_consecutive_failures is not None
            and self._consecutive_failures >= self.max_consecutive_failures
        ):
            raise CircuitOpenError(self._consecutive_failures) from result.error
        return []

    def poll(self) -> PollResult:
        """Request map objects at the current location."""
        try:
            return PollResult.success(self.source.get_map_objects())
        except SightingSourceError as e:
            return PollResult.failure(e)

    def process_response(self, response: MapResponse) -> List[Encounter]:
        """Classify every sighting in a map response and dispatch the accepted ones."""
        accepted = []
        for cell in response.map_cells:
            if cell.wild_sightings_count > 0:
                for raw in cell.wild_sightings:
                    encounter = self.add_encounter(raw)
                    if encounter is not None:
                        accepted.append(encounter)
        return accepted

    def add_encounter(self, raw: RawSighting) -> Optional[Encounter]:
        """
        Classify one sighting and notify handlers.

        Repeat sightings are dispatched too (handlers may refresh a
        countdown) unless ``notify_on_repeat`` is off.
        """
        encounter = classify(raw, self.cache, self.clock())
        if encounter is None:
            return None

        self.logger.info(
            f"{encounter.state} encounter with {encounter.name} found at "
            f"{encounter.latitude}, {encounter.longitude}"
        )

        if encounter.is_new or self.notify_on_repeat:
            self.fanout.notify(encounter)
        return encounter

    def _sleep_ms(self, interval_ms: int):
        if interval_ms > 0:
            self._sleep(interval_ms / 1000)
