"""Polling engine for natstop."""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from queue import Empty, Full, Queue

from natstop.config import Config
from natstop.exceptions import NatsTopError
from natstop.fetcher import StatsFetcher
from natstop.logger import get_logger
from natstop.models import (
    ConnectionList,
    Counters,
    PollFailure,
    RateSample,
    Sample,
    ServerStats,
    Snapshot,
    SortKey,
)
from natstop.rates import compute_rates

logger = get_logger(__name__)


class PollPhase(Enum):
    """Whether a previous sample exists to compute rates against."""

    PRIMING = "priming"
    STEADY = "steady"


@dataclass(slots=True)
class PollState:
    """Counters carried from one poll cycle to the next."""

    phase: PollPhase = PollPhase.PRIMING
    previous: Counters | None = None
    previous_at: float | None = None
    cycles: int = 0


class SampleMailbox:
    """
    Single-slot handoff between the poll loop and the dashboard.

    Publishing replaces any item the consumer has not taken yet, so the
    consumer always sees the most recent sample and never a backlog.
    """

    def __init__(self) -> None:
        """Initialize an empty mailbox."""
        self._queue: Queue[Sample | PollFailure] = Queue(maxsize=1)
        self._lock = threading.Lock()

    def publish(self, item: Sample | PollFailure) -> None:
        """Hand an item to the consumer, dropping an unconsumed one."""
        with self._lock:
            try:
                self._queue.get_nowait()
            except Empty:
                pass
            try:
                self._queue.put_nowait(item)
            except Full:
                # Only one producer holds the lock; cannot happen.
                pass

    def take(self) -> Sample | PollFailure | None:
        """Get the pending item, or None if nothing new was published."""
        try:
            return self._queue.get_nowait()
        except Empty:
            return None

    def wait(self, timeout: float | None = None) -> Sample | PollFailure | None:
        """Block until an item is published or timeout expires."""
        try:
            return self._queue.get(timeout=timeout)
        except Empty:
            return None


class PollLoop:
    """
    Periodically fetches /varz and /connz and publishes rated samples.

    Runs in a separate daemon thread. Both endpoints are fetched in parallel
    and joined each cycle. A fetch failure ends the loop and is published as
    a PollFailure; the loop never exits the process itself.
    """

    def __init__(
        self,
        config: Config,
        mailbox: SampleMailbox,
        fetcher: StatsFetcher | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the PollLoop.

        Args:
            config: Validated options; supplies the poll interval.
            mailbox: Where samples are published.
            fetcher: Monitoring client. Built from config if omitted.
            clock: Monotonic time source used to measure elapsed time.
        """
        self._config = config
        self._mailbox = mailbox
        self._fetcher = fetcher or StatsFetcher(config)
        self._clock = clock
        self._interval = config.interval
        self._sort_key = config.sort_key
        self._state = PollState()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def interval(self) -> float:
        """Get the poll interval in seconds."""
        return self._interval

    @property
    def sort_key(self) -> SortKey:
        """Get the sort key sent with the next /connz request."""
        return self._sort_key

    @sort_key.setter
    def sort_key(self, value: SortKey) -> None:
        """Set the sort key sent with the next /connz request."""
        self._sort_key = value

    @property
    def state(self) -> PollState:
        """Get the current poll state."""
        return self._state

    @property
    def is_running(self) -> bool:
        """Check if the poll thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the polling thread."""
        if self.is_running:
            return

        # A fresh event per run: an abandoned thread keeps its own, already set.
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._poll_loop,
            args=(self._stop_event,),
            daemon=True,
            name="PollLoop",
        )
        self._thread.start()
        logger.info(f"Polling {self._config.base_url} every {self._interval}s")

    def stop(self, timeout: float | None = 0.0) -> None:
        """
        Stop the polling thread.

        An in-flight fetch is abandoned rather than waited for.

        Args:
            timeout: How long to wait for the thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            if timeout:
                self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("Polling stopped")

    def _poll_loop(self, stop_event: threading.Event) -> None:
        """Main polling loop running in the background thread."""
        while not stop_event.is_set():
            try:
                sample = self.run_once()
            except Exception as e:
                logger.exception("Polling failed")
                if not isinstance(e, NatsTopError):
                    error = NatsTopError(f"unexpected polling error: {e}")
                    error.__cause__ = e
                    e = error
                if not stop_event.is_set():
                    self._mailbox.publish(PollFailure(e))
                return

            if stop_event.is_set():
                return
            self._mailbox.publish(sample)

            # Wait for the interval or until stop is requested
            stop_event.wait(timeout=self._interval)

    def run_once(self) -> Sample:
        """
        Perform one poll cycle and return its sample.

        Raises:
            NatsTopError: If either endpoint could not be fetched.
        """
        started = self._clock()
        stats, connections = self._fetch_both()
        now = self._clock()
        snapshot = Snapshot(stats=stats, connections=connections, captured_at=now)
        rates = self._advance(stats.counters, now)
        logger.debug(f"Cycle {self._state.cycles} took {now - started:.3f}s")
        return Sample(snapshot=snapshot, rates=rates, sequence=self._state.cycles)

    def _fetch_both(self) -> tuple[ServerStats, ConnectionList]:
        """
        Fetch /varz and /connz in parallel and wait for both.

        The /connz request runs on a daemon thread so an abandoned loop
        never holds up interpreter exit.
        """
        results: dict[str, object] = {}
        errors: dict[str, BaseException] = {}

        def run(name: str, func: Callable[..., object], *args: object) -> None:
            try:
                results[name] = func(*args)
            except Exception as e:
                errors[name] = e

        worker = threading.Thread(
            target=run,
            args=("connz", self._fetcher.fetch_connections, self._sort_key),
            daemon=True,
            name="PollLoop-connz",
        )
        worker.start()
        run("varz", self._fetcher.fetch_server_stats)
        worker.join()

        for name in ("varz", "connz"):
            if name in errors:
                raise errors[name]
        return results["varz"], results["connz"]

    def _advance(self, counters: Counters, now: float) -> RateSample:
        """Compute rates against the previous cycle and remember this one."""
        state = self._state
        if state.phase is PollPhase.PRIMING:
            rates = RateSample.zero()
            state.phase = PollPhase.STEADY
        else:
            rates = compute_rates(state.previous, counters, now - state.previous_at)
        state.previous = counters
        state.previous_at = now
        state.cycles += 1
        return rates
