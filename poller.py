"""
Polling side of the dashboard.

``fetch_samples`` retrieves the current sample window from the backend and
``PollScheduler`` runs it on a fixed cadence in a background thread, pushing
``PollResult`` items onto each subscribed queue. Every page session holds
one queue and drains it on each run.
"""
from __future__ import annotations

import functools
import logging
import threading
import time
import weakref
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

import requests

import dashboard_config as cfg
from samples import MockFeed, Sample

log = logging.getLogger(__name__)

Fetcher = Callable[[], List[Sample]]


class FetchError(Exception):
    """Base class for every way a poll can fail."""


class TransportError(FetchError):
    """The endpoint answered with a non-2xx status."""

    def __init__(self, status_code: int, url: str = ""):
        super().__init__(f"HTTP error! Status: {status_code}")
        self.status_code = status_code
        self.url = url


class NetworkError(FetchError):
    """The request could not complete (no response)."""


class DecodeError(FetchError):
    """The body is not valid JSON or not a list of samples."""


def decode_samples(payload: Any) -> List[Sample]:
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise DecodeError(f"expected a JSON array, got {type(payload).__name__}")
    samples = []
    for i, item in enumerate(payload):
        try:
            samples.append(Sample.from_json(item))
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            raise DecodeError(f"bad sample at index {i}: {e}") from e
    return samples


def fetch_samples(url: str = cfg.DATA_URL, timeout: float = cfg.REQUEST_TIMEOUT_S,
                  session: Optional[requests.Session] = None) -> List[Sample]:
    """GET the sample window.

    Raises TransportError on a non-2xx status, NetworkError when no response
    arrives and DecodeError when the body cannot be decoded.
    """
    http = session or requests
    log.debug("Fetching data from %s", url)
    try:
        response = http.get(url, timeout=timeout)
    except requests.exceptions.RequestException as e:
        raise NetworkError(str(e)) from e

    if not 200 <= response.status_code < 300:
        raise TransportError(response.status_code, url)

    try:
        payload = response.json()
    except ValueError as e:
        raise DecodeError(f"invalid JSON body: {e}") from e

    samples = decode_samples(payload)
    log.info("Fetched %d data points", len(samples))
    return samples


def build_fetcher(source: str = cfg.DATA_SOURCE, url: str = cfg.DATA_URL,
                  timeout: float = cfg.REQUEST_TIMEOUT_S) -> Fetcher:
    if source == "Mock":
        return MockFeed().fetch
    if source == "HTTP":
        return functools.partial(fetch_samples, url, timeout, requests.Session())
    raise ValueError(f"unknown data source: {source!r}")


# ----------------------------- Ticks ----------------------------- #

@dataclass(frozen=True)
class PollResult:
    seq: int
    samples: Optional[List[Sample]] = None
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def poll_once(fetch: Fetcher, seq: int = 0) -> PollResult:
    """Run one tick. Fetch failures are logged and returned, never raised."""
    try:
        samples = fetch()
    except FetchError as e:
        log.error("Fetch error: %s", e)
        return PollResult(seq, error=e)
    return PollResult(seq, samples=samples)


def next_deadline(deadline: float, now: float, interval: float) -> float:
    """The first slot after ``now`` on the grid ``deadline + k * interval``.

    Slots that passed while a request was in flight are skipped, so ticks
    never pile up behind a slow response.
    """
    deadline += interval
    if deadline <= now:
        missed = int((now - deadline) // interval) + 1
        log.debug("Skipping %d poll tick(s) behind a slow request", missed)
        deadline += missed * interval
    return deadline


class PollScheduler:
    """Cancellable periodic poll on a single background thread.

    One tick runs immediately on ``start()``, then one per ``interval_s``.
    Every result is copied to each subscribed queue in request order.
    Queues are held weakly, so a browser session that goes away stops
    receiving results; with no subscribers left, ticks skip the fetch.
    """

    def __init__(self, fetch: Fetcher, interval_s: float = cfg.POLL_INTERVAL_S,
                 clock: Callable[[], float] = time.monotonic):
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self.fetch = fetch
        self.interval_s = interval_s
        self.clock = clock
        self.ticks = 0
        self._subscribers: weakref.WeakSet = weakref.WeakSet()
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return (
            self._thread is not None
            and self._thread.is_alive()
            and not self._stop.is_set()
        )

    @property
    def subscribers(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self, maxlen: int = cfg.MAX_PENDING_RESULTS) -> deque:
        queue = deque(maxlen=maxlen)
        with self._lock:
            self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: deque):
        with self._lock:
            self._subscribers.discard(queue)

    def start(self):
        if self.running:
            return
        # A stopped thread may still be finishing a request; it keeps its
        # own stop event and drops that result.
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, args=(self._stop,),
                                        name="poll-scheduler", daemon=True)
        self._thread.start()
        log.info("Polling every %.1fs", self.interval_s)

    def stop(self, timeout: Optional[float] = None):
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        log.info("Polling stopped after %d tick(s)", self.ticks)

    def _publish(self, result: PollResult):
        with self._lock:
            queues = list(self._subscribers)
        for queue in queues:
            queue.append(result)

    def _run(self, stop: threading.Event):
        deadline = self.clock()
        try:
            while not stop.is_set():
                if self.subscribers:
                    self.ticks += 1
                    result = poll_once(self.fetch, self.ticks)
                    if stop.is_set():
                        break
                    self._publish(result)
                else:
                    log.debug("No subscribers, skipping poll")
                deadline = next_deadline(deadline, self.clock(), self.interval_s)
                if stop.wait(max(0.0, deadline - self.clock())):
                    break
        except Exception:
            log.exception("Poll scheduler crashed")
            raise


def drain(queue: deque, limit: int = cfg.DRAIN_LIMIT) -> List[PollResult]:
    """Pop up to ``limit`` pending results, oldest first."""
    results = []
    while queue and len(results) < limit:
        results.append(queue.popleft())
    return results


def apply_results(renderer, results: List[PollResult]) -> int:
    """Hand drained results to the renderer in order. Returns how many were applied."""
    for result in results:
        if result.ok:
            renderer.render(result.samples)
        else:
            renderer.show_error()
    return len(results)
