"""Controller that owns the application state and runs transition effects."""
from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Callable, List, Optional, Protocol

from .machine import transition
from .scanner import CaptureError, Decoded, Failed, ScanBackend, ScanEvent, ScanSession
from .state import (
    AppState,
    CloseSession,
    CodeDecoded,
    Effect,
    Event,
    OpenSession,
    Phase,
    ResetElapsed,
    ScanFailed,
    ScanRequested,
    ScheduleReset,
    VerificationCompleted,
    Verify,
)
from .verification import VerificationResponse

logger = logging.getLogger(__name__)

Listener = Callable[[AppState], None]
Scheduler = Callable[[float, Callable[[], None]], None]
Poster = Callable[[Callable[[], None]], None]


class Verifier(Protocol):
    def verify(self, code: str) -> "Future[VerificationResponse]":
        ...


def _call_now(callback: Callable[[], None]) -> None:
    callback()


class CheckInController:
    """Drive one check-in desk through ``ready -> scanning -> loading -> result``.

    ``schedule(delay, callback)`` must call ``callback`` once after ``delay``
    seconds. ``post(callback)`` must run ``callback`` on the thread that owns
    the controller; results from the scanner and the verifier arrive on worker
    threads and are routed through it. The default runs callbacks inline, which
    is what tests and single-threaded callers want.
    """

    def __init__(
        self,
        scanner: ScanBackend,
        verifier: Verifier,
        schedule: Scheduler,
        reset_delay: float = 3.0,
        post: Optional[Poster] = None,
    ) -> None:
        self._scanner = scanner
        self._verifier = verifier
        self._schedule = schedule
        self._reset_delay = reset_delay
        self._post = post or _call_now
        self._state = AppState.ready()
        self._session: Optional[ScanSession] = None
        self._listeners: List[Listener] = []

    @property
    def state(self) -> AppState:
        return self._state

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def request_scan(self) -> None:
        self.dispatch(ScanRequested())

    def cancel_scan(self) -> None:
        if self._session is not None:
            self._session.resolve(Failed(CaptureError.CANCELLED))

    def dispatch(self, event: Event) -> None:
        previous = self._state
        self._state, effects = transition(previous, event, self._reset_delay)

        if self._state == previous and not effects:
            logger.debug("controller: ignoring %r in %s", event, previous)
            return

        logger.debug("controller: %s -> %s on %r", previous, self._state, event)
        if self._state != previous:
            for listener in list(self._listeners):
                listener(self._state)

        for effect in effects:
            self._run(effect)

    def _run(self, effect: Effect) -> None:
        if isinstance(effect, OpenSession):
            self._open_session()
        elif isinstance(effect, CloseSession):
            self._close_session()
        elif isinstance(effect, Verify):
            self._verify(effect.code)
        elif isinstance(effect, ScheduleReset):
            self._schedule(effect.delay, lambda: self._post(lambda: self.dispatch(ResetElapsed())))
        else:  # pragma: no cover - every effect type is handled above
            raise TypeError(f"Unknown effect: {effect!r}")

    def _open_session(self) -> None:
        try:
            session = self._scanner.start_session()
        except Exception:
            logger.exception("controller: failed to start scan session")
            self.dispatch(ScanFailed(CaptureError.INVALID_DEVICE_INPUT))
            return

        self._session = session

        def on_done(future: "Future[ScanEvent]") -> None:
            self._post(lambda: self._on_scan_event(session, future.result()))

        session.result.add_done_callback(on_done)

    def _on_scan_event(self, session: ScanSession, event: ScanEvent) -> None:
        if session is not self._session:
            logger.debug("controller: ignoring %r from a stale session", event)
            return

        if isinstance(event, Decoded):
            logger.info("controller: scanned %r", event.code)
            self.dispatch(CodeDecoded(event.code))
        else:
            logger.warning("controller: scan ended without a code (%s)", event.reason.value)
            self.dispatch(ScanFailed(event.reason))

    def _close_session(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            session.close()

    def _verify(self, code: str) -> None:
        try:
            future = self._verifier.verify(code)
        except Exception:
            logger.exception("controller: verification for %r could not start", code)
            self.dispatch(VerificationCompleted(VerificationResponse.failed()))
            return

        def on_done(done: "Future[VerificationResponse]") -> None:
            try:
                response = done.result()
            except Exception:
                logger.exception("controller: verification for %r raised", code)
                response = VerificationResponse.failed()
            self._post(lambda: self.dispatch(VerificationCompleted(response)))

        future.add_done_callback(on_done)

    @property
    def is_scan_available(self) -> bool:
        return self._state.phase is Phase.READY


__all__ = ["CheckInController", "Poster", "Scheduler", "Verifier"]
