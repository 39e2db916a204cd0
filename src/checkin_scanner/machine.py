"""Pure transition function for the check-in workflow.

The machine cycles ``ready -> scanning -> loading -> result -> ready``
forever. Every transition is a function of the current state and one event
and returns the next state together with the effects the controller has to
carry out. Pairs that are not part of the cycle leave the state untouched and
request nothing, which is what keeps a second scan or a second verification
from starting while one is already in progress.
"""
from __future__ import annotations

from typing import Tuple

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
    VerificationOutcome,
    Verify,
)
from .verification import VerificationResponse

PRIORITY_FLAG = "yes"

Transition = Tuple[AppState, Tuple[Effect, ...]]


def outcome_for(response: VerificationResponse) -> VerificationOutcome:
    """Map a verification response onto the verdict shown to the operator."""

    if not response.success:
        return VerificationOutcome.FAILURE
    if response.priority == PRIORITY_FLAG:
        return VerificationOutcome.PRIORITY
    return VerificationOutcome.SUCCESS


def transition(state: AppState, event: Event, reset_delay: float) -> Transition:
    """Return ``(next_state, effects)`` for ``event`` arriving in ``state``."""

    phase = state.phase

    if phase is Phase.READY and isinstance(event, ScanRequested):
        return AppState.scanning(), (OpenSession(),)

    if phase is Phase.SCANNING:
        if isinstance(event, CodeDecoded):
            return AppState.loading(), (CloseSession(), Verify(event.code))
        if isinstance(event, ScanFailed):
            return AppState.ready(), (CloseSession(),)

    if phase is Phase.LOADING and isinstance(event, VerificationCompleted):
        outcome = outcome_for(event.response)
        return AppState.result(outcome), (ScheduleReset(reset_delay),)

    if phase is Phase.RESULT and isinstance(event, ResetElapsed):
        return AppState.ready(), ()

    return state, ()


__all__ = ["PRIORITY_FLAG", "outcome_for", "transition"]
