"""Application state, events and effects for the check-in scanner."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Union, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - imported for static type checking only
    from .scanner import CaptureError
    from .verification import VerificationResponse


class Phase(str, enum.Enum):
    """Screens shown by the app, in the order an operator sees them."""

    READY = "ready"
    SCANNING = "scanning"
    LOADING = "loading"
    RESULT = "result"


class VerificationOutcome(str, enum.Enum):
    """Verdict shown to the operator after a verification call."""

    SUCCESS = "success"
    PRIORITY = "priority"
    FAILURE = "failure"

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self]


_SYMBOLS = {
    VerificationOutcome.SUCCESS: "○",
    VerificationOutcome.PRIORITY: "◎",
    VerificationOutcome.FAILURE: "×",
}


@dataclass(frozen=True, slots=True)
class AppState:
    """The single piece of mutable application state.

    ``outcome`` is only ever set while ``phase`` is :attr:`Phase.RESULT`.
    Instances are immutable; a transition replaces the whole value.
    """

    phase: Phase = Phase.READY
    outcome: Optional[VerificationOutcome] = None

    def __post_init__(self) -> None:
        if (self.phase is Phase.RESULT) != (self.outcome is not None):
            raise ValueError("An outcome is required for, and only for, the result phase")

    @classmethod
    def ready(cls) -> "AppState":
        return cls(Phase.READY)

    @classmethod
    def scanning(cls) -> "AppState":
        return cls(Phase.SCANNING)

    @classmethod
    def loading(cls) -> "AppState":
        return cls(Phase.LOADING)

    @classmethod
    def result(cls, outcome: VerificationOutcome) -> "AppState":
        return cls(Phase.RESULT, outcome)

    def __str__(self) -> str:
        if self.outcome is None:
            return self.phase.value
        return f"{self.phase.value}({self.outcome.value})"


# Events fed into the state machine.


@dataclass(frozen=True, slots=True)
class ScanRequested:
    pass


@dataclass(frozen=True, slots=True)
class CodeDecoded:
    code: str


@dataclass(frozen=True, slots=True)
class ScanFailed:
    reason: "CaptureError"


@dataclass(frozen=True, slots=True)
class VerificationCompleted:
    response: "VerificationResponse"


@dataclass(frozen=True, slots=True)
class ResetElapsed:
    pass


Event = Union[ScanRequested, CodeDecoded, ScanFailed, VerificationCompleted, ResetElapsed]


# Side effects requested by a transition; the controller carries them out.


@dataclass(frozen=True, slots=True)
class OpenSession:
    pass


@dataclass(frozen=True, slots=True)
class CloseSession:
    pass


@dataclass(frozen=True, slots=True)
class Verify:
    code: str


@dataclass(frozen=True, slots=True)
class ScheduleReset:
    delay: float


Effect = Union[OpenSession, CloseSession, Verify, ScheduleReset]


__all__ = [
    "AppState",
    "CloseSession",
    "CodeDecoded",
    "Effect",
    "Event",
    "OpenSession",
    "Phase",
    "ResetElapsed",
    "ScanFailed",
    "ScanRequested",
    "ScheduleReset",
    "VerificationCompleted",
    "VerificationOutcome",
    "Verify",
]
