"""Conference check-in QR scanner."""
from __future__ import annotations

from .config import AppConfig, CameraConfig, StyleConfig, load_endpoint
from .controller import CheckInController
from .machine import outcome_for, transition
from .scanner import CaptureError, ImageFileScanBackend, ScanSession, StaticScanBackend
from .state import AppState, Phase, VerificationOutcome
from .verification import VerificationClient, VerificationResponse

__all__ = [
    "AppConfig",
    "CameraConfig",
    "StyleConfig",
    "AppState",
    "Phase",
    "VerificationOutcome",
    "CaptureError",
    "CheckInController",
    "ImageFileScanBackend",
    "ScanSession",
    "StaticScanBackend",
    "VerificationClient",
    "VerificationResponse",
    "load_endpoint",
    "outcome_for",
    "transition",
]

__version__ = "1.0"
