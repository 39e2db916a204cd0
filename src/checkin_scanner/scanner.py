"""Scan sessions and QR decoding helpers.

A scan session produces exactly one :class:`Decoded` or :class:`Failed`
event and then stops. Backends differ only in where the frames come from:
the camera worker in :mod:`checkin_scanner.app`, an image on disk, or a
fixed list of codes for tests and demos.
"""
from __future__ import annotations

import enum
import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Protocol, Union

from .config import AppConfig, CameraConfig

logger = logging.getLogger(__name__)


class CaptureError(str, enum.Enum):
    """Reasons a scan session can end without a code."""

    DEPENDENCIES_MISSING = "dependencies_missing"
    NO_DEVICE = "no_device"
    INVALID_DEVICE_INPUT = "invalid_device_input"
    FEED_UNAVAILABLE = "feed_unavailable"
    INVALID_SCANNED_VALUE = "invalid_scanned_value"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class Decoded:
    code: str


@dataclass(frozen=True, slots=True)
class Failed:
    reason: CaptureError


ScanEvent = Union[Decoded, Failed]


class ScanSession:
    """One attempt to read a single code.

    ``result`` resolves with the first event passed to :meth:`resolve`; later
    events are dropped. :meth:`close` runs the stop callback once, and closing
    a session that has not produced anything resolves it as cancelled.
    """

    def __init__(self, on_close: Optional[Callable[[], None]] = None) -> None:
        self.result: "Future[ScanEvent]" = Future()
        self._on_close = on_close
        self._closed = False
        self._resolved = False
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def resolve(self, event: ScanEvent) -> bool:
        with self._lock:
            if self._resolved:
                logger.debug("scanner: dropping %r, session already resolved", event)
                return False
            self._resolved = True
        # Done callbacks run synchronously and may close this session.
        self.result.set_result(event)
        return True

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self.resolve(Failed(CaptureError.CANCELLED))
        if self._on_close is not None:
            self._on_close()


class ScanBackend(Protocol):
    def start_session(self) -> ScanSession:
        ...


class StaticScanBackend:
    """Backend that replays a fixed sequence of codes, one per session."""

    def __init__(self, codes: Iterable[str]) -> None:
        self._codes: Iterator[str] = iter(codes)

    def start_session(self) -> ScanSession:
        session = ScanSession()
        code = next(self._codes, None)
        if code is None:
            session.resolve(Failed(CaptureError.NO_DEVICE))
        else:
            session.resolve(Decoded(code))
        return session


class ImageFileScanBackend:
    """Backend that decodes the first QR code found in an image file."""

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)

    def start_session(self) -> ScanSession:
        session = ScanSession()
        session.resolve(self._read())
        return session

    def _read(self) -> ScanEvent:
        try:
            import cv2  # type: ignore
            from pyzbar import pyzbar  # type: ignore
        except ImportError:
            return Failed(CaptureError.DEPENDENCIES_MISSING)

        image = cv2.imread(str(self._path))
        if image is None:
            logger.warning("scanner: cannot read image %s", self._path)
            return Failed(CaptureError.INVALID_DEVICE_INPUT)

        event = decode_frame(image, cv2, pyzbar)
        if event is None:
            logger.warning("scanner: no QR code found in %s", self._path)
            return Failed(CaptureError.INVALID_SCANNED_VALUE)
        return event


def payload_to_text(data: bytes) -> Optional[str]:
    """Return the QR payload as text, or ``None`` when it is not UTF-8."""

    try:
        return bytes(data).decode("utf-8")
    except UnicodeDecodeError:
        return None


def decode_frame(frame, cv2, pyzbar) -> Optional[ScanEvent]:
    """Look for a QR code in ``frame``.

    Returns ``None`` when nothing was found, :class:`Decoded` for a readable
    payload and ``Failed(INVALID_SCANNED_VALUE)`` when a symbol was found but
    its bytes are not text. Only the QR symbology is considered.
    """

    gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    candidates = (
        gray,
        cv2.GaussianBlur(gray, (5, 5), 0),
        cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)[1],
    )

    for processed in candidates:
        symbols = pyzbar.decode(processed, symbols=[pyzbar.ZBarSymbol.QRCODE])
        if not symbols:
            continue
        text = payload_to_text(symbols[0].data)
        if text is None:
            return Failed(CaptureError.INVALID_SCANNED_VALUE)
        return Decoded(text)
    return None


def resize_frame(frame, cv2, config: AppConfig):
    """Scale ``frame`` down so its longest side fits ``config.max_frame_size``."""

    max_dim = max(frame.shape[:2])
    limit = config.max_frame_size
    if max_dim <= limit:
        return frame

    scale = limit / float(max_dim)
    new_size = (int(frame.shape[1] * scale), int(frame.shape[0] * scale))
    return cv2.resize(frame, new_size)


def open_capture(cv2, config: CameraConfig):
    """Open the first camera that responds, or return ``None``."""

    tried: List[str] = []
    for backend in config.get_backends(cv2):
        for index in config.get_indices():
            try:
                capture = cv2.VideoCapture(index, backend)
            except TypeError:
                capture = cv2.VideoCapture(index)
            if not capture or not capture.isOpened():
                if capture:
                    capture.release()
                tried.append(f"{backend}:{index}")
                continue

            capture.set(cv2.CAP_PROP_FRAME_WIDTH, config.width)
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, config.height)
            logger.debug("scanner: opened camera %s on backend %s", index, backend)
            return capture

    logger.warning("scanner: no camera available (tried %s)", ", ".join(tried))
    return None


__all__ = [
    "CaptureError",
    "Decoded",
    "Failed",
    "ImageFileScanBackend",
    "ScanBackend",
    "ScanEvent",
    "ScanSession",
    "StaticScanBackend",
    "decode_frame",
    "open_capture",
    "payload_to_text",
    "resize_frame",
]
