from __future__ import annotations

import sys
import types

import pytest

from checkin_scanner.config import AppConfig, CameraConfig
from checkin_scanner.scanner import (
    CaptureError,
    Decoded,
    Failed,
    ImageFileScanBackend,
    ScanSession,
    StaticScanBackend,
    decode_frame,
    open_capture,
    payload_to_text,
    resize_frame,
)


class FakeFrame:
    def __init__(self, height: int, width: int):
        self.shape = (height, width, 3)


def make_cv2(**overrides):
    calls = []

    def cvt_color(frame, _code):
        return ("gray", frame)

    def gaussian_blur(image, _size, _sigma):
        return ("blur", image)

    def threshold(image, *_args):
        return 0, ("otsu", image)

    def resize(frame, size):
        calls.append(("resize", size))
        return FakeFrame(size[1], size[0])

    module = types.SimpleNamespace(
        COLOR_BGR2GRAY=6,
        THRESH_BINARY=0,
        THRESH_OTSU=8,
        CAP_ANY=0,
        CAP_PROP_FRAME_WIDTH=3,
        CAP_PROP_FRAME_HEIGHT=4,
        cvtColor=cvt_color,
        GaussianBlur=gaussian_blur,
        threshold=threshold,
        resize=resize,
        calls=calls,
    )
    for name, value in overrides.items():
        setattr(module, name, value)
    return module


def make_pyzbar(results):
    """``results`` maps the preprocessing tag to the symbols found for it."""

    seen = []

    def decode(image, symbols=None):
        seen.append((image[0], symbols))
        return results.get(image[0], [])

    return types.SimpleNamespace(
        ZBarSymbol=types.SimpleNamespace(QRCODE="QRCODE"),
        decode=decode,
        seen=seen,
    )


def symbol(data: bytes):
    return types.SimpleNamespace(data=data)


def test_session_resolves_only_once():
    session = ScanSession()

    assert session.resolve(Decoded("ABC123"))
    assert not session.resolve(Failed(CaptureError.FEED_UNAVAILABLE))
    assert session.result.result() == Decoded("ABC123")


def test_closing_unresolved_session_cancels_it():
    stops = []
    session = ScanSession(on_close=lambda: stops.append(True))

    session.close()
    session.close()

    assert session.closed
    assert session.result.result() == Failed(CaptureError.CANCELLED)
    assert stops == [True]


def test_static_backend_replays_codes_then_fails():
    backend = StaticScanBackend(["ABC123", "ZZZ999"])

    events = [backend.start_session().result.result() for _ in range(3)]

    assert events == [
        Decoded("ABC123"),
        Decoded("ZZZ999"),
        Failed(CaptureError.NO_DEVICE),
    ]


def test_decode_frame_restricts_to_qr_symbology():
    cv2 = make_cv2()
    pyzbar = make_pyzbar({"gray": [symbol(b"ABC123")]})

    assert decode_frame(object(), cv2, pyzbar) == Decoded("ABC123")
    assert pyzbar.seen == [("gray", ["QRCODE"])]


def test_decode_frame_falls_back_to_thresholded_image():
    cv2 = make_cv2()
    pyzbar = make_pyzbar({"otsu": [symbol("受付-42".encode("utf-8"))]})

    assert decode_frame(object(), cv2, pyzbar) == Decoded("受付-42")
    assert [tag for tag, _ in pyzbar.seen] == ["gray", "blur", "otsu"]


def test_decode_frame_returns_none_when_nothing_found():
    assert decode_frame(object(), make_cv2(), make_pyzbar({})) is None


def test_decode_frame_rejects_binary_payload():
    pyzbar = make_pyzbar({"gray": [symbol(b"\xff\xfe\x00")]})

    assert decode_frame(object(), make_cv2(), pyzbar) == Failed(CaptureError.INVALID_SCANNED_VALUE)


def test_payload_to_text():
    assert payload_to_text(b"ABC123") == "ABC123"
    assert payload_to_text(b"\xff") is None


def test_resize_frame_keeps_small_frames():
    cv2 = make_cv2()
    frame = FakeFrame(480, 640)

    assert resize_frame(frame, cv2, AppConfig(max_frame_size=1_280)) is frame
    assert cv2.calls == []


def test_resize_frame_scales_longest_side():
    cv2 = make_cv2()

    resized = resize_frame(FakeFrame(1_080, 1_920), cv2, AppConfig(max_frame_size=960))

    assert resized.shape[:2] == (540, 960)


class FakeCapture:
    def __init__(self, opened: bool):
        self._opened = opened
        self.released = False
        self.props = {}

    def isOpened(self):
        return self._opened

    def release(self):
        self.released = True

    def set(self, prop, value):
        self.props[prop] = value


def test_open_capture_returns_first_working_camera():
    captures = {}

    def video_capture(index, backend=None):
        captures[index] = FakeCapture(opened=index == 1)
        return captures[index]

    cv2 = make_cv2(VideoCapture=video_capture)

    capture = open_capture(cv2, CameraConfig(width=320, height=240))

    assert capture is captures[1]
    assert captures[0].released
    assert capture.props == {3: 320, 4: 240}


def test_open_capture_without_camera_returns_none():
    cv2 = make_cv2(VideoCapture=lambda index, backend=None: FakeCapture(opened=False))

    assert open_capture(cv2, CameraConfig()) is None


def test_camera_backends_end_with_any():
    cv2 = types.SimpleNamespace(CAP_DSHOW=700, CAP_ANY=0)

    assert CameraConfig().get_backends(cv2) == [700, 0]


@pytest.fixture()
def fake_decoder_modules(monkeypatch):
    def install(image, results):
        cv2 = make_cv2(imread=lambda _path: image)
        pyzbar = make_pyzbar(results)
        package = types.ModuleType("pyzbar")
        package.pyzbar = pyzbar
        monkeypatch.setitem(sys.modules, "cv2", cv2)
        monkeypatch.setitem(sys.modules, "pyzbar", package)
        monkeypatch.setitem(sys.modules, "pyzbar.pyzbar", pyzbar)

    return install


def test_image_file_backend_decodes_code(fake_decoder_modules, tmp_path):
    fake_decoder_modules(object(), {"gray": [symbol(b"ABC123")]})

    session = ImageFileScanBackend(tmp_path / "badge.png").start_session()

    assert session.result.result() == Decoded("ABC123")


def test_image_file_backend_reports_unreadable_image(fake_decoder_modules, tmp_path):
    fake_decoder_modules(None, {})

    session = ImageFileScanBackend(tmp_path / "missing.png").start_session()

    assert session.result.result() == Failed(CaptureError.INVALID_DEVICE_INPUT)


def test_image_file_backend_reports_missing_code(fake_decoder_modules, tmp_path):
    fake_decoder_modules(object(), {})

    session = ImageFileScanBackend(tmp_path / "blank.png").start_session()

    assert session.result.result() == Failed(CaptureError.INVALID_SCANNED_VALUE)
