"""PyQt5 user interface for the check-in scanner."""
from __future__ import annotations

import argparse
import logging
from typing import Callable, List, Optional, Sequence

from PyQt5.QtCore import QObject, QThread, QTimer, Qt, pyqtSignal
from PyQt5.QtGui import QImage, QPixmap
from PyQt5.QtWidgets import (
    QApplication,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from .config import AppConfig, CameraConfig, StyleConfig, load_endpoint
from .controller import CheckInController
from .icon import create_icon
from .logging_config import configure_logging
from .scanner import (
    CaptureError,
    Failed,
    ScanEvent,
    ScanSession,
    StaticScanBackend,
    decode_frame,
    open_capture,
    resize_frame,
)
from .state import AppState, Phase, VerificationOutcome
from .verification import VerificationClient

logger = logging.getLogger(__name__)


class SignalBridge(QObject):  # pragma: no cover - requires Qt event loop
    """Runs callbacks from worker threads on the GUI thread."""

    _invoke = pyqtSignal(object)

    def __init__(self) -> None:
        super().__init__()
        self._invoke.connect(self._run, Qt.QueuedConnection)

    def post(self, callback: Callable[[], None]) -> None:
        self._invoke.emit(callback)

    def _run(self, callback: Callable[[], None]) -> None:
        callback()


def schedule(delay: float, callback: Callable[[], None]) -> None:  # pragma: no cover - requires Qt event loop
    QTimer.singleShot(int(delay * 1000), callback)


class CameraWorker(QObject):  # pragma: no cover - requires Qt event loop
    """Background worker that reads frames until one QR code is decoded."""

    frame_captured = pyqtSignal(object)
    result = pyqtSignal(object)
    finished = pyqtSignal()

    def __init__(self, config: AppConfig, camera_config: CameraConfig):
        super().__init__()
        self._config = config
        self._camera_config = camera_config
        self._running = False

    def stop(self) -> None:
        self._running = False

    def run(self) -> None:
        try:
            import cv2  # type: ignore
            from pyzbar import pyzbar  # type: ignore
        except ImportError:
            logger.error("camera: OpenCV or pyzbar is not installed")
            self.result.emit(Failed(CaptureError.DEPENDENCIES_MISSING))
            self.finished.emit()
            return

        capture = open_capture(cv2, self._camera_config)
        if capture is None:
            self.result.emit(Failed(CaptureError.NO_DEVICE))
            self.finished.emit()
            return

        self._running = True
        frame_skip = max(1, self._config.camera_frame_skip)
        frame_counter = 0

        try:
            while self._running:
                success, frame = capture.read()
                if not success or frame is None:
                    self.result.emit(Failed(CaptureError.FEED_UNAVAILABLE))
                    break

                frame = resize_frame(frame, cv2, self._config)
                self.frame_captured.emit(frame)

                frame_counter += 1
                if frame_counter % frame_skip:
                    continue

                event = decode_frame(frame, cv2, pyzbar)
                if event is not None:
                    self.result.emit(event)
                    break
        finally:
            self._running = False
            capture.release()
            self.finished.emit()


class CameraScanBackend(QObject):  # pragma: no cover - requires Qt event loop
    """Scan backend that runs :class:`CameraWorker` on its own thread."""

    frame_captured = pyqtSignal(object)

    def __init__(self, config: AppConfig, camera_config: CameraConfig):
        super().__init__()
        self._config = config
        self._camera_config = camera_config
        self._thread: Optional[QThread] = None
        self._worker: Optional[CameraWorker] = None

    def start_session(self) -> ScanSession:
        self.stop()

        worker = CameraWorker(self._config, self._camera_config)
        thread = QThread()
        worker.moveToThread(thread)
        session = ScanSession(on_close=self.stop)

        thread.started.connect(worker.run)
        worker.frame_captured.connect(self.frame_captured)
        worker.result.connect(self._make_resolver(session))
        worker.finished.connect(thread.quit)

        self._thread = thread
        self._worker = worker
        thread.start()
        return session

    @staticmethod
    def _make_resolver(session: ScanSession) -> Callable[[ScanEvent], None]:
        def resolve(event: ScanEvent) -> None:
            session.resolve(event)

        return resolve

    def stop(self) -> None:
        if self._worker:
            self._worker.stop()
        if self._thread and self._thread.isRunning():
            self._thread.quit()
            self._thread.wait(1500)
        self._thread = None
        self._worker = None


class CheckInWindow(QMainWindow):  # pragma: no cover - requires Qt event loop
    def __init__(
        self,
        controller: CheckInController,
        config: AppConfig,
        style: StyleConfig,
        camera: Optional[CameraScanBackend] = None,
    ) -> None:
        super().__init__()
        self._controller = controller
        self._config = config
        self._style = style
        self._camera = camera
        self._cv2_module = None

        self._setup_ui()
        controller.subscribe(self._render)
        if camera is not None:
            camera.frame_captured.connect(self._on_camera_frame)
        self._render(controller.state)

    def _setup_ui(self) -> None:
        self.setWindowTitle(f"{self._config.app_name} v{self._config.app_version}")
        self.setMinimumSize(480, 640)
        try:
            self.setWindowIcon(create_icon())
        except RuntimeError:
            pass
        self._apply_stylesheet()

        self._stack = QStackedWidget()
        self._ready_page = self._create_ready_page()
        self._scanning_page = self._create_scanning_page()
        self._loading_page = self._create_loading_page()
        self._result_page = self._create_result_page()
        for page in (self._ready_page, self._scanning_page, self._loading_page, self._result_page):
            self._stack.addWidget(page)
        self.setCentralWidget(self._stack)

    def _apply_stylesheet(self) -> None:
        style = self._style
        self.setStyleSheet(
            f"""
            QMainWindow {{ background: {style.background}; }}
            QWidget {{ font-family: {style.font_family}; }}
            QPushButton#ScanButton {{ background: {style.button_bg}; color: {style.button_fg}; font-size: {style.button_font_size}px; font-weight: bold; padding: 16px; border: none; border-radius: 12px; }}
            #SubtleLabel {{ color: {style.subtle}; font-size: 20px; }}
            #ResultLabel {{ font-size: {style.result_font_size}px; }}
            #previewLabel {{ background: black; }}
            """
        )

    def _create_ready_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        layout.setAlignment(Qt.AlignCenter)

        self._scan_button = QPushButton("Scan QR Code")
        self._scan_button.setObjectName("ScanButton")
        self._scan_button.setMaximumWidth(self._style.button_max_width)
        self._scan_button.clicked.connect(self._controller.request_scan)

        layout.addWidget(self._scan_button)
        return page

    def _create_scanning_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)

        self._preview = QLabel("Starting camera…")
        self._preview.setObjectName("previewLabel")
        self._preview.setAlignment(Qt.AlignCenter)
        self._preview.setMinimumSize(320, 240)

        row = QHBoxLayout()
        cancel = QPushButton("Cancel")
        cancel.clicked.connect(self._controller.cancel_scan)
        row.addStretch()
        row.addWidget(cancel)
        row.addStretch()

        layout.addWidget(self._preview, 1)
        layout.addLayout(row)
        return page

    def _create_loading_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        layout.setAlignment(Qt.AlignCenter)
        label = QLabel("Verifying…")
        label.setObjectName("SubtleLabel")
        label.setAlignment(Qt.AlignCenter)
        layout.addWidget(label)
        return page

    def _create_result_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        layout.setAlignment(Qt.AlignCenter)
        self._result_label = QLabel()
        self._result_label.setObjectName("ResultLabel")
        self._result_label.setAlignment(Qt.AlignCenter)
        layout.addWidget(self._result_label)
        return page

    def _outcome_colour(self, outcome: VerificationOutcome) -> str:
        return {
            VerificationOutcome.SUCCESS: self._style.success,
            VerificationOutcome.PRIORITY: self._style.priority,
            VerificationOutcome.FAILURE: self._style.failure,
        }[outcome]

    def _render(self, state: AppState) -> None:
        if state.phase is Phase.READY:
            self._stack.setCurrentWidget(self._ready_page)
        elif state.phase is Phase.SCANNING:
            self._preview.clear()
            self._preview.setText("Starting camera…")
            self._stack.setCurrentWidget(self._scanning_page)
        elif state.phase is Phase.LOADING:
            self._stack.setCurrentWidget(self._loading_page)
        else:
            assert state.outcome is not None
            self._result_label.setText(state.outcome.symbol)
            self._result_label.setStyleSheet(f"color: {self._outcome_colour(state.outcome)};")
            self._stack.setCurrentWidget(self._result_page)

    def _on_camera_frame(self, frame) -> None:
        if self._controller.state.phase is not Phase.SCANNING:
            return
        if self._cv2_module is None:
            import cv2  # type: ignore

            self._cv2_module = cv2

        rgb = self._cv2_module.cvtColor(frame, self._cv2_module.COLOR_BGR2RGB)
        height, width, channel = rgb.shape
        image = QImage(rgb.data, width, height, channel * width, QImage.Format_RGB888)
        pixmap = QPixmap.fromImage(image.copy())
        target_size = self._preview.size()
        if target_size.width() and target_size.height():
            pixmap = pixmap.scaled(target_size, Qt.KeepAspectRatio, Qt.SmoothTransformation)
        self._preview.setPixmap(pixmap)

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self._controller.cancel_scan()
        if self._camera is not None:
            self._camera.stop()
        event.accept()


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="checkin-scanner", description="Conference check-in QR scanner")
    parser.add_argument("--config", help="property list holding the verification endpoint")
    parser.add_argument("--log-level", default="INFO", help="logging level (default: INFO)")
    parser.add_argument("--log-dir", help="directory for rotating log files")
    parser.add_argument(
        "--demo",
        nargs="+",
        metavar="CODE",
        help="replay these codes instead of using the camera",
    )
    return parser.parse_args(argv)


def run(argv: Optional[Sequence[str]] = None) -> int:  # pragma: no cover - requires Qt event loop
    args = parse_args(argv)
    configure_logging(args.log_level.upper(), args.log_dir)

    config = AppConfig()
    style = StyleConfig()
    endpoint = load_endpoint(args.config, config.config_key)
    if endpoint is None:
        logger.error("app: verification endpoint unavailable, every scan will be rejected")

    app = QApplication.instance() or QApplication([])
    app.setApplicationName("Check-in Scanner")

    bridge = SignalBridge()
    client = VerificationClient(endpoint, timeout=config.request_timeout_seconds)

    camera: Optional[CameraScanBackend] = None
    if args.demo:
        codes: List[str] = list(args.demo)
        scanner = StaticScanBackend(codes)
    else:
        camera = CameraScanBackend(config, CameraConfig())
        scanner = camera

    controller = CheckInController(
        scanner,
        client,
        schedule,
        reset_delay=config.result_display_seconds,
        post=bridge.post,
    )
    window = CheckInWindow(controller, config, style, camera)
    window.show()

    try:
        return app.exec_()
    finally:
        client.close()


__all__ = ["CameraScanBackend", "CheckInWindow", "parse_args", "run"]
