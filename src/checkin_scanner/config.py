"""Configuration data structures for the check-in scanner."""
from __future__ import annotations

import logging
import plistlib
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "resources" / "Config.plist"
CONFIG_KEY = "GAS_API_URL"


@dataclass(slots=True)
class AppConfig:
    """Static configuration options used across the application."""

    app_name: str = "CheckInScanner"
    app_version: str = "1.0"
    config_key: str = CONFIG_KEY
    result_display_seconds: float = 3.0
    request_timeout_seconds: float = 15.0
    camera_frame_skip: int = 3
    max_frame_size: int = 1_280


@dataclass(slots=True)
class CameraConfig:
    """Runtime camera configuration used by the camera worker."""

    width: int = 640
    height: int = 480

    def get_backends(self, cv2) -> List[int]:
        """Return the OpenCV capture backends to try, most specific first."""

        names = ("CAP_V4L2", "CAP_AVFOUNDATION", "CAP_DSHOW", "CAP_MSMF")
        backends = [getattr(cv2, name) for name in names if hasattr(cv2, name)]
        backends.append(getattr(cv2, "CAP_ANY", 0))
        return backends

    def get_indices(self) -> List[int]:
        """Return candidate camera indices."""

        return [0, 1, 2]


@dataclass(slots=True)
class StyleConfig:
    """Colours and sizes for the four screens."""

    background: str = "#FFFFFF"
    button_bg: str = "#007AFF"
    button_fg: str = "#FFFFFF"
    success: str = "#007AFF"
    priority: str = "#D9A621"
    failure: str = "#FF3B30"
    subtle: str = "#8E8E93"
    font_family: str = "Helvetica Neue, Arial, sans-serif"
    button_font_size: int = 22
    result_font_size: int = 200
    button_max_width: int = 500


def load_endpoint(path: Optional[Path | str] = None, key: str = CONFIG_KEY) -> Optional[str]:
    """Return the verification endpoint URL from the bundled property list.

    A missing or unreadable file, a missing key or a value that is not an
    http(s) URL is logged and reported as ``None``. The app keeps running in
    that case and every verification resolves as a failure.
    """

    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH

    try:
        with config_path.open("rb") as handle:
            data = plistlib.load(handle)
    except FileNotFoundError:
        logger.warning("config: %s not found", config_path)
        return None
    except (OSError, plistlib.InvalidFileException, ValueError) as exc:
        logger.warning("config: failed to read %s - %s", config_path, exc)
        return None

    value = data.get(key) if isinstance(data, dict) else None
    if not isinstance(value, str) or not value.strip():
        logger.warning("config: %s is missing from %s", key, config_path)
        return None

    url = value.strip()
    if urlparse(url).scheme not in ("http", "https"):
        logger.warning("config: %s is not an http(s) URL: %r", key, url)
        return None

    return url


__all__ = ["AppConfig", "CameraConfig", "CONFIG_KEY", "DEFAULT_CONFIG_PATH", "StyleConfig", "load_endpoint"]
