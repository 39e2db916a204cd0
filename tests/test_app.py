from __future__ import annotations

import pytest

pytest.importorskip("PyQt5.QtWidgets")

from checkin_scanner.app import parse_args  # noqa: E402


def test_parse_args_defaults():
    args = parse_args([])

    assert args.config is None
    assert args.log_level == "INFO"
    assert args.demo is None


def test_parse_args_demo_codes():
    args = parse_args(["--demo", "ABC123", "ZZZ999", "--config", "Config.plist"])

    assert args.demo == ["ABC123", "ZZZ999"]
    assert args.config == "Config.plist"
