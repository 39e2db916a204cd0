"""Run the check-in scanner GUI."""
from __future__ import annotations

import sys

from .app import run


def main() -> int:
    return run(sys.argv[1:])


if __name__ == "__main__":  # pragma: no cover - manual launch only
    raise SystemExit(main())
