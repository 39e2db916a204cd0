"""Application icon helpers."""
from __future__ import annotations


def create_icon(size: int = 64):  # pragma: no cover - requires PyQt at runtime
    """Draw a QR viewfinder as a :class:`~PyQt5.QtGui.QIcon`.

    PyQt5 is imported lazily so that importing this module does not need a
    graphical backend.
    """

    try:
        from PyQt5.QtCore import Qt
        from PyQt5.QtGui import QColor, QIcon, QPainter, QPen, QPixmap
    except ImportError as exc:  # pragma: no cover - depends on environment
        raise RuntimeError("PyQt5 is required to generate the application icon") from exc

    pixmap = QPixmap(size, size)
    pixmap.fill(Qt.transparent)

    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing)
    painter.setPen(QPen(QColor("#007AFF"), max(2, size // 12), Qt.SolidLine, Qt.RoundCap))

    margin = size // 8
    arm = size // 4
    far = size - margin
    for x, y, dx, dy in (
        (margin, margin, 1, 1),
        (far, margin, -1, 1),
        (margin, far, 1, -1),
        (far, far, -1, -1),
    ):
        painter.drawLine(x, y, x + dx * arm, y)
        painter.drawLine(x, y, x, y + dy * arm)

    inner = size // 3
    painter.fillRect(inner, inner, size - 2 * inner, size - 2 * inner, QColor("#007AFF"))
    painter.end()

    return QIcon(pixmap)


__all__ = ["create_icon"]
