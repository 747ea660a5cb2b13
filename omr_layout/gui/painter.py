"""Replay render-pipeline commands with QPainter."""

from __future__ import annotations

from typing import Iterable

from PIL.ImageQt import ImageQt
from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import QBrush, QColor, QFont, QFontMetricsF, QImage, QPainter, QPen, QPolygonF

from omr_layout.core.render_pipeline import (
    Circle,
    Command,
    ImageLayer,
    Line,
    Polyline,
    Rect,
    Text,
)


def _color(rgba) -> QColor:
    return QColor(*rgba)


def _pen(rgba, width, dash=None) -> QPen:
    pen = QPen(_color(rgba))
    pen.setWidthF(float(width))
    if dash:
        # Qt dash patterns are in units of the pen width.
        pen.setDashPattern([max(0.1, d / max(1.0, float(width))) for d in dash])
    return pen


def paint_commands(painter: QPainter, commands: Iterable[Command]) -> None:
    painter.setRenderHint(QPainter.Antialiasing)
    for command in commands:
        painter.save()
        if isinstance(command, Rect):
            painter.setBrush(QBrush(_color(command.fill)) if command.fill else Qt.NoBrush)
            painter.setPen(_pen(command.outline, command.line_width, command.dash) if command.outline else Qt.NoPen)
            painter.drawRect(QRectF(command.x, command.y, command.width, command.height))
        elif isinstance(command, Circle):
            painter.setBrush(QBrush(_color(command.fill)) if command.fill else Qt.NoBrush)
            painter.setPen(_pen(command.outline, command.line_width) if command.outline else Qt.NoPen)
            painter.drawEllipse(QPointF(command.cx, command.cy), command.radius, command.radius)
        elif isinstance(command, Line):
            painter.setPen(_pen(command.color, command.line_width, command.dash))
            painter.drawLine(QPointF(command.x0, command.y0), QPointF(command.x1, command.y1))
        elif isinstance(command, Polyline):
            painter.setPen(_pen(command.color, command.line_width))
            painter.drawPolyline(QPolygonF([QPointF(x, y) for x, y in command.points]))
        elif isinstance(command, Text):
            font = QFont("Arial")
            font.setPixelSize(command.size)
            font.setBold(True)
            painter.setFont(font)
            painter.setPen(_color(command.color))
            width = QFontMetricsF(font).horizontalAdvance(command.text)
            x = command.x
            if command.align == "right":
                x -= width
            elif command.align == "center":
                x -= width / 2
            painter.drawText(QPointF(x, command.y), command.text)
        elif isinstance(command, ImageLayer):
            painter.setOpacity(command.alpha)
            qimage = QImage(ImageQt(command.image.convert("RGBA")))
            painter.drawImage(QRectF(command.x, command.y, command.width, command.height), qimage)
        painter.restore()
