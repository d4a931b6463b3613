"""Reconstruction of stroked straight segments as bordered boxes."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field

from .primitives import LineBox
from .transform import AffineTransform, IDENTITY

__all__ = ["Orientation", "PathAccumulator", "PathEntity"]

_AXIS_TOLERANCE = 0.5


class Orientation(str, enum.Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    DIAGONAL = "diagonal"


@dataclass(slots=True, frozen=True)
class PathEntity:
    """One straight segment from ``(x1, y1)`` to ``(x2, y2)`` in page space."""

    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def orientation(self) -> Orientation:
        if abs(self.x2 - self.x1) < _AXIS_TOLERANCE:
            return Orientation.VERTICAL
        if abs(self.y2 - self.y1) < _AXIS_TOLERANCE:
            return Orientation.HORIZONTAL
        return Orientation.DIAGONAL

    @property
    def length(self) -> float:
        return math.hypot(self.x2 - self.x1, self.y2 - self.y1)

    @property
    def width(self) -> float:
        orientation = self.orientation
        if orientation is Orientation.VERTICAL:
            return 0.0
        if orientation is Orientation.HORIZONTAL:
            return abs(self.x2 - self.x1)
        return self.length

    @property
    def height(self) -> float:
        if self.orientation is Orientation.VERTICAL:
            return abs(self.y2 - self.y1)
        return 0.0

    @property
    def left(self) -> float:
        if self.orientation is Orientation.DIAGONAL:
            return (self.x1 + self.x2) / 2 - self.width / 2
        return min(self.x1, self.x2)

    @property
    def top(self) -> float:
        if self.orientation is Orientation.DIAGONAL:
            return (self.y1 + self.y2) / 2 - self.height / 2
        return min(self.y1, self.y2)

    @property
    def angle_degrees(self) -> float:
        if self.orientation is not Orientation.DIAGONAL:
            return 0.0
        return math.degrees(math.atan2(self.y2 - self.y1, self.x2 - self.x1))

    @property
    def border_side(self) -> str:
        return "border-right" if self.orientation is Orientation.VERTICAL else "border-bottom"

    def to_box(self, stroke_width: float) -> LineBox:
        return LineBox(
            left=self.left,
            top=self.top,
            width=self.width,
            height=self.height,
            border_side=self.border_side,
            stroke_width=stroke_width,
            angle=self.angle_degrees,
        )


@dataclass(slots=True)
class PathAccumulator:
    """Pen position and buffered segments of the path under construction.

    Points are mapped through ``transform`` when recorded so buffered
    segments are already in page space.
    """

    min_stroke_width: float = 0.5
    transform: AffineTransform = IDENTITY
    segments: list[PathEntity] = field(default_factory=list)
    _pen: tuple[float, float] | None = None
    _subpath_start: tuple[float, float] | None = None

    def reset(self, transform: AffineTransform | None = None) -> None:
        self.segments.clear()
        self._pen = None
        self._subpath_start = None
        if transform is not None:
            self.transform = transform

    @property
    def pen(self) -> tuple[float, float] | None:
        return self._pen

    def move_to(self, x: float, y: float, transform: AffineTransform | None = None) -> None:
        point = (transform or self.transform).apply(x, y)
        self._pen = point
        self._subpath_start = point

    def line_to(self, x: float, y: float, transform: AffineTransform | None = None) -> None:
        point = (transform or self.transform).apply(x, y)
        if self._pen is None:
            # A segment needs a current point; treat a dangling line-to as a move.
            self._pen = point
            self._subpath_start = point
            return
        self.segments.append(PathEntity(self._pen[0], self._pen[1], point[0], point[1]))
        self._pen = point

    def curve_to(self, x: float, y: float, transform: AffineTransform | None = None) -> None:
        """Curves are not rendered; the pen moves to the curve's end point."""

        point = (transform or self.transform).apply(x, y)
        if self._subpath_start is None:
            self._subpath_start = point
        self._pen = point

    def rectangle(
        self, x: float, y: float, width: float, height: float, transform: AffineTransform | None = None
    ) -> None:
        self.move_to(x, y, transform)
        self.line_to(x + width, y, transform)
        self.line_to(x + width, y + height, transform)
        self.line_to(x, y + height, transform)
        self.close()

    def close(self) -> None:
        """Append the closing segment back to the subpath start, if any."""

        if self._pen is None or self._subpath_start is None:
            return
        if self._pen != self._subpath_start:
            start = self._subpath_start
            self.segments.append(PathEntity(self._pen[0], self._pen[1], start[0], start[1]))
        self._pen = self._subpath_start

    def stroke(self, line_width: float) -> list[LineBox]:
        """Emit one box per buffered segment and clear the buffer."""

        width = max(line_width, self.min_stroke_width)
        boxes = [segment.to_box(width) for segment in self.segments]
        self.segments.clear()
        return boxes

    def close_and_stroke(self, line_width: float) -> list[LineBox]:
        self.close()
        return self.stroke(line_width)

    def discard(self) -> None:
        """Drop buffered segments; fills are not rendered as paths."""

        self.segments.clear()
