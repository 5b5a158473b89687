"""Axis-aligned integer rectangles used to track dirty regions."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Rect:
    """A rectangle given by its top-left corner and its size."""

    x: int
    y: int
    w: int
    h: int

    def union(self, other: Rect) -> Rect:
        """Return the smallest rectangle covering both rectangles."""
        x1 = min(self.x, other.x)
        y1 = min(self.y, other.y)
        x2 = max(self.x + self.w, other.x + other.w)
        y2 = max(self.y + self.h, other.y + other.h)
        return Rect(x1, y1, x2 - x1, y2 - y1)

    def extend_pt(self, x: int, y: int) -> Rect:
        """Return the rectangle grown to include the pixel at (x, y)."""
        x1 = min(self.x, x)
        y1 = min(self.y, y)
        x2 = max(self.x + self.w, x + 1)
        y2 = max(self.y + self.h, y + 1)
        return Rect(x1, y1, x2 - x1, y2 - y1)