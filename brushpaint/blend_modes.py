"""Blend modes a layer can be composited with."""

from __future__ import annotations

from enum import Enum


_LABELS = {
    "Normal": "Normal",
    "HardLight": "Hard Light",
    "SoftLight": "Soft Light",
}


class BrushBlendMode(Enum):
    """A layer blend mode; the value is its name in saved projects."""

    NORMAL = "Normal"
    HARD_LIGHT = "HardLight"
    SOFT_LIGHT = "SoftLight"

    @property
    def label(self) -> str:
        """The human readable name of the mode."""
        return _LABELS[self.value]

    def __str__(self) -> str:
        return self.label

    @classmethod
    def variant_names(cls) -> list[str]:
        """Labels of every mode, in declaration order."""
        return [mode.label for mode in cls]

    @classmethod
    def from_index(cls, index: int) -> BrushBlendMode:
        """Return the mode at a position of :meth:`variant_names`."""
        modes = list(cls)
        if not 0 <= index < len(modes):
            raise ValueError(f"no blend mode at index {index}")
        return modes[index]