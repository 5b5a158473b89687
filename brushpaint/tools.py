"""Tools available in the editor."""

from __future__ import annotations

from enum import Enum


class BrushTool(Enum):
    """An editor tool; the value is its action name."""

    MOVE = "move"
    BRUSH = "brush"
    FILL = "fill"
    BOX = "box"
    ELLIPSE = "ellipse"
    SELECT_BOX = "box_select"
    SELECT_LASSO = "lasso_select"
    SELECT_WAND = "wand_select"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_name(cls, name: str) -> BrushTool:
        """Return the tool with the given action name."""
        for tool in cls:
            if tool.value == name:
                return tool
        raise ValueError(f"unknown tool: {name!r}")