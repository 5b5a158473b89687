"""Current tool, colours and brush settings of an editor."""

from __future__ import annotations

from dataclasses import dataclass

from brushpaint.tools import BrushTool

HsvColor = tuple[float, float, float]


@dataclass
class BrushEditorState:
    """Settings shared by the canvases of an editor; colours are HSV."""

    tool: BrushTool = BrushTool.BRUSH
    erase_mode: bool = False
    primary_color: HsvColor = (0.0, 0.0, 0.0)
    secondary_color: HsvColor = (0.0, 0.0, 100.0)
    brush_opacity: float = 1.0
    brush_size: int = 40

    def swap_colors(self) -> None:
        """Exchange the primary and secondary colours."""
        self.primary_color, self.secondary_color = self.secondary_color, self.primary_color

    def set_color(self, primary: HsvColor) -> None:
        """Replace the primary colour."""
        h, s, v = primary
        self.primary_color = (float(h), float(s), float(v))

    def set_tool(self, tool: str) -> None:
        """Select a tool by its action name; unknown names are ignored."""
        try:
            self.tool = BrushTool.from_name(tool)
        except ValueError:
            pass