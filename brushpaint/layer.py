"""Layers of a project: pixel, group, fill and filter layers."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Sequence, Union

import numpy as np

from brushpaint.blend_modes import BrushBlendMode
from brushpaint.layer_types import (
    FillLayerData,
    FillLayerParameters,
    FilterData,
    GroupData,
    PixelData,
)
from brushpaint.rect import Rect

_F32_EPSILON = float(np.finfo(np.float32).eps)
_PIXEL_COLOR_SPACE = "OkLab"

Rgba = tuple[float, float, float, float]


def _field(data: dict[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field {key!r}") from None


def _bool_field(data: dict[str, Any], key: str) -> bool:
    value = _field(data, key)
    if not isinstance(value, bool):
        raise ValueError(f"field {key!r} must be a boolean, got {value!r}")
    return value


def _float_field(data: dict[str, Any], key: str) -> float:
    value = _field(data, key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"field {key!r} must be a number, got {value!r}")
    return float(value)


def _int_field(data: dict[str, Any], key: str) -> int:
    value = _field(data, key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {key!r} must be an integer, got {value!r}")
    return value


def _str_field(data: dict[str, Any], key: str) -> str:
    value = _field(data, key)
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string, got {value!r}")
    return value


@dataclass
class NodeLayerParameters:
    """Compositing settings of pixel and group layers."""

    opacity: float = 1.0
    visible: bool = True
    lock: bool = False
    alpha_clip: bool = False
    alpha_lock: bool = False
    passthrough: bool = False
    blend_mode: BrushBlendMode = BrushBlendMode.NORMAL

    def to_dict(self) -> dict[str, Any]:
        """Return the form stored in project files."""
        return {
            "opacity": self.opacity,
            "visible": self.visible,
            "lock": self.lock,
            "alpha_clip": self.alpha_clip,
            "alpha_lock": self.alpha_lock,
            "passthrough": self.passthrough,
            "blend_mode": self.blend_mode.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NodeLayerParameters:
        """Build parameters from their stored form."""
        return cls(
            opacity=_float_field(data, "opacity"),
            visible=_bool_field(data, "visible"),
            lock=_bool_field(data, "lock"),
            alpha_clip=_bool_field(data, "alpha_clip"),
            alpha_lock=_bool_field(data, "alpha_lock"),
            passthrough=_bool_field(data, "passthrough"),
            blend_mode=BrushBlendMode(_field(data, "blend_mode")),
        )


@dataclass
class FilterLayerParameters:
    """Settings of a filter layer."""

    visible: bool = True
    lock: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Return the form stored in project files."""
        return {"visible": self.visible, "lock": self.lock}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FilterLayerParameters:
        """Build parameters from their stored form."""
        return cls(visible=_bool_field(data, "visible"), lock=_bool_field(data, "lock"))


class LayerKind(Enum):
    """The kind of a layer; the value is its tag in saved projects."""

    GROUP = "Group"
    PIXEL = "Pixel"
    FILL = "Fill"
    FILTER = "Filter"


Parameters = Union[NodeLayerParameters, FillLayerParameters, FilterLayerParameters]
Data = Union[GroupData, PixelData, FillLayerData, FilterData]


def paint_pixel(
    canvas_rgba: Sequence[float],
    brush_rgba: Sequence[float],
    strength: float,
    alpha_lock: bool,
) -> Rgba:
    """Return the canvas colour after laying the brush colour over it."""
    src_a = brush_rgba[3] * strength
    dst_a = canvas_rgba[3]
    if src_a <= 0.0:
        return tuple(float(c) for c in canvas_rgba[:4])  # type: ignore[return-value]

    out_a = dst_a if alpha_lock else src_a + dst_a * (1.0 - src_a)
    if out_a > _F32_EPSILON:
        r, g, b = (
            (s * src_a + d * dst_a * (1.0 - src_a)) / out_a
            for s, d in zip(brush_rgba[:3], canvas_rgba[:3])
        )
        return (float(r), float(g), float(b), float(out_a))
    return (0.0, 0.0, 0.0, 0.0)


def _paint_pixels(pixels: np.ndarray, color: Sequence[float], alpha_lock: bool) -> np.ndarray:
    """Vectorised :func:`paint_pixel` over an (n, 4) float32 array at full strength."""
    src_a = np.float32(color[3])
    if src_a <= 0:
        return pixels
    one = np.float32(1.0)
    dst_a = pixels[:, 3]
    out_a = dst_a.copy() if alpha_lock else src_a + dst_a * (one - src_a)
    brush = np.asarray(color[:3], dtype=np.float32)
    rgb = brush[None, :] * src_a + pixels[:, :3] * dst_a[:, None] * (one - src_a)

    result = np.zeros_like(pixels)
    ok = out_a > _F32_EPSILON
    result[ok, :3] = rgb[ok] / out_a[ok, None]
    result[ok, 3] = out_a[ok]
    return result


def _mask_view(mask: Any) -> np.ndarray:
    if isinstance(mask, np.ndarray):
        if mask.dtype != np.uint8:
            raise TypeError("mask must hold uint8 values")
        view = mask.reshape(-1)
        if not np.shares_memory(view, mask):
            raise ValueError("mask must be contiguous")
        return view
    return np.frombuffer(mask, dtype=np.uint8)


@dataclass(eq=False)
class Layer:
    """A node of the layer tree."""

    kind: LayerKind
    name: str
    parameters: Parameters
    data: Data
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    filters: list[Layer] = field(default_factory=list)
    expanded: bool = True
    dirty: bool = True
    dirty_rect: Optional[Rect] = None

    @classmethod
    def new_pixel(cls, name: str, width: int, height: int) -> Layer:
        """Create an empty, transparent pixel layer."""
        return cls(
            LayerKind.PIXEL,
            name,
            NodeLayerParameters(),
            PixelData(_PIXEL_COLOR_SPACE, width, height),
        )

    @classmethod
    def new_group(cls, name: str) -> Layer:
        """Create an empty group."""
        return cls(LayerKind.GROUP, name, NodeLayerParameters(), GroupData())

    # Shared parameters

    @property
    def visible(self) -> bool:
        return self.parameters.visible

    @visible.setter
    def visible(self, value: bool) -> None:
        self.parameters.visible = value

    @property
    def lock(self) -> bool:
        return self.parameters.lock

    @lock.setter
    def lock(self, value: bool) -> None:
        self.parameters.lock = value

    def toggle_visibility(self) -> None:
        """Flip the layer's visibility."""
        self.visible = not self.visible

    @property
    def alpha_clip(self) -> bool:
        if self.kind is LayerKind.FILTER:
            return False
        return self.parameters.alpha_clip

    @alpha_clip.setter
    def alpha_clip(self, value: bool) -> None:
        if self.kind is not LayerKind.FILTER:
            self.parameters.alpha_clip = value

    @property
    def alpha_lock(self) -> bool:
        if self.kind is LayerKind.FILTER:
            return False
        return self.parameters.alpha_lock

    @alpha_lock.setter
    def alpha_lock(self, value: bool) -> None:
        if self.kind is not LayerKind.FILTER:
            self.parameters.alpha_lock = value

    @property
    def passthrough(self) -> bool:
        if self.kind is LayerKind.GROUP:
            return self.parameters.passthrough
        return False

    @passthrough.setter
    def passthrough(self, value: bool) -> None:
        if self.kind is LayerKind.GROUP:
            self.parameters.passthrough = value

    @property
    def opacity(self) -> float:
        if self.kind is LayerKind.FILTER:
            return 1.0
        return self.parameters.opacity

    @opacity.setter
    def opacity(self, value: float) -> None:
        if self.kind is not LayerKind.FILTER:
            self.parameters.opacity = value

    @property
    def blend_mode(self) -> BrushBlendMode:
        if self.kind is LayerKind.FILTER:
            return BrushBlendMode.NORMAL
        return self.parameters.blend_mode

    @blend_mode.setter
    def blend_mode(self, value: BrushBlendMode) -> None:
        if self.kind is not LayerKind.FILTER:
            self.parameters.blend_mode = value

    # Geometry

    def _has_bounds(self) -> bool:
        return self.kind in (LayerKind.PIXEL, LayerKind.GROUP)

    @property
    def width(self) -> int:
        return self.data.width if self._has_bounds() else 0

    @property
    def height(self) -> int:
        return self.data.height if self._has_bounds() else 0

    @property
    def x(self) -> int:
        return self.data.x if self._has_bounds() else 0

    @property
    def y(self) -> int:
        return self.data.y if self._has_bounds() else 0

    # Content

    @property
    def pixel_data(self) -> Optional[np.ndarray]:
        """The flat RGBA buffer of a pixel layer, or None."""
        if self.kind is LayerKind.PIXEL:
            return self.data.pixels
        return None

    @property
    def children(self) -> Optional[list[Layer]]:
        """The child layers of a group, or None."""
        if self.kind is LayerKind.GROUP:
            return self.data.layers
        return None

    def append(self, index: int, layer: Layer) -> None:
        """Insert a child into a group at index and refit the group."""
        if self.kind is LayerKind.GROUP:
            self.data.layers.insert(index, layer)
            self.resize_group()

    def replace_pixel_data(self, new_pixels: Sequence[float]) -> None:
        """Replace the pixels of a pixel layer with a buffer of the same size."""
        if self.kind is not LayerKind.PIXEL:
            return
        incoming = np.asarray(new_pixels, dtype=np.float32).reshape(-1)
        size = self.data.width * self.data.height * 4
        if incoming.size != size:
            raise ValueError(
                f"pixel data sizes are different: expected {size}, got {incoming.size}"
            )
        self.data.pixels = incoming.copy()
        self.dirty = True

    def remove_child(self, child: Layer) -> None:
        """Remove a filter, or a child of a group, that has the child's id."""
        if child.kind is LayerKind.FILTER:
            if self.kind is LayerKind.FILTER:
                raise ValueError("filter layers cannot have filters")
            for idx, existing in enumerate(self.filters):
                if existing.id == child.id:
                    del self.filters[idx]
                    return
            return

        if self.kind is LayerKind.GROUP:
            for idx, existing in enumerate(self.data.layers):
                if existing.id == child.id:
                    del self.data.layers[idx]
                    self.resize_group()
                    return

    def resize(self, new_width: int, new_height: int) -> None:
        """Change a pixel layer's size, keeping leading data."""
        if self.kind is LayerKind.PIXEL:
            self.data.width = new_width
            self.data.height = new_height
            self.data.resize(new_width, new_height)

    def resize_group(self) -> None:
        """Refit a group's box around its visible children."""
        if self.kind is LayerKind.GROUP:
            self.data.calculate_group_bounds()

    def clear(self) -> None:
        """Make every pixel of a pixel layer transparent black."""
        if self.kind is LayerKind.PIXEL:
            self.data.pixels[:] = 0.0

    def draw_brush_dab(
        self,
        mask: Any,
        center: tuple[int, int],
        radius: int,
        color: Sequence[float],
        erase_mode: bool,
        should_par: bool = False,
    ) -> None:
        """Stamp a round dab of an Oklab+alpha colour onto a pixel layer.

        ``mask`` is a writable uint8 buffer of one byte per pixel; pixels whose
        byte is already set are left alone and newly touched pixels are marked.
        ``should_par`` is a hint for large dabs and does not change the result.
        """
        pixels = self.pixel_data
        if pixels is not None and self.width > 0:
            region = self._stamp(_mask_view(mask), pixels, center, radius, color, erase_mode)
            if region is not None:
                self.dirty_rect = (
                    region if self.dirty_rect is None else region.union(self.dirty_rect)
                )
        self.dirty = True

    def _stamp(
        self,
        mask: np.ndarray,
        pixels: np.ndarray,
        center: tuple[int, int],
        radius: int,
        color: Sequence[float],
        erase_mode: bool,
    ) -> Optional[Rect]:
        cx, cy = center
        local_x, local_y = cx - self.x, cy - self.y
        width, height = self.width, self.height

        rows = min(pixels.size // (width * 4), mask.size // width)
        start_y = max(0, min(height, local_y - radius))
        end_y = min(max(0, min(height, local_y + radius)), rows)
        if start_y >= end_y or radius <= 0:
            return None

        py = np.arange(start_y, end_y, dtype=np.int64)[:, None]
        dx = np.arange(-radius, radius, dtype=np.int64)[None, :]
        px = local_x + dx
        inside = (dx * dx + (py - local_y) ** 2 <= radius * radius) & (px >= 0) & (px < width)

        row_idx, col_idx = np.nonzero(inside)
        ys = py[row_idx, 0]
        xs = px[0, col_idx]
        flat = ys * width + xs

        fresh = mask[flat] == 0
        flat, xs, ys = flat[fresh], xs[fresh], ys[fresh]
        if flat.size == 0:
            return None
        mask[flat] = 1

        rgba = pixels[: rows * width * 4].reshape(-1, 4)
        if erase_mode:
            rgba[flat, 3] = np.maximum(rgba[flat, 3] - np.float32(color[3]), np.float32(0.0))
        else:
            rgba[flat] = _paint_pixels(rgba[flat], color, self.alpha_lock)

        x0, y0 = int(xs.min()), int(ys.min())
        return Rect(x0, y0, int(xs.max()) - x0 + 1, int(ys.max()) - y0 + 1)

    # Serialisation

    def to_dict(self) -> dict[str, Any]:
        """Return the form stored in project files; pixels are stored separately."""
        if self.kind is LayerKind.GROUP:
            data = {
                "layers": [child.to_dict() for child in self.data.layers],
                "x": self.data.x,
                "y": self.data.y,
                "width": self.data.width,
                "height": self.data.height,
            }
        else:
            data = self.data.to_dict()
        return {
            "type": self.kind.value,
            "id": str(self.id),
            "name": self.name,
            "filters": [f.to_dict() for f in self.filters],
            "parameters": self.parameters.to_dict(),
            "data": data,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Layer:
        """Build a layer tree from its stored form."""
        kind = LayerKind(_field(data, "type"))
        params_raw = _field(data, "parameters")
        data_raw = _field(data, "data")
        filters_raw = _field(data, "filters")
        if not isinstance(filters_raw, list):
            raise ValueError("field 'filters' must be a list")

        if kind is LayerKind.GROUP:
            parameters: Parameters = NodeLayerParameters.from_dict(params_raw)
            children_raw = _field(data_raw, "layers")
            if not isinstance(children_raw, list):
                raise ValueError("field 'layers' must be a list")
            payload: Data = GroupData(
                layers=[cls.from_dict(child) for child in children_raw],
                x=_int_field(data_raw, "x"),
                y=_int_field(data_raw, "y"),
                width=_int_field(data_raw, "width"),
                height=_int_field(data_raw, "height"),
            )
        elif kind is LayerKind.PIXEL:
            parameters = NodeLayerParameters.from_dict(params_raw)
            payload = PixelData.from_dict(data_raw)
        elif kind is LayerKind.FILL:
            parameters = FillLayerParameters.from_dict(params_raw)
            payload = FillLayerData.from_dict(data_raw)
        else:
            parameters = FilterLayerParameters.from_dict(params_raw)
            payload = FilterData.from_dict(data_raw)

        return cls(
            kind=kind,
            name=_str_field(data, "name"),
            parameters=parameters,
            data=payload,
            id=uuid.UUID(_str_field(data, "id")),
            filters=[cls.from_dict(f) for f in filters_raw],
            expanded=False,
            dirty=False,
            dirty_rect=None,
        )