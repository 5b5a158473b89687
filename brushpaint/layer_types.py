"""Data and parameter payloads carried by the different kinds of layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol, Sequence

import numpy as np

from brushpaint.blend_modes import BrushBlendMode

_U8_MAX = 0xFF
_U32_MAX = 0xFFFF_FFFF
_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1


def _int_in_range(data: dict[str, Any], key: str, low: int, high: int) -> int:
    try:
        value = data[key]
    except KeyError:
        raise ValueError(f"missing field {key!r}") from None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {key!r} must be an integer, got {value!r}")
    if not low <= value <= high:
        raise ValueError(f"field {key!r} out of range: {value}")
    return value


def _bool(data: dict[str, Any], key: str) -> bool:
    try:
        value = data[key]
    except KeyError:
        raise ValueError(f"missing field {key!r}") from None
    if not isinstance(value, bool):
        raise ValueError(f"field {key!r} must be a boolean, got {value!r}")
    return value


def _float(data: dict[str, Any], key: str) -> float:
    try:
        value = data[key]
    except KeyError:
        raise ValueError(f"missing field {key!r}") from None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"field {key!r} must be a number, got {value!r}")
    return float(value)


def _u8(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= _U8_MAX:
        raise ValueError(f"{what} must be an integer in 0..255, got {value!r}")
    return value


class FillLayerType(Enum):
    """How a fill layer covers the canvas."""

    SOLID = "Solid"
    GRADIENT = "Gradient"


@dataclass
class FillLayerData:
    """Content of a fill layer: a solid colour or a gradient of colour stops."""

    fill_type: FillLayerType
    color: Optional[int] = None
    gradient: Optional[list[tuple[float, int]]] = None

    def to_dict(self) -> dict[str, Any]:
        """Return the form stored in project files."""
        return {
            "fill_type": self.fill_type.value,
            "color": self.color,
            "gradient": None
            if self.gradient is None
            else [[float(pos), col] for pos, col in self.gradient],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FillLayerData:
        """Build fill data from its stored form."""
        try:
            fill_type = FillLayerType(data["fill_type"])
        except KeyError:
            raise ValueError("missing field 'fill_type'") from None
        color = data.get("color")
        if color is not None:
            color = _u8(color, "color")
        raw_gradient = data.get("gradient")
        gradient = None
        if raw_gradient is not None:
            gradient = []
            for stop in raw_gradient:
                if len(stop) != 2:
                    raise ValueError(f"gradient stop must have two values, got {stop!r}")
                pos, col = stop
                if isinstance(pos, bool) or not isinstance(pos, (int, float)):
                    raise ValueError(f"gradient position must be a number, got {pos!r}")
                gradient.append((float(pos), _u8(col, "gradient colour")))
        return cls(fill_type=fill_type, color=color, gradient=gradient)


@dataclass
class FillLayerParameters:
    """Compositing settings of a fill layer; fill layers cannot be locked."""

    opacity: float = 1.0
    visible: bool = True
    alpha_clip: bool = False
    alpha_lock: bool = False
    blend_mode: BrushBlendMode = BrushBlendMode.NORMAL

    @property
    def lock(self) -> bool:
        """Fill layers are never locked."""
        return False

    @lock.setter
    def lock(self, _value: bool) -> None:
        pass

    def to_dict(self) -> dict[str, Any]:
        """Return the form stored in project files."""
        return {
            "opacity": self.opacity,
            "visible": self.visible,
            "alpha_clip": self.alpha_clip,
            "alpha_lock": self.alpha_lock,
            "blend_mode": self.blend_mode.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FillLayerParameters:
        """Build parameters from their stored form."""
        try:
            blend_mode = BrushBlendMode(data["blend_mode"])
        except KeyError:
            raise ValueError("missing field 'blend_mode'") from None
        return cls(
            opacity=_float(data, "opacity"),
            visible=_bool(data, "visible"),
            alpha_clip=_bool(data, "alpha_clip"),
            alpha_lock=_bool(data, "alpha_lock"),
            blend_mode=blend_mode,
        )


@dataclass
class FilterData:
    """Content of a filter layer: a mask reference and the filter's settings."""

    mask: str = ""
    params: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return the form stored in project files."""
        return {"mask": self.mask, "params": dict(self.params)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FilterData:
        """Build filter data from its stored form."""
        mask = data.get("mask")
        if not isinstance(mask, str):
            raise ValueError(f"field 'mask' must be a string, got {mask!r}")
        params = data.get("params", {})
        if not isinstance(params, dict):
            raise ValueError(f"field 'params' must be a mapping, got {params!r}")
        return cls(mask=mask, params=dict(params))


class BoundedLayer(Protocol):
    """What a group needs from its children to work out its bounds."""

    @property
    def visible(self) -> bool: ...

    @property
    def x(self) -> int: ...

    @property
    def y(self) -> int: ...

    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...

    @property
    def children(self) -> Optional[Sequence[Any]]: ...

    def resize_group(self) -> None: ...


@dataclass
class GroupData:
    """Children of a group layer and the box that encloses them."""

    layers: list[Any] = field(default_factory=list)
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    def calculate_group_bounds(self) -> None:
        """Fit the group's box around its visible children, recursing into groups."""
        min_x = min_y = None
        max_x = max_y = None

        for child in self.layers:
            if not child.visible:
                continue
            if child.children is not None:
                child.resize_group()

            cx, cy = child.x, child.y
            right, bottom = cx + child.width, cy + child.height
            min_x = cx if min_x is None else min(min_x, cx)
            min_y = cy if min_y is None else min(min_y, cy)
            max_x = right if max_x is None else max(max_x, right)
            max_y = bottom if max_y is None else max(max_y, bottom)

        if min_x is None:
            self.x = self.y = self.width = self.height = 0
        else:
            self.x = min_x
            self.y = min_y
            self.width = max_x - min_x
            self.height = max_y - min_y


@dataclass
class PixelData:
    """Raster content of a pixel layer as a flat RGBA float32 buffer."""

    color_space: str
    width: int
    height: int
    x: int = 0
    y: int = 0
    pixels: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        if self.pixels is None:
            self.pixels = np.zeros(self.width * self.height * 4, dtype=np.float32)
        else:
            self.pixels = np.ascontiguousarray(self.pixels, dtype=np.float32).reshape(-1)

    def resize(self, width: int, height: int) -> None:
        """Resize the buffer to fit width x height, keeping leading data and zero-filling."""
        length = width * height * 4
        current = self.pixels.size
        if length <= current:
            self.pixels = self.pixels[:length].copy()
        else:
            grown = np.zeros(length, dtype=np.float32)
            grown[:current] = self.pixels
            self.pixels = grown

    def to_dict(self) -> dict[str, Any]:
        """Return the form stored in project files; pixels are stored separately."""
        return {
            "color_space": self.color_space,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PixelData:
        """Build pixel data from its stored form, with an empty pixel buffer."""
        color_space = data.get("color_space")
        if not isinstance(color_space, str):
            raise ValueError(f"field 'color_space' must be a string, got {color_space!r}")
        return cls(
            color_space=color_space,
            width=_int_in_range(data, "width", 0, _U32_MAX),
            height=_int_in_range(data, "height", 0, _U32_MAX),
            x=_int_in_range(data, "x", _I32_MIN, _I32_MAX),
            y=_int_in_range(data, "y", _I32_MIN, _I32_MAX),
            pixels=np.zeros(0, dtype=np.float32),
        )