"""Reference layers: images kept alongside a project but not composited."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from brushpaint.layer import Layer
from brushpaint.layer_types import PixelData

_U8_MAX = 0xFF


def _field(data: dict[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field {key!r}") from None


@dataclass
class RefLayerParameters:
    """Display settings of a reference layer; reference layers cannot be locked."""

    opacity: int = _U8_MAX
    visible: bool = True

    def __post_init__(self) -> None:
        if (
            isinstance(self.opacity, bool)
            or not isinstance(self.opacity, int)
            or not 0 <= self.opacity <= _U8_MAX
        ):
            raise ValueError(f"opacity must be an integer in 0..255, got {self.opacity!r}")

    @property
    def lock(self) -> bool:
        """Reference layers are never locked."""
        return False

    @lock.setter
    def lock(self, _value: bool) -> None:
        pass

    def to_dict(self) -> dict[str, Any]:
        """Return the form stored in project files."""
        return {"opacity": self.opacity, "visible": self.visible}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RefLayerParameters:
        """Build parameters from their stored form."""
        visible = _field(data, "visible")
        if not isinstance(visible, bool):
            raise ValueError(f"field 'visible' must be a boolean, got {visible!r}")
        return cls(opacity=_field(data, "opacity"), visible=visible)


@dataclass(eq=False)
class RefLayer:
    """A reference image held by a project."""

    name: str
    parameters: RefLayerParameters
    data: PixelData
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    filters: list[Layer] = field(default_factory=list)

    @property
    def pixel_data(self) -> np.ndarray:
        """The flat RGBA float32 buffer of the reference image."""
        return self.data.pixels

    def to_dict(self) -> dict[str, Any]:
        """Return the form stored in project files; pixels are stored separately."""
        return {
            "id": str(self.id),
            "name": self.name,
            "filters": [f.to_dict() for f in self.filters],
            "parameters": self.parameters.to_dict(),
            "data": self.data.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RefLayer:
        """Build a reference layer from its stored form, with an empty pixel buffer."""
        name = _field(data, "name")
        if not isinstance(name, str):
            raise ValueError(f"field 'name' must be a string, got {name!r}")
        raw_id = _field(data, "id")
        if not isinstance(raw_id, str):
            raise ValueError(f"field 'id' must be a string, got {raw_id!r}")
        filters_raw = _field(data, "filters")
        if not isinstance(filters_raw, list):
            raise ValueError("field 'filters' must be a list")
        return cls(
            name=name,
            parameters=RefLayerParameters.from_dict(_field(data, "parameters")),
            data=PixelData.from_dict(_field(data, "data")),
            id=uuid.UUID(raw_id),
            filters=[Layer.from_dict(f) for f in filters_raw],
        )