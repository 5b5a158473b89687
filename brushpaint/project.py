"""A painting project: canvas size, layer tree and reference images."""

from __future__ import annotations

import copy
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Iterable, MutableMapping, Optional

from brushpaint.layer import Layer
from brushpaint.refs import RefLayer

_U32_MAX = 0xFFFF_FFFF
_U64_MAX = 0xFFFF_FFFF_FFFF_FFFF


def _now() -> int:
    return int(time.time())


def _uint(data: dict[str, Any], key: str, high: int) -> int:
    try:
        value = data[key]
    except KeyError:
        raise ValueError(f"missing field {key!r}") from None
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= high:
        raise ValueError(f"field {key!r} must be a non-negative integer, got {value!r}")
    return value


def _list(data: dict[str, Any], key: str) -> list[Any]:
    try:
        value = data[key]
    except KeyError:
        raise ValueError(f"missing field {key!r}") from None
    if not isinstance(value, list):
        raise ValueError(f"field {key!r} must be a list")
    return value


def _search(layers: Iterable[Layer], target_id: uuid.UUID) -> Optional[Layer]:
    for layer in layers:
        if layer.id == target_id:
            return layer
        children = layer.children
        if children is not None:
            found = _search(children, target_id)
            if found is not None:
                return found
    return None


def _search_parent(layers: Iterable[Layer], target_id: uuid.UUID) -> Optional[Layer]:
    for layer in layers:
        children = layer.children
        if children is None:
            continue
        if any(child.id == target_id for child in children):
            return layer
        found = _search_parent(children, target_id)
        if found is not None:
            return found
    return None


@dataclass
class BrushProject:
    """A document: its size, creation time, layers and reference images."""

    version: int = 1
    created: int = field(default_factory=_now)
    width: int = 1920 * 2
    height: int = 1080 * 2
    layers: list[Layer] = field(default_factory=list)
    references: list[RefLayer] = field(default_factory=list)

    def find_layer(self, layer_id: uuid.UUID) -> Optional[Layer]:
        """Return the layer with the given id anywhere in the tree, or None."""
        return _search(self.layers, layer_id)

    def find_parent(self, target_id: uuid.UUID) -> Optional[Layer]:
        """Return the group holding the given layer, or None if it is at the root."""
        return _search_parent(self.layers, target_id)

    def rename_layer(self, layer_id: uuid.UUID, new_name: str) -> None:
        """Rename a layer; unknown ids are ignored."""
        layer = self.find_layer(layer_id)
        if layer is not None:
            layer.name = new_name

    def remove_layer(self, layer_id: uuid.UUID) -> None:
        """Remove a layer from its group or from the root."""
        layer = self.find_layer(layer_id)
        if layer is None:
            raise KeyError(layer_id)
        parent = self.find_parent(layer_id)
        if parent is not None:
            parent.remove_child(layer)
            return
        for idx, existing in enumerate(self.layers):
            if existing.id == layer_id:
                del self.layers[idx]
                return

    def move_layer(
        self,
        layer: Layer,
        index: int,
        old_parent: Optional[uuid.UUID],
        new_parent: Optional[uuid.UUID],
        buffer_cache: MutableMapping[uuid.UUID, Any],
        widget_cache: MutableMapping[uuid.UUID, Any],
    ) -> None:
        """Move a copy of a layer to index inside new_parent (or the root).

        The widget cache is emptied, and the old parent's render buffer is
        dropped so that it gets rebuilt.
        """
        widget_cache.clear()

        if old_parent is not None:
            parent = self.find_layer(old_parent)
            if parent is not None:
                children = parent.children
                if children is not None and any(c.id == layer.id for c in children):
                    parent.remove_child(layer)
                    buffer_cache.pop(parent.id, None)
        else:
            for idx, existing in enumerate(self.layers):
                if existing.id == layer.id:
                    del self.layers[idx]
                    break

        moved = copy.deepcopy(layer)
        if new_parent is not None:
            parent = self.find_layer(new_parent)
            if parent is not None:
                parent.append(index, moved)
        else:
            self.layers.insert(index, moved)

    def is_layer_in_lock(self, layer_id: uuid.UUID) -> bool:
        """Whether a layer is locked or hidden and so must not be painted on."""
        layer = self.find_layer(layer_id)
        if layer is not None:
            return layer.lock or not layer.visible
        parent = self.find_parent(layer_id)
        if parent is not None:
            return self.is_layer_in_lock(parent.id)
        return False

    def remove_stale_widgets(
        self, layer_id: uuid.UUID, widget_cache: MutableMapping[uuid.UUID, Any]
    ) -> None:
        """Drop cached widgets of a layer, its descendants and its ancestors."""
        widget_cache.pop(layer_id, None)

        layer = self.find_layer(layer_id)
        if layer is not None:
            self.remove_stale_children(layer, widget_cache)
        parent = self.find_parent(layer_id)
        if parent is not None:
            self.remove_stale_children(parent, widget_cache)
            self.remove_stale_widgets(parent.id, widget_cache)

    def remove_stale_children(
        self, layer: Layer, widget_cache: MutableMapping[uuid.UUID, Any]
    ) -> None:
        """Drop cached widgets of every descendant of a layer."""
        for child in layer.children or ():
            widget_cache.pop(child.id, None)
            self.remove_stale_children(child, widget_cache)

    def to_dict(self) -> dict[str, Any]:
        """Return the form stored in project files; pixels are stored separately."""
        return {
            "version": self.version,
            "created": self.created,
            "width": self.width,
            "height": self.height,
            "layers": [layer.to_dict() for layer in self.layers],
            "references": [ref.to_dict() for ref in self.references],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BrushProject:
        """Build a project from its stored form."""
        return cls(
            version=_uint(data, "version", _U32_MAX),
            created=_uint(data, "created", _U64_MAX),
            width=_uint(data, "width", _U32_MAX),
            height=_uint(data, "height", _U32_MAX),
            layers=[Layer.from_dict(item) for item in _list(data, "layers")],
            references=[RefLayer.from_dict(item) for item in _list(data, "references")],
        )