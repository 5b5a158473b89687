"""Reading and writing project files and exporting flattened images.

A project file is a zip archive holding a ``mimetype`` entry, the layer tree
as ``meta.json``, one raw-deflated float32 buffer per pixel layer under
``layers/`` and per reference image under ``refs/``, and a PNG ``preview``.
"""

from __future__ import annotations

import io
import json
import logging
import stat
import time
import uuid
import zipfile
import zlib
from os import PathLike
from pathlib import Path
from typing import Any, Iterable, Iterator, Union

import numpy as np
from PIL import Image

from brushpaint.layer import Layer, LayerKind
from brushpaint.project import BrushProject
from brushpaint.refs import RefLayer

log = logging.getLogger(__name__)

PathArg = Union[str, "PathLike[str]"]

MIME_TYPE = "application/x-brush"
LAYER_FOLDER = "layers"
REFS_FOLDER = "refs"
META_ENTRY = "meta.json"
PREVIEW_ENTRY = "preview"
MIMETYPE_ENTRY = "mimetype"

_READ_ONLY_FILE = stat.S_IFREG | 0o444
_UNIX = 3

_FORMATS = {
    "png": "PNG",
    "avif": "AVIF",
    "jpeg": "JPEG",
    "jpg": "JPEG",
    "bmp": "BMP",
    "exr": "OPENEXR",
    "webp": "WEBP",
    "gif": "GIF",
    "jif": "GIF",
}


class ProjectFileError(Exception):
    """A project or image file could not be read or written."""


def _resolve(path: PathArg) -> Path:
    """Resolve a path against the current working directory."""
    return Path.cwd() / Path(path)


def _entry(name: str, compress_type: int) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(name)
    info.compress_type = compress_type
    info.create_system = _UNIX
    info.external_attr = _READ_ONLY_FILE << 16
    return info


def _flatten(layers: Iterable[Layer]) -> Iterator[Layer]:
    """Yield every pixel layer of a tree, descending into groups."""
    for layer in layers:
        if layer.kind is LayerKind.GROUP:
            yield from _flatten(layer.children or ())
        elif layer.kind is LayerKind.PIXEL:
            yield layer


def _deflate_pixels(pixels: Any) -> bytes:
    raw = np.asarray(pixels, dtype="<f4").tobytes()
    compressor = zlib.compressobj(1, zlib.DEFLATED, -zlib.MAX_WBITS)
    return compressor.compress(raw) + compressor.flush()


def _inflate_pixels(buf: bytes) -> np.ndarray:
    """Decode a raw-deflated float32 buffer, reading it uncompressed if that fails."""
    try:
        decoder = zlib.decompressobj(-zlib.MAX_WBITS)
        decoded = decoder.decompress(buf) + decoder.flush()
    except zlib.error:
        decoded = buf
    remainder = len(decoded) % 4
    if remainder:
        decoded += b"\x00" * (4 - remainder)
    return np.frombuffer(decoded, dtype="<f4").astype(np.float32)


def _rgba_bytes(data: Any) -> bytes:
    if isinstance(data, np.ndarray):
        return np.ascontiguousarray(data, dtype=np.uint8).tobytes()
    return bytes(data)


def _rgba_image(project: BrushProject, data: Any) -> Image.Image:
    raw = _rgba_bytes(data)
    expected = project.width * project.height * 4
    if len(raw) != expected:
        raise ProjectFileError(
            f"image buffer holds {len(raw)} bytes, expected {expected}"
        )
    try:
        return Image.frombytes("RGBA", (project.width, project.height), raw)
    except ValueError as exc:
        raise ProjectFileError(str(exc)) from exc


def _fill_layer_data(layers: Iterable[Layer], inflated: dict[uuid.UUID, np.ndarray]) -> None:
    for layer in layers:
        if layer.kind is LayerKind.GROUP:
            layer.dirty = True
            _fill_layer_data(layer.children or (), inflated)
        elif layer.kind is LayerKind.PIXEL:
            try:
                layer.replace_pixel_data(inflated[layer.id])
            except ValueError as exc:
                raise ProjectFileError(f"layer {layer.id}: {exc}") from exc


def open_project(path: PathArg) -> BrushProject:
    """Load a project and the pixels of all its pixel layers."""
    started = time.perf_counter()
    try:
        with zipfile.ZipFile(_resolve(path)) as archive:
            try:
                meta = archive.read(META_ENTRY)
            except KeyError as exc:
                raise ProjectFileError(f"missing {META_ENTRY}") from exc
            try:
                project = BrushProject.from_dict(json.loads(meta.decode("utf-8")))
            except (ValueError, TypeError, AttributeError) as exc:
                raise ProjectFileError(f"invalid project structure: {exc}") from exc

            inflated: dict[uuid.UUID, np.ndarray] = {}
            for layer in _flatten(project.layers):
                name = f"{LAYER_FOLDER}/{layer.id}"
                try:
                    inflated[layer.id] = _inflate_pixels(archive.read(name))
                except KeyError as exc:
                    raise ProjectFileError(f"missing layer data {name}") from exc
    except (OSError, zipfile.BadZipFile) as exc:
        raise ProjectFileError(str(exc)) from exc

    _fill_layer_data(project.layers, inflated)
    log.debug("file opened in %.3fs", time.perf_counter() - started)
    return project


def save_project(path: PathArg, project: BrushProject, preview: Any) -> None:
    """Write a project, its layer pixels and an RGBA8 preview to a project file."""
    started = time.perf_counter()
    preview_image = _rgba_image(project, preview)
    png = io.BytesIO()
    try:
        preview_image.save(png, format="PNG")
    except (OSError, ValueError) as exc:
        raise ProjectFileError(str(exc)) from exc

    structure = json.dumps(project.to_dict(), separators=(",", ":"))

    try:
        with zipfile.ZipFile(_resolve(path), "w") as archive:
            archive.writestr(
                _entry(MIMETYPE_ENTRY, zipfile.ZIP_STORED), f"{MIME_TYPE}\n".encode()
            )
            archive.writestr(
                _entry(META_ENTRY, zipfile.ZIP_DEFLATED), structure.encode("utf-8")
            )
            for layer in _flatten(project.layers):
                archive.writestr(
                    _entry(f"{LAYER_FOLDER}/{layer.id}", zipfile.ZIP_STORED),
                    _deflate_pixels(layer.pixel_data),
                )
            ref: RefLayer
            for ref in project.references:
                archive.writestr(
                    _entry(f"{REFS_FOLDER}/{ref.id}", zipfile.ZIP_STORED),
                    _deflate_pixels(ref.pixel_data),
                )
            archive.writestr(_entry(PREVIEW_ENTRY, zipfile.ZIP_DEFLATED), png.getvalue())
    except OSError as exc:
        raise ProjectFileError(str(exc)) from exc
    log.debug("file saved in %.3fs", time.perf_counter() - started)


def image_format_for(path: PathArg) -> str:
    """Return the image format name for a path's extension, PNG when unknown."""
    suffix = Path(path).suffix
    if not suffix:
        raise ProjectFileError(f"{path} has no file extension")
    return _FORMATS.get(suffix[1:], "PNG")


def save_image(path: PathArg, project: BrushProject, img: Any) -> None:
    """Export an RGBA8 buffer of the project's size as an image file."""
    started = time.perf_counter()
    fmt = image_format_for(path)
    image = _rgba_image(project, img)
    try:
        image.save(Path(path), format=fmt)
    except (OSError, ValueError, KeyError) as exc:
        raise ProjectFileError(f"cannot save {path} as {fmt}: {exc}") from exc
    log.debug("file saved in %.3fs", time.perf_counter() - started)