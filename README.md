# brushpaint

The document model of a layered raster painting program: a layer tree, brush
dabs painted into float RGBA buffers, colour conversions, and a zip-based
project file format. It is a library only; it has no user interface and no
commands.

## What is in it

- `brushpaint.rect.Rect`: an immutable integer rectangle with `union` and
  `extend_pt`, used to track the dirty region of a layer.
- `brushpaint.blend_modes.BrushBlendMode`: `NORMAL`, `HARD_LIGHT`,
  `SOFT_LIGHT`. `str()` gives the label ("Hard Light"); `variant_names()` lists
  the labels and `from_index()` picks a mode by position (raising `ValueError`
  when out of range).
- `brushpaint.tools.BrushTool`: the editor tools (`move`, `brush`, `fill`,
  `box`, `ellipse`, `box_select`, `lasso_select`, `wand_select`);
  `from_name()` raises `ValueError` for an unknown name.
- `brushpaint.color`: `hsv_to_srgb`, `srgb_to_hsv`, `srgb_to_hsl`,
  `hsv_to_hsl`, `hsl_to_hsv`, `hsv_clip`, `hsv_to_rgba8`, `hsv_to_rgba` and
  `hsv_to_oklab`. HSV and HSL take hue in degrees and the other components in
  0..100; RGB components are in 0..1. `hsv_to_oklab` treats the RGB it gets
  from the HSV colour as linear light.
- `brushpaint.editor_state.BrushEditorState`: current tool, erase mode,
  primary and secondary HSV colours (black and white), brush opacity (1.0) and
  brush size (40). `set_tool()` ignores unknown tool names; `swap_colors()`
  exchanges the two colours.
- `brushpaint.layer_types`: the payloads of each layer kind: `PixelData`
  (a flat float32 RGBA buffer with position and size), `GroupData` (children
  and a bounding box fitted by `calculate_group_bounds`), `FillLayerData` /
  `FillLayerParameters`, and `FilterData`.
- `brushpaint.layer`: `Layer`, one node of the tree, with a `LayerKind`
  (`GROUP`, `PIXEL`, `FILL`, `FILTER`). Layers expose opacity, visibility,
  lock, alpha clip, alpha lock, passthrough and blend mode, with the per-kind
  rules (filters always report opacity 1.0 and no alpha clip; only groups have
  passthrough; fill layers are never locked). `Layer.new_pixel` and
  `Layer.new_group` create layers; `append`, `remove_child`, `resize`,
  `resize_group`, `clear` and `replace_pixel_data` edit them
  (`replace_pixel_data` raises `ValueError` on a size mismatch).
  `draw_brush_dab` stamps a round dab of an Oklab+alpha colour, honours a
  per-stroke `uint8` mask so no pixel is painted twice, supports erase mode and
  alpha lock, and grows the layer's `dirty_rect`. `paint_pixel` is the
  single-pixel "over" operation it uses.
- `brushpaint.refs.RefLayer`: reference images held by a project.
- `brushpaint.project.BrushProject`: canvas size (3840×2160 by default),
  creation time, layers and references. `find_layer`, `find_parent`,
  `rename_layer`, `remove_layer` (raises `KeyError` for an unknown id),
  `move_layer`, `is_layer_in_lock`, and helpers for dropping cached widgets of
  a layer's relatives (`remove_stale_widgets`, `remove_stale_children`).
- `brushpaint.canvas`: `screen_to_canvas` maps widget coordinates to canvas
  pixels under pan, zoom and rotation; `interpolate_stroke` spaces dabs along a
  segment with interpolated pressure; `draw_stroke` paints a segment onto the
  active layer unless it is locked or hidden.
- `brushpaint.file`: `save_project` / `open_project` for project files,
  `save_image` to export an image, `image_format_for` to choose the format from
  the extension (PNG when unknown). Failures raise `ProjectFileError`.

Every layer, parameter set and the project have `to_dict` / `from_dict` for
their JSON form; pixel buffers are not part of it.

## Project file layout

A project file is a zip archive holding:

- `mimetype`: `application/x-brush`
- `meta.json`: the project structure from `BrushProject.to_dict`
- `layers/<id>`: each pixel layer's float32 buffer, raw-deflated
- `refs/<id>`: each reference image's float32 buffer, raw-deflated
- `preview`: a PNG made from the RGBA8 buffer passed to `save_project`

## Installation

```
pip install .
```

## Example

```python
from brushpaint.layer import Layer
from brushpaint.project import BrushProject
from brushpaint.editor_state import BrushEditorState
from brushpaint.canvas import draw_stroke
from brushpaint.file import save_project, open_project

project = BrushProject(width=256, height=256)
layer = Layer.new_pixel("Background", 256, 256)
project.layers.append(layer)

state = BrushEditorState()
state.set_tool("brush")

mask = bytearray(256 * 256)
draw_stroke(
    project, layer.id, state, mask,
    1.0, 1.0,
    (128.0, 128.0), (100.0, 100.0),
    (256.0, 256.0), (0.0, 0.0), 1.0, 0.0,
)

preview = bytes(256 * 256 * 4)
save_project("drawing.bsh", project, preview)
restored = open_project("drawing.bsh")
```

## What it does not do

- There is no window, canvas widget, file chooser or command-line program.
- Layers are not composited or rendered. `save_project` and `save_image`
  need an already flattened RGBA8 buffer of the project's size; fill and filter
  layers carry settings only and produce no pixels.
- `open_project` reads the pixels of pixel layers only; reference images come
  back with empty buffers.
- Export formats are those Pillow can write; an unsupported one raises
  `ProjectFileError`.

## Running the tests

```
pip install .[test]
pytest
```