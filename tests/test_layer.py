import json
import uuid

import numpy as np
import pytest

from brushpaint.blend_modes import BrushBlendMode
from brushpaint.layer import (
    FilterLayerParameters,
    Layer,
    LayerKind,
    NodeLayerParameters,
    paint_pixel,
)
from brushpaint.layer_types import (
    FillLayerData,
    FillLayerParameters,
    FillLayerType,
    FilterData,
)
from brushpaint.rect import Rect


def _filter(name="filter"):
    return Layer(LayerKind.FILTER, name, FilterLayerParameters(), FilterData(mask="m"))


def _fill(name="fill"):
    return Layer(
        LayerKind.FILL,
        name,
        FillLayerParameters(),
        FillLayerData(fill_type=FillLayerType.SOLID, color=3),
    )


def _pixel_at(name, x, y, w, h):
    layer = Layer.new_pixel(name, w, h)
    layer.data.x = x
    layer.data.y = y
    return layer


def test_new_pixel_defaults():
    layer = Layer.new_pixel("Layer", 6, 4)
    assert layer.kind is LayerKind.PIXEL
    assert layer.width == 6 and layer.height == 4
    assert layer.pixel_data.shape == (6 * 4 * 4,)
    assert not layer.pixel_data.any()
    assert layer.data.color_space == "OkLab"
    assert layer.visible and not layer.lock
    assert layer.opacity == 1.0
    assert layer.blend_mode is BrushBlendMode.NORMAL
    assert layer.dirty and layer.expanded
    assert layer.dirty_rect is None
    assert layer.children is None


def test_new_group_is_empty():
    group = Layer.new_group("Group")
    assert group.kind is LayerKind.GROUP
    assert group.children == []
    assert (group.x, group.y, group.width, group.height) == (0, 0, 0, 0)
    assert group.pixel_data is None


def test_ids_are_unique():
    first = Layer.new_group("a")
    second = Layer.new_group("a")
    assert first.id.version == 4
    assert second.id.version == 4
    assert len({first.id, second.id}) == 2


def test_toggle_visibility():
    layer = Layer.new_pixel("p", 1, 1)
    layer.toggle_visibility()
    assert layer.visible is False
    layer.toggle_visibility()
    assert layer.visible is True


def test_filter_layer_defaults_and_noop_setters():
    layer = _filter()
    layer.opacity = 0.2
    layer.alpha_clip = True
    layer.alpha_lock = True
    layer.blend_mode = BrushBlendMode.SOFT_LIGHT
    assert layer.opacity == 1.0
    assert layer.alpha_clip is False
    assert layer.alpha_lock is False
    assert layer.blend_mode is BrushBlendMode.NORMAL
    assert (layer.x, layer.y, layer.width, layer.height) == (0, 0, 0, 0)


def test_fill_layer_never_locks():
    layer = _fill()
    layer.lock = True
    assert layer.lock is False


def test_passthrough_only_on_groups():
    pixel = Layer.new_pixel("p", 1, 1)
    pixel.passthrough = True
    assert pixel.passthrough is False
    group = Layer.new_group("g")
    group.passthrough = True
    assert group.passthrough is True


def test_append_fits_group_around_children():
    group = Layer.new_group("g")
    a = _pixel_at("a", 2, 3, 4, 5)
    b = _pixel_at("b", -1, 6, 2, 7)
    group.append(0, a)
    group.append(0, b)
    assert [c.name for c in group.children] == ["b", "a"]
    assert group.x == min(a.x, b.x)
    assert group.y == min(a.y, b.y)
    assert group.x + group.width == max(a.x + a.width, b.x + b.width)
    assert group.y + group.height == max(a.y + a.height, b.y + b.height)


def test_group_bounds_skip_hidden_children():
    group = Layer.new_group("g")
    visible = _pixel_at("v", 1, 1, 3, 3)
    hidden = _pixel_at("h", 50, 50, 3, 3)
    hidden.visible = False
    group.append(0, visible)
    group.append(0, hidden)
    assert (group.x, group.y, group.width, group.height) == (1, 1, 3, 3)


def test_append_on_pixel_layer_is_ignored():
    pixel = Layer.new_pixel("p", 1, 1)
    pixel.append(0, Layer.new_pixel("q", 1, 1))
    assert pixel.children is None


def test_remove_child_from_group():
    group = Layer.new_group("g")
    a = _pixel_at("a", 0, 0, 2, 2)
    b = _pixel_at("b", 10, 10, 2, 2)
    group.append(0, a)
    group.append(1, b)
    group.remove_child(b)
    assert [c.id for c in group.children] == [a.id]
    assert (group.x, group.y, group.width, group.height) == (a.x, a.y, a.width, a.height)


def test_remove_filter():
    pixel = Layer.new_pixel("p", 1, 1)
    f1, f2 = _filter("one"), _filter("two")
    pixel.filters.extend([f1, f2])
    pixel.remove_child(f1)
    assert [f.id for f in pixel.filters] == [f2.id]


def test_filters_cannot_hold_filters():
    with pytest.raises(ValueError):
        _filter().remove_child(_filter())


def test_replace_pixel_data():
    layer = Layer.new_pixel("p", 2, 1)
    layer.dirty = False
    values = [0.5] * 8
    layer.replace_pixel_data(values)
    assert layer.pixel_data.tolist() == values
    assert layer.dirty is True


def test_replace_pixel_data_wrong_size():
    layer = Layer.new_pixel("p", 2, 2)
    with pytest.raises(ValueError):
        layer.replace_pixel_data([0.0] * 3)


def test_resize_and_clear():
    layer = Layer.new_pixel("p", 2, 2)
    layer.pixel_data[:] = 1.0
    layer.resize(3, 3)
    assert (layer.width, layer.height) == (3, 3)
    assert layer.pixel_data.size == 3 * 3 * 4
    assert layer.pixel_data[:16].tolist() == [1.0] * 16
    assert not layer.pixel_data[16:].any()
    layer.clear()
    assert not layer.pixel_data.any()


def test_paint_pixel_opaque_brush_over_empty():
    result = paint_pixel([0.0, 0.0, 0.0, 0.0], [0.5, 0.25, -0.125, 1.0], 1.0, False)
    assert result == pytest.approx((0.5, 0.25, -0.125, 1.0))


def test_paint_pixel_zero_alpha_leaves_canvas():
    canvas = [0.3, 0.1, 0.2, 0.7]
    assert paint_pixel(canvas, [1.0, 1.0, 1.0, 0.0], 1.0, False) == pytest.approx(tuple(canvas))


def test_paint_pixel_alpha_lock_keeps_alpha():
    result = paint_pixel([0.2, 0.0, 0.0, 0.4], [0.9, 0.0, 0.0, 0.5], 1.0, True)
    assert result[3] == pytest.approx(0.4)


def test_paint_pixel_alpha_lock_on_transparent_clears():
    assert paint_pixel([0.2, 0.1, 0.1, 0.0], [0.9, 0.0, 0.0, 0.5], 1.0, True) == (
        0.0,
        0.0,
        0.0,
        0.0,
    )


def _dab_layer(w=12, h=12):
    layer = Layer.new_pixel("p", w, h)
    mask = np.zeros(w * h, dtype=np.uint8)
    return layer, mask


def test_draw_brush_dab_marks_and_paints():
    layer, mask = _dab_layer()
    layer.dirty = False
    color = (0.6, 0.1, -0.1, 1.0)
    layer.draw_brush_dab(mask, (6, 6), 3, color, False, False)
    rgba = layer.pixel_data.reshape(-1, 4)
    painted = rgba[:, 3] > 0
    assert painted.sum() == mask.sum() > 0
    assert np.array_equal(painted, mask.astype(bool))
    center = rgba[6 * 12 + 6]
    assert center.tolist() == pytest.approx(list(color))
    assert rgba[0, 3] == 0.0
    assert layer.dirty is True


def test_draw_brush_dab_dirty_rect_covers_touched_pixels():
    layer, mask = _dab_layer()
    layer.draw_brush_dab(mask, (5, 4), 2, (0.5, 0.0, 0.0, 1.0), False, False)
    ys, xs = np.nonzero(mask.reshape(12, 12))
    rect = layer.dirty_rect
    assert rect == Rect(int(xs.min()), int(ys.min()), int(xs.max() - xs.min() + 1),
                        int(ys.max() - ys.min() + 1))


def test_draw_brush_dab_dirty_rect_accumulates():
    layer, mask = _dab_layer()
    layer.draw_brush_dab(mask, (2, 2), 1, (0.5, 0.0, 0.0, 1.0), False, False)
    first = layer.dirty_rect
    layer.draw_brush_dab(mask, (9, 9), 1, (0.5, 0.0, 0.0, 1.0), False, False)
    rect = layer.dirty_rect
    assert rect.x <= first.x and rect.y <= first.y
    assert rect.x + rect.w >= 10 and rect.y + rect.h >= 10


def test_mask_blocks_repeat_painting():
    layer, mask = _dab_layer()
    layer.draw_brush_dab(mask, (6, 6), 3, (0.5, 0.0, 0.0, 0.5), False, False)
    before = layer.pixel_data.copy()
    layer.draw_brush_dab(mask, (6, 6), 3, (0.5, 0.0, 0.0, 0.5), False, False)
    assert np.array_equal(before, layer.pixel_data)


def test_parallel_hint_gives_same_result():
    a, mask_a = _dab_layer()
    b, mask_b = _dab_layer()
    a.draw_brush_dab(mask_a, (4, 7), 4, (0.4, 0.2, 0.1, 0.8), False, False)
    b.draw_brush_dab(mask_b, (4, 7), 4, (0.4, 0.2, 0.1, 0.8), False, True)
    assert np.array_equal(a.pixel_data, b.pixel_data)
    assert np.array_equal(mask_a, mask_b)
    assert a.dirty_rect == b.dirty_rect


def test_dab_matches_paint_pixel():
    layer, mask = _dab_layer()
    start = [0.1, 0.2, 0.3, 0.5]
    layer.pixel_data.reshape(-1, 4)[:] = start
    color = (0.7, -0.1, 0.05, 0.6)
    layer.draw_brush_dab(mask, (6, 6), 2, color, False, False)
    expected = paint_pixel(start, color, 1.0, False)
    assert layer.pixel_data.reshape(-1, 4)[6 * 12 + 6].tolist() == pytest.approx(
        list(expected), rel=1e-5
    )


def test_erase_mode_reduces_alpha_not_below_zero():
    layer, mask = _dab_layer()
    layer.pixel_data.reshape(-1, 4)[:, 3] = 0.5
    layer.draw_brush_dab(mask, (6, 6), 2, (0.0, 0.0, 0.0, 1.0), True, False)
    alpha = layer.pixel_data.reshape(-1, 4)[:, 3]
    assert alpha[6 * 12 + 6] == 0.0
    assert alpha[0] == 0.5
    assert alpha.min() >= 0.0


def test_alpha_lock_on_empty_layer_paints_nothing_visible():
    layer, mask = _dab_layer()
    layer.alpha_lock = True
    layer.draw_brush_dab(mask, (6, 6), 3, (0.5, 0.1, 0.1, 1.0), False, False)
    assert not layer.pixel_data.any()
    assert mask.sum() > 0


def test_dab_respects_layer_offset():
    layer, mask = _dab_layer(6, 6)
    layer.data.x = 10
    layer.data.y = 10
    layer.draw_brush_dab(mask, (12, 12), 1, (0.5, 0.0, 0.0, 1.0), False, False)
    assert mask[2 * 6 + 2] == 1
    assert layer.pixel_data.reshape(-1, 4)[2 * 6 + 2, 3] == 1.0


def test_dab_outside_layer_touches_nothing():
    layer, mask = _dab_layer(6, 6)
    layer.draw_brush_dab(mask, (100, 100), 3, (0.5, 0.0, 0.0, 1.0), False, False)
    assert mask.sum() == 0
    assert layer.dirty_rect is None


def test_dab_accepts_bytearray_mask():
    layer, _ = _dab_layer(6, 6)
    mask = bytearray(36)
    layer.draw_brush_dab(mask, (3, 3), 2, (0.5, 0.0, 0.0, 1.0), False, False)
    assert sum(mask) == int((layer.pixel_data.reshape(-1, 4)[:, 3] > 0).sum())


def test_dab_on_group_only_sets_dirty():
    group = Layer.new_group("g")
    group.dirty = False
    group.draw_brush_dab(bytearray(4), (0, 0), 2, (0.5, 0.0, 0.0, 1.0), False, False)
    assert group.dirty is True
    assert group.dirty_rect is None


def test_node_parameters_round_trip():
    params = NodeLayerParameters(
        opacity=0.25, visible=False, lock=True, alpha_clip=True,
        alpha_lock=True, passthrough=True, blend_mode=BrushBlendMode.HARD_LIGHT,
    )
    stored = params.to_dict()
    assert stored["blend_mode"] == "HardLight"
    assert NodeLayerParameters.from_dict(stored) == params


def test_node_parameters_missing_field():
    stored = NodeLayerParameters().to_dict()
    del stored["lock"]
    with pytest.raises(ValueError):
        NodeLayerParameters.from_dict(stored)


def test_filter_parameters_round_trip():
    params = FilterLayerParameters(visible=False, lock=True)
    assert FilterLayerParameters.from_dict(params.to_dict()) == params


def test_layer_tree_round_trip():
    group = Layer.new_group("Group")
    pixel = _pixel_at("Pixel", 3, 4, 5, 6)
    pixel.opacity = 0.5
    pixel.filters.append(_filter("blur"))
    group.append(0, pixel)
    group.append(1, _fill())

    stored = json.loads(json.dumps(group.to_dict()))
    assert stored["type"] == "Group"
    assert stored["data"]["layers"][0]["type"] == "Pixel"

    restored = Layer.from_dict(stored)
    assert restored.id == group.id
    assert isinstance(restored.id, uuid.UUID)
    assert restored.name == "Group"
    assert (restored.x, restored.y, restored.width, restored.height) == (
        group.x, group.y, group.width, group.height,
    )
    child = restored.children[0]
    assert child.id == pixel.id
    assert child.opacity == 0.5
    assert (child.x, child.y, child.width, child.height) == (3, 4, 5, 6)
    assert child.pixel_data.size == 0
    assert [f.name for f in child.filters] == ["blur"]
    assert restored.children[1].kind is LayerKind.FILL
    assert restored.dirty is False and restored.dirty_rect is None
    assert restored.to_dict() == stored


def test_from_dict_rejects_unknown_type():
    stored = Layer.new_group("g").to_dict()
    stored["type"] = "Vector"
    with pytest.raises(ValueError):
        Layer.from_dict(stored)


def test_from_dict_rejects_bad_id():
    stored = Layer.new_group("g").to_dict()
    stored["id"] = "not-an-id"
    with pytest.raises(ValueError):
        Layer.from_dict(stored)