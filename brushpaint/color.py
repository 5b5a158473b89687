"""Conversions between HSV, HSL, sRGB and Oklab colours.

HSV and HSL hold hue in degrees and the other two components in 0..100.
RGB components are in 0..1.
"""

from __future__ import annotations

import math

Triple = tuple[float, float, float]

_EPSILON = 1e-6

_SRGB_TO_LMS = (
    (0.4122214708, 0.5363325363, 0.0514459929),
    (0.2119034982, 0.6806995451, 0.1073969566),
    (0.0883024619, 0.2817188376, 0.6299787005),
)

_LMS_TO_OKLAB = (
    (0.2104542553, 0.7936177850, -0.0040720468),
    (1.9779984951, -2.4285922050, 0.4505937099),
    (0.0259040371, 0.7827717662, -0.8086757660),
)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def hsv_to_srgb(hsv: Triple) -> Triple:
    """Convert an HSV colour to RGB components."""
    h, s, v = hsv
    s = _clamp(s * 0.01, 0.0, 1.0)
    v = _clamp(v * 0.01, 0.0, 1.0)

    h_prime = h % 360.0
    c = v * s
    x = c * (1.0 - abs((h_prime / 60.0) % 2.0 - 1.0))
    m = v - c

    if h_prime < 60.0:
        r, g, b = c, x, 0.0
    elif h_prime < 120.0:
        r, g, b = x, c, 0.0
    elif h_prime < 180.0:
        r, g, b = 0.0, c, x
    elif h_prime < 240.0:
        r, g, b = 0.0, x, c
    elif h_prime < 300.0:
        r, g, b = x, 0.0, c
    else:
        r, g, b = c, 0.0, x

    return (r + m, g + m, b + m)


def srgb_to_hsl(rgb: Triple) -> Triple:
    """Convert RGB components to HSL; achromatic colours get hue 0."""
    r, g, b = rgb
    high = max(r, g, b)
    low = min(r, g, b)
    hue = 0.0
    sat = 0.0
    light = 0.5 * (low + high)
    d = high - low

    if d > _EPSILON:
        denom = min(light, 1.0 - light)
        if abs(denom) > _EPSILON:
            sat = (high - light) / denom
        if high == r:
            hue = (g - b) / d
        elif high == g:
            hue = (b - r) / d + 2.0
        else:
            hue = (r - g) / d + 4.0
        hue *= 60.0
        if sat < 0.0:
            hue += 180.0
            sat = abs(sat)
        hue %= 360.0

    return (hue, sat * 100.0, light * 100.0)


def srgb_to_hsv(rgb: Triple) -> Triple:
    """Convert RGB components to HSV."""
    return hsl_to_hsv(srgb_to_hsl(rgb))


def hsv_to_hsl(hsv: Triple) -> Triple:
    """Convert an HSV colour to HSL."""
    h, s_v, v = hsv
    s_v *= 0.01
    v *= 0.01

    lightness = v * (1.0 - s_v / 2.0)
    if lightness in (0.0, 1.0):
        s_l = 0.0
    else:
        s_l = (v - lightness) / min(lightness, 1.0 - lightness)

    return (h, s_l * 100.0, lightness * 100.0)


def hsl_to_hsv(hsl: Triple) -> Triple:
    """Convert an HSL colour to HSV."""
    h, s_l, lightness = hsl
    s_l *= 0.01
    lightness *= 0.01

    v = lightness + s_l * min(lightness, 1.0 - lightness)
    s_v = 0.0 if v == 0.0 else 2.0 * (1.0 - lightness / v)

    return (h, s_v * 100.0, v * 100.0)


def hsv_clip(hsv: Triple) -> Triple:
    """Clamp an HSV colour into its valid range."""
    h, s, v = hsv
    return (h, max(s, 0.0), _clamp(v, 0.0, 100.0))


def hsv_to_rgba8(hsv: Triple) -> tuple[int, int, int, int]:
    """Convert an opaque HSV colour to 8-bit RGBA."""
    r, g, b = hsv_to_srgb(hsv)
    return (
        round(_clamp(r, 0.0, 1.0) * 255.0),
        round(_clamp(g, 0.0, 1.0) * 255.0),
        round(_clamp(b, 0.0, 1.0) * 255.0),
        255,
    )


def hsv_to_rgba(hsv: Triple) -> tuple[float, float, float, float]:
    """Convert an opaque HSV colour to floating point RGBA quantised to 8 bits."""
    r, g, b, _ = hsv_to_rgba8(hsv)
    return (r / 255.0, g / 255.0, b / 255.0, 1.0)


def hsv_to_oklab(hsv: Triple) -> Triple:
    """Convert an HSV colour to Oklab, reading its RGB as linear light."""
    rgb = hsv_to_srgb(hsv)
    lms = [math.copysign(abs(v) ** (1.0 / 3.0), v) for v in (
        sum(m * c for m, c in zip(row, rgb)) for row in _SRGB_TO_LMS
    )]
    lab = tuple(sum(m * c for m, c in zip(row, lms)) for row in _LMS_TO_OKLAB)
    return (lab[0], lab[1], lab[2])