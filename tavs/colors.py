"""Integer colorimetry: hex/RGB/HSL conversion, blending, state tints.

All math is fixed-point. Hue is degrees x1000 in ``[0, 360000)``;
saturation and lightness are fractions x1000 in ``[0, 1000]``.
"""

from __future__ import annotations

import logging
import string

from .models import HSL, RGB, ColorFormatError, StageColorSet

logger = logging.getLogger(__name__)

_HEX_DIGITS = frozenset(string.hexdigits)
_FULL_TURN = 360000

# (hue offset in degrees, saturation floor, lightness delta) per state,
# applied to the base color by calculate_state_colors().
_STATE_OFFSETS: dict[str, tuple[int, int, int]] = {
    "processing": (30, 350, 40),
    "permission": (-30, 450, 30),
    "complete": (120, 300, 30),
    "idle": (270, 250, 20),
    "compacting": (180, 300, 30),
}


def _clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, value))


def hex_to_rgb(value: str) -> RGB:
    """Parse ``#RGB``/``#RRGGBB`` (hash optional, any case).

    Raises ColorFormatError on malformed input; callers that want the
    documented fallback use ``err.fallback`` (black).
    """
    raw = (value or "").strip()
    if raw.startswith("#"):
        raw = raw[1:]
    if len(raw) == 3:
        raw = "".join(ch * 2 for ch in raw)
    if len(raw) != 6 or not all(ch in _HEX_DIGITS for ch in raw):
        raise ColorFormatError(value)
    return RGB(int(raw[0:2], 16), int(raw[2:4], 16), int(raw[4:6], 16))


def rgb_to_hex(r: int, g: int, b: int) -> str:
    r, g, b = (_clamp(int(c), 0, 255) for c in (r, g, b))
    return f"#{r:02X}{g:02X}{b:02X}"


def normalize_hex(value: str) -> str:
    """Canonical uppercase ``#RRGGBB`` form of a valid hex color."""
    return rgb_to_hex(*hex_to_rgb(value))


def _rgb_or_black(value: str) -> RGB:
    try:
        return hex_to_rgb(value)
    except ColorFormatError as err:
        logger.debug("%s, using black", err)
        return err.fallback


def rgb_to_hsl(r: int, g: int, b: int) -> HSL:
    r, g, b = (_clamp(int(c), 0, 255) for c in (r, g, b))
    hi = max(r, g, b)
    lo = min(r, g, b)
    l = ((hi + lo) * 1000 + 255) // 510  # noqa: E741
    d = hi - lo
    if d == 0:
        return HSL(0, 0, l)

    if hi + lo <= 255:
        s = d * 1000 // (hi + lo)
    else:
        s = d * 1000 // (510 - hi - lo)

    if hi == r:
        h = (g - b) * 60000 // d
    elif hi == g:
        h = (b - r) * 60000 // d + 120000
    else:
        h = (r - g) * 60000 // d + 240000
    return HSL(h % _FULL_TURN, _clamp(s, 0, 1000), l)


def _hue_channel(p: int, q: int, t: int) -> int:
    t %= _FULL_TURN
    if t < 60000:
        return p + (q - p) * t // 60000
    if t < 180000:
        return q
    if t < 240000:
        return p + (q - p) * (240000 - t) // 60000
    return p


def _to_byte(v: int) -> int:
    return _clamp((v * 255 + 500) // 1000, 0, 255)


def hsl_to_rgb(h: int, s: int, l: int) -> RGB:  # noqa: E741
    h = int(h) % _FULL_TURN
    s = _clamp(int(s), 0, 1000)
    l = _clamp(int(l), 0, 1000)  # noqa: E741
    if s == 0:
        v = _to_byte(l)
        return RGB(v, v, v)

    if l < 500:
        q = l * (1000 + s) // 1000
    else:
        q = l + s - l * s // 1000
    p = 2 * l - q
    return RGB(
        _to_byte(_hue_channel(p, q, h + 120000)),
        _to_byte(_hue_channel(p, q, h)),
        _to_byte(_hue_channel(p, q, h - 120000)),
    )


def hex_to_hsl(value: str) -> HSL:
    return rgb_to_hsl(*hex_to_rgb(value))


def hsl_to_hex(hsl: HSL) -> str:
    return rgb_to_hex(*hsl_to_rgb(*hsl))


def is_dark_color(value: str) -> bool:
    """Perceptual luminance (ITU-R 601 weights) below 0.5.

    Pure red counts as dark and pure green as light.
    """
    r, g, b = _rgb_or_black(value)
    luminance = (299 * r + 587 * g + 114 * b) // 255  # x1000
    return luminance < 500


def shift_hue(value: str, degrees: int) -> str:
    h, s, l = rgb_to_hsl(*_rgb_or_black(value))  # noqa: E741
    return hsl_to_hex(HSL((h + int(degrees) * 1000) % _FULL_TURN, s, l))


def interpolate_color(start: str, end: str, t: int) -> str:
    """Per-channel RGB blend; ``t`` in ``[0, 1000]``."""
    t = _clamp(int(t), 0, 1000)
    a = _rgb_or_black(start)
    b = _rgb_or_black(end)
    mixed = [
        (ca * (1000 - t) + cb * t + 500) // 1000 for ca, cb in zip(a, b)
    ]
    return rgb_to_hex(*mixed)


def interpolate_hsl(start: str, end: str, t: int) -> str:
    """Blend in HSL space along the shorter hue arc."""
    t = _clamp(int(t), 0, 1000)
    h1, s1, l1 = rgb_to_hsl(*_rgb_or_black(start))
    h2, s2, l2 = rgb_to_hsl(*_rgb_or_black(end))

    dh = h2 - h1
    if dh > _FULL_TURN // 2:
        dh -= _FULL_TURN
    elif dh < -_FULL_TURN // 2:
        dh += _FULL_TURN

    h = (h1 + dh * t // 1000) % _FULL_TURN
    s = s1 + (s2 - s1) * t // 1000
    l = l1 + (l2 - l1) * t // 1000  # noqa: E741
    return hsl_to_hex(HSL(h, s, l))


def adjust_lightness(value: str, delta: int) -> str:
    h, s, l = rgb_to_hsl(*_rgb_or_black(value))  # noqa: E741
    return hsl_to_hex(HSL(h, s, _clamp(l + int(delta), 0, 1000)))


def adjust_saturation(value: str, delta: int) -> str:
    h, s, l = rgb_to_hsl(*_rgb_or_black(value))  # noqa: E741
    return hsl_to_hex(HSL(h, _clamp(s + int(delta), 0, 1000), l))


def calculate_state_colors(base: str) -> StageColorSet:
    """Derive one background tint per core state from a single base color.

    Dark bases get lighter tints, light bases darker ones, so the tint stays
    readable against the terminal's foreground.
    """
    h, s, l = rgb_to_hsl(*_rgb_or_black(base))  # noqa: E741
    direction = 1 if l < 500 else -1
    colors: dict[str, str] = {}
    for state, (hue_offset, sat_floor, light_delta) in _STATE_OFFSETS.items():
        colors[state] = hsl_to_hex(HSL(
            (h + hue_offset * 1000) % _FULL_TURN,
            max(s, sat_floor),
            _clamp(l + direction * light_delta, 0, 1000),
        ))
    return StageColorSet(**colors)
