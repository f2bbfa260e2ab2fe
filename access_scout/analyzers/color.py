# access_scout/analyzers/color.py
"""
CSS colour parsing and WCAG 2.x contrast arithmetic.
"""
from __future__ import annotations

import re
from typing import NamedTuple, Optional

__all__ = (
    "RGBA",
    "WHITE",
    "parse_color",
    "composite",
    "relative_luminance",
    "contrast_ratio",
)

_RGB_RE = re.compile(r"rgba?\(\s*([^)]*)\)", re.IGNORECASE)
_HEX_RE = re.compile(r"^#([0-9a-f]{3,8})$", re.IGNORECASE)

_NAMED = {
    "black": (0, 0, 0),
    "white": (255, 255, 255),
    "red": (255, 0, 0),
    "green": (0, 128, 0),
    "blue": (0, 0, 255),
    "gray": (128, 128, 128),
    "grey": (128, 128, 128),
}


class RGBA(NamedTuple):
    r: float
    g: float
    b: float
    a: float = 1.0


WHITE = RGBA(255.0, 255.0, 255.0, 1.0)


def _channel(token: str) -> float:
    token = token.strip()
    if token.endswith("%"):
        return float(token[:-1]) * 2.55
    return float(token)


def parse_color(value: Optional[str]) -> Optional[RGBA]:
    """Parse ``rgb()``/``rgba()``, hex and a few named colours.

    Returns *None* for anything unparseable (gradients, ``currentcolor``...).
    """
    if not value:
        return None
    text = value.strip().lower()
    if text == "transparent":
        return RGBA(0.0, 0.0, 0.0, 0.0)
    if text in _NAMED:
        r, g, b = _NAMED[text]
        return RGBA(float(r), float(g), float(b), 1.0)

    m = _RGB_RE.search(text)
    if m:
        parts = [p for p in re.split(r"[\s,/]+", m.group(1)) if p]
        if len(parts) < 3:
            return None
        try:
            r, g, b = (_channel(p) for p in parts[:3])
            a = 1.0
            if len(parts) > 3:
                alpha = parts[3]
                a = float(alpha[:-1]) / 100 if alpha.endswith("%") else float(alpha)
        except ValueError:
            return None
        return RGBA(r, g, b, max(0.0, min(1.0, a)))

    m = _HEX_RE.match(text)
    if m:
        digits = m.group(1)
        if len(digits) in (3, 4):
            digits = "".join(c * 2 for c in digits)
        if len(digits) not in (6, 8):
            return None
        r, g, b = (int(digits[i:i + 2], 16) for i in (0, 2, 4))
        a = int(digits[6:8], 16) / 255 if len(digits) == 8 else 1.0
        return RGBA(float(r), float(g), float(b), a)
    return None


def composite(fg: RGBA, bg: RGBA) -> RGBA:
    """Alpha-blend *fg* over an opaque *bg*."""
    a = fg.a
    return RGBA(
        fg.r * a + bg.r * (1 - a),
        fg.g * a + bg.g * (1 - a),
        fg.b * a + bg.b * (1 - a),
        1.0,
    )


def _linear(c: float) -> float:
    s = c / 255
    return s / 12.92 if s <= 0.03928 else ((s + 0.055) / 1.055) ** 2.4


def relative_luminance(color: RGBA) -> float:
    return 0.2126 * _linear(color.r) + 0.7152 * _linear(color.g) + 0.0722 * _linear(color.b)


def contrast_ratio(a: RGBA, b: RGBA) -> float:
    la, lb = relative_luminance(a), relative_luminance(b)
    hi, lo = max(la, lb), min(la, lb)
    return (hi + 0.05) / (lo + 0.05)
