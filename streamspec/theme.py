from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Any, Mapping

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}([0-9a-fA-F]{2})?$")

DEFAULT_THEME = "dark"


@dataclass(frozen=True)
class ThemeTokens:
    """Colors asserted on axes, legends and labels so text stays legible."""

    text: str
    text_secondary: str
    line: str
    gridline: str
    background: str = "transparent"

    def as_dict(self) -> dict[str, str]:
        return {
            "text": self.text,
            "textSecondary": self.text_secondary,
            "line": self.line,
            "gridline": self.gridline,
            "background": self.background,
        }


DARK_TOKENS = ThemeTokens(
    text="#E5E5E5",
    text_secondary="#9CA3AF",
    line="#6B7280",
    gridline="#374151",
)

LIGHT_TOKENS = ThemeTokens(
    text="#1F2937",
    text_secondary="#6B7280",
    line="#9CA3AF",
    gridline="#E5E7EB",
)

_THEMES: dict[str, ThemeTokens] = {"dark": DARK_TOKENS, "light": LIGHT_TOKENS}


def theme_tokens(name: str | None = None) -> ThemeTokens:
    if name is None:
        return _THEMES[DEFAULT_THEME]
    try:
        return _THEMES[name]
    except KeyError:
        raise ValueError(f"Unknown theme: {name}") from None


def validate_theme_tokens(base: ThemeTokens, overrides: Mapping[str, Any] | None = None) -> ThemeTokens:
    """Merge color overrides onto ``base``; keys use the ``as_dict`` names."""
    raw: dict[str, Any] = {
        "text": base.text,
        "textSecondary": base.text_secondary,
        "line": base.line,
        "gridline": base.gridline,
        "background": base.background,
    }
    if overrides:
        for key, value in overrides.items():
            if key not in raw:
                raise ValueError(f"Unknown theme token: {key}")
            raw[key] = value

    for key in ("text", "textSecondary", "line", "gridline"):
        if not isinstance(raw[key], str) or not _HEX_COLOR.match(raw[key]):
            raise ValueError(f"Token `{key}` must be a hex color (#RRGGBB or #RRGGBBAA)")
    background = raw["background"]
    if not isinstance(background, str) or not (background == "transparent" or _HEX_COLOR.match(background)):
        raise ValueError("Token `background` must be a hex color or `transparent`")

    return ThemeTokens(
        text=str(raw["text"]),
        text_secondary=str(raw["textSecondary"]),
        line=str(raw["line"]),
        gridline=str(raw["gridline"]),
        background=str(background),
    )


def theme_config(name: str | None = None) -> dict[str, Any]:
    """Renderer theme fragment for ``name`` (dark when None)."""
    return theme_config_from_tokens(theme_tokens(name))


def theme_config_from_tokens(colors: ThemeTokens) -> dict[str, Any]:
    return {
        "view": {"viewFill": colors.background},
        "label": {"fill": colors.text, "fontSize": 11, "fillOpacity": 1},
        "axis": {
            "x": _axis_theme(colors),
            "y": _axis_theme(colors),
        },
        "legend": {
            "label": {"fill": colors.text, "fontSize": 12, "fillOpacity": 1},
            "title": {"fill": colors.text, "fontSize": 12, "fillOpacity": 1},
            "itemLabel": {"fill": colors.text, "fontSize": 12, "fillOpacity": 1},
            "itemName": {"fill": colors.text, "fontSize": 12, "fillOpacity": 1},
            "itemValue": {"fill": colors.text_secondary, "fontSize": 12, "fillOpacity": 1},
        },
        "legendCategory": {
            "itemLabel": {"fill": colors.text, "fillOpacity": 1},
            "itemName": {"fill": colors.text, "fillOpacity": 1},
        },
    }


def _axis_theme(colors: ThemeTokens) -> dict[str, Any]:
    return {
        "line": {"stroke": colors.line, "strokeOpacity": 1},
        "tick": {"stroke": colors.line, "strokeOpacity": 1},
        "label": {"fill": colors.text, "fontSize": 11, "fillOpacity": 1},
        "title": {"fill": colors.text, "fontSize": 12, "fontWeight": 500, "fillOpacity": 1},
        "grid": {"stroke": colors.gridline},
    }
