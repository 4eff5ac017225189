"""Compile block style settings into utility classes."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

PADDING: dict[str, str] = {
    "none": "",
    "xs": "py-2",
    "sm": "py-4",
    "md": "py-8",
    "lg": "py-16",
    "xl": "py-24",
    "2xl": "py-32",
}

MARGIN: dict[str, str] = {
    "none": "",
    "xs": "my-1",
    "sm": "my-2",
    "md": "my-4",
    "lg": "my-8",
    "xl": "my-12",
}

TEXT_ALIGN: dict[str, str] = {
    "left": "text-left",
    "center": "text-center",
    "right": "text-right",
    "justify": "text-justify",
}

BACKGROUNDS: dict[str, str] = {
    "transparent": "bg-transparent",
    "white": "bg-white",
    "gray-50": "bg-gray-50",
    "gray-100": "bg-gray-100",
    "blue-500": "bg-blue-500",
    "blue-600": "bg-blue-600",
    "green-500": "bg-green-500",
    "red-500": "bg-red-500",
    "purple-500": "bg-purple-500",
}

TEXT_COLORS: dict[str, str] = {
    "inherit": "text-inherit",
    "black": "text-black",
    "white": "text-white",
    "gray-600": "text-gray-600",
    "gray-800": "text-gray-800",
    "blue-600": "text-blue-600",
}

# style key -> lookup table, in output order
STYLE_MAPS: dict[str, dict[str, str]] = {
    "padding": PADDING,
    "margin": MARGIN,
    "textAlign": TEXT_ALIGN,
    "backgroundColor": BACKGROUNDS,
    "textColor": TEXT_COLORS,
}

RESPONSIVE_PREFIXES: dict[str, str] = {
    "sm": "sm:",
    "md": "md:",
    "lg": "lg:",
    "xl": "xl:",
    "2xl": "2xl:",
}


def compile_style_classes(styles: Mapping[str, Any]) -> str:
    """
    Map style settings to a class string.

    Unknown keys and values are ignored.  ``styles["responsive"]`` may hold
    per-breakpoint overrides, e.g. ``{"md": {"textAlign": "left"}}``.
    """
    classes: list[str] = []
    for key, table in STYLE_MAPS.items():
        value = styles.get(key)
        if value is not None:
            classes.append(table.get(str(value), ""))

    responsive = styles.get("responsive") or {}
    for breakpoint, overrides in responsive.items():
        prefix = RESPONSIVE_PREFIXES.get(breakpoint)
        if prefix is None or not isinstance(overrides, Mapping):
            continue
        for key, value in overrides.items():
            css_class = STYLE_MAPS.get(key, {}).get(str(value))
            if css_class:
                classes.append(prefix + css_class)

    return " ".join(css_class for css_class in classes if css_class)
