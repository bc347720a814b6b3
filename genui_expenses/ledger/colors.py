"""
Color Resolver

Turns whatever color string the model produced ("purple", "#4CAF50",
"ff2196f3", "sort of blue") into a concrete ARGB value.

CRITICAL: resolve() never raises. A malformed color from the model
degrades to neutral grey instead of aborting the tool call.
"""

import re

from genui_expenses.models.ledger import Color


# Material palette, keyed by lowercase name
NAMED_COLORS: dict[str, Color] = {
    "red": Color(value=0xFFF44336),
    "pink": Color(value=0xFFE91E63),
    "purple": Color(value=0xFF9C27B0),
    "deep purple": Color(value=0xFF673AB7),
    "indigo": Color(value=0xFF3F51B5),
    "blue": Color(value=0xFF2196F3),
    "light blue": Color(value=0xFF03A9F4),
    "cyan": Color(value=0xFF00BCD4),
    "teal": Color(value=0xFF009688),
    "green": Color(value=0xFF4CAF50),
    "light green": Color(value=0xFF8BC34A),
    "lime": Color(value=0xFFCDDC39),
    "yellow": Color(value=0xFFFFEB3B),
    "amber": Color(value=0xFFFFC107),
    "orange": Color(value=0xFFFF9800),
    "deep orange": Color(value=0xFFFF5722),
    "brown": Color(value=0xFF795548),
    "grey": Color(value=0xFF9E9E9E),
    "blue grey": Color(value=0xFF607D8B),
}

FALLBACK_COLOR = NAMED_COLORS["grey"]

# Suggested colors for the categories the agent creates most often
DEFAULT_CATEGORY_COLORS: dict[str, Color] = {
    "Food & Drink": Color(value=0xFF4CAF50),
    "Travel": Color(value=0xFF2196F3),
    "Work": Color(value=0xFFFF9800),
    "Entertainment": Color(value=0xFF9C27B0),
    "Shopping": Color(value=0xFFE91E63),
    "Health": Color(value=0xFF00BCD4),
    "Other": Color(value=0xFF607D8B),
}

# int(x, 16) would also accept "0x", "_" and signs, so match digits explicitly
_HEX_PATTERN = re.compile(r"[0-9a-fA-F]{6}|[0-9a-fA-F]{8}")


def resolve_color(color_string: str) -> Color:
    """
    Resolve a named or hex color string.

    - Named colors are matched after trimming and lowercasing.
    - "#RRGGBB" / "RRGGBB" get full opacity.
    - "#AARRGGBB" / "AARRGGBB" are taken as-is.
    - Anything else returns FALLBACK_COLOR.
    """
    if not isinstance(color_string, str):
        return FALLBACK_COLOR

    normalized = color_string.strip().lower()
    named = NAMED_COLORS.get(normalized)
    if named is not None:
        return named

    hex_digits = normalized[1:] if normalized.startswith("#") else normalized
    if not _HEX_PATTERN.fullmatch(hex_digits):
        return FALLBACK_COLOR

    if len(hex_digits) == 6:
        hex_digits = "ff" + hex_digits
    return Color(value=int(hex_digits, 16))


def color_to_hex(color: Color) -> str:
    """Serialize as "#RRGGBB", the form used in every tool response."""
    return color.to_hex()
