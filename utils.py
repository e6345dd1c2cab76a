# utils.py
# This file contains utility functions used across the schema diagram engine.

import re
import uuid

import constants

_COLOR_HEX_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
# A language tag only counts when it is alone on the fence line.
_OPENING_FENCE_RE = re.compile(r"^```(?:[\w+-]*[ \t]*(?:\n|$))?")
_CLOSING_FENCE_RE = re.compile(r"\n?```\s*$")


def generate_id(prefix=""):
    """Returns a short random id, e.g. 'table-3f9a0c12d4'."""
    return f"{prefix}{uuid.uuid4().hex[:constants.ID_LENGTH]}"


def snap_to_grid(value, grid_size):
    """Snaps a value to the nearest grid line."""
    if grid_size == 0: return value
    return round(value / grid_size) * grid_size


def is_valid_color_hex(value):
    """True for '#rgb', '#rrggbb' and '#rrggbbaa' strings."""
    return isinstance(value, str) and bool(_COLOR_HEX_RE.match(value))


def strip_code_fences(text):
    """
    Removes a leading ``` fence (optionally tagged, e.g. ```dbml) and a trailing
    ``` fence from text returned by a chat completion service.
    """
    if not text:
        return ""
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = _OPENING_FENCE_RE.sub("", stripped, count=1)
        stripped = _CLOSING_FENCE_RE.sub("", stripped)
    return stripped.strip()
