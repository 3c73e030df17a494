import math
import xml.etree.ElementTree as ET
from typing import Optional

from xodr2engine.status import MapParseError


def attr_float(elem: ET.Element, name: str, default: Optional[float] = None) -> float:
    """Read a floating point attribute, raising :class:`MapParseError` when invalid."""

    raw = elem.get(name)
    if raw is None or not raw.strip():
        if default is None:
            raise MapParseError(f"<{elem.tag}> is missing attribute '{name}'")
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise MapParseError(f"<{elem.tag}> {name}={raw!r} is not a number") from exc
    if not math.isfinite(value):
        raise MapParseError(f"<{elem.tag}> {name}={raw!r} is not finite")
    return value


def attr_int(elem: Optional[ET.Element], name: str, default: int = -1) -> int:
    """Read an integer identifier; missing or blank attributes yield ``default``."""

    if elem is None:
        return default
    raw = elem.get(name)
    if raw is None or not raw.strip():
        return default
    text = raw.strip()
    try:
        return int(text)
    except ValueError:
        pass
    # Some exporters write identifiers as ``"12.0"``.
    try:
        value = float(text)
    except ValueError as exc:
        raise MapParseError(f"<{elem.tag}> {name}={raw!r} is not an integer id") from exc
    if not value.is_integer():
        raise MapParseError(f"<{elem.tag}> {name}={raw!r} is not an integer id")
    return int(value)


def attr_str(elem: Optional[ET.Element], name: str, default: str = "") -> str:
    if elem is None:
        return default
    value = elem.get(name)
    return default if value is None else value
