from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Sequence, Union
import math
from datetime import datetime, timezone

Number = Union[int, float]
Point = tuple[float, float]


def is_valid_number(v: Any) -> bool:
    """Check if value is a real finite number (not None/NaN/bool)."""
    if isinstance(v, bool):
        return False
    try:
        return v is not None and math.isfinite(float(v))
    except (TypeError, ValueError):
        return False


def to_aware_utc(v: Optional[datetime]) -> datetime:
    """Return an aware UTC datetime; None means now."""
    if v is None:
        return datetime.now(timezone.utc)
    return v.astimezone(timezone.utc) if v.tzinfo else v.replace(tzinfo=timezone.utc)


def to_point(p: Any) -> Point:
    """Read one boundary node: an (x, y) pair or a mapping with lng/lat."""
    if isinstance(p, Mapping):
        x, y = p.get("lng", p.get("lon")), p.get("lat")
    elif isinstance(p, Sequence) and not isinstance(p, (str, bytes)) and len(p) >= 2:
        x, y = p[0], p[1]
    else:
        raise ValueError(f"Unsupported boundary point: {p!r}")
    if not (is_valid_number(x) and is_valid_number(y)):
        raise ValueError(f"Boundary point has non-numeric coordinates: {p!r}")
    return float(x), float(y)


def normalize_points(nodes: Iterable[Any]) -> list[Point]:
    return [to_point(p) for p in nodes]


def polygon_area(nodes: Iterable[Any]) -> float:
    """
    Planar shoelace area of a closed ring given as ordered points.
    Fewer than 3 points encloses nothing and yields 0. The result does not
    depend on the starting point or the winding direction.
    """
    pts = normalize_points(nodes)
    n = len(pts)
    if n < 3:
        return 0.0
    twice = 0.0
    for i in range(n):
        x1, y1 = pts[i]
        x2, y2 = pts[(i + 1) % n]
        twice += x1 * y2 - x2 * y1
    return abs(twice) / 2.0
