"""Planar helpers shared by the element records and the samplers."""

import bisect
import math
from typing import Optional, Sequence, Tuple

from scipy.special import fresnel


ARC_LENGTH_TOLERANCE = 1e-6


def normalize_angle(angle: float) -> float:
    while angle > math.pi:
        angle -= 2.0 * math.pi
    while angle < -math.pi:
        angle += 2.0 * math.pi
    return angle


def offset_xy(x: float, y: float, heading: float, offset: float) -> Tuple[float, float]:
    """Move ``(x, y)`` by ``offset`` along the left normal of ``heading``.

    Positive offsets go to the left of the direction of travel, negative ones
    to the right, which matches the OpenDRIVE ``t`` axis.
    """

    return x - offset * math.sin(heading), y + offset * math.cos(heading)


def advance_pose(
    start_x: float,
    start_y: float,
    start_hdg: float,
    curvature: float,
    length: float,
) -> Tuple[float, float, float]:
    """Integrate a constant-curvature segment from the provided pose."""

    if abs(curvature) <= 1e-12:
        end_x = start_x + length * math.cos(start_hdg)
        end_y = start_y + length * math.sin(start_hdg)
        end_hdg = start_hdg
    else:
        end_hdg = start_hdg + curvature * length
        radius = 1.0 / curvature
        dx = radius * (math.sin(end_hdg) - math.sin(start_hdg))
        dy = -radius * (math.cos(end_hdg) - math.cos(start_hdg))
        end_x = start_x + dx
        end_y = start_y + dy
    return end_x, end_y, normalize_angle(end_hdg)


def clothoid_point(s: float, curvature_rate: float) -> Tuple[float, float, float]:
    """Pose on the canonical clothoid (origin, heading 0, curvature 0 at s=0).

    ``curvature_rate`` is the constant derivative of the curvature along the
    curve.  Uses the Fresnel integrals ``C(z)`` and ``S(z)`` scaled so that
    ``pi * z**2 / 2 == curvature_rate * s**2 / 2``.
    """

    if abs(curvature_rate) <= 1e-12:
        return s, 0.0, 0.0
    scale = math.sqrt(math.pi / abs(curvature_rate))
    fresnel_s, fresnel_c = fresnel(s / scale)
    x = scale * float(fresnel_c)
    y = scale * float(fresnel_s)
    if curvature_rate < 0.0:
        y = -y
    return x, y, 0.5 * curvature_rate * s * s


def cubic(a: float, b: float, c: float, d: float, ds: float) -> float:
    return a + ds * (b + ds * (c + ds * d))


def cubic_derivative(b: float, c: float, d: float, ds: float) -> float:
    return b + ds * (2.0 * c + ds * 3.0 * d)


def last_start_index(starts: Sequence[float], s: float) -> int:
    """Index of the last record whose start is ``<= s`` or ``-1``.

    ``starts`` must be sorted ascending.  A small tolerance lets an
    arc-length that accumulated rounding error just below a record start
    still resolve to that record.
    """

    return bisect.bisect_right(starts, s + 1e-9) - 1


def covering_index(starts: Sequence[float], ends: Sequence[float], s: float) -> Optional[int]:
    """Index of the segment whose ``[start, end]`` range contains ``s``.

    Returns ``-1`` when ``s`` lies before the first segment and ``None`` when it
    lies past the end of the last one (or inside a gap between two segments).
    """

    if not starts:
        return None
    if s < starts[0] - ARC_LENGTH_TOLERANCE:
        return -1
    idx = max(last_start_index(starts, s), 0)
    if s > ends[idx] + ARC_LENGTH_TOLERANCE:
        return None
    return idx
