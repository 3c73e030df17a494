"""Fixed-step sampling of a lane section's center lane."""

import logging
from typing import Optional, Sequence, Union

from xodr2engine.core.entities import GeometryMarker, Point, Section
from xodr2engine.element.core import Geometry, PlanView, Poly3, Poly3Profile
from xodr2engine.geometry.core import ARC_LENGTH_TOLERANCE
from xodr2engine.status import GeometryResolutionError


LOG = logging.getLogger("sampling")

MIN_STEP = 0.1


def clamp_step(step: Optional[float]) -> float:
    """Sampling step floored to :data:`MIN_STEP`; unset values use the floor."""

    if step is None:
        return MIN_STEP
    return max(MIN_STEP, float(step))


def _resolve_geometry(
    plan_view: PlanView,
    road_s: float,
    section: Section,
    section_s: float,
    tail_ok: bool,
) -> Optional[Geometry]:
    idx = plan_view.find(road_s)
    if idx is not None and idx < 0:
        raise GeometryResolutionError(
            f"{section.id}: road s={road_s:.6f} lies before the first plan-view geometry"
        )
    if idx is not None:
        return plan_view[idx]

    if not tail_ok:
        raise GeometryResolutionError(
            f"{section.id}: no plan-view geometry covers road s={road_s:.6f} "
            f"(section s={section_s:.6f} of {section.length:.6f})"
        )
    LOG.debug("%s: plan view ends at road s=%.6f", section.id, road_s)
    return None


def sample_center_lane(
    section: Section,
    geometries: Union[PlanView, Sequence[Geometry]],
    lane_offsets: Union[Poly3Profile, Sequence[Poly3]],
    step: float,
    road_s: float,
    tail_ok: bool = True,
) -> float:
    """Sample the center lane of ``section`` and return the advanced road arc-length.

    ``road_s`` is the road-level arc-length at which the section starts; the
    plan view and lane offsets are indexed by it.  Pass a :class:`PlanView`
    and a :class:`Poly3Profile` to reuse their lookup tables across the
    sections of a road.  Points are written to the center lane's central
    curve and, since the center lane has no width, to both of its
    boundaries.  A geometry marker is recorded whenever sampling enters a new
    plan-view geometry.

    The ``n``-th sample sits at ``n * step`` along the section.  The first
    grid position that reaches the section end (or overshoots it, or falls
    within :data:`ARC_LENGTH_TOLERANCE` of it) is snapped onto the end and
    is the last sample.  Running out of plan view ends the section quietly
    when ``tail_ok`` is true and raises :class:`GeometryResolutionError`
    otherwise.

    The return value is the road-level arc-length of the section end, which
    is where the next section of the same road starts sampling.
    """

    plan_view = geometries if isinstance(geometries, PlanView) else PlanView(geometries)
    offsets = lane_offsets if isinstance(lane_offsets, Poly3Profile) else Poly3Profile(lane_offsets)

    lane = section.center_lane
    lane.central_curve.points.clear()
    lane.left_boundary.curve.points.clear()
    lane.right_boundary.curve.points.clear()
    lane.geometries.clear()

    length = section.length
    road_start = road_s
    point_idx = 0
    current: Optional[Geometry] = None

    while True:
        section_s = point_idx * step
        last = section_s >= length - ARC_LENGTH_TOLERANCE
        if last:
            section_s = length
        road_s = road_start + section_s

        geometry = _resolve_geometry(plan_view, road_s, section, section_s, tail_ok)
        if geometry is None:
            break

        x, y, heading = geometry.point_at(road_s)
        point = Point(x=x, y=y, heading=heading, s=section_s, id=f"{lane.id}_{point_idx}")
        offset = offsets.value_at(road_s)
        if offset != 0:
            point = point.offset(offset)

        if geometry is not current:
            lane.geometries.append(GeometryMarker(geometry.type, point))
            current = geometry

        lane.central_curve.append(point)
        lane.left_boundary.curve.append(point)
        lane.right_boundary.curve.append(point)

        if last:
            break
        point_idx += 1

    return road_start + length
