"""Offset a reference line by a lane's width profile."""

from typing import Callable, List, Optional

from xodr2engine.core.entities import Curve, Lane, Point


def lane_direction(lane_id: str) -> int:
    """``+1`` for left lanes and ``-1`` for right lanes, from the signed id suffix."""

    try:
        index = int(lane_id.rsplit("_", 1)[-1])
    except ValueError as exc:
        raise ValueError(f"lane id {lane_id!r} does not end with a signed lane index") from exc
    return 1 if index > 0 else -1


def build_lane(
    lane: Lane,
    reference_line: Curve,
    width_fn: Callable[[float], float],
    sink: Optional[List[Point]] = None,
) -> Curve:
    """Fill ``lane``'s boundaries and centerline from ``reference_line``.

    For every reference point the lane gets three points at the same ``s``
    and heading: the reference point itself on the left boundary, a point
    half the width away on the central curve and one a full width away on
    the right boundary.  Widths are evaluated at the point's section
    arc-length and signed towards the outside of the road.  Central points
    are also appended to ``sink`` when given.

    Returns the lane's right boundary, the reference line for the next lane
    outward.
    """

    direction = lane_direction(lane.id)
    left = lane.left_boundary.curve
    right = lane.right_boundary.curve
    for point_idx, ref in enumerate(reference_line):
        width = width_fn(ref.s) * direction
        point_id = f"{lane.id}_{point_idx}"

        left.append(ref.offset(0.0, f"{point_id}_1"))

        center = ref.offset(width / 2.0, f"{point_id}_2")
        lane.central_curve.append(center)
        if sink is not None:
            sink.append(center)

        right.append(ref.offset(width, f"{point_id}_3"))

    return right
