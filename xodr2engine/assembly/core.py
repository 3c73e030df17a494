"""Map parsed OpenDRIVE records onto the engine entities."""

from typing import List

from xodr2engine.core.entities import (
    Header,
    Junction,
    Lane,
    Point,
    Road,
    RoadInfo,
    Section,
)
from xodr2engine.element import core as element
from xodr2engine.lane_builder import build_lane
from xodr2engine.sampling import sample_center_lane
from xodr2engine.status import CenterLaneCardinalityError


def convert_header(ele_header: element.Header) -> Header:
    return Header(
        rev_major=ele_header.rev_major,
        rev_minor=ele_header.rev_minor,
        name=ele_header.name,
        version=ele_header.version,
        date=ele_header.date,
        north=ele_header.north,
        south=ele_header.south,
        west=ele_header.west,
        east=ele_header.east,
        vendor=ele_header.vendor,
    )


def convert_junction(ele_junction: element.Junction) -> Junction:
    return Junction(id=str(ele_junction.id), name=ele_junction.name, type=ele_junction.type)


def convert_road_attr(ele_road: element.Road) -> Road:
    """Copy the road attributes, links and type records (no sections yet)."""

    road = Road(
        id=str(ele_road.id),
        name=ele_road.name,
        junction_id=str(ele_road.junction_id) if ele_road.junction_id >= 0 else None,
        length=ele_road.length,
        rule=ele_road.rule,
    )
    # OpenDRIVE allows at most one predecessor and one successor per road.
    if ele_road.link.predecessor_id != -1:
        road.predecessor_ids.add(str(ele_road.link.predecessor_id))
    if ele_road.link.successor_id != -1:
        road.successor_ids.add(str(ele_road.link.successor_id))
    for ele_info in ele_road.type_info:
        road.info.append(RoadInfo(s=ele_info.start_position, type=ele_info.type))
    return road


def _new_lane(section: Section, ele_lane: element.Lane) -> Lane:
    return Lane(id=f"{section.id}_{ele_lane.id}", parent_id=section.id, type=ele_lane.type)


def convert_sections(ele_road: element.Road, road: Road, step: float, sink: List[Point]) -> None:
    """Build and sample every lane section of ``ele_road`` into ``road``.

    Sections are handled in source order with one road-level arc-length
    accumulator.  Outward lanes take the previous lane's right boundary as
    their reference line, starting from the center lane's left (or right)
    boundary.  Lane centerline points are appended to ``sink``.

    Raises :class:`CenterLaneCardinalityError` when a section does not have
    exactly one center lane, and lets :class:`GeometryResolutionError`
    propagate from the sampler.
    """

    ele_sections = ele_road.lane_sections
    plan_view = element.PlanView(ele_road.plan_view)
    lane_offsets = element.Poly3Profile(ele_road.lane_offsets)
    road_s = ele_sections[0].start_position if ele_sections else 0.0
    last_idx = len(ele_sections) - 1

    for section_idx, ele_section in enumerate(ele_sections):
        section = Section(
            id=f"{road.id}_{section_idx}",
            parent_id=road.id,
            start_position=ele_section.start_position,
            end_position=ele_section.end_position,
        )
        road.sections.append(section)

        if len(ele_section.center) != 1:
            raise CenterLaneCardinalityError(
                f"{section.id} center lane size {len(ele_section.center)} not equal 1."
            )
        center = Lane(id=f"{section.id}_0", parent_id=section.id, type=ele_section.center[0].type)
        section.center_lane = center
        road_s = sample_center_lane(
            section,
            plan_view,
            lane_offsets,
            step,
            road_s,
            tail_ok=section_idx == last_idx,
        )

        reference = center.left_boundary.curve
        for ele_lane in ele_section.left:
            lane = _new_lane(section, ele_lane)
            section.left_lanes.append(lane)
            reference = build_lane(lane, reference, ele_lane.width_at, sink)

        reference = center.right_boundary.curve
        for ele_lane in ele_section.right:
            lane = _new_lane(section, ele_lane)
            section.right_lanes.append(lane)
            reference = build_lane(lane, reference, ele_lane.width_at, sink)
