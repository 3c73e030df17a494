"""Sampled road-surface entities published by the conversion pass."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, List, Optional, Set

from xodr2engine.element.core import GeometryType
from xodr2engine.geometry.core import offset_xy


@dataclass
class Point:
    x: float = 0.0
    y: float = 0.0
    heading: float = 0.0
    s: float = 0.0
    id: str = ""

    def offset(self, distance: float, point_id: Optional[str] = None) -> "Point":
        """Copy displaced laterally by ``distance`` (left positive), same ``s`` and heading."""

        x, y = offset_xy(self.x, self.y, self.heading, distance)
        return replace(self, x=x, y=y, id=self.id if point_id is None else point_id)


@dataclass
class Curve:
    points: List[Point] = field(default_factory=list)

    def append(self, point: Point) -> None:
        self.points.append(point)

    def __iter__(self) -> Iterator[Point]:
        return iter(self.points)

    def __len__(self) -> int:
        return len(self.points)

    def __getitem__(self, idx: int) -> Point:
        return self.points[idx]


@dataclass
class Boundary:
    curve: Curve = field(default_factory=Curve)


@dataclass
class GeometryMarker:
    """First sample taken inside a newly entered plan-view geometry."""

    type: GeometryType
    point: Point


@dataclass
class Lane:
    id: str
    parent_id: str
    type: str = ""
    left_boundary: Boundary = field(default_factory=Boundary)
    central_curve: Curve = field(default_factory=Curve)
    right_boundary: Boundary = field(default_factory=Boundary)
    geometries: List[GeometryMarker] = field(default_factory=list)


@dataclass
class Section:
    id: str
    parent_id: str
    start_position: float
    end_position: float
    center_lane: Optional[Lane] = None
    left_lanes: List[Lane] = field(default_factory=list)
    right_lanes: List[Lane] = field(default_factory=list)

    @property
    def length(self) -> float:
        return self.end_position - self.start_position

    def lanes(self) -> Iterator[Lane]:
        if self.center_lane is not None:
            yield self.center_lane
        yield from self.left_lanes
        yield from self.right_lanes


@dataclass
class RoadInfo:
    s: float
    type: str


@dataclass
class Road:
    id: str
    name: str = ""
    junction_id: Optional[str] = None
    length: float = 0.0
    rule: str = ""
    predecessor_ids: Set[str] = field(default_factory=set)
    successor_ids: Set[str] = field(default_factory=set)
    info: List[RoadInfo] = field(default_factory=list)
    sections: List[Section] = field(default_factory=list)


@dataclass
class Junction:
    id: str
    name: str = ""
    type: str = ""


@dataclass
class Header:
    rev_major: int = 0
    rev_minor: int = 0
    name: str = ""
    version: str = ""
    date: str = ""
    north: float = 0.0
    south: float = 0.0
    west: float = 0.0
    east: float = 0.0
    vendor: str = ""


@dataclass
class Data:
    """Identifier-keyed output store shared with downstream consumers."""

    header: Optional[Header] = None
    roads: Dict[str, Road] = field(default_factory=dict)
    sections: Dict[str, Section] = field(default_factory=dict)
    lanes: Dict[str, Lane] = field(default_factory=dict)
    junctions: Dict[str, Junction] = field(default_factory=dict)

    def publish_road(self, road: Road) -> None:
        self.roads[road.id] = road
        for section in road.sections:
            self.sections[section.id] = section
            for lane in section.lanes():
                self.lanes[lane.id] = lane
