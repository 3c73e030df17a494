"""In-memory OpenDRIVE element tree produced by :mod:`xodr2engine.ingest.loader`.

The records stay close to the XML: arc-lengths are road-level for plan-view
geometries and lane offsets, and relative to the lane section start for lane
widths.  Geometry records evaluate themselves at a road-level arc-length.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import ClassVar, List, Optional, Sequence, Tuple

from xodr2engine.geometry.core import (
    advance_pose,
    clothoid_point,
    covering_index,
    cubic,
    cubic_derivative,
    last_start_index,
    normalize_angle,
)


Pose = Tuple[float, float, float]


class GeometryType(enum.Enum):
    LINE = "line"
    ARC = "arc"
    SPIRAL = "spiral"
    POLY3 = "poly3"
    PARAM_POLY3 = "paramPoly3"


@dataclass
class Header:
    rev_major: int = 1
    rev_minor: int = 4
    name: str = ""
    version: str = ""
    date: str = ""
    north: float = 0.0
    south: float = 0.0
    west: float = 0.0
    east: float = 0.0
    vendor: str = ""


@dataclass
class Geometry:
    """A plan-view segment valid over ``[s, s + length]``."""

    s: float
    x: float
    y: float
    hdg: float
    length: float

    type: ClassVar[GeometryType]

    @property
    def end(self) -> float:
        return self.s + self.length

    def point_at(self, s: float) -> Pose:
        """Return ``(x, y, heading)`` at the road-level arc-length ``s``."""

        ds = min(max(s - self.s, 0.0), self.length)
        return self._local_pose(ds)

    def _local_pose(self, ds: float) -> Pose:
        raise NotImplementedError


@dataclass
class LineGeometry(Geometry):
    type: ClassVar[GeometryType] = GeometryType.LINE

    def _local_pose(self, ds: float) -> Pose:
        return advance_pose(self.x, self.y, self.hdg, 0.0, ds)


@dataclass
class ArcGeometry(Geometry):
    curvature: float = 0.0

    type: ClassVar[GeometryType] = GeometryType.ARC

    def _local_pose(self, ds: float) -> Pose:
        return advance_pose(self.x, self.y, self.hdg, self.curvature, ds)


@dataclass
class SpiralGeometry(Geometry):
    curv_start: float = 0.0
    curv_end: float = 0.0

    type: ClassVar[GeometryType] = GeometryType.SPIRAL

    def _local_pose(self, ds: float) -> Pose:
        if self.length <= 0.0:
            return self.x, self.y, normalize_angle(self.hdg)
        rate = (self.curv_end - self.curv_start) / self.length
        if abs(rate) <= 1e-12:
            return advance_pose(self.x, self.y, self.hdg, self.curv_start, ds)

        # The segment is the piece of the canonical clothoid that starts where
        # its curvature equals ``curv_start``.
        s0 = self.curv_start / rate
        x0, y0, t0 = clothoid_point(s0, rate)
        x1, y1, t1 = clothoid_point(s0 + ds, rate)
        rot = self.hdg - t0
        dx = x1 - x0
        dy = y1 - y0
        x = self.x + dx * math.cos(rot) - dy * math.sin(rot)
        y = self.y + dx * math.sin(rot) + dy * math.cos(rot)
        return x, y, normalize_angle(self.hdg + t1 - t0)


@dataclass
class Poly3Geometry(Geometry):
    """Deprecated cubic ``v(u)``; ``u`` is approximated by the arc-length."""

    a: float = 0.0
    b: float = 0.0
    c: float = 0.0
    d: float = 0.0

    type: ClassVar[GeometryType] = GeometryType.POLY3

    def _local_pose(self, ds: float) -> Pose:
        u = ds
        v = cubic(self.a, self.b, self.c, self.d, u)
        slope = cubic_derivative(self.b, self.c, self.d, u)
        cos_h = math.cos(self.hdg)
        sin_h = math.sin(self.hdg)
        x = self.x + u * cos_h - v * sin_h
        y = self.y + u * sin_h + v * cos_h
        return x, y, normalize_angle(self.hdg + math.atan(slope))


@dataclass
class ParamPoly3Geometry(Geometry):
    au: float = 0.0
    bu: float = 1.0
    cu: float = 0.0
    du: float = 0.0
    av: float = 0.0
    bv: float = 0.0
    cv: float = 0.0
    dv: float = 0.0
    normalized: bool = True

    type: ClassVar[GeometryType] = GeometryType.PARAM_POLY3

    def _local_pose(self, ds: float) -> Pose:
        if self.normalized:
            p = ds / self.length if self.length > 0.0 else 0.0
        else:
            p = ds
        u = cubic(self.au, self.bu, self.cu, self.du, p)
        v = cubic(self.av, self.bv, self.cv, self.dv, p)
        du_dp = cubic_derivative(self.bu, self.cu, self.du, p)
        dv_dp = cubic_derivative(self.bv, self.cv, self.dv, p)
        cos_h = math.cos(self.hdg)
        sin_h = math.sin(self.hdg)
        x = self.x + u * cos_h - v * sin_h
        y = self.y + u * sin_h + v * cos_h
        local_hdg = math.atan2(dv_dp, du_dp) if (du_dp or dv_dp) else 0.0
        return x, y, normalize_angle(self.hdg + local_hdg)


@dataclass
class Poly3:
    """Cubic record ``a + b*ds + c*ds^2 + d*ds^3`` with ``ds = s - self.s``."""

    s: float
    a: float = 0.0
    b: float = 0.0
    c: float = 0.0
    d: float = 0.0

    def value_at(self, s: float) -> float:
        return cubic(self.a, self.b, self.c, self.d, s - self.s)


class Poly3Profile:
    """Sorted :class:`Poly3` records with their start arc-lengths precomputed."""

    def __init__(self, records: Sequence[Poly3]) -> None:
        self.records = records
        self._starts = [rec.s for rec in records]

    def value_at(self, s: float) -> float:
        """Value of the last record starting at or before ``s``; 0 when none does."""

        idx = last_start_index(self._starts, s)
        if 0 <= idx < len(self.records):
            return self.records[idx].value_at(s)
        return 0.0


class PlanView:
    """Sorted plan-view geometries with their ``[s, end]`` ranges precomputed."""

    def __init__(self, geometries: Sequence[Geometry]) -> None:
        self.geometries = geometries
        self._starts = [g.s for g in geometries]
        self._ends = [g.end for g in geometries]

    def __len__(self) -> int:
        return len(self.geometries)

    def __getitem__(self, idx: int) -> Geometry:
        return self.geometries[idx]

    def find(self, s: float) -> Optional[int]:
        """Index of the geometry covering ``s`` (see ``covering_index``)."""

        return covering_index(self._starts, self._ends, s)


def poly3_value(records: Sequence[Poly3], s: float) -> float:
    return Poly3Profile(records).value_at(s)


def find_geometry(geometries: Sequence[Geometry], s: float) -> Optional[int]:
    return PlanView(geometries).find(s)


@dataclass
class Lane:
    id: int
    type: str = "driving"
    widths: List[Poly3] = field(default_factory=list)

    _width_profile: Optional[Poly3Profile] = field(default=None, init=False, repr=False, compare=False)

    def width_at(self, ds: float) -> float:
        """Lane width at ``ds`` metres from the start of its lane section."""

        profile = self._width_profile
        if profile is None or profile.records is not self.widths:
            profile = self._width_profile = Poly3Profile(self.widths)
        return profile.value_at(ds)


@dataclass
class LaneSection:
    start_position: float
    end_position: float
    center: List[Lane] = field(default_factory=list)
    left: List[Lane] = field(default_factory=list)
    right: List[Lane] = field(default_factory=list)


@dataclass
class RoadLink:
    predecessor_id: int = -1
    successor_id: int = -1


@dataclass
class RoadType:
    start_position: float
    type: str


@dataclass
class Road:
    id: int
    name: str = ""
    junction_id: int = -1
    length: float = 0.0
    rule: str = "RHT"
    link: RoadLink = field(default_factory=RoadLink)
    type_info: List[RoadType] = field(default_factory=list)
    plan_view: List[Geometry] = field(default_factory=list)
    lane_offsets: List[Poly3] = field(default_factory=list)
    lane_sections: List[LaneSection] = field(default_factory=list)


@dataclass
class Junction:
    id: int
    name: str = ""
    type: str = "default"


@dataclass
class Map:
    header: Header = field(default_factory=Header)
    roads: List[Road] = field(default_factory=list)
    junctions: List[Junction] = field(default_factory=list)
