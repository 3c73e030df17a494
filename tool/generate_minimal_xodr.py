#!/usr/bin/env python3
"""Generate a handful of minimal OpenDRIVE samples for debugging workflows.

Each scenario keeps the geometry intentionally simple while exercising a
different part of the sampler: multiple lane sections, arcs and spirals,
lane offsets and road links.  The same builders (``SectionDef.center_count``
included) are used by the test-suite to create malformed fixtures on the fly.
"""

from __future__ import annotations

import argparse
import math
import sys
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from xodr2engine.element.core import ArcGeometry, Geometry, LineGeometry, SpiralGeometry


HEADER_ATTRS = {
    "revMajor": "1",
    "revMinor": "4",
    "name": "minimal",
    "version": "1.00",
    "date": "2024-01-01T00:00:00",
    "north": "0",
    "south": "0",
    "east": "0",
    "west": "0",
    "vendor": "xodr2engine",
}


@dataclass
class LaneDef:
    id: int
    width: float = 3.5
    width_slope: float = 0.0
    type: str = "driving"


@dataclass
class SectionDef:
    s: float
    left: List[LaneDef] = field(default_factory=list)
    right: List[LaneDef] = field(default_factory=list)
    center_count: int = 1


@dataclass
class RoadDef:
    """Container describing the minimal data required to export one road."""

    id: int
    geometries: List[Geometry]
    sections: List[SectionDef]
    length: Optional[float] = None
    name: str = ""
    junction: int = -1
    predecessor: Optional[int] = None
    successor: Optional[int] = None
    road_type: str = "town"
    lane_offsets: List[Tuple[float, float, float, float, float]] = field(default_factory=list)

    @property
    def total_length(self) -> float:
        if self.length is not None:
            return self.length
        return math.fsum(g.length for g in self.geometries)


def _fmt(value: float) -> str:
    return f"{float(value):.12g}"


def chain_geometries(specs: Iterable[Tuple[str, float, Dict[str, float]]]) -> List[Geometry]:
    """Chain ``(shape, length, params)`` specs into a continuous plan view."""

    shapes = {"line": LineGeometry, "arc": ArcGeometry, "spiral": SpiralGeometry}
    geometries: List[Geometry] = []
    s, x, y, hdg = 0.0, 0.0, 0.0, 0.0
    for shape, length, params in specs:
        geometry = shapes[shape](s=s, x=x, y=y, hdg=hdg, length=length, **params)
        geometries.append(geometry)
        x, y, hdg = geometry.point_at(geometry.end)
        s += length
    return geometries


def _shape_element(parent: ET.Element, geometry: Geometry) -> None:
    if isinstance(geometry, ArcGeometry):
        ET.SubElement(parent, "arc", attrib={"curvature": _fmt(geometry.curvature)})
    elif isinstance(geometry, SpiralGeometry):
        ET.SubElement(
            parent,
            "spiral",
            attrib={"curvStart": _fmt(geometry.curv_start), "curvEnd": _fmt(geometry.curv_end)},
        )
    else:
        ET.SubElement(parent, "line")


def _lane_element(parent: ET.Element, lane: LaneDef) -> None:
    elem = ET.SubElement(parent, "lane", attrib={"id": str(lane.id), "type": lane.type, "level": "false"})
    ET.SubElement(
        elem,
        "width",
        attrib={"sOffset": "0", "a": _fmt(lane.width), "b": _fmt(lane.width_slope), "c": "0", "d": "0"},
    )


def _build_road(parent: ET.Element, road: RoadDef) -> None:
    elem = ET.SubElement(
        parent,
        "road",
        attrib={
            "name": road.name or f"road_{road.id}",
            "length": _fmt(road.total_length),
            "id": str(road.id),
            "junction": str(road.junction),
            "rule": "RHT",
        },
    )

    if road.predecessor is not None or road.successor is not None:
        link = ET.SubElement(elem, "link")
        if road.predecessor is not None:
            ET.SubElement(
                link,
                "predecessor",
                attrib={"elementType": "road", "elementId": str(road.predecessor), "contactPoint": "end"},
            )
        if road.successor is not None:
            ET.SubElement(
                link,
                "successor",
                attrib={"elementType": "road", "elementId": str(road.successor), "contactPoint": "start"},
            )

    ET.SubElement(elem, "type", attrib={"s": "0", "type": road.road_type})

    plan_view = ET.SubElement(elem, "planView")
    for geometry in road.geometries:
        geom = ET.SubElement(
            plan_view,
            "geometry",
            attrib={
                "s": _fmt(geometry.s),
                "x": _fmt(geometry.x),
                "y": _fmt(geometry.y),
                "hdg": _fmt(geometry.hdg),
                "length": _fmt(geometry.length),
            },
        )
        _shape_element(geom, geometry)

    lanes = ET.SubElement(elem, "lanes")
    for s, a, b, c, d in road.lane_offsets:
        ET.SubElement(
            lanes,
            "laneOffset",
            attrib={"s": _fmt(s), "a": _fmt(a), "b": _fmt(b), "c": _fmt(c), "d": _fmt(d)},
        )

    for section in road.sections:
        lane_section = ET.SubElement(lanes, "laneSection", attrib={"s": _fmt(section.s)})
        if section.left:
            left = ET.SubElement(lane_section, "left")
            # Written outermost first, as most exporters do.
            for lane in sorted(section.left, key=lambda item: -item.id):
                _lane_element(left, lane)
        center = ET.SubElement(lane_section, "center")
        for _ in range(section.center_count):
            ET.SubElement(center, "lane", attrib={"id": "0", "type": "none", "level": "false"})
        if section.right:
            right = ET.SubElement(lane_section, "right")
            for lane in section.right:
                _lane_element(right, lane)


def build_xodr(roads: Iterable[RoadDef], junctions: Iterable[Tuple[int, str]] = ()) -> ET.Element:
    """Assemble an ``<OpenDRIVE>`` tree from road and ``(id, name)`` junction definitions."""

    root = ET.Element("OpenDRIVE")
    ET.SubElement(root, "header", attrib=HEADER_ATTRS)
    for road in roads:
        _build_road(root, road)
    for junction_id, name in junctions:
        ET.SubElement(root, "junction", attrib={"id": str(junction_id), "name": name})
    return root


def write_xodr(root: ET.Element, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    ET.ElementTree(root).write(path, encoding="utf-8", xml_declaration=True)
    return path


def straight_road(
    road_id: int = 1,
    length: float = 30.0,
    section_starts: Iterable[float] = (0.0,),
    left: Iterable[LaneDef] = (LaneDef(1),),
    right: Iterable[LaneDef] = (LaneDef(-1),),
    **kwargs,
) -> RoadDef:
    geometries = chain_geometries([("line", length, {})])
    sections = [SectionDef(s, left=list(left), right=list(right)) for s in section_starts]
    return RoadDef(road_id, geometries, sections, **kwargs)


def _straight_multi_section() -> List[RoadDef]:
    return [
        straight_road(
            1,
            60.0,
            section_starts=(0.0, 20.0, 40.0),
            left=(LaneDef(1, 3.5), LaneDef(2, 3.3)),
            right=(LaneDef(-1, 3.5), LaneDef(-2, 3.2)),
        )
    ]


def _curved_arc() -> List[RoadDef]:
    radius = 40.0
    length = radius * math.radians(45.0)
    geometries = chain_geometries([("arc", length, {"curvature": 1.0 / radius})])
    return [RoadDef(1, geometries, [SectionDef(0.0, [LaneDef(1)], [LaneDef(-1)])])]


def _spiral_uturn() -> List[RoadDef]:
    spiral_length = 15.0
    geometries = chain_geometries(
        [
            ("line", 40.0, {}),
            ("spiral", spiral_length, {"curv_start": 0.0, "curv_end": 2.0 * math.pi / spiral_length}),
            ("line", 35.0, {}),
        ]
    )
    return [RoadDef(1, geometries, [SectionDef(0.0, [LaneDef(1)], [LaneDef(-1), LaneDef(-2, 3.0, 0.01)])])]


def _lane_offset() -> List[RoadDef]:
    return [straight_road(1, 50.0, lane_offsets=[(0.0, 1.0, 0.0, 0.0, 0.0)])]


def _linked_roads() -> List[RoadDef]:
    first = straight_road(1, 20.0, successor=2)
    second = straight_road(2, 20.0, predecessor=1, junction=100)
    for geometry in second.geometries:
        geometry.x += 20.0
    return [first, second]


def _iter_scenarios() -> Iterable[Tuple[str, List[RoadDef], List[Tuple[int, str]]]]:
    yield "straight_single_section", [straight_road()], []
    yield "straight_multi_section", _straight_multi_section(), []
    yield "curved_arc", _curved_arc(), []
    yield "spiral_uturn", _spiral_uturn(), []
    yield "lane_offset", _lane_offset(), []
    yield "linked_roads", _linked_roads(), [(100, "junction_100")]


def generate_samples(output_dir: Path) -> List[Path]:
    """Materialise all scenarios into *output_dir* and return the created files."""

    output_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for name, roads, junctions in _iter_scenarios():
        written.append(write_xodr(build_xodr(roads, junctions), output_dir / f"{name}.xodr"))
    return written


def main(argv: Optional[Iterable[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Generate minimal OpenDRIVE samples")
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("out/minimal_scenarios"),
        help="Target directory for the generated .xodr files",
    )
    args = parser.parse_args(list(argv) if argv is not None else None)

    for path in generate_samples(args.output):
        print(path)


if __name__ == "__main__":  # pragma: no cover - script entry point
    main()
