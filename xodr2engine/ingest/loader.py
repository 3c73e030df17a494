"""Parse an OpenDRIVE ``.xodr`` file into :mod:`xodr2engine.element.core` records."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, List, Optional, Union

from xodr2engine.element.core import (
    ArcGeometry,
    Geometry,
    Header,
    Junction,
    Lane,
    LaneSection,
    LineGeometry,
    Map,
    ParamPoly3Geometry,
    Poly3,
    Poly3Geometry,
    Road,
    RoadLink,
    RoadType,
    SpiralGeometry,
)
from xodr2engine.ingest.utils import attr_float, attr_int, attr_str
from xodr2engine.status import MapParseError


LOG = logging.getLogger("xodr_loader")


def _parse_header(root: ET.Element) -> Header:
    elem = root.find("header")
    if elem is None:
        return Header()
    return Header(
        rev_major=attr_int(elem, "revMajor", 1),
        rev_minor=attr_int(elem, "revMinor", 4),
        name=attr_str(elem, "name"),
        version=attr_str(elem, "version"),
        date=attr_str(elem, "date"),
        north=attr_float(elem, "north", 0.0),
        south=attr_float(elem, "south", 0.0),
        west=attr_float(elem, "west", 0.0),
        east=attr_float(elem, "east", 0.0),
        vendor=attr_str(elem, "vendor"),
    )


def _parse_geometry(elem: ET.Element) -> Geometry:
    base = {
        "s": attr_float(elem, "s"),
        "x": attr_float(elem, "x"),
        "y": attr_float(elem, "y"),
        "hdg": attr_float(elem, "hdg"),
        "length": attr_float(elem, "length"),
    }
    children = list(elem)
    if not children:
        raise MapParseError(f"<geometry s={elem.get('s')}> has no shape element")
    shape = children[0]

    if shape.tag == "line":
        return LineGeometry(**base)
    if shape.tag == "arc":
        return ArcGeometry(**base, curvature=attr_float(shape, "curvature"))
    if shape.tag == "spiral":
        # OpenDRIVE 1.4 spells the attributes curvStart/curvEnd, 1.6 spells
        # them out in full.
        if shape.get("curvStart") is not None:
            curv_start = attr_float(shape, "curvStart")
            curv_end = attr_float(shape, "curvEnd")
        else:
            curv_start = attr_float(shape, "curvatureStart")
            curv_end = attr_float(shape, "curvatureEnd")
        return SpiralGeometry(**base, curv_start=curv_start, curv_end=curv_end)
    if shape.tag == "poly3":
        return Poly3Geometry(
            **base,
            a=attr_float(shape, "a", 0.0),
            b=attr_float(shape, "b", 0.0),
            c=attr_float(shape, "c", 0.0),
            d=attr_float(shape, "d", 0.0),
        )
    if shape.tag == "paramPoly3":
        p_range = attr_str(shape, "pRange", "normalized").strip()
        if p_range not in {"normalized", "arcLength"}:
            raise MapParseError(f"<paramPoly3> has unsupported pRange={p_range!r}")
        coeffs: Dict[str, float] = {}
        for name in ("aU", "bU", "cU", "dU", "aV", "bV", "cV", "dV"):
            coeffs[name.lower()] = attr_float(shape, name, 0.0)
        return ParamPoly3Geometry(**base, **coeffs, normalized=p_range == "normalized")

    raise MapParseError(f"<geometry s={elem.get('s')}> has unknown shape <{shape.tag}>")


def _parse_poly3(elem: ET.Element, start_attr: str) -> Poly3:
    return Poly3(
        s=attr_float(elem, start_attr, 0.0),
        a=attr_float(elem, "a", 0.0),
        b=attr_float(elem, "b", 0.0),
        c=attr_float(elem, "c", 0.0),
        d=attr_float(elem, "d", 0.0),
    )


def _parse_lanes(section: ET.Element, side: str) -> List[Lane]:
    block = section.find(side)
    if block is None:
        return []

    lanes: List[Lane] = []
    for elem in block.findall("lane"):
        if elem.get("id") is None:
            raise MapParseError(f"<{side}> contains a <lane> without id")
        widths = sorted(
            (_parse_poly3(width, "sOffset") for width in elem.findall("width")),
            key=lambda rec: rec.s,
        )
        lanes.append(Lane(id=attr_int(elem, "id"), type=attr_str(elem, "type", "none"), widths=widths))

    # Outward order: 1, 2, 3 ... on the left and -1, -2, -3 ... on the right.
    lanes.sort(key=lambda lane: abs(lane.id))
    return lanes


def _parse_lane_sections(lanes_elem: Optional[ET.Element], road_length: float) -> List[LaneSection]:
    if lanes_elem is None:
        return []

    elems = sorted(lanes_elem.findall("laneSection"), key=lambda e: attr_float(e, "s", 0.0))
    starts = [attr_float(e, "s", 0.0) for e in elems]
    sections: List[LaneSection] = []
    for idx, elem in enumerate(elems):
        start = starts[idx]
        end = starts[idx + 1] if idx + 1 < len(starts) else max(start, road_length)
        sections.append(
            LaneSection(
                start_position=start,
                end_position=end,
                center=_parse_lanes(elem, "center"),
                left=_parse_lanes(elem, "left"),
                right=_parse_lanes(elem, "right"),
            )
        )
    return sections


def _parse_road(elem: ET.Element) -> Road:
    road = Road(
        id=attr_int(elem, "id"),
        name=attr_str(elem, "name"),
        junction_id=attr_int(elem, "junction", -1),
        length=attr_float(elem, "length", 0.0),
        rule=attr_str(elem, "rule", "RHT"),
    )

    link = elem.find("link")
    if link is not None:
        road.link = RoadLink(
            predecessor_id=attr_int(link.find("predecessor"), "elementId"),
            successor_id=attr_int(link.find("successor"), "elementId"),
        )

    for type_elem in elem.findall("type"):
        road.type_info.append(RoadType(attr_float(type_elem, "s", 0.0), attr_str(type_elem, "type")))

    plan_view = elem.find("planView")
    if plan_view is not None:
        geometries = [_parse_geometry(g) for g in plan_view.findall("geometry")]
        road.plan_view = sorted(geometries, key=lambda g: g.s)

    lanes_elem = elem.find("lanes")
    if lanes_elem is not None:
        road.lane_offsets = sorted(
            (_parse_poly3(o, "s") for o in lanes_elem.findall("laneOffset")),
            key=lambda rec: rec.s,
        )
    road.lane_sections = _parse_lane_sections(lanes_elem, road.length)
    return road


def _parse_junction(elem: ET.Element) -> Junction:
    return Junction(
        id=attr_int(elem, "id"),
        name=attr_str(elem, "name"),
        type=attr_str(elem, "type", "default"),
    )


def parse_map(root: ET.Element) -> Map:
    if root.tag != "OpenDRIVE":
        raise MapParseError(f"unexpected root element <{root.tag}>")
    return Map(
        header=_parse_header(root),
        roads=[_parse_road(r) for r in root.findall("road")],
        junctions=[_parse_junction(j) for j in root.findall("junction")],
    )


def load_map(path: Union[str, Path]) -> Map:
    """Read and parse ``path``; every failure is reported as :class:`MapParseError`."""

    try:
        tree = ET.parse(path)
    except ET.ParseError as exc:
        raise MapParseError(f"cannot parse {path}: {exc}") from exc
    except OSError as exc:
        raise MapParseError(f"cannot read {path}: {exc}") from exc

    ele_map = parse_map(tree.getroot())
    LOG.info("loaded %s: %d roads, %d junctions", path, len(ele_map.roads), len(ele_map.junctions))
    return ele_map
