from pathlib import Path
import math
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from tool.generate_minimal_xodr import (
    LaneDef,
    RoadDef,
    SectionDef,
    build_xodr,
    chain_geometries,
    generate_samples,
    straight_road,
    write_xodr,
)
from xodr2engine.config import EngineParam
from xodr2engine.convertor import Convertor
from xodr2engine.core.entities import Data
from xodr2engine.element.core import GeometryType
from xodr2engine.kdtree.core import KDTree
from xodr2engine.status import ErrorCode


def _run(path, step=0.5):
    data = Data()
    kdtree = KDTree()
    status = Convertor(EngineParam(map_file=str(path), step=step), data, kdtree).start()
    return status, data, kdtree


def _write(tmp_path, roads, junctions=()):
    return write_xodr(build_xodr(roads, junctions), tmp_path / "map.xodr")


@pytest.fixture(scope="module")
def samples(tmp_path_factory):
    out_dir = tmp_path_factory.mktemp("scenarios")
    return {path.stem: path for path in generate_samples(out_dir)}


def test_multi_section_road_is_published(samples):
    status, data, _ = _run(samples["straight_multi_section"])

    assert status.ok
    assert status.error_code is ErrorCode.OK
    road = data.roads["1"]
    assert [s.id for s in road.sections] == ["1_0", "1_1", "1_2"]
    assert set(data.sections) == {"1_0", "1_1", "1_2"}
    for section in road.sections:
        assert section.parent_id == "1"
        assert section.length == pytest.approx(20.0)
        assert section.center_lane.id == f"{section.id}_0"
        assert [lane.id for lane in section.left_lanes] == [f"{section.id}_1", f"{section.id}_2"]
        assert [lane.id for lane in section.right_lanes] == [f"{section.id}_-1", f"{section.id}_-2"]
        for lane in section.lanes():
            assert data.lanes[lane.id] is lane
            assert lane.parent_id == section.id


def test_section_centerline_spans_section_length(samples):
    _, data, _ = _run(samples["straight_multi_section"], step=0.3)

    for section in data.roads["1"].sections:
        points = section.center_lane.central_curve.points
        assert points[0].s == 0.0
        assert points[-1].s == pytest.approx(section.length, abs=1e-9)
        assert points[0].x == pytest.approx(section.start_position, abs=1e-9)
        assert points[-1].x == pytest.approx(section.end_position, abs=1e-9)


def test_lane_centerlines_follow_widths(samples):
    _, data, _ = _run(samples["straight_multi_section"])

    expected = {"1": 1.75, "2": 3.5 + 1.65, "-1": -1.75, "-2": -3.5 - 1.6}
    for suffix, y in expected.items():
        lane = data.lanes[f"1_1_{suffix}"]
        assert all(p.y == pytest.approx(y) for p in lane.central_curve)


def test_reference_lines_are_threaded_outward(samples):
    _, data, _ = _run(samples["straight_multi_section"])

    for section in data.sections.values():
        for lanes in (section.left_lanes, section.right_lanes):
            for inner, outer in zip(lanes, lanes[1:]):
                inner_right = inner.right_boundary.curve.points
                outer_left = outer.left_boundary.curve.points
                assert [(p.x, p.y, p.s) for p in inner_right] == [(p.x, p.y, p.s) for p in outer_left]
        center = section.center_lane
        assert [(p.x, p.y) for p in section.left_lanes[0].left_boundary.curve] == [
            (p.x, p.y) for p in center.left_boundary.curve
        ]
        assert [(p.x, p.y) for p in section.right_lanes[0].left_boundary.curve] == [
            (p.x, p.y) for p in center.right_boundary.curve
        ]


def test_kdtree_holds_every_lane_centerline_point(samples):
    _, data, kdtree = _run(samples["straight_multi_section"])

    expected = sum(
        len(lane.central_curve)
        for section in data.sections.values()
        for lane in section.left_lanes + section.right_lanes
    )
    assert expected > 0
    assert kdtree.size == expected


def test_nearest_lane_point_query(samples):
    _, _, kdtree = _run(samples["straight_multi_section"])

    result = kdtree.search(5.0, 1.7, 1)[0]

    assert result.id.startswith("1_0_1_")
    assert result.id.endswith("_2")
    assert (result.x, result.y) == pytest.approx((5.0, 1.75))
    assert result.dist == pytest.approx(0.05)


def test_arc_lanes_are_concentric(samples):
    _, data, _ = _run(samples["curved_arc"])

    radius = 40.0
    for point in data.lanes["1_0_0"].central_curve:
        assert math.hypot(point.x, point.y - radius) == pytest.approx(radius)
    for point in data.lanes["1_0_1"].central_curve:
        assert math.hypot(point.x, point.y - radius) == pytest.approx(radius - 1.75)
    for point in data.lanes["1_0_-1"].right_boundary.curve:
        assert math.hypot(point.x, point.y - radius) == pytest.approx(radius + 3.5)


def test_geometry_markers_follow_plan_view(samples):
    _, data, _ = _run(samples["spiral_uturn"])

    center = data.lanes["1_0_0"]
    assert [m.type for m in center.geometries] == [GeometryType.LINE, GeometryType.SPIRAL, GeometryType.LINE]
    assert center.geometries[1].point.s == pytest.approx(40.0)
    # U-turn: the road ends heading back towards the start.
    assert math.cos(center.central_curve[-1].heading) == pytest.approx(-1.0, abs=1e-6)


def test_lane_offset_shifts_all_lanes(samples):
    _, data, _ = _run(samples["lane_offset"])

    assert all(p.y == pytest.approx(1.0) for p in data.lanes["1_0_0"].central_curve)
    assert all(p.y == pytest.approx(2.75) for p in data.lanes["1_0_1"].central_curve)
    assert all(p.y == pytest.approx(-0.75) for p in data.lanes["1_0_-1"].central_curve)


def test_road_links_junctions_and_header(samples):
    status, data, _ = _run(samples["linked_roads"])

    assert status.ok
    first, second = data.roads["1"], data.roads["2"]
    assert first.predecessor_ids == set()
    assert first.successor_ids == {"2"}
    assert first.junction_id is None
    assert second.predecessor_ids == {"1"}
    assert second.successor_ids == set()
    assert second.junction_id == "100"
    assert [(i.s, i.type) for i in first.info] == [(0.0, "town")]
    assert data.junctions["100"].name == "junction_100"
    assert data.header.vendor == "xodr2engine"
    assert data.header.date == "2024-01-01T00:00:00"
    assert data.lanes["2_0_1"].central_curve[0].x == pytest.approx(20.0)


def test_negative_ids_are_skipped(tmp_path):
    path = _write(tmp_path, [straight_road(-1), straight_road(4)], junctions=[(-1, "ghost"), (2, "real")])

    status, data, _ = _run(path)

    assert status.ok
    assert set(data.roads) == {"4"}
    assert set(data.junctions) == {"2"}


def test_tail_snap_on_short_section(tmp_path):
    path = _write(tmp_path, [straight_road(1, 0.05)])

    status, data, _ = _run(path, step=0.01)

    assert status.ok
    points = data.lanes["1_0_0"].central_curve.points
    assert len(points) >= 1
    assert points[-1].s == pytest.approx(0.05)
    assert [p.s for p in points] == pytest.approx([0.0, 0.05])


@pytest.mark.parametrize("center_count", [0, 2])
def test_center_lane_cardinality_fails_the_pass(tmp_path, center_count):
    good = straight_road(1, 10.0)
    bad = RoadDef(
        2,
        chain_geometries([("line", 20.0, {})]),
        [
            SectionDef(0.0, [LaneDef(1)], [LaneDef(-1)]),
            SectionDef(10.0, [LaneDef(1)], [LaneDef(-1)], center_count=center_count),
        ],
    )
    path = _write(tmp_path, [good, bad], junctions=[(5, "j")])

    status, data, kdtree = _run(path)

    assert status.error_code is ErrorCode.CENTER_LANE_CARDINALITY_ERROR
    assert "2_1" in status.msg
    assert set(data.roads) == {"1"}
    assert not any(lane_id.startswith("2_") for lane_id in data.lanes)
    assert not any(section_id.startswith("2_") for section_id in data.sections)
    # Later stages are skipped.
    assert data.junctions == {}
    assert kdtree.size == 0


def test_plan_view_ending_before_last_section_fails(tmp_path):
    road = RoadDef(
        1,
        chain_geometries([("line", 10.0, {})]),
        [SectionDef(0.0, [LaneDef(1)], []), SectionDef(20.0, [LaneDef(1)], [])],
        length=30.0,
    )
    path = _write(tmp_path, [road])

    status, data, _ = _run(path)

    assert status.error_code is ErrorCode.GEOMETRY_RESOLUTION_ERROR
    assert data.roads == {}


def test_plan_view_ending_inside_last_section_is_benign(tmp_path):
    road = RoadDef(1, chain_geometries([("line", 29.0, {})]), [SectionDef(0.0, [LaneDef(1)], [])], length=30.0)
    path = _write(tmp_path, [road])

    status, data, _ = _run(path, step=1.0)

    assert status.ok
    assert data.lanes["1_0_0"].central_curve[-1].s == pytest.approx(29.0)


def test_missing_map_file(tmp_path):
    status, _, _ = _run(tmp_path / "missing.xodr")

    assert status.error_code is ErrorCode.INIT_MAPFILE_ERROR
    assert "missing.xodr" in status.msg


def test_empty_map_path():
    status, _, _ = _run("")

    assert status.error_code is ErrorCode.INIT_MAPFILE_ERROR


def test_unparseable_map_file(tmp_path):
    path = tmp_path / "broken.xodr"
    path.write_text("<OpenDRIVE><road>", encoding="utf-8")

    status, data, _ = _run(path)

    assert status.error_code is ErrorCode.INIT_MAPFILE_ERROR
    assert data.header is None


def test_missing_components_is_an_init_error(tmp_path):
    status = Convertor(None, Data(), KDTree()).start()
    assert status.error_code is ErrorCode.INIT_ERROR

    status = Convertor(EngineParam(map_file="x"), None, KDTree()).start()
    assert status.error_code is ErrorCode.INIT_ERROR


def test_step_is_floored(tmp_path):
    path = _write(tmp_path, [straight_road(1, 1.0)])
    convertor = Convertor(EngineParam(map_file=str(path), step=0.001), Data(), KDTree())

    status = convertor.start()

    assert status.ok
    assert convertor.step == pytest.approx(0.1)
