"""Conversion pass: parsed map -> published entities -> k-d tree."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from xodr2engine.assembly.core import (
    convert_header,
    convert_junction,
    convert_road_attr,
    convert_sections,
)
from xodr2engine.config import EngineParam
from xodr2engine.core.entities import Data, Point
from xodr2engine.element.core import Map
from xodr2engine.ingest.loader import load_map
from xodr2engine.kdtree.core import KDTree
from xodr2engine.sampling import clamp_step
from xodr2engine.status import ConversionError, ErrorCode, MapParseError, Status


LOG = logging.getLogger("convertor")


class Convertor:
    """Run one conversion pass over ``param.map_file``.

    Every stage returns ``self`` and turns into a no-op once the status holds
    an error, so :meth:`start` always drains and returns the first error.
    Roads are published to ``data`` one at a time and only when complete; a
    failing road leaves earlier roads in place.
    """

    def __init__(
        self,
        param: Optional[EngineParam],
        data: Optional[Data],
        kdtree: Optional[KDTree],
    ) -> None:
        self._param = param
        self._data = data
        self._kdtree = kdtree
        self._step = clamp_step(param.step if param is not None else None)
        self._status = Status()
        self._center_line_pts: List[Point] = []

    @property
    def status(self) -> Status:
        return self._status

    @property
    def step(self) -> float:
        return self._step

    def _set_status(self, code: ErrorCode, msg: str) -> None:
        LOG.error("%s: %s", code.name, msg)
        self._status = Status(code, msg)

    def _continue(self) -> bool:
        return self._status.ok

    def start(self) -> Status:
        self._center_line_pts = []
        self._status = Status()
        if self._param is None or self._data is None or self._kdtree is None:
            self._set_status(ErrorCode.INIT_ERROR, "missing engine parameter, data store or kdtree.")
            return self._status

        self._step = clamp_step(self._param.step)
        map_file = self._param.map_file
        if not map_file or not Path(map_file).is_file():
            self._set_status(ErrorCode.INIT_MAPFILE_ERROR, f"input file error: {map_file}")
            return self._status

        try:
            ele_map = load_map(map_file)
        except MapParseError as exc:
            self._set_status(ErrorCode.INIT_MAPFILE_ERROR, f"input file error: {map_file}: {exc}")
            return self._status

        self.convert(ele_map)
        return self._status

    def convert(self, ele_map: Map) -> Status:
        """Run the stages on an already parsed map."""

        (
            self.convert_header(ele_map)
            .convert_road(ele_map)
            .convert_junction(ele_map)
            .build_kdtree()
            .end()
        )
        return self._status

    def convert_header(self, ele_map: Map) -> "Convertor":
        if not self._continue():
            return self
        LOG.info("Convert Header Start")
        self._data.header = convert_header(ele_map.header)
        LOG.info("Convert Header End")
        return self

    def convert_road(self, ele_map: Map) -> "Convertor":
        if not self._continue():
            return self
        LOG.info("Convert Road Start")
        for ele_road in ele_map.roads:
            if ele_road.id < 0:
                LOG.debug("skip road without id")
                continue
            road = convert_road_attr(ele_road)
            road_pts: List[Point] = []
            try:
                convert_sections(ele_road, road, self._step, road_pts)
            except ConversionError as exc:
                self._set_status(exc.code, str(exc))
                return self
            self._data.publish_road(road)
            self._center_line_pts.extend(road_pts)
        LOG.info("Convert Road End")
        return self

    def convert_junction(self, ele_map: Map) -> "Convertor":
        if not self._continue():
            return self
        LOG.info("Convert Junction Start")
        for ele_junction in ele_map.junctions:
            if ele_junction.id < 0:
                LOG.debug("skip junction without id")
                continue
            junction = convert_junction(ele_junction)
            self._data.junctions[junction.id] = junction
        LOG.info("Convert Junction End")
        return self

    def build_kdtree(self) -> "Convertor":
        if not self._continue():
            return self
        self._kdtree.init(self._center_line_pts, self._param.kdtree)
        return self

    def end(self) -> None:
        if not self._continue():
            return
        self._center_line_pts = []
