"""Error codes, conversion status and the exceptions raised by the stages."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class ErrorCode(enum.Enum):
    OK = 0
    INIT_ERROR = 1
    INIT_MAPFILE_ERROR = 2
    CENTER_LANE_CARDINALITY_ERROR = 3
    GEOMETRY_RESOLUTION_ERROR = 4


@dataclass
class Status:
    """Outcome of a conversion pass: the first error encountered, if any."""

    error_code: ErrorCode = ErrorCode.OK
    msg: str = "ok"

    @property
    def ok(self) -> bool:
        return self.error_code is ErrorCode.OK


class ConversionError(Exception):
    """Base class for failures that abort a conversion pass."""

    code = ErrorCode.INIT_ERROR


class MapParseError(ConversionError):
    code = ErrorCode.INIT_MAPFILE_ERROR


class CenterLaneCardinalityError(ConversionError):
    code = ErrorCode.CENTER_LANE_CARDINALITY_ERROR


class GeometryResolutionError(ConversionError):
    code = ErrorCode.GEOMETRY_RESOLUTION_ERROR


class ConfigError(ValueError):
    """Raised when the engine configuration cannot be interpreted."""
