"""Engine configuration loaded from YAML."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from xodr2engine.kdtree.core import KDTreeFlags, KDTreeParam
from xodr2engine.sampling import MIN_STEP
from xodr2engine.status import ConfigError


DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "config.yaml"

_FLAG_NAMES = {
    "none": KDTreeFlags.NONE,
    "balanced": KDTreeFlags.BALANCED,
    "compact": KDTreeFlags.COMPACT,
}


@dataclass
class EngineParam:
    map_file: str = ""
    step: float = MIN_STEP
    kdtree: KDTreeParam = field(default_factory=KDTreeParam)


def _parse_flags(raw: Any) -> KDTreeFlags:
    if isinstance(raw, bool):
        raise ConfigError("kdtree.flags must be an integer or a list of flag names")
    if isinstance(raw, int):
        known = KDTreeFlags.BALANCED | KDTreeFlags.COMPACT
        if raw < 0 or raw & ~int(known):
            raise ConfigError(f"kdtree.flags has unknown bits: {raw}")
        return KDTreeFlags(raw)
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        raise ConfigError("kdtree.flags must be an integer or a list of flag names")

    flags = KDTreeFlags.NONE
    for name in raw:
        key = str(name).strip().lower()
        if key not in _FLAG_NAMES:
            raise ConfigError(f"unknown kdtree flag: {name!r}")
        flags |= _FLAG_NAMES[key]
    return flags


def _parse_kdtree(raw: Any) -> KDTreeParam:
    if raw is None:
        return KDTreeParam()
    if not isinstance(raw, dict):
        raise ConfigError("kdtree configuration must be a mapping if provided")

    param = KDTreeParam()
    if "flags" in raw:
        param.flags = _parse_flags(raw["flags"])
    if "leaf_max_size" in raw:
        try:
            leaf_max_size = int(raw["leaf_max_size"])
        except (TypeError, ValueError) as exc:
            raise ConfigError("kdtree.leaf_max_size must be an integer") from exc
        if leaf_max_size < 1:
            raise ConfigError("kdtree.leaf_max_size must be at least 1")
        param.leaf_max_size = leaf_max_size
    return param


def param_from_dict(cfg: Optional[Dict[str, Any]]) -> EngineParam:
    cfg = cfg or {}
    if not isinstance(cfg, dict):
        raise ConfigError("engine configuration must be a mapping")

    param = EngineParam(kdtree=_parse_kdtree(cfg.get("kdtree")))

    map_file = cfg.get("map_file")
    if map_file is not None:
        param.map_file = str(map_file)

    step = cfg.get("step")
    if step is not None:
        try:
            param.step = float(step)
        except (TypeError, ValueError) as exc:
            raise ConfigError("step must be a number") from exc
    return param


def load_config(path: Optional[Union[str, Path]] = None) -> EngineParam:
    """Load an :class:`EngineParam` from ``path`` (the bundled defaults when omitted)."""

    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    try:
        with open(config_path, encoding="utf-8") as fh:
            cfg = yaml.safe_load(fh)
    except FileNotFoundError:
        if path is not None:
            raise ConfigError(f"configuration file not found: {config_path}")
        return EngineParam()
    except yaml.YAMLError as exc:
        raise ConfigError(f"cannot parse configuration {config_path}: {exc}") from exc
    return param_from_dict(cfg)
