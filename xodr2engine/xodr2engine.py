import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

if __package__ is None or __package__ == "":
    ROOT = Path(__file__).resolve().parents[1]
    if str(ROOT) not in sys.path:
        sys.path.insert(0, str(ROOT))

from xodr2engine.config import load_config
from xodr2engine.convertor import Convertor
from xodr2engine.core.entities import Data
from xodr2engine.kdtree.core import KDTree, KDTreeQueryError, nearest_points
from xodr2engine.status import ConfigError, ErrorCode, Status


LOG = logging.getLogger("xodr2engine")


def convert_map(
    map_file: Optional[str] = None,
    config_path: Optional[str] = None,
    step: Optional[float] = None,
    data: Optional[Data] = None,
    kdtree: Optional[KDTree] = None,
) -> Tuple[Status, Data, KDTree]:
    """Convert an OpenDRIVE file into sampled entities and a k-d tree.

    Parameters
    ----------
    map_file:
        Path to the ``.xodr`` file; overrides ``map_file`` from the configuration.
    config_path:
        YAML configuration; the bundled ``config.yaml`` when omitted.
    step:
        Sampling step override in metres.
    data, kdtree:
        Output store and index to fill; fresh ones are created when omitted.

    Returns
    -------
    tuple
        The pass status together with the data store and the k-d tree.
    """

    data = data if data is not None else Data()
    kdtree = kdtree if kdtree is not None else KDTree()
    try:
        param = load_config(config_path)
    except ConfigError as exc:
        LOG.error("%s", exc)
        return Status(ErrorCode.INIT_ERROR, str(exc)), data, kdtree

    if map_file:
        param.map_file = str(map_file)
    if step is not None:
        param.step = step

    status = Convertor(param, data, kdtree).start()
    return status, data, kdtree


def conversion_stats(status: Status, data: Data, kdtree: KDTree) -> Dict[str, Any]:
    header = data.header
    return {
        "status": {"code": status.error_code.name, "msg": status.msg},
        "header": None if header is None else {
            "name": header.name,
            "version": header.version,
            "vendor": header.vendor,
            "rev": f"{header.rev_major}.{header.rev_minor}",
        },
        "output_counts": {
            "roads": len(data.roads),
            "sections": len(data.sections),
            "lanes": len(data.lanes),
            "junctions": len(data.junctions),
            "kdtree_points": kdtree.size,
        },
        "road_length_m": sum(road.length for road in data.roads.values()),
    }


def main(argv: Optional[Iterable[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Sample an OpenDRIVE map and index its lane centerlines.")
    ap.add_argument("map_file", help="path to the .xodr file")
    ap.add_argument("--config", default=None, help="YAML configuration (defaults to the bundled config.yaml)")
    ap.add_argument("--step", type=float, default=None, help="sampling step in metres")
    ap.add_argument(
        "--query",
        nargs=3,
        metavar=("X", "Y", "K"),
        help="print the K lane points nearest to (X, Y) after the conversion",
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    args = ap.parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(message)s",
    )

    status, data, kdtree = convert_map(args.map_file, args.config, args.step)
    stats = conversion_stats(status, data, kdtree)

    if status.ok and args.query:
        try:
            x, y, k = float(args.query[0]), float(args.query[1]), int(args.query[2])
        except ValueError:
            ap.error("--query expects two numbers and an integer")
        try:
            stats["query"] = [result._asdict() for result in nearest_points(kdtree, x, y, k)]
        except KDTreeQueryError as exc:
            stats["query_error"] = str(exc)

    print(json.dumps(stats, ensure_ascii=False, indent=2))
    return 0 if status.ok else 1


if __name__ == "__main__":
    sys.exit(main())
