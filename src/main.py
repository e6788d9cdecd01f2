"""Command-line driver: CSV points in, contour geometry JSON out."""

import argparse
import csv
import json
import logging
import math
import sys
from pathlib import Path
from typing import Any

from domain.models import ContourSettings, InvalidConfigurationError, validate_settings
from domain.profiles import load_profile
from services.contour_engine import ContourEngine
from shared.constants import CSV_X_COLUMN, CSV_Y_COLUMN, JSON_INDENT, AggregationKind
from shared.diagnostics import log_memory_usage

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure console logging."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='gridcontour',
        description='Агрегация точек в сетку и построение изолиний/изополос',
    )
    parser.add_argument('points', type=Path, help='CSV file with x, y columns')
    parser.add_argument('--profile', help='Profile name or path to a TOML file')
    parser.add_argument('--cell-size', type=float, help='Cell size (square cells)')
    parser.add_argument(
        '--origin', type=float, nargs=2, metavar=('X', 'Y'), help='Grid origin'
    )
    parser.add_argument(
        '--threshold',
        type=float,
        action='append',
        dest='thresholds',
        help='Contour threshold (repeatable)',
    )
    parser.add_argument(
        '--aggregation',
        choices=[k.value for k in AggregationKind],
        help='Per-cell reduction',
    )
    parser.add_argument('--weight-column', help='CSV column with point weights')
    parser.add_argument(
        '--scalar',
        action='store_true',
        help='Force the per-point aggregation path',
    )
    parser.add_argument('-o', '--output', type=Path, help='Output JSON (default stdout)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    return parser


def _to_float(raw: str | None) -> float:
    if raw is None:
        return math.nan
    try:
        return float(raw)
    except ValueError:
        return math.nan


def read_points(path: Path, weight_column: str | None = None) -> list[dict[str, Any]]:
    """
    Read points from CSV.

    Unparsable coordinates or weights become NaN and are filtered out later by
    the binner, so a single bad row never aborts a run.
    """
    with path.open(newline='', encoding='utf-8') as f:
        reader = csv.DictReader(f)
        header = reader.fieldnames or []
        required = [CSV_X_COLUMN, CSV_Y_COLUMN]
        if weight_column:
            required.append(weight_column)
        missing = [c for c in required if c not in header]
        if missing:
            msg = f'{path}: missing column(s) {", ".join(missing)}'
            raise ValueError(msg)
        points = []
        for row in reader:
            point: dict[str, Any] = {
                'position': (_to_float(row[CSV_X_COLUMN]), _to_float(row[CSV_Y_COLUMN]))
            }
            if weight_column:
                point['weight'] = _to_float(row[weight_column])
            points.append(point)
    logger.info('Read %d point(s) from %s', len(points), path)
    return points


def resolve_settings(args: argparse.Namespace) -> ContourSettings:
    """Profile (or defaults) overridden by explicit command-line options."""
    base = load_profile(args.profile) if args.profile else ContourSettings()
    overrides: dict[str, Any] = {}
    if args.cell_size is not None:
        overrides['cell_size'] = args.cell_size
    if args.origin is not None:
        overrides['grid_origin'] = tuple(args.origin)
    if args.thresholds:
        overrides['contours'] = args.thresholds
    if args.aggregation:
        overrides['aggregation'] = args.aggregation
    if args.scalar:
        overrides['batch_aggregation'] = False
    if not overrides:
        return base
    return validate_settings({**base.model_dump(), **overrides})


def _weight(point: dict[str, Any]) -> float:
    return point['weight']


def _json_number(v: float) -> float | None:
    return v if math.isfinite(v) else None


def payload_to_json(engine: ContourEngine) -> dict[str, Any]:
    result = engine.render_payload()
    grid = engine.get_grid()
    return {
        'kind': result.kind.value,
        'grid': None
        if grid is None
        else {
            'origin': list(grid.origin),
            'cell_size': list(grid.cell_size),
            'dimensions': list(grid.dimensions),
        },
        'segments': [
            {
                'start': list(s.segment.start),
                'end': list(s.segment.end),
                'threshold': _json_number(s.segment.threshold),
                'color': list(s.style.color),
                'stroke_width': s.style.stroke_width,
            }
            for s in result.segments
        ],
        'bands': [
            {
                'vertices': [list(v) for v in b.band.vertices],
                'holes': [[list(v) for v in h] for h in b.band.holes],
                'threshold': _json_number(b.band.threshold),
                'color': list(b.style.color),
                'stroke_width': b.style.stroke_width,
            }
            for b in result.bands
        ],
    }


def run(args: argparse.Namespace) -> int:
    settings = resolve_settings(args)
    points = read_points(args.points, args.weight_column)

    engine = ContourEngine()
    engine.configure_settings(
        settings, weight_accessor=_weight if args.weight_column else None
    )
    engine.submit_points(points)
    payload = payload_to_json(engine)
    log_memory_usage('after contour synthesis', level=logging.DEBUG)

    text = json.dumps(payload, indent=JSON_INDENT, ensure_ascii=False)
    if args.output:
        args.output.write_text(text + '\n', encoding='utf-8')
        logger.info(
            'Wrote %d segment(s) and %d band(s) to %s',
            len(payload['segments']),
            len(payload['bands']),
            args.output,
        )
    else:
        sys.stdout.write(text + '\n')
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main application entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    try:
        return run(args)
    except (InvalidConfigurationError, FileNotFoundError) as e:
        logger.error('%s', e)
        return 1
    except (OSError, ValueError) as e:
        logger.error('Failed to process %s: %s', args.points, e)
        return 1


if __name__ == '__main__':
    sys.exit(main())
