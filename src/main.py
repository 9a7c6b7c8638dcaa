"""Command-line entry point for the terrain slope analyzer."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from domain.errors import InvalidInputError, ResolutionTimeoutError, TerrainAnalysisError
from domain.models import TileAddress
from domain.settings import EngineSettings, load_settings
from infrastructure.http.client import validate_source
from services.slope_analysis import run_analysis, run_point_analysis
from shared.diagnostics import log_memory_usage
from tiles.fetcher import ElevationSource

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INVALID_INPUT = 2
EXIT_TIMEOUT = 3

# Mt. Fuji summit tile, covered by every GSI DEM layer
_PROBE_TILE = TileAddress(z=15, x=29011, y=12939)


def setup_logging(verbose: bool = False, log_file: Path | None = None) -> None:
    """Configure application logging to stderr and an optional file."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(str(log_file), encoding='utf-8'))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
    )


def _read_request(path: str) -> dict:
    raw = sys.stdin.read() if path == '-' else Path(path).read_text(encoding='utf-8')
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        msg = f'request is not valid JSON: {e}'
        raise InvalidInputError(msg) from e
    if not isinstance(data, dict):
        msg = 'request must be a JSON object'
        raise InvalidInputError(msg)
    return data


def _write_output(payload: str, output: str | None) -> None:
    if output:
        Path(output).write_text(payload, encoding='utf-8')
        logger.info('Result written to %s', output)
    else:
        sys.stdout.write(payload + '\n')


def _cmd_polygon(args: argparse.Namespace, settings: EngineSettings) -> int:
    request = _read_request(args.request)
    for key in ('interval', 'num_samples', 'max_points', 'timeout_s'):
        value = getattr(args, key)
        if value is not None:
            request[key] = value
    result = run_analysis(request, settings)
    _write_output(result.model_dump_json(indent=args.indent), args.output)
    return EXIT_OK


def _cmd_point(args: argparse.Namespace, settings: EngineSettings) -> int:
    result = run_point_analysis(args.lat, args.lon, args.offset, settings)
    _write_output(result.model_dump_json(indent=args.indent), args.output)
    return EXIT_OK


def _cmd_check_sources(args: argparse.Namespace, settings: EngineSettings) -> int:
    failed = 0
    for src in settings.sources:
        source = ElevationSource(src.name, src.url_template)
        try:
            asyncio.run(validate_source(source, _PROBE_TILE))
        except RuntimeError as e:
            failed += 1
            logger.error('%s', e)
        else:
            logger.info('Source %s is reachable', src.name)
    return EXIT_FAILURE if failed else EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Terrain slope analyzer - elevation grid, slope and cross-section for a polygon'
    )
    parser.add_argument('--config', type=Path, help='TOML settings file')
    parser.add_argument('--log-file', type=Path, help='Also write logs to this file')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    sub = parser.add_subparsers(dest='command', required=True)

    poly = sub.add_parser('polygon', help='Analyze a polygon request (JSON)')
    poly.add_argument('request', help="Request JSON file, or '-' for stdin")
    poly.add_argument('--interval', type=float, help='Grid spacing in metres (1-50)')
    poly.add_argument('--num-samples', type=int, help='Cross-section samples')
    poly.add_argument('--max-points', type=int, help='Grid point ceiling')
    poly.add_argument('--timeout-s', type=float, help='Elevation resolution time budget')
    poly.set_defaults(handler=_cmd_polygon)

    point = sub.add_parser('point', help='Slope at a single location')
    point.add_argument('--lat', type=float, required=True)
    point.add_argument('--lon', type=float, required=True)
    point.add_argument('--offset', type=float, default=10.0, help='Sample offset in metres')
    point.set_defaults(handler=_cmd_point)

    check = sub.add_parser('check-sources', help='Probe every configured elevation source')
    check.set_defaults(handler=_cmd_check_sources)

    for p in (poly, point):
        p.add_argument('-o', '--output', help='Write JSON here instead of stdout')
        p.add_argument('--indent', type=int, default=None, help='JSON indent')
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main application entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.log_file)
    log_memory_usage('startup')

    try:
        settings = load_settings(args.config) if args.config else EngineSettings()
        return args.handler(args, settings)
    except ResolutionTimeoutError as e:
        logger.error('Timeout: %s', e)
        return EXIT_TIMEOUT
    except InvalidInputError as e:
        logger.error('Invalid input: %s', e)
        return EXIT_INVALID_INPUT
    except TerrainAnalysisError as e:
        logger.error('Analysis failed: %s', e, exc_info=True)
        return EXIT_FAILURE
    except (OSError, ValueError) as e:
        logger.error('Failed: %s', e)
        return EXIT_FAILURE


if __name__ == '__main__':
    sys.exit(main())
