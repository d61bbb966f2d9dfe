#!/usr/bin/env python3
"""
vsync-estimator: command line front end

Runs the refresh rate estimator over a recorded timestamp file or a
synthetic VSYNC source and prints the final report as JSON.

Usage:
    # Replay timestamps captured from a frame loop (one per line, ms)
    vsync-estimator --replay frames.txt

    # Simulated 144 Hz display with 0.3 ms jitter and 20% dropped frames
    vsync-estimator --simulate 144 --frames 5000 --jitter-ms 0.3 --drop-rate 0.2

    # Tunables from a config file, publish the result for other processes
    vsync-estimator --config /etc/vsync-estimator/config.toml \\
        --replay frames.txt --status-path /dev/shm/vsync_status

Exit status:
    0  an estimate was produced
    1  the input never produced an estimate
    2  bad input or configuration
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import toml

from .interfaces.cycle_result import EstimatorReport
from .output.status_writer import StatusWriter
from .timing.refresh_rate_calculator import RefreshRateCalculator, RefreshRateConfig
from .timing.synthetic_source import SyntheticVsyncSource

logger = logging.getLogger('vsync-estimator')

EXIT_OK = 0
EXIT_NO_ESTIMATE = 1
EXIT_ERROR = 2


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from a TOML file.

    Returns an empty config when no path is given. A missing or malformed
    file is an error: silently falling back to defaults would hide a typo.
    """
    if not config_path:
        return {}
    path = Path(config_path)
    if not path.exists():
        raise ValueError(f"Config file not found: {path}")
    try:
        with open(path) as f:
            return toml.load(f)
    except toml.TomlDecodeError as e:
        raise ValueError(f"Invalid config file {path}: {e}") from e


def build_calculator(config: Dict[str, Any]) -> RefreshRateCalculator:
    """Estimator from the [estimator] table of a config mapping."""
    estimator_cfg = RefreshRateConfig.from_dict(config.get('estimator', {}))
    return RefreshRateCalculator(estimator_cfg)


def load_timestamps(path: str) -> np.ndarray:
    """
    Read one timestamp (ms) per line; blank lines and '#' comments ignored.
    """
    try:
        timestamps = np.loadtxt(path, dtype=np.float64, comments='#', ndmin=1)
    except OSError as e:
        raise ValueError(f"Cannot read timestamps from {path}: {e}") from e
    if timestamps.ndim != 1:
        raise ValueError(f"Expected one timestamp per line in {path}")
    return timestamps


def run(calc: RefreshRateCalculator, timestamps: np.ndarray,
        writer: Optional[StatusWriter] = None) -> EstimatorReport:
    """Feed all timestamps and return the final report."""
    logger.info(f"Processing {len(timestamps)} timestamps")
    calc.count_cycles(timestamps)
    report = calc.report()
    logger.info(f"{calc.status_line()}  status={report.status.value}")
    if writer is not None:
        writer.write(report)
    return report


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='Estimate display refresh rate from frame timestamps',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    vsync-estimator --replay frames.txt
    vsync-estimator --simulate 59.94 --frames 3000 --jitter-ms 0.3
"""
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        '--replay', metavar='PATH',
        help='Text file of frame timestamps in ms, one per line'
    )
    source.add_argument(
        '--simulate', metavar='HZ', type=float,
        help='Run against a synthetic display at this refresh rate'
    )
    parser.add_argument(
        '--config', '-c', metavar='PATH',
        help='TOML configuration file'
    )
    parser.add_argument(
        '--frames', type=int, default=3000,
        help='Refresh cycles to simulate (default: 3000)'
    )
    parser.add_argument(
        '--jitter-ms', type=float, default=0.0,
        help='Uniform timestamp jitter for --simulate (default: 0)'
    )
    parser.add_argument(
        '--drop-rate', type=float, default=0.0,
        help='Fraction of dropped frames for --simulate (default: 0)'
    )
    parser.add_argument(
        '--seed', type=int, default=None,
        help='Random seed for --simulate'
    )
    parser.add_argument(
        '--status-path', metavar='PATH',
        help='Also write the final report to this JSON status file'
    )
    parser.add_argument(
        '--verbose', '-v', action='store_true',
        help='Debug logging'
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except ValueError as e:
        setup_logging()
        logger.error(str(e))
        return EXIT_ERROR

    level = 'DEBUG' if args.verbose else config.get('logging', {}).get('level', 'INFO')
    setup_logging(level)

    try:
        calc = build_calculator(config)
        if args.replay:
            timestamps = load_timestamps(args.replay)
        else:
            source = SyntheticVsyncSource(
                hz=args.simulate,
                jitter_ms=args.jitter_ms,
                drop_rate=args.drop_rate,
                seed=args.seed,
            )
            timestamps = source.generate(args.frames)
    except ValueError as e:
        logger.error(str(e))
        return EXIT_ERROR

    status_path = args.status_path or config.get('output', {}).get('status_path')
    writer = StatusWriter(status_path) if status_path else None

    report = run(calc, timestamps, writer)
    print(report.to_json())

    if not report.has_estimate:
        logger.warning("No refresh rate estimate: not enough consistent timestamps")
        return EXIT_NO_ESTIMATE
    return EXIT_OK


if __name__ == '__main__':
    sys.exit(main())
