#!/usr/bin/env python3
"""
run_polar_alignment.py - Solve the Mount Polar Axis

Finds the mount's RA rotation axis from three positions sampled at one fixed
declination and three hour angles, and optionally reports the polar
alignment error for a site latitude.

Usage:
    PYTHONPATH=. python run_polar_alignment.py --help
    PYTHONPATH=. python run_polar_alignment.py --sample 0 40 --sample 60 40 --sample 120 40
    PYTHONPATH=. python run_polar_alignment.py --samples-file samples.yaml --latitude 35.55

A samples file is YAML:

    samples:
      - [0.0, 40.0]      # [hour angle, declination] in degrees
      - [60.0, 40.0]
      - [120.0, 40.0]
    latitude: 35.55
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from mount_alignment.config import ConfigError, load_config
from mount_alignment.horizontal import axis_to_horizontal, polar_alignment_error
from mount_alignment.sphere import (
    AnglePair,
    find_rotation_axis,
    is_undetermined,
    other_pole,
    to_angle_pair,
    to_cartesian
)

logger = logging.getLogger(__name__)


def load_samples(samples_path: Path) -> Dict[str, Any]:
    """Read samples (and an optional latitude) from a YAML file."""
    with open(samples_path, 'r') as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"{samples_path}: expected a mapping with 'samples', got {type(data).__name__}")

    samples = data.get('samples') or []
    if len(samples) != 3:
        raise ValueError(f"{samples_path}: expected 3 samples, got {len(samples)}")

    return {
        'samples': [AnglePair(float(ha), float(dec)) for ha, dec in samples],
        'latitude': data.get('latitude')
    }


def solve(samples: List[AnglePair], latitude: Optional[float], north: bool = False) -> int:
    """Solve and print the axis; returns the process exit code."""
    axis = find_rotation_axis(*samples)
    if is_undetermined(axis):
        logger.error("Samples are collinear or coincide, rotation axis undetermined")
        return 1

    pair = to_angle_pair(axis)
    if north and axis[2] < 0:
        pair = other_pole(pair)
        axis = to_cartesian(pair.primary, pair.secondary)
        logger.info("Using the northern end of the axis")

    print(f"Axis vector:      [{axis[0]:+.6f}, {axis[1]:+.6f}, {axis[2]:+.6f}]")
    print(f"Hour angle:       {pair.primary:+.4f} deg")
    print(f"Declination:      {pair.secondary:+.4f} deg")

    if latitude is not None:
        horizontal = axis_to_horizontal(axis, latitude)
        error = polar_alignment_error(axis, latitude)
        print(f"Altitude:         {horizontal.altitude:.4f} deg")
        print(f"Azimuth:          {horizontal.azimuth:.4f} deg")
        print(f"Polar error:      {error.describe()}")
        arcsec = error.to_arcsec()
        print(f"                  alt {arcsec['altitude_error']:+.1f}\"  "
              f"az {arcsec['azimuth_error']:+.1f}\"  total {arcsec['total_error']:.1f}\"")
    return 0


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Mount polar axis solver',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --sample 0 40 --sample 60 40 --sample 120 40
  %(prog)s --sample 0 40 --sample 60 40 --sample 120 40 --latitude 35.55
  %(prog)s --samples-file samples.yaml --north
        """
    )

    parser.add_argument(
        '--sample', '-s',
        nargs=2,
        type=float,
        action='append',
        metavar=('HA', 'DEC'),
        help='Sampled position in degrees (give exactly three)'
    )

    parser.add_argument(
        '--samples-file', '-f',
        type=Path,
        help='YAML file with three samples and an optional latitude'
    )

    parser.add_argument(
        '--latitude', '-l',
        type=float,
        help='Site latitude in degrees, north positive'
    )

    parser.add_argument(
        '--config', '-c',
        type=Path,
        help='Path to mount alignment configuration YAML file'
    )

    parser.add_argument(
        '--north', '-n',
        action='store_true',
        help='Report the northern end of the axis'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Command line entry point."""
    args = parse_arguments(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stderr)]
    )

    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger.error(str(e))
        return 2

    latitude = config['polar_alignment'].get('latitude')
    samples: List[AnglePair] = []

    if args.samples_file is not None:
        try:
            loaded = load_samples(args.samples_file)
        except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
            logger.error(f"Failed to read samples: {e}")
            return 2
        samples = loaded['samples']
        if loaded['latitude'] is not None:
            latitude = loaded['latitude']

    if args.sample:
        samples = [AnglePair(ha, dec) for ha, dec in args.sample]

    if args.latitude is not None:
        latitude = args.latitude

    if len(samples) != 3:
        logger.error(f"Exactly three samples are required, got {len(samples)}")
        return 2

    try:
        return solve(samples, None if latitude is None else float(latitude), north=args.north)
    except ValueError as e:
        logger.error(str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())
