"""Fetch directions between two or more points and print the turn-by-turn steps.

Examples:
    python scripts/fetch_directions.py --from 37.7749,-122.4194 --to 37.8044,-122.2712
    python scripts/fetch_directions.py --from 37.77,-122.42 --via 37.78,-122.41 --to 37.79,-122.40 \\
        --profile mapbox/cycling
    python scripts/fetch_directions.py --from 37.77,-122.42 --to 37.79,-122.40 --local-engine sf.osrm
"""

import argparse
import asyncio
import sys
from typing import List, Tuple

from directions import Directions, DirectionsError, ProfileIdentifier, RouteOptions, Waypoint
from directions.middleware.request_logging import setup_logging


def parse_lat_lon(value: str) -> Tuple[float, float]:
    """Parse 'lat,lon' into a tuple."""
    try:
        lat, lon = (float(part) for part in value.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected LAT,LON, got {value!r}")
    return lat, lon


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fetch turn-by-turn directions.")
    parser.add_argument("--from", dest="origin", type=parse_lat_lon, required=True, metavar="LAT,LON")
    parser.add_argument("--to", dest="destination", type=parse_lat_lon, required=True, metavar="LAT,LON")
    parser.add_argument("--via", type=parse_lat_lon, action="append", default=[], metavar="LAT,LON")
    parser.add_argument(
        "--profile",
        choices=[p.value for p in ProfileIdentifier],
        default=ProfileIdentifier.AUTOMOBILE.value,
    )
    parser.add_argument("--api-version", choices=["v5", "v4"], default="v5")
    parser.add_argument("--local-engine", metavar="PATH", help="Dataset of a local routing engine")
    parser.add_argument("--access-token", help="Defaults to MAPBOX_ACCESS_TOKEN")
    return parser


def format_distance(meters: float) -> str:
    return f"{meters / 1000:.1f} km" if meters >= 1000 else f"{meters:.0f} m"


def format_duration(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes:02d}m"
    return f"{minutes}m {secs:02d}s"


async def main(argv: List[str]) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    points = [args.origin] + args.via + [args.destination]
    options = RouteOptions(
        waypoints=[Waypoint.at(lat, lon) for lat, lon in points],
        profile_identifier=ProfileIdentifier(args.profile),
        api_version=args.api_version,
    )

    try:
        directions = Directions(access_token=args.access_token, local_engine_path=args.local_engine)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    async with directions:
        try:
            result = await directions.calculate(options)
        except DirectionsError as e:
            print(f"Error: {e.failure_reason or e.detail}", file=sys.stderr)
            if e.recovery_suggestion:
                print(e.recovery_suggestion, file=sys.stderr)
            return 1

    if result.is_empty:
        print("No routes found")
        return 1

    route = result.routes[0]
    print("=" * 60)
    print(f"{format_distance(route.distance)}, {format_duration(route.expected_travel_time)}")
    print("=" * 60)

    for i, leg in enumerate(route.legs, start=1):
        source = leg.source.name or leg.source.coordinate.query_value()
        destination = leg.destination.name or leg.destination.coordinate.query_value()
        print(f"\nLeg {i}: {source} -> {destination} ({format_distance(leg.distance)})")
        for step in leg.steps:
            print(f"  {step.instruction or step.maneuver.type.value:<50} {format_distance(step.distance):>10}")

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1:])))
