#!/usr/bin/env python
"""
Command-line interface for the Route Network Planner

Usage:
    python cli.py summary --input network.json
    python cli.py convert-kmz --input kmz_parse.json --output network.json
    python cli.py download --input network.json --format kml --output ./exports/
    python cli.py upload --points points.xlsx --connections connections.xlsx
"""

import os
import sys
import json
import argparse

from loguru import logger

from route_network.config import get_config, validate_config
from route_network.parsing.kmz import KMZConverter, validate_converted
from route_network.session import RoutePlanningSession


def setup_logging(verbose: bool = False):
    """Configure logging"""
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
        level=level
    )


def _read_json(path: str):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _load_session(args) -> RoutePlanningSession:
    data = _read_json(args.input)
    session = RoutePlanningSession()
    if getattr(args, "kmz", False):
        session.load_kmz(data)
    elif isinstance(data, dict) and "loop" in data:
        session.load_loop(data)
    else:
        session.load_payload(data)
    return session


def _summary(session: RoutePlanningSession) -> dict:
    graph = session.graph
    report = session.last_report
    summary = {
        "points": len(graph.loop),
        "segments": len(graph.segments),
        "main_point": graph.main_point_name,
        "existing_length_km": round(graph.existing_length, 3),
        "proposed_length_km": round(graph.proposed_length, 3),
        "total_length_km": round(graph.total_length, 3),
        "bounds": graph.bounds(),
    }
    if report is not None:
        summary["diagnostics"] = report.summary()
        summary["unresolved"] = [
            {"name": c.name, "start": c.start.reference, "end": c.end.reference}
            for c in report.unresolved
        ]
    return summary


def cmd_summary(args):
    """Load a network file and print totals and diagnostics"""
    setup_logging(args.verbose)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1

    try:
        session = _load_session(args)
    except (ValueError, OSError) as e:
        logger.error(f"Failed to load {args.input}: {e}")
        return 1

    print(json.dumps(_summary(session), indent=2))
    return 0


def cmd_convert_kmz(args):
    """Convert a KMZ parse response into an ingestion payload"""
    setup_logging(args.verbose)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1

    converted = KMZConverter().convert(_read_json(args.input))
    if not validate_converted(converted):
        logger.warning("Converted data contains invalid coordinates or endpoints")

    output_path = args.output or os.path.splitext(args.input)[0] + "_network.json"
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(converted, f, indent=2)

    logger.info(f"✓ Converted: {output_path}")
    logger.info(f"  Points: {len(converted['points'])}")
    logger.info(f"  Connections: {len(converted['connections'])}")
    return 0


def cmd_download(args):
    """Export a network file as KML or CSV through the trace API"""
    setup_logging(args.verbose)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1

    try:
        validate_config(get_config())
    except ValueError as e:
        logger.error(str(e))
        return 1

    session = _load_session(args)
    try:
        notification = session.download(args.format, args.output)
    except ValueError as e:
        logger.error(str(e))
        return 1

    if not notification.ok:
        return 1
    logger.info(f"✓ Downloaded: {session.gateway.last_download}")
    return 0


def cmd_upload(args):
    """Bulk-upload points and connections files and summarize the result"""
    setup_logging(args.verbose)

    for path in (args.points, args.connections):
        if not os.path.exists(path):
            logger.error(f"Input file not found: {path}")
            return 1

    session = RoutePlanningSession()
    report = session.load_bulk_upload(args.points, args.connections)
    if report is None:
        return 1

    summary = _summary(session)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(session.gateway.build_payload(session.graph).model_dump(mode="json"), f, indent=2)
        logger.info(f"✓ Saved snapshot: {args.output}")
    print(json.dumps(summary, indent=2))
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Route Network Planner CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Summarize a network:
    python cli.py summary --input network.json

  Summarize a KMZ parse response:
    python cli.py summary --input kmz_parse.json --kmz

  Convert a KMZ parse response:
    python cli.py convert-kmz --input kmz_parse.json --output network.json

  Download as KML:
    python cli.py download --input network.json --format kml --output ./exports/
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Summary command
    summary_parser = subparsers.add_parser("summary", help="Load a network and print totals")
    summary_parser.add_argument("--input", "-i", required=True, help="Ingestion JSON file")
    summary_parser.add_argument("--kmz", action="store_true", help="Input is a KMZ parse response")
    summary_parser.set_defaults(func=cmd_summary)

    # Convert command
    convert_parser = subparsers.add_parser("convert-kmz", help="Convert a KMZ parse response")
    convert_parser.add_argument("--input", "-i", required=True, help="KMZ parse JSON ({points, lines})")
    convert_parser.add_argument("--output", "-o", help="Output JSON file")
    convert_parser.set_defaults(func=cmd_convert_kmz)

    # Download command
    download_parser = subparsers.add_parser("download", help="Export a network as KML or CSV")
    download_parser.add_argument("--input", "-i", required=True, help="Ingestion JSON file")
    download_parser.add_argument("--kmz", action="store_true", help="Input is a KMZ parse response")
    download_parser.add_argument("--format", "-f", default="kml", choices=["kml", "csv"], help="Export format")
    download_parser.add_argument("--output", "-o", default=".", help="Output directory")
    download_parser.set_defaults(func=cmd_download)

    # Upload command
    upload_parser = subparsers.add_parser("upload", help="Bulk-upload points and connections files")
    upload_parser.add_argument("--points", required=True, help="Points file")
    upload_parser.add_argument("--connections", required=True, help="Connections file")
    upload_parser.add_argument("--output", "-o", help="Write the resulting snapshot JSON here")
    upload_parser.set_defaults(func=cmd_upload)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
