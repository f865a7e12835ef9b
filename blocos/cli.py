from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path

from .alerts import DEFAULT_LEAD_MINUTES, AlertConfig, brasilia_now, upcoming_alerts
from .config import Settings
from .pipeline import load_snapshot, run_reconciliation
from .proximity import cameras_near_block


def _add_source_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--api-url", help="Block API endpoint (overrides BLOCOS_API_URL).")
    parser.add_argument(
        "--spreadsheet",
        help="Spreadsheet path or URL used when the API is unavailable.",
    )
    parser.add_argument("--kmz", help="KMZ path or URL with the authored parade routes.")
    parser.add_argument(
        "--fallback",
        help="JSON file of spreadsheet-shaped rows used as a last resort.",
    )
    parser.add_argument("--cameras-url", help="Camera list endpoint.")
    parser.add_argument(
        "--tolerance",
        type=float,
        help="Douglas-Peucker tolerance in degrees.",
    )
    parser.add_argument(
        "--no-simplify",
        dest="simplify",
        action="store_const",
        const=False,
        help="Keep routes at full resolution.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Carnival bloco registry vs parade route reconciliation")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser(
        "run", help="Reconcile blocks with routes and write the reports")
    _add_source_arguments(run_parser)
    run_parser.add_argument(
        "--out-dir",
        type=Path,
        default=Path("out"),
        help="Directory that will receive the reconciliation artefacts.",
    )

    cameras_parser = subparsers.add_parser(
        "cameras", help="List cameras near one block's anchor and route")
    _add_source_arguments(cameras_parser)
    cameras_parser.add_argument("block_id", help="Registry id of the block.")
    cameras_parser.add_argument(
        "--radius",
        type=float,
        help="Search radius in meters (default 300).",
    )

    alerts_parser = subparsers.add_parser(
        "alerts", help="Show alerts for blocks gathering or starting soon")
    _add_source_arguments(alerts_parser)
    alerts_parser.add_argument(
        "--lead-minutes",
        type=int,
        default=DEFAULT_LEAD_MINUTES,
        help="How many minutes ahead to warn.",
    )

    return parser


def _settings(args: argparse.Namespace) -> Settings:
    return Settings.from_env().with_overrides(
        api_url=args.api_url,
        spreadsheet=args.spreadsheet,
        kmz=args.kmz,
        fallback=args.fallback,
        cameras_url=args.cameras_url,
        tolerance=args.tolerance,
        simplify=args.simplify,
    )


def _cameras(args: argparse.Namespace, settings: Settings) -> int:
    snapshot = asyncio.run(load_snapshot(settings))
    block = snapshot.block(args.block_id)
    if block is None:
        logging.getLogger(__name__).error("No block with id %s", args.block_id)
        return 1
    radius = args.radius if args.radius is not None else settings.camera_radius_m
    nearby = cameras_near_block(block, snapshot.cameras, radius)
    payload = [
        {"code": camera.code, "label": camera.label, "lat": camera.coordinate.lat, "lng": camera.coordinate.lng}
        for camera in nearby
    ]
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


def _alerts(args: argparse.Namespace, settings: Settings) -> int:
    snapshot = asyncio.run(load_snapshot(settings))
    config = AlertConfig(lead_minutes=args.lead_minutes)
    alerts = upcoming_alerts(snapshot.blocks, brasilia_now(), config)
    print(json.dumps([alert.as_dict() for alert in alerts], indent=2, ensure_ascii=False))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = _settings(args)

    if args.command == "run":
        run_reconciliation(settings=settings, out_dir=args.out_dir)
        return 0
    if args.command == "cameras":
        return _cameras(args, settings)
    if args.command == "alerts":
        return _alerts(args, settings)

    parser.error("Unknown command")
    return 1


if __name__ == "__main__":  # pragma: no cover - exercised via CLI entry point
    raise SystemExit(main())
