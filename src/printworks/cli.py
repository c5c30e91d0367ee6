"""Command-line entry point for offline print and routing checks.

Commands
--------
``compose``
    Composite a local image into a print-ready PNG, exactly as fulfillment
    would, and write it to disk::

        printworks compose artwork.jpg --size A4 --order-ref ORD-1 --out print.png

``route``
    Show which backend and adapter a style would be sent to, and why::

        printworks route watercolour --subjects 4

This function is registered as the ``printworks`` console script in
``pyproject.toml``.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from printworks.compositor import PRINT_SPECS, composite, get_print_spec
from printworks.core.config import config
from printworks.core.exceptions import PrintworksError
from printworks.routing import SubjectSignals, default_router

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="printworks", add_help=True)
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    sub = parser.add_subparsers(dest="command", required=True)

    compose = sub.add_parser("compose", help="Composite an image into a print file")
    compose.add_argument("source", type=Path, help="Source image")
    compose.add_argument("--size", required=True, choices=sorted(PRINT_SPECS), help="Print product")
    compose.add_argument("--order-ref", required=True, help="Order reference used in the filename")
    compose.add_argument("--out", type=Path, required=True, help="Output path or directory")
    compose.add_argument("--border-mm", type=float, default=config.default_border_mm)
    compose.add_argument("--dpi", type=int, default=config.default_dpi)

    route = sub.add_parser("route", help="Show the routing decision for a style")
    route.add_argument("style", help="Style key, e.g. watercolour")
    route.add_argument("--subjects", type=int, default=0, help="Number of people in the scene")
    route.add_argument("--close-up", action="store_true", help="Faces are framed close up")
    route.add_argument("--subject", default="a family portrait", help="Prompt subject")
    route.add_argument("--setting", default="a sunlit garden", help="Prompt setting")

    return parser


def _compose(args: argparse.Namespace) -> int:
    try:
        source = args.source.read_bytes()
    except OSError as e:
        logger.error(f"Cannot read {args.source}: {e}")
        return 1

    asset = composite(
        source,
        get_print_spec(args.size),
        border_mm=args.border_mm,
        dpi=args.dpi,
        order_ref=args.order_ref,
    )

    out = args.out / asset.filename if args.out.is_dir() else args.out
    out.write_bytes(asset.buffer)
    print(f"{out} {asset.width}x{asset.height}px {len(asset.buffer)} bytes")
    return 0


def _route(args: argparse.Namespace) -> int:
    router = default_router()
    signals = SubjectSignals(subject_count=max(0, args.subjects), close_up=args.close_up)
    job = router.select_job(args.style, signals)

    print(f"model:   {job.model}")
    print(f"adapter: {job.adapter_key if job.use_adapter else '-'}")
    print(f"reason:  {router.routing_reason(args.style, signals, job)}")
    print(f"prompt:  {router.prompt_for(args.style, args.subject, args.setting, job.use_adapter)}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the command-line tool."""
    args = build_parser().parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        if args.command == "compose":
            return _compose(args)
        if args.command == "route":
            return _route(args)
    except PrintworksError as e:
        logger.error(str(e))
        return 1

    raise AssertionError(f"Unhandled command: {args.command}")


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
