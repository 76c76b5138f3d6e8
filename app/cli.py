"""Generate application icons from a source image.

Writes ``icon.png`` (master), ``icon.ico`` (multi-size), ``favicon.png`` and
``icon-<linux_size>.png`` into the output directory.

Usage::

    python -m app.cli assets/logo.png --out assets --sizes 16,32,48,256
"""

from __future__ import annotations

import argparse
from logging import getLogger
from pathlib import Path
from typing import List, Optional, Sequence

from app.core.config import settings
from app.core.logging import configure_logging
from app.services.icon_set import (
    ICO_FILENAME,
    build_ico,
    build_icon_set,
    parse_sizes,
    write_icon_set,
)
from app.services.rendering import ResampleAlgorithm

logger = getLogger(__name__)


def _sizes(raw: str) -> List[int]:
    try:
        sizes = parse_sizes(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc
    if not sizes:
        raise argparse.ArgumentTypeError("at least one size is required")
    return sizes


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="icopack", description="Build a multi-size ICO and companion PNGs."
    )
    parser.add_argument("source", type=Path, help="Source image (PNG, JPEG, WEBP, ...)")
    parser.add_argument(
        "--out", type=Path, default=settings.output_dir, help="Output directory"
    )
    parser.add_argument(
        "--sizes",
        type=_sizes,
        default=list(settings.ico_sizes),
        help="Comma-separated ICO sizes (default: %(default)s)",
    )
    parser.add_argument(
        "--algo",
        type=ResampleAlgorithm,
        choices=list(ResampleAlgorithm),
        default=ResampleAlgorithm(settings.default_algorithm),
        help="Resample algorithm",
    )
    parser.add_argument(
        "--ico-only", action="store_true", help=f"Only write {ICO_FILENAME}"
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(settings.log_level)

    if not args.source.is_file():
        logger.error("Source image not found: %s", args.source)
        return 2

    try:
        content = args.source.read_bytes()
        if args.ico_only:
            ico = build_ico(content, args.sizes, args.algo)
            args.out.mkdir(parents=True, exist_ok=True)
            target = args.out / ICO_FILENAME
            target.write_bytes(ico)
            logger.info("Wrote %s", target, extra={"icon_bytes": len(ico)})
        else:
            write_icon_set(build_icon_set(content, args.sizes, args.algo), args.out)
    except ValueError as exc:
        logger.error("Icon generation failed: %s", exc)
        return 1
    except OSError as exc:
        logger.error("Could not read or write icon files: %s", exc)
        return 1

    logger.info("Icons written to %s", args.out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
