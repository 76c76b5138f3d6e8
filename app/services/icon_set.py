from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from app.core.config import settings
from app.services.ico_encoder import encode_ico
from app.services.rendering import ResampleAlgorithm, load_source, render_entries, render_png

logger = getLogger(__name__)

MASTER_FILENAME = "icon.png"
ICO_FILENAME = "icon.ico"
FAVICON_FILENAME = "favicon.png"


@dataclass
class IconSet:
    """Every asset generated from one source image."""

    master_png: bytes
    ico: bytes
    favicon_png: bytes
    linux_png: bytes
    linux_size: int

    def files(self) -> Dict[str, bytes]:
        return {
            MASTER_FILENAME: self.master_png,
            ICO_FILENAME: self.ico,
            FAVICON_FILENAME: self.favicon_png,
            f"icon-{self.linux_size}.png": self.linux_png,
        }


def parse_sizes(raw: Optional[str]) -> List[int]:
    """Parse a comma-separated list of pixel sizes such as ``"16,32,256"``."""

    if raw is None or not raw.strip():
        return []
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError as exc:
        raise ValueError(f"Sizes must be comma-separated integers, got {raw!r}") from exc


def check_render_sizes(sizes: Sequence[int]) -> List[int]:
    """Reject sizes the renderer should not allocate canvases for."""

    limit = settings.max_render_size
    for size in sizes:
        if isinstance(size, bool) or not isinstance(size, int) or not 1 <= size <= limit:
            raise ValueError(f"Render size {size!r} is outside the supported range 1..{limit}")
    return list(sizes)


def build_ico(
    source: bytes,
    sizes: Optional[Sequence[int]] = None,
    algo: ResampleAlgorithm = ResampleAlgorithm.LANCZOS,
) -> bytes:
    """Render the source at each size and pack the results into an ICO."""

    sizes = check_render_sizes(sizes or settings.ico_sizes)
    image = load_source(source)
    entries = render_entries(image, sizes, algo)
    for entry in entries:
        logger.debug(
            "Rendered %dx%d PNG for ICO",
            entry.declared_size,
            entry.declared_size,
            extra={"icon_size": entry.declared_size, "icon_bytes": len(entry.image_bytes)},
        )
    return encode_ico(entries)


def build_icon_set(
    source: bytes,
    sizes: Optional[Sequence[int]] = None,
    algo: ResampleAlgorithm = ResampleAlgorithm.LANCZOS,
) -> IconSet:
    sizes = check_render_sizes(sizes or settings.ico_sizes)
    image = load_source(source)
    entries = render_entries(image, sizes, algo)

    return IconSet(
        master_png=render_png(image, settings.master_size, algo),
        ico=encode_ico(entries),
        favicon_png=render_png(image, settings.favicon_size, algo),
        linux_png=render_png(image, settings.linux_size, algo),
        linux_size=settings.linux_size,
    )


def write_icon_set(icon_set: IconSet, output_dir: Path) -> List[Path]:
    """Write every asset into ``output_dir``, overwriting existing files."""

    output_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for name, data in icon_set.files().items():
        path = output_dir / name
        path.write_bytes(data)
        logger.info("Wrote %s", path, extra={"icon_file": str(path), "icon_bytes": len(data)})
        written.append(path)
    return written
