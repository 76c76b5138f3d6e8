import asyncio
import io

import pytest
from PIL import Image

from app.services.ico_encoder import extract_payloads, read_directory
from app.services.icon_set import build_ico, build_icon_set, parse_sizes, write_icon_set


def create_png(width: int, height: int, color=(200, 50, 50, 255)) -> bytes:
    image = Image.new("RGBA", (width, height), color)
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def image_size(data: bytes) -> tuple[int, int]:
    with Image.open(io.BytesIO(data)) as image:
        return image.size


def test_build_ico_uses_configured_sizes_by_default():
    ico = build_ico(create_png(300, 200))

    records = read_directory(ico)
    assert [r.declared_size for r in records] == [16, 32, 48, 64, 128, 256]
    assert records[-1].width == 0
    for record, payload in zip(records, extract_payloads(ico)):
        assert image_size(payload) == (record.declared_size, record.declared_size)


def test_build_ico_with_custom_sizes():
    ico = build_ico(create_png(64, 64), sizes=[48, 16])

    assert [r.declared_size for r in read_directory(ico)] == [48, 16]


def test_build_icon_set_produces_every_asset(monkeypatch):
    monkeypatch.setattr("app.services.icon_set.settings.master_size", 128)
    monkeypatch.setattr("app.services.icon_set.settings.linux_size", 64)

    icon_set = build_icon_set(create_png(50, 50), sizes=[16, 32])

    assert image_size(icon_set.master_png) == (128, 128)
    assert image_size(icon_set.favicon_png) == (32, 32)
    assert image_size(icon_set.linux_png) == (64, 64)
    assert len(read_directory(icon_set.ico)) == 2
    assert set(icon_set.files()) == {"icon.png", "icon.ico", "favicon.png", "icon-64.png"}


def test_write_icon_set_writes_all_files(tmp_path, monkeypatch):
    monkeypatch.setattr("app.services.icon_set.settings.master_size", 64)
    icon_set = build_icon_set(create_png(20, 20), sizes=[16])
    target = tmp_path / "nested" / "assets"

    written = write_icon_set(icon_set, target)

    assert sorted(path.name for path in written) == sorted(icon_set.files())
    for name, data in icon_set.files().items():
        assert (target / name).read_bytes() == data


def test_build_ico_rejects_invalid_source():
    with pytest.raises(ValueError, match="valid image"):
        build_ico(b"garbage", sizes=[16])


@pytest.mark.asyncio
async def test_build_ico_in_worker_threads_is_deterministic():
    source = create_png(40, 40)

    first, second = await asyncio.gather(
        asyncio.to_thread(build_ico, source, [16, 32]),
        asyncio.to_thread(build_ico, source, [16, 32]),
    )

    assert first == second


@pytest.mark.parametrize("sizes", [[16, 70000], [16, 1025], [0], [-32]])
def test_build_ico_rejects_sizes_outside_render_range_before_rendering(sizes, monkeypatch):
    rendered = []
    monkeypatch.setattr(
        "app.services.icon_set.render_entries",
        lambda *args: rendered.append(args) or [],
    )

    with pytest.raises(ValueError, match="outside the supported range"):
        build_ico(create_png(16, 16), sizes=sizes)

    assert rendered == []


def test_build_icon_set_respects_configured_render_limit(monkeypatch):
    monkeypatch.setattr("app.services.icon_set.settings.max_render_size", 64)

    with pytest.raises(ValueError, match="1..64"):
        build_icon_set(create_png(16, 16), sizes=[16, 128])


def test_parse_sizes():
    assert parse_sizes("16, 32,,256") == [16, 32, 256]
    assert parse_sizes("  ") == []
    assert parse_sizes(None) == []
    with pytest.raises(ValueError, match="comma-separated integers"):
        parse_sizes("16,big")
