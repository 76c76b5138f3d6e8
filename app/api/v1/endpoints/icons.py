from __future__ import annotations

import asyncio
from logging import getLogger
from pathlib import Path
from typing import Annotated, List, Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi.responses import Response
from starlette import status

from app.core.config import settings
from app.models.responses import ContainerResponse, DirectoryEntryResponse
from app.services.ico_encoder import IconEntry, IcoFormatError, encode_ico, read_directory
from app.services.icon_set import build_ico, parse_sizes
from app.services.rendering import ResampleAlgorithm

router = APIRouter(prefix="/icons", tags=["icons"])

logger = getLogger(__name__)

ICO_MEDIA_TYPE = "image/x-icon"


def ico_response(content: bytes, filename: str) -> Response:
    headers = {"Content-Disposition": f"attachment; filename=\"{filename}\""}
    return Response(content=content, media_type=ICO_MEDIA_TYPE, headers=headers)


async def read_payload(upload: UploadFile) -> bytes:
    limit = settings.max_upload_size_bytes
    data = await upload.read(limit + 1)
    if len(data) > limit:
        raise ValueError(f"Payload {upload.filename!r} exceeds maximum size limit")
    return data


@router.post("/pack", response_class=Response)
async def pack_icons(
    files: Annotated[List[UploadFile], File(..., description="Encoded image payloads")],
    sizes: Annotated[str, Form(..., description="Declared pixel size per payload, comma-separated")],
) -> Response:
    try:
        declared = parse_sizes(sizes)
        if len(declared) != len(files):
            raise ValueError(
                f"Got {len(files)} files but {len(declared)} sizes; counts must match"
            )
        entries = [
            IconEntry(size, await read_payload(upload)) for size, upload in zip(declared, files)
        ]
        ico_bytes = encode_ico(entries)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    logger.info("Packed %d images into ICO", len(entries), extra={"icon_bytes": len(ico_bytes)})
    return ico_response(ico_bytes, "icon.ico")


@router.post("/render", response_class=Response)
async def render_icon(
    file: Annotated[UploadFile, File(..., description="Source image")],
    sizes: Annotated[Optional[str], Form(description="Sizes to render, comma-separated")] = None,
    algo: Annotated[
        ResampleAlgorithm, Form(description="Resample algorithm")
    ] = ResampleAlgorithm(settings.default_algorithm),
) -> Response:
    content = await file.read()
    try:
        requested = parse_sizes(sizes) or list(settings.ico_sizes)
        ico_bytes = await asyncio.to_thread(build_ico, content, requested, algo)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    logger.info(
        "Rendered ICO with sizes %s", requested, extra={"icon_bytes": len(ico_bytes)}
    )
    stem = Path(file.filename or "icon").stem or "icon"
    return ico_response(ico_bytes, f"{stem}.ico")


@router.post("/inspect", response_model=ContainerResponse)
async def inspect_icon(
    file: Annotated[UploadFile, File(..., description="ICO container")],
) -> ContainerResponse:
    content = await file.read()
    try:
        records = read_directory(content)
    except IcoFormatError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return ContainerResponse(
        count=len(records),
        total_bytes=len(content),
        entries=[
            DirectoryEntryResponse(
                index=index,
                width=record.width,
                height=record.height,
                declared_size=record.declared_size,
                color_planes=record.color_planes,
                bits_per_pixel=record.bits_per_pixel,
                size=record.size,
                offset=record.offset,
            )
            for index, record in enumerate(records)
        ],
    )
