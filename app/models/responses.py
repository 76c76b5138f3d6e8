from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class DirectoryEntryResponse(BaseModel):
    index: int = Field(..., description="Position of the image in the directory")
    width: int = Field(..., description="Raw width byte (0 stands for 256)")
    height: int = Field(..., description="Raw height byte (0 stands for 256)")
    declared_size: int = Field(..., description="Pixel size with the 0 => 256 rule applied")
    color_planes: int
    bits_per_pixel: int
    size: int = Field(..., description="Payload length in bytes")
    offset: int = Field(..., description="Absolute payload offset within the container")


class ContainerResponse(BaseModel):
    count: int
    total_bytes: int
    entries: List[DirectoryEntryResponse]
