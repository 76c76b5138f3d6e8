from __future__ import annotations

import struct
from dataclasses import dataclass
from itertools import accumulate
from typing import Iterable, List, Sequence

HEADER_FORMAT = "<HHH"
DIRECTORY_FORMAT = "<BBBBHHII"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)
DIRECTORY_ENTRY_SIZE = struct.calcsize(DIRECTORY_FORMAT)

ICON_TYPE = 1
COLOR_PALETTE = 0
RESERVED = 0
COLOR_PLANES = 1
BITS_PER_PIXEL = 32

MAX_ENTRIES = 0xFFFF
MAX_DECLARED_SIZE = 0xFFFF
MAX_PAYLOAD_OFFSET = 0xFFFFFFFF


class IcoEncodeError(ValueError):
    """Base class for structural errors detected before encoding."""


class EmptyInputError(IcoEncodeError):
    def __init__(self) -> None:
        super().__init__("At least one icon entry is required")


class TooManyEntriesError(IcoEncodeError):
    def __init__(self, count: int) -> None:
        super().__init__(f"ICO containers hold at most {MAX_ENTRIES} images, got {count}")
        self.count = count


class SizeOutOfRangeError(IcoEncodeError):
    def __init__(self, index: int, size: object) -> None:
        super().__init__(
            f"Entry {index} declares size {size!r}; sizes must be between 1 and {MAX_DECLARED_SIZE}"
        )
        self.index = index
        self.size = size


class PayloadTooLargeError(IcoEncodeError):
    def __init__(self, index: int) -> None:
        super().__init__(f"Entry {index} does not fit within 32-bit ICO offsets")
        self.index = index


class IcoFormatError(ValueError):
    """Raised when a buffer cannot be read back as an ICO container."""


@dataclass(frozen=True)
class IconEntry:
    declared_size: int
    image_bytes: bytes


@dataclass(frozen=True)
class DirectoryRecord:
    width: int
    height: int
    size: int
    offset: int
    color_palette: int = COLOR_PALETTE
    reserved: int = RESERVED
    color_planes: int = COLOR_PLANES
    bits_per_pixel: int = BITS_PER_PIXEL

    @property
    def declared_size(self) -> int:
        """Pixel size the record stands for, undoing the 0 means 256 rule."""

        return self.width or 256

    def pack(self) -> bytes:
        return struct.pack(
            DIRECTORY_FORMAT,
            self.width,
            self.height,
            self.color_palette,
            self.reserved,
            self.color_planes,
            self.bits_per_pixel,
            self.size,
            self.offset,
        )


def dimension_byte(size: int) -> int:
    """Encode a pixel dimension into the one-byte width/height field.

    Sizes of 256 and above are stored as 0, the format's marker for 256.
    """

    return 0 if size >= 256 else size


def _validate(entries: Sequence[IconEntry]) -> None:
    if not entries:
        raise EmptyInputError()
    if len(entries) > MAX_ENTRIES:
        raise TooManyEntriesError(len(entries))

    offset = HEADER_SIZE + DIRECTORY_ENTRY_SIZE * len(entries)
    for index, entry in enumerate(entries):
        size = entry.declared_size
        # bool is an int subclass but never a pixel size
        if isinstance(size, bool) or not isinstance(size, int):
            raise SizeOutOfRangeError(index, size)
        if not 1 <= size <= MAX_DECLARED_SIZE:
            raise SizeOutOfRangeError(index, size)
        if offset > MAX_PAYLOAD_OFFSET or len(entry.image_bytes) > MAX_PAYLOAD_OFFSET:
            raise PayloadTooLargeError(index)
        offset += len(entry.image_bytes)


def build_directory(entries: Iterable[IconEntry]) -> List[DirectoryRecord]:
    """Validate entries and return their directory records in caller order."""

    entries = tuple(entries)
    _validate(entries)

    first_offset = HEADER_SIZE + DIRECTORY_ENTRY_SIZE * len(entries)
    lengths = [len(entry.image_bytes) for entry in entries]
    offsets = accumulate(lengths[:-1], initial=first_offset)

    return [
        DirectoryRecord(
            width=dimension_byte(entry.declared_size),
            height=dimension_byte(entry.declared_size),
            size=length,
            offset=offset,
        )
        for entry, length, offset in zip(entries, lengths, offsets)
    ]


def encode_ico(entries: Iterable[IconEntry]) -> bytes:
    """Pack already-encoded images into a single ICO container.

    Payloads are stored verbatim and in the order given; nothing about
    their content is checked. Raises an ``IcoEncodeError`` subclass before
    producing any output when the entries cannot be represented.
    """

    entries = tuple(entries)
    records = build_directory(entries)

    header = struct.pack(HEADER_FORMAT, RESERVED, ICON_TYPE, len(entries))
    directory = b"".join(record.pack() for record in records)
    payloads = b"".join(bytes(entry.image_bytes) for entry in entries)
    return header + directory + payloads


def read_directory(data: bytes) -> List[DirectoryRecord]:
    """Parse the header and directory of an ICO buffer without touching payloads."""

    if len(data) < HEADER_SIZE:
        raise IcoFormatError("Data is too short to hold an ICO header")

    reserved, icon_type, count = struct.unpack_from(HEADER_FORMAT, data, 0)
    if reserved != RESERVED or icon_type != ICON_TYPE:
        raise IcoFormatError("Data does not start with an ICO header")

    directory_end = HEADER_SIZE + DIRECTORY_ENTRY_SIZE * count
    if len(data) < directory_end:
        raise IcoFormatError(f"Directory for {count} images is truncated")

    records = []
    for index in range(count):
        fields = struct.unpack_from(
            DIRECTORY_FORMAT, data, HEADER_SIZE + DIRECTORY_ENTRY_SIZE * index
        )
        width, height, palette, reserved_byte, planes, bpp, size, offset = fields
        if offset < directory_end or offset + size > len(data):
            raise IcoFormatError(f"Image {index} points outside the container")
        records.append(
            DirectoryRecord(
                width=width,
                height=height,
                size=size,
                offset=offset,
                color_palette=palette,
                reserved=reserved_byte,
                color_planes=planes,
                bits_per_pixel=bpp,
            )
        )
    return records


def extract_payloads(data: bytes) -> List[bytes]:
    """Return each embedded image's bytes in directory order."""

    return [
        bytes(data[record.offset : record.offset + record.size])
        for record in read_directory(data)
    ]
