"""Shared helpers for reading and writing DBPF 2.1 (.package) archives."""
from __future__ import annotations

import dataclasses
import struct
import zlib
from typing import Iterable, Iterator, Sequence

DBPF_MAGIC = b"DBPF"
HEADER_STRUCT = struct.Struct("<4s15IQ24x")
HEADER_SIZE = HEADER_STRUCT.size  # 96 bytes on disk
INDEX_ENTRY_STRUCT = struct.Struct("<IIIIIIIHH")
INDEX_ENTRY_SIZE = INDEX_ENTRY_STRUCT.size  # 32 bytes when no index field is constant
FILE_VERSION = (2, 1)
INDEX_MINOR_VERSION = 3

COMPRESSION_NONE = 0x0000
COMPRESSION_DELETED = 0xFFE0
COMPRESSION_STREAMABLE = 0xFFFE
COMPRESSION_INTERNAL = 0xFFFF  # RefPack
COMPRESSION_ZLIB = 0x5A42
EXTENDED_COMPRESSION = 0x80000000

# Index flag bits marking a field as shared by every entry.
INDEX_CONSTANT_TYPE = 0x1
INDEX_CONSTANT_GROUP = 0x2
INDEX_CONSTANT_INSTANCE_HI = 0x4

U32_MAX = 0xFFFFFFFF
U64_MAX = 0xFFFFFFFFFFFFFFFF


@dataclasses.dataclass(frozen=True, slots=True, order=True)
class ResourceKey:
    type: int
    group: int
    instance: int

    def __post_init__(self) -> None:
        if not 0 <= self.type <= U32_MAX:
            raise ValueError(f"Resource type out of range: {self.type}")
        if not 0 <= self.group <= U32_MAX:
            raise ValueError(f"Resource group out of range: {self.group}")
        if not 0 <= self.instance <= U64_MAX:
            raise ValueError(f"Resource instance out of range: {self.instance}")

    def __str__(self) -> str:
        return f"{self.type:08X}:{self.group:08X}:{self.instance:016X}"


def format_group(group: int) -> str:
    return f"{group:08X}"


@dataclasses.dataclass(slots=True)
class DbpfHeader:
    magic: bytes
    major: int
    minor: int
    user_major: int
    user_minor: int
    flags: int
    created: int
    modified: int
    index_major: int
    index_count: int
    index_position_low: int
    index_size: int
    hole_count: int
    hole_position: int
    hole_size: int
    index_minor: int
    index_position: int

    @classmethod
    def parse(cls, data: bytes) -> "DbpfHeader":
        if len(data) < HEADER_SIZE:
            raise ValueError("DBPF header too short")
        header = cls(*HEADER_STRUCT.unpack_from(data, 0))
        if header.magic != DBPF_MAGIC:
            raise ValueError(f"Invalid DBPF magic {header.magic!r}")
        if (header.major, header.minor) != FILE_VERSION:
            raise ValueError(f"Unsupported DBPF version {header.major}.{header.minor}")
        return header

    @classmethod
    def for_index(cls, count: int, position: int, size: int) -> "DbpfHeader":
        return cls(
            DBPF_MAGIC,
            *FILE_VERSION,
            0, 0, 0,
            0, 0,  # timestamps stay zero so identical input gives identical bytes
            0,
            count,
            0,
            size,
            0, 0, 0,
            INDEX_MINOR_VERSION,
            position,
        )

    def resolve_index_position(self) -> int:
        return self.index_position or self.index_position_low

    def to_bytes(self) -> bytes:
        return HEADER_STRUCT.pack(*dataclasses.astuple(self))


@dataclasses.dataclass(slots=True)
class PackageEntry:
    """One keyed resource; ``data`` holds the bytes as stored on disk."""

    key: ResourceKey
    data: bytes
    compression: int = COMPRESSION_NONE
    mem_size: int | None = None

    @classmethod
    def from_payload(cls, key: ResourceKey, payload: bytes, *, compress: bool = True) -> "PackageEntry":
        if compress and payload:
            packed = zlib.compress(payload, 9)
            if len(packed) < len(payload):
                return cls(key, packed, COMPRESSION_ZLIB, len(payload))
        return cls(key, bytes(payload), COMPRESSION_NONE, len(payload))

    @property
    def size(self) -> int:
        return self.mem_size if self.mem_size is not None else len(self.data)

    def payload(self) -> bytes:
        return decompress_payload(self.data, self.compression, self.size)


def _refpack_decompress(block: bytes) -> bytes:
    if len(block) < 5 or block[1] != 0xFB:
        raise ValueError("Invalid RefPack header")
    flags = block[0]
    size_len = 4 if flags & 0x80 else 3
    expected = int.from_bytes(block[2:2 + size_len], "big")
    src = 2 + size_len
    out = bytearray()
    while src < len(block):
        b0 = block[src]
        if b0 <= 0x7F:
            b1 = block[src + 1]
            src += 2
            plain = b0 & 0x03
            copy = ((b0 & 0x1C) >> 2) + 3
            offset = ((b0 & 0x60) << 3) + b1 + 1
        elif b0 <= 0xBF:
            b1, b2 = block[src + 1], block[src + 2]
            src += 3
            plain = (b1 >> 6) & 0x03
            copy = (b0 & 0x3F) + 4
            offset = ((b1 & 0x3F) << 8) + b2 + 1
        elif b0 <= 0xDF:
            b1, b2, b3 = block[src + 1], block[src + 2], block[src + 3]
            src += 4
            plain = b0 & 0x03
            copy = ((b0 & 0x0C) << 6) + b3 + 5
            offset = ((b0 & 0x10) << 12) + (b1 << 8) + b2 + 1
        elif b0 <= 0xFB:
            src += 1
            plain = ((b0 & 0x1F) << 2) + 4
            copy = 0
            offset = 0
        else:
            src += 1
            plain = b0 & 0x03
            out += block[src:src + plain]
            break
        out += block[src:src + plain]
        src += plain
        if copy:
            if offset > len(out):
                raise ValueError("RefPack back-reference before start of output")
            start = len(out) - offset
            # Byte-wise copy; ranges may overlap the bytes being written.
            for i in range(copy):
                out.append(out[start + i])
    if len(out) != expected:
        raise ValueError(f"RefPack size mismatch: expected {expected} got {len(out)}")
    return bytes(out)


def decompress_payload(data: bytes, compression: int, mem_size: int) -> bytes:
    if compression == COMPRESSION_NONE:
        return data
    try:
        if compression == COMPRESSION_ZLIB:
            payload = zlib.decompress(data)
        elif compression == COMPRESSION_INTERNAL:
            payload = _refpack_decompress(data)
        else:
            raise ValueError(f"Unsupported compression type 0x{compression:04X}")
    except zlib.error as exc:
        raise ValueError(f"Corrupt zlib payload: {exc}") from exc
    except IndexError as exc:
        raise ValueError("RefPack payload truncated") from exc
    if len(payload) != mem_size:
        raise ValueError(f"Decompressed size mismatch: expected {mem_size} got {len(payload)}")
    return payload


def iter_index(data: bytes, header: DbpfHeader) -> Iterator[tuple[ResourceKey, int, int, int, int]]:
    """Yield ``(key, position, file_size, mem_size, compression)`` per index record."""
    cursor = header.resolve_index_position()
    end = cursor + header.index_size
    if end > len(data):
        raise ValueError("Index extends past end of file")
    (flags,) = struct.unpack_from("<I", data, cursor)
    cursor += 4
    constants: dict[int, int] = {}
    for bit in (INDEX_CONSTANT_TYPE, INDEX_CONSTANT_GROUP, INDEX_CONSTANT_INSTANCE_HI):
        if flags & bit:
            (constants[bit],) = struct.unpack_from("<I", data, cursor)
            cursor += 4
    for idx in range(header.index_count):
        fields: list[int] = []
        for bit in (INDEX_CONSTANT_TYPE, INDEX_CONSTANT_GROUP, INDEX_CONSTANT_INSTANCE_HI):
            if bit in constants:
                fields.append(constants[bit])
            else:
                fields.append(struct.unpack_from("<I", data, cursor)[0])
                cursor += 4
        if cursor + 20 > end:
            raise ValueError(f"Index truncated before entry {idx}")
        instance_lo, position, file_size, mem_size = struct.unpack_from("<IIII", data, cursor)
        # Sims 4 records always carry the compression fields, extended flag or not.
        compression, _committed = struct.unpack_from("<HH", data, cursor + 16)
        cursor += 20
        type_, group, instance_hi = fields
        key = ResourceKey(type_, group, (instance_hi << 32) | instance_lo)
        if not file_size & EXTENDED_COMPRESSION:
            compression = COMPRESSION_NONE
        yield key, position, file_size & ~EXTENDED_COMPRESSION, mem_size, compression


def extract_entries(data: bytes, *, load_raw: bool = False) -> list[PackageEntry]:
    """Read every live entry of a package.

    With ``load_raw`` the stored bytes are kept as they are (compressed or
    not, streamable included), which is what merging a pre-built package
    needs. Otherwise every payload is decompressed up front. Deleted
    records are always skipped.
    """
    header = DbpfHeader.parse(data[:HEADER_SIZE])
    try:
        index = list(iter_index(data, header))
    except struct.error as exc:
        raise ValueError(f"Index truncated: {exc}") from exc
    entries: list[PackageEntry] = []
    for key, position, file_size, mem_size, compression in index:
        if compression == COMPRESSION_DELETED:
            continue
        if position + file_size > len(data):
            raise ValueError(f"Resource {key} extends past end of file")
        blob = data[position:position + file_size]
        if load_raw:
            entries.append(PackageEntry(key, blob, compression, mem_size))
        else:
            payload = decompress_payload(blob, compression, mem_size)
            entries.append(PackageEntry(key, payload, COMPRESSION_NONE, len(payload)))
    return entries


def build_index(entries: Sequence[PackageEntry], first_position: int) -> bytes:
    pieces = [struct.pack("<I", 0)]
    position = first_position
    for entry in entries:
        file_size = len(entry.data)
        if entry.compression != COMPRESSION_NONE:
            file_size |= EXTENDED_COMPRESSION
        pieces.append(
            INDEX_ENTRY_STRUCT.pack(
                entry.key.type,
                entry.key.group,
                entry.key.instance >> 32,
                entry.key.instance & U32_MAX,
                position,
                file_size,
                entry.size,
                entry.compression,
                1,
            )
        )
        position += len(entry.data)
    return b"".join(pieces)


class Package:
    """In-memory package keeping one entry per key in insertion order."""

    def __init__(self, entries: Iterable[PackageEntry] = ()) -> None:
        self._entries: dict[ResourceKey, PackageEntry] = {}
        self.add_all(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[PackageEntry]:
        return iter(list(self._entries.values()))

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    @property
    def entries(self) -> list[PackageEntry]:
        return list(self._entries.values())

    def get(self, key: ResourceKey) -> PackageEntry | None:
        return self._entries.get(key)

    def add(self, key: ResourceKey, payload: bytes, *, compress: bool = True) -> PackageEntry | None:
        """Add ``payload`` under ``key``; returns the entry it replaced, if any."""
        return self.add_entry(PackageEntry.from_payload(key, payload, compress=compress))

    def add_entry(self, entry: PackageEntry) -> PackageEntry | None:
        replaced = self._entries.pop(entry.key, None)
        self._entries[entry.key] = entry
        return replaced

    def add_all(self, entries: Iterable[PackageEntry]) -> list[PackageEntry]:
        replaced: list[PackageEntry] = []
        for entry in entries:
            previous = self.add_entry(entry)
            if previous is not None:
                replaced.append(previous)
        return replaced

    def delete(self, key: ResourceKey) -> PackageEntry:
        return self._entries.pop(key)

    def to_bytes(self) -> bytes:
        entries = self.entries
        blobs = b"".join(entry.data for entry in entries)
        index = build_index(entries, HEADER_SIZE)
        header = DbpfHeader.for_index(len(entries), HEADER_SIZE + len(blobs), len(index))
        return header.to_bytes() + blobs + index

    @classmethod
    def from_bytes(cls, data: bytes, *, load_raw: bool = False) -> "Package":
        return cls(extract_entries(data, load_raw=load_raw))
