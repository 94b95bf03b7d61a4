"""Extraction of 7z archives using LZMA, LZMA2 or stored folders."""

from __future__ import annotations

import lzma
import zlib
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

_SIGNATURE = b"7z\xbc\xaf\x27\x1c"

_END, _HEADER, _ARCHIVE_PROPS, _ADDITIONAL, _MAIN = 0, 1, 2, 3, 4
_FILES, _PACK, _UNPACK, _SUBSTREAMS, _SIZE, _CRC = 5, 6, 7, 8, 9, 10
_FOLDER, _CODERS_SIZE, _NUM_STREAMS = 11, 12, 13
_EMPTY_STREAM, _EMPTY_FILE, _ANTI, _NAME = 14, 15, 16, 17
_ENCODED_HEADER = 23

_COPY = b"\x00"
_LZMA = b"\x03\x01\x01"
_LZMA2 = b"\x21"


class SevenZipError(ValueError):
    """The archive is damaged or uses a feature that is not supported."""


class _Reader:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def byte(self) -> int:
        if self.pos >= len(self.data):
            raise SevenZipError("unexpected end of header")
        value = self.data[self.pos]
        self.pos += 1
        return value

    def take(self, size: int) -> bytes:
        if self.pos + size > len(self.data):
            raise SevenZipError("unexpected end of header")
        chunk = self.data[self.pos : self.pos + size]
        self.pos += size
        return chunk

    def number(self) -> int:
        first = self.byte()
        mask = 0x80
        value = 0
        for i in range(8):
            if not first & mask:
                return value | ((first & (mask - 1)) << (8 * i))
            value |= self.byte() << (8 * i)
            mask >>= 1
        return value

    def bits(self, count: int) -> list[bool]:
        result: list[bool] = []
        current = 0
        for i in range(count):
            if i % 8 == 0:
                current = self.byte()
            result.append(bool((current >> (7 - i % 8)) & 1))
        return result

    def defined(self, count: int) -> list[bool]:
        return [True] * count if self.byte() else self.bits(count)

    def digests(self, count: int) -> list[int | None]:
        return [
            int.from_bytes(self.take(4), "little") if present else None
            for present in self.defined(count)
        ]

    def expect(self, prop: int) -> None:
        found = self.byte()
        if found != prop:
            raise SevenZipError(f"expected property {prop}, found {found}")


@dataclass
class _Coder:
    method: bytes
    props: bytes
    num_in: int
    num_out: int


@dataclass
class _Folder:
    coders: list[_Coder]
    unpack_sizes: list[int] = field(default_factory=list)
    crc: int | None = None
    bound_outs: set[int] = field(default_factory=set)

    @property
    def unpack_size(self) -> int:
        for index, size in enumerate(self.unpack_sizes):
            if index not in self.bound_outs:
                return size
        raise SevenZipError("folder has no output stream")


@dataclass
class _Streams:
    pack_pos: int = 0
    pack_sizes: list[int] = field(default_factory=list)
    folders: list[_Folder] = field(default_factory=list)
    counts: list[int] = field(default_factory=list)
    sizes: list[int] = field(default_factory=list)
    crcs: list[int | None] = field(default_factory=list)


def _read_folder(reader: _Reader) -> _Folder:
    coders = []
    for _ in range(reader.number()):
        flags = reader.byte()
        method = reader.take(flags & 0x0F)
        num_in, num_out = (reader.number(), reader.number()) if flags & 0x10 else (1, 1)
        props = reader.take(reader.number()) if flags & 0x20 else b""
        if flags & 0x80:
            raise SevenZipError("alternative coder methods are not supported")
        coders.append(_Coder(method, props, num_in, num_out))
    total_in = sum(c.num_in for c in coders)
    total_out = sum(c.num_out for c in coders)
    bound_outs = set()
    for _ in range(total_out - 1):
        reader.number()
        bound_outs.add(reader.number())
    packed = total_in - (total_out - 1)
    if packed > 1:
        for _ in range(packed):
            reader.number()
    return _Folder(coders, bound_outs=bound_outs)


def _read_streams(reader: _Reader) -> _Streams:
    streams = _Streams()
    substreams_read = False
    prop = reader.byte()
    if prop == _PACK:
        streams.pack_pos = reader.number()
        count = reader.number()
        prop = reader.byte()
        if prop == _SIZE:
            streams.pack_sizes = [reader.number() for _ in range(count)]
            prop = reader.byte()
        if prop == _CRC:
            reader.digests(count)
            prop = reader.byte()
        if prop != _END:
            raise SevenZipError("malformed pack info")
        prop = reader.byte()
    if prop == _UNPACK:
        reader.expect(_FOLDER)
        count = reader.number()
        if reader.byte():
            raise SevenZipError("external folder data is not supported")
        streams.folders = [_read_folder(reader) for _ in range(count)]
        reader.expect(_CODERS_SIZE)
        for folder in streams.folders:
            outs = sum(c.num_out for c in folder.coders)
            folder.unpack_sizes = [reader.number() for _ in range(outs)]
        prop = reader.byte()
        if prop == _CRC:
            for folder, crc in zip(streams.folders, reader.digests(count)):
                folder.crc = crc
            prop = reader.byte()
        if prop != _END:
            raise SevenZipError("malformed unpack info")
        prop = reader.byte()
    if prop == _SUBSTREAMS:
        _read_substreams(reader, streams)
        substreams_read = True
        prop = reader.byte()
    if prop != _END:
        raise SevenZipError("malformed streams info")
    if not substreams_read:
        streams.counts = [1] * len(streams.folders)
        streams.sizes = [f.unpack_size for f in streams.folders]
        streams.crcs = [f.crc for f in streams.folders]
    return streams


def _read_substreams(reader: _Reader, streams: _Streams) -> None:
    folders = streams.folders
    streams.counts = [1] * len(folders)
    prop = reader.byte()
    if prop == _NUM_STREAMS:
        streams.counts = [reader.number() for _ in folders]
        prop = reader.byte()
    has_sizes = prop == _SIZE
    for folder, count in zip(folders, streams.counts):
        if count == 0:
            continue
        if count > 1 and not has_sizes:
            raise SevenZipError("missing substream sizes")
        sizes = [reader.number() for _ in range(count - 1)] if has_sizes else []
        remainder = folder.unpack_size - sum(sizes)
        if remainder < 0:
            raise SevenZipError("substream sizes exceed folder size")
        streams.sizes.extend([*sizes, remainder])
    if has_sizes:
        prop = reader.byte()

    def known(folder: _Folder, count: int) -> bool:
        return count == 1 and folder.crc is not None

    missing = sum(c for f, c in zip(folders, streams.counts) if not known(f, c))
    digests = iter(reader.digests(missing)) if prop == _CRC else iter([None] * missing)
    if prop == _CRC:
        prop = reader.byte()
    for folder, count in zip(folders, streams.counts):
        if known(folder, count):
            streams.crcs.append(folder.crc)
        else:
            streams.crcs.extend(next(digests) for _ in range(count))
    if prop != _END:
        raise SevenZipError("malformed substreams info")


def _lzma2_dict_size(prop: int) -> int:
    if prop > 40:
        raise SevenZipError("invalid LZMA2 dictionary size")
    if prop == 40:
        return 0xFFFFFFFF
    return (2 | (prop & 1)) << (prop // 2 + 11)


def _decode_folder(folder: _Folder, packed: bytes) -> bytes:
    if len(folder.coders) != 1 or folder.coders[0].num_in != 1 or folder.coders[0].num_out != 1:
        raise SevenZipError("chained coders are not supported")
    coder = folder.coders[0]
    size = folder.unpack_size
    if coder.method == _COPY:
        output = packed
    elif coder.method == _LZMA:
        if len(coder.props) < 5:
            raise SevenZipError("invalid LZMA properties")
        value = coder.props[0]
        lc, value = value % 9, value // 9
        lp, pb = value % 5, value // 5
        filters = [
            {
                "id": lzma.FILTER_LZMA1,
                "dict_size": int.from_bytes(coder.props[1:5], "little"),
                "lc": lc,
                "lp": lp,
                "pb": pb,
            }
        ]
        output = _raw_decompress(packed, filters, size)
    elif coder.method == _LZMA2:
        if len(coder.props) < 1:
            raise SevenZipError("invalid LZMA2 properties")
        filters = [{"id": lzma.FILTER_LZMA2, "dict_size": _lzma2_dict_size(coder.props[0])}]
        output = _raw_decompress(packed, filters, size)
    else:
        raise SevenZipError(f"unsupported coder {coder.method.hex()}")
    if len(output) < size:
        raise SevenZipError("folder data is truncated")
    output = output[:size]
    if folder.crc is not None and zlib.crc32(output) != folder.crc:
        raise SevenZipError("folder CRC mismatch")
    return output


def _raw_decompress(packed: bytes, filters: list[dict], size: int) -> bytes:
    try:
        return lzma.LZMADecompressor(lzma.FORMAT_RAW, filters=filters).decompress(
            packed, max_length=size
        )
    except lzma.LZMAError as exc:
        raise SevenZipError(f"decompression failed: {exc}") from exc


def _unpack_folders(data: bytes, streams: _Streams) -> list[bytes]:
    offset = 32 + streams.pack_pos
    results = []
    for index, folder in enumerate(streams.folders):
        if index >= len(streams.pack_sizes):
            raise SevenZipError("missing pack stream")
        length = streams.pack_sizes[index]
        packed = data[offset : offset + length]
        if len(packed) != length:
            raise SevenZipError("pack stream is truncated")
        offset += length
        results.append(_decode_folder(folder, packed))
    return results


def _read_files(reader: _Reader) -> list[tuple[str, bool, bool]]:
    """List of (name, has_stream, is_directory)."""
    count = reader.number()
    empty_stream = [False] * count
    empty_file: list[bool] = []
    anti: list[bool] = []
    names: list[str] = []
    while (prop := reader.byte()) != _END:
        sub = _Reader(reader.take(reader.number()))
        if prop == _EMPTY_STREAM:
            empty_stream = sub.bits(count)
        elif prop == _EMPTY_FILE:
            empty_file = sub.bits(sum(empty_stream))
        elif prop == _ANTI:
            anti = sub.bits(sum(empty_stream))
        elif prop == _NAME:
            if sub.byte():
                raise SevenZipError("external names are not supported")
            names = sub.data[sub.pos :].decode("utf-16-le").split("\0")[:count]
    if len(names) != count:
        raise SevenZipError("archive entries have no names")
    entries = []
    empty_index = 0
    for name, empty in zip(names, empty_stream):
        if not empty:
            entries.append((name, True, False))
            continue
        is_file = empty_index < len(empty_file) and empty_file[empty_index]
        is_anti = empty_index < len(anti) and anti[empty_index]
        empty_index += 1
        if not is_anti:
            entries.append((name, False, not is_file))
    return entries


def _target(dest: Path, name: str) -> Path:
    relative = PurePosixPath(name.replace("\\", "/"))
    if relative.is_absolute() or ".." in relative.parts or not relative.parts:
        raise SevenZipError(f"unsafe entry path: {name!r}")
    return dest.joinpath(*relative.parts)


def extract(data: bytes, dest: str | Path) -> list[Path]:
    """Extract a 7z archive held in ``data`` below ``dest``; return written paths."""
    data = bytes(data)
    if len(data) < 32 or not data.startswith(_SIGNATURE):
        raise SevenZipError("not a 7z archive")
    start = data[12:32]
    if zlib.crc32(start) != int.from_bytes(data[8:12], "little"):
        raise SevenZipError("start header CRC mismatch")
    next_offset = int.from_bytes(start[0:8], "little")
    next_size = int.from_bytes(start[8:16], "little")
    next_crc = int.from_bytes(start[16:20], "little")
    dest = Path(dest)
    dest.mkdir(parents=True, exist_ok=True)
    if next_size == 0:
        return []
    header = data[32 + next_offset : 32 + next_offset + next_size]
    if len(header) != next_size or zlib.crc32(header) != next_crc:
        raise SevenZipError("header is damaged")

    reader = _Reader(header)
    prop = reader.byte()
    while prop == _ENCODED_HEADER:
        decoded = _unpack_folders(data, _read_streams(reader))
        if not decoded:
            raise SevenZipError("encoded header has no data")
        reader = _Reader(decoded[0])
        prop = reader.byte()
    if prop != _HEADER:
        raise SevenZipError("missing header")

    streams = _Streams()
    entries: list[tuple[str, bool, bool]] = []
    prop = reader.byte()
    if prop == _ARCHIVE_PROPS:
        while reader.byte() != _END:
            reader.take(reader.number())
        prop = reader.byte()
    if prop == _ADDITIONAL:
        raise SevenZipError("additional streams are not supported")
    if prop == _MAIN:
        streams = _read_streams(reader)
        prop = reader.byte()
    if prop == _FILES:
        entries = _read_files(reader)
        prop = reader.byte()
    if prop != _END:
        raise SevenZipError("malformed header")

    contents = []
    for folder_data, count, in zip(_unpack_folders(data, streams), streams.counts):
        contents.append((folder_data, count))
    pieces = []
    index = 0
    for folder_data, count in contents:
        offset = 0
        for _ in range(count):
            size = streams.sizes[index]
            piece = folder_data[offset : offset + size]
            crc = streams.crcs[index]
            if crc is not None and zlib.crc32(piece) != crc:
                raise SevenZipError("file CRC mismatch")
            pieces.append(piece)
            offset += size
            index += 1

    piece_iter = iter(pieces)
    written = []
    for name, has_stream, is_dir in entries:
        target = _target(dest, name)
        if is_dir:
            target.mkdir(parents=True, exist_ok=True)
        else:
            content = next(piece_iter, None) if has_stream else b""
            if content is None:
                raise SevenZipError("more files than streams")
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        written.append(target)
    return written