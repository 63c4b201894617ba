"""Writers for SAM text and BGZF-compressed BAM files."""

from __future__ import annotations

import struct
import zlib

from .bam_io import BAM_MAGIC, BamHeader
from .records import BamRecord

_BLOCK_PAYLOAD = 0xFF00


def _bgzf_block(data: bytes) -> bytes:
    compressor = zlib.compressobj(6, zlib.DEFLATED, -15)
    packed = compressor.compress(data) + compressor.flush()
    header = (
        b"\x1f\x8b\x08\x04\0\0\0\0\0\xff"
        + struct.pack("<H", 6)
        + b"BC"
        + struct.pack("<HH", 2, len(packed) + 25)
    )
    return header + packed + struct.pack("<II", zlib.crc32(data), len(data))


def _header_bytes(header: BamHeader) -> bytes:
    text = header.text.encode("ascii")
    parts = [BAM_MAGIC, struct.pack("<i", len(text)), text, struct.pack("<i", len(header.references))]
    for name, length in header.references:
        raw = name.encode("ascii") + b"\0"
        parts += [struct.pack("<i", len(raw)), raw, struct.pack("<i", length)]
    return b"".join(parts)


class BamWriter:
    """Writes records to a BAM file, or a SAM file when sam is true."""

    def __init__(self, path, header: BamHeader, sam: bool = False) -> None:
        self.path = str(path)
        self._sam = sam
        self._names = [name for name, _ in header.references]
        try:
            if sam:
                self._fh = open(self.path, "w", encoding="ascii", newline="\n")
                text = header.text
                if text and not text.endswith("\n"):
                    text += "\n"
                self._fh.write(text)
            else:
                self._fh = open(self.path, "wb")
                self._buffer = bytearray(_header_bytes(header))
        except OSError as exc:
            raise OSError(f"Failed to open output file {self.path}") from exc

    def _flush(self, everything: bool) -> None:
        while len(self._buffer) >= _BLOCK_PAYLOAD or (everything and self._buffer):
            chunk = bytes(self._buffer[:_BLOCK_PAYLOAD])
            del self._buffer[:_BLOCK_PAYLOAD]
            self._fh.write(_bgzf_block(chunk))

    def write(self, record: BamRecord) -> int:
        """Write one record; returns the number of bytes it took."""
        if self._fh is None:
            raise ValueError("write to a closed BamWriter")
        if self._sam:
            line = record.to_sam_line(self._names) + "\n"
            self._fh.write(line)
            return len(line)
        body = record.to_bytes()
        self._buffer += struct.pack("<i", len(body)) + body
        self._flush(everything=False)
        return len(body) + 4

    def close(self) -> None:
        if self._fh is None:
            return
        if not self._sam:
            self._flush(everything=True)
            self._fh.write(_bgzf_block(b""))
        self._fh.close()
        self._fh = None

    def __enter__(self) -> "BamWriter":
        return self

    def __exit__(self, *exc) -> None:
        self.close()