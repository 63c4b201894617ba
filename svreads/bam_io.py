"""Readers for SAM and BAM alignment files."""

from __future__ import annotations

import gzip
import operator
import re
import struct
from dataclasses import dataclass, field
from typing import Iterator, Optional, Sequence

from .records import BamRecord, RecordFilter, accept_all, chain, is_aligned, is_primary

BAM_MAGIC = b"BAM\x01"
MAX_REFERENCE_END = 1 << 29
_REF_OPS = frozenset("MDN=X")
_COORD_RE = re.compile(r"([\d,]+)(?:-([\d,]+))?")


@dataclass
class BamHeader:
    text: str = ""
    references: list = field(default_factory=list)

    @classmethod
    def from_text(cls, text: str) -> "BamHeader":
        """Build a header from SAM header text, taking references from @SQ lines."""
        references = []
        for line in text.splitlines():
            if not line.startswith("@SQ"):
                continue
            tags = dict(item.split(":", 1) for item in line.split("\t")[1:] if ":" in item)
            if "SN" not in tags:
                raise ValueError(f"@SQ line without SN: {line!r}")
            references.append((tags["SN"], int(tags.get("LN", 0))))
        return cls(text=text, references=references)


def parse_region(header: BamHeader, region: str) -> tuple:
    """Parse 'name[:begin[-end]]' (1-based, inclusive) into (tid, begin, end), 0-based half-open."""
    names = [name for name, _ in header.references]
    if region in names:
        tid = names.index(region)
        return tid, 0, header.references[tid][1] or MAX_REFERENCE_END
    name, sep, coords = region.rpartition(":")
    match = _COORD_RE.fullmatch(coords) if sep else None
    if match is None or name not in names:
        raise ValueError(f"Failed to parse bam region '{region}'")
    tid = names.index(name)
    begin = max(int(match.group(1).replace(",", "")) - 1, 0)
    end = int(match.group(2).replace(",", "")) if match.group(2) else MAX_REFERENCE_END
    if begin >= end:
        raise ValueError(f"Failed to parse bam region '{region}'")
    return tid, begin, end


class BamReader:
    """Sequential reader of a SAM (by '.sam' suffix) or BAM file."""

    def __init__(self, path, accept: RecordFilter = accept_all) -> None:
        self.path = str(path)
        self._accept = accept
        if self.path.endswith(".sam"):
            self._fh = open(self.path, encoding="ascii")
            self._records = self._open_sam()
        else:
            self._fh = gzip.open(self.path, "rb")
            try:
                self._records = self._open_bam()
            except (OSError, EOFError, ValueError, struct.error, UnicodeDecodeError) as exc:
                self._fh.close()
                raise ValueError(f"{self.path} is not a valid bam file") from exc

    @property
    def description(self) -> str:
        return self.path

    def _open_sam(self) -> Iterator[BamRecord]:
        header_lines = []
        first = None
        for line in self._fh:
            if line.startswith("@"):
                header_lines.append(line)
            else:
                first = line
                break
        self.header = BamHeader.from_text("".join(header_lines))
        names = [name for name, _ in self.header.references]

        def records() -> Iterator[BamRecord]:
            if first is not None and first.strip():
                yield BamRecord.from_sam_line(first, names)
            for line in self._fh:
                if line.strip():
                    yield BamRecord.from_sam_line(line, names)

        return records()

    def _read_exact(self, size: int) -> bytes:
        data = self._fh.read(size)
        if len(data) != size:
            raise ValueError(f"truncated bam file {self.path}")
        return data

    def _open_bam(self) -> Iterator[BamRecord]:
        if self._read_exact(4) != BAM_MAGIC:
            raise ValueError("bad magic")
        (l_text,) = struct.unpack("<i", self._read_exact(4))
        text = self._read_exact(l_text).split(b"\0", 1)[0].decode("ascii")
        (n_ref,) = struct.unpack("<i", self._read_exact(4))
        references = []
        for _ in range(n_ref):
            (l_name,) = struct.unpack("<i", self._read_exact(4))
            name = self._read_exact(l_name).rstrip(b"\0").decode("ascii")
            (length,) = struct.unpack("<i", self._read_exact(4))
            references.append((name, length))
        self.header = BamHeader(text=text, references=references)

        def records() -> Iterator[BamRecord]:
            while True:
                size = self._fh.read(4)
                if not size:
                    return
                if len(size) < 4:
                    raise ValueError(f"truncated bam file {self.path}")
                (block,) = struct.unpack("<i", size)
                yield BamRecord.from_bytes(self._read_exact(block))

        return records()

    def _wanted(self, record: BamRecord) -> bool:
        return self._accept(record)

    def next(self) -> Optional[BamRecord]:
        """Next accepted record, or None at end of file."""
        for record in self._records:
            if self._wanted(record):
                return record
        return None

    def __iter__(self) -> Iterator[BamRecord]:
        while (record := self.next()) is not None:
            yield record

    def close(self) -> None:
        self._fh.close()

    def __enter__(self) -> "BamReader":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def sequence_name(self, tid: int) -> str:
        if not 0 <= tid < len(self.header.references):
            raise IndexError(f"reference id {tid} out of range")
        return self.header.references[tid][0]


class RegionLimitedBamReader(BamReader):
    """Reader yielding only records that overlap one region."""

    def __init__(self, path, region: str, accept: RecordFilter = accept_all) -> None:
        super().__init__(path, accept)
        self.region = region
        try:
            self.tid, self.beg, self.end = parse_region(self.header, region)
        except ValueError:
            self.close()
            raise ValueError(f"Failed to parse bam region '{region}' in file {self.path}. ") from None

    @property
    def description(self) -> str:
        return f"{self.path} (region: {self.region})"

    def _wanted(self, record: BamRecord) -> bool:
        if record.tid != self.tid:
            return False
        span = sum(length for length, op in record.cigar if op in _REF_OPS) or 1
        if record.pos >= self.end or record.pos + span <= self.beg:
            return False
        return self._accept(record)


_primary_aligned = chain(operator.and_, is_primary, is_aligned)


def open_bam(path, region: str = "") -> BamReader:
    """Open a file keeping primary, aligned records, optionally within a region."""
    if not region:
        return BamReader(path, _primary_aligned)
    return RegionLimitedBamReader(path, region, _primary_aligned)


def open_bams(paths: Sequence, region: str = "") -> list:
    return [open_bam(path, region) for path in paths]