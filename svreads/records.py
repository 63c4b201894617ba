"""Alignment records in the binary BAM layout and in SAM text form."""

from __future__ import annotations

import re
import struct
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

FLAG_PAIRED = 0x1
FLAG_PROPER_PAIR = 0x2
FLAG_UNMAP = 0x4
FLAG_MUNMAP = 0x8
FLAG_REVERSE = 0x10
FLAG_MREVERSE = 0x20
FLAG_READ1 = 0x40
FLAG_READ2 = 0x80
FLAG_SECONDARY = 0x100
FLAG_QCFAIL = 0x200
FLAG_DUP = 0x400
FLAG_SUPPLEMENTARY = 0x800

MISSING_QUALITY = 0xFF

SEQ_ALPHABET = "=ACMGRSVTWYHKDBN"
CIGAR_OPS = "MIDNSHP=X"

_SEQ_CODES = {base: code for code, base in enumerate(SEQ_ALPHABET)}
_CIGAR_CODES = {op: code for code, op in enumerate(CIGAR_OPS)}
_REF_CONSUMING = frozenset("MDN=X")
_CORE = struct.Struct("<iiBBHHHiiii")
_INT_FORMATS = {"c": "b", "C": "B", "s": "h", "S": "H", "i": "i", "I": "I"}
_ARRAY_FORMATS = {**_INT_FORMATS, "f": "f"}
_CIGAR_RE = re.compile(r"(\d+)([MIDNSHP=X])")
_CIGAR_FULL_RE = re.compile(r"(?:\d+[MIDNSHP=X])+")

Tag = tuple  # (tag, type code, value)
RecordFilter = Callable[["BamRecord"], bool]


def _pack_sequence(seq: str) -> bytes:
    codes = [_SEQ_CODES.get(base, 15) for base in seq.upper()]
    if len(codes) % 2:
        codes.append(0)
    return bytes(hi << 4 | lo for hi, lo in zip(codes[::2], codes[1::2]))


def _unpack_sequence(packed: bytes, length: int) -> str:
    bases = "".join(SEQ_ALPHABET[b >> 4] + SEQ_ALPHABET[b & 0xF] for b in packed)
    return bases[:length]


def _reg2bin(beg: int, end: int) -> int:
    end -= 1
    for shift, offset in ((14, 15), (17, 12), (20, 9), (23, 6), (26, 3)):
        if beg >> shift == end >> shift:
            return ((1 << offset) - 1) // 7 + (beg >> shift)
    return 0


def _int_code(value: int) -> str:
    if value < -(1 << 31) or value > 0xFFFFFFFF:
        raise ValueError(f"integer tag value {value} out of range")
    if value < 0:
        if value >= -128:
            return "c"
        return "s" if value >= -32768 else "i"
    if value < 256:
        return "C"
    return "S" if value < 65536 else "I"


def _encode_tag(tag: str, code: str, value: object) -> bytes:
    head = tag.encode("ascii") + code.encode("ascii")
    if code == "A":
        return head + str(value).encode("ascii")
    if code in _INT_FORMATS or code == "f":
        return head + struct.pack("<" + _ARRAY_FORMATS[code], value)
    if code in ("Z", "H"):
        return head + str(value).encode("ascii") + b"\0"
    if code == "B":
        sub, values = value
        fmt = _ARRAY_FORMATS[sub]
        return head + sub.encode("ascii") + struct.pack(f"<i{len(values)}{fmt}", len(values), *values)
    raise ValueError(f"unknown auxiliary type {code!r} for tag {tag}")


def _decode_tags(data: bytes) -> list:
    tags = []
    offset = 0
    try:
        while offset < len(data):
            tag = data[offset:offset + 2].decode("ascii")
            code = chr(data[offset + 2])
            offset += 3
            if code == "A":
                value: object = chr(data[offset])
                offset += 1
            elif code in _ARRAY_FORMATS:
                fmt = "<" + _ARRAY_FORMATS[code]
                (value,) = struct.unpack_from(fmt, data, offset)
                offset += struct.calcsize(fmt)
            elif code in ("Z", "H"):
                end = data.index(0, offset)
                value = data[offset:end].decode("ascii")
                offset = end + 1
            elif code == "B":
                sub = chr(data[offset])
                (count,) = struct.unpack_from("<i", data, offset + 1)
                fmt = f"<{count}{_ARRAY_FORMATS[sub]}"
                value = (sub, list(struct.unpack_from(fmt, data, offset + 5)))
                offset += 5 + struct.calcsize(fmt)
            else:
                raise ValueError(f"unknown auxiliary type {code!r} for tag {tag}")
            tags.append((tag, code, value))
    except (IndexError, KeyError, struct.error) as exc:
        raise ValueError("malformed auxiliary data") from exc
    return tags


def _parse_sam_tag(text: str) -> tuple:
    parts = text.split(":", 2)
    if len(parts) != 3 or len(parts[0]) != 2:
        raise ValueError(f"malformed optional field {text!r}")
    tag, kind, raw = parts
    if kind == "i":
        value = int(raw)
        return tag, _int_code(value), value
    if kind == "f":
        return tag, "f", float(raw)
    if kind == "A":
        if len(raw) != 1:
            raise ValueError(f"character tag {tag} must hold one character")
        return tag, "A", raw
    if kind in ("Z", "H"):
        return tag, kind, raw
    if kind == "B":
        sub, *items = raw.split(",")
        if sub not in _ARRAY_FORMATS:
            raise ValueError(f"unknown array type {sub!r} for tag {tag}")
        convert = float if sub == "f" else int
        return tag, "B", (sub, [convert(item) for item in items])
    raise ValueError(f"unknown optional field type {kind!r} in {text!r}")


def _format_sam_tag(tag: str, code: str, value: object) -> str:
    if code in _INT_FORMATS:
        return f"{tag}:i:{value}"
    if code == "f":
        return f"{tag}:f:{value:g}"
    if code == "B":
        sub, values = value
        items = [f"{v:g}" if sub == "f" else str(v) for v in values]
        return f"{tag}:B:" + ",".join([sub, *items])
    return f"{tag}:{code}:{value}"


@dataclass
class BamRecord:
    """One alignment record; coordinates are 0-based, missing ids are -1."""

    qname: str = ""
    flag: int = 0
    tid: int = -1
    pos: int = -1
    mapq: int = 0
    cigar: list = field(default_factory=list)
    mtid: int = -1
    mpos: int = -1
    isize: int = 0
    seq: str = ""
    qual: bytes = b""
    tags: list = field(default_factory=list)
    index_bin: Optional[int] = None

    def _reference_end(self) -> int:
        span = sum(length for length, op in self.cigar if op in _REF_CONSUMING)
        return self.pos + (span or 1)

    @classmethod
    def from_bytes(cls, data) -> "BamRecord":
        """Decode a record body (the bytes after the block size)."""
        data = bytes(data)
        if len(data) < _CORE.size:
            raise ValueError("alignment record shorter than its fixed fields")
        (tid, pos, l_qname, mapq, index_bin, n_cigar, flag,
         l_seq, mtid, mpos, isize) = _CORE.unpack_from(data)
        seq_len = (l_seq + 1) // 2
        needed = _CORE.size + l_qname + 4 * n_cigar + seq_len + l_seq
        if l_seq < 0 or len(data) < needed:
            raise ValueError("truncated alignment record")
        offset = _CORE.size
        qname = data[offset:offset + l_qname].split(b"\0", 1)[0].decode("ascii")
        offset += l_qname
        cigar = []
        for raw in struct.unpack_from(f"<{n_cigar}I", data, offset):
            if raw & 0xF >= len(CIGAR_OPS):
                raise ValueError(f"invalid cigar operation code {raw & 0xF}")
            cigar.append((raw >> 4, CIGAR_OPS[raw & 0xF]))
        offset += 4 * n_cigar
        seq = _unpack_sequence(data[offset:offset + seq_len], l_seq)
        offset += seq_len
        qual = data[offset:offset + l_seq]
        offset += l_seq
        if qual and qual[0] == MISSING_QUALITY:
            qual = b""
        return cls(
            qname=qname, flag=flag, tid=tid, pos=pos, mapq=mapq, cigar=cigar,
            mtid=mtid, mpos=mpos, isize=isize, seq=seq, qual=qual,
            tags=_decode_tags(data[offset:]), index_bin=index_bin,
        )

    def to_bytes(self) -> bytes:
        """Encode the record body (without the leading block size)."""
        name = self.qname.encode("ascii") + b"\0"
        if len(name) > 255:
            raise ValueError("read name too long")
        if self.qual and len(self.qual) != len(self.seq):
            raise ValueError("quality length differs from sequence length")
        qual = bytes(self.qual) or bytes([MISSING_QUALITY]) * len(self.seq)
        index_bin = self.index_bin
        if index_bin is None:
            index_bin = _reg2bin(self.pos, self._reference_end())
        try:
            core = _CORE.pack(
                self.tid, self.pos, len(name), self.mapq, index_bin, len(self.cigar),
                self.flag, len(self.seq), self.mtid, self.mpos, self.isize,
            )
            cigar = struct.pack(
                f"<{len(self.cigar)}I",
                *(length << 4 | _CIGAR_CODES[op] for length, op in self.cigar),
            )
            tags = b"".join(_encode_tag(*tag) for tag in self.tags)
        except (struct.error, KeyError) as exc:
            raise ValueError(f"cannot encode record {self.qname!r}: {exc}") from exc
        return core + name + cigar + _pack_sequence(self.seq) + qual + tags

    @classmethod
    def from_sam_line(cls, line: str, references: Sequence[str]) -> "BamRecord":
        """Parse one SAM alignment line against the given reference names."""
        fields = line.rstrip("\r\n").split("\t")
        if len(fields) < 11:
            raise ValueError(f"SAM line has {len(fields)} columns, expected at least 11")
        qname, flag, rname, pos, mapq, cigar, rnext, pnext, tlen, seq, qual = fields[:11]
        index = {name: i for i, name in enumerate(references)}

        def lookup(name: str) -> int:
            if name == "*":
                return -1
            try:
                return index[name]
            except KeyError:
                raise ValueError(f"unknown reference sequence {name!r}") from None

        tid = lookup(rname)
        mtid = tid if rnext == "=" else lookup(rnext)
        if cigar == "*":
            ops = []
        elif _CIGAR_FULL_RE.fullmatch(cigar):
            ops = [(int(n), op) for n, op in _CIGAR_RE.findall(cigar)]
        else:
            raise ValueError(f"malformed cigar {cigar!r}")
        seq = "" if seq == "*" else seq
        if qual == "*":
            qual_bytes = b""
        else:
            if any(not 33 <= ord(c) <= 126 for c in qual):
                raise ValueError("quality string holds invalid characters")
            qual_bytes = bytes(ord(c) - 33 for c in qual)
            if len(qual_bytes) != len(seq):
                raise ValueError("quality length differs from sequence length")
        return cls(
            qname=qname, flag=int(flag), tid=tid, pos=int(pos) - 1, mapq=int(mapq),
            cigar=ops, mtid=mtid, mpos=int(pnext) - 1, isize=int(tlen), seq=seq,
            qual=qual_bytes, tags=[_parse_sam_tag(t) for t in fields[11:]],
        )

    def to_sam_line(self, references: Sequence[str]) -> str:
        """Format the record as a SAM line without the trailing newline."""

        def name(tid: int) -> str:
            if tid < 0:
                return "*"
            try:
                return references[tid]
            except IndexError:
                raise ValueError(f"reference id {tid} not in header") from None

        rnext = "=" if self.mtid >= 0 and self.mtid == self.tid else name(self.mtid)
        columns = [
            self.qname,
            str(self.flag),
            name(self.tid),
            str(self.pos + 1),
            str(self.mapq),
            "".join(f"{n}{op}" for n, op in self.cigar) or "*",
            rnext,
            str(self.mpos + 1),
            str(self.isize),
            self.seq or "*",
            "".join(chr(q + 33) for q in self.qual) if self.qual else "*",
        ]
        columns.extend(_format_sam_tag(*tag) for tag in self.tags)
        return "\t".join(columns)

    def aux(self, tag: str):
        """Value of an optional field, or None when absent."""
        for name, code, value in self.tags:
            if name == tag:
                return value[1] if code == "B" else value
        return None


def _require_record(record: object) -> BamRecord:
    if not isinstance(record, BamRecord):
        raise TypeError(f"expected a BamRecord, got {type(record).__name__}")
    return record


def accept_all(record: BamRecord) -> bool:
    """Accept every record."""
    return isinstance(_require_record(record), BamRecord)


def reject_all(record: BamRecord) -> bool:
    """Reject every record."""
    return not isinstance(_require_record(record), BamRecord)


def is_primary(record: BamRecord) -> bool:
    return not record.flag & (FLAG_SECONDARY | FLAG_SUPPLEMENTARY)


def is_aligned(record: BamRecord) -> bool:
    return record.tid >= 0


def chain(combine: Callable[[bool, bool], bool], first: RecordFilter, second: RecordFilter) -> RecordFilter:
    """Filter that combines the verdicts of two filters."""

    def combined(record: BamRecord) -> bool:
        return bool(combine(first(record), second(record)))

    return combined