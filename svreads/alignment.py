"""Paired-end alignments reduced to the fields used for SV detection."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, TextIO

from .records import (
    FLAG_DUP,
    FLAG_MUNMAP,
    FLAG_PAIRED,
    FLAG_PROPER_PAIR,
    FLAG_REVERSE,
    FLAG_UNMAP,
    BamRecord,
)

_log = logging.getLogger(__name__)


class ReadFlag(IntEnum):
    NA = 0
    ARP_FF = 1
    ARP_LARGE_INSERT = 2
    ARP_SMALL_INSERT = 3
    ARP_RF = 4
    ARP_RR = 5
    NORMAL_FR = 6
    NORMAL_RF = 7
    ARP_CTX = 8
    UNMAPPED = 9
    MATE_UNMAPPED = 10


NUM_ORIENTATION_FLAGS = len(ReadFlag)


class Strand(IntEnum):
    FWD = 0
    REV = 1


def determine_bdqual(record: BamRecord) -> int:
    """Alternative mapping quality (AM tag) if present, else the core quality."""
    alt_qual = record.aux("AM")
    if alt_qual is not None:
        return int(alt_qual) & 0xFF
    return record.mapq


def determine_read_group(record: BamRecord) -> str:
    read_group = record.aux("RG")
    return read_group if isinstance(read_group, str) else ""


@dataclass
class Alignment:
    tid: int = -1
    pos: int = -1
    query_length: int = 0
    mtid: int = -1
    mpos: int = -1
    abs_isize: int = -1
    sam_flag: int = 0
    bdqual: int = 0
    query_name: str = ""
    sequence: str = ""
    quality: Optional[bytes] = None
    lib_index: Optional[int] = None
    bdflag: ReadFlag = ReadFlag.NA

    @classmethod
    def from_record(cls, record: BamRecord, seq_data: bool = True) -> "Alignment":
        return cls(
            tid=record.tid,
            pos=record.pos,
            query_length=len(record.seq),
            mtid=record.mtid,
            mpos=record.mpos,
            abs_isize=abs(record.isize),
            sam_flag=record.flag,
            bdqual=determine_bdqual(record),
            query_name=record.qname,
            sequence=record.seq if seq_data else "",
            quality=(bytes(record.qual) or None) if seq_data else None,
        )

    def proper_pair(self) -> bool:
        mask = FLAG_PROPER_PAIR | FLAG_UNMAP | FLAG_MUNMAP | FLAG_PAIRED | FLAG_DUP
        want = FLAG_PROPER_PAIR | FLAG_PAIRED
        return self.sam_flag & mask == want

    def either_unmapped(self) -> bool:
        return bool(self.sam_flag & (FLAG_UNMAP | FLAG_MUNMAP))

    def interchrom_pair(self) -> bool:
        return self.tid != self.mtid

    def has_sequence(self) -> bool:
        return bool(self.sequence) and self.query_length > 0

    def leftmost(self) -> bool:
        return self.pos < self.mpos

    def ori(self) -> Strand:
        return Strand.REV if self.sam_flag & FLAG_REVERSE else Strand.FWD

    def to_fastq(self, stream: TextIO) -> None:
        """Write the read as one FASTQ entry."""
        if not self.sequence:
            raise ValueError(f"no sequence data for read {self.query_name}")
        stream.write(f"@{self.query_name}\n{self.sequence[:self.query_length]}\n+\n")
        if self.quality is not None:
            stream.write("".join(chr(q + 33) for q in self.quality[:self.query_length]))
        else:
            _log.warning("no quality data for read %s", self.query_name)
        stream.write("\n")