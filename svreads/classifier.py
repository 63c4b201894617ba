"""Classification of read pairs by orientation and insert size."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .alignment import Alignment, ReadFlag
from .records import (
    FLAG_DUP,
    FLAG_MREVERSE,
    FLAG_MUNMAP,
    FLAG_PAIRED,
    FLAG_REVERSE,
    FLAG_UNMAP,
)


def pe_classify(
    read_reversed: bool,
    mate_reversed: bool,
    leftmost: bool,
    proper_pair: bool,
    large_insert: bool,
    small_insert: bool,
) -> ReadFlag:
    """Classify a paired-end read whose mate maps to the same sequence."""
    if read_reversed == mate_reversed:
        return ReadFlag.ARP_RR if read_reversed else ReadFlag.ARP_FF
    # The leftmost read of a normal pair is forward, its mate reverse.
    if leftmost == read_reversed:
        return ReadFlag.ARP_RF
    if large_insert:
        return ReadFlag.ARP_LARGE_INSERT
    if small_insert:
        return ReadFlag.ARP_SMALL_INSERT
    return ReadFlag.NORMAL_FR


class AlignmentClassifier(ABC):
    """Assigns a read flag to an alignment."""

    @abstractmethod
    def classify(self, aln: Alignment) -> ReadFlag:
        """Flag that the alignment deserves."""

    def set_flag(self, aln: Alignment) -> None:
        aln.bdflag = self.classify(aln)


class IlluminaPEReadClassifier(AlignmentClassifier):
    """Classifier for Illumina paired-end (FR oriented) libraries."""

    def __init__(self, bam_config) -> None:
        self.bam_config = bam_config

    def classify(self, aln: Alignment) -> ReadFlag:
        if aln.lib_index is None:
            raise ValueError(f"alignment {aln.query_name!r} has no library")
        lib_config = self.bam_config.library_config(aln.lib_index)
        flag = aln.sam_flag

        if flag & FLAG_DUP or not flag & FLAG_PAIRED:
            return ReadFlag.NA
        if flag & FLAG_UNMAP:
            return ReadFlag.UNMAPPED
        if flag & FLAG_MUNMAP:
            return ReadFlag.MATE_UNMAPPED
        if aln.interchrom_pair():
            return ReadFlag.ARP_CTX

        return pe_classify(
            bool(flag & FLAG_REVERSE),
            bool(flag & FLAG_MREVERSE),
            aln.leftmost(),
            aln.proper_pair(),
            aln.abs_isize > lib_config.uppercutoff,
            aln.abs_isize < lib_config.lowercutoff,
        )