"""Alignments read from a reader, tagged with library and read flag."""

from __future__ import annotations

from typing import Iterator, Optional

from .alignment import Alignment, determine_read_group


class AlignmentSource:
    """Turns the records of a reader into classified alignments."""

    def __init__(self, reader, classifier, bam_config, seq_data: bool) -> None:
        self.reader = reader
        self.classifier = classifier
        self.bam_config = bam_config
        self.seq_data = seq_data

    def next(self) -> Optional[Alignment]:
        """Next alignment, or None when the reader is exhausted."""
        record = self.reader.next()
        if record is None:
            return None
        aln = Alignment.from_record(record, self.seq_data)
        lib = self.bam_config.readgroup_library(determine_read_group(record))
        if lib:
            aln.lib_index = self.bam_config.library_config(lib).index
            self.classifier.set_flag(aln)
        return aln

    def __iter__(self) -> Iterator[Alignment]:
        while (aln := self.next()) is not None:
            yield aln