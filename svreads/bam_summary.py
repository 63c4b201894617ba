"""Per-library read flag distributions and coverage over a set of files."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .alignment import ReadFlag
from .alignment_source import AlignmentSource
from .bam_io import open_bam
from .library_config import LibraryFlagDistribution

_log = logging.getLogger(__name__)


@dataclass
class SummaryOptions:
    """Settings that steer how reads are counted."""

    min_map_qual: int = 0
    transchr_rearrange: bool = False
    illumina_long_insert: bool = False
    region: str = ""


@dataclass
class BamSummary:
    covered_reference_length: int = 0
    read_count_per_bam: dict = field(default_factory=dict)
    library_flag_distributions: list = field(default_factory=list)
    library_sequence_coverages: list = field(default_factory=list)

    @classmethod
    def analyze(cls, options: SummaryOptions, bam_config, classifier) -> "BamSummary":
        """Read every file of the configuration and tally its reads."""
        summary = cls(
            library_flag_distributions=[
                LibraryFlagDistribution() for _ in range(bam_config.num_libs())
            ],
            library_sequence_coverages=[0.0] * bam_config.num_libs(),
        )
        for path in bam_config.bam_files:
            with open_bam(path, options.region) as reader:
                summary._analyze_reader(options, bam_config, reader, classifier)

        for index, dist in enumerate(summary.library_flag_distributions):
            lib_config = bam_config.library_config(index)
            coverage = 0.0
            if dist.read_count and summary.covered_reference_length:
                coverage = dist.read_count * lib_config.readlens / summary.covered_reference_length
            summary.library_sequence_coverages[index] = coverage
        return summary

    def _analyze_reader(self, options, bam_config, reader, classifier) -> None:
        last_pos = 0
        last_tid = -1
        ref_len = 0
        read_count = 0

        for aln in AlignmentSource(reader, classifier, bam_config, False):
            if last_tid >= 0 and last_tid == aln.tid:
                ref_len += aln.pos - last_pos
            last_pos = aln.pos
            last_tid = aln.tid

            if aln.lib_index is None:
                raise IndexError(f"read {aln.query_name!r} belongs to no library")
            lib_config = bam_config.library_config(aln.lib_index)
            min_mapq = (
                options.min_map_qual
                if lib_config.min_mapping_quality < 0
                else lib_config.min_mapping_quality
            )
            if aln.bdqual <= min_mapq:
                continue

            dist = self.library_flag_distributions[lib_config.index]
            if aln.proper_pair():
                dist.read_count += 1
                read_count += 1

            if (
                aln.bdflag == ReadFlag.NA
                or aln.either_unmapped()
                or (options.transchr_rearrange and not aln.interchrom_pair())
            ):
                continue

            if options.illumina_long_insert:
                if aln.abs_isize > lib_config.uppercutoff and aln.bdflag == ReadFlag.NORMAL_RF:
                    aln.bdflag = ReadFlag.ARP_RF
                if aln.abs_isize < lib_config.uppercutoff and aln.bdflag == ReadFlag.ARP_RF:
                    aln.bdflag = ReadFlag.NORMAL_RF
                if aln.abs_isize < lib_config.lowercutoff and aln.bdflag == ReadFlag.NORMAL_RF:
                    aln.bdflag = ReadFlag.ARP_SMALL_INSERT

            if aln.bdflag in (ReadFlag.NORMAL_FR, ReadFlag.NORMAL_RF):
                continue
            dist.read_counts_by_flag[int(aln.bdflag)] += 1

        if ref_len == 0:
            _log.warning(
                "Input file %s does not contain legitimate paired end alignment. "
                "Please check that you have the correct paths and the map/bam files "
                "are properly formated and indexed.",
                reader.description,
            )

        self.read_count_per_bam[reader.path] = read_count
        self.covered_reference_length = max(self.covered_reference_length, ref_len)

    def read_count_in_bam(self, path) -> int:
        return self.read_count_per_bam[str(path)]

    def library_flag_distribution(self, index: int) -> LibraryFlagDistribution:
        return self.library_flag_distributions[index]

    def library_sequence_coverage(self, index: int) -> float:
        return self.library_sequence_coverages[index]