"""Per-library insert size settings and read flag tallies."""

from __future__ import annotations

from dataclasses import dataclass, field

from .alignment import NUM_ORIENTATION_FLAGS


@dataclass
class LibraryConfig:
    index: int = 0
    name: str = ""
    bam_file_index: int = 0
    bam_file: str = ""
    mean_insertsize: float = 0.0
    std_insertsize: float = 0.0
    uppercutoff: float = 0.0
    lowercutoff: float = 0.0
    readlens: float = 0.0
    min_mapping_quality: int = -1


@dataclass
class LibraryFlagDistribution:
    read_count: int = 0
    read_counts_by_flag: list = field(default_factory=lambda: [0] * NUM_ORIENTATION_FLAGS)

    def merge(self, other: "LibraryFlagDistribution") -> None:
        """Add the counts of another distribution into this one."""
        if len(self.read_counts_by_flag) != len(other.read_counts_by_flag):
            raise ValueError("flag distributions have different sizes")
        self.read_counts_by_flag = [
            mine + theirs
            for mine, theirs in zip(self.read_counts_by_flag, other.read_counts_by_flag)
        ]
        self.read_count += other.read_count