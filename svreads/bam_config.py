"""Library configuration assembled from a configuration file."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Union

from .bam_config_entry import BamConfigEntry, ConfigError, Field
from .library_config import LibraryConfig

_log = logging.getLogger(__name__)

DEFAULT_MAX_READ_WINDOW_SIZE = 100_000_000
MIN_READ_WINDOW_SIZE = 50


@dataclass
class BamConfig:
    """Libraries, read groups and alignment files named by a configuration."""

    bam_files: list = field(default_factory=list)
    bam_library: dict = field(default_factory=dict)
    lib_names_to_indices: dict = field(default_factory=dict)
    library_configs: list = field(default_factory=list)
    readgroup_libraries: dict = field(default_factory=dict)
    max_read_window_size: int = DEFAULT_MAX_READ_WINDOW_SIZE

    @classmethod
    def parse(cls, stream: Iterable[str], cutoff_sd: float) -> "BamConfig":
        """Read configuration lines up to the first empty line."""
        config = cls()
        libraries: dict[str, LibraryConfig] = {}
        window = DEFAULT_MAX_READ_WINDOW_SIZE

        for line_num, line in enumerate(stream, start=1):
            line = line.rstrip("\r\n")
            if not line:
                break
            entry = BamConfigEntry(line)

            lib = entry.get(Field.LIBRARY_NAME)
            if lib is None:
                lib = entry.get(Field.SAMPLE_NAME) or ""
            bam_file = entry.require(Field.BAM_FILE, str, line_num)
            readgroup = entry.get(Field.READ_GROUP)
            if readgroup is None:
                readgroup = lib

            config.readgroup_libraries[readgroup] = lib
            config.bam_library[bam_file] = lib

            readlen = entry.get(Field.READ_LENGTH, float)
            readlen = 0.0 if readlen is None else readlen
            mqual = entry.get(Field.MIN_MAP_QUAL, int)
            mqual = -1 if mqual is None else mqual

            mean = entry.get(Field.INSERT_SIZE_MEAN, float)
            stddev = entry.get(Field.INSERT_SIZE_STDDEV, float)
            lower = entry.get(Field.INSERT_SIZE_LOWER_CUTOFF, float)
            upper = entry.get(Field.INSERT_SIZE_UPPER_CUTOFF, float)
            if mean is not None and stddev is not None and (upper is None or lower is None):
                upper = mean + stddev * cutoff_sd
                lower = max(mean - stddev * cutoff_sd, 0.0)
            mean = 0.0 if mean is None else mean
            stddev = 0.0 if stddev is None else stddev
            upper = 0.0 if upper is None else upper
            lower = 0.0 if lower is None else lower

            lib_config = LibraryConfig(
                name=lib,
                bam_file=bam_file,
                min_mapping_quality=mqual,
                mean_insertsize=mean,
                std_insertsize=stddev,
                uppercutoff=upper,
                lowercutoff=lower,
                readlens=readlen,
            )
            existing = libraries.get(lib)
            if existing is None:
                libraries[lib] = lib_config
            elif existing != lib_config:
                _log.warning("at line %d, library %s overwritten!", line_num, lib)
                libraries[lib] = lib_config

            window = min(window, int(mean - readlen * 2))

        for index, (name, lib_config) in enumerate(sorted(libraries.items())):
            lib_config.index = index
            config.lib_names_to_indices[name] = index
            config.library_configs.append(lib_config)

        config.bam_files = sorted(config.bam_library)
        for lib_config in config.library_configs:
            try:
                lib_config.bam_file_index = config.bam_files.index(lib_config.bam_file)
            except ValueError:
                raise ConfigError(
                    f"Bam file '{lib_config.bam_file}' referenced by library "
                    f"'{lib_config.name}' but not found in bam list!"
                ) from None

        config.max_read_window_size = max(window, MIN_READ_WINDOW_SIZE)
        return config

    def num_libs(self) -> int:
        return len(self.library_configs)

    def num_bams(self) -> int:
        return len(self.bam_files)

    def library_config(self, key: Union[int, str]) -> LibraryConfig:
        """Library settings by index or by library name."""
        if isinstance(key, str):
            return self.library_configs[self.lib_names_to_indices[key]]
        if not 0 <= key < len(self.library_configs):
            raise IndexError("library index out of range")
        return self.library_configs[key]

    def readgroup_library(self, readgroup: str) -> str:
        """Library of a read group, falling back to the first file's library."""
        lib = self.readgroup_libraries.get(readgroup)
        if lib is not None:
            return lib
        if not self.bam_library:
            raise KeyError(readgroup)
        return self.bam_library[min(self.bam_library)]