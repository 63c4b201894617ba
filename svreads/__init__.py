"""SAM/BAM alignment input and output, library configuration, read pair classification and per-library summaries."""

__version__ = "0.1.0"