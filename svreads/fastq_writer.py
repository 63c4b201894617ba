"""FASTQ output split by library and read of the pair."""

from __future__ import annotations

from typing import TextIO

from .alignment import Alignment


class FastqWriter:
    """Appends reads to '<prefix>.<library>.<1|2>.fastq' files."""

    def __init__(self, output_prefix) -> None:
        self.output_prefix = str(output_prefix)
        self._streams: dict[str, TextIO] = {}

    def open(self, lib_name: str, is_read1: bool) -> TextIO:
        """Stream for a library and read number, opened in append mode once."""
        path = f"{self.output_prefix}.{lib_name}.{'1' if is_read1 else '2'}.fastq"
        stream = self._streams.get(path)
        if stream is None:
            try:
                stream = open(path, "a", encoding="ascii")
            except OSError as exc:
                raise OSError(f"Failed to open fastq file '{path}' for writing") from exc
            self._streams[path] = stream
        return stream

    def write(self, lib_name: str, is_read1: bool, aln: Alignment) -> None:
        aln.to_fastq(self.open(lib_name, is_read1))

    def close(self) -> None:
        for stream in self._streams.values():
            stream.close()
        self._streams.clear()

    def __enter__(self) -> "FastqWriter":
        return self

    def __exit__(self, *exc) -> None:
        self.close()