# svreads

Tools for working with paired-end read alignments when looking for
structural variants. The package reads SAM and BAM files, writes them back
out, describes sequencing libraries from a tab-separated configuration
file, classifies read pairs by orientation and insert size, and gathers
per-library statistics over a set of alignment files.

It has no dependencies outside the Python standard library.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Library configuration

A configuration file has one line per read group. Each line is a set of
tab-separated `key:value` fields, for example:

```
readgroup:rg1	map:x.bam	readlen:90.00	lib:lib1	lower:277.03	upper:525.50	mean:467.59	std:31.91
```

Keys are matched by their ending and without regard to case (`lib`,
`libname` and `library_name` all name the library; `std`, `stddev` and
`insert_size_stddev` all name the insert size standard deviation); unknown
keys are ignored. `svreads.bam_config_entry.translate_token` shows which
field a key maps to. The `map` field, naming the alignment file, is
required. When a line gives a mean and standard deviation but not both
cutoffs, the cutoffs are derived as `mean ± stddev * cutoff_sd`, with the
lower one never below zero.

```python
from svreads.bam_config import BamConfig

with open("libraries.cfg") as stream:
    config = BamConfig.parse(stream, 3)

print(config.num_libs(), "libraries in", config.num_bams(), "files")
print(config.bam_files)                   # sorted file names

lib = config.library_config("lib1")      # by name
same = config.library_config(lib.index)   # or by index
print(config.readgroup_library("rg1"))    # -> "lib1"
```

Reading stops at the first empty line. A missing `map` field or a value
that cannot be converted raises `svreads.bam_config_entry.ConfigError`.
`library_config` raises `KeyError` for an unknown library name and
`IndexError` for an index out of range. A read group not named in the
file is attributed to the library of the first alignment file.

## Reading alignments

`svreads.bam_io.open_bam` opens a SAM file (chosen by a `.sam` suffix) or
a BAM file and yields only primary, aligned records as
`svreads.records.BamRecord` objects. Pass a region such as `"21:10-20"`
(1-based, inclusive) or a bare sequence name to keep only records that
overlap it; `open_bams` opens several files at once. Readers are
iterable and work as context managers.

```python
from svreads.bam_io import open_bam
from svreads.alignment import Alignment

with open_bam("sample.sam", "") as reader:
    for record in reader:
        aln = Alignment.from_record(record, True)
        print(aln.query_name, aln.ori(), aln.leftmost(), aln.proper_pair())
```

`BamReader` and `RegionLimitedBamReader` can also be built directly with
any record filter; `svreads.records` provides `accept_all`, `reject_all`,
`is_primary`, `is_aligned` and `chain` for combining them.

`svreads.bam_writer.BamWriter` writes records as SAM text (`sam=True`) or
as BGZF-compressed BAM:

```python
from svreads.bam_writer import BamWriter

with BamWriter("out.sam", reader.header, sam=True) as writer:
    writer.write(record)
```

## Classifying read pairs

`svreads.classifier.pe_classify` decides the flag of a read pair from its
orientation and insert size; `IlluminaPEReadClassifier` applies it to
alignments using the cutoffs of each library, after first setting
`NA`, `UNMAPPED`, `MATE_UNMAPPED` or `ARP_CTX` where those apply.

```python
from svreads.classifier import pe_classify, IlluminaPEReadClassifier

flag = pe_classify(False, True, True, True, False, False)  # ReadFlag.NORMAL_FR

classifier = IlluminaPEReadClassifier(config)
```

`svreads.alignment_source.AlignmentSource` ties a reader, a configuration
and a classifier together, yielding alignments with their library index
and flag already set.

## Summaries and FASTQ output

`BamSummary.analyze` reads every file named in a configuration and counts
reads per library and per flag, the reference length covered, and each
library's sequence coverage:

```python
from svreads.bam_summary import BamSummary, SummaryOptions

summary = BamSummary.analyze(SummaryOptions(min_map_qual=10), config, classifier)
print(summary.covered_reference_length)
print(summary.read_count_in_bam("x.bam"))
print(summary.library_flag_distribution(0).read_count)
print(summary.library_sequence_coverage(0))
```

`svreads.fastq_writer.FastqWriter` appends reads to per-library FASTQ files
named `<prefix>.<library>.<1|2>.fastq`; it is a context manager that closes
its files on exit.

## What it does not do

- There is no command-line program; everything is used from Python.
- Several alignment files cannot be merged into one position-sorted
  stream; each file is read on its own.
- Region reading does not use a BAM index: the file is read from the
  start and records outside the region are skipped.
- Configurations and summaries are not saved to or restored from disk.