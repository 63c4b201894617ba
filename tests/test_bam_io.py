import gzip

import pytest

from svreads.alignment import Alignment
from svreads.bam_io import BamHeader, BamReader, RegionLimitedBamReader, open_bam, open_bams, parse_region
from svreads.bam_writer import BamWriter

SAM = (
    "@HD\tVN:1.0\tGO:none\tSO:coordinate\n"
    "@SQ\tSN:21\tLN:46944323\tUR:internet\tAS:spec\tM5:NA\tSP:unknown\n"
    "P1\t99\t21\t10\t60\t5M5S\t=\t15\t15\tGTTTTTTTTT\tHHHHHHHHHH\n"
    "P1\t147\t21\t15\t60\t10M\t=\t10\t-15\tGCCCCTTTTT\tHHHHHHHHHH\n"
    "P2\t99\t21\t10\t60\t6M4S\t=\t15\t15\tTGTTTTTTTT\tHHHHHHHHHH\n"
    "P2\t147\t21\t15\t60\t10M\t=\t10\t-15\tCGCCCTTTTT\tHHHHHHHHHH\n"
    "P3\t99\t21\t10\t60\t10M\t=\t15\t15\tTTGTTTTTTT\tHHHHHHHHHH\n"
    "P3\t147\t21\t15\t60\t10M\t=\t10\t-15\tCCGCCTTTTT\tHHHHHHHHHH\n"
)

EXTRA = (
    "Q1\t99\t21\t100\t60\t10M\t=\t300\t210\tAAAAAAAAAA\tHHHHHHHHHH\n"
    "Q2\t355\t21\t200\t60\t10M\t=\t300\t110\tAAAAAAAAAA\tHHHHHHHHHH\n"
    "Q3\t99\t21\t400\t60\t10M\t=\t500\t110\tAAAAAAAAAA\tHHHHHHHHHH\n"
    "Q4\t4\t*\t0\t0\t*\t*\t0\t0\tAAAAAAAAAA\tHHHHHHHHHH\n"
)


@pytest.fixture
def sam_path(tmp_path):
    path = tmp_path / "reads.sam"
    path.write_text(SAM)
    return path


@pytest.fixture
def extra_path(tmp_path):
    path = tmp_path / "extra.sam"
    path.write_text(SAM + EXTRA)
    return path


def test_leftmost(sam_path):
    with open_bam(sam_path) as reader:
        reads = [Alignment.from_record(r) for r in reader]
    assert len(reads) == 6
    assert [r.leftmost() for r in reads] == [True, False] * 3


def test_reader_counts_all(extra_path):
    with BamReader(extra_path) as reader:
        assert reader.path == str(extra_path)
        assert reader.description == str(extra_path)
        assert len(list(reader)) == 10


def test_open_bam_filters_secondary_and_unaligned(extra_path):
    with open_bam(extra_path) as reader:
        names = [r.qname for r in reader]
    assert "Q2" not in names and "Q4" not in names
    assert len(names) == 8


def test_header_and_sequence_name(sam_path):
    with BamReader(sam_path) as reader:
        assert reader.header.references == [("21", 46944323)]
        assert reader.sequence_name(0) == "21"
        with pytest.raises(IndexError):
            reader.sequence_name(1)


def test_region_reader(extra_path):
    region = "21:101-250"
    with RegionLimitedBamReader(extra_path, region) as reader:
        assert reader.description == f"{extra_path} (region: {region})"
        assert (reader.tid, reader.beg, reader.end) == (0, 100, 250)
        assert [r.qname for r in reader] == ["Q1", "Q2"]


def test_open_bam_region(extra_path):
    with open_bam(extra_path, "21:101") as reader:
        assert reader.path == str(extra_path)
        first = reader.next()
    assert first.qname == "Q1" and first.pos == 99


def test_parse_region():
    header = BamHeader.from_text("@SQ\tSN:chr1\tLN:1000\n@SQ\tSN:chr2\tLN:500\n")
    assert parse_region(header, "chr2") == (1, 0, 500)
    assert parse_region(header, "chr1:1,001-2,000") == (0, 1000, 2000)
    with pytest.raises(ValueError):
        parse_region(header, "chr3:1-10")
    with pytest.raises(ValueError):
        parse_region(header, "chr1:50-10")


def test_bad_region_raises(sam_path):
    with pytest.raises(ValueError):
        RegionLimitedBamReader(sam_path, "nope:1-5")


def test_open_bams(sam_path, extra_path):
    readers = open_bams([sam_path, extra_path])
    assert [r.path for r in readers] == [str(sam_path), str(extra_path)]
    for reader in readers:
        reader.close()


def test_bam_round_trip(sam_path, tmp_path):
    bam = tmp_path / "reads.bam"
    with BamReader(sam_path) as reader, BamWriter(bam, reader.header) as writer:
        originals = list(reader)
        for record in originals:
            writer.write(record)
    with BamReader(bam) as reader:
        names = [n for n, _ in reader.header.references]
        assert [r.to_sam_line(names) for r in reader] == [r.to_sam_line(names) for r in originals]


def test_invalid_bam(tmp_path):
    bad = tmp_path / "bad.bam"
    bad.write_bytes(gzip.compress(b"NOTBAM"))
    with pytest.raises(ValueError):
        BamReader(bad)