import io

import pytest

from svreads.alignment import ReadFlag
from svreads.alignment_source import AlignmentSource
from svreads.bam_config import BamConfig
from svreads.bam_io import BamReader
from svreads.classifier import IlluminaPEReadClassifier

HEADER = "@HD\tVN:1.0\tSO:coordinate\n@SQ\tSN:21\tLN:1000000\n"
SEQ = "ACGTACGTAC"
QUAL = "HHHHHHHHHH"


def line(qname, flag, pos, pnext, tlen, rg):
    fields = [qname, str(flag), "21", str(pos), "60", "10M", "=", str(pnext), str(tlen), SEQ, QUAL]
    if rg is not None:
        fields.append(f"RG:Z:{rg}")
    return "\t".join(fields) + "\n"


def config_line(rg, lib):
    return (
        f"readgroup:{rg}\tmap:x.bam\treadlen:90.00\tlib:{lib}\t"
        "lower:277.03\tupper:525.50\tmean:467.59\tstd:31.91\n"
    )


def make_source(tmp_path, body, config_text, seq_data=False):
    path = tmp_path / "reads.sam"
    path.write_text(HEADER + body)
    config = BamConfig.parse(io.StringIO(config_text), 3)
    reader = BamReader(path)
    return reader, AlignmentSource(reader, IlluminaPEReadClassifier(config), config, seq_data)


def test_classifies_normal_pair(tmp_path):
    body = line("P1", 99, 100, 400, 310, "rg1") + line("P1", 147, 400, 100, -310, "rg1")
    reader, src = make_source(tmp_path, body, config_line("rg1", "lib1"))
    with reader:
        alns = list(src)
    assert [a.bdflag for a in alns] == [ReadFlag.NORMAL_FR, ReadFlag.NORMAL_FR]
    assert [a.lib_index for a in alns] == [0, 0]
    assert [a.query_name for a in alns] == ["P1", "P1"]


def test_read_groups_map_to_library_indices(tmp_path):
    body = line("P1", 99, 100, 400, 310, "rg1") + line("P2", 99, 200, 500, 310, "rg2")
    text = config_line("rg1", "lib1") + config_line("rg2", "lib2")
    reader, src = make_source(tmp_path, body, text)
    with reader:
        assert [a.lib_index for a in src] == [0, 1]


def test_unknown_read_group_falls_back_to_file_library(tmp_path):
    body = line("P1", 99, 100, 400, 310, "nosuchgroup")
    reader, src = make_source(tmp_path, body, config_line("rg1", "lib1"))
    with reader:
        aln = src.next()
    assert aln.lib_index == 0
    assert aln.bdflag == ReadFlag.NORMAL_FR


def test_no_library_leaves_alignment_unclassified(tmp_path):
    body = line("P1", 99, 100, 400, 310, None)
    text = "map:x.bam\tmean:467.59\tstd:31.91\n"
    reader, src = make_source(tmp_path, body, text)
    with reader:
        aln = src.next()
    assert aln.lib_index is None
    assert aln.bdflag == ReadFlag.NA


@pytest.mark.parametrize("seq_data", [True, False])
def test_sequence_data_kept_only_on_request(tmp_path, seq_data):
    body = line("P1", 99, 100, 400, 310, "rg1")
    reader, src = make_source(tmp_path, body, config_line("rg1", "lib1"), seq_data)
    with reader:
        aln = src.next()
    assert aln.has_sequence() is seq_data
    assert aln.sequence == (SEQ if seq_data else "")


def test_next_returns_none_at_end(tmp_path):
    body = line("P1", 99, 100, 400, 310, "rg1")
    reader, src = make_source(tmp_path, body, config_line("rg1", "lib1"))
    with reader:
        assert src.next() is not None
        assert src.next() is None
        assert list(src) == []