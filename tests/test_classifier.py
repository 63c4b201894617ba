import io
import itertools

import pytest

from svreads.alignment import Alignment, ReadFlag
from svreads.bam_config import BamConfig
from svreads.classifier import AlignmentClassifier, IlluminaPEReadClassifier, pe_classify

CONFIG = (
    "readgroup:rg1\tmap:x.bam\treadlen:90.00\tlib:lib1\tnum:10001\t"
    "lower:277.03\tupper:525.50\tmean:467.59\tstd:31.91\n"
)


@pytest.fixture
def classifier():
    return IlluminaPEReadClassifier(BamConfig.parse(io.StringIO(CONFIG), 3))


def make_aln(flag, isize=400, pos=100, mpos=400, tid=0, mtid=0, lib_index=0):
    return Alignment(
        tid=tid, pos=pos, mtid=mtid, mpos=mpos, abs_isize=isize,
        sam_flag=flag, lib_index=lib_index, query_name="r",
    )


ALL_COMBINATIONS = list(itertools.product([False, True], repeat=6))


@pytest.mark.parametrize("args", ALL_COMBINATIONS)
def test_pe_classify_truth_table(args):
    rev, mrev, left, ppair, big, sml = args
    flag = pe_classify(rev, mrev, left, ppair, big, sml)
    if rev == mrev:
        assert flag == (ReadFlag.ARP_RR if rev else ReadFlag.ARP_FF)
    elif left == rev:
        assert flag == ReadFlag.ARP_RF
    elif big:
        assert flag == ReadFlag.ARP_LARGE_INSERT
    elif sml:
        assert flag == ReadFlag.ARP_SMALL_INSERT
    else:
        assert flag == ReadFlag.NORMAL_FR


def test_pe_classify_never_yields_normal_rf():
    flags = {pe_classify(*args) for args in ALL_COMBINATIONS}
    assert ReadFlag.NORMAL_RF not in flags
    assert flags == {
        ReadFlag.ARP_FF, ReadFlag.ARP_RR, ReadFlag.ARP_RF,
        ReadFlag.ARP_LARGE_INSERT, ReadFlag.ARP_SMALL_INSERT, ReadFlag.NORMAL_FR,
    }


def test_proper_pair_does_not_change_result():
    for rev, mrev, left, big, sml in itertools.product([False, True], repeat=5):
        assert pe_classify(rev, mrev, left, True, big, sml) == pe_classify(
            rev, mrev, left, False, big, sml
        )


def test_duplicate_is_na(classifier):
    assert classifier.classify(make_aln(0x1 | 0x400)) == ReadFlag.NA


def test_unpaired_is_na(classifier):
    assert classifier.classify(make_aln(0x0)) == ReadFlag.NA


def test_unmapped(classifier):
    assert classifier.classify(make_aln(0x1 | 0x4)) == ReadFlag.UNMAPPED


def test_mate_unmapped(classifier):
    assert classifier.classify(make_aln(0x1 | 0x8)) == ReadFlag.MATE_UNMAPPED


def test_interchromosomal(classifier):
    assert classifier.classify(make_aln(0x1 | 0x20, mtid=1)) == ReadFlag.ARP_CTX


def test_normal_fr(classifier):
    assert classifier.classify(make_aln(0x1 | 0x2 | 0x20, isize=400)) == ReadFlag.NORMAL_FR


def test_large_insert(classifier):
    assert classifier.classify(make_aln(0x1 | 0x20, isize=1000)) == ReadFlag.ARP_LARGE_INSERT


def test_small_insert(classifier):
    assert classifier.classify(make_aln(0x1 | 0x20, isize=100)) == ReadFlag.ARP_SMALL_INSERT


def test_rf_orientation(classifier):
    assert classifier.classify(make_aln(0x1 | 0x10)) == ReadFlag.ARP_RF


def test_same_strand(classifier):
    assert classifier.classify(make_aln(0x1 | 0x10 | 0x20)) == ReadFlag.ARP_RR
    assert classifier.classify(make_aln(0x1)) == ReadFlag.ARP_FF


def test_set_flag(classifier):
    aln = make_aln(0x1 | 0x20, mtid=3)
    classifier.set_flag(aln)
    assert aln.bdflag == ReadFlag.ARP_CTX


def test_missing_library_raises(classifier):
    with pytest.raises(ValueError):
        classifier.classify(make_aln(0x1, lib_index=None))


def test_unknown_library_index_raises(classifier):
    with pytest.raises(IndexError):
        classifier.classify(make_aln(0x1, lib_index=5))


def test_interface_is_abstract():
    with pytest.raises(TypeError):
        AlignmentClassifier()