"""Tests for the integrated haplotype score."""

import math
from unittest.mock import Mock

import pytest

from ehhscan.core.genetic_map import GeneticMap
from ehhscan.core.ihs import IHSCalculator, IHSResult

# Two target samples, 20 sites. Alternate carriers (sample 0) share one
# haplotype over sites 3-17; reference carriers (sample 1) only over 8-12.
ALT_A = "01101100101101001101"
ALT_B = "01001100101101001111"
REF_C = "10010111010010110100"
REF_D = "11001010010011011010"
HAPLOTYPES = [ALT_A, ALT_B, REF_C, REF_D]
POSITIONS = [1000 * (i + 1) for i in range(20)]
AFS = [0.5] * 20


@pytest.fixture
def calculator():
    return IHSCalculator(Mock())


class TestIHSCalculator:
    def test_long_alternate_block_raises_alternate_integral(self, calculator):
        res = calculator.compute_site("1", HAPLOTYPES, POSITIONS, AFS, 10, GeneticMap.absent())
        assert res is not None
        assert res.position == 11000
        assert res.ihh_ref == pytest.approx(0.004)
        assert res.ihh_alt == pytest.approx(0.014)
        assert res.ihs == pytest.approx(math.log(3.5))
        assert (res.ref_fail, res.alt_fail) == (0, 0)

    def test_swapping_alleles_flips_the_sign(self, calculator):
        flipped = [
            "".join("1" if c == "0" else "0" for c in h) for h in HAPLOTYPES
        ]
        res = calculator.compute_site("1", flipped, POSITIONS, AFS, 10, GeneticMap.absent())
        assert res.ihs == pytest.approx(-math.log(3.5))

    def test_degenerate_site_is_skipped(self, calculator):
        # reference carriers differ immediately on both sides
        haps = ["111", "111", "100", "001"]
        assert calculator.compute_site("1", haps, [1, 2, 3], [0.5] * 3, 1, GeneticMap.absent()) is None

    def test_boundary_failures_are_counted(self, calculator):
        haps = ["1111", "1111", "0000", "0000"]
        res = calculator.compute_site("1", haps, [1, 2, 3, 4], [0.5] * 4, 1, GeneticMap.absent())
        assert (res.ref_fail, res.alt_fail) == (2, 2)
        assert res.ihs == pytest.approx(0.0)

    def test_compute_all_returns_only_scored_sites(self, calculator):
        results = calculator.compute_all("1", HAPLOTYPES, POSITIONS, AFS, GeneticMap.absent())
        assert 11000 in [r.position for r in results]
        assert all(r.ihh_ref >= 0.0001 and r.ihh_alt >= 0.0001 for r in results)


def test_result_row_layout():
    res = IHSResult("chr1", 10, 0.25, 0.5, 1.0, 1, 0)
    row = res.to_row()
    assert row[:5] == ["chr1", 10, 0.25, 0.5, 1.0]
    assert row[5] == pytest.approx(math.log(2))
    assert row[6:] == [1, 0]
