"""Tests for the raw EHH decay trace."""

from unittest.mock import Mock

import numpy as np

from ehhscan.core.genetic_map import GeneticMap
from ehhscan.core.melt_ehh import EHHMelter, TracePoint


def _melt(haplotypes, positions, site, genetic_map=None):
    points = []
    statuses = EHHMelter(Mock()).melt(
        haplotypes, positions, site, genetic_map or GeneticMap.absent(), points.append
    )
    return points, statuses


def test_identical_copies_stay_fully_homozygous_until_boundary():
    haps = ["010110"] * 6
    positions = [10, 20, 30, 40, 50, 60]
    points, statuses = _melt(haps, positions, 2)

    assert points[0] == TracePoint(30, 1.0, "0", 0)
    assert all(p.ehh == 1.0 for p in points)
    right = [p.position for p in points[1:] if p.direction == 1]
    left = [p.position for p in points[1:] if p.direction == 0]
    assert right == [40, 50, 60]
    assert left == [20, 10]
    # one failure per direction and allele
    assert statuses == [1, 1, 1, 1]


def test_decayed_step_is_not_emitted():
    haps = ["000", "001", "010", "011"]
    points, statuses = _melt(haps, [100, 200, 300], 0)
    assert [p.to_row() for p in points] == [
        [100, 1.0, "0", 0],
        [200, 1 / 3, "0", 1],
    ]
    assert statuses == [0, 1, 1, 1]


def test_no_gap_cutoff_and_alleles_in_order():
    haps = ["0011", "0011", "1100", "1100"]
    positions = [1, 50000, 100000, 150000]
    points, statuses = _melt(haps, positions, 1)
    alleles = [p.allele for p in points[1:]]
    assert alleles == sorted(alleles)
    assert {p.position for p in points[1:]} == {1, 100000, 150000}
    assert statuses == [1, 1, 1, 1]


def test_genetic_map_does_not_change_the_trace():
    haps = ["0101"] * 4
    positions = [100, 200, 300, 400]
    gm = GeneticMap(np.array([100, 400]), np.array([0.0, 3.0]))
    with_map, _ = _melt(haps, positions, 1, gm)
    without_map, _ = _melt(haps, positions, 1)
    assert with_map == without_map
