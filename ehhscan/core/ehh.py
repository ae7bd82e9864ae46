"""Extended haplotype homozygosity over growing haplotype windows.

A window is a half-open column range ``[start, end)`` of the haplotype
matrix. Windows are anchored at a focal site and widened one site at a time;
the area under the EHH decay curve is accumulated with the trapezoidal rule
over genetic distance.
"""

import math
from collections import Counter
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Optional, Sequence

from .errors import HomozygosityError
from .genetic_map import DEFAULT_DISTANCE, GeneticMap

__all__ = [
    "Direction",
    "IntegrationStatus",
    "DecayPolicy",
    "IntegrationResult",
    "IHS_POLICY",
    "MELT_POLICY",
    "count_allele_combinations",
    "count_carriers",
    "homozygosity",
    "integrate",
]

TraceCallback = Callable[[int, float, str, "Direction"], None]


class Direction(IntEnum):
    LEFT = 0
    RIGHT = 1


class IntegrationStatus(IntEnum):
    """Outcome of one directional integration; the value feeds failure counters."""

    DECAYED = 0
    FAILED = 1


@dataclass(frozen=True)
class DecayPolicy:
    """Stopping and distance rules for one statistic.

    Attributes:
        threshold: Integration stops once EHH falls to or below this value
        max_gap: Physical gap (bp) that aborts integration, None for no limit
        correction_gap: Gaps (bp) above this are down-weighted by
            ``correction_gap / gap``, None for no correction
    """

    threshold: float
    max_gap: Optional[int] = None
    correction_gap: Optional[int] = None

    def gap_correction(self, gap: int) -> float:
        if self.correction_gap is not None and gap > self.correction_gap:
            return self.correction_gap / gap
        return 1.0


IHS_POLICY = DecayPolicy(threshold=0.05, max_gap=10000, correction_gap=5000)
MELT_POLICY = DecayPolicy(threshold=0.01)


@dataclass
class IntegrationResult:
    area: float = 0.0
    status: IntegrationStatus = IntegrationStatus.DECAYED
    steps: int = 0
    map_misses: int = 0


def count_allele_combinations(
    haplotypes: Sequence[str], start: int, end: int
) -> Counter:
    """Count every distinct allele string in the window ``[start, end)``.

    Example:
        >>> sorted(count_allele_combinations(["001", "011", "001"], 0, 2).items())
        [('00', 2), ('01', 1)]
    """
    return Counter(h[start:end] for h in haplotypes)


def count_carriers(haplotypes: Sequence[str], site: int, allele: str) -> int:
    """Number of haplotypes carrying ``allele`` at ``site``."""
    return sum(1 for h in haplotypes if h[site] == allele)


def homozygosity(
    haplotypes: Sequence[str],
    start: int,
    end: int,
    anchor: str,
    direction: Direction,
    carriers: int,
) -> float:
    """EHH of the window ``[start, end)`` for haplotypes carrying ``anchor``.

    The anchor allele sits at the first column when extending right and at
    the last column when extending left. Identical window strings shared by
    ``n >= 2`` haplotypes contribute ``C(n, 2)`` pairs; the result is divided
    by ``C(carriers, 2)``.

    Example:
        >>> homozygosity(["00", "00", "01", "11"], 0, 2, "0", Direction.RIGHT, 3)
        0.3333333333333333

    Raises:
        HomozygosityError: If the value exceeds 1.0
    """
    boundary = 0 if direction is Direction.RIGHT else -1
    pairs = 0
    for window, count in count_allele_combinations(haplotypes, start, end).items():
        if count < 2 or window[boundary] != anchor:
            continue
        pairs += math.comb(count, 2)
    total_pairs = math.comb(carriers, 2)
    if total_pairs == 0:
        return 0.0
    if pairs > total_pairs:
        raise HomozygosityError(
            f"internal error: homozygosity {pairs}/{total_pairs} exceeds 1.0 "
            f"for window {start}-{end}"
        )
    return pairs / total_pairs


def integrate(
    haplotypes: Sequence[str],
    positions: Sequence[int],
    direction: Direction,
    focal: int,
    anchor: str,
    carriers: int,
    genetic_map: GeneticMap,
    policy: DecayPolicy,
    trace: Optional[TraceCallback] = None,
) -> IntegrationResult:
    """Integrate the EHH decay curve outward from ``focal`` in one direction.

    Each step widens the window by one site, recomputes EHH and adds
    ``(ehh_prev + ehh_curr) / 2 * genetic_distance * correction``. Integration
    ends normally when EHH drops to ``policy.threshold`` or below; running off
    the matrix, a gap above ``policy.max_gap`` or fewer than two carriers is
    a failure. The area accumulated before a failure is kept.

    Args:
        haplotypes: All haplotype strings of the group
        positions: Physical positions aligned with the haplotype columns
        direction: Side of the focal site to extend
        focal: Column index of the focal site
        anchor: Allele ("0" or "1") whose carriers are followed
        carriers: Number of haplotypes carrying ``anchor`` at ``focal``
        genetic_map: Distance lookup between positions
        policy: Threshold and gap rules
        trace: Called with ``(position, ehh, anchor, direction)`` per step

    Returns:
        IntegrationResult with the accumulated area and outcome
    """
    result = IntegrationResult()
    if carriers < 2:
        result.status = IntegrationStatus.FAILED
        return result

    n_sites = len(positions)
    start = focal
    end = focal + 1
    ehh = 1.0

    while True:
        if direction is Direction.RIGHT:
            end += 1
            if end > n_sites:
                result.status = IntegrationStatus.FAILED
                return result
            previous, current = positions[end - 2], positions[end - 1]
        else:
            start -= 1
            if start < 0:
                result.status = IntegrationStatus.FAILED
                return result
            previous, current = positions[start + 1], positions[start]

        next_ehh = homozygosity(haplotypes, start, end, anchor, direction, carriers)
        if next_ehh <= policy.threshold:
            result.status = IntegrationStatus.DECAYED
            return result

        gap = abs(current - previous)
        if policy.max_gap is not None and gap > policy.max_gap:
            result.status = IntegrationStatus.FAILED
            return result

        step = genetic_map.distance(previous, current)
        if step is None:
            step = DEFAULT_DISTANCE
            result.map_misses += 1

        result.area += (ehh + next_ehh) / 2 * step * policy.gap_correction(gap)
        result.steps += 1
        if trace is not None:
            trace(current, next_ehh, anchor, direction)
        ehh = next_ehh
