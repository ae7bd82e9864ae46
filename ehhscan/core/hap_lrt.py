"""Likelihood-ratio test on haplotype block lengths (hapLRT).

Block lengths of target and background haplotypes are modeled as
exponential. The alternative hypothesis fits one mean per group, the null
hypothesis one shared mean; ``2 * (Alt - Null)`` is referred to a chi-square
distribution.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
from numpy.typing import NDArray
from scipy.stats import chi2, expon

__all__ = [
    "HapLRTResult",
    "PairwiseMismatches",
    "HapLRTCalculator",
    "exponential_log_likelihood",
    "likelihood_ratio",
    "LRT_DF",
    "MIN_SEQUENCE_SITES",
]

# Degrees of freedom are fixed regardless of group configuration.
LRT_DF = 2

# A sequence left behind by a sequence change is not evaluated when it has
# this many retained sites or fewer.
MIN_SEQUENCE_SITES = 10


def haplotype_array(haplotypes: Sequence[str]) -> NDArray[np.uint8]:
    """Stack equal-length haplotype strings into a (haplotypes x sites) array."""
    if not haplotypes:
        return np.zeros((0, 0), dtype=np.uint8)
    n_sites = len(haplotypes[0])
    buf = "".join(haplotypes).encode("ascii")
    return np.frombuffer(buf, dtype=np.uint8).reshape(len(haplotypes), n_sites)


class PairwiseMismatches:
    """Mismatch columns of every haplotype pair within one group.

    Built once per sequence; ``block_lengths(core)`` then answers each focal
    site with a binary search per pair.

    Example:
        >>> pm = PairwiseMismatches(["000000", "000001", "100000"])
        >>> pm.block_lengths(2).tolist()
        [5, 5, 3]
    """

    def __init__(self, haplotypes: Sequence[str]):
        arr = haplotype_array(haplotypes)
        self.n_haplotypes, self.n_sites = arr.shape
        self._pairs = []
        for i in range(self.n_haplotypes):
            for j in range(i + 1, self.n_haplotypes):
                self._pairs.append((i, j, np.flatnonzero(arr[i] != arr[j])))

    def pair_length(self, diff: NDArray[np.int64], core: int) -> int:
        """Length of the matching block around ``core`` given mismatch columns.

        Both sides widen together one step at a time. The first mismatch on
        either side ends the block, and that step adds nothing to it. A side
        that reaches the sequence end stops while the other keeps going. The
        length is 0 when the pair differs at ``core``.

        Example:
            >>> pm = PairwiseMismatches(["00000000", "00100000"])
            >>> pm.pair_length(np.array([2]), 4)
            3
        """
        k = int(np.searchsorted(diff, core))
        if k < len(diff) and diff[k] == core:
            return 0
        left_room = core
        right_room = self.n_sites - 1 - core
        distances = []
        if k > 0:
            distances.append(core - int(diff[k - 1]))
        if k < len(diff):
            distances.append(int(diff[k]) - core)
        steps = min(distances) - 1 if distances else max(left_room, right_room)
        return 1 + min(steps, left_room) + min(steps, right_room)

    def block_lengths(self, core: int) -> NDArray[np.int64]:
        """Longest block each haplotype shares with any other haplotype of the group."""
        lengths = np.zeros(self.n_haplotypes, dtype=np.int64)
        for i, j, diff in self._pairs:
            length = self.pair_length(diff, core)
            if length > lengths[i]:
                lengths[i] = length
            if length > lengths[j]:
                lengths[j] = length
        return lengths


def exponential_log_likelihood(lengths: NDArray[np.int64], mean: float) -> float:
    """Log-likelihood of ``lengths`` under an exponential with the given mean."""
    if not np.isfinite(mean) or mean <= 0:
        return float("nan")
    return float(expon.logpdf(lengths, scale=mean).sum())


def likelihood_ratio(
    target: NDArray[np.int64], background: NDArray[np.int64]
) -> tuple:
    """Return ``(statistic, target_mean, background_mean)``.

    Example:
        >>> stat, tm, bm = likelihood_ratio(np.array([3, 5]), np.array([3, 5]))
        >>> round(stat, 12), tm, bm
        (0.0, 4.0, 4.0)
    """
    tm = float(np.mean(target)) if len(target) else float("nan")
    bm = float(np.mean(background)) if len(background) else float("nan")
    total = np.concatenate([target, background])
    am = float(np.mean(total)) if len(total) else float("nan")

    alt = exponential_log_likelihood(target, tm) + exponential_log_likelihood(
        background, bm
    )
    null = exponential_log_likelihood(target, am) + exponential_log_likelihood(
        background, am
    )
    return 2 * (alt - null), tm, bm


@dataclass
class HapLRTResult:
    seqid: str
    position: int
    target_mean: float
    background_mean: float
    statistic: float
    p_value: float
    sign: int

    def to_row(self) -> list:
        return [
            self.seqid,
            self.position,
            self.target_mean,
            self.background_mean,
            self.p_value,
            self.sign,
        ]


class HapLRTCalculator:
    """Runs the hapLRT over every retained site of a sequence.

    ``target`` and ``background`` index samples of the haplotype matrix; both
    chromosome copies of each sample join the group.
    """

    def __init__(
        self,
        target: Sequence[int],
        background: Sequence[int],
        logger: logging.Logger,
    ):
        self.target = list(target)
        self.background = list(background)
        self.logger = logger

    @staticmethod
    def group_haplotypes(haplotypes: Sequence[str], members: Sequence[int]) -> List[str]:
        return [haplotypes[2 * m + c] for m in members for c in (0, 1)]

    def compute_all(
        self, seqid: str, haplotypes: Sequence[str], positions: Sequence[int]
    ) -> List[HapLRTResult]:
        """Evaluate every site of the sequence.

        Args:
            seqid: Sequence name
            haplotypes: Flattened haplotype strings of the whole matrix
            positions: Positions aligned with the haplotype columns

        Returns:
            Results in site order; degenerate sites are omitted
        """
        target = PairwiseMismatches(self.group_haplotypes(haplotypes, self.target))
        background = PairwiseMismatches(
            self.group_haplotypes(haplotypes, self.background)
        )

        results = []
        skipped = 0
        for site, position in enumerate(positions):
            res = self.compute_site(seqid, position, site, target, background)
            if res is None:
                skipped += 1
                continue
            results.append(res)

        if skipped and self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(
                f"{seqid}: skipped {skipped} sites with a negative or undefined statistic"
            )
        return results

    def compute_site(
        self,
        seqid: str,
        position: int,
        site: int,
        target: PairwiseMismatches,
        background: PairwiseMismatches,
    ) -> Optional[HapLRTResult]:
        target_lengths = target.block_lengths(site)
        background_lengths = background.block_lengths(site)
        stat, tm, bm = likelihood_ratio(target_lengths, background_lengths)
        if not np.isfinite(stat) or stat < 0:
            return None
        return HapLRTResult(
            seqid=seqid,
            position=position,
            target_mean=tm,
            background_mean=bm,
            statistic=stat,
            p_value=float(chi2.sf(stat, df=LRT_DF)),
            sign=1 if tm > bm else -1,
        )
