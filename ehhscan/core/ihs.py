"""Integrated haplotype score (iHS)."""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .ehh import IHS_POLICY, DecayPolicy, Direction, count_carriers, integrate
from .genetic_map import GeneticMap

__all__ = ["IHSResult", "IHSCalculator", "MIN_IHH"]

# Sites whose integrated EHH falls below this on either allele are skipped.
MIN_IHH = 0.0001


@dataclass
class IHSResult:
    """iHS for one focal site.

    Attributes:
        seqid: Sequence name
        position: 1-based position of the focal site
        af: Alternate allele frequency of the target group
        ihh_ref: Integrated EHH of reference-allele carriers (both sides)
        ihh_alt: Integrated EHH of alternate-allele carriers (both sides)
        ref_fail: Failed integrations for the reference allele (0-2)
        alt_fail: Failed integrations for the alternate allele (0-2)
        map_misses: Genetic map lookups that fell back to the constant
    """

    seqid: str
    position: int
    af: float
    ihh_ref: float
    ihh_alt: float
    ref_fail: int
    alt_fail: int
    map_misses: int = 0

    @property
    def ihs(self) -> float:
        return math.log(self.ihh_alt / self.ihh_ref)

    def to_row(self) -> list:
        return [
            self.seqid,
            self.position,
            self.af,
            self.ihh_ref,
            self.ihh_alt,
            self.ihs,
            self.ref_fail,
            self.alt_fail,
        ]


class IHSCalculator:
    """Computes iHS for every retained site of a sequence."""

    def __init__(self, logger: logging.Logger, policy: DecayPolicy = IHS_POLICY):
        self.logger = logger
        self.policy = policy

    def compute_site(
        self,
        seqid: str,
        haplotypes: Sequence[str],
        positions: Sequence[int],
        afs: Sequence[float],
        site: int,
        genetic_map: GeneticMap,
    ) -> Optional[IHSResult]:
        """Integrate both alleles in both directions around ``site``.

        Returns:
            IHSResult, or None when either integral is degenerate
        """
        ihh = {}
        fails = {}
        misses = 0
        for allele in ("0", "1"):
            carriers = count_carriers(haplotypes, site, allele)
            ihh[allele] = 0.0
            fails[allele] = 0
            for direction in (Direction.RIGHT, Direction.LEFT):
                res = integrate(
                    haplotypes,
                    positions,
                    direction,
                    site,
                    allele,
                    carriers,
                    genetic_map,
                    self.policy,
                )
                ihh[allele] += res.area
                fails[allele] += int(res.status)
                misses += res.map_misses

        if ihh["0"] < MIN_IHH or ihh["1"] < MIN_IHH:
            return None

        return IHSResult(
            seqid=seqid,
            position=positions[site],
            af=afs[site],
            ihh_ref=ihh["0"],
            ihh_alt=ihh["1"],
            ref_fail=fails["0"],
            alt_fail=fails["1"],
            map_misses=misses,
        )

    def compute_all(
        self,
        seqid: str,
        haplotypes: Sequence[str],
        positions: Sequence[int],
        afs: Sequence[float],
        genetic_map: GeneticMap,
    ) -> List[IHSResult]:
        """Sequential convenience wrapper used by tests and small inputs."""
        results = []
        for site in range(len(positions)):
            res = self.compute_site(seqid, haplotypes, positions, afs, site, genetic_map)
            if res is not None:
                results.append(res)
        return results
