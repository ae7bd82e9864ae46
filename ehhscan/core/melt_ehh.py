"""Raw EHH decay trace around one focal position."""

import logging
from dataclasses import dataclass
from typing import Callable, List, Sequence

from .ehh import MELT_POLICY, DecayPolicy, Direction, count_carriers, integrate
from .genetic_map import GeneticMap

__all__ = ["TracePoint", "EHHMelter"]


@dataclass
class TracePoint:
    """One line of the decay trace: position, EHH, anchor allele, direction."""

    position: int
    ehh: float
    allele: str
    direction: int

    def to_row(self) -> list:
        return [self.position, self.ehh, self.allele, self.direction]


class EHHMelter:
    """Emits the EHH decay of both alleles in both directions at a focal site.

    The first point is the anchor ``(position, 1, "0", 0)``; every accepted
    extension step then adds one point. No summary is produced.
    """

    def __init__(self, logger: logging.Logger, policy: DecayPolicy = MELT_POLICY):
        self.logger = logger
        self.policy = policy

    def melt(
        self,
        haplotypes: Sequence[str],
        positions: Sequence[int],
        site: int,
        genetic_map: GeneticMap,
        emit: Callable[[TracePoint], None],
    ) -> List[int]:
        """Trace the decay around ``site``.

        Args:
            haplotypes: All haplotype strings of the group
            positions: Positions aligned with the haplotype columns
            site: Column index of the focal site
            genetic_map: Distance lookup between positions
            emit: Receives every trace point in order

        Returns:
            Integration statuses in the order ref-right, ref-left, alt-right,
            alt-left
        """
        emit(TracePoint(positions[site], 1.0, "0", 0))

        def on_step(position: int, ehh: float, allele: str, direction: Direction) -> None:
            emit(TracePoint(position, ehh, allele, int(direction)))

        statuses = []
        for allele in ("0", "1"):
            carriers = count_carriers(haplotypes, site, allele)
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
                    trace=on_step,
                )
                statuses.append(int(res.status))
                if self.logger.isEnabledFor(logging.DEBUG):
                    self.logger.debug(
                        f"allele {allele} {direction.name.lower()}: {res.steps} steps, "
                        f"area {res.area:g}, status {res.status.name}"
                    )
        return statuses
