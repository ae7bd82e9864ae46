"""Phased haplotype accumulation for one contiguous sequence."""

from typing import List, Optional, Sequence

from .errors import DataIntegrityError, MissingFieldError, UnphasedGenotypeError

__all__ = ["HaplotypeMatrix", "SequenceBuffer", "ALLELE_CHARS"]

ALLELE_CHARS = frozenset("01")


class HaplotypeMatrix:
    """Per-sample pairs of allele strings, one character per retained site.

    Both copies of every sample always have the same length: ``append_site``
    validates a whole site before touching any sequence.

    Example:
        >>> m = HaplotypeMatrix(2)
        >>> m.append_site(["0|1", "1|1"])
        >>> m.append_site(["0|0", "1|0"])
        >>> m.haplotypes()
        ['00', '10', '11', '10']
    """

    def __init__(self, n_samples: int):
        self.n_samples = n_samples
        self._copies: List[List[List[str]]] = [[[], []] for _ in range(n_samples)]

    @property
    def n_sites(self) -> int:
        return len(self._copies[0][0]) if self._copies else 0

    def append_site(
        self,
        calls: Sequence[Optional[str]],
        seqid: Optional[str] = None,
        position: Optional[int] = None,
    ) -> None:
        """Append one phased site.

        Args:
            calls: GT strings of the group, one per sample in group order
            seqid: Sequence name, used for error context
            position: 1-based position, used for error context

        Raises:
            UnphasedGenotypeError: If any genotype is unphased
            DataIntegrityError: If a genotype is not two alleles from {0, 1}
        """
        if len(calls) != self.n_samples:
            raise DataIntegrityError(
                f"expected {self.n_samples} genotypes, got {len(calls)}",
                seqid=seqid,
                position=position,
            )
        pairs = []
        for idx, gt in enumerate(calls):
            if gt is None:
                raise MissingFieldError(
                    "genotype field GT is not present",
                    seqid=seqid,
                    position=position,
                    sample_index=idx,
                )
            if "/" in gt:
                raise UnphasedGenotypeError(
                    "found an unphased variant; all genotypes must be phased",
                    seqid=seqid,
                    position=position,
                    sample_index=idx,
                )
            alleles = gt.split("|")
            if len(alleles) != 2 or not all(a in ALLELE_CHARS for a in alleles):
                raise DataIntegrityError(
                    f"cannot derive two haplotype alleles from GT '{gt}'",
                    seqid=seqid,
                    position=position,
                    sample_index=idx,
                )
            pairs.append(alleles)

        for copies, (first, second) in zip(self._copies, pairs):
            copies[0].append(first)
            copies[1].append(second)

    def reset(self) -> None:
        """Clear every sequence, keeping the sample count."""
        for copies in self._copies:
            copies[0].clear()
            copies[1].clear()

    def haplotypes(self) -> List[str]:
        """Return all copies as strings ordered ``[s0.first, s0.second, s1.first, ...]``."""
        out: List[str] = []
        for first, second in self._copies:
            out.append("".join(first))
            out.append("".join(second))
        return out

    def sample_pair(self, sample: int) -> tuple:
        first, second = self._copies[sample]
        return "".join(first), "".join(second)


class SequenceBuffer:
    """Haplotype matrix plus the aligned position and frequency series."""

    def __init__(self, n_samples: int):
        self.matrix = HaplotypeMatrix(n_samples)
        self.positions: List[int] = []
        self.afs: List[float] = []
        self.seqid: Optional[str] = None

    def __len__(self) -> int:
        return len(self.positions)

    def add(self, position: int, af: float, calls: Sequence[Optional[str]]) -> None:
        self.matrix.append_site(calls, seqid=self.seqid, position=position)
        self.positions.append(position)
        self.afs.append(af)

    def reset(self, seqid: Optional[str]) -> None:
        self.matrix.reset()
        self.positions = []
        self.afs = []
        self.seqid = seqid
