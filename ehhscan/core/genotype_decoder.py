"""Genotype decoding for the supported FORMAT encodings (GT, PL, GL, GP)."""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Type

import numpy as np
from numpy.typing import NDArray

from .errors import ConfigurationError, FieldLengthError, MissingFieldError

__all__ = [
    "SampleFields",
    "PopulationSummary",
    "GenotypeDecoder",
    "GTDecoder",
    "PLDecoder",
    "GLDecoder",
    "GPDecoder",
    "SUPPORTED_ENCODINGS",
    "decoder_for",
    "split_gt",
]

SampleFields = Mapping[str, Sequence[str]]


@dataclass
class PopulationSummary:
    """Allele frequency and hard-call allele counts for one group at one site.

    Attributes:
        af: Alternate allele frequency, ``nan`` when no sample was usable
        nref: Number of hard-called reference allele copies
        nalt: Number of hard-called alternate allele copies
        calls: Raw GT strings of the group, in group order

    Example:
        >>> s = PopulationSummary(af=0.25, nref=3, nalt=1, calls=["0|0", "0|1"])
        >>> s.is_defined
        True
    """

    af: float
    nref: int
    nalt: int
    calls: List[Optional[str]] = field(default_factory=list)

    @property
    def is_defined(self) -> bool:
        return not math.isnan(self.af)


def split_gt(gt: str) -> List[str]:
    """Split a GT string on either phase separator.

    Example:
        >>> split_gt("0|1")
        ['0', '1']
        >>> split_gt("1/1")
        ['1', '1']
    """
    return [a for a in gt.replace("|", "/").split("/") if a != ""]


def _first_value(values: Optional[Sequence[str]]) -> Optional[str]:
    if not values:
        return None
    return values[0]


class GenotypeDecoder(ABC):
    """Turns the raw FORMAT values of a sample group into a PopulationSummary.

    One decoder is selected per run from the validated encoding string; the
    same instance is shared by every site and every worker, so decoders keep
    no per-site state.
    """

    key: str = ""

    def summarize(
        self,
        samples: Sequence[SampleFields],
        allele_count: int,
        seqid: Optional[str] = None,
        position: Optional[int] = None,
    ) -> PopulationSummary:
        """Summarize one group of samples at one site.

        Args:
            samples: Per-sample mapping from FORMAT key to string values
            allele_count: Number of alleles at the site (REF + ALTs)
            seqid: Sequence name, used for error context
            position: 1-based position, used for error context

        Returns:
            PopulationSummary for the group

        Raises:
            MissingFieldError: If a sample lacks the field for this encoding
            FieldLengthError: If a likelihood vector does not hold 3 values
        """
        calls = [_first_value(sample.get("GT")) for sample in samples]
        af, nref, nalt = self._aggregate(samples, allele_count, seqid, position)
        return PopulationSummary(af=af, nref=nref, nalt=nalt, calls=calls)

    def _values(
        self,
        sample: SampleFields,
        sample_index: int,
        seqid: Optional[str],
        position: Optional[int],
    ) -> Sequence[str]:
        values = sample.get(self.key)
        if not values:
            raise MissingFieldError(
                f"genotype field {self.key} is not present",
                seqid=seqid,
                position=position,
                sample_index=sample_index,
            )
        return values

    @abstractmethod
    def _aggregate(
        self,
        samples: Sequence[SampleFields],
        allele_count: int,
        seqid: Optional[str],
        position: Optional[int],
    ) -> tuple:
        """Return ``(af, nref, nalt)`` for the group."""


class GTDecoder(GenotypeDecoder):
    """Called genotypes: frequency is the fraction of called alleles that are ALT."""

    key = "GT"

    def _aggregate(self, samples, allele_count, seqid, position):
        nref = 0
        nalt = 0
        for idx, sample in enumerate(samples):
            gt = self._values(sample, idx, seqid, position)[0]
            for allele in split_gt(gt):
                if allele == ".":
                    continue
                try:
                    allele_index = int(allele)
                except ValueError:
                    continue
                if allele_index >= allele_count:
                    continue
                if allele_index == 0:
                    nref += 1
                else:
                    nalt += 1
        called = nref + nalt
        af = nalt / called if called else float("nan")
        return af, nref, nalt


class LikelihoodDecoder(GenotypeDecoder):
    """Three-value genotype likelihood encodings (hom-ref, het, hom-alt).

    The most likely genotype is taken as the hard call; the frequency is the
    posterior expectation of ALT copies averaged over usable samples.
    """

    @abstractmethod
    def to_probabilities(self, values: NDArray[np.float64]) -> NDArray[np.float64]:
        """Convert raw values to unnormalized genotype probabilities."""

    def _aggregate(self, samples, allele_count, seqid, position):
        nref = 0
        nalt = 0
        expected_alt = 0.0
        usable = 0
        for idx, sample in enumerate(samples):
            raw = self._values(sample, idx, seqid, position)
            if all(v == "." for v in raw):
                continue
            if len(raw) != 3:
                raise FieldLengthError(
                    f"genotype field {self.key} should have 3 values but has {len(raw)}",
                    seqid=seqid,
                    position=position,
                    sample_index=idx,
                )
            if any(v == "." for v in raw):
                continue
            probs = self.to_probabilities(np.array([float(v) for v in raw]))
            total = float(probs.sum())
            if not np.isfinite(total) or total <= 0:
                continue
            probs = probs / total
            call = int(np.argmax(probs))
            nref += 2 - call
            nalt += call
            expected_alt += float(probs[1] + 2 * probs[2])
            usable += 1
        af = expected_alt / (2 * usable) if usable else float("nan")
        return af, nref, nalt


class PLDecoder(LikelihoodDecoder):
    """Phred-scaled likelihoods."""

    key = "PL"

    def to_probabilities(self, values):
        return np.power(10.0, -values / 10.0)


class GLDecoder(LikelihoodDecoder):
    """Log10-scaled likelihoods."""

    key = "GL"

    def to_probabilities(self, values):
        return np.power(10.0, values)


class GPDecoder(LikelihoodDecoder):
    """Genotype probabilities, used as-is."""

    key = "GP"

    def to_probabilities(self, values):
        return values.astype(float)


_DECODERS: Dict[str, Type[GenotypeDecoder]] = {
    "GT": GTDecoder,
    "PL": PLDecoder,
    "GL": GLDecoder,
    "GP": GPDecoder,
}

SUPPORTED_ENCODINGS = tuple(_DECODERS)


def decoder_for(encoding: str) -> GenotypeDecoder:
    """Return the decoder for a validated encoding string.

    Example:
        >>> decoder_for("PL").key
        'PL'
        >>> decoder_for("XX")
        Traceback (most recent call last):
        ...
        ehhscan.core.errors.ConfigurationError: unsupported genotype encoding 'XX' (use GT, PL, GL or GP)
    """
    try:
        return _DECODERS[encoding]()
    except KeyError:
        raise ConfigurationError(
            f"unsupported genotype encoding '{encoding}' (use GT, PL, GL or GP)"
        ) from None
