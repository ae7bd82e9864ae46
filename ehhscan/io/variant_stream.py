"""VCF/BCF record stream backed by pysam."""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

import pysam

from ..core.errors import ConfigurationError, RegionNotFoundError

__all__ = ["Region", "parse_region", "VariantRecord", "VariantStream"]

_REGION_RE = re.compile(r"^(?P<seqid>[^:\s]+)(?::(?P<start>[\d,]+)-(?P<end>[\d,]+))?$")


@dataclass(frozen=True)
class Region:
    """A sequence, optionally restricted to a 1-based inclusive interval."""

    seqid: str
    start: Optional[int] = None
    end: Optional[int] = None

    def contains(self, seqid: str, position: int) -> bool:
        if seqid != self.seqid:
            return False
        if self.start is not None and position < self.start:
            return False
        if self.end is not None and position > self.end:
            return False
        return True

    def __str__(self) -> str:
        if self.start is None:
            return self.seqid
        return f"{self.seqid}:{self.start}-{self.end}"


def parse_region(text: str) -> Region:
    """Parse ``seqid`` or ``seqid:start-end``.

    Example:
        >>> parse_region("chr1:1,000-2,000")
        Region(seqid='chr1', start=1000, end=2000)
        >>> parse_region("scaffold_7")
        Region(seqid='scaffold_7', start=None, end=None)
    """
    match = _REGION_RE.match(text.strip())
    if not match:
        raise ConfigurationError(
            f"invalid region '{text}'; use 'seqid' or 'seqid:start-end'"
        )
    seqid = match.group("seqid")
    if match.group("start") is None:
        return Region(seqid)
    start = int(match.group("start").replace(",", ""))
    end = int(match.group("end").replace(",", ""))
    if start < 1 or start > end:
        raise ConfigurationError(f"invalid region '{text}'; start must be <= end")
    return Region(seqid, start, end)


@dataclass
class VariantRecord:
    """One variant with per-sample FORMAT values rendered as strings.

    Attributes:
        seqid: Sequence name
        position: 1-based position
        ref: Reference allele
        alts: Alternate alleles
        phased: True when every sample's GT is phased
        samples: Per sample (header order), FORMAT key to string values
    """

    seqid: str
    position: int
    ref: str
    alts: Tuple[str, ...]
    phased: bool
    samples: List[Dict[str, List[str]]]

    @property
    def allele_count(self) -> int:
        return 1 + len(self.alts)


def _render_gt(sample) -> str:
    alleles = sample.get("GT")
    if alleles is None:
        return "."
    sep = "|" if sample.phased else "/"
    return sep.join("." if a is None else str(a) for a in alleles)


def _render_values(value) -> List[str]:
    if value is None:
        return ["."]
    if not isinstance(value, (tuple, list)):
        value = (value,)
    return ["." if v is None else str(v) for v in value]


class VariantStream:
    """Iterates the variants of a file, optionally restricted to a region.

    Indexed files are queried through their index; otherwise every record is
    read and filtered. Use as a context manager.

    Example:
        >>> with VariantStream(Path("phased.vcf"), parse_region("chr1")) as stream:
        ...     for rec in stream:
        ...         print(rec.seqid, rec.position, rec.phased)
    """

    def __init__(
        self,
        path: Path,
        region: Optional[Region] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.path = Path(path)
        self.region = region
        self.logger = logger or logging.getLogger(__name__)
        self._vf: Optional[pysam.VariantFile] = None
        self.records_read = 0

    def __enter__(self) -> "VariantStream":
        try:
            self._vf = pysam.VariantFile(str(self.path))
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"cannot open variant file {self.path}: {e}") from e
        if self.region is not None and self.region.seqid not in self.contigs:
            self.close()
            raise RegionNotFoundError(
                f"region '{self.region}' names a sequence not declared in the header of {self.path}"
            )
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._vf is not None:
            self._vf.close()
            self._vf = None

    @property
    def samples(self) -> List[str]:
        return list(self._vf.header.samples)

    @property
    def contigs(self) -> List[str]:
        return [str(c) for c in self._vf.header.contigs]

    def _records(self) -> Iterator:
        region = self.region
        if region is None:
            return iter(self._vf)
        start = None if region.start is None else region.start - 1
        try:
            return self._vf.fetch(region.seqid, start, region.end)
        except ValueError:
            if self.logger.isEnabledFor(logging.DEBUG):
                self.logger.debug(f"No index for {self.path}; filtering records by region")
            return (r for r in self._vf if region.contains(r.chrom, r.pos))

    def __iter__(self) -> Iterator[VariantRecord]:
        if self._vf is None:
            raise RuntimeError("VariantStream must be opened before iterating")
        names = self.samples
        for rec in self._records():
            self.records_read += 1
            samples: List[Dict[str, List[str]]] = []
            phased = True
            keys = list(rec.format.keys())
            for name in names:
                data = rec.samples[name]
                fields: Dict[str, List[str]] = {}
                for key in keys:
                    if key == "GT":
                        gt = _render_gt(data)
                        if "/" in gt:
                            phased = False
                        fields[key] = [gt]
                    else:
                        fields[key] = _render_values(data.get(key))
                samples.append(fields)

            if self.records_read % 10000 == 0 and self.logger.isEnabledFor(logging.INFO):
                self.logger.info(f"Processed {self.records_read} variants...")

            yield VariantRecord(
                seqid=rec.chrom,
                position=rec.pos,
                ref=rec.ref,
                alts=tuple(rec.alts or ()),
                phased=phased,
                samples=samples,
            )
