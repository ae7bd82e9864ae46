"""Exception hierarchy shared by the statistic pipeline."""

from typing import Optional

__all__ = [
    "ScanError",
    "ConfigurationError",
    "DataIntegrityError",
    "UnphasedGenotypeError",
    "MissingFieldError",
    "FieldLengthError",
    "HomozygosityError",
    "GeneticMapError",
    "RegionNotFoundError",
]


class ScanError(Exception):
    """Base class for every fatal condition raised by ehhscan."""

    pass


class ConfigurationError(ScanError):
    """Invalid or inconsistent run configuration."""

    pass


class DataIntegrityError(ScanError):
    """Input data violates an assumption every statistic depends on."""

    def __init__(
        self,
        message: str,
        seqid: Optional[str] = None,
        position: Optional[int] = None,
        sample_index: Optional[int] = None,
    ):
        self.seqid = seqid
        self.position = position
        self.sample_index = sample_index
        context = []
        if seqid is not None:
            context.append(f"seqid={seqid}")
        if position is not None:
            context.append(f"position={position}")
        if sample_index is not None:
            context.append(f"sample={sample_index}")
        if context:
            message = f"{message} ({', '.join(context)})"
        super().__init__(message)


class UnphasedGenotypeError(DataIntegrityError):
    """A variant carries an unphased genotype."""

    pass


class MissingFieldError(DataIntegrityError):
    """The genotype field for the chosen encoding is absent."""

    pass


class FieldLengthError(DataIntegrityError):
    """A likelihood/probability vector does not hold exactly three values."""

    pass


class HomozygosityError(DataIntegrityError):
    """Homozygosity above 1.0; never expected with well-formed haplotypes."""

    pass


class GeneticMapError(ScanError):
    """The genetic map could not be loaded for the requested span."""

    pass


class RegionNotFoundError(ScanError):
    """The requested region names a contig that the header does not declare."""

    pass
