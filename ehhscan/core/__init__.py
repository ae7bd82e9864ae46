"""Core statistic modules for ehhscan."""

from .errors import (
    ScanError,
    ConfigurationError,
    DataIntegrityError,
    UnphasedGenotypeError,
    MissingFieldError,
    FieldLengthError,
    HomozygosityError,
    GeneticMapError,
    RegionNotFoundError,
)
from .genotype_decoder import PopulationSummary, GenotypeDecoder, decoder_for
from .haplotypes import HaplotypeMatrix, SequenceBuffer
from .genetic_map import GeneticMap
from .ehh import Direction, DecayPolicy, IntegrationStatus, homozygosity, integrate
from .ihs import IHSCalculator, IHSResult
from .hap_lrt import HapLRTCalculator, HapLRTResult
from .melt_ehh import EHHMelter, TracePoint

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
    "PopulationSummary",
    "GenotypeDecoder",
    "decoder_for",
    "HaplotypeMatrix",
    "SequenceBuffer",
    "GeneticMap",
    "Direction",
    "DecayPolicy",
    "IntegrationStatus",
    "homozygosity",
    "integrate",
    "IHSCalculator",
    "IHSResult",
    "HapLRTCalculator",
    "HapLRTResult",
    "EHHMelter",
    "TracePoint",
]
