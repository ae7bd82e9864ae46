"""ehhscan - haplotype-decay selection statistics.

Scans phased VCF/BCF data for extended haplotype homozygosity (EHH) and
reports the integrated haplotype score (iHS), a likelihood ratio test on
haplotype block lengths (hapLRT), or raw EHH decay traces around one site.
"""

__version__ = "1.0.0"

from .app import ScanApp, ScanConfig
from .core.genetic_map import GeneticMap
from .core.hap_lrt import HapLRTCalculator
from .core.ihs import IHSCalculator
from .core.melt_ehh import EHHMelter
from .utils.memory_monitor import MemoryMonitor

__all__ = [
    "ScanApp",
    "ScanConfig",
    "GeneticMap",
    "IHSCalculator",
    "HapLRTCalculator",
    "EHHMelter",
    "MemoryMonitor",
]
