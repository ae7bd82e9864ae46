"""Memory usage monitoring for haplotype accumulation."""

import logging
from typing import Optional

import psutil

__all__ = ["MemoryMonitor", "BYTES_PER_ALLELE"]

# One string reference while a site is appended plus one byte once joined.
BYTES_PER_ALLELE = 9

_MB = 1024 * 1024


class MemoryMonitor:
    """Warns when the process or a haplotype matrix approaches system limits.

    Thresholds are fractions of total system memory, fixed at construction.

    Example:
        >>> from ehhscan.utils.logging_setup import setup_logger
        >>> monitor = MemoryMonitor(setup_logger("memory_monitor"))
        >>> monitor.warning_threshold_mb < monitor.critical_threshold_mb
        True
    """

    WARNING_FRACTION = 0.5
    CRITICAL_FRACTION = 0.9
    # Share of available memory a single matrix may claim before warning.
    MATRIX_AVAILABLE_FRACTION = 0.8

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.process = psutil.Process()
        total_mb = psutil.virtual_memory().total / _MB
        self.warning_threshold_mb = total_mb * self.WARNING_FRACTION
        self.critical_threshold_mb = total_mb * self.CRITICAL_FRACTION
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(
                f"Memory thresholds {self.warning_threshold_mb:.0f}MB / "
                f"{self.critical_threshold_mb:.0f}MB of {total_mb:.0f}MB"
            )

    def get_memory_usage_mb(self) -> float:
        return self.process.memory_info().rss / _MB

    def get_available_memory_mb(self) -> float:
        return psutil.virtual_memory().available / _MB

    def _pressure(self, used_mb: float) -> Optional[str]:
        if used_mb > self.critical_threshold_mb:
            return "critical"
        if used_mb > self.warning_threshold_mb:
            return "elevated"
        return None

    def check_memory_and_warn(self, operation: str = "scan") -> None:
        """Log the process footprint, as a warning above a threshold.

        Args:
            operation: Stage name included in the message
        """
        used_mb = self.get_memory_usage_mb()
        pressure = self._pressure(used_mb)
        if pressure is None:
            self.logger.debug(f"Memory after {operation}: {used_mb:.1f}MB")
            return
        self.logger.warning(
            f"{pressure.capitalize()} memory usage after {operation}: {used_mb:.1f}MB "
            f"resident, {self.get_available_memory_mb():.1f}MB available"
        )

    @staticmethod
    def estimate_matrix_memory_mb(num_sites: int, num_haplotypes: int) -> float:
        """Estimate the haplotype matrix footprint in MB.

        Example:
            >>> round(MemoryMonitor.estimate_matrix_memory_mb(100000, 1000), 1)
            858.3
        """
        return num_sites * num_haplotypes * BYTES_PER_ALLELE / _MB

    def warn_for_large_matrix(self, seqid: str, num_sites: int, num_haplotypes: int) -> None:
        """Warn when a sequence's haplotype matrix may not fit in memory.

        Args:
            seqid: Sequence being accumulated
            num_sites: Retained sites so far
            num_haplotypes: Chromosome copies per site
        """
        estimated_mb = self.estimate_matrix_memory_mb(num_sites, num_haplotypes)
        available_mb = self.get_available_memory_mb()

        if estimated_mb > available_mb * self.MATRIX_AVAILABLE_FRACTION:
            self.logger.warning(
                f"MEMORY WARNING: {seqid} haplotypes ({num_sites} sites x {num_haplotypes} "
                f"copies) may require ~{estimated_mb:.1f}MB, but only {available_mb:.1f}MB "
                "available. Consider restricting the region."
            )
        elif estimated_mb > self.warning_threshold_mb:
            self.logger.warning(
                f"Large haplotype matrix for {seqid} ({num_sites} sites x {num_haplotypes} "
                f"copies), ~{estimated_mb:.1f}MB."
            )
