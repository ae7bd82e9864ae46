"""Main application coordinator for ehhscan."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, List, Optional, Tuple

from .core.errors import ConfigurationError, UnphasedGenotypeError
from .core.genetic_map import GeneticMap
from .core.genotype_decoder import PopulationSummary, decoder_for
from .core.hap_lrt import MIN_SEQUENCE_SITES, HapLRTCalculator
from .core.haplotypes import SequenceBuffer
from .core.ihs import IHSCalculator, IHSResult
from .core.melt_ehh import EHHMelter, TracePoint
from .io import ResultWriter, VariantRecord, VariantStream, parse_region
from .utils import MemoryMonitor, SiteScheduler, setup_logger

__all__ = ["STATISTICS", "ScanConfig", "GroupLayout", "ScanApp"]

STATISTICS = ("ihs", "hap-lrt", "melt-ehh")

# Retained sites between memory checks while accumulating a sequence.
MEMORY_CHECK_INTERVAL = 10000


@dataclass(frozen=True)
class ScanConfig:
    """Immutable run configuration, built once from the command line.

    Attributes:
        statistic: One of "ihs", "hap-lrt", "melt-ehh"
        encoding: Genotype encoding (GT, PL, GL, GP)
        input_vcf: Phased VCF/BCF file
        target: Zero-based sample indices of the target group
        background: Zero-based sample indices of the background group (hap-lrt)
        region: Region string "seqid" or "seqid:start-end"
        af_cutoff: Allele frequency cutoff for retaining sites
        genetic_map: Optional genetic map file
        threads: Worker threads for iHS
        focal_position: Position to trace (melt-ehh)
        verbose: Whether to enable INFO logging by default
        log_level: Logging level override
        log_format: Logging format (text or json)

    Example:
        >>> config = ScanConfig(
        ...     statistic="ihs",
        ...     encoding="GT",
        ...     input_vcf=Path("phased.vcf"),
        ...     target=(0, 1, 2, 3),
        ...     region="chr1:1-100000",
        ... )
        >>> config.threads, config.af_cutoff
        (1, 0.05)
    """

    statistic: str
    encoding: str
    input_vcf: Path
    target: Tuple[int, ...]
    background: Tuple[int, ...] = ()
    region: Optional[str] = None
    af_cutoff: float = 0.05
    genetic_map: Optional[Path] = None
    threads: int = 1
    focal_position: Optional[int] = None
    verbose: bool = True
    log_level: Optional[str] = None
    log_format: str = "text"


@dataclass
class GroupLayout:
    """Which VCF samples feed the haplotype matrix and in what order.

    ``members`` are VCF sample indices in matrix order. ``target`` and
    ``background`` index into ``members``; a sample selected for both groups
    appears twice.
    """

    members: List[int]
    target: List[int] = field(default_factory=list)
    background: List[int] = field(default_factory=list)

    @classmethod
    def build(cls, config: ScanConfig, n_samples: int) -> "GroupLayout":
        """Resolve the configured indices against the header sample count.

        Example:
            >>> cfg = ScanConfig("hap-lrt", "GT", Path("x.vcf"), target=(3, 0), background=(1, 2))
            >>> GroupLayout.build(cfg, 4)
            GroupLayout(members=[0, 1, 2, 3], target=[0, 3], background=[1, 2])
        """
        requested = set(config.target) | set(config.background)
        out_of_range = sorted(i for i in requested if i >= n_samples)
        if out_of_range:
            raise ConfigurationError(
                f"sample indices {out_of_range} out of range; the file has {n_samples} samples"
            )

        if config.statistic != "hap-lrt":
            members = sorted(config.target)
            return cls(members=members, target=list(range(len(members))))

        layout = cls(members=[])
        target = set(config.target)
        background = set(config.background)
        for idx in range(n_samples):
            if idx in target:
                layout.target.append(len(layout.members))
                layout.members.append(idx)
            if idx in background:
                layout.background.append(len(layout.members))
                layout.members.append(idx)
        return layout


class ScanApp:
    """Streams variants into per-sequence haplotypes and runs one statistic."""

    def __init__(self, config: ScanConfig, stdout: Optional[IO[str]] = None):
        """Initialize the application with a validated configuration.

        Args:
            config: Application configuration
            stdout: Destination for result rows, defaults to sys.stdout
        """
        if config.statistic not in STATISTICS:
            raise ConfigurationError(f"unknown statistic '{config.statistic}'")
        if config.statistic == "melt-ehh" and config.focal_position is None:
            raise ConfigurationError("melt-ehh requires a focal position (-p/--pos)")

        self.config = config
        self.logger = setup_logger(
            "ehhscan", config.log_level, config.log_format, config.verbose
        )
        self.memory_monitor = MemoryMonitor(self.logger)
        self.decoder = decoder_for(config.encoding)
        self.region = parse_region(config.region) if config.region else None
        self.writer = ResultWriter(stdout)
        self.scheduler = SiteScheduler(
            threads=config.threads if config.statistic == "ihs" else 1,
            show_progress=config.verbose,
            logger=self.logger,
        )
        self.ihs = IHSCalculator(self.logger)
        self.melter = EHHMelter(self.logger)
        self.hap_lrt: Optional[HapLRTCalculator] = None
        self.layout: Optional[GroupLayout] = None
        self._absent_map: Optional[GeneticMap] = None
        self._focal_found = False

    def run(self) -> int:
        """Execute the scan and return the process exit status.

        Raises:
            ScanError: On any fatal configuration or data integrity problem
        """
        cfg = self.config
        if self.logger.isEnabledFor(logging.INFO):
            self.logger.info(
                f"Running {cfg.statistic} on {cfg.input_vcf} "
                f"(type={cfg.encoding}, region={self.region or 'all'})"
            )

        if cfg.genetic_map is None:
            self._absent_map = GeneticMap.load(None, "", 0, 0, self.logger)

        with VariantStream(cfg.input_vcf, self.region, self.logger) as stream:
            self.layout = GroupLayout.build(cfg, len(stream.samples))
            if self.logger.isEnabledFor(logging.INFO):
                self.logger.info(
                    f"{len(stream.samples)} samples in file; {len(self.layout.target)} in target"
                    + (
                        f", {len(self.layout.background)} in background"
                        if cfg.statistic == "hap-lrt"
                        else ""
                    )
                )
            if cfg.statistic == "hap-lrt":
                self.hap_lrt = HapLRTCalculator(
                    self.layout.target, self.layout.background, self.logger
                )

            buffer = SequenceBuffer(len(self.layout.members))
            multiallelic = 0
            for rec in stream:
                if rec.seqid != buffer.seqid:
                    if buffer.seqid is not None:
                        self._flush(buffer)
                    buffer.reset(rec.seqid)

                if not rec.phased:
                    raise UnphasedGenotypeError(
                        "found an unphased variant; all genotypes must be phased",
                        seqid=rec.seqid,
                        position=rec.position,
                    )
                if rec.allele_count > 2:
                    multiallelic += 1
                    continue

                summary = self._summarize(rec)
                if not self._accept(summary):
                    continue
                buffer.add(rec.position, summary.af, summary.calls)

                if len(buffer) % MEMORY_CHECK_INTERVAL == 0:
                    self.memory_monitor.warn_for_large_matrix(
                        buffer.seqid, len(buffer), 2 * len(self.layout.members)
                    )

            if buffer.seqid is not None:
                self._flush(buffer, last=True)
            records_read = stream.records_read

        if records_read == 0:
            self.logger.warning("There are no variants for the specified region")
        if multiallelic and self.logger.isEnabledFor(logging.INFO):
            self.logger.info(f"Skipped {multiallelic} multiallelic variants")
        if cfg.statistic == "melt-ehh" and not self._focal_found:
            self.logger.warning(
                f"Position {cfg.focal_position} was not among the retained sites"
            )

        self.writer.flush()
        self.memory_monitor.check_memory_and_warn("scan complete")
        if self.logger.isEnabledFor(logging.INFO):
            self.logger.info(f"Done: {self.writer.rows_written} rows written")
        return 0

    def _summarize(self, rec: VariantRecord) -> PopulationSummary:
        samples = [rec.samples[i] for i in self.layout.members]
        return self.decoder.summarize(
            samples, rec.allele_count, seqid=rec.seqid, position=rec.position
        )

    def _accept(self, summary: PopulationSummary) -> bool:
        if not summary.is_defined:
            return False
        cutoff = self.config.af_cutoff
        if self.config.statistic == "hap-lrt":
            return cutoff <= summary.af <= 1 - cutoff
        return summary.af > cutoff and summary.nref >= 2 and summary.nalt >= 2

    def _genetic_map(self, buffer: SequenceBuffer) -> GeneticMap:
        if self._absent_map is not None:
            return self._absent_map
        if self.logger.isEnabledFor(logging.INFO):
            self.logger.info(f"Loading genetic map for {buffer.seqid}")
        return GeneticMap.load(
            self.config.genetic_map,
            buffer.seqid,
            buffer.positions[0],
            buffer.positions[-1],
            self.logger,
        )

    def _flush(self, buffer: SequenceBuffer, last: bool = False) -> None:
        """Run the configured statistic on a completed sequence.

        ``last`` marks the sequence still buffered at end of input.
        """
        n_sites = len(buffer)
        if self.logger.isEnabledFor(logging.INFO):
            self.logger.info(f"{buffer.seqid}: {n_sites} sites retained")
        if n_sites == 0:
            return

        statistic = self.config.statistic
        if statistic == "hap-lrt":
            self._flush_hap_lrt(buffer, last)
        elif statistic == "ihs":
            self._flush_ihs(buffer)
        else:
            self._flush_melt(buffer)

    def _flush_ihs(self, buffer: SequenceBuffer) -> None:
        genetic_map = self._genetic_map(buffer)
        haplotypes = buffer.matrix.haplotypes()
        seqid = buffer.seqid
        map_misses = 0

        def work(site: int) -> Optional[IHSResult]:
            return self.ihs.compute_site(
                seqid, haplotypes, buffer.positions, buffer.afs, site, genetic_map
            )

        def emit(result: IHSResult) -> None:
            nonlocal map_misses
            self.writer.write_row(result.to_row())
            map_misses += result.map_misses

        emitted = self.scheduler.run(len(buffer), work, emit, desc=f"iHS {seqid}")
        if map_misses:
            self.logger.warning(
                f"{seqid}: {map_misses} genetic map lookups fell outside the map; "
                "constant distance used"
            )
        if self.logger.isEnabledFor(logging.INFO):
            self.logger.info(f"{seqid}: {emitted} iHS rows")

    def _flush_hap_lrt(self, buffer: SequenceBuffer, last: bool) -> None:
        # The short-sequence rule applies on sequence changes only.
        if not last and len(buffer) <= MIN_SEQUENCE_SITES:
            if self.logger.isEnabledFor(logging.INFO):
                self.logger.info(
                    f"{buffer.seqid}: {len(buffer)} sites is too few for hapLRT; skipped"
                )
            return
        results = self.hap_lrt.compute_all(
            buffer.seqid, buffer.matrix.haplotypes(), buffer.positions
        )
        for result in results:
            self.writer.write_row(result.to_row())

    def _flush_melt(self, buffer: SequenceBuffer) -> None:
        focal = self.config.focal_position
        sites = [i for i, pos in enumerate(buffer.positions) if pos == focal]
        if not sites:
            return
        self._focal_found = True
        genetic_map = self._genetic_map(buffer)
        haplotypes = buffer.matrix.haplotypes()

        def emit(point: TracePoint) -> None:
            self.writer.write_row(point.to_row())

        for site in sites:
            self.melter.melt(haplotypes, buffer.positions, site, genetic_map, emit)
