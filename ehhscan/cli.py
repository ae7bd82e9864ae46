"""Command-line interface for ehhscan."""

import argparse
import logging
import platform
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .app import ScanApp, ScanConfig
from .core.errors import ScanError
from .utils.validation import validate_cli_arguments

__all__ = ["parser_resolve_path", "create_parser", "main"]


def _get_git_commit() -> str:
    """Return short git commit hash if available, else 'unknown'."""
    try:
        res = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            check=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            cwd=Path(__file__).resolve().parent,
        )
        return res.stdout.strip() or "unknown"
    except (OSError, subprocess.CalledProcessError):
        return "unknown"


def _build_version_string() -> str:
    """Compose version string with build and runtime info."""
    commit = _get_git_commit()
    py = platform.python_version()
    return f"ehhscan {__version__} (commit hash {commit})\nPython {py}"


def parser_resolve_path(path: str) -> Path:
    """Resolve CLI-provided path string to an absolute Path.

    Example:
        >>> parser_resolve_path("/data/phased.vcf.gz")
        PosixPath('/data/phased.vcf.gz')
    """
    return Path(path).resolve()


class _ArgumentParser(argparse.ArgumentParser):
    """Argument parser that exits with status 1 on usage errors."""

    def error(self, message: str) -> None:
        self.print_usage(sys.stderr)
        self.exit(1, f"FATAL: {message}\n")


def _add_common_arguments(sub: argparse.ArgumentParser) -> None:
    grp_in = sub.add_argument_group("Input", "Variant file and sample groups")
    grp_in.add_argument(
        "-f",
        "--file",
        help="Properly formatted, phased VCF/BCF file",
        type=parser_resolve_path,
        required=True,
        metavar="VCF",
    )
    grp_in.add_argument(
        "-y",
        "--type",
        help="Genotype likelihood format: GT, PL, GL or GP",
        required=True,
        metavar="TYPE",
    )
    grp_in.add_argument(
        "-t",
        "--target",
        help="Zero-based comma separated list of target individuals (VCF sample columns)",
        required=True,
        metavar="INDICES",
    )
    grp_in.add_argument(
        "-r",
        "--region",
        help='Genomic range: "seqid" or "seqid:start-end"',
        default=None,
        metavar="REGION",
    )
    grp_in.add_argument(
        "-a",
        "--af",
        help="Allele frequency cutoff for retaining sites",
        type=float,
        default=0.05,
        metavar="AF",
    )

    grp_log = sub.add_argument_group("Logging", "Logging verbosity and format")
    grp_log.add_argument(
        "-q",
        "--quiet",
        help="Suppress progress output",
        action="store_true",
        default=False,
    )
    grp_log.add_argument(
        "-L",
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR); default depends on --quiet",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
    )
    grp_log.add_argument(
        "-F",
        "--log-format",
        help="Logging format: text or json",
        choices=["text", "json"],
        default="text",
    )


def _add_map_argument(sub: argparse.ArgumentParser) -> None:
    sub.add_argument(
        "-g",
        "--gen",
        help=(
            "Genetic map (tab separated: seqid, ?, cM, position); without it a "
            "constant genetic distance of 0.001 is used"
        ),
        type=parser_resolve_path,
        default=None,
        metavar="MAP",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser.

    Returns:
        Configured ArgumentParser with one subcommand per statistic

    Example:
        >>> parser = create_parser()
        >>> args = parser.parse_args(["ihs", "-f", "in.vcf", "-y", "GT", "-t", "0,1,2"])
        >>> args.statistic, args.target, args.threads
        ('ihs', '0,1,2', 1)
    """
    parser = _ArgumentParser(
        prog="ehhscan",
        description=(
            "Haplotype-decay selection statistics from phased VCF data: "
            "iHS, hapLRT and raw EHH decay traces."
        ),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        epilog="Output rows go to stdout as tab separated values; diagnostics go to stderr.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=_build_version_string(),
        help="Show program version, commit hash, and Python version, then exit",
    )

    subparsers = parser.add_subparsers(dest="statistic", metavar="STATISTIC")
    subparsers.required = True

    ihs = subparsers.add_parser(
        "ihs",
        help="Integrated haplotype score",
        description=(
            "iHS: log ratio of integrated EHH for the alternate and reference allele. "
            "Columns: seqid, position, target allele frequency, iHH ref, iHH alt, "
            "ln(iHHalt/iHHref), ref integration failures, alt integration failures."
        ),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    _add_common_arguments(ihs)
    _add_map_argument(ihs)
    ihs.add_argument(
        "-x",
        "--threads",
        help="Number of worker threads (sites share one interpreter lock, so speedup is limited)",
        type=int,
        default=1,
        metavar="THREADS",
    )

    lrt = subparsers.add_parser(
        "hap-lrt",
        help="Likelihood ratio test on haplotype lengths",
        description=(
            "hapLRT: exponential likelihood ratio test on haplotype block lengths. "
            "Columns: seqid, position, mean target length, mean background length, "
            "p-value, sign (1 target longer, -1 background longer)."
        ),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    _add_common_arguments(lrt)
    lrt.add_argument(
        "-b",
        "--background",
        help="Zero-based comma separated list of background individuals",
        required=True,
        metavar="INDICES",
    )

    melt = subparsers.add_parser(
        "melt-ehh",
        help="Raw EHH decay around one position",
        description=(
            "meltEHH: EHH decay trace at one focal position. "
            "Columns: position, EHH, allele, direction (1 right, 0 left)."
        ),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    _add_common_arguments(melt)
    _add_map_argument(melt)
    melt.add_argument(
        "-p",
        "--pos",
        help="Variant position to melt",
        type=int,
        required=True,
        metavar="POSITION",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point.

    Parses and validates arguments, builds the immutable configuration and
    runs the scan. Any fatal condition exits with status 1.

    Example:
        >>> # ehhscan ihs -f phased.vcf.gz -y GT -t 0,1,2,3 -r chr1:1-500000 -x 4
        >>> # ehhscan hap-lrt -f phased.vcf -y GP -t 0,1,2 -b 3,4,5
        >>> # ehhscan melt-ehh -f phased.vcf -y GT -t 0,1,2,3 -r chr1 -p 10412
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    validate_cli_arguments(args, parser)

    config = ScanConfig(
        statistic=args.statistic,
        encoding=args.type,
        input_vcf=args.file,
        target=tuple(args.target),
        background=tuple(getattr(args, "background", None) or ()),
        region=args.region,
        af_cutoff=args.af,
        genetic_map=getattr(args, "gen", None),
        threads=getattr(args, "threads", 1),
        focal_position=getattr(args, "pos", None),
        verbose=not args.quiet,
        log_level=args.log_level,
        log_format=args.log_format,
    )

    try:
        app = ScanApp(config)
        status = app.run()
    except ScanError as e:
        logging.getLogger("ehhscan").debug("fatal error", exc_info=True)
        sys.exit(f"FATAL: {e}")
    except KeyboardInterrupt:
        sys.exit("Interrupted")
    sys.exit(status)


if __name__ == "__main__":
    main()
