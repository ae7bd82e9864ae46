"""Input validation utilities."""

import argparse
import sys
from typing import List, Optional

from ..core.errors import ConfigurationError
from ..core.genotype_decoder import SUPPORTED_ENCODINGS

__all__ = ["parse_indices", "validate_cli_arguments", "MIN_GROUP_SIZE"]

MIN_GROUP_SIZE = 2


def parse_indices(text: str, option: str) -> List[int]:
    """Parse a comma-separated list of zero-based sample indices.

    Duplicates are dropped; order is ascending.

    Example:
        >>> parse_indices("3,0,1,1", "--target")
        [0, 1, 3]
    """
    indices = set()
    for token in text.split(","):
        token = token.strip()
        if not token:
            continue
        if not token.isdigit():
            raise ConfigurationError(
                f"{option}: '{token}' is not a zero-based sample index"
            )
        indices.add(int(token))
    return sorted(indices)


def _fail(parser: Optional[argparse.ArgumentParser], message: str) -> None:
    if parser is not None:
        parser.print_usage(sys.stderr)
    sys.exit(f"FATAL: {message}")


def validate_cli_arguments(
    args: argparse.Namespace, parser: Optional[argparse.ArgumentParser] = None
) -> None:
    """Validate CLI argument values and normalize index lists in place.

    Every violation prints the usage line and exits with status 1.

    Args:
        args: Parsed command line arguments
        parser: Parser used to print the usage line
    """
    if args.type not in SUPPORTED_ENCODINGS:
        _fail(
            parser,
            f"genotype encoding '{args.type}' is not supported; use {', '.join(SUPPORTED_ENCODINGS)}",
        )

    try:
        args.target = parse_indices(args.target, "--target")
        background = getattr(args, "background", None)
        if background is not None:
            args.background = parse_indices(background, "--background")
    except ConfigurationError as e:
        _fail(parser, str(e))

    if len(args.target) < MIN_GROUP_SIZE:
        _fail(parser, f"target requires at least {MIN_GROUP_SIZE} individuals")
    if getattr(args, "background", None) is not None and len(args.background) < MIN_GROUP_SIZE:
        _fail(parser, f"background requires at least {MIN_GROUP_SIZE} individuals")

    if not (0.0 <= args.af < 1.0):
        _fail(parser, "-a/--af must be in [0, 1)")

    if getattr(args, "threads", 1) < 1:
        _fail(parser, "-x/--threads must be >= 1")

    gen = getattr(args, "gen", None)
    if gen is not None and not gen.exists():
        _fail(parser, f"genetic map {gen} does not exist")

    if not args.file.exists():
        _fail(parser, f"input file {args.file} does not exist")
