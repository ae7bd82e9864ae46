"""Input/Output modules for variant streaming and result rows."""

from .variant_stream import Region, VariantRecord, VariantStream, parse_region
from .result_writer import ResultWriter, format_value

__all__ = [
    "Region",
    "VariantRecord",
    "VariantStream",
    "parse_region",
    "ResultWriter",
    "format_value",
]
