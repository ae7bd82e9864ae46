"""Tab-separated result output shared by concurrent workers."""

import sys
import threading
from typing import IO, Iterable, Optional

__all__ = ["ResultWriter", "format_value"]


def format_value(value: object) -> str:
    """Render one output column; floats use six significant digits.

    Example:
        >>> format_value(0.123456789)
        '0.123457'
        >>> format_value(1.0)
        '1'
        >>> format_value(-1)
        '-1'
    """
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


class ResultWriter:
    """Writes whole rows under a lock so concurrent rows never interleave.

    Rows are written in the order callers acquire the lock; no ordering by
    site is implied when several workers write.
    """

    def __init__(self, stream: Optional[IO[str]] = None):
        self.stream = stream if stream is not None else sys.stdout
        self.lock = threading.Lock()
        self.rows_written = 0

    def write_row(self, fields: Iterable[object]) -> None:
        line = "\t".join(format_value(f) for f in fields) + "\n"
        with self.lock:
            self.stream.write(line)
            self.rows_written += 1

    def flush(self) -> None:
        with self.lock:
            self.stream.flush()
