"""Physical position to centimorgan lookup with linear interpolation."""

import logging
from pathlib import Path
from typing import List, Optional, Union

import numpy as np
from numpy.typing import NDArray

from .errors import GeneticMapError

__all__ = ["GeneticMap", "DEFAULT_DISTANCE"]

# Genetic distance applied per step when no map is loaded or a lookup misses.
DEFAULT_DISTANCE = 0.001


class GeneticMap:
    """Cumulative centimorgan values queried by integer physical position.

    Between two consecutive known points the value grows by a constant
    ``delta_cm / delta_bp`` per base pair, so a query at any integer position
    inside the loaded span returns what a per-base-pair table would hold.
    Positions outside the span are lookup misses.

    Example:
        >>> gm = GeneticMap(np.array([1000, 2000]), np.array([0.0, 1.0]))
        >>> gm.distance(1000, 1500)
        0.5
        >>> gm.distance(10, 1500) is None
        True
        >>> GeneticMap.absent().distance(1, 2)
        0.001
    """

    def __init__(
        self,
        positions: Optional[NDArray[np.int64]] = None,
        cm: Optional[NDArray[np.float64]] = None,
        seqid: Optional[str] = None,
    ):
        self.seqid = seqid
        if positions is None or cm is None:
            self._positions = None
            self._cm = None
        else:
            self._positions = np.asarray(positions, dtype=np.int64)
            self._cm = np.asarray(cm, dtype=float)

    @classmethod
    def absent(cls) -> "GeneticMap":
        return cls()

    @property
    def is_absent(self) -> bool:
        return self._positions is None

    @property
    def span(self) -> Optional[tuple]:
        if self.is_absent:
            return None
        return int(self._positions[0]), int(self._positions[-1])

    def __len__(self) -> int:
        if self.is_absent:
            return 0
        return int(self._positions[-1] - self._positions[0] + 1)

    def __contains__(self, position: int) -> bool:
        return self.position_cm(position) is not None

    def position_cm(self, position: int) -> Optional[float]:
        if self.is_absent:
            return None
        if position < self._positions[0] or position > self._positions[-1]:
            return None
        return float(np.interp(position, self._positions, self._cm))

    def distance(self, start: int, end: int) -> Optional[float]:
        """Genetic distance between two positions.

        Returns the constant ``DEFAULT_DISTANCE`` when no map is loaded and
        ``None`` when either position misses the loaded span.
        """
        if self.is_absent:
            return DEFAULT_DISTANCE
        a = self.position_cm(start)
        b = self.position_cm(end)
        if a is None or b is None:
            return None
        return abs(a - b)

    @classmethod
    def load(
        cls,
        path: Union[str, Path, None],
        seqid: str,
        start: int,
        end: int,
        logger: Optional[logging.Logger] = None,
    ) -> "GeneticMap":
        """Load the map rows for ``seqid`` covering ``[start, end]``.

        Rows are tab separated with the sequence id in column 0, the cM value
        in column 2 and the physical position in column 3. Rows of other
        sequences are skipped. Rows must be sorted by position.

        Args:
            path: Map file, or None for the constant-distance fallback
            seqid: Sequence whose rows are kept
            start: First physical position that will be queried
            end: Last physical position that will be queried
            logger: Optional logger for warnings

        Raises:
            GeneticMapError: If the file cannot be read, is unsorted, or
                yields no usable points for the span
        """
        if path is None:
            if logger:
                logger.warning(
                    f"No genetic map; a constant genetic distance is being used: {DEFAULT_DISTANCE}"
                )
            return cls.absent()

        positions: List[int] = []
        values: List[float] = []
        skipped_seqids = set()
        skipped_rows = 0

        try:
            with open(path) as fh:
                for line_number, line in enumerate(fh, start=1):
                    line = line.rstrip("\n")
                    if not line or line.startswith("#"):
                        continue
                    fields = line.split("\t")
                    if fields[0] != seqid:
                        skipped_rows += 1
                        skipped_seqids.add(fields[0])
                        continue
                    try:
                        pos = int(fields[3])
                        cm = float(fields[2])
                    except (IndexError, ValueError):
                        raise GeneticMapError(
                            f"{path}: line {line_number}: expected seqid, ?, cM and position columns"
                        ) from None

                    if positions and pos < positions[-1]:
                        raise GeneticMapError(
                            f"{path}: line {line_number}: rows must be sorted by position"
                        )
                    if pos < start:
                        # only the last point before the span is needed
                        positions[:] = [pos]
                        values[:] = [cm]
                        continue
                    positions.append(pos)
                    values.append(cm)
                    if pos > end:
                        break
        except OSError as e:
            raise GeneticMapError(f"cannot read genetic map {path}: {e}") from e

        if skipped_rows and logger:
            logger.warning(
                f"Skipped {skipped_rows} genetic map rows for other sequences "
                f"({', '.join(sorted(skipped_seqids))}); using {seqid}"
            )

        if len(positions) < 2:
            raise GeneticMapError(
                f"problem loading genetic map: fewer than two points for {seqid}"
            )

        gmap = cls(np.array(positions), np.array(values), seqid=seqid)
        if logger and logger.isEnabledFor(logging.DEBUG):
            lo, hi = gmap.span
            logger.debug(
                f"Genetic map for {seqid}: {len(positions)} points covering {lo}-{hi}"
            )
        return gmap
