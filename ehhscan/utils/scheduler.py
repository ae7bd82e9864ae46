"""Per-site work distribution over a thread pool."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Optional, TypeVar

from tqdm import tqdm

__all__ = ["SiteScheduler", "chunk_sites"]

T = TypeVar("T")

# Progress bars are only shown for sequences with more sites than this.
PROGRESS_MIN_SITES = 1000


def chunk_sites(n_sites: int, chunk_size: int) -> List[range]:
    """Split ``range(n_sites)`` into consecutive chunks of at most ``chunk_size``.

    Example:
        >>> chunk_sites(5, 2)
        [range(0, 2), range(2, 4), range(4, 5)]
    """
    if chunk_size <= 0:
        chunk_size = 1
    return [range(i, min(i + chunk_size, n_sites)) for i in range(0, n_sites, chunk_size)]


class SiteScheduler:
    """Runs independent per-site computations and serializes their output.

    With one thread sites run inline in order. With more, small chunks are
    handed to a pool as workers free up, and results are emitted in
    completion order. Every ``emit`` call runs under one lock. The first
    exception raised by a worker sets a shared stop flag: chunks not yet
    started are cancelled, running chunks stop before their next site, and
    nothing more is emitted. The exception is then re-raised to the caller.

    Per-site work is pure Python, so the GIL serializes it; more threads
    overlap little and should not be expected to scale throughput.
    """

    def __init__(
        self,
        threads: int = 1,
        chunk_size: int = 20,
        show_progress: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        self.threads = max(1, threads)
        self.chunk_size = chunk_size
        self.show_progress = show_progress
        self.logger = logger or logging.getLogger(__name__)
        self._emit_lock = threading.Lock()

    def _progress(self, n_sites: int, desc: str) -> tqdm:
        return tqdm(
            total=n_sites,
            desc=desc,
            unit="site",
            leave=False,
            disable=not self.show_progress or n_sites <= PROGRESS_MIN_SITES,
        )

    def run(
        self,
        n_sites: int,
        work: Callable[[int], Optional[T]],
        emit: Callable[[T], None],
        desc: str = "Scanning sites",
    ) -> int:
        """Apply ``work`` to every site index and pass non-None results to ``emit``.

        Args:
            n_sites: Number of site indices to process
            work: Computes the result for one site, or None to skip it
            emit: Consumes one result; calls are mutually exclusive
            desc: Progress bar label

        Returns:
            Number of results emitted
        """
        emitted = 0
        stop = threading.Event()

        def process(chunk: range) -> int:
            nonlocal emitted
            try:
                for site in chunk:
                    if stop.is_set():
                        break
                    result = work(site)
                    if result is None:
                        continue
                    with self._emit_lock:
                        if stop.is_set():
                            break
                        emit(result)
                        emitted += 1
            except BaseException:
                stop.set()
                raise
            return len(chunk)

        chunks = chunk_sites(n_sites, self.chunk_size)
        with self._progress(n_sites, desc) as progress:
            if self.threads == 1:
                for chunk in chunks:
                    progress.update(process(chunk))
                return emitted

            if self.logger.isEnabledFor(logging.DEBUG):
                self.logger.debug(
                    f"Scheduling {n_sites} sites in {len(chunks)} chunks on {self.threads} threads"
                )
            with ThreadPoolExecutor(max_workers=self.threads) as pool:
                futures = [pool.submit(process, chunk) for chunk in chunks]
                try:
                    for future in as_completed(futures):
                        progress.update(future.result())
                except BaseException:
                    stop.set()
                    for future in futures:
                        future.cancel()
                    raise
        return emitted
