"""Background read-depth (RPKM) estimation.

Scores transcripts against an indexed alignment file with a
producer/consumer pipeline:

- one producer streams transcripts into a bounded queue,
- N consumers each open their own alignment handle, pop transcripts and
  count overlapping reads,
- the orchestrator waits for every worker before merging results.

A failure in any worker stops the pipeline and is raised as a
DepthEstimationError once all workers have finished.

Example:
    >>> from fusionforge.io.bam import AlignmentSource
    >>> estimator = ReadDepthEstimator(
    ...     source_factory=lambda: AlignmentSource("background.bam"),
    ...     threads=4,
    ...     cutoff=0.2,
    ... )
    >>> scored = estimator.estimate(transcripts)
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Iterable, Protocol

import attrs

from fusionforge.core.models import Transcript
from fusionforge.errors import ConfigurationError, DepthEstimationError, GeneModelError
from fusionforge.utils.logging import ProgressLogger

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 1000
DEFAULT_POLL_TIMEOUT = 0.1


class AlignmentCounter(Protocol):
    """What the estimator needs from an alignment handle."""

    def total_mapped_reads(self) -> int: ...

    def count_transcript(self, transcript: Transcript) -> int: ...

    def close(self) -> None: ...


def rpkm(count: int, total_mapped: int, exon_bases: int) -> float:
    """Reads per kilobase of exon per million mapped reads.

    Args:
        count: Reads overlapping the transcript's exons.
        total_mapped: Total mapped reads in the library.
        exon_bases: Spliced transcript length.

    Returns:
        1e9 * count / (total_mapped * exon_bases), or 0.0 when either
        denominator term is zero.
    """
    if total_mapped <= 0 or exon_bases <= 0:
        return 0.0
    return 1e9 * count / (total_mapped * exon_bases)


@attrs.define(slots=True)
class WorkerResult:
    """Outcome of one pipeline worker."""

    name: str
    scored: list[Transcript] = attrs.Factory(list)
    processed: int = 0


@attrs.define
class ReadDepthEstimator:
    """Score transcripts by background read depth.

    Attributes:
        source_factory: Opens a fresh alignment handle; called once up
            front for the mapped-read total and once per consumer.
        threads: Total threads; one is the producer and the rest (at
            least one) are consumers.
        cutoff: Transcripts scoring at or below this RPKM are dropped.
        queue_size: Capacity of the transcript queue.
        poll_timeout: Seconds a producer or consumer waits per queue
            operation before re-checking for shutdown.
    """

    source_factory: Callable[[], AlignmentCounter]
    threads: int = 1
    cutoff: float = 0.0
    queue_size: int = DEFAULT_QUEUE_SIZE
    poll_timeout: float = DEFAULT_POLL_TIMEOUT

    def __attrs_post_init__(self) -> None:
        if self.threads < 1:
            raise ConfigurationError(f"threads must be >= 1, got {self.threads}")
        if self.cutoff < 0:
            raise ConfigurationError(f"RPKM cutoff must be >= 0, got {self.cutoff}")
        if self.queue_size < 1:
            raise ConfigurationError(f"queue_size must be >= 1, got {self.queue_size}")

    @property
    def n_consumers(self) -> int:
        return max(1, self.threads - 1)

    def total_mapped_reads(self) -> int:
        """Read the mapped-read total from the alignment index.

        Raises:
            DepthEstimationError: If the alignment has no mapped reads.
        """
        source = self.source_factory()
        try:
            total = source.total_mapped_reads()
        finally:
            source.close()
        if total <= 0:
            raise DepthEstimationError("Alignment file reports no mapped reads")
        return total

    def estimate(self, transcripts: Iterable[Transcript]) -> list[Transcript]:
        """Score transcripts and keep those above the cutoff.

        Args:
            transcripts: Transcript stream; consumed by the producer only.

        Returns:
            Copies of the retained transcripts with depth_score set. No
            particular order is guaranteed.

        Raises:
            DepthEstimationError: If the alignment is empty or any worker
                failed.
            GeneModelError: If the transcript stream hit a malformed
                record; other worker failures are chained as its cause.
        """
        total_mapped = self.total_mapped_reads()
        logger.info(
            f"Estimating read depth with {self.n_consumers} consumer(s) "
            f"over {total_mapped:,} mapped reads"
        )

        work: queue.Queue[Transcript] = queue.Queue(maxsize=self.queue_size)
        stop = threading.Event()
        producer_done = threading.Event()
        progress = ProgressLogger(logger, interval=1000, description="Scored")

        def produce() -> WorkerResult:
            result = WorkerResult(name="producer")
            try:
                for transcript in transcripts:
                    while not stop.is_set():
                        try:
                            work.put(transcript, timeout=self.poll_timeout)
                            break
                        except queue.Full:
                            continue
                    if stop.is_set():
                        break
                    result.processed += 1
            finally:
                producer_done.set()
            return result

        def consume(worker_id: int) -> WorkerResult:
            result = WorkerResult(name=f"consumer-{worker_id}")
            source = self.source_factory()
            try:
                while not stop.is_set():
                    try:
                        transcript = work.get(timeout=self.poll_timeout)
                    except queue.Empty:
                        if producer_done.is_set() and work.empty():
                            break
                        continue
                    count = source.count_transcript(transcript)
                    score = rpkm(count, total_mapped, transcript.exon_bases)
                    result.processed += 1
                    progress.update()
                    if score > self.cutoff:
                        result.scored.append(transcript.with_depth_score(score))
            finally:
                source.close()
            return result

        failures: list[str] = []
        model_error: GeneModelError | None = None
        results: list[WorkerResult] = []
        with ThreadPoolExecutor(max_workers=self.n_consumers + 1) as executor:
            futures = {executor.submit(produce): "producer"}
            for worker_id in range(self.n_consumers):
                futures[executor.submit(consume, worker_id)] = f"consumer-{worker_id}"

            for future in as_completed(futures):
                name = futures[future]
                try:
                    results.append(future.result())
                except Exception as e:
                    logger.error(f"Read-depth worker {name} failed: {e}")
                    stop.set()
                    if isinstance(e, GeneModelError):
                        model_error = e
                    else:
                        failures.append(f"{name}: {e}")

        if model_error is not None:
            # gene model errors surface unchanged
            if failures:
                raise model_error from DepthEstimationError(
                    f"{len(failures)} read-depth worker(s) failed", failures=failures
                )
            raise model_error
        if failures:
            raise DepthEstimationError(
                f"{len(failures)} read-depth worker(s) failed", failures=failures
            )

        scored = [t for r in results for t in r.scored]
        processed = sum(r.processed for r in results if r.name != "producer")
        progress.finish()
        logger.info(
            f"Retained {len(scored)} of {processed} transcripts "
            f"above RPKM {self.cutoff}"
        )
        return scored
