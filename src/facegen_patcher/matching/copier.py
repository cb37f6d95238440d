"""Batched, ordered file copies into the output tree."""

from __future__ import annotations

import logging
import shutil
import threading
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000


@dataclass(frozen=True)
class CopyOperation:
    """Copy one source file to one destination path."""

    source: Path
    destination: Path


class BatchedCopyExecutor:
    """Queues copy operations and writes them in batches.

    A flush first creates every distinct destination directory in the batch,
    then copies files in queue order, overwriting existing files. Enqueueing
    flushes automatically once ``threshold`` operations are pending; callers
    must still call ``flush_all`` at the end of a run.

    Usage:
        executor = BatchedCopyExecutor(threshold=1000)
        executor.enqueue(CopyOperation(src, dst))
        ...
        executor.flush_all()
    """

    def __init__(self, threshold: int = DEFAULT_BATCH_SIZE, *, dry_run: bool = False) -> None:
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        self.threshold = threshold
        self.dry_run = dry_run
        self._queue: list[CopyOperation] = []
        self._lock = threading.Lock()

        self.flush_sizes: list[int] = []
        self.enqueued_count = 0
        self.copied_count = 0

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._queue)

    def enqueue(self, op: CopyOperation) -> None:
        with self._lock:
            self._queue.append(op)
            self.enqueued_count += 1
        self.flush_if_threshold()

    def flush_if_threshold(self) -> bool:
        """Flush when the queue has reached the threshold.

        Returns:
            True if a flush happened.
        """
        with self._lock:
            if len(self._queue) < self.threshold:
                return False
            batch = self._take()
        self._write(batch)
        return True

    def flush_all(self) -> None:
        with self._lock:
            batch = self._take()
        if batch:
            self._write(batch)

    def ensure_directory(self, path: Path) -> None:
        if self.dry_run:
            logger.debug("Would create directory %s", path)
            return
        path.mkdir(parents=True, exist_ok=True)

    # ─────────────────────────────────────────────────────────────────────────

    def _take(self) -> list[CopyOperation]:
        batch, self._queue = self._queue, []
        if batch:
            self.flush_sizes.append(len(batch))
        return batch

    def _write(self, batch: list[CopyOperation]) -> None:
        directories = list(dict.fromkeys(op.destination.parent for op in batch))

        if self.dry_run:
            logger.info("Dry run: would copy %d files into %d directories", len(batch), len(directories))
            for op in batch:
                logger.debug("Would copy %s -> %s", op.source, op.destination)
            return

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)

        for op in batch:
            try:
                shutil.copyfile(op.source, op.destination)
            except OSError:
                logger.exception("Failed to copy %s -> %s", op.source, op.destination)
                raise
            self.copied_count += 1

        logger.info("Copied %d files into %d directories", len(batch), len(directories))
