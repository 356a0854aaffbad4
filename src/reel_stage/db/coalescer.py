"""Single-consumer write queue feeding the atomic file writer.

Every mutation enqueues a complete, already-serialized snapshot. One daemon
thread drains the queue strictly in FIFO order, writing each snapshot before
taking the next, so the file on disk always converges on the latest state
while callers never block on disk I/O.
"""

from __future__ import annotations

import logging
import queue
import threading

from .writer import AtomicFileWriter, StorageError

logger = logging.getLogger(__name__)

_STOP = object()


class WriteCoalescer:
    """Serializes snapshot writes from any number of callers onto one flush thread."""

    def __init__(self, writer: AtomicFileWriter, name: str = "reel-stage-flush") -> None:
        """Initialize the queue.

        Args:
            writer: Writer that makes each snapshot durable.
            name: Name given to the background flush thread.
        """
        self.writer = writer
        self.name = name
        self.writes = 0
        self._queue: queue.Queue[object] = queue.Queue()
        self._thread: threading.Thread | None = None
        self._lifecycle = threading.Lock()
        self._fault: StorageError | None = None

    @property
    def is_running(self) -> bool:
        """Check if the flush thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def pending(self) -> int:
        """Number of snapshots queued but not yet written."""
        return self._queue.qsize()

    def start(self) -> None:
        """Start the flush thread if it is not already running."""
        with self._lifecycle:
            self._ensure_thread()

    def _ensure_thread(self) -> None:
        # Caller holds _lifecycle.
        if self.is_running:
            return
        self._thread = threading.Thread(target=self._run, daemon=True, name=self.name)
        self._thread.start()
        logger.debug("Flush thread %s started for %s", self.name, self.writer.path)

    def enqueue(self, payload: str) -> None:
        """Queue a snapshot for writing.

        Raises:
            StorageError: If an earlier write failed; durability is already lost.
        """
        self._raise_fault()
        # Serialized with stop() so nothing lands behind the stop sentinel.
        with self._lifecycle:
            self._ensure_thread()
            self._queue.put(payload)

    def wait(self) -> None:
        """Block until every queued snapshot has been handled.

        Raises:
            StorageError: If any write failed.
        """
        if self.is_running:
            self._queue.join()
        self._raise_fault()

    def stop(self, timeout: float | None = None) -> None:
        """Drain the queue, then stop the flush thread.

        Args:
            timeout: Seconds to wait for the thread to finish

        Raises:
            StorageError: If any write failed.
        """
        with self._lifecycle:
            thread = self._thread
            if thread is not None and thread.is_alive():
                self._queue.put(_STOP)
                thread.join(timeout=timeout)
                if thread.is_alive():
                    logger.error(
                        "Flush thread %s did not finish within %ss; %d snapshot(s) pending",
                        self.name,
                        timeout,
                        self.pending,
                    )
                else:
                    self._thread = None
        logger.debug("Flush thread %s stopped after %d write(s)", self.name, self.writes)
        self._raise_fault()

    def _raise_fault(self) -> None:
        if self._fault is not None:
            raise self._fault

    def _run(self) -> None:
        while True:
            payload = self._queue.get()
            try:
                if payload is _STOP:
                    return
                # After a fault, later snapshots are discarded; the fault is surfaced to callers.
                if self._fault is None:
                    self.writer.write(payload)  # type: ignore[arg-type]
                    self.writes += 1
            except StorageError as e:
                self._fault = e
                logger.critical("Snapshot flush failed, persistence halted: %s", e)
            finally:
                self._queue.task_done()
