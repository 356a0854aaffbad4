# tests/test_coalescer.py
from __future__ import annotations

import threading
from pathlib import Path

import pytest

from reel_stage.db.coalescer import WriteCoalescer
from reel_stage.db.writer import AtomicFileWriter, StorageError


class RecordingWriter(AtomicFileWriter):
    """Writer that records payloads instead of touching disk."""

    def __init__(self, path: Path, gate: threading.Event | None = None) -> None:
        super().__init__(path)
        self.payloads: list[str] = []
        self.gate = gate

    def write(self, payload: str) -> None:
        if self.gate is not None:
            self.gate.wait(timeout=5)
        self.payloads.append(payload)


class FailingWriter(AtomicFileWriter):
    def __init__(self, path: Path) -> None:
        super().__init__(path)
        self.calls = 0

    def write(self, payload: str) -> None:
        self.calls += 1
        raise StorageError("disk gone")


def test_writes_every_snapshot_in_fifo_order(tmp_path: Path) -> None:
    """Snapshots queued while the flush thread is busy are all written, in order."""
    gate = threading.Event()
    writer = RecordingWriter(tmp_path / "app.json", gate)
    coalescer = WriteCoalescer(writer)

    for i in range(20):
        coalescer.enqueue(f"snapshot-{i}")
    gate.set()
    coalescer.wait()

    assert writer.payloads == [f"snapshot-{i}" for i in range(20)]
    assert coalescer.writes == 20
    assert coalescer.pending == 0
    coalescer.stop(timeout=5)


def test_concurrent_enqueue_writes_everything(tmp_path: Path) -> None:
    writer = RecordingWriter(tmp_path / "app.json")
    coalescer = WriteCoalescer(writer)

    def produce(prefix: str) -> None:
        for i in range(50):
            coalescer.enqueue(f"{prefix}-{i}")

    threads = [threading.Thread(target=produce, args=(name,)) for name in "abcd"]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    coalescer.stop(timeout=5)

    assert len(writer.payloads) == 200
    for name in "abcd":
        own = [p for p in writer.payloads if p.startswith(f"{name}-")]
        assert own == [f"{name}-{i}" for i in range(50)]


def test_thread_starts_lazily_and_stops(tmp_path: Path) -> None:
    coalescer = WriteCoalescer(RecordingWriter(tmp_path / "app.json"))
    assert not coalescer.is_running

    coalescer.enqueue("first")
    assert coalescer.is_running

    coalescer.stop(timeout=5)
    assert not coalescer.is_running


def test_stop_without_start_is_a_noop(tmp_path: Path) -> None:
    coalescer = WriteCoalescer(RecordingWriter(tmp_path / "app.json"))
    coalescer.stop(timeout=1)
    coalescer.wait()
    assert coalescer.writes == 0


def test_fault_is_surfaced_and_halts_persistence(tmp_path: Path) -> None:
    """After a failed write, later snapshots are discarded and callers see the fault."""
    writer = FailingWriter(tmp_path / "app.json")
    coalescer = WriteCoalescer(writer)

    coalescer.enqueue("one")
    with pytest.raises(StorageError):
        coalescer.wait()
    with pytest.raises(StorageError):
        coalescer.enqueue("two")
    with pytest.raises(StorageError):
        coalescer.stop(timeout=5)

    assert writer.calls == 1


def test_enqueue_racing_stop_is_never_stranded(tmp_path: Path) -> None:
    """Snapshots enqueued while the thread is stopping are written by a later stop."""
    writer = RecordingWriter(tmp_path / "app.json")
    coalescer = WriteCoalescer(writer)
    go = threading.Event()

    def produce(prefix: str) -> None:
        go.wait(timeout=5)
        for i in range(200):
            coalescer.enqueue(f"{prefix}-{i}")

    threads = [threading.Thread(target=produce, args=(name,)) for name in "ab"]
    for t in threads:
        t.start()
    coalescer.enqueue("first")
    go.set()
    for _ in range(5):
        coalescer.stop(timeout=5)
    for t in threads:
        t.join()
    coalescer.stop(timeout=5)

    assert coalescer.pending == 0
    assert len(writer.payloads) == 401


def test_enqueue_after_stop_restarts_thread(tmp_path: Path) -> None:
    writer = RecordingWriter(tmp_path / "app.json")
    coalescer = WriteCoalescer(writer)
    coalescer.enqueue("one")
    coalescer.stop(timeout=5)

    coalescer.enqueue("two")
    coalescer.wait()

    assert writer.payloads == ["one", "two"]
    coalescer.stop(timeout=5)
