from __future__ import annotations

from dataclasses import dataclass
import logging
import queue
import threading
from typing import Iterable, Union

from feedplot.parser import LineKind
from feedplot.session import PlotSession

LOGGER = logging.getLogger(__name__)

TRIGGER_THREAD_NAME = "feedplot-trigger"


@dataclass(frozen=True)
class DataRecord:
    line: str
    # Input line number; the consumer thread can't observe the reader's position.
    position: int


@dataclass(frozen=True)
class ClearSignal:
    pass


@dataclass(frozen=True)
class RedrawSignal:
    pass


@dataclass(frozen=True)
class IngestionDone:
    pass


@dataclass(frozen=True)
class TriggersDone:
    pass


QueueRecord = Union[DataRecord, ClearSignal, RedrawSignal, IngestionDone, TriggersDone]


@dataclass(frozen=True)
class StreamResult:
    records: int
    redraws: int
    skipped_redraws: int


def run_batch(session: PlotSession, lines: Iterable[str]) -> None:
    """Read everything, then draw once."""
    for position, line in enumerate(lines, start=1):
        if session.parser.classify(line) is not LineKind.DATA:
            continue
        session.apply_line(line, position)
    session.redraw(force=True)


class StreamingCoordinator:
    """Ingestion and redraw-trigger threads feeding one FIFO consumed on the caller thread."""

    def __init__(self, session: PlotSession, lines: Iterable[str], *, period: float | None = None) -> None:
        self._session = session
        self._lines = lines
        self._period = session.config.stream_period if period is None else float(period)
        if self._period < 0:
            raise ValueError("period must be >= 0")
        self._queue: queue.Queue[QueueRecord] = queue.Queue()
        self._finished = threading.Event()
        self._threads: list[threading.Thread] = []
        self._last_error: Exception | None = None

    @property
    def has_trigger(self) -> bool:
        return self._period > 0

    @property
    def last_error(self) -> Exception | None:
        return self._last_error

    def run(self) -> StreamResult:
        self.start()
        try:
            result = self.consume()
        except BaseException:
            # The reader may be parked on open input; only the trigger thread is waited for.
            self._finished.set()
            self._join_trigger(timeout=1.0)
            raise
        self._finished.set()
        self.join(timeout=1.0)
        if self._last_error is not None:
            raise self._last_error
        return result

    def start(self) -> None:
        if self._threads:
            return
        ingest = threading.Thread(target=self._ingest, name="feedplot-ingest", daemon=True)
        self._threads.append(ingest)
        if self.has_trigger:
            trigger = threading.Thread(target=self._trigger, name=TRIGGER_THREAD_NAME, daemon=True)
            self._threads.append(trigger)
        for thread in self._threads:
            thread.start()

    def join(self, timeout: float | None = None) -> None:
        for thread in self._threads:
            thread.join(timeout=timeout)

    def _join_trigger(self, timeout: float | None = None) -> None:
        for thread in self._threads:
            if thread.name == TRIGGER_THREAD_NAME:
                thread.join(timeout=timeout)

    def put(self, record: QueueRecord) -> None:
        self._queue.put(record)

    def consume(self) -> StreamResult:
        """Drain the queue until every producer has signed off, then force a final redraw."""
        session = self._session
        ingestion_done = False
        triggers_done = not self.has_trigger
        records = 0
        redraws = 0
        skipped = 0
        while not (ingestion_done and triggers_done):
            record = self._queue.get()
            if isinstance(record, DataRecord):
                records += 1
                session.apply_line(record.line, record.position)
            elif isinstance(record, RedrawSignal):
                if session.redraw() is None:
                    skipped += 1
                else:
                    redraws += 1
            elif isinstance(record, ClearSignal):
                session.clear()
            elif isinstance(record, IngestionDone):
                ingestion_done = True
            elif isinstance(record, TriggersDone):
                triggers_done = True
        if session.redraw(force=True):
            redraws += 1
        return StreamResult(records=records, redraws=redraws, skipped_redraws=skipped)

    def _ingest(self) -> None:
        parser = self._session.parser
        try:
            for position, line in enumerate(self._lines, start=1):
                kind = parser.classify(line)
                if kind is LineKind.DATA:
                    self._queue.put(DataRecord(line=line, position=position))
                elif kind is LineKind.REDRAW:
                    self._queue.put(RedrawSignal())
                elif kind is LineKind.CLEAR:
                    self._queue.put(ClearSignal())
                elif kind is LineKind.EXIT:
                    LOGGER.debug("exit requested on line %d", position)
                    break
        except Exception as exc:  # noqa: BLE001
            self._last_error = exc
            LOGGER.exception("input ingestion failed: %s", exc)
        finally:
            self._finished.set()
            self._queue.put(IngestionDone())

    def _trigger(self) -> None:
        while not self._finished.wait(timeout=self._period):
            self._queue.put(RedrawSignal())
        self._queue.put(TriggersDone())
