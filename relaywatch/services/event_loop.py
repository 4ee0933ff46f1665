from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from relaywatch.core.errors import RelayWatchError, StoreUnavailable
from relaywatch.core.logging import logger
from relaywatch.schemas.correlation import CorrelationRow
from relaywatch.schemas.events import ClosedEvent, DataEvent, ErrorEvent, WatchEvent
from relaywatch.services.dedup import DedupGate
from relaywatch.services.emitter import Emitter
from relaywatch.services.name_filter import NameFilter


class LoopState(str, Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    DECIDING = "deciding"
    EMITTING = "emitting"
    CLOSED = "closed"


class LoopOutcome(str, Enum):
    FILTERED = "filtered"
    NO_ROW = "no_row"
    DUPLICATE = "duplicate"
    EMITTED = "emitted"
    FAILED = "failed"
    CLOSED = "closed"


class Resolver(Protocol):
    def fetch_latest(self) -> CorrelationRow | None: ...


class EventSource(Protocol):
    def next_event(self, timeout: float | None = None) -> WatchEvent | None: ...


@dataclass(frozen=True)
class LoopExit:
    outcome: LoopOutcome
    error: RelayWatchError | None = None
    emitted: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


class EventLoop:
    """Consumes watch events one at a time and reports each new latest row once.

    The loop never terminates the process. A store or watch failure moves it to
    ``CLOSED`` and is handed back to the caller through ``LoopExit``.
    """

    def __init__(
        self,
        resolver: Resolver,
        name_filter: NameFilter,
        emitter: Emitter,
        target_label: str,
    ) -> None:
        self.resolver = resolver
        self.name_filter = name_filter
        self.emitter = emitter
        self.target_label = target_label
        self.dedup = DedupGate()
        self.state = LoopState.IDLE
        self.error: RelayWatchError | None = None
        self.emitted = 0

    @property
    def last_emitted_id(self) -> str | None:
        return self.dedup.last_id

    def handle(self, event: WatchEvent) -> LoopOutcome:
        if self.state is LoopState.CLOSED:
            raise RuntimeError("event loop is closed")

        if isinstance(event, ClosedEvent):
            logger.info("watch source closed: %s", event.reason)
            self.state = LoopState.CLOSED
            return LoopOutcome.CLOSED

        if isinstance(event, ErrorEvent):
            return self._fail(event.error)

        if isinstance(event, DataEvent):
            return self._handle_data(event)

        raise TypeError(f"unsupported watch event: {event!r}")

    def _handle_data(self, event: DataEvent) -> LoopOutcome:
        if not self.name_filter.matches(event.name):
            logger.debug("skip %s: name does not match %r", event.path, self.name_filter.pattern)
            return LoopOutcome.FILTERED

        self.state = LoopState.RESOLVING
        try:
            row = self.resolver.fetch_latest()
        except StoreUnavailable as exc:
            return self._fail(exc)

        if row is None:
            logger.debug("no correlation row yet for %s", event.path)
            self.state = LoopState.IDLE
            return LoopOutcome.NO_ROW

        self.state = LoopState.DECIDING
        if not self.dedup.accept(row.id):
            logger.debug("row %s already reported", row.id)
            self.state = LoopState.IDLE
            return LoopOutcome.DUPLICATE

        self.state = LoopState.EMITTING
        self.emitter.write(row, self.target_label, event.observed_at_ns)
        self.emitted += 1
        self.state = LoopState.IDLE
        return LoopOutcome.EMITTED

    def _fail(self, error: RelayWatchError) -> LoopOutcome:
        self.error = error
        self.state = LoopState.CLOSED
        return LoopOutcome.FAILED

    def run(self, source: EventSource) -> LoopExit:
        outcome = LoopOutcome.CLOSED
        while self.state is not LoopState.CLOSED:
            event = source.next_event()
            if event is None:
                continue
            outcome = self.handle(event)
        return LoopExit(outcome=outcome, error=self.error, emitted=self.emitted)
