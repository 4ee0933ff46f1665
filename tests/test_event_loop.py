import io
from pathlib import Path

import pytest

from relaywatch.core.errors import StoreUnavailable, WatchSourceError
from relaywatch.schemas.correlation import CorrelationRow
from relaywatch.schemas.events import ClosedEvent, DataEvent, ErrorEvent
from relaywatch.services.emitter import Emitter
from relaywatch.services.event_loop import EventLoop, LoopOutcome, LoopState
from relaywatch.services.name_filter import NameFilter


class ScriptedResolver:
    def __init__(self, *results) -> None:
        self.results = list(results)
        self.calls = 0

    def fetch_latest(self):
        self.calls += 1
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


class ListSource:
    def __init__(self, events) -> None:
        self.events = list(events)

    def next_event(self, timeout=None):
        return self.events.pop(0) if self.events else None


def row(row_id: str) -> CorrelationRow:
    return CorrelationRow(id=row_id, source="srcA", action_at=1690000000, created_at_ns=1_714_564_800_123_456_789)


def data(name: str = "relay-bin.001") -> DataEvent:
    return DataEvent(path=Path("/var/lib/mysql") / name, kind="modified", observed_at_ns=1_714_564_805_000_000_000)


def make_loop(resolver, pattern: str = "") -> tuple[EventLoop, io.StringIO]:
    stream = io.StringIO()
    return EventLoop(resolver, NameFilter(pattern), Emitter(stream), "hostB"), stream


def test_new_row_is_emitted_then_deduplicated():
    loop, stream = make_loop(ScriptedResolver(row("r1")))

    assert loop.handle(data()) is LoopOutcome.EMITTED
    assert loop.handle(data()) is LoopOutcome.DUPLICATE
    assert loop.state is LoopState.IDLE
    assert loop.last_emitted_id == "r1"
    assert stream.getvalue().count("\n") == 1
    assert ",Receive data,r1,srcA,hostB,1690000000," in stream.getvalue()


def test_empty_store_returns_to_idle():
    loop, stream = make_loop(ScriptedResolver(None))

    assert loop.handle(data()) is LoopOutcome.NO_ROW
    assert loop.state is LoopState.IDLE
    assert stream.getvalue() == ""


def test_filtered_event_skips_resolver():
    resolver = ScriptedResolver(row("r1"))
    loop, stream = make_loop(resolver, pattern="bin.00")

    assert loop.handle(data("data.txt")) is LoopOutcome.FILTERED
    assert resolver.calls == 0
    assert loop.handle(data("relay-bin.001")) is LoopOutcome.EMITTED
    assert resolver.calls == 1


def test_each_distinct_row_reported_once_in_order():
    resolver = ScriptedResolver(row("a"), row("a"), row("b"), row("b"), row("b"), row("c"))
    loop, stream = make_loop(resolver)

    for _ in range(6):
        loop.handle(data())

    ids = [line.split(",")[2] for line in stream.getvalue().splitlines()]
    assert ids == ["a", "b", "c"]


def test_store_failure_closes_loop_without_output():
    loop, stream = make_loop(ScriptedResolver(StoreUnavailable("down")))

    assert loop.handle(data()) is LoopOutcome.FAILED
    assert loop.state is LoopState.CLOSED
    assert isinstance(loop.error, StoreUnavailable)
    assert stream.getvalue() == ""
    with pytest.raises(RuntimeError):
        loop.handle(data())


def test_run_stops_on_closed_event():
    source = ListSource([data(), data(), ClosedEvent("test"), data()])
    loop, stream = make_loop(ScriptedResolver(row("r1")))

    result = loop.run(source)

    assert result.ok
    assert result.outcome is LoopOutcome.CLOSED
    assert result.emitted == 1
    assert len(source.events) == 1


def test_run_reports_watch_error():
    error = WatchSourceError("watched path removed: /var/lib/mysql")
    loop, _ = make_loop(ScriptedResolver(row("r1")))

    result = loop.run(ListSource([data(), ErrorEvent(error)]))

    assert not result.ok
    assert result.outcome is LoopOutcome.FAILED
    assert result.error is error
    assert result.emitted == 1


def test_run_reports_store_failure():
    loop, _ = make_loop(ScriptedResolver(row("r1"), StoreUnavailable("auth failed")))

    result = loop.run(ListSource([data(), data(), data()]))

    assert isinstance(result.error, StoreUnavailable)
    assert result.emitted == 1
