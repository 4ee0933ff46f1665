from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union

from relaywatch.core.errors import RelayWatchError


@dataclass(frozen=True)
class WatchTarget:
    path: Path
    recursive: bool = False


@dataclass(frozen=True)
class DataEvent:
    path: Path
    kind: str
    observed_at_ns: int

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True)
class ErrorEvent:
    error: RelayWatchError


@dataclass(frozen=True)
class ClosedEvent:
    reason: str = "closed"


WatchEvent = Union[DataEvent, ErrorEvent, ClosedEvent]
