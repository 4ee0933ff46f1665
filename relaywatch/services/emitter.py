from __future__ import annotations

import sys
import time
from typing import TextIO

from relaywatch.schemas.correlation import NANOS_PER_SECOND, CorrelationRow, from_epoch_ns

EVENT_TAG = "Receive data"


def format_timestamp(epoch_ns: int) -> str:
    """UTC ``YYYY-MM-DD HH:MM:SS.nnnnnnnnn``."""
    seconds = from_epoch_ns(epoch_ns - epoch_ns % NANOS_PER_SECOND)
    return f"{seconds:%Y-%m-%d %H:%M:%S}.{epoch_ns % NANOS_PER_SECOND:09d}"


class Emitter:
    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream

    def format_line(self, row: CorrelationRow, target_label: str, observed_at_ns: int) -> str:
        # fields are not escaped, a comma inside id or source shifts the columns
        return ",".join(
            [
                format_timestamp(observed_at_ns),
                EVENT_TAG,
                row.id,
                row.source,
                target_label,
                str(row.action_at),
                format_timestamp(row.created_at_ns),
            ]
        )

    def write(self, row: CorrelationRow, target_label: str, observed_at_ns: int | None = None) -> str:
        if observed_at_ns is None:
            observed_at_ns = time.time_ns()
        line = self.format_line(row, target_label, observed_at_ns)
        stream = self.stream or sys.stdout
        stream.write(line + "\n")
        stream.flush()
        return line
