from __future__ import annotations


class DedupGate:
    """Remembers the id of the last emitted row and rejects an immediate repeat.

    Only the latest id is held, so a row that is superseded before it is ever
    observed is never reported.
    """

    def __init__(self) -> None:
        self._last_id: str | None = None

    @property
    def last_id(self) -> str | None:
        return self._last_id

    def accept(self, candidate_id: str) -> bool:
        if candidate_id == self._last_id:
            return False
        self._last_id = candidate_id
        return True
