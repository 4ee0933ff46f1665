from __future__ import annotations


class NameFilter:
    """Case-sensitive substring match on a file's base name. Empty pattern matches all."""

    def __init__(self, pattern: str = "") -> None:
        self.pattern = pattern

    def matches(self, file_name: str) -> bool:
        return self.pattern in file_name
