"""Append-only line sink for generated Go source."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

INDENT = "\t"


class Printer:
    """Collects lines of generated code at the current indentation level."""

    def __init__(self) -> None:
        self.lines: list[str] = []
        self._depth = 0

    def p(self, *parts: object) -> None:
        """Append one line made of the concatenated parts. No parts appends an empty line."""
        line = "".join(str(part) for part in parts)
        if line:
            self.lines.append(f"{INDENT * self._depth}{line}")
        else:
            self.lines.append("")

    @contextmanager
    def indent(self) -> Iterator[None]:
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1

    @contextmanager
    def block(self, heading: str, opening: str = " {", closing: str = "}") -> Iterator[None]:
        """Print the heading with its opening brace, the indented body and the closing brace."""
        self.p(heading, opening)
        with self.indent():
            yield
        self.p(closing)

    def dumps(self) -> str:
        return "\n".join(self.lines) + "\n"
