"""Editor content-change events and applying them to cached text."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from coden.fingerprint.text import count_lines


class Position(BaseModel):
    model_config = ConfigDict(frozen=True)

    line: int = Field(default=0, ge=0)
    character: int = Field(default=0, ge=0)


class TextRange(BaseModel):
    """Zero-based, end-exclusive span in a document."""

    model_config = ConfigDict(frozen=True)

    start: Position = Field(default_factory=Position)
    end: Position = Field(default_factory=Position)

    @classmethod
    def at(cls, line: int, character: int = 0) -> TextRange:
        point = Position(line=line, character=character)
        return cls(start=point, end=point)

    @property
    def is_empty(self) -> bool:
        return self.start == self.end


class TextChange(BaseModel):
    """One replacement: *range* of the old content becomes *text*.

    ``range_offset`` / ``range_length`` are optional; when missing they are
    derived from *range* against the content the change applies to.
    """

    model_config = ConfigDict(frozen=True)

    range: TextRange = Field(default_factory=TextRange)
    range_offset: int | None = Field(default=None, ge=0)
    range_length: int | None = Field(default=None, ge=0)
    text: str = ""

    @classmethod
    def insert(cls, line: int, character: int, text: str) -> TextChange:
        return cls(range=TextRange.at(line, character), text=text)

    @property
    def line_delta(self) -> int:
        """Net number of lines this change adds (negative when it removes)."""
        removed = self.range.end.line - self.range.start.line
        return count_lines(self.text) - 1 - removed

    def end_position(self) -> Position:
        """Where the inserted text ends in the new content."""
        lines = self.text.split("\n")
        if len(lines) == 1:
            return Position(
                line=self.range.start.line,
                character=self.range.start.character + len(lines[0]),
            )
        return Position(line=self.range.start.line + len(lines) - 1, character=len(lines[-1]))


def position_to_offset(text: str, position: Position) -> int:
    """Character offset of *position* in *text*, clamped to the content."""
    lines = text.split("\n")
    if position.line >= len(lines):
        return len(text)
    offset = sum(len(line) + 1 for line in lines[:position.line])
    return offset + min(position.character, len(lines[position.line]))


def _span(text: str, change: TextChange) -> tuple[int, int]:
    start = change.range_offset
    if start is None:
        start = position_to_offset(text, change.range.start)
    length = change.range_length
    if length is None:
        length = position_to_offset(text, change.range.end) - start
    start = min(start, len(text))
    return start, min(start + max(length, 0), len(text))


def apply_changes(text: str, changes: list[TextChange]) -> str:
    """Apply *changes*, all expressed against *text*, highest offset first."""
    spans = sorted(
        ((_span(text, change), change) for change in changes),
        key=lambda item: item[0][0],
        reverse=True,
    )
    for (start, end), change in spans:
        text = text[:start] + change.text + text[end:]
    return text
