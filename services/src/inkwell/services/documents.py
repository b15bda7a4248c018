"""Editable text documents addressed by zero-based line/column ranges."""

from __future__ import annotations

import asyncio
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from .errors import DocumentChangedError, InvalidArgumentError, UnreadableDocumentError
from .models.critique import Anchor
from .persistence import locked_path, read_text_exact, write_text_atomic

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class TextRange:
    """Zero-based range, half-open on the end column."""

    start_line: int
    start_column: int
    end_line: int
    end_column: int

    @classmethod
    def from_anchor(cls, anchor: Anchor) -> "TextRange":
        return cls(
            start_line=anchor.start_line,
            start_column=anchor.start_column,
            end_line=anchor.end_line,
            end_column=anchor.end_column,
        )


@runtime_checkable
class TextDocument(Protocol):
    """Capability the suggestion applicator needs from a live document."""

    @property
    def path(self) -> str: ...

    @property
    def version(self) -> int: ...

    @property
    def line_count(self) -> int: ...

    def get_text(self, text_range: TextRange) -> str: ...

    async def replace(
        self, text_range: TextRange, text: str, *, expected: str | None = None
    ) -> bool: ...

    def exists(self, path: str) -> bool: ...


class LineTable:
    """Offsets of each line in a text, recognising ``\\r\\n``, ``\\r`` and ``\\n``."""

    def __init__(self, text: str) -> None:
        self.text = text
        self._starts: list[int] = [0]
        self._ends: list[int] = []
        for match in _LINE_BREAK.finditer(text):
            self._ends.append(match.start())
            self._starts.append(match.end())
        self._ends.append(len(text))

    @property
    def line_count(self) -> int:
        return len(self._starts)

    def line(self, index: int) -> str:
        return self.text[self._starts[index] : self._ends[index]]

    def offset(self, line: int, column: int) -> int:
        if line < 0 or line >= self.line_count:
            raise ValueError(f"Line {line} is outside the document (0..{self.line_count - 1}).")
        length = self._ends[line] - self._starts[line]
        if column < 0 or column > length:
            raise ValueError(f"Column {column} is outside line {line} (0..{length}).")
        return self._starts[line] + column

    def span(self, text_range: TextRange) -> tuple[int, int]:
        start = self.offset(text_range.start_line, text_range.start_column)
        end = self.offset(text_range.end_line, text_range.end_column)
        if end < start:
            raise ValueError("Range end precedes its start.")
        return start, end

    def get_text(self, text_range: TextRange) -> str:
        start, end = self.span(text_range)
        return self.text[start:end]

    def replace(
        self, text_range: TextRange, replacement: str, *, expected: str | None = None
    ) -> str:
        """Return the text with ``text_range`` replaced.

        When ``expected`` is given, the range must still hold exactly that text,
        otherwise ``DocumentChangedError`` is raised and nothing is replaced.
        """

        try:
            start, end = self.span(text_range)
        except ValueError as exc:
            if expected is None:
                raise
            raise DocumentChangedError(str(exc)) from exc
        if expected is not None and self.text[start:end] != expected:
            raise DocumentChangedError(
                "The target range changed before the edit was written.",
                details={"expected": expected, "found": self.text[start:end]},
            )
        return self.text[:start] + replacement + self.text[end:]


def normalize_path(path: str) -> str:
    return path.replace("\\", "/")


class InMemoryDocument:
    """Document held in memory; the version increments on every edit."""

    def __init__(self, path: str, text: str, *, writable: bool = True) -> None:
        self._path = path
        self._table = LineTable(text)
        self._version = 1
        self.writable = writable

    @property
    def path(self) -> str:
        return self._path

    @property
    def version(self) -> int:
        return self._version

    @property
    def line_count(self) -> int:
        return self._table.line_count

    @property
    def text(self) -> str:
        return self._table.text

    def get_text(self, text_range: TextRange) -> str:
        return self._table.get_text(text_range)

    async def replace(
        self, text_range: TextRange, text: str, *, expected: str | None = None
    ) -> bool:
        if not self.writable:
            return False
        self._table = LineTable(self._table.replace(text_range, text, expected=expected))
        self._version += 1
        return True

    def exists(self, path: str) -> bool:
        return self.writable and normalize_path(path) == normalize_path(self._path)


class FileDocument:
    """Document backed by a UTF-8 file on disk.

    Every read goes back to the file, so edits made by other processes since a
    review was generated are visible to the conflict check.
    """

    def __init__(self, path: Path | str, *, durable: bool = True) -> None:
        self._path = Path(path)
        self._durable = durable

    @property
    def path(self) -> str:
        return str(self._path)

    @property
    def version(self) -> int:
        return self._path.stat().st_mtime_ns

    @property
    def line_count(self) -> int:
        return LineTable(self.read_text()).line_count

    def read_text(self) -> str:
        try:
            return read_text_exact(self._path)
        except UnicodeDecodeError as exc:
            raise UnreadableDocumentError(
                "Document is not valid UTF-8 text.",
                details={"path": self.path, "position": exc.start},
            ) from exc

    def get_text(self, text_range: TextRange) -> str:
        return LineTable(self.read_text()).get_text(text_range)

    async def replace(
        self, text_range: TextRange, text: str, *, expected: str | None = None
    ) -> bool:
        return await asyncio.to_thread(self._replace_sync, text_range, text, expected)

    def exists(self, path: str) -> bool:
        candidate = Path(path)
        return candidate.is_file() and os.access(candidate, os.W_OK)

    def _replace_sync(self, text_range: TextRange, text: str, expected: str | None) -> bool:
        # The expected text is compared under the lock, against the bytes being rewritten.
        with locked_path(self._path):
            if not self.exists(self.path):
                return False
            updated = LineTable(self.read_text()).replace(text_range, text, expected=expected)
            write_text_atomic(self._path, updated, durable=self._durable)
        return True


def resolve_project_path(base_dir: Path, relative_path: str) -> Path:
    """Resolve ``relative_path`` inside ``base_dir``, rejecting escapes."""

    if "\0" in relative_path:
        raise InvalidArgumentError("Document path must not contain null bytes.")
    candidate = relative_path.strip()
    if not candidate:
        raise InvalidArgumentError("Document path must not be empty.")
    root = base_dir.resolve()
    target = (root / normalize_path(candidate)).resolve()
    if not target.is_relative_to(root):
        raise InvalidArgumentError(
            "Document path escapes the project directory.",
            details={"file_path": relative_path},
        )
    return target


def open_project_document(base_dir: Path, relative_path: str) -> FileDocument:
    return FileDocument(resolve_project_path(base_dir, relative_path))


__all__ = [
    "FileDocument",
    "InMemoryDocument",
    "LineTable",
    "TextDocument",
    "TextRange",
    "normalize_path",
    "open_project_document",
    "resolve_project_path",
]
