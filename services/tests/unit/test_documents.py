from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from inkwell.services.documents import (
    FileDocument,
    InMemoryDocument,
    LineTable,
    TextDocument,
    TextRange,
    resolve_project_path,
)
from inkwell.services.errors import DocumentChangedError, InvalidArgumentError, UnreadableDocumentError
from inkwell.services.persistence import write_text_atomic


def test_line_table_recognises_every_line_break() -> None:
    table = LineTable("one\r\ntwo\rthree\nfour")

    assert table.line_count == 4
    assert [table.line(index) for index in range(4)] == ["one", "two", "three", "four"]


def test_line_table_trailing_newline_adds_empty_line() -> None:
    table = LineTable("only\n")

    assert table.line_count == 2
    assert table.line(1) == ""


def test_line_table_get_text_across_lines() -> None:
    table = LineTable("alpha\r\nbeta\ngamma")

    assert table.get_text(TextRange(0, 2, 1, 2)) == "pha\r\nbe"


def test_line_table_rejects_columns_past_line_end() -> None:
    table = LineTable("ab\ncd")

    with pytest.raises(ValueError):
        table.get_text(TextRange(0, 0, 0, 3))


def test_documents_satisfy_protocol(tmp_path: Path) -> None:
    target = tmp_path / "a.md"
    target.write_text("", encoding="utf-8")

    assert isinstance(InMemoryDocument("a.md", ""), TextDocument)
    assert isinstance(FileDocument(target), TextDocument)


def test_file_document_replace_preserves_surrounding_bytes(tmp_path: Path) -> None:
    target = tmp_path / "chapter.md"
    target.write_bytes("Intro\r\nIt was very good.\r\nOutro".encode("utf-8"))
    document = FileDocument(target, durable=False)

    replaced = asyncio.run(document.replace(TextRange(1, 7, 1, 16), "good"))

    assert replaced is True
    assert target.read_bytes().decode("utf-8") == "Intro\r\nIt was good.\r\nOutro"
    assert list(tmp_path.iterdir()) == [target]


def test_file_document_reads_live_content(tmp_path: Path) -> None:
    target = tmp_path / "chapter.md"
    target.write_text("first", encoding="utf-8")
    document = FileDocument(target)

    assert document.get_text(TextRange(0, 0, 0, 5)) == "first"
    target.write_text("second\nline", encoding="utf-8")
    assert document.line_count == 2
    assert document.get_text(TextRange(0, 0, 0, 6)) == "second"


def test_file_document_exists_requires_a_file(tmp_path: Path) -> None:
    document = FileDocument(tmp_path / "missing.md")

    assert document.exists(str(tmp_path / "missing.md")) is False
    assert document.exists(str(tmp_path)) is False


def test_write_text_atomic_keeps_content_verbatim(tmp_path: Path) -> None:
    target = tmp_path / "notes.md"

    write_text_atomic(target, "no trailing newline\r\n\r\nend", durable=False)

    assert target.read_bytes() == b"no trailing newline\r\n\r\nend"


def test_resolve_project_path_stays_inside_base(tmp_path: Path) -> None:
    resolved = resolve_project_path(tmp_path, "drafts/chapter.md")

    assert resolved == (tmp_path / "drafts" / "chapter.md").resolve()


@pytest.mark.parametrize("candidate", ["../escape.md", "drafts/../../escape.md", "", "   ", "bad\0name"])
def test_resolve_project_path_rejects_invalid_paths(tmp_path: Path, candidate: str) -> None:
    with pytest.raises(InvalidArgumentError):
        resolve_project_path(tmp_path, candidate)


def test_replace_with_expected_text_checks_the_range() -> None:
    document = InMemoryDocument("notes.md", "hello world")

    with pytest.raises(DocumentChangedError):
        asyncio.run(document.replace(TextRange(0, 0, 0, 5), "howdy", expected="HELLO"))

    assert document.text == "hello world"
    assert document.version == 1
    assert asyncio.run(document.replace(TextRange(0, 0, 0, 5), "howdy", expected="hello")) is True
    assert document.text == "howdy world"


def test_file_document_replace_rechecks_expected_text_on_disk(tmp_path: Path) -> None:
    target = tmp_path / "notes.md"
    target.write_text("XXXXX important text\n", encoding="utf-8")
    document = FileDocument(target, durable=False)

    with pytest.raises(DocumentChangedError):
        asyncio.run(document.replace(TextRange(0, 0, 0, 5), "howdy", expected="hello"))

    assert target.read_text(encoding="utf-8") == "XXXXX important text\n"


def test_file_document_rejects_undecodable_content(tmp_path: Path) -> None:
    target = tmp_path / "notes.md"
    target.write_bytes(b"hello \xff world\n")
    document = FileDocument(target)

    with pytest.raises(UnreadableDocumentError) as excinfo:
        document.read_text()

    assert excinfo.value.details["position"] == 6
    with pytest.raises(UnreadableDocumentError):
        _ = document.line_count
