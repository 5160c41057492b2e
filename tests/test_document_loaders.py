"""Tests for the file loaders."""

from ragdojo.infrastructure.document_loaders import CompositeLoader, TextLoader


def test_text_loader_reads_markdown(tmp_path):
    path = tmp_path / "notes.md"
    path.write_text("# Title\n\nBody", encoding="utf-8")

    assert TextLoader().load(path) == "# Title\n\nBody"


def test_text_loader_tolerates_bad_bytes(tmp_path):
    path = tmp_path / "latin.txt"
    path.write_bytes("caf\xe9".encode("latin-1"))

    assert TextLoader().load(path).startswith("caf")


def test_composite_supports_known_extensions(tmp_path):
    loader = CompositeLoader()
    txt = tmp_path / "a.TXT"
    txt.write_text("x", encoding="utf-8")
    exe = tmp_path / "a.exe"
    exe.write_bytes(b"x")

    assert loader.supports(txt)
    assert not loader.supports(exe)
    assert {".pdf", ".docx", ".txt", ".md"} <= loader.extensions


def test_composite_returns_none_for_broken_file(tmp_path):
    path = tmp_path / "broken.pdf"
    path.write_bytes(b"not a pdf")

    assert CompositeLoader().load(path) is None
