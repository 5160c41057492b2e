from pathlib import Path


class TextLoader:
    """Plain text and markdown files."""

    EXTENSIONS = {".txt", ".md", ".markdown"}

    def supports(self, file_path: Path) -> bool:
        return file_path.suffix.lower() in self.EXTENSIONS

    def load(self, file_path: Path) -> str:
        # Undecodable bytes must not abort a directory ingest.
        return file_path.read_text(encoding="utf-8", errors="replace")
