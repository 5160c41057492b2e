from pathlib import Path

from pypdf import PdfReader


class PDFLoader:
    """Text layer of PDF files, one paragraph block per page."""

    EXTENSIONS = {".pdf"}

    def supports(self, file_path: Path) -> bool:
        return file_path.suffix.lower() in self.EXTENSIONS

    def load(self, file_path: Path) -> str:
        reader = PdfReader(file_path)
        pages = (page.extract_text() or "" for page in reader.pages)
        return "\n\n".join(text.strip() for text in pages if text.strip())
