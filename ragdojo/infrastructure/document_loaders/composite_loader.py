import logging
from pathlib import Path
from typing import Optional

from .pdf_loader import PDFLoader
from .docx_loader import DocxLoader
from .text_loader import TextLoader

logger = logging.getLogger(__name__)


class CompositeLoader:
    """Dispatches a file to the first loader that handles its extension."""

    def __init__(self):
        self._loaders = [
            PDFLoader(),
            DocxLoader(),
            TextLoader(),
        ]

    @property
    def extensions(self) -> set[str]:
        return {ext for loader in self._loaders for ext in loader.EXTENSIONS}

    def supports(self, file_path: Path) -> bool:
        return file_path.is_file() and any(loader.supports(file_path) for loader in self._loaders)

    def load(self, file_path: Path) -> Optional[str]:
        """Extract text, or None when the file cannot be read."""
        for loader in self._loaders:
            if loader.supports(file_path):
                try:
                    return loader.load(file_path)
                except Exception as e:
                    logger.error(f"Failed to load {file_path.name}: {e}")
                    return None
        logger.debug(f"No loader for {file_path.name}")
        return None
