"""
PDF document loader.
"""
from pathlib import Path
from typing import List, Union
import logging

from ..models import Document

logger = logging.getLogger(__name__)


class PDFLoader:
    """Loads journal PDFs page by page."""

    def __init__(self, docs_dir: str):
        """
        Initialize PDF loader.

        Args:
            docs_dir: Path to directory containing PDF files
        """
        self.docs_dir = Path(docs_dir)

    def list_files(self) -> List[Path]:
        """PDF files in the directory, sorted by name."""
        if not self.docs_dir.exists():
            logger.warning(f"Directory does not exist: {self.docs_dir}")
            return []
        pdf_files = sorted(self.docs_dir.glob("*.pdf"))
        logger.info(f"Found {len(pdf_files)} PDF files in {self.docs_dir}")
        return pdf_files

    def load_file(self, pdf_path: Union[str, Path]) -> Document:
        """
        Load a single PDF.

        Args:
            pdf_path: Path to the PDF

        Returns:
            Document with one text entry per page
        """
        pdf_path = Path(pdf_path)
        pages = self._extract_pages(pdf_path)
        doc = Document(
            name=pdf_path.name,
            path=str(pdf_path.absolute()),
            pages=pages,
            metadata={
                "file_size": pdf_path.stat().st_size,
                "page_count": len(pages)
            }
        )
        logger.info(f"Loaded document: {pdf_path.name} ({len(pages)} pages, {len(doc.content)} chars)")
        return doc

    def _extract_pages(self, pdf_path: Path) -> List[str]:
        """Extract the text of every page; pages without text become empty strings."""
        try:
            import pypdf
        except ImportError:
            raise ImportError("pypdf is required. Install it with: pip install pypdf")

        with open(pdf_path, "rb") as f:
            reader = pypdf.PdfReader(f)
            return [page.extract_text() or "" for page in reader.pages]
