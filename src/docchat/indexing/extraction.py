"""
Text extraction from uploaded files.

Turns raw bytes + a MIME type into plain text. DOCX goes through
python-docx, plain text is decoded as UTF-8, and PDFs run through an
ordered chain of strategies, falling through whenever a strategy yields
nothing useful:

    1. PypdfTextStrategy     — the embedded text layer, via pypdf.
                               Only accepted when it has more than
                               pdf_min_text_chars characters.
    2. PyMuPDFTextStrategy   — renderer-based text, via PyMuPDF.
                               Catches PDFs whose text layer pypdf misreads.
    3. VisionOcrStrategy     — renders page 1 to PNG with PyMuPDF and asks
                               a vision chat model to transcribe it.
                               Only the first page is OCR'd.

A strategy that raises is logged and skipped. If nothing is accepted the
first non-empty partial result is returned, or "" — PDF extraction never
raises; an empty result is dealt with by the ingestion pipeline.

Usage:
    extractor = TextExtractor(IngestionConfig(), ocr_llm=get_llm(config.vision_llm))
    text = extractor.extract(data, "application/pdf")
"""

import base64
import io
import logging
from enum import Enum
from typing import Optional

import pymupdf
from docx import Document as DocxDocument
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from pypdf import PdfReader

from docchat.base.indexer import BaseExtractionStrategy
from docchat.config import IngestionConfig
from docchat.errors import UnsupportedFormat
from docchat.utils.helpers import message_text

logger = logging.getLogger(__name__)

OCR_SYSTEM_PROMPT = "이미지에서 텍스트만 추출하세요. 요약/변환 없이 원문 그대로, 줄바꿈은 유지해 주세요."
OCR_USER_PROMPT = "이 이미지에서 글자를 그대로 추출해 주세요."


class FileKind(str, Enum):
    PDF = "pdf"
    DOCX = "docx"
    TXT = "txt"


def detect_kind(mime_type: str) -> FileKind:
    """Map a MIME type to the extractor that handles it."""
    mime = (mime_type or "").lower()
    if "pdf" in mime:
        return FileKind.PDF
    # "haansoft" covers the DOCX MIME type some Korean office suites emit
    if "wordprocessingml" in mime or "haansoft" in mime:
        return FileKind.DOCX
    if mime.startswith("text/"):
        return FileKind.TXT
    raise UnsupportedFormat(f"지원하지 않는 파일 형식입니다: {mime_type}")


# ---------------------------------------------------------------------------
# PDF strategies
# ---------------------------------------------------------------------------

class PypdfTextStrategy(BaseExtractionStrategy):
    name = "pypdf"

    def __init__(self, min_chars: int = 20):
        self.min_chars = min_chars

    def extract(self, data: bytes) -> Optional[str]:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
        return "\n".join(pages)

    def accept(self, text: str) -> bool:
        return len(text.strip()) > self.min_chars


class PyMuPDFTextStrategy(BaseExtractionStrategy):
    name = "pymupdf"

    def __init__(self, max_pages: int = 200):
        self.max_pages = max_pages

    def extract(self, data: bytes) -> Optional[str]:
        with pymupdf.open(stream=data, filetype="pdf") as doc:
            count = min(doc.page_count, self.max_pages)
            pages = [doc[i].get_text() for i in range(count)]
        return "\n".join(pages)


class VisionOcrStrategy(BaseExtractionStrategy):
    """
    OCR fallback for scanned PDFs.

    The first page is rasterised at `scale` and sent to the vision model as
    a base64 data URL alongside a "transcribe verbatim" instruction.
    """

    name = "vision_ocr"

    def __init__(self, llm: BaseChatModel, scale: float = 1.5):
        self.llm = llm
        self.scale = scale

    def render_first_page(self, data: bytes) -> Optional[bytes]:
        with pymupdf.open(stream=data, filetype="pdf") as doc:
            if doc.page_count == 0:
                return None
            pixmap = doc[0].get_pixmap(matrix=pymupdf.Matrix(self.scale, self.scale))
            return pixmap.tobytes("png")

    def extract(self, data: bytes) -> Optional[str]:
        png = self.render_first_page(data)
        if png is None:
            return None

        data_url = "data:image/png;base64," + base64.b64encode(png).decode("ascii")
        response = self.llm.invoke([
            SystemMessage(content=OCR_SYSTEM_PROMPT),
            HumanMessage(content=[
                {"type": "text", "text": OCR_USER_PROMPT},
                {"type": "image_url", "image_url": {"url": data_url}},
            ]),
        ])
        return message_text(response).strip()


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------

class TextExtractor:
    """
    Dispatches on MIME type and runs the PDF strategy chain.

    Pass `strategies` to replace the default PDF chain entirely (tests do).
    Without an ocr_llm the chain stops after the two text strategies.
    """

    def __init__(
        self,
        config: Optional[IngestionConfig] = None,
        ocr_llm: Optional[BaseChatModel] = None,
        strategies: Optional[list[BaseExtractionStrategy]] = None,
    ):
        self.config = config or IngestionConfig()
        if strategies is None:
            strategies = [
                PypdfTextStrategy(self.config.pdf_min_text_chars),
                PyMuPDFTextStrategy(self.config.pdf_max_pages),
            ]
            if ocr_llm is not None:
                strategies.append(VisionOcrStrategy(ocr_llm, self.config.ocr_render_scale))
        self.strategies = strategies

    def extract(self, data: bytes, mime_type: str) -> str:
        kind = detect_kind(mime_type)
        if kind == FileKind.PDF:
            return self.extract_pdf(data)
        if kind == FileKind.DOCX:
            return self.extract_docx(data)
        return data.decode("utf-8", errors="replace")

    def extract_pdf(self, data: bytes) -> str:
        partial = ""
        for strategy in self.strategies:
            try:
                text = strategy.extract(data) or ""
            except Exception as exc:
                logger.warning("PDF strategy %s failed: %s", strategy.name, exc)
                continue

            if strategy.accept(text):
                logger.info("PDF text extracted with %s (%d chars)", strategy.name, len(text))
                return text
            if not partial and text.strip():
                partial = text

        logger.info("No PDF strategy accepted; returning %d chars of partial text", len(partial))
        return partial

    @staticmethod
    def extract_docx(data: bytes) -> str:
        doc = DocxDocument(io.BytesIO(data))
        parts = [p.text for p in doc.paragraphs if p.text.strip()]
        for table in doc.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells]
                if any(cells):
                    parts.append(" | ".join(cells))
        return "\n".join(parts)
