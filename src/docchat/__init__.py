"""
docchat — chat with your documents.

Upload PDFs, DOCX or text files; they are extracted (with an OCR
fallback for scanned PDFs), chunked, embedded and stored in a vector
index. Questions are answered from the best-matching passages of one
document or all of them, or with live web search, and answers can be
streamed.

Usage:
    from docchat.config import AppConfig
    from docchat.services import build_services

    services = build_services(AppConfig())
    document, result = services.documents.register_upload(
        "user-1", "report.pdf", "user-1/report.pdf", "application/pdf", 52_311,
    )
"""

__version__ = "0.1.0"
