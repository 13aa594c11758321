"""Assembly - generation context, orchestration and final rendering"""
from .assembler import DocumentAssembler, NO_FINANCIAL_RESOURCES
from .context import build_generation_context
from .rendering import CoverLetterRenderer, sanitize_for_pdf, EXHIBIT_LIST_HEADING

__all__ = [
    "DocumentAssembler", "NO_FINANCIAL_RESOURCES", "build_generation_context",
    "CoverLetterRenderer", "sanitize_for_pdf", "EXHIBIT_LIST_HEADING",
]
