"""
Cover Letter Rendering

Concatenates checked and sized sections into one linear plain-text letter:

1. Applicant header and date
2. USCIS filing address
3. RE line and salutation
4. Section bodies in canonical order
5. Closing and signature block
6. EXHIBIT LIST (only exhibits both available and cited)

The result is folded to PDF-safe ASCII so any downstream rasterizer can
render it with a standard font.
"""
from __future__ import annotations
import logging
import re
import unicodedata
from datetime import date
from typing import Dict, List, Optional, Sequence

from ...models.ssot import AggregatedApplicationData, CoverLetterSections, Exhibit

logger = logging.getLogger(__name__)


USCIS_ADDRESS_LINES = (
    "U.S. Citizenship and Immigration Services",
    "P.O. Box 805887",
    "Chicago, IL 60680-4120",
)
RE_LINE = "RE: Form I-539, Application to Change Nonimmigrant Status to F-1 Student"
SALUTATION = "Dear Sir or Madam,"
CLOSING_LINE = "Respectfully submitted,"
SIGNATURE_RULE = "_____________________________"
EXHIBIT_LIST_HEADING = "EXHIBIT LIST"

UNICODE_MAP: Dict[str, str] = {
    "–": "-", "—": "-", "−": "-",
    "“": '"', "”": '"', "„": '"',
    "‘": "'", "’": "'", "‚": "'",
    "…": "...",
    " ": " ", " ": " ", " ": " ",
    "§": "Section ",
    "©": "(c)", "®": "(R)", "™": "(TM)",
    "€": "EUR", "£": "GBP", "¥": "YEN",
    "ß": "ss", "æ": "ae", "Æ": "AE", "œ": "oe", "Œ": "OE",
    "ø": "o", "Ø": "O", "ł": "l", "Ł": "L",
    "•": "", "¤": "", "­": "",
}
_HORIZONTAL_WHITESPACE = re.compile(r"[ \t]+")
_DOUBLE_SECTION = re.compile(r"Section\s*Section")


def sanitize_for_pdf(text: Optional[str]) -> str:
    """
    Fold text to printable ASCII, keeping line structure.

    Mapped characters first, then NFD decomposition with combining marks
    dropped; anything still non-ASCII is removed.
    """
    if not text:
        return ""
    out = []
    for char in text:
        if ord(char) < 128:
            out.append(char)
            continue
        if char in UNICODE_MAP:
            out.append(UNICODE_MAP[char])
            continue
        folded = "".join(
            c for c in unicodedata.normalize("NFD", char) if not unicodedata.combining(c)
        )
        if folded and all(ord(c) < 128 for c in folded):
            out.append(folded)
    cleaned = _DOUBLE_SECTION.sub("Sections", "".join(out))
    lines = [_HORIZONTAL_WHITESPACE.sub(" ", line).strip() for line in cleaned.split("\n")]
    return "\n".join(lines).strip()


class CoverLetterRenderer:
    """Render the final letter text. Performs no checking of its own."""

    def render(
        self,
        data: AggregatedApplicationData,
        sections: CoverLetterSections,
        exhibit_index: Sequence[Exhibit],
        letter_date: Optional[date] = None,
    ) -> str:
        parts = [
            self._render_header(data, letter_date or date.today()),
            "\n".join(USCIS_ADDRESS_LINES),
            RE_LINE,
            SALUTATION,
        ]
        parts.extend(text for _, text in sections)
        parts.append(self._render_signature(data))
        if exhibit_index:
            parts.append(self._render_exhibit_list(exhibit_index))

        document = sanitize_for_pdf("\n\n".join(filter(None, parts)))
        logger.info(
            f"Rendered cover letter: {len(document.split())} words, {len(exhibit_index)} exhibits listed"
        )
        return document

    def _render_header(self, data: AggregatedApplicationData, letter_date: date) -> str:
        lines: List[str] = [data.applicant_name or "Applicant"]
        address = data.application.current_address
        if address:
            if address.street:
                lines.append(address.street)
            if address.city_state_zip():
                lines.append(address.city_state_zip())
        lines.append("")
        lines.append(letter_date.strftime("%B %d, %Y"))
        return "\n".join(lines)

    def _render_signature(self, data: AggregatedApplicationData) -> str:
        return "\n".join([CLOSING_LINE, "", SIGNATURE_RULE, data.applicant_name or "Applicant"])

    def _render_exhibit_list(self, exhibit_index: Sequence[Exhibit]) -> str:
        lines = [EXHIBIT_LIST_HEADING]
        lines.extend(f"Exhibit {e.letter}: {e.description}" for e in exhibit_index)
        return "\n".join(lines)
