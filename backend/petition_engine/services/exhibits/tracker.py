"""
Exhibit Citation Tracker

Two directions over the same letter scheme:
- available_exhibits: what evidence exists (driven purely by which document
  categories are present in the aggregated data)
- exhibits_referenced_in: what a piece of text actually cites

Letters A-D are fixed by evidence group so the same document always gets the
same letter; an absent group keeps its letter reserved. Document categories
outside the fixed groups are lettered E, F, ... in order of first appearance.
"""
from __future__ import annotations
import logging
import re
import string
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Set, Tuple

from ...models.ssot import AggregatedApplicationData, DocumentCategory, Exhibit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExhibitGroup:
    letter: str
    description: str
    categories: Tuple[str, ...]
    is_present: Callable[[AggregatedApplicationData], bool]


EXHIBIT_GROUPS: Tuple[ExhibitGroup, ...] = (
    ExhibitGroup(
        letter="A",
        description="Identification and immigration status (passport, Form I-94)",
        categories=(DocumentCategory.PASSPORT.value, DocumentCategory.STATUS_RECORD.value),
        is_present=lambda d: d.passport is not None or d.status_record is not None,
    ),
    ExhibitGroup(
        letter="B",
        description="Program and school records (Form I-20)",
        categories=(DocumentCategory.PROGRAM_RECORD.value,),
        is_present=lambda d: d.program_record is not None,
    ),
    ExhibitGroup(
        letter="C",
        description="Purpose of study and ties to home country",
        categories=(DocumentCategory.TIES_DOCUMENT.value,),
        is_present=lambda d: bool(d.ties_documents) or bool(d.ties_answers),
    ),
    ExhibitGroup(
        letter="D",
        description="Proof of financial ability",
        categories=(
            DocumentCategory.BANK_STATEMENT.value,
            DocumentCategory.SPONSOR_BANK_STATEMENT.value,
            DocumentCategory.ASSETS.value,
            DocumentCategory.SPONSOR_ASSETS.value,
            DocumentCategory.SCHOLARSHIP_DOCUMENT.value,
            DocumentCategory.OTHER_FUNDING.value,
        ),
        is_present=lambda d: bool(
            d.bank_statements or d.assets or d.scholarship_documents or d.other_funding_documents
        ),
    ),
)

FIXED_CATEGORIES = frozenset(c for group in EXHIBIT_GROUPS for c in group.categories)

UNCLASSIFIED_DESCRIPTIONS: Dict[str, str] = {
    DocumentCategory.DEPENDENT_PASSPORT.value: "Dependent passport",
    DocumentCategory.DEPENDENT_STATUS_RECORD.value: "Dependent Form I-94",
    DocumentCategory.DEPENDENT_PROGRAM_RECORD.value: "Dependent Form I-20",
}

# "Exhibit A", "(Exhibit B)", "Exhibits A and B", "Exhibit A, B, and C", "Exhibit A & D"
_CONTINUATION = r"\s*(?:,\s*(?:and\s+)?|and\s+|&\s*)(?-i:[A-HJ-Z])\b"
EXHIBIT_REFERENCE_PATTERN = re.compile(
    r"\bexhibits?\s+((?-i:[A-Z]))\b((?:" + _CONTINUATION + r")*)",
    re.IGNORECASE,
)
_CONTINUATION_LETTER = re.compile(r"\b([A-HJ-Z])\b")


class ExhibitCitationTracker:

    def available_exhibits(self, data: AggregatedApplicationData) -> List[Exhibit]:
        exhibits = [
            Exhibit(letter=group.letter, description=group.description, categories=group.categories)
            for group in EXHIBIT_GROUPS
            if group.is_present(data)
        ]

        extra_letters = iter(string.ascii_uppercase[len(EXHIBIT_GROUPS):])
        for category, description in self._unclassified_categories(data):
            letter = next(extra_letters, None)
            if letter is None:
                logger.warning(f"Out of exhibit letters; '{category}' not listed")
                break
            exhibits.append(Exhibit(letter=letter, description=description, categories=(category,)))

        return exhibits

    def exhibits_referenced_in(self, text: str) -> Set[str]:
        """Uppercase letters cited in text, including list continuations."""
        letters: Set[str] = set()
        if not text:
            return letters
        for match in EXHIBIT_REFERENCE_PATTERN.finditer(text):
            letters.add(match.group(1).upper())
            if match.group(2):
                letters.update(_CONTINUATION_LETTER.findall(match.group(2)))
        return letters

    def count_citations(self, text: str) -> int:
        """Number of individual letter citations (a list 'A and B' counts twice)."""
        if not text:
            return 0
        count = 0
        for match in EXHIBIT_REFERENCE_PATTERN.finditer(text):
            count += 1
            if match.group(2):
                count += len(_CONTINUATION_LETTER.findall(match.group(2)))
        return count

    def exhibit_index(self, available: Iterable[Exhibit], text: str) -> List[Exhibit]:
        """Exhibits both available and referenced, in letter order."""
        referenced = self.exhibits_referenced_in(text)
        return sorted(
            (exhibit for exhibit in available if exhibit.letter in referenced),
            key=lambda exhibit: exhibit.letter,
        )

    @staticmethod
    def _unclassified_categories(data: AggregatedApplicationData) -> List[Tuple[str, str]]:
        seen: List[str] = []
        found: List[Tuple[str, str]] = []

        for record in data.dependent_documents:
            category = record.category.value
            if category not in seen:
                seen.append(category)
                found.append((category, UNCLASSIFIED_DESCRIPTIONS.get(category, category)))

        for entry in data.document_list:
            if entry.category in FIXED_CATEGORIES or entry.category in seen:
                continue
            seen.append(entry.category)
            description = UNCLASSIFIED_DESCRIPTIONS.get(entry.category, entry.name or entry.category)
            found.append((entry.category, description))

        return found
