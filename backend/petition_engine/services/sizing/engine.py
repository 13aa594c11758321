"""
Sizing Engine

Fits generated section text into per-section and global word budgets.

- Sections over max_words are compressed at sentence boundaries: whole
  sentences accumulate until the next one would exceed the budget.
- Sections under min_words are returned untouched (OK_UNDER_MIN); length is
  never fabricated.
- The global budget only ever shrinks the low-risk reducible sections.
- Compression is a fixed point: sizing already-sized text never compresses.
"""
from __future__ import annotations
import logging
import math
import re
from typing import Dict, List, Optional, Tuple

from ...config import PipelineConfig, DEFAULT_CONFIG, SectionLimits, SHORT_PARAGRAPH_WORDS
from ...models.ssot import CoverLetterSections, SectionName, SizingAction, SizingResult
from ..financial.summary import is_financial_summary_block

logger = logging.getLogger(__name__)


# =============================================================================
# TEXT UTILITIES
# =============================================================================

ABBREVIATIONS = (
    "U.S.A.", "U.S.C.", "U.S.", "C.F.R.", "Mr.", "Mrs.", "Ms.", "Dr.", "No.", "St.",
    "Inc.", "Ltd.", "Jr.", "Sr.", "e.g.", "i.e.", "etc.", "vs.", "Sec.",
)
_PLACEHOLDER = "\u0000"
_SENTENCE_SPLIT = re.compile(r"(?:(?<=[.!?])|(?<=[.!?][\"')\]]))\s+")
_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")


def count_words(text: Optional[str]) -> int:
    if not text or not text.strip():
        return 0
    return len(text.split())


def split_paragraphs(text: Optional[str]) -> List[str]:
    if not text:
        return []
    return [p.strip() for p in _PARAGRAPH_SPLIT.split(text) if p.strip()]


def join_paragraphs(paragraphs: List[str]) -> str:
    return "\n\n".join(p for p in paragraphs if p.strip())


def split_sentences(text: Optional[str]) -> List[str]:
    """Split on terminal punctuation, leaving common abbreviations intact."""
    if not text or not text.strip():
        return []
    protected = text.strip()
    for abbreviation in ABBREVIATIONS:
        protected = protected.replace(abbreviation, abbreviation.replace(".", _PLACEHOLDER))
    sentences = _SENTENCE_SPLIT.split(protected)
    return [s.replace(_PLACEHOLDER, ".").strip() for s in sentences if s.strip()]


def split_paragraph_at_middle(paragraph: str) -> Optional[Tuple[str, str]]:
    """Split at the sentence boundary closest to the middle word. None if one sentence."""
    sentences = split_sentences(paragraph)
    if len(sentences) < 2:
        return None
    total = sum(count_words(s) for s in sentences)
    best_index, best_distance, running = 1, None, 0
    for index in range(1, len(sentences)):
        running += count_words(sentences[index - 1])
        distance = abs(total / 2 - running)
        if best_distance is None or distance < best_distance:
            best_index, best_distance = index, distance
    return " ".join(sentences[:best_index]), " ".join(sentences[best_index:])


def merge_short_paragraphs(
    paragraphs: List[str],
    min_words: int = SHORT_PARAGRAPH_WORDS,
) -> Tuple[List[str], List[int]]:
    """
    Merge each short paragraph (< min_words) into the one that follows it.

    The last paragraph is never merged forward, and financial summary blocks
    are never merged in either direction. Returns (paragraphs, merged indices).
    """
    merged: List[str] = []
    merged_indices: List[int] = []
    i = 0
    while i < len(paragraphs):
        current = paragraphs[i]
        if i == len(paragraphs) - 1:
            merged.append(current)
            break

        following = paragraphs[i + 1]
        if (
            count_words(current) < min_words
            and not is_financial_summary_block(current)
            and not is_financial_summary_block(following)
        ):
            merged.append(f"{current} {following}")
            merged_indices.append(i)
            i += 2
        else:
            merged.append(current)
            i += 1
    return merged, merged_indices


# =============================================================================
# SIZING ENGINE
# =============================================================================

class SizingEngine:

    def __init__(self, config: PipelineConfig = DEFAULT_CONFIG):
        self.config = config

    def size_section(
        self,
        name: SectionName,
        text: str,
        limits: Optional[SectionLimits] = None,
    ) -> SizingResult:
        limits = limits or self.config.limits_for(name)
        words = count_words(text)

        if words > limits.max_words:
            compressed = compress_to_budget(text, limits.max_words)
            compressed_words = count_words(compressed)
            if compressed.strip() == text.strip():
                # A single sentence already over budget cannot shrink further
                logger.warning(
                    f"Section '{name.value}' is one sentence of {words} words (max {limits.max_words})"
                )
                return SizingResult(text=text, action=SizingAction.OK, word_count=words, over_budget=True)
            logger.info(f"Section '{name.value}' compressed {words} -> {compressed_words} words")
            return SizingResult(
                text=compressed,
                action=SizingAction.COMPRESSED,
                word_count=compressed_words,
                over_budget=compressed_words > limits.max_words,
            )

        if words < limits.min_words:
            return SizingResult(text=text, action=SizingAction.OK_UNDER_MIN, word_count=words)
        return SizingResult(text=text, action=SizingAction.OK, word_count=words)

    def size_sections(self, sections: CoverLetterSections) -> Tuple[CoverLetterSections, Dict[str, str]]:
        """Size every section against its own limits. Returns (sections, action per section)."""
        sized = {}
        actions = {}
        for name, text in sections:
            result = self.size_section(name, text)
            sized[name] = result.text
            actions[name.value] = result.action.value
        return CoverLetterSections.from_mapping(sized), actions

    def enforce_global_budget(
        self,
        sections: CoverLetterSections,
        max_total_words: Optional[int] = None,
    ) -> CoverLetterSections:
        """
        Shrink only the reducible sections, each by its share of the overflow.

        Overflow is re-measured after every reduction, so the remaining target
        shrinks monotonically.
        """
        cap = max_total_words if max_total_words is not None else self.config.max_total_words
        total = count_words(sections.full_text())
        if total <= cap:
            return sections

        reducible = [n for n in self.config.reducible_sections if n in sections.populated()]
        result = sections
        for index, name in enumerate(reducible):
            overflow = count_words(result.full_text()) - cap
            if overflow <= 0:
                break
            remaining = [count_words(result.get(n)) for n in reducible[index:]]
            remaining_total = sum(remaining) or 1
            current_words = remaining[0]
            cut = math.ceil(overflow * current_words / remaining_total)
            target = max(current_words - cut, 1)
            sized = self.size_section(name, result.get(name), SectionLimits(0, target))
            result = result.replace(name, sized.text)

        final_total = count_words(result.full_text())
        if final_total > cap:
            logger.warning(f"Global budget still exceeded after reduction: {final_total} > {cap} words")
        else:
            logger.info(f"Global budget enforced: {total} -> {final_total} words")
        return result


def compress_to_budget(text: str, max_words: int) -> str:
    """
    Keep whole sentences, paragraph by paragraph, until the next would exceed
    max_words. Falls back to the first sentence when even it is too long.
    Financial summary blocks are kept or dropped as one unit.
    """
    kept_paragraphs: List[str] = []
    used = 0
    first_sentence: Optional[str] = None
    stop = False

    for paragraph in split_paragraphs(text):
        units = [paragraph] if is_financial_summary_block(paragraph) else split_sentences(paragraph)
        kept_units: List[str] = []
        for unit in units:
            if first_sentence is None:
                first_sentence = unit
            unit_words = count_words(unit)
            if used + unit_words > max_words:
                stop = True
                break
            kept_units.append(unit)
            used += unit_words
        if kept_units:
            kept_paragraphs.append(" ".join(kept_units))
        if stop:
            break

    if not kept_paragraphs:
        return first_sentence or ""
    return join_paragraphs(kept_paragraphs)
