"""
Layout Validator

Estimates how the letter will lay out on the page from word counts alone
(calibrated words-per-line / words-per-page constants) and flags paragraphs
and totals that will not fit a legal-letter format.

auto_fix applies targeted corrections once and keeps the result only when
the issue count strictly decreases.
"""
from __future__ import annotations
import logging
import math
from typing import Dict, List, Optional, Sequence

from ...config import PipelineConfig, DEFAULT_CONFIG
from ...models.ssot import (
    AutoFixResult, CoverLetterSections, LayoutIssue, LayoutIssueType, LayoutValidationResult,
    SectionName,
)
from ..financial.summary import is_financial_summary_block
from .engine import (
    SizingEngine, count_words, join_paragraphs, merge_short_paragraphs, split_paragraph_at_middle,
    split_paragraphs,
)

logger = logging.getLogger(__name__)

SPLITTABLE_ISSUES = frozenset({
    LayoutIssueType.PARAGRAPH_TOO_DENSE,
    LayoutIssueType.PARAGRAPH_WORD_DENSITY,
})
MERGEABLE_ISSUES = frozenset({
    LayoutIssueType.PARAGRAPH_TOO_SPARSE,
    LayoutIssueType.TOO_MANY_PARAGRAPHS,
})

# Guard against paragraphs that keep splitting into still-dense halves
MAX_SPLITS_PER_PARAGRAPH = 4


class LayoutValidator:

    def __init__(self, config: PipelineConfig = DEFAULT_CONFIG):
        self.config = config
        self.sizing = SizingEngine(config)

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def estimate_lines(self, paragraph: str) -> int:
        """Each physical line wraps independently; an empty line still costs nothing."""
        lines = 0
        for line in paragraph.split("\n"):
            words = count_words(line)
            if words:
                lines += max(1, math.ceil(words / self.config.average_words_per_line))
        return lines

    def validate_layout(self, sections: CoverLetterSections) -> LayoutValidationResult:
        config = self.config
        issues: List[LayoutIssue] = []
        total_words = 0
        paragraph_count = 0

        for name, text in sections:
            for index, paragraph in enumerate(split_paragraphs(text)):
                paragraph_count += 1
                words = count_words(paragraph)
                total_words += words
                lines = self.estimate_lines(paragraph)

                if lines < config.min_lines_per_paragraph:
                    issues.append(LayoutIssue(
                        issue_type=LayoutIssueType.PARAGRAPH_TOO_SPARSE,
                        message=f"Paragraph {index + 1} of '{name.value}' is {lines} line(s)",
                        section=name,
                        paragraph_index=index,
                        metric=lines,
                        limit=config.min_lines_per_paragraph,
                    ))
                elif lines > config.max_lines_per_paragraph:
                    issues.append(LayoutIssue(
                        issue_type=LayoutIssueType.PARAGRAPH_TOO_DENSE,
                        message=f"Paragraph {index + 1} of '{name.value}' is {lines} lines",
                        section=name,
                        paragraph_index=index,
                        metric=lines,
                        limit=config.max_lines_per_paragraph,
                    ))

                if words > config.max_words_per_paragraph:
                    issues.append(LayoutIssue(
                        issue_type=LayoutIssueType.PARAGRAPH_WORD_DENSITY,
                        message=f"Paragraph {index + 1} of '{name.value}' has {words} words",
                        section=name,
                        paragraph_index=index,
                        metric=words,
                        limit=config.max_words_per_paragraph,
                    ))

        estimated_pages = total_words / config.max_words_per_page
        if estimated_pages > config.max_pages:
            issues.append(LayoutIssue(
                issue_type=LayoutIssueType.TOO_MANY_PAGES,
                message=f"Estimated {estimated_pages:.1f} pages (max {config.max_pages})",
                metric=round(estimated_pages, 2),
                limit=config.max_pages,
            ))

        if paragraph_count < config.min_paragraphs:
            issues.append(LayoutIssue(
                issue_type=LayoutIssueType.TOO_FEW_PARAGRAPHS,
                message=f"{paragraph_count} paragraphs (min {config.min_paragraphs})",
                metric=paragraph_count,
                limit=config.min_paragraphs,
            ))
        elif paragraph_count > config.max_paragraphs:
            issues.append(LayoutIssue(
                issue_type=LayoutIssueType.TOO_MANY_PARAGRAPHS,
                message=f"{paragraph_count} paragraphs (max {config.max_paragraphs})",
                metric=paragraph_count,
                limit=config.max_paragraphs,
            ))

        return LayoutValidationResult(
            is_valid=not issues,
            estimated_pages=round(estimated_pages, 2),
            total_words=total_words,
            paragraph_count=paragraph_count,
            issues=tuple(issues),
        )

    # =========================================================================
    # AUTO-FIX (single attempt)
    # =========================================================================

    def auto_fix(
        self,
        sections: CoverLetterSections,
        issues: Optional[Sequence[LayoutIssue]] = None,
    ) -> AutoFixResult:
        if issues is None:
            issues = self.validate_layout(sections).issues
        issues_before = len(issues)
        if not issues:
            return AutoFixResult(sections=sections, accepted=False, issues_before=0, issues_after=0)

        fixes: List[str] = []
        candidate = sections
        kinds = {issue.issue_type for issue in issues}

        if LayoutIssueType.TOO_MANY_PAGES in kinds:
            page_cap = self.config.max_pages * self.config.max_words_per_page
            candidate = self.sizing.enforce_global_budget(
                candidate, min(self.config.max_total_words, page_cap)
            )
            fixes.append("global_budget")

        merge_targets = self._sections_for(issues, MERGEABLE_ISSUES, candidate)
        for name in merge_targets:
            paragraphs, merged = merge_short_paragraphs(
                split_paragraphs(candidate.get(name)), self.config.short_paragraph_words
            )
            if merged:
                candidate = candidate.replace(name, join_paragraphs(paragraphs))
                fixes.append(f"merged_short_paragraphs:{name.value}")

        split_targets = self._sections_for(issues, SPLITTABLE_ISSUES, candidate)
        for name in split_targets:
            paragraphs = self._split_dense(split_paragraphs(candidate.get(name)))
            updated = join_paragraphs(paragraphs)
            if updated != candidate.get(name):
                candidate = candidate.replace(name, updated)
                fixes.append(f"split_dense_paragraphs:{name.value}")

        issues_after = len(self.validate_layout(candidate).issues)
        accepted = issues_after < issues_before
        if accepted:
            logger.info(f"Layout auto-fix accepted: {issues_before} -> {issues_after} issues")
        else:
            logger.info(f"Layout auto-fix rejected: {issues_before} -> {issues_after} issues")

        return AutoFixResult(
            sections=candidate if accepted else sections,
            accepted=accepted,
            issues_before=issues_before,
            issues_after=issues_after if accepted else issues_before,
            fixes_applied=tuple(fixes) if accepted else (),
        )

    def _sections_for(
        self,
        issues: Sequence[LayoutIssue],
        kinds: frozenset,
        sections: CoverLetterSections,
    ) -> List[SectionName]:
        """Sections named by matching issues; letter-wide issues target every section."""
        targets: Dict[SectionName, None] = {}
        for issue in issues:
            if issue.issue_type not in kinds:
                continue
            if issue.section is None:
                for name in sections.populated():
                    targets[name] = None
            else:
                targets[issue.section] = None
        return [name for name in SectionName if name in targets]

    def _split_dense(self, paragraphs: List[str]) -> List[str]:
        result: List[str] = []
        pending = [(p, 0) for p in paragraphs]
        while pending:
            paragraph, depth = pending.pop(0)
            too_dense = (
                self.estimate_lines(paragraph) > self.config.max_lines_per_paragraph
                or count_words(paragraph) > self.config.max_words_per_paragraph
            )
            if not too_dense or depth >= MAX_SPLITS_PER_PARAGRAPH or is_financial_summary_block(paragraph):
                result.append(paragraph)
                continue
            halves = split_paragraph_at_middle(paragraph)
            if halves is None:
                result.append(paragraph)
                continue
            pending[:0] = [(halves[0], depth + 1), (halves[1], depth + 1)]
        return result
