"""
Petition Engine - Document Assembler

Orchestrates one generation run:

    analysis (exhibits, funds, dates, missing documents)
      -> prechecks (fatal: missing documents, no funds, impossible dates)
      -> external text generation (async, the only suspension point)
      -> compliance rule check (fatal errors abort, no document produced)
      -> per-section sizing -> global budget
      -> layout validation -> auto-fix (one attempt, never looped)
      -> compliance re-check of the sized text (revert sizing if it broke a rule)
      -> rendering with an exhibit index of exhibits both available and cited

Every derived structure is recomputed from the extracted facts and the
latest generated text; nothing is patched in place.
"""
from __future__ import annotations
import logging
from typing import Dict, List, Optional, Tuple

from ...config import PipelineConfig, DEFAULT_CONFIG
from ...models.ssot import (
    AggregatedApplicationData, ApplicationAnalysis, AssembledDocument, AssemblyReport,
    AssemblyStatus, CoverLetterSections, FundsDecision, LayoutValidationResult, SizingAction,
)
from ..analysis import analyze_application
from ..compliance.checker import ComplianceRuleChecker
from ..dates.consistency import DateInput, parse_date
from ..exhibits.tracker import ExhibitCitationTracker
from ..financial.currency import format_usd
from ..generation.client import TextGenerator, parse_generated_sections
from ..sizing.engine import SizingEngine, count_words
from ..sizing.layout import LayoutValidator
from .context import build_generation_context
from .rendering import CoverLetterRenderer

logger = logging.getLogger(__name__)

NO_FINANCIAL_RESOURCES = "No financial resources documented"


class DocumentAssembler:
    """
    Run the full pipeline for one application.

    Construct once per config; instances hold no per-application state, so
    one assembler may serve concurrent runs.
    """

    def __init__(
        self,
        config: PipelineConfig = DEFAULT_CONFIG,
        generator: Optional[TextGenerator] = None,
    ):
        self.config = config
        self.generator = generator
        self.checker = ComplianceRuleChecker(config)
        self.sizing = SizingEngine(config)
        self.layout = LayoutValidator(config)
        self.tracker = ExhibitCitationTracker()
        self.renderer = CoverLetterRenderer()

    # =========================================================================
    # ENTRY POINTS
    # =========================================================================

    async def generate(
        self,
        data: AggregatedApplicationData,
        filing_date: DateInput = None,
    ) -> AssembledDocument:
        """
        Analyze, call the text generator, then assemble.

        The generator is never called when a precheck already blocks the
        application. GenerationError propagates for malformed replies.
        """
        if self.generator is None:
            raise ValueError("DocumentAssembler.generate requires a text generator")

        analysis = analyze_application(data, self.config, filing_date)
        errors, warnings = self.precheck(analysis)
        if errors:
            return self._blocked(errors, warnings, analysis)

        context = build_generation_context(data, analysis, self.config)
        logger.info(f"Requesting {len(context.output_sections)} sections from text generator")
        payload = await self.generator.generate_sections(context)
        sections = parse_generated_sections(payload)
        return self.assemble(data, sections, analysis=analysis, filing_date=filing_date)

    def assemble(
        self,
        data: AggregatedApplicationData,
        sections: CoverLetterSections,
        analysis: Optional[ApplicationAnalysis] = None,
        filing_date: DateInput = None,
    ) -> AssembledDocument:
        """Validate, size, lay out and render already-generated sections."""
        if analysis is None:
            analysis = analyze_application(data, self.config, filing_date)

        errors, warnings = self.precheck(analysis)
        if errors:
            return self._blocked(errors, warnings, analysis)

        # Compliance on the text exactly as generated
        rules = self.checker.check_rules(sections, data, analysis)
        if not rules.passed:
            return self._blocked(list(rules.errors), warnings + list(rules.warnings), analysis)

        # Sizing, layout and one auto-fix attempt
        sized, actions, sizing_warnings = self._size(sections)
        layout_result = self.layout.validate_layout(sized)
        if not layout_result.is_valid:
            fix = self.layout.auto_fix(sized, layout_result.issues)
            if fix.accepted:
                sized = fix.sections
                layout_result = self.layout.validate_layout(sized)

        # Sizing must never introduce a violation the generated text did not have
        final_sections = sized
        recheck = self.checker.check_rules(sized, data, analysis)
        if recheck.passed:
            warnings.extend(recheck.warnings)
            warnings.extend(sizing_warnings)
        else:
            logger.warning(f"Sized text failed re-check ({len(recheck.errors)} errors); sizing reverted")
            final_sections = sections
            layout_result = self.layout.validate_layout(sections)
            actions = {name.value: SizingAction.OK.value for name, _ in sections}
            warnings.extend(rules.warnings)
            warnings.append(
                "Sizing reverted because the sized text failed the rule re-check: "
                + "; ".join(recheck.errors)
            )

        warnings.extend(f"Layout: {issue.message}" for issue in layout_result.issues)

        full_text = final_sections.full_text()
        referenced = sorted(self.tracker.exhibits_referenced_in(full_text))
        exhibit_index = self.tracker.exhibit_index(analysis.exhibits, full_text)
        document = self.renderer.render(
            data, final_sections, exhibit_index, letter_date=parse_date(filing_date)
        )

        status = self._status(warnings, layout_result)
        logger.info(
            f"Assembly {status.value}: {count_words(full_text)} words, "
            f"{len(warnings)} warnings, exhibits cited={''.join(referenced) or '-'}"
        )
        return AssembledDocument(
            document=document,
            sections=final_sections,
            report=AssemblyReport(
                status=status,
                errors=(),
                warnings=tuple(_dedupe(warnings)),
                layout_issues=layout_result.issues,
                sizing_actions=actions,
                referenced_exhibits=tuple(referenced),
            ),
            analysis=analysis,
        )

    # =========================================================================
    # PRECHECKS (before any text exists)
    # =========================================================================

    def precheck(self, analysis: ApplicationAnalysis) -> Tuple[List[str], List[str]]:
        """
        Fatal and advisory findings that need no generated text.

        Fatal: missing required documents, no documented funds, impossible
        date ordering. Advisory: status/savings warnings, date warnings,
        insufficient or indeterminate funds.
        """
        errors: List[str] = []
        warnings: List[str] = []

        errors.extend(f"Missing required document: {label}" for label in analysis.missing_documents)

        funds = analysis.funds
        if analysis.financial.total_available <= 0:
            errors.append(NO_FINANCIAL_RESOURCES)
        elif funds.decision == FundsDecision.INSUFFICIENT:
            warnings.append(
                f"Available funds {format_usd(funds.total_available)} fall short of the required "
                f"{format_usd(funds.total_required)} by {format_usd(funds.deficit)}"
            )
        elif funds.decision == FundsDecision.INDETERMINATE:
            warnings.append("Required funds could not be determined from the program record")

        if analysis.financial.used_name_heuristic:
            warnings.append("Sponsor statements were attributed by name matching - verify ownership")

        errors.extend(analysis.dates.errors)
        warnings.extend(analysis.dates.warnings)
        warnings.extend(analysis.status_warnings)
        return errors, warnings

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _size(self, sections: CoverLetterSections) -> Tuple[CoverLetterSections, Dict[str, str], List[str]]:
        sized, actions = self.sizing.size_sections(sections)
        sized = self.sizing.enforce_global_budget(sized)

        warnings = []
        for name, text in sized:
            limits = self.config.limits_for(name)
            words = count_words(text)
            if actions.get(name.value) == SizingAction.OK_UNDER_MIN.value:
                warnings.append(
                    f"[{name.value}] Under minimum length ({words} < {limits.min_words} words)"
                )
            elif words > limits.max_words:
                warnings.append(
                    f"[{name.value}] Still over budget after sizing ({words} > {limits.max_words} words)"
                )
        total = count_words(sized.full_text())
        if total > self.config.max_total_words:
            warnings.append(f"Letter exceeds {self.config.max_total_words} words ({total})")
        return sized, actions, warnings

    def _status(self, warnings: List[str], layout_result: LayoutValidationResult) -> AssemblyStatus:
        if warnings or not layout_result.is_valid:
            return AssemblyStatus.NEEDS_REVIEW
        return AssemblyStatus.FINAL

    def _blocked(
        self,
        errors: List[str],
        warnings: List[str],
        analysis: Optional[ApplicationAnalysis],
    ) -> AssembledDocument:
        logger.warning(f"Assembly blocked: {len(errors)} fatal errors")
        return AssembledDocument(
            document=None,
            sections=None,
            report=AssemblyReport(
                status=AssemblyStatus.BLOCKED,
                errors=tuple(_dedupe(errors)),
                warnings=tuple(_dedupe(warnings)),
            ),
            analysis=analysis,
        )


def _dedupe(messages: List[str]) -> List[str]:
    seen = set()
    result = []
    for message in messages:
        if message not in seen:
            seen.add(message)
            result.append(message)
    return result
