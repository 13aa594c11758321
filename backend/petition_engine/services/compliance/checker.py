"""
Compliance Rule Checker

Verifies generated cover letter sections against the legal-safety rule set.
The text generator is never trusted: everything it returns is re-checked here.

Rule families:
1. Catalog term rules (status conclusions, transaction vocabulary, overclaims,
   vocabulary precision, subjective ties, generic citations)
2. Date suppressions (directives from DateConsistencyValidator)
3. Financial completeness and consistency (tuition/living pairing,
   available-vs-required contradictions, stated vs reconciled totals)
4. Employment (present-tense domestic employment)
5. Objective ties presence
6. Voice / register
7. Citation density and unavailable exhibits
8. Legal basis citation and required sections

passed == (no errors). Warnings never block and are always returned.
"""
from __future__ import annotations
import logging
import re
from typing import List, Optional, Sequence, Tuple

from ...config import PipelineConfig, DEFAULT_CONFIG
from ...models.ssot import (
    AggregatedApplicationData, ApplicationAnalysis, CoverLetterSections, FundsDecision,
    OPTIONAL_SECTIONS, RuleCheckResult, RuleFinding, SectionName, Severity, Voice,
)
from ..analysis import analyze_application
from ..dates.consistency import DateInput
from ..exhibits.tracker import ExhibitCitationTracker
from ..financial.currency import format_usd, parse_usd_amount
from ..financial.summary import extract_financial_summary
from .catalog import DEFAULT_RULE_CATALOG, OBJECTIVE_TIES_PATTERNS, RuleCategory, TermRule

logger = logging.getLogger(__name__)


# =============================================================================
# PATTERNS
# =============================================================================

MONTHS = (
    "January|February|March|April|May|June|July|August|"
    "September|October|November|December"
)
DATE_SHAPED_PATTERN = re.compile(
    r"\b\d{4}-\d{1,2}-\d{1,2}\b"
    r"|\b\d{1,2}/\d{1,2}/\d{2,4}\b"
    r"|\b(?:" + MONTHS + r")\s+(?:\d{1,2},?\s+)?\d{4}\b",
    re.IGNORECASE,
)

TUITION_MENTION = re.compile(r"\btuition\b", re.IGNORECASE)
LIVING_MENTION = re.compile(r"\bliving\s+expenses\b", re.IGNORECASE)

_FIGURE = r"[^$\d\n]{0,30}?(?:USD\s*)?\$\s*([\d][\d,.]*)"
AVAILABLE_FIGURE = re.compile(r"\b(?:total\s+)?available\b" + _FIGURE, re.IGNORECASE)
REQUIRED_FIGURE = re.compile(r"\b(?:total\s+)?required\b" + _FIGURE, re.IGNORECASE)

ADEQUACY_CLAIM = re.compile(
    r"\b(?:adequate|sufficient|ample)\s+(?:financial\s+)?(?:funds|resources|means|support)\b"
    r"|\bsufficient\s+to\s+cover\b",
    re.IGNORECASE,
)

PRESENT_EMPLOYMENT = re.compile(
    r"\b(?:is|am|are)\s+(?:currently\s+)?(?:employed|working)\b"
    r"|\bcurrently\s+(?:employed|works|working)\b"
    r"|\bworks\s+(?:at|for|as)\b",
    re.IGNORECASE,
)
HOME_LOCATION = re.compile(r"\bhome\s+country\b|\babroad\b", re.IGNORECASE)
EMPLOYMENT_LEAVE = re.compile(r"\bleave\s+of\s+absence\b|\bon\s+leave\b", re.IGNORECASE)
US_LOCATION = re.compile(
    r"\bUnited\s+States\b|\bU\.\s?S\.(?:\s?A\.)?|\bUSA\b|\bAmerica\b", re.IGNORECASE
)
# The employment verb only governs its own clause
CLAUSE_BOUNDARY = re.compile(r"[,;:]|\b(?:and|but|while|whereas)\b", re.IGNORECASE)
EMPLOYMENT_TAIL_WORDS = 10

SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")

# First person: the pronoun "I" (not a numeral after Form, Exhibit, Part, ...), possessives, verbs
FIRST_PERSON_PRONOUN = re.compile(
    r"(?<![Ee]xhibit )(?<![Ee]xhibits )(?<![Ff]orm )(?<![Ss]ection )"
    r"(?<![Pp]art )(?<![Ss]chedule )(?<![Cc]hapter )(?<![Tt]itle )"
    r"\bI\b(?![-.(])"
)
FIRST_PERSON_POSSESSIVE = re.compile(r"\b(?:my|me|myself|mine)\b", re.IGNORECASE)
FIRST_PERSON_VERB = re.compile(
    r"\bI\s+(?:am|have|was|will|intend|plan|wish|request|respectfully|entered|hold)\b"
)
THIRD_PERSON_REFERENCE = re.compile(
    r"\bthe\s+(?:applicant|beneficiary|petitioner)\b", re.IGNORECASE
)
THIRD_PERSON_VERB = re.compile(
    r"\b(?:he|she)\s+(?:is|has|was|will|intends|plans|seeks|requests|entered|holds)\b",
    re.IGNORECASE,
)
_NAME_VERBS = r"(?:is|has|was|will|intends|plans|seeks|requests|entered|holds|respectfully)"

LEGAL_BASIS_248 = re.compile(r"\b248\b")


class ComplianceRuleChecker:
    """Rule checks over CoverLetterSections. Construct once per config."""

    def __init__(self, config: PipelineConfig = DEFAULT_CONFIG):
        self.config = config
        self.catalog: Tuple[TermRule, ...] = (
            tuple(config.rule_catalog) if config.rule_catalog is not None else DEFAULT_RULE_CATALOG
        )
        self.tracker = ExhibitCitationTracker()

    def check_rules(
        self,
        sections: CoverLetterSections,
        data: AggregatedApplicationData,
        analysis: Optional[ApplicationAnalysis] = None,
        filing_date: DateInput = None,
    ) -> RuleCheckResult:
        if analysis is None:
            analysis = analyze_application(data, self.config, filing_date)

        findings: List[RuleFinding] = []
        findings.extend(self.check_term_rules(sections))
        findings.extend(self.check_date_suppressions(sections, analysis))
        findings.extend(self.check_financial_completeness(sections))
        findings.extend(self.check_financial_consistency(sections, analysis))
        findings.extend(self.check_employment(sections, data))
        findings.extend(self.check_objective_ties(sections))
        findings.extend(self.check_voice(sections, data))
        findings.extend(self.check_citation_density(sections, analysis))
        findings.extend(self.check_legal_basis(sections))
        findings.extend(self.check_required_sections(sections))

        result = RuleCheckResult(
            errors=tuple(_format(f) for f in findings if f.severity == Severity.ERROR),
            warnings=tuple(_format(f) for f in findings if f.severity == Severity.WARNING),
            findings=tuple(findings),
        )
        logger.info(
            f"Rule check {'passed' if result.passed else 'failed'}: "
            f"{len(result.errors)} errors, {len(result.warnings)} warnings"
        )
        return result

    # =========================================================================
    # CATALOG TERM RULES
    # =========================================================================

    def check_term_rules(self, sections: CoverLetterSections) -> List[RuleFinding]:
        findings = []
        for rule in self.catalog:
            for name, text in sections:
                if rule.scope is not None and rule.scope != name:
                    continue
                matched = rule.find(text)
                if matched:
                    findings.append(RuleFinding(
                        rule_id=rule.rule_id,
                        category=rule.category.value,
                        severity=rule.severity,
                        message=f"{rule.message} (found '{matched}')",
                        section=name,
                    ))
        return findings

    # =========================================================================
    # DATES
    # =========================================================================

    def check_date_suppressions(
        self,
        sections: CoverLetterSections,
        analysis: ApplicationAnalysis,
    ) -> List[RuleFinding]:
        findings = []
        dates = analysis.dates

        if dates.program_dates_unsafe:
            purpose = sections.get(SectionName.PURPOSE_OF_STUDY)
            shaped = DATE_SHAPED_PATTERN.search(purpose)
            if shaped:
                findings.append(RuleFinding(
                    rule_id="DATES_PROGRAM_SUPPRESSED",
                    category=RuleCategory.DATES.value,
                    severity=Severity.ERROR,
                    message=f"Program dates must not be mentioned (found '{shaped.group(0)}')",
                    section=SectionName.PURPOSE_OF_STUDY,
                ))
            for name, text in sections:
                token = _first_token_in(text, dates.program_date_tokens)
                if token and not (name == SectionName.PURPOSE_OF_STUDY and shaped):
                    findings.append(RuleFinding(
                        rule_id="DATES_PROGRAM_SUPPRESSED",
                        category=RuleCategory.DATES.value,
                        severity=Severity.ERROR,
                        message=f"Program dates must not be mentioned (found '{token}')",
                        section=name,
                    ))

        if dates.any_dates_unsafe:
            for name, text in sections:
                shaped = DATE_SHAPED_PATTERN.search(text)
                if shaped:
                    findings.append(RuleFinding(
                        rule_id="DATES_ALL_SUPPRESSED",
                        category=RuleCategory.DATES.value,
                        severity=Severity.ERROR,
                        message=f"Specific dates must not be mentioned (found '{shaped.group(0)}')",
                        section=name,
                    ))
        return findings

    # =========================================================================
    # FINANCIAL
    # =========================================================================

    def check_financial_completeness(self, sections: CoverLetterSections) -> List[RuleFinding]:
        text = sections.get(SectionName.FINANCIAL_ABILITY)
        has_tuition = bool(TUITION_MENTION.search(text))
        has_living = bool(LIVING_MENTION.search(text))
        if has_tuition == has_living:
            return []
        present, absent = ("tuition", "living expenses") if has_tuition else ("living expenses", "tuition")
        return [RuleFinding(
            rule_id="FIN_INCOMPLETE_REQUIREMENTS",
            category=RuleCategory.FINANCIAL_COMPLETENESS.value,
            severity=Severity.ERROR,
            message=f"Financial section mentions {present} but not {absent}",
            section=SectionName.FINANCIAL_ABILITY,
        )]

    def check_financial_consistency(
        self,
        sections: CoverLetterSections,
        analysis: ApplicationAnalysis,
    ) -> List[RuleFinding]:
        findings = []
        text = sections.get(SectionName.FINANCIAL_ABILITY)
        window = self.config.contradiction_window_chars

        available = [(m.start(), parse_usd_amount(m.group(1))) for m in AVAILABLE_FIGURE.finditer(text)]
        required = [(m.start(), parse_usd_amount(m.group(1))) for m in REQUIRED_FIGURE.finditer(text)]

        close_contradiction = None
        loose_mismatch = None
        for avail_pos, avail_amount in available:
            for req_pos, req_amount in required:
                if avail_amount <= 0 or req_amount <= 0 or avail_amount >= req_amount:
                    continue
                if abs(avail_pos - req_pos) <= window:
                    close_contradiction = close_contradiction or (avail_amount, req_amount)
                else:
                    loose_mismatch = loose_mismatch or (avail_amount, req_amount)

        if close_contradiction:
            avail_amount, req_amount = close_contradiction
            findings.append(RuleFinding(
                rule_id="FIN_CONTRADICTION",
                category=RuleCategory.FINANCIAL_CONSISTENCY.value,
                severity=Severity.ERROR,
                message=(
                    f"Stated available funds {format_usd(avail_amount)} are less than stated "
                    f"required funds {format_usd(req_amount)}"
                ),
                section=SectionName.FINANCIAL_ABILITY,
            ))
        elif loose_mismatch:
            avail_amount, req_amount = loose_mismatch
            findings.append(RuleFinding(
                rule_id="FIN_LOOSE_MISMATCH",
                category=RuleCategory.FINANCIAL_CONSISTENCY.value,
                severity=Severity.WARNING,
                message=(
                    f"An available figure {format_usd(avail_amount)} appears below a required "
                    f"figure {format_usd(req_amount)} elsewhere in the financial section"
                ),
                section=SectionName.FINANCIAL_ABILITY,
            ))

        stated = extract_financial_summary(text)
        if stated.total_available is not None and abs(stated.total_available - analysis.financial.total_available) >= 1:
            findings.append(RuleFinding(
                rule_id="FIN_STATED_AVAILABLE_MISMATCH",
                category=RuleCategory.FINANCIAL_CONSISTENCY.value,
                severity=Severity.WARNING,
                message=(
                    f"Stated Total Available {format_usd(stated.total_available)} differs from "
                    f"documented {format_usd(analysis.financial.total_available)}"
                ),
                section=SectionName.FINANCIAL_ABILITY,
            ))
        reconciled_required = analysis.required_funds.total_required
        if (
            stated.total_required is not None
            and reconciled_required is not None
            and abs(stated.total_required - reconciled_required) >= 1
        ):
            findings.append(RuleFinding(
                rule_id="FIN_STATED_REQUIRED_MISMATCH",
                category=RuleCategory.FINANCIAL_CONSISTENCY.value,
                severity=Severity.WARNING,
                message=(
                    f"Stated Total Required {format_usd(stated.total_required)} differs from "
                    f"program requirement {format_usd(reconciled_required)}"
                ),
                section=SectionName.FINANCIAL_ABILITY,
            ))

        if analysis.funds.decision == FundsDecision.INSUFFICIENT:
            for name, section_text in sections:
                claim = ADEQUACY_CLAIM.search(section_text)
                if claim:
                    findings.append(RuleFinding(
                        rule_id="FIN_ADEQUACY_WHILE_INSUFFICIENT",
                        category=RuleCategory.FINANCIAL_CONSISTENCY.value,
                        severity=Severity.ERROR,
                        message=(
                            f"Claims '{claim.group(0)}' while documented funds fall short by "
                            f"{format_usd(analysis.funds.deficit)}"
                        ),
                        section=name,
                    ))
        return findings

    # =========================================================================
    # EMPLOYMENT / TIES
    # =========================================================================

    def check_employment(
        self,
        sections: CoverLetterSections,
        data: AggregatedApplicationData,
    ) -> List[RuleFinding]:
        findings = []
        home = _home_country_pattern(data.application.country)
        domestic = _domestic_location_patterns(data)
        for name, text in sections:
            for sentence in SENTENCE_BOUNDARY.split(text):
                match = PRESENT_EMPLOYMENT.search(sentence)
                if not match:
                    continue
                clause = _employment_clause(sentence[match.end():])
                if not any(p.search(clause) for p in domestic):
                    if HOME_LOCATION.search(clause) or (home and home.search(clause)):
                        continue
                    if EMPLOYMENT_LEAVE.search(sentence) and not any(p.search(sentence) for p in domestic):
                        continue
                findings.append(RuleFinding(
                    rule_id="EMPLOYMENT_PRESENT_DOMESTIC",
                    category=RuleCategory.EMPLOYMENT.value,
                    severity=Severity.ERROR,
                    message=f"Present-tense employment claim '{match.group(0)}' - not permitted",
                    section=name,
                ))
                break
        return findings

    def check_objective_ties(self, sections: CoverLetterSections) -> List[RuleFinding]:
        text = sections.get(SectionName.TIES_TO_HOME_COUNTRY)
        if not text:
            return []
        if any(re.search(pattern, text, re.IGNORECASE) for pattern in OBJECTIVE_TIES_PATTERNS):
            return []
        return [RuleFinding(
            rule_id="TIES_NO_OBJECTIVE_TIE",
            category=RuleCategory.TIES.value,
            severity=Severity.WARNING,
            message="No objective tie (employment, property, family residence, financial dependency) stated",
            section=SectionName.TIES_TO_HOME_COUNTRY,
        )]

    # =========================================================================
    # VOICE
    # =========================================================================

    def check_voice(
        self,
        sections: CoverLetterSections,
        data: AggregatedApplicationData,
    ) -> List[RuleFinding]:
        findings = []
        required = self.config.required_voice
        name_pattern = _applicant_name_pattern(data.applicant_name)
        found_required = False

        for name, text in sections:
            first = first_person_marker(text)
            third = third_person_marker(text, name_pattern)
            forbidden = first if required == Voice.THIRD_PERSON else third
            if required == Voice.THIRD_PERSON:
                found_required = found_required or third is not None
            else:
                found_required = found_required or first is not None
            if forbidden:
                findings.append(RuleFinding(
                    rule_id="VOICE_FORBIDDEN",
                    category=RuleCategory.VOICE.value,
                    severity=Severity.ERROR,
                    message=(
                        f"{_voice_label(required)} required; found "
                        f"{_voice_label(_other(required)).lower()} marker '{forbidden}'"
                    ),
                    section=name,
                ))

        if len(sections) and not found_required:
            findings.append(RuleFinding(
                rule_id="VOICE_REQUIRED_ABSENT",
                category=RuleCategory.VOICE.value,
                severity=Severity.WARNING,
                message=f"No {_voice_label(required).lower()} reference found anywhere in the letter",
            ))
        return findings

    # =========================================================================
    # CITATIONS
    # =========================================================================

    def check_citation_density(
        self,
        sections: CoverLetterSections,
        analysis: ApplicationAnalysis,
    ) -> List[RuleFinding]:
        findings = []
        populated = [
            name for name in sections.populated()
            if name in self.config.citation_sections
        ]
        total = 0
        for name in populated:
            count = self.tracker.count_citations(sections.get(name))
            total += count
            if count == 0:
                findings.append(RuleFinding(
                    rule_id="CITATION_SECTION_MISSING",
                    category=RuleCategory.CITATION_DENSITY.value,
                    severity=Severity.WARNING,
                    message="Section carries no exhibit citation",
                    section=name,
                ))
        if populated and total < len(populated):
            findings.append(RuleFinding(
                rule_id="CITATION_DENSITY_LOW",
                category=RuleCategory.CITATION_DENSITY.value,
                severity=Severity.WARNING,
                message=f"{total} exhibit citations for {len(populated)} evidentiary sections",
            ))

        available = {exhibit.letter for exhibit in analysis.exhibits}
        cited = self.tracker.exhibits_referenced_in(sections.full_text())
        unknown = sorted(cited - available)
        if unknown:
            findings.append(RuleFinding(
                rule_id="CITATION_UNAVAILABLE_EXHIBIT",
                category=RuleCategory.CITATION_DENSITY.value,
                severity=Severity.WARNING,
                message=f"Cites exhibits with no supporting document: {', '.join(unknown)}",
            ))
        return findings

    def check_legal_basis(self, sections: CoverLetterSections) -> List[RuleFinding]:
        text = sections.get(SectionName.LEGAL_BASIS)
        if not text or LEGAL_BASIS_248.search(text):
            return []
        return [RuleFinding(
            rule_id="LEGAL_BASIS_MISSING_248",
            category=RuleCategory.LEGAL_CITATION.value,
            severity=Severity.WARNING,
            message="Legal basis does not cite Section 248 / 8 C.F.R. Section 248.1",
            section=SectionName.LEGAL_BASIS,
        )]

    def check_required_sections(self, sections: CoverLetterSections) -> List[RuleFinding]:
        present = set(sections.populated())
        return [
            RuleFinding(
                rule_id="STRUCTURE_SECTION_MISSING",
                category=RuleCategory.STRUCTURE.value,
                severity=Severity.ERROR,
                message="Required section is missing",
                section=name,
            )
            for name in SectionName
            if name not in OPTIONAL_SECTIONS and name not in present
        ]


# =============================================================================
# HELPERS
# =============================================================================

def first_person_marker(text: str) -> Optional[str]:
    for pattern in (FIRST_PERSON_VERB, FIRST_PERSON_PRONOUN, FIRST_PERSON_POSSESSIVE):
        match = pattern.search(text)
        if match:
            return match.group(0)
    return None


def third_person_marker(text: str, name_pattern: Optional[re.Pattern] = None) -> Optional[str]:
    patterns = [THIRD_PERSON_REFERENCE, THIRD_PERSON_VERB]
    if name_pattern is not None:
        patterns.append(name_pattern)
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(0)
    return None


def _applicant_name_pattern(name: Optional[str]) -> Optional[re.Pattern]:
    if not name:
        return None
    tokens = [re.escape(t) for t in name.split() if len(t) > 2]
    if not tokens:
        return None
    return re.compile(r"\b(?:" + "|".join(tokens) + r")\s+" + _NAME_VERBS + r"\b", re.IGNORECASE)


def _home_country_pattern(country: Optional[str]) -> Optional[re.Pattern]:
    country = (country or "").strip()
    if not country:
        return None
    return re.compile(r"\b" + re.escape(country) + r"\b", re.IGNORECASE)


def _domestic_location_patterns(data: AggregatedApplicationData) -> List[re.Pattern]:
    """US location markers plus the applicant's current city and state."""
    patterns = [US_LOCATION]
    address = data.application.current_address
    if address and address.city.strip():
        patterns.append(re.compile(r"\b" + re.escape(address.city.strip()) + r"\b", re.IGNORECASE))
    if address and address.state.strip():
        # State codes match in capitals only
        patterns.append(re.compile(r"\b" + re.escape(address.state.strip()) + r"\b"))
    return patterns


def _employment_clause(tail: str) -> str:
    """Words governed by an employment verb: up to the next clause boundary."""
    clause = CLAUSE_BOUNDARY.split(tail, maxsplit=1)[0]
    return " ".join(clause.split()[:EMPLOYMENT_TAIL_WORDS])


def _first_token_in(text: str, tokens: Sequence[str]) -> Optional[str]:
    lowered = text.lower()
    for token in tokens:
        if token and token.lower() in lowered:
            return token
    return None


def _other(voice: Voice) -> Voice:
    return Voice.FIRST_PERSON if voice == Voice.THIRD_PERSON else Voice.THIRD_PERSON


def _voice_label(voice: Voice) -> str:
    return "First-person" if voice == Voice.FIRST_PERSON else "Third-person"


def _format(finding: RuleFinding) -> str:
    if finding.section is not None:
        return f"[{finding.section.value}] {finding.message}"
    return finding.message
