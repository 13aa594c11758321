"""
Compliance Rule Catalog

Every phrase-level rule as an auditable table row:
    rule_id -> category -> pattern -> severity -> message -> scope

scope=None means the rule applies to the whole letter; otherwise only the
named section is scanned. Rules that need computed facts (funds decision,
date suppressions, available exhibits) live in the checker instead.
"""
from __future__ import annotations
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from ...models.ssot import SectionName, Severity


class RuleCategory(str, Enum):
    DATES = "dates"
    STATUS_CONCLUSION = "status_conclusion"
    FINANCIAL_TRANSACTION = "financial_transaction"
    FINANCIAL_COMPLETENESS = "financial_completeness"
    FINANCIAL_CONSISTENCY = "financial_consistency"
    EMPLOYMENT = "employment"
    TIES = "ties"
    VOICE = "voice"
    CITATION_DENSITY = "citation_density"
    OVERCLAIM = "overclaim"
    VOCABULARY = "vocabulary"
    LEGAL_CITATION = "legal_citation"
    STRUCTURE = "structure"


@dataclass(frozen=True)
class TermRule:
    rule_id: str
    category: RuleCategory
    pattern: str
    severity: Severity
    message: str
    scope: Optional[SectionName] = None
    case_sensitive: bool = False

    @property
    def regex(self) -> re.Pattern:
        return re.compile(self.pattern, 0 if self.case_sensitive else re.IGNORECASE)

    def find(self, text: str) -> Optional[str]:
        """First matching substring, or None."""
        match = self.regex.search(text or "")
        return match.group(0) if match else None


def _terms(*terms: str) -> str:
    return r"\b(?:" + "|".join(terms) + r")\b"


# =============================================================================
# STATUS CONCLUSIONS (the adjudicator's prerogative)
# =============================================================================

STATUS_CONCLUSION_RULES: List[TermRule] = [
    TermRule(
        rule_id="STATUS_MAINTAINED",
        category=RuleCategory.STATUS_CONCLUSION,
        pattern=r"\bmaintained\s+(?:(?:his|her|their|lawful|valid)\s+)*status\b",
        severity=Severity.ERROR,
        message="Legal conclusion 'maintained status' - state the facts of admission instead",
    ),
    TermRule(
        rule_id="STATUS_ELIGIBLE",
        category=RuleCategory.STATUS_CONCLUSION,
        pattern=_terms("eligible"),
        severity=Severity.ERROR,
        message="Legal conclusion 'eligible' - eligibility is determined by the adjudicator",
    ),
    TermRule(
        rule_id="STATUS_MEETS_ALL",
        category=RuleCategory.STATUS_CONCLUSION,
        pattern=r"\bmeets\s+all(?:\s+(?:of\s+the|the))?\s+requirements\b",
        severity=Severity.ERROR,
        message="Legal conclusion 'meets all requirements'",
    ),
    TermRule(
        rule_id="STATUS_COMPLIES_ALL",
        category=RuleCategory.STATUS_CONCLUSION,
        pattern=r"\bcompl(?:ies|ied|y)\s+with\s+all\b",
        severity=Severity.ERROR,
        message="Legal conclusion 'complies with all'",
    ),
    TermRule(
        rule_id="STATUS_SATISFIES_ALL",
        category=RuleCategory.STATUS_CONCLUSION,
        pattern=r"\bsatisf(?:ies|ied|y)\s+all\b",
        severity=Severity.ERROR,
        message="Legal conclusion 'satisfies all'",
    ),
]


# =============================================================================
# FINANCIAL TRANSACTIONS (aggregate capacity only)
# =============================================================================

TRANSACTION_TERMS = (
    r"deposit(?:s|ed)?",
    r"withdrawals?",
    r"withdrew",
    r"transfer(?:s|red)?",
    r"wire\s+transfers?",
    r"zelle",
    r"venmo",
    r"paypal",
    r"pix",
    r"cash\s+app",
    r"western\s+union",
)

FINANCIAL_TRANSACTION_RULES: List[TermRule] = [
    TermRule(
        rule_id="FIN_TRANSACTION_TERM",
        category=RuleCategory.FINANCIAL_TRANSACTION,
        pattern=_terms(*TRANSACTION_TERMS),
        severity=Severity.ERROR,
        message="Transaction-level vocabulary in the financial section - assert aggregate capacity only",
        scope=SectionName.FINANCIAL_ABILITY,
    ),
]


# =============================================================================
# EMPLOYMENT
# =============================================================================

EMPLOYMENT_RULES: List[TermRule] = [
    TermRule(
        rule_id="EMPLOYMENT_PAST_PHRASING",
        category=RuleCategory.EMPLOYMENT,
        pattern=r"\b(?:previously|formerly)\s+(?:worked|employed)\b|\bwork\s+experience\b|\bemployment\s+history\b",
        severity=Severity.WARNING,
        message="Prior employment should be described only as 'professional background'",
    ),
]


# =============================================================================
# TIES TO HOME COUNTRY (objective ties only)
# =============================================================================

SUBJECTIVE_TIES_TERMS = (
    r"very\s+important\s+to\s+me",
    r"(?:i\s+feel\s+)?it\s+is\s+my\s+duty",
    r"significant\s+to",
    r"instilled",
    r"sense\s+of\s+purpose",
    r"cherish(?:es|ed)?",
    r"deeply\s+(?:rooted|connected|attached)",
    r"my\s+heart",
    r"proud\s+to",
    r"my\s+dream",
)

TIES_RULES: List[TermRule] = [
    TermRule(
        rule_id="TIES_SUBJECTIVE_TERM",
        category=RuleCategory.TIES,
        pattern=_terms(*SUBJECTIVE_TIES_TERMS),
        severity=Severity.WARNING,
        message="Subjective or emotional language in ties - only objective, verifiable ties are weighed",
        scope=SectionName.TIES_TO_HOME_COUNTRY,
    ),
]

OBJECTIVE_TIES_PATTERNS: Tuple[str, ...] = (
    r"\bemployment\s+(?:contract|letter|agreement|offer)\b",
    r"\b(?:leave\s+of\s+absence|position\s+(?:is\s+)?(?:held|reserved|awaiting))\b",
    r"\b(?:owns?|owned|ownership\s+of)\s+(?:a\s+|an\s+)?(?:real\s+)?(?:property|apartment|house|home|land|business|company)\b",
    r"\b(?:property|real\s+estate)\s+(?:deed|title|registration|located)\b",
    r"\blease\b",
    r"\bbank\s+accounts?\s+in\b",
    r"\b(?:spouse|children|child|parents?|dependents?)\s+(?:who\s+)?(?:reside|resides|residing|live|lives|living)\b",
    r"\bfinancial(?:ly)?\s+(?:dependen(?:t|cy|ce)|support(?:s|ing)?)\b",
    r"\breturn\s+to\s+(?:his|her|their|my)\s+(?:position|employment|job|role|business)\b",
)


# =============================================================================
# OVERCLAIMS / VOCABULARY / CITATIONS
# =============================================================================

OVERCLAIM_RULES: List[TermRule] = [
    TermRule(
        rule_id="OVERCLAIM_GUARANTEE",
        category=RuleCategory.OVERCLAIM,
        pattern=_terms(
            r"will\s+be\s+approved",
            r"guarantee(?:d|s)?",
            r"certain(?:ly)?",
            r"definitely",
            r"assured(?:ly)?",
        ),
        severity=Severity.ERROR,
        message="Guarantee language - outcomes cannot be promised",
    ),
]

VOCABULARY_RULES: List[TermRule] = [
    TermRule(
        rule_id="VOCAB_STUDENT_VISA",
        category=RuleCategory.VOCABULARY,
        pattern=r"\bstudent\s+visa\b",
        severity=Severity.ERROR,
        message="Use 'F-1 student status' instead of 'student visa'",
    ),
]

LEGAL_CITATION_RULES: List[TermRule] = [
    TermRule(
        rule_id="CITATION_GENERIC_214_1",
        category=RuleCategory.LEGAL_CITATION,
        pattern=r"\b8\s*C\.?\s*F\.?\s*R\.?\s*(?:§+|sections?|sec\.)?\s*214\.1(?![\d(])",
        severity=Severity.ERROR,
        message="Generic citation 8 C.F.R. 214.1 - cite 8 C.F.R. Section 248.1 and Section 214.2(f)",
    ),
]


DEFAULT_RULE_CATALOG: Tuple[TermRule, ...] = tuple(
    STATUS_CONCLUSION_RULES
    + FINANCIAL_TRANSACTION_RULES
    + EMPLOYMENT_RULES
    + TIES_RULES
    + OVERCLAIM_RULES
    + VOCABULARY_RULES
    + LEGAL_CITATION_RULES
)


def get_rule(rule_id: str, catalog: Tuple[TermRule, ...] = DEFAULT_RULE_CATALOG) -> Optional[TermRule]:
    for rule in catalog:
        if rule.rule_id == rule_id:
            return rule
    return None
