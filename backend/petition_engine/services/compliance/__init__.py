"""Compliance - legal-safety rule catalog and checker"""
from .catalog import (
    RuleCategory, TermRule, DEFAULT_RULE_CATALOG, OBJECTIVE_TIES_PATTERNS, get_rule,
)
from .citations import LEGAL_CITATIONS, FORBIDDEN_CITATIONS, format_legal_basis
from .checker import (
    ComplianceRuleChecker, DATE_SHAPED_PATTERN, first_person_marker, third_person_marker,
)

__all__ = [
    "RuleCategory", "TermRule", "DEFAULT_RULE_CATALOG", "OBJECTIVE_TIES_PATTERNS", "get_rule",
    "LEGAL_CITATIONS", "FORBIDDEN_CITATIONS", "format_legal_basis",
    "ComplianceRuleChecker", "DATE_SHAPED_PATTERN", "first_person_marker", "third_person_marker",
]
