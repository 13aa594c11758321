"""Financial reconciliation - amount parsing, sufficiency decision, summary block"""
from .currency import parse_amount, parse_usd_amount, format_usd
from .reconciler import FinancialReconciler, names_match
from .summary import (
    build_financial_summary, extract_financial_summary, is_financial_summary_block,
    REQUIREMENTS_HEADING, RESOURCES_HEADING,
)

__all__ = [
    "parse_amount", "parse_usd_amount", "format_usd",
    "FinancialReconciler", "names_match",
    "build_financial_summary", "extract_financial_summary", "is_financial_summary_block",
    "REQUIREMENTS_HEADING", "RESOURCES_HEADING",
]
