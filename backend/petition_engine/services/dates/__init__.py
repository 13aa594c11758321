"""Date consistency validation"""
from .consistency import (
    DateConsistencyValidator, parse_date, date_tokens,
    ENTRY_NOT_BEFORE_EXPIRY, FILING_AFTER_EXPIRY, PROGRAM_DATES_DIRECTIVE, ALL_DATES_DIRECTIVE,
)

__all__ = [
    "DateConsistencyValidator", "parse_date", "date_tokens",
    "ENTRY_NOT_BEFORE_EXPIRY", "FILING_AFTER_EXPIRY", "PROGRAM_DATES_DIRECTIVE",
    "ALL_DATES_DIRECTIVE",
]
