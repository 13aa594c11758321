"""
Date Consistency Validator

Cross-checks independently extracted dates (entry, status expiry, program
start, filing) and decides which date claims are unsafe to state.

Rules (each independently evaluable; unparsable dates count as absent):
0. entry or expiry present but unparsable -> error (program start: warning)
1. entry >= expiry                 -> error, every date becomes unsafe
2. filing > expiry                 -> error
3. filing within N days of expiry  -> warning
4. program start < filing          -> warning
5. program start < entry           -> warning + "do not mention program dates"
"""
from __future__ import annotations
import logging
import re
from datetime import date, datetime
from typing import List, Optional, Tuple, Union

from dateutil import parser as date_parser

from ...config import PipelineConfig, DEFAULT_CONFIG
from ...models.ssot import AggregatedApplicationData, DateConsistencyFindings

logger = logging.getLogger(__name__)

DateInput = Union[str, date, datetime, None]

ENTRY_NOT_BEFORE_EXPIRY = "Invalid dates: entry not before expiry"
FILING_AFTER_EXPIRY = "Cannot file after expiry"
PROGRAM_DATES_DIRECTIVE = "DO NOT MENTION PROGRAM DATES"
ALL_DATES_DIRECTIVE = "DO NOT MENTION SPECIFIC DATES"
UNPARSABLE_DATE = "Unparsable date"

_KNOWN_FORMATS = ["%Y-%m-%d", "%m/%d/%Y", "%m-%d-%Y", "%Y/%m/%d", "%d %b %Y", "%d %B %Y"]
_PARSER_DEFAULT = datetime(2000, 1, 1)


def parse_date(value: DateInput) -> Optional[date]:
    """Parse a date value from various formats. Returns None when unparsable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None

    for fmt in _KNOWN_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    # Only free-text dates that carry a four-digit year are trusted
    if not any(token.isdigit() and len(token) == 4 for token in re.findall(r"\d+", text)):
        return None
    try:
        return date_parser.parse(text, default=_PARSER_DEFAULT).date()
    except (ValueError, OverflowError):
        return None


def date_tokens(raw: Optional[str], parsed: Optional[date]) -> Tuple[str, ...]:
    """Every textual rendering of a date the letter might use."""
    tokens: List[str] = []
    if raw and raw.strip():
        tokens.append(raw.strip())
    if parsed is not None:
        month = parsed.strftime("%B")
        tokens.extend([
            parsed.isoformat(),
            f"{month} {parsed.day}, {parsed.year}",
            f"{month} {parsed.day:02d}, {parsed.year}",
            f"{parsed.month:02d}/{parsed.day:02d}/{parsed.year}",
            f"{parsed.month}/{parsed.day}/{parsed.year}",
        ])
    seen = []
    for token in tokens:
        if token not in seen:
            seen.append(token)
    return tuple(seen)


def _is_present(value: DateInput) -> bool:
    if value is None:
        return False
    return not isinstance(value, str) or bool(value.strip())


class DateConsistencyValidator:

    def __init__(self, config: PipelineConfig = DEFAULT_CONFIG):
        self.config = config

    def validate_dates(
        self,
        entry_date: DateInput,
        status_expiry_date: DateInput,
        program_start_date: DateInput,
        filing_date: DateInput = None,
    ) -> DateConsistencyFindings:
        entry = parse_date(entry_date)
        expiry = parse_date(status_expiry_date)
        program_start = parse_date(program_start_date)
        filing = parse_date(filing_date) or date.today()

        errors: List[str] = []
        warnings: List[str] = []

        for label, raw, parsed, fatal in (
            ("entry", entry_date, entry, True),
            ("status expiry", status_expiry_date, expiry, True),
            ("program start", program_start_date, program_start, False),
        ):
            if not _is_present(raw) or parsed is not None:
                continue
            logger.warning(f"Unparsable {label} date '{raw}' treated as absent")
            if fatal:
                errors.append(
                    f"{UNPARSABLE_DATE}: {label} '{raw}'; date ordering against filing cannot be verified"
                )
            else:
                warnings.append(f"{UNPARSABLE_DATE}: {label} '{raw}'; verify the program start date")

        conflicts: List[str] = []
        program_dates_unsafe = False
        any_dates_unsafe = False

        if entry and expiry and entry >= expiry:
            errors.append(
                f"{ENTRY_NOT_BEFORE_EXPIRY} (entry {entry.isoformat()}, expiry {expiry.isoformat()})"
            )
            conflicts.append(ALL_DATES_DIRECTIVE)
            any_dates_unsafe = True

        if expiry:
            if filing > expiry:
                errors.append(
                    f"{FILING_AFTER_EXPIRY} (filing {filing.isoformat()}, expiry {expiry.isoformat()})"
                )
            elif (expiry - filing).days <= self.config.filing_proximity_days:
                warnings.append(
                    f"Filing date is within {self.config.filing_proximity_days} days of status "
                    f"expiry ({expiry.isoformat()})"
                )

        if program_start and program_start < filing:
            warnings.append(
                f"Program start date {program_start.isoformat()} is before the filing date; "
                f"the program may have already started"
            )

        if program_start and entry and program_start < entry:
            warnings.append(
                f"Program start date {program_start.isoformat()} is before the entry date "
                f"{entry.isoformat()}"
            )
            conflicts.append(PROGRAM_DATES_DIRECTIVE)
            program_dates_unsafe = True

        program_raw = program_start_date if isinstance(program_start_date, str) else None
        findings = DateConsistencyFindings(
            errors=tuple(errors),
            warnings=tuple(warnings),
            date_conflicts=tuple(conflicts),
            program_dates_unsafe=program_dates_unsafe,
            any_dates_unsafe=any_dates_unsafe,
            program_date_tokens=date_tokens(program_raw, program_start) if program_dates_unsafe else (),
        )

        if findings.date_conflicts:
            logger.info(f"Date suppressions active: {', '.join(findings.date_conflicts)}")
        return findings

    def validate_application(
        self,
        data: AggregatedApplicationData,
        filing_date: DateInput = None,
    ) -> DateConsistencyFindings:
        status = data.status_record
        program = data.program_record
        return self.validate_dates(
            status.date_of_admission if status else None,
            status.admit_until_date if status else None,
            program.start_date if program else None,
            filing_date,
        )

