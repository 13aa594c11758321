"""
Document Requirements

Which source documents a change of status to F-1 legally requires, given
the declared funding source, plus advisory checks on the admission class and
declared savings.
"""
import logging
import re
from typing import Dict, List, Optional

from ...models.ssot import AggregatedApplicationData, FundingSource, RecordRole
from ..financial.currency import parse_usd_amount
from ..financial.reconciler import names_match

logger = logging.getLogger(__name__)


ELIGIBLE_CURRENT_STATUSES = ("B-1", "B-2", "WB", "WT")
REQUESTED_STATUS = "F-1"
LOW_SAVINGS_THRESHOLD = 1000

STATUS_DESCRIPTIONS: Dict[str, str] = {
    "B-1": "Visitor for Business",
    "B-2": "Visitor for Pleasure",
    "WB": "Visa Waiver Program - Business",
    "WT": "Visa Waiver Program - Tourism",
    "F-1": "Academic Student",
    "F-2": "Dependent of Academic Student",
}

REQUIRED_DOCUMENT_LABELS = {
    "passport": "Passport",
    "i94": "Form I-94 arrival/departure record",
    "i20": "Form I-20",
    "financial_self": "Applicant financial records (bank statements or assets)",
    "financial_sponsor": "Sponsor financial records (bank statements or assets)",
    "financial_scholarship": "Scholarship award documentation",
    "financial_other": "Other funding source documentation",
}


def normalize_status(raw: Optional[str]) -> str:
    """'b2' / 'B 2' / 'B-2 visitor' -> 'B-2'. Unknown values are returned upper-cased."""
    if not raw:
        return ""
    text = raw.strip().upper()
    match = re.match(r"^([A-Z])\s*-?\s*(\d)\b", text)
    if match:
        return f"{match.group(1)}-{match.group(2)}"
    match = re.match(r"^(WB|WT)\b", text)
    if match:
        return match.group(1)
    return text


def describe_status(code: Optional[str]) -> str:
    return STATUS_DESCRIPTIONS.get(normalize_status(code), "")


def missing_required_documents(data: AggregatedApplicationData) -> List[str]:
    """Labels of legally-required documents absent from the application."""
    missing: List[str] = []

    if data.passport is None:
        missing.append(REQUIRED_DOCUMENT_LABELS["passport"])
    if data.status_record is None:
        missing.append(REQUIRED_DOCUMENT_LABELS["i94"])
    if data.program_record is None:
        missing.append(REQUIRED_DOCUMENT_LABELS["i20"])

    source = data.financial_support.funding_source
    if source == FundingSource.SELF and not _has_applicant_financials(data):
        missing.append(REQUIRED_DOCUMENT_LABELS["financial_self"])
    elif source == FundingSource.SPONSOR and not _has_sponsor_financials(data):
        missing.append(REQUIRED_DOCUMENT_LABELS["financial_sponsor"])
    elif source == FundingSource.SCHOLARSHIP and not data.scholarship_documents:
        missing.append(REQUIRED_DOCUMENT_LABELS["financial_scholarship"])
    elif source == FundingSource.OTHER and not data.other_funding_documents:
        missing.append(REQUIRED_DOCUMENT_LABELS["financial_other"])

    if missing:
        logger.info(f"Missing required documents: {', '.join(missing)}")
    return missing


def status_eligibility_warnings(data: AggregatedApplicationData) -> List[str]:
    warnings: List[str] = []

    raw_status = data.status_record.class_of_admission if data.status_record else None
    current = normalize_status(raw_status)
    if current and current not in ELIGIBLE_CURRENT_STATUSES:
        warnings.append(
            f"Current status '{current}' may not be eligible for change of status to {REQUESTED_STATUS}"
        )

    requested = normalize_status(data.application.visa_type)
    if requested and requested != REQUESTED_STATUS:
        warnings.append(f"Requested status '{requested}' is not {REQUESTED_STATUS} - ensure this is correct")

    savings = parse_usd_amount(data.financial_support.savings_amount)
    if 0 < savings < LOW_SAVINGS_THRESHOLD:
        warnings.append(f"Declared savings of USD ${savings:,.0f} seem low for {REQUESTED_STATUS} requirements")

    if data.sponsor_name and savings == 0 and not _has_applicant_financials(data):
        warnings.append(
            "Sponsor named but no personal funds documented - ensure financial capacity is documented"
        )

    return warnings


def _has_applicant_financials(data: AggregatedApplicationData) -> bool:
    sponsor = data.sponsor_name
    for statement in data.bank_statements:
        if statement.role == RecordRole.SPONSOR:
            continue
        if sponsor and statement.account_holder_name and names_match(sponsor, statement.account_holder_name):
            continue
        return True
    return any(asset.role != RecordRole.SPONSOR for asset in data.assets)


def _has_sponsor_financials(data: AggregatedApplicationData) -> bool:
    sponsor = data.sponsor_name
    for statement in data.bank_statements:
        if statement.role == RecordRole.SPONSOR:
            return True
        if sponsor and statement.account_holder_name and names_match(sponsor, statement.account_holder_name):
            return True
    return any(asset.role == RecordRole.SPONSOR for asset in data.assets)
