"""
Application Data Aggregator

Pure reducer from the extraction collaborator's output
(document category -> ordered field/value records) plus questionnaire form
data into one AggregatedApplicationData.

Rules:
1. Every category maps to one explicit record type; each record field accepts
   a fixed list of extractor spellings (camelCase / snake_case variants)
2. Field names matching no alias are kept in unrecognized_fields, never lost
3. First passport / I-94 / I-20 is authoritative; later ones are ignored
4. Bank, asset, ties, scholarship and other-funding records accumulate
5. sponsor_* categories tag the record with the sponsor role
"""
from __future__ import annotations
import logging
import re
from dataclasses import replace
from functools import reduce
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ...models.ssot import (
    Address, AggregatedApplicationData, ApplicantIdentity, ApplicationMetadata, AssetRecord,
    BankStatementRecord, Dependent, DependentDocumentRecord, DocumentCategory, DocumentListEntry,
    FinancialSupportAnswers, FundingSource, OtherFundingRecord, PassportRecord, ProgramRecord,
    QuestionAnswer, RecordRole, ScholarshipRecord, StatusRecord, TiesRecord,
)

logger = logging.getLogger(__name__)

ExtractedFields = Mapping[str, Any]


# =============================================================================
# FIELD ALIAS TABLES (record field -> accepted extractor spellings)
# =============================================================================

PASSPORT_ALIASES: Dict[str, Tuple[str, ...]] = {
    "name": ("name", "fullName", "full_name"),
    "passport_number": ("passportNumber", "passport_number", "document_number", "documentNumber"),
    "date_of_birth": ("dateOfBirth", "date_of_birth", "birthDate", "birth_date"),
    "place_of_birth": ("placeOfBirth", "place_of_birth"),
    "nationality": ("nationality", "country_of_citizenship", "countryOfCitizenship"),
    "gender": ("gender", "sex"),
    "issue_date": ("issueDate", "issue_date"),
    "expiry_date": ("expiryDate", "expiry_date", "expirationDate", "expiration_date"),
}

STATUS_ALIASES: Dict[str, Tuple[str, ...]] = {
    "name": ("name", "fullName", "full_name"),
    "admission_number": ("admissionNumber", "admission_number", "i_94_number", "admitNumber"),
    "class_of_admission": ("classOfAdmission", "class_of_admission", "current_visa_type", "admissionClass"),
    "date_of_admission": ("dateOfAdmission", "date_of_admission", "entry_date", "entryDate", "admissionDate"),
    "admit_until_date": (
        "admitUntilDate", "admit_until_date", "i_94_expiry_date", "admitUntil", "expirationDate",
    ),
    "passport_number": ("passportNumber", "passport_number", "document_number"),
}

PROGRAM_ALIASES: Dict[str, Tuple[str, ...]] = {
    "student_name": ("studentName", "student_name", "name"),
    "sevis_id": ("sevisId", "sevis_id"),
    "school_name": ("schoolName", "school_name"),
    "program_of_study": ("programOfStudy", "program_of_study"),
    "program_level": ("programLevel", "program_level"),
    "major_field": ("majorField", "major_field"),
    "start_date": ("startDate", "start_date", "program_start_date"),
    "end_date": ("endDate", "end_date", "program_end_date"),
    "country_of_citizenship": ("countryOfCitizenship", "country_of_citizenship"),
    "annual_tuition_amount": ("annual_tuition_amount", "annualTuitionAmount", "tuition", "tuition_and_fees"),
    "annual_living_expenses": ("annual_living_expenses", "annualLivingExpenses", "living_expenses", "livingExpenses"),
    "total_annual_cost": ("total_annual_cost", "totalAnnualCost", "total_cost", "totalCost"),
    "financial_text": ("financialSupport", "financial_support", "financial_text", "financialText"),
}

BANK_ALIASES: Dict[str, Tuple[str, ...]] = {
    "account_holder_name": ("accountHolderName", "account_holder_name", "accountHolder", "account_holder"),
    "account_number": ("accountNumber", "account_number"),
    "bank_name": ("bankName", "bank_name", "bank", "institutionName", "institution_name"),
    "closing_balance": ("closingBalance", "closing_balance", "endingBalance", "ending_balance", "balance"),
    "total_balance": ("totalBalance", "total_balance"),
    "currency": ("currency", "currency_code"),
    "statement_period": ("statementPeriod", "statement_period", "statementDate", "statement_date", "period"),
}

ASSET_ALIASES: Dict[str, Tuple[str, ...]] = {
    "asset_type": ("assetType", "asset_type"),
    "owner_name": ("ownerName", "owner_name"),
    "asset_value": ("assetValue", "asset_value", "value"),
    "asset_description": ("assetDescription", "asset_description", "description"),
}

TIES_ALIASES: Dict[str, Tuple[str, ...]] = {
    "document_type": ("documentType", "document_type"),
    "owner_name": ("ownerName", "owner_name"),
    "property_address": ("propertyAddress", "property_address"),
    "property_value": ("propertyValue", "property_value"),
    "employment_company": ("employmentCompany", "employment_company", "employer"),
    "employment_position": ("employmentPosition", "employment_position", "position"),
}

SCHOLARSHIP_ALIASES: Dict[str, Tuple[str, ...]] = {
    "scholarship_name": ("scholarshipName", "scholarship_name"),
    "award_amount": ("awardAmount", "award_amount", "amount"),
    "institution_name": ("institutionName", "institution_name"),
    "document_date": ("documentDate", "document_date"),
}

OTHER_FUNDING_ALIASES: Dict[str, Tuple[str, ...]] = {
    "funding_source": ("fundingSource", "funding_source"),
    "amount": ("amount",),
    "institution_name": ("institutionName", "institution_name"),
    "document_date": ("documentDate", "document_date"),
}

DEPENDENT_ALIASES: Dict[str, Tuple[str, ...]] = {
    "name": ("name", "fullName", "full_name", "studentName", "student_name"),
}

# Envelope keys handled separately from the record fields
META_FIELDS = frozenset({
    "document_name", "documentName", "rawText", "raw_text", "first_name", "last_name",
    "firstName", "lastName", "documentType", "document_type",
})

RAW_BALANCE_PATTERNS = (
    re.compile(r"(?:Ending|Closing|Total)\s+balance[:\s]*\$?\s*([\d][\d,.]*)", re.IGNORECASE),
    re.compile(r"\$\s*([\d][\d,.]*)\s*(?:Total|Ending|Closing)", re.IGNORECASE),
)


# =============================================================================
# FIELD PICKING
# =============================================================================

def pick_fields(
    raw: ExtractedFields,
    aliases: Dict[str, Tuple[str, ...]],
) -> Tuple[Dict[str, Optional[str]], Tuple[str, ...]]:
    """Resolve record fields by alias. Returns (fields, unrecognized field names)."""
    fields: Dict[str, Optional[str]] = {}
    for field_name, spellings in aliases.items():
        fields[field_name] = None
        for spelling in spellings:
            value = raw.get(spelling)
            if value is not None and str(value).strip() != "":
                fields[field_name] = str(value).strip()
                break

    known = {s for spellings in aliases.values() for s in spellings} | META_FIELDS
    unrecognized = tuple(key for key in raw.keys() if key not in known)
    if unrecognized:
        logger.debug(f"Unrecognized extracted fields: {', '.join(unrecognized)}")
    return fields, unrecognized


def _combined_name(raw: ExtractedFields) -> Optional[str]:
    first = raw.get("first_name") or raw.get("firstName")
    last = raw.get("last_name") or raw.get("lastName")
    if first and last:
        return f"{str(first).strip()} {str(last).strip()}"
    return None


def _raw_text(raw: ExtractedFields) -> Optional[str]:
    value = raw.get("rawText") or raw.get("raw_text")
    return str(value) if value else None


def balance_from_raw_text(raw_text: str) -> Optional[str]:
    """Labeled 'Ending/Closing/Total balance' amount from statement text."""
    for pattern in RAW_BALANCE_PATTERNS:
        match = pattern.search(raw_text)
        if match:
            return match.group(1)
    return None


# =============================================================================
# RECORD BUILDERS (one per category)
# =============================================================================

def build_passport(raw: ExtractedFields) -> PassportRecord:
    fields, unknown = pick_fields(raw, PASSPORT_ALIASES)
    fields["name"] = fields["name"] or _combined_name(raw)
    return PassportRecord(**fields, unrecognized_fields=unknown)


def build_status_record(raw: ExtractedFields) -> StatusRecord:
    fields, unknown = pick_fields(raw, STATUS_ALIASES)
    fields["name"] = fields["name"] or _combined_name(raw)
    return StatusRecord(**fields, unrecognized_fields=unknown)


def build_program_record(raw: ExtractedFields) -> ProgramRecord:
    fields, unknown = pick_fields(raw, PROGRAM_ALIASES)
    return ProgramRecord(**fields, unrecognized_fields=unknown)


def build_bank_statement(raw: ExtractedFields, role: RecordRole) -> BankStatementRecord:
    fields, unknown = pick_fields(raw, BANK_ALIASES)
    if not fields["closing_balance"] and not fields["total_balance"]:
        text = _raw_text(raw)
        if text:
            fields["closing_balance"] = balance_from_raw_text(text)
            if fields["closing_balance"]:
                logger.info("Closing balance recovered from statement raw text")
    fields["currency"] = fields["currency"] or "USD"
    return BankStatementRecord(**fields, role=role, unrecognized_fields=unknown)


def build_asset(raw: ExtractedFields, role: RecordRole) -> AssetRecord:
    fields, unknown = pick_fields(raw, ASSET_ALIASES)
    return AssetRecord(**fields, role=role, unrecognized_fields=unknown)


def build_ties_record(raw: ExtractedFields) -> TiesRecord:
    fields, unknown = pick_fields(raw, TIES_ALIASES)
    return TiesRecord(**fields, unrecognized_fields=unknown)


def build_scholarship(raw: ExtractedFields) -> ScholarshipRecord:
    fields, unknown = pick_fields(raw, SCHOLARSHIP_ALIASES)
    return ScholarshipRecord(**fields, unrecognized_fields=unknown)


def build_other_funding(raw: ExtractedFields) -> OtherFundingRecord:
    fields, unknown = pick_fields(raw, OTHER_FUNDING_ALIASES)
    return OtherFundingRecord(**fields, unrecognized_fields=unknown)


def build_dependent_document(raw: ExtractedFields, category: DocumentCategory) -> DependentDocumentRecord:
    fields, unknown = pick_fields(raw, DEPENDENT_ALIASES)
    return DependentDocumentRecord(
        category=category,
        name=fields["name"] or _combined_name(raw),
        unrecognized_fields=unknown,
    )


# =============================================================================
# REDUCER
# =============================================================================

def apply_document(
    data: AggregatedApplicationData,
    category: str,
    raw: ExtractedFields,
) -> AggregatedApplicationData:
    """Fold one extracted document into the aggregate, returning a new aggregate."""
    try:
        kind = DocumentCategory(category)
    except ValueError:
        logger.warning(f"Unknown document category '{category}' - listed only")
        return data

    if kind == DocumentCategory.PASSPORT:
        if data.passport is not None:
            logger.info("Additional passport ignored; first one is authoritative")
            return data
        return replace(data, passport=build_passport(raw))

    if kind == DocumentCategory.STATUS_RECORD:
        if data.status_record is not None:
            logger.info("Additional I-94 ignored; first one is authoritative")
            return data
        return replace(data, status_record=build_status_record(raw))

    if kind == DocumentCategory.PROGRAM_RECORD:
        if data.program_record is not None:
            logger.info("Additional I-20 ignored; first one is authoritative")
            return data
        return replace(data, program_record=build_program_record(raw))

    if kind in (DocumentCategory.BANK_STATEMENT, DocumentCategory.SPONSOR_BANK_STATEMENT):
        role = RecordRole.SPONSOR if kind == DocumentCategory.SPONSOR_BANK_STATEMENT else RecordRole.APPLICANT
        return replace(data, bank_statements=data.bank_statements + (build_bank_statement(raw, role),))

    if kind in (DocumentCategory.ASSETS, DocumentCategory.SPONSOR_ASSETS):
        role = RecordRole.SPONSOR if kind == DocumentCategory.SPONSOR_ASSETS else RecordRole.APPLICANT
        return replace(data, assets=data.assets + (build_asset(raw, role),))

    if kind == DocumentCategory.TIES_DOCUMENT:
        return replace(data, ties_documents=data.ties_documents + (build_ties_record(raw),))

    if kind == DocumentCategory.SCHOLARSHIP_DOCUMENT:
        return replace(
            data, scholarship_documents=data.scholarship_documents + (build_scholarship(raw),)
        )

    if kind == DocumentCategory.OTHER_FUNDING:
        return replace(
            data, other_funding_documents=data.other_funding_documents + (build_other_funding(raw),)
        )

    return replace(
        data,
        dependent_documents=data.dependent_documents + (build_dependent_document(raw, kind),),
    )


def aggregate_application_data(
    extracted: Mapping[str, Sequence[ExtractedFields]],
    form_data: Optional[Mapping[str, Any]] = None,
    applicant: Optional[ApplicantIdentity] = None,
    application: Optional[Mapping[str, Any]] = None,
    question_answers: Optional[Iterable[Mapping[str, Any]]] = None,
) -> AggregatedApplicationData:
    """
    Build the aggregate from extracted documents and questionnaire data.

    Args:
        extracted: document category -> ordered list of raw field mappings.
                   A record may carry 'document_name' and 'rawText' envelope keys.
        form_data: questionnaire form (currentAddress, tiesToCountry,
                   dependents, financialSupport)
        applicant: identity of the signed-in applicant
        application: {'id', 'country', 'visa_type'}
        question_answers: step questionnaire answers
    """
    form_data = form_data or {}
    application = application or {}

    base = AggregatedApplicationData(
        applicant=applicant or ApplicantIdentity(),
        application=ApplicationMetadata(
            application_id=str(_pick(application, "id", "application_id") or ""),
            country=str(_pick(application, "country") or ""),
            visa_type=str(_pick(application, "visa_type", "visaType") or "F-1"),
            current_address=parse_address(_pick(form_data, "currentAddress", "current_address")),
        ),
        financial_support=parse_financial_support(_pick(form_data, "financialSupport", "financial_support")),
        dependents=parse_dependents(_pick(form_data, "dependents")),
        question_answers=parse_question_answers(question_answers or ()),
    )

    document_list: List[DocumentListEntry] = []
    items: List[Tuple[str, ExtractedFields]] = []
    for category, records in extracted.items():
        for raw in records or ():
            raw = raw or {}
            name = _pick(raw, "document_name", "documentName") or category
            document_list.append(DocumentListEntry(category=category, name=str(name)))
            items.append((category, raw))

    data = reduce(lambda acc, item: apply_document(acc, item[0], item[1]), items, base)

    ties_answers = collect_ties_answers(form_data, data.question_answers)
    return replace(data, ties_answers=ties_answers, document_list=tuple(document_list))


def group_documents(documents: Iterable[Mapping[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    """
    Regroup document rows ({'type', 'name', 'extracted_data'}) by category,
    keeping upload order. Rows without extracted data are still listed.
    """
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for doc in documents:
        category = doc.get("type")
        if not category:
            continue
        fields = dict(doc.get("extracted_data") or {})
        fields.setdefault("document_name", doc.get("name") or category)
        grouped.setdefault(category, []).append(fields)
    return grouped


# =============================================================================
# QUESTIONNAIRE PARSING
# =============================================================================

def _pick(mapping: Optional[Mapping[str, Any]], *keys: str) -> Any:
    if not mapping:
        return None
    for key in keys:
        value = mapping.get(key)
        if value is not None and value != "":
            return value
    return None


def parse_address(raw: Optional[Mapping[str, Any]]) -> Optional[Address]:
    if not raw:
        return None
    return Address(
        street=str(_pick(raw, "street") or ""),
        city=str(_pick(raw, "city") or ""),
        state=str(_pick(raw, "state") or ""),
        zip_code=str(_pick(raw, "zipCode", "zip_code", "zip") or ""),
    )


def parse_financial_support(raw: Optional[Mapping[str, Any]]) -> FinancialSupportAnswers:
    if not raw:
        return FinancialSupportAnswers()
    source_raw = str(_pick(raw, "fundingSource", "funding_source") or "").strip().lower()
    try:
        source = FundingSource(source_raw)
    except ValueError:
        source = FundingSource.UNKNOWN
    return FinancialSupportAnswers(
        funding_source=source,
        sponsor_name=_pick(raw, "sponsorName", "sponsor_name"),
        sponsor_relationship=_pick(raw, "sponsorRelationship", "sponsor_relationship"),
        savings_amount=_as_text(_pick(raw, "savingsAmount", "savings_amount")),
        annual_income=_as_text(_pick(raw, "annualIncome", "annual_income")),
        scholarship_name=_pick(raw, "scholarshipName", "scholarship_name"),
        other_source=_pick(raw, "otherSource", "other_source"),
    )


def parse_dependents(raw: Optional[Mapping[str, Any]]) -> Tuple[Dependent, ...]:
    if not raw or not raw.get("hasDependents", raw.get("has_dependents", True)):
        return ()
    dependents = []
    for entry in raw.get("dependents") or ():
        name = _pick(entry, "fullName", "full_name")
        if not name:
            continue
        dependents.append(Dependent(
            full_name=str(name).strip(),
            relationship=str(_pick(entry, "relationship") or ""),
            date_of_birth=_pick(entry, "dateOfBirth", "date_of_birth"),
        ))
    return tuple(dependents)


def parse_question_answers(raw: Iterable[Mapping[str, Any]]) -> Tuple[QuestionAnswer, ...]:
    answers = []
    for entry in raw:
        answers.append(QuestionAnswer(
            question_id=str(_pick(entry, "questionId", "question_id") or ""),
            step_number=int(_pick(entry, "stepNumber", "step_number") or 0),
            answer_text=str(_pick(entry, "answerText", "answer_text") or ""),
            category=_pick(entry, "category"),
            theme=str(_pick(entry, "theme") or ""),
            selected_option=str(_pick(entry, "selectedOption", "selected_option") or ""),
        ))
    return tuple(answers)


TIES_ANSWER_CATEGORIES = ("ties", "ties_to_country", "home_ties")


def collect_ties_answers(
    form_data: Mapping[str, Any],
    question_answers: Sequence[QuestionAnswer],
) -> Tuple[str, ...]:
    answers: List[str] = []
    ties_form = _pick(form_data, "tiesToCountry", "ties_to_country") or {}
    for key in ("question1", "question2", "question3"):
        value = ties_form.get(key)
        if value and str(value).strip():
            answers.append(str(value).strip())
    for qa in question_answers:
        if qa.category in TIES_ANSWER_CATEGORIES and qa.answer_text.strip():
            answers.append(qa.answer_text.strip())
    return tuple(answers)


def _as_text(value: Any) -> Optional[str]:
    return None if value is None else str(value)
