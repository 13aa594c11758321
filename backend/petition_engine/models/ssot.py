"""
Petition Engine - Single Source of Truth Models

These models are the ONLY data structures used throughout the pipeline.
Extracted facts are read-only input; every derived structure
(FinancialCalculation, DateConsistencyFindings, RuleCheckResult, ...) is
recomputed wholesale on every generation attempt and never patched.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


# =============================================================================
# ENUMS
# =============================================================================

class DocumentCategory(str, Enum):
    """Source document categories as delivered by the extraction collaborator."""
    PASSPORT = "passport"
    STATUS_RECORD = "i94"
    PROGRAM_RECORD = "i20"
    BANK_STATEMENT = "bank_statement"
    SPONSOR_BANK_STATEMENT = "sponsor_bank_statement"
    ASSETS = "assets"
    SPONSOR_ASSETS = "sponsor_assets"
    TIES_DOCUMENT = "supporting_documents"
    SCHOLARSHIP_DOCUMENT = "scholarship_document"
    OTHER_FUNDING = "other_funding"
    DEPENDENT_PASSPORT = "dependent_passport"
    DEPENDENT_STATUS_RECORD = "dependent_i94"
    DEPENDENT_PROGRAM_RECORD = "dependent_i20"


class FundingSource(str, Enum):
    SELF = "self"
    SPONSOR = "sponsor"
    SCHOLARSHIP = "scholarship"
    OTHER = "other"
    UNKNOWN = "unknown"


class RecordRole(str, Enum):
    """Explicit ownership tag on financial records."""
    APPLICANT = "applicant"
    SPONSOR = "sponsor"
    UNKNOWN = "unknown"


class AttributionMethod(str, Enum):
    """How a bank statement was attributed to applicant or sponsor."""
    TYPE_TAG = "type_tag"
    NAME_MATCH = "name_match"
    DEFAULT = "default"


class FundsDecision(str, Enum):
    SUFFICIENT = "sufficient"
    INSUFFICIENT = "insufficient"
    INDETERMINATE = "indeterminate"


class SectionName(str, Enum):
    """Cover letter sections - order of declaration is the document order."""
    INTRODUCTION = "introduction"
    LEGAL_BASIS = "legal_basis"
    ENTRY_AND_STATUS = "entry_and_status"
    CHANGE_OF_INTENT = "change_of_intent"
    PURPOSE_OF_STUDY = "purpose_of_study"
    FINANCIAL_ABILITY = "financial_ability"
    TIES_TO_HOME_COUNTRY = "ties_to_home_country"
    CONCLUSION = "conclusion"


class Severity(str, Enum):
    ERROR = "error"      # Fatal - blocks finalization
    WARNING = "warning"  # Advisory - surfaced, never blocks


class Voice(str, Enum):
    FIRST_PERSON = "first_person"
    THIRD_PERSON = "third_person"


class SuppressedTopic(str, Enum):
    PROGRAM_DATES = "program_dates"
    ALL_DATES = "all_dates"


class SizingAction(str, Enum):
    OK = "OK"
    OK_UNDER_MIN = "OK_UNDER_MIN"
    COMPRESSED = "COMPRESSED"


class LayoutIssueType(str, Enum):
    PARAGRAPH_TOO_SPARSE = "paragraph_too_sparse"
    PARAGRAPH_TOO_DENSE = "paragraph_too_dense"
    PARAGRAPH_WORD_DENSITY = "paragraph_word_density"
    TOO_MANY_PAGES = "too_many_pages"
    TOO_FEW_PARAGRAPHS = "too_few_paragraphs"
    TOO_MANY_PARAGRAPHS = "too_many_paragraphs"


class AssemblyStatus(str, Enum):
    FINAL = "final"
    NEEDS_REVIEW = "needs_review"
    BLOCKED = "blocked"


# =============================================================================
# EXTRACTED DOCUMENT RECORDS (one tagged variant per category)
# =============================================================================

@dataclass(frozen=True)
class PassportRecord:
    name: Optional[str] = None
    passport_number: Optional[str] = None
    date_of_birth: Optional[str] = None
    place_of_birth: Optional[str] = None
    nationality: Optional[str] = None
    gender: Optional[str] = None
    issue_date: Optional[str] = None
    expiry_date: Optional[str] = None
    unrecognized_fields: Tuple[str, ...] = ()


@dataclass(frozen=True)
class StatusRecord:
    """Arrival/departure record (Form I-94)."""
    name: Optional[str] = None
    admission_number: Optional[str] = None
    class_of_admission: Optional[str] = None
    date_of_admission: Optional[str] = None
    admit_until_date: Optional[str] = None
    passport_number: Optional[str] = None
    unrecognized_fields: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ProgramRecord:
    """Certificate of eligibility issued by the school (Form I-20)."""
    student_name: Optional[str] = None
    sevis_id: Optional[str] = None
    school_name: Optional[str] = None
    program_of_study: Optional[str] = None
    program_level: Optional[str] = None
    major_field: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    country_of_citizenship: Optional[str] = None
    annual_tuition_amount: Optional[str] = None
    annual_living_expenses: Optional[str] = None
    total_annual_cost: Optional[str] = None
    financial_text: Optional[str] = None
    unrecognized_fields: Tuple[str, ...] = ()


@dataclass(frozen=True)
class BankStatementRecord:
    account_holder_name: Optional[str] = None
    account_number: Optional[str] = None
    bank_name: Optional[str] = None
    closing_balance: Optional[str] = None
    total_balance: Optional[str] = None
    currency: str = "USD"
    statement_period: Optional[str] = None
    role: RecordRole = RecordRole.UNKNOWN
    unrecognized_fields: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AssetRecord:
    asset_type: Optional[str] = None
    owner_name: Optional[str] = None
    asset_value: Optional[str] = None
    asset_description: Optional[str] = None
    role: RecordRole = RecordRole.UNKNOWN
    unrecognized_fields: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TiesRecord:
    document_type: Optional[str] = None
    owner_name: Optional[str] = None
    property_address: Optional[str] = None
    property_value: Optional[str] = None
    employment_company: Optional[str] = None
    employment_position: Optional[str] = None
    unrecognized_fields: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ScholarshipRecord:
    scholarship_name: Optional[str] = None
    award_amount: Optional[str] = None
    institution_name: Optional[str] = None
    document_date: Optional[str] = None
    unrecognized_fields: Tuple[str, ...] = ()


@dataclass(frozen=True)
class OtherFundingRecord:
    funding_source: Optional[str] = None
    amount: Optional[str] = None
    institution_name: Optional[str] = None
    document_date: Optional[str] = None
    unrecognized_fields: Tuple[str, ...] = ()


@dataclass(frozen=True)
class DependentDocumentRecord:
    """Dependent passport / I-94 / I-20 - only presence and name are consumed."""
    category: DocumentCategory
    name: Optional[str] = None
    unrecognized_fields: Tuple[str, ...] = ()


# =============================================================================
# QUESTIONNAIRE / APPLICATION DATA
# =============================================================================

@dataclass(frozen=True)
class Address:
    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""

    def city_state_zip(self) -> str:
        return ", ".join(p for p in (self.city, self.state, self.zip_code) if p)


@dataclass(frozen=True)
class Dependent:
    full_name: str
    relationship: str
    date_of_birth: Optional[str] = None


@dataclass(frozen=True)
class FinancialSupportAnswers:
    funding_source: FundingSource = FundingSource.UNKNOWN
    sponsor_name: Optional[str] = None
    sponsor_relationship: Optional[str] = None
    savings_amount: Optional[str] = None
    annual_income: Optional[str] = None
    scholarship_name: Optional[str] = None
    other_source: Optional[str] = None


@dataclass(frozen=True)
class QuestionAnswer:
    """Free-form questionnaire answer tagged by step and category."""
    question_id: str
    step_number: int
    answer_text: str
    category: Optional[str] = None
    theme: str = ""
    selected_option: str = ""


@dataclass(frozen=True)
class ApplicantIdentity:
    full_name: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class ApplicationMetadata:
    application_id: str = ""
    country: str = ""
    visa_type: str = "F-1"
    current_address: Optional[Address] = None


@dataclass(frozen=True)
class DocumentListEntry:
    category: str
    name: str
    status: str = "uploaded"


@dataclass(frozen=True)
class AggregatedApplicationData:
    """
    Consolidated view the pipeline operates on.

    At most one authoritative status record and one program record;
    bank / asset / ties records form unordered collections.
    """
    applicant: ApplicantIdentity = field(default_factory=ApplicantIdentity)
    application: ApplicationMetadata = field(default_factory=ApplicationMetadata)
    financial_support: FinancialSupportAnswers = field(default_factory=FinancialSupportAnswers)
    passport: Optional[PassportRecord] = None
    status_record: Optional[StatusRecord] = None
    program_record: Optional[ProgramRecord] = None
    bank_statements: Tuple[BankStatementRecord, ...] = ()
    assets: Tuple[AssetRecord, ...] = ()
    ties_documents: Tuple[TiesRecord, ...] = ()
    scholarship_documents: Tuple[ScholarshipRecord, ...] = ()
    other_funding_documents: Tuple[OtherFundingRecord, ...] = ()
    dependent_documents: Tuple[DependentDocumentRecord, ...] = ()
    dependents: Tuple[Dependent, ...] = ()
    question_answers: Tuple[QuestionAnswer, ...] = ()
    ties_answers: Tuple[str, ...] = ()
    document_list: Tuple[DocumentListEntry, ...] = ()

    @property
    def applicant_name(self) -> Optional[str]:
        """Best available applicant name, document sources first."""
        candidates = [
            self.passport.name if self.passport else None,
            self.status_record.name if self.status_record else None,
            self.program_record.student_name if self.program_record else None,
            self.applicant.full_name,
        ]
        for candidate in candidates:
            if candidate and candidate.strip():
                return candidate.strip()
        return None

    @property
    def sponsor_name(self) -> Optional[str]:
        name = self.financial_support.sponsor_name
        return name.strip() if name and name.strip() else None

    def answers_for_category(self, category: str) -> List[QuestionAnswer]:
        return [qa for qa in self.question_answers if qa.category == category]


# =============================================================================
# DERIVED: FINANCIAL
# =============================================================================

@dataclass(frozen=True)
class StatementAttribution:
    """Audit trail of one bank statement's applicant/sponsor classification."""
    account_holder_name: Optional[str]
    balance: float
    role: RecordRole
    method: AttributionMethod


@dataclass(frozen=True)
class FinancialCalculation:
    """
    Derived, never stored.

    Invariant: total_available == personal_funds + sponsor_amount.
    """
    personal_funds: float
    sponsor_amount: float
    total_available: float
    bank_statement_total: Optional[float] = None
    declared_savings: float = 0.0
    attributions: Tuple[StatementAttribution, ...] = ()

    @property
    def used_name_heuristic(self) -> bool:
        return any(a.method == AttributionMethod.NAME_MATCH for a in self.attributions)


@dataclass(frozen=True)
class RequiredFundsEstimate:
    """
    Derived from the program record.

    When both tuition and living are present, total_required is their sum,
    regardless of any separately reported aggregate.
    """
    tuition: Optional[float] = None
    living: Optional[float] = None
    total_required: Optional[float] = None
    reported_aggregate: Optional[float] = None

    @property
    def is_known(self) -> bool:
        return self.total_required is not None


@dataclass(frozen=True)
class FundsAssessment:
    decision: FundsDecision
    total_available: float
    total_required: Optional[float]
    buffer: float = 0.0
    deficit: float = 0.0


@dataclass(frozen=True)
class FinancialSummaryFigures:
    """Figures stated in a financial summary block found in generated text."""
    tuition: Optional[float] = None
    living_expenses: Optional[float] = None
    total_required: Optional[float] = None
    personal_funds: Optional[float] = None
    sponsor_name: Optional[str] = None
    sponsor_amount: Optional[float] = None
    total_available: Optional[float] = None


# =============================================================================
# DERIVED: DATES
# =============================================================================

@dataclass(frozen=True)
class DateConsistencyFindings:
    """
    Computed once per generation run, never mutated.

    date_conflicts carries the "do not mention" directives that the
    compliance checker enforces as topic suppressions.
    """
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    date_conflicts: Tuple[str, ...] = ()
    program_dates_unsafe: bool = False
    any_dates_unsafe: bool = False
    program_date_tokens: Tuple[str, ...] = ()

    @property
    def suppressed_topics(self) -> Tuple[SuppressedTopic, ...]:
        topics = []
        if self.program_dates_unsafe:
            topics.append(SuppressedTopic.PROGRAM_DATES)
        if self.any_dates_unsafe:
            topics.append(SuppressedTopic.ALL_DATES)
        return tuple(topics)


# =============================================================================
# EXHIBITS
# =============================================================================

@dataclass(frozen=True)
class Exhibit:
    letter: str
    description: str
    categories: Tuple[str, ...] = ()


# =============================================================================
# COVER LETTER SECTIONS
# =============================================================================

OPTIONAL_SECTIONS = frozenset({
    SectionName.CHANGE_OF_INTENT,
    SectionName.LEGAL_BASIS,
})


@dataclass(frozen=True)
class CoverLetterSections:
    """
    Ordered, named collection of narrative paragraphs.

    Immutable: every transformation returns a new instance.
    """
    texts: Tuple[Tuple[SectionName, str], ...] = ()

    @classmethod
    def from_mapping(cls, mapping: Dict[SectionName, str]) -> "CoverLetterSections":
        ordered = []
        for name in SectionName:
            text = mapping.get(name)
            if text is not None and text.strip():
                ordered.append((name, text.strip()))
        return cls(texts=tuple(ordered))

    def as_dict(self) -> Dict[SectionName, str]:
        return dict(self.texts)

    def get(self, name: SectionName) -> str:
        return self.as_dict().get(name, "")

    def populated(self) -> List[SectionName]:
        return [name for name, text in self.texts if text.strip()]

    def replace(self, name: SectionName, text: str) -> "CoverLetterSections":
        mapping = self.as_dict()
        mapping[name] = text
        return CoverLetterSections.from_mapping(mapping)

    def full_text(self) -> str:
        return "\n\n".join(text for _, text in self.texts)

    def __iter__(self):
        return iter(self.texts)

    def __len__(self) -> int:
        return len(self.texts)


# =============================================================================
# VALIDATION RESULTS
# =============================================================================

@dataclass(frozen=True)
class RuleFinding:
    rule_id: str
    category: str
    severity: Severity
    message: str
    section: Optional[SectionName] = None


@dataclass(frozen=True)
class RuleCheckResult:
    """passed is True iff errors is empty; warnings never block."""
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    findings: Tuple[RuleFinding, ...] = ()

    @property
    def passed(self) -> bool:
        return len(self.errors) == 0


@dataclass(frozen=True)
class SizingResult:
    text: str
    action: SizingAction
    word_count: int
    over_budget: bool = False


@dataclass(frozen=True)
class LayoutIssue:
    issue_type: LayoutIssueType
    message: str
    section: Optional[SectionName] = None
    paragraph_index: Optional[int] = None
    metric: float = 0.0
    limit: float = 0.0


@dataclass(frozen=True)
class LayoutValidationResult:
    is_valid: bool
    estimated_pages: float
    total_words: int
    paragraph_count: int
    issues: Tuple[LayoutIssue, ...] = ()


@dataclass(frozen=True)
class AutoFixResult:
    sections: CoverLetterSections
    accepted: bool
    issues_before: int
    issues_after: int
    fixes_applied: Tuple[str, ...] = ()


# =============================================================================
# ASSEMBLY OUTPUT
# =============================================================================

@dataclass(frozen=True)
class ApplicationAnalysis:
    """Pure analysis of the extracted facts, computed before generation."""
    exhibits: Tuple[Exhibit, ...]
    financial: FinancialCalculation
    required_funds: RequiredFundsEstimate
    funds: FundsAssessment
    dates: DateConsistencyFindings
    missing_documents: Tuple[str, ...] = ()
    status_warnings: Tuple[str, ...] = ()
    financial_summary: str = ""


@dataclass(frozen=True)
class AssemblyReport:
    status: AssemblyStatus
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    layout_issues: Tuple[LayoutIssue, ...] = ()
    sizing_actions: Dict[str, str] = field(default_factory=dict)
    referenced_exhibits: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AssembledDocument:
    """Final output - document is None whenever the report is blocked."""
    document: Optional[str]
    sections: Optional[CoverLetterSections]
    report: AssemblyReport
    analysis: Optional[ApplicationAnalysis] = None

    @property
    def is_final(self) -> bool:
        return self.report.status == AssemblyStatus.FINAL
