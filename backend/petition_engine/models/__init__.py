"""Petition Engine - Data Models"""
from .ssot import (
    # Enums
    DocumentCategory, FundingSource, RecordRole, AttributionMethod, FundsDecision,
    SectionName, Severity, Voice, SuppressedTopic, SizingAction, LayoutIssueType,
    AssemblyStatus,
    # Extracted records
    PassportRecord, StatusRecord, ProgramRecord, BankStatementRecord, AssetRecord,
    TiesRecord, ScholarshipRecord, OtherFundingRecord, DependentDocumentRecord,
    # Application data
    Address, Dependent, FinancialSupportAnswers, QuestionAnswer, ApplicantIdentity,
    ApplicationMetadata, DocumentListEntry, AggregatedApplicationData,
    # Derived
    StatementAttribution, FinancialCalculation, RequiredFundsEstimate, FundsAssessment,
    FinancialSummaryFigures, DateConsistencyFindings, Exhibit,
    OPTIONAL_SECTIONS, CoverLetterSections,
    RuleFinding, RuleCheckResult, SizingResult, LayoutIssue, LayoutValidationResult,
    AutoFixResult, ApplicationAnalysis, AssemblyReport, AssembledDocument,
)
from .generation import (
    ExhibitEntry, SectionRequest, FinancialContext, GenerationContext,
    GeneratedSectionsPayload,
)

__all__ = [
    "DocumentCategory", "FundingSource", "RecordRole", "AttributionMethod", "FundsDecision",
    "SectionName", "Severity", "Voice", "SuppressedTopic", "SizingAction", "LayoutIssueType",
    "AssemblyStatus",
    "PassportRecord", "StatusRecord", "ProgramRecord", "BankStatementRecord", "AssetRecord",
    "TiesRecord", "ScholarshipRecord", "OtherFundingRecord", "DependentDocumentRecord",
    "Address", "Dependent", "FinancialSupportAnswers", "QuestionAnswer", "ApplicantIdentity",
    "ApplicationMetadata", "DocumentListEntry", "AggregatedApplicationData",
    "StatementAttribution", "FinancialCalculation", "RequiredFundsEstimate", "FundsAssessment",
    "FinancialSummaryFigures", "DateConsistencyFindings", "Exhibit",
    "OPTIONAL_SECTIONS", "CoverLetterSections",
    "RuleFinding", "RuleCheckResult", "SizingResult", "LayoutIssue", "LayoutValidationResult",
    "AutoFixResult", "ApplicationAnalysis", "AssemblyReport", "AssembledDocument",
    "ExhibitEntry", "SectionRequest", "FinancialContext", "GenerationContext",
    "GeneratedSectionsPayload",
]
