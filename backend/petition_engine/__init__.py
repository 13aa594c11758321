"""
Petition Engine

Financial reconciliation, date consistency, compliance checking, sizing and
assembly for I-539 change-of-status (to F-1) cover letters.

Usage:
    from petition_engine import DocumentAssembler, aggregate_application_data

    data = aggregate_application_data(extracted_documents, form_data=form)
    result = await DocumentAssembler(generator=my_generator).generate(data)
    if result.is_final:
        print(result.document)
    else:
        print(result.report.errors, result.report.warnings)
"""
from .config import PipelineConfig, SectionLimits, DEFAULT_CONFIG
from .exceptions import PetitionEngineError, ConfigurationError, GenerationError
from .services.analysis import analyze_application
from .services.assembly import DocumentAssembler, build_generation_context
from .services.compliance import ComplianceRuleChecker
from .services.dates import DateConsistencyValidator
from .services.exhibits import ExhibitCitationTracker
from .services.financial import FinancialReconciler, parse_amount
from .services.generation import TextGenerator
from .services.ingestion import aggregate_application_data
from .services.sizing import SizingEngine, LayoutValidator

__all__ = [
    "PipelineConfig", "SectionLimits", "DEFAULT_CONFIG",
    "PetitionEngineError", "ConfigurationError", "GenerationError",
    "analyze_application", "DocumentAssembler", "build_generation_context",
    "ComplianceRuleChecker", "DateConsistencyValidator", "ExhibitCitationTracker",
    "FinancialReconciler", "parse_amount", "TextGenerator", "aggregate_application_data",
    "SizingEngine", "LayoutValidator",
]
