"""
Application Analysis

Everything the pipeline can know before any text is generated: exhibits,
reconciled funds, date findings, missing documents. Pure and recomputed on
every run.
"""
import logging

from ..config import PipelineConfig, DEFAULT_CONFIG
from ..models.ssot import AggregatedApplicationData, ApplicationAnalysis
from .dates.consistency import DateConsistencyValidator, DateInput
from .exhibits.tracker import ExhibitCitationTracker
from .financial.reconciler import FinancialReconciler
from .financial.summary import build_financial_summary
from .ingestion.requirements import missing_required_documents, status_eligibility_warnings

logger = logging.getLogger(__name__)


def analyze_application(
    data: AggregatedApplicationData,
    config: PipelineConfig = DEFAULT_CONFIG,
    filing_date: DateInput = None,
) -> ApplicationAnalysis:
    reconciler = FinancialReconciler(config)
    calculation = reconciler.calculate_available_funds(data)
    required = reconciler.estimate_for_application(data)
    funds = reconciler.assess(calculation, required)

    dates = DateConsistencyValidator(config).validate_application(data, filing_date)
    exhibits = ExhibitCitationTracker().available_exhibits(data)

    analysis = ApplicationAnalysis(
        exhibits=tuple(exhibits),
        financial=calculation,
        required_funds=required,
        funds=funds,
        dates=dates,
        missing_documents=tuple(missing_required_documents(data)),
        status_warnings=tuple(status_eligibility_warnings(data)),
        financial_summary=build_financial_summary(required, calculation, data.sponsor_name),
    )

    logger.info(
        f"Analysis complete: funds={funds.decision.value}, exhibits="
        f"{''.join(e.letter for e in exhibits) or '-'}, date_errors={len(dates.errors)}"
    )
    return analysis
