"""
Financial Reconciler

Aggregates personal funds, sponsor funds and program-required funds into a
single sufficiency decision.

Rules:
1. Personal funds = max(declared savings, sum of applicant bank balances)
2. Sponsor funds = MAX single sponsor balance (snapshots of the same
   account are not additive reserves)
3. Total available = personal funds + sponsor funds (always)
4. Required total = tuition + living when both are known, regardless of
   any separately reported aggregate (which may include fees/insurance)
5. Unparsable amounts are absence; absence pushes the decision toward the
   conservative branch
"""
from __future__ import annotations
import logging
import re
from typing import List, Optional, Tuple

from ...config import PipelineConfig, DEFAULT_CONFIG
from ...models.ssot import (
    AggregatedApplicationData, AttributionMethod, BankStatementRecord,
    FinancialCalculation, FundsAssessment, FundsDecision, ProgramRecord,
    RecordRole, RequiredFundsEstimate, StatementAttribution,
)
from .currency import parse_amount, parse_usd_amount

logger = logging.getLogger(__name__)


# =============================================================================
# FREE-TEXT LABELS (fallback when the program record has no structured data)
# =============================================================================

_AMOUNT = r"(?:USD\s*)?\$?\s*([\d][\d.,]*)"
_GAP = r"[^\d$\n]{0,40}?"

TUITION_PATTERN = re.compile(r"\btuition(?:\s+and\s+fees)?\b" + _GAP + _AMOUNT, re.IGNORECASE)
LIVING_PATTERN = re.compile(
    r"\b(?:living(?:\s+expenses)?|room\s+and\s+board|housing)\b" + _GAP + _AMOUNT,
    re.IGNORECASE,
)
TOTAL_PATTERN = re.compile(
    r"\btotal(?:\s+required|\s+cost|\s+annual\s+cost)?\b" + _GAP + _AMOUNT,
    re.IGNORECASE,
)

NAME_TOKEN_MIN_LENGTH = 3


class FinancialReconciler:
    """Pure reconciliation of extracted financial facts."""

    def __init__(self, config: PipelineConfig = DEFAULT_CONFIG):
        self.config = config

    # =========================================================================
    # AVAILABLE FUNDS
    # =========================================================================

    def calculate_available_funds(self, data: AggregatedApplicationData) -> FinancialCalculation:
        declared_savings = parse_usd_amount(data.financial_support.savings_amount)
        sponsor_name = data.sponsor_name

        applicant_balances: List[float] = []
        sponsor_balances: List[float] = []
        attributions: List[StatementAttribution] = []

        for statement in data.bank_statements:
            balance = self.statement_balance(statement)
            role, method = self.classify_statement(statement, sponsor_name)

            attributions.append(StatementAttribution(
                account_holder_name=statement.account_holder_name,
                balance=balance,
                role=role,
                method=method,
            ))

            if balance <= 0:
                logger.warning(
                    f"Bank statement for '{statement.account_holder_name}' has no parsable balance"
                )
                continue

            if role == RecordRole.SPONSOR:
                sponsor_balances.append(balance)
            else:
                applicant_balances.append(balance)

        bank_statement_total = sum(applicant_balances) if applicant_balances else None
        sponsor_amount = max(sponsor_balances) if sponsor_balances else 0.0
        personal_funds = max(declared_savings, bank_statement_total or 0.0)

        calculation = FinancialCalculation(
            personal_funds=personal_funds,
            sponsor_amount=sponsor_amount,
            total_available=personal_funds + sponsor_amount,
            bank_statement_total=bank_statement_total,
            declared_savings=declared_savings,
            attributions=tuple(attributions),
        )

        if calculation.used_name_heuristic:
            logger.warning("Sponsor attribution relied on name matching for at least one statement")

        logger.info(
            f"Available funds: personal={personal_funds:.2f}, sponsor={sponsor_amount:.2f}, "
            f"total={calculation.total_available:.2f}"
        )
        return calculation

    @staticmethod
    def statement_balance(statement: BankStatementRecord) -> float:
        """Closing balance, falling back to the alternate total-balance field."""
        closing = parse_amount(statement.closing_balance)
        if closing > 0:
            return closing
        return parse_amount(statement.total_balance)

    @staticmethod
    def classify_statement(
        statement: BankStatementRecord,
        sponsor_name: Optional[str],
    ) -> Tuple[RecordRole, AttributionMethod]:
        """
        Explicit type tag first, then fuzzy name matching against the sponsor.

        Name matching: any sponsor-name token longer than two characters
        found (case-insensitive substring) in the account holder name.
        """
        if statement.role == RecordRole.SPONSOR:
            return RecordRole.SPONSOR, AttributionMethod.TYPE_TAG

        if sponsor_name and statement.account_holder_name:
            if names_match(sponsor_name, statement.account_holder_name):
                return RecordRole.SPONSOR, AttributionMethod.NAME_MATCH

        if statement.role == RecordRole.APPLICANT:
            return RecordRole.APPLICANT, AttributionMethod.TYPE_TAG
        return RecordRole.APPLICANT, AttributionMethod.DEFAULT

    # =========================================================================
    # REQUIRED FUNDS
    # =========================================================================

    def estimate_required_funds(
        self,
        program_financial_text: Optional[str],
        structured: Optional[ProgramRecord] = None,
    ) -> RequiredFundsEstimate:
        tuition = _positive(parse_usd_amount(structured.annual_tuition_amount)) if structured else None
        living = _positive(parse_usd_amount(structured.annual_living_expenses)) if structured else None
        aggregate = _positive(parse_usd_amount(structured.total_annual_cost)) if structured else None

        if program_financial_text:
            if tuition is None:
                tuition = _match_amount(TUITION_PATTERN, program_financial_text)
            if living is None:
                living = _match_amount(LIVING_PATTERN, program_financial_text)
            if aggregate is None:
                aggregate = _match_amount(TOTAL_PATTERN, program_financial_text)

        if tuition is not None and living is not None:
            total_required = tuition + living
            if aggregate is not None and aggregate != total_required:
                logger.info(
                    f"Ignoring reported aggregate {aggregate:.2f}; tuition + living = {total_required:.2f}"
                )
        else:
            total_required = aggregate

        return RequiredFundsEstimate(
            tuition=tuition,
            living=living,
            total_required=total_required,
            reported_aggregate=aggregate,
        )

    def estimate_for_application(self, data: AggregatedApplicationData) -> RequiredFundsEstimate:
        program = data.program_record
        text = program.financial_text if program else None
        return self.estimate_required_funds(text, program)

    # =========================================================================
    # DECISION
    # =========================================================================

    def assess(
        self,
        calculation: FinancialCalculation,
        required: RequiredFundsEstimate,
    ) -> FundsAssessment:
        if not required.is_known:
            return FundsAssessment(
                decision=FundsDecision.INDETERMINATE,
                total_available=calculation.total_available,
                total_required=None,
            )

        difference = calculation.total_available - required.total_required
        if calculation.total_available > 0 and difference >= 0:
            return FundsAssessment(
                decision=FundsDecision.SUFFICIENT,
                total_available=calculation.total_available,
                total_required=required.total_required,
                buffer=difference,
            )

        return FundsAssessment(
            decision=FundsDecision.INSUFFICIENT,
            total_available=calculation.total_available,
            total_required=required.total_required,
            deficit=max(-difference, 0.0),
        )


# =============================================================================
# HELPERS
# =============================================================================

def names_match(reference_name: str, candidate_name: str) -> bool:
    """Case-insensitive substring match of any reference token (> 2 chars)."""
    candidate = candidate_name.lower()
    tokens = [t for t in re.split(r"\s+", reference_name.lower()) if len(t) >= NAME_TOKEN_MIN_LENGTH]
    return any(token in candidate for token in tokens)


def _positive(value: float) -> Optional[float]:
    return value if value > 0 else None


def _match_amount(pattern: re.Pattern, text: str) -> Optional[float]:
    match = pattern.search(text)
    if not match:
        return None
    return _positive(parse_usd_amount(match.group(1)))
