"""
Test Suite: Financial Reconciler

Covers available funds (personal vs sponsor attribution), required funds
estimation, the sufficiency decision and the literal summary block.
"""
import random

import pytest

from petition_engine.models.ssot import (
    AggregatedApplicationData, AttributionMethod, BankStatementRecord, FinancialSupportAnswers,
    FundingSource, FundsDecision, ProgramRecord, RecordRole, RequiredFundsEstimate,
)
from petition_engine.services.financial.reconciler import FinancialReconciler, names_match
from petition_engine.services.financial.summary import (
    build_financial_summary, extract_financial_summary, is_financial_summary_block,
)


@pytest.fixture
def reconciler():
    return FinancialReconciler()


def statement(holder, balance, role=RecordRole.APPLICANT, total=None):
    return BankStatementRecord(
        account_holder_name=holder, closing_balance=balance, total_balance=total, role=role,
    )


def data_with(statements=(), savings=None, sponsor=None):
    return AggregatedApplicationData(
        financial_support=FinancialSupportAnswers(
            funding_source=FundingSource.SPONSOR if sponsor else FundingSource.SELF,
            savings_amount=savings,
            sponsor_name=sponsor,
        ),
        bank_statements=tuple(statements),
    )


class TestAvailableFunds:

    def test_applicant_statements_are_summed(self, reconciler):
        calc = reconciler.calculate_available_funds(data_with([
            statement("Ana Pereira", "12.000,00"),
            statement("Ana Pereira", "$8,500.50"),
        ]))
        assert calc.bank_statement_total == pytest.approx(20500.50)
        assert calc.personal_funds == pytest.approx(20500.50)
        assert calc.sponsor_amount == 0.0

    def test_personal_funds_take_larger_of_savings_and_statements(self, reconciler):
        calc = reconciler.calculate_available_funds(data_with(
            [statement("Ana Pereira", "5,000.00")], savings="30000",
        ))
        assert calc.personal_funds == 30000.0
        assert calc.declared_savings == 30000.0
        assert calc.bank_statement_total == 5000.0

    def test_sponsor_amount_is_max_not_sum(self, reconciler):
        calc = reconciler.calculate_available_funds(data_with([
            statement("Carlos Pereira", "40,000.00", role=RecordRole.SPONSOR),
            statement("Carlos Pereira", "42,500.00", role=RecordRole.SPONSOR),
        ], sponsor="Carlos Pereira"))
        assert calc.sponsor_amount == 42500.0
        assert calc.bank_statement_total is None

    def test_type_tag_wins_over_name(self, reconciler):
        calc = reconciler.calculate_available_funds(data_with([
            statement("Unrelated Holder", "10,000.00", role=RecordRole.SPONSOR),
        ], sponsor="Carlos Pereira"))
        assert calc.sponsor_amount == 10000.0
        assert calc.attributions[0].method == AttributionMethod.TYPE_TAG

    def test_name_match_attributes_untagged_statement_to_sponsor(self, reconciler):
        calc = reconciler.calculate_available_funds(data_with([
            statement("CARLOS A. SILVA", "15,000.00", role=RecordRole.UNKNOWN),
        ], sponsor="Carlos Silva"))
        assert calc.sponsor_amount == 15000.0
        assert calc.attributions[0].role == RecordRole.SPONSOR
        assert calc.attributions[0].method == AttributionMethod.NAME_MATCH
        assert calc.used_name_heuristic

    def test_total_balance_is_fallback(self, reconciler):
        calc = reconciler.calculate_available_funds(data_with([
            statement("Ana Pereira", None, total="7.500,00"),
        ]))
        assert calc.personal_funds == 7500.0

    def test_unparsable_balance_is_skipped(self, reconciler):
        calc = reconciler.calculate_available_funds(data_with([
            statement("Ana Pereira", "see attached"),
        ]))
        assert calc.total_available == 0.0
        assert calc.bank_statement_total is None

    def test_total_is_personal_plus_sponsor_for_random_buckets(self, reconciler):
        rng = random.Random(1337)
        holders = ["Ana Pereira", "Carlos Pereira", "Joana Lima", "Pedro Costa"]
        for _ in range(200):
            statements = []
            for _ in range(rng.randint(0, 6)):
                amount = rng.uniform(0, 100000)
                if rng.random() < 0.5:
                    balance = f"{amount:,.2f}"
                else:
                    balance = f"{amount:,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
                role = rng.choice(list(RecordRole))
                statements.append(statement(rng.choice(holders), balance, role=role))
            savings = rng.choice([None, "", "abc", str(rng.randint(0, 50000))])
            sponsor = rng.choice([None, "Carlos Pereira", "Joana Lima"])

            calc = reconciler.calculate_available_funds(data_with(statements, savings, sponsor))

            assert calc.total_available == pytest.approx(calc.personal_funds + calc.sponsor_amount)
            assert calc.personal_funds >= 0 and calc.sponsor_amount >= 0
            assert calc.personal_funds >= calc.declared_savings


class TestNamesMatch:

    @pytest.mark.parametrize("reference,candidate,expected", [
        ("Carlos Silva", "CARLOS A SILVA", True),
        ("Carlos Silva", "silva family trust", True),
        ("Li Wu", "Li Wu", False),
        ("Carlos Silva", "Ana Pereira", False),
        ("", "Ana Pereira", False),
    ])
    def test_token_substring_match(self, reference, candidate, expected):
        assert names_match(reference, candidate) is expected


class TestRequiredFunds:

    def test_tuition_plus_living_beats_reported_aggregate(self, reconciler):
        estimate = reconciler.estimate_required_funds(None, ProgramRecord(
            annual_tuition_amount="10000",
            annual_living_expenses="7000",
            total_annual_cost="18500",
        ))
        assert estimate.total_required == 17000.0
        assert estimate.reported_aggregate == 18500.0

    def test_aggregate_used_when_components_missing(self, reconciler):
        estimate = reconciler.estimate_required_funds(None, ProgramRecord(total_annual_cost="$20,000"))
        assert estimate.total_required == 20000.0
        assert estimate.tuition is None

    def test_free_text_fallback(self, reconciler):
        text = "Tuition and fees: $24,500\nLiving expenses $12,000\nTotal: $39,000"
        estimate = reconciler.estimate_required_funds(text, None)
        assert estimate.tuition == 24500.0
        assert estimate.living == 12000.0
        assert estimate.total_required == 36500.0

    def test_room_and_board_label(self, reconciler):
        estimate = reconciler.estimate_required_funds("Room and board: USD 9,800", None)
        assert estimate.living == 9800.0
        assert estimate.total_required is None

    def test_structured_fields_take_priority_over_text(self, reconciler):
        estimate = reconciler.estimate_required_funds(
            "Tuition: $99,999",
            ProgramRecord(annual_tuition_amount="10000", annual_living_expenses="5000"),
        )
        assert estimate.tuition == 10000.0

    def test_nothing_extractable_is_unknown_not_zero(self, reconciler):
        estimate = reconciler.estimate_required_funds("No figures here", ProgramRecord())
        assert estimate.total_required is None
        assert not estimate.is_known


class TestAssessment:

    def test_buffer_when_sufficient(self, reconciler):
        calc = reconciler.calculate_available_funds(data_with(savings="25000"))
        funds = reconciler.assess(calc, RequiredFundsEstimate(total_required=20000.0))
        assert funds.decision == FundsDecision.SUFFICIENT
        assert funds.buffer == 5000.0

    def test_deficit_when_insufficient(self, reconciler):
        calc = reconciler.calculate_available_funds(data_with(savings="12000"))
        funds = reconciler.assess(calc, RequiredFundsEstimate(total_required=20000.0))
        assert funds.decision == FundsDecision.INSUFFICIENT
        assert funds.deficit == 8000.0

    def test_no_funds_is_never_sufficient(self, reconciler):
        calc = reconciler.calculate_available_funds(data_with())
        funds = reconciler.assess(calc, RequiredFundsEstimate(total_required=20000.0))
        assert calc.total_available == 0.0
        assert funds.decision == FundsDecision.INSUFFICIENT

    def test_unknown_requirement_is_indeterminate(self, reconciler):
        calc = reconciler.calculate_available_funds(data_with(savings="25000"))
        funds = reconciler.assess(calc, RequiredFundsEstimate())
        assert funds.decision == FundsDecision.INDETERMINATE


class TestSummaryBlock:

    def test_literal_format(self, reconciler):
        calc = reconciler.calculate_available_funds(data_with(
            [statement("Maria Silva", "5,000.00", role=RecordRole.SPONSOR)],
            savings="25000", sponsor="Maria Silva",
        ))
        estimate = RequiredFundsEstimate(tuition=10000.0, living=7000.0, total_required=17000.0)
        block = build_financial_summary(estimate, calc, "Maria Silva")
        assert block == (
            "Financial Requirements:\n"
            "Tuition: USD $10,000\n"
            "Living Expenses: USD $7,000\n"
            "Total Required: USD $17,000\n"
            "\n"
            "Available Financial Resources:\n"
            "Personal funds: USD $25,000\n"
            "Financial sponsorship by Maria Silva: USD $5,000\n"
            "Total Available: USD $30,000"
        )

    def test_unknown_requirements_omitted(self, reconciler):
        calc = reconciler.calculate_available_funds(data_with(savings="25000"))
        block = build_financial_summary(RequiredFundsEstimate(), calc)
        assert "Financial Requirements:" not in block
        assert "Financial sponsorship" not in block
        assert block.endswith("Total Available: USD $25,000")

    def test_extract_reads_back_block(self, reconciler):
        calc = reconciler.calculate_available_funds(data_with(
            [statement("Maria Silva", "5,000.00", role=RecordRole.SPONSOR)],
            savings="25000", sponsor="Maria Silva",
        ))
        estimate = RequiredFundsEstimate(tuition=10000.0, living=7000.0, total_required=17000.0)
        figures = extract_financial_summary(
            "The figures are below.\n\n" + build_financial_summary(estimate, calc, "Maria Silva")
        )
        assert figures.tuition == 10000.0
        assert figures.living_expenses == 7000.0
        assert figures.total_required == 17000.0
        assert figures.personal_funds == 25000.0
        assert figures.sponsor_name == "Maria Silva"
        assert figures.sponsor_amount == 5000.0
        assert figures.total_available == 30000.0

    def test_block_detection(self):
        assert is_financial_summary_block(
            "Available Financial Resources:\nPersonal funds: USD $1\nTotal Available: USD $1"
        )
        assert not is_financial_summary_block(
            "Available Financial Resources:\nThe applicant has savings of USD $1 (Exhibit D)."
        )
        assert not is_financial_summary_block("Tuition: USD $1\nLiving Expenses: USD $2")
