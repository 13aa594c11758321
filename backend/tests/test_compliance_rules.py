"""
Test Suite: Compliance Rule Checker

Each rule family is exercised against the compliant reference letter with
a single section changed, so any finding can only come from that change.
"""
import pytest

from petition_engine.config import DEFAULT_CONFIG
from petition_engine.models.ssot import CoverLetterSections, SectionName, Severity, Voice
from petition_engine.services.analysis import analyze_application
from petition_engine.services.compliance.catalog import (
    DEFAULT_RULE_CATALOG, RuleCategory, TermRule, get_rule,
)
from petition_engine.services.compliance.citations import FORBIDDEN_CITATIONS, format_legal_basis
from petition_engine.services.compliance.checker import (
    ComplianceRuleChecker, first_person_marker, third_person_marker,
)

from conftest import (
    APPLICANT, CHANGE_OF_INTENT, CONCLUSION, ENTRY_AND_STATUS, FILING_DATE, FINANCIAL_NARRATIVE,
    INTRODUCTION, PURPOSE_OF_STUDY, TIES_TO_HOME_COUNTRY,
)


@pytest.fixture
def checker():
    return ComplianceRuleChecker()


def rule_ids(result, severity=None):
    return {
        f.rule_id for f in result.findings
        if severity is None or f.severity == severity
    }


class TestCompliantLetter:

    def test_passes_without_findings(self, checker, application, analysis, compliant_sections):
        result = checker.check_rules(compliant_sections, application, analysis)
        assert result.passed
        assert result.errors == ()
        assert result.warnings == ()

    def test_analysis_computed_when_not_supplied(self, checker, application, compliant_sections):
        result = checker.check_rules(compliant_sections, application, filing_date=FILING_DATE)
        assert result.passed

    def test_rechecking_is_idempotent(self, checker, application, analysis, compliant_sections):
        first = checker.check_rules(compliant_sections, application, analysis)
        second = checker.check_rules(compliant_sections, application, analysis)
        assert first == second


class TestCatalogTermRules:

    @pytest.mark.parametrize("sentence,rule_id", [
        ("The applicant has maintained lawful status.", "STATUS_MAINTAINED"),
        ("The applicant is eligible for the change.", "STATUS_ELIGIBLE"),
        ("The applicant meets all the requirements.", "STATUS_MEETS_ALL"),
        ("The application complies with all regulations.", "STATUS_COMPLIES_ALL"),
        ("The record satisfies all conditions.", "STATUS_SATISFIES_ALL"),
        ("The application will be approved.", "OVERCLAIM_GUARANTEE"),
        ("Approval is guaranteed.", "OVERCLAIM_GUARANTEE"),
        ("The applicant seeks a student visa.", "VOCAB_STUDENT_VISA"),
        ("This request relies on 8 C.F.R. 214.1.", "CITATION_GENERIC_214_1"),
        ("This request relies on 8 CFR Section 214.1.", "CITATION_GENERIC_214_1"),
    ])
    def test_letter_wide_errors(self, checker, application, analysis, make_sections, sentence, rule_id):
        sections = make_sections(analysis.financial_summary, {
            SectionName.INTRODUCTION: f"{INTRODUCTION} {sentence}",
        })
        result = checker.check_rules(sections, application, analysis)
        assert not result.passed
        assert rule_id in rule_ids(result, Severity.ERROR)
        assert any(e.startswith("[introduction] ") for e in result.errors)

    def test_specific_citation_is_not_generic(self):
        rule = get_rule("CITATION_GENERIC_214_1")
        assert rule.find("8 C.F.R. Section 214.2(f)") is None
        assert rule.find("8 C.F.R. 214.1(a)") is None
        assert rule.find("8 C.F.R. 214.1") == "8 C.F.R. 214.1"

    def test_transaction_terms_only_in_financial_section(self, checker, application, analysis, make_sections):
        sentence = " Funds were received by wire transfer."
        in_financial = make_sections(analysis.financial_summary, {
            SectionName.FINANCIAL_ABILITY: f"{FINANCIAL_NARRATIVE}{sentence}\n\n{analysis.financial_summary}",
        })
        in_conclusion = make_sections(analysis.financial_summary, {
            SectionName.CONCLUSION: f"{CONCLUSION}{sentence}",
        })
        assert "FIN_TRANSACTION_TERM" in rule_ids(checker.check_rules(in_financial, application, analysis))
        assert "FIN_TRANSACTION_TERM" not in rule_ids(checker.check_rules(in_conclusion, application, analysis))

    def test_past_employment_phrasing_is_warning(self, checker, application, analysis, make_sections):
        sections = make_sections(analysis.financial_summary, {
            SectionName.PURPOSE_OF_STUDY: f"{PURPOSE_OF_STUDY} The applicant previously worked as an analyst.",
        })
        result = checker.check_rules(sections, application, analysis)
        assert result.passed
        assert "EMPLOYMENT_PAST_PHRASING" in rule_ids(result, Severity.WARNING)

    def test_custom_catalog_replaces_default(self, application, analysis, make_sections):
        rule = TermRule(
            rule_id="STYLE_HEREBY",
            category=RuleCategory.VOCABULARY,
            pattern=r"\bhereby\b",
            severity=Severity.WARNING,
            message="Avoid 'hereby'",
        )
        checker = ComplianceRuleChecker(DEFAULT_CONFIG.with_overrides(rule_catalog=(rule,)))
        sections = make_sections(analysis.financial_summary, {
            SectionName.CONCLUSION: f"{CONCLUSION} The applicant hereby certifies the record. It is guaranteed.",
        })
        ids = rule_ids(checker.check_rules(sections, application, analysis))
        assert "STYLE_HEREBY" in ids
        assert "OVERCLAIM_GUARANTEE" not in ids

    @pytest.mark.parametrize("citation", FORBIDDEN_CITATIONS)
    def test_forbidden_citations_are_caught(self, citation):
        assert get_rule("CITATION_GENERIC_214_1").find(f"pursuant to {citation}.") == citation

    def test_canonical_legal_basis_passes(self, checker, application, analysis, make_sections):
        sections = make_sections(analysis.financial_summary, {SectionName.LEGAL_BASIS: format_legal_basis()})
        result = checker.check_rules(sections, application, analysis)
        assert result.passed
        assert "LEGAL_BASIS_MISSING_248" not in rule_ids(result)

    def test_catalog_ids_are_unique(self):
        ids = [rule.rule_id for rule in DEFAULT_RULE_CATALOG]
        assert len(ids) == len(set(ids))


class TestFinancialRules:

    def test_close_contradiction_is_error(self, checker, application, analysis, make_sections):
        text = (
            f"{FINANCIAL_NARRATIVE}\n\n"
            "Tuition: $13,000\nLiving expenses: $7,000\n"
            "Total Required: $20,000\nTotal Available: $12,000"
        )
        sections = make_sections(analysis.financial_summary, {SectionName.FINANCIAL_ABILITY: text})
        result = checker.check_rules(sections, application, analysis)
        assert not result.passed
        assert "FIN_CONTRADICTION" in rule_ids(result, Severity.ERROR)
        assert "FIN_LOOSE_MISMATCH" not in rule_ids(result)

    def test_distant_mismatch_is_warning(self, checker, application, analysis, make_sections):
        text = (
            "Financial Requirements:\nTuition: USD $13,000\nLiving Expenses: USD $7,000\n"
            "Total Required: USD $20,000\n\n"
            f"{FINANCIAL_NARRATIVE}\n\n"
            "Available Financial Resources:\nPersonal funds: USD $12,000\nTotal Available: USD $12,000"
        )
        sections = make_sections(analysis.financial_summary, {SectionName.FINANCIAL_ABILITY: text})
        result = checker.check_rules(sections, application, analysis)
        ids = rule_ids(result)
        assert "FIN_LOOSE_MISMATCH" in ids
        assert "FIN_CONTRADICTION" not in ids

    def test_stated_totals_compared_with_reconciled(self, checker, application, analysis, make_sections):
        text = (
            f"{FINANCIAL_NARRATIVE}\n\n"
            "Financial Requirements:\nTuition: USD $10,000\nLiving Expenses: USD $7,000\n"
            "Total Required: USD $18,500\n\n"
            "Available Financial Resources:\nPersonal funds: USD $40,000\nTotal Available: USD $40,000"
        )
        sections = make_sections(analysis.financial_summary, {SectionName.FINANCIAL_ABILITY: text})
        result = checker.check_rules(sections, application, analysis)
        assert result.passed
        assert {"FIN_STATED_AVAILABLE_MISMATCH", "FIN_STATED_REQUIRED_MISMATCH"} <= rule_ids(
            result, Severity.WARNING
        )

    @pytest.mark.parametrize("removed,present", [
        (" and living expenses", "tuition"),
        ("tuition and ", "living expenses"),
    ])
    def test_tuition_and_living_must_pair(self, checker, application, analysis, make_sections, removed, present):
        narrative = FINANCIAL_NARRATIVE.replace(removed, "")
        sections = make_sections(analysis.financial_summary, {SectionName.FINANCIAL_ABILITY: narrative})
        result = checker.check_rules(sections, application, analysis)
        assert "FIN_INCOMPLETE_REQUIREMENTS" in rule_ids(result, Severity.ERROR)
        assert any(f"mentions {present} but not" in e for e in result.errors)

    def test_adequacy_claim_while_insufficient(self, checker, make_application, make_sections):
        data = make_application(savings="5000", bank_statements=((APPLICANT, "$5,000.00"),))
        analysis = analyze_application(data, DEFAULT_CONFIG, FILING_DATE)
        sections = make_sections(analysis.financial_summary, {
            SectionName.CONCLUSION: f"{CONCLUSION} The applicant has sufficient funds for the program.",
        })
        result = checker.check_rules(sections, data, analysis)
        assert "FIN_ADEQUACY_WHILE_INSUFFICIENT" in rule_ids(result, Severity.ERROR)

    def test_adequacy_claim_accepted_when_sufficient(self, checker, application, analysis, make_sections):
        sections = make_sections(analysis.financial_summary, {
            SectionName.CONCLUSION: f"{CONCLUSION} The applicant has sufficient funds for the program.",
        })
        result = checker.check_rules(sections, application, analysis)
        assert result.passed
        assert "FIN_ADEQUACY_WHILE_INSUFFICIENT" not in rule_ids(result)


class TestDateSuppressions:

    def test_program_dates_suppressed(self, checker, make_application, make_sections):
        data = make_application(program_start="2024-01-01")
        analysis = analyze_application(data, DEFAULT_CONFIG, FILING_DATE)
        assert analysis.dates.program_dates_unsafe

        # The entry dates in the reference letter are not program dates
        clean = make_sections(analysis.financial_summary)
        assert checker.check_rules(clean, data, analysis).passed

        in_purpose = make_sections(analysis.financial_summary, {
            SectionName.PURPOSE_OF_STUDY: f"{PURPOSE_OF_STUDY} The program begins in January 2024.",
        })
        in_conclusion = make_sections(analysis.financial_summary, {
            SectionName.CONCLUSION: f"{CONCLUSION} Classes started on 2024-01-01.",
        })
        purpose_result = checker.check_rules(in_purpose, data, analysis)
        conclusion_result = checker.check_rules(in_conclusion, data, analysis)
        assert "DATES_PROGRAM_SUPPRESSED" in rule_ids(purpose_result, Severity.ERROR)
        assert any(e.startswith("[conclusion] Program dates") for e in conclusion_result.errors)

    def test_all_dates_suppressed(self, checker, make_application, make_sections):
        data = make_application(entry="2024-06-01", admit_until="2024-05-01")
        analysis = analyze_application(data, DEFAULT_CONFIG, FILING_DATE)
        assert analysis.dates.any_dates_unsafe

        result = checker.check_rules(make_sections(analysis.financial_summary), data, analysis)
        assert "DATES_ALL_SUPPRESSED" in rule_ids(result, Severity.ERROR)
        assert any(e.startswith("[entry_and_status] Specific dates") for e in result.errors)


class TestEmploymentAndTies:

    def test_present_domestic_employment_is_error(self, checker, application, analysis, make_sections):
        sections = make_sections(analysis.financial_summary, {
            SectionName.CHANGE_OF_INTENT: f"{CHANGE_OF_INTENT} The applicant is currently employed at a firm in Chicago.",
        })
        result = checker.check_rules(sections, application, analysis)
        assert "EMPLOYMENT_PRESENT_DOMESTIC" in rule_ids(result, Severity.ERROR)

    @pytest.mark.parametrize("sentence", [
        "The applicant is currently employed at a cafe in Chicago and sends money to family in Brazil.",
        "The applicant works at a bookstore, although the family remains in Brazil.",
        "The applicant is working in the United States while keeping a home in Brazil.",
        "The applicant is on leave from a bank in Brazil and is currently employed in IL.",
    ])
    def test_home_country_mention_elsewhere_does_not_excuse(
        self, checker, application, analysis, make_sections, sentence,
    ):
        sections = make_sections(analysis.financial_summary, {
            SectionName.TIES_TO_HOME_COUNTRY: f"{TIES_TO_HOME_COUNTRY} {sentence}",
        })
        result = checker.check_rules(sections, application, analysis)
        assert "EMPLOYMENT_PRESENT_DOMESTIC" in rule_ids(result, Severity.ERROR)

    @pytest.mark.parametrize("sentence", [
        "The applicant is currently employed by a research firm in Brazil.",
        "The applicant is employed in the home country.",
        "The applicant is employed and is on a leave of absence.",
        "The applicant currently works for a logistics company abroad.",
        "The applicant is currently employed as an analyst at Banco Central in Brazil.",
    ])
    def test_home_country_employment_is_allowed(self, checker, application, analysis, make_sections, sentence):
        sections = make_sections(analysis.financial_summary, {
            SectionName.CHANGE_OF_INTENT: f"{CHANGE_OF_INTENT} {sentence}",
        })
        assert "EMPLOYMENT_PRESENT_DOMESTIC" not in rule_ids(checker.check_rules(sections, application, analysis))

    def test_subjective_ties_is_warning(self, checker, application, analysis, make_sections):
        sections = make_sections(analysis.financial_summary, {
            SectionName.TIES_TO_HOME_COUNTRY: f"{TIES_TO_HOME_COUNTRY} The applicant cherishes the family home.",
        })
        result = checker.check_rules(sections, application, analysis)
        assert result.passed
        assert "TIES_SUBJECTIVE_TERM" in rule_ids(result, Severity.WARNING)

    def test_duty_phrase_in_ties(self, checker, application, analysis, make_sections):
        sections = make_sections(analysis.financial_summary, {
            SectionName.TIES_TO_HOME_COUNTRY: f"{TIES_TO_HOME_COUNTRY} It is my duty to return.",
        })
        result = checker.check_rules(sections, application, analysis)
        assert "TIES_SUBJECTIVE_TERM" in rule_ids(result, Severity.WARNING)
        # "my" is also a first-person marker
        assert "VOICE_FORBIDDEN" in rule_ids(result, Severity.ERROR)

    def test_subjective_term_outside_ties_is_not_flagged(self, checker, application, analysis, make_sections):
        sections = make_sections(analysis.financial_summary, {
            SectionName.PURPOSE_OF_STUDY: f"{PURPOSE_OF_STUDY} The school is proud to host the program.",
        })
        assert "TIES_SUBJECTIVE_TERM" not in rule_ids(checker.check_rules(sections, application, analysis))

    def test_no_objective_tie_is_warning(self, checker, application, analysis, make_sections):
        ties = (
            "The applicant maintains cultural and community connections to Brazil, as described in "
            "the supporting documents (Exhibit C). The applicant expects to contribute to the "
            "analytics field in Brazil after completing the program of study."
        )
        sections = make_sections(analysis.financial_summary, {SectionName.TIES_TO_HOME_COUNTRY: ties})
        result = checker.check_rules(sections, application, analysis)
        assert result.passed
        assert "TIES_NO_OBJECTIVE_TIE" in rule_ids(result, Severity.WARNING)


class TestVoice:

    def test_first_person_is_forbidden(self, checker, application, analysis, make_sections):
        sections = make_sections(analysis.financial_summary, {
            SectionName.INTRODUCTION: f"{INTRODUCTION} I respectfully request approval.",
        })
        result = checker.check_rules(sections, application, analysis)
        assert "VOICE_FORBIDDEN" in rule_ids(result, Severity.ERROR)
        assert any("Third-person required" in e for e in result.errors)

    @pytest.mark.parametrize("text", [
        "The Form I-20 was issued (Exhibit B).",
        "See Exhibit I for details.",
        "Filed under Section I of the instructions.",
        "The answers in Part I of the form are complete.",
        "The income shown on Schedule I matches the statement.",
    ])
    def test_form_and_exhibit_letters_are_not_pronouns(self, text):
        assert first_person_marker(text) is None

    @pytest.mark.parametrize("text,expected", [
        ("I have enrolled.", "I have"),
        ("This is my application.", "my"),
        ("The school wrote to me.", "me"),
    ])
    def test_first_person_markers(self, text, expected):
        assert first_person_marker(text) == expected

    def test_third_person_markers(self):
        assert third_person_marker("The applicant entered in March.") == "The applicant"
        assert third_person_marker("She intends to study.") == "She intends"
        assert third_person_marker("No person here.") is None

    def test_required_voice_absent_is_warning(self, checker, application):
        sections = CoverLetterSections.from_mapping({SectionName.CONCLUSION: "Thank you for your consideration."})
        findings = checker.check_voice(sections, application)
        assert [f.rule_id for f in findings] == ["VOICE_REQUIRED_ABSENT"]

    def test_applicant_name_counts_as_third_person(self, checker, application):
        sections = CoverLetterSections.from_mapping({SectionName.CONCLUSION: "Pereira respectfully asks for review."})
        assert checker.check_voice(sections, application) == []

    def test_first_person_configuration_inverts_rule(self, application, analysis, compliant_sections):
        checker = ComplianceRuleChecker(DEFAULT_CONFIG.with_overrides(required_voice=Voice.FIRST_PERSON))
        result = checker.check_rules(compliant_sections, application, analysis)
        assert "VOICE_FORBIDDEN" in rule_ids(result, Severity.ERROR)
        assert "VOICE_REQUIRED_ABSENT" in rule_ids(result, Severity.WARNING)


class TestCitationsAndStructure:

    def test_section_without_citation(self, checker, application, analysis, make_sections):
        sections = make_sections(analysis.financial_summary, {
            SectionName.ENTRY_AND_STATUS: ENTRY_AND_STATUS.replace(" (Exhibit A)", ""),
        })
        result = checker.check_rules(sections, application, analysis)
        assert result.passed
        missing = [f for f in result.findings if f.rule_id == "CITATION_SECTION_MISSING"]
        assert [f.section for f in missing] == [SectionName.ENTRY_AND_STATUS]
        assert "CITATION_DENSITY_LOW" not in rule_ids(result)

    def test_low_density(self, checker, application, analysis, make_sections):
        sections = make_sections(analysis.financial_summary, {
            SectionName.ENTRY_AND_STATUS: ENTRY_AND_STATUS.replace(" (Exhibit A)", ""),
            SectionName.PURPOSE_OF_STUDY: PURPOSE_OF_STUDY.replace(" (Exhibit B)", "").replace(" (Exhibit C)", ""),
            SectionName.TIES_TO_HOME_COUNTRY: TIES_TO_HOME_COUNTRY.replace(" (Exhibit C)", ""),
        })
        result = checker.check_rules(sections, application, analysis)
        assert "CITATION_DENSITY_LOW" in rule_ids(result, Severity.WARNING)
        assert "1 exhibit citations for 4 evidentiary sections" in result.warnings

    def test_unavailable_exhibit_cited(self, checker, application, analysis, make_sections):
        sections = make_sections(analysis.financial_summary, {
            SectionName.CONCLUSION: f"{CONCLUSION} Additional records are enclosed (Exhibit F).",
        })
        result = checker.check_rules(sections, application, analysis)
        assert "Cites exhibits with no supporting document: F" in result.warnings

    def test_legal_basis_without_248(self, checker, application, analysis, make_sections):
        sections = make_sections(analysis.financial_summary, {
            SectionName.LEGAL_BASIS: (
                "This request is submitted under 8 C.F.R. Section 214.2(f), which governs F-1 "
                "student status and the conditions of enrollment."
            ),
        })
        result = checker.check_rules(sections, application, analysis)
        assert "LEGAL_BASIS_MISSING_248" in rule_ids(result, Severity.WARNING)

    def test_optional_sections_may_be_omitted(self, checker, application, analysis, make_sections):
        sections = make_sections(analysis.financial_summary, {
            SectionName.LEGAL_BASIS: None,
            SectionName.CHANGE_OF_INTENT: None,
        })
        assert checker.check_rules(sections, application, analysis).passed

    def test_required_section_missing_is_error(self, checker, application, analysis, make_sections):
        sections = make_sections(analysis.financial_summary, {SectionName.CONCLUSION: None})
        result = checker.check_rules(sections, application, analysis)
        assert "[conclusion] Required section is missing" in result.errors
