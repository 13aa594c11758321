"""
Test Suite: Date Consistency Validator

Each rule is independently evaluable; unparsable dates never raise and are
treated as absent.
"""
from datetime import date, datetime

import pytest

from petition_engine.config import DEFAULT_CONFIG
from petition_engine.models.ssot import SuppressedTopic
from petition_engine.services.dates.consistency import (
    ALL_DATES_DIRECTIVE, ENTRY_NOT_BEFORE_EXPIRY, FILING_AFTER_EXPIRY, PROGRAM_DATES_DIRECTIVE,
    UNPARSABLE_DATE, DateConsistencyValidator, date_tokens, parse_date,
)


@pytest.fixture
def validator():
    return DateConsistencyValidator()


class TestParseDate:

    @pytest.mark.parametrize("raw,expected", [
        ("2024-03-10", date(2024, 3, 10)),
        ("03/10/2024", date(2024, 3, 10)),
        ("10 March 2024", date(2024, 3, 10)),
        ("March 10, 2024", date(2024, 3, 10)),
        (date(2024, 3, 10), date(2024, 3, 10)),
        (datetime(2024, 3, 10, 14, 30), date(2024, 3, 10)),
    ])
    def test_accepted_forms(self, raw, expected):
        assert parse_date(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "   ", "D/S", "unknown", "13/45/2024", "March 10"])
    def test_unparsable_is_none(self, raw):
        assert parse_date(raw) is None


class TestValidateDates:

    def test_clean_dates_have_no_findings(self, validator):
        findings = validator.validate_dates("2024-03-10", "2024-09-09", "2024-08-20", "2024-06-01")
        assert findings.errors == ()
        assert findings.warnings == ()
        assert findings.date_conflicts == ()
        assert findings.suppressed_topics == ()

    def test_entry_after_expiry_is_error_and_suppresses_all_dates(self, validator):
        findings = validator.validate_dates("2024-06-01", "2024-05-01", None, "2024-04-01")
        assert any(e.startswith(ENTRY_NOT_BEFORE_EXPIRY) for e in findings.errors)
        assert ALL_DATES_DIRECTIVE in findings.date_conflicts
        assert findings.any_dates_unsafe
        assert SuppressedTopic.ALL_DATES in findings.suppressed_topics

    def test_entry_equal_to_expiry_is_error(self, validator):
        findings = validator.validate_dates("2024-06-01", "2024-06-01", None, "2024-05-01")
        assert any(e.startswith(ENTRY_NOT_BEFORE_EXPIRY) for e in findings.errors)

    def test_filing_after_expiry_is_error(self, validator):
        findings = validator.validate_dates("2024-01-10", "2024-05-01", None, "2024-05-02")
        assert any(e.startswith(FILING_AFTER_EXPIRY) for e in findings.errors)
        assert not findings.any_dates_unsafe

    def test_filing_on_expiry_is_only_a_proximity_warning(self, validator):
        findings = validator.validate_dates("2024-01-10", "2024-05-01", None, "2024-05-01")
        assert findings.errors == ()
        assert len(findings.warnings) == 1
        assert "within 30 days" in findings.warnings[0]

    def test_proximity_window_follows_config(self):
        validator = DateConsistencyValidator(DEFAULT_CONFIG.with_overrides(filing_proximity_days=5))
        findings = validator.validate_dates("2024-01-10", "2024-05-01", None, "2024-04-20")
        assert findings.warnings == ()

    def test_program_start_before_entry_suppresses_program_dates(self, validator):
        findings = validator.validate_dates("2024-06-01", "2024-12-01", "2024-01-01", "2024-06-15")
        assert PROGRAM_DATES_DIRECTIVE in findings.date_conflicts
        assert findings.program_dates_unsafe
        assert not findings.any_dates_unsafe
        assert findings.suppressed_topics == (SuppressedTopic.PROGRAM_DATES,)
        assert "January 1, 2024" in findings.program_date_tokens
        assert "2024-01-01" in findings.program_date_tokens
        # Program start also precedes filing
        assert len(findings.warnings) == 2

    def test_program_start_before_filing_is_warning_only(self, validator):
        findings = validator.validate_dates("2024-01-10", "2024-12-01", "2024-05-01", "2024-06-01")
        assert findings.errors == ()
        assert findings.date_conflicts == ()
        assert len(findings.warnings) == 1
        assert "may have already started" in findings.warnings[0]

    def test_unparsable_dates_are_reported(self, validator, caplog):
        findings = validator.validate_dates("not a date", "D/S", "TBD", "2024-06-01")
        assert [e.split(";")[0] for e in findings.errors] == [
            f"{UNPARSABLE_DATE}: entry 'not a date'",
            f"{UNPARSABLE_DATE}: status expiry 'D/S'",
        ]
        assert findings.warnings == (
            f"{UNPARSABLE_DATE}: program start 'TBD'; verify the program start date",
        )
        assert "treated as absent" in caplog.text

    def test_unparsable_expiry_skips_ordering_but_errors(self, validator):
        findings = validator.validate_dates("2024-03-10", "D/S pending", "2024-08-20", "2024-06-01")
        assert len(findings.errors) == 1
        assert findings.errors[0].startswith(f"{UNPARSABLE_DATE}: status expiry")
        assert not any(e.startswith(FILING_AFTER_EXPIRY) for e in findings.errors)

    @pytest.mark.parametrize("blank", [None, "", "   "])
    def test_missing_dates_are_not_unparsable(self, validator, blank):
        findings = validator.validate_dates(blank, blank, blank, "2024-06-01")
        assert findings.errors == ()
        assert findings.warnings == ()

    def test_findings_are_deterministic(self, validator):
        args = ("2024-06-01", "2024-05-01", "2024-01-01", "2024-07-01")
        assert validator.validate_dates(*args) == validator.validate_dates(*args)

    def test_validate_application_reads_records(self, validator, make_application):
        data = make_application(entry="2024-06-01", admit_until="2024-12-01", program_start="2024-01-01")
        findings = validator.validate_application(data, "2024-06-15")
        assert findings.program_dates_unsafe


class TestDateTokens:

    def test_renderings(self):
        tokens = date_tokens("2024-08-20", date(2024, 8, 20))
        assert tokens[0] == "2024-08-20"
        assert "August 20, 2024" in tokens
        assert "08/20/2024" in tokens
        assert "8/20/2024" in tokens
        assert len(tokens) == len(set(tokens))

    def test_no_date_no_tokens(self):
        assert date_tokens(None, None) == ()
