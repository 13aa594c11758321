"""
Test Suite: Exhibit Citation Tracker

Lettering is stable by evidence group (A-D), extra categories take E onward,
and citation extraction understands list continuations.
"""
import pytest

from petition_engine.models.ssot import AggregatedApplicationData, Exhibit
from petition_engine.services.exhibits.tracker import ExhibitCitationTracker


@pytest.fixture
def tracker():
    return ExhibitCitationTracker()


class TestReferencedExhibits:

    @pytest.mark.parametrize("text,expected", [
        ("See Exhibit A.", {"A"}),
        ("(Exhibit C)", {"C"}),
        ("Exhibit A and B", {"A", "B"}),
        ("Exhibits A, B, and D", {"A", "B", "D"}),
        ("Exhibit A & D", {"A", "D"}),
        ("exhibit B", {"B"}),
        ("exhibit b", set()),
        ("The applicant exhibits a sustained commitment.", set()),
        ("Exhibit A and I am grateful", {"A"}),
        ("Exhibit A and Brazil", {"A"}),
        ("No citations here.", set()),
        ("", set()),
    ])
    def test_extraction(self, tracker, text, expected):
        assert tracker.exhibits_referenced_in(text) == expected

    def test_multiple_citations_across_text(self, tracker):
        text = "Passport (Exhibit A). Form I-20 (Exhibit B). Statements (Exhibit D)."
        assert tracker.exhibits_referenced_in(text) == {"A", "B", "D"}

    def test_count_citations_counts_list_members(self, tracker):
        assert tracker.count_citations("Exhibit A and B, then Exhibit C") == 3
        assert tracker.count_citations("Exhibits A, B, and D") == 3
        assert tracker.count_citations("The applicant exhibits a sustained commitment (Exhibit C).") == 1
        assert tracker.count_citations("") == 0


class TestAvailableExhibits:

    def test_full_application_has_fixed_groups(self, tracker, application):
        letters = [e.letter for e in tracker.available_exhibits(application)]
        assert letters == ["A", "B", "C", "D"]

    def test_absent_group_keeps_its_letter_reserved(self, tracker, make_application):
        data = make_application(include_i20=False)
        letters = [e.letter for e in tracker.available_exhibits(data)]
        assert letters == ["A", "C", "D"]

    def test_ties_answers_alone_make_group_c_available(self, tracker):
        data = AggregatedApplicationData(ties_answers=("Family home in Recife",))
        assert [e.letter for e in tracker.available_exhibits(data)] == ["C"]

    def test_dependent_documents_are_lettered_after_d(self, tracker, make_application):
        data = make_application(extra_documents={
            "dependent_passport": [{"name": "Lia Pereira", "document_name": "Dependent passport"}],
            "dependent_i94": [{"name": "Lia Pereira", "document_name": "Dependent I-94"}],
        })
        exhibits = tracker.available_exhibits(data)
        assert [e.letter for e in exhibits] == ["A", "B", "C", "D", "E", "F"]
        assert exhibits[4].description == "Dependent passport"
        assert exhibits[5].categories == ("dependent_i94",)

    def test_unknown_category_is_listed_by_name(self, tracker, make_application):
        data = make_application(extra_documents={
            "marriage_certificate": [{"document_name": "Marriage certificate"}],
        })
        exhibits = tracker.available_exhibits(data)
        assert exhibits[-1] == Exhibit(
            letter="E", description="Marriage certificate", categories=("marriage_certificate",),
        )

    def test_sponsor_only_financials_still_give_exhibit_d(self, tracker, make_application):
        data = make_application(
            bank_statements=(), savings=None, funding_source="sponsor",
            sponsor_name="Maria Silva", sponsor_statements=(("Maria Silva", "$30,000"),),
        )
        assert "D" in [e.letter for e in tracker.available_exhibits(data)]


class TestExhibitIndex:

    def test_index_is_available_intersect_referenced(self, tracker, application):
        available = tracker.available_exhibits(application)
        index = tracker.exhibit_index(available, "Records (Exhibit D) and (Exhibit A). See Exhibit Z.")
        assert [e.letter for e in index] == ["A", "D"]

    def test_cited_but_unavailable_is_not_indexed(self, tracker, make_application):
        data = make_application(include_i20=False)
        index = tracker.exhibit_index(tracker.available_exhibits(data), "Form I-20 (Exhibit B)")
        assert index == []
