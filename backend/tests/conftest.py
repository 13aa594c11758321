"""
Shared fixtures: one fully documented, self-funded F-1 change-of-status
application and a cover letter that passes every rule for it.

Factories are exposed as fixtures so individual tests can vary one fact
(savings, sponsor, dates, a section's text) at a time.
"""
import os
import sys
from datetime import date

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from petition_engine.config import DEFAULT_CONFIG
from petition_engine.models.ssot import CoverLetterSections, SectionName
from petition_engine.services.analysis import analyze_application
from petition_engine.services.ingestion.aggregator import aggregate_application_data


FILING_DATE = date(2024, 6, 1)
APPLICANT = "Ana Pereira"

INTRODUCTION = (
    "The applicant, Ana Pereira, a citizen of Brazil, respectfully submits this Form I-539 "
    "application to request a change of nonimmigrant status from B-2 visitor to F-1 student "
    "status. This letter summarizes the facts of the application and identifies the supporting "
    "documentation enclosed with the filing for review by the adjudicating officer."
)
LEGAL_BASIS = (
    "This request is submitted pursuant to Section 248 of the Immigration and Nationality Act "
    "and 8 C.F.R. Section 248.1, which permit a nonimmigrant admitted in one classification to "
    "request a change to another classification, and 8 C.F.R. Section 214.2(f), which governs "
    "F-1 student status."
)
ENTRY_AND_STATUS = (
    "The applicant entered the United States on March 10, 2024, and was admitted in B-2 visitor "
    "classification, as reflected on the passport and Form I-94 arrival record (Exhibit A). The "
    "Form I-94 record shows an authorized stay until September 9, 2024. This application is "
    "filed before that authorized stay expires."
)
CHANGE_OF_INTENT = (
    "After admission, the applicant decided to pursue graduate study in the United States. The "
    "applicant subsequently applied to and was admitted by Lakeside University, which issued a "
    "Form I-20 for the Master of Science program in Data Analytics (Exhibit B). The decision to "
    "study arose after the applicant's entry."
)
PURPOSE_OF_STUDY = (
    "The applicant intends to enroll full time in the Master of Science program in Data "
    "Analytics at Lakeside University, as documented on the Form I-20 issued by the school "
    "(Exhibit B). The program builds on the applicant's undergraduate degree in statistics and "
    "professional background in market research. The curriculum covers statistical modeling, "
    "machine learning and data engineering. Upon completion of the program, the applicant plans "
    "to return to Brazil and apply these skills in the analytics field, as described in the "
    "supporting documents (Exhibit C)."
)
FINANCIAL_NARRATIVE = (
    "The applicant has documented financial resources to cover the cost of the program, as "
    "shown in the bank statements enclosed with this application (Exhibit D). The Form I-20 "
    "lists annual tuition and living expenses, and the documented personal funds exceed the "
    "total required amount for the first academic year."
)
TIES_TO_HOME_COUNTRY = (
    "The applicant has objective ties to Brazil that support the intent to depart the United "
    "States after completing the program. The applicant owns an apartment in Curitiba, as shown "
    "in the property registration (Exhibit C). The applicant's employer in Brazil has provided "
    "an employment letter confirming a leave of absence and a position held for the applicant's "
    "return (Exhibit C). The applicant's parents reside in Curitiba."
)
CONCLUSION = (
    "Based on the facts and documents presented, the applicant respectfully requests that the "
    "change of status from B-2 visitor to F-1 student be granted. Thank you for your "
    "consideration of this application."
)


def build_application(
    savings="25000",
    bank_statements=((APPLICANT, "$25,000.00"),),
    sponsor_name=None,
    sponsor_statements=(),
    funding_source="self",
    tuition="10000",
    living="7000",
    total="18500",
    entry="2024-03-10",
    admit_until="2024-09-09",
    program_start="2024-08-20",
    class_of_admission="B2",
    include_ties=True,
    include_i20=True,
    extra_documents=None,
):
    i20 = {
        "studentName": APPLICANT,
        "schoolName": "Lakeside University",
        "programOfStudy": "Master of Science in Data Analytics",
        "startDate": program_start,
        "annual_tuition_amount": tuition,
        "annual_living_expenses": living,
        "total_annual_cost": total,
        "document_name": "Form I-20",
    }
    extracted = {
        "passport": [{
            "name": APPLICANT, "passportNumber": "FX123456", "nationality": "Brazil",
            "document_name": "Passport",
        }],
        "i94": [{
            "name": APPLICANT, "classOfAdmission": class_of_admission,
            "dateOfAdmission": entry, "admitUntilDate": admit_until,
            "document_name": "Form I-94",
        }],
        "i20": [i20] if include_i20 else [],
        "bank_statement": [
            {"accountHolderName": holder, "closingBalance": balance, "document_name": "Bank statement"}
            for holder, balance in bank_statements
        ],
        "sponsor_bank_statement": [
            {"accountHolderName": holder, "closingBalance": balance, "document_name": "Sponsor statement"}
            for holder, balance in sponsor_statements
        ],
        "supporting_documents": [{
            "documentType": "Property registration", "ownerName": APPLICANT,
            "propertyAddress": "Rua das Flores 120, Curitiba",
            "document_name": "Property registration",
        }] if include_ties else [],
    }
    for category, records in (extra_documents or {}).items():
        extracted.setdefault(category, []).extend(records)

    form_data = {
        "currentAddress": {
            "street": "400 Lake Shore Drive", "city": "Chicago", "state": "IL", "zipCode": "60611",
        },
        "financialSupport": {
            "fundingSource": funding_source,
            "savingsAmount": savings,
            "sponsorName": sponsor_name,
        },
    }
    return aggregate_application_data(
        extracted,
        form_data=form_data,
        application={"id": "app-1", "country": "Brazil", "visa_type": "F-1"},
    )


def build_sections(financial_summary, overrides=None):
    """Compliant letter; overrides map SectionName -> text (None drops the section)."""
    texts = {
        SectionName.INTRODUCTION: INTRODUCTION,
        SectionName.LEGAL_BASIS: LEGAL_BASIS,
        SectionName.ENTRY_AND_STATUS: ENTRY_AND_STATUS,
        SectionName.CHANGE_OF_INTENT: CHANGE_OF_INTENT,
        SectionName.PURPOSE_OF_STUDY: PURPOSE_OF_STUDY,
        SectionName.FINANCIAL_ABILITY: f"{FINANCIAL_NARRATIVE}\n\n{financial_summary}",
        SectionName.TIES_TO_HOME_COUNTRY: TIES_TO_HOME_COUNTRY,
        SectionName.CONCLUSION: CONCLUSION,
    }
    for name, text in (overrides or {}).items():
        if text is None:
            texts.pop(name, None)
        else:
            texts[name] = text
    return CoverLetterSections.from_mapping(texts)


@pytest.fixture
def make_application():
    return build_application


@pytest.fixture
def make_sections():
    return build_sections


@pytest.fixture
def filing_date():
    return FILING_DATE


@pytest.fixture
def application():
    return build_application()


@pytest.fixture
def analysis(application):
    return analyze_application(application, DEFAULT_CONFIG, FILING_DATE)


@pytest.fixture
def compliant_sections(analysis):
    return build_sections(analysis.financial_summary)
