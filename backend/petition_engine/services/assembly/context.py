"""
Generation Context Builder

Turns the aggregated facts plus the pre-generation analysis into the
GenerationContext bundle handed to the text generator. Dates flagged unsafe
by the date validator are withheld from the bundle, not merely annotated.
"""
from typing import List

from ...config import PipelineConfig, DEFAULT_CONFIG
from ...models.generation import ExhibitEntry, FinancialContext, GenerationContext, SectionRequest
from ...models.ssot import (
    AggregatedApplicationData, ApplicationAnalysis, OPTIONAL_SECTIONS, SectionName,
)
from ..compliance.citations import LEGAL_CITATIONS
from ..ingestion.requirements import REQUESTED_STATUS, describe_status, normalize_status


def build_generation_context(
    data: AggregatedApplicationData,
    analysis: ApplicationAnalysis,
    config: PipelineConfig = DEFAULT_CONFIG,
) -> GenerationContext:
    dates = analysis.dates
    status = data.status_record
    program = data.program_record
    current_status = normalize_status(status.class_of_admission if status else None)

    entry_date = None
    if status and not dates.any_dates_unsafe:
        entry_date = status.date_of_admission
    program_start = None
    if program and not (dates.any_dates_unsafe or dates.program_dates_unsafe):
        program_start = program.start_date

    funds = analysis.funds
    financial = FinancialContext(
        decision=funds.decision.value,
        summary=analysis.financial_summary,
        total_available=funds.total_available,
        total_required=funds.total_required,
        buffer=funds.buffer,
        deficit=funds.deficit,
        sponsor_name=data.sponsor_name,
    )

    return GenerationContext(
        applicant_name=data.applicant_name or "Applicant",
        home_country=home_country(data),
        current_status=current_status,
        current_status_description=describe_status(current_status),
        requested_status=REQUESTED_STATUS,
        requested_status_description=describe_status(REQUESTED_STATUS),
        entry_date=entry_date,
        school_name=program.school_name if program else None,
        program_of_study=(program.program_of_study or program.major_field) if program else None,
        program_start_date=program_start,
        dependents=[f"{d.full_name} ({d.relationship})" for d in data.dependents],
        ties_facts=ties_facts(data),
        financial=financial,
        exhibits=[ExhibitEntry(letter=e.letter, description=e.description) for e in analysis.exhibits],
        suppressed_topics=[t.value for t in dates.suppressed_topics],
        date_directives=list(dates.date_conflicts),
        legal_citations=dict(LEGAL_CITATIONS),
        required_voice=config.required_voice.value,
        output_sections=[
            SectionRequest(
                name=name.value,
                min_words=config.limits_for(name).min_words,
                max_words=config.limits_for(name).max_words,
                required=name not in OPTIONAL_SECTIONS,
            )
            for name in SectionName
        ],
    )


def home_country(data: AggregatedApplicationData) -> str:
    candidates = [
        data.passport.nationality if data.passport else None,
        data.program_record.country_of_citizenship if data.program_record else None,
        data.application.country,
    ]
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()
    return ""


def ties_facts(data: AggregatedApplicationData) -> List[str]:
    """Objective ties, one line each: documents first, then questionnaire answers."""
    facts = []
    for record in data.ties_documents:
        if record.employment_company:
            position = f" as {record.employment_position}" if record.employment_position else ""
            facts.append(f"Employment with {record.employment_company}{position}")
        if record.property_address:
            facts.append(f"Property at {record.property_address}")
        if not (record.employment_company or record.property_address) and record.document_type:
            facts.append(record.document_type)
    facts.extend(answer.strip() for answer in data.ties_answers if answer.strip())
    return facts
