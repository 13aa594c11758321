"""
Petition Engine - Text Generation Boundary Models

Pydantic models for the bundle handed to the external text-generation
collaborator and for the section bundle it returns. The collaborator is
never trusted: its reply is shape-checked here and rule-checked downstream.
"""
from __future__ import annotations
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .ssot import CoverLetterSections, SectionName


class ExhibitEntry(BaseModel):
    letter: str = Field(..., min_length=1, max_length=1)
    description: str


class SectionRequest(BaseModel):
    name: str
    min_words: int
    max_words: int
    required: bool = True


class FinancialContext(BaseModel):
    decision: str
    summary: str = Field("", description="Literal financial summary block")
    total_available: float = 0.0
    total_required: Optional[float] = None
    buffer: float = 0.0
    deficit: float = 0.0
    sponsor_name: Optional[str] = None


class GenerationContext(BaseModel):
    """Structured context bundle + strict output-shape request."""
    applicant_name: str
    home_country: str = ""
    current_status: str = ""
    current_status_description: str = ""
    requested_status: str = "F-1"
    requested_status_description: str = "Academic Student"
    entry_date: Optional[str] = None
    school_name: Optional[str] = None
    program_of_study: Optional[str] = None
    program_start_date: Optional[str] = None
    dependents: List[str] = Field(default_factory=list)
    ties_facts: List[str] = Field(default_factory=list)
    financial: FinancialContext
    exhibits: List[ExhibitEntry] = Field(default_factory=list)
    suppressed_topics: List[str] = Field(default_factory=list)
    date_directives: List[str] = Field(default_factory=list)
    legal_citations: Dict[str, str] = Field(default_factory=dict)
    required_voice: str = "third_person"
    output_sections: List[SectionRequest] = Field(default_factory=list)


class GeneratedSectionsPayload(BaseModel):
    """Named-section bundle returned by the text generator."""
    model_config = ConfigDict(extra="forbid")

    introduction: Optional[str] = None
    legal_basis: Optional[str] = None
    entry_and_status: Optional[str] = None
    change_of_intent: Optional[str] = None
    purpose_of_study: Optional[str] = None
    financial_ability: Optional[str] = None
    ties_to_home_country: Optional[str] = None
    conclusion: Optional[str] = None

    def to_sections(self) -> CoverLetterSections:
        values = self.model_dump()
        return CoverLetterSections.from_mapping({
            name: values[name.value]
            for name in SectionName
            if values.get(name.value)
        })
