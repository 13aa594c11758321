"""
Petition Engine - Pipeline Configuration

Immutable configuration object passed into every pipeline component at
construction time. Defaults are the calibration constants; overrides can be
read from PETITION_* environment variables.
"""
from __future__ import annotations
import os
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from .exceptions import ConfigurationError
from .models.ssot import SectionName, Voice


@dataclass(frozen=True)
class SectionLimits:
    min_words: int
    max_words: int


# =============================================================================
# DEFAULTS
# =============================================================================

DEFAULT_SECTION_LIMITS: Dict[SectionName, SectionLimits] = {
    SectionName.INTRODUCTION: SectionLimits(40, 140),
    SectionName.LEGAL_BASIS: SectionLimits(30, 120),
    SectionName.ENTRY_AND_STATUS: SectionLimits(40, 180),
    SectionName.CHANGE_OF_INTENT: SectionLimits(40, 200),
    SectionName.PURPOSE_OF_STUDY: SectionLimits(60, 260),
    SectionName.FINANCIAL_ABILITY: SectionLimits(40, 300),
    SectionName.TIES_TO_HOME_COUNTRY: SectionLimits(60, 260),
    SectionName.CONCLUSION: SectionLimits(20, 100),
}

# Low evidentiary risk - the only sections the global budget may shrink
DEFAULT_REDUCIBLE_SECTIONS: Tuple[SectionName, ...] = (
    SectionName.INTRODUCTION,
    SectionName.LEGAL_BASIS,
    SectionName.CONCLUSION,
)

# Sections that must each carry at least one exhibit citation
DEFAULT_CITATION_SECTIONS: Tuple[SectionName, ...] = (
    SectionName.ENTRY_AND_STATUS,
    SectionName.PURPOSE_OF_STUDY,
    SectionName.FINANCIAL_ABILITY,
    SectionName.TIES_TO_HOME_COUNTRY,
)

AVERAGE_WORDS_PER_LINE = 13
MAX_WORDS_PER_PAGE = 550
MAX_PAGES = 3
MIN_LINES_PER_PARAGRAPH = 2
MAX_LINES_PER_PARAGRAPH = 14
MAX_WORDS_PER_PARAGRAPH = 180
MIN_PARAGRAPHS = 6
MAX_PARAGRAPHS = 24
MAX_TOTAL_WORDS = 1500
FILING_PROXIMITY_DAYS = 30
CONTRADICTION_WINDOW_CHARS = 200
SHORT_PARAGRAPH_WORDS = 35


@dataclass(frozen=True)
class PipelineConfig:
    # Read-only view, excluded from the hash
    section_limits: Mapping[SectionName, SectionLimits] = field(
        default_factory=lambda: DEFAULT_SECTION_LIMITS, hash=False,
    )
    max_total_words: int = MAX_TOTAL_WORDS
    reducible_sections: Tuple[SectionName, ...] = DEFAULT_REDUCIBLE_SECTIONS
    citation_sections: Tuple[SectionName, ...] = DEFAULT_CITATION_SECTIONS

    # Layout calibration
    average_words_per_line: int = AVERAGE_WORDS_PER_LINE
    max_words_per_page: int = MAX_WORDS_PER_PAGE
    max_pages: int = MAX_PAGES
    min_lines_per_paragraph: int = MIN_LINES_PER_PARAGRAPH
    max_lines_per_paragraph: int = MAX_LINES_PER_PARAGRAPH
    max_words_per_paragraph: int = MAX_WORDS_PER_PARAGRAPH
    min_paragraphs: int = MIN_PARAGRAPHS
    max_paragraphs: int = MAX_PARAGRAPHS
    short_paragraph_words: int = SHORT_PARAGRAPH_WORDS

    # Rules
    required_voice: Voice = Voice.THIRD_PERSON
    filing_proximity_days: int = FILING_PROXIMITY_DAYS
    contradiction_window_chars: int = CONTRADICTION_WINDOW_CHARS
    rule_catalog: Optional[Tuple[Any, ...]] = None  # None -> default catalog

    def __post_init__(self) -> None:
        object.__setattr__(self, "section_limits", MappingProxyType(dict(self.section_limits)))

    def limits_for(self, section: SectionName) -> SectionLimits:
        return self.section_limits.get(section, SectionLimits(0, self.max_total_words))

    def with_overrides(self, **changes: Any) -> "PipelineConfig":
        updated = replace(self, **changes)
        updated.validate()
        return updated

    def validate(self) -> None:
        """Raise ConfigurationError when values are inconsistent."""
        for name, limits in self.section_limits.items():
            if limits.min_words < 0 or limits.max_words <= 0:
                raise ConfigurationError(f"Section '{name.value}' limits must be positive")
            if limits.min_words > limits.max_words:
                raise ConfigurationError(
                    f"Section '{name.value}' min_words {limits.min_words} exceeds "
                    f"max_words {limits.max_words}"
                )
        if self.min_paragraphs > self.max_paragraphs:
            raise ConfigurationError("min_paragraphs exceeds max_paragraphs")
        if self.min_lines_per_paragraph > self.max_lines_per_paragraph:
            raise ConfigurationError("min_lines_per_paragraph exceeds max_lines_per_paragraph")
        if self.average_words_per_line <= 0 or self.max_words_per_page <= 0:
            raise ConfigurationError("Layout calibration constants must be positive")
        if self.max_total_words <= 0:
            raise ConfigurationError("max_total_words must be positive")
        if not isinstance(self.required_voice, Voice):
            raise ConfigurationError(f"Unknown voice '{self.required_voice}'")

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Build a config from PETITION_* environment variables."""
        defaults = cls()
        voice_raw = os.getenv("PETITION_REQUIRED_VOICE", defaults.required_voice.value)
        try:
            voice = Voice(voice_raw.lower())
        except ValueError:
            raise ConfigurationError(f"Unknown voice '{voice_raw}'")

        config = cls(
            max_total_words=_int_env("PETITION_MAX_TOTAL_WORDS", defaults.max_total_words),
            average_words_per_line=_int_env(
                "PETITION_AVG_WORDS_PER_LINE", defaults.average_words_per_line
            ),
            max_words_per_page=_int_env("PETITION_MAX_WORDS_PER_PAGE", defaults.max_words_per_page),
            max_pages=_int_env("PETITION_MAX_PAGES", defaults.max_pages),
            min_paragraphs=_int_env("PETITION_MIN_PARAGRAPHS", defaults.min_paragraphs),
            max_paragraphs=_int_env("PETITION_MAX_PARAGRAPHS", defaults.max_paragraphs),
            required_voice=voice,
            filing_proximity_days=_int_env(
                "PETITION_FILING_PROXIMITY_DAYS", defaults.filing_proximity_days
            ),
        )
        config.validate()
        return config


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got '{raw}'")


DEFAULT_CONFIG = PipelineConfig()
