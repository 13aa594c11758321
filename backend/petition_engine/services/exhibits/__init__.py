"""Exhibit lettering and citation scanning"""
from .tracker import ExhibitCitationTracker, ExhibitGroup, EXHIBIT_GROUPS, EXHIBIT_REFERENCE_PATTERN

__all__ = ["ExhibitCitationTracker", "ExhibitGroup", "EXHIBIT_GROUPS", "EXHIBIT_REFERENCE_PATTERN"]
