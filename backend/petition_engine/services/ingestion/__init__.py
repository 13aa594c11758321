"""Ingestion - extracted documents and questionnaire data into the aggregate"""
from .aggregator import (
    aggregate_application_data, apply_document, group_documents, pick_fields,
    balance_from_raw_text,
)
from .requirements import (
    missing_required_documents, status_eligibility_warnings, normalize_status, describe_status,
    ELIGIBLE_CURRENT_STATUSES, STATUS_DESCRIPTIONS,
)

__all__ = [
    "aggregate_application_data", "apply_document", "group_documents", "pick_fields",
    "balance_from_raw_text",
    "missing_required_documents", "status_eligibility_warnings", "normalize_status",
    "describe_status", "ELIGIBLE_CURRENT_STATUSES", "STATUS_DESCRIPTIONS",
]
