"""
Financial Summary Block

The literal block the cover letter carries in its financial section:

    Financial Requirements:
    Tuition: USD $10,000
    Living Expenses: USD $7,000
    Total Required: USD $17,000

    Available Financial Resources:
    Personal funds: USD $25,000
    Financial sponsorship by Maria Silva: USD $5,000
    Total Available: USD $30,000

The contradiction detector keys off these labels, so they are reproduced
exactly and never carry a trailing annotation on the same line.
"""
import re
from typing import List, Optional

from ...models.ssot import FinancialCalculation, FinancialSummaryFigures, RequiredFundsEstimate
from .currency import format_usd, parse_usd_amount

REQUIREMENTS_HEADING = "Financial Requirements:"
RESOURCES_HEADING = "Available Financial Resources:"

_FIGURE = r"[:\s]*(?:USD\s*)?\$?\s*([\d][\d,.]*)"

SUMMARY_PATTERNS = {
    "tuition": re.compile(r"\btuition" + _FIGURE, re.IGNORECASE),
    "living_expenses": re.compile(r"\bliving\s+expenses" + _FIGURE, re.IGNORECASE),
    "total_required": re.compile(r"\btotal\s+required" + _FIGURE, re.IGNORECASE),
    "personal_funds": re.compile(r"\bpersonal\s+(?:financial\s+)?funds" + _FIGURE, re.IGNORECASE),
    "total_available": re.compile(r"\btotal\s+available" + _FIGURE, re.IGNORECASE),
}
SPONSOR_PATTERN = re.compile(
    r"financial\s+sponsorship\s+by\s+([^:\n]+):\s*(?:USD\s*)?\$?\s*([\d][\d,.]*)",
    re.IGNORECASE,
)

# A line belongs to the block when it starts with one of the labels
SUMMARY_LINE_PATTERN = re.compile(
    r"^(financial requirements:|available financial resources:|tuition:|living expenses:|"
    r"total required:|personal\s+(?:financial\s+)?funds:|financial\s+sponsorship\s+by|"
    r"total available:)",
    re.IGNORECASE,
)


def build_financial_summary(
    estimate: RequiredFundsEstimate,
    calculation: FinancialCalculation,
    sponsor_name: Optional[str] = None,
) -> str:
    """Render the literal summary block. Unknown requirement lines are omitted."""
    requirement_lines: List[str] = []
    if estimate.tuition is not None:
        requirement_lines.append(f"Tuition: {format_usd(estimate.tuition)}")
    if estimate.living is not None:
        requirement_lines.append(f"Living Expenses: {format_usd(estimate.living)}")
    if estimate.total_required is not None:
        requirement_lines.append(f"Total Required: {format_usd(estimate.total_required)}")

    resource_lines = [f"Personal funds: {format_usd(calculation.personal_funds)}"]
    if calculation.sponsor_amount > 0:
        label = f"Financial sponsorship by {sponsor_name}" if sponsor_name else "Financial sponsorship by sponsor"
        resource_lines.append(f"{label}: {format_usd(calculation.sponsor_amount)}")
    resource_lines.append(f"Total Available: {format_usd(calculation.total_available)}")

    blocks = []
    if requirement_lines:
        blocks.append("\n".join([REQUIREMENTS_HEADING] + requirement_lines))
    blocks.append("\n".join([RESOURCES_HEADING] + resource_lines))
    return "\n\n".join(blocks)


def extract_financial_summary(text: str) -> FinancialSummaryFigures:
    """Pull the stated figures out of generated text (block or looser 'Tuition: $X' forms)."""
    if not text:
        return FinancialSummaryFigures()

    values = {}
    for key, pattern in SUMMARY_PATTERNS.items():
        match = pattern.search(text)
        if match:
            amount = parse_usd_amount(match.group(1))
            values[key] = amount if amount > 0 else None

    sponsor_name = None
    sponsor_amount = None
    sponsor_match = SPONSOR_PATTERN.search(text)
    if sponsor_match:
        sponsor_name = sponsor_match.group(1).strip()
        sponsor_amount = parse_usd_amount(sponsor_match.group(2)) or None

    return FinancialSummaryFigures(
        tuition=values.get("tuition"),
        living_expenses=values.get("living_expenses"),
        total_required=values.get("total_required"),
        personal_funds=values.get("personal_funds"),
        sponsor_name=sponsor_name,
        sponsor_amount=sponsor_amount,
        total_available=values.get("total_available"),
    )


def is_financial_summary_block(paragraph: str) -> bool:
    """True when every non-empty line of the paragraph is a summary line."""
    lowered = paragraph.lower()
    if REQUIREMENTS_HEADING.lower() not in lowered and RESOURCES_HEADING.lower() not in lowered:
        return False
    lines = [line.strip() for line in paragraph.split("\n") if line.strip()]
    if not lines:
        return False
    for line in lines:
        normalized = re.sub(r"^[-*]\s*", "", line)
        if not SUMMARY_LINE_PATTERN.match(normalized):
            return False
    return True
