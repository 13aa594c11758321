"""
Legal Citations

ASCII-only citations for a change of status to F-1 (no section sign, so the
text survives PDF rendering). The generic "8 C.F.R. 214.1" citation is never
used: it does not address change of status.
"""
from typing import Dict

LEGAL_CITATIONS: Dict[str, str] = {
    "INA_248": "Section 248 of the Immigration and Nationality Act",
    "CFR_248_1": "8 C.F.R. Section 248.1",
    "CFR_214_2_F": "8 C.F.R. Section 214.2(f)",
    "CFR_214_2_F_1_I_B": "8 C.F.R. Section 214.2(f)(1)(i)(B)",
}

FORBIDDEN_CITATIONS = (
    "8 C.F.R. 214.1",
    "8 CFR 214.1",
)


def format_legal_basis() -> str:
    """Canonical legal-basis sentence with every citation."""
    return (
        f"The request is submitted pursuant to {LEGAL_CITATIONS['INA_248']}, "
        f"{LEGAL_CITATIONS['CFR_248_1']}, and {LEGAL_CITATIONS['CFR_214_2_F']}."
    )
