"""
Deterministic Markdown rendering of a compliance report.

Used whenever the LLM is not configured, disabled, or fails, so a report is
always available for a matched requirement list.
"""
import re
from typing import List, Optional

from bizlicense.models import BusinessProfile, RequirementLevel, RequirementRecord

LEVEL_HEADINGS = {
    RequirementLevel.MANDATORY: "Mandatory Requirements",
    RequirementLevel.RECOMMENDED: "Recommended Requirements",
    RequirementLevel.OPTIONAL: "Optional Requirements",
}

IMMEDIATE_STEPS = [
    "**Start with the mandatory requirements** - they are needed to open the business",
    "**Plan ahead** - some licenses take several weeks to obtain",
    "**Consult a licensing advisor** - for a professional review of the requirements",
    "**Prepare documentation** - collect all required documents in advance",
]

NOTES = [
    "Every requirement is based on verified source documents",
    "Confirm with the relevant authorities before submitting applications",
]

INFORMATION_GAPS = [
    "Check requirements specific to your municipality",
    "Some requirements may vary with the exact type of business",
    "Keep up to date with recent regulatory changes",
]


def _yes_no(value: bool) -> str:
    return "Yes" if value else "No"


def format_business_data(profile: BusinessProfile) -> List[str]:
    """Business attributes as Markdown bullet lines."""
    return [
        f"- Area: {profile.area_m2} m²",
        f"- Seats: {profile.seats}",
        f"- Gas installation: {_yes_no(profile.gas)}",
        f"- Serves meat: {_yes_no(profile.serves_meat)}",
        f"- Deliveries: {_yes_no(profile.deliveries)}",
    ]


def _requirement_block(req: RequirementRecord) -> str:
    return "\n".join([
        f"### {req.title}",
        f"- **Issuing authority:** {req.authority}",
        f"- **Description:** {req.summary}",
        f"- **Source:** {req.source_ref}",
        "",
    ])


def render_template_report(
    profile: BusinessProfile,
    matched: List[RequirementRecord],
    total_checked: Optional[int] = None,
) -> str:
    """
    Render the fallback report.

    Args:
        profile (BusinessProfile): Business the report is about.
        matched (List[RequirementRecord]): Requirements that apply, in catalog order.
        total_checked (Optional[int]): Catalog size; defaults to len(matched).

    Returns:
        str: Markdown report.
    """
    if total_checked is None:
        total_checked = len(matched)

    lines = [
        "# Business Licensing Report",
        "",
        "## Executive Summary",
        "",
        "Based on the data provided:",
        *format_business_data(profile),
        "",
        f"Found **{len(matched)} relevant requirements** for your business.",
        "",
    ]

    for level, heading in LEVEL_HEADINGS.items():
        reqs = [r for r in matched if r.level == level]
        lines.append(f"## {heading} ({len(reqs)})")
        lines.append("")
        lines.extend(_requirement_block(r) for r in reqs)
        lines.append("")

    lines.append("## Immediate Steps")
    lines.append("")
    lines.extend(f"{i}. {step}" for i, step in enumerate(IMMEDIATE_STEPS, start=1))
    lines.append("")
    lines.append("## Important Notes")
    lines.append("")
    lines.append("- **This report was generated from a template** without an AI model")
    lines.extend(f"- {note}" for note in NOTES)
    lines.append("")
    lines.append("## Information Gaps")
    lines.append("")
    lines.extend(f"- {gap}" for gap in INFORMATION_GAPS)
    lines.append("")
    lines.append("---")
    lines.append("")
    lines.append(
        f"*This report was generated automatically from {len(matched)} relevant "
        f"requirements out of {total_checked} requirements checked.*"
    )
    return "\n".join(lines)


def _unique_authorities(matched: List[RequirementRecord], level: RequirementLevel) -> List[str]:
    authorities = []
    for req in matched:
        if req.level == level and req.authority not in authorities:
            authorities.append(req.authority)
    return authorities


def _append_to_section(report: str, heading: str, text: str) -> str:
    # Section runs until the next level-2 heading or the end of the report
    pattern = re.compile(rf"(^##\s*(?:\d+\.\s*)?{re.escape(heading)}.*?)(?=^##\s|\Z)", re.M | re.S | re.I)
    match = pattern.search(report)
    if not match:
        return report
    section = match.group(1).rstrip("\n")
    return report[:match.start()] + section + text + "\n\n" + report[match.end():]


def add_source_references(report: str, matched: List[RequirementRecord]) -> str:
    """
    Append a "Source:" line listing the issuing authorities after the
    mandatory and recommended sections of a report.

    Sections are found by heading, with or without a leading "2." style
    number, so both template and LLM reports are handled. Reports without
    such a heading are returned unchanged.
    """
    for level in (RequirementLevel.MANDATORY, RequirementLevel.RECOMMENDED):
        authorities = _unique_authorities(matched, level)
        if not authorities:
            continue
        reference = f"\n\n*Source: {', '.join(authorities)}*"
        report = _append_to_section(report, LEVEL_HEADINGS[level], reference)
    return report
