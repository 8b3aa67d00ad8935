import asyncio
from typing import List, Optional

from loguru import logger

from bizlicense import config
from bizlicense.clients import OpenAIClient
from bizlicense.models import BusinessProfile, ReportResult, RequirementRecord
from bizlicense.report_template import (
    add_source_references,
    format_business_data,
    render_template_report,
)

SYSTEM_PROMPT = (
    "You are a business licensing assistant. Given business data and the regulatory "
    "requirements that apply to it, write a professional, clear and practical report "
    "in Markdown. Use clear headings, ordered lists, and tables where appropriate. "
    "Focus on practical information that helps the owner understand what to do. "
    "Do not cite sources inside the text itself."
)

REPORT_STRUCTURE = """Please prepare a complete report with the following structure:

## 1. Executive Summary
- Overview of the relevant requirements, main recommendations, estimated timeline

## 2. Mandatory Requirements
- Ordered by priority, with an explanation and practical steps for each

## 3. Recommended Requirements
- The benefits of each and how to carry it out

## 4. Immediate Steps (Checklist)
- Numbered steps in clear priority order, with a time estimate for each

## 5. Important Notes
- Points to remember, warnings and risks

## 6. Information Gaps and Areas for Further Review
- Topics needing further checks or professional advice
"""


def build_report_prompt(profile: BusinessProfile, matched: List[RequirementRecord]) -> str:
    """Build the user prompt listing the business data and matched requirements."""
    blocks = [
        f"**{req.title}** ({req.level.value})\n"
        f"- Description: {req.summary}\n"
        f"- Authority: {req.authority}\n"
        f"- Source: {req.source_ref}\n"
        for req in matched
    ]
    return (
        "Business data:\n"
        + "\n".join(format_business_data(profile))
        + "\n\nRelevant regulatory requirements:\n"
        + ("\n".join(blocks) if blocks else "None found.\n")
        + "\n"
        + REPORT_STRUCTURE
    )


def _is_overloaded(error: Exception) -> bool:
    status = getattr(error, "status_code", None) or getattr(error, "status", None)
    return status == 503


async def _llm_report(profile: BusinessProfile, matched: List[RequirementRecord]) -> Optional[str]:
    """
    Ask the LLM for a report, retrying only while the service is overloaded.

    Returns:
        Optional[str]: Report text, or None if the model returned nothing.
    """
    openai_client = OpenAIClient()
    messages = [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": build_report_prompt(profile, matched)},
    ]

    attempt = 1
    while True:
        try:
            resp = await openai_client.chat_completions_create(
                model=config.OPENAI_MODEL,
                messages=messages,
                temperature=config.REPORT_TEMPERATURE,
                max_tokens=config.REPORT_MAX_TOKENS,
            )
            text = (resp.choices[0].message.content or "").strip()
            logger.debug(f"✅ LLM report generated on attempt {attempt}")
            return text or None
        except Exception as e:
            if not _is_overloaded(e) or attempt >= config.REPORT_MAX_ATTEMPTS:
                raise
            wait = config.REPORT_RETRY_BASE_SECONDS * (2 ** attempt)
            logger.warning(f"⏳ LLM overloaded (attempt {attempt}/{config.REPORT_MAX_ATTEMPTS}), retrying in {wait:.1f}s")
            await asyncio.sleep(wait)
            attempt += 1


async def generate_report(
    profile: BusinessProfile,
    matched: List[RequirementRecord],
    total_checked: Optional[int] = None,
) -> ReportResult:
    """
    Produce the compliance report for a matched requirement list.

    Uses the LLM when an API key is configured and mock mode is off; any LLM
    failure or empty answer falls back to the deterministic template, so this
    never raises for a valid profile.

    Args:
        profile (BusinessProfile): Business the report is about.
        matched (List[RequirementRecord]): Output of match_requirements.
        total_checked (Optional[int]): Catalog size, shown in the template footer.

    Returns:
        ReportResult: Report text and how it was produced.
    """
    if not config.MOCK_OPENAI and OpenAIClient.is_configured():
        try:
            text = await _llm_report(profile, matched)
            if text:
                return ReportResult(
                    report=add_source_references(text, matched),
                    matched_requirements=matched,
                    profile=profile,
                    generated_by="llm",
                )
            logger.info("Empty LLM report, falling back to template")
        except Exception as e:
            logger.warning(f"⚠️ LLM report failed, falling back to template: {e}")
    else:
        logger.info("Using template report (LLM disabled or not configured)")

    report = render_template_report(profile, matched, total_checked)
    return ReportResult(
        report=add_source_references(report, matched),
        matched_requirements=matched,
        profile=profile,
        generated_by="template",
    )
