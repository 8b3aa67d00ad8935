import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from bizlicense.models import (
    ApplicabilityPredicate,
    BusinessProfile,
    RequirementLevel,
    RequirementRecord,
)
from bizlicense.report_generator import build_report_prompt, generate_report
from bizlicense.report_template import add_source_references, render_template_report

PROFILE = BusinessProfile(area_m2=80, seats=30, gas=True, serves_meat=True, deliveries=False)

MATCHED = [
    RequirementRecord("food_service", "Food Service License", RequirementLevel.MANDATORY,
                      "License to serve food", "Ministry of Health", "guide.docx",
                      ApplicabilityPredicate(serves_food=True)),
    RequirementRecord("gas_installation", "Gas Installation Approval", RequirementLevel.MANDATORY,
                      "Gas safety approval", "Gas Safety Inspectorate", "guide.docx",
                      ApplicabilityPredicate(gas=True)),
    RequirementRecord("water_quality", "Water Quality Testing", RequirementLevel.RECOMMENDED,
                      "Periodic testing of water quality", "Ministry of Health", "health.pdf",
                      ApplicabilityPredicate(serves_food=True)),
    RequirementRecord("signage_permit", "Signage Permit", RequirementLevel.OPTIONAL,
                      "Permit for external signs", "Local Authority", "guide.docx"),
]


class OverloadedError(Exception):
    status_code = 503


def llm_response(content):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


def mock_openai(mock_cls, **create_kwargs):
    """Wire a patched OpenAIClient class to a configured instance."""
    instance = MagicMock()
    instance.chat_completions_create = AsyncMock(**create_kwargs)
    mock_cls.return_value = instance
    mock_cls.is_configured.return_value = True
    return instance


def test_template_report_groups_by_level():
    report = render_template_report(PROFILE, MATCHED, total_checked=20)

    assert "## Mandatory Requirements (2)" in report
    assert "## Recommended Requirements (1)" in report
    assert "## Optional Requirements (1)" in report
    assert report.index("### Food Service License") < report.index("### Gas Installation Approval")
    assert report.index("### Gas Installation Approval") < report.index("## Recommended Requirements")
    assert "- Gas installation: Yes" in report
    assert "- Deliveries: No" in report
    assert "4 relevant requirements out of 20 requirements checked" in report


def test_template_report_is_deterministic():
    assert render_template_report(PROFILE, MATCHED) == render_template_report(PROFILE, MATCHED)


def test_template_report_with_no_matches():
    report = render_template_report(PROFILE, [], total_checked=20)

    assert "Found **0 relevant requirements**" in report
    assert "## Mandatory Requirements (0)" in report


def test_source_references_follow_their_sections():
    report = add_source_references(render_template_report(PROFILE, MATCHED), MATCHED)

    mandatory_source = "*Source: Ministry of Health, Gas Safety Inspectorate*"
    recommended_source = "*Source: Ministry of Health*"
    assert mandatory_source in report
    assert report.index(mandatory_source) < report.index("## Recommended Requirements")
    assert report.index("## Recommended Requirements") < report.index(recommended_source)
    assert report.index(recommended_source) < report.index("## Optional Requirements")


def test_source_references_match_numbered_llm_headings():
    text = "## 1. Executive Summary\nok\n\n## 2. Mandatory requirements\n- a\n\n## 3. Recommended Requirements\n- b\n"

    report = add_source_references(text, MATCHED)

    assert report.index("*Source: Ministry of Health, Gas Safety Inspectorate*") < report.index("## 3.")
    assert report.rstrip().endswith("*Source: Ministry of Health*")


def test_source_references_leave_unknown_layout_alone():
    assert add_source_references("Plain text report", MATCHED) == "Plain text report"


def test_prompt_lists_business_and_requirements():
    prompt = build_report_prompt(PROFILE, MATCHED)

    assert "- Area: 80 m²" in prompt
    assert "**Water Quality Testing** (recommended)" in prompt
    assert "- Authority: Gas Safety Inspectorate" in prompt
    assert "## 2. Mandatory Requirements" in prompt


@pytest.mark.asyncio
async def test_mock_mode_uses_template():
    with patch("bizlicense.config.MOCK_OPENAI", True), \
         patch("bizlicense.report_generator.OpenAIClient") as mock_cls:
        instance = mock_openai(mock_cls)

        result = await generate_report(PROFILE, MATCHED, total_checked=20)

    assert result.generated_by == "template"
    assert result.matched_requirements == MATCHED
    assert "Business Licensing Report" in result.report
    assert not instance.chat_completions_create.called


@pytest.mark.asyncio
async def test_missing_api_key_uses_template():
    with patch("bizlicense.config.MOCK_OPENAI", False), \
         patch("bizlicense.report_generator.OpenAIClient") as mock_cls:
        instance = mock_openai(mock_cls)
        mock_cls.is_configured.return_value = False

        result = await generate_report(PROFILE, MATCHED)

    assert result.generated_by == "template"
    assert not instance.chat_completions_create.called


@pytest.mark.asyncio
async def test_llm_report_is_used_when_available():
    llm_text = "## 1. Executive Summary\nAll good.\n\n## 2. Mandatory Requirements\n- Food license\n"
    with patch("bizlicense.config.MOCK_OPENAI", False), \
         patch("bizlicense.report_generator.OpenAIClient") as mock_cls:
        instance = mock_openai(mock_cls, return_value=llm_response(llm_text))

        result = await generate_report(PROFILE, MATCHED)

    assert result.generated_by == "llm"
    assert result.report.startswith("## 1. Executive Summary")
    assert "*Source: Ministry of Health, Gas Safety Inspectorate*" in result.report
    kwargs = instance.chat_completions_create.call_args.kwargs
    assert kwargs["messages"][0]["role"] == "system"
    assert "Food Service License" in kwargs["messages"][1]["content"]


@pytest.mark.asyncio
async def test_empty_llm_answer_falls_back_to_template():
    with patch("bizlicense.config.MOCK_OPENAI", False), \
         patch("bizlicense.report_generator.OpenAIClient") as mock_cls:
        mock_openai(mock_cls, return_value=llm_response("   "))

        result = await generate_report(PROFILE, MATCHED)

    assert result.generated_by == "template"


@pytest.mark.asyncio
async def test_llm_error_falls_back_without_retry():
    with patch("bizlicense.config.MOCK_OPENAI", False), \
         patch("bizlicense.report_generator.OpenAIClient") as mock_cls:
        instance = mock_openai(mock_cls, side_effect=RuntimeError("invalid api key"))

        result = await generate_report(PROFILE, MATCHED)

    assert result.generated_by == "template"
    assert instance.chat_completions_create.await_count == 1


@pytest.mark.asyncio
async def test_overloaded_llm_is_retried():
    with patch("bizlicense.config.MOCK_OPENAI", False), \
         patch("bizlicense.config.REPORT_RETRY_BASE_SECONDS", 0), \
         patch("bizlicense.report_generator.OpenAIClient") as mock_cls:
        instance = mock_openai(
            mock_cls,
            side_effect=[OverloadedError("busy"), llm_response("## 2. Mandatory Requirements\n- x\n")],
        )

        result = await generate_report(PROFILE, MATCHED)

    assert result.generated_by == "llm"
    assert instance.chat_completions_create.await_count == 2


@pytest.mark.asyncio
async def test_overloaded_llm_gives_up_after_max_attempts():
    with patch("bizlicense.config.MOCK_OPENAI", False), \
         patch("bizlicense.config.REPORT_RETRY_BASE_SECONDS", 0), \
         patch("bizlicense.config.REPORT_MAX_ATTEMPTS", 3), \
         patch("bizlicense.report_generator.OpenAIClient") as mock_cls:
        instance = mock_openai(mock_cls, side_effect=OverloadedError("busy"))

        result = await generate_report(PROFILE, MATCHED)

    assert result.generated_by == "template"
    assert instance.chat_completions_create.await_count == 3
