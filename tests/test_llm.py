"""Tests for the structured-output LLM calls."""
import pytest

import llm
from llm import LLMError, discover_brands, generate_strategy, summarize_creator
from models import BrandMatch, CreatorProfile

CREATOR = CreatorProfile(
    handle="fitjenna",
    followers="100K",
    niche="Fitness",
    avg_views="30K",
    top_content_themes=["workout", "nutrition"],
)

BRANDS = [
    BrandMatch(
        name="Nike",
        domain="nike.com",
        industry="Sports",
        description="Sportswear",
        funding="Public",
        headcount="70K+",
        recent_news="New campaign",
        fit_score=90,
        fit_reason="Great fit",
    ),
]

NIKE_STRATEGY = {
    "brandName": "Nike",
    "brandDomain": "nike.com",
    "pitchAngle": "Fitness overlap",
    "contentFormats": ["product review"],
    "talkingPoints": ["audience overlap", "brand values"],
    "pitchScript": "Dear Nike...",
    "subjectLine": "Partnership opportunity",
    "estimatedValue": "$5K-$10K",
}


class TestGenerateStrategy:
    def test_parses_response(self, settings, fake_llm):
        completions = fake_llm({
            "overallStrategy": "Focus on fitness brands with high engagement.",
            "brandStrategies": [NIKE_STRATEGY],
        })

        result = generate_strategy(CREATOR, BRANDS, "Help me find brand deals", settings=settings)

        assert len(result.brand_strategies) == 1
        assert result.brand_strategies[0].brand_name == "Nike"
        assert result.brand_strategies[0].pitch_angle == "Fitness overlap"
        assert result.overall_strategy == "Focus on fitness brands with high engagement."
        assert len(completions.calls) == 1

    def test_request_is_schema_constrained(self, settings, fake_llm):
        completions = fake_llm({"overallStrategy": "x", "brandStrategies": []})
        generate_strategy(CREATOR, BRANDS, "Help me", settings=settings)

        call = completions.calls[0]
        assert call["model"] == settings.openai_model
        assert call["response_format"]["type"] == "json_schema"
        assert call["response_format"]["json_schema"]["name"] == "pitch_strategy"
        user_message = call["messages"][1]["content"]
        assert "@fitjenna" in user_message
        assert "Nike (nike.com)" in user_message
        assert "Help me" in user_message

    def test_zero_brand_entries_keeps_model_narrative(self, settings, fake_llm):
        fake_llm({"overallStrategy": "Nothing to do."})
        result = generate_strategy(CREATOR, BRANDS, "Help me find brand deals", settings=settings)
        assert result.brand_strategies == []
        assert result.overall_strategy == "Nothing to do."

    def test_missing_narrative_is_synthesized(self, settings, fake_llm):
        fake_llm({"brandStrategies": [NIKE_STRATEGY]})
        result = generate_strategy(CREATOR, BRANDS, "Help me", settings=settings)
        assert len(result.brand_strategies) == 1
        assert "@fitjenna" in result.overall_strategy
        assert "Nike" in result.overall_strategy

    def test_missing_narrative_and_entries_uses_input_brands(self, settings, fake_llm):
        fake_llm({"overallStrategy": "   ", "brandStrategies": []})
        result = generate_strategy(CREATOR, BRANDS, "Help me", settings=settings)
        assert "@fitjenna" in result.overall_strategy
        assert "Nike" in result.overall_strategy

    def test_partial_entries_are_defaulted(self, settings, fake_llm):
        fake_llm({"overallStrategy": "ok", "brandStrategies": [{"brandName": "Nike"}, "junk"]})
        result = generate_strategy(CREATOR, BRANDS, "Help me", settings=settings)
        strategy = result.brand_strategies[0]
        assert len(result.brand_strategies) == 1
        assert strategy.pitch_script == ""
        assert strategy.content_formats == []
        assert strategy.talking_points == []
        assert strategy.estimated_value == ""

    def test_empty_content_raises(self, settings, fake_llm):
        fake_llm("")
        with pytest.raises(LLMError, match="empty response"):
            generate_strategy(CREATOR, BRANDS, "Test", settings=settings)

    def test_malformed_json_raises(self, settings, fake_llm):
        fake_llm("not valid json {{{")
        with pytest.raises(LLMError):
            generate_strategy(CREATOR, BRANDS, "Test", settings=settings)

    def test_client_errors_propagate(self, settings, fake_llm):
        fake_llm(error=RuntimeError("network down"))
        with pytest.raises(RuntimeError):
            generate_strategy(CREATOR, BRANDS, "Test", settings=settings)

    def test_json_inside_code_fence(self, settings, fake_llm):
        fake_llm('```json\n{"overallStrategy": "fenced", "brandStrategies": []}\n```')
        assert generate_strategy(CREATOR, BRANDS, "Test", settings=settings).overall_strategy == "fenced"

    def test_missing_api_key(self, settings):
        with pytest.raises(LLMError, match="OPENAI_API_KEY"):
            generate_strategy(CREATOR, BRANDS, "Test", settings=settings)


class TestDiscoverBrands:
    def test_parses_response(self, settings, fake_llm):
        fake_llm({
            "creator": {"handle": "fitjenna", "followers": "100K", "niche": "Fitness",
                        "avgViews": "30K", "topContentThemes": ["workout", "nutrition"]},
            "brands": [{"name": "Nike", "domain": "nike.com", "industry": "Sports",
                        "description": "Sportswear giant", "funding": "Public", "headcount": "70,000+",
                        "recentNews": "New campaign launch", "fitScore": 90,
                        "fitReason": "Perfect audience overlap"}],
        })

        result = discover_brands("fitjenna", settings=settings)

        assert result.creator.handle == "fitjenna"
        assert result.creator.niche == "Fitness"
        assert result.brands[0].name == "Nike"
        assert result.brands[0].recent_news == "New campaign launch"
        assert result.brands[0].fit_score == 90

    def test_fills_defaults(self, settings, fake_llm):
        fake_llm({"creator": {}, "brands": [{"name": "Acme"}]})
        result = discover_brands("testuser", settings=settings)
        assert result.creator.handle == "testuser"
        assert result.creator.followers == "N/A"
        assert result.creator.niche == "General"
        assert result.brands[0].funding == "N/A"
        assert result.brands[0].fit_score == 75

    def test_missing_brands(self, settings, fake_llm):
        fake_llm({"creator": {"handle": "testuser"}})
        assert discover_brands("testuser", settings=settings).brands == []

    def test_empty_response_raises(self, settings, fake_llm):
        fake_llm("")
        with pytest.raises(LLMError, match="Model returned empty response"):
            discover_brands("testuser", settings=settings)


class TestSummarizeCreator:
    def test_parses_and_defaults(self, settings, fake_llm):
        fake_llm({"summary": "A fitness creator.", "tags": ["fitness"],
                  "suggestedBrands": [{"name": "Gymshark"}]})
        summary = summarize_creator(CREATOR, settings=settings)
        assert summary.summary == "A fitness creator."
        assert summary.insights == []
        assert summary.tags == ["fitness"]
        assert summary.niche_suggestion == ""
        assert summary.suggested_brands[0].name == "Gymshark"
        assert summary.suggested_brands[0].fit_score == llm.DISCOVERY_FIT_SCORE
