# llm.py
import json
import logging
import re
import textwrap
from typing import Any, List, Optional

from openai import OpenAI

from config import Settings, get_settings
from models import (
    BrandMatch,
    BrandStrategy,
    CreatorProfile,
    CreatorSummary,
    EnrichmentResult,
    PitchStrategyResult,
)
from normalizer import normalize_brand
from valuation import estimate_value

logger = logging.getLogger(__name__)

DISCOVERY_FIT_SCORE = 75


class LLMError(Exception):
    """The model call failed or returned something unusable."""


def get_client(settings: Settings) -> OpenAI:
    if not settings.openai_api_key:
        raise LLMError("OPENAI_API_KEY is not set")
    return OpenAI(api_key=settings.openai_api_key)


# --- JSON schemas for structured output ---

def _obj(properties: dict) -> dict:
    return {
        "type": "object",
        "properties": properties,
        "required": list(properties),
        "additionalProperties": False,
    }


_STR = {"type": "string"}
_STR_LIST = {"type": "array", "items": _STR}

BRAND_SCHEMA = _obj({
    "name": _STR,
    "domain": _STR,
    "industry": _STR,
    "description": _STR,
    "funding": _STR,
    "headcount": _STR,
    "recentNews": _STR,
    "fitScore": {"type": "integer"},
    "fitReason": _STR,
})

DISCOVERY_SCHEMA = _obj({
    "creator": _obj({
        "handle": _STR,
        "followers": _STR,
        "niche": _STR,
        "avgViews": _STR,
        "topContentThemes": _STR_LIST,
    }),
    "brands": {"type": "array", "items": BRAND_SCHEMA},
})

STRATEGY_SCHEMA = _obj({
    "overallStrategy": _STR,
    "brandStrategies": {"type": "array", "items": _obj({
        "brandName": _STR,
        "brandDomain": _STR,
        "pitchAngle": _STR,
        "contentFormats": _STR_LIST,
        "talkingPoints": _STR_LIST,
        "pitchScript": _STR,
        "subjectLine": _STR,
        "estimatedValue": _STR,
    })},
})

SUMMARY_SCHEMA = _obj({
    "summary": _STR,
    "insights": _STR_LIST,
    "tags": _STR_LIST,
    "nicheSuggestion": _STR,
    "suggestedBrands": {"type": "array", "items": BRAND_SCHEMA},
})


def complete_json(system: str, user: str, schema_name: str, schema: dict,
                  settings: Optional[Settings] = None, temperature: float = 0.4) -> dict:
    """One chat completion constrained to `schema`; returns the parsed object."""
    settings = settings or get_settings()
    client = get_client(settings)
    resp = client.chat.completions.create(
        model=settings.openai_model,
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ],
        temperature=temperature,
        response_format={
            "type": "json_schema",
            "json_schema": {"name": schema_name, "schema": schema, "strict": True},
        },
    )
    text = (resp.choices[0].message.content or "").strip() if resp.choices else ""
    if not text:
        raise LLMError("Model returned empty response")

    # Tolerate prose or code fences around the object
    m = re.search(r"\{.*\}", text, re.S)
    try:
        data = json.loads(m.group(0) if m else text)
    except json.JSONDecodeError as e:
        raise LLMError(f"Model returned malformed JSON: {e}") from e
    if not isinstance(data, dict):
        raise LLMError("Model returned a non-object JSON value")
    return data


def _str(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [_str(v) for v in value if v is not None]


def _brands(value: Any, default_fit: int) -> List[BrandMatch]:
    if not isinstance(value, list):
        return []
    return [normalize_brand(b, default_fit=default_fit) for b in value if isinstance(b, dict)]


def _creator_block(creator: CreatorProfile) -> str:
    lines = [
        f"- Handle: @{creator.handle}",
        f"- Followers: {creator.followers}",
        f"- Niche: {creator.niche}",
        f"- Average Views: {creator.avg_views}",
        f"- Top Content Themes: {', '.join(creator.top_content_themes) or 'N/A'}",
    ]
    if creator.bio:
        lines.append(f"- Bio: {creator.bio}")
    if creator.engagement_rate is not None:
        lines.append(f"- Engagement Rate: {creator.engagement_rate}")
    if creator.country:
        lines.append(f"- Country: {creator.country}")
    return "\n".join(lines)


# --- Brand discovery (enrichment tier 2) ---

def discover_brands(handle: str, settings: Optional[Settings] = None) -> EnrichmentResult:
    """
    Ask the model for a best-guess creator profile and brand matches from the handle alone.

    Raises LLMError (or openai.OpenAIError) on failure; the enrichment cascade
    catches it and moves on to the static dataset.
    """
    system = textwrap.dedent("""
    You are a brand-partnership researcher for TikTok creators. Given only a creator's
    handle, infer their likely niche and audience and propose 5 real brands that actively
    run creator partnerships in that space. Use display strings for counts (e.g. "120K").
    fitScore is an integer 0-100. Respond with JSON only.
    """).strip()
    user = f"Creator handle: @{handle}\nReturn the creator profile and 5 brand matches."

    data = complete_json(system, user, "brand_discovery", DISCOVERY_SCHEMA, settings=settings)

    c = data.get("creator") if isinstance(data.get("creator"), dict) else {}
    creator = CreatorProfile(
        handle=_str(c.get("handle")) or handle,
        followers=_str(c.get("followers")) or "N/A",
        niche=_str(c.get("niche")) or "General",
        avg_views=_str(c.get("avgViews")) or "N/A",
        top_content_themes=_str_list(c.get("topContentThemes")),
    )
    return EnrichmentResult(creator=creator, brands=_brands(data.get("brands"), DISCOVERY_FIT_SCORE))


# --- Pitch strategy ---

def fallback_overall_strategy(creator: CreatorProfile, names: List[str]) -> str:
    unique = list(dict.fromkeys(n for n in names if n))
    return (
        f"PR strategy generated for @{creator.handle} targeting {len(unique)} brands "
        f"across {', '.join(unique)}. Review the individual pitch strategies below and "
        f"prioritize outreach based on fit score."
    )


def generate_strategy(creator: CreatorProfile, brands: List[BrandMatch], marketing_request: str,
                      settings: Optional[Settings] = None) -> PitchStrategyResult:
    """
    Single structured-output call producing an overall narrative plus one pitch per brand.

    Errors are not caught here: a failed model call is a failed request.
    """
    brand_list = "\n".join(
        f"- {b.name} ({b.domain}) | Industry: {b.industry} | Funding: {b.funding} | "
        f"Headcount: {b.headcount} | Recent: {b.recent_news} | Fit Score: {b.fit_score} | "
        f"Fit Reason: {b.fit_reason} | Description: {b.description} | "
        f"Baseline value: {estimate_value(b.fit_score, creator.followers)}"
        for b in brands
    )
    system = textwrap.dedent("""
    You are an expert PR agent for TikTok creators who writes hyper-personalized brand
    outreach. For EACH brand listed, produce one entry in brandStrategies with a pitch
    angle grounded in the brand data (funding, hiring signals, recent news), content
    formats, 3-5 talking points, a ready-to-send 2-3 paragraph pitch script, an email
    subject line and an estimated deal value range. Then write overallStrategy: a 2-3
    paragraph summary of positioning, target verticals, outreach timeline and expected
    outcomes. Be specific and avoid generic advice. Respond with JSON only.
    """).strip()
    user = "\n\n".join([
        "## Creator Profile\n" + _creator_block(creator),
        "## Creator's Marketing Request\n" + marketing_request,
        "## Brand Matches\n" + brand_list,
    ])

    data = complete_json(system, user, "pitch_strategy", STRATEGY_SCHEMA, settings=settings)

    strategies = []
    for s in data.get("brandStrategies") or []:
        if not isinstance(s, dict):
            continue
        strategies.append(BrandStrategy(
            brand_name=_str(s.get("brandName")),
            brand_domain=_str(s.get("brandDomain")),
            pitch_angle=_str(s.get("pitchAngle")),
            content_formats=_str_list(s.get("contentFormats")),
            talking_points=_str_list(s.get("talkingPoints")),
            pitch_script=_str(s.get("pitchScript")),
            subject_line=_str(s.get("subjectLine")),
            estimated_value=_str(s.get("estimatedValue")),
        ))

    overall = _str(data.get("overallStrategy")).strip()
    if not overall:
        names = [s.brand_name for s in strategies] or [b.name for b in brands]
        overall = fallback_overall_strategy(creator, names)
        logger.info("Model omitted overallStrategy for @%s; using synthesized summary", creator.handle)

    return PitchStrategyResult(overall_strategy=overall, brand_strategies=strategies)


# --- Creator summary ---

def summarize_creator(creator: CreatorProfile, settings: Optional[Settings] = None) -> CreatorSummary:
    system = textwrap.dedent("""
    You analyze TikTok creator profiles for brand partnerships. Write a 2-3 sentence
    summary of the creator, 3-5 short insights about their audience and content, 3-6
    one-word tags, a one-line niche positioning suggestion, and up to 5 brands that
    would be a strong fit. Respond with JSON only.
    """).strip()
    user = f"## Creator Profile\n{_creator_block(creator)}"

    data = complete_json(system, user, "creator_summary", SUMMARY_SCHEMA, settings=settings)
    return CreatorSummary(
        summary=_str(data.get("summary")),
        insights=_str_list(data.get("insights")),
        tags=_str_list(data.get("tags")),
        niche_suggestion=_str(data.get("nicheSuggestion")),
        suggested_brands=_brands(data.get("suggestedBrands"), DISCOVERY_FIT_SCORE),
    )
