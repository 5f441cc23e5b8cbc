# enrichment.py
"""
Enrichment trigger: provider webhook -> LLM discovery -> static dataset.

Each tier returns an EnrichmentOutcome or None ("did not answer"), and the
tiers are tried in order. The last tier always answers, so a trigger never
fails because of an upstream provider.
"""
import logging
import re
import uuid
from dataclasses import dataclass
from typing import Callable, List, Literal, Optional

import httpx

import llm
from config import Settings
from models import BrandMatch, CreatorProfile, EnrichmentResult
from normalizer import has_inline_result, normalize_response
from storage import EnrichmentStore

logger = logging.getLogger(__name__)

_PROFILE_URL = re.compile(r"tiktok\.com/@([^?/]+)")


@dataclass
class EnrichmentOutcome:
    mode: Literal["sync", "async"]
    tier: Literal["provider", "llm", "fallback"]
    data: Optional[EnrichmentResult] = None
    request_id: Optional[str] = None


def extract_handle(value: str) -> str:
    """Accept '@handle', 'handle' or a full profile URL."""
    trimmed = value.strip()
    m = _PROFILE_URL.search(trimmed)
    if m:
        return m.group(1)
    return trimmed[1:] if trimmed.startswith("@") else trimmed


def profile_url(handle: str) -> str:
    return f"https://www.tiktok.com/@{handle}"


# --- Tier 1: external provider ---

def _provider_tier(handle: str, niche_description: Optional[str], store: EnrichmentStore,
                   settings: Settings) -> Optional[EnrichmentOutcome]:
    if not settings.enrichment_webhook_url:
        logger.info("ENRICHMENT_WEBHOOK_URL not set; skipping provider")
        return None

    request_id = str(uuid.uuid4())
    store.create_pending(request_id)

    headers = {"Content-Type": "application/json"}
    if settings.enrichment_api_key:
        headers["Authorization"] = f"Bearer {settings.enrichment_api_key}"
    payload = {
        "request_id": request_id,
        "tiktok_handle": handle,
        "tiktok_url": profile_url(handle),
        "niche_description": niche_description or "",
        "callback_url": settings.callback_url,
    }

    try:
        res = httpx.post(
            settings.enrichment_webhook_url,
            json=payload,
            headers=headers,
            timeout=settings.enrichment_timeout_seconds,
        )
    except httpx.HTTPError as e:
        store.discard(request_id)
        logger.warning("Enrichment provider call failed (%s); falling back", e)
        return None

    if not 200 <= res.status_code < 300:
        store.discard(request_id)
        logger.warning("Enrichment provider returned %s; falling back", res.status_code)
        return None

    # Some provider setups answer inline instead of via the callback
    if "application/json" in res.headers.get("content-type", ""):
        try:
            body = res.json()
        except ValueError:
            body = None
        if has_inline_result(body):
            result = normalize_response(body, handle)
            store.complete(request_id, result)
            logger.info("Provider answered inline for @%s (%s)", handle, request_id)
            return EnrichmentOutcome(mode="sync", tier="provider", data=result, request_id=request_id)

    logger.info("Enrichment pending for @%s (%s)", handle, request_id)
    return EnrichmentOutcome(mode="async", tier="provider", request_id=request_id)


# --- Tier 2: LLM discovery ---

def _llm_tier(handle: str, settings: Settings,
              discover: Callable[..., EnrichmentResult]) -> Optional[EnrichmentOutcome]:
    try:
        result = discover(handle, settings=settings)
    except Exception as e:
        logger.warning("LLM brand discovery failed (%s); using static dataset", e)
        return None
    if not result.brands:
        logger.warning("LLM brand discovery returned no brands; using static dataset")
        return None
    return EnrichmentOutcome(mode="sync", tier="llm", data=result)


# --- Tier 3: static dataset ---

FALLBACK_BRANDS: List[BrandMatch] = [
    BrandMatch(
        name="Alo Yoga",
        domain="aloyoga.com",
        industry="Athletic Wear",
        description="Premium yoga and athleisure brand targeting mindful fitness enthusiasts.",
        funding="Series C — $100M (2024)",
        headcount="500–1,000",
        recent_news="Expanding DTC influencer program",
        fit_score=92,
        fit_reason="High overlap between a fitness audience and Alo's target demographic. "
                   "They are actively scaling their creator program.",
    ),
    BrandMatch(
        name="AG1 (Athletic Greens)",
        domain="drinkag1.com",
        industry="Health Supplements",
        description="Daily nutritional supplement with strong creator marketing presence.",
        funding="Series D — $115M (2023)",
        headcount="200–500",
        recent_news="Hiring 3 influencer marketing managers",
        fit_score=88,
        fit_reason="One of the top influencer spenders in health and wellness. "
                   "Recipe content gives a natural product integration point.",
    ),
    BrandMatch(
        name="Hyperice",
        domain="hyperice.com",
        industry="Recovery Tech",
        description="High-performance recovery devices for athletes and fitness enthusiasts.",
        funding="Series B — $48M (2023)",
        headcount="100–200",
        recent_news="Launched new consumer product line",
        fit_score=81,
        fit_reason="Workout audiences care about recovery, and Hyperice is moving from pro "
                   "sports into the enthusiast market.",
    ),
    BrandMatch(
        name="Bloom Nutrition",
        domain="bloomnu.com",
        industry="Supplements / DTC",
        description="Gen-Z focused greens and supplement brand built on TikTok virality.",
        funding="Bootstrapped — $100M+ revenue",
        headcount="50–100",
        recent_news="TikTok Shop top seller, expanding ambassador program",
        fit_score=85,
        fit_reason="TikTok-native and recruits fitness creators with 50K–200K followers.",
    ),
    BrandMatch(
        name="Vuori",
        domain="vuoriclothing.com",
        industry="Performance Apparel",
        description="Premium performance apparel for an active lifestyle.",
        funding="SoftBank investment at $4B valuation (2021)",
        headcount="1,000+",
        recent_news="Scaling influencer partnerships for 2025",
        fit_score=76,
        fit_reason="Targets active lifestyle consumers and is increasing influencer spend, "
                   "though competition for partnerships is higher.",
    ),
]


def fallback_result(handle: str) -> EnrichmentResult:
    return EnrichmentResult(
        creator=CreatorProfile(
            handle=handle,
            followers="127K",
            niche="Fitness & Wellness",
            avg_views="45K",
            top_content_themes=["Workout routines", "Healthy recipes", "Morning rituals"],
        ),
        brands=list(FALLBACK_BRANDS),
    )


def _fallback_tier(handle: str) -> EnrichmentOutcome:
    return EnrichmentOutcome(mode="sync", tier="fallback", data=fallback_result(handle))


def trigger_enrichment(raw_handle: str, niche_description: Optional[str], *, store: EnrichmentStore,
                       settings: Settings,
                       discover: Optional[Callable[..., EnrichmentResult]] = None) -> EnrichmentOutcome:
    """
    Start enrichment for a handle. The handle must already be non-empty (checked at the route).

    Returns a sync outcome carrying data, or an async outcome carrying the
    request id to poll.
    """
    store.sweep()
    handle = extract_handle(raw_handle)
    discover = discover or llm.discover_brands

    tiers = [
        lambda: _provider_tier(handle, niche_description, store, settings),
        lambda: _llm_tier(handle, settings, discover),
    ]
    outcome = None
    for tier in tiers:
        outcome = tier()
        if outcome is not None:
            break
    else:
        outcome = _fallback_tier(handle)

    logger.info("Enrichment for @%s answered by %s tier (%s)", handle, outcome.tier, outcome.mode)
    return outcome
