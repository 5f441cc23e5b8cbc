# normalizer.py
"""
Map loosely-shaped enrichment provider payloads onto CreatorProfile / BrandMatch.

Providers disagree on key casing (camelCase, snake_case, Capitalized), on where
the brand list lives, and on whether creator stats sit at the top level or
inside an `influencer_data`-style wrapper. Everything here falls back to a
default instead of raising; the only failure left to the caller is a body
that is not a JSON object in the first place.
"""
import math
from typing import Any, List, Optional

from models import (
    AudienceBucket,
    BrandMatch,
    ContactInfo,
    CreatorProfile,
    EnrichmentResult,
    Hashtag,
)

DEFAULT_FIT_SCORE = 70

BRAND_LIST_KEYS = ("brands", "results", "rows")
WRAPPER_KEYS = ("influencer_data", "influencer_details", "influencerDetails")


def first(*values: Any) -> Any:
    """Return the first value that is not None."""
    for v in values:
        if v is not None:
            return v
    return None


def to_num(value: Any) -> Optional[float]:
    """Tolerant numeric cast: None for anything that is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        n = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(n):
        return None
    return int(n) if n.is_integer() else n


def format_count(n: float) -> str:
    """294300 -> '294.3K', 1200000 -> '1.2M'."""
    if n >= 1_000_000:
        return f"{n / 1_000_000:.1f}M"
    if n >= 1_000:
        return f"{n / 1_000:.1f}K"
    return str(int(n)) if float(n).is_integer() else str(n)


def display_count(value: Any) -> str:
    if value is None:
        return "N/A"
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return format_count(value)
    return str(value)


def _text(value: Any, default: Optional[str] = None) -> Optional[str]:
    if value is None:
        return default
    return value if isinstance(value, str) else str(value)


def _flag(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


def _dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _list(value: Any) -> list:
    return value if isinstance(value, list) else []


def normalize_brand(b: dict, default_fit: int = DEFAULT_FIT_SCORE) -> BrandMatch:
    fit = to_num(first(b.get("fit_score"), b.get("fitScore"), b.get("score")))
    return BrandMatch(
        name=_text(first(b.get("name"), b.get("company_name"), b.get("Company")), "Unknown"),
        domain=_text(first(b.get("domain"), b.get("website"), b.get("Domain")), ""),
        industry=_text(first(b.get("industry"), b.get("Industry"), b.get("vertical")), ""),
        description=_text(first(b.get("description"), b.get("Description"), b.get("about")), ""),
        funding=_text(first(b.get("funding"), b.get("total_funding"), b.get("Funding")), "N/A"),
        headcount=_text(first(b.get("headcount"), b.get("employee_count"), b.get("Headcount")), "N/A"),
        recent_news=_text(first(b.get("recent_news"), b.get("recentNews"), b.get("news")), "N/A"),
        fit_score=round(fit) if fit is not None else default_fit,
        fit_reason=_text(first(b.get("fit_reason"), b.get("fitReason"), b.get("reason")), ""),
    )


def _hashtags(raw: Any) -> List[Hashtag]:
    tags = []
    for h in _list(raw):
        if isinstance(h, str):
            tags.append(Hashtag(tag=h))
        elif isinstance(h, dict) and h.get("tag") is not None:
            tags.append(Hashtag(tag=str(h["tag"]), weight=to_num(h.get("weight")) or 0.0))
    return tags


def _buckets(raw: Any) -> Optional[List[AudienceBucket]]:
    if not isinstance(raw, list):
        return None
    buckets = []
    for b in raw:
        if not isinstance(b, dict) or b.get("code") is None:
            continue
        buckets.append(AudienceBucket(
            code=str(b["code"]),
            name=_text(b.get("name")),
            weight=to_num(b.get("weight")) or 0.0,
        ))
    return buckets


def _contacts(raw: Any) -> Optional[List[ContactInfo]]:
    if not isinstance(raw, list):
        return None
    contacts = []
    for c in raw:
        if isinstance(c, dict):
            contacts.append(ContactInfo(type=_text(c.get("type"), "other"), value=_text(c.get("value"), "")))
        elif isinstance(c, str):
            contacts.append(ContactInfo(type="email" if "@" in c else "other", value=c))
    return contacts


def _themes(c: dict, raw: dict, inf: dict, audience: dict, hashtags: List[Hashtag]) -> List[str]:
    for explicit in (c.get("topContentThemes"), raw.get("themes")):
        if isinstance(explicit, list):
            return [str(t) for t in explicit if t is not None]
    raw_interests = _list(first(audience.get("interests"), inf.get("interests")))
    interests = [i.get("name") if isinstance(i, dict) else i for i in raw_interests]
    interests = [str(i) for i in interests if i]
    if interests:
        return interests
    return [h.tag for h in hashtags[:5]]


def _top_hashtag(hashtags: List[Hashtag]) -> Optional[str]:
    if not hashtags:
        return None
    # max() keeps the earliest entry on ties, so unweighted lists use the first tag
    return max(hashtags, key=lambda h: h.weight).tag


def normalize_creator(raw: dict, handle: str = "") -> CreatorProfile:
    c = _dict(raw.get("creator"))
    inf = _dict(first(*(raw.get(k) for k in WRAPPER_KEYS)))
    profile = _dict(inf.get("profile"))
    audience = _dict(inf.get("audience"))
    hashtags = _hashtags(inf.get("hashtags"))
    contacts = _contacts(first(inf.get("contacts"), raw.get("contacts")))

    def pick(*keys):
        """creator -> flat top level -> wrapper.profile -> wrapper, first key hit wins per layer."""
        for layer in (c, raw, profile, inf):
            for key in keys:
                if layer.get(key) is not None:
                    return layer[key]
        return None

    email = pick("email")
    if email is None and contacts:
        email = next((ct.value for ct in contacts if ct.type == "email"), None)

    return CreatorProfile(
        handle=_text(first(c.get("handle"), handle or None, profile.get("username"), inf.get("handle")), ""),
        followers=display_count(pick("followers", "followersCount")),
        niche=_text(first(c.get("niche"), raw.get("niche"), _top_hashtag(hashtags)), "N/A"),
        avg_views=display_count(pick("avgViews", "avg_views", "averageViews")),
        top_content_themes=_themes(c, raw, inf, audience, hashtags),
        fullname=_text(pick("fullname")),
        picture=_text(pick("picture")),
        bio=_text(pick("bio")),
        email=_text(email),
        engagement_rate=to_num(pick("engagementRate", "engagement_rate")),
        avg_likes=to_num(pick("avgLikes", "avg_likes")),
        avg_comments=to_num(pick("avgComments", "avg_comments")),
        total_likes=to_num(pick("totalLikes", "total_likes")),
        posts_count=to_num(pick("postsCount", "posts_count")),
        gender=_text(pick("gender")),
        country=_text(pick("country")),
        city=_text(pick("city")),
        age_group=_text(pick("ageGroup", "age_group")),
        is_verified=_flag(pick("isVerified", "is_verified")),
        contacts=contacts,
        paid_post_performance=to_num(pick("paidPostPerformance")),
        sponsored_posts_median_views=to_num(pick("sponsoredPostsMedianViews")),
        non_sponsored_posts_median_views=to_num(pick("nonSponsoredPostsMedianViews")),
        hashtags=hashtags or None,
        audience_genders=_buckets(audience.get("genders")),
        audience_ages=_buckets(audience.get("ages")),
        audience_countries=_buckets(audience.get("geoCountries")),
        audience_languages=_buckets(audience.get("languages")),
    )


def normalize_response(raw: dict, handle: str = "") -> EnrichmentResult:
    """Normalize any provider payload shape into an EnrichmentResult."""
    raw_brands = first(*(raw.get(k) for k in BRAND_LIST_KEYS))
    brands = [normalize_brand(b) for b in _list(raw_brands) if isinstance(b, dict)]
    return EnrichmentResult(creator=normalize_creator(raw, handle), brands=brands)


def has_inline_result(body: Any) -> bool:
    """True when a provider response already carries enrichment data."""
    if not isinstance(body, dict):
        return False
    return any(body.get(k) is not None for k in BRAND_LIST_KEYS)
