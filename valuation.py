# valuation.py
import re
from typing import List

from models import BrandMatch

BASE_RATE_PER_1K = 5  # dollars per 1K followers
FALLBACK_FOLLOWERS = 10_000

_SUFFIX = {"K": 1_000, "M": 1_000_000, "B": 1_000_000_000}


def parse_follower_count(text: str) -> float:
    """'340K' -> 340000, '1.2M' -> 1200000, '1,500' -> 1500. Unparseable -> 10000."""
    cleaned = (text or "").replace(",", "").strip().upper()
    m = re.match(r"^([\d.]+)\s*([KMB])?$", cleaned)
    if not m:
        return FALLBACK_FOLLOWERS
    try:
        value = float(m.group(1))
    except ValueError:
        return FALLBACK_FOLLOWERS
    return value * _SUFFIX.get(m.group(2), 1)


def _round50(x: float) -> int:
    return int(round(x / 50)) * 50


def estimate_value(fit_score: int, followers: str) -> str:
    """Rough pre-pitch deal range, e.g. '$500 – $2,000'."""
    num = parse_follower_count(followers)
    if fit_score >= 80:
        multiplier = 1.5
    elif fit_score >= 60:
        multiplier = 1.0
    else:
        multiplier = 0.6
    raw = (num / 1000) * BASE_RATE_PER_1K * multiplier
    low = max(100, _round50(raw * 0.6))
    high = max(_round50(raw * 1.4), low + 100)
    return f"${low:,} – ${high:,}"


def rank_brands(brands: List[BrandMatch]) -> List[BrandMatch]:
    """Best fit first. Stable, so equal scores keep provider order."""
    return sorted(brands, key=lambda b: b.fit_score, reverse=True)
