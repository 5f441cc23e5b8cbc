# models.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase JSON."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Record(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class AudienceBucket(Record):
    code: str
    name: Optional[str] = None
    weight: float = 0.0


class Hashtag(Record):
    tag: str
    weight: float = 0.0


class ContactInfo(Record):
    type: str = "other"
    value: str = ""


class CreatorProfile(Record):
    handle: str = ""
    followers: str = "N/A"
    niche: str = "N/A"
    avg_views: str = "N/A"
    top_content_themes: List[str] = Field(default_factory=list)
    # Provider-enriched fields, present only when the provider returns them
    fullname: Optional[str] = None
    picture: Optional[str] = None
    bio: Optional[str] = None
    email: Optional[str] = None
    engagement_rate: Optional[float] = None
    avg_likes: Optional[float] = None
    avg_comments: Optional[float] = None
    total_likes: Optional[float] = None
    posts_count: Optional[float] = None
    gender: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    age_group: Optional[str] = None
    is_verified: Optional[bool] = None
    contacts: Optional[List[ContactInfo]] = None
    paid_post_performance: Optional[float] = None
    sponsored_posts_median_views: Optional[float] = None
    non_sponsored_posts_median_views: Optional[float] = None
    hashtags: Optional[List[Hashtag]] = None
    audience_genders: Optional[List[AudienceBucket]] = None
    audience_ages: Optional[List[AudienceBucket]] = None
    audience_countries: Optional[List[AudienceBucket]] = None
    audience_languages: Optional[List[AudienceBucket]] = None


class BrandMatch(Record):
    name: str = "Unknown"
    domain: str = ""
    industry: str = ""
    description: str = ""
    funding: str = "N/A"
    headcount: str = "N/A"
    recent_news: str = "N/A"
    fit_score: int = 70
    fit_reason: str = ""


class EnrichmentResult(Record):
    creator: CreatorProfile
    brands: List[BrandMatch] = Field(default_factory=list)


class EnrichmentJob(CamelModel):
    request_id: str
    status: Literal["pending", "complete"] = "pending"
    payload: Optional[EnrichmentResult] = None
    created_at: datetime


class BrandStrategy(CamelModel):
    brand_name: str = ""
    brand_domain: str = ""
    pitch_angle: str = ""
    content_formats: List[str] = Field(default_factory=list)
    talking_points: List[str] = Field(default_factory=list)
    pitch_script: str = ""
    subject_line: str = ""
    estimated_value: str = ""


class PitchStrategyResult(CamelModel):
    overall_strategy: str = ""
    brand_strategies: List[BrandStrategy] = Field(default_factory=list)


class CreatorSummary(CamelModel):
    summary: str = ""
    insights: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    niche_suggestion: str = ""
    suggested_brands: List[BrandMatch] = Field(default_factory=list)


# Request bodies: every field optional so missing input is a 400, not a 422

class EnrichRequest(BaseModel):
    handle: Optional[str] = None
    niche_description: Optional[str] = None


class StrategyRequest(CamelModel):
    creator: Optional[CreatorProfile] = None
    brands: Optional[List[BrandMatch]] = None
    marketing_request: Optional[str] = None


class SummarizeRequest(BaseModel):
    creator: Optional[CreatorProfile] = None
