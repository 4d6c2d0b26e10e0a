"""
Data models for the Daily Movie Discovery service.
Catalog rows, fetched metadata, rendered feed items, subscriptions and
the inbound webhook variants.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field


DEFAULT_OVERVIEW = "Description not available."
UNKNOWN_YEAR = "Unknown Year"
UNKNOWN_RELEASE = "Release date unknown"


class Plan(str, Enum):
    """Subscription tiers. FREE is implicit and never stored."""
    FREE = "free"
    PREMIUM_MONTHLY = "premium-monthly"
    PREMIUM_YEARLY = "premium-yearly"
    ULTIMATE_MONTHLY = "ultimate-monthly"
    ULTIMATE_YEARLY = "ultimate-yearly"
    GENRE_PACK = "genre-pack"
    ONE_TIME_SUPPORT = "one-time-support"

    @property
    def is_yearly(self) -> bool:
        return self.value.endswith("-yearly")

    @property
    def is_paid_feed(self) -> bool:
        """Plans that may reorder their feed from upstream lists."""
        return self in (
            Plan.PREMIUM_MONTHLY,
            Plan.PREMIUM_YEARLY,
            Plan.ULTIMATE_MONTHLY,
            Plan.ULTIMATE_YEARLY,
            Plan.GENRE_PACK,
        )


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


class FeedSort(str, Enum):
    """Candidate ordering. Only CATALOG is available to the free tier."""
    CATALOG = "catalog"
    POPULAR = "popular"
    TRENDING = "trending"
    TOP_RATED = "top_rated"


# =============================================================================
# Catalog + metadata
# =============================================================================

class MovieCandidate(BaseModel):
    """One row of the curated catalog (or one upstream list entry)."""
    model_config = ConfigDict(frozen=True)

    title: str
    external_id: str
    year: str = UNKNOWN_YEAR
    alternate_id: Optional[str] = None  # imdb id
    release_date: str = UNKNOWN_RELEASE
    direct_url: Optional[str] = None


class MovieSummary(BaseModel):
    """Lightweight recommendation entry."""
    id: Optional[int] = None
    title: str = ""
    release_date: Optional[str] = None
    vote_average: Optional[float] = None


class MovieDetails(BaseModel):
    """
    Metadata fetched per candidate.
    Defaults are the neutral values used when a fetch fails.
    """
    title: Optional[str] = None
    overview: str = DEFAULT_OVERVIEW
    tagline: Optional[str] = None
    release_date: Optional[str] = None
    runtime_minutes: Optional[int] = None
    vote_average: float = 0.0
    genres: List[str] = Field(default_factory=list)
    directors: List[str] = Field(default_factory=list)
    cast: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    poster_url: Optional[str] = None
    backdrop_url: Optional[str] = None
    streaming_providers: List[str] = Field(default_factory=list)
    recommendations: List[MovieSummary] = Field(default_factory=list)
    trailer_url: Optional[str] = None
    imdb_id: Optional[str] = None


class FetchResult(BaseModel):
    """Outcome of one metadata fetch. `details` is always usable."""
    external_id: str
    ok: bool
    details: MovieDetails = Field(default_factory=MovieDetails)
    error: Optional[str] = None


# =============================================================================
# Feed
# =============================================================================

class FeedFilters(BaseModel):
    genre: Optional[str] = None
    min_rating: float = 0.0
    max_age_years: Optional[int] = None
    limit: int = 5


class FeedItem(BaseModel):
    """A candidate joined with its metadata, ready to render."""
    external_id: str
    title: str
    link: str
    publication_date: str
    plain_description: str
    rich_description_html: str
    enclosure_url: Optional[str] = None
    categories: List[str] = Field(default_factory=list)
    # Kept for the text digest
    year: Optional[str] = None
    runtime_minutes: Optional[int] = None
    vote_average: float = 0.0


class ChannelMeta(BaseModel):
    title: str = "Daily Movie Discovery"
    link: str = "https://thatmovieguy.vercel.app/"
    description: str = (
        "Daily movie recommendations, streamlined for Radarr. "
        "No contracts. No costs. Ever."
    )
    language: str = "en-us"
    self_url: Optional[str] = None
    feed_id: str = "daily-discovery"
    image_url: Optional[str] = None
    last_build_date: Optional[datetime] = None


# =============================================================================
# Subscriptions
# =============================================================================

class Subscription(BaseModel):
    """Persisted purchase/subscription record."""
    id: str
    email: str
    plan_id: Plan
    source: str
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    created_at: datetime
    expires_at: datetime
    token: str
    external_ref: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def is_valid_at(self, now: datetime) -> bool:
        return self.status == SubscriptionStatus.ACTIVE and self.expires_at > now


class User(BaseModel):
    """Denormalized per-email record. Recomputable from subscriptions."""
    email: str
    has_active_subscription: bool = False
    latest_subscription_id: Optional[str] = None


class SubscriptionGrant(BaseModel):
    """What create_subscription hands back to the caller."""
    id: str
    token: str
    expires_at: datetime


# =============================================================================
# Webhooks (Buy Me a Coffee shaped payloads)
# =============================================================================

class MembershipData(BaseModel):
    supporter_email: EmailStr
    subscription_id: Optional[str] = None
    membership_level_name: str = ""
    duration_type: str = "month"
    quantity: int = 1


class StatusData(BaseModel):
    subscription_id: str
    status: Optional[str] = None


class SupportData(BaseModel):
    supporter_email: EmailStr
    support_id: Optional[str] = None
    support_note: str = ""
    quantity: int = 1


class MembershipEvent(BaseModel):
    event_type: Literal["subscription_created", "membership_created"]
    data: MembershipData


class SubscriptionUpdatedEvent(BaseModel):
    event_type: Literal["subscription_updated"]
    data: StatusData


class SubscriptionCancelledEvent(BaseModel):
    event_type: Literal["subscription_cancelled"]
    data: StatusData


class SupportEvent(BaseModel):
    event_type: Literal["support_created"]
    data: SupportData


class UnknownEvent(BaseModel):
    """Well-formed event of a type we do not act on."""
    event_type: str


WebhookEvent = Union[
    MembershipEvent, SubscriptionUpdatedEvent, SubscriptionCancelledEvent, SupportEvent
]


class WebhookResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: Optional[str] = None
    feed_url: Optional[str] = Field(default=None, alias="feedUrl")
