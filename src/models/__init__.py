from .schemas import (
    DEFAULT_OVERVIEW,
    Plan,
    SubscriptionStatus,
    FeedSort,
    MovieCandidate,
    MovieSummary,
    MovieDetails,
    FetchResult,
    FeedFilters,
    FeedItem,
    ChannelMeta,
    Subscription,
    SubscriptionGrant,
    User,
    MembershipEvent,
    SubscriptionUpdatedEvent,
    SubscriptionCancelledEvent,
    SupportEvent,
    UnknownEvent,
    WebhookEvent,
    WebhookResponse,
)

__all__ = [
    "DEFAULT_OVERVIEW",
    "Plan",
    "SubscriptionStatus",
    "FeedSort",
    "MovieCandidate",
    "MovieSummary",
    "MovieDetails",
    "FetchResult",
    "FeedFilters",
    "FeedItem",
    "ChannelMeta",
    "Subscription",
    "SubscriptionGrant",
    "User",
    "MembershipEvent",
    "SubscriptionUpdatedEvent",
    "SubscriptionCancelledEvent",
    "SupportEvent",
    "UnknownEvent",
    "WebhookEvent",
    "WebhookResponse",
]
