# Domain Package
from .models import (
    ALL_DOMAINS,
    Achievement,
    CardAction,
    CardDuration,
    CardEvent,
    CardPriority,
    CardState,
    CardTemplate,
    CoachingCard,
    DeckSnapshot,
    Entitlements,
    LifeDomain,
    PremiumFeature,
    ScoreBand,
    SubscriptionState,
    SubscriptionTier,
    SwipeDirection,
    UserProfile,
)
from .ports import (
    AIPersonalizationService,
    CardCatalog,
    NotificationScheduler,
    PersistenceStore,
    SubscriptionProvider,
)

__all__ = [
    "ALL_DOMAINS",
    "Achievement",
    "CardAction",
    "CardDuration",
    "CardEvent",
    "CardPriority",
    "CardState",
    "CardTemplate",
    "CoachingCard",
    "DeckSnapshot",
    "Entitlements",
    "LifeDomain",
    "PremiumFeature",
    "ScoreBand",
    "SubscriptionState",
    "SubscriptionTier",
    "SwipeDirection",
    "UserProfile",
    "AIPersonalizationService",
    "CardCatalog",
    "NotificationScheduler",
    "PersistenceStore",
    "SubscriptionProvider",
]
