"""
Domain models for the coaching engine.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from .constants import HIGH_BAND_FLOOR, LOW_BAND_CEILING


class LifeDomain(str, Enum):
    HEALTH = "health"
    FINANCE = "finance"
    PRODUCTIVITY = "productivity"
    MINDFULNESS = "mindfulness"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


ALL_DOMAINS: tuple[LifeDomain, ...] = tuple(LifeDomain)


class CardPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class CardDuration(str, Enum):
    QUICK = "quick"
    SHORT = "short"
    STANDARD = "standard"
    EXTENDED = "extended"

    @property
    def minutes(self) -> int:
        return {"quick": 2, "short": 5, "standard": 10, "extended": 15}[self.value]


class CardState(str, Enum):
    """Lifecycle phase of a card instance. Completed and dismissed are terminal."""

    PENDING = "pending"
    COMPLETED = "completed"
    DISMISSED = "dismissed"
    SNOOZED = "snoozed"


class CardAction(str, Enum):
    COMPLETE = "complete"
    DISMISS = "dismiss"
    SNOOZE = "snooze"
    WAKE = "wake"


class SwipeDirection(str, Enum):
    RIGHT = "right"
    LEFT = "left"
    UP = "up"
    DOWN = "down"

    @property
    def action(self) -> CardAction:
        if self is SwipeDirection.RIGHT:
            return CardAction.COMPLETE
        if self is SwipeDirection.LEFT:
            return CardAction.DISMISS
        return CardAction.SNOOZE


class ScoreBand(str, Enum):
    """Template difficulty band selected from a domain score."""

    LOW = "low"  # [0, 30)
    MID = "mid"  # [30, 60)
    HIGH = "high"  # [60, 100]

    @classmethod
    def for_score(cls, score: float) -> "ScoreBand":
        if score < LOW_BAND_CEILING:
            return cls.LOW
        if score < HIGH_BAND_FLOOR:
            return cls.MID
        return cls.HIGH


class SubscriptionTier(str, Enum):
    FREE = "free"
    PREMIUM = "premium"


class PremiumFeature(str, Enum):
    UNLIMITED_CARDS = "unlimited_cards"
    AI_PERSONALIZATION = "ai_personalization"
    PREMIUM_CONTENT = "premium_content"


@dataclass
class CoachingCard:
    """
    A single actionable card in the user's deck.

    Attributes:
        id: Unique card instance ID (ULID string).
        difficulty: Real difficulty, typically 1.0-3.0.
        points: Base reward carried by the card (display only; completion
            points are computed by the lifecycle manager).
        completed_at: Set iff state is COMPLETED.
        snoozed_until: Set iff state is SNOOZED.
    """

    id: str
    title: str
    domain: LifeDomain
    action_text: str
    description: str = ""
    difficulty: float = 1.0
    points: int = 10
    priority: CardPriority = CardPriority.MEDIUM
    duration: CardDuration = CardDuration.STANDARD
    is_premium: bool = False
    ai_generated: bool = False
    created_at: datetime = field(default_factory=datetime.now)
    completed_at: datetime | None = None
    snoozed_until: datetime | None = None
    tags: set[str] = field(default_factory=set)
    bookmarked: bool = False
    user_note: str | None = None
    state: CardState = CardState.PENDING

    @property
    def is_completed(self) -> bool:
        return self.state is CardState.COMPLETED

    def is_snoozed(self, now: datetime) -> bool:
        return (
            self.state is CardState.SNOOZED
            and self.snoozed_until is not None
            and self.snoozed_until > now
        )

    def is_available(self, now: datetime) -> bool:
        return self.state is CardState.PENDING or (
            self.state is CardState.SNOOZED and not self.is_snoozed(now)
        )

    @property
    def difficulty_stars(self) -> str:
        return "*" * min(int(round(self.difficulty)), 5)


@dataclass(frozen=True)
class CardTemplate:
    """Static seed data for a card. Templates carry no identity."""

    title: str
    action_text: str
    domain: LifeDomain
    band: ScoreBand
    description: str = ""
    is_premium: bool = False
    tags: tuple[str, ...] = ()
    priority: CardPriority = CardPriority.MEDIUM
    duration: CardDuration = CardDuration.STANDARD


@dataclass
class Achievement:
    """
    A catalog achievement unlocked by accumulated life points.

    Attributes:
        category: The domain this achievement is themed on, None for general.
    """

    id: str
    title: str
    description: str
    points_required: int
    category: LifeDomain | None = None
    is_unlocked: bool = False
    unlocked_at: datetime | None = None


def _zero_scores() -> dict[LifeDomain, float]:
    return {domain: 0.0 for domain in ALL_DOMAINS}


@dataclass
class UserProfile:
    """
    Progress state for one user. Mutated only by ProgressTracker
    (and AchievementEngine for the achievements list).
    """

    domain_scores: dict[LifeDomain, float] = field(default_factory=_zero_scores)
    current_streak: int = 0
    longest_streak: int = 0
    life_points: int = 0
    total_cards_completed: int = 0
    last_active_date: date | None = None
    achievements: list[Achievement] = field(default_factory=list)
    focus_domains: list[LifeDomain] = field(default_factory=list)

    @property
    def life_score(self) -> float:
        """Mean of the four domain scores; derived, never stored."""
        return sum(self.domain_scores.get(d, 0.0) for d in ALL_DOMAINS) / len(ALL_DOMAINS)

    def score_for(self, domain: LifeDomain) -> float:
        return self.domain_scores.get(domain, 0.0)

    @property
    def effective_focus_domains(self) -> list[LifeDomain]:
        return list(self.focus_domains) if self.focus_domains else list(ALL_DOMAINS)


@dataclass
class SubscriptionState:
    tier: SubscriptionTier = SubscriptionTier.FREE
    is_active: bool = False
    expiry: datetime | None = None

    def is_premium_effective(self, now: datetime) -> bool:
        return (
            self.tier is SubscriptionTier.PREMIUM
            and self.is_active
            and (self.expiry is None or self.expiry > now)
        )


@dataclass(frozen=True)
class Entitlements:
    max_daily_cards: int
    ai_personalization_allowed: bool
    unlimited_cards: bool
    premium_content: bool


@dataclass(frozen=True)
class CardEvent:
    """Analytics trail entry; keeps dismissals and snoozes recoverable."""

    card_id: str
    domain: LifeDomain
    action: CardAction
    at: datetime
    points: int = 0
    title: str = ""


@dataclass
class DeckSnapshot:
    """Whole-session state; the unit of persistence (replaced, never patched)."""

    profile: UserProfile
    active: list[CoachingCard] = field(default_factory=list)
    deferred: list[CoachingCard] = field(default_factory=list)
    completed: list[CoachingCard] = field(default_factory=list)
    events: list[CardEvent] = field(default_factory=list)
    deck_date: date | None = None
    saved_at: datetime | None = None
