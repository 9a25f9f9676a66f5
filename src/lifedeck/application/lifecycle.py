"""
Card lifecycle manager: the card state machine.

    Pending -> Completed | Dismissed | Snoozed
    Snoozed -> Pending   (when snoozed_until has elapsed, on re-evaluation)

Completed and Dismissed are terminal. A transition requested for a card
that is unknown or not in the required source state is logged and ignored.
"""

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from lifedeck.domain.constants import (
    BASE_COMPLETION_POINTS,
    DEFAULT_SNOOZE,
    DIFFICULTY_POINTS_MULTIPLIER,
    EVENT_RETENTION,
    MORNING_BONUS,
    MORNING_END_HOUR,
    MORNING_START_HOUR,
    PREMIUM_CARD_BONUS,
    SWIPE_THRESHOLD,
)
from lifedeck.domain.models import (
    Achievement,
    CardAction,
    CardEvent,
    CardState,
    CoachingCard,
    Entitlements,
    LifeDomain,
    SwipeDirection,
)
from lifedeck.domain.ports import NotificationScheduler

from .achievement_engine import AchievementEngine
from .progress_tracker import ProgressTracker

logger = logging.getLogger(__name__)


def resolve_swipe(dx: float, dy: float, threshold: float = SWIPE_THRESHOLD) -> SwipeDirection | None:
    """
    Resolve a drag displacement to a swipe direction.

    Horizontal displacement wins over vertical. A displacement that does not
    exceed the threshold on either axis resolves to None (no transition).
    Screen coordinates: negative dy is up.
    """
    if dx > threshold:
        return SwipeDirection.RIGHT
    if dx < -threshold:
        return SwipeDirection.LEFT
    if dy < -threshold:
        return SwipeDirection.UP
    if dy > threshold:
        return SwipeDirection.DOWN
    return None


def completion_points(card: CoachingCard, completed_at: datetime) -> int:
    """10 + floor(difficulty * 2) + 5 if premium + 3 for a morning completion."""
    points = BASE_COMPLETION_POINTS
    points += math.floor(card.difficulty * DIFFICULTY_POINTS_MULTIPLIER)
    if card.is_premium:
        points += PREMIUM_CARD_BONUS
    if MORNING_START_HOUR <= completed_at.hour < MORNING_END_HOUR:
        points += MORNING_BONUS
    return points


@dataclass
class TransitionResult:
    """Outcome of a requested transition; ``applied`` is False for ignored requests."""

    card_id: str
    action: CardAction | None
    applied: bool
    card: CoachingCard | None = None
    points_awarded: int = 0
    unlocked: list[Achievement] = field(default_factory=list)
    reason: str | None = None


class CardLifecycleManager:
    """
    Owns the active deck and the deferred (snoozed) queue and drives cards
    through their state machine, applying scoring side effects on completion.
    """

    def __init__(
        self,
        tracker: ProgressTracker,
        achievements: AchievementEngine | None = None,
        notifier: NotificationScheduler | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._tracker = tracker
        self._achievements = achievements or AchievementEngine()
        self._notifier = notifier
        self._clock = clock

        self.active: list[CoachingCard] = []
        self.deferred: list[CoachingCard] = []
        self.completed: list[CoachingCard] = []
        self.events: list[CardEvent] = []

    # ------------------------------------------------------------------
    # Deck management
    # ------------------------------------------------------------------

    def restore(
        self,
        active: list[CoachingCard],
        deferred: list[CoachingCard],
        completed: list[CoachingCard] | None = None,
        events: list[CardEvent] | None = None,
    ) -> None:
        self.active = list(active)
        self.deferred = list(deferred)
        self.completed = list(completed or [])
        self.events = list(events or [])

    def replace_deck(
        self, cards: list[CoachingCard], ent: Entitlements, keep_history: bool = False
    ) -> None:
        """
        Install a freshly generated deck. Snoozed cards survive a regeneration.

        A same-day refresh (``keep_history``) keeps today's completions and only
        tops the deck up: cards already completed, dismissed or deferred today
        count against the daily limit, and their templates are not dealt again.
        A new day clears completions; the event trail is kept and pruned by age.
        """
        now = self._clock()
        pending = [c for c in cards if c.state is CardState.PENDING]

        if keep_history:
            used = self._used_today(now.date())
            room = max(0, ent.max_daily_cards - len(used))
            pending = [c for c in pending if (c.domain, c.title) not in used.values()][:room]
            logger.debug(f"Same-day refresh: {len(used)} card(s) used, {len(pending)} added")
        else:
            self.completed = []
            cutoff = now - EVENT_RETENTION
            self.events = [e for e in self.events if e.at >= cutoff]

        self.active = pending
        self.drop_unentitled(ent)

    def drop_unentitled(self, ent: Entitlements) -> int:
        """Remove premium cards the subscription no longer covers. Returns the count."""
        if ent.premium_content:
            return 0
        dropped = [c for c in self.active + self.deferred if c.is_premium]
        if dropped:
            logger.error(f"Dropping {len(dropped)} premium card(s) from a non-entitled deck")
            self.active = [c for c in self.active if not c.is_premium]
            self.deferred = [c for c in self.deferred if not c.is_premium]
        return len(dropped)

    def wake_due(self, now: datetime | None = None) -> list[CoachingCard]:
        """
        Return every snoozed card whose time has elapsed to the active deck.

        Driven by comparing ``snoozed_until`` against ``now``, never by a timer,
        so cards snoozed before a restart still come back. Each card moves once.
        """
        now = now or self._clock()
        active_ids = {c.id for c in self.active}
        woken: list[CoachingCard] = []
        still_deferred: list[CoachingCard] = []

        for card in self.deferred:
            if card.snoozed_until is not None and card.snoozed_until > now:
                still_deferred.append(card)
                continue
            card.snoozed_until = None
            card.state = CardState.PENDING
            if card.id not in active_ids:
                self.active.append(card)
                active_ids.add(card.id)
                woken.append(card)
                self._record(card, CardAction.WAKE, now)

        self.deferred = still_deferred
        if woken:
            logger.info(f"Re-queued {len(woken)} snoozed card(s)")
        return woken

    def find(self, card_id: str) -> CoachingCard | None:
        for card in self.active + self.deferred + self.completed:
            if card.id == card_id:
                return card
        return None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def apply_swipe(self, card_id: str, dx: float, dy: float) -> TransitionResult:
        direction = resolve_swipe(dx, dy)
        if direction is None:
            return TransitionResult(
                card_id=card_id, action=None, applied=False, reason="below threshold"
            )
        action = direction.action
        if action is CardAction.COMPLETE:
            return self.complete(card_id)
        if action is CardAction.DISMISS:
            return self.dismiss(card_id)
        return self.snooze(card_id)

    def complete(self, card_id: str) -> TransitionResult:
        card = self._pending_card(card_id, CardAction.COMPLETE)
        if isinstance(card, TransitionResult):
            return card

        now = self._clock()
        card.completed_at = now
        card.snoozed_until = None
        card.state = CardState.COMPLETED
        self.active.remove(card)
        self.completed.append(card)

        points = completion_points(card, now)
        profile = self._tracker.record_completion(card.domain, card.difficulty, points, now)
        unlocked = self._achievements.check(profile, now)
        self._record(card, CardAction.COMPLETE, now, points)

        logger.info(f"Completed '{card.title}' (+{points} points)")
        return TransitionResult(
            card_id=card_id,
            action=CardAction.COMPLETE,
            applied=True,
            card=card,
            points_awarded=points,
            unlocked=unlocked,
        )

    def dismiss(self, card_id: str) -> TransitionResult:
        card = self._pending_card(card_id, CardAction.DISMISS)
        if isinstance(card, TransitionResult):
            return card

        now = self._clock()
        card.state = CardState.DISMISSED
        self.active.remove(card)
        self._record(card, CardAction.DISMISS, now)

        logger.info(f"Dismissed '{card.title}'")
        return TransitionResult(
            card_id=card_id, action=CardAction.DISMISS, applied=True, card=card
        )

    def snooze(self, card_id: str, duration: timedelta = DEFAULT_SNOOZE) -> TransitionResult:
        if duration <= timedelta(0):
            logger.warning(f"Ignoring snooze of {card_id} with non-positive duration {duration}")
            return TransitionResult(
                card_id=card_id,
                action=CardAction.SNOOZE,
                applied=False,
                reason="non-positive duration",
            )

        card = self._pending_card(card_id, CardAction.SNOOZE)
        if isinstance(card, TransitionResult):
            return card

        now = self._clock()
        card.snoozed_until = now + duration
        card.state = CardState.SNOOZED
        self.active.remove(card)
        self.deferred.append(card)
        self._record(card, CardAction.SNOOZE, now)

        if self._notifier is not None:
            try:
                self._notifier.schedule_wake(card.id, card.snoozed_until)
            except Exception as e:
                # Wake-up is re-evaluated on every deck load; a lost notification is harmless.
                logger.warning(f"Failed to schedule wake for {card.id}: {e}")

        logger.info(f"Snoozed '{card.title}' until {card.snoozed_until:%Y-%m-%d %H:%M}")
        return TransitionResult(
            card_id=card_id, action=CardAction.SNOOZE, applied=True, card=card
        )

    # ------------------------------------------------------------------
    # Card annotations
    # ------------------------------------------------------------------

    def toggle_bookmark(self, card_id: str) -> CoachingCard | None:
        card = self.find(card_id)
        if card is None:
            logger.warning(f"Cannot bookmark unknown card {card_id}")
            return None
        card.bookmarked = not card.bookmarked
        return card

    def add_note(self, card_id: str, note: str) -> CoachingCard | None:
        card = self.find(card_id)
        if card is None:
            logger.warning(f"Cannot annotate unknown card {card_id}")
            return None
        card.user_note = note.strip() or None
        return card

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _pending_card(self, card_id: str, action: CardAction) -> CoachingCard | TransitionResult:
        """Look up a pending card in the active deck, or build the ignored result."""
        for card in self.active:
            if card.id == card_id and card.state is CardState.PENDING:
                return card

        known = self.find(card_id)
        reason = "unknown card" if known is None else f"card is {known.state.value}"
        logger.warning(f"Ignoring {action.value} for {card_id}: {reason}")
        return TransitionResult(card_id=card_id, action=action, applied=False, reason=reason)

    def _used_today(self, today: date) -> dict[str, tuple[LifeDomain, str]]:
        """Cards completed, dismissed or deferred today, keyed by id."""
        used = {
            e.card_id: (e.domain, e.title)
            for e in self.events
            if e.at.date() == today and e.action in (CardAction.COMPLETE, CardAction.DISMISS)
        }
        for card in self.completed + self.deferred:
            used[card.id] = (card.domain, card.title)
        return used

    def _record(self, card: CoachingCard, action: CardAction, at: datetime, points: int = 0) -> None:
        self.events.append(
            CardEvent(
                card_id=card.id,
                domain=card.domain,
                action=action,
                at=at,
                points=points,
                title=card.title,
            )
        )
