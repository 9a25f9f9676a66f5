"""
Coaching engine: the single owner of a user's session state.

Holds the canonical profile (via ProgressTracker) and deck (via
CardLifecycleManager). Every mutation goes through a named operation;
observers receive a copy of the new snapshot instead of sharing references.
"""

import copy
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

from lifedeck.domain.constants import DEFAULT_SNOOZE
from lifedeck.domain.models import (
    CardAction,
    CoachingCard,
    DeckSnapshot,
    Entitlements,
    LifeDomain,
    SubscriptionState,
    UserProfile,
)
from lifedeck.domain.ports import PersistenceStore, SubscriptionProvider

from .card_generator import CardGenerator
from .lifecycle import CardLifecycleManager, TransitionResult
from .progress_tracker import ProgressTracker
from .subscription_gate import SubscriptionGate

logger = logging.getLogger(__name__)

Listener = Callable[[DeckSnapshot], None]


@dataclass
class DailySummary:
    day: date | None
    completed: int
    points_earned: int
    remaining: int
    snoozed: int
    life_score: float
    current_streak: int


class CoachingEngine:
    """
    Application service for one user session.

    Transitions are synchronous and atomic; the only await point is deck
    generation. Persistence is fire-and-forget: a failed save is logged and
    the in-memory state stays authoritative.
    """

    def __init__(
        self,
        generator: CardGenerator,
        tracker: ProgressTracker,
        lifecycle: CardLifecycleManager,
        store: PersistenceStore,
        subscriptions: SubscriptionProvider,
        gate: SubscriptionGate | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._generator = generator
        self._tracker = tracker
        self._lifecycle = lifecycle
        self._store = store
        self._subscriptions = subscriptions
        self._gate = gate or SubscriptionGate()
        self._clock = clock

        self._deck_date: date | None = None
        self._generation = 0
        self._listeners: list[Listener] = []

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def profile(self) -> UserProfile:
        return self._tracker.profile

    @property
    def deck_date(self) -> date | None:
        return self._deck_date

    def snapshot(self) -> DeckSnapshot:
        """Deep copy of the current state, safe to hand to observers and stores."""
        return copy.deepcopy(
            DeckSnapshot(
                profile=self._tracker.profile,
                active=self._lifecycle.active,
                deferred=self._lifecycle.deferred,
                completed=self._lifecycle.completed,
                events=self._lifecycle.events,
                deck_date=self._deck_date,
                saved_at=self._clock(),
            )
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a state-change observer. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def entitlements(self) -> Entitlements:
        return self._gate.entitlements(self._subscription_state(), self._clock())

    # ------------------------------------------------------------------
    # Loading and generation
    # ------------------------------------------------------------------

    def load(self) -> bool:
        """
        Restore the last persisted snapshot, if any, then re-evaluate snoozes.

        Returns:
            True if a snapshot was restored.
        """
        try:
            snapshot = self._store.load()
        except Exception as e:
            logger.error(f"Failed to load snapshot, starting fresh: {e}", exc_info=True)
            snapshot = None

        if snapshot is None:
            logger.info("No saved snapshot; starting with a new profile")
            return False

        self._tracker.restore(snapshot.profile)
        self._lifecycle.restore(
            snapshot.active, snapshot.deferred, snapshot.completed, snapshot.events
        )
        self._deck_date = snapshot.deck_date
        self.active_deck()
        return True

    async def refresh_deck(self, force: bool = False) -> list[CoachingCard]:
        """
        Generate today's deck unless one already exists (or ``force`` is set).

        If another refresh starts while this one awaits generation, this
        result is stale and is discarded rather than installed.
        """
        today = self._clock().date()
        if not force and self._deck_date == today:
            return self.active_deck()

        self._generation += 1
        token = self._generation

        subscription = self._subscription_state()
        profile = self._tracker.profile
        cards = await self._generator.generate_daily_deck(
            profile, profile.focus_domains or None, subscription
        )

        if token != self._generation:
            logger.info(f"Discarding stale deck (generation {token}, current {self._generation})")
            return list(self._lifecycle.active)

        ent = self._gate.entitlements(subscription, self._clock())
        self._lifecycle.replace_deck(cards, ent, keep_history=self._deck_date == today)
        self._deck_date = today
        self._lifecycle.wake_due(self._clock())
        self._commit()
        return list(self._lifecycle.active)

    def active_deck(self) -> list[CoachingCard]:
        """
        Pending cards, after re-queuing elapsed snoozes and dropping cards the
        subscription no longer covers.
        """
        woken = self._lifecycle.wake_due(self._clock())
        dropped = self._lifecycle.drop_unentitled(self.entitlements())
        if woken or dropped:
            self._commit()
        return list(self._lifecycle.active)

    def deferred_cards(self) -> list[CoachingCard]:
        return list(self._lifecycle.deferred)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def swipe(self, card_id: str, dx: float, dy: float) -> TransitionResult:
        return self._apply(self._lifecycle.apply_swipe, card_id, dx, dy)

    def complete(self, card_id: str) -> TransitionResult:
        return self._apply(self._lifecycle.complete, card_id)

    def dismiss(self, card_id: str) -> TransitionResult:
        return self._apply(self._lifecycle.dismiss, card_id)

    def snooze(self, card_id: str, duration: timedelta = DEFAULT_SNOOZE) -> TransitionResult:
        return self._apply(self._lifecycle.snooze, card_id, duration)

    def toggle_bookmark(self, card_id: str) -> CoachingCard | None:
        card = self._lifecycle.toggle_bookmark(card_id)
        if card is not None:
            self._commit()
        return card

    def add_note(self, card_id: str, note: str) -> CoachingCard | None:
        card = self._lifecycle.add_note(card_id, note)
        if card is not None:
            self._commit()
        return card

    def set_focus_domains(self, domains: list[LifeDomain]) -> UserProfile:
        profile = self._tracker.set_focus_domains(domains)
        self._commit()
        return profile

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def daily_summary(self) -> DailySummary:
        today = self._clock().date()
        completions = [
            e
            for e in self._lifecycle.events
            if e.action is CardAction.COMPLETE and e.at.date() == today
        ]
        profile = self._tracker.profile
        return DailySummary(
            day=self._deck_date,
            completed=len(completions),
            points_earned=sum(e.points for e in completions),
            remaining=len(self._lifecycle.active),
            snoozed=len(self._lifecycle.deferred),
            life_score=profile.life_score,
            current_streak=profile.current_streak,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply(self, transition: Callable[..., TransitionResult], *args: Any) -> TransitionResult:
        """Run a transition against a deck the current subscription still covers."""
        dropped = self._lifecycle.drop_unentitled(self.entitlements())
        result = transition(*args)
        if result.applied or dropped:
            self._commit()
        return result

    def _subscription_state(self) -> SubscriptionState:
        try:
            return self._subscriptions.current_state()
        except Exception as e:
            logger.warning(f"Subscription lookup failed, treating as free: {e}")
            return SubscriptionState()

    def _commit(self) -> None:
        snapshot = self.snapshot()

        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"State listener failed: {e}", exc_info=True)

        try:
            self._store.save(snapshot)
        except Exception as e:
            logger.error(f"Snapshot save failed; in-memory state kept: {e}")
