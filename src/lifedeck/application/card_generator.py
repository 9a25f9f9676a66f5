"""
Card generator for the daily deck.

Builds the day's deck by:
1. Selecting a score band per focus domain
2. Picking templates round-robin from the band's pool (premium filtered)
3. Appending AI-personalized cards when entitled (bounded, failure-tolerant)
4. Materializing, shuffling and truncating to the tier's limit
"""

import asyncio
import logging
import random
from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import date, datetime

from lifedeck.domain.constants import (
    AI_REQUEST_TIMEOUT,
    BAND_DIFFICULTY_RANGE,
    BAND_POINTS_RANGE,
    FREE_TEMPLATES_PER_DOMAIN,
    UNLIMITED_TEMPLATES_PER_DOMAIN,
)
from lifedeck.domain.models import (
    CardState,
    CardTemplate,
    CoachingCard,
    Entitlements,
    LifeDomain,
    ScoreBand,
    SubscriptionState,
    UserProfile,
)
from lifedeck.domain.ports import AIPersonalizationService, CardCatalog

from .id_service import generate_card_id
from .subscription_gate import SubscriptionGate

logger = logging.getLogger(__name__)

# Bands tried, in order, when the selected band has no eligible templates.
BAND_FALLBACK: dict[ScoreBand, tuple[ScoreBand, ...]] = {
    ScoreBand.LOW: (ScoreBand.LOW, ScoreBand.MID, ScoreBand.HIGH),
    ScoreBand.MID: (ScoreBand.MID, ScoreBand.LOW, ScoreBand.HIGH),
    ScoreBand.HIGH: (ScoreBand.HIGH, ScoreBand.MID, ScoreBand.LOW),
}


def select_round_robin(
    pool: Sequence[CardTemplate], count: int, offset: int
) -> list[CardTemplate]:
    """
    Pick up to ``count`` distinct templates, walking the pool from ``offset``.

    A pool smaller than ``count`` yields every template once rather than
    repeating one inside the same deck.
    """
    if not pool or count <= 0:
        return []
    n = min(count, len(pool))
    start = offset % len(pool)
    return [pool[(start + i) % len(pool)] for i in range(n)]


class CardGenerator:
    """
    Builds the daily deck from the catalog, the profile and the subscription.

    Randomness (jitter and shuffle) comes from the injected ``rng`` so decks
    are reproducible under a fixed seed.
    """

    def __init__(
        self,
        catalog: CardCatalog,
        gate: SubscriptionGate | None = None,
        ai_service: AIPersonalizationService | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = datetime.now,
        ai_timeout: float = AI_REQUEST_TIMEOUT,
    ):
        self._catalog = catalog
        self._gate = gate or SubscriptionGate()
        self._ai = ai_service
        self._rng = rng or random.Random()
        self._clock = clock
        self._ai_timeout = ai_timeout

    async def generate_daily_deck(
        self,
        profile: UserProfile,
        focus_domains: Sequence[LifeDomain] | None,
        subscription: SubscriptionState,
    ) -> list[CoachingCard]:
        """
        Generate an ordered deck of pending cards.

        Args:
            profile: Read-only progress; domain scores select the template band.
            focus_domains: Domains to draw from; None or empty means all four.
            subscription: Current subscription; decides counts and premium access.

        Returns:
            Shuffled list of pending cards, never longer than the tier limit and
            never containing a premium card for a non-entitled subscription.
        """
        now = self._clock()
        ent = self._gate.entitlements(subscription, now)
        domains = list(dict.fromkeys(focus_domains or profile.effective_focus_domains))
        per_domain = (
            UNLIMITED_TEMPLATES_PER_DOMAIN if ent.unlimited_cards else FREE_TEMPLATES_PER_DOMAIN
        )

        cards: list[CoachingCard] = []
        for domain in domains:
            band = ScoreBand.for_score(profile.score_for(domain))
            used_band, pool = self._eligible_pool(domain, band, ent)
            if not pool:
                logger.warning(f"No eligible templates for {domain.value}/{band.value}")
                continue
            picks = select_round_robin(pool, per_domain, _day_offset(now.date(), per_domain))
            cards.extend(self._materialize(t, used_band, now) for t in picks)

        if ent.ai_personalization_allowed and self._ai is not None:
            cards.extend(await self._personalized_cards(self._ai, domains, profile, now))

        cards = self._enforce_entitlement(cards, ent)

        self._rng.shuffle(cards)
        deck = cards[: ent.max_daily_cards]

        logger.info(
            f"Generated deck of {len(deck)} cards "
            f"({len(cards)} candidates, limit {ent.max_daily_cards})"
        )
        return deck

    def _eligible_pool(
        self, domain: LifeDomain, band: ScoreBand, ent: Entitlements
    ) -> tuple[ScoreBand, list[CardTemplate]]:
        for candidate in BAND_FALLBACK[band]:
            pool = [
                t
                for t in self._catalog.get_templates(domain, candidate)
                if ent.premium_content or not t.is_premium
            ]
            if pool:
                if candidate is not band:
                    logger.debug(f"{domain.value}: band {band.value} empty, using {candidate.value}")
                return candidate, pool
        return band, []

    def _materialize(self, template: CardTemplate, band: ScoreBand, now: datetime) -> CoachingCard:
        lo, hi = BAND_DIFFICULTY_RANGE[band.value]
        p_lo, p_hi = BAND_POINTS_RANGE[band.value]
        return CoachingCard(
            id=generate_card_id(),
            title=template.title,
            domain=template.domain,
            action_text=template.action_text,
            description=template.description,
            difficulty=round(self._rng.uniform(lo, hi), 1),
            points=self._rng.randint(p_lo, p_hi),
            priority=template.priority,
            duration=template.duration,
            is_premium=template.is_premium,
            ai_generated=False,
            created_at=now,
            tags=set(template.tags),
        )

    async def _personalized_cards(
        self,
        ai: AIPersonalizationService,
        domains: list[LifeDomain],
        profile: UserProfile,
        now: datetime,
    ) -> list[CoachingCard]:
        """
        Ask the AI service for one card per domain under a single timeout.

        Any failure, including the timeout, degrades to fewer (or zero) cards.
        Each accepted card gets a freshly minted id; a card for a domain other
        than the one requested is rejected.
        """
        try:
            results = await asyncio.wait_for(
                asyncio.gather(
                    *(ai.generate(d, profile) for d in domains),
                    return_exceptions=True,
                ),
                timeout=self._ai_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"AI personalization timed out after {self._ai_timeout}s; skipping")
            return []

        cards = []
        for domain, result in zip(domains, results):
            if isinstance(result, BaseException):
                logger.warning(f"AI personalization failed for {domain.value}: {result}")
                continue
            if result is None:
                continue
            if result.domain is not domain:
                logger.warning(
                    f"AI personalization returned a {result.domain.value} card "
                    f"for {domain.value}; discarding"
                )
                continue
            cards.append(
                replace(
                    result,
                    id=generate_card_id(),
                    ai_generated=True,
                    created_at=now,
                    completed_at=None,
                    snoozed_until=None,
                    state=CardState.PENDING,
                )
            )
        return cards

    def _enforce_entitlement(
        self, cards: list[CoachingCard], ent: Entitlements
    ) -> list[CoachingCard]:
        if ent.premium_content:
            return cards
        kept = [c for c in cards if not c.is_premium]
        if len(kept) != len(cards):
            logger.error(f"Dropped {len(cards) - len(kept)} premium card(s) from non-entitled deck")
        return kept


def _day_offset(day: date, per_domain: int) -> int:
    """Round-robin start that advances by one deck's worth of picks per calendar day."""
    return day.toordinal() * per_domain
