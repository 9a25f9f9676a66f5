"""Tests for daily deck generation."""

import asyncio
import random
from unittest.mock import AsyncMock

import pytest

from lifedeck.application.card_generator import CardGenerator, select_round_robin
from lifedeck.domain.constants import BAND_DIFFICULTY_RANGE, BAND_POINTS_RANGE
from lifedeck.domain.models import (
    CardState,
    CardTemplate,
    CoachingCard,
    LifeDomain,
    ScoreBand,
    UserProfile,
)
from lifedeck.domain.ports import CardCatalog


class ListCatalog(CardCatalog):
    def __init__(self, templates: list[CardTemplate]):
        self.templates = templates

    def get_templates(self, domain, band):
        return [t for t in self.templates if t.domain == domain and t.band == band]


def _template(title, domain=LifeDomain.HEALTH, band=ScoreBand.LOW, premium=False):
    return CardTemplate(
        title=title, action_text=f"Do {title}", domain=domain, band=band, is_premium=premium
    )


def _profile(**scores) -> UserProfile:
    return UserProfile(domain_scores={LifeDomain(k): v for k, v in scores.items()})


class TestRoundRobin:
    def test_walks_from_offset_and_wraps(self):
        pool = ["a", "b", "c", "d"]
        assert select_round_robin(pool, 3, 2) == ["c", "d", "a"]

    def test_small_pool_yields_each_template_once(self):
        assert select_round_robin(["a", "b"], 3, 7) == ["b", "a"]

    def test_empty_pool(self):
        assert select_round_robin([], 2, 0) == []


class TestDeckLimits:
    @pytest.mark.asyncio
    async def test_free_deck_is_capped_and_has_no_premium(self, catalog, clock, free_sub):
        # Scenario: free tier, all four domains, health in the low band
        generator = CardGenerator(catalog=catalog, rng=random.Random(7), clock=clock)
        profile = _profile(health=20.0)

        deck = await generator.generate_daily_deck(profile, None, free_sub)

        assert 0 < len(deck) <= 5
        assert not any(card.is_premium for card in deck)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("seed", range(10))
    async def test_free_deck_never_exceeds_limit_for_any_scores(self, catalog, clock, free_sub, seed):
        rng = random.Random(seed)
        profile = _profile(
            health=rng.uniform(0, 100),
            finance=rng.uniform(0, 100),
            productivity=rng.uniform(0, 100),
            mindfulness=rng.uniform(0, 100),
        )
        generator = CardGenerator(catalog=catalog, rng=rng, clock=clock)

        deck = await generator.generate_daily_deck(profile, None, free_sub)

        assert len(deck) <= 5
        assert not any(card.is_premium for card in deck)

    @pytest.mark.asyncio
    async def test_premium_gets_three_per_domain(self, catalog, rng, clock, premium_sub):
        generator = CardGenerator(catalog=catalog, rng=rng, clock=clock)

        deck = await generator.generate_daily_deck(UserProfile(), None, premium_sub)

        assert len(deck) == 12
        for domain in LifeDomain:
            assert sum(1 for c in deck if c.domain is domain) == 3

    @pytest.mark.asyncio
    async def test_focus_domains_restrict_deck(self, catalog, rng, clock, premium_sub):
        generator = CardGenerator(catalog=catalog, rng=rng, clock=clock)

        deck = await generator.generate_daily_deck(
            UserProfile(), [LifeDomain.FINANCE], premium_sub
        )

        assert {c.domain for c in deck} == {LifeDomain.FINANCE}


class TestSelection:
    @pytest.mark.asyncio
    async def test_score_band_selects_templates(self, rng, clock, premium_sub):
        catalog = ListCatalog(
            [
                _template("low-1", band=ScoreBand.LOW),
                _template("mid-1", band=ScoreBand.MID),
                _template("high-1", band=ScoreBand.HIGH),
            ]
        )
        generator = CardGenerator(catalog=catalog, rng=rng, clock=clock)

        for score, expected in [(0.0, "low-1"), (29.9, "low-1"), (30.0, "mid-1"), (60.0, "high-1")]:
            deck = await generator.generate_daily_deck(
                _profile(health=score), [LifeDomain.HEALTH], premium_sub
            )
            assert [c.title for c in deck] == [expected]

    @pytest.mark.asyncio
    async def test_small_pool_does_not_repeat_within_deck(self, rng, clock, premium_sub):
        catalog = ListCatalog([_template("a"), _template("b")])
        generator = CardGenerator(catalog=catalog, rng=rng, clock=clock)

        deck = await generator.generate_daily_deck(UserProfile(), [LifeDomain.HEALTH], premium_sub)

        assert sorted(c.title for c in deck) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_premium_templates_filtered_for_free(self, rng, clock, free_sub):
        catalog = ListCatalog(
            [_template("free-1"), _template("paid-1", premium=True), _template("paid-2", premium=True)]
        )
        generator = CardGenerator(catalog=catalog, rng=rng, clock=clock)

        deck = await generator.generate_daily_deck(UserProfile(), [LifeDomain.HEALTH], free_sub)

        assert [c.title for c in deck] == ["free-1"]

    @pytest.mark.asyncio
    async def test_all_premium_band_falls_back_to_neighbour_band(self, rng, clock, free_sub):
        catalog = ListCatalog(
            [
                _template("paid-high", band=ScoreBand.HIGH, premium=True),
                _template("free-mid", band=ScoreBand.MID),
            ]
        )
        generator = CardGenerator(catalog=catalog, rng=rng, clock=clock)

        deck = await generator.generate_daily_deck(
            _profile(health=80.0), [LifeDomain.HEALTH], free_sub
        )

        assert [c.title for c in deck] == ["free-mid"]
        lo, hi = BAND_DIFFICULTY_RANGE["mid"]
        assert lo <= deck[0].difficulty <= hi

    @pytest.mark.asyncio
    async def test_round_robin_rotates_across_days(self, clock, free_sub):
        catalog = ListCatalog([_template(f"t{i}") for i in range(5)])
        generator = CardGenerator(catalog=catalog, rng=random.Random(0), clock=clock)

        first = await generator.generate_daily_deck(UserProfile(), [LifeDomain.HEALTH], free_sub)
        clock.advance(days=1)
        second = await generator.generate_daily_deck(UserProfile(), [LifeDomain.HEALTH], free_sub)

        assert {c.title for c in first}.isdisjoint({c.title for c in second})


class TestMaterialization:
    @pytest.mark.asyncio
    async def test_cards_are_fresh_and_jitter_is_bounded(self, catalog, clock, premium_sub):
        generator = CardGenerator(catalog=catalog, rng=random.Random(3), clock=clock)
        profile = _profile(health=10.0, finance=45.0, productivity=70.0, mindfulness=100.0)
        bands = {d: ScoreBand.for_score(profile.score_for(d)) for d in LifeDomain}

        deck = await generator.generate_daily_deck(profile, None, premium_sub)

        assert len({c.id for c in deck}) == len(deck)
        for card in deck:
            band = bands[card.domain].value
            assert card.state is CardState.PENDING
            assert card.created_at == clock.now
            assert card.completed_at is None and card.snoozed_until is None
            lo, hi = BAND_DIFFICULTY_RANGE[band]
            assert lo <= card.difficulty <= hi
            p_lo, p_hi = BAND_POINTS_RANGE[band]
            assert p_lo <= card.points <= p_hi

    @pytest.mark.asyncio
    async def test_same_seed_gives_same_deck(self, catalog, clock, free_sub):
        decks = []
        for _ in range(2):
            generator = CardGenerator(catalog=catalog, rng=random.Random(42), clock=clock)
            deck = await generator.generate_daily_deck(UserProfile(), None, free_sub)
            decks.append([(c.title, c.difficulty, c.points) for c in deck])

        assert decks[0] == decks[1]


class TestPersonalization:
    def _ai_card(self, domain=LifeDomain.MINDFULNESS) -> CoachingCard:
        return CoachingCard(id="", title="Evening Reflection", domain=domain, action_text="Journal")

    @pytest.mark.asyncio
    async def test_ai_cards_appended_for_premium(self, catalog, rng, clock, premium_sub):
        ai = AsyncMock()
        ai.generate.return_value = self._ai_card()
        generator = CardGenerator(catalog=catalog, ai_service=ai, rng=rng, clock=clock)

        deck = await generator.generate_daily_deck(
            UserProfile(), [LifeDomain.MINDFULNESS], premium_sub
        )

        ai_cards = [c for c in deck if c.ai_generated]
        assert len(deck) == 4
        assert len(ai_cards) == 1
        assert ai_cards[0].id  # a fresh id was assigned
        ai.generate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_ai_not_called_for_free_tier(self, catalog, rng, clock, free_sub):
        ai = AsyncMock()
        generator = CardGenerator(catalog=catalog, ai_service=ai, rng=rng, clock=clock)

        await generator.generate_daily_deck(UserProfile(), None, free_sub)

        ai.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_ai_failure_degrades_to_templates(self, catalog, rng, clock, premium_sub):
        ai = AsyncMock()
        ai.generate.side_effect = RuntimeError("model unavailable")
        generator = CardGenerator(catalog=catalog, ai_service=ai, rng=rng, clock=clock)

        deck = await generator.generate_daily_deck(UserProfile(), None, premium_sub)

        assert len(deck) == 12
        assert not any(c.ai_generated for c in deck)

    @pytest.mark.asyncio
    async def test_ai_timeout_degrades_to_templates(self, catalog, rng, clock, premium_sub):
        class SlowService:
            async def generate(self, domain, profile):
                await asyncio.sleep(5)
                return None

        generator = CardGenerator(
            catalog=catalog, ai_service=SlowService(), rng=rng, clock=clock, ai_timeout=0.01
        )

        deck = await generator.generate_daily_deck(UserProfile(), [LifeDomain.HEALTH], premium_sub)

        assert len(deck) == 3
        assert not any(c.ai_generated for c in deck)

    @pytest.mark.asyncio
    async def test_ai_cards_get_fresh_ids_and_must_match_domain(
        self, catalog, rng, clock, premium_sub
    ):
        async def generate(domain, profile):
            # Same id every time; health requests come back as productivity cards
            returned = LifeDomain.PRODUCTIVITY if domain is LifeDomain.HEALTH else domain
            card = self._ai_card(returned)
            card.id = "card_reused"
            return card

        ai = AsyncMock()
        ai.generate.side_effect = generate
        generator = CardGenerator(catalog=catalog, ai_service=ai, rng=rng, clock=clock)

        deck = await generator.generate_daily_deck(
            UserProfile(),
            [LifeDomain.HEALTH, LifeDomain.FINANCE, LifeDomain.MINDFULNESS],
            premium_sub,
        )

        ai_cards = [c for c in deck if c.ai_generated]
        assert sorted(c.domain.value for c in ai_cards) == ["finance", "mindfulness"]
        assert "card_reused" not in {c.id for c in deck}
        assert len({c.id for c in deck}) == len(deck)

    @pytest.mark.asyncio
    async def test_partial_ai_failure_keeps_successful_cards(self, catalog, rng, clock, premium_sub):
        async def generate(domain, profile):
            if domain is LifeDomain.HEALTH:
                raise ConnectionError("boom")
            return self._ai_card(domain)

        ai = AsyncMock()
        ai.generate.side_effect = generate
        generator = CardGenerator(catalog=catalog, ai_service=ai, rng=rng, clock=clock)

        deck = await generator.generate_daily_deck(
            UserProfile(), [LifeDomain.HEALTH, LifeDomain.FINANCE], premium_sub
        )

        ai_domains = [c.domain for c in deck if c.ai_generated]
        assert ai_domains == [LifeDomain.FINANCE]
