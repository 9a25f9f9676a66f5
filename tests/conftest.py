import random
from datetime import datetime, timedelta

import pytest

from lifedeck.application.achievement_engine import AchievementEngine
from lifedeck.application.card_generator import CardGenerator
from lifedeck.application.engine import CoachingEngine
from lifedeck.application.id_service import generate_card_id
from lifedeck.application.lifecycle import CardLifecycleManager
from lifedeck.application.progress_tracker import ProgressTracker
from lifedeck.domain.models import CoachingCard, LifeDomain, SubscriptionState, SubscriptionTier
from lifedeck.infrastructure.adapters.json_store import MemorySnapshotStore
from lifedeck.infrastructure.adapters.subscriptions import StaticSubscriptionProvider
from lifedeck.infrastructure.catalog import YamlCardCatalog


class FakeClock:
    """Callable clock that tests move by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    # Afternoon, so completions carry no morning bonus unless a test moves the clock
    return FakeClock(datetime(2026, 3, 10, 14, 0))


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def catalog():
    return YamlCardCatalog.packaged()


@pytest.fixture
def free_sub():
    return SubscriptionState()


@pytest.fixture
def premium_sub():
    return SubscriptionState(tier=SubscriptionTier.PREMIUM, is_active=True)


@pytest.fixture
def make_card(clock):
    """Factory for pending cards."""

    def _make(
        title: str = "Card",
        domain: LifeDomain = LifeDomain.HEALTH,
        difficulty: float = 1.5,
        is_premium: bool = False,
    ) -> CoachingCard:
        return CoachingCard(
            id=generate_card_id(),
            title=title,
            domain=domain,
            action_text=f"Do {title}",
            difficulty=difficulty,
            is_premium=is_premium,
            created_at=clock(),
        )

    return _make


@pytest.fixture
def tracker():
    return ProgressTracker()


@pytest.fixture
def lifecycle(tracker, clock):
    return CardLifecycleManager(tracker, AchievementEngine(), clock=clock)


@pytest.fixture
def store():
    return MemorySnapshotStore()


@pytest.fixture
def subscriptions():
    return StaticSubscriptionProvider()


@pytest.fixture
def engine(catalog, rng, clock, tracker, lifecycle, store, subscriptions):
    generator = CardGenerator(catalog=catalog, rng=rng, clock=clock)
    return CoachingEngine(
        generator=generator,
        tracker=tracker,
        lifecycle=lifecycle,
        store=store,
        subscriptions=subscriptions,
        clock=clock,
    )


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config and data
    monkeypatch.setenv("HOME", str(home))
    return home
