"""
Engine Factory
Centralizes wiring of the coaching engine and its adapters from config.
"""

import random

from lifedeck.application.card_generator import CardGenerator
from lifedeck.application.config import AppConfig
from lifedeck.application.engine import CoachingEngine
from lifedeck.application.lifecycle import CardLifecycleManager
from lifedeck.application.progress_tracker import ProgressTracker, new_profile
from lifedeck.application.subscription_gate import SubscriptionGate
from lifedeck.domain.constants import SNAPSHOT_FILENAME
from lifedeck.domain.models import SubscriptionState
from lifedeck.domain.ports import (
    AIPersonalizationService,
    CardCatalog,
    NotificationScheduler,
    PersistenceStore,
    SubscriptionProvider,
)
from lifedeck.infrastructure.adapters.json_store import JsonSnapshotStore
from lifedeck.infrastructure.adapters.notifications import LoggingNotificationScheduler
from lifedeck.infrastructure.adapters.personalization import HttpPersonalizationService
from lifedeck.infrastructure.adapters.subscriptions import StaticSubscriptionProvider
from lifedeck.infrastructure.catalog import YamlCardCatalog


def get_catalog(config: AppConfig) -> CardCatalog:
    """
    Returns the configured catalog, falling back to the packaged templates.
    """
    if config.catalog_path is not None:
        return YamlCardCatalog.from_path(config.catalog_path)
    return YamlCardCatalog.packaged()


def get_ai_service(config: AppConfig) -> AIPersonalizationService | None:
    if not config.ai_endpoint:
        return None
    return HttpPersonalizationService(url=config.ai_endpoint, timeout=config.ai_timeout)


def get_subscription_provider(config: AppConfig) -> SubscriptionProvider:
    return StaticSubscriptionProvider(
        SubscriptionState(
            tier=config.tier,
            is_active=config.premium_active,
            expiry=config.premium_expiry,
        )
    )


def build_engine(
    config: AppConfig,
    store: PersistenceStore | None = None,
    subscriptions: SubscriptionProvider | None = None,
    notifier: NotificationScheduler | None = None,
) -> CoachingEngine:
    """
    Wire a CoachingEngine. Explicit collaborators override config-derived ones.
    """
    gate = SubscriptionGate()
    tracker = ProgressTracker(new_profile(config.focus_domains))
    lifecycle = CardLifecycleManager(
        tracker,
        notifier=notifier or LoggingNotificationScheduler(),
    )
    generator = CardGenerator(
        catalog=get_catalog(config),
        gate=gate,
        ai_service=get_ai_service(config),
        rng=random.Random(config.seed),
        ai_timeout=config.ai_timeout,
    )
    return CoachingEngine(
        generator=generator,
        tracker=tracker,
        lifecycle=lifecycle,
        store=store or JsonSnapshotStore(config.data_dir / SNAPSHOT_FILENAME),
        subscriptions=subscriptions or get_subscription_provider(config),
        gate=gate,
    )
