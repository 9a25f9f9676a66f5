"""
Ports (interfaces) for the coaching engine's collaborators.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from .models import (
    CardTemplate,
    CoachingCard,
    DeckSnapshot,
    LifeDomain,
    ScoreBand,
    SubscriptionState,
    UserProfile,
)


class CardCatalog(ABC):
    """
    Read-only pool of card templates.

    Implementations:
        - YamlCardCatalog: Loads templates from a YAML document.
    """

    @abstractmethod
    def get_templates(self, domain: LifeDomain, band: ScoreBand) -> list[CardTemplate]:
        """
        Return the templates for a domain and score band, in catalog order.

        The returned list must be stable between calls so round-robin
        selection stays deterministic.
        """
        pass


class AIPersonalizationService(ABC):
    """
    Port for generating a personalized card for one domain.

    Callers always bound this with a timeout; raising and returning None
    are both treated as "no personalized card available".
    """

    @abstractmethod
    async def generate(self, domain: LifeDomain, profile: UserProfile) -> CoachingCard | None:
        pass


class PersistenceStore(ABC):
    """
    Port for durable storage of the session snapshot.

    Saves replace the whole snapshot (last writer wins). Retrying a failed
    save is the store's job, not the engine's.
    """

    @abstractmethod
    def load(self) -> DeckSnapshot | None:
        pass

    @abstractmethod
    def save(self, snapshot: DeckSnapshot) -> None:
        pass


class NotificationScheduler(ABC):
    """Intent-only wake-up scheduling; correctness never depends on delivery."""

    @abstractmethod
    def schedule_wake(self, card_id: str, at: datetime) -> None:
        pass


class SubscriptionProvider(ABC):
    """Read-only source of the user's current subscription state."""

    @abstractmethod
    def current_state(self) -> SubscriptionState:
        pass
