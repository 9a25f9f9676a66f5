"""
Subscription gate: maps a subscription to the entitlements it unlocks.

Pure policy with no I/O. Every tier maps to exactly one Entitlements value.
"""

from datetime import datetime

from lifedeck.domain.constants import FREE_MAX_DAILY_CARDS, PREMIUM_MAX_DAILY_CARDS
from lifedeck.domain.models import (
    Entitlements,
    PremiumFeature,
    SubscriptionState,
    SubscriptionTier,
)

FREE_ENTITLEMENTS = Entitlements(
    max_daily_cards=FREE_MAX_DAILY_CARDS,
    ai_personalization_allowed=False,
    unlimited_cards=False,
    premium_content=False,
)

PREMIUM_ENTITLEMENTS = Entitlements(
    max_daily_cards=PREMIUM_MAX_DAILY_CARDS,
    ai_personalization_allowed=True,
    unlimited_cards=True,
    premium_content=True,
)


class SubscriptionGate:
    """
    Resolves entitlements for a tier or a full subscription state.

    Stateless and side-effect free.
    """

    def entitlements_for_tier(self, tier: SubscriptionTier) -> Entitlements:
        if tier is SubscriptionTier.PREMIUM:
            return PREMIUM_ENTITLEMENTS
        return FREE_ENTITLEMENTS

    def entitlements(self, state: SubscriptionState, now: datetime) -> Entitlements:
        """
        Entitlements for a subscription state at a point in time.

        A premium subscription that has lapsed or expired is treated as free.
        """
        if state.is_premium_effective(now):
            return PREMIUM_ENTITLEMENTS
        return FREE_ENTITLEMENTS

    def has_feature(
        self, state: SubscriptionState, feature: PremiumFeature, now: datetime
    ) -> bool:
        ent = self.entitlements(state, now)
        if feature is PremiumFeature.UNLIMITED_CARDS:
            return ent.unlimited_cards
        if feature is PremiumFeature.AI_PERSONALIZATION:
            return ent.ai_personalization_allowed
        return ent.premium_content
