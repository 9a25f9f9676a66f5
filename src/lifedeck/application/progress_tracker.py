"""
Progress tracker: owns the user's scores, streaks and life points.

This is a pure computation module with no I/O; the clock is passed in.
"""

import logging
from datetime import date, datetime, timedelta

from lifedeck.domain.constants import DOMAIN_SCORE_MULTIPLIER, SCORE_MAX, SCORE_MIN
from lifedeck.domain.models import LifeDomain, UserProfile

from .achievement_engine import default_achievements

logger = logging.getLogger(__name__)


def clamp_score(value: float) -> float:
    return max(SCORE_MIN, min(SCORE_MAX, value))


def new_profile(focus_domains: list[LifeDomain] | None = None) -> UserProfile:
    """Create a fresh profile: all-zero scores and a locked achievement catalog."""
    return UserProfile(
        achievements=default_achievements(),
        focus_domains=list(focus_domains or []),
    )


class ProgressTracker:
    """
    Single writer for a UserProfile.

    All updates go through named operations; callers read the profile
    through the ``profile`` property.
    """

    def __init__(self, profile: UserProfile | None = None):
        self._profile = new_profile()
        self.restore(profile or self._profile)

    def restore(self, profile: UserProfile) -> UserProfile:
        """Adopt a loaded profile, re-establishing score and streak invariants."""
        for domain in LifeDomain:
            profile.domain_scores[domain] = clamp_score(profile.domain_scores.get(domain, 0.0))
        profile.current_streak = max(0, profile.current_streak)
        profile.longest_streak = max(profile.longest_streak, profile.current_streak)
        profile.life_points = max(0, profile.life_points)
        self._profile = profile
        return profile

    @property
    def profile(self) -> UserProfile:
        return self._profile

    def score_for(self, domain: LifeDomain) -> float:
        return self._profile.score_for(domain)

    def record_completion(
        self,
        domain: LifeDomain,
        difficulty: float,
        points: int,
        now: datetime,
    ) -> UserProfile:
        """
        Apply one completed card to the profile.

        Args:
            domain: Domain of the completed card.
            difficulty: Card difficulty; the domain score grows by difficulty * 2.
            points: Points already computed for this completion.
            now: Completion time; the streak uses its calendar date.

        Returns:
            The updated profile.
        """
        p = self._profile

        current = p.domain_scores.get(domain, 0.0)
        p.domain_scores[domain] = clamp_score(current + difficulty * DOMAIN_SCORE_MULTIPLIER)

        p.life_points += max(0, points)
        p.total_cards_completed += 1

        self._update_streak(now.date())

        logger.debug(
            f"Recorded {domain.value} completion: score={p.domain_scores[domain]:.1f} "
            f"points={p.life_points} streak={p.current_streak}"
        )
        return p

    def _update_streak(self, today: date) -> None:
        p = self._profile
        last = p.last_active_date

        # "Already today" must be checked before "yesterday".
        if last == today:
            pass
        elif last is not None and last == today - timedelta(days=1):
            p.current_streak += 1
        else:
            p.current_streak = 1

        p.longest_streak = max(p.longest_streak, p.current_streak)
        p.last_active_date = today

    def set_focus_domains(self, domains: list[LifeDomain]) -> UserProfile:
        # Preserve order, drop duplicates
        self._profile.focus_domains = list(dict.fromkeys(domains))
        return self._profile

    def reset_points(self) -> UserProfile:
        """Administrative reset; the only operation that lowers life points."""
        logger.info(f"Resetting life points (was {self._profile.life_points})")
        self._profile.life_points = 0
        return self._profile
